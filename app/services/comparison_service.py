from sqlalchemy.orm import Session
from typing import Any, Dict, List, Optional, Sequence, Tuple
from datetime import datetime
import logging

from app.core.config import settings
from app.middleware.transaction_handler import transactional
from app.models.shopping_list import (
    ShoppingList,
    ListItem,
    ComparisonState,
    Selection,
)
from app.models.user import User
from app.services.classifier import Classifier, Recommendation, gather_bounded
from app.services.list_item_service import ListItemService
from app.utils.exceptions import NotFoundError, ForbiddenError, ValidationError

logger = logging.getLogger(__name__)

GROUP_CREATED = "Product group created successfully"
GROUP_REMOVED = "Product group removed successfully"
ITEM_ADDED = "List item added to comparison group successfully"
ITEM_REMOVED = "List item removed successfully"

MODES = ("add", "replace")


def describe(item: ListItem) -> Dict[str, Any]:
    """Descriptor of a list item as sent to the classifier"""
    product = item.product
    return {
        "list_item_id": item.id,
        "vendor": item.vendor_name,
        "brand": product.brand,
        "description": product.description,
        "pack_size": product.pack_size,
        "category": product.category,
        "price_per_unit": {row.unit: row.unit_price for row in item.sale_unit_quantities},
        "quantity": {row.unit: row.quantity for row in item.sale_unit_quantities},
        "total_price": item.total_price,
    }


def group_of(base: ListItem) -> List[ListItem]:
    return [base] + list(base.comparison_products)


def winner_of(base: ListItem) -> Optional[ListItem]:
    for item in group_of(base):
        if item.is_selected:
            return item
    return None


class ComparisonService:
    """
    Comparison groups as an explicit state machine.

    A list item is ``free``, ``anchored``, ``base`` (owns a group) or
    ``member`` (belongs to exactly one base). Within a group at most one item
    carries the ``selected`` marker.
    """

    def __init__(self, db: Session):
        self.db = db
        self.list_items = ListItemService(db)

    def _check_can_compare(self, item: ListItem):
        if item.is_anchored:
            raise ValidationError("Cannot compare an anchored list item")

    @transactional
    def add_comparison_product(
        self,
        user: User,
        base_id: int,
        comparison_id: Optional[int] = None,
        mode: str = "add",
    ) -> Tuple[ListItem, str]:
        if mode not in MODES:
            raise ValidationError(f"Unknown mode '{mode}'")

        base = self.list_items.get_owned(user, base_id)
        self._check_can_compare(base)
        if base.is_member:
            raise ValidationError("List item already belongs to another comparison group")

        if comparison_id is None:
            if base.state == ComparisonState.FREE.value:
                base.state = ComparisonState.BASE.value
                logger.info(f"List item {base.id} seeded as comparison base")
            return base, GROUP_CREATED

        comparison = self.list_items.get_owned(user, comparison_id)
        if comparison.id == base.id:
            raise ValidationError("Base and comparison list items must be different")
        if comparison.list_id != base.list_id:
            raise ValidationError("List items must belong to the same list")

        if mode == "replace":
            for member in list(base.comparison_products):
                if member.id != comparison.id:
                    self.list_items.release_member(base, member)

        if comparison.base_id == base.id:
            return base, ITEM_ADDED

        self._check_can_compare(comparison)
        if comparison.is_base_product:
            raise ValidationError("List item is already a comparison base")
        if comparison.is_member:
            raise ValidationError("List item already belongs to another comparison group")

        comparison.state = ComparisonState.MEMBER.value
        comparison.selection = Selection.NONE.value
        comparison.grouped_at = datetime.utcnow()
        base.comparison_products.append(comparison)
        base.state = ComparisonState.BASE.value

        logger.info(f"List item {comparison.id} joined the group of {base.id}")
        return base, ITEM_ADDED

    @transactional
    def remove_comparison_product(
        self, user: User, base_id: int, comparison_id: Optional[int] = None
    ) -> Tuple[ListItem, str]:
        base = self.list_items.get_owned(user, base_id)
        if not base.is_base_product:
            raise ValidationError("List item is not a comparison base")

        if comparison_id is None:
            for member in list(base.comparison_products):
                self.list_items.release_member(base, member)
            self.list_items.reset_base(base)
            logger.info(f"Comparison group of list item {base.id} dissolved")
            return base, GROUP_REMOVED

        member = next(
            (m for m in base.comparison_products if m.id == comparison_id), None
        )
        if member is None:
            raise NotFoundError("List item not found in the comparison group")

        self.list_items.release_member(base, member)

        if not base.comparison_products:
            self.list_items.reset_base(base)
            logger.info(f"Last member removed, list item {base.id} is free again")
            return base, GROUP_REMOVED

        if (base.recommendation or {}).get("list_item_id") == member.id:
            base.recommendation = None
        return base, ITEM_REMOVED

    @transactional
    def toggle_anchor(self, user: User, list_item_id: int) -> ListItem:
        item = self.list_items.get_owned(user, list_item_id)

        if item.is_base_product:
            raise ValidationError("Cannot anchor a list item that is a comparison base")
        if item.comparison_products:
            raise ValidationError("Cannot anchor a list item with comparison products")
        if item.is_selected:
            raise ValidationError("Cannot anchor a selected list item")
        if item.is_member:
            raise ValidationError(
                "Cannot anchor a list item that belongs to a comparison group"
            )

        if item.is_anchored:
            item.state = ComparisonState.FREE.value
        else:
            item.state = ComparisonState.ANCHORED.value
        item.selection = Selection.NONE.value

        logger.info(f"List item {item.id} is now {item.state}")
        return item

    def _group_target(
        self, user: User, list_item_id: int, base_list_item_id: int
    ) -> Tuple[ListItem, ListItem]:
        base = self.list_items.get_owned(user, base_list_item_id)
        if not base.is_base_product:
            raise ValidationError("List item is not a comparison base")

        item = self.list_items.get_owned(user, list_item_id)
        if item.is_anchored:
            raise ValidationError("Cannot select or reject an anchored list item")
        if item.id != base.id and item.base_id != base.id:
            raise ValidationError("List item is not part of this comparison group")
        return base, item

    @transactional
    def toggle_is_selected(
        self, user: User, list_item_id: int, base_list_item_id: int
    ) -> ListItem:
        base, item = self._group_target(user, list_item_id, base_list_item_id)

        if item.is_selected:
            item.selection = Selection.NONE.value
        else:
            for other in group_of(base):
                if other.is_selected:
                    other.selection = Selection.NONE.value
            item.selection = Selection.SELECTED.value

        logger.info(f"List item {item.id} selection is now {item.selection}")
        return item

    @transactional
    def toggle_is_rejected(
        self, user: User, list_item_id: int, base_list_item_id: int
    ) -> ListItem:
        base, item = self._group_target(user, list_item_id, base_list_item_id)

        if item.is_rejected:
            item.selection = Selection.NONE.value
        else:
            item.selection = Selection.REJECTED.value

        logger.info(f"List item {item.id} selection is now {item.selection}")
        return item

    def _get_owned_list(self, user: User, list_id: int) -> ShoppingList:
        shopping_list = (
            self.db.query(ShoppingList).filter(ShoppingList.id == list_id).first()
        )
        if not shopping_list:
            raise NotFoundError("List not found")
        if shopping_list.user_id != user.id:
            raise ForbiddenError()
        return shopping_list

    async def get_list_analysis(
        self, user: User, list_id: int, classifier: Classifier
    ) -> ShoppingList:
        """
        Asks the classifier for a winner in every comparison group of the list.

        Groups are analysed concurrently. A group whose call fails or times
        out keeps its previous recommendation.
        """
        shopping_list = self._get_owned_list(user, list_id)

        bases = [
            item
            for item in shopping_list.items
            if item.is_base_product and item.comparison_products
        ]
        if not bases:
            return shopping_list

        groups = [[describe(item) for item in group_of(base)] for base in bases]
        results = await gather_bounded(
            [lambda g=g: classifier.recommend(g) for g in groups],
            timeout=settings.CLASSIFIER_TIMEOUT_SECONDS,
            max_concurrency=settings.CLASSIFIER_MAX_CONCURRENCY,
        )

        self._apply_recommendations(list(zip(bases, results)))
        return shopping_list

    @transactional
    def _apply_recommendations(self, outcomes: Sequence[Tuple[ListItem, Any]]) -> int:
        applied = 0
        for base, result in outcomes:
            if not isinstance(result, Recommendation):
                logger.warning(f"No recommendation for group {base.id}: {result}")
                continue
            if result.winner_id not in [item.id for item in group_of(base)]:
                logger.warning(
                    f"Recommendation for group {base.id} points outside the group "
                    f"({result.winner_id})"
                )
                continue

            base.recommendation = result.as_dict()
            applied += 1

        logger.info(f"Recommendations applied to {applied}/{len(outcomes)} group(s)")
        return applied
