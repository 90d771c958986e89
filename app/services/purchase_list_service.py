from sqlalchemy.orm import Session
from typing import Optional, Dict, Any, List
import logging

from app.middleware.transaction_handler import transactional
from app.models.purchase_list import (
    PurchaseList,
    PurchaseListItem,
    PurchaseListVendorCost,
)
from app.models.shopping_list import ShoppingList, ListItem
from app.models.user import User
from app.services.comparison_service import winner_of
from app.services.list_item_service import ListItemService
from app.services.list_service import ListService
from app.utils.exceptions import (
    NotFoundError,
    ForbiddenError,
    ValidationError,
    ConflictError,
)
from app.utils.money import (
    difference,
    round_money,
    subtract_with_fixed,
    sum_with_fixed,
)
from app.utils.pagination import PageParams, paginate

logger = logging.getLogger(__name__)

DEFAULT_PURCHASE_LIST_NAME = "Untitled Purchase List"


class PurchaseListService:
    """
    Consolidation of a list's resolved comparisons into a purchase list.

    Purchase list items are frozen snapshots. Running aggregates are kept in
    step with every add and remove; ``reconcile`` recomputes them from the
    snapshots.
    """

    def __init__(self, db: Session):
        self.db = db
        self.lists = ListService(db)
        self.list_items = ListItemService(db)

    # Lookups

    def get_purchase_list(self, user: User, purchase_list_id: int) -> PurchaseList:
        purchase_list = (
            self.db.query(PurchaseList)
            .filter(PurchaseList.id == purchase_list_id)
            .first()
        )
        if not purchase_list:
            raise NotFoundError("Purchase list not found")
        if purchase_list.user_id != user.id:
            raise ForbiddenError()
        return purchase_list

    def find_by_list(self, list_id: int) -> Optional[PurchaseList]:
        return (
            self.db.query(PurchaseList).filter(PurchaseList.list_id == list_id).first()
        )

    def query_purchase_lists(self, user: User, params: PageParams) -> Dict[str, Any]:
        query = self.db.query(PurchaseList).filter(PurchaseList.user_id == user.id)
        return paginate(
            query,
            PurchaseList,
            params,
            allowed_sort_fields=("created_at", "updated_at", "name", "total_amount"),
        )

    def get_purchase_list_item(self, user: User, item_id: int) -> PurchaseListItem:
        item = (
            self.db.query(PurchaseListItem).filter(PurchaseListItem.id == item_id).first()
        )
        if not item:
            raise NotFoundError("Purchase list item not found")
        if item.user_id != user.id:
            raise ForbiddenError()
        return item

    def query_purchase_list_items(
        self,
        user: User,
        params: PageParams,
        purchase_list_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        query = self.db.query(PurchaseListItem).filter(
            PurchaseListItem.user_id == user.id
        )
        if purchase_list_id is not None:
            query = query.filter(PurchaseListItem.purchase_list_id == purchase_list_id)
        return paginate(
            query,
            PurchaseListItem,
            params,
            allowed_sort_fields=("created_at", "selected_total_price"),
        )

    # CRUD

    @transactional
    def create_purchase_list(
        self, user: User, list_id: int, name: Optional[str] = None
    ) -> PurchaseList:
        shopping_list = self.lists.get_list(user, list_id)
        if self.find_by_list(shopping_list.id):
            raise ConflictError("Purchase list already exists for this list")

        purchase_list = PurchaseList(
            user_id=user.id,
            list_id=shopping_list.id,
            name=(name or "").strip() or shopping_list.name or DEFAULT_PURCHASE_LIST_NAME,
        )
        self.db.add(purchase_list)
        self.db.flush()

        logger.info(f"Purchase list created: {purchase_list.id} for list {list_id}")
        return purchase_list

    @transactional
    def rename(self, user: User, purchase_list_id: int, name: str) -> PurchaseList:
        purchase_list = self.get_purchase_list(user, purchase_list_id)
        purchase_list.name = name
        return purchase_list

    @transactional
    def delete_purchase_list(self, user: User, purchase_list_id: int) -> None:
        purchase_list = self.get_purchase_list(user, purchase_list_id)
        self.db.delete(purchase_list)
        logger.info(f"Purchase list deleted: {purchase_list_id}")

    # Aggregates

    @staticmethod
    def _bucket(purchase_list: PurchaseList, vendor_id: int) -> PurchaseListVendorCost:
        for bucket in purchase_list.additional_cost:
            if bucket.vendor_id == vendor_id:
                return bucket

        bucket = PurchaseListVendorCost(vendor_id=vendor_id, total_amount=0.0)
        purchase_list.additional_cost.append(bucket)
        return bucket

    def _add_to_aggregates(self, purchase_list: PurchaseList, snapshot: PurchaseListItem):
        purchase_list.total_amount = sum_with_fixed(
            purchase_list.total_amount, snapshot.selected_total_price
        )
        purchase_list.unselected_total_amount = sum_with_fixed(
            purchase_list.unselected_total_amount, snapshot.unselected_total_price
        )

        bucket = self._bucket(purchase_list, snapshot.selected_vendor_id)
        bucket.total_amount = sum_with_fixed(
            bucket.total_amount, snapshot.selected_total_price
        )
        if snapshot.unselected_vendor_id is not None:
            bucket = self._bucket(purchase_list, snapshot.unselected_vendor_id)
            bucket.total_amount = sum_with_fixed(
                bucket.total_amount, snapshot.unselected_total_price
            )

    def _subtract_from_aggregates(
        self, purchase_list: PurchaseList, snapshot: PurchaseListItem
    ):
        purchase_list.total_amount = subtract_with_fixed(
            purchase_list.total_amount, snapshot.selected_total_price
        )
        purchase_list.unselected_total_amount = subtract_with_fixed(
            purchase_list.unselected_total_amount, snapshot.unselected_total_price
        )

        bucket = self._bucket(purchase_list, snapshot.selected_vendor_id)
        bucket.total_amount = subtract_with_fixed(
            bucket.total_amount, snapshot.selected_total_price
        )
        if snapshot.unselected_vendor_id is not None:
            bucket = self._bucket(purchase_list, snapshot.unselected_vendor_id)
            bucket.total_amount = subtract_with_fixed(
                bucket.total_amount, snapshot.unselected_total_price
            )

    @staticmethod
    def _annotate_savings(purchase_list: PurchaseList):
        purchase_list.price_saving = difference(
            purchase_list.unselected_total_amount, purchase_list.total_amount
        )
        for bucket in purchase_list.additional_cost:
            bucket.price_saving = difference(
                bucket.total_amount, purchase_list.total_amount
            )

    # Snapshots

    @staticmethod
    def _price_at_order(item: ListItem) -> List[Dict[str, Any]]:
        return [
            {
                "sale_unit_id": row.sale_unit_id,
                "unit": row.unit,
                "price_id": row.price_id,
                "price": row.unit_price,
                "quantity": row.quantity,
            }
            for row in item.sale_unit_quantities
        ]

    def _snapshot(
        self,
        purchase_list: PurchaseList,
        user: User,
        selected: ListItem,
        unselected: Optional[ListItem] = None,
        is_anchored: bool = False,
        recommendation: Optional[Dict[str, Any]] = None,
    ) -> PurchaseListItem:
        snapshot = PurchaseListItem(
            user_id=user.id,
            list_item_id=selected.id,
            unselected_list_item_id=unselected.id if unselected else None,
            selected_total_price=round_money(selected.total_price),
            unselected_total_price=round_money(unselected.total_price) if unselected else 0.0,
            selected_vendor_id=selected.vendor_id,
            unselected_vendor_id=unselected.vendor_id if unselected else None,
            price_at_order=self._price_at_order(selected),
            is_anchored=is_anchored,
            recommendation=dict(recommendation) if recommendation else None,
        )
        purchase_list.items.append(snapshot)
        self._add_to_aggregates(purchase_list, snapshot)
        return snapshot

    def _resolve(self, base: ListItem):
        """Returns ``(selected, unselected)`` for a resolved group, else None"""
        members = list(base.comparison_products)
        if not members:
            return None

        winner = winner_of(base)
        if winner is None:
            return None
        if winner.id == base.id:
            return base, members[0]
        return winner, base

    # Consolidation

    @transactional
    def upsert(self, user: User, list_id: int) -> PurchaseList:
        """
        Rebuilds the purchase list of a list from scratch.

        Anchored items are snapshotted as-is; each resolved comparison group
        yields one snapshot of its winner against an alternative. Unresolved
        groups are skipped.
        """
        shopping_list = self.lists.get_list(user, list_id)

        name = shopping_list.name
        existing = self.find_by_list(shopping_list.id)
        if existing:
            if existing.user_id != user.id:
                raise ForbiddenError()
            name = existing.name
            self.db.delete(existing)
            self.db.flush()
            self.db.expire(shopping_list, ["purchase_list"])

        purchase_list = PurchaseList(
            user_id=user.id,
            list_id=shopping_list.id,
            name=name or DEFAULT_PURCHASE_LIST_NAME,
            total_amount=0.0,
            unselected_total_amount=0.0,
        )
        self.db.add(purchase_list)

        skipped = 0
        for item in shopping_list.items:
            if item.is_anchored:
                self._snapshot(purchase_list, user, item, is_anchored=True)
            elif item.is_base_product:
                resolved = self._resolve(item)
                if resolved is None:
                    skipped += 1
                    continue
                selected, unselected = resolved
                self._snapshot(
                    purchase_list,
                    user,
                    selected,
                    unselected,
                    recommendation=item.recommendation,
                )

        purchase_list.items_count = len(purchase_list.items)
        self._annotate_savings(purchase_list)
        self.db.flush()

        logger.info(
            f"Purchase list {purchase_list.id} rebuilt from list {list_id}: "
            f"{purchase_list.items_count} item(s), {skipped} unresolved group(s) skipped, "
            f"total {purchase_list.total_amount}"
        )
        return purchase_list

    @transactional
    def add_item(
        self,
        user: User,
        purchase_list_id: int,
        selected_list_item_id: int,
        unselected_list_item_id: Optional[int] = None,
    ) -> PurchaseListItem:
        purchase_list = self.get_purchase_list(user, purchase_list_id)

        if selected_list_item_id == unselected_list_item_id:
            raise ValidationError("Selected and unselected list items must be different")

        selected = self.list_items.get_owned(user, selected_list_item_id)
        unselected = None
        if unselected_list_item_id is not None:
            unselected = self.list_items.get_owned(user, unselected_list_item_id)

        consolidated = set()
        for existing in purchase_list.items:
            consolidated.add(existing.list_item_id)
            consolidated.add(existing.unselected_list_item_id)
        consolidated.discard(None)

        if selected.id in consolidated or (unselected and unselected.id in consolidated):
            raise ConflictError("List item already in purchase list")

        recommendation = None
        if selected.is_member and selected.base is not None:
            recommendation = selected.base.recommendation
        elif selected.is_base_product:
            recommendation = selected.recommendation

        snapshot = self._snapshot(
            purchase_list,
            user,
            selected,
            unselected,
            is_anchored=selected.is_anchored,
            recommendation=recommendation,
        )
        purchase_list.items_count = len(purchase_list.items)
        self.db.flush()

        logger.info(
            f"List item {selected.id} added to purchase list {purchase_list.id}, "
            f"total {purchase_list.total_amount}"
        )
        return snapshot

    @transactional
    def remove_item(
        self,
        user: User,
        purchase_list_item_id: int,
        purchase_list_id: Optional[int] = None,
    ) -> PurchaseList:
        snapshot = self.get_purchase_list_item(user, purchase_list_item_id)
        if purchase_list_id is not None and snapshot.purchase_list_id != purchase_list_id:
            raise NotFoundError("Purchase list item not found in this purchase list")

        purchase_list = snapshot.purchase_list
        self._subtract_from_aggregates(purchase_list, snapshot)
        purchase_list.items.remove(snapshot)
        self.db.flush()
        purchase_list.items_count = len(purchase_list.items)

        logger.info(
            f"Purchase list item {purchase_list_item_id} removed from purchase list "
            f"{purchase_list.id}, total {purchase_list.total_amount}"
        )
        return purchase_list

    @transactional
    def get_with_savings(self, user: User, purchase_list_id: int) -> PurchaseList:
        purchase_list = self.get_purchase_list(user, purchase_list_id)
        self._annotate_savings(purchase_list)
        return purchase_list

    @transactional
    def get_by_list_with_savings(self, user: User, list_id: int) -> PurchaseList:
        shopping_list = self.lists.get_list(user, list_id)
        purchase_list = self.find_by_list(shopping_list.id)
        if not purchase_list:
            raise NotFoundError("Purchase list not found")
        self._annotate_savings(purchase_list)
        return purchase_list

    # Drift control

    @transactional
    def reconcile(self, purchase_list_id: int) -> Dict[str, float]:
        """
        Recomputes the aggregates of a purchase list from its snapshots.

        Returns the drift that was corrected, keyed by aggregate name; an
        empty dict means the running totals were exact.
        """
        purchase_list = (
            self.db.query(PurchaseList)
            .filter(PurchaseList.id == purchase_list_id)
            .first()
        )
        if not purchase_list:
            raise NotFoundError("Purchase list not found")

        total = 0.0
        unselected_total = 0.0
        buckets: Dict[int, float] = {}
        for snapshot in purchase_list.items:
            total = sum_with_fixed(total, snapshot.selected_total_price)
            unselected_total = sum_with_fixed(unselected_total, snapshot.unselected_total_price)
            buckets[snapshot.selected_vendor_id] = sum_with_fixed(
                buckets.get(snapshot.selected_vendor_id, 0.0),
                snapshot.selected_total_price,
            )
            if snapshot.unselected_vendor_id is not None:
                buckets[snapshot.unselected_vendor_id] = sum_with_fixed(
                    buckets.get(snapshot.unselected_vendor_id, 0.0),
                    snapshot.unselected_total_price,
                )

        drift: Dict[str, float] = {}
        if round_money(purchase_list.total_amount) != total:
            drift["total_amount"] = difference(purchase_list.total_amount, total)
            purchase_list.total_amount = total
        if round_money(purchase_list.unselected_total_amount) != unselected_total:
            drift["unselected_total_amount"] = difference(
                purchase_list.unselected_total_amount, unselected_total
            )
            purchase_list.unselected_total_amount = unselected_total

        for bucket in purchase_list.additional_cost:
            expected = buckets.pop(bucket.vendor_id, 0.0)
            if round_money(bucket.total_amount) != expected:
                drift[f"vendor:{bucket.vendor_id}"] = difference(bucket.total_amount, expected)
                bucket.total_amount = expected
        for vendor_id, expected in buckets.items():
            drift[f"vendor:{vendor_id}"] = difference(0, expected)
            self._bucket(purchase_list, vendor_id).total_amount = expected

        if purchase_list.items_count != len(purchase_list.items):
            drift["items_count"] = purchase_list.items_count - len(purchase_list.items)
            purchase_list.items_count = len(purchase_list.items)

        if drift:
            self._annotate_savings(purchase_list)
            logger.warning(f"Drift corrected on purchase list {purchase_list.id}: {drift}")
        return drift

    def reconcile_all(self) -> int:
        """Reconciles every purchase list, each in its own transaction"""
        ids = [row.id for row in self.db.query(PurchaseList.id).all()]
        corrected = 0
        failed = 0
        for purchase_list_id in ids:
            try:
                if self.reconcile(purchase_list_id):
                    corrected += 1
            except Exception as e:
                failed += 1
                logger.error(
                    f"Error reconciling purchase list {purchase_list_id}: {e}",
                    exc_info=True,
                )

        logger.info(
            f"Reconciled {len(ids)} purchase list(s), {corrected} corrected, {failed} failed"
        )
        return corrected
