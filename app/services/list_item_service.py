from sqlalchemy.orm import Session
from typing import List, Sequence
import logging

from app.middleware.transaction_handler import transactional
from app.models.product import Product
from app.models.shopping_list import (
    ShoppingList,
    ListItem,
    ComparisonState,
    Selection,
)
from app.models.user import User
from app.schemas.list_item import SaleUnitQuantity, SaleUnitPrice, UnitLabelPrice
from app.services.pricing_service import PricingService
from app.utils.exceptions import NotFoundError, ForbiddenError, ValidationError

logger = logging.getLogger(__name__)


class ListItemService:
    def __init__(self, db: Session):
        self.db = db
        self.pricing = PricingService(db)

    def get_owned(self, user: User, list_item_id: int) -> ListItem:
        item = self.db.query(ListItem).filter(ListItem.id == list_item_id).first()
        if not item:
            raise NotFoundError("List item not found")
        if item.user_id != user.id:
            raise ForbiddenError()
        return item

    def find_by_product_number(self, user: User, product_number: str) -> List[ListItem]:
        return (
            self.db.query(ListItem)
            .join(Product, ListItem.product_id == Product.id)
            .filter(
                ListItem.user_id == user.id,
                Product.product_number == product_number,
            )
            .order_by(ListItem.created_at.desc(), ListItem.id.desc())
            .all()
        )

    def _set_quantity(self, item: ListItem, sale_unit_id: int, quantity: float):
        if quantity is None or quantity < 0:
            raise ValidationError("Quantity must be greater than or equal to 0")

        row = self.pricing.quantity_row(item, sale_unit_id)
        row.quantity = quantity

    @transactional
    def set_quantity(
        self, user: User, list_item_id: int, sale_unit_id: int, quantity: float
    ) -> ListItem:
        # the (item, user, sale unit) triple must match, ownership is not leaked
        item = (
            self.db.query(ListItem)
            .filter(ListItem.id == list_item_id, ListItem.user_id == user.id)
            .first()
        )
        if not item:
            raise NotFoundError("List item not found")

        self._set_quantity(item, sale_unit_id, quantity)
        self.pricing.recompute_total(item)

        logger.info(
            f"Quantity of sale unit {sale_unit_id} on list item {item.id} set to "
            f"{quantity}, total {item.total_price}"
        )
        return item

    @transactional
    def set_quantities(
        self, user: User, list_item_id: int, quantities: Sequence[SaleUnitQuantity]
    ) -> ListItem:
        item = (
            self.db.query(ListItem)
            .filter(ListItem.id == list_item_id, ListItem.user_id == user.id)
            .first()
        )
        if not item:
            raise NotFoundError("List item not found")

        for entry in quantities:
            self._set_quantity(item, entry.sale_unit_id, entry.quantity)
        self.pricing.recompute_total(item)

        logger.info(
            f"{len(quantities)} quantities updated on list item {item.id}, "
            f"total {item.total_price}"
        )
        return item

    @transactional
    def set_price(
        self, user: User, list_item_id: int, prices: Sequence[SaleUnitPrice]
    ) -> ListItem:
        item = self.get_owned(user, list_item_id)

        for entry in prices:
            self.pricing.set_active_price(item, entry.sale_unit_id, entry.price)

        return item

    @transactional
    def set_prices_by_product_number(
        self, user: User, product_number: str, prices: Sequence[UnitLabelPrice]
    ) -> List[ListItem]:
        items = self.find_by_product_number(user, product_number)
        if not items:
            raise NotFoundError("No list items found for this product number")

        for item in items:
            for entry in prices:
                sale_unit = item.product.sale_unit_by_label(entry.unit)
                if sale_unit is None:
                    raise NotFoundError(
                        f"Sale unit '{entry.unit}' not found for product {product_number}"
                    )
                self.pricing.set_active_price(item, sale_unit.id, entry.price)

        logger.info(
            f"Prices of product {product_number} updated on {len(items)} list item(s)"
        )
        return items

    def release_member(self, base: ListItem, member: ListItem):
        base.comparison_products.remove(member)
        member.state = ComparisonState.FREE.value
        member.selection = Selection.NONE.value
        member.grouped_at = None

    def reset_base(self, base: ListItem):
        base.state = ComparisonState.FREE.value
        base.selection = Selection.NONE.value
        base.recommendation = None

    def prune_comparison_links(self, item: ListItem):
        """Detaches ``item`` from any comparison group before it is deleted"""
        if item.is_base_product:
            for member in list(item.comparison_products):
                self.release_member(item, member)
            logger.info(f"Comparison group of list item {item.id} dissolved")

        elif item.is_member and item.base is not None:
            base = item.base
            self.release_member(base, item)

            if not base.comparison_products:
                self.reset_base(base)
                logger.info(f"List item {base.id} is no longer a comparison base")
            elif (base.recommendation or {}).get("list_item_id") == item.id:
                base.recommendation = None

    @transactional
    def remove(self, user: User, list_item_id: int) -> None:
        item = self.get_owned(user, list_item_id)
        shopping_list = item.shopping_list

        self.prune_comparison_links(item)
        self.db.flush()

        shopping_list.items.remove(item)
        self.db.delete(item)
        self.db.flush()
        shopping_list.items_count = len(shopping_list.items)

        logger.info(f"List item {list_item_id} removed from list {shopping_list.id}")

    def refresh_count(self, shopping_list: ShoppingList):
        shopping_list.items_count = len(shopping_list.items)
