from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from app.middleware.transaction_handler import transactional
from app.models.price import Price
from app.models.product import ProductSaleUnit
from app.models.shopping_list import ListItem, ListItemSaleUnit
from app.utils.exceptions import SaleUnitNotInLineItemError, ValidationError
from app.utils.money import line_total, round_money

logger = logging.getLogger(__name__)


class PricingService:
    """Append-only price ledger with one active row per (list item, sale unit)"""

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def quantity_row(list_item: ListItem, sale_unit_id: int) -> ListItemSaleUnit:
        for row in list_item.sale_unit_quantities:
            if row.sale_unit_id == sale_unit_id:
                return row
        raise SaleUnitNotInLineItemError(sale_unit_id, list_item.id)

    def _deactivate(self, sale_unit_id: int, list_item_id: Optional[int]) -> int:
        query = self.db.query(Price).filter(
            Price.sale_unit_id == sale_unit_id,
            Price.active.is_(True),
        )
        if list_item_id is None:
            query = query.filter(Price.list_item_id.is_(None))
        else:
            query = query.filter(Price.list_item_id == list_item_id)

        return query.update({Price.active: False}, synchronize_session="fetch")

    @transactional
    def set_active_price(self, list_item: ListItem, sale_unit_id: int, amount: float) -> Price:
        """
        Rotates the active price of one sale unit of a line item.

        The previous active row is switched off before the new one is
        inserted, the quantity row is repointed and ``total_price`` is
        recomputed, all in the caller's transaction.
        """
        row = self.quantity_row(list_item, sale_unit_id)

        if amount is None or amount <= 0:
            raise ValidationError("Price must be greater than 0")

        deactivated = self._deactivate(sale_unit_id, list_item.id)

        price = Price(
            sale_unit_id=sale_unit_id,
            list_item_id=list_item.id,
            amount=round_money(amount),
            active=True,
        )
        self.db.add(price)
        self.db.flush()

        row.price = price
        self.recompute_total(list_item)

        logger.info(
            f"Price of sale unit {sale_unit_id} on list item {list_item.id} set to "
            f"{price.amount} ({deactivated} previous price(s) deactivated)"
        )
        return price

    @transactional
    def rotate_catalog_price(self, sale_unit: ProductSaleUnit, amount: float) -> Price:
        if amount is None or amount <= 0:
            raise ValidationError("Price must be greater than 0")

        self._deactivate(sale_unit.id, None)

        price = Price(
            sale_unit_id=sale_unit.id,
            list_item_id=None,
            amount=round_money(amount),
            active=True,
        )
        self.db.add(price)
        self.db.flush()
        self.db.expire(sale_unit, ["current_price"])

        logger.info(f"Catalog price of sale unit {sale_unit.id} set to {price.amount}")
        return price

    def recompute_total(self, list_item: ListItem) -> float:
        list_item.total_price = line_total(
            (row.quantity, row.unit_price) for row in list_item.sale_unit_quantities
        )
        return list_item.total_price

    def price_history(self, list_item_id: Optional[int], sale_unit_id: int) -> List[Price]:
        """Every price ever recorded for the pair, newest first"""
        query = self.db.query(Price).filter(Price.sale_unit_id == sale_unit_id)
        if list_item_id is None:
            query = query.filter(Price.list_item_id.is_(None))
        else:
            query = query.filter(Price.list_item_id == list_item_id)

        return query.order_by(Price.created_at.desc(), Price.id.desc()).all()

    def active_price(self, list_item_id: Optional[int], sale_unit_id: int) -> Optional[Price]:
        history = [p for p in self.price_history(list_item_id, sale_unit_id) if p.active]
        return history[0] if history else None
