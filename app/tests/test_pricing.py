"""Price ledger and line total tests"""

import pytest

from app.models.price import Price
from app.services.pricing_service import PricingService
from app.services.list_item_service import ListItemService
from app.utils.exceptions import SaleUnitNotInLineItemError, ValidationError
from app.utils.money import (
    difference,
    line_total,
    parse_amount,
    round_money,
    subtract_with_fixed,
    sum_with_fixed,
)


def _rows(item):
    return {row.unit: row for row in item.sale_unit_quantities}


def test_money_helpers():
    assert sum_with_fixed(0.1, 0.2) == 0.3
    assert subtract_with_fixed(5, 7.5) == 0.0
    assert subtract_with_fixed(10, 2.345) == 7.66
    assert difference(5, 7.5) == -2.5
    assert round_money(None) == 0.0
    assert line_total([(2, 10.0), (3, 2.5), (4, None)]) == 27.5
    assert parse_amount("$2.50") == 2.5
    assert parse_amount("n/a") is None


def test_new_line_item_starts_at_zero(db, add_item):
    """A fresh line item has every sale unit at quantity 0 and a priced row"""
    item = add_item()

    rows = _rows(item)
    assert set(rows) == {"CS", "EA"}
    assert all(row.quantity == 0 for row in rows.values())
    assert rows["CS"].unit_price == 10.0
    assert rows["EA"].unit_price == 2.5
    assert item.total_price == 0.0


def test_total_follows_quantities(db, test_user, add_item):
    item = add_item()
    rows = _rows(item)
    service = ListItemService(db)

    service.set_quantity(test_user, item.id, rows["CS"].sale_unit_id, 2)
    item = service.set_quantity(test_user, item.id, rows["EA"].sale_unit_id, 3)

    assert item.total_price == 27.5


def test_set_active_price_rotates_ledger(db, test_user, add_item):
    """Exactly one active row per (line item, sale unit); history is kept"""
    item = add_item()
    cs = _rows(item)["CS"]
    ListItemService(db).set_quantity(test_user, item.id, cs.sale_unit_id, 2)

    pricing = PricingService(db)
    new_price = pricing.set_active_price(item, cs.sale_unit_id, 12.0)

    active = (
        db.query(Price)
        .filter(
            Price.list_item_id == item.id,
            Price.sale_unit_id == cs.sale_unit_id,
            Price.active.is_(True),
        )
        .all()
    )
    assert [p.id for p in active] == [new_price.id]

    history = pricing.price_history(item.id, cs.sale_unit_id)
    assert [p.amount for p in history] == [12.0, 10.0]
    assert history[1].active is False

    assert _rows(item)["CS"].price_id == new_price.id
    assert item.total_price == 24.0


def test_set_active_price_rejects_non_positive(db, add_item):
    item = add_item()
    cs = _rows(item)["CS"]

    with pytest.raises(ValidationError):
        PricingService(db).set_active_price(item, cs.sale_unit_id, 0)

    active = PricingService(db).active_price(item.id, cs.sale_unit_id)
    assert active.amount == 10.0


def test_unknown_sale_unit(db, test_user, add_item):
    """A sale unit that is not on the line item is a 404-style error"""
    item = add_item()
    other = add_item(product_number="2002")
    foreign_unit = other.sale_unit_quantities[0].sale_unit_id

    with pytest.raises(SaleUnitNotInLineItemError):
        ListItemService(db).set_quantity(test_user, item.id, foreign_unit, 1)


def test_negative_quantity_rejected(db, test_user, add_item):
    item = add_item()
    sale_unit_id = item.sale_unit_quantities[0].sale_unit_id

    with pytest.raises(ValidationError):
        ListItemService(db).set_quantity(test_user, item.id, sale_unit_id, -1)


def test_known_product_rotates_catalog_price(db, test_user, add_item, product_factory):
    """Adding a known product number with a new price updates the catalog price"""
    from app.services.list_service import ListService

    item = add_item()
    cs_unit = item.product.sale_unit_by_label("CS")
    assert cs_unit.current_price.amount == 10.0

    other_list = ListService(db).create_list(test_user, "Second")
    add_item(
        product_data=product_factory(
            prices=[{"unit": "CS", "price": 11.0}, {"unit": "BAG", "price": 1.0}]
        ),
        shopping_list=other_list,
    )

    db.expire_all()
    cs_unit = item.product.sale_unit_by_label("CS")
    assert cs_unit.current_price.amount == 11.0
    # unknown units on a known product are ignored
    assert item.product.sale_unit_by_label("BAG") is None

    history = PricingService(db).price_history(None, cs_unit.id)
    assert [p.amount for p in history] == [11.0, 10.0]
