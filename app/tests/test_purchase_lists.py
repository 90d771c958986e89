"""Purchase list consolidation tests"""

import pytest

from app.models.purchase_list import PurchaseList, PurchaseListItem
from app.models.shopping_list import ListItem
from app.services.comparison_service import ComparisonService
from app.services.list_item_service import ListItemService
from app.services.list_service import ListService
from app.services.purchase_list_service import PurchaseListService
from app.utils.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError


@pytest.fixture
def resolved_pair(db, test_user, priced_item):
    """Base at $10.00 compared with a $8.00 alternative that is selected"""
    base = priced_item("1001", 10.0, vendor="Sysco")
    other = priced_item("2001", 8.0, vendor="US Foods")
    service = ComparisonService(db)
    service.add_comparison_product(test_user, base.id, other.id)
    service.toggle_is_selected(test_user, other.id, base.id)
    return base, other


def _buckets(purchase_list):
    return {b.vendor_name: b.total_amount for b in purchase_list.additional_cost}


# Consolidation


def test_upsert_anchored_item(db, test_user, test_list, priced_item):
    item = priced_item("1001", 12.5)
    ComparisonService(db).toggle_anchor(test_user, item.id)

    purchase_list = PurchaseListService(db).upsert(test_user, test_list.id)

    assert purchase_list.items_count == 1
    snapshot = purchase_list.items[0]
    assert snapshot.is_anchored is True
    assert snapshot.list_item_id == item.id
    assert snapshot.unselected_list_item_id is None
    assert purchase_list.total_amount == 12.5
    assert purchase_list.unselected_total_amount == 0.0


def test_upsert_resolved_group(db, test_user, test_list, resolved_pair):
    base, other = resolved_pair

    purchase_list = PurchaseListService(db).upsert(test_user, test_list.id)

    assert purchase_list.items_count == 1
    snapshot = purchase_list.items[0]
    assert snapshot.list_item_id == other.id
    assert snapshot.unselected_list_item_id == base.id
    assert snapshot.selected_total_price == 8.0
    assert snapshot.unselected_total_price == 10.0
    assert purchase_list.total_amount == 8.0
    assert purchase_list.unselected_total_amount == 10.0
    assert purchase_list.price_saving == 2.0
    assert _buckets(purchase_list) == {"US Foods": 8.0, "Sysco": 10.0}


def test_upsert_base_as_winner(db, test_user, test_list, priced_item):
    """The base itself can win; the first member is then the alternative"""
    base = priced_item("1001", 7.0)
    other = priced_item("2001", 8.0)
    third = priced_item("3001", 9.0)
    service = ComparisonService(db)
    service.add_comparison_product(test_user, base.id, other.id)
    service.add_comparison_product(test_user, base.id, third.id)
    service.toggle_is_selected(test_user, base.id, base.id)

    purchase_list = PurchaseListService(db).upsert(test_user, test_list.id)

    snapshot = purchase_list.items[0]
    assert snapshot.list_item_id == base.id
    assert snapshot.unselected_list_item_id == other.id
    assert purchase_list.total_amount == 7.0


def test_upsert_skips_unresolved_and_free_items(db, test_user, test_list, priced_item):
    base = priced_item("1001", 10.0)
    other = priced_item("2001", 8.0)
    priced_item("3001", 4.0)
    ComparisonService(db).add_comparison_product(test_user, base.id, other.id)

    purchase_list = PurchaseListService(db).upsert(test_user, test_list.id)

    assert purchase_list.items_count == 0
    assert purchase_list.total_amount == 0.0


def test_upsert_snapshot_is_frozen(db, test_user, test_list, resolved_pair):
    """Later price changes do not reach an existing snapshot"""
    _, other = resolved_pair
    purchase_list = PurchaseListService(db).upsert(test_user, test_list.id)
    snapshot_id = purchase_list.items[0].id
    cs = other.sale_unit_quantities[0]

    ListItemService(db).set_quantity(test_user, other.id, cs.sale_unit_id, 5)

    snapshot = db.get(PurchaseListItem, snapshot_id)
    assert snapshot.selected_total_price == 8.0
    assert snapshot.price_at_order[0]["quantity"] == 1
    assert snapshot.price_at_order[0]["price"] == 8.0
    assert snapshot.price_at_order[0]["unit"] == "CS"


def test_upsert_rebuilds_from_scratch(db, test_user, test_list, resolved_pair):
    """A second upsert replaces the purchase list and keeps its name"""
    _, other = resolved_pair
    service = PurchaseListService(db)

    first = service.upsert(test_user, test_list.id)
    service.rename(test_user, first.id, "Monday delivery")
    cs = other.sale_unit_quantities[0]
    ListItemService(db).set_quantity(test_user, other.id, cs.sale_unit_id, 2)

    second = service.upsert(test_user, test_list.id)

    assert db.query(PurchaseList).count() == 1
    assert second.name == "Monday delivery"
    assert second.items_count == 1
    assert second.total_amount == 16.0
    assert db.query(PurchaseListItem).count() == 1


def test_upsert_twice_is_stable(db, test_user, test_list, resolved_pair):
    service = PurchaseListService(db)
    first = service.upsert(test_user, test_list.id)
    first_totals = (first.total_amount, first.unselected_total_amount, _buckets(first))

    second = service.upsert(test_user, test_list.id)

    assert (second.total_amount, second.unselected_total_amount, _buckets(second)) == first_totals


def test_upsert_other_users_list(db, test_user2, test_list):
    with pytest.raises(ForbiddenError):
        PurchaseListService(db).upsert(test_user2, test_list.id)


# Manual edits


def test_create_purchase_list_conflict(db, test_user, test_list):
    service = PurchaseListService(db)
    purchase_list = service.create_purchase_list(test_user, test_list.id)
    assert purchase_list.name == "Weekly order"

    with pytest.raises(ConflictError):
        service.create_purchase_list(test_user, test_list.id)


def test_add_and_remove_item_keep_aggregates(db, test_user, test_list, resolved_pair):
    base, other = resolved_pair
    service = PurchaseListService(db)
    purchase_list = service.create_purchase_list(test_user, test_list.id)

    snapshot = service.add_item(test_user, purchase_list.id, other.id, base.id)

    db.refresh(purchase_list)
    assert snapshot.recommendation is None
    assert purchase_list.items_count == 1
    assert purchase_list.total_amount == 8.0
    assert purchase_list.unselected_total_amount == 10.0

    with pytest.raises(ConflictError):
        service.add_item(test_user, purchase_list.id, base.id)

    purchase_list = service.remove_item(test_user, snapshot.id, purchase_list.id)
    assert purchase_list.items_count == 0
    assert purchase_list.total_amount == 0.0
    assert purchase_list.unselected_total_amount == 0.0
    assert set(_buckets(purchase_list).values()) == {0.0}


def test_add_item_same_ids(db, test_user, test_list, resolved_pair):
    _, other = resolved_pair
    service = PurchaseListService(db)
    purchase_list = service.create_purchase_list(test_user, test_list.id)

    with pytest.raises(ValidationError):
        service.add_item(test_user, purchase_list.id, other.id, other.id)


def test_remove_item_from_wrong_purchase_list(db, test_user, test_list, resolved_pair):
    service = PurchaseListService(db)
    purchase_list = service.upsert(test_user, test_list.id)
    snapshot_id = purchase_list.items[0].id

    with pytest.raises(NotFoundError):
        service.remove_item(test_user, snapshot_id, purchase_list.id + 1)


def test_deleting_list_keeps_purchase_list(db, test_user, test_list, resolved_pair):
    """Purchase lists are historical records and survive their source list"""
    purchase_list = PurchaseListService(db).upsert(test_user, test_list.id)
    purchase_list_id = purchase_list.id

    ListService(db).delete_list(test_user, test_list.id)

    db.expire_all()
    purchase_list = db.get(PurchaseList, purchase_list_id)
    assert purchase_list is not None
    assert purchase_list.list_id is None
    assert purchase_list.items[0].list_item_id is None
    assert purchase_list.total_amount == 8.0


# Drift control


def test_reconcile_without_drift(db, test_user, test_list, resolved_pair):
    purchase_list = PurchaseListService(db).upsert(test_user, test_list.id)

    assert PurchaseListService(db).reconcile(purchase_list.id) == {}


def test_reconcile_corrects_drift(db, test_user, test_list, resolved_pair):
    purchase_list = PurchaseListService(db).upsert(test_user, test_list.id)
    purchase_list.total_amount = 3.0
    purchase_list.items_count = 4
    db.commit()

    drift = PurchaseListService(db).reconcile(purchase_list.id)

    assert drift["total_amount"] == -5.0
    assert drift["items_count"] == 3
    db.refresh(purchase_list)
    assert purchase_list.total_amount == 8.0
    assert purchase_list.items_count == 1
    assert purchase_list.price_saving == 2.0


def test_reconcile_all(db, test_user, test_list, resolved_pair):
    purchase_list = PurchaseListService(db).upsert(test_user, test_list.id)
    purchase_list.unselected_total_amount = 0.0
    db.commit()

    assert PurchaseListService(db).reconcile_all() == 1
    db.refresh(purchase_list)
    assert purchase_list.unselected_total_amount == 10.0


def test_reconcile_unknown(db):
    with pytest.raises(NotFoundError):
        PurchaseListService(db).reconcile(999)


# API


def test_upsert_api(client, auth_headers, test_list, resolved_pair):
    response = client.post(
        f"/api/v1/purchase-lists/from-list/{test_list.id}", headers=auth_headers
    )
    assert response.status_code == 201
    data = response.json()
    assert data["message"] == "Purchase list generated successfully"
    purchase_list = data["purchase_list"]
    assert purchase_list["total_amount"] == 8.0
    assert purchase_list["unselected_total_amount"] == 10.0
    assert purchase_list["price_saving"] == 2.0
    assert len(purchase_list["items"]) == 1
    assert {c["vendor_name"] for c in purchase_list["additional_cost"]} == {
        "Sysco",
        "US Foods",
    }

    response = client.get(
        f"/api/v1/purchase-lists/by-list/{test_list.id}", headers=auth_headers
    )
    assert response.status_code == 200
    assert response.json()["purchase_list"]["id"] == purchase_list["id"]


def test_purchase_list_api_crud(client, auth_headers, test_list, resolved_pair):
    base, other = resolved_pair

    response = client.post(
        "/api/v1/purchase-lists",
        headers=auth_headers,
        json={"list_id": test_list.id, "name": "Manual"},
    )
    assert response.status_code == 201
    purchase_list_id = response.json()["purchase_list"]["id"]

    response = client.post(
        f"/api/v1/purchase-lists/{purchase_list_id}/items",
        headers=auth_headers,
        json={"selected_list_item_id": other.id, "unselected_list_item_id": base.id},
    )
    assert response.status_code == 201
    item_id = response.json()["purchase_list_item"]["id"]

    response = client.get(
        f"/api/v1/purchase-list-items?purchase_list_id={purchase_list_id}",
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert [r["id"] for r in response.json()["results"]] == [item_id]

    response = client.get(f"/api/v1/purchase-list-items/{item_id}", headers=auth_headers)
    assert response.status_code == 200

    response = client.patch(
        f"/api/v1/purchase-lists/{purchase_list_id}/name",
        headers=auth_headers,
        json={"name": "Renamed"},
    )
    assert response.status_code == 200
    assert response.json()["purchase_list"]["name"] == "Renamed"

    response = client.delete(
        f"/api/v1/purchase-lists/{purchase_list_id}/items/{item_id}",
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()["purchase_list"]["total_amount"] == 0.0

    response = client.get("/api/v1/purchase-lists", headers=auth_headers)
    assert response.json()["total_results"] == 1

    response = client.delete(
        f"/api/v1/purchase-lists/{purchase_list_id}", headers=auth_headers
    )
    assert response.status_code == 204

    response = client.get(
        f"/api/v1/purchase-lists/{purchase_list_id}", headers=auth_headers
    )
    assert response.status_code == 404


def test_purchase_list_item_same_ids_api(client, auth_headers, test_list, resolved_pair):
    _, other = resolved_pair
    purchase_list_id = client.post(
        "/api/v1/purchase-lists", headers=auth_headers, json={"list_id": test_list.id}
    ).json()["purchase_list"]["id"]

    response = client.post(
        f"/api/v1/purchase-lists/{purchase_list_id}/items",
        headers=auth_headers,
        json={"selected_list_item_id": other.id, "unselected_list_item_id": other.id},
    )
    assert response.status_code == 400


def test_purchase_list_of_another_user_api(
    client, auth_headers, auth_headers_user2, test_list, resolved_pair
):
    purchase_list_id = client.post(
        f"/api/v1/purchase-lists/from-list/{test_list.id}", headers=auth_headers
    ).json()["purchase_list"]["id"]

    response = client.get(
        f"/api/v1/purchase-lists/{purchase_list_id}", headers=auth_headers_user2
    )
    assert response.status_code == 403
