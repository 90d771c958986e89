"""Product catalog tests"""

import asyncio

import pytest

from app.core.config import settings
from app.services.catalog_service import CatalogService
from app.utils.exceptions import NotFoundError


def test_create_or_get_product(db, product_factory):
    service = CatalogService(db)

    product, created = service.create_or_get_product(product_factory(), "Condiments")
    assert created is True
    assert product.vendor.name == "Sysco"
    assert [su.unit for su in product.sale_units] == ["CS", "EA"]
    assert product.sale_units[0].current_price.amount == 10.0

    again, created = service.create_or_get_product(product_factory())
    assert created is False
    assert again.id == product.id


def test_existing_product_gets_missing_category(db, product_factory):
    service = CatalogService(db)
    product, _ = service.create_or_get_product(product_factory(), None)

    product, _ = service.create_or_get_product(product_factory(), "Condiments")
    assert product.category == "Condiments"


def test_get_product_not_found(db):
    with pytest.raises(NotFoundError):
        CatalogService(db).get_product(404)


def test_categorize_timeout(db, product_factory, classifier, monkeypatch):
    """A slow classifier leaves the product uncategorized"""

    async def slow(brand, description):
        await asyncio.sleep(0.5)
        return "Condiments"

    monkeypatch.setattr(settings, "CLASSIFIER_TIMEOUT_SECONDS", 0.01)
    monkeypatch.setattr(classifier, "categorize", slow)

    assert asyncio.run(CatalogService(db).categorize(classifier, product_factory())) is None


def test_product_api(client, auth_headers, product_factory):
    payload = product_factory().model_dump()

    response = client.post("/api/v1/products", headers=auth_headers, json=payload)
    assert response.status_code == 201
    data = response.json()
    assert data["message"] == "Product created successfully"
    product_id = data["product"]["id"]
    assert data["product"]["category"] == "Condiments"

    payload["prices"] = [{"unit": "cs", "price": 12.0}]
    response = client.post("/api/v1/products", headers=auth_headers, json=payload)
    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Product already exists"
    cs = next(su for su in data["product"]["sale_units"] if su["unit"] == "CS")
    assert cs["current_price"]["amount"] == 12.0

    response = client.get(f"/api/v1/products/{product_id}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["product"]["product_number"] == "1001"


def test_product_search_api(client, auth_headers, db, product_factory):
    service = CatalogService(db)
    service.create_or_get_product(product_factory(), "Condiments")
    service.create_or_get_product(
        product_factory(
            product_number="2001",
            vendor="US Foods",
            brand="Land O Lakes",
            description="Butter Salted",
        ),
        "Dairy and Cheese",
    )

    response = client.get("/api/v1/products?search=butter", headers=auth_headers)
    assert [p["product_number"] for p in response.json()["results"]] == ["2001"]

    response = client.get("/api/v1/products?category=Condiments", headers=auth_headers)
    assert [p["product_number"] for p in response.json()["results"]] == ["1001"]

    response = client.get("/api/v1/products?vendor=US Foods", headers=auth_headers)
    assert [p["product_number"] for p in response.json()["results"]] == ["2001"]

    response = client.get(
        "/api/v1/products?sort_by=brand:asc", headers=auth_headers
    )
    assert [p["brand"] for p in response.json()["results"]] == ["Heinz", "Land O Lakes"]


def test_product_api_requires_auth(client):
    response = client.get("/api/v1/products")
    assert response.status_code == 401


def test_product_invalid_number(client, auth_headers, product_factory):
    payload = product_factory().model_dump()
    payload["product_number"] = "12 34;"

    response = client.post("/api/v1/products", headers=auth_headers, json=payload)
    assert response.status_code == 400


def test_sale_unit_lookup_normalizes_label(db, product_factory):
    product, _ = CatalogService(db).create_or_get_product(product_factory())

    assert product.sale_unit_by_label(" cs ").unit == "CS"
    assert product.sale_unit_by_label("ea").unit == "EA"
    assert product.sale_unit_by_label(None) is None
