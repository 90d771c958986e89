"""Category analysis tests"""

import asyncio

from app.models.shopping_list import ListItem
from app.services.analysis_service import AnalysisService


def _stock_list(classifier, priced_item):
    classifier.category = "Condiments"
    expensive = priced_item("1001", 10.0, vendor="Sysco")
    cheap = priced_item("2001", 8.0, vendor="US Foods")
    classifier.category = "Dairy and Cheese"
    milk = priced_item("3001", 3.0, description="Whole Milk")
    return expensive, cheap, milk


def test_category_view(db, test_user, test_list, priced_item, classifier):
    expensive, cheap, milk = _stock_list(classifier, priced_item)

    result = asyncio.run(
        AnalysisService(db).get_category_analysis(test_user, test_list.id, classifier)
    )

    assert result["list_id"] == test_list.id
    categories = {c["category"]: c["items"] for c in result["categories"]}
    assert list(categories) == ["Condiments", "Dairy and Cheese"]

    condiments = {entry["list_item"].id: entry for entry in categories["Condiments"]}
    assert condiments[cheap.id]["recommended"] is True
    assert condiments[cheap.id]["recommended_reason"].startswith("Lowest total price")
    assert condiments[expensive.id]["recommended"] is False

    # single-item categories are not sent to the classifier
    assert categories["Dairy and Cheese"][0]["recommended"] is False
    grouped = [c[1] for c in classifier.calls if c[0] == "group_similar"]
    assert grouped == [[cheap.id, expensive.id]]


def test_category_view_is_read_only(db, test_user, test_list, priced_item, classifier):
    _stock_list(classifier, priced_item)
    versions = {item.id: item.version for item in db.query(ListItem).all()}

    asyncio.run(
        AnalysisService(db).get_category_analysis(test_user, test_list.id, classifier)
    )

    db.expire_all()
    assert {item.id: item.version for item in db.query(ListItem).all()} == versions
    assert all(item.recommendation is None for item in db.query(ListItem).all())


def test_uncategorized_items(db, test_user, test_list, priced_item, classifier):
    classifier.fail_categorize = True
    priced_item("1001", 10.0)

    result = asyncio.run(
        AnalysisService(db).get_category_analysis(test_user, test_list.id, classifier)
    )

    assert [c["category"] for c in result["categories"]] == ["Uncategorized"]


def test_failed_recommendation_is_not_fatal(db, test_user, test_list, priced_item, classifier):
    expensive, cheap, _ = _stock_list(classifier, priced_item)
    classifier.fail_for = {cheap.id}

    result = asyncio.run(
        AnalysisService(db).get_category_analysis(test_user, test_list.id, classifier)
    )

    entries = [e for c in result["categories"] for e in c["items"]]
    assert len(entries) == 3
    assert not any(e["recommended"] for e in entries)


def test_category_view_api(client, auth_headers, test_list, priced_item, classifier):
    _, cheap, _ = _stock_list(classifier, priced_item)

    response = client.get(
        f"/api/v1/lists/{test_list.id}/analysis?view=category", headers=auth_headers
    )
    assert response.status_code == 200
    data = response.json()
    assert data["list_id"] == test_list.id
    recommended = [
        entry["list_item"]["id"]
        for category in data["categories"]
        for entry in category["items"]
        if entry["recommended"]
    ]
    assert recommended == [cheap.id]


def test_analysis_unknown_view(client, auth_headers, test_list):
    response = client.get(
        f"/api/v1/lists/{test_list.id}/analysis?view=nutrition", headers=auth_headers
    )
    assert response.status_code == 400


def test_analysis_of_missing_list(client, auth_headers):
    response = client.get("/api/v1/lists/999/analysis", headers=auth_headers)
    assert response.status_code == 404
