"""User profile tests"""


def test_get_current_user(client, auth_headers, test_user):
    response = client.get("/api/v1/users/me", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["email"] == test_user.email
    assert data["name"] == test_user.name


def test_get_current_user_unauthorized(client):
    """Missing credentials are a 401 with a message body"""
    response = client.get("/api/v1/users/me")
    assert response.status_code == 401
    assert response.json()["message"] == "Authentication required"


def test_update_user_profile(client, auth_headers):
    response = client.put(
        "/api/v1/users/me",
        headers=auth_headers,
        json={"name": "  Updated Name "},
    )
    assert response.status_code == 200
    assert response.json()["name"] == "Updated Name"


def test_update_user_blank_name(client, auth_headers):
    response = client.put(
        "/api/v1/users/me", headers=auth_headers, json={"name": "   "}
    )
    assert response.status_code == 400


def test_delete_account(client, auth_headers, db, test_user):
    """Deleting the account takes the user's lists with it"""
    client.post("/api/v1/lists", headers=auth_headers, json={"name": "Gone"})

    response = client.delete("/api/v1/users/me", headers=auth_headers)
    assert response.status_code == 204

    from app.models.shopping_list import ShoppingList
    from app.models.user import User

    assert db.query(User).count() == 0
    assert db.query(ShoppingList).count() == 0

    response = client.get("/api/v1/users/me", headers=auth_headers)
    assert response.status_code == 401
