"""
Tests for the category endpoints and the shared error envelope.
"""

from unittest.mock import AsyncMock

from fastapi.testclient import TestClient

from catalog_api.main import create_app


CATEGORIES = "/api/v1/category"


def test_list_categories_is_public(client, category):
    response = client.get(f"{CATEGORIES}/")
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Categories retrieved successfully"
    assert [item["name"] for item in body["data"]] == ["Fiction"]


def test_create_category_requires_token(client):
    """Test that a missing token is rejected before anything else is checked."""
    response = client.post(f"{CATEGORIES}/", data={"name": "Poetry"})
    assert response.status_code == 401
    assert response.json() == {"statusCode": 401, "error": "AuthenticationError", "message": "Unauthorized"}


def test_create_category_rejects_invalid_token(client):
    response = client.post(f"{CATEGORIES}/", data={"name": "Poetry"}, headers={"Authorization": "Bearer nonsense"})
    assert response.status_code == 401


def test_create_category_forbidden_for_standard_user(client, services, user_headers):
    response = client.post(f"{CATEGORIES}/", data={"name": "Poetry"}, headers=user_headers)
    assert response.status_code == 403
    assert response.json()["error"] == "AuthorizationError"
    assert services.categories.documents == {}


def test_missing_token_wins_over_missing_fields(client):
    """Test 401 is returned even when the body is also invalid."""
    response = client.post(f"{CATEGORIES}/", data={})
    assert response.status_code == 401


def test_category_lifecycle(client, admin_headers):
    """Test create, fetch, delete, then 404 on the deleted id."""
    created = client.post(
        f"{CATEGORIES}/",
        data={"name": "Poetry", "description": "Verse"},
        headers=admin_headers,
    )
    assert created.status_code == 201
    assert created.json()["message"] == "Category created successfully"
    category_id = created.json()["data"]["_id"]

    fetched = client.get(f"{CATEGORIES}/{category_id}")
    assert fetched.status_code == 200
    assert fetched.json()["message"] == "Category retrieved successfully"
    assert fetched.json()["data"]["name"] == "Poetry"
    assert fetched.json()["data"]["image"] is None

    deleted = client.delete(f"{CATEGORIES}/{category_id}", headers=admin_headers)
    assert deleted.status_code == 200
    assert deleted.json() == {"data": category_id, "message": "Category deleted successfully"}

    missing = client.get(f"{CATEGORIES}/{category_id}")
    assert missing.status_code == 404
    assert missing.json() == {"statusCode": 404, "error": "NotFoundError", "message": "Category not found"}


def test_create_category_missing_name(client, admin_headers):
    response = client.post(f"{CATEGORIES}/", data={"description": "no name"}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["missing"] == ["name"]
    assert response.json()["message"] == "Missing required field(s): name"


def test_create_category_with_image_is_served(client, app_config, admin_headers):
    """Test the stored image path is relative and reachable below /uploads."""
    response = client.post(
        f"{CATEGORIES}/",
        data={"name": "Art"},
        files={"image": ("../../cover.png", b"image-bytes", "image/png")},
        headers=admin_headers,
    )
    assert response.status_code == 201
    image = response.json()["data"]["image"]
    assert image.startswith("image/categories/")
    assert image.endswith("-cover.png")
    assert ".." not in image

    assert (app_config.get_upload_root_path() / image).exists()
    served = client.get(f"/uploads/{image}")
    assert served.status_code == 200
    assert served.content == b"image-bytes"


def test_create_category_upload_too_large(client, services, admin_headers):
    services.upserts.max_bytes = 16
    response = client.post(
        f"{CATEGORIES}/",
        data={"name": "Big"},
        files={"image": ("big.png", b"x" * 1024, "image/png")},
        headers=admin_headers,
    )
    assert response.status_code == 413
    assert response.json()["error"] == "UploadTooLargeError"
    assert services.categories.documents == {}


def test_update_category_keeps_image_without_file(client, category, admin_headers):
    client.put(
        f"{CATEGORIES}/{category['_id']}",
        files={"image": ("first.png", b"one", "image/png")},
        headers=admin_headers,
    )
    response = client.put(
        f"{CATEGORIES}/{category['_id']}",
        data={"description": "Updated"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Category updated successfully"
    assert body["data"]["description"] == "Updated"
    assert body["data"]["name"] == "Fiction"
    assert body["data"]["image"].endswith("-first.png")


def test_update_category_replaces_image(client, category, admin_headers):
    first = client.put(
        f"{CATEGORIES}/{category['_id']}",
        files={"image": ("first.png", b"one", "image/png")},
        headers=admin_headers,
    ).json()["data"]["image"]
    second = client.put(
        f"{CATEGORIES}/{category['_id']}",
        files={"image": ("second.png", b"two", "image/png")},
        headers=admin_headers,
    ).json()["data"]["image"]

    assert first != second
    assert second.endswith("-second.png")


def test_update_unknown_category(client, admin_headers):
    response = client.put(f"{CATEGORIES}/5f8d0d55b54764421b7156c9", data={"name": "X"}, headers=admin_headers)
    assert response.status_code == 404
    assert response.json()["message"] == "Category not found"


def test_delete_unknown_category(client, admin_headers):
    response = client.delete(f"{CATEGORIES}/5f8d0d55b54764421b7156c9", headers=admin_headers)
    assert response.status_code == 404


def test_unexpected_error_returns_500(app, services):
    """Test unexpected failures map to the error envelope with detail outside production."""
    services.categories.find = AsyncMock(side_effect=RuntimeError("database unavailable"))
    response = TestClient(app, raise_server_exceptions=False).get(f"{CATEGORIES}/")

    assert response.status_code == 500
    assert response.json() == {"statusCode": 500, "error": "InternalError", "message": "database unavailable"}


def test_unexpected_error_hidden_in_production(app_config, services):
    production = app_config.model_copy(update={"environment": "production"})
    app = create_app(production, services=services)
    services.categories.find = AsyncMock(side_effect=RuntimeError("connection string leaked"))

    response = TestClient(app, raise_server_exceptions=False).get(f"{CATEGORIES}/")
    assert response.status_code == 500
    assert response.json()["message"] == "Internal Server Error"


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/api/v1/nothing-here")
    assert response.status_code == 404
    assert response.json()["statusCode"] == 404


def test_category_with_image_round_trip(client, admin_headers):
    """Test the stored image path survives reads unchanged and reads are repeatable."""
    created = client.post(
        f"{CATEGORIES}/",
        data={"name": "Test Category"},
        files={"image": ("test.png", b"\x89PNG", "image/png")},
        headers=admin_headers,
    )
    assert created.status_code == 201
    data = created.json()["data"]
    assert data["name"] == "Test Category"
    assert data["image"]

    first = client.get(f"{CATEGORIES}/{data['_id']}").json()
    second = client.get(f"{CATEGORIES}/{data['_id']}").json()
    assert first == second
    assert first["data"]["name"] == "Test Category"
    assert first["data"]["image"] == data["image"]

    assert client.delete(f"{CATEGORIES}/{data['_id']}", headers=admin_headers).status_code == 200
    assert client.get(f"{CATEGORIES}/{data['_id']}").status_code == 404
