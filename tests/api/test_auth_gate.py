"""
Tests for the bearer token gate and the health endpoint.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import jwt
import pytest

from catalog.errors import AuthenticationError, AuthorizationError
from catalog.models import Role
from catalog_api.auth import authorize_admin
from catalog_api.security import TokenClaims


def test_expired_token_is_unauthorized(client, app_config, admin_user):
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {"sub": admin_user["_id"], "role": "administrator", "iat": now - timedelta(hours=2), "exp": now - timedelta(hours=1)},
        app_config.jwt_secret,
        algorithm="HS256",
    )
    response = client.post("/api/v1/category/", data={"name": "X"}, headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_token_signed_with_other_key_is_unauthorized(client, admin_user):
    token = jwt.encode(
        {"sub": admin_user["_id"], "role": "administrator", "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
        "some-other-secret",
        algorithm="HS256",
    )
    response = client.delete(f"/api/v1/users/{admin_user['_id']}", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_non_bearer_scheme_is_unauthorized(client):
    response = client.get("/api/v1/users/me", headers={"Authorization": "Basic dXNlcjpwYXNz"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_authorize_admin_accepts_administrator():
    claims = TokenClaims(subject_id="abc", role=Role.ADMINISTRATOR)
    assert await authorize_admin(claims) is claims


@pytest.mark.asyncio
async def test_authorize_admin_rejects_standard_user():
    with pytest.raises(AuthorizationError):
        await authorize_admin(TokenClaims(subject_id="abc", role=Role.STANDARD))


def test_gate_errors_carry_status():
    assert AuthenticationError().status_code == 401
    assert AuthorizationError().status_code == 403


def test_health_without_database_check(client):
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "degraded"
    assert data["database_status"] == "unknown"
    assert "timestamp" in data
    assert "version" in data


def test_health_reports_collection_counts(client, services):
    services.health_check = AsyncMock(return_value={"status": "healthy", "counts": {"users": 2}})
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["collections"] == {"users": 2}
