"""
Pytest configuration and shared fixtures.
"""

import re
from datetime import timedelta
from typing import Any, Dict, List, Mapping, Optional

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from catalog.database import COLLECTIONS, CURRENCIES, LABELS, USERS, to_object_id, utcnow
from catalog.errors import ConflictError
from catalog.models import Role
from catalog_api.main import create_app
from catalog_api.services import build_services
from utilities.config import AppConfig

UNIQUE_KEYS = {
    USERS: ("email", "username"),
    CURRENCIES: ("name",),
}


def _matches(document: Mapping[str, Any], filter_query: Mapping[str, Any]) -> bool:
    for key, expected in filter_query.items():
        if key == "$or":
            if not any(_matches(document, clause) for clause in expected):
                return False
            continue

        actual = document.get(key)
        if isinstance(expected, dict) and "$regex" in expected:
            flags = re.IGNORECASE if "i" in expected.get("$options", "") else 0
            if not isinstance(actual, str) or not re.search(expected["$regex"], actual, flags):
                return False
        elif isinstance(expected, ObjectId):
            if actual != str(expected):
                return False
        elif actual != expected:
            return False
    return True


class InMemoryRepository:
    """
    Repository double keeping documents in a dict.
    Mirrors the MongoDB adapter: string ids, timestamps, unique keys and dotted $set paths.
    """

    def __init__(self, name: str):
        self.name = name
        self.label = LABELS.get(name, name)
        self.documents: Dict[str, Dict[str, Any]] = {}
        self._sequence = 0

    @staticmethod
    def _normalize(document: Mapping[str, Any]) -> Dict[str, Any]:
        return {
            key: str(value) if isinstance(value, ObjectId) else value
            for key, value in document.items()
        }

    def _timestamp(self):
        # Strictly increasing so createdAt ordering is deterministic
        self._sequence += 1
        return utcnow() + timedelta(microseconds=self._sequence)

    def _check_unique(self, document: Mapping[str, Any], exclude_id: Optional[str] = None) -> None:
        for key in UNIQUE_KEYS.get(self.name, ()):
            if key not in document:
                continue
            for existing_id, existing in self.documents.items():
                if existing_id != exclude_id and existing.get(key) == document[key]:
                    raise ConflictError(f"{self.label} already exists")

    def seed(self, document: Mapping[str, Any]) -> Dict[str, Any]:
        """Synchronous insert for fixtures."""
        self._check_unique(document)
        now = self._timestamp()
        record = self._normalize(document)
        record.setdefault("_id", str(ObjectId()))
        record.setdefault("createdAt", now)
        record.setdefault("updatedAt", now)
        self.documents[record["_id"]] = record
        return dict(record)

    async def find(self, filter_query=None, skip=0, limit=0, sort=None) -> List[Dict[str, Any]]:
        results = [dict(doc) for doc in self.documents.values() if _matches(doc, filter_query or {})]
        for field, direction in reversed(list(sort or [])):
            results.sort(key=lambda doc: doc.get(field), reverse=direction < 0)
        results = results[skip:]
        if limit:
            results = results[:limit]
        return results

    async def find_one(self, filter_query):
        for doc in self.documents.values():
            if _matches(doc, filter_query):
                return dict(doc)
        return None

    async def find_by_id(self, entity_id):
        if to_object_id(entity_id) is None:
            return None
        doc = self.documents.get(str(entity_id))
        return dict(doc) if doc is not None else None

    async def count(self, filter_query=None) -> int:
        return len(await self.find(filter_query))

    async def create(self, document):
        return self.seed({key: value for key, value in document.items() if key != "_id"})

    async def update_by_id(self, entity_id, changes):
        if to_object_id(entity_id) is None or str(entity_id) not in self.documents:
            return None
        self._check_unique(changes, exclude_id=str(entity_id))

        record = self.documents[str(entity_id)]
        for key, value in self._normalize(changes).items():
            if "." in key:
                parent, child = key.split(".", 1)
                nested = dict(record.get(parent) or {})
                nested[child] = value
                record[parent] = nested
            else:
                record[key] = value
        record["updatedAt"] = self._timestamp()
        return dict(record)

    async def delete_by_id(self, entity_id):
        if to_object_id(entity_id) is None:
            return None
        doc = self.documents.pop(str(entity_id), None)
        return dict(doc) if doc is not None else None


@pytest.fixture
def app_config(tmp_path):
    """Create application configuration for testing."""
    return AppConfig(
        mongodb_url="mongodb://localhost:27017",
        mongodb_database="storefront_test",
        jwt_secret="test-secret",
        bcrypt_rounds=4,
        upload_size=1,
        upload_root=str(tmp_path / "uploads"),
        environment="test",
        log_format="console",
    )


@pytest.fixture
def repositories():
    """One in-memory repository per collection."""
    return {name: InMemoryRepository(name) for name in COLLECTIONS}


@pytest.fixture
def services(app_config, repositories):
    return build_services(app_config, repositories)


@pytest.fixture
def app(app_config, services):
    return create_app(app_config, services=services)


@pytest.fixture
def client(app):
    """Create test client."""
    return TestClient(app)


def _seed_user(services, username: str, role: Role, password: str = "Secret123!") -> Dict[str, Any]:
    return services.users.seed({
        "firstName": username.capitalize(),
        "lastName": "Tester",
        "username": username,
        "countryCode": "+1",
        "phone": "5550100",
        "email": f"{username}@example.com",
        "password": services.passwords.hash_secret(password),
        "role": role.value,
        "isVerified": 0,
        "active": True,
    })


@pytest.fixture
def standard_user(services):
    return _seed_user(services, "reader", Role.STANDARD)


@pytest.fixture
def admin_user(services):
    return _seed_user(services, "admin", Role.ADMINISTRATOR)


@pytest.fixture
def user_headers(services, standard_user):
    token = services.tokens.issue_token(standard_user["_id"], Role.STANDARD)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(services, admin_user):
    token = services.tokens.issue_token(admin_user["_id"], Role.ADMINISTRATOR)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def category(services):
    """A stored category document."""
    return services.categories.seed({"name": "Fiction", "description": "Made-up stories"})


@pytest.fixture
def registration_form():
    return {
        "firstName": "Ada",
        "lastName": "Lovelace",
        "username": "ada",
        "countryCode": "+44",
        "phone": "2079460000",
        "email": "Ada@Example.com",
        "password": "Analytical1!",
    }
