"""
Service wiring for the API.

Services are constructed once at startup from explicit configuration, in the
order config → storage connection → services, and stored on ``app.state``.
Route handlers reach them through the ``get_services`` dependency.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from fastapi import Request

from catalog.database import AUTHORS, CATEGORIES, COLLECTIONS, CURRENCIES, SUBCATEGORIES, USERS, MongoDBManager
from catalog.errors import InternalError
from catalog.repository import Repository
from catalog.storage import UploadSink
from utilities.config import AppConfig

from .security import PasswordHasher, TokenService
from .upsert import EntityUpsertFlow


@dataclass
class ServiceContainer:
    """Everything a request handler needs, built once per process."""
    config: AppConfig
    passwords: PasswordHasher
    tokens: TokenService
    uploads: UploadSink
    upserts: EntityUpsertFlow
    users: Repository
    categories: Repository
    subcategories: Repository
    authors: Repository
    currencies: Repository
    health_check: Optional[Callable[[], Awaitable[Dict[str, Any]]]] = None


def build_services(
    app_config: AppConfig,
    repositories: Dict[str, Repository],
    health_check: Optional[Callable[[], Awaitable[Dict[str, Any]]]] = None
) -> ServiceContainer:
    """
    Construct the service container.

    Args:
        app_config: Loaded process configuration
        repositories: One repository per collection name
        health_check: Optional coroutine reporting database health

    Returns:
        ServiceContainer ready to attach to the application
    """
    uploads = UploadSink(app_config.get_upload_root_path())
    return ServiceContainer(
        config=app_config,
        passwords=PasswordHasher(rounds=app_config.bcrypt_rounds),
        tokens=TokenService(
            secret_key=app_config.jwt_secret,
            expire_minutes=app_config.access_token_expire_minutes,
            algorithm=app_config.jwt_algorithm,
        ),
        uploads=uploads,
        upserts=EntityUpsertFlow(uploads, max_bytes=app_config.get_max_upload_bytes()),
        users=repositories[USERS],
        categories=repositories[CATEGORIES],
        subcategories=repositories[SUBCATEGORIES],
        authors=repositories[AUTHORS],
        currencies=repositories[CURRENCIES],
        health_check=health_check,
    )


def build_mongo_services(app_config: AppConfig, db_manager: MongoDBManager) -> ServiceContainer:
    """Construct services backed by a connected MongoDB manager."""
    repositories = {
        name: db_manager.repository(name)
        for name in COLLECTIONS
    }
    return build_services(app_config, repositories, health_check=db_manager.health_check)


def get_services(request: Request) -> ServiceContainer:
    """FastAPI dependency returning the process-wide services."""
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise InternalError("Database service not available")
    return services
