"""
User account endpoints: registration, login, listing and lookup.
"""

import math
from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.responses import JSONResponse

from catalog.errors import AuthenticationError, ConflictError, NotFoundError
from catalog.models import LoginRequest, Role, UserOut, UserRegistration
from catalog.storage import USER_IMAGES

from ..auth import authenticate, authorize_admin
from ..models import Envelope, PaginatedEnvelope, Pagination, TokenEnvelope, dump
from ..security import TokenClaims
from ..services import ServiceContainer, get_services

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/users", tags=["User"])

REGISTRATION_FIELDS = [
    "firstName",
    "lastName",
    "username",
    "countryCode",
    "phone",
    "email",
    "password",
]


def user_json(document: Dict[str, Any]) -> Dict[str, Any]:
    return UserOut.model_validate(document).to_json()


@router.get("/", response_model=PaginatedEnvelope)
async def get_users(
    page: int = Query(1, ge=1, description="Page number (starts from 1)"),
    limit: int = Query(10, ge=1, le=100, description="Users per page"),
    claims: TokenClaims = Depends(authorize_admin),
    services: ServiceContainer = Depends(get_services)
):
    """List users, newest first (administrators only)."""
    skip = (page - 1) * limit
    users = await services.users.find(skip=skip, limit=limit, sort=[("createdAt", -1)])
    total_users = await services.users.count()

    result = PaginatedEnvelope(
        data=[user_json(user) for user in users],
        message="Users fetched successfully",
        pagination=Pagination(
            total_users=total_users,
            total_pages=math.ceil(total_users / limit),
            current_page=page,
            limit=limit,
        ),
    )
    return JSONResponse(content=dump(result))


@router.post("/login", response_model=TokenEnvelope)
async def login(body: LoginRequest, services: ServiceContainer = Depends(get_services)):
    """
    Exchange email and password for a bearer token.

    Unknown email and wrong password produce the same 401.
    """
    user = await services.users.find_one({"email": body.email.strip().lower()})
    if user is None or not services.passwords.verify_secret(body.password, user["password"]):
        logger.info("Failed login attempt")
        raise AuthenticationError("Invalid email or password")

    role = Role.parse(user.get("role"))
    token = services.tokens.issue_token(user["_id"], role)
    logger.info("User logged in", user_id=user["_id"], role=role.value)

    result = TokenEnvelope(data=user_json(user), message="Login successful", token=token)
    return JSONResponse(content=dump(result))


@router.post("/register", response_model=TokenEnvelope, status_code=status.HTTP_201_CREATED)
async def register(request: Request, services: ServiceContainer = Depends(get_services)):
    """
    Register a new account from a multipart form with an optional ``image``.

    Role fields in the form are ignored; every new account is standard.
    """

    async def prepare(document: Dict[str, Any]) -> Dict[str, Any]:
        existing = await services.users.find_one({
            "$or": [{"email": document["email"]}, {"username": document["username"]}]
        })
        if existing is not None:
            raise ConflictError("User already exists")

        document["password"] = services.passwords.hash_secret(document["password"])
        document["role"] = Role.STANDARD.value
        document["isVerified"] = 0
        document["active"] = True
        return document

    user = await services.upserts.create(
        request,
        services.users,
        input_model=UserRegistration,
        subdir=USER_IMAGES,
        required_fields=REGISTRATION_FIELDS,
        prepare=prepare,
    )

    token = services.tokens.issue_token(user["_id"], Role.STANDARD)
    logger.info("User registered", user_id=user["_id"])

    result = TokenEnvelope(data=user_json(user), message="User registered successfully", token=token)
    return JSONResponse(status_code=status.HTTP_201_CREATED, content=dump(result))


@router.get("/me", response_model=Envelope)
async def get_current_user(
    claims: TokenClaims = Depends(authenticate),
    services: ServiceContainer = Depends(get_services)
):
    """Get the account the bearer token belongs to."""
    user = await services.users.find_by_id(claims.subject_id)
    if user is None:
        raise NotFoundError("User not found")
    return JSONResponse(content=dump(Envelope(data=user_json(user), message="User fetched successfully")))


@router.get("/{user_id}", response_model=Envelope)
async def get_user(
    user_id: str,
    claims: TokenClaims = Depends(authenticate),
    services: ServiceContainer = Depends(get_services)
):
    """Get a user by id."""
    user = await services.users.find_by_id(user_id)
    if user is None:
        raise NotFoundError("User not found")
    return JSONResponse(content=dump(Envelope(data=user_json(user), message="User fetched successfully")))


@router.put("/{user_id}", status_code=status.HTTP_501_NOT_IMPLEMENTED)
async def update_user(user_id: str, claims: TokenClaims = Depends(authenticate)):
    """
    Declared but not implemented.

    The editable field set and the email/username re-uniqueness rules are
    undecided, so the route answers 501 with an empty body.
    """
    logger.info("Update user requested", user_id=user_id, subject_id=claims.subject_id)
    return Response(status_code=status.HTTP_501_NOT_IMPLEMENTED)


@router.delete("/{user_id}", response_model=Envelope)
async def delete_user(
    user_id: str,
    claims: TokenClaims = Depends(authorize_admin),
    services: ServiceContainer = Depends(get_services)
):
    """Delete a user (administrators only) and return the deleted id."""
    user = await services.users.delete_by_id(user_id)
    if user is None:
        raise NotFoundError("User not found")
    logger.info("User deleted", user_id=user["_id"], deleted_by=claims.subject_id)
    return JSONResponse(content=dump(Envelope(data=user["_id"], message="User deleted successfully")))
