"""
Category endpoints.
"""

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from catalog.errors import NotFoundError
from catalog.models import CategoryInput, CategoryOut, CategoryPatch
from catalog.storage import CATEGORY_IMAGES

from ..auth import authorize_admin
from ..models import Envelope, dump
from ..services import ServiceContainer, get_services

router = APIRouter(prefix="/category", tags=["Category"])


@router.get("/", response_model=Envelope)
async def get_categories(services: ServiceContainer = Depends(get_services)):
    """Get all categories."""
    categories = await services.categories.find()
    result = Envelope(
        data=[CategoryOut.model_validate(category).to_json() for category in categories],
        message="Categories retrieved successfully",
    )
    return JSONResponse(content=dump(result))


@router.get("/{category_id}", response_model=Envelope)
async def get_category(category_id: str, services: ServiceContainer = Depends(get_services)):
    """Get a category by id."""
    category = await services.categories.find_by_id(category_id)
    if category is None:
        raise NotFoundError("Category not found")
    result = Envelope(data=CategoryOut.model_validate(category).to_json(), message="Category retrieved successfully")
    return JSONResponse(content=dump(result))


@router.post(
    "/",
    response_model=Envelope,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(authorize_admin)],
)
async def create_category(request: Request, services: ServiceContainer = Depends(get_services)):
    """Create a category from a multipart form (``name``, optional ``description`` and ``image``)."""
    category = await services.upserts.create(
        request,
        services.categories,
        input_model=CategoryInput,
        subdir=CATEGORY_IMAGES,
        required_fields=["name"],
    )
    result = Envelope(data=CategoryOut.model_validate(category).to_json(), message="Category created successfully")
    return JSONResponse(status_code=status.HTTP_201_CREATED, content=dump(result))


@router.put("/{category_id}", response_model=Envelope, dependencies=[Depends(authorize_admin)])
async def update_category(category_id: str, request: Request, services: ServiceContainer = Depends(get_services)):
    """Update a category. All fields are optional; a new ``image`` replaces the reference."""
    category = await services.upserts.update(
        request,
        services.categories,
        category_id,
        patch_model=CategoryPatch,
        subdir=CATEGORY_IMAGES,
        label="Category",
    )
    result = Envelope(data=CategoryOut.model_validate(category).to_json(), message="Category updated successfully")
    return JSONResponse(content=dump(result))


@router.delete("/{category_id}", response_model=Envelope, dependencies=[Depends(authorize_admin)])
async def delete_category(category_id: str, services: ServiceContainer = Depends(get_services)):
    """Delete a category and return its id."""
    category = await services.categories.delete_by_id(category_id)
    if category is None:
        raise NotFoundError("Category not found")
    return JSONResponse(content=dump(Envelope(data=category["_id"], message="Category deleted successfully")))
