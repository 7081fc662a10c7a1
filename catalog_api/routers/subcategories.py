"""
Subcategory endpoints, mounted below ``/category/subcategory``.
Reads resolve the parent reference to the full category document.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from catalog.database import to_object_id
from catalog.errors import NotFoundError, ValidationError
from catalog.models import SubCategoryInput, SubCategoryOut, SubCategoryPatch
from catalog.repository import Document
from catalog.storage import SUBCATEGORY_IMAGES

from ..auth import authorize_admin
from ..models import Envelope, dump
from ..services import ServiceContainer, get_services

router = APIRouter(prefix="/category/subcategory", tags=["SubCategory"])


async def populate(services: ServiceContainer, subcategory: Document) -> Dict[str, Any]:
    """Replace the parent id with the parent document when it still exists."""
    document = dict(subcategory)
    parent_id = document.get("category")
    if parent_id:
        parent = await services.categories.find_by_id(parent_id)
        if parent is not None:
            document["category"] = parent
    return SubCategoryOut.model_validate(document).to_json()


def parent_reference(services: ServiceContainer):
    """Build a prepare hook that checks and converts the ``category`` reference."""

    async def prepare(document: Dict[str, Any]) -> Dict[str, Any]:
        if "category" not in document:
            return document
        parent = await services.categories.find_by_id(document["category"])
        if parent is None:
            raise ValidationError("Parent category not found")
        document["category"] = to_object_id(document["category"])
        return document

    return prepare


@router.get("/", response_model=Envelope)
@router.get("", response_model=Envelope, include_in_schema=False)
async def get_subcategories(services: ServiceContainer = Depends(get_services)):
    """Get all subcategories with their parent category."""
    subcategories = await services.subcategories.find()
    data = [await populate(services, subcategory) for subcategory in subcategories]
    return JSONResponse(content=dump(Envelope(data=data, message="Subcategories fetched successfully")))


@router.get("/{subcategory_id}", response_model=Envelope)
async def get_subcategory(subcategory_id: str, services: ServiceContainer = Depends(get_services)):
    """Get a subcategory by id."""
    subcategory = await services.subcategories.find_by_id(subcategory_id)
    if subcategory is None:
        raise NotFoundError("Subcategory not found")
    data = await populate(services, subcategory)
    return JSONResponse(content=dump(Envelope(data=data, message="Subcategory fetched successfully")))


@router.post(
    "/",
    response_model=Envelope,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(authorize_admin)],
)
@router.post(
    "",
    response_model=Envelope,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(authorize_admin)],
    include_in_schema=False,
)
async def create_subcategory(request: Request, services: ServiceContainer = Depends(get_services)):
    """Create a subcategory (``name`` and parent ``category`` id required)."""
    subcategory = await services.upserts.create(
        request,
        services.subcategories,
        input_model=SubCategoryInput,
        subdir=SUBCATEGORY_IMAGES,
        required_fields=["name", "category"],
        prepare=parent_reference(services),
    )
    data = await populate(services, subcategory)
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=dump(Envelope(data=data, message="Sub category created successfully")),
    )


@router.put("/{subcategory_id}", response_model=Envelope, dependencies=[Depends(authorize_admin)])
async def update_subcategory(subcategory_id: str, request: Request, services: ServiceContainer = Depends(get_services)):
    """Update a subcategory. All fields are optional."""
    subcategory = await services.upserts.update(
        request,
        services.subcategories,
        subcategory_id,
        patch_model=SubCategoryPatch,
        subdir=SUBCATEGORY_IMAGES,
        label="Sub category",
        prepare=parent_reference(services),
    )
    data = await populate(services, subcategory)
    return JSONResponse(content=dump(Envelope(data=data, message="Sub category updated successfully")))


@router.delete("/{subcategory_id}", response_model=Envelope, dependencies=[Depends(authorize_admin)])
async def delete_subcategory(subcategory_id: str, services: ServiceContainer = Depends(get_services)):
    """Delete a subcategory and return its id."""
    subcategory = await services.subcategories.delete_by_id(subcategory_id)
    if subcategory is None:
        raise NotFoundError("Subcategory not found")
    return JSONResponse(content=dump(Envelope(data=subcategory["_id"], message="Subcategory deleted successfully")))
