"""
Author endpoints.
"""

import re

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse

from catalog.errors import NotFoundError
from catalog.models import AuthorInput, AuthorOut, AuthorPatch
from catalog.storage import AUTHOR_IMAGES

from ..auth import authenticate, authorize_admin
from ..models import Envelope, dump
from ..services import ServiceContainer, get_services

router = APIRouter(prefix="/author", tags=["Author"])

AUTHOR_FIELDS = ["name", "sinceYear", "description"]


def author_json(document):
    return AuthorOut.model_validate(document).to_json()


@router.get("/", response_model=Envelope)
async def get_authors(services: ServiceContainer = Depends(get_services)):
    """Get all authors."""
    authors = await services.authors.find()
    return JSONResponse(content=dump(Envelope(
        data=[author_json(author) for author in authors],
        message="Authors retrieved successfully",
    )))


@router.get("/search", response_model=Envelope, dependencies=[Depends(authenticate)])
async def search_authors(
    name: str = Query(..., min_length=1, description="Case-insensitive name fragment"),
    services: ServiceContainer = Depends(get_services)
):
    """Search authors whose name contains ``name``."""
    pattern = re.escape(name.strip())
    authors = await services.authors.find({"name": {"$regex": pattern, "$options": "i"}})
    return JSONResponse(content=dump(Envelope(
        data=[author_json(author) for author in authors],
        message="Authors retrieved successfully",
    )))


@router.get("/{author_id}", response_model=Envelope)
async def get_author(author_id: str, services: ServiceContainer = Depends(get_services)):
    author = await services.authors.find_by_id(author_id)
    if author is None:
        raise NotFoundError("Author not found")
    return JSONResponse(content=dump(Envelope(data=author_json(author), message="Author retrieved successfully")))


@router.post(
    "/",
    response_model=Envelope,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(authorize_admin)],
)
async def create_author(request: Request, services: ServiceContainer = Depends(get_services)):
    """
    Create an author from a multipart form.

    ``name``, ``sinceYear`` and ``description`` are required. The social
    link fields (``facebookUrl``, ``instagramUrl``, ``youtubeUrl``,
    ``websiteUrl``) and ``image`` are optional.
    """
    author = await services.upserts.create(
        request,
        services.authors,
        input_model=AuthorInput,
        subdir=AUTHOR_IMAGES,
        required_fields=AUTHOR_FIELDS,
    )
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=dump(Envelope(data=author_json(author), message="Author created successfully")),
    )


@router.put("/{author_id}", response_model=Envelope, dependencies=[Depends(authorize_admin)])
async def update_author(author_id: str, request: Request, services: ServiceContainer = Depends(get_services)):
    author = await services.upserts.update(
        request,
        services.authors,
        author_id,
        patch_model=AuthorPatch,
        subdir=AUTHOR_IMAGES,
        label="Author",
    )
    return JSONResponse(content=dump(Envelope(data=author_json(author), message="Author updated successfully")))


@router.delete("/{author_id}", response_model=Envelope, dependencies=[Depends(authorize_admin)])
async def delete_author(author_id: str, services: ServiceContainer = Depends(get_services)):
    author = await services.authors.delete_by_id(author_id)
    if author is None:
        raise NotFoundError("Author not found")
    return JSONResponse(content=dump(Envelope(data=author["_id"], message="Author deleted successfully")))
