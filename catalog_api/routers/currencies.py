"""
Currency endpoints.
"""

import structlog
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from catalog.errors import ConflictError
from catalog.models import CurrencyCreate, CurrencyOut

from ..auth import authorize_admin
from ..models import Envelope, dump
from ..services import ServiceContainer, get_services

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/currency", tags=["Currency"])


@router.get("/", response_model=Envelope)
async def get_currencies(services: ServiceContainer = Depends(get_services)):
    """Get all currencies."""
    currencies = await services.currencies.find(sort=[("name", 1)])
    return JSONResponse(content=dump(Envelope(
        data=[CurrencyOut.model_validate(currency).to_json() for currency in currencies],
        message="Currencies retrieved successfully",
    )))


@router.post(
    "/",
    response_model=Envelope,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(authorize_admin)],
)
async def create_currency(body: CurrencyCreate, services: ServiceContainer = Depends(get_services)):
    """
    Create a currency from a JSON body.

    Names are unique; the unique index also rejects concurrent duplicates.
    """
    name = body.name.strip()
    if await services.currencies.find_one({"name": name}) is not None:
        raise ConflictError("Currency already exists")

    currency = await services.currencies.create({"name": name})
    logger.info("Created currency", id=currency["_id"], name=name)
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=dump(Envelope(data=CurrencyOut.model_validate(currency).to_json(), message="Currency created successfully")),
    )
