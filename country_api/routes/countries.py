import random
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from country_api import schemas
from country_api.config import settings
from country_api.database import get_db
from country_api.limits import rate_limit
from country_api.services import country_service

router = APIRouter()


def get_rng(request: Request) -> random.Random:
    """Random source for GDP multipliers, owned by the application."""
    return request.app.state.rng


@router.post(
    "/refresh",
    response_model=schemas.RefreshOut,
    summary="Refresh country, currency, and exchange data",
    description=(
        "Fetches the latest data from external providers and upserts every country. "
        "Also regenerates the summary image for the top 5 GDP countries."
    ),
    responses={503: {"model": schemas.ErrorOut}},
)
def refresh_countries(
    db: Session = Depends(get_db),
    rng: random.Random = Depends(get_rng),
    _: None = rate_limit(settings.RATE_LIMIT_REFRESH_TIMES, settings.RATE_LIMIT_REFRESH_SECONDS),
):
    return country_service.refresh_countries(db, rng)

@router.get(
    "",
    response_model=List[schemas.CountryOut],
    summary="List countries",
    description=(
        "Returns countries with optional filtering, sorting, and pagination.\n\n"
        "Filters:\n"
        "- region: exact region match (e.g., 'Africa')\n"
        "- currency: exact currency code (e.g., 'NGN')\n\n"
        "Sorting options (sort): gdp_desc|gdp_asc|population_desc|population_asc; "
        "anything else sorts by name.\n\n"
        "Pagination: use limit and offset."
    ),
    response_description="List of countries",
)
def get_all(
    region: Optional[str] = Query(
        default=None,
        description="Filter by region (exact match)",
        examples=["Africa"],
    ),
    currency: Optional[str] = Query(
        default=None,
        description="Filter by currency code (exact match)",
        examples=["NGN"],
    ),
    sort: Optional[str] = Query(
        default=None,
        description="Sort order: gdp_desc, gdp_asc, population_desc, population_asc (default: name)",
        examples=["gdp_desc"],
    ),
    limit: Optional[int] = Query(
        default=None,
        ge=1,
        le=500,
        description="Maximum number of records to return (1-500)",
    ),
    offset: Optional[int] = Query(
        default=None,
        ge=0,
        description="Number of records to skip before starting to collect the result set",
    ),
    db: Session = Depends(get_db),
    _: None = rate_limit(settings.RATE_LIMIT_DEFAULT_TIMES, settings.RATE_LIMIT_DEFAULT_SECONDS),
):
    return country_service.list_countries(db, region, currency, sort, limit, offset)

@router.get(
    "/image",
    summary="Get generated summary image",
    description=(
        "Returns the PNG written by the last refresh (top 5 GDP countries, total count, last refresh time)."
    ),
    response_class=FileResponse,
    responses={404: {"model": schemas.ErrorOut}},
)
def get_image(
    _: None = rate_limit(settings.RATE_LIMIT_IMAGE_TIMES, settings.RATE_LIMIT_IMAGE_SECONDS),
):
    img_path = settings.summary_image_path
    if not img_path.exists():
        raise HTTPException(status_code=404, detail="Summary image not found")
    return FileResponse(str(img_path), media_type="image/png")

@router.get(
    "/{name}",
    response_model=schemas.CountryOut,
    summary="Get country by name",
    description="Case-insensitive exact country name match.",
    responses={404: {"model": schemas.ErrorOut}},
)
def get_one(
    name: str = Path(..., description="Country name", examples=["Nigeria"]),
    db: Session = Depends(get_db),
    _: None = rate_limit(settings.RATE_LIMIT_DEFAULT_TIMES, settings.RATE_LIMIT_DEFAULT_SECONDS),
):
    return country_service.get_country_by_name(db, name)

@router.delete(
    "/{name}",
    response_model=schemas.MessageOut,
    summary="Delete a country by name",
    description="Permanently deletes a country, matched case-insensitively.",
    responses={404: {"model": schemas.ErrorOut}},
)
def delete_country(
    name: str = Path(..., description="Country name", examples=["Nigeria"]),
    db: Session = Depends(get_db),
    _: None = rate_limit(settings.RATE_LIMIT_DEFAULT_TIMES, settings.RATE_LIMIT_DEFAULT_SECONDS),
):
    return country_service.delete_country_by_name(db, name)
