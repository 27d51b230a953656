from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from country_api.database import get_db
from country_api import schemas
from country_api.config import settings
from country_api.limits import rate_limit
from country_api.services import country_service

router = APIRouter()

@router.get(
    "",
    response_model=schemas.StatusOut,
    summary="API/data status",
    description="Returns the number of countries stored and the timestamp of the last refresh.",
)
def get_status(
    db: Session = Depends(get_db),
    _: None = rate_limit(settings.RATE_LIMIT_DEFAULT_TIMES, settings.RATE_LIMIT_DEFAULT_SECONDS),
):
    return country_service.get_status(db)
