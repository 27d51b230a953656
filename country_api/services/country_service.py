import logging
import random
from typing import Optional
from datetime import datetime, timezone

from fastapi import HTTPException
from sqlalchemy.orm import Session

from country_api import crud
from country_api.config import settings
from country_api.services import fetch_data
from country_api.services.image_generator import generate_summary_image

logger = logging.getLogger("country_api")


def refresh_countries(db: Session, rng: random.Random) -> dict:
    """Pull both upstream sources and upsert every country.

    Both fetches happen before anything is written, so an unavailable source
    leaves the store untouched. Rows commit one at a time after that.
    """
    try:
        countries = fetch_data.fetch_countries()
        rates = fetch_data.fetch_exchange_rates()
    except fetch_data.UpstreamUnavailable as e:
        raise HTTPException(
            status_code=503,
            detail={
                "error": "External data source unavailable",
                "details": str(e),
            },
        )

    now = datetime.now(timezone.utc)
    processed = 0
    skipped = 0
    for c in countries:
        record = fetch_data.build_country_record(c, rates, rng)
        if record is None:
            logger.warning("Skipping upstream country without a name: %r", c)
            skipped += 1
            continue
        record["last_refreshed_at"] = now
        crud.upsert_country(db, record)
        processed += 1

    logger.info("Refreshed %d countries, skipped %d without a name", processed, skipped)

    regenerate_summary_image(db)

    message = "Countries refreshed successfully"
    if skipped:
        message += f" ({skipped} skipped without a name)"
    return {
        "message": message,
        "total_processed": processed,
        "last_refreshed_at": now,
    }


def regenerate_summary_image(db: Session) -> None:
    # The image is cosmetic; a failure here must not fail the refresh
    try:
        generate_summary_image(
            crud.get_top_by_gdp(db, limit=5),
            crud.count_countries(db),
            crud.get_last_refresh(db),
            settings.summary_image_path,
        )
    except Exception:
        logger.exception("Failed to generate summary image at %s", settings.summary_image_path)


def list_countries(
    db: Session,
    region: Optional[str] = None,
    currency: Optional[str] = None,
    sort: Optional[str] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> list:
    return crud.get_countries(db, region, currency, sort, limit, offset)


def get_country_by_name(db: Session, name: str):
    country = crud.get_country(db, name)
    if not country:
        raise HTTPException(status_code=404, detail="Country not found")
    return country


def delete_country_by_name(db: Session, name: str) -> dict:
    if not crud.delete_country(db, name):
        raise HTTPException(status_code=404, detail="Country not found")
    return {"message": "Country deleted successfully"}


def get_status(db: Session) -> dict:
    return {
        "total_countries": crud.count_countries(db),
        "last_refreshed_at": crud.get_last_refresh(db),
    }
