from datetime import datetime
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.orm import Session

from country_api import models
from country_api.models import normalize_name

SORT_ORDERS = {
    "gdp_desc": models.Country.estimated_gdp.desc(),
    "gdp_asc": models.Country.estimated_gdp.asc(),
    "population_desc": models.Country.population.desc(),
    "population_asc": models.Country.population.asc(),
}
DEFAULT_ORDER = models.Country.name.asc()

# Columns overwritten when an existing row is refreshed
UPSERT_COLUMNS = (
    "name",
    "capital",
    "region",
    "population",
    "currency_code",
    "exchange_rate",
    "estimated_gdp",
    "flag_url",
    "last_refreshed_at",
)


def get_country(db: Session, name: str):
    return db.query(models.Country).filter(models.Country.name_key == normalize_name(name)).first()

def get_countries(db: Session, region=None, currency=None, sort=None, limit=None, offset=None):
    query = db.query(models.Country)
    if region:
        query = query.filter(models.Country.region == region)
    if currency:
        query = query.filter(models.Country.currency_code == currency)

    # Unknown sort keys fall back to name order
    query = query.order_by(SORT_ORDERS.get(sort, DEFAULT_ORDER))

    if offset is not None:
        query = query.offset(offset)
    if limit is not None:
        query = query.limit(limit)
    return query.all()

def delete_country(db: Session, name: str):
    country = get_country(db, name)
    if country:
        db.delete(country)
        db.commit()
        return True
    return False


def upsert_country(db: Session, record: dict) -> None:
    """Insert a country or overwrite the row with the same normalized name.

    Runs as one INSERT ... ON CONFLICT statement where the dialect supports it
    and commits immediately, so each country is its own transaction.
    """
    values = dict(record, name_key=normalize_name(record["name"]))
    dialect = db.get_bind().dialect.name

    if dialect in ("sqlite", "postgresql"):
        insert = sqlite.insert if dialect == "sqlite" else postgresql.insert
        stmt = insert(models.Country).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[models.Country.name_key],
            set_={col: stmt.excluded[col] for col in UPSERT_COLUMNS},
        )
        db.execute(stmt)
    elif dialect in ("mysql", "mariadb"):
        stmt = mysql.insert(models.Country).values(**values)
        stmt = stmt.on_duplicate_key_update(**{col: stmt.inserted[col] for col in UPSERT_COLUMNS})
        db.execute(stmt)
    else:
        existing = db.execute(
            select(models.Country).where(models.Country.name_key == values["name_key"]).with_for_update()
        ).scalar_one_or_none()
        if existing is None:
            db.add(models.Country(**values))
        else:
            for col in UPSERT_COLUMNS:
                setattr(existing, col, values[col])
    db.commit()


def get_top_by_gdp(db: Session, limit: int = 5):
    return db.query(models.Country).order_by(models.Country.estimated_gdp.desc()).limit(limit).all()


def count_countries(db: Session) -> int:
    return db.query(func.count(models.Country.id)).scalar() or 0


def get_last_refresh(db: Session) -> Optional[datetime]:
    return db.query(func.max(models.Country.last_refreshed_at)).scalar()
