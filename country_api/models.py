from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import BigInteger, Integer, String, Float, DateTime
from sqlalchemy.types import TypeDecorator
from country_api.database import Base
from sqlalchemy.orm import Mapped, mapped_column


def normalize_name(name: str) -> str:
    """Key used for case-insensitive uniqueness of country names."""
    return name.lower()


class UTCDateTime(TypeDecorator):
    """Store datetimes as naive UTC and hand them back as aware UTC.

    SQLite and MySQL DATETIME columns drop the offset on the way in.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Country(Base):
    __tablename__ = "countries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    name_key: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    capital: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    region: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    population: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    currency_code: Mapped[Optional[str]] = mapped_column(String(10), nullable=True, index=True)
    exchange_rate: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    estimated_gdp: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    flag_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    last_refreshed_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime(), default=lambda: datetime.now(timezone.utc)
    )

    def __init__(self, **kwargs):
        if "name" in kwargs and "name_key" not in kwargs:
            kwargs["name_key"] = normalize_name(kwargs["name"])
        super().__init__(**kwargs)
