from pydantic import BaseModel, Field
from typing import Any, Optional
from datetime import datetime

class CountryBase(BaseModel):
    name: str = Field(..., max_length=255)
    capital: Optional[str] = Field(None, max_length=255)
    region: Optional[str] = Field(None, max_length=100)
    population: int = Field(..., ge=0)
    currency_code: Optional[str] = Field(None, max_length=10)
    exchange_rate: Optional[float] = None
    estimated_gdp: Optional[float] = None
    flag_url: Optional[str] = Field(None, max_length=500)
    last_refreshed_at: Optional[datetime] = Field(None)

    model_config = {"from_attributes": True}


class CountryOut(CountryBase):
    id: int


class RefreshOut(BaseModel):
    message: str
    total_processed: int
    last_refreshed_at: datetime


class StatusOut(BaseModel):
    total_countries: int
    last_refreshed_at: Optional[datetime] = None


class MessageOut(BaseModel):
    message: str


class ErrorOut(BaseModel):
    error: str
    details: Optional[Any] = None
