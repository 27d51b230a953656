import logging
import random
from typing import Any, Dict, List, Optional

import requests

from country_api.config import settings

logger = logging.getLogger("country_api")

COUNTRIES_SOURCE = "REST Countries API"
RATES_SOURCE = "Exchange Rates API"

GDP_MULTIPLIER_MIN = 1000
GDP_MULTIPLIER_MAX = 2000


class UpstreamUnavailable(Exception):
    """An external data source could not be read."""

    def __init__(self, source: str, cause: str):
        self.source = source
        self.cause = cause
        super().__init__(f"Could not fetch data from {source}: {cause}")


def _get_json(url: str, source: str) -> Any:
    try:
        resp = requests.get(url, timeout=settings.HTTP_TIMEOUT_SECONDS)
    except requests.RequestException as e:
        logger.warning("%s request failed: %s", source, e)
        raise UpstreamUnavailable(source, str(e)) from e

    if resp.status_code != 200:
        logger.warning("%s returned HTTP %s", source, resp.status_code)
        raise UpstreamUnavailable(source, f"API returned status {resp.status_code}")

    try:
        return resp.json()
    except ValueError as e:
        logger.warning("%s returned a body that is not JSON: %s", source, e)
        raise UpstreamUnavailable(source, "invalid JSON response") from e


def fetch_countries() -> List[Dict[str, Any]]:
    data = _get_json(settings.COUNTRY_API, COUNTRIES_SOURCE)
    if not isinstance(data, list):
        raise UpstreamUnavailable(COUNTRIES_SOURCE, "expected a JSON array of countries")
    return data


def fetch_exchange_rates() -> Dict[str, float]:
    data = _get_json(settings.EXCHANGE_API, RATES_SOURCE)
    if not isinstance(data, dict):
        raise UpstreamUnavailable(RATES_SOURCE, "expected a JSON object with rates")
    return data.get("rates") or {}


def gdp_multiplier(rng: random.Random) -> float:
    """Draw from [1000, 2000); ``uniform`` may return the upper bound."""
    return GDP_MULTIPLIER_MIN + rng.random() * (GDP_MULTIPLIER_MAX - GDP_MULTIPLIER_MIN)


def _blank_to_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def build_country_record(
    country: Dict[str, Any], rates: Dict[str, float], rng: random.Random
) -> Optional[Dict[str, Any]]:
    """Map one upstream country onto the stored columns, or None when it has no name.

    Currency rules:
      - ``currencies`` is an empty list: no currency, GDP 0
      - no currency code otherwise: currency, rate and GDP all null
      - code without a usable rate: rate and GDP null
      - else GDP = population * uniform[1000, 2000) / rate
    """
    name = _blank_to_none(country.get("name"))
    if name is None:
        return None

    population = country.get("population") or 0

    currencies = country.get("currencies")
    currency_code = None
    if isinstance(currencies, list) and currencies and isinstance(currencies[0], dict):
        currency_code = _blank_to_none(currencies[0].get("code"))

    rate = None
    gdp = None
    if currency_code:
        rate = rates.get(currency_code)
        if rate:
            gdp = population * gdp_multiplier(rng) / rate
        else:
            rate = None
    elif isinstance(currencies, list) and not currencies:
        gdp = 0.0

    return {
        "name": name,
        "capital": _blank_to_none(country.get("capital")),
        "region": _blank_to_none(country.get("region")),
        "population": population,
        "currency_code": currency_code,
        "exchange_rate": rate,
        "estimated_gdp": gdp,
        "flag_url": _blank_to_none(country.get("flag")),
    }
