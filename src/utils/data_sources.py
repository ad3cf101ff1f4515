"""
Pennsylvania Beneficiary Atlas - Data Source Utilities
Helpers for the Census Data API and TIGER/Line county boundaries
"""

import time
from functools import wraps
from typing import Optional

import geopandas as gpd
import pandas as pd
import requests

from config.settings import get_settings
from src.utils.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()


class CensusAPIError(RuntimeError):
    """Raised when Census data or boundaries cannot be fetched."""


class RateLimiter:
    """Simple rate limiter for API requests"""

    def __init__(self, calls_per_minute: int):
        self.calls_per_minute = calls_per_minute
        self.min_interval = 60.0 / calls_per_minute
        self.last_call = 0

    def __call__(self, func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            elapsed = time.time() - self.last_call
            if elapsed < self.min_interval:
                time.sleep(self.min_interval - elapsed)
            self.last_call = time.time()
            return func(*args, **kwargs)
        return wrapper


census_limiter = RateLimiter(settings.CENSUS_API_RATE_LIMIT)


@census_limiter
def fetch_census_data(
    dataset: str,
    variables: list[str],
    geography: str,
    state: str,
    year: int,
    api_key: Optional[str],
    **kwargs
) -> pd.DataFrame:
    """
    Fetch one table from the Census Data API.

    Args:
        dataset: Dataset name (e.g., 'acs/acs5')
        variables: Variable codes (e.g., ['B01003_001E']); NAME is always requested
        geography: Geography predicate (e.g., 'county:*')
        state: State FIPS code
        year: Data year
        api_key: Census API key, passed explicitly by the caller
        **kwargs: Additional query parameters

    Returns:
        DataFrame with one row per geography, all values as strings

    Raises:
        CensusAPIError: missing key, request failure, or empty response
    """
    if not api_key:
        raise CensusAPIError("Census API key is required")

    url = f"{settings.CENSUS_API_BASE_URL}/{year}/{dataset}"

    params = {
        "get": ",".join(["NAME"] + list(variables)),
        "for": geography,
        "in": f"state:{state}",
        "key": api_key,
    }
    params.update(kwargs)

    logger.info(f"Fetching Census data: {dataset} ({year}), state {state}, variables: {len(variables)}")

    try:
        response = requests.get(url, params=params, timeout=settings.CENSUS_API_TIMEOUT)
        response.raise_for_status()
        data = response.json()
    except requests.exceptions.RequestException as e:
        # str(e) can contain the request URL, which carries the key
        logger.error(f"Census API request failed for {dataset} ({year}): {type(e).__name__}")
        raise CensusAPIError(f"Census API request failed for {dataset} ({year})") from e
    except ValueError as e:
        raise CensusAPIError(f"Census API returned invalid JSON for {dataset} ({year})") from e

    if not data or len(data) < 2:
        raise CensusAPIError(f"No data returned from Census API for {dataset} ({year}), state {state}")

    # First row is headers
    df = pd.DataFrame(data[1:], columns=data[0])

    logger.info(f"Fetched {len(df)} records from Census API")
    return df


def fetch_county_boundaries(state: str, year: int, crs: Optional[str] = None) -> gpd.GeoDataFrame:
    """
    Fetch county boundaries from Census TIGER/Line cartographic files.

    Uses pygris, which caches downloads in ~/.cache/pygris.

    Returns:
        GeoDataFrame with fips_code and geometry
    """
    crs = crs or settings.MAP_CRS
    logger.info(f"Fetching county boundaries for state {state} ({year})")

    try:
        from pygris import counties

        boundaries = counties(state=state, year=year, cb=True)  # cb=True for simplified boundaries
    except Exception as e:
        logger.error(f"Failed to fetch county boundaries: {e}", exc_info=True)
        raise CensusAPIError(f"Failed to fetch county boundaries for state {state} ({year})") from e

    boundaries = boundaries.copy()
    boundaries["fips_code"] = boundaries["GEOID"].astype(str).str.zfill(5)
    if boundaries.crs is not None and boundaries.crs != crs:
        boundaries = boundaries.to_crs(crs)

    logger.info(f"Fetched {len(boundaries)} county boundaries")
    return boundaries[["fips_code", "geometry"]]
