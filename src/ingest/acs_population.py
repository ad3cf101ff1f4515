"""
Pennsylvania Beneficiary Atlas - ACS County Population
Fetches county population estimates for one ACS period

Data source:
- Census Data API (ACS 1-year / 5-year detailed tables)
- Geometry (optional): Census TIGER/Line cartographic boundaries via pygris
"""

from typing import Optional

import pandas as pd

from config.settings import get_settings
from src.utils.data_sources import CensusAPIError, fetch_census_data, fetch_county_boundaries
from src.utils.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()


def fetch_county_population(
    year: int,
    state: str,
    api_key: Optional[str],
    survey: str = "acs5",
    variables: Optional[list[str]] = None,
    geometry: bool = False,
) -> pd.DataFrame:
    """
    Fetch ACS county estimates for one state and year.

    Args:
        year: ACS release year (end year of the 5-year window for acs5)
        state: State FIPS code
        api_key: Census API key
        survey: ACS survey identifier ('acs5' or 'acs1')
        variables: Variable codes (default: total population)
        geometry: Attach county polygons and return a GeoDataFrame

    Returns:
        One row per county with fips_code, county_name and numeric
        variable columns (plus geometry when requested)
    """
    variables = variables or [settings.ACS_POPULATION_VARIABLE]

    raw = fetch_census_data(
        dataset=f"acs/{survey}",
        variables=variables,
        geography="county:*",
        state=state,
        year=year,
        api_key=api_key,
    )

    missing = [col for col in ["NAME", "state", "county"] + variables if col not in raw.columns]
    if missing:
        raise CensusAPIError(f"Census response for {year} is missing columns: {missing}")

    df = pd.DataFrame({
        "fips_code": raw["state"].astype(str).str.zfill(2) + raw["county"].astype(str).str.zfill(3),
        "county_name": raw["NAME"],
    })
    for var in variables:
        values = pd.to_numeric(raw[var], errors="coerce").astype(float)
        # ACS marks unavailable estimates with large negative sentinels
        df[var] = values.where(values >= 0)

    if df["fips_code"].duplicated().any():
        raise CensusAPIError(f"Census response for {year} has duplicate county ids")

    logger.info(f"ACS {survey} {year}: {len(df)} counties for state {state}")

    if not geometry:
        return df

    boundaries = fetch_county_boundaries(state=state, year=year)
    gdf = boundaries.merge(df, on="fips_code", how="right")

    unmatched = gdf["geometry"].isna().sum()
    if unmatched:
        logger.warning(f"{unmatched} counties have no boundary geometry for {year}")

    return gdf[["fips_code", "county_name"] + variables + ["geometry"]]
