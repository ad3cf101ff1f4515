"""
Pennsylvania Beneficiary Atlas - Population Change
Reduces ACS period tables and joins them on county id

pop_change = (pop_earlier - pop_later) / pop_earlier

Growth therefore gives a negative value. The map legend is labelled for
this convention, so the sign must not be flipped.
"""

import pandas as pd

from src.processing.ratios import safe_divide
from src.processing.validation import KEY, require_unique_key
from src.utils.logging import get_logger

logger = get_logger(__name__)


def select_population(
    df: pd.DataFrame,
    label: str,
    estimate_column: str,
    keep_name: bool = True,
    keep_geometry: bool = False,
) -> pd.DataFrame:
    """
    Project a fetched ACS table to the columns used downstream.

    The estimate is renamed to pop_{label} so two periods can be merged
    without suffixes. Rows are passed through unfiltered.

    Args:
        df: Output of fetch_county_population
        label: Period label, e.g. 'earlier' or 'later'
        estimate_column: ACS variable holding the population estimate
        keep_name: Keep county_name
        keep_geometry: Keep geometry (GeoDataFrame in, GeoDataFrame out)
    """
    columns = [KEY]
    if keep_name and "county_name" in df.columns:
        columns.append("county_name")
    columns.append(estimate_column)
    if keep_geometry:
        if "geometry" not in df.columns:
            raise ValueError(f"{label} table has no geometry column")
        columns.append("geometry")

    out = df[columns].rename(columns={estimate_column: f"pop_{label}"})
    out[f"pop_{label}"] = pd.to_numeric(out[f"pop_{label}"], errors="coerce")
    return out


def compute_pop_change(pop_earlier: pd.Series, pop_later: pd.Series) -> pd.Series:
    """(earlier - later) / earlier, NaN where earlier is zero or missing."""
    return safe_divide(pop_earlier - pop_later, pop_earlier)


def join_periods(later: pd.DataFrame, earlier: pd.DataFrame) -> pd.DataFrame:
    """
    Left-outer join of two period tables keyed on fips_code.

    The later table drives the join: the result has exactly len(later)
    rows, counties only present in the earlier table are dropped, and
    counties absent from the earlier table get NaN pop_earlier and
    pop_change.

    Args:
        later: Reduced later-period table (pop_later, optional geometry)
        earlier: Reduced earlier-period table (pop_earlier)

    Returns:
        Combined table with pop_later, pop_earlier and pop_change
    """
    require_unique_key(later, "later-period population")
    require_unique_key(earlier, "earlier-period population")

    combined = later.merge(
        earlier[[KEY, "pop_earlier"]], on=KEY, how="left", validate="one_to_one"
    )
    combined["pop_change"] = compute_pop_change(combined["pop_earlier"], combined["pop_later"])

    dropped = (~earlier[KEY].isin(later[KEY])).sum()
    if dropped:
        logger.warning(f"{dropped} earlier-period counties have no later-period match and were dropped")
    unmatched = combined["pop_earlier"].isna().sum()
    if unmatched:
        logger.warning(f"{unmatched} later-period counties have no earlier-period population")

    logger.info(f"Joined periods: {len(combined)} counties")
    return combined
