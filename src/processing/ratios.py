"""
Pennsylvania Beneficiary Atlas - Ratio Engine
Per-county beneficiary shares and the state-wide correction term

Rules:
- Division by zero or by a missing value yields NaN, never inf
- State totals skip missing values (missing counts as zero when summing)
- double_ratio = disabled_share / over65_share + state disabled/over65
"""

from dataclasses import asdict, dataclass
from typing import Tuple

import numpy as np
import pandas as pd

from src.processing.validation import require_unique_key
from src.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class StateAggregate:
    """State-wide totals and ratios across all counties."""

    total_population: float
    total_over65: float
    total_disabled_workers: float
    over65_share: float
    disabled_share: float
    disabled_to_over65: float
    county_count: int

    def to_dict(self) -> dict:
        return asdict(self)


def safe_divide(numerator, denominator) -> pd.Series:
    """
    Element-wise division that returns NaN where the result is undefined.

    Accepts Series or scalars. Series inputs keep their index.
    """
    index = None
    for operand in (numerator, denominator):
        if isinstance(operand, pd.Series):
            index = operand.index
            break

    num = pd.to_numeric(pd.Series(numerator, index=index), errors="coerce").astype(float).to_numpy()
    den = pd.to_numeric(pd.Series(denominator, index=index), errors="coerce").astype(float).to_numpy()

    valid = ~np.isnan(num) & ~np.isnan(den) & (den != 0)
    out = np.divide(num, den, out=np.full(len(num), np.nan, dtype=float), where=valid)

    return pd.Series(out, index=index)


def _scalar_ratio(numerator: float, denominator: float) -> float:
    return float(safe_divide(pd.Series([numerator]), pd.Series([denominator])).iloc[0])


def join_beneficiaries(later: pd.DataFrame, beneficiaries: pd.DataFrame) -> pd.DataFrame:
    """
    Left-outer join of the later-period table with beneficiary counts.

    The later table drives: every later county is kept once, beneficiary
    rows without a county are dropped (see validation.find_orphans).
    """
    require_unique_key(later, "later-period population")
    require_unique_key(beneficiaries, "beneficiaries")

    counts = beneficiaries[["fips_code", "over65_count", "disabled_worker_count"]]
    joined = later.merge(counts, on="fips_code", how="left", validate="one_to_one")

    unmatched = joined["over65_count"].isna() & joined["disabled_worker_count"].isna()
    if unmatched.any():
        logger.warning(f"{int(unmatched.sum())} counties have no beneficiary record")

    return joined


def add_beneficiary_shares(df: pd.DataFrame) -> pd.DataFrame:
    """Add over65_share and disabled_share relative to pop_later."""
    out = df.copy()
    out["over65_share"] = safe_divide(out["over65_count"], out["pop_later"])
    out["disabled_share"] = safe_divide(out["disabled_worker_count"], out["pop_later"])
    return out


def compute_state_aggregate(df: pd.DataFrame) -> StateAggregate:
    """
    Sum population and beneficiary counts across counties.

    Missing values are skipped, so a county with no count contributes
    zero. A column that is missing for every county sums to 0 and every
    ratio that divides by it is NaN.
    """
    total_population = float(pd.to_numeric(df["pop_later"], errors="coerce").sum(skipna=True))
    total_over65 = float(pd.to_numeric(df["over65_count"], errors="coerce").sum(skipna=True))
    total_disabled = float(pd.to_numeric(df["disabled_worker_count"], errors="coerce").sum(skipna=True))

    aggregate = StateAggregate(
        total_population=total_population,
        total_over65=total_over65,
        total_disabled_workers=total_disabled,
        over65_share=_scalar_ratio(total_over65, total_population),
        disabled_share=_scalar_ratio(total_disabled, total_population),
        disabled_to_over65=_scalar_ratio(total_disabled, total_over65),
        county_count=len(df),
    )

    logger.info(
        f"State totals: population={total_population:,.0f}, "
        f"over65={total_over65:,.0f}, disabled_workers={total_disabled:,.0f}, "
        f"disabled/over65={aggregate.disabled_to_over65:.4f}"
    )
    return aggregate


def add_double_ratio(df: pd.DataFrame, aggregate: StateAggregate) -> pd.DataFrame:
    """Add double_ratio = disabled_share / over65_share + state disabled/over65."""
    out = df.copy()
    out["double_ratio"] = safe_divide(out["disabled_share"], out["over65_share"]) + aggregate.disabled_to_over65
    return out


def build_ratio_table(
    later: pd.DataFrame, beneficiaries: pd.DataFrame
) -> Tuple[pd.DataFrame, StateAggregate]:
    """
    Join beneficiaries onto the later-period table and derive all ratios.

    Args:
        later: Later-period population (fips_code, pop_later, optional geometry)
        beneficiaries: Output of load_beneficiaries

    Returns:
        Tuple of (ratio table, state aggregate)
    """
    joined = join_beneficiaries(later, beneficiaries)
    with_shares = add_beneficiary_shares(joined)
    aggregate = compute_state_aggregate(with_shares)
    ratio_df = add_double_ratio(with_shares, aggregate)

    undefined = ratio_df["double_ratio"].isna().sum()
    if undefined:
        logger.warning(f"double_ratio undefined for {undefined} counties")

    logger.info(f"Ratio table built: {len(ratio_df)} counties")
    return ratio_df, aggregate
