"""
Pennsylvania Beneficiary Atlas - Join Validation
Checks that every beneficiary record maps to a fetched county
"""

from dataclasses import dataclass
from typing import Tuple

import pandas as pd

from src.utils.logging import get_logger

logger = get_logger(__name__)

KEY = "fips_code"


class JoinMismatchError(RuntimeError):
    """Raised when beneficiary records reference counties that were not fetched."""

    def __init__(self, orphan_ids: Tuple[str, ...]):
        self.orphan_ids = orphan_ids
        super().__init__(
            f"{len(orphan_ids)} beneficiary records have no matching county: {list(orphan_ids)}"
        )


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of the beneficiary anti-join check."""

    passed: bool
    orphan_ids: Tuple[str, ...]
    checked: int

    def raise_for_failure(self) -> None:
        if not self.passed:
            raise JoinMismatchError(self.orphan_ids)


def require_unique_key(df: pd.DataFrame, label: str) -> None:
    """Raise ValueError if the county id is missing or repeated."""
    if KEY not in df.columns:
        raise ValueError(f"{label} table has no {KEY} column")
    dupes = df.loc[df[KEY].duplicated(), KEY].unique().tolist()
    if dupes:
        raise ValueError(f"{label} table has duplicate {KEY} values: {dupes[:5]}")


def find_orphans(beneficiaries: pd.DataFrame, later: pd.DataFrame) -> pd.DataFrame:
    """Rows of beneficiaries whose fips_code does not appear in later."""
    return beneficiaries[~beneficiaries[KEY].isin(later[KEY])].copy()


def validate_beneficiary_coverage(
    beneficiaries: pd.DataFrame, later: pd.DataFrame
) -> ValidationResult:
    """
    Anti-join beneficiaries against the later-period county table.

    Returns:
        ValidationResult; passed is True only when no orphans exist
    """
    orphans = find_orphans(beneficiaries, later)
    result = ValidationResult(
        passed=orphans.empty,
        orphan_ids=tuple(orphans[KEY].astype(str)),
        checked=len(beneficiaries),
    )

    if result.passed:
        logger.info(f"All {result.checked} beneficiary records matched a county")
    else:
        logger.error(
            f"{len(result.orphan_ids)} of {result.checked} beneficiary records have no "
            f"matching county: {list(result.orphan_ids)[:10]}"
        )

    return result
