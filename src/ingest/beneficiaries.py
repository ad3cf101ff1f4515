"""
Pennsylvania Beneficiary Atlas - SSA Beneficiary Loader
Reads the county extract of OASDI beneficiaries

Expected columns:
- ANSI: county code (3-digit county or 5-digit state+county)
- Over65: retirement-age (OASI) beneficiaries
- DisabledWorkers: disabled-worker (DI) beneficiaries

The county code is normalized to the 5-digit FIPS used by the Census API.
Any code that cannot be normalized is an error, never a silent non-match.
"""

import re
from pathlib import Path
from typing import Union

import numpy as np
import pandas as pd

from config.settings import BENEFICIARY_COLUMNS, BENEFICIARY_ID_COLUMN
from src.utils.logging import get_logger

logger = get_logger(__name__)

_DIGITS = re.compile(r"^\d+$")


class BeneficiaryLoadError(RuntimeError):
    """Raised when the beneficiary file is missing or malformed."""


def normalize_county_id(value, state_fips: str) -> str:
    """
    Convert a county code to a 5-digit state+county FIPS string.

    Raises:
        ValueError: code is not numeric, has the wrong length, or
            belongs to another state
    """
    code = str(value).strip()
    if code.endswith(".0"):
        code = code[:-2]
    if not _DIGITS.match(code):
        raise ValueError(f"non-numeric county code {value!r}")

    if len(code) <= 3:
        return f"{state_fips}{code.zfill(3)}"
    if len(code) == 5:
        if not code.startswith(state_fips):
            raise ValueError(f"county code {value!r} is outside state {state_fips}")
        return code
    if len(code) == 4 and code.zfill(5).startswith(state_fips):
        return code.zfill(5)
    raise ValueError(f"county code {value!r} has unexpected length {len(code)}")


def _parse_counts(series: pd.Series, column: str) -> pd.Series:
    cleaned = series.astype(str).str.replace(",", "", regex=False).str.strip()
    cleaned = cleaned.replace({"": np.nan, "nan": np.nan})
    values = pd.to_numeric(cleaned, errors="coerce")

    suppressed = values.isna() & series.notna()
    if suppressed.any():
        logger.warning(
            f"{int(suppressed.sum())} non-numeric {column} values treated as missing: "
            f"{sorted(series[suppressed].astype(str).unique())[:5]}"
        )

    if (values < 0).any():
        raise BeneficiaryLoadError(f"Negative counts in column {column}")

    return values


def load_beneficiaries(path: Union[str, Path], state_fips: str) -> pd.DataFrame:
    """
    Load the beneficiary CSV.

    Args:
        path: CSV file path
        state_fips: 2-digit state FIPS used to build county ids

    Returns:
        DataFrame with fips_code, over65_count, disabled_worker_count

    Raises:
        BeneficiaryLoadError: file missing/unreadable, columns missing,
            county codes invalid or duplicated
    """
    path = Path(path)
    if not path.exists():
        raise BeneficiaryLoadError(f"Beneficiary file not found: {path}")

    logger.info(f"Loading beneficiaries from {path}")

    try:
        raw = pd.read_csv(path, dtype={BENEFICIARY_ID_COLUMN: str})
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise BeneficiaryLoadError(f"Could not read beneficiary file {path}: {e}") from e

    raw.columns = [str(c).strip() for c in raw.columns]
    missing = [col for col in BENEFICIARY_COLUMNS if col not in raw.columns]
    if missing:
        raise BeneficiaryLoadError(f"Beneficiary file {path} is missing columns: {missing}")

    df = raw[list(BENEFICIARY_COLUMNS)].rename(columns=BENEFICIARY_COLUMNS)
    blank_id = df["fips_code"].isna() | (df["fips_code"].astype(str).str.strip() == "")
    blank_counts = df[["over65_count", "disabled_worker_count"]].isna().all(axis=1)
    if (blank_id & ~blank_counts).any():
        raise BeneficiaryLoadError(
            f"{int((blank_id & ~blank_counts).sum())} rows have counts but no county code"
        )
    if blank_id.any():
        logger.warning(f"Skipping {int(blank_id.sum())} empty rows with no county code or counts")
    df = df[~blank_id].copy()

    if df.empty:
        raise BeneficiaryLoadError(f"Beneficiary file {path} has no records")

    ids = []
    bad = []
    for value in df["fips_code"]:
        try:
            ids.append(normalize_county_id(value, state_fips))
        except ValueError as e:
            bad.append(str(e))
    if bad:
        raise BeneficiaryLoadError(
            f"{len(bad)} county codes could not be normalized: {bad[:5]}"
        )
    df["fips_code"] = ids

    dupes = df.loc[df["fips_code"].duplicated(), "fips_code"].unique().tolist()
    if dupes:
        raise BeneficiaryLoadError(f"Duplicate county ids in beneficiary file: {dupes}")

    for column in ["over65_count", "disabled_worker_count"]:
        df[column] = _parse_counts(df[column], column)

    logger.info(f"Loaded {len(df)} beneficiary records")
    return df.reset_index(drop=True)
