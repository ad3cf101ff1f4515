import numpy as np
import pandas as pd
import pytest

from src.processing.ratios import (
    StateAggregate,
    add_beneficiary_shares,
    add_double_ratio,
    build_ratio_table,
    compute_state_aggregate,
    join_beneficiaries,
    safe_divide,
)


@pytest.fixture
def later() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "fips_code": ["42001", "42003", "42005"],
            "pop_later": [110.0, 150.0, 0.0],
        }
    )


def test_safe_divide_zero_and_missing_give_nan():
    result = safe_divide(pd.Series([1.0, 1.0, np.nan, 0.0]), pd.Series([2.0, 0.0, 5.0, 0.0]))

    assert result.iloc[0] == pytest.approx(0.5)
    assert result.iloc[1:].isna().all()
    assert not np.isinf(result).any()


def test_safe_divide_scalar_denominator_keeps_index():
    result = safe_divide(pd.Series([2.0, 4.0], index=["a", "b"]), 2)
    assert result.loc["b"] == pytest.approx(2.0)


def test_safe_divide_nullable_integers():
    result = safe_divide(pd.Series([1, pd.NA], dtype="Int64"), pd.Series([4, 2], dtype="Int64"))

    assert result.iloc[0] == pytest.approx(0.25)
    assert np.isnan(result.iloc[1])


def test_join_beneficiaries_left_outer(later, sample_beneficiaries):
    partial = sample_beneficiaries[sample_beneficiaries["fips_code"] != "42003"]

    joined = join_beneficiaries(later, partial)

    assert len(joined) == len(later)
    assert np.isnan(joined.set_index("fips_code").loc["42003", "over65_count"])


def test_beneficiary_shares_end_to_end_values(later, sample_beneficiaries):
    shares = add_beneficiary_shares(join_beneficiaries(later, sample_beneficiaries))
    row = shares.set_index("fips_code").loc["42001"]

    assert row["over65_share"] == pytest.approx(20 / 110)
    assert row["over65_share"] == pytest.approx(0.1818, abs=1e-4)
    assert row["disabled_share"] == pytest.approx(5 / 110)
    assert row["disabled_share"] == pytest.approx(0.0455, abs=1e-4)


def test_zero_population_yields_nan_not_inf(later, sample_beneficiaries):
    ratio_df, _ = build_ratio_table(later, sample_beneficiaries)
    row = ratio_df.set_index("fips_code").loc["42005"]

    for col in ["over65_share", "disabled_share", "double_ratio"]:
        assert np.isnan(row[col])
    assert not np.isinf(ratio_df[["over65_share", "disabled_share", "double_ratio"]].to_numpy()).any()


def test_state_aggregate_missing_as_zero(later, sample_beneficiaries):
    joined = join_beneficiaries(later, sample_beneficiaries)
    aggregate = compute_state_aggregate(joined)

    # disabled count for 42003 is missing and contributes nothing
    assert aggregate.total_population == pytest.approx(260.0)
    assert aggregate.total_over65 == pytest.approx(54.0)
    assert aggregate.total_disabled_workers == pytest.approx(6.0)
    assert aggregate.total_disabled_workers == pytest.approx(
        joined["disabled_worker_count"].dropna().sum()
    )
    assert aggregate.disabled_to_over65 == pytest.approx(6 / 54)
    assert aggregate.over65_share == pytest.approx(54 / 260)
    assert aggregate.disabled_share == pytest.approx(6 / 260)
    assert aggregate.county_count == 3


def test_state_aggregate_entirely_missing_column():
    df = pd.DataFrame(
        {
            "pop_later": [100.0, 200.0],
            "over65_count": [np.nan, np.nan],
            "disabled_worker_count": [1.0, 2.0],
        }
    )

    aggregate = compute_state_aggregate(df)

    assert aggregate.total_over65 == 0.0
    assert np.isnan(aggregate.disabled_to_over65)
    assert aggregate.over65_share == 0.0


def test_double_ratio_adds_state_term():
    df = pd.DataFrame({"disabled_share": [0.05, 0.02], "over65_share": [0.2, 0.0]})
    aggregate = StateAggregate(
        total_population=1.0,
        total_over65=1.0,
        total_disabled_workers=1.0,
        over65_share=1.0,
        disabled_share=1.0,
        disabled_to_over65=0.3,
        county_count=2,
    )

    out = add_double_ratio(df, aggregate)

    assert out["double_ratio"].iloc[0] == pytest.approx(0.25 + 0.3)
    assert np.isnan(out["double_ratio"].iloc[1])
    assert "double_ratio" not in df.columns


def test_build_ratio_table_double_ratio(later, sample_beneficiaries):
    ratio_df, aggregate = build_ratio_table(later, sample_beneficiaries)
    row = ratio_df.set_index("fips_code").loc["42001"]

    expected = (5 / 110) / (20 / 110) + aggregate.disabled_to_over65
    assert row["double_ratio"] == pytest.approx(expected)
    assert len(ratio_df) == len(later)
