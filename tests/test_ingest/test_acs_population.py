import geopandas as gpd
import numpy as np
import pandas as pd
import pytest
from shapely.geometry import box

import src.ingest.acs_population as acs
from src.utils.data_sources import CensusAPIError


def _census_frame(values=("110", "150")):
    return pd.DataFrame(
        {
            "NAME": ["Adams County, Pennsylvania", "Allegheny County, Pennsylvania"],
            "B01003_001E": list(values),
            "state": ["42", "42"],
            "county": ["001", "003"],
        }
    )


def test_fetch_county_population_builds_fips_and_numeric(monkeypatch):
    captured = {}

    def fake_fetch(**kwargs):
        captured.update(kwargs)
        return _census_frame()

    monkeypatch.setattr(acs, "fetch_census_data", fake_fetch)

    df = acs.fetch_county_population(year=2022, state="42", api_key="KEY")

    assert df["fips_code"].tolist() == ["42001", "42003"]
    assert df["B01003_001E"].tolist() == [110, 150]
    assert "geometry" not in df.columns
    assert captured["dataset"] == "acs/acs5"
    assert captured["geography"] == "county:*"
    assert captured["api_key"] == "KEY"


def test_fetch_county_population_negative_sentinel_is_missing(monkeypatch):
    monkeypatch.setattr(acs, "fetch_census_data", lambda **kwargs: _census_frame(("110", "-666666666")))

    df = acs.fetch_county_population(year=2022, state="42", api_key="KEY")
    assert np.isnan(df["B01003_001E"].iloc[1])


def test_fetch_county_population_attaches_geometry(monkeypatch):
    boundaries = gpd.GeoDataFrame(
        {"fips_code": ["42003", "42001"]},
        geometry=[box(1, 0, 2, 1), box(0, 0, 1, 1)],
        crs="EPSG:4326",
    )
    monkeypatch.setattr(acs, "fetch_census_data", lambda **kwargs: _census_frame())
    monkeypatch.setattr(acs, "fetch_county_boundaries", lambda state, year: boundaries)

    gdf = acs.fetch_county_population(year=2022, state="42", api_key="KEY", geometry=True)

    assert isinstance(gdf, gpd.GeoDataFrame)
    assert list(gdf.columns) == ["fips_code", "county_name", "B01003_001E", "geometry"]
    assert len(gdf) == 2
    assert gdf.set_index("fips_code").loc["42001", "geometry"].bounds == (0, 0, 1, 1)


def test_fetch_county_population_missing_columns(monkeypatch):
    monkeypatch.setattr(
        acs, "fetch_census_data", lambda **kwargs: _census_frame().drop(columns=["county"])
    )

    with pytest.raises(CensusAPIError, match="missing columns"):
        acs.fetch_county_population(year=2022, state="42", api_key="KEY")
