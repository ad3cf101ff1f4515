"""
Pytest configuration and shared fixtures for Pennsylvania Beneficiary Atlas tests.
"""

import geopandas as gpd
import numpy as np
import pandas as pd
import pytest
from shapely.geometry import box


# Sample Pennsylvania county FIPS codes for testing
SAMPLE_FIPS_CODES = [
    "42001",  # Adams County
    "42003",  # Allegheny County
    "42005",  # Armstrong County
]

ESTIMATE = "B01003_001E"


@pytest.fixture
def county_geometries() -> list:
    """Three adjacent unit squares."""
    return [box(i, 0, i + 1, 1) for i in range(3)]


@pytest.fixture
def later_raw(county_geometries) -> gpd.GeoDataFrame:
    """Later-period ACS table as returned by fetch_county_population(geometry=True)."""
    return gpd.GeoDataFrame(
        {
            "fips_code": SAMPLE_FIPS_CODES,
            "county_name": [
                "Adams County, Pennsylvania",
                "Allegheny County, Pennsylvania",
                "Armstrong County, Pennsylvania",
            ],
            ESTIMATE: [110.0, 150.0, 0.0],
        },
        geometry=county_geometries,
        crs="EPSG:4326",
    )


@pytest.fixture
def earlier_raw() -> pd.DataFrame:
    """Earlier-period ACS table (no geometry)."""
    return pd.DataFrame(
        {
            "fips_code": SAMPLE_FIPS_CODES,
            "county_name": [
                "Adams County, Pennsylvania",
                "Allegheny County, Pennsylvania",
                "Armstrong County, Pennsylvania",
            ],
            ESTIMATE: [100.0, 200.0, 50.0],
        }
    )


@pytest.fixture
def sample_beneficiaries() -> pd.DataFrame:
    """Beneficiary counts, one county with a suppressed disabled count."""
    return pd.DataFrame(
        {
            "fips_code": SAMPLE_FIPS_CODES,
            "over65_count": [20.0, 30.0, 4.0],
            "disabled_worker_count": [5.0, np.nan, 1.0],
        }
    )

