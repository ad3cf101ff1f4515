"""
Pennsylvania Beneficiary Atlas - Application Settings
Manages environment variables and configuration using Pydantic
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Optional
import os


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Required at run time (checked by the pipeline, not at import):
        - CENSUS_API_KEY

    Optional:
        - BENEFICIARY_DATA_PATH (local SSA beneficiary CSV)
    """

    # External APIs
    CENSUS_API_KEY: Optional[str] = None

    # Application
    ENVIRONMENT: str = "production"
    LOG_LEVEL: str = "INFO"

    # Rate limiting (requests per minute)
    CENSUS_API_RATE_LIMIT: int = 8  # Conservative: 500/day = ~8/min

    # Data sources
    CENSUS_API_BASE_URL: str = "https://api.census.gov/data"
    CENSUS_API_TIMEOUT: int = 30

    # Pennsylvania state identifiers
    PA_STATE_FIPS: str = "42"
    PA_STATE_ABBR: str = "PA"

    # ACS query defaults
    ACS_SURVEY: str = "acs5"
    ACS_POPULATION_VARIABLE: str = "B01003_001E"  # Total population
    ACS_EARLIER_YEAR: int = 2012
    ACS_LATER_YEAR: int = 2022

    # Local inputs
    BENEFICIARY_DATA_PATH: str = "data/oasdi_beneficiaries_pa.csv"

    # Map output
    MAP_CRS: str = "EPSG:4326"

    # File storage
    EXPORT_DIR: str = "exports"
    LOG_DIR: str = "logs"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Create directories if they don't exist
        os.makedirs(self.EXPORT_DIR, exist_ok=True)
        os.makedirs(self.LOG_DIR, exist_ok=True)


@lru_cache()
def get_settings() -> Settings:
    """
    Returns cached settings instance.
    Uses lru_cache to avoid re-reading .env on every call.
    """
    return Settings()


# Column names expected in the SSA beneficiary extract
BENEFICIARY_ID_COLUMN = "ANSI"
BENEFICIARY_COLUMNS = {
    "ANSI": "fips_code",
    "Over65": "over65_count",
    "DisabledWorkers": "disabled_worker_count",
}

# Output artifact stems (written under EXPORT_DIR)
POPULATION_CHANGE_STEM = "pa_population_change"
RATIO_STEM = "pa_disabled_over65_ratio"
