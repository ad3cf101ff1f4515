"""
Pennsylvania Beneficiary Atlas - Main Pipeline Orchestration

Runs the analysis from Census download through map export.

Pipeline stages:
1. Fetch ACS county population (earlier and later period)
2. Load SSA beneficiary counts
3. Reduce, join and validate
4. Derive population change and beneficiary ratios
5. Render choropleths
6. GeoJSON export

Usage:
    python src/run_pipeline.py
    python src/run_pipeline.py --earlier-year 2012 --later-year 2022 --beneficiaries data/oasdi.csv
"""

import argparse
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple

import pandas as pd

# Ensure project root is on sys.path when running as a script
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from config.settings import POPULATION_CHANGE_STEM, RATIO_STEM, get_settings
from src.export.choropleth import render_choropleth, save_figure
from src.export.geojson_export import export_geojson
from src.ingest.acs_population import fetch_county_population
from src.ingest.beneficiaries import BeneficiaryLoadError, load_beneficiaries
from src.processing.population import join_periods, select_population
from src.processing.ratios import StateAggregate, build_ratio_table
from src.processing.validation import JoinMismatchError, validate_beneficiary_coverage
from src.utils.data_sources import CensusAPIError
from src.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)
settings = get_settings()


def check_prerequisites(api_key: Optional[str], beneficiary_path: str) -> bool:
    """
    Check that all prerequisites are met before running pipeline.

    Returns:
        True if all checks pass, False otherwise
    """
    logger.info("Checking prerequisites")

    if not api_key:
        logger.error("Required environment variable not set: CENSUS_API_KEY")
        return False

    if not os.path.exists(beneficiary_path):
        logger.error(f"Beneficiary file not found: {beneficiary_path}")
        return False

    logger.info("Prerequisites check passed")
    return True


def build_population_change(later_raw: pd.DataFrame, earlier_raw: pd.DataFrame) -> pd.DataFrame:
    """Reduce both period tables and join them into pop_change."""
    estimate = settings.ACS_POPULATION_VARIABLE
    later = select_population(
        later_raw, "later", estimate, keep_geometry="geometry" in later_raw.columns
    )
    earlier = select_population(earlier_raw, "earlier", estimate, keep_name=False)
    return join_periods(later, earlier)


def build_analysis_tables(
    later_raw: pd.DataFrame,
    earlier_raw: pd.DataFrame,
    beneficiaries: pd.DataFrame,
) -> Tuple[pd.DataFrame, pd.DataFrame, StateAggregate]:
    """
    Core of the pipeline: select, join, validate, derive.

    Args:
        later_raw: Later-period ACS table (with geometry for mapping)
        earlier_raw: Earlier-period ACS table
        beneficiaries: Output of load_beneficiaries

    Returns:
        Tuple of (population change table, ratio table, state aggregate)

    Raises:
        JoinMismatchError: beneficiary records with no matching county
    """
    combined = build_population_change(later_raw, earlier_raw)

    validation = validate_beneficiary_coverage(beneficiaries, combined)
    validation.raise_for_failure()

    later = combined.drop(columns=["pop_earlier", "pop_change"])
    ratio_df, aggregate = build_ratio_table(later, beneficiaries)

    return combined, ratio_df, aggregate


def render_figures(
    combined: pd.DataFrame,
    ratio_df: pd.DataFrame,
    earlier_year: int,
    later_year: int,
    output_dir: str,
) -> dict:
    """Render and save both choropleths. Returns figure paths by stem."""
    state = settings.PA_STATE_ABBR

    pop_fig = render_choropleth(
        combined,
        column="pop_change",
        title=f"{state} County Population Change, ACS {earlier_year} to {later_year}",
        legend_label="(earlier - later) / earlier  (negative = growth)",
        midpoint=0,
    )
    ratio_fig = render_choropleth(
        ratio_df,
        column="double_ratio",
        title=f"{state} Disabled Workers to Over-65 Beneficiaries, {later_year}",
        legend_label="County disabled/over-65 share + state disabled/over-65",
    )

    return {
        POPULATION_CHANGE_STEM: str(save_figure(pop_fig, Path(output_dir) / f"{POPULATION_CHANGE_STEM}.png")),
        RATIO_STEM: str(save_figure(ratio_fig, Path(output_dir) / f"{RATIO_STEM}.png")),
    }


def run_pipeline(
    earlier_year: int,
    later_year: int,
    beneficiary_path: str,
    api_key: Optional[str],
    output_dir: Optional[str] = None,
    export_geojson_files: bool = True,
) -> dict:
    """
    Run the full analysis.

    Args:
        earlier_year: ACS year of the earlier period
        later_year: ACS year of the later period (supplies geometry)
        beneficiary_path: Path to the SSA beneficiary CSV
        api_key: Census API key
        output_dir: Directory for figures and GeoJSON (default: settings.EXPORT_DIR)
        export_geojson_files: Also write the derived tables as GeoJSON

    Returns:
        Dict with counts, state aggregate and output paths
    """
    output_dir = output_dir or settings.EXPORT_DIR
    state = settings.PA_STATE_FIPS

    logger.info("=" * 60)
    logger.info("STAGE 1: FETCH ACS POPULATION")
    logger.info("=" * 60)
    later_raw = fetch_county_population(
        year=later_year, state=state, api_key=api_key, survey=settings.ACS_SURVEY, geometry=True
    )
    earlier_raw = fetch_county_population(
        year=earlier_year, state=state, api_key=api_key, survey=settings.ACS_SURVEY, geometry=False
    )

    logger.info("=" * 60)
    logger.info("STAGE 2: LOAD BENEFICIARIES")
    logger.info("=" * 60)
    beneficiaries = load_beneficiaries(beneficiary_path, state_fips=state)

    logger.info("=" * 60)
    logger.info("STAGE 3: JOIN, VALIDATE, DERIVE")
    logger.info("=" * 60)
    combined, ratio_df, aggregate = build_analysis_tables(later_raw, earlier_raw, beneficiaries)

    logger.info("=" * 60)
    logger.info("STAGE 4: RENDER")
    logger.info("=" * 60)
    figures = render_figures(combined, ratio_df, earlier_year, later_year, output_dir)

    exports = {}
    if export_geojson_files:
        logger.info("=" * 60)
        logger.info("STAGE 5: GEOJSON EXPORT")
        logger.info("=" * 60)
        exports[POPULATION_CHANGE_STEM] = export_geojson(combined, POPULATION_CHANGE_STEM, output_dir)
        exports[RATIO_STEM] = export_geojson(ratio_df, RATIO_STEM, output_dir)

    return {
        "county_count": len(combined),
        "beneficiary_count": len(beneficiaries),
        "state_aggregate": aggregate.to_dict(),
        "figures": figures,
        "exports": exports,
    }


def main():
    """Main pipeline orchestration"""

    parser = argparse.ArgumentParser(
        description="Pennsylvania Beneficiary Atlas - Pipeline Orchestration"
    )
    parser.add_argument(
        "--earlier-year",
        type=int,
        default=settings.ACS_EARLIER_YEAR,
        help=f"ACS year of the earlier period (default: {settings.ACS_EARLIER_YEAR})"
    )
    parser.add_argument(
        "--later-year",
        type=int,
        default=settings.ACS_LATER_YEAR,
        help=f"ACS year of the later period (default: {settings.ACS_LATER_YEAR})"
    )
    parser.add_argument(
        "--beneficiaries",
        type=str,
        default=settings.BENEFICIARY_DATA_PATH,
        help="Path to the SSA beneficiary CSV"
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default=settings.EXPORT_DIR,
        help="Directory for figures and GeoJSON"
    )
    parser.add_argument(
        "--no-export",
        action="store_true",
        help="Render figures only, skip GeoJSON export"
    )

    args = parser.parse_args()

    setup_logging("pipeline")

    start_time = datetime.now()
    logger.info("=" * 60)
    logger.info("Pennsylvania Beneficiary Atlas - Pipeline Start")
    logger.info(f"Time: {start_time.isoformat()}")
    logger.info(f"Arguments: {vars(args)}")
    logger.info("=" * 60)

    if args.earlier_year >= args.later_year:
        logger.error("--earlier-year must be before --later-year")
        sys.exit(1)

    api_key = settings.CENSUS_API_KEY
    if not check_prerequisites(api_key, args.beneficiaries):
        logger.error("Prerequisites check failed, exiting")
        sys.exit(1)

    try:
        summary = run_pipeline(
            earlier_year=args.earlier_year,
            later_year=args.later_year,
            beneficiary_path=args.beneficiaries,
            api_key=api_key,
            output_dir=args.output_dir,
            export_geojson_files=not args.no_export,
        )

        duration = (datetime.now() - start_time).total_seconds()
        logger.info("=" * 60)
        logger.info("PIPELINE COMPLETE")
        logger.info(f"Counties: {summary['county_count']}")
        logger.info(f"Figures: {list(summary['figures'].values())}")
        logger.info(f"Duration: {duration:.1f} seconds")
        logger.info("=" * 60)

        sys.exit(0)

    except CensusAPIError as e:
        logger.error(f"Census fetch failed: {e}")
        sys.exit(1)

    except BeneficiaryLoadError as e:
        logger.error(f"Beneficiary load failed: {e}")
        sys.exit(1)

    except JoinMismatchError as e:
        logger.error(f"Validation failed, figures not rendered: {e}")
        sys.exit(1)

    except KeyboardInterrupt:
        logger.warning("Pipeline interrupted by user")
        sys.exit(130)

    except Exception as e:
        logger.error(f"Pipeline failed with unhandled exception: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
