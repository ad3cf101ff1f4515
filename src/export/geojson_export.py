"""
Pennsylvania Beneficiary Atlas - GeoJSON Export
Writes the derived county tables as map-ready GeoJSON

Outputs:
- exports/{stem}_latest.geojson (always current)
- exports/{stem}_{YYYYMMDD}.geojson (versioned snapshots)
"""

import hashlib
import os
from datetime import datetime
from typing import Optional

import geopandas as gpd
import pandas as pd

from config.settings import get_settings
from src.utils.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()

EXPORT_CRS = "EPSG:4326"

RATIO_COLUMNS = [
    "pop_change",
    "over65_share",
    "disabled_share",
    "double_ratio",
]


def prepare_geojson_properties(gdf: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    """
    Round ratio columns and reproject for export.

    Returns a new GeoDataFrame; the input is left untouched.
    """
    out = gdf.copy()

    for col in RATIO_COLUMNS:
        if col in out.columns:
            out[col] = pd.to_numeric(out[col], errors="coerce").round(6)

    if out.crs is not None and out.crs != EXPORT_CRS:
        out = out.to_crs(EXPORT_CRS)

    out["last_updated"] = datetime.utcnow().isoformat()
    return out


def write_geojson(gdf: gpd.GeoDataFrame, output_path: str, indent: Optional[int] = None) -> str:
    """
    Write a GeoDataFrame as GeoJSON, NaN values as null.

    Args:
        gdf: GeoDataFrame to export
        output_path: Output file path
        indent: JSON indentation (None for compact, 2 for readable)

    Returns:
        Path to exported file
    """
    logger.info(f"Exporting GeoJSON to {output_path}")

    os.makedirs(os.path.dirname(output_path) or ".", exist_ok=True)

    payload = gdf.to_json(na="null", indent=indent)
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(payload)

    file_size = os.path.getsize(output_path)
    logger.info(f"Exported {len(gdf)} features, file size: {file_size / 1024:.1f} KB")

    return output_path


def calculate_file_checksum(file_path: str) -> str:
    """SHA256 hex digest of a file."""
    sha256 = hashlib.sha256()

    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            sha256.update(chunk)

    return sha256.hexdigest()


def export_geojson(
    gdf: gpd.GeoDataFrame,
    stem: str,
    export_dir: Optional[str] = None,
    versioned: bool = True,
) -> dict:
    """
    Export a derived county table.

    Args:
        gdf: Table with geometry
        stem: File name prefix, e.g. 'pa_population_change'
        export_dir: Output directory (default: settings.EXPORT_DIR)
        versioned: If True, create dated snapshot in addition to 'latest'

    Returns:
        Dict with export metadata
    """
    if not isinstance(gdf, gpd.GeoDataFrame):
        raise ValueError(f"{stem}: export requires a GeoDataFrame")

    export_dir = export_dir or settings.EXPORT_DIR
    prepared = prepare_geojson_properties(gdf)

    latest_path = os.path.join(export_dir, f"{stem}_latest.geojson")
    write_geojson(prepared, latest_path, indent=None)  # Compact for production

    versioned_path = None
    if versioned:
        version = datetime.utcnow().strftime("%Y%m%d")
        versioned_path = os.path.join(export_dir, f"{stem}_{version}.geojson")
        write_geojson(prepared, versioned_path, indent=2)  # Readable for archive

    return {
        "record_count": len(prepared),
        "latest_path": latest_path,
        "versioned_path": versioned_path,
        "checksum": calculate_file_checksum(latest_path),
    }
