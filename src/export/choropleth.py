"""
Pennsylvania Beneficiary Atlas - Choropleth Rendering
Draws county maps with a diverging color scale

Outputs:
- exports/pa_population_change.png (midpoint 0)
- exports/pa_disabled_over65_ratio.png (midpoint: column median)
"""

from pathlib import Path
from typing import Optional, Union

import matplotlib

matplotlib.use("Agg")

import geopandas as gpd
import matplotlib.pyplot as plt
import numpy as np
from matplotlib.colors import TwoSlopeNorm
from matplotlib.figure import Figure

from src.utils.logging import get_logger

logger = get_logger(__name__)

MISSING_COLOR = "lightgrey"
EDGE_COLOR = "white"


def diverging_norm(values, midpoint: Optional[float] = None) -> TwoSlopeNorm:
    """
    Build a TwoSlopeNorm centred on midpoint with a symmetric span.

    The span covers the farthest finite value, so data lying entirely on
    one side of the midpoint still maps to one half of the colormap.
    """
    finite = np.asarray(values, dtype=float)
    finite = finite[np.isfinite(finite)]

    if midpoint is None:
        midpoint = float(np.median(finite)) if finite.size else 0.0

    span = float(np.max(np.abs(finite - midpoint))) if finite.size else 0.0
    if not np.isfinite(span) or span == 0:
        span = abs(midpoint) * 0.1 or 1.0

    return TwoSlopeNorm(vcenter=midpoint, vmin=midpoint - span, vmax=midpoint + span)


def render_choropleth(
    gdf: gpd.GeoDataFrame,
    column: str,
    title: str,
    legend_label: str,
    midpoint: Optional[float] = None,
    cmap: str = "RdBu_r",
    figsize: tuple = (11, 7),
) -> Figure:
    """
    Render a county choropleth.

    Args:
        gdf: Table with a geometry column and the fill column
        column: Numeric column used for fill
        title: Figure title
        legend_label: Colorbar label
        midpoint: Center of the diverging scale (default: column median)
        cmap: Diverging matplotlib colormap name

    Returns:
        matplotlib Figure (caller saves or closes it)
    """
    if not isinstance(gdf, gpd.GeoDataFrame) or "geometry" not in gdf.columns:
        raise ValueError("render_choropleth requires a GeoDataFrame with geometry")
    if column not in gdf.columns:
        raise ValueError(f"Column not found: {column}")

    values = gdf[column].astype(float)
    fig, ax = plt.subplots(1, 1, figsize=figsize)

    if values.notna().any():
        norm = diverging_norm(values, midpoint)
        gdf.plot(
            column=column,
            cmap=cmap,
            norm=norm,
            linewidth=0.5,
            edgecolor=EDGE_COLOR,
            legend=True,
            legend_kwds={"label": legend_label, "shrink": 0.6},
            missing_kwds={"color": MISSING_COLOR, "label": "No data"},
            ax=ax,
        )
    else:
        logger.warning(f"No values to plot for {column}; drawing outlines only")
        gdf.plot(color=MISSING_COLOR, linewidth=0.5, edgecolor=EDGE_COLOR, ax=ax)

    ax.set_title(title, fontsize=14)
    ax.axis("off")
    fig.tight_layout()

    logger.info(f"Rendered choropleth for {column}: {int(values.notna().sum())}/{len(values)} counties with data")
    return fig


def save_figure(fig: Figure, path: Union[str, Path], dpi: int = 150) -> Path:
    """Write a figure to PNG and close it."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        fig.savefig(path, dpi=dpi, bbox_inches="tight")
    finally:
        plt.close(fig)
    logger.info(f"Saved figure: {path}")
    return path
