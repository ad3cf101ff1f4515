import numpy as np
import pytest
from matplotlib.figure import Figure

from src.export.choropleth import diverging_norm, render_choropleth, save_figure


def test_diverging_norm_centres_on_midpoint():
    norm = diverging_norm([0.1, 0.25, -0.1], midpoint=0)

    assert norm.vcenter == 0
    assert norm.vmin == pytest.approx(-0.25)
    assert norm.vmax == pytest.approx(0.25)


def test_diverging_norm_one_sided_data():
    norm = diverging_norm([0.2, 0.3, np.nan], midpoint=0)

    assert norm.vmin < norm.vcenter < norm.vmax
    assert norm(0.3) == pytest.approx(1.0)


def test_diverging_norm_default_midpoint_is_median():
    norm = diverging_norm([1.0, 2.0, 4.0])
    assert norm.vcenter == pytest.approx(2.0)


def test_diverging_norm_constant_values():
    norm = diverging_norm([0.0, 0.0], midpoint=0)
    assert norm.vmin < norm.vcenter < norm.vmax


def test_render_choropleth_with_missing_values(later_raw, tmp_path):
    gdf = later_raw.assign(pop_change=[-0.1, 0.25, np.nan])

    fig = render_choropleth(
        gdf, column="pop_change", title="Population change", legend_label="change", midpoint=0
    )

    assert isinstance(fig, Figure)
    assert fig.axes[0].get_title() == "Population change"

    path = save_figure(fig, tmp_path / "out" / "pop.png")
    assert path.exists()
    assert path.stat().st_size > 0


def test_render_choropleth_all_missing_draws_outlines(later_raw):
    gdf = later_raw.assign(double_ratio=[np.nan, np.nan, np.nan])

    fig = render_choropleth(gdf, column="double_ratio", title="Ratio", legend_label="ratio")
    assert isinstance(fig, Figure)


def test_render_choropleth_requires_geometry(earlier_raw):
    with pytest.raises(ValueError, match="GeoDataFrame"):
        render_choropleth(earlier_raw, column="B01003_001E", title="t", legend_label="l")


def test_render_choropleth_unknown_column(later_raw):
    with pytest.raises(ValueError, match="Column not found"):
        render_choropleth(later_raw, column="nope", title="t", legend_label="l")
