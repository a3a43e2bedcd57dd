"""Tests for the desktop map plot."""

import json

import pytest

from woolmap.core.aggregation import RegionStats, aggregate_region_stats
from woolmap.core.color_classifier import FALLBACK_COLOR
from woolmap.core.interaction_state import ContainerRect, PointerPosition, place_tooltip
from woolmap.core.regions import RegionBoundaryRegistry
from woolmap.core.scene import DESKTOP_PROFILE, MapScene, SceneEmphasis, build_scene
from woolmap.visualization.desktop_map_plot import create_desktop_map_plot
from woolmap.visualization.plot_common import TooltipOverlay

STATS = {
    "Eastern Cape": RegionStats(
        certified_avg=180.0, non_certified_avg=175.0, has_non_certified=True
    ),
    "Northern Cape": RegionStats(non_certified_avg=115.0, has_non_certified=True),
}


def _scene(emphasis: SceneEmphasis = SceneEmphasis()) -> MapScene:
    boundaries = RegionBoundaryRegistry().get_boundaries()
    return build_scene(boundaries, STATS, DESKTOP_PROFILE, emphasis)


def _annotation_texts(fig_dict: dict) -> list[str]:
    return [a["text"] for a in fig_dict["layout"].get("annotations", [])]


def test_one_trace_per_region() -> None:
    fig = create_desktop_map_plot(_scene())
    assert len(fig.data) == 9
    region_ids = {trace.meta for trace in fig.data}
    assert "ZA-EC" in region_ids
    assert "LS" not in region_ids
    for trace in fig.data:
        assert trace.fill == "toself"
        assert set(trace.customdata) == {trace.meta}


def test_labels_and_legend() -> None:
    fig_dict = json.loads(create_desktop_map_plot(_scene()).to_json())
    texts = _annotation_texts(fig_dict)
    assert "<b>Eastern Cape</b>" in texts
    assert "180 ZAR/kg" in texts
    assert "175 ZAR/kg non-RWS" in texts
    assert "No sales" in texts
    assert "R180" in texts
    assert "R115" in texts
    assert "Range: R65" in texts
    assert len(fig_dict["layout"]["shapes"]) == 5


def test_axes_follow_view_box() -> None:
    fig = create_desktop_map_plot(_scene())
    assert tuple(fig.layout.xaxis.range) == (0, 600)
    assert tuple(fig.layout.yaxis.range) == (500, 0)
    assert fig.layout.yaxis.scaleanchor == "x"


def test_hover_dims_other_traces() -> None:
    fig = create_desktop_map_plot(_scene(SceneEmphasis.hover("ZA-EC")))
    opacities = {trace.meta: trace.opacity for trace in fig.data}
    assert opacities["ZA-EC"] == 1.0
    assert opacities["ZA-NC"] == 0.5


def test_tooltip_annotation() -> None:
    container = ContainerRect(left=0.0, top=0.0, width=800.0, height=500.0)
    placement = place_tooltip(PointerPosition(400.0, 250.0), container)
    overlay = TooltipOverlay(region_id="ZA-EC", placement=placement, container=container)
    fig = create_desktop_map_plot(_scene(SceneEmphasis.hover("ZA-EC")), tooltip=overlay)
    tooltip = [a for a in fig.layout.annotations if a.xref == "paper" and a.bgcolor]
    assert len(tooltip) == 1
    assert "Certified: R180/kg" in tooltip[0].text
    assert "Non-certified: R175/kg" in tooltip[0].text
    assert tooltip[0].x == pytest.approx(placement.left / 800.0)
    assert tooltip[0].y == pytest.approx(1 - placement.top / 500.0)


def test_no_price_data() -> None:
    boundaries = RegionBoundaryRegistry().get_boundaries()
    scene = build_scene(boundaries, aggregate_region_stats(None), DESKTOP_PROFILE)
    fig_dict = json.loads(create_desktop_map_plot(scene).to_json())
    assert "No price data" in _annotation_texts(fig_dict)
    assert {trace["fillcolor"] for trace in fig_dict["data"]} == {FALLBACK_COLOR}
