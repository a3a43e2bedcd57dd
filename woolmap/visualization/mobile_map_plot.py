"""Mobile Map Plot Module.

Compact provincial price map with tap selection and a detail table underneath.
"""

from typing import Optional

import plotly.graph_objects as go
from plotly.subplots import make_subplots

from woolmap.core.aggregation import RegionStats
from woolmap.core.scene import MapScene
from woolmap.visualization.plot_common import (
    NAME_TEXT_COLOR,
    TooltipOverlay,
    base_layout,
    configure_map_axes,
    create_label_annotations,
    create_region_trace,
    create_tooltip_annotation,
)

MAP_ROW_HEIGHT = 0.72
DETAIL_ROW_HEIGHT = 0.28
DETAIL_HEADER_COLOR = "#1e40af"


def _detail_rows(selected: Optional[tuple[str, RegionStats]]) -> tuple[list[str], list[str]]:
    if selected is None:
        return ["Tap a province"], ["to see its prices"]
    name, stats = selected
    labels = [name, "Certified (RWS)"]
    values = ["", f"R{stats.certified_avg:.0f}/kg" if stats.certified_avg > 0 else "-"]
    if stats.has_non_certified:
        labels.append("Non-certified")
        values.append(f"R{stats.non_certified_avg:.0f}/kg")
    if not stats.has_data:
        values[0] = "No sales"
    return labels, values


def create_detail_table(selected: Optional[tuple[str, RegionStats]]) -> go.Table:
    labels, values = _detail_rows(selected)
    return go.Table(
        header=dict(
            values=["Province", "Average price"],
            fill_color=DETAIL_HEADER_COLOR,
            font=dict(color="#ffffff", size=10),
            align="left",
        ),
        cells=dict(
            values=[labels, values],
            fill_color="#f9fafb",
            font=dict(color=NAME_TEXT_COLOR, size=10),
            align="left",
        ),
    )


def create_mobile_map_plot(
    scene: MapScene,
    selected_stats: Optional[tuple[str, RegionStats]] = None,
    tooltip: Optional[TooltipOverlay] = None,
) -> go.Figure:
    """
    Create the compact price map for a scene built with the mobile profile.

    Args:
        scene: Scene with the selection emphasis applied
        selected_stats: Name and stats of the selected province for the detail panel
        tooltip: Hover tooltip, for devices that also have a mouse

    Returns:
        Figure with the map on top and the detail table below
    """
    fig = make_subplots(
        rows=2,
        cols=1,
        specs=[[{"type": "xy"}], [{"type": "table"}]],
        row_heights=[MAP_ROW_HEIGHT, DETAIL_ROW_HEIGHT],
        vertical_spacing=0.02,
    )
    for shape in scene.regions:
        fig.add_trace(create_region_trace(shape), row=1, col=1)
    fig.add_trace(create_detail_table(selected_stats), row=2, col=1)

    annotations = []
    for shape in scene.regions:
        annotations.extend(create_label_annotations(shape, invert_emphasized=True))
    if tooltip is not None:
        tooltip_annotation = create_tooltip_annotation(scene, tooltip)
        if tooltip_annotation is not None:
            annotations.append(tooltip_annotation)

    layout = base_layout(scene.frame)
    layout["height"] = scene.frame.view_box_height / MAP_ROW_HEIGHT
    fig.update_layout(**layout, annotations=annotations)
    configure_map_axes(fig, scene.frame, row=1, col=1)
    return fig
