"""Plotly building blocks shared by the desktop and mobile price maps."""

from dataclasses import dataclass
from typing import Any, Optional

import plotly.graph_objects as go

from woolmap.core.aggregation import RegionStats
from woolmap.core.interaction_state import (
    ContainerRect,
    HoverController,
    TooltipPlacement,
)
from woolmap.core.label_placement import LabelRole
from woolmap.core.projection import ProjectionFrame
from woolmap.core.scene import MapScene, RegionShape

STROKE_COLOR = "#ffffff"
NAME_TEXT_COLOR = "#374151"
METRIC_TEXT_COLOR = "#6b7280"
EMPHASIZED_TEXT_COLOR = "#ffffff"
TOOLTIP_BACKGROUND = "rgba(255,255,255,0.95)"
TOOLTIP_BORDER = "#d1d5db"


@dataclass(frozen=True)
class TooltipOverlay:
    """A tooltip to draw: which region it describes and where it sits in the container."""

    region_id: str
    placement: TooltipPlacement
    container: ContainerRect


def tooltip_overlay_from(controller: HoverController) -> Optional[TooltipOverlay]:
    placement = controller.tooltip_placement()
    if (
        placement is None
        or controller.hovered_region_id is None
        or controller.container is None
    ):
        return None
    return TooltipOverlay(
        region_id=controller.hovered_region_id,
        placement=placement,
        container=controller.container,
    )


def create_region_trace(shape: RegionShape) -> go.Scatter:
    """
    One filled polygon trace per region.

    The region id travels in `meta` and `customdata` so that browser hover and click
    events resolve to a region without a lookup.
    """
    xs, ys = shape.path.to_xy()
    return go.Scatter(
        x=xs,
        y=ys,
        mode="lines",
        fill="toself",
        fillcolor=shape.fill_color,
        opacity=shape.opacity,
        line=dict(color=STROKE_COLOR, width=shape.stroke_width),
        name=shape.name,
        meta=shape.region_id,
        customdata=[shape.region_id] * len(xs),
        hoveron="fills+points",
        hoverinfo="none",
        showlegend=False,
    )


def create_label_annotations(
    shape: RegionShape,
    xref: str = "x",
    yref: str = "y",
    invert_emphasized: bool = False,
) -> list[dict[str, Any]]:
    annotations = []
    for label in shape.labels:
        if invert_emphasized and shape.is_emphasized:
            color = EMPHASIZED_TEXT_COLOR
        elif label.role == LabelRole.NAME:
            color = NAME_TEXT_COLOR
        else:
            color = METRIC_TEXT_COLOR
        annotations.append(
            dict(
                text=f"<b>{label.text}</b>" if label.role == LabelRole.NAME else label.text,
                x=label.x,
                y=label.y,
                xref=xref,
                yref=yref,
                showarrow=False,
                font=dict(size=label.font_size, color=color),
                xanchor="center",
                yanchor="middle",
                captureevents=False,
            )
        )
    return annotations


def configure_map_axes(
    fig: go.Figure,
    frame: ProjectionFrame,
    x_domain: Optional[list[float]] = None,
    row: Optional[int] = None,
    col: Optional[int] = None,
) -> None:
    """Pin the axes to the frame's viewBox, with y growing downward like SVG."""
    xaxis: dict[str, Any] = dict(
        range=[0, frame.view_box_width],
        visible=False,
        fixedrange=True,
    )
    if x_domain is not None:
        xaxis["domain"] = x_domain
    fig.update_xaxes(**xaxis, row=row, col=col)
    fig.update_yaxes(
        range=[frame.view_box_height, 0],
        visible=False,
        fixedrange=True,
        scaleanchor="x",
        scaleratio=1,
        row=row,
        col=col,
    )


def format_tooltip_text(name: str, stats: RegionStats) -> str:
    lines = [f"<b>{name}</b>"]
    if stats.certified_avg > 0:
        lines.append(f"Certified: R{stats.certified_avg:.0f}/kg")
    if stats.has_non_certified:
        lines.append(f"Non-certified: R{stats.non_certified_avg:.0f}/kg")
    if not stats.has_data:
        lines.append("No sales")
    return "<br>".join(lines)


def create_tooltip_annotation(
    scene: MapScene, overlay: TooltipOverlay
) -> Optional[dict[str, Any]]:
    """
    Tooltip box in paper coordinates.

    The placement is in container pixels measured from the top-left corner, and the
    figure fills the container, so the box maps onto paper fractions directly.
    """
    shape = scene.region(overlay.region_id)
    if shape is None:
        return None
    container = overlay.container
    placement = overlay.placement
    return dict(
        text=format_tooltip_text(shape.name, shape.stats),
        x=placement.left / container.width,
        y=1 - placement.top / container.height,
        xref="paper",
        yref="paper",
        xanchor="left",
        yanchor="top",
        width=placement.width,
        height=placement.height,
        showarrow=False,
        align="center",
        bgcolor=TOOLTIP_BACKGROUND,
        bordercolor=TOOLTIP_BORDER,
        borderwidth=1,
        font=dict(size=11, color=NAME_TEXT_COLOR),
        captureevents=False,
    )


def base_layout(frame: ProjectionFrame, title: Optional[str] = None) -> dict[str, Any]:
    return dict(
        title=title,
        width=frame.view_box_width,
        height=frame.view_box_height,
        margin=dict(l=0, r=0, t=30 if title else 0, b=0),
        hovermode="closest",
        dragmode=False,
        showlegend=False,
        plot_bgcolor="rgba(0,0,0,0)",
        paper_bgcolor="rgba(0,0,0,0)",
    )
