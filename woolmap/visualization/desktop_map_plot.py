"""Desktop Map Plot Module.

Full-size provincial price map with hover dimming, a cursor tooltip and a legend panel.
"""

from typing import Any, Optional

import plotly.graph_objects as go

from woolmap.core.scene import MapScene
from woolmap.visualization.plot_common import (
    METRIC_TEXT_COLOR,
    NAME_TEXT_COLOR,
    TooltipOverlay,
    base_layout,
    configure_map_axes,
    create_label_annotations,
    create_region_trace,
    create_tooltip_annotation,
)

DEFAULT_TITLE = "Average price per province"
# The map occupies the left part of the figure; the legend panel the rest.
MAP_DOMAIN = [0.0, 0.75]
LEGEND_LEFT = 0.78
SWATCH_HEIGHT = 0.05


def _legend_annotation(
    text: str, y: float, size: int = 11, color: str = NAME_TEXT_COLOR
) -> dict[str, Any]:
    return dict(
        text=text,
        x=LEGEND_LEFT,
        y=y,
        xref="paper",
        yref="paper",
        xanchor="left",
        yanchor="middle",
        showarrow=False,
        align="left",
        font=dict(size=size, color=color),
    )


def _create_legend(scene: MapScene) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    """Legend panel: price bounds around five swatches, then range and average."""
    legend = scene.legend
    annotations = [_legend_annotation("<b>Price (ZAR/kg)</b>", 0.92, size=12)]
    shapes = []

    if not legend.has_data or legend.price_range is None:
        annotations.append(
            _legend_annotation("No price data", 0.8, color=METRIC_TEXT_COLOR)
        )
        return annotations, shapes

    price_range = legend.price_range
    annotations.append(_legend_annotation(f"R{price_range.max_price:.0f}", 0.85))
    # Darkest at the top.
    top = 0.81
    for index, color in enumerate(reversed(legend.colors)):
        y1 = top - index * SWATCH_HEIGHT
        shapes.append(
            dict(
                type="rect",
                xref="paper",
                yref="paper",
                x0=LEGEND_LEFT,
                x1=LEGEND_LEFT + 0.05,
                y0=y1 - SWATCH_HEIGHT,
                y1=y1,
                fillcolor=color,
                line=dict(color="#ffffff", width=1),
            )
        )
    bottom = top - len(legend.colors) * SWATCH_HEIGHT
    annotations.append(
        _legend_annotation(f"R{price_range.min_price:.0f}", bottom - 0.04)
    )
    annotations.append(
        _legend_annotation(
            f"Range: R{price_range.span:.0f}",
            bottom - 0.14,
            color=METRIC_TEXT_COLOR,
        )
    )
    if legend.average_price is not None:
        annotations.append(
            _legend_annotation(
                f"Average: R{legend.average_price:.0f}",
                bottom - 0.2,
                color=METRIC_TEXT_COLOR,
            )
        )
    annotations.append(
        _legend_annotation(
            "Hover a province<br>for details",
            bottom - 0.3,
            size=10,
            color=METRIC_TEXT_COLOR,
        )
    )
    return annotations, shapes


def create_desktop_map_plot(
    scene: MapScene,
    tooltip: Optional[TooltipOverlay] = None,
    title: Optional[str] = DEFAULT_TITLE,
) -> go.Figure:
    """Create the full-size price map for a scene built with the desktop profile."""
    fig = go.Figure()
    for shape in scene.regions:
        fig.add_trace(create_region_trace(shape))

    annotations = []
    for shape in scene.regions:
        annotations.extend(create_label_annotations(shape))

    legend_annotations, legend_shapes = _create_legend(scene)
    annotations.extend(legend_annotations)

    if tooltip is not None:
        tooltip_annotation = create_tooltip_annotation(scene, tooltip)
        if tooltip_annotation is not None:
            annotations.append(tooltip_annotation)

    if not scene.regions:
        annotations.append(
            dict(
                text="No regions to display",
                x=0.375,
                y=0.5,
                xref="paper",
                yref="paper",
                showarrow=False,
                font=dict(size=16),
            )
        )

    layout = base_layout(scene.frame, title)
    layout["width"] = scene.frame.view_box_width / (MAP_DOMAIN[1] - MAP_DOMAIN[0])
    fig.update_layout(**layout, annotations=annotations, shapes=legend_shapes)
    configure_map_axes(fig, scene.frame, x_domain=MAP_DOMAIN)
    return fig
