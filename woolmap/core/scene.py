"""Presentation-agnostic scene building shared by the desktop and mobile maps."""

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Mapping, Optional, Sequence

import numpy as np

from woolmap.core.aggregation import RegionStats
from woolmap.core.backend_frontend_shared_schema import RenderTarget
from woolmap.core.color_classifier import (
    FALLBACK_COLOR,
    TIER_COLORS,
    ColorClassifier,
    PriceRange,
)
from woolmap.core.label_placement import (
    DESKTOP_LABEL_STYLE,
    MOBILE_LABEL_STYLE,
    LabelAnchor,
    LabelStyle,
    PlacedLabel,
    compute_label_anchor,
    stack_labels,
)
from woolmap.core.projection import (
    DESKTOP_FRAME,
    MOBILE_FRAME,
    ProjectedPath,
    ProjectionFrame,
    project_geometry,
)
from woolmap.core.regions import RegionBoundary

logger = logging.getLogger(__name__)

# Added to the hovered region's metric before coloring, so it darkens slightly.
HOVER_METRIC_BOOST = 5.0


class EmphasisMode(StrEnum):
    NONE = "none"
    HOVER = "hover"
    SELECT = "select"


@dataclass(frozen=True)
class SceneEmphasis:
    """Which region, if any, the current interaction highlights."""

    region_id: Optional[str] = None
    mode: EmphasisMode = EmphasisMode.NONE

    @classmethod
    def hover(cls, region_id: Optional[str]) -> "SceneEmphasis":
        if region_id is None:
            return cls()
        return cls(region_id=region_id, mode=EmphasisMode.HOVER)

    @classmethod
    def selection(cls, region_id: Optional[str]) -> "SceneEmphasis":
        if region_id is None:
            return cls()
        return cls(region_id=region_id, mode=EmphasisMode.SELECT)


@dataclass(frozen=True)
class TargetProfile:
    """Everything that differs between the two presentations of the map."""

    target: RenderTarget
    frame: ProjectionFrame
    label_style: LabelStyle
    stroke_width: float
    emphasized_stroke_width: float
    idle_opacity: float
    dimmed_opacity: float


DESKTOP_PROFILE = TargetProfile(
    target=RenderTarget.DESKTOP,
    frame=DESKTOP_FRAME,
    label_style=DESKTOP_LABEL_STYLE,
    stroke_width=2.0,
    emphasized_stroke_width=2.0,
    idle_opacity=1.0,
    dimmed_opacity=0.5,
)
MOBILE_PROFILE = TargetProfile(
    target=RenderTarget.MOBILE,
    frame=MOBILE_FRAME,
    label_style=MOBILE_LABEL_STYLE,
    stroke_width=1.5,
    emphasized_stroke_width=3.0,
    idle_opacity=0.9,
    dimmed_opacity=0.9,
)

PROFILES_BY_TARGET: dict[RenderTarget, TargetProfile] = {
    RenderTarget.DESKTOP: DESKTOP_PROFILE,
    RenderTarget.MOBILE: MOBILE_PROFILE,
}


@dataclass(frozen=True)
class RegionShape:
    region_id: str
    name: str
    path: ProjectedPath
    stats: RegionStats
    metric: float
    fill_color: str
    opacity: float
    stroke_width: float
    is_emphasized: bool
    anchor: LabelAnchor
    labels: tuple[PlacedLabel, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "region_id": self.region_id,
            "name": self.name,
            "svg_path": self.path.to_svg_path(),
            "stats": self.stats.to_dict(),
            "metric": self.metric,
            "fill_color": self.fill_color,
            "opacity": self.opacity,
            "stroke_width": self.stroke_width,
            "is_emphasized": self.is_emphasized,
            "is_small": self.anchor.is_small,
            "labels": [
                {
                    "text": label.text,
                    "x": label.x,
                    "y": label.y,
                    "font_size": label.font_size,
                    "role": label.role,
                }
                for label in self.labels
            ],
        }


@dataclass(frozen=True)
class LegendSpec:
    colors: tuple[str, ...]
    price_range: Optional[PriceRange]
    average_price: Optional[float]

    @property
    def has_data(self) -> bool:
        return self.price_range is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "colors": list(self.colors),
            "min_price": self.price_range.min_price if self.price_range else None,
            "max_price": self.price_range.max_price if self.price_range else None,
            "average_price": self.average_price,
        }


@dataclass(frozen=True)
class MapScene:
    profile: TargetProfile
    regions: tuple[RegionShape, ...]
    legend: LegendSpec
    emphasis: SceneEmphasis = field(default_factory=SceneEmphasis)

    @property
    def frame(self) -> ProjectionFrame:
        return self.profile.frame

    def region(self, region_id: str) -> Optional[RegionShape]:
        for shape in self.regions:
            if shape.region_id == region_id:
                return shape
        return None

    @property
    def regions_with_data(self) -> int:
        return sum(1 for shape in self.regions if shape.stats.has_data)

    def to_dict(self) -> dict[str, Any]:
        frame = self.frame
        return {
            "target": self.profile.target,
            "view_box": [0, 0, frame.view_box_width, frame.view_box_height],
            "emphasis": {"region_id": self.emphasis.region_id, "mode": self.emphasis.mode},
            "regions": [shape.to_dict() for shape in self.regions],
            "legend": self.legend.to_dict(),
        }


def metric_lines(stats: RegionStats, style: LabelStyle) -> list[str]:
    """One or two price lines shown under a region's name."""
    if stats.certified_avg > 0:
        lines = [style.metric_format.format(stats.certified_avg)]
        if stats.has_non_certified:
            lines.append(style.non_certified_format.format(stats.non_certified_avg))
        return lines
    if stats.has_non_certified:
        return [style.non_certified_format.format(stats.non_certified_avg)]
    return [style.no_data_text]


def _average_metric(stats: Sequence[RegionStats]) -> Optional[float]:
    metrics = [s.display_metric for s in stats if s.display_metric > 0]
    if not metrics:
        return None
    return float(np.mean(metrics))


def build_scene(
    boundaries: Sequence[RegionBoundary],
    region_stats: Mapping[str, RegionStats],
    profile: TargetProfile,
    emphasis: Optional[SceneEmphasis] = None,
) -> MapScene:
    """
    Compose projected geometry, colors and labels for every drawable region.

    The excluded neighbouring territory and regions with unusable geometry are left
    out. Colors are classified against the pooled price range of the regions drawn.

    Args:
        boundaries: Region boundaries, in drawing order
        region_stats: Stats keyed by region name; missing names count as no sales
        profile: Frame, fonts and stroke settings of the render target
        emphasis: Current hover or selection highlight

    Returns:
        The scene for one render
    """
    emphasis = emphasis or SceneEmphasis()
    style = profile.label_style

    drawable = []
    for boundary in boundaries:
        if boundary.is_excluded:
            continue
        path = project_geometry(boundary.geometry, profile.frame, boundary.region_id)
        if path.is_empty:
            logger.warning(f"Region {boundary.region_id} has no drawable geometry, skipping")
            continue
        stats = region_stats.get(boundary.name, RegionStats())
        drawable.append((boundary, path, stats))

    displayed_stats = [stats for _, _, stats in drawable]
    classifier = ColorClassifier.from_stats(displayed_stats)

    shapes = []
    for boundary, path, stats in drawable:
        is_emphasized = (
            emphasis.mode != EmphasisMode.NONE and emphasis.region_id == boundary.region_id
        )
        metric = stats.display_metric
        color_metric = metric
        if is_emphasized and emphasis.mode == EmphasisMode.HOVER and metric > 0:
            color_metric = metric + HOVER_METRIC_BOOST

        if is_emphasized:
            opacity = 1.0
            stroke_width = profile.emphasized_stroke_width
        elif emphasis.mode == EmphasisMode.HOVER and emphasis.region_id is not None:
            opacity = profile.dimmed_opacity
            stroke_width = profile.stroke_width
        else:
            opacity = profile.idle_opacity
            stroke_width = profile.stroke_width

        anchor = compute_label_anchor(boundary.region_id, path.outer_ring, style)
        # A non-empty path always has a non-empty outer ring.
        assert anchor is not None
        labels = stack_labels(anchor, boundary.name, metric_lines(stats, style), style)

        shapes.append(
            RegionShape(
                region_id=boundary.region_id,
                name=boundary.name,
                path=path,
                stats=stats,
                metric=metric,
                fill_color=classifier.color_for(color_metric),
                opacity=opacity,
                stroke_width=stroke_width,
                is_emphasized=is_emphasized,
                anchor=anchor,
                labels=tuple(labels),
            )
        )

    legend = LegendSpec(
        colors=TIER_COLORS if not classifier.is_degenerate else (FALLBACK_COLOR,),
        price_range=classifier.price_range,
        average_price=_average_metric(displayed_stats),
    )
    return MapScene(
        profile=profile, regions=tuple(shapes), legend=legend, emphasis=emphasis
    )
