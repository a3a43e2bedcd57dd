"""Label anchors for irregular regions, with manual per-region corrections."""

from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Sequence

from woolmap.core.projection import Point


@dataclass(frozen=True)
class BoundingBox:
    min_x: float
    max_x: float
    min_y: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def center(self) -> Point:
        return (self.min_x + self.max_x) / 2, (self.min_y + self.max_y) / 2


def compute_bounding_box(points: Iterable[Point]) -> Optional[BoundingBox]:
    xs = []
    ys = []
    for x, y in points:
        xs.append(x)
        ys.append(y)
    if not xs:
        return None
    return BoundingBox(min_x=min(xs), max_x=max(xs), min_y=min(ys), max_y=max(ys))


@dataclass(frozen=True)
class LabelCorrection:
    """Moves a label to a fraction of its region's bounding box; None keeps the center."""

    x_fraction: Optional[float] = None
    y_fraction: Optional[float] = None

    def apply(self, bbox: BoundingBox) -> Point:
        center_x, center_y = bbox.center
        if self.x_fraction is not None:
            center_x = bbox.min_x + bbox.width * self.x_fraction
        if self.y_fraction is not None:
            center_y = bbox.min_y + bbox.height * self.y_fraction
        return center_x, center_y


# Regions whose bounding-box center lands near an edge or outside the shape.
LABEL_CORRECTIONS: Mapping[str, LabelCorrection] = MappingProxyType(
    {
        "ZA-KZN": LabelCorrection(y_fraction=0.4),
        "ZA-EC": LabelCorrection(x_fraction=0.4, y_fraction=0.7),
        "ZA-WC": LabelCorrection(y_fraction=0.7),
        "ZA-NC": LabelCorrection(y_fraction=0.6),
        "ZA-GP": LabelCorrection(y_fraction=0.6),
        "ZA-MP": LabelCorrection(y_fraction=0.6),
        "ZA-FS": LabelCorrection(x_fraction=0.3, y_fraction=0.6),
    }
)


@dataclass(frozen=True)
class LabelStyle:
    """Per-target label sizing and text formats."""

    name_font_size: float
    metric_font_size: float
    small_name_font_size: float
    small_metric_font_size: float
    line_height: float
    small_line_height: float
    # Regions narrower or shorter than this (in frame units) get the small fonts.
    small_region_threshold: float
    metric_format: str
    non_certified_format: str
    no_data_text: str
    short_names: bool = False

    def format_name(self, name: str) -> str:
        return name.split(" ")[0] if self.short_names else name


DESKTOP_LABEL_STYLE = LabelStyle(
    name_font_size=12,
    metric_font_size=11,
    small_name_font_size=9,
    small_metric_font_size=8,
    line_height=12,
    small_line_height=9,
    small_region_threshold=60.0,
    metric_format="{:.0f} ZAR/kg",
    non_certified_format="{:.0f} ZAR/kg non-RWS",
    no_data_text="No sales",
)

MOBILE_LABEL_STYLE = LabelStyle(
    name_font_size=8,
    metric_font_size=6,
    small_name_font_size=6,
    small_metric_font_size=5,
    line_height=8,
    small_line_height=6,
    small_region_threshold=30.0,
    metric_format="R{:.0f}",
    non_certified_format="NC R{:.0f}",
    no_data_text="-",
    short_names=True,
)


@dataclass(frozen=True)
class LabelAnchor:
    center_x: float
    center_y: float
    bbox: BoundingBox
    is_small: bool


class LabelRole(StrEnum):
    NAME = "name"
    METRIC = "metric"


@dataclass(frozen=True)
class PlacedLabel:
    text: str
    x: float
    y: float
    font_size: float
    role: LabelRole


def compute_label_anchor(
    region_id: str,
    outer_ring: Sequence[Point],
    style: LabelStyle,
    corrections: Mapping[str, LabelCorrection] = LABEL_CORRECTIONS,
) -> Optional[LabelAnchor]:
    """
    Anchor point for a region's labels.

    The default is the center of the outer ring's bounding box; regions listed in
    `corrections` are nudged to a fixed fraction of that box instead.

    Returns:
        The anchor, or None when the ring has no points
    """
    bbox = compute_bounding_box(outer_ring)
    if bbox is None:
        return None
    correction = corrections.get(region_id)
    center_x, center_y = correction.apply(bbox) if correction else bbox.center
    is_small = (
        bbox.width < style.small_region_threshold
        or bbox.height < style.small_region_threshold
    )
    return LabelAnchor(
        center_x=center_x, center_y=center_y, bbox=bbox, is_small=is_small
    )


def stack_labels(
    anchor: LabelAnchor,
    name: str,
    metric_lines: Sequence[str],
    style: LabelStyle,
) -> list[PlacedLabel]:
    """Place the name just above the anchor and each metric line below it."""
    if anchor.is_small:
        line_height = style.small_line_height
        name_size = style.small_name_font_size
        metric_size = style.small_metric_font_size
    else:
        line_height = style.line_height
        name_size = style.name_font_size
        metric_size = style.metric_font_size

    labels = [
        PlacedLabel(
            text=style.format_name(name),
            x=anchor.center_x,
            y=anchor.center_y - line_height / 2,
            font_size=name_size,
            role=LabelRole.NAME,
        )
    ]
    for index, line in enumerate(metric_lines):
        labels.append(
            PlacedLabel(
                text=line,
                x=anchor.center_x,
                y=anchor.center_y + line_height / 2 + index * line_height,
                font_size=metric_size,
                role=LabelRole.METRIC,
            )
        )
    return labels
