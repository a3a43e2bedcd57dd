"""Linear projection of (longitude, latitude) geometry into a fixed drawing frame."""

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Optional

from shapely.geometry import Polygon
from shapely.geometry.base import BaseGeometry
from shapely.validation import explain_validity

logger = logging.getLogger(__name__)

Point = tuple[float, float]
Ring = tuple[Point, ...]


@dataclass(frozen=True)
class GeoBoundingBox:
    min_lon: float
    max_lon: float
    min_lat: float
    max_lat: float

    def __post_init__(self) -> None:
        if self.max_lon <= self.min_lon or self.max_lat <= self.min_lat:
            raise ValueError(f"Degenerate geographic bounding box: {self}")


@dataclass(frozen=True)
class ProjectionFrame:
    """
    Geographic bounding box mapped onto a drawing frame.

    The drawn area is `width` x `height`, offset by the margins; the full viewBox is
    therefore (`width` + 2 * `margin_x`) x (`height` + 2 * `margin_y`).
    """

    bbox: GeoBoundingBox
    width: float
    height: float
    margin_x: float
    margin_y: float

    @property
    def view_box_width(self) -> float:
        return self.width + 2 * self.margin_x

    @property
    def view_box_height(self) -> float:
        return self.height + 2 * self.margin_y


SOUTH_AFRICA_BBOX = GeoBoundingBox(
    min_lon=16.5, max_lon=32.9, min_lat=-34.8, max_lat=-22.1
)

# Both frames share one geographic box so shapes are congruent across targets.
DESKTOP_FRAME = ProjectionFrame(
    bbox=SOUTH_AFRICA_BBOX, width=500, height=400, margin_x=50, margin_y=50
)
MOBILE_FRAME = ProjectionFrame(
    bbox=SOUTH_AFRICA_BBOX, width=250, height=200, margin_x=25, margin_y=25
)


@dataclass(frozen=True)
class ProjectedPath:
    """Compound path of projected rings, in drawing-frame coordinates."""

    rings: tuple[Ring, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.rings

    @property
    def outer_ring(self) -> Ring:
        """Outer ring of the first polygon, used for label placement."""
        return self.rings[0] if self.rings else ()

    def points(self) -> list[Point]:
        return [point for ring in self.rings for point in ring]

    def to_svg_path(self, precision: int = 2) -> str:
        """Render as SVG path data; every ring starts with its own move command.

        Rings are closed by their last point, so no close-path command is emitted.
        """
        commands = []
        for ring in self.rings:
            for index, (x, y) in enumerate(ring):
                command = "M" if index == 0 else "L"
                commands.append(f"{command} {x:.{precision}f} {y:.{precision}f}")
        return " ".join(commands)

    def to_xy(self) -> tuple[list[Optional[float]], list[Optional[float]]]:
        """Render as Plotly x/y lists, with a None break between rings."""
        xs: list[Optional[float]] = []
        ys: list[Optional[float]] = []
        for ring_index, ring in enumerate(self.rings):
            if ring_index > 0:
                xs.append(None)
                ys.append(None)
            for x, y in ring:
                xs.append(x)
                ys.append(y)
        return xs, ys


EMPTY_PATH = ProjectedPath()


def project_point(lon: float, lat: float, frame: ProjectionFrame) -> Point:
    """Project one coordinate; y is flipped because latitude grows northward."""
    bbox = frame.bbox
    x = (lon - bbox.min_lon) / (bbox.max_lon - bbox.min_lon) * frame.width
    y = (bbox.max_lat - lat) / (bbox.max_lat - bbox.min_lat) * frame.height
    return x + frame.margin_x, y + frame.margin_y


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def _as_coordinate(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"Coordinate is not a number: {value!r}")
    if not math.isfinite(value):
        raise ValueError(f"Coordinate is not finite: {value!r}")
    return float(value)


def project_ring(ring: Sequence[Sequence[float]], frame: ProjectionFrame) -> Ring:
    """Project one ring of (lon, lat) pairs. Raises on malformed input."""
    if not _is_sequence(ring) or len(ring) == 0:
        raise ValueError("Ring is empty or not a sequence")
    projected = []
    for position in ring:
        if not _is_sequence(position) or len(position) < 2:
            raise ValueError(f"Position is not a (lon, lat) pair: {position!r}")
        projected.append(
            project_point(
                _as_coordinate(position[0]), _as_coordinate(position[1]), frame
            )
        )
    return tuple(projected)


def _explode_polygons(geometry: BaseGeometry) -> list[Polygon]:
    geom_type = geometry.geom_type
    if geom_type == "Polygon":
        return [geometry]
    if geom_type in ("MultiPolygon", "GeometryCollection"):
        polygons: list[Polygon] = []
        for part in geometry.geoms:
            if not part.is_empty:
                polygons.extend(_explode_polygons(part))
        return polygons
    return []


def project_polygon(polygon: Polygon, frame: ProjectionFrame) -> tuple[Ring, ...]:
    """Project the exterior ring of a polygon followed by its holes."""
    rings = [polygon.exterior, *polygon.interiors]
    return tuple(project_ring(list(ring.coords), frame) for ring in rings)


def project_geometry(
    geometry: Optional[BaseGeometry],
    frame: ProjectionFrame,
    region_id: Optional[str] = None,
) -> ProjectedPath:
    """
    Project a Polygon or MultiPolygon into one compound path.

    Each polygon is projected independently and all rings are concatenated in order.
    Empty, non-areal or non-finite geometry never raises: an empty path is returned
    and a diagnostic is logged, and the caller is expected to skip the region.
    Self-intersecting shapes are still drawn, with a warning.

    Args:
        geometry: Shapely geometry in (longitude, latitude)
        frame: Projection frame to map into
        region_id: Only used for diagnostics

    Returns:
        The projected path, or EMPTY_PATH for unusable geometry
    """
    if geometry is None or geometry.is_empty:
        logger.warning(f"Skipping empty geometry for {region_id=}")
        return EMPTY_PATH
    polygons = _explode_polygons(geometry)
    if not polygons:
        logger.warning(f"Skipping {geometry.geom_type} geometry for {region_id=}")
        return EMPTY_PATH
    if not geometry.is_valid:
        logger.warning(f"Invalid geometry for {region_id=}: {explain_validity(geometry)}")

    try:
        rings = [ring for polygon in polygons for ring in project_polygon(polygon, frame)]
    except (TypeError, ValueError) as e:
        logger.warning(f"Skipping unprojectable geometry for {region_id=}: {e}")
        return EMPTY_PATH
    return ProjectedPath(rings=tuple(rings))
