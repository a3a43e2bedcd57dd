"""Static provincial boundary dataset and the registry that loads it once."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import geopandas as gpd
from shapely.geometry.base import BaseGeometry

logger = logging.getLogger(__name__)

DEFAULT_BOUNDARIES_PATH = (
    Path(__file__).parent.parent / "data" / "za_provinces.geojson"
)

# Neighbouring territory that appears in source data and in the boundary dataset,
# but is not a target region: it is never aggregated or drawn.
EXCLUDED_REGION_NAME = "Lesotho"
EXCLUDED_REGION_ID = "LS"

# Province ids as used by the rest of the dashboard, in display order.
PROVINCE_NAMES_BY_REGION_ID: dict[str, str] = {
    "ZA-EC": "Eastern Cape",
    "ZA-FS": "Free State",
    "ZA-GP": "Gauteng",
    "ZA-KZN": "KwaZulu-Natal",
    "ZA-LP": "Limpopo",
    "ZA-MP": "Mpumalanga",
    "ZA-NC": "Northern Cape",
    "ZA-NW": "North West",
    "ZA-WC": "Western Cape",
}

RECOGNIZED_REGION_NAMES: tuple[str, ...] = tuple(PROVINCE_NAMES_BY_REGION_ID.values())

# The boundary dataset uses compact feature ids.
GEOJSON_ID_TO_REGION_ID: dict[str, str] = {
    "ZANC": "ZA-NC",
    "ZAKZN": "ZA-KZN",
    "ZAFS": "ZA-FS",
    "ZAEC": "ZA-EC",
    "ZALP": "ZA-LP",
    "ZANW": "ZA-NW",
    "ZAMP": "ZA-MP",
    "ZAWC": "ZA-WC",
    "ZAGP": "ZA-GP",
    "LS": EXCLUDED_REGION_ID,
}


@dataclass(frozen=True)
class RegionBoundary:
    """
    Reference geometry for one administrative region.

    `geometry` is the shapely geometry of the source feature, in (longitude, latitude),
    or None when the feature has none. Shapely geometries are immutable. The geometry
    is not validated here; the projector degrades on unusable shapes.
    """

    region_id: str
    name: str
    geometry: Optional[BaseGeometry]

    @property
    def geometry_type(self) -> str:
        return self.geometry.geom_type if self.geometry is not None else "None"

    @property
    def is_excluded(self) -> bool:
        return is_excluded_region(self.region_id, self.name)


def is_excluded_region(region_id: Optional[str], name: Optional[str] = None) -> bool:
    return region_id == EXCLUDED_REGION_ID or name == EXCLUDED_REGION_NAME


def _as_text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value:
        return value
    return None


def _boundaries_from_frame(gdf: gpd.GeoDataFrame) -> tuple[RegionBoundary, ...]:
    if "id" not in gdf.columns:
        raise ValueError("Boundary features have no id property")
    names = gdf["name"] if "name" in gdf.columns else [None] * len(gdf)

    boundaries = []
    for index, (feature_id, raw_name, geometry) in enumerate(
        zip(gdf["id"], names, gdf.geometry)
    ):
        feature_id = _as_text(feature_id)
        if feature_id is None:
            raise ValueError(f"Feature {index} has no string id")
        region_id = GEOJSON_ID_TO_REGION_ID.get(feature_id, feature_id)
        name = _as_text(raw_name) or PROVINCE_NAMES_BY_REGION_ID.get(region_id)
        if not name:
            raise ValueError(f"Feature {index} ({feature_id=}) has no name")

        boundary = RegionBoundary(region_id=region_id, name=name, geometry=geometry)
        if boundary.geometry_type not in ("Polygon", "MultiPolygon"):
            logger.warning(
                f"Region {region_id} has unsupported geometry {boundary.geometry_type=}; "
                "it will not be drawn"
            )
        boundaries.append(boundary)
    return tuple(boundaries)


def load_region_boundaries(geojson_path: Path) -> tuple[RegionBoundary, ...]:
    """
    Load region boundaries from a GeoJSON FeatureCollection.

    Args:
        geojson_path: Path to the GeoJSON file

    Returns:
        Boundaries in file order, including any excluded territory
    """
    if not geojson_path.exists():
        raise FileNotFoundError(f"Boundary file not found: {geojson_path}")

    try:
        gdf = gpd.read_file(geojson_path)
    except Exception as e:
        raise ValueError(f"Unreadable boundary file {geojson_path}: {e}") from e

    boundaries = _boundaries_from_frame(gdf)
    logger.info(f"Loaded {len(boundaries)} region boundaries from {geojson_path=}")
    return boundaries


class RegionBoundaryRegistry:
    """
    Holds the process-wide boundary dataset.

    The dataset is read from disk on first access and never again; callers share
    the same immutable tuple of boundaries afterwards.
    """

    def __init__(self, geojson_path: Path = DEFAULT_BOUNDARIES_PATH) -> None:
        self.geojson_path = geojson_path
        self._boundaries: Optional[tuple[RegionBoundary, ...]] = None

    @property
    def is_loaded(self) -> bool:
        return self._boundaries is not None

    def get_boundaries(self) -> tuple[RegionBoundary, ...]:
        """Return all boundaries, loading them on first use."""
        if self._boundaries is None:
            self._boundaries = load_region_boundaries(self.geojson_path)
        return self._boundaries

    def get_renderable_boundaries(self) -> tuple[RegionBoundary, ...]:
        """Return the boundaries that are drawn on the map."""
        return tuple(b for b in self.get_boundaries() if not b.is_excluded)

    def get_boundary(self, region_id: str) -> Optional[RegionBoundary]:
        for boundary in self.get_boundaries():
            if boundary.region_id == region_id:
                return boundary
        return None

    @property
    def renderable_region_ids(self) -> frozenset[str]:
        return frozenset(b.region_id for b in self.get_renderable_boundaries())
