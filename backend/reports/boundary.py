"""
reports.boundary — Municipal boundary point-in-polygon test.

The boundary is a GeoJSON ``Polygon`` or ``MultiPolygon`` (bare, or
wrapped in a ``Feature`` / ``FeatureCollection``).  Coordinates are
``[longitude, latitude]`` as GeoJSON prescribes.  The first ring of each
polygon is its outline; further rings are holes.

Geometry is delegated to shapely.  A point on an outline or on the edge
of a hole counts as inside (``covers``, not ``contains``).

It is loaded once when the ``reports`` app starts (see ``apps.py``) and
never changes afterwards.
"""

from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from typing import Any

from shapely.errors import ShapelyError
from shapely.geometry import MultiPolygon, Point, Polygon, shape
from shapely.prepared import prep

logger = logging.getLogger(__name__)


class BoundaryError(ValueError):
    """The boundary file is missing or is not a usable GeoJSON polygon."""


def _to_polygons(geometry: dict[str, Any]) -> list[Polygon]:
    try:
        parsed = shape(geometry)
    except (ShapelyError, ValueError, TypeError, IndexError, KeyError) as exc:
        raise BoundaryError(f"Malformed {geometry.get('type')}: {exc}") from exc

    polygons = list(parsed.geoms) if isinstance(parsed, MultiPolygon) else [parsed]
    for polygon in polygons:
        if polygon.is_empty or polygon.area == 0:
            raise BoundaryError("A polygon outline must enclose an area.")
    return polygons


def _collect_polygons(geojson: Any) -> list[Polygon]:
    if not isinstance(geojson, dict):
        raise BoundaryError("GeoJSON root must be an object.")

    kind = geojson.get("type")
    if kind == "FeatureCollection":
        polygons: list[Polygon] = []
        for feature in geojson.get("features") or []:
            polygons.extend(_collect_polygons(feature))
        return polygons
    if kind == "Feature":
        return _collect_polygons(geojson.get("geometry"))
    if kind in ("Polygon", "MultiPolygon"):
        if not geojson.get("coordinates"):
            return []
        return _to_polygons(geojson)
    raise BoundaryError(f"Unsupported GeoJSON type '{kind}'.")


def _as_float(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except (OverflowError, ValueError):
        return None
    return number if math.isfinite(number) else None


class BoundaryValidator:
    """
    Immutable multi-polygon with a ``contains(lat, lng)`` test.

    ``contains`` never raises: a coordinate that is not a finite number
    or is out of the WGS84 range is simply outside.
    """

    def __init__(self, polygons: list[Polygon]) -> None:
        polygons = [p for p in polygons if not p.is_empty]
        if not polygons:
            raise BoundaryError("The boundary contains no polygon.")
        self._shape = MultiPolygon(polygons)
        self._prepared = prep(self._shape)

    @classmethod
    def from_geojson(cls, geojson: dict[str, Any]) -> BoundaryValidator:
        return cls(_collect_polygons(geojson))

    @classmethod
    def from_file(cls, path: str | Path) -> BoundaryValidator:
        path = Path(path)
        try:
            with path.open(encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            raise BoundaryError(f"Cannot read boundary file {path}: {exc}") from exc
        validator = cls.from_geojson(data)
        logger.info(
            "Loaded municipal boundary from %s (%d polygon(s), bounds=%s)",
            path,
            validator.polygon_count,
            validator._shape.bounds,
        )
        return validator

    @property
    def polygon_count(self) -> int:
        return len(self._shape.geoms)

    @staticmethod
    def is_valid_coordinate(lat: Any, lng: Any) -> bool:
        lat, lng = _as_float(lat), _as_float(lng)
        if lat is None or lng is None:
            return False
        return -90 <= lat <= 90 and -180 <= lng <= 180

    def contains(self, lat: Any, lng: Any) -> bool:
        """``True`` when the point lies inside the municipal boundary or on its edge."""
        if not self.is_valid_coordinate(lat, lng):
            return False
        return self._prepared.covers(Point(float(lng), float(lat)))
