"""Web Mercator viewport used as the screen-to-geographic capability."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple

from clusterables.spatial import Coordinate


TILE_SIZE = 256
MAX_LATITUDE = 85.05112878


@dataclass(frozen=True)
class MercatorViewport:
    """
    A map view defined by its centre, zoom level and pixel size.

    Screen points are measured from the top-left corner. Until the view has
    a positive size (i.e. it has not been laid out) every conversion fails.
    """

    center_lat: float
    center_lng: float
    zoom: float
    width: int
    height: int
    tile_size: int = TILE_SIZE

    @property
    def world_size(self) -> float:
        """Width of the whole world in pixels at the current zoom."""
        return self.tile_size * (2.0 ** self.zoom)

    def project(self, lat: float, lng: float) -> Tuple[float, float]:
        """Geographic coordinate to world pixel coordinates."""
        lat = max(-MAX_LATITUDE, min(MAX_LATITUDE, lat))
        siny = math.sin(math.radians(lat))
        x = (lng + 180.0) / 360.0 * self.world_size
        y = (0.5 - math.log((1 + siny) / (1 - siny)) / (4 * math.pi)) * self.world_size
        return x, y

    def unproject(self, x: float, y: float) -> Coordinate:
        """World pixel coordinates to a geographic coordinate."""
        lng = x / self.world_size * 360.0 - 180.0
        n = math.pi - 2.0 * math.pi * y / self.world_size
        lat = math.degrees(math.atan(math.sinh(n)))
        return Coordinate(lat=lat, lng=lng)

    def convert(self, point: Tuple[float, float]) -> Optional[Coordinate]:
        """Coordinate under screen ``point``, or None before layout."""
        if self.width <= 0 or self.height <= 0:
            return None
        cx, cy = self.project(self.center_lat, self.center_lng)
        x = cx - self.width / 2.0 + point[0]
        y = cy - self.height / 2.0 + point[1]
        return self.unproject(x, y)
