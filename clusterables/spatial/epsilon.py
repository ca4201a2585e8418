"""
Clustering radius derived from screen spacing.

The viewport is only known through a capability that converts a screen offset
into a geographic coordinate under the current zoom and projection. The radius
is the longitude span covered by ``pixels`` horizontal screen points starting
at the screen origin. Latitude-dependent distortion and vertical spacing are
ignored; the result is a scalar degree radius that a cluster engine can use
as-is.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, Optional, Protocol, Tuple, Union

from .aggregation import Coordinate


logger = logging.getLogger(__name__)

ScreenPoint = Tuple[float, float]


class Viewport(Protocol):
    """Screen-to-geographic conversion supplied by the rendering side."""

    def convert(self, point: ScreenPoint) -> Optional[Coordinate]:
        """Return the coordinate under ``point`` or ``None`` when unresolved."""
        ...


ViewportLike = Union[Viewport, Callable[[ScreenPoint], Optional[Coordinate]]]


def _converter(viewport: ViewportLike) -> Callable[[ScreenPoint], Optional[Coordinate]]:
    convert = getattr(viewport, "convert", None)
    if callable(convert):
        return convert
    if callable(viewport):
        return viewport
    raise TypeError(f"Unsupported viewport type: {type(viewport).__name__}")


def _safe_convert(convert, point: ScreenPoint) -> Optional[Coordinate]:
    try:
        return convert(point)
    except Exception as e:
        logger.debug(f"Viewport conversion failed for {point}: {e}")
        return None


def degrees_from_pixels(pixels: float, viewport: ViewportLike) -> Optional[float]:
    """
    Convert a horizontal pixel distance into degrees of longitude.

    Args:
        pixels: Positive screen distance
        viewport: Object with ``convert(point)`` or a plain conversion callable

    Returns:
        Absolute longitude difference in degrees, or ``None`` when the
        viewport cannot resolve either screen point (e.g. not laid out yet)

    Example:
        >>> eps = degrees_from_pixels(30, viewport)
        >>> if eps is not None:
        ...     groups = engine(points, eps, 1)
    """
    if not pixels > 0:
        logger.debug(f"Ignoring non-positive pixel spacing: {pixels}")
        return None

    convert = _converter(viewport)
    origin = _safe_convert(convert, (0.0, 0.0))
    offset = _safe_convert(convert, (float(pixels), 0.0))
    if origin is None or offset is None:
        return None

    epsilon = abs(origin.lng - offset.lng)
    if not math.isfinite(epsilon):
        return None
    return epsilon
