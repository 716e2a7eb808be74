"""Geographic to geocentric conversion and its inverse.

Forward: (longitude°, latitude°[, height m]) to (X, Y, Z) in metres, with X
toward the prime meridian, Y toward 90°E and Z toward the north pole. The
inverse uses the non-iterative method of Toms (1996), "An Efficient Algorithm
for Geocentric to Geodetic Coordinate Conversion".
"""

from __future__ import annotations

from typing import Any

import numpy as np

from ..core.config import get_settings
from ..core.errors import TransformError
from ..core.matrix import Matrix
from ..core.types import PointLike
from ..transform.base import BatchResult, InverseTransform, MathTransform, param_mt
from .base import DEGREE_STEP, METRE_STEP, numeric_derivative
from .parameters import GeocentricParameters

# Self-check tolerance in metres
MAX_ERROR = 0.01
# Cosine of 67.5°, where the height formula switches
COS_67P5 = 0.38268343236508977
# Toms' region 1 constant
AD_C = 1.0026000


class GeocentricTransform(MathTransform):
    """Ellipsoid_To_Geocentric.

    Args:
        parameters: Ellipsoid axes and whether heights are present
    """

    def __init__(self, parameters: GeocentricParameters):
        super().__init__()
        self.parameters = parameters
        self.a = parameters.semi_major
        self.b = parameters.semi_minor
        a2 = self.a * self.a
        b2 = self.b * self.b
        self.e2 = (a2 - b2) / a2
        self.ep2 = (a2 - b2) / b2
        self.has_height = parameters.dim_geographic == 3

    @property
    def dim_source(self) -> int:
        return 3 if self.has_height else 2

    @property
    def dim_target(self) -> int:
        return 3

    def _transform_array(self, points: np.ndarray) -> BatchResult:
        return self.to_geocentric(points), None

    def to_geocentric(self, points: np.ndarray) -> np.ndarray:
        lam = np.radians(points[:, 0])
        phi = np.radians(points[:, 1])
        h = points[:, 2] if points.shape[1] >= 3 else 0.0
        cos_lat = np.cos(phi)
        sin_lat = np.sin(phi)
        rn = self.a / np.sqrt(1.0 - self.e2 * sin_lat * sin_lat)
        return np.column_stack(
            (
                (rn + h) * cos_lat * np.cos(lam),
                (rn + h) * cos_lat * np.sin(lam),
                (rn * (1.0 - self.e2) + h) * sin_lat,
            )
        )

    def to_geographic(self, points: np.ndarray) -> np.ndarray:
        """Toms' conversion of (X, Y, Z) rows to (lon, lat, height) rows."""
        a, b, e2 = self.a, self.b, self.e2
        x, y, z = points[:, 0], points[:, 1], points[:, 2]
        with np.errstate(all="ignore"):
            w2 = x * x + y * y
            w = np.sqrt(w2)
            t0 = z * AD_C
            s0 = np.sqrt(t0 * t0 + w2)
            sin_b0 = t0 / s0
            cos_b0 = w / s0
            t1 = z + b * self.ep2 * sin_b0 ** 3
            total = w - a * e2 * cos_b0 ** 3
            s1 = np.sqrt(t1 * t1 + total * total)
            sin_p1 = t1 / s1
            cos_p1 = total / s1

            longitude = np.degrees(np.arctan2(y, x))
            latitude = np.degrees(np.arctan(sin_p1 / cos_p1))
            rn = a / np.sqrt(1.0 - e2 * sin_p1 * sin_p1)
            height = np.where(
                cos_p1 >= COS_67P5,
                w / cos_p1 - rn,
                np.where(cos_p1 <= -COS_67P5, w / -cos_p1 - rn, z / sin_p1 + rn * (e2 - 1.0)),
            )
        return np.column_stack((longitude, latitude, height))

    def derivative(self, point: PointLike | None = None) -> Matrix:
        """Numerical derivative in metres per degree (and per metre of height)."""
        return numeric_derivative(self, _require_point(self, point), DEGREE_STEP)

    def _create_inverse(self) -> MathTransform:
        return GeocentricInverse(self)

    def _key(self) -> tuple[Any, ...]:
        return (self.a, self.b, self.has_height)

    def _wkt(self, name: str) -> str:
        return param_mt(name, [("semi_major", self.a), ("semi_minor", self.b)])

    def __str__(self) -> str:
        return self._wkt("Ellipsoid_To_Geocentric")


class GeocentricInverse(InverseTransform):
    """Geocentric_To_Ellipsoid, the inverse of a :class:`GeocentricTransform`."""

    forward: GeocentricTransform

    def _transform_array(self, points: np.ndarray) -> BatchResult:
        geographic = self.forward.to_geographic(points)
        if get_settings().self_check:
            self._check(points, geographic)
        if not self.forward.has_height:
            geographic = geographic[:, :2]
        return geographic, None

    def _check(self, geocentric: np.ndarray, geographic: np.ndarray) -> None:
        back = self.forward.to_geocentric(geographic)
        distance = np.sqrt(np.sum((back - geocentric) ** 2, axis=1))
        bad = distance > MAX_ERROR
        if bad.any():
            i = int(np.argmax(bad))
            raise AssertionError(
                f"Geocentric round trip of {tuple(geocentric[i])} is off by {distance[i]} m"
            )

    def derivative(self, point: PointLike | None = None) -> Matrix:
        return numeric_derivative(self, _require_point(self, point), METRE_STEP)

    def __str__(self) -> str:
        return self.forward._wkt("Geocentric_To_Ellipsoid")


def _require_point(transform: MathTransform, point: PointLike | None) -> np.ndarray:
    if point is None:
        raise TransformError(
            f"Cannot compute derivative of {type(transform).__name__} without a point"
        )
    return np.asarray(point, dtype=np.float64)


__all__ = ["GeocentricTransform", "GeocentricInverse", "MAX_ERROR"]
