"""Map projection framework.

A :class:`MapProjection` maps (longitude, latitude) in decimal degrees to
(easting, northing) in metres. Subclasses implement :meth:`_project` and
:meth:`_unproject` on whole arrays of radians. This module handles range checks,
unit conversion, per-point failures and the optional round-trip self-check.

Formulas follow Snyder, "Map Projections - A Working Manual", USGS PP 1395.
"""

from __future__ import annotations

import math
from abc import abstractmethod
from typing import Any, Callable

import numpy as np

from ..core.config import get_settings
from ..core.errors import NonConvergenceError, OutOfDomainError, ProjectionError
from ..core.logging import get_logger
from ..core.matrix import Matrix
from ..core.units import geographic_out_of_range
from ..transform.base import BatchResult, InverseTransform, MathTransform, MathTransform2D, param_mt
from .parameters import ProjectionParameters

logger = get_logger(__name__)

# Tolerance on angles in radians
EPS = 1.0e-6
# Convergence tolerance of iterative formulas
TOL = 1.0e-10
# Self-check tolerance in metres, multiplied by 5 near the edges of the domain
MAX_ERROR = 1.0

# Step sizes of the numerical derivatives
DEGREE_STEP = 1.0e-6
METRE_STEP = 1.0e-3


class PointFailures:
    """Tracks which points of a batch failed and the error of the first one."""

    def __init__(self, size: int):
        self.mask = np.zeros(size, dtype=bool)
        self._first: tuple[int, ProjectionError] | None = None

    def flag(self, mask: np.ndarray, make_error: Callable[[int], ProjectionError]) -> None:
        """Mark points as failed. ``make_error`` builds the error for a point index."""
        new = np.asarray(mask, dtype=bool) & ~self.mask
        if not new.any():
            return
        index = int(np.argmax(new))
        if self._first is None or index < self._first[0]:
            self._first = (index, make_error(index))
        self.mask |= new

    def first_error(self) -> ProjectionError | None:
        return None if self._first is None else self._first[1]

    def count(self) -> int:
        return int(self.mask.sum())


def flag_out_of_range(failures: PointFailures, lon: np.ndarray, lat: np.ndarray) -> None:
    """Flag longitudes and latitudes outside the geographic domain."""
    bad_lon, bad_lat = geographic_out_of_range(lon, lat)
    failures.flag(bad_lon, lambda i: OutOfDomainError(f"Longitude {lon[i]}° is out of range"))
    failures.flag(bad_lat, lambda i: OutOfDomainError(f"Latitude {lat[i]}° is out of range"))


def numeric_derivative(transform: MathTransform, point: np.ndarray, step: float) -> Matrix:
    """Central-difference Jacobian of ``transform`` at ``point``."""
    point = np.asarray(point, dtype=np.float64).reshape(-1)
    n = point.size
    probes = np.repeat(point[np.newaxis, :], 2 * n, axis=0)
    for i in range(n):
        probes[2 * i, i] += step
        probes[2 * i + 1, i] -= step
    values = transform.apply_points(probes)
    jacobian = (values[0::2] - values[1::2]).T / (2.0 * step)
    return Matrix(jacobian)


class MapProjection(MathTransform2D):
    """Base class of cartographic projections.

    Args:
        parameters: Validated projection parameters
        kind: Operation method name, e.g. ``"Mercator_1SP"``
    """

    def __init__(self, parameters: ProjectionParameters, kind: str):
        super().__init__()
        self.parameters = parameters
        self.kind = kind
        self.semi_major = parameters.semi_major
        self.semi_minor = parameters.semi_minor
        self.central_meridian = math.radians(parameters.central_meridian)
        self.latitude_of_origin = math.radians(parameters.latitude_of_origin)
        self.scale_factor = parameters.scale_factor
        self.false_easting = parameters.false_easting
        self.false_northing = parameters.false_northing
        self.es = 1.0 - (self.semi_minor * self.semi_minor) / (self.semi_major * self.semi_major)
        self.e = math.sqrt(self.es)
        self.is_spherical = self.semi_major == self.semi_minor

    @abstractmethod
    def _project(
        self, lam: np.ndarray, phi: np.ndarray, failures: PointFailures
    ) -> tuple[np.ndarray, np.ndarray]:
        """Project radians to metres, false easting and northing included."""

    @abstractmethod
    def _unproject(
        self, x: np.ndarray, y: np.ndarray, failures: PointFailures
    ) -> tuple[np.ndarray, np.ndarray]:
        """Inverse of :meth:`_project`, returning radians."""

    # ------------------------------------------------------------------
    # Batch evaluation
    # ------------------------------------------------------------------

    def _transform_array(self, points: np.ndarray) -> BatchResult:
        lon, lat = points[:, 0], points[:, 1]
        failures = PointFailures(points.shape[0])
        flag_out_of_range(failures, lon, lat)

        lam = np.radians(lon)
        phi = np.radians(lat)
        lam[failures.mask] = np.nan
        phi[failures.mask] = np.nan
        with np.errstate(all="ignore"):
            x, y = self._project(lam, phi, failures)
        out = np.column_stack((x, y))
        out[failures.mask] = np.nan

        self._report(failures, "forward")
        if get_settings().self_check:
            self._check_forward(points, out)
        return out, failures.first_error()

    def _inverse_array(self, points: np.ndarray) -> BatchResult:
        failures = PointFailures(points.shape[0])
        with np.errstate(all="ignore"):
            lam, phi = self._unproject(points[:, 0].copy(), points[:, 1].copy(), failures)
        out = np.column_stack((np.degrees(lam), np.degrees(phi)))
        flag_out_of_range(failures, out[:, 0], out[:, 1])
        out[failures.mask] = np.nan

        self._report(failures, "inverse")
        if get_settings().self_check:
            self._check_inverse(points, out)
        return out, failures.first_error()

    def _report(self, failures: PointFailures, direction: str) -> None:
        if failures.mask.any():
            logger.debug(
                "Projection batch had failures",
                {"kind": self.kind, "direction": direction, "failed": failures.count()},
            )

    # ------------------------------------------------------------------
    # Self-check
    # ------------------------------------------------------------------

    def _tolerance(self, lon: np.ndarray, lat: np.ndarray) -> np.ndarray:
        edge = (np.abs(lon) > 179.0) | (np.abs(lat) > 89.0)
        return np.where(edge, 5.0 * MAX_ERROR, MAX_ERROR)

    def _check_forward(self, geographic: np.ndarray, projected: np.ndarray) -> None:
        """Unproject the results and compare great-circle distances to the input."""
        with np.errstate(all="ignore"):
            lam, phi = self._unproject(
                projected[:, 0].copy(), projected[:, 1].copy(), PointFailures(len(projected))
            )
            y1 = phi
            y2 = np.radians(geographic[:, 1])
            dx = np.radians(np.abs(geographic[:, 0] - np.degrees(lam)) % 360.0)
            rho = np.sin(y1) * np.sin(y2) + np.cos(y1) * np.cos(y2) * np.cos(dx)
            distance = np.arccos(np.clip(rho, -1.0, 1.0)) * self.semi_major
        # NaN distances never fail
        bad = distance > self._tolerance(geographic[:, 0], geographic[:, 1])
        if bad.any():
            i = int(np.argmax(bad))
            raise AssertionError(
                f"{self.kind} round trip of {tuple(geographic[i])} is off by {distance[i]} m"
            )

    def _check_inverse(self, projected: np.ndarray, geographic: np.ndarray) -> None:
        """Project the results again and compare planar distances to the input."""
        with np.errstate(all="ignore"):
            x, y = self._project(
                np.radians(geographic[:, 0]),
                np.radians(geographic[:, 1]),
                PointFailures(len(geographic)),
            )
            distance = np.hypot(x - projected[:, 0], y - projected[:, 1])
        bad = distance > self._tolerance(geographic[:, 0], geographic[:, 1])
        if bad.any():
            i = int(np.argmax(bad))
            raise AssertionError(
                f"{self.kind} round trip of {tuple(projected[i])} is off by {distance[i]} m"
            )

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------

    def derivative_2d(self, x: float, y: float) -> Matrix:
        """Numerical derivative in metres per degree."""
        return numeric_derivative(self, np.array([x, y]), DEGREE_STEP)

    def _create_inverse(self) -> MathTransform:
        return MapProjectionInverse(self)

    def _key(self) -> tuple[Any, ...]:
        return (self.kind, tuple(self.parameters.model_dump().items()))

    def _wkt_parameters(self) -> list[tuple[str, Any]]:
        return [
            ("semi_major", self.semi_major),
            ("semi_minor", self.semi_minor),
            ("central_meridian", self.parameters.central_meridian),
            ("latitude_of_origin", self.parameters.latitude_of_origin),
            ("scale_factor", self.scale_factor),
            ("false_easting", self.false_easting),
            ("false_northing", self.false_northing),
        ]

    def __str__(self) -> str:
        return param_mt(self.kind, self._wkt_parameters())

    # ------------------------------------------------------------------
    # Snyder formulas
    # ------------------------------------------------------------------

    def ensure_in_range(self, x: np.ndarray) -> np.ndarray:
        """Wrap longitudes relative to a non-zero central meridian into [-pi, pi]."""
        if self.central_meridian == 0:
            return x
        x = np.where(x > math.pi, x - 2.0 * math.pi, x)
        return np.where(x < -math.pi, x + 2.0 * math.pi, x)

    def msfn(self, s: Any, c: Any) -> Any:
        """Radius of the parallel divided by the semi-major axis (Snyder 14-15)."""
        return c / np.sqrt(1.0 - s * s * self.es)

    def tsfn(self, phi: Any, sinphi: Any) -> Any:
        """Isometric latitude helper (Snyder 15-9)."""
        sinphi = sinphi * self.e
        return np.tan(0.5 * (math.pi / 2 - phi)) / np.power(
            (1.0 - sinphi) / (1.0 + sinphi), 0.5 * self.e
        )

    def cphi2(self, ts: np.ndarray, failures: PointFailures) -> np.ndarray:
        """Latitude from the isometric helper by iteration (Snyder 7-9).

        Points that do not converge within 16 iterations are set to NaN and
        flagged with a NonConvergenceError.
        """
        ts = np.asarray(ts, dtype=np.float64)
        eccnth = 0.5 * self.e
        phi = math.pi / 2 - 2.0 * np.arctan(ts)
        done = np.isnan(phi)
        for _ in range(16):
            con = self.e * np.sin(phi)
            dphi = math.pi / 2 - 2.0 * np.arctan(ts * np.power((1 - con) / (1 + con), eccnth)) - phi
            phi = np.where(done, phi, phi + dphi)
            done |= np.abs(dphi) <= TOL
            if done.all():
                return phi
        failures.flag(~done, lambda i: NonConvergenceError("Latitude iteration did not converge"))
        return np.where(done, phi, np.nan)


class MapProjectionInverse(InverseTransform, MathTransform2D):
    """Inverse of a map projection: metres to decimal degrees."""

    forward: MapProjection

    def _transform_array(self, points: np.ndarray) -> BatchResult:
        return self.forward._inverse_array(points)

    def derivative_2d(self, x: float, y: float) -> Matrix:
        """Numerical derivative in degrees per metre."""
        return numeric_derivative(self, np.array([x, y]), METRE_STEP)


__all__ = [
    "EPS",
    "TOL",
    "MAX_ERROR",
    "PointFailures",
    "flag_out_of_range",
    "numeric_derivative",
    "MapProjection",
    "MapProjectionInverse",
]
