"""Transverse Mercator projection (EPSG method 9807).

Ellipsoidal series from Snyder 8-9/8-10 and the PROJ ``tmerc`` code, with a
Newton iteration for the footpoint latitude of the inverse. Computations are
done on a unit ellipsoid and scaled by ``semi_major * scale_factor``.
"""

from __future__ import annotations

import math

import numpy as np

from ..core.errors import NonConvergenceError, OutOfDomainError
from .base import TOL, MapProjection, PointFailures
from .parameters import TransverseMercatorParameters

# Coefficients of the meridian arc series
C00 = 1.0
C02 = 0.25
C04 = 0.046875
C06 = 0.01953125
C08 = 0.01068115234375
C22 = 0.75
C44 = 0.46875
C46 = 0.01302083333333333333
C48 = 0.00712076822916666666
C66 = 0.36458333333333333333
C68 = 0.00569661458333333333
C88 = 0.3076171875

# Reciprocals of the factorial-like series denominators
FC1 = 1.0  # 1/1
FC2 = 0.5  # 1/2
FC3 = 0.16666666666666666666666  # 1/6
FC4 = 0.08333333333333333333333  # 1/12
FC5 = 0.05  # 1/20
FC6 = 0.03333333333333333333333  # 1/30
FC7 = 0.02380952380952380952380  # 1/42
FC8 = 0.01785714285714285714285  # 1/56

# Convergence of the footpoint latitude iteration
EPS11 = 1.0e-11
MAX_ITERATIONS = 10


class TransverseMercator(MapProjection):
    """Transverse Mercator, with a closed-form branch for spheres."""

    def __init__(
        self, parameters: TransverseMercatorParameters, kind: str = "Transverse_Mercator"
    ):
        super().__init__(parameters, kind)
        es = self.es
        self.esp = es / (1.0 - es)
        self.en0 = C00 - es * (C02 + es * (C04 + es * (C06 + es * C08)))
        self.en1 = es * (C22 - es * (C04 + es * (C06 + es * C08)))
        t = es * es
        self.en2 = t * (C44 - es * (C46 + es * C48))
        t *= es
        self.en3 = t * (C66 - es * C68)
        self.en4 = t * es * C88
        lat0 = self.latitude_of_origin
        self.ml0 = float(self.mlfn(lat0, math.sin(lat0), math.cos(lat0)))
        self.global_scale = self.semi_major * self.scale_factor

    def mlfn(self, phi, sphi, cphi):  # type: ignore[no-untyped-def]
        """Meridian arc length from the equator on the unit ellipsoid."""
        cphi = cphi * sphi
        sphi = sphi * sphi
        return self.en0 * phi - cphi * (
            self.en1 + sphi * (self.en2 + sphi * (self.en3 + sphi * self.en4))
        )

    def inv_mlfn(self, arg: np.ndarray, failures: PointFailures) -> np.ndarray:
        """Latitude of the given meridian arc length, by Newton iteration."""
        k = 1.0 / (1.0 - self.es)
        phi = np.array(arg, dtype=np.float64)
        done = np.isnan(phi)
        for _ in range(MAX_ITERATIONS):
            s = np.sin(phi)
            t = 1.0 - self.es * s * s
            t = (self.mlfn(phi, s, np.cos(phi)) - arg) * (t * np.sqrt(t)) * k
            phi = np.where(done, phi, phi - t)
            done |= np.abs(t) < EPS11
            if done.all():
                return phi
        failures.flag(
            ~done, lambda i: NonConvergenceError("Footpoint latitude iteration did not converge")
        )
        return np.where(done, phi, np.nan)

    def _project(
        self, lam: np.ndarray, phi: np.ndarray, failures: PointFailures
    ) -> tuple[np.ndarray, np.ndarray]:
        x = lam - self.central_meridian
        if self.is_spherical:
            x, y = self._project_spherical(x, phi, failures)
        else:
            x, y = self._project_ellipsoidal(x, phi)
        return (
            self.global_scale * x + self.false_easting,
            self.global_scale * y + self.false_northing,
        )

    def _project_ellipsoidal(self, x: np.ndarray, phi: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        es, esp = self.es, self.esp
        sinphi = np.sin(phi)
        cosphi = np.cos(phi)
        t = np.where(np.abs(cosphi) > TOL, sinphi / cosphi, 0.0)
        t = t * t
        al = cosphi * x
        als = al * al
        al = al / np.sqrt(1.0 - es * sinphi * sinphi)
        n = esp * cosphi * cosphi

        y = self.mlfn(phi, sinphi, cosphi) - self.ml0 + sinphi * al * x * FC2 * (
            1.0
            + FC4 * als * (
                5.0 - t + n * (9.0 + 4.0 * n)
                + FC6 * als * (
                    61.0 + t * (t - 58.0) + n * (270.0 - 330.0 * t)
                    + FC8 * als * (1385.0 + t * (t * (543.0 - t) - 3111.0))
                )
            )
        )
        x = al * (
            FC1
            + FC3 * als * (
                1.0 - t + n
                + FC5 * als * (
                    5.0 + t * (t - 18.0) + n * (14.0 - 58.0 * t)
                    + FC7 * als * (61.0 + t * (t * (179.0 - t) - 479.0))
                )
            )
        )
        return x, y

    def _project_spherical(
        self, x: np.ndarray, phi: np.ndarray, failures: PointFailures
    ) -> tuple[np.ndarray, np.ndarray]:
        cosphi = np.cos(phi)
        b = cosphi * np.sin(x)
        failures.flag(
            np.abs(np.abs(b) - 1.0) <= TOL,
            lambda i: OutOfDomainError("Point is 90° away from the central meridian"),
        )
        yy = cosphi * np.cos(x) / np.sqrt(1.0 - b * b)
        x = 0.5 * np.log((1.0 + b) / (1.0 - b))  # Snyder 8-1
        ayy = np.abs(yy)
        failures.flag(
            ayy - 1.0 > TOL, lambda i: OutOfDomainError("Value tends toward infinity")
        )
        yy = np.where(ayy >= 1.0, 0.0, np.arccos(np.clip(yy, -1.0, 1.0)))
        yy = np.where(phi < 0, -yy, yy)
        return x, yy - self.latitude_of_origin

    def _unproject(
        self, x: np.ndarray, y: np.ndarray, failures: PointFailures
    ) -> tuple[np.ndarray, np.ndarray]:
        x = (x - self.false_easting) / self.global_scale
        y = (y - self.false_northing) / self.global_scale
        if self.is_spherical:
            lam, phi = self._unproject_spherical(x, y)
        else:
            lam, phi = self._unproject_ellipsoidal(x, y, failures)
        return lam + self.central_meridian, phi

    def _unproject_ellipsoidal(
        self, x: np.ndarray, y: np.ndarray, failures: PointFailures
    ) -> tuple[np.ndarray, np.ndarray]:
        es, esp = self.es, self.esp
        phi = self.inv_mlfn(self.ml0 + y, failures)
        polar = np.abs(phi) >= math.pi / 2

        sinphi = np.sin(phi)
        cosphi = np.cos(phi)
        t = np.where(np.abs(cosphi) > TOL, sinphi / cosphi, 0.0)
        n = esp * cosphi * cosphi
        con = 1.0 - es * sinphi * sinphi
        d = x * np.sqrt(con)
        con = con * t
        t = t * t
        ds = d * d

        lat = phi - (con * ds / (1.0 - es)) * FC2 * (
            1.0
            - ds * FC4 * (
                5.0 + t * (3.0 - 9.0 * n) + n * (1.0 - 4 * n)
                - ds * FC6 * (
                    61.0 + t * (90.0 - 252.0 * n + 45.0 * t) + 46.0 * n
                    - ds * FC8 * (1385.0 + t * (3633.0 + t * (4095.0 + 1574.0 * t)))
                )
            )
        )
        lam = d * (
            FC1
            - ds * FC3 * (
                1.0 + 2.0 * t + n
                - ds * FC5 * (
                    5.0 + t * (28.0 + 24 * t + 8.0 * n) + 6.0 * n
                    - ds * FC7 * (61.0 + t * (662.0 + t * (1320.0 + 720.0 * t)))
                )
            )
        ) / cosphi

        lat = np.where(polar, np.where(y < 0.0, -math.pi / 2, math.pi / 2), lat)
        lam = np.where(polar, 0.0, lam)
        return lam, lat

    def _unproject_spherical(self, x: np.ndarray, y: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        t = np.exp(x)
        d = 0.5 * (t - 1.0 / t)
        t = np.cos(self.latitude_of_origin + y)
        phi = np.arcsin(np.sqrt((1.0 - t * t) / (1.0 + d * d)))
        # Sign follows the hemisphere of the footpoint
        phi = np.where(self.latitude_of_origin + y < 0.0, -phi, phi)
        lam = np.where((np.abs(d) <= TOL) & (np.abs(t) <= TOL), 0.0, np.arctan2(d, t))
        return lam, phi

    def zone(self) -> int:
        """UTM or MTM zone number of this projection.

        Raises:
            ValueError: If the parameters are neither UTM nor MTM
        """
        first, width = self._zone_system()
        return self._zone(first, width)

    def zone_central_meridian(self) -> float:
        """Central meridian in degrees of the zone containing this projection's meridian."""
        first, width = self._zone_system()
        t = first + (self._zone(first, width) - 1) * width
        return t - 360.0 * math.floor((t + 180.0) / 360.0)

    def _zone_system(self) -> tuple[float, float]:
        if self.scale_factor == 0.9996 and self.false_easting == 500000.0:
            return -177.0, 6.0
        if self.scale_factor == 0.9999 and self.false_easting == 304800.0:
            return -52.5, -3.0
        raise ValueError("Projection parameters are neither UTM nor MTM")

    def _zone(self, first_central: float, width: float) -> int:
        count = abs(360.0 / width)
        t = first_central - 0.5 * width
        t = math.degrees(self.central_meridian) - t
        t = math.floor(t / width + 1.0e-6)
        t -= count * math.floor(t / count)
        return int(t) + 1


__all__ = ["TransverseMercator"]
