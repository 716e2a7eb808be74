"""Albers Conic Equal Area projection (EPSG method 9822).

Snyder 14-1 to 14-21. The cone constants ``n``, ``c`` and ``rho0`` are derived
once at construction from the two standard parallels.
"""

from __future__ import annotations

import math
from typing import Any

import numpy as np

from ..core.errors import NonConvergenceError, OutOfDomainError
from ..core.units import latitude_to_radians
from .base import EPS, TOL, MapProjection, PointFailures
from .parameters import AlbersParameters

# Below this eccentricity the authalic latitude series degenerate to the sphere
ECCENTRICITY_EPS = 1.0e-7
MAX_ITERATIONS = 15


class AlbersEqualArea(MapProjection):
    """Conic equal-area projection, ellipsoidal or spherical."""

    def __init__(self, parameters: AlbersParameters, kind: str = "Albers_Conic_Equal_Area"):
        super().__init__(parameters, kind)
        self.phi1 = phi1 = latitude_to_radians(parameters.standard_parallel1)
        self.phi2 = phi2 = latitude_to_radians(parameters.standard_parallel2)
        if abs(phi1 + phi2) < EPS:
            raise OutOfDomainError(
                f"Standard parallels {math.degrees(phi1)}° and {math.degrees(phi2)}° are antipodal"
            )

        sinphi = math.sin(phi1)
        cosphi = math.cos(phi1)
        n = sinphi
        secant = abs(phi1 - phi2) >= EPS
        sinlat0 = math.sin(self.latitude_of_origin)
        if self.is_spherical:
            if secant:
                n = 0.5 * (n + math.sin(phi2))
            self.c = cosphi * cosphi + 2.0 * n * sinphi
            self.rho0 = math.sqrt(self.c - 2.0 * n * sinlat0) / n
            self.ec = math.nan
        else:
            m1 = float(self.msfn(sinphi, cosphi))
            q1 = float(self.qsfn(sinphi))
            if secant:
                m2 = float(self.msfn(math.sin(phi2), math.cos(phi2)))
                q2 = float(self.qsfn(math.sin(phi2)))
                n = (m1 * m1 - m2 * m2) / (q2 - q1)
            self.c = m1 * m1 + n * q1
            self.rho0 = math.sqrt(self.c - n * float(self.qsfn(sinlat0))) / n
            # Value of q at the poles
            self.ec = 1.0 - 0.5 * (1.0 - self.es) * math.log((1.0 - self.e) / (1.0 + self.e)) / self.e
        self.n = n
        self.ak0 = self.semi_major * self.scale_factor

    def qsfn(self, sinphi: Any) -> Any:
        """Authalic latitude helper ``q`` (Snyder 3-12)."""
        if self.e < ECCENTRICITY_EPS:
            return 2.0 * sinphi
        con = self.e * sinphi
        return (1.0 - self.es) * (
            sinphi / (1.0 - con * con) - (0.5 / self.e) * np.log((1.0 - con) / (1.0 + con))
        )

    def _phi_from_q(self, qs: np.ndarray, failures: PointFailures) -> np.ndarray:
        """Latitude from ``q`` by iteration (Snyder 3-16)."""
        phi = np.arcsin(0.5 * qs)
        if self.e < ECCENTRICITY_EPS:
            return phi
        e, one_es = self.e, 1.0 - self.es
        done = np.isnan(qs)
        for _ in range(MAX_ITERATIONS):
            sinphi = np.sin(phi)
            con = e * sinphi
            com = 1.0 - con * con
            dphi = (
                0.5 * com * com / np.cos(phi)
                * (qs / one_es - sinphi / com + 0.5 / e * np.log((1.0 - con) / (1.0 + con)))
            )
            phi = np.where(done, phi, phi + dphi)
            done |= np.abs(dphi) <= TOL
            if done.all():
                return phi
        failures.flag(~done, lambda i: NonConvergenceError("Authalic latitude did not converge"))
        return np.where(done, phi, np.nan)

    def _project(
        self, lam: np.ndarray, phi: np.ndarray, failures: PointFailures
    ) -> tuple[np.ndarray, np.ndarray]:
        n = self.n
        theta = self.ensure_in_range(lam - self.central_meridian) * n
        if self.is_spherical:
            rho = self.c - 2.0 * n * np.sin(phi)
        else:
            rho = self.c - n * self.qsfn(np.sin(phi))
        failures.flag(
            rho < 0.0,
            lambda i: OutOfDomainError(f"Latitude {math.degrees(phi[i])}° is outside the cone"),
        )
        rho = np.sqrt(rho) / n
        x = self.ak0 * rho * np.sin(theta) + self.false_easting
        y = self.ak0 * (self.rho0 - rho * np.cos(theta)) + self.false_northing
        return x, y

    def _unproject(
        self, x: np.ndarray, y: np.ndarray, failures: PointFailures
    ) -> tuple[np.ndarray, np.ndarray]:
        n = self.n
        x = (x - self.false_easting) / self.ak0
        y = self.rho0 - (y - self.false_northing) / self.ak0
        rho = np.hypot(x, y)
        if n < 0:
            rho, x, y = -rho, -x, -y
        lam = self.ensure_in_range(self.central_meridian + np.arctan2(x, y) / n)

        rn = rho * n
        if self.is_spherical:
            s = (self.c - rn * rn) / (2.0 * n)
            phi = np.where(np.abs(s) <= 1.0, np.arcsin(np.clip(s, -1.0, 1.0)), np.copysign(math.pi / 2, s))
        else:
            q = (self.c - rn * rn) / n
            pole = np.abs(self.ec - np.abs(q)) <= ECCENTRICITY_EPS
            outside = np.abs(q) > self.ec + ECCENTRICITY_EPS
            failures.flag(outside, lambda i: OutOfDomainError(f"Point {i} lies beyond the poles"))
            phi = self._phi_from_q(np.where(pole | outside, 0.0, q), failures)
            phi = np.where(pole, np.copysign(math.pi / 2, q), phi)

        apex = rho == 0.0
        lam = np.where(apex, self.central_meridian, lam)
        phi = np.where(apex, math.copysign(math.pi / 2, n), phi)
        return lam, phi

    def _wkt_parameters(self) -> list[tuple[str, Any]]:
        params = [p for p in super()._wkt_parameters() if p[0] != "scale_factor"]
        params.append(("standard_parallel1", self.parameters.standard_parallel1))
        params.append(("standard_parallel2", self.parameters.standard_parallel2))
        return params


__all__ = ["AlbersEqualArea"]
