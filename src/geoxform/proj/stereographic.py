"""Stereographic projections (EPSG methods 9809 and 9810).

Polar_Stereographic is centred on a pole and follows Snyder 21-33 to 21-39,
with scale either given at the pole or made true on a chosen parallel.

Oblique_Stereographic is the "double" stereographic: latitudes are first
mapped conformally onto a sphere, which is then projected stereographically
about the origin. On a sphere the first step is the identity.
"""

from __future__ import annotations

import math
from typing import Any

import numpy as np

from ..core.errors import NonConvergenceError, OutOfDomainError
from .base import EPS, MapProjection, PointFailures
from .parameters import ObliqueStereographicParameters, PolarStereographicParameters

# Iteration budget and tolerance of the conformal latitude inverse
MAX_ITERATIONS = 10
GAUSS_TOL = 1.0e-14


class PolarStereographic(MapProjection):
    """Stereographic projection centred on the north or south pole."""

    def __init__(self, parameters: PolarStereographicParameters, kind: str = "Polar_Stereographic"):
        super().__init__(parameters, kind)
        self.south_pole = parameters.latitude_of_origin < 0
        true_scale = parameters.latitude_true_scale
        if true_scale is None:
            true_scale = -90.0 if self.south_pole else 90.0
        self.latitude_true_scale = math.radians(true_scale)

        phic = abs(self.latitude_true_scale)
        at_pole = abs(phic - math.pi / 2) < EPS
        if self.is_spherical:
            k0 = 2.0 if at_pole else 1.0 + math.sin(phic)
        elif at_pole:
            e = self.e
            k0 = 2.0 / math.sqrt(math.pow(1 + e, 1 + e) * math.pow(1 - e, 1 - e))
        else:
            sinphic = math.sin(phic)
            k0 = float(self.msfn(sinphic, math.cos(phic))) / float(self.tsfn(phic, sinphic))
        self.ak0 = self.semi_major * self.scale_factor * k0

    def _project(
        self, lam: np.ndarray, phi: np.ndarray, failures: PointFailures
    ) -> tuple[np.ndarray, np.ndarray]:
        # Fold the south polar aspect onto the north one
        phi_n = -phi if self.south_pole else phi
        failures.flag(
            np.abs(phi_n + math.pi / 2) < EPS,
            lambda i: OutOfDomainError(
                f"Can't project the opposite pole at latitude {math.degrees(phi[i])}°"
            ),
        )
        theta = self.ensure_in_range(lam - self.central_meridian)
        sinphi = np.sin(phi_n)
        if self.is_spherical:
            rho = self.ak0 * np.cos(phi_n) / (1.0 + sinphi)
        else:
            rho = self.ak0 * self.tsfn(phi_n, sinphi)
        x = rho * np.sin(theta)
        y = rho * np.cos(theta)
        if not self.south_pole:
            y = -y
        return x + self.false_easting, y + self.false_northing

    def _unproject(
        self, x: np.ndarray, y: np.ndarray, failures: PointFailures
    ) -> tuple[np.ndarray, np.ndarray]:
        x = x - self.false_easting
        y = y - self.false_northing
        if self.south_pole:
            y = -y
        rho = np.hypot(x, y)
        ts = rho / self.ak0
        if self.is_spherical:
            phi = math.pi / 2 - 2.0 * np.arctan(ts)
        else:
            phi = self.cphi2(ts, failures)
        theta = np.where(rho < EPS, 0.0, np.arctan2(x, -y))
        lam = self.ensure_in_range(self.central_meridian + theta)
        return lam, (-phi if self.south_pole else phi)

    def _wkt_parameters(self) -> list[tuple[str, Any]]:
        params = super()._wkt_parameters()
        if self.parameters.latitude_true_scale is not None:
            params.append(("latitude_true_scale", self.parameters.latitude_true_scale))
        return params


class ObliqueStereographic(MapProjection):
    """Double stereographic projection about an arbitrary origin."""

    def __init__(
        self, parameters: ObliqueStereographicParameters, kind: str = "Oblique_Stereographic"
    ):
        super().__init__(parameters, kind)
        es, e = self.es, self.e
        lat0 = self.latitude_of_origin
        sphi = math.sin(lat0)
        cos2 = math.cos(lat0) ** 2

        # Diameter of the conformal sphere, in semi-major axes
        self.r2 = 2.0 * math.sqrt(1.0 - es) / (1.0 - es * sphi * sphi)
        self.c = math.sqrt(1.0 + es * cos2 * cos2 / (1.0 - es))
        self.chi0 = math.asin(sphi / self.c)
        self.sinchi0 = math.sin(self.chi0)
        self.coschi0 = math.cos(self.chi0)
        self.ratexp = 0.5 * self.c * e
        self.k = math.tan(0.5 * self.chi0 + math.pi / 4) / (
            math.pow(math.tan(0.5 * lat0 + math.pi / 4), self.c) * self._srat(e * sphi, self.ratexp)
        )
        self.ak0 = self.semi_major * self.scale_factor

    @staticmethod
    def _srat(esinp: Any, exponent: float) -> Any:
        return np.power((1.0 - esinp) / (1.0 + esinp), exponent)

    def _project(
        self, lam: np.ndarray, phi: np.ndarray, failures: PointFailures
    ) -> tuple[np.ndarray, np.ndarray]:
        lam = self.ensure_in_range(lam - self.central_meridian) * self.c
        chi = (
            2.0 * np.arctan(
                self.k
                * np.power(np.tan(0.5 * phi + math.pi / 4), self.c)
                * self._srat(self.e * np.sin(phi), self.ratexp)
            )
            - math.pi / 2
        )
        sinchi = np.sin(chi)
        coschi = np.cos(chi)
        coslam = np.cos(lam)
        denominator = 1.0 + self.sinchi0 * sinchi + self.coschi0 * coschi * coslam
        failures.flag(
            denominator < EPS,
            lambda i: OutOfDomainError("Can't project the antipode of the projection origin"),
        )
        k = self.ak0 * self.r2 / denominator
        x = k * coschi * np.sin(lam)
        y = k * (self.coschi0 * sinchi - self.sinchi0 * coschi * coslam)
        return x + self.false_easting, y + self.false_northing

    def _unproject(
        self, x: np.ndarray, y: np.ndarray, failures: PointFailures
    ) -> tuple[np.ndarray, np.ndarray]:
        x = (x - self.false_easting) / self.ak0
        y = (y - self.false_northing) / self.ak0
        rho = np.hypot(x, y)
        c = 2.0 * np.arctan2(rho, self.r2)
        sinc = np.sin(c)
        cosc = np.cos(c)

        lam = np.arctan2(x * sinc, rho * self.coschi0 * cosc - y * self.sinchi0 * sinc) / self.c
        at_origin = rho < EPS
        safe_rho = np.where(at_origin, 1.0, rho)
        chi = np.where(
            at_origin,
            self.chi0,
            np.arcsin(np.clip(cosc * self.sinchi0 + y * sinc * self.coschi0 / safe_rho, -1.0, 1.0)),
        )

        # Conformal latitude back to geodetic latitude
        num = np.power(np.tan(0.5 * chi + math.pi / 4) / self.k, 1.0 / self.c)
        phi = chi
        done = np.isnan(chi)
        for _ in range(MAX_ITERATIONS):
            updated = 2.0 * np.arctan(num * self._srat(self.e * np.sin(phi), -0.5 * self.e)) - math.pi / 2
            converged = np.abs(updated - phi) < GAUSS_TOL
            phi = np.where(done, phi, updated)
            done |= converged
            if done.all():
                break
        else:
            failures.flag(~done, lambda i: NonConvergenceError("Conformal latitude did not converge"))
            phi = np.where(done, phi, np.nan)

        return self.ensure_in_range(lam + self.central_meridian), phi


__all__ = ["PolarStereographic", "ObliqueStereographic"]
