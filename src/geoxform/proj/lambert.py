"""Lambert Conformal Conic projection (EPSG methods 9801, 9802 and 9803).

The constants ``n``, ``F`` and ``rho0`` are derived once at construction
(Snyder 15-1 to 15-7). The Belgium variant rotates the grid by a small fixed
angle.
"""

from __future__ import annotations

import math
from typing import Any

import numpy as np

from ..core.errors import OutOfDomainError
from ..core.logging import get_logger
from ..core.units import latitude_to_radians
from .base import EPS, MapProjection, PointFailures
from .parameters import LambertConformalParameters

logger = get_logger(__name__)

# Grid rotation of the Belgian Lambert 1972 system, in radians
BELGE_A = 0.00014204313635987700


class LambertConformal(MapProjection):
    """Conic conformal projection with one or two standard parallels."""

    def __init__(
        self,
        parameters: LambertConformalParameters,
        kind: str = "Lambert_Conformal_Conic_2SP",
    ):
        super().__init__(parameters, kind)
        self.sp2 = kind != "Lambert_Conformal_Conic_1SP"
        self.belgium = kind == "Lambert_Conformal_Conic_2SP_Belgium"
        if self.sp2:
            self.phi1 = latitude_to_radians(parameters.standard_parallel1)
            self.phi2 = latitude_to_radians(parameters.standard_parallel2)
        else:
            # Single standard parallel at the latitude of origin
            logger.warning(
                "Lambert_Conformal_Conic_1SP is not validated; results may be inaccurate",
                {"latitude_of_origin": parameters.latitude_of_origin},
            )
            self.phi1 = self.phi2 = self.latitude_of_origin

        self.ak0 = self.semi_major * self.scale_factor
        phi1, phi2 = self.phi1, self.phi2
        if abs(phi1 + phi2) < EPS:
            raise OutOfDomainError(
                f"Standard parallels {math.degrees(phi1)}° and {math.degrees(phi2)}° are antipodal"
            )

        cosphi1 = math.cos(phi1)
        sinphi1 = math.sin(phi1)
        secant = abs(phi1 - phi2) > EPS
        lat0 = self.latitude_of_origin
        at_pole = abs(abs(lat0) - math.pi / 2) < EPS
        if self.is_spherical:
            if secant:
                self.n = math.log(cosphi1 / math.cos(phi2)) / math.log(
                    math.tan(math.pi / 4 + 0.5 * phi2) / math.tan(math.pi / 4 + 0.5 * phi1)
                )
            else:
                self.n = sinphi1
            self.F = cosphi1 * math.pow(math.tan(math.pi / 4 + 0.5 * phi1), self.n) / self.n
            self.rho0 = 0.0 if at_pole else self.F * math.pow(math.tan(math.pi / 4 + 0.5 * lat0), -self.n)
        else:
            m1 = float(self.msfn(sinphi1, cosphi1))
            t1 = float(self.tsfn(phi1, sinphi1))
            if secant:
                sinphi2 = math.sin(phi2)
                m2 = float(self.msfn(sinphi2, math.cos(phi2)))
                t2 = float(self.tsfn(phi2, sinphi2))
                self.n = math.log(m1 / m2) / math.log(t1 / t2)
            else:
                self.n = sinphi1
            self.F = m1 * math.pow(t1, -self.n) / self.n
            self.rho0 = 0.0 if at_pole else self.F * math.pow(float(self.tsfn(lat0, math.sin(lat0))), self.n)

    def _project(
        self, lam: np.ndarray, phi: np.ndarray, failures: PointFailures
    ) -> tuple[np.ndarray, np.ndarray]:
        n = self.n
        pole = np.abs(np.abs(phi) - math.pi / 2) < EPS
        failures.flag(
            pole & (phi * n <= 0),
            lambda i: OutOfDomainError(f"Can't project the pole at latitude {math.degrees(phi[i])}°"),
        )
        if self.is_spherical:
            rho = self.F * np.power(np.tan(math.pi / 4 + 0.5 * phi), -n)
        else:
            rho = self.F * np.power(self.tsfn(phi, np.sin(phi)), n)
        rho = np.where(pole, 0.0, rho)

        theta = self.ensure_in_range(lam - self.central_meridian) * n
        if self.belgium:
            theta = theta - BELGE_A
        y = self.ak0 * (self.rho0 - rho * np.cos(theta)) + self.false_northing
        x = self.ak0 * (rho * np.sin(theta)) + self.false_easting
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
        theta = np.arctan2(x, y)
        if self.belgium:
            theta = theta + BELGE_A
        lam = self.ensure_in_range(self.central_meridian + theta / n)
        if self.is_spherical:
            phi = 2.0 * np.arctan(np.power(self.F / rho, 1.0 / n)) - math.pi / 2
        else:
            phi = self.cphi2(np.power(rho / self.F, 1.0 / n), failures)

        # Zero radius is the pole of the cone
        apex = np.abs(rho) <= EPS
        lam = np.where(apex, self.central_meridian, lam)
        phi = np.where(apex, -math.pi / 2 if n < 0 else math.pi / 2, phi)
        return lam, phi

    def _wkt_parameters(self) -> list[tuple[str, Any]]:
        params = super()._wkt_parameters()
        if self.sp2:
            params = [p for p in params if p[0] != "scale_factor"]
            params.append(("standard_parallel1", self.parameters.standard_parallel1))
            params.append(("standard_parallel2", self.parameters.standard_parallel2))
        return params


__all__ = ["LambertConformal", "BELGE_A"]
