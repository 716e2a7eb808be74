"""Mercator projection (EPSG methods 9804 and 9805).

Mercator_1SP takes a scale factor at the equator. Mercator_2SP takes a
standard parallel instead, where the scale is true.
"""

from __future__ import annotations

import math
from typing import Any

import numpy as np

from ..core.errors import OutOfDomainError
from ..core.units import latitude_to_radians
from .base import EPS, MapProjection, PointFailures
from .parameters import MercatorParameters


class Mercator(MapProjection):
    """Cylindrical conformal projection, ellipsoidal or spherical."""

    def __init__(self, parameters: MercatorParameters, kind: str = "Mercator_1SP"):
        super().__init__(parameters, kind)
        self.sp2 = kind == "Mercator_2SP"
        self.standard_parallel = latitude_to_radians(abs(parameters.standard_parallel), edge=False)
        sp = self.standard_parallel
        if self.is_spherical:
            self.ak0 = self.scale_factor * self.semi_major * math.cos(sp)
        else:
            self.ak0 = self.scale_factor * self.semi_major * float(self.msfn(math.sin(sp), math.cos(sp)))

    def _project(
        self, lam: np.ndarray, phi: np.ndarray, failures: PointFailures
    ) -> tuple[np.ndarray, np.ndarray]:
        failures.flag(
            np.abs(phi) > (math.pi / 2 - EPS),
            lambda i: OutOfDomainError(f"Can't project the pole at latitude {math.degrees(phi[i])}°"),
        )
        x = (lam - self.central_meridian) * self.ak0
        # Isometric latitude, exactly zero on the equator
        sinphi = np.sin(phi)
        y = self.ak0 * (np.arctanh(sinphi) - self.e * np.arctanh(self.e * sinphi))
        return x + self.false_easting, y + self.false_northing

    def _unproject(
        self, x: np.ndarray, y: np.ndarray, failures: PointFailures
    ) -> tuple[np.ndarray, np.ndarray]:
        lam = (x - self.false_easting) / self.ak0 + self.central_meridian
        ts = np.exp(-(y - self.false_northing) / self.ak0)
        if self.is_spherical:
            phi = math.pi / 2 - 2.0 * np.arctan(ts)
        else:
            phi = self.cphi2(ts, failures)
        return lam, phi

    def _wkt_parameters(self) -> list[tuple[str, Any]]:
        params = [p for p in super()._wkt_parameters() if p[0] != "latitude_of_origin"]
        if self.sp2:
            params = [p for p in params if p[0] != "scale_factor"]
            params.append(("standard_parallel", self.parameters.standard_parallel))
        return params


__all__ = ["Mercator"]
