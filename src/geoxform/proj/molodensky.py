"""Abridged Molodensky datum shift.

Shifts geographic coordinates from one ellipsoid to another given the
translation between their centres. Accuracy is of the order of a metre, which
is adequate for most mapping datums.
"""

from __future__ import annotations

from typing import Any

import numpy as np

from ..core.errors import TransformError
from ..core.matrix import Matrix
from ..core.types import PointLike
from ..transform.base import BatchResult, MathTransform, param_mt
from .base import DEGREE_STEP, numeric_derivative
from .parameters import MolodenskyParameters


class AbridgedMolodensky(MathTransform):
    """Abridged_Molodenski transform on (lon°, lat°[, height m]) points."""

    def __init__(self, parameters: MolodenskyParameters):
        super().__init__()
        self.parameters = parameters
        self.dim = parameters.dim
        self.dx, self.dy, self.dz = parameters.dx, parameters.dy, parameters.dz
        a, b = parameters.src_semi_major, parameters.src_semi_minor
        ta, tb = parameters.tgt_semi_major, parameters.tgt_semi_minor
        self.a, self.b = a, b
        # Differences are target minus source
        self.da = ta - a
        f = (a - b) / a
        df = (ta - tb) / ta - f
        self.e2 = 1.0 - (b * b) / (a * a)
        self.adf = a * df + f * self.da

    @property
    def dim_source(self) -> int:
        return self.dim

    @property
    def dim_target(self) -> int:
        return self.dim

    def _transform_array(self, points: np.ndarray) -> BatchResult:
        x = np.radians(points[:, 0])
        y = np.radians(points[:, 1])
        dx, dy, dz, e2, adf = self.dx, self.dy, self.dz, self.e2, self.adf

        sin_x, cos_x = np.sin(x), np.cos(x)
        sin_y, cos_y = np.sin(y), np.cos(y)
        sin2_y = sin_y * sin_y
        nu = self.a / np.sqrt(1.0 - e2 * sin2_y)
        rho = nu * (1.0 - e2) / (1.0 - e2 * sin2_y)

        # The division by sin(1") is omitted, the error is about 8e-7 arc seconds
        new_y = y + (dz * cos_y - sin_y * (dy * sin_x + dx * cos_x) + adf * np.sin(2.0 * y)) / rho
        new_x = x + (dy * cos_x - dx * sin_x) / (nu * cos_y)
        columns = [np.degrees(new_x), np.degrees(new_y)]
        if self.dim == 3:
            columns.append(
                points[:, 2]
                + dx * cos_y * cos_x
                + dy * cos_y * sin_x
                + dz * sin_y
                + adf * sin2_y
                - self.da
            )
        return np.column_stack(columns), None

    def derivative(self, point: PointLike | None = None) -> Matrix:
        if point is None:
            raise TransformError("Cannot compute derivative of AbridgedMolodensky without a point")
        return numeric_derivative(self, np.asarray(point, dtype=np.float64), DEGREE_STEP)

    def _create_inverse(self) -> MathTransform:
        # Approximate inverse: reverse shift between the swapped ellipsoids
        return AbridgedMolodensky(self.parameters.swapped())

    def _key(self) -> tuple[Any, ...]:
        return tuple(self.parameters.model_dump().items())

    def __str__(self) -> str:
        return param_mt(
            "Abridged_Molodenski",
            [
                ("dim", self.dim),
                ("dx", self.dx),
                ("dy", self.dy),
                ("dz", self.dz),
                ("src_semi_major", self.a),
                ("src_semi_minor", self.b),
                ("tgt_semi_major", self.parameters.tgt_semi_major),
                ("tgt_semi_minor", self.parameters.tgt_semi_minor),
            ],
        )


__all__ = ["AbridgedMolodensky"]
