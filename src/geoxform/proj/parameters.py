"""Parameter models for projections and datum shifts.

One pydantic model per operation method. Angles are in decimal degrees and
lengths in metres.
"""

from __future__ import annotations

import math
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Ellipsoid(BaseModel):
    """Reference ellipsoid given by its semi-major axis and either the
    semi-minor axis or the inverse flattening."""

    name: str | None = Field(default=None, description="Ellipsoid name")
    semi_major: float = Field(gt=0, description="Semi-major axis in metres")
    semi_minor: float | None = Field(default=None, gt=0, description="Semi-minor axis in metres")
    inverse_flattening: float | None = Field(
        default=None, gt=0, description="Inverse flattening, infinite for a sphere"
    )

    @model_validator(mode="after")
    def derive_semi_minor(self) -> Ellipsoid:
        """Fill in the semi-minor axis from the inverse flattening."""
        if self.semi_minor is None:
            if self.inverse_flattening is None:
                raise ValueError("Ellipsoid needs semi_minor or inverse_flattening")
            if math.isinf(self.inverse_flattening):
                self.semi_minor = self.semi_major
            else:
                self.semi_minor = self.semi_major * (1.0 - 1.0 / self.inverse_flattening)
        if self.semi_minor > self.semi_major:
            raise ValueError(
                f"semi_minor ({self.semi_minor}) must not exceed semi_major ({self.semi_major})"
            )
        return self

    @classmethod
    def sphere(cls, radius: float) -> Ellipsoid:
        return cls(name="Sphere", semi_major=radius, semi_minor=radius)

    @property
    def b(self) -> float:
        assert self.semi_minor is not None
        return self.semi_minor

    @property
    def flattening(self) -> float:
        return (self.semi_major - self.b) / self.semi_major

    @property
    def eccentricity_squared(self) -> float:
        return 1.0 - (self.b * self.b) / (self.semi_major * self.semi_major)

    @property
    def is_sphere(self) -> bool:
        return self.semi_major == self.b

    def axes(self) -> dict[str, float]:
        """The ``semi_major``/``semi_minor`` pair, ready to splat into parameter models."""
        return {"semi_major": self.semi_major, "semi_minor": self.b}


WGS84 = Ellipsoid(name="WGS 84", semi_major=6378137.0, inverse_flattening=298.257223563)
GRS80 = Ellipsoid(name="GRS 1980", semi_major=6378137.0, inverse_flattening=298.257222101)
CLARKE_1866 = Ellipsoid(name="Clarke 1866", semi_major=6378206.4, semi_minor=6356583.8)
INTERNATIONAL_1924 = Ellipsoid(name="International 1924", semi_major=6378388.0, inverse_flattening=297.0)


class _Parameters(BaseModel):
    model_config = ConfigDict(extra="forbid")


class _EllipsoidalParameters(_Parameters):
    semi_major: float = Field(gt=0, description="Semi-major axis in metres")
    semi_minor: float = Field(gt=0, description="Semi-minor axis in metres")

    @model_validator(mode="before")
    @classmethod
    def expand_ellipsoid(cls, data: Any) -> Any:
        """Accept an ``ellipsoid`` entry in place of the two axes."""
        if isinstance(data, dict) and "ellipsoid" in data:
            data = dict(data)
            ellipsoid = data.pop("ellipsoid")
            if not isinstance(ellipsoid, Ellipsoid):
                ellipsoid = Ellipsoid.model_validate(ellipsoid)
            data.setdefault("semi_major", ellipsoid.semi_major)
            data.setdefault("semi_minor", ellipsoid.b)
        return data

    @model_validator(mode="after")
    def check_axes(self) -> _EllipsoidalParameters:
        if self.semi_minor > self.semi_major:
            raise ValueError(
                f"semi_minor ({self.semi_minor}) must not exceed semi_major ({self.semi_major})"
            )
        return self

    @property
    def is_spherical(self) -> bool:
        return self.semi_major == self.semi_minor


class ProjectionParameters(_EllipsoidalParameters):
    """Parameters shared by every map projection."""

    central_meridian: float = Field(default=0.0, ge=-180.0, le=180.0)
    latitude_of_origin: float = Field(default=0.0, ge=-90.0, le=90.0)
    scale_factor: float = Field(default=1.0, gt=0)
    false_easting: float = 0.0
    false_northing: float = 0.0


class MercatorParameters(ProjectionParameters):
    """Mercator parameters. ``standard_parallel`` is used by the 2SP variant only."""

    standard_parallel: float = Field(default=0.0, gt=-90.0, lt=90.0)

    @field_validator("latitude_of_origin")
    @classmethod
    def validate_origin(cls, v: float) -> float:
        """Mercator has its origin on the equator."""
        if v != 0:
            raise ValueError(f"Mercator latitude_of_origin must be 0, got {v}")
        return v


class LambertConformalParameters(ProjectionParameters):
    """Lambert Conformal Conic parameters.

    The 2SP variants use both standard parallels. The 1SP variant uses the
    latitude of origin as its single standard parallel.
    """

    standard_parallel1: float = Field(default=30.0, ge=-90.0, le=90.0)
    standard_parallel2: float = Field(default=45.0, ge=-90.0, le=90.0)


class AlbersParameters(ProjectionParameters):
    """Albers Conic Equal Area parameters. The scale is fixed by the two parallels."""

    standard_parallel1: float = Field(default=50.0, ge=-90.0, le=90.0)
    standard_parallel2: float = Field(default=58.5, ge=-90.0, le=90.0)

    @field_validator("scale_factor")
    @classmethod
    def validate_scale(cls, v: float) -> float:
        if v != 1:
            raise ValueError(f"Albers projection takes no scale_factor, got {v}")
        return v


class PolarStereographicParameters(ProjectionParameters):
    """Polar Stereographic parameters.

    ``latitude_of_origin`` selects the pole. Without ``latitude_true_scale``
    the scale factor applies at the pole (EPSG variant A). Otherwise scale is
    true on that parallel and ``scale_factor`` is normally left at 1 (variant B).
    """

    latitude_of_origin: float = Field(default=90.0, ge=-90.0, le=90.0)
    latitude_true_scale: float | None = Field(default=None, ge=-90.0, le=90.0)

    @field_validator("latitude_of_origin")
    @classmethod
    def validate_pole(cls, v: float) -> float:
        if abs(v) != 90:
            raise ValueError(f"Polar Stereographic latitude_of_origin must be 90 or -90, got {v}")
        return v


class ObliqueStereographicParameters(ProjectionParameters):
    """Oblique (double) Stereographic parameters, centred on any origin."""


class TransverseMercatorParameters(ProjectionParameters):
    """Transverse Mercator parameters."""

    @classmethod
    def utm(
        cls, zone: int, north: bool = True, ellipsoid: Ellipsoid | None = None
    ) -> TransverseMercatorParameters:
        """Parameters of a Universal Transverse Mercator zone.

        Args:
            zone: Zone number from 1 to 60
            north: Northern hemisphere if True, else a 10 000 km false northing applies
            ellipsoid: Defaults to WGS 84
        """
        if not 1 <= zone <= 60:
            raise ValueError(f"UTM zone must be between 1 and 60, got {zone}")
        ellipsoid = ellipsoid or WGS84
        return cls(
            **ellipsoid.axes(),
            central_meridian=-183.0 + 6.0 * zone,
            scale_factor=0.9996,
            false_easting=500000.0,
            false_northing=0.0 if north else 10000000.0,
        )


class GeocentricParameters(_EllipsoidalParameters):
    """Geographic (longitude, latitude[, height]) to geocentric (X, Y, Z)."""

    dim_geographic: Literal[2, 3] = Field(
        default=3, description="2 for (lon, lat), 3 for (lon, lat, height)"
    )


class MolodenskyParameters(_Parameters):
    """Abridged Molodensky datum shift between two ellipsoids."""

    dim: Literal[2, 3] = Field(default=3, description="2 for (lon, lat), 3 with heights")
    dx: float = Field(description="X shift in metres")
    dy: float = Field(description="Y shift in metres")
    dz: float = Field(default=0.0, description="Z shift in metres")
    src_semi_major: float = Field(gt=0)
    src_semi_minor: float = Field(gt=0)
    tgt_semi_major: float = Field(gt=0)
    tgt_semi_minor: float = Field(gt=0)

    @model_validator(mode="before")
    @classmethod
    def expand_ellipsoids(cls, data: Any) -> Any:
        """Accept ``src_ellipsoid`` and ``tgt_ellipsoid`` entries in place of the axes."""
        if isinstance(data, dict):
            data = dict(data)
            for prefix in ("src", "tgt"):
                ellipsoid = data.pop(f"{prefix}_ellipsoid", None)
                if ellipsoid is None:
                    continue
                if not isinstance(ellipsoid, Ellipsoid):
                    ellipsoid = Ellipsoid.model_validate(ellipsoid)
                data.setdefault(f"{prefix}_semi_major", ellipsoid.semi_major)
                data.setdefault(f"{prefix}_semi_minor", ellipsoid.b)
        return data

    def swapped(self) -> MolodenskyParameters:
        """Parameters of the reverse shift."""
        return MolodenskyParameters(
            dim=self.dim,
            dx=-self.dx,
            dy=-self.dy,
            dz=-self.dz,
            src_semi_major=self.tgt_semi_major,
            src_semi_minor=self.tgt_semi_minor,
            tgt_semi_major=self.src_semi_major,
            tgt_semi_minor=self.src_semi_minor,
        )


class ExponentialParameters(_Parameters):
    """Base of an exponential or logarithmic 1-D transform."""

    base: float = Field(default=10.0, gt=0)


__all__ = [
    "Ellipsoid",
    "WGS84",
    "GRS80",
    "CLARKE_1866",
    "INTERNATIONAL_1924",
    "ProjectionParameters",
    "MercatorParameters",
    "LambertConformalParameters",
    "AlbersParameters",
    "PolarStereographicParameters",
    "ObliqueStereographicParameters",
    "TransverseMercatorParameters",
    "GeocentricParameters",
    "MolodenskyParameters",
    "ExponentialParameters",
]
