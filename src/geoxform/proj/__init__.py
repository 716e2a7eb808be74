"""Map projections, geocentric conversion and datum shifts.

:func:`create_projection` maps an operation method name to its implementation
and validates the parameters against the matching model.
"""

from __future__ import annotations

from typing import Any, Callable

from pydantic import BaseModel

from ..core.errors import TransformError
from ..transform.base import MathTransform
from ..transform.exponential import LogarithmicTransform1D, create_exponential
from .albers import AlbersEqualArea
from .geocentric import GeocentricTransform
from .lambert import LambertConformal
from .mercator import Mercator
from .molodensky import AbridgedMolodensky
from .parameters import (
    AlbersParameters,
    ExponentialParameters,
    GeocentricParameters,
    LambertConformalParameters,
    MercatorParameters,
    MolodenskyParameters,
    ObliqueStereographicParameters,
    PolarStereographicParameters,
    TransverseMercatorParameters,
)
from .stereographic import ObliqueStereographic, PolarStereographic
from .transverse_mercator import TransverseMercator

# Operation method name -> (parameter model, constructor)
_PROVIDERS: dict[str, tuple[type[BaseModel], Callable[[Any, str], MathTransform]]] = {
    "Mercator_1SP": (MercatorParameters, Mercator),
    "Mercator_2SP": (MercatorParameters, Mercator),
    "Lambert_Conformal_Conic_1SP": (LambertConformalParameters, LambertConformal),
    "Lambert_Conformal_Conic_2SP": (LambertConformalParameters, LambertConformal),
    "Lambert_Conformal_Conic_2SP_Belgium": (LambertConformalParameters, LambertConformal),
    "Transverse_Mercator": (TransverseMercatorParameters, TransverseMercator),
    "Albers_Conic_Equal_Area": (AlbersParameters, AlbersEqualArea),
    "Polar_Stereographic": (PolarStereographicParameters, PolarStereographic),
    "Oblique_Stereographic": (ObliqueStereographicParameters, ObliqueStereographic),
    "Ellipsoid_To_Geocentric": (GeocentricParameters, lambda p, _: GeocentricTransform(p)),
    "Geocentric_To_Ellipsoid": (
        GeocentricParameters,
        lambda p, _: GeocentricTransform(p).invert(),
    ),
    "Abridged_Molodenski": (MolodenskyParameters, lambda p, _: AbridgedMolodensky(p)),
    "Exponential": (ExponentialParameters, lambda p, _: create_exponential(p.base)),
    "Logarithmic": (ExponentialParameters, lambda p, _: LogarithmicTransform1D(p.base)),
}


def available_kinds() -> list[str]:
    """Names accepted by :func:`create_projection`."""
    return list(_PROVIDERS)


def create_projection(kind: str, parameters: BaseModel | dict[str, Any] | None = None) -> MathTransform:
    """Create a projection or datum transform.

    Args:
        kind: Operation method name, e.g. ``"Transverse_Mercator"``
        parameters: Parameter model or a dict validated into one

    Returns:
        The transform, not interned

    Raises:
        TransformError: If the kind is unknown
        pydantic.ValidationError: If the parameters are invalid
    """
    try:
        model, constructor = _PROVIDERS[kind]
    except KeyError:
        raise TransformError(f"Unknown projection kind {kind!r}") from None
    if parameters is None:
        parameters = {}
    if isinstance(parameters, BaseModel) and not isinstance(parameters, model):
        parameters = parameters.model_dump()
    if not isinstance(parameters, model):
        parameters = model.model_validate(parameters)
    return constructor(parameters, kind)


__all__ = [
    "create_projection",
    "available_kinds",
    "Mercator",
    "LambertConformal",
    "TransverseMercator",
    "AlbersEqualArea",
    "PolarStereographic",
    "ObliqueStereographic",
    "GeocentricTransform",
    "AbridgedMolodensky",
]
