"""Configuration models and I/O for coordinate transforms.

Pydantic models for runtime settings and for declarative transform chains, with
YAML/JSON I/O. A chain is a list of steps that the transform factory builds and
concatenates in order.
"""

from __future__ import annotations

import json
import os
import threading
from pathlib import Path
from typing import Annotated, Any, Literal, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigError

_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"0", "false", "no", "off", ""}


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_STRINGS:
        return True
    if value in _FALSE_STRINGS:
        return False
    raise ConfigError(f"Environment variable {name} must be a boolean flag, got {raw!r}")


class Settings(BaseModel):
    """Process-wide runtime switches."""

    self_check: bool = Field(
        default=False, description="Verify every projected point by running the inverse"
    )
    intern: bool = Field(
        default=True, description="Share structurally equal transforms through the pool"
    )
    log_level: str = Field(default="WARNING", description="Level for the geoxform logger")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize the level name."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level {v!r}")
        return level

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from GEOXFORM_* environment variables."""
        return cls(
            self_check=_env_flag("GEOXFORM_SELF_CHECK", False),
            intern=_env_flag("GEOXFORM_INTERN", True),
            log_level=os.environ.get("GEOXFORM_LOG_LEVEL", "WARNING"),
        )


_settings_lock = threading.Lock()
_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the process-scoped settings, reading the environment on first use."""
    global _settings
    with _settings_lock:
        if _settings is None:
            _settings = Settings.from_env()
        return _settings


def set_settings(settings: Settings | None) -> None:
    """Replace the process-scoped settings. ``None`` re-reads the environment lazily."""
    global _settings
    with _settings_lock:
        _settings = settings


ProjectionKind = Literal[
    "Mercator_1SP",
    "Mercator_2SP",
    "Lambert_Conformal_Conic_1SP",
    "Lambert_Conformal_Conic_2SP",
    "Lambert_Conformal_Conic_2SP_Belgium",
    "Transverse_Mercator",
    "Albers_Conic_Equal_Area",
    "Polar_Stereographic",
    "Oblique_Stereographic",
    "Ellipsoid_To_Geocentric",
    "Geocentric_To_Ellipsoid",
    "Abridged_Molodenski",
    "Exponential",
    "Logarithmic",
]


class AffineStep(BaseModel):
    """Linear step given by its (augmented) matrix rows."""

    type: Literal["affine"] = "affine"
    matrix: list[list[float]] = Field(description="Matrix rows, (target+1) x (source+1)")

    @field_validator("matrix")
    @classmethod
    def validate_matrix(cls, v: list[list[float]]) -> list[list[float]]:
        """Ensure the matrix is rectangular with at least one row and column."""
        if not v or not v[0]:
            raise ValueError("Matrix must have at least one row and one column")
        width = len(v[0])
        if any(len(row) != width for row in v):
            raise ValueError("Matrix rows must all have the same length")
        return v


class ProjectionStep(BaseModel):
    """Named projection or datum step."""

    type: Literal["projection"] = "projection"
    kind: ProjectionKind = Field(description="Operation method name")
    parameters: dict[str, Any] = Field(
        default_factory=dict, description="Parameter values, validated per kind by the factory"
    )
    inverse: bool = Field(default=False, description="Use the inverse of the operation")


class PassThroughStep(BaseModel):
    """Step that applies ``step`` to a sub-range of the coordinates."""

    type: Literal["pass_through"] = "pass_through"
    first_affected: int = Field(ge=0, description="Number of leading coordinates kept as-is")
    trailing: int = Field(default=0, ge=0, description="Number of trailing coordinates kept as-is")
    step: Step


Step = Annotated[Union[AffineStep, ProjectionStep, PassThroughStep], Field(discriminator="type")]

PassThroughStep.model_rebuild()


class TransformChain(BaseModel):
    """Ordered list of steps, applied first to last."""

    name: str | None = Field(default=None, description="Optional label")
    steps: list[Step] = Field(default_factory=list, description="Steps in application order")


def _read_data(path: Path) -> Any:
    with open(path) as f:
        if path.suffix.lower() in [".yaml", ".yml"]:
            return yaml.safe_load(f)
        if path.suffix.lower() == ".json":
            return json.load(f)
        # Try YAML first, then JSON
        content = f.read()
    try:
        return yaml.safe_load(content)
    except yaml.YAMLError:
        return json.loads(content)


def load_config(path: str | Path) -> TransformChain:
    """Load a transform chain from a YAML or JSON file.

    Args:
        path: Path to configuration file

    Returns:
        Validated TransformChain object

    Raises:
        FileNotFoundError: If config file doesn't exist
        ConfigError: If config is invalid
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = _read_data(path)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigError(f"Failed to parse config {path}: {e}") from e

    if data is None:
        data = {}
    # A bare list is accepted as the steps
    if isinstance(data, list):
        data = {"steps": data}

    try:
        return TransformChain(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid transform chain in {path}: {e}") from e


def save_config(chain: TransformChain, path: str | Path) -> None:
    """Save a transform chain to a YAML or JSON file.

    Args:
        chain: Transform chain to save
        path: Output file path
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    data = chain.model_dump(mode="json", exclude_none=True)

    with open(path, "w") as f:
        if path.suffix.lower() in [".yaml", ".yml"]:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
        else:
            json.dump(data, f, indent=2)


def round_trip_config(chain: TransformChain) -> TransformChain:
    """Serialize a chain to YAML text and parse it back."""
    data = chain.model_dump(mode="json", exclude_none=True)
    yaml_str = yaml.safe_dump(data, default_flow_style=False, sort_keys=False)
    loaded_data = yaml.safe_load(yaml_str)
    return TransformChain(**loaded_data)


__all__ = [
    "Settings",
    "get_settings",
    "set_settings",
    "ProjectionKind",
    "AffineStep",
    "ProjectionStep",
    "PassThroughStep",
    "Step",
    "TransformChain",
    "load_config",
    "save_config",
    "round_trip_config",
]
