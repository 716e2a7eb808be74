"""Test settings and transform chain configuration."""

from __future__ import annotations

import tempfile
from pathlib import Path

import numpy as np
import pytest
from pydantic import ValidationError

from geoxform.core.config import (
    AffineStep,
    PassThroughStep,
    ProjectionStep,
    Settings,
    TransformChain,
    get_settings,
    load_config,
    round_trip_config,
    save_config,
    set_settings,
)
from geoxform.core.errors import ConfigError
from geoxform.proj import create_projection
from geoxform.proj.parameters import INTERNATIONAL_1924, WGS84
from geoxform.transform.passthrough import PassThroughTransform

EXAMPLES = Path(__file__).resolve().parent.parent / "examples"


def _utm_chain() -> TransformChain:
    return TransformChain(
        name="utm",
        steps=[
            ProjectionStep(
                kind="Transverse_Mercator",
                parameters={
                    "semi_major": 6378137.0,
                    "semi_minor": WGS84.b,
                    "central_meridian": 3.0,
                    "scale_factor": 0.9996,
                    "false_easting": 500000.0,
                },
            ),
            AffineStep(matrix=[[0.001, 0.0, 0.0], [0.0, 0.001, 0.0], [0.0, 0.0, 1.0]]),
        ],
    )


# ----------------------------------------------------------------------
# Settings
# ----------------------------------------------------------------------


def test_settings_defaults():
    settings = Settings()
    assert settings.self_check is False
    assert settings.intern is True
    assert settings.log_level == "WARNING"


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("GEOXFORM_SELF_CHECK", "yes")
    monkeypatch.setenv("GEOXFORM_INTERN", "0")
    monkeypatch.setenv("GEOXFORM_LOG_LEVEL", "debug")
    settings = Settings.from_env()
    assert settings.self_check is True
    assert settings.intern is False
    assert settings.log_level == "DEBUG"


def test_settings_bad_flag(monkeypatch):
    monkeypatch.setenv("GEOXFORM_SELF_CHECK", "maybe")
    with pytest.raises(ConfigError, match="GEOXFORM_SELF_CHECK"):
        Settings.from_env()


def test_settings_bad_log_level():
    with pytest.raises(ValueError, match="log level"):
        Settings(log_level="LOUD")


def test_settings_read_lazily(monkeypatch):
    """Clearing the settings re-reads the environment on next use."""
    monkeypatch.setenv("GEOXFORM_SELF_CHECK", "true")
    set_settings(None)
    assert get_settings().self_check is True
    assert get_settings() is get_settings()


# ----------------------------------------------------------------------
# Chains
# ----------------------------------------------------------------------


def test_yaml_round_trip():
    """Test YAML serialization round-trip."""
    chain = TransformChain(
        name="mixed",
        steps=[
            AffineStep(matrix=[[2.0, 0.0, 1.0], [0.0, 2.0, 0.0], [0.0, 0.0, 1.0]]),
            PassThroughStep(
                first_affected=1,
                step=ProjectionStep(kind="Logarithmic", parameters={"base": 10.0}),
            ),
            ProjectionStep(kind="Mercator_1SP", parameters={"semi_major": 1.0, "semi_minor": 1.0}, inverse=True),
        ],
    )

    reloaded = round_trip_config(chain)

    assert reloaded == chain
    assert isinstance(reloaded.steps[1], PassThroughStep)
    assert reloaded.steps[1].step.kind == "Logarithmic"  # type: ignore[union-attr]
    assert reloaded.steps[2].inverse is True  # type: ignore[union-attr]


def test_yaml_file_io():
    """Test saving and loading from YAML file."""
    chain = _utm_chain()
    with tempfile.TemporaryDirectory() as tmpdir:
        yaml_path = Path(tmpdir) / "nested" / "chain.yaml"
        save_config(chain, yaml_path)
        assert yaml_path.exists()
        assert load_config(yaml_path) == chain


def test_json_file_io():
    """Test saving and loading from JSON file."""
    chain = _utm_chain()
    with tempfile.TemporaryDirectory() as tmpdir:
        json_path = Path(tmpdir) / "chain.json"
        save_config(chain, json_path)
        assert json_path.read_text().lstrip().startswith("{")
        assert load_config(json_path) == chain


def test_bare_list_is_steps(tmp_path: Path) -> None:
    p = tmp_path / "steps.yml"
    p.write_text(
        """
- type: affine
  matrix: [[3.0, 1.0], [0.0, 1.0]]
- type: projection
  kind: Exponential
  parameters: {base: 2.0}
"""
    )
    chain = load_config(p)
    assert chain.name is None
    assert len(chain.steps) == 2


def test_unknown_suffix_falls_back_to_yaml(tmp_path: Path) -> None:
    p = tmp_path / "chain.cfg"
    p.write_text('{"name": "json text", "steps": []}')
    assert load_config(p).name == "json text"


def test_load_errors(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.yaml")

    bad_yaml = tmp_path / "bad.yaml"
    bad_yaml.write_text("steps: [unclosed")
    with pytest.raises(ConfigError, match="Failed to parse"):
        load_config(bad_yaml)

    unknown = tmp_path / "unknown.yaml"
    unknown.write_text("steps:\n  - type: projection\n    kind: Polyconic\n")
    with pytest.raises(ConfigError, match="Invalid transform chain"):
        load_config(unknown)


def test_step_validation():
    with pytest.raises(ValidationError, match="same length"):
        AffineStep(matrix=[[1.0, 0.0], [0.0]])
    with pytest.raises(ValidationError):
        AffineStep(matrix=[])
    with pytest.raises(ValidationError):
        PassThroughStep(first_affected=-1, step=AffineStep(matrix=[[1.0]]))


# ----------------------------------------------------------------------
# Building chains
# ----------------------------------------------------------------------


def test_from_config_builds_chain(factory):
    transform = factory.from_config(_utm_chain())
    x, y = transform.apply_point([3.0, 45.0])
    assert x == pytest.approx(500.0, abs=1e-9)
    assert y == pytest.approx(4982.95040, abs=1e-4)


def test_from_config_reads_files(factory):
    transform = factory.from_config(EXAMPLES / "utm31n_km.yaml")
    assert (transform.dim_source, transform.dim_target) == (2, 2)
    assert transform == factory.from_config(_utm_chain())


def test_from_config_pass_through(factory):
    transform = factory.from_config(EXAMPLES / "mercator_with_height.yaml")
    assert isinstance(transform, PassThroughTransform)
    result = transform.apply_point([10.0, 45.0, 123.0])
    assert result[2] == 123.0


def test_from_config_geocentric_translation(factory):
    """A geocentric translation agrees with the Molodensky shift to about a metre."""
    transform = factory.from_config(EXAMPLES / "wgs84_to_ed50.yaml")
    assert (transform.dim_source, transform.dim_target) == (3, 3)
    molodensky = create_projection(
        "Abridged_Molodenski",
        {"dx": 87.0, "dy": 98.0, "dz": 121.0, "src_ellipsoid": WGS84, "tgt_ellipsoid": INTERNATIONAL_1924},
    )
    point = [5.0, 50.0, 100.0]
    exact = transform.apply_point(point)
    approx = molodensky.apply_point(point)
    np.testing.assert_allclose(exact[:2], approx[:2], atol=2e-5)
    assert exact[2] == pytest.approx(approx[2], abs=2.0)


def test_from_config_errors(factory):
    with pytest.raises(ConfigError, match="no steps"):
        factory.from_config(TransformChain())

    bad_parameters = TransformChain(
        steps=[ProjectionStep(kind="Mercator_1SP", parameters={"semi_major": -1.0})]
    )
    with pytest.raises(ConfigError, match="Cannot build"):
        factory.from_config(bad_parameters)

    mismatch = TransformChain(
        steps=[
            ProjectionStep(kind="Mercator_1SP", parameters={"semi_major": 1.0, "semi_minor": 1.0}),
            AffineStep(matrix=[[1.0, 0.0], [0.0, 1.0]]),
        ]
    )
    with pytest.raises(ConfigError):
        factory.from_config(mismatch)
