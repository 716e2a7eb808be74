"""Tests for the Albers and stereographic projections.

Worked examples come from the EPSG guidance note 7-2 and from Snyder,
"Map Projections - A Working Manual".
"""

import math

import numpy as np
import pytest

from geoxform.core.errors import NonConvergenceError, OutOfDomainError
from geoxform.proj import (
    AlbersEqualArea,
    ObliqueStereographic,
    PolarStereographic,
    create_projection,
)
from geoxform.proj.parameters import CLARKE_1866, WGS84, Ellipsoid

TOL_M = 0.02
TOL_DEG = 1e-6

BESSEL = Ellipsoid(name="Bessel 1841", semi_major=6377397.155, inverse_flattening=299.1528128)

SNYDER_ALBERS = {
    "central_meridian": -96.0,
    "latitude_of_origin": 23.0,
    "standard_parallel1": 29.5,
    "standard_parallel2": 45.5,
}

RD_NEW = {
    "ellipsoid": BESSEL,
    "central_meridian": 5.387638889,
    "latitude_of_origin": 52.156160556,
    "scale_factor": 0.9999079,
    "false_easting": 155000.0,
    "false_northing": 463000.0,
}


def _check(transform, geographic, projected, tol=TOL_M):
    result = transform.apply_point(geographic)
    np.testing.assert_allclose(result, projected, atol=tol, rtol=0)
    back = transform.invert().apply_point(result)
    np.testing.assert_allclose(back, geographic, atol=TOL_DEG, rtol=0)


# ----------------------------------------------------------------------
# Albers Conic Equal Area
# ----------------------------------------------------------------------


def test_albers_snyder_ellipsoidal_example():
    aea = create_projection("Albers_Conic_Equal_Area", {"ellipsoid": CLARKE_1866, **SNYDER_ALBERS})
    assert isinstance(aea, AlbersEqualArea)
    _check(aea, [-75.0, 35.0], [1885472.7, 1535925.0], tol=0.1)


def test_albers_snyder_spherical_example():
    aea = create_projection("Albers_Conic_Equal_Area", {"ellipsoid": Ellipsoid.sphere(1.0), **SNYDER_ALBERS})
    _check(aea, [-75.0, 35.0], [0.2952720, 0.2416774], tol=1e-7)


def test_albers_origin_maps_to_false_origin():
    aea = create_projection(
        "Albers_Conic_Equal_Area",
        {"ellipsoid": WGS84, **SNYDER_ALBERS, "false_easting": 1000.0, "false_northing": 2000.0},
    )
    x, y = aea.apply_point([-96.0, 23.0])
    assert x == pytest.approx(1000.0, abs=1e-6)
    assert y == pytest.approx(2000.0, abs=1e-6)


def test_albers_round_trip_over_the_cone():
    aea = create_projection("Albers_Conic_Equal_Area", {"ellipsoid": WGS84, **SNYDER_ALBERS})
    lon = np.random.uniform(-170.0, -20.0, 300)
    lat = np.random.uniform(-60.0, 89.0, 300)
    points = np.column_stack((lon, lat))
    back = aea.invert().apply_points(aea.apply_points(points))
    np.testing.assert_allclose(back, points, atol=1e-7)


def test_albers_pole_round_trip():
    """With two parallels the pole is an arc of the cone, not its apex."""
    aea = create_projection("Albers_Conic_Equal_Area", {"ellipsoid": WGS84, **SNYDER_ALBERS})
    x, y = aea.apply_point([-50.0, 90.0])
    back = aea.invert().apply_point([x, y])
    assert back[1] == pytest.approx(90.0, abs=1e-6)


def test_albers_antipodal_parallels_rejected():
    with pytest.raises(OutOfDomainError, match="antipodal"):
        create_projection(
            "Albers_Conic_Equal_Area",
            {"ellipsoid": WGS84, "standard_parallel1": 40.0, "standard_parallel2": -40.0},
        )


def test_albers_rejects_scale_factor():
    with pytest.raises(ValueError, match="scale_factor"):
        create_projection("Albers_Conic_Equal_Area", {"ellipsoid": WGS84, "scale_factor": 0.9996})


def test_albers_inverse_beyond_the_poles_fails():
    aea = create_projection("Albers_Conic_Equal_Area", {"ellipsoid": WGS84, **SNYDER_ALBERS})
    with pytest.raises(OutOfDomainError):
        aea.invert().apply_point([0.0, aea.rho0 * aea.ak0 - 1000.0])


def test_albers_inverse_non_convergence_is_reported(monkeypatch):
    monkeypatch.setattr("geoxform.proj.albers.MAX_ITERATIONS", 0)
    aea = create_projection("Albers_Conic_Equal_Area", {"ellipsoid": WGS84, **SNYDER_ALBERS})
    xy = aea.apply_point([-90.0, 40.0])
    with pytest.raises(NonConvergenceError):
        aea.invert().apply_point(xy)


def test_albers_text_form():
    aea = create_projection("Albers_Conic_Equal_Area", {"ellipsoid": WGS84, **SNYDER_ALBERS})
    text = str(aea)
    assert text.startswith('PARAM_MT["Albers_Conic_Equal_Area"')
    assert 'PARAMETER["standard_parallel1",29.5' in text
    assert 'PARAMETER["standard_parallel2",45.5' in text
    assert "scale_factor" not in text


# ----------------------------------------------------------------------
# Polar Stereographic
# ----------------------------------------------------------------------


def test_polar_stereographic_variant_a_epsg_example():
    ups = create_projection(
        "Polar_Stereographic",
        {
            "ellipsoid": WGS84,
            "latitude_of_origin": 90.0,
            "scale_factor": 0.994,
            "false_easting": 2000000.0,
            "false_northing": 2000000.0,
        },
    )
    assert isinstance(ups, PolarStereographic)
    _check(ups, [44.0, 73.0], [3320416.75, 632668.43])


def test_polar_stereographic_variant_b_epsg_example():
    aps = create_projection(
        "Polar_Stereographic",
        {
            "ellipsoid": WGS84,
            "latitude_of_origin": -90.0,
            "latitude_true_scale": -71.0,
            "central_meridian": 70.0,
            "false_easting": 6000000.0,
            "false_northing": 6000000.0,
        },
    )
    _check(aps, [120.0, -75.0], [7255380.79, 7053389.56])


def test_polar_stereographic_pole_maps_to_false_origin():
    ups = create_projection(
        "Polar_Stereographic",
        {"ellipsoid": WGS84, "latitude_of_origin": -90.0, "false_easting": 2.0e6, "false_northing": 2.0e6},
    )
    x, y = ups.apply_point([30.0, -90.0])
    assert x == pytest.approx(2.0e6, abs=1e-6)
    assert y == pytest.approx(2.0e6, abs=1e-6)


def test_polar_stereographic_spherical_round_trip():
    polar = create_projection(
        "Polar_Stereographic",
        {"ellipsoid": Ellipsoid.sphere(6370997.0), "latitude_true_scale": 70.0, "central_meridian": -45.0},
    )
    lon = np.random.uniform(-179.0, 179.0, 200)
    lat = np.random.uniform(-60.0, 89.0, 200)
    points = np.column_stack((lon, lat))
    back = polar.invert().apply_points(polar.apply_points(points))
    np.testing.assert_allclose(back, points, atol=1e-7)


def test_polar_stereographic_spherical_scale_on_true_parallel():
    radius = 6370997.0
    polar = create_projection(
        "Polar_Stereographic", {"ellipsoid": Ellipsoid.sphere(radius), "latitude_true_scale": 60.0}
    )
    # Short steps along the true parallel keep their length
    x1, y1 = polar.apply_point([0.0, 60.0])
    x2, y2 = polar.apply_point([1e-4, 60.0])
    expected = radius * math.cos(math.radians(60.0)) * math.radians(1e-4)
    assert math.hypot(x2 - x1, y2 - y1) == pytest.approx(expected, rel=1e-6)


def test_polar_stereographic_opposite_pole_fails():
    north = create_projection("Polar_Stereographic", {"ellipsoid": WGS84})
    with pytest.raises(OutOfDomainError, match="opposite pole"):
        north.apply_point([0.0, -90.0])


def test_polar_stereographic_requires_a_pole():
    with pytest.raises(ValueError, match="90 or -90"):
        create_projection("Polar_Stereographic", {"ellipsoid": WGS84, "latitude_of_origin": 60.0})


def test_polar_stereographic_text_form():
    polar = create_projection(
        "Polar_Stereographic", {"ellipsoid": WGS84, "latitude_of_origin": -90.0, "latitude_true_scale": -71.0}
    )
    text = str(polar)
    assert text.startswith('PARAM_MT["Polar_Stereographic"')
    assert 'PARAMETER["latitude_true_scale",-71.0' in text

    ups = create_projection("Polar_Stereographic", {"ellipsoid": WGS84})
    assert "latitude_true_scale" not in str(ups)


# ----------------------------------------------------------------------
# Oblique Stereographic
# ----------------------------------------------------------------------


def test_oblique_stereographic_epsg_example():
    rd = create_projection("Oblique_Stereographic", RD_NEW)
    assert isinstance(rd, ObliqueStereographic)
    _check(rd, [6.0, 53.0], [196105.283, 557057.739])


def test_oblique_stereographic_origin_maps_to_false_origin():
    rd = create_projection("Oblique_Stereographic", RD_NEW)
    x, y = rd.apply_point([5.387638889, 52.156160556])
    assert x == pytest.approx(155000.0, abs=1e-3)
    assert y == pytest.approx(463000.0, abs=1e-3)
    back = rd.invert().apply_point([155000.0, 463000.0])
    np.testing.assert_allclose(back, [5.387638889, 52.156160556], atol=1e-9)


def test_oblique_stereographic_spherical_round_trip():
    sterea = create_projection(
        "Oblique_Stereographic",
        {"ellipsoid": Ellipsoid.sphere(6370997.0), "central_meridian": 10.0, "latitude_of_origin": 40.0},
    )
    lon = np.random.uniform(-60.0, 80.0, 200)
    lat = np.random.uniform(-30.0, 85.0, 200)
    points = np.column_stack((lon, lat))
    back = sterea.invert().apply_points(sterea.apply_points(points))
    np.testing.assert_allclose(back, points, atol=1e-7)


def test_oblique_stereographic_antipode_fails():
    sterea = create_projection(
        "Oblique_Stereographic",
        {"ellipsoid": Ellipsoid.sphere(6370997.0), "central_meridian": 10.0, "latitude_of_origin": 40.0},
    )
    with pytest.raises(OutOfDomainError, match="antipode"):
        sterea.apply_point([-170.0, -40.0])


def test_oblique_stereographic_non_convergence_is_reported(monkeypatch):
    monkeypatch.setattr("geoxform.proj.stereographic.MAX_ITERATIONS", 0)
    rd = create_projection("Oblique_Stereographic", RD_NEW)
    xy = rd.apply_point([6.0, 53.0])
    with pytest.raises(NonConvergenceError):
        rd.invert().apply_point(xy)


# ----------------------------------------------------------------------
# pyproj oracle
# ----------------------------------------------------------------------


@pytest.mark.oracle
def test_albers_matches_pyproj():
    pyproj = pytest.importorskip("pyproj")
    proj = pyproj.Proj(proj="aea", lat_1=29.5, lat_2=45.5, lat_0=23.0, lon_0=-96.0, ellps="WGS84")
    aea = create_projection("Albers_Conic_Equal_Area", {"ellipsoid": WGS84, **SNYDER_ALBERS})
    lon = np.random.uniform(-130.0, -60.0, 200)
    lat = np.random.uniform(20.0, 55.0, 200)
    x, y = proj(lon, lat)
    ours = aea.apply_points(np.column_stack((lon, lat)))
    np.testing.assert_allclose(ours, np.column_stack((x, y)), atol=1e-3)


@pytest.mark.oracle
def test_polar_stereographic_matches_pyproj():
    pyproj = pytest.importorskip("pyproj")
    transformer = pyproj.Transformer.from_crs("EPSG:4326", "EPSG:3031", always_xy=True)
    polar = create_projection(
        "Polar_Stereographic", {"ellipsoid": WGS84, "latitude_of_origin": -90.0, "latitude_true_scale": -71.0}
    )
    lon = np.random.uniform(-180.0, 180.0, 200)
    lat = np.random.uniform(-89.0, -50.0, 200)
    x, y = transformer.transform(lon, lat)
    ours = polar.apply_points(np.column_stack((lon, lat)))
    np.testing.assert_allclose(ours, np.column_stack((x, y)), atol=1e-3)


@pytest.mark.oracle
def test_oblique_stereographic_matches_pyproj():
    pyproj = pytest.importorskip("pyproj")
    proj = pyproj.Proj(
        proj="sterea",
        lat_0=52.156160556,
        lon_0=5.387638889,
        k=0.9999079,
        x_0=155000.0,
        y_0=463000.0,
        a=6377397.155,
        rf=299.1528128,
    )
    rd = create_projection("Oblique_Stereographic", RD_NEW)
    lon = np.random.uniform(3.0, 7.5, 200)
    lat = np.random.uniform(50.5, 54.0, 200)
    x, y = proj(lon, lat)
    ours = rd.apply_points(np.column_stack((lon, lat)))
    np.testing.assert_allclose(ours, np.column_stack((x, y)), atol=1e-3)
