"""Tests for flat-buffer application: offsets, overlap and precision."""

import numpy as np
import pytest

from geoxform.core.errors import DimensionMismatchError, OutOfDomainError
from geoxform.proj.parameters import WGS84


def _mercator(factory):
    return factory.projection("Mercator_1SP", {"ellipsoid": WGS84})


def _geographic(count):
    return np.column_stack(
        (np.random.uniform(-170, 170, count), np.random.uniform(-80, 80, count))
    ).reshape(-1)


@pytest.mark.parametrize("shift", [2, 4, 6])
def test_overlap_destination_after_source(factory, shift):
    merc = _mercator(factory)
    values = _geographic(5)
    expected = merc.apply(values.copy())
    buffer = np.concatenate([values, np.zeros(shift)])
    merc.apply(buffer, 0, buffer, shift, 5)
    np.testing.assert_array_equal(buffer[shift:], expected)


def test_overlap_destination_before_source(factory):
    merc = _mercator(factory)
    values = _geographic(5)
    expected = merc.apply(values.copy())
    buffer = np.concatenate([np.zeros(2), values])
    merc.apply(buffer, 2, buffer, 0, 5)
    np.testing.assert_array_equal(buffer[:10], expected)


def test_overlap_with_dimension_change(factory):
    """A 2 -> 3 transform writing over its own input."""
    geo = factory.projection("Ellipsoid_To_Geocentric", {"ellipsoid": WGS84, "dim_geographic": 2})
    values = _geographic(4)
    expected = geo.apply(values.copy())
    buffer = np.concatenate([values, np.zeros(4)])
    geo.apply(buffer, 0, buffer, 0, 4)
    np.testing.assert_array_equal(buffer, expected)


def test_in_place_linear(factory):
    t = factory.linear([[2.0, 0.0, 1.0], [0.0, 3.0, -1.0], [0.0, 0.0, 1.0]])
    buffer = np.array([1.0, 1.0, 2.0, 2.0])
    t.apply(buffer, 0, buffer, 0)
    np.testing.assert_array_equal(buffer, [3.0, 2.0, 5.0, 5.0])


def test_offsets_and_count(factory):
    t = factory.linear([[10.0, 0.0], [0.0, 1.0]])
    src = np.arange(6, dtype=np.float64)
    dst = np.full(8, -1.0)
    t.apply(src, 1, dst, 3, 4)
    np.testing.assert_array_equal(dst, [-1.0, -1.0, -1.0, 10.0, 20.0, 30.0, 40.0, -1.0])


def test_float32_buffers(factory):
    merc = _mercator(factory)
    values = _geographic(10)
    single = values.astype(np.float32)
    result = merc.apply(single)
    assert result.dtype == np.float32
    reference = merc.apply(single.astype(np.float64))
    np.testing.assert_array_equal(result, reference.astype(np.float32))


def test_float32_destination_from_float64_source(factory):
    merc = _mercator(factory)
    values = _geographic(3)
    dst = np.zeros(6, dtype=np.float32)
    merc.apply(values, 0, dst)
    np.testing.assert_allclose(dst, merc.apply(values), rtol=1e-6)


def test_batch_failure_writes_everything_first(factory):
    merc = _mercator(factory)
    src = np.array([0.0, 0.0, 0.0, 90.0, 10.0, 45.0])
    dst = np.zeros(6)
    with pytest.raises(OutOfDomainError):
        merc.apply(src, 0, dst)
    assert np.isnan(dst[2:4]).all()
    np.testing.assert_allclose(dst[4:], merc.apply_point([10.0, 45.0]))


def test_zero_points_is_a_no_op(factory):
    merc = _mercator(factory)
    dst = np.full(4, 7.0)
    assert merc.apply(np.zeros(4), 0, dst, 0, 0) is dst
    np.testing.assert_array_equal(dst, 7.0)


def test_buffer_validation(factory):
    merc = _mercator(factory)
    with pytest.raises(ValueError):
        merc.apply(np.zeros((2, 2)))
    with pytest.raises(ValueError):
        merc.apply(np.zeros(4), 0, np.zeros(2))
    with pytest.raises(ValueError):
        merc.apply(np.zeros(4), 2, None, 0, 2)
    with pytest.raises(ValueError):
        merc.apply(np.zeros(4), -1)


def test_point_dimension_checked(factory):
    merc = _mercator(factory)
    with pytest.raises(DimensionMismatchError):
        merc.apply_points(np.zeros((3, 3)))
    with pytest.raises(DimensionMismatchError):
        merc.apply_point([1.0, 2.0, 3.0])
