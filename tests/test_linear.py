"""Tests for identity, 1-D and matrix transforms."""

import numpy as np
import pytest

from geoxform.core.errors import NonInvertibleTransformError, TransformError
from geoxform.core.matrix import Matrix
from geoxform.transform.linear import (
    AffineTransform2D,
    ConstantTransform1D,
    IdentityTransform,
    LinearTransform1D,
    MatrixTransform,
    create_linear,
)

ABS_TOL = 1e-12


def test_identity_copies(factory):
    """Identity returns the same coordinates and is its own inverse."""
    t = factory.identity(3)
    points = np.random.uniform(-10, 10, size=(5, 3))
    np.testing.assert_array_equal(t.apply_points(points), points)
    assert t.invert() is t
    assert t.derivative() == Matrix.identity(3)
    assert t.is_identity()


def test_linear_1d():
    t = LinearTransform1D.create(2.0, 3.0)
    assert t.apply_scalar(4.0) == 11.0
    assert t.derivative_1d(100.0) == 2.0
    inverse = t.invert()
    assert isinstance(inverse, LinearTransform1D)
    assert inverse.scale == 0.5
    assert inverse.offset == -1.5
    assert inverse.apply_scalar(11.0) == 4.0


def test_zero_scale_is_constant():
    """A zero scale becomes a constant that ignores its input."""
    t = LinearTransform1D.create(0.0, 7.0)
    assert isinstance(t, ConstantTransform1D)
    result = t.apply_points([[np.nan], [np.inf], [1.0]])
    np.testing.assert_array_equal(result[:, 0], [7.0, 7.0, 7.0])
    with pytest.raises(NonInvertibleTransformError):
        t.invert()


def test_create_linear_specializations():
    assert isinstance(create_linear(Matrix.identity(4)), IdentityTransform)
    assert isinstance(create_linear(Matrix([[3.0, 1.0], [0.0, 1.0]])), LinearTransform1D)
    assert isinstance(
        create_linear(Matrix([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0], [0.0, 0.0, 1.0]])),
        AffineTransform2D,
    )
    general = create_linear(Matrix([[1.0, 0.0, 0.0, 2.0], [0.0, 1.0, 0.0, 0.0], [0.0, 0.0, 0.0, 1.0]]))
    assert type(general) is MatrixTransform
    assert general.dim_source == 3
    assert general.dim_target == 2


def test_affine_2d_is_bit_identical_to_general():
    """The 2-D specialization evaluates exactly like the general matrix transform."""
    elements = [[0.3, -1.7, 1234.5678], [2.1, 0.9, -98.7654], [0.0, 0.0, 1.0]]
    specialized = AffineTransform2D(Matrix(elements))
    general = MatrixTransform(Matrix(elements))
    points = np.random.uniform(-1e6, 1e6, size=(100, 2))
    np.testing.assert_array_equal(specialized.apply_points(points), general.apply_points(points))


def test_projective_division():
    """The homogeneous coordinate divides the other outputs."""
    t = create_linear(Matrix([[1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 1.0, 1.0]]))
    result = t.apply_point([4.0, 1.0])
    np.testing.assert_allclose(result, [2.0, 0.5], atol=ABS_TOL)


def test_projective_derivative_needs_point():
    t = create_linear(Matrix([[1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 1.0, 1.0]]))
    with pytest.raises(TransformError):
        t.derivative()
    # d(x/(y+1))/dx = 1/(y+1), d/dy = -x/(y+1)^2
    jac = t.derivative([4.0, 1.0]).to_array()
    np.testing.assert_allclose(jac, [[0.5, -1.0], [0.0, 0.25]], atol=ABS_TOL)


def test_affine_derivative_is_matrix_block():
    t = create_linear(Matrix([[2.0, 1.0, 5.0], [0.0, 3.0, 6.0], [0.0, 0.0, 1.0]]))
    np.testing.assert_array_equal(t.derivative().to_array(), [[2.0, 1.0], [0.0, 3.0]])


def test_singular_matrix_not_invertible():
    t = create_linear(Matrix([[1.0, 2.0, 0.0], [2.0, 4.0, 0.0], [0.0, 0.0, 1.0]]))
    with pytest.raises(NonInvertibleTransformError):
        t.invert()


def test_matrix_round_trip():
    m = Matrix([[0.5, -0.25, 10.0], [0.1, 2.0, -3.0], [0.0, 0.0, 1.0]])
    t = create_linear(m)
    points = np.random.uniform(-100, 100, size=(20, 2))
    back = t.invert().apply_points(t.apply_points(points))
    np.testing.assert_allclose(back, points, atol=1e-9)


def test_matrix_is_read_only_copy():
    """Mutating the returned matrix doesn't change the transform."""
    t = create_linear(Matrix([[2.0, 0.0], [0.0, 1.0]]))
    m = t.matrix
    m.set_element(0, 0, 5.0)
    assert t.matrix.get_element(0, 0) == 2.0


def test_affine_text_form():
    t = create_linear(Matrix([[2.0, 0.0, 5.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]]))
    assert str(t) == (
        'PARAM_MT["Affine", PARAMETER["num_row",3], PARAMETER["num_col",3], '
        'PARAMETER["elt_0_0",2.0], PARAMETER["elt_0_2",5.0]]'
    )


def test_structural_equality():
    a = create_linear(Matrix([[2.0, 1.0], [0.0, 1.0]]))
    b = create_linear(Matrix([[2.0, 1.0], [0.0, 1.0]]))
    c = create_linear(Matrix([[2.0, 0.0], [0.0, 1.0]]))
    assert a == b
    assert hash(a) == hash(b)
    assert a != c


def test_transform_path_straight_line_stays_line():
    """An affine map keeps a straight segment straight."""
    t = create_linear(Matrix([[2.0, 0.0, 1.0], [0.0, 3.0, 0.0], [0.0, 0.0, 1.0]]))
    path = t.transform_path([("moveto", 0.0, 0.0), ("lineto", 1.0, 1.0), ("close",)])
    assert path[0] == ("moveto", 1.0, 0.0)
    assert path[1] == ("lineto", 3.0, 3.0)
    assert path[2][0] == "lineto"
    assert path[-1] == ("close",)
