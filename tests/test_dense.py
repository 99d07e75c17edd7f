# tests/test_dense.py
"""Tests for bdf_driver.dense (DenseMatrix and DenseLinearSolver)."""

from __future__ import annotations

import numpy as np
import pytest

from bdf_driver.dense import DenseLinearSolver, DenseMatrix
from bdf_driver.errors import AllocationError, ConfigurationError, ResourceReleaseError
from bdf_driver.nvector import StateVector

# -----------------------------------------------------------------------------
# DenseMatrix
# -----------------------------------------------------------------------------


def test_new_matrix_is_zero_filled() -> None:
    a = DenseMatrix.new(2, 3)
    assert a.shape == (2, 3)
    assert np.all(a.data == 0.0)


@pytest.mark.parametrize(("rows", "cols"), [(0, 2), (2, 0), (-1, 2), (2.0, 2)])
def test_new_matrix_rejects_bad_sizes(rows: object, cols: object) -> None:
    with pytest.raises(AllocationError):
        DenseMatrix.new(rows, cols)  # type: ignore[arg-type]


def test_copy_from_and_zero() -> None:
    a = DenseMatrix.new(2, 2)
    a.copy_from(np.array([[1.0, 2.0], [3.0, 4.0]]))
    assert a.data[1, 0] == 3.0
    a.zero()
    assert np.all(a.data == 0.0)
    with pytest.raises(ConfigurationError):
        a.copy_from(np.eye(3))


def test_released_matrix_rejects_access() -> None:
    a = DenseMatrix.new(2, 2)
    a.release()
    with pytest.raises(ResourceReleaseError):
        _ = a.data
    with pytest.raises(ResourceReleaseError):
        a.release()


# -----------------------------------------------------------------------------
# DenseLinearSolver construction
# -----------------------------------------------------------------------------


def test_linear_solver_requires_square_matrix() -> None:
    y = StateVector.new_serial(2)
    with pytest.raises(AllocationError, match="square"):
        DenseLinearSolver.new(y, DenseMatrix.new(2, 3))


def test_linear_solver_requires_matching_vector_length() -> None:
    y = StateVector.new_serial(3)
    with pytest.raises(AllocationError, match="incompatible"):
        DenseLinearSolver.new(y, DenseMatrix.new(2, 2))


def test_linear_solver_rejects_released_operands() -> None:
    y = StateVector.new_serial(2)
    a = DenseMatrix.new(2, 2)
    a.release()
    with pytest.raises(AllocationError, match="released"):
        DenseLinearSolver.new(y, a)


# -----------------------------------------------------------------------------
# setup / solve
# -----------------------------------------------------------------------------


def test_setup_loads_matrix_and_solve_matches_numpy() -> None:
    y = StateVector.new_serial(2)
    a = DenseMatrix.new(2, 2)
    ls = DenseLinearSolver.new(y, a)

    m = np.array([[1.0, -0.1], [0.1, 1.0]])
    b = np.array([0.5, -2.0])

    lu = ls.setup(m)
    x = ls.solve(lu, b)

    np.testing.assert_allclose(a.data, m)
    np.testing.assert_allclose(x, np.linalg.solve(m, b), rtol=1e-14)
    assert ls.n_setups == 1
    assert ls.n_solves == 1


def test_setup_does_not_alias_the_input() -> None:
    y = StateVector.new_serial(2)
    a = DenseMatrix.new(2, 2)
    ls = DenseLinearSolver.new(y, a)

    m = np.array([[2.0, 1.0], [1.0, 3.0]])
    original = m.copy()
    ls.setup(m)
    np.testing.assert_array_equal(m, original)


def test_releasing_solver_leaves_matrix_alive() -> None:
    """The solver references the matrix but does not own it."""
    y = StateVector.new_serial(2)
    a = DenseMatrix.new(2, 2)
    ls = DenseLinearSolver.new(y, a)
    ls.release()
    assert not a.released
    with pytest.raises(ResourceReleaseError):
        _ = ls.matrix
