# tests/test_oscillator.py
"""Tests for bdf_driver.oscillator."""

from __future__ import annotations

import numpy as np

from bdf_driver.oscillator import (
    harmonic_oscillator_exact,
    harmonic_oscillator_jacobian,
    harmonic_oscillator_rhs,
)


def test_rhs_is_the_oscillator_vector_field() -> None:
    y = np.array([0.3, -1.2])
    np.testing.assert_array_equal(harmonic_oscillator_rhs(7.0, y), [-1.2, -0.3])


def test_rhs_does_not_mutate_its_input() -> None:
    y = np.array([1.0, 2.0])
    harmonic_oscillator_rhs(0.0, y)
    np.testing.assert_array_equal(y, [1.0, 2.0])


def test_jacobian_is_consistent_with_rhs() -> None:
    y = np.array([0.7, 0.2])
    jac = harmonic_oscillator_jacobian(0.0, y)
    np.testing.assert_array_equal(jac @ y, harmonic_oscillator_rhs(0.0, y))
    jac[0, 0] = 99.0
    assert harmonic_oscillator_jacobian(0.0, y)[0, 0] == 0.0


def test_exact_solution_starts_at_initial_state_and_solves_the_ode() -> None:
    np.testing.assert_allclose(harmonic_oscillator_exact(0.0), [1.0, 0.0])
    np.testing.assert_allclose(
        harmonic_oscillator_exact(10.0), [np.cos(10.0), -np.sin(10.0)]
    )

    t = np.linspace(0.0, 5.0, 101)
    y = harmonic_oscillator_exact(t, y0=(0.5, 2.0))
    assert y.shape == (2, t.size)
    # Energy y1^2 + y2^2 is conserved along the exact flow.
    np.testing.assert_allclose(y[0] ** 2 + y[1] ** 2, 0.25 + 4.0)
