# bdf_driver/src/bdf_driver/oscillator.py
"""Unit-frequency harmonic oscillator, the system the driver integrates.

    y1' = y2
    y2' = -y1

With y(0) = (1, 0) the exact solution is y1 = cos(t), y2 = -sin(t).
"""

from __future__ import annotations

from typing import Any

import numpy as np
import numpy.typing as npt

FloatArray = npt.NDArray[np.floating[Any]]

_JACOBIAN = np.array([[0.0, 1.0], [-1.0, 0.0]], dtype=np.float64)
_JACOBIAN.setflags(write=False)


def harmonic_oscillator_rhs(
    t: float,  # noqa: ARG001 (autonomous system)
    y: FloatArray,
) -> FloatArray:
    """Right-hand side of the harmonic oscillator.

    Args:
        t: Current time (unused; included for API compatibility).
        y: State (y1, y2).

    Returns:
        Derivative (y2, -y1).
    """
    return np.array([y[1], -y[0]], dtype=np.float64)


def harmonic_oscillator_jacobian(
    t: float,  # noqa: ARG001
    y: FloatArray,  # noqa: ARG001
) -> FloatArray:
    """Constant Jacobian df/dy of the oscillator."""
    return _JACOBIAN.copy()


def harmonic_oscillator_exact(
    t: float | FloatArray,
    y0: tuple[float, float] = (1.0, 0.0),
) -> FloatArray:
    """Analytic solution for initial state ``y0`` at t0 = 0.

    Args:
        t: Scalar time or 1D array of times.
        y0: Initial state (y1(0), y2(0)).

    Returns:
        Array of shape (2,) for scalar t, else (2, len(t)).
    """
    t_arr = np.asarray(t, dtype=np.float64)
    c, s = np.cos(t_arr), np.sin(t_arr)
    y1 = y0[0] * c + y0[1] * s
    y2 = -y0[0] * s + y0[1] * c
    return np.stack([y1, y2])
