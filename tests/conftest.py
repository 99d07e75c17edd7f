"""Global pytest configuration and shared fixtures for bdf_driver."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING

import pytest

from bdf_driver.dense import DenseLinearSolver, DenseMatrix
from bdf_driver.driver import SolverLibrary
from bdf_driver.integrator import Integrator
from bdf_driver.nvector import StateVector
from bdf_driver.oscillator import harmonic_oscillator_rhs

if TYPE_CHECKING:
    from bdf_driver.resources import OwnedResource


# -----------------------------------------------------------------------------
# Markers
# -----------------------------------------------------------------------------


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers used by the test suite."""
    config.addinivalue_line(
        "markers",
        "accuracy: compares integrated states against the analytic solution",
    )


# -----------------------------------------------------------------------------
# Recording library
# -----------------------------------------------------------------------------


class RecordingLibrary(SolverLibrary):
    """SolverLibrary that remembers every handle it hands out."""

    def __init__(self) -> None:
        self.handles: list[OwnedResource] = []

    def new_vector(self, length: int) -> StateVector:
        vector = super().new_vector(length)
        self.handles.append(vector)
        return vector

    def create_integrator(self, method: str, iteration: str) -> Integrator:
        integrator = super().create_integrator(method, iteration)
        self.handles.append(integrator)
        return integrator

    def new_dense_matrix(self, rows: int, cols: int) -> DenseMatrix:
        matrix = super().new_dense_matrix(rows, cols)
        self.handles.append(matrix)
        return matrix

    def new_dense_linear_solver(
        self,
        vector: StateVector,
        matrix: DenseMatrix,
    ) -> DenseLinearSolver:
        solver = super().new_dense_linear_solver(vector, matrix)
        self.handles.append(solver)
        return solver


@pytest.fixture
def recording_library() -> RecordingLibrary:
    """Fresh RecordingLibrary per test."""
    return RecordingLibrary()


# -----------------------------------------------------------------------------
# Configured integrator
# -----------------------------------------------------------------------------

ConfiguredIntegrator = tuple[Integrator, StateVector, DenseLinearSolver, DenseMatrix]


@pytest.fixture
def make_integrator() -> Iterator[Callable[..., ConfiguredIntegrator]]:
    """
    Factory for a fully configured oscillator integrator.

    Every handle created through the factory is released at teardown.

    Usage:
        def test_x(make_integrator):
            integrator, y, ls, a = make_integrator(rtol=1e-6, atol=1e-9)
    """
    created: list[OwnedResource] = []

    def _make(
        *,
        y0: tuple[float, float] = (1.0, 0.0),
        t0: float = 0.0,
        rtol: float = 1e-4,
        atol: float = 1e-8,
        max_num_steps: int = 10_000,
    ) -> ConfiguredIntegrator:
        y = StateVector.new_serial(2)
        created.append(y)
        y.set_values(y0)
        integrator = Integrator.create()
        created.append(integrator)
        integrator.init(harmonic_oscillator_rhs, t0, y)
        integrator.set_tolerances(rtol, atol)
        integrator.set_max_num_steps(max_num_steps)
        a = DenseMatrix.new(2, 2)
        created.append(a)
        ls = DenseLinearSolver.new(y, a)
        created.append(ls)
        integrator.set_linear_solver(ls, a)
        return integrator, y, ls, a

    yield _make

    for handle in created:
        if not handle.released:
            handle.release()
