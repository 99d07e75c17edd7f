# bdf_driver/src/bdf_driver/driver.py
"""Integration driver: the complete create/configure/advance/release sequence.

The driver integrates the harmonic oscillator with a BDF/Newton integrator and
a dense direct linear solver:

    1. allocate the state vector            (AllocationError)
    2. set the initial condition
    3. create the integrator context        (InitializationError)
    4. init with rhs, t0, y0                (ConfigurationError)
    5. set scalar tolerances                (ConfigurationError)
    6. allocate the dense matrix            (AllocationError)
    7. create the dense linear solver       (AllocationError)
    8. attach solver + matrix               (ConfigurationError)
    9. advance to tout in NORMAL mode       (IntegrationError)

Every handle is registered for release on an ExitStack the moment it is
acquired, so each one is released exactly once whichever step fails.
"""

from __future__ import annotations

import sys
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .config import STATE_SIZE, DriverConfig
from .dense import DenseLinearSolver, DenseMatrix
from .errors import BdfDriverError, with_step
from .integrator import Integrator, IntegratorStats, TaskMode
from .nvector import StateVector
from .oscillator import harmonic_oscillator_rhs

if TYPE_CHECKING:
    from collections.abc import Iterator


@dataclass(frozen=True, slots=True)
class IntegrationResult:
    """Outcome of a successful driver run.

    Attributes:
        t: Time reached.
        y: State at ``t``.
        stats: Integrator work counters.
    """

    t: float
    y: tuple[float, ...]
    stats: IntegratorStats


class SolverLibrary:
    """Constructors for the handles the driver acquires.

    Subclass to substitute handles (tests use this to inject failures).
    """

    def new_vector(self, length: int) -> StateVector:
        """Allocate a serial state vector."""
        return StateVector.new_serial(length)

    def create_integrator(self, method: str, iteration: str) -> Integrator:
        """Create an integrator context."""
        return Integrator.create(method, iteration)

    def new_dense_matrix(self, rows: int, cols: int) -> DenseMatrix:
        """Allocate a dense matrix."""
        return DenseMatrix.new(rows, cols)

    def new_dense_linear_solver(
        self,
        vector: StateVector,
        matrix: DenseMatrix,
    ) -> DenseLinearSolver:
        """Create a dense linear solver bound to ``vector`` and ``matrix``."""
        return DenseLinearSolver.new(vector, matrix)


@contextmanager
def _step(label: str) -> Iterator[None]:
    try:
        yield
    except BdfDriverError as exc:
        with_step(exc, label)
        raise


def run_driver(
    config: DriverConfig | None = None,
    *,
    library: SolverLibrary | None = None,
) -> IntegrationResult:
    """
    Run the full integration sequence once.

    Args:
        config: Run parameters; defaults to the fixed oscillator scenario.
        library: Handle constructors; defaults to :class:`SolverLibrary`.

    Returns:
        IntegrationResult with the reached time and final state.

    Raises:
        AllocationError: if a vector, matrix or linear solver cannot be built.
        InitializationError: if the integrator context cannot be created.
        ConfigurationError: if init, tolerances or solver attachment fail.
        IntegrationError: if advancing to ``config.tout`` fails.
    """
    cfg = config or DriverConfig()
    lib = library or SolverLibrary()

    with ExitStack() as stack:
        with _step("create state vector"):
            y = lib.new_vector(STATE_SIZE)
        stack.callback(y.release)

        with _step("set initial condition"):
            y.set_values(cfg.y0)

        with _step("create integrator"):
            integrator = lib.create_integrator(cfg.method, cfg.iteration)
        stack.callback(integrator.release)

        with _step("initialize integrator"):
            integrator.init(harmonic_oscillator_rhs, cfg.t0, y)
            integrator.set_max_num_steps(cfg.max_num_steps)

        with _step("set tolerances"):
            integrator.set_tolerances(cfg.rtol, cfg.atol)

        with _step("create dense matrix"):
            matrix = lib.new_dense_matrix(STATE_SIZE, STATE_SIZE)
        stack.callback(matrix.release)

        with _step("create dense linear solver"):
            linear_solver = lib.new_dense_linear_solver(y, matrix)
        stack.callback(linear_solver.release)

        with _step("attach linear solver"):
            integrator.set_linear_solver(linear_solver, matrix)

        with _step("integrate"):
            t_reached = integrator.advance(cfg.tout, y, TaskMode.NORMAL)

        return IntegrationResult(
            t=t_reached,
            y=y.copy_values(),
            stats=integrator.get_stats(),
        )


def format_result(result: IntegrationResult) -> str:
    """Render the result line, e.g. ``At t = 10, y = -0.839072, 0.544022``."""
    values = ", ".join(f"{v:g}" for v in result.y)
    return f"At t = {result.t:g}, y = {values}"


def main(
    config: DriverConfig | None = None,
    *,
    library: SolverLibrary | None = None,
) -> int:
    """
    Run the driver and report on stdout/stderr.

    Args:
        config: Optional run parameters (defaults to the fixed scenario).
        library: Optional handle constructors.

    Returns:
        Process exit status: 0 on success, 1 on any failure.
    """
    try:
        result = run_driver(config, library=library)
    except BdfDriverError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    print(format_result(result))
    return 0
