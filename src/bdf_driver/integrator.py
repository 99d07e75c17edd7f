# bdf_driver/src/bdf_driver/integrator.py
"""Integrator context around SciPy's variable-order BDF solver.

:class:`Integrator` is an opaque, caller-owned handle with a fixed lifecycle:

    create -> init -> set_tolerances -> set_linear_solver -> advance ... -> release

The numerical work (variable step / variable order BDF, simplified Newton
iteration, error control, dense output) is done by
:class:`scipy.integrate.BDF`. This module only sequences the calls, validates
configuration, routes the Newton linear systems through the attached
:class:`~bdf_driver.dense.DenseLinearSolver`, and maps library failures onto
the bdf_driver error taxonomy.

Time semantics follow a "normal mode" output convention: the library steps
past the requested output time and the state at ``tout`` is obtained by
interpolating the BDF dense output over the last step. Later calls continue
from the internal time, not from ``tout``.
"""

from __future__ import annotations

import math
import warnings
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Final

import numpy as np
import numpy.typing as npt
from scipy.integrate import BDF

from .errors import (
    BdfDriverError,
    ConfigurationError,
    InitializationError,
    IntegrationError,
)
from .resources import OwnedResource

if TYPE_CHECKING:
    from scipy.integrate import DenseOutput

    from .dense import DenseLinearSolver, DenseMatrix, LUFactors
    from .nvector import StateVector

FloatArray = npt.NDArray[np.floating[Any]]
RHSFunction = Callable[[float, FloatArray], FloatArray]
JacobianFunction = Callable[[float, FloatArray], FloatArray]

DEFAULT_MAX_NUM_STEPS: Final[int] = 500


class LinearMultistepMethod(StrEnum):
    """Linear multistep method family."""

    BDF = "bdf"
    ADAMS = "adams"


class NonlinearIteration(StrEnum):
    """Nonlinear solver used inside each implicit step."""

    NEWTON = "newton"
    FUNCTIONAL = "functional"


class TaskMode(StrEnum):
    """How far :meth:`Integrator.advance` goes per call."""

    NORMAL = "normal"
    ONE_STEP = "one-step"


_SUPPORTED_COMBINATIONS: Final = frozenset(
    {(LinearMultistepMethod.BDF, NonlinearIteration.NEWTON)}
)


# =============================================================================
# Error messages
# =============================================================================

_UNKNOWN_METHOD_ERROR = "Unknown linear multistep method: {method!r}"
_UNKNOWN_ITERATION_ERROR = "Unknown nonlinear iteration: {iteration!r}"
_UNSUPPORTED_COMBINATION_ERROR = (
    "No integrator available for method={method} with iteration={iteration}; "
    "only bdf/newton is provided by the underlying library"
)
_ALREADY_INITIALIZED_ERROR = "integrator is already initialized; use reinit()"
_NOT_INITIALIZED_ERROR = "integrator must be initialized with init() first"
_RHS_NOT_CALLABLE_ERROR = "right-hand side must be callable; got {typ}"
_JAC_NOT_CALLABLE_ERROR = "Jacobian function must be callable or None; got {typ}"
_NO_JAC_FN_ERROR = "no Jacobian function is set; call set_jac_fn()"
_T0_ERROR = "initial time must be a finite float; got {t0!r}"
_RELEASED_VECTOR_ERROR = "initial state vector has been released"
_TOLERANCE_ERROR = "{name} must be a finite, non-negative scalar; got {value!r}"
_LS_SIZE_ERROR = "linear solver size {size} does not match problem size {n}"
_LS_MATRIX_ERROR = "linear solver is bound to a different matrix"
_LS_RELEASED_ERROR = "cannot attach a released {kind}"
_NO_LINEAR_SOLVER_ERROR = "no linear solver attached; call set_linear_solver()"
_MAX_STEPS_TYPE_ERROR = "max_num_steps must be an integer; got {value!r}"
_MAX_STEPS_DISABLED_WARNING = (
    "max_num_steps={value} disables the per-call step limit; "
    "advance() may run indefinitely on a stiff or ill-posed problem"
)
_MAX_STEP_ERROR = "max_step must be positive (0 means unbounded); got {value!r}"
_NO_TOLERANCES_ERROR = "tolerances are not set; call set_tolerances()"
_VECTOR_LENGTH_ERROR = "output vector length {actual} does not match problem size {n}"
_TOUT_ERROR = "tout must be a finite float; got {tout!r}"
_MODE_ERROR = "Unknown task mode: {mode!r}"
_TOUT_BEHIND_ERROR = (
    "tout={tout} is behind the last step interval [{t_old}, {t_cur}]; "
    "the integrator only advances forward"
)
_TOO_MUCH_WORK_ERROR = (
    "took {steps} internal steps before reaching tout={tout} (t={t_cur}); "
    "raise max_num_steps or relax the tolerances"
)
_STEP_FAILED_ERROR = "integration step failed at t={t}: {reason}"
_SOLVER_NOT_RUNNING_ERROR = "integrator stopped at t={t} after a previous failure"
_LIBRARY_SETUP_ERROR = "the BDF library rejected the problem setup: {reason}"
_RHS_FAILED_ERROR = "right-hand side raised at t={t}: {err!r}"
_RHS_SHAPE_ERROR = "right-hand side returned shape {actual}; expected {expected}"
_JAC_SHAPE_ERROR = "Jacobian function returned shape {actual}; expected {expected}"


# =============================================================================
# Statistics
# =============================================================================


@dataclass(frozen=True, slots=True)
class IntegratorStats:
    """Counters describing the work done so far.

    Attributes:
        n_steps: Internal steps taken.
        n_rhs_evals: Right-hand side evaluations (including those spent on
            finite-difference Jacobians).
        n_jac_evals: Jacobian evaluations.
        n_lin_setups: Factorizations done by the attached linear solver.
        last_step: Size of the last internal step (0.0 before the first).
        current_time: Internal time reached by the integrator.
    """

    n_steps: int
    n_rhs_evals: int
    n_jac_evals: int
    n_lin_setups: int
    last_step: float
    current_time: float


# =============================================================================
# Integrator
# =============================================================================


class Integrator(OwnedResource):
    """Stateful implicit multistep integrator context."""

    kind = "integrator context"

    def __init__(
        self,
        method: LinearMultistepMethod,
        iteration: NonlinearIteration,
    ) -> None:
        """
        Initialize an empty context. Prefer :meth:`create`.

        Args:
            method: Linear multistep method family.
            iteration: Nonlinear iteration type.
        """
        super().__init__()
        self.method = method
        self.iteration = iteration

        self._rhs: RHSFunction | None = None
        self._jac_fn: JacobianFunction | None = None
        self._n = 0
        self._t0 = 0.0
        self._y0: FloatArray | None = None

        self._rtol: float | None = None
        self._atol: float | None = None
        self._max_num_steps: int | None = DEFAULT_MAX_NUM_STEPS
        self._max_step = math.inf

        self._linear_solver: DenseLinearSolver | None = None
        self._matrix: DenseMatrix | None = None

        self._solver: BDF | None = None
        self._n_steps = 0
        self._n_lin_setups = 0
        self._retired_nfev = 0
        self._retired_njev = 0
        self._last_step = 0.0
        self._carried_output: DenseOutput | None = None

    @classmethod
    def create(
        cls,
        method: LinearMultistepMethod | str = LinearMultistepMethod.BDF,
        iteration: NonlinearIteration | str = NonlinearIteration.NEWTON,
    ) -> Integrator:
        """
        Create an integrator context for a method family and iteration type.

        Args:
            method: Linear multistep method family.
            iteration: Nonlinear iteration type.

        Returns:
            A new, uninitialized Integrator.

        Raises:
            InitializationError: if the combination is unknown or unsupported.
        """
        try:
            lmm = LinearMultistepMethod(method)
        except ValueError as exc:
            raise InitializationError(
                _UNKNOWN_METHOD_ERROR.format(method=method)
            ) from exc
        try:
            it = NonlinearIteration(iteration)
        except ValueError as exc:
            raise InitializationError(
                _UNKNOWN_ITERATION_ERROR.format(iteration=iteration)
            ) from exc

        if (lmm, it) not in _SUPPORTED_COMBINATIONS:
            raise InitializationError(
                _UNSUPPORTED_COMBINATION_ERROR.format(method=lmm, iteration=it)
            )
        return cls(lmm, it)

    def _free(self) -> None:
        # Linear solver and matrix are caller-owned; only drop references.
        self._solver = None
        self._linear_solver = None
        self._carried_output = None
        self._matrix = None
        self._rhs = None
        self._jac_fn = None
        self._y0 = None

    # ------------------------------------------------------------------
    # Problem setup
    # ------------------------------------------------------------------

    @property
    def initialized(self) -> bool:
        """Whether :meth:`init` has been called."""
        return self._rhs is not None

    @property
    def problem_size(self) -> int:
        """Number of equations (0 before :meth:`init`)."""
        return self._n

    def _require_initialized(self) -> None:
        self.check_live()
        if not self.initialized:
            raise ConfigurationError(_NOT_INITIALIZED_ERROR)

    @staticmethod
    def _validate_start(t0: float, y: StateVector) -> tuple[float, FloatArray]:
        try:
            t0_f = float(t0)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(_T0_ERROR.format(t0=t0)) from exc
        if not math.isfinite(t0_f):
            raise ConfigurationError(_T0_ERROR.format(t0=t0))
        if y.released:
            raise ConfigurationError(_RELEASED_VECTOR_ERROR)
        return t0_f, y.as_array().copy()

    def init(self, rhs: RHSFunction, t0: float, y: StateVector) -> None:
        """
        Register the right-hand side and the initial condition.

        The state vector is copied; it is written again only by :meth:`advance`.

        Args:
            rhs: Right-hand side ``f(t, y) -> dy/dt``.
            t0: Initial time.
            y: Initial state.

        Raises:
            ConfigurationError: on invalid arguments or a repeated call.
        """
        self.check_live()
        if self.initialized:
            raise ConfigurationError(_ALREADY_INITIALIZED_ERROR)
        if not callable(rhs):
            raise ConfigurationError(
                _RHS_NOT_CALLABLE_ERROR.format(typ=type(rhs).__name__)
            )
        self._t0, self._y0 = self._validate_start(t0, y)
        self._n = int(self._y0.size)
        self._rhs = rhs

    def reinit(self, t0: float, y: StateVector) -> None:
        """
        Restart integration from a new initial condition.

        Tolerances, the attached linear solver and limits are kept; step
        history and counters are reset.

        Args:
            t0: New initial time.
            y: New initial state, same length as before.

        Raises:
            ConfigurationError: if not initialized or the state size changed.
        """
        self._require_initialized()
        t0_f, y0 = self._validate_start(t0, y)
        if y0.size != self._n:
            raise ConfigurationError(
                _VECTOR_LENGTH_ERROR.format(actual=y0.size, n=self._n)
            )
        self._t0, self._y0 = t0_f, y0
        self._solver = None
        self._n_steps = 0
        self._n_lin_setups = 0
        self._retired_nfev = 0
        self._retired_njev = 0
        self._last_step = 0.0
        self._carried_output = None

    @staticmethod
    def _validate_tolerance(name: str, value: float) -> float:
        try:
            val = float(value)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(
                _TOLERANCE_ERROR.format(name=name, value=value)
            ) from exc
        if not math.isfinite(val) or val < 0.0:
            raise ConfigurationError(_TOLERANCE_ERROR.format(name=name, value=value))
        return val

    def set_tolerances(self, rtol: float, atol: float) -> None:
        """
        Set scalar relative and absolute tolerances.

        After stepping has begun this restarts the method from the current
        internal state; the last step stays available for interpolation.

        Args:
            rtol: Relative tolerance.
            atol: Absolute tolerance.

        Raises:
            ConfigurationError: if not initialized or a tolerance is invalid.
        """
        self._require_initialized()
        self._rtol = self._validate_tolerance("rtol", rtol)
        self._atol = self._validate_tolerance("atol", atol)
        self._restart_from_current()

    def set_linear_solver(
        self,
        linear_solver: DenseLinearSolver,
        matrix: DenseMatrix,
    ) -> None:
        """
        Attach a dense linear solver and its workspace matrix.

        The integrator references both handles but does not own them; they
        must stay alive until the last :meth:`advance` call.

        Args:
            linear_solver: Solver used for every Newton linear system.
            matrix: Matrix the solver factorizes into.

        Raises:
            ConfigurationError: if not initialized, a handle is released, or
                the sizes do not match the problem.
        """
        self._require_initialized()
        for handle in (linear_solver, matrix):
            if handle.released:
                raise ConfigurationError(_LS_RELEASED_ERROR.format(kind=handle.kind))
        if linear_solver.matrix is not matrix:
            raise ConfigurationError(_LS_MATRIX_ERROR)
        if linear_solver.size != self._n:
            raise ConfigurationError(
                _LS_SIZE_ERROR.format(size=linear_solver.size, n=self._n)
            )
        self._linear_solver = linear_solver
        self._matrix = matrix
        self._restart_from_current()

    def set_jac_fn(self, jac: JacobianFunction | None) -> None:
        """
        Supply an analytic Jacobian ``J(t, y) = df/dy``.

        Without one, the library approximates J by finite differences.

        Args:
            jac: Jacobian callable, or None to go back to finite differences.

        Raises:
            ConfigurationError: if not callable or no linear solver is attached.
        """
        self._require_initialized()
        if self._linear_solver is None:
            raise ConfigurationError(_NO_LINEAR_SOLVER_ERROR)
        if jac is not None and not callable(jac):
            raise ConfigurationError(
                _JAC_NOT_CALLABLE_ERROR.format(typ=type(jac).__name__)
            )
        self._jac_fn = jac
        self._restart_from_current()

    def set_max_num_steps(self, max_num_steps: int) -> None:
        """
        Limit the internal steps taken by a single :meth:`advance` call.

        Args:
            max_num_steps: Positive limit; 0 restores the default (500); a
                negative value disables the check.

        Raises:
            ConfigurationError: if the value is not an integer.
        """
        self.check_live()
        if isinstance(max_num_steps, bool) or not isinstance(
            max_num_steps, (int, np.integer)
        ):
            raise ConfigurationError(_MAX_STEPS_TYPE_ERROR.format(value=max_num_steps))
        if max_num_steps == 0:
            self._max_num_steps = DEFAULT_MAX_NUM_STEPS
        elif max_num_steps < 0:
            warnings.warn(
                _MAX_STEPS_DISABLED_WARNING.format(value=max_num_steps),
                RuntimeWarning,
                stacklevel=2,
            )
            self._max_num_steps = None
        else:
            self._max_num_steps = int(max_num_steps)

    def set_max_step(self, max_step: float) -> None:
        """
        Bound the absolute internal step size.

        Args:
            max_step: Upper bound; 0 means unbounded.

        Raises:
            ConfigurationError: if negative or not a number.
        """
        self.check_live()
        try:
            h = float(max_step)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(_MAX_STEP_ERROR.format(value=max_step)) from exc
        if math.isnan(h) or h < 0.0:
            raise ConfigurationError(_MAX_STEP_ERROR.format(value=max_step))
        self._max_step = math.inf if h == 0.0 else h
        self._restart_from_current()

    # ------------------------------------------------------------------
    # Library plumbing
    # ------------------------------------------------------------------

    def _restart_from_current(self) -> None:
        """Drop the library solver so the next advance rebuilds it in place.

        The BDF object freezes its tolerances, Jacobian source and step bound
        at construction; configuration changes after stepping has begun
        restart the method (order 1) from the current internal state.
        The last step's interpolant is kept, so output times inside that
        step stay reachable until the rebuilt solver takes its first step.
        """
        solver = self._solver
        if solver is None:
            return
        if solver.t_old is not None:
            self._carried_output = solver.dense_output()
        self._t0 = float(solver.t)
        self._y0 = np.array(solver.y, dtype=np.float64)
        self._retired_nfev += int(solver.nfev)
        self._retired_njev += int(solver.njev)
        self._solver = None

    def _evaluate_rhs(self, t: float, y: FloatArray) -> FloatArray:
        if self._rhs is None:
            raise IntegrationError(_NOT_INITIALIZED_ERROR)
        try:
            ydot = self._rhs(t, y)
        except BdfDriverError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise IntegrationError(_RHS_FAILED_ERROR.format(t=t, err=exc)) from exc
        ydot_arr = np.asarray(ydot, dtype=np.float64)
        if ydot_arr.shape != (self._n,):
            raise IntegrationError(
                _RHS_SHAPE_ERROR.format(actual=ydot_arr.shape, expected=(self._n,))
            )
        return ydot_arr

    def _evaluate_jac(self, t: float, y: FloatArray) -> FloatArray:
        if self._jac_fn is None:
            raise IntegrationError(_NO_JAC_FN_ERROR)
        try:
            jac = self._jac_fn(t, y)
        except BdfDriverError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise IntegrationError(_RHS_FAILED_ERROR.format(t=t, err=exc)) from exc
        jac_arr = np.array(jac, dtype=np.float64)
        if jac_arr.shape != (self._n, self._n):
            raise IntegrationError(
                _JAC_SHAPE_ERROR.format(actual=jac_arr.shape, expected=(self._n,) * 2)
            )
        return jac_arr

    def _setup_linear_solver(self, a: FloatArray) -> LUFactors:
        if self._linear_solver is None:
            raise IntegrationError(_NO_LINEAR_SOLVER_ERROR)
        self._n_lin_setups += 1
        return self._linear_solver.setup(a)

    def _solve_linear_system(self, lu: LUFactors, b: FloatArray) -> FloatArray:
        if self._linear_solver is None:
            raise IntegrationError(_NO_LINEAR_SOLVER_ERROR)
        return self._linear_solver.solve(lu, b)

    def _ensure_solver(self) -> BDF:
        if self._solver is not None:
            return self._solver

        if self._rtol is None or self._atol is None:
            raise IntegrationError(_NO_TOLERANCES_ERROR)
        linear_solver = self._linear_solver
        if linear_solver is None or self._matrix is None:
            raise IntegrationError(_NO_LINEAR_SOLVER_ERROR)
        for handle in (linear_solver, self._matrix):
            if handle.released:
                raise IntegrationError(_LS_RELEASED_ERROR.format(kind=handle.kind))

        if self._y0 is None:
            raise IntegrationError(_NOT_INITIALIZED_ERROR)
        try:
            solver = BDF(
                self._evaluate_rhs,
                self._t0,
                self._y0,
                t_bound=math.inf,
                max_step=self._max_step,
                rtol=self._rtol,
                atol=self._atol,
                jac=self._evaluate_jac if self._jac_fn is not None else None,
            )
        except ValueError as exc:
            raise IntegrationError(_LIBRARY_SETUP_ERROR.format(reason=exc)) from exc

        # Route every Newton iteration matrix through the attached solver.
        # BDF.lu / BDF.solve_lu are the factorization hooks _step_impl calls
        # in SciPy 1.11-1.17 (pinned in pyproject.toml).
        solver.lu = self._setup_linear_solver
        solver.solve_lu = self._solve_linear_system
        self._solver = solver
        return solver

    def _take_step(self, solver: BDF) -> None:
        if solver.status != "running":
            raise IntegrationError(_SOLVER_NOT_RUNNING_ERROR.format(t=solver.t))
        message = solver.step()
        if solver.status == "failed":
            raise IntegrationError(
                _STEP_FAILED_ERROR.format(t=solver.t, reason=message)
            )
        self._n_steps += 1
        self._last_step = float(solver.step_size or 0.0)
        self._carried_output = None

    def _last_interval(self, solver: BDF) -> DenseOutput | None:
        if solver.t_old is not None:
            return solver.dense_output()
        return self._carried_output

    # ------------------------------------------------------------------
    # Time stepping
    # ------------------------------------------------------------------

    def advance(
        self,
        tout: float,
        y: StateVector,
        mode: TaskMode | str = TaskMode.NORMAL,
    ) -> float:
        """
        Advance the solution and write it into ``y``.

        Args:
            tout: Requested output time (ignored in ONE_STEP mode except for
                validation).
            y: Output vector, overwritten in place.
            mode: NORMAL to stop at ``tout``; ONE_STEP to take a single
                internal step.

        Returns:
            Time the returned state corresponds to (``tout`` in NORMAL mode).

        Raises:
            IntegrationError: if the integrator is not fully configured,
                ``tout`` is invalid or behind the last step, the step limit
                is exceeded, or the library reports a failure.
        """
        self.check_live()
        if not self.initialized:
            raise IntegrationError(_NOT_INITIALIZED_ERROR)
        if y.released:
            raise IntegrationError(_RELEASED_VECTOR_ERROR)
        if len(y) != self._n:
            raise IntegrationError(_VECTOR_LENGTH_ERROR.format(actual=len(y), n=self._n))
        try:
            task = TaskMode(mode)
        except ValueError as exc:
            raise IntegrationError(_MODE_ERROR.format(mode=mode)) from exc
        try:
            tout_f = float(tout)
        except (TypeError, ValueError) as exc:
            raise IntegrationError(_TOUT_ERROR.format(tout=tout)) from exc
        if not math.isfinite(tout_f):
            raise IntegrationError(_TOUT_ERROR.format(tout=tout))

        solver = self._ensure_solver()
        out = y.as_array()

        if task is TaskMode.ONE_STEP:
            self._take_step(solver)
            np.copyto(out, solver.y)
            return float(solver.t)

        if tout_f < solver.t:
            interval = self._last_interval(solver)
            if interval is None or tout_f < interval.t_min:
                raise IntegrationError(
                    _TOUT_BEHIND_ERROR.format(
                        tout=tout_f,
                        t_old=None if interval is None else interval.t_min,
                        t_cur=solver.t,
                    )
                )
            np.copyto(out, interval(tout_f))
            return tout_f

        steps = 0
        while solver.t < tout_f:
            if self._max_num_steps is not None and steps >= self._max_num_steps:
                raise IntegrationError(
                    _TOO_MUCH_WORK_ERROR.format(steps=steps, tout=tout_f, t_cur=solver.t)
                )
            self._take_step(solver)
            steps += 1

        if solver.t == tout_f:
            np.copyto(out, solver.y)
        else:
            np.copyto(out, solver.dense_output()(tout_f))
        return tout_f

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def get_stats(self) -> IntegratorStats:
        """
        Return work counters for the current integration.

        Returns:
            IntegratorStats snapshot.
        """
        self.check_live()
        solver = self._solver
        nfev = self._retired_nfev + (int(solver.nfev) if solver is not None else 0)
        njev = self._retired_njev + (int(solver.njev) if solver is not None else 0)
        t_cur = float(solver.t) if solver is not None else self._t0
        return IntegratorStats(
            n_steps=self._n_steps,
            n_rhs_evals=nfev,
            n_jac_evals=njev,
            n_lin_setups=self._n_lin_setups,
            last_step=self._last_step,
            current_time=t_cur,
        )
