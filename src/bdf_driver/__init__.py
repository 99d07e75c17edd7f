"""bdf_driver: BDF/Newton integration of a small ODE through a handle-based API."""

from __future__ import annotations

from .config import DriverConfig
from .dense import DenseLinearSolver, DenseMatrix
from .driver import IntegrationResult, SolverLibrary, format_result, main, run_driver
from .errors import (
    AllocationError,
    BdfDriverError,
    ConfigurationError,
    ErrorCode,
    InitializationError,
    IntegrationError,
    ResourceReleaseError,
)
from .integrator import (
    Integrator,
    IntegratorStats,
    LinearMultistepMethod,
    NonlinearIteration,
    RHSFunction,
    TaskMode,
)
from .nvector import StateVector
from .oscillator import (
    harmonic_oscillator_exact,
    harmonic_oscillator_jacobian,
    harmonic_oscillator_rhs,
)

__all__ = [
    "AllocationError",
    "BdfDriverError",
    "ConfigurationError",
    "DenseLinearSolver",
    "DenseMatrix",
    "DriverConfig",
    "ErrorCode",
    "InitializationError",
    "IntegrationError",
    "IntegrationResult",
    "Integrator",
    "IntegratorStats",
    "LinearMultistepMethod",
    "NonlinearIteration",
    "RHSFunction",
    "ResourceReleaseError",
    "SolverLibrary",
    "StateVector",
    "TaskMode",
    "format_result",
    "harmonic_oscillator_exact",
    "harmonic_oscillator_jacobian",
    "harmonic_oscillator_rhs",
    "main",
    "run_driver",
]

__version__ = "0.1.0"
