# bdf_driver/src/bdf_driver/errors.py
"""Error taxonomy for bdf_driver.

Every failure surfaced by the handle layer (vectors, dense matrices, linear
solvers, integrator contexts) and by the driver is a subclass of
:class:`BdfDriverError`. Each concrete class also derives from the closest
builtin exception so generic callers can still catch ``ValueError`` or
``MemoryError``.

All errors are terminal for the driver: nothing is retried.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    """Machine-readable classification for bdf_driver failures."""

    ALLOCATION = "allocation"
    INITIALIZATION = "initialization"
    CONFIGURATION = "configuration"
    INTEGRATION = "integration"
    RESOURCE_RELEASE = "resource_release"


class BdfDriverError(Exception):
    """Base exception for bdf_driver errors."""

    default_code: ErrorCode | None = None

    def __init__(
        self,
        message: str,
        *,
        step: str | None = None,
        code: ErrorCode | None = None,
    ) -> None:
        """
        Initialize a BdfDriverError.

        Args:
            message: Human-readable error message.
            step: Optional label of the call sequence step that failed.
            code: Optional error code; defaults to the class default.
        """
        super().__init__(message)
        self.message = message
        self.step = step
        self.code: ErrorCode | None = code or self.default_code

    def __str__(self) -> str:
        """Render the message prefixed with the failing step, if known."""
        if self.step is None:
            return self.message
        return f"[{self.step}] {self.message}"


class AllocationError(BdfDriverError, MemoryError):
    """Raised when a construction call cannot produce a usable handle."""

    default_code = ErrorCode.ALLOCATION


class InitializationError(BdfDriverError, RuntimeError):
    """Raised when an integrator context cannot be created."""

    default_code = ErrorCode.INITIALIZATION


class ConfigurationError(BdfDriverError, ValueError):
    """Raised when a setup call on a handle is rejected."""

    default_code = ErrorCode.CONFIGURATION


class IntegrationError(BdfDriverError, RuntimeError):
    """Raised when advancing the integrator in time fails."""

    default_code = ErrorCode.INTEGRATION


class ResourceReleaseError(BdfDriverError, RuntimeError):
    """Raised on double release or use of a released handle."""

    default_code = ErrorCode.RESOURCE_RELEASE


def with_step(exc: BdfDriverError, step: str) -> BdfDriverError:
    """Attach a step label to an error that does not carry one yet.

    Args:
        exc: Error raised by the handle layer.
        step: Driver step label, e.g. ``"set tolerances"``.

    Returns:
        The same exception object, labelled.
    """
    if exc.step is None:
        exc.step = step
    return exc
