# bdf_driver/src/bdf_driver/resources.py
"""Ownership bookkeeping shared by every bdf_driver handle.

Vectors, dense matrices, dense linear solvers and integrator contexts are all
caller-owned resources. Each one is released exactly once; releasing twice or
touching a released handle raises :class:`ResourceReleaseError`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Self

from .errors import ResourceReleaseError

if TYPE_CHECKING:
    from types import TracebackType


_DOUBLE_RELEASE_ERROR = "{kind} has already been released"
_USE_AFTER_RELEASE_ERROR = "{kind} was used after it was released"


class OwnedResource:
    """Base class for handles with an explicit release lifecycle."""

    kind = "resource"

    def __init__(self) -> None:
        """Mark the handle as live."""
        self._released = False

    @property
    def released(self) -> bool:
        """Whether :meth:`release` has been called."""
        return self._released

    def release(self) -> None:
        """
        Free the handle.

        Raises:
            ResourceReleaseError: if the handle was already released.
        """
        if self._released:
            raise ResourceReleaseError(_DOUBLE_RELEASE_ERROR.format(kind=self.kind))
        self._free()
        self._released = True

    def _free(self) -> None:
        """Drop owned storage; subclasses override."""

    def check_live(self) -> None:
        """
        Guard against use after release.

        Raises:
            ResourceReleaseError: if the handle was released.
        """
        if self._released:
            raise ResourceReleaseError(_USE_AFTER_RELEASE_ERROR.format(kind=self.kind))

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if not self._released:
            self.release()
