# bdf_driver/src/bdf_driver/nvector.py
"""Serial state vectors.

A :class:`StateVector` is a fixed-length, contiguous float64 buffer owned by
the caller. The integrator writes the solution into it in place, so the
array returned by :meth:`StateVector.as_array` is a live view.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import numpy as np
import numpy.typing as npt

from .errors import AllocationError, ConfigurationError
from .resources import OwnedResource

if TYPE_CHECKING:
    from collections.abc import Sequence

FloatArray = npt.NDArray[np.floating[Any]]

_LENGTH_ERROR = "vector length must be a positive integer; got {length!r}"
_ALLOC_FAILED_ERROR = "could not allocate a serial vector of length {length}"
_INDEX_ERROR = "index {idx} out of range for vector of length {length}"
_VALUES_LENGTH_ERROR = "expected {expected} values; got {actual}"
_INTERNAL_ERROR_BUFFER_MSG = "internal error: vector buffer is missing"


class StateVector(OwnedResource):
    """Caller-owned serial vector of floats."""

    kind = "state vector"

    def __init__(self, data: FloatArray) -> None:
        """
        Wrap an already allocated 1D buffer.

        Prefer :meth:`new_serial`.

        Args:
            data: Contiguous 1D float64 array.
        """
        super().__init__()
        self._data: FloatArray | None = data

    @classmethod
    def new_serial(cls, length: int) -> StateVector:
        """
        Allocate a zero-filled serial vector.

        Args:
            length: Number of entries.

        Returns:
            A new StateVector.

        Raises:
            AllocationError: if length is not positive or allocation fails.
        """
        if isinstance(length, bool) or not isinstance(length, (int, np.integer)):
            raise AllocationError(_LENGTH_ERROR.format(length=length))
        if length < 1:
            raise AllocationError(_LENGTH_ERROR.format(length=length))
        try:
            data = np.zeros(int(length), dtype=np.float64)
        except MemoryError as exc:
            raise AllocationError(_ALLOC_FAILED_ERROR.format(length=length)) from exc
        return cls(data)

    def _free(self) -> None:
        self._data = None

    def _buffer(self) -> FloatArray:
        self.check_live()
        if self._data is None:
            raise RuntimeError(_INTERNAL_ERROR_BUFFER_MSG)
        return self._data

    def __len__(self) -> int:
        return int(self._buffer().size)

    def _check_index(self, idx: int) -> None:
        n = len(self)
        if not (0 <= idx < n):
            raise IndexError(_INDEX_ERROR.format(idx=idx, length=n))

    def __getitem__(self, idx: int) -> float:
        self._check_index(idx)
        return float(self._buffer()[idx])

    def __setitem__(self, idx: int, value: float) -> None:
        self._check_index(idx)
        self._buffer()[idx] = value

    def as_array(self) -> FloatArray:
        """Return a live view of the underlying buffer."""
        return self._buffer()

    def set_values(self, values: Sequence[float] | FloatArray) -> None:
        """
        Overwrite every entry.

        Args:
            values: New values, one per entry.

        Raises:
            ConfigurationError: if the number of values does not match.
        """
        arr = np.asarray(values, dtype=np.float64).reshape(-1)
        buf = self._buffer()
        if arr.size != buf.size:
            raise ConfigurationError(
                _VALUES_LENGTH_ERROR.format(expected=buf.size, actual=arr.size)
            )
        np.copyto(buf, arr)

    def copy_values(self) -> tuple[float, ...]:
        """Return a detached snapshot of the entries."""
        return tuple(float(v) for v in self._buffer())

    def __repr__(self) -> str:
        if self.released:
            return "StateVector(<released>)"
        return f"StateVector({self.copy_values()!r})"
