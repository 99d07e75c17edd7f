# bdf_driver/src/bdf_driver/dense.py
"""Dense matrices and the dense direct linear solver.

The integrator's Newton iteration repeatedly solves systems with the
iteration matrix ``M = I - c J``. When a :class:`DenseLinearSolver` is
attached, each new ``M`` is copied into the caller's :class:`DenseMatrix`,
LU-factorized with LAPACK (``scipy.linalg.lu_factor``) and then reused for
every Newton correction until the integrator asks for a new setup.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

import numpy as np
import numpy.typing as npt
from scipy.linalg import lu_factor, lu_solve

from .errors import AllocationError, ConfigurationError
from .resources import OwnedResource

if TYPE_CHECKING:
    from .nvector import StateVector

FloatArray = npt.NDArray[np.floating[Any]]
LUFactors = tuple[FloatArray, npt.NDArray[np.int32]]

_MATRIX_SIZE_ERROR = "matrix dimensions must be positive integers; got ({rows}, {cols})"
_MATRIX_ALLOC_ERROR = "could not allocate a {rows}x{cols} dense matrix"
_MATRIX_SHAPE_ERROR = "array shape {actual} does not match matrix shape {expected}"
_SQUARE_ERROR = "dense linear solver needs a square matrix; got shape {shape}"
_SIZE_MISMATCH_ERROR = (
    "matrix of shape {shape} is incompatible with a vector of length {length}"
)
_RELEASED_OPERAND_ERROR = "cannot build a linear solver from a released {kind}"
_INTERNAL_ERROR_DATA_MSG = "internal error: matrix storage is missing"
_INTERNAL_ERROR_MATRIX_MSG = "internal error: linear solver has no workspace matrix"


class DenseMatrix(OwnedResource):
    """Caller-owned dense matrix stored row-major."""

    kind = "dense matrix"

    def __init__(self, data: FloatArray) -> None:
        """
        Wrap an already allocated 2D buffer. Prefer :meth:`new`.

        Args:
            data: 2D float64 array.
        """
        super().__init__()
        self._data: FloatArray | None = data

    @classmethod
    def new(cls, rows: int, cols: int) -> DenseMatrix:
        """
        Allocate a zero-filled dense matrix.

        Args:
            rows: Number of rows.
            cols: Number of columns.

        Returns:
            A new DenseMatrix.

        Raises:
            AllocationError: if either size is not positive or allocation fails.
        """
        if not all(
            isinstance(n, (int, np.integer)) and not isinstance(n, bool) and n > 0
            for n in (rows, cols)
        ):
            raise AllocationError(_MATRIX_SIZE_ERROR.format(rows=rows, cols=cols))
        try:
            data = np.zeros((int(rows), int(cols)), dtype=np.float64)
        except MemoryError as exc:
            raise AllocationError(
                _MATRIX_ALLOC_ERROR.format(rows=rows, cols=cols)
            ) from exc
        return cls(data)

    def _free(self) -> None:
        self._data = None

    @property
    def data(self) -> FloatArray:
        """Live view of the matrix entries."""
        self.check_live()
        if self._data is None:
            raise RuntimeError(_INTERNAL_ERROR_DATA_MSG)
        return self._data

    @property
    def shape(self) -> tuple[int, int]:
        """Matrix shape as (rows, cols)."""
        return cast("tuple[int, int]", self.data.shape)

    def zero(self) -> None:
        """Set every entry to zero."""
        self.data.fill(0.0)

    def copy_from(self, array: FloatArray) -> None:
        """
        Overwrite the entries with ``array``.

        Args:
            array: Values with the same shape as the matrix.

        Raises:
            ConfigurationError: if the shapes differ.
        """
        arr = np.asarray(array, dtype=np.float64)
        if arr.shape != self.shape:
            raise ConfigurationError(
                _MATRIX_SHAPE_ERROR.format(actual=arr.shape, expected=self.shape)
            )
        np.copyto(self.data, arr)


class DenseLinearSolver(OwnedResource):
    """Direct LU solver for the dense Newton systems of the integrator.

    The solver is bound to a template vector (which fixes the problem size)
    and to the matrix used as factorization workspace. It references the
    matrix but does not own it.
    """

    kind = "dense linear solver"

    def __init__(self, size: int, matrix: DenseMatrix) -> None:
        """
        Bind the solver. Prefer :meth:`new`, which validates the operands.

        Args:
            size: Problem size.
            matrix: Workspace matrix of shape (size, size).
        """
        super().__init__()
        self.size = size
        self._matrix: DenseMatrix | None = matrix
        self.n_setups = 0
        self.n_solves = 0

    @classmethod
    def new(cls, vector: StateVector, matrix: DenseMatrix) -> DenseLinearSolver:
        """
        Create a dense linear solver compatible with ``vector`` and ``matrix``.

        Args:
            vector: Template vector; only its length is used.
            matrix: Square workspace matrix.

        Returns:
            A new DenseLinearSolver.

        Raises:
            AllocationError: if an operand is released or the sizes disagree.
        """
        for operand in (vector, matrix):
            if operand.released:
                raise AllocationError(_RELEASED_OPERAND_ERROR.format(kind=operand.kind))
        rows, cols = matrix.shape
        if rows != cols:
            raise AllocationError(_SQUARE_ERROR.format(shape=matrix.shape))
        if rows != len(vector):
            raise AllocationError(
                _SIZE_MISMATCH_ERROR.format(shape=matrix.shape, length=len(vector))
            )
        return cls(rows, matrix)

    def _free(self) -> None:
        self._matrix = None

    @property
    def matrix(self) -> DenseMatrix:
        """Workspace matrix this solver factorizes into."""
        self.check_live()
        if self._matrix is None:
            raise RuntimeError(_INTERNAL_ERROR_MATRIX_MSG)
        return self._matrix

    def setup(self, a: FloatArray) -> LUFactors:
        """
        Load and factorize a new iteration matrix.

        Args:
            a: Square matrix of shape (size, size).

        Returns:
            LU factors with pivots, suitable for :meth:`solve`.
        """
        matrix = self.matrix
        matrix.copy_from(a)
        self.n_setups += 1
        lu, piv = lu_factor(matrix.data, check_finite=False)
        return cast("LUFactors", (lu, piv))

    def solve(self, lu: LUFactors, b: FloatArray) -> FloatArray:
        """
        Solve ``A x = b`` with factors from :meth:`setup`.

        Args:
            lu: Factors returned by :meth:`setup`.
            b: Right-hand side, shape (size,).

        Returns:
            Solution vector x.
        """
        self.check_live()
        self.n_solves += 1
        return cast("FloatArray", lu_solve(lu, b, check_finite=False))
