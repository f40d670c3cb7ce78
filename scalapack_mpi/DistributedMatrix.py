__all__ = [
    "State",
    "Property",
    "DistributedMatrix",
]

import logging
from enum import Enum
from numbers import Integral
from typing import Callable, Optional, Tuple, Union

import numpy as np
from mpi4py import MPI
from pylops.utils import DTypeLike, NDArray
from pylops.utils._internal import _value_or_sized_to_tuple

from scalapack_mpi.Distributed import DistributedMixIn
from scalapack_mpi.ProcessGrid import ProcessGrid
from scalapack_mpi.backends import get_backend
from scalapack_mpi.exceptions import (
    ConfigurationError,
    NumericalFailure,
    StatePreconditionError,
)
from scalapack_mpi.utils import config
from scalapack_mpi.utils.blockcyclic import (
    Descriptor,
    indxg2l,
    indxg2p,
    indxl2g,
    numroc,
)


class State(Enum):
    r"""Enum class

    Meaning of the content of a :obj:`DistributedMatrix` after the last
    operation.

    - ``UNINITIALIZED``: Created, no content assigned yet
    - ``MATRIX``: Holds the matrix itself
    - ``CHOLESKY``: Holds the triangular Cholesky factor
    - ``INVERSE``: Holds the inverse of the matrix
    - ``EIGENVALUES``: Eigenvalues were computed, content is undefined
    - ``EIGENVECTORS``: Holds the eigenvectors (column-wise)
    """
    UNINITIALIZED = "Uninitialized"
    MATRIX = "Matrix"
    CHOLESKY = "Cholesky"
    INVERSE = "Inverse"
    EIGENVALUES = "Eigenvalues"
    EIGENVECTORS = "Eigenvectors"


class Property(Enum):
    r"""Enum class

    Structural property of the content of a :obj:`DistributedMatrix`.

    - ``GENERAL``: No particular structure
    - ``SYMMETRIC``: Symmetric matrix
    - ``LOWER_TRIANGULAR``: Lower triangular matrix
    - ``UPPER_TRIANGULAR``: Upper triangular matrix
    """
    GENERAL = "General"
    SYMMETRIC = "Symmetric"
    LOWER_TRIANGULAR = "LowerTriangular"
    UPPER_TRIANGULAR = "UpperTriangular"


class DistributedMatrix(DistributedMixIn):
    r"""Block-cyclic distributed dense matrix

    An :math:`M \times N` matrix is split into :math:`MB \times NB` blocks
    which are dealt out cyclically over the rows and columns of a
    :obj:`scalapack_mpi.ProcessGrid`. The element :math:`(i, j)` lives on
    process row :math:`\lfloor i / MB \rfloor \bmod p` and process column
    :math:`\lfloor j / NB \rfloor \bmod q`, at the local position

    .. math::
        i_{loc} = \lfloor i / (MB\,p) \rfloor MB + i \bmod MB, \quad
        j_{loc} = \lfloor j / (NB\,q) \rfloor NB + j \bmod NB

    Every method must be called identically on all processes of the grid's
    base communicator: only processes in the grid hold data and call the
    numerical backend, while the others receive the results (eigenvalues,
    norms, status codes) through
    :meth:`scalapack_mpi.ProcessGrid.send_to_inactive`.

    Operations change the meaning of the stored content; the current
    meaning is tracked by :attr:`state`:

    .. code-block:: text

        UNINITIALIZED -> MATRIX -> CHOLESKY -> INVERSE
                                -> EIGENVALUES
                                -> EIGENVECTORS

    Parameters
    ----------
    global_shape : :obj:`tuple` or :obj:`int`
        Shape of the global matrix. An integer gives a square matrix.
    grid : :obj:`scalapack_mpi.ProcessGrid`
        Process grid over which the matrix is distributed (shared, not
        copied).
    block_sizes : :obj:`tuple` or :obj:`int`, optional
        Row and column block sizes. Defaults to
        ``SCALAPACK_MPI_BLOCK_SIZE`` (32).
    matrix_property : :obj:`Property`, optional
        Structural property of the matrix. Defaults to
        ``Property.SYMMETRIC`` when ``global_shape`` is an integer,
        ``Property.GENERAL`` otherwise.
    dtype : :obj:`str`, optional
        Type of elements (``float32`` or ``float64``). Defaults to
        ``numpy.float64``.
    backend : :obj:`str`, optional
        Name of the numerical backend. Defaults to
        ``SCALAPACK_MPI_BACKEND`` (``scipy``).

    """

    def __init__(self, global_shape: Union[Tuple[int, int], Integral],
                 grid: ProcessGrid,
                 block_sizes: Optional[Union[Tuple[int, int], Integral]] = None,
                 matrix_property: Optional[Property] = None,
                 dtype: Optional[DTypeLike] = np.float64,
                 backend: Optional[str] = None):
        square = isinstance(global_shape, Integral)
        global_shape = _value_or_sized_to_tuple(global_shape, repeat=2)
        if len(global_shape) != 2 or any(not isinstance(s, Integral) or s < 1
                                         for s in global_shape):
            raise ValueError(f"global_shape must be two positive integers, got {global_shape}")
        block_sizes = config.default_block_size if block_sizes is None else block_sizes
        block_sizes = _value_or_sized_to_tuple(block_sizes, repeat=2)
        if len(block_sizes) != 2 or any(not isinstance(b, Integral) or b < 1
                                        for b in block_sizes):
            raise ConfigurationError(f"block_sizes must be two positive integers, got {block_sizes}")
        self.dtype = np.dtype(dtype)
        if self.dtype not in (np.float32, np.float64):
            raise ValueError(f"dtype must be float32 or float64, got {self.dtype}")

        self._global_shape = tuple(int(s) for s in global_shape)
        self._block_sizes = tuple(int(b) for b in block_sizes)
        self._grid = grid
        self._uplo = "L"
        self._state = State.UNINITIALIZED
        self._matrix_property = Property.GENERAL
        self._content_property = Property.GENERAL
        if matrix_property is None:
            matrix_property = Property.SYMMETRIC if square else Property.GENERAL
        self.set_property(matrix_property)

        if grid.active:
            local_m = numroc(self.m, self.mb, grid.myrow, 0, grid.nprow)
            local_n = numroc(self.n, self.nb, grid.mycol, 0, grid.npcol)
        else:
            local_m, local_n = 0, 0
        self._local_shape = (local_m, local_n)
        self._descriptor = Descriptor.create(self._global_shape, self._block_sizes,
                                             grid.context, local_m)
        # Column-major, as expected by the backend kernels
        self._local_array = np.zeros(self._local_shape, dtype=self.dtype, order="F")
        backend = config.default_backend if backend is None else backend
        self._backend = get_backend(backend)(grid, self.dtype)

    @property
    def global_shape(self):
        """Global Shape of the matrix

        Returns
        -------
        global_shape : :obj:`tuple`
        """
        return self._global_shape

    shape = global_shape

    @property
    def m(self):
        """Number of rows of the global matrix"""
        return self._global_shape[0]

    @property
    def n(self):
        """Number of columns of the global matrix"""
        return self._global_shape[1]

    @property
    def block_sizes(self):
        """Row and column block sizes

        Returns
        -------
        block_sizes : :obj:`tuple`
        """
        return self._block_sizes

    @property
    def mb(self):
        """Row block size"""
        return self._block_sizes[0]

    @property
    def nb(self):
        """Column block size"""
        return self._block_sizes[1]

    @property
    def grid(self):
        """Process grid

        Returns
        -------
        grid : :obj:`scalapack_mpi.ProcessGrid`
        """
        return self._grid

    @property
    def local_shape(self):
        """Local Shape of the matrix (``(0, 0)`` outside the grid)

        Returns
        -------
        local_shape : :obj:`tuple`
        """
        return self._local_shape

    @property
    def local_m(self):
        """Number of rows stored by this process"""
        return self._local_shape[0]

    @property
    def local_n(self):
        """Number of columns stored by this process"""
        return self._local_shape[1]

    @property
    def local_array(self):
        """View of the local (column-major) buffer

        Returns
        -------
        local_array : :obj:`numpy.ndarray`
        """
        return self._local_array

    @property
    def descriptor(self):
        """Distribution descriptor

        Returns
        -------
        descriptor : :obj:`scalapack_mpi.utils.blockcyclic.Descriptor`
        """
        return self._descriptor

    @property
    def state(self):
        """Meaning of the current content

        Returns
        -------
        state : :obj:`State`
        """
        return self._state

    @property
    def matrix_property(self):
        """Structural property of the current content

        Returns
        -------
        matrix_property : :obj:`Property`
        """
        return self._matrix_property

    @property
    def uplo(self):
        """Triangle referenced by triangular kernels (``"L"``)"""
        return self._uplo

    @property
    def backend(self):
        """Numerical backend bound to the grid of this matrix

        Returns
        -------
        backend : :obj:`scalapack_mpi.backends.Backend`
        """
        return self._backend

    def set_property(self, matrix_property: Property) -> None:
        """Assign a structural property to the matrix

        The property is also the one restored whenever fresh content is
        loaded with :meth:`assign` or :meth:`fill`, as factorizations and
        eigendecompositions change the property of the stored content.

        Parameters
        ----------
        matrix_property : :obj:`Property`
            New property.

        Raises
        ------
        ValueError
            If ``matrix_property`` is not a :obj:`Property`, or is symmetric
            for a non-square matrix.
        """
        self._check_property(matrix_property)
        self._matrix_property = matrix_property
        self._content_property = matrix_property

    def _check_property(self, matrix_property: Property) -> None:
        if not isinstance(matrix_property, Property):
            raise ValueError(f"Should be one of {[p for p in Property]}")
        if matrix_property is Property.SYMMETRIC and self.m != self.n:
            raise ValueError(f"A {self.m}x{self.n} matrix cannot be symmetric")

    def _load_content(self, matrix_property: Optional[Property]) -> None:
        """Mark freshly loaded content, restoring its structural property"""
        if matrix_property is not None:
            self._content_property = matrix_property
        self._matrix_property = self._content_property
        self._set_state(State.MATRIX)

    def _set_state(self, state: State) -> None:
        logging.debug("DistributedMatrix %dx%d: %s -> %s",
                      self.m, self.n, self._state.name, state.name)
        self._state = state

    def _require_state(self, operation: str, *states: State) -> None:
        if self._state not in states:
            raise StatePreconditionError(
                f"{operation} requires state {' or '.join(s.name for s in states)}, "
                f"current state is {self._state.name}")

    def _require_property(self, operation: str, matrix_property: Property) -> None:
        if self._matrix_property is not matrix_property:
            raise StatePreconditionError(
                f"{operation} requires property {matrix_property.name}, "
                f"current property is {self._matrix_property.name}")

    def _check_status(self, routine: str, status: int) -> None:
        """Share a backend status with inactive processes and raise on failure"""
        status = self._grid.send_status_to_inactive(status)
        if status != 0:
            raise NumericalFailure(routine, status)

    # Block-cyclic index mapping

    def _check_local(self, loc_row: int, loc_column: int) -> None:
        if not (0 <= loc_row < self.local_m and 0 <= loc_column < self.local_n):
            raise IndexError(f"Local index ({loc_row}, {loc_column}) out of range "
                             f"for local shape {self.local_shape}")

    def global_row(self, loc_row: int) -> int:
        """Global row index of the local row ``loc_row``"""
        if not 0 <= loc_row < self.local_m:
            raise IndexError(f"Local row {loc_row} out of range [0, {self.local_m})")
        return int(indxl2g(loc_row, self.mb, self._grid.myrow, 0, self._grid.nprow))

    def global_column(self, loc_column: int) -> int:
        """Global column index of the local column ``loc_column``"""
        if not 0 <= loc_column < self.local_n:
            raise IndexError(f"Local column {loc_column} out of range [0, {self.local_n})")
        return int(indxl2g(loc_column, self.nb, self._grid.mycol, 0, self._grid.npcol))

    def global_to_local(self, row: int, column: int) -> Tuple[int, int, int, int]:
        """Owner and local position of a global element

        Parameters
        ----------
        row : :obj:`int`
            Global row index.
        column : :obj:`int`
            Global column index.

        Returns
        -------
        location : :obj:`tuple`
            Process row, process column, local row and local column
            ``(prow, pcol, loc_row, loc_column)``.
        """
        if not (0 <= row < self.m and 0 <= column < self.n):
            raise IndexError(f"Global index ({row}, {column}) out of range "
                             f"for shape {self.global_shape}")
        nprow, npcol = self._grid.grid_shape
        return (int(indxg2p(row, self.mb, 0, nprow)),
                int(indxg2p(column, self.nb, 0, npcol)),
                int(indxg2l(row, self.mb, nprow)),
                int(indxg2l(column, self.nb, npcol)))

    def _global_indices(self) -> Tuple[NDArray, NDArray]:
        """Global row and column indices of the local buffer"""
        rows = indxl2g(np.arange(self.local_m), self.mb,
                       self._grid.myrow, 0, self._grid.nprow)
        cols = indxl2g(np.arange(self.local_n), self.nb,
                       self._grid.mycol, 0, self._grid.npcol)
        return rows, cols

    def _strict_triangle_mask(self, upper: bool) -> NDArray:
        rows, cols = self._global_indices()
        if upper:
            return rows[:, np.newaxis] < cols[np.newaxis, :]
        return rows[:, np.newaxis] > cols[np.newaxis, :]

    def local_el(self, loc_row: int, loc_column: int):
        """Read access to a local element"""
        self._check_local(loc_row, loc_column)
        return self._local_array[loc_row, loc_column]

    def set_local_el(self, loc_row: int, loc_column: int, value) -> None:
        """Write access to a local element"""
        self._check_local(loc_row, loc_column)
        self._local_array[loc_row, loc_column] = value

    # Assignment and copy

    @classmethod
    def to_dist(cls, x: Optional[NDArray],
                grid: ProcessGrid,
                block_sizes: Optional[Union[Tuple[int, int], Integral]] = None,
                matrix_property: Property = Property.GENERAL,
                dtype: Optional[DTypeLike] = None,
                backend: Optional[str] = None):
        """Convert a serial matrix held by rank 0 into a DistributedMatrix

        Parameters
        ----------
        x : :obj:`numpy.ndarray`
            Global matrix; only read on rank 0 of the grid's base
            communicator (other ranks may pass ``None``).
        grid : :obj:`scalapack_mpi.ProcessGrid`
            Process grid.
        block_sizes : :obj:`tuple` or :obj:`int`, optional
            Row and column block sizes.
        matrix_property : :obj:`Property`, optional
            Structural property of ``x``.
        dtype : :obj:`str`, optional
            Type of elements. Defaults to the type of ``x`` when it is a
            supported floating type, ``numpy.float64`` otherwise.
        backend : :obj:`str`, optional
            Name of the numerical backend.

        Returns
        -------
        dist_matrix : :obj:`DistributedMatrix`
            Distributed matrix in state ``MATRIX``.
        """
        layout = None
        if grid.rank == 0:
            x = np.asarray(x)
            layout = (x.shape, x.dtype)
        shape, xdtype = grid.base_comm.bcast(layout, root=0)
        if len(shape) != 2:
            raise ValueError(f"x must be a 2-dimensional array, got shape {shape}")
        if dtype is None:
            dtype = xdtype if xdtype in (np.float32, np.float64) else np.float64
        dist_matrix = cls(global_shape=shape, grid=grid, block_sizes=block_sizes,
                          matrix_property=matrix_property, dtype=dtype,
                          backend=backend)
        return dist_matrix.assign(x)

    def assign(self, x: Optional[NDArray],
               matrix_property: Optional[Property] = None) -> "DistributedMatrix":
        """Scatter a serial matrix held by rank 0 over the grid

        This function should only be used for relatively small matrix
        dimensions: rank 0 assembles the blocks of every process.

        Parameters
        ----------
        x : :obj:`numpy.ndarray`
            Global matrix of shape :attr:`global_shape`; only read on rank 0
            (other ranks may pass ``None``).
        matrix_property : :obj:`Property`, optional
            Structural property of ``x``. Defaults to the property given at
            construction (or by the last :meth:`set_property`).

        Returns
        -------
        self : :obj:`DistributedMatrix`
            The matrix, in state ``MATRIX``.

        Raises
        ------
        ValueError
            On every process, if the matrix on rank 0 has the wrong shape or
            is complex valued, or if ``matrix_property`` is invalid.
        """
        if matrix_property is not None:
            self._check_property(matrix_property)
        grid = self._grid
        valid = np.ones(1, dtype=np.int64)
        if grid.rank == 0:
            x = None if x is None else np.asarray(x)
            valid[0] = x is not None and x.shape == self.global_shape \
                and not np.iscomplexobj(x)
            if valid[0] and x.dtype != self.dtype:
                if not np.can_cast(x.dtype, self.dtype, casting="safe"):
                    logging.warning("Matrix of dtype %s cast to %s", x.dtype, self.dtype)
                x = x.astype(self.dtype)
        # Verdict of rank 0 is shared first so that no process waits in the scatter
        self._bcast(grid.base_comm, valid, root=0)
        if not valid[0]:
            raise ValueError(f"Rank 0 must provide a real matrix of shape {self.global_shape}")
        if grid.active:
            self._scatter_blocks(grid.grid_comm, x, self._local_array,
                                 self.block_sizes, grid.grid_shape)
        self._load_content(matrix_property)
        return self

    def fill(self, func: Callable[[NDArray, NDArray], NDArray],
             matrix_property: Optional[Property] = None) -> "DistributedMatrix":
        """Fill the matrix directly from a function of the global indices

        Parameters
        ----------
        func : :obj:`callable`
            Function ``func(rows, cols)`` called with broadcastable arrays of
            global row (shape ``(local_m, 1)``) and column (shape
            ``(1, local_n)``) indices, returning the matching values.
        matrix_property : :obj:`Property`, optional
            Structural property of the new content. Defaults to the property
            given at construction (or by the last :meth:`set_property`).

        Returns
        -------
        self : :obj:`DistributedMatrix`
            The matrix, in state ``MATRIX``.
        """
        if matrix_property is not None:
            self._check_property(matrix_property)
        if self._grid.active:
            rows, cols = self._global_indices()
            values = func(rows[:, np.newaxis], cols[np.newaxis, :])
            self._local_array[...] = np.broadcast_to(values, self.local_shape)
        self._load_content(matrix_property)
        return self

    def copy_to(self, broadcast: bool = False) -> Optional[NDArray]:
        """Gather the matrix into a serial matrix

        This function should only be used for relatively small matrix
        dimensions: rank 0 receives the whole matrix.

        Parameters
        ----------
        broadcast : :obj:`bool`, optional
            Return the matrix on every process (``True``) or on rank 0 only
            (``False``).

        Returns
        -------
        x : :obj:`numpy.ndarray`
            Global matrix, ``None`` on ranks other than 0 unless
            ``broadcast=True``.

        Raises
        ------
        StatePreconditionError
            If the matrix holds no content (states ``UNINITIALIZED`` and
            ``EIGENVALUES``).
        """
        self._require_state("Copy to a serial matrix", State.MATRIX, State.CHOLESKY,
                            State.INVERSE, State.EIGENVECTORS)
        grid = self._grid
        x = None
        if grid.active:
            x = self._gather_blocks(grid.grid_comm, self._local_array,
                                    self.global_shape, self.block_sizes,
                                    grid.grid_shape)
        if broadcast:
            if grid.rank != 0:
                x = np.empty(self.global_shape, dtype=self.dtype)
            self._bcast(grid.base_comm, x, root=0)
        return x

    # Factorizations

    def compute_cholesky_factorization(self) -> None:
        """Cholesky factorization :math:`A = L L^T`

        The lower triangle is overwritten by :math:`L` and the strict upper
        triangle is zeroed.

        Raises
        ------
        StatePreconditionError
            If the matrix is not in state ``MATRIX`` or not symmetric.
        NumericalFailure
            If the matrix is not positive definite (``position`` is the
            order of the first leading minor that is not); the matrix is
            left in state ``MATRIX``.
        """
        self._require_state("Cholesky factorization", State.MATRIX)
        self._require_property("Cholesky factorization", Property.SYMMETRIC)
        status = 0
        if self._grid.active:
            status = self._backend.potrf(self._uplo, self._local_array, self._descriptor)
        self._check_status("potrf", status)
        if self._grid.active:
            self._local_array[self._strict_triangle_mask(upper=self._uplo == "L")] = 0
        self._set_state(State.CHOLESKY)
        self._matrix_property = Property.LOWER_TRIANGULAR if self._uplo == "L" \
            else Property.UPPER_TRIANGULAR

    def invert(self) -> None:
        """Inverse of a symmetric positive definite matrix from its Cholesky factor

        The full (symmetric) inverse is stored in this object.

        Raises
        ------
        StatePreconditionError
            If the matrix is not in state ``CHOLESKY``; the content is left
            unchanged.
        NumericalFailure
            If the factor is singular.
        """
        self._require_state("Inversion", State.CHOLESKY)
        status = 0
        if self._grid.active:
            status = self._backend.potri(self._uplo, self._local_array, self._descriptor)
        self._check_status("potri", status)

        # Only the uplo triangle holds the inverse, the rest comes from the transpose
        status = 0
        if self._grid.active:
            transposed = np.zeros_like(self._local_array, order="F")
            status = self._backend.tran(self._local_array, self._descriptor,
                                        transposed, self._descriptor)
            if status == 0:
                mask = self._strict_triangle_mask(upper=self._uplo == "L")
                self._local_array[mask] = transposed[mask]
        self._check_status("tran", status)
        self._set_state(State.INVERSE)
        self._matrix_property = Property.SYMMETRIC

    # Eigendecomposition

    def _eigen_symmetric(self, jobz: str) -> NDArray:
        operation = "Symmetric eigendecomposition"
        self._require_state(operation, State.MATRIX)
        self._require_property(operation, Property.SYMMETRIC)
        grid = self._grid
        eigenvalues = np.zeros(min(self.m, self.n), dtype=self.dtype)
        status = 0
        if grid.active:
            lwork, liwork = self._backend.syev_lwork(jobz, self._uplo, self._descriptor)
            logging.debug("syev workspace: lwork=%d liwork=%d", lwork, liwork)
            work = np.empty(lwork, dtype=self.dtype)
            iwork = np.empty(liwork, dtype=np.int32)
            if jobz == "V":
                eigenvectors = np.zeros_like(self._local_array, order="F")
            else:
                eigenvectors = np.empty((0, 0), dtype=self.dtype)
            status = self._backend.syev(jobz, self._uplo, self._local_array,
                                        self._descriptor, eigenvalues,
                                        eigenvectors, self._descriptor,
                                        work, iwork)
        self._check_status("syev", status)
        grid.send_to_inactive(eigenvalues)
        if jobz == "V":
            if grid.active:
                self._local_array[...] = eigenvectors
            self._set_state(State.EIGENVECTORS)
            self._matrix_property = Property.GENERAL
        else:
            self._set_state(State.EIGENVALUES)
        return eigenvalues

    def eigenvalues_symmetric(self) -> NDArray:
        """Eigenvalues of a real symmetric matrix

        The content of the matrix is destroyed (state ``EIGENVALUES``).

        Returns
        -------
        eigenvalues : :obj:`numpy.ndarray`
            Eigenvalues in ascending order, identical on every process.
        """
        return self._eigen_symmetric("N")

    def eigenpairs_symmetric(self) -> NDArray:
        """Eigenvalues and eigenvectors of a real symmetric matrix

        The eigenvectors are stored in the columns of the matrix, thereby
        overwriting its content (state ``EIGENVECTORS``).

        Returns
        -------
        eigenvalues : :obj:`numpy.ndarray`
            Eigenvalues in ascending order, identical on every process.
        """
        return self._eigen_symmetric("V")

    # Norms and condition number

    def reciprocal_condition_number(self, a_norm: float) -> float:
        r"""Estimate of the reciprocal condition number in the :math:`l_1`-norm

        The matrix must hold its Cholesky factor. The reciprocal
        :math:`1 / \kappa_1(A)` is returned to avoid overflow for nearly
        singular matrices.

        Parameters
        ----------
        a_norm : :obj:`float`
            :math:`l_1`-norm of the matrix, computed before the factorization
            (see :meth:`l1_norm`).

        Returns
        -------
        rcond : :obj:`float`
            Reciprocal condition number.
        """
        self._require_state("Condition number estimate", State.CHOLESKY)
        result = np.zeros(2, dtype=np.float64)
        if self._grid.active:
            lwork, liwork = self._backend.pocon_lwork(self._uplo, self._descriptor)
            work = np.empty(lwork, dtype=self.dtype)
            iwork = np.empty(liwork, dtype=np.int32)
            result[:] = self._backend.pocon(self._uplo, self._local_array,
                                            self._descriptor, a_norm, work, iwork)
        self._grid.send_to_inactive(result)
        if result[1] != 0:
            raise NumericalFailure("pocon", int(result[1]))
        return float(result[0])

    def _norm(self, kind: str) -> float:
        r"""Matrix norm through local reductions and reductions over the grid

        No process holds a full row or column: partial row (column) sums are
        first summed over the processes of the same grid row (column), then
        the maximum is taken across the other grid direction.
        """
        self._require_state(f"{kind} norm", State.MATRIX, State.INVERSE)
        grid = self._grid
        value = np.zeros(1, dtype=np.float64)
        if grid.active:
            a = np.abs(self._local_array).astype(np.float64)
            if kind == "Frobenius":
                sumsq = self._allreduce_subcomm(grid.grid_comm, np.sum(a ** 2))
                value[0] = np.sqrt(sumsq[0])
            else:
                # l1: max column sum, linf: max row sum
                if kind == "l1":
                    sum_comm, max_comm, axis = grid.col_comm, grid.row_comm, 0
                else:
                    sum_comm, max_comm, axis = grid.row_comm, grid.col_comm, 1
                sums = self._allreduce_subcomm(sum_comm, a.sum(axis=axis))
                local_max = np.array([sums.max() if sums.size else 0.0])
                value = self._allreduce_subcomm(max_comm, local_max, op=MPI.MAX)
        grid.send_to_inactive(value)
        return float(value[0])

    def l1_norm(self) -> float:
        r"""The :math:`l_1`-norm (maximum absolute column sum) of the matrix"""
        return self._norm("l1")

    def linfty_norm(self) -> float:
        r"""The :math:`l_\infty`-norm (maximum absolute row sum) of the matrix"""
        return self._norm("linf")

    def frobenius_norm(self) -> float:
        """The Frobenius norm of the matrix"""
        return self._norm("Frobenius")
