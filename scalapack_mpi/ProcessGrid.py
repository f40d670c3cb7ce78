__all__ = [
    "grid_shape_heuristic",
    "ProcessGrid",
]

import logging
import math
from numbers import Integral
from typing import Optional, Tuple, Union

import numpy as np
from mpi4py import MPI
from pylops.utils import NDArray
from pylops.utils._internal import _value_or_sized_to_tuple

from scalapack_mpi.Distributed import DistributedMixIn
from scalapack_mpi.exceptions import ConfigurationError
from scalapack_mpi.utils import config

logging.basicConfig(format="%(levelname)s: %(message)s", level=logging.WARNING)


def _check_positive_pair(name: str, pair: Tuple) -> Tuple[int, int]:
    if len(pair) != 2:
        raise ConfigurationError(f"{name} must have two entries, got {pair}")
    if any(not isinstance(v, Integral) or v < 1 for v in pair):
        raise ConfigurationError(f"{name} must be positive integers, got {pair}")
    return int(pair[0]), int(pair[1])


def grid_shape_heuristic(matrix_shape: Tuple[int, int],
                         block_sizes: Tuple[int, int],
                         nprocs: int) -> Tuple[int, int]:
    r"""Process grid shape for a target matrix

    Parameters
    ----------
    matrix_shape : :obj:`tuple`
        Global shape ``(M, N)`` of the target matrix.
    block_sizes : :obj:`tuple`
        Block sizes ``(MB, NB)`` of the target matrix.
    nprocs : :obj:`int`
        Number of available processes :math:`N_p`.

    Returns
    -------
    grid_shape : :obj:`tuple`
        Number of process rows and columns ``(p, q)``.

    Notes
    -----
    No more than :math:`\min(\lceil M/MB \rceil \lceil N/NB \rceil, N_p)`
    processes are used, as any process beyond the number of blocks would
    hold no data. Among the factorizations :math:`p \cdot q` of that count,
    the one whose aspect ratio :math:`p/q` is closest to :math:`M/N` (in
    log scale) is selected; ties go to the grid with fewer columns.
    """
    (m, n) = _check_positive_pair("matrix_shape", tuple(matrix_shape))
    (mb, nb) = _check_positive_pair("block_sizes", tuple(block_sizes))
    if nprocs < 1:
        raise ConfigurationError(f"nprocs must be positive, got {nprocs}")
    nblocks = math.ceil(m / mb) * math.ceil(n / nb)
    usable = min(nblocks, nprocs)
    target = math.log(m / n)
    best = None
    for npcol in range(1, usable + 1):
        if usable % npcol:
            continue
        nprow = usable // npcol
        mismatch = abs(math.log(nprow / npcol) - target)
        if best is None or mismatch < best[0]:
            best = (mismatch, nprow, npcol)
    return best[1], best[2]


class ProcessGrid(DistributedMixIn):
    r"""Two-dimensional process grid

    Arrange (a subset of) the processes of an MPI communicator into a
    logical :math:`p \times q` grid used to distribute block-cyclic
    matrices. For example, a communicator with 5 processes can be arranged
    into a :math:`2 \times 2` grid with the 5th process left inactive:

    .. code-block:: text

             |  0  |  1
        -----|-----|-----
          0  |  P0 |  P1
        -----|-----|-----
          1  |  P2 |  P3

    The first :math:`p \cdot q` ranks of ``base_comm`` are active and laid
    out row-major; the remaining ranks are inactive and only receive the
    results of operations (e.g., eigenvalues or norms) through
    :meth:`send_to_inactive`.

    A grid is immutable after construction and is meant to be shared by all
    the :obj:`scalapack_mpi.DistributedMatrix` built on it.

    Parameters
    ----------
    base_comm : :obj:`mpi4py.MPI.Comm`, optional
        MPI Communicator of all processes. Defaults to ``mpi4py.MPI.COMM_WORLD``.
    grid_shape : :obj:`tuple` or :obj:`int`, optional
        Number of process rows and columns ``(p, q)`` (an integer gives a
        square grid).
    matrix_shape : :obj:`tuple` or :obj:`int`, optional
        Shape of the target matrix, used to choose the grid shape through
        :func:`grid_shape_heuristic` when ``grid_shape`` is not provided.
    block_sizes : :obj:`tuple` or :obj:`int`, optional
        Block sizes of the target matrix. Defaults to
        ``SCALAPACK_MPI_BLOCK_SIZE`` (32).

    Raises
    ------
    ConfigurationError
        If both or none of ``grid_shape`` and ``matrix_shape`` are
        provided, if sizes are not positive, or if the grid has more
        positions than processes in ``base_comm``.

    """

    def __init__(self, base_comm: MPI.Comm = MPI.COMM_WORLD,
                 grid_shape: Optional[Union[Tuple[int, int], Integral]] = None,
                 matrix_shape: Optional[Union[Tuple[int, int], Integral]] = None,
                 block_sizes: Optional[Union[Tuple[int, int], Integral]] = None):
        if (grid_shape is None) == (matrix_shape is None):
            raise ConfigurationError("Provide either grid_shape or matrix_shape")
        self._base_comm = base_comm
        size = base_comm.Get_size()
        rank = base_comm.Get_rank()

        if grid_shape is not None:
            nprow, npcol = _check_positive_pair(
                "grid_shape", _value_or_sized_to_tuple(grid_shape, repeat=2))
            if nprow * npcol > size:
                raise ConfigurationError(f"Process grid {nprow}x{npcol} needs more "
                                         f"processes than available ({size})")
        else:
            block_sizes = config.default_block_size if block_sizes is None else block_sizes
            nprow, npcol = grid_shape_heuristic(
                _value_or_sized_to_tuple(matrix_shape, repeat=2),
                _value_or_sized_to_tuple(block_sizes, repeat=2), size)
        self._nprow, self._npcol = nprow, npcol

        # Active processes form the grid, row-major
        self._active = rank < nprow * npcol
        self._grid_comm = base_comm.Split(color=0 if self._active else MPI.UNDEFINED,
                                          key=rank)
        if self._active:
            self._myrow, self._mycol = divmod(rank, npcol)
            self._row_comm = self._grid_comm.Split(color=self._myrow, key=self._mycol)
            self._col_comm = self._grid_comm.Split(color=self._mycol, key=self._myrow)
        else:
            self._myrow, self._mycol = -1, -1
            self._row_comm = MPI.COMM_NULL
            self._col_comm = MPI.COMM_NULL

        # Rank 0 keeps rank 0 in the inactive group, so it is the root of broadcasts
        in_inactive_group = rank == 0 or not self._active
        self._inactive_with_root_comm = base_comm.Split(
            color=0 if in_inactive_group else MPI.UNDEFINED, key=rank)

        if rank == 0 and self.n_inactive > 0:
            logging.info("Process grid %dx%d leaves %d of %d processes inactive",
                         nprow, npcol, self.n_inactive, size)

    @property
    def base_comm(self):
        """Base MPI Communicator

        Returns
        -------
        base_comm : :obj:`MPI.Comm`
        """
        return self._base_comm

    @property
    def rank(self):
        """Rank of the current process in the base communicator

        Returns
        -------
        rank : :obj:`int`
        """
        return self._base_comm.Get_rank()

    @property
    def size(self):
        """Total number of processes

        Returns
        -------
        size : :obj:`int`
        """
        return self._base_comm.Get_size()

    @property
    def nprow(self):
        """Number of process rows :math:`p`"""
        return self._nprow

    @property
    def npcol(self):
        """Number of process columns :math:`q`"""
        return self._npcol

    @property
    def grid_shape(self):
        """Process grid shape ``(p, q)``

        Returns
        -------
        grid_shape : :obj:`tuple`
        """
        return self._nprow, self._npcol

    @property
    def myrow(self):
        """Process row of this process (``-1`` if inactive)"""
        return self._myrow

    @property
    def mycol(self):
        """Process column of this process (``-1`` if inactive)"""
        return self._mycol

    @property
    def coords(self):
        """Grid coordinate ``(row, column)`` of this process

        Returns
        -------
        coords : :obj:`tuple`
        """
        return self._myrow, self._mycol

    @property
    def active(self):
        """Whether this process belongs to the grid

        Returns
        -------
        active : :obj:`bool`
        """
        return self._active

    @property
    def n_active(self):
        """Number of processes in the grid"""
        return self._nprow * self._npcol

    @property
    def n_inactive(self):
        """Number of processes left out of the grid"""
        return self.size - self.n_active

    @property
    def grid_comm(self):
        """MPI Communicator of the active processes

        Returns
        -------
        grid_comm : :obj:`MPI.Comm`
            ``MPI.COMM_NULL`` on inactive processes.
        """
        return self._grid_comm

    @property
    def row_comm(self):
        """MPI Communicator of the processes in the same grid row

        Returns
        -------
        row_comm : :obj:`MPI.Comm`
            ``MPI.COMM_NULL`` on inactive processes.
        """
        return self._row_comm

    @property
    def col_comm(self):
        """MPI Communicator of the processes in the same grid column

        Returns
        -------
        col_comm : :obj:`MPI.Comm`
            ``MPI.COMM_NULL`` on inactive processes.
        """
        return self._col_comm

    @property
    def inactive_with_root_comm(self):
        """MPI Communicator joining rank 0 with the inactive processes

        Returns
        -------
        inactive_with_root_comm : :obj:`MPI.Comm`
            ``MPI.COMM_NULL`` on active processes other than rank 0.
        """
        return self._inactive_with_root_comm

    @property
    def context(self):
        """Integer handle of the grid communicator

        Returns
        -------
        context : :obj:`int`
            ``-1`` on inactive processes.
        """
        return self._grid_comm.py2f() if self._active else -1

    def send_to_inactive(self, values: NDArray) -> NDArray:
        """Send values from rank 0 to the processes outside the grid

        Must be called by every process of the base communicator. Active
        processes other than rank 0 return ``values`` untouched.

        Parameters
        ----------
        values : :obj:`numpy.ndarray`
            Contiguous buffer, read on rank 0 and overwritten on inactive
            processes.

        Returns
        -------
        values : :obj:`numpy.ndarray`
            The same buffer.
        """
        if self.n_inactive == 0:
            return values
        return self._bcast(self._inactive_with_root_comm, values, root=0)

    def send_status_to_inactive(self, status: int) -> int:
        """Send an integer status (e.g., returned by a backend) to inactive processes"""
        buf = np.array([status if self._active else 0], dtype=np.int64)
        return int(self.send_to_inactive(buf)[0])

    def free(self) -> None:
        """Release the communicators created by this grid"""
        for comm in (self._row_comm, self._col_comm,
                     self._grid_comm, self._inactive_with_root_comm):
            if comm != MPI.COMM_NULL:
                comm.Free()
        self._row_comm = self._col_comm = MPI.COMM_NULL
        self._grid_comm = self._inactive_with_root_comm = MPI.COMM_NULL
