__all__ = [
    "mpi_allreduce",
    "mpi_bcast",
    "mpi_scatter_blocks",
    "mpi_gather_blocks",
]

from typing import Optional, Tuple

import numpy as np
from mpi4py import MPI
from pylops.utils import NDArray

from scalapack_mpi.utils.blockcyclic import local_block_indices


def _block_layout(comm: MPI.Comm, shape: Tuple[int, int],
                  block_sizes: Tuple[int, int],
                  grid_shape: Tuple[int, int]):
    """Global indices, counts and displacements of the blocks of every rank

    Ranks of ``comm`` are laid out row-major on the grid.
    """
    npcol = grid_shape[1]
    indices = [local_block_indices(shape, block_sizes, grid_shape,
                                   divmod(rank, npcol))
               for rank in range(comm.Get_size())]
    counts = [int(rows.size * cols.size) for rows, cols in indices]
    displs = [0] + np.cumsum(counts)[:-1].tolist()
    return indices, counts, displs


def mpi_allreduce(base_comm: MPI.Comm,
                  send_buf: NDArray,
                  recv_buf: Optional[NDArray] = None,
                  op: MPI.Op = MPI.SUM) -> NDArray:
    """MPI_Allreduce

    Parameters
    ----------
    base_comm : :obj:`MPI.Comm`
        Communicator over which the reduction is performed.
    send_buf : :obj:`numpy.ndarray`
        The data buffer of this rank to be reduced.
    recv_buf : :obj:`numpy.ndarray`, optional
        The buffer to store the result of the reduction. If None,
        a new buffer will be allocated with the appropriate shape.
    op : :obj:mpi4py.MPI.Op, optional
        The reduction operation to apply. Defaults to MPI.SUM.

    Returns
    -------
    recv_buf : :obj:`numpy.ndarray`
        A flat buffer containing the result of the reduction, available
        on all ranks.

    """
    send_buf = np.ascontiguousarray(np.atleast_1d(send_buf))
    if recv_buf is None:
        recv_buf = np.zeros(send_buf.size, dtype=send_buf.dtype)
    base_comm.Allreduce(send_buf, recv_buf, op)
    return recv_buf


def mpi_bcast(base_comm: MPI.Comm, buf: NDArray, root: int = 0) -> NDArray:
    """MPI_Bcast of a contiguous buffer, in place

    A null communicator is skipped, which lets processes that are not part
    of a sub-group call this routine unconditionally.
    """
    if base_comm != MPI.COMM_NULL:
        base_comm.Bcast(buf, root=root)
    return buf


def mpi_scatter_blocks(base_comm: MPI.Comm,
                       x: Optional[NDArray],
                       local_array: NDArray,
                       block_sizes: Tuple[int, int],
                       grid_shape: Tuple[int, int],
                       root: int = 0) -> NDArray:
    """Scatter a global matrix held by ``root`` in block-cyclic fashion

    Parameters
    ----------
    base_comm : :obj:`MPI.Comm`
        Grid communicator (one rank per grid position, row-major).
    x : :obj:`numpy.ndarray`
        Global matrix; only read on ``root``.
    local_array : :obj:`numpy.ndarray`
        Column-major local buffer of this rank, overwritten.
    block_sizes : :obj:`tuple`
        Block sizes ``(MB, NB)``.
    grid_shape : :obj:`tuple`
        Process grid shape ``(p, q)``.
    root : :obj:`int`, optional
        Rank holding the global matrix.

    Returns
    -------
    local_array : :obj:`numpy.ndarray`
        The filled local buffer.
    """
    dtype = local_array.dtype
    mpi_type = MPI._typedict[dtype.char]
    if base_comm.Get_rank() == root:
        indices, counts, displs = _block_layout(base_comm, x.shape,
                                                block_sizes, grid_shape)
        blocks = [x[np.ix_(rows, cols)].ravel(order="F") for rows, cols in indices]
        send_buf = np.concatenate(blocks).astype(dtype, copy=False)
        send_spec = [send_buf, (counts, displs), mpi_type]
    else:
        send_spec = None
    recv_buf = np.empty(local_array.size, dtype=dtype)
    base_comm.Scatterv(send_spec, [recv_buf, mpi_type], root=root)
    local_array[...] = recv_buf.reshape(local_array.shape, order="F")
    return local_array


def mpi_gather_blocks(base_comm: MPI.Comm,
                      local_array: NDArray,
                      shape: Tuple[int, int],
                      block_sizes: Tuple[int, int],
                      grid_shape: Tuple[int, int],
                      root: int = 0) -> Optional[NDArray]:
    """Gather the local blocks of a block-cyclic matrix on ``root``

    Inverse of :func:`mpi_scatter_blocks`.

    Returns
    -------
    x : :obj:`numpy.ndarray`
        Global matrix on ``root``, ``None`` on every other rank.
    """
    dtype = local_array.dtype
    mpi_type = MPI._typedict[dtype.char]
    send_buf = np.ascontiguousarray(local_array.ravel(order="F"))
    if base_comm.Get_rank() != root:
        base_comm.Gatherv([send_buf, mpi_type], None, root=root)
        return None

    indices, counts, displs = _block_layout(base_comm, shape,
                                            block_sizes, grid_shape)
    recv_buf = np.empty(sum(counts), dtype=dtype)
    base_comm.Gatherv([send_buf, mpi_type],
                      [recv_buf, (counts, displs), mpi_type], root=root)
    x = np.empty(shape, dtype=dtype)
    for (rows, cols), count, displ in zip(indices, counts, displs):
        x[np.ix_(rows, cols)] = \
            recv_buf[displ:displ + count].reshape((rows.size, cols.size), order="F")
    return x
