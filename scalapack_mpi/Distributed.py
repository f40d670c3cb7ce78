from typing import Optional, Tuple

from mpi4py import MPI
from pylops.utils import NDArray

from scalapack_mpi.utils._mpi import (
    mpi_allreduce,
    mpi_bcast,
    mpi_gather_blocks,
    mpi_scatter_blocks,
)


class DistributedMixIn:
    r"""Distributed Mixin class

    This class collects all methods associated with communication
    primitives used by block-cyclic matrices and their backends. Every
    method is a blocking collective call that must be entered by all
    members of the communicator it is given.

    """
    def _allreduce_subcomm(self,
                           sub_comm: MPI.Comm,
                           send_buf: NDArray,
                           recv_buf: Optional[NDArray] = None,
                           op: MPI.Op = MPI.SUM,
                           ) -> NDArray:
        """Allreduce operation with subcommunicator

        Parameters
        ----------
        sub_comm : :obj:`MPI.Comm`
            MPI Subcommunicator (grid, grid row or grid column).
        send_buf: :obj: `numpy.ndarray`
            A buffer containing the data to be sent by this rank.
        recv_buf : :obj: `numpy.ndarray`, optional
            The buffer to store the result of the reduction. If None,
            a new buffer will be allocated with the appropriate shape.
        op : :obj: `MPI.Op`, optional
            MPI operation to perform.

        Returns
        -------
        recv_buf : :obj:`numpy.ndarray`
            A buffer containing the result of the reduction, broadcasted
            to all ranks.

        """
        return mpi_allreduce(sub_comm, send_buf, recv_buf, op)

    def _bcast(self,
               base_comm: MPI.Comm,
               buf: NDArray,
               root: int = 0,
               ) -> NDArray:
        """BCast operation

        Parameters
        ----------
        base_comm : :obj:`MPI.Comm`
            MPI Communicator; ``MPI.COMM_NULL`` makes this a no-op.
        buf : :obj:`numpy.ndarray`
            Contiguous buffer, read on ``root`` and overwritten elsewhere.
        root : :obj:`int`, optional
            Rank broadcasting its buffer.

        """
        return mpi_bcast(base_comm, buf, root=root)

    def _scatter_blocks(self,
                        grid_comm: MPI.Comm,
                        x: Optional[NDArray],
                        local_array: NDArray,
                        block_sizes: Tuple[int, int],
                        grid_shape: Tuple[int, int],
                        ) -> NDArray:
        """Scatter a global matrix held by the grid root in block-cyclic fashion

        Parameters
        ----------
        grid_comm : :obj:`MPI.Comm`
            Grid Communicator.
        x : :obj:`numpy.ndarray`
            Global matrix, only read on the grid root.
        local_array : :obj:`numpy.ndarray`
            Column-major local buffer to be filled.
        block_sizes : :obj:`tuple`
            Block sizes.
        grid_shape : :obj:`tuple`
            Process grid shape.

        """
        return mpi_scatter_blocks(grid_comm, x, local_array,
                                  block_sizes, grid_shape)

    def _gather_blocks(self,
                       grid_comm: MPI.Comm,
                       local_array: NDArray,
                       shape: Tuple[int, int],
                       block_sizes: Tuple[int, int],
                       grid_shape: Tuple[int, int],
                       ) -> Optional[NDArray]:
        """Gather block-cyclic local buffers into a global matrix on the grid root

        Parameters
        ----------
        grid_comm : :obj:`MPI.Comm`
            Grid Communicator.
        local_array : :obj:`numpy.ndarray`
            Column-major local buffer of this rank.
        shape : :obj:`tuple`
            Global shape of the matrix.
        block_sizes : :obj:`tuple`
            Block sizes.
        grid_shape : :obj:`tuple`
            Process grid shape.

        Returns
        -------
        x : :obj:`numpy.ndarray`
            Global matrix on the grid root, ``None`` elsewhere.

        """
        return mpi_gather_blocks(grid_comm, local_array, shape,
                                 block_sizes, grid_shape)
