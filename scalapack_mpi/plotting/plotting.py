"""
    Plotting functions for DistributedMatrix
"""

__all__ = [
    "ownership_map",
    "plot_block_cyclic",
    "plot_local_arrays",
]

from typing import Any, Optional
from matplotlib import pyplot as plt
import numpy as np

from scalapack_mpi.DistributedMatrix import DistributedMatrix, State
from scalapack_mpi.utils.blockcyclic import indxg2p


def ownership_map(matrix: DistributedMatrix) -> np.ndarray:
    """Rank of the grid process owning each element of the matrix

    Computed from the block-cyclic mapping alone, without communication.

    Parameters
    ----------
    matrix : :obj:`scalapack_mpi.DistributedMatrix`
        DistributedMatrix

    Returns
    -------
    owners : :obj:`numpy.ndarray`
        Integer array of shape ``matrix.global_shape``.
    """
    nprow, npcol = matrix.grid.grid_shape
    prow = indxg2p(np.arange(matrix.m), matrix.mb, 0, nprow)
    pcol = indxg2p(np.arange(matrix.n), matrix.nb, 0, npcol)
    return prow[:, np.newaxis] * npcol + pcol[np.newaxis, :]


# Plot how the global matrix is distributed among ranks
def plot_block_cyclic(matrix: DistributedMatrix) -> None:
    """Visualize the block-cyclic distribution of the matrix among ranks.

    Parameters
    ----------
    matrix : :obj:`scalapack_mpi.DistributedMatrix`
        DistributedMatrix
    """
    if not isinstance(matrix, DistributedMatrix):
        raise TypeError("Not a DistributedMatrix")
    # Nothing to gather before assignment or once only eigenvalues are kept
    has_content = matrix.state not in (State.UNINITIALIZED, State.EIGENVALUES)
    full_matrix = matrix.copy_to() if has_content else None
    if matrix.grid.rank == 0:
        ncols = 1 if full_matrix is None else 2
        figure, ax = plt.subplots(nrows=1, ncols=ncols, figsize=(9 * ncols, 5))
        ax = [ax] if ncols == 1 else ax
        im = ax[-1].matshow(ownership_map(matrix), cmap='rainbow')
        ax[-1].set_title(f"Block-cyclic over a {matrix.grid.nprow}x{matrix.grid.npcol} "
                         f"grid, blocks {matrix.mb}x{matrix.nb}")
        cbar = figure.colorbar(im)
        cbar.set_ticks(np.arange(matrix.grid.n_active))
        cbar.set_label("Ranks")
        if full_matrix is not None:
            ax[0].matshow(full_matrix, cmap='rainbow')
            ax[0].set_title(f"Matrix ({matrix.state.name})")
        plt.tight_layout()


# Plot the local arrays of each rank of the grid
def plot_local_arrays(matrix: DistributedMatrix, title: str = None,
                      vmin: Optional[Any] = None, vmax: Optional[Any] = None) -> None:
    """Visualize the local arrays of the given DistributedMatrix

    Parameters
    ----------
    matrix : :obj:`scalapack_mpi.DistributedMatrix`
        DistributedMatrix
    title : :obj:`str`
        Main Title of the figure
    vmin : :obj:`numpy.float64`
        Minimum Value
    vmax : :obj:`numpy.float64`
        Maximum Value
    """
    grid = matrix.grid
    global_gather = grid.base_comm.gather(matrix.local_array, root=0)
    if grid.rank == 0:
        nprow, npcol = grid.grid_shape
        figure, ax = plt.subplots(nrows=nprow, ncols=npcol,
                                  figsize=(4 * npcol, 4 * nprow), squeeze=False)
        for i in range(grid.n_active):
            prow, pcol = divmod(i, npcol)
            ax[prow, pcol].set_title(f"Rank-{i} ({prow}, {pcol})")
            # No block of the matrix falls on this process
            if global_gather[i].size == 0:
                continue
            ax[prow, pcol].imshow(global_gather[i], cmap='rainbow', vmin=vmin, vmax=vmax)
            ax[prow, pcol].set_xticks(np.arange(global_gather[i].shape[1]))
            ax[prow, pcol].set_yticks(np.arange(global_gather[i].shape[0]))
        plt.suptitle(title)
        plt.tight_layout()
