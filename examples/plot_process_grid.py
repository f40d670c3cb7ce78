"""
Process Grid and Block-Cyclic Distribution
==========================================
This example shows how to use the :py:class:`scalapack_mpi.ProcessGrid` and
:py:class:`scalapack_mpi.DistributedMatrix` classes. A process grid arranges
the processes of an MPI communicator into a two-dimensional grid, over which
the blocks of a matrix are dealt out cyclically.
"""

from matplotlib import pyplot as plt
import numpy as np
from mpi4py import MPI

import scalapack_mpi

plt.close("all")
np.random.seed(42)

rank = MPI.COMM_WORLD.Get_rank()

# Defining the global shape and block sizes of the distributed matrix
global_shape = (20, 12)
block_sizes = (3, 2)

###############################################################################
# Let's start by creating a process grid. When the grid shape is not given,
# it is chosen from the shape of the target matrix: no more processes than
# blocks are used, and the aspect ratio of the grid follows the one of the
# matrix. Processes that do not fit in the grid are left inactive.
grid = scalapack_mpi.ProcessGrid(MPI.COMM_WORLD, matrix_shape=global_shape,
                                 block_sizes=block_sizes)
if rank == 0:
    print(f"Process grid: {grid.nprow}x{grid.npcol}, "
          f"{grid.n_inactive} inactive process(es)")

###############################################################################
# A matrix is then created on the grid and filled from a function of the
# global indices; each process only evaluates the elements it owns.
matrix = scalapack_mpi.DistributedMatrix(global_shape, grid,
                                         block_sizes=block_sizes)
matrix.fill(lambda i, j: i * global_shape[1] + j)
scalapack_mpi.plot_block_cyclic(matrix)

###############################################################################
# Each process stores its blocks contiguously in a local (column-major)
# array. Global indices can be recovered from local ones (and vice versa).
scalapack_mpi.plot_local_arrays(matrix, "Local arrays",
                                vmin=0, vmax=global_shape[0] * global_shape[1])
if grid.active and matrix.local_m > 0 and matrix.local_n > 0:
    print(f"Rank {rank} {grid.coords}: local (0, 0) is global "
          f"({matrix.global_row(0)}, {matrix.global_column(0)})")

###############################################################################
# To distribute a NumPy array held by rank 0, you can use the ``to_dist``
# classmethod; ``copy_to`` gathers it back.
x = np.random.normal(0., 1., global_shape)
matrix = scalapack_mpi.DistributedMatrix.to_dist(x=x, grid=grid,
                                                 block_sizes=block_sizes)
xcopy = matrix.copy_to()
if rank == 0:
    print("Gathered matrix equals the original:", np.allclose(x, xcopy))
