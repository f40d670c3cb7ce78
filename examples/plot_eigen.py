"""
Symmetric Eigendecomposition
============================
This example shows how to compute the eigenvalues and eigenvectors of a real
symmetric matrix distributed with :py:class:`scalapack_mpi.DistributedMatrix`.
"""

from matplotlib import pyplot as plt
import numpy as np
from mpi4py import MPI

import scalapack_mpi

plt.close("all")
np.random.seed(42)

rank = MPI.COMM_WORLD.Get_rank()

n = 50
nb = 6

###############################################################################
# We use the second-derivative matrix with Dirichlet boundaries, whose
# eigenvalues are known analytically:
#
# .. math::
#     \lambda_k = 2 - 2 \cos \left( \frac{k \pi}{n + 1} \right), \quad k = 1, \ldots, n
grid = scalapack_mpi.ProcessGrid(MPI.COMM_WORLD, matrix_shape=n, block_sizes=nb)
matrix = scalapack_mpi.DistributedMatrix(n, grid, block_sizes=nb)
matrix.fill(lambda i, j: 2. * (i == j) - 1. * (np.abs(i - j) == 1))

###############################################################################
# Computing only the eigenvalues destroys the content of the matrix. The
# eigenvalues are returned in ascending order on every process, including
# those left outside of the grid.
eigenvalues = matrix.eigenvalues_symmetric()
expected = 2. - 2. * np.cos(np.arange(1, n + 1) * np.pi / (n + 1))
print(f"Rank {rank}: max error {np.abs(eigenvalues - expected).max():.2e}")

###############################################################################
# When the eigenvectors are also requested, they overwrite the matrix
# column-wise.
matrix = scalapack_mpi.DistributedMatrix(n, grid, block_sizes=nb)
matrix.fill(lambda i, j: 2. * (i == j) - 1. * (np.abs(i - j) == 1))
eigenvalues = matrix.eigenpairs_symmetric()
eigenvectors = matrix.copy_to()

if rank == 0:
    fig, axs = plt.subplots(1, 2, figsize=(12, 5))
    axs[0].plot(expected, "k", lw=4, label="Analytical")
    axs[0].plot(eigenvalues, "--r", lw=2, label="Computed")
    axs[0].set_title("Eigenvalues")
    axs[0].legend()
    for k in range(3):
        axs[1].plot(eigenvectors[:, k], label=f"k={k + 1}")
    axs[1].set_title("Eigenvectors")
    axs[1].legend()
    plt.tight_layout()
