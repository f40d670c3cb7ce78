"""
Cholesky Factorization and Inverse
==================================
This example shows how to factorize and invert a symmetric positive definite
matrix distributed with :py:class:`scalapack_mpi.DistributedMatrix`, and how
to estimate its condition number from the Cholesky factor.
"""

from matplotlib import pyplot as plt
import numpy as np
from mpi4py import MPI

import scalapack_mpi

plt.close("all")
np.random.seed(42)

rank = MPI.COMM_WORLD.Get_rank()

n = 60
nb = 8

###############################################################################
# We create a symmetric positive definite matrix (a covariance matrix with
# exponential decay) and distribute it over a process grid.
grid = scalapack_mpi.ProcessGrid(MPI.COMM_WORLD, matrix_shape=n, block_sizes=nb)
matrix = scalapack_mpi.DistributedMatrix(n, grid, block_sizes=nb)
matrix.fill(lambda i, j: np.exp(-np.abs(i - j) / 10.))
x = matrix.copy_to()
print(f"Rank {rank}: state {matrix.state.name}, property {matrix.matrix_property.name}")

###############################################################################
# The :math:`l_1` norm must be computed before the factorization, as the
# matrix is overwritten by its lower triangular Cholesky factor :math:`L`.
a_norm = matrix.l1_norm()
matrix.compute_cholesky_factorization()
rcond = matrix.reciprocal_condition_number(a_norm)
factor = matrix.copy_to()
if rank == 0:
    print(f"Reciprocal condition number: {rcond:.3e} "
          f"(numpy: {1. / np.linalg.cond(x, 1):.3e})")

###############################################################################
# The inverse is computed from the Cholesky factor and stored in place.
matrix.invert()
xinv = matrix.copy_to()

if rank == 0:
    fig, axs = plt.subplots(1, 3, figsize=(15, 5))
    axs[0].imshow(x, cmap="rainbow")
    axs[0].set_title("A")
    axs[1].imshow(factor, cmap="rainbow")
    axs[1].set_title("L")
    axs[2].imshow(xinv @ x, cmap="rainbow", vmin=0, vmax=1)
    axs[2].set_title(r"$A^{-1} A$")
    plt.tight_layout()

###############################################################################
# Factorizing a matrix that is not positive definite raises a
# :py:class:`scalapack_mpi.NumericalFailure` on every process, with the matrix
# left unchanged so that it can be regularized and factorized again.
matrix = scalapack_mpi.DistributedMatrix(n, grid, block_sizes=nb)
matrix.fill(lambda i, j: np.exp(-np.abs(i - j) / 10.) - 0.5 * (i == j))
try:
    matrix.compute_cholesky_factorization()
except scalapack_mpi.NumericalFailure as e:
    if rank == 0:
        print(f"Factorization failed: {e}")
    matrix.fill(lambda i, j: np.exp(-np.abs(i - j) / 10.) + 0.5 * (i == j))
    matrix.compute_cholesky_factorization()
