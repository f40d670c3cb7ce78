__all__ = ["Backend"]

from typing import Tuple

import numpy as np
from pylops.utils import DTypeLike, NDArray

from scalapack_mpi.ProcessGrid import ProcessGrid
from scalapack_mpi.utils.blockcyclic import Descriptor


class Backend:
    r"""Numerical backend for block-cyclic matrices

    A backend is bound to a :obj:`scalapack_mpi.ProcessGrid` and exposes
    dense kernels with the calling convention of ScaLAPACK: every kernel
    receives the local column-major buffer of the calling process and the
    :obj:`scalapack_mpi.utils.blockcyclic.Descriptor` of the distributed
    operand, works in place, and returns an integer status:

    - ``0``: success;
    - ``-k``: the ``k``-th argument (1-based, in the order of the Python
      signature) had an illegal value;
    - ``+k``: numerical failure at position ``k`` (e.g., the leading minor
      of order ``k`` is not positive definite, or ``k`` off-diagonal
      elements did not converge).

    Kernels are collective over the grid communicator: they must be
    called by every active process, and they return the same status on
    all of them. Inactive processes never call a kernel.

    Workspace sizes are prescribed by the backend (``*_lwork`` methods)
    and must be queried before the corresponding kernel is called.

    Parameters
    ----------
    grid : :obj:`scalapack_mpi.ProcessGrid`
        Process grid the operands are distributed over.
    dtype : :obj:`str`, optional
        Type of the operands (selects the single or double precision
        family of kernels). Defaults to ``numpy.float64``.

    """
    name = None

    def __init__(self, grid: ProcessGrid, dtype: DTypeLike = np.float64):
        self.grid = grid
        self.dtype = np.dtype(dtype)

    def potrf(self, uplo: str, a: NDArray, desc: Descriptor) -> int:
        """Cholesky factorization of a symmetric positive definite matrix

        The ``uplo`` (``"L"`` or ``"U"``) triangle of ``a`` is overwritten
        by the triangular factor; the other triangle is not referenced.
        """
        raise NotImplementedError

    def potri(self, uplo: str, a: NDArray, desc: Descriptor) -> int:
        """Inverse of a matrix from its Cholesky factor

        The ``uplo`` triangle of ``a`` (holding the factor) is overwritten
        by the same triangle of the inverse.
        """
        raise NotImplementedError

    def tran(self, a: NDArray, desc: Descriptor,
             c: NDArray, descc: Descriptor) -> int:
        """Transpose: ``c = a^T``"""
        raise NotImplementedError

    def syev_lwork(self, jobz: str, uplo: str,
                   desc: Descriptor) -> Tuple[int, int]:
        """Local workspace sizes ``(lwork, liwork)`` required by :meth:`syev`"""
        raise NotImplementedError

    def syev(self, jobz: str, uplo: str, a: NDArray, desc: Descriptor,
             w: NDArray, z: NDArray, descz: Descriptor,
             work: NDArray, iwork: NDArray) -> int:
        """Eigenvalues (and eigenvectors) of a symmetric matrix

        ``w`` receives the eigenvalues in ascending order on every active
        process. With ``jobz="V"`` the eigenvectors are stored in the
        columns of ``z``. The content of ``a`` is destroyed.
        """
        raise NotImplementedError

    def pocon_lwork(self, uplo: str, desc: Descriptor) -> Tuple[int, int]:
        """Local workspace sizes ``(lwork, liwork)`` required by :meth:`pocon`"""
        raise NotImplementedError

    def pocon(self, uplo: str, a: NDArray, desc: Descriptor, anorm: float,
              work: NDArray, iwork: NDArray) -> Tuple[float, int]:
        """Reciprocal condition number in the 1-norm from a Cholesky factor

        Returns ``(rcond, status)``; ``anorm`` is the 1-norm of the matrix
        before factorization.
        """
        raise NotImplementedError
