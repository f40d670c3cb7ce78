__all__ = ["ScipyBackend"]

import logging
from typing import Optional, Tuple

import numpy as np
from mpi4py import MPI
from pylops.utils import NDArray
from scipy.linalg import get_lapack_funcs

from scalapack_mpi.Distributed import DistributedMixIn
from scalapack_mpi.backends.base import Backend
from scalapack_mpi.utils.blockcyclic import Descriptor, numroc


def _ceil_div(x: int, y: int) -> int:
    return -(-x // y)


class ScipyBackend(DistributedMixIn, Backend):
    r"""Reference backend built on SciPy's LAPACK wrappers

    Each kernel assembles the distributed operand on the root of the grid
    communicator (buffered ``Gatherv``), runs the corresponding LAPACK
    routine from :mod:`scipy.linalg.lapack` there, and redistributes the
    result (``Scatterv`` for matrices, ``Bcast`` for vectors and status
    codes). Memory and work on the root grow with the full matrix, so this
    backend targets moderate sizes and testing; it honours the same
    calling convention, status codes and workspace contract as a native
    ScaLAPACK backend.

    Argument checks are agreed upon by all processes of the grid (the most
    negative status wins), so that every process returns the same status
    and no process is left waiting in a collective call.

    Parameters
    ----------
    grid : :obj:`scalapack_mpi.ProcessGrid`
        Process grid the operands are distributed over.
    dtype : :obj:`str`, optional
        Type of the operands.

    """
    name = "scipy"

    @property
    def _root(self) -> bool:
        return self.grid.grid_comm.Get_rank() == 0

    def _local_extent(self, desc: Descriptor) -> Tuple[int, int]:
        return (numroc(desc.m, desc.mb, self.grid.myrow, desc.rsrc, self.grid.nprow),
                numroc(desc.n, desc.nb, self.grid.mycol, desc.csrc, self.grid.npcol))

    def _check_operand(self, a: NDArray, desc: Descriptor,
                       pos_a: int, pos_desc: int) -> int:
        # Operands are always distributed from the grid origin
        if desc.context != self.grid.context or (desc.rsrc, desc.csrc) != (0, 0):
            return -pos_desc
        if a.shape != self._local_extent(desc) or a.dtype != self.dtype:
            return -pos_a
        return 0

    def _agree(self, status: int) -> int:
        buf = np.array([status], dtype=np.int64)
        return int(self._allreduce_subcomm(self.grid.grid_comm, buf, op=MPI.MIN)[0])

    def _share_status(self, status: int) -> int:
        buf = np.array([status], dtype=np.int64)
        return int(self._bcast(self.grid.grid_comm, buf, root=0)[0])

    def _gather(self, a: NDArray, desc: Descriptor) -> Optional[NDArray]:
        return self._gather_blocks(self.grid.grid_comm, a, desc.shape,
                                   desc.block_sizes, self.grid.grid_shape)

    def _scatter(self, x: Optional[NDArray], a: NDArray, desc: Descriptor) -> None:
        self._scatter_blocks(self.grid.grid_comm, x, a,
                             desc.block_sizes, self.grid.grid_shape)

    def potrf(self, uplo: str, a: NDArray, desc: Descriptor) -> int:
        if uplo not in ("L", "U"):
            status = -1
        else:
            status = self._check_operand(a, desc, 2, 3)
        if status == 0 and desc.m != desc.n:
            status = -3
        status = self._agree(status)
        if status:
            return status

        x, factor = self._gather(a, desc), None
        if self._root:
            potrf, = get_lapack_funcs(("potrf",), (x,))
            factor, status = potrf(x, lower=uplo == "L", clean=0)
        status = self._share_status(status)
        # A failed factorization leaves the local buffers untouched
        if status == 0:
            self._scatter(factor, a, desc)
        logging.debug("potrf: n=%d status=%d", desc.n, status)
        return status

    def potri(self, uplo: str, a: NDArray, desc: Descriptor) -> int:
        if uplo not in ("L", "U"):
            status = -1
        else:
            status = self._check_operand(a, desc, 2, 3)
        if status == 0 and desc.m != desc.n:
            status = -3
        status = self._agree(status)
        if status:
            return status

        x, inverse = self._gather(a, desc), None
        if self._root:
            potri, = get_lapack_funcs(("potri",), (x,))
            inverse, status = potri(x, lower=uplo == "L")
        status = self._share_status(status)
        if status == 0:
            self._scatter(inverse, a, desc)
        logging.debug("potri: n=%d status=%d", desc.n, status)
        return status

    def tran(self, a: NDArray, desc: Descriptor,
             c: NDArray, descc: Descriptor) -> int:
        status = self._check_operand(a, desc, 1, 2) or \
            self._check_operand(c, descc, 3, 4)
        if status == 0 and descc.shape != (desc.n, desc.m):
            status = -4
        status = self._agree(status)
        if status:
            return status

        x = self._gather(a, desc)
        self._scatter(None if x is None else np.ascontiguousarray(x.T), c, descc)
        return 0

    def syev_lwork(self, jobz: str, uplo: str,
                   desc: Descriptor) -> Tuple[int, int]:
        # Only the grid root runs the eigensolver
        if not self._root:
            return 1, 1
        syevd_lwork, = get_lapack_funcs(("syevd_lwork",), dtype=self.dtype)
        # The query only fails for a negative order, which a descriptor never holds
        lwork, liwork, _ = syevd_lwork(desc.n, compute_v=int(jobz == "V"),
                                       lower=int(uplo == "L"))
        # Optimal sizes are returned as floating point numbers
        return int(np.ceil(lwork)), int(liwork)

    def syev(self, jobz: str, uplo: str, a: NDArray, desc: Descriptor,
             w: NDArray, z: NDArray, descz: Descriptor,
             work: NDArray, iwork: NDArray) -> int:
        if jobz not in ("N", "V"):
            status = -1
        elif uplo not in ("L", "U"):
            status = -2
        else:
            status = self._check_operand(a, desc, 3, 4)
        if status == 0 and desc.m != desc.n:
            status = -4
        if status == 0 and w.size < desc.n:
            status = -5
        if status == 0 and jobz == "V":
            status = self._check_operand(z, descz, 6, 7)
        if status == 0:
            lwork, liwork = self.syev_lwork(jobz, uplo, desc)
            if work.size < lwork:
                status = -8
            elif iwork.size < liwork:
                status = -9
        status = self._agree(status)
        if status:
            return status

        x, vectors = self._gather(a, desc), None
        if self._root:
            syevd, = get_lapack_funcs(("syevd",), (x,))
            evals, vectors, status = syevd(x, compute_v=int(jobz == "V"),
                                           lower=int(uplo == "L"),
                                           lwork=work.size, liwork=iwork.size)
            if status == 0:
                w[:desc.n] = evals
        status = self._share_status(status)
        if status == 0:
            self._bcast(self.grid.grid_comm, w, root=0)
            if jobz == "V":
                self._scatter(vectors, z, descz)
        logging.debug("syev: jobz=%s n=%d status=%d", jobz, desc.n, status)
        return status

    def pocon_lwork(self, uplo: str, desc: Descriptor) -> Tuple[int, int]:
        # Minimum sizes documented for p?pocon with ia = ja = 1
        nprow, npcol = self.grid.grid_shape
        locr = numroc(desc.n, desc.mb, self.grid.myrow, desc.rsrc, nprow)
        locc = numroc(desc.n, desc.nb, self.grid.mycol, desc.csrc, npcol)
        lwork = 2 * locr + 2 * locc + \
            max(2, max(desc.nb * max(1, _ceil_div(nprow - 1, npcol)),
                       locc + desc.nb * max(1, _ceil_div(npcol - 1, nprow))))
        liwork = max(1, locr)
        return lwork, liwork

    def pocon(self, uplo: str, a: NDArray, desc: Descriptor, anorm: float,
              work: NDArray, iwork: NDArray) -> Tuple[float, int]:
        if uplo not in ("L", "U"):
            status = -1
        else:
            status = self._check_operand(a, desc, 2, 3)
        if status == 0 and desc.m != desc.n:
            status = -3
        if status == 0 and not anorm >= 0:
            status = -4
        if status == 0:
            lwork, liwork = self.pocon_lwork(uplo, desc)
            if work.size < lwork:
                status = -5
            elif iwork.size < liwork:
                status = -6
        status = self._agree(status)
        if status:
            return 0.0, status

        x = self._gather(a, desc)
        result = np.zeros(2, dtype=np.float64)
        if self._root:
            pocon, = get_lapack_funcs(("pocon",), (x,))
            # LAPACK reads the upper factor U, with A = U^T U = L L^T
            upper = np.asfortranarray(x.T if uplo == "L" else x)
            rcond, status = pocon(upper, anorm)
            result[:] = rcond, status
        self._bcast(self.grid.grid_comm, result, root=0)
        logging.debug("pocon: n=%d status=%d", desc.n, int(result[1]))
        return float(result[0]), int(result[1])
