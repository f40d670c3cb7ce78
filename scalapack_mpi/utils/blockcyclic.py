__all__ = [
    "numroc",
    "indxg2p",
    "indxg2l",
    "indxl2g",
    "local_block_indices",
    "Descriptor",
]

from dataclasses import dataclass
from typing import Tuple, Union

import numpy as np
from pylops.utils import NDArray

IndexLike = Union[int, NDArray]


def numroc(n: int, nb: int, iproc: int,
           isrcproc: int, nprocs: int) -> int:
    r"""Number of rows or columns of a block-cyclic array owned by a process

    Parameters
    ----------
    n : :obj:`int`
        Global number of rows (or columns).
    nb : :obj:`int`
        Block size along the same axis.
    iproc : :obj:`int`
        Coordinate of the process along the same axis of the grid.
    isrcproc : :obj:`int`
        Coordinate of the process holding the first row (or column).
    nprocs : :obj:`int`
        Number of processes along the same axis of the grid.

    Returns
    -------
    num : :obj:`int`
        Local extent owned by ``iproc``.

    Notes
    -----
    The global axis is split in :math:`\lfloor n / nb \rfloor` full blocks
    and a trailing partial block. Full blocks are handed out cyclically,
    so every process gets :math:`\lfloor n_{blk} / P \rfloor` of them and
    the first :math:`n_{blk} \bmod P` processes (counted from
    ``isrcproc``) one more; the process right after those gets the
    trailing partial block.
    """
    mydist = (nprocs + iproc - isrcproc) % nprocs
    nblocks = n // nb
    num = (nblocks // nprocs) * nb
    extrablks = nblocks % nprocs
    if mydist < extrablks:
        num += nb
    elif mydist == extrablks:
        num += n % nb
    return num


def indxg2p(indxglob: IndexLike, nb: int,
            isrcproc: int, nprocs: int) -> IndexLike:
    """Process coordinate owning global index ``indxglob``"""
    return (isrcproc + indxglob // nb) % nprocs


def indxg2l(indxglob: IndexLike, nb: int, nprocs: int) -> IndexLike:
    """Local index of global index ``indxglob`` on its owning process"""
    return (indxglob // (nb * nprocs)) * nb + indxglob % nb


def indxl2g(indxloc: IndexLike, nb: int, iproc: int,
            isrcproc: int, nprocs: int) -> IndexLike:
    """Global index of local index ``indxloc`` stored on process ``iproc``"""
    return (indxloc // nb) * nb * nprocs + \
        ((nprocs + iproc - isrcproc) % nprocs) * nb + indxloc % nb


def local_block_indices(shape: Tuple[int, int], block_sizes: Tuple[int, int],
                        grid_shape: Tuple[int, int], coords: Tuple[int, int],
                        srcs: Tuple[int, int] = (0, 0)) -> Tuple[NDArray, NDArray]:
    """Global row and column indices stored by the process at ``coords``

    Parameters
    ----------
    shape : :obj:`tuple`
        Global shape ``(M, N)``.
    block_sizes : :obj:`tuple`
        Block sizes ``(MB, NB)``.
    grid_shape : :obj:`tuple`
        Process grid shape ``(p, q)``.
    coords : :obj:`tuple`
        Grid coordinate ``(prow, pcol)`` of the process.
    srcs : :obj:`tuple`, optional
        Grid coordinate of the process holding the first element.

    Returns
    -------
    rows : :obj:`numpy.ndarray`
        Global row indices, in local order.
    cols : :obj:`numpy.ndarray`
        Global column indices, in local order.
    """
    (m, n), (mb, nb) = shape, block_sizes
    (nprow, npcol), (prow, pcol) = grid_shape, coords
    local_m = numroc(m, mb, prow, srcs[0], nprow)
    local_n = numroc(n, nb, pcol, srcs[1], npcol)
    rows = indxl2g(np.arange(local_m), mb, prow, srcs[0], nprow)
    cols = indxl2g(np.arange(local_n), nb, pcol, srcs[1], npcol)
    return rows, cols


@dataclass(frozen=True)
class Descriptor:
    r"""Distribution descriptor of a block-cyclic matrix

    Immutable value object holding the nine entries of a ScaLAPACK array
    descriptor. It is derived once from the global shape, the block sizes
    and the process grid when a matrix is created.

    Parameters
    ----------
    context : :obj:`int`
        Handle of the grid communicator (``-1`` on processes outside the
        grid).
    m : :obj:`int`
        Global number of rows.
    n : :obj:`int`
        Global number of columns.
    mb : :obj:`int`
        Row block size.
    nb : :obj:`int`
        Column block size.
    rsrc : :obj:`int`
        Process row holding the first row of the matrix.
    csrc : :obj:`int`
        Process column holding the first column of the matrix.
    lld : :obj:`int`
        Leading dimension of the local (column-major) buffer.
    dtype : :obj:`int`
        Descriptor type (``1`` for dense matrices).
    """
    context: int
    m: int
    n: int
    mb: int
    nb: int
    rsrc: int
    csrc: int
    lld: int
    dtype: int = 1

    @classmethod
    def create(cls, shape: Tuple[int, int], block_sizes: Tuple[int, int],
               context: int, local_m: int,
               srcs: Tuple[int, int] = (0, 0)) -> "Descriptor":
        """Build the descriptor of a matrix (ScaLAPACK's ``descinit``)"""
        return cls(context=context, m=shape[0], n=shape[1],
                   mb=block_sizes[0], nb=block_sizes[1],
                   rsrc=srcs[0], csrc=srcs[1],
                   lld=max(1, local_m))

    @property
    def shape(self) -> Tuple[int, int]:
        return self.m, self.n

    @property
    def block_sizes(self) -> Tuple[int, int]:
        return self.mb, self.nb

    def to_array(self) -> NDArray:
        """Descriptor as the 9-entry integer vector used by native kernels"""
        return np.array([self.dtype, self.context, self.m, self.n,
                         self.mb, self.nb, self.rsrc, self.csrc, self.lld],
                        dtype=np.int32)
