"""
Numerical backends
==================

The subpackage backends provides the dense kernels invoked by
:obj:`scalapack_mpi.DistributedMatrix` on the local blocks of each
process, following the calling convention of ScaLAPACK (local buffer,
distribution descriptor and workspace in, integer status out).

A list of backends present in scalapack_mpi.backends:
    Backend                           Base class defining the kernel contract
    ScipyBackend                      Reference backend based on scipy.linalg.lapack

"""

from typing import Dict, List, Type

from .base import *
from .scipy_backend import *

__all__ = [
    "Backend",
    "ScipyBackend",
    "available_backends",
    "get_backend",
]

_BACKENDS: Dict[str, Type[Backend]] = {
    ScipyBackend.name: ScipyBackend,
}


def available_backends() -> List[str]:
    """Names of the registered backends"""
    return list(_BACKENDS.keys())


def get_backend(name: str) -> Type[Backend]:
    """Backend class registered under ``name``

    Parameters
    ----------
    name : :obj:`str`
        Name of the backend (e.g., ``scipy``).

    Returns
    -------
    backend : :obj:`type`
        Subclass of :obj:`scalapack_mpi.backends.Backend`.

    Raises
    ------
    ValueError
        If no backend is registered under ``name``.
    """
    if name not in _BACKENDS:
        raise ValueError(f"Unknown backend {name}, available: {available_backends()}")
    return _BACKENDS[name]
