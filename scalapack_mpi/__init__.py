from .exceptions import *
from .ProcessGrid import ProcessGrid, grid_shape_heuristic
from .DistributedMatrix import DistributedMatrix, Property, State
from . import (
    backends,
    plotting,
    utils
)
from .plotting.plotting import *

try:
    from .version import version as __version__
except ImportError:
    # If it was not installed, then we don't know the version. We could throw a
    # warning here, but this case *should* be rare. scalapack_mpi should be
    # installed properly!
    from datetime import datetime

    __version__ = "unknown-" + datetime.today().strftime("%Y%m%d")
