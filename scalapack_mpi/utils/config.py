__all__ = [
    "default_block_size",
    "default_backend",
]

import os

# Block size used when a matrix or a heuristic grid is built without ``block_sizes``
default_block_size: int = int(os.getenv("SCALAPACK_MPI_BLOCK_SIZE", 32))

# Name of the numerical backend used when a matrix is built without ``backend``
default_backend: str = os.getenv("SCALAPACK_MPI_BACKEND", "scipy")
