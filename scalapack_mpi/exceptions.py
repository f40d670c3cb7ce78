__all__ = [
    "ConfigurationError",
    "StatePreconditionError",
    "NumericalFailure",
]


class ConfigurationError(ValueError):
    """Invalid process grid or block layout requested at construction."""
    pass


class StatePreconditionError(RuntimeError):
    """Operation invoked on a matrix whose state (or property) does not allow it."""
    pass


class NumericalFailure(ArithmeticError):
    r"""Non-zero status returned by a backend kernel

    Raised identically on every process of the grid's base communicator, so
    that the caller can recover (e.g., regularize the matrix and retry).

    Parameters
    ----------
    routine : :obj:`str`
        Name of the backend kernel (e.g., ``potrf``).
    status : :obj:`int`
        Status returned by the kernel. Negative values flag an illegal
        argument at position ``-status``, positive values a numerical
        failure at index ``status`` (e.g., the order of the leading minor
        that is not positive definite).
    """

    def __init__(self, routine: str, status: int):
        self.routine = routine
        self.status = int(status)
        if self.illegal_argument:
            msg = f"{routine}: argument {self.position} had an illegal value"
        else:
            msg = f"{routine}: numerical failure at position {self.position}"
        super().__init__(msg)

    @property
    def position(self) -> int:
        return abs(self.status)

    @property
    def illegal_argument(self) -> bool:
        return self.status < 0
