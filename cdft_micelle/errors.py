# cdft_micelle/errors.py


class EosError(RuntimeError):
    pass


class NotConvergedError(EosError):
    """An inner or outer iteration exhausted its budget without meeting its tolerance."""

    def __init__(self, operation):
        self.operation = operation
        super().__init__(f"`{operation}` did not converge within the maximum number of iterations.")


class ReductionError(EosError):
    """A quantity could not be reduced to a finite dimensionless number."""


class InvalidStateError(EosError):
    pass
