"""pypolyfem.exceptions"""


class PreconditionError(RuntimeError):
    """Malformed mesh or tensor detected while building a local operator."""


class ConsistencyError(PreconditionError):
    """The local frame of a mimetic operator fails the R^T N = |E| D check."""

    def __init__(self, message, diff=None):
        super().__init__(message)
        self.diff = diff


class SingularMatrixError(PreconditionError):
    """A small dense matrix could not be inverted."""

    def __init__(self, message, ierr=-1):
        super().__init__(message)
        self.ierr = ierr


class ElementShapeError(PreconditionError):
    """Element shape not supported by the requested discretization."""


class LinearSolverError(RuntimeError):
    """The sparse linear solve did not converge."""

    def __init__(self, reason, residual_norm=float("nan")):
        super().__init__(f"Linear solver failed: {reason} (residual {residual_norm:.3e})")
        self.reason = reason
        self.residual_norm = residual_norm
