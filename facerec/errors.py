"""
Exception types raised by the face recognition package.

Every error derives from FaceRecError so callers can catch the whole family,
while the mixin bases (ValueError, ArithmeticError, IOError) keep the usual
built-in semantics for code that only knows about those.
"""


class FaceRecError(Exception):
    """Base class for all face recognition errors."""


class PreconditionError(FaceRecError, ValueError):
    """An operation was called with arguments that violate its contract."""


class DimensionError(PreconditionError):
    """Matrix shapes or index ranges do not agree."""


class NumericalError(FaceRecError, ArithmeticError):
    """A decomposition or elementwise operation produced no usable result."""


class SingularMatrixError(NumericalError):
    """A matrix that had to be inverted is singular to working precision."""


class DataIOError(FaceRecError, IOError):
    """A model, catalog or image file is missing, unreadable or truncated."""
