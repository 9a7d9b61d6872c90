"""Usage errors raised by the engine.

Unknown gate names are not errors: the simulator logs them and moves on.
"""
from __future__ import annotations


class UnknownRegisterError(LookupError):
    """A classical register name that was never declared."""


class MeasureDestinationError(ValueError):
    """A ``measure`` instance without a classical destination."""


class ExpressionError(ValueError):
    """Malformed expression text, or an undefined symbol / function."""
