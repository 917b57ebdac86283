"""Structured error types for dispatch and elementwise evaluation."""

from __future__ import annotations

from dataclasses import dataclass


class EwiseError(Exception):
    """Base class for structured ewise-jax errors."""


@dataclass(frozen=True)
class DimensionError(EwiseError, ValueError):
    """Operand shapes cannot be combined."""

    actual: object
    expected: object
    relation: str = "!="

    def __str__(self) -> str:
        return f"Dimension mismatch ({_format_dims(self.actual)} {self.relation} {_format_dims(self.expected)})"


class DispatchError(EwiseError, TypeError):
    """No registered signature accepts the argument types."""


class SignatureError(EwiseError, ValueError):
    """Malformed signature key or unknown type tag."""


class SignatureConflictError(SignatureError):
    """Two different handlers were registered under one signature."""


class OperatorBindingError(EwiseError, RuntimeError):
    """An operator handle was used outside its one-time binding."""


class UnboundOperatorError(OperatorBindingError):
    """A context-bound handler ran before its operator finished assembly."""


class OperatorRebindError(OperatorBindingError):
    """An operator handle that is already bound was bound again."""


def _format_dims(value: object) -> str:
    if isinstance(value, tuple):
        return "[" + ", ".join(str(int(d)) for d in value) + "]"
    return str(value)
