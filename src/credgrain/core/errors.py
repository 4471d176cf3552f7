"""
Core exception types raised by cred computation and grain allocation.

Provides typed exceptions for core-domain failures:
- InputError for caller-supplied data that violates a precondition.
- ConfigError for invalid Markov-process configuration (parameters, intervals, attributions).
- ConvergenceError when the stationary-distribution iteration exhausts its budget.
- FatalInvariantError for post-computation invariant violations (algorithm defects).

Notes:
    - This module uses only the Python standard library and has no side effects.
    - InputError/ConfigError are raised before any partial work becomes observable.
    - FatalInvariantError must never be caught-and-continued by library code; it aborts
      the computation whose result violated the invariant.

Examples:
    Catch a validation failure.

    >>> from credgrain.core.errors import InputError
    >>> def require_identities(ids: list[str]) -> None:
    ...     if not ids:
    ...         raise InputError("must have at least one identity")
    >>> try:
    ...     require_identities([])
    ... except InputError as e:
    ...     msg = str(e)
    >>> "at least one identity" in msg
    True
"""

from __future__ import annotations

__all__ = [
    "InputError",
    "ConfigError",
    "ConvergenceError",
    "FatalInvariantError",
]


class InputError(ValueError):
    """Caller-supplied data violates a precondition (recoverable by the caller)."""


class ConfigError(InputError):
    """Invalid Markov-process configuration (parameters, intervals, participants, attributions)."""


class ConvergenceError(RuntimeError):
    """
    Power iteration did not reach the configured tolerance within the iteration cap.

    Attributes:
        iterations (int): Number of iterations performed.
        delta (float): Distance between the last two iterates.
    """

    def __init__(self, message: str, *, iterations: int, delta: float) -> None:
        super().__init__(message)
        self.iterations = iterations
        self.delta = delta


class FatalInvariantError(RuntimeError):
    """Internal invariant violated after computation (budget or stochasticity)."""
