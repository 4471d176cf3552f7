"""
Lightweight typing aliases used across credgrain layers.

Provides minimal NewTypes and aliases to improve readability and static checks.
This module contains no runtime logic and is zero-IO.

Examples:
    >>> from credgrain.core.typing import TimestampMs, ParticipantId
    >>> def later(t: TimestampMs) -> TimestampMs:
    ...     return TimestampMs(int(t) + 1)
    >>> later(TimestampMs(10))
    11
    >>> ParticipantId("p1")
    'p1'
"""

from __future__ import annotations

from typing import Any, NewType

__all__ = [
    "TimestampMs",
    "ParticipantId",
    "IdentityId",
    "JsonDict",
]

TimestampMs = NewType("TimestampMs", int)
ParticipantId = NewType("ParticipantId", str)
# Ledger identities and cred participants share one id space.
IdentityId = NewType("IdentityId", str)

JsonDict = dict[str, Any]
