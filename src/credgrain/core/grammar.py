"""
Canonical credgrain grammar and helpers.

Defines allocation policy kinds, Markov process node/edge kinds, and canonical table
names. Includes zero-IO validators/helpers used across the stack.

Design principles
-----------------
1) One naming standard:
   - Enum classes: PascalCase
   - Enum member names: UPPER_SNAKE (Python constants)
   - Enum serialized values (wire/frames): lower_snake
   - Fields & columns elsewhere: lower_snake

2) Legacy tags:
   - Ledgers written by older tooling tag policies in upper case ("IMMEDIATE").
     `policy_type_from_value` accepts them case-insensitively and normalizes to
     lower_snake; nothing downstream sees the legacy spelling.

Math-to-Code mapping
--------------------
| Math symbol         | Meaning (concept)                                   | Code enum/value
|---------------------|-----------------------------------------------------|------------------
| alpha               | teleportation from every node to the seed nodes     | teleport
| beta                | retention along a participant's epoch chain         | retention
| w(v) / Σ w          | seed mass minted into weighted contributions        | seed
| gamma_f, gamma_b    | direction scales on contribution edges              | contribution, mint
| q_{p,r}(t)          | personal attribution proportion from p to r         | attribution

Examples
--------
>>> from credgrain.core.grammar import policy_type_from_value, PolicyType
>>> policy_type_from_value("IMMEDIATE") is PolicyType.IMMEDIATE
True
>>> is_lower_snake("cred_per_interval")
True
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from enum import Enum
from typing import Final

__all__ = [
    "PolicyType",
    "MarkovNodeKind",
    "MarkovEdgeKind",
    "TableName",
    # helpers/validators
    "is_lower_snake",
    "assert_lower_snake",
    "policy_type_from_value",
    "edge_kind_from_value",
    "ensure_all_enum_values_lower_snake",
]


# ============================================================================
# ALLOCATION POLICIES
# ============================================================================


class PolicyType(Enum):
    """
    Closed set of grain allocation policy kinds.

    Serialized values are used in:
      - AllocationPolicy.policy_type (ledger.policies)
      - grain_receipts.policy_type

    Notes:
      Every consumer matches all members; adding one is a breaking change.
    """

    IMMEDIATE = "immediate"
    RECENT = "recent"
    BALANCED = "balanced"
    SPECIAL = "special"


# ============================================================================
# MARKOV PROCESS GRAPH
# ============================================================================


class MarkovNodeKind(Enum):
    """
    Node families in a Markov process graph.

    - base: one per node of the weighted contribution graph
    - seed: one per participant; target of all teleportation mass
    - epoch: one per (participant, interval)
    """

    BASE = "base"
    SEED = "seed"
    EPOCH = "epoch"


class MarkovEdgeKind(Enum):
    """
    Transition families in a Markov process graph.

    Notes:
      - teleport: alpha (plus any dangling remainder) to every seed node
      - retention: beta from an epoch node to the participant's next epoch node
      - seed: seed mass minted into base nodes proportional to node weight
      - contribution: graph edge between two base nodes
      - mint: graph edge with at least one endpoint rewired to an epoch node
      - attribution: personal attribution between two epoch nodes
    """

    TELEPORT = "teleport"
    RETENTION = "retention"
    SEED = "seed"
    CONTRIBUTION = "contribution"
    MINT = "mint"
    ATTRIBUTION = "attribution"


# ============================================================================
# TABLE NAMES (LOWER_SNAKE)
# ============================================================================


class TableName(Enum):
    """
    Canonical frame names. Descriptors live in credgrain.core.tables.
    """

    CRED_PER_INTERVAL = "cred_per_interval"
    GRAIN_RECEIPTS = "grain_receipts"


# ============================================================================
# Helpers & Validators (zero I/O)
# ============================================================================

_LOWER_SNAKE_RE: Final[re.Pattern[str]] = re.compile(r"^[a-z0-9]+(?:_[a-z0-9]+)*$")


def is_lower_snake(value: str) -> bool:
    """
    Check whether a string is lower_snake.

    Args:
      value (str): Candidate string to validate.

    Returns:
      bool: True if value matches lower_snake (e.g., "grain_receipts"), False otherwise.

    Examples:
      >>> is_lower_snake("grain_receipts")
      True
      >>> is_lower_snake("GrainReceipts")
      False
    """
    return bool(_LOWER_SNAKE_RE.match(value or ""))


def assert_lower_snake(value: str, what: str = "value") -> None:
    """
    Validate that a string is lower_snake.

    Args:
      value (str): Candidate string to validate.
      what (str): Human-friendly label used in the error message.

    Raises:
      ValueError: If value is not lower_snake.
    """
    if not is_lower_snake(value):
        raise ValueError(f"{what} must be lower_snake (got: {value!r})")


def policy_type_from_value(s: str) -> PolicyType:
    """
    Parse a policy tag into a PolicyType.

    Args:
      s (str): Policy tag, lower_snake or the legacy upper-case spelling.

    Returns:
      PolicyType: Parsed policy kind.

    Raises:
      ValueError: If s is not a known policy kind.
    """
    lowered = (s or "").strip().lower()
    assert_lower_snake(lowered, "policy_type")
    return PolicyType(lowered)


def edge_kind_from_value(s: str) -> MarkovEdgeKind:
    """
    Parse a lower_snake edge kind string into a MarkovEdgeKind.

    Raises:
      ValueError: If s is not lower_snake or is not a known edge kind.
    """
    assert_lower_snake(s, "edge_kind")
    return MarkovEdgeKind(s)


def ensure_all_enum_values_lower_snake(enums: Iterable[type[Enum]]) -> None:
    """
    Assert that every enum member's value is lower_snake.

    Args:
      enums (Iterable[type[Enum]]): Iterable of Enum classes to inspect.

    Raises:
      AssertionError: If any enum member has a non-lower_snake value.

    Examples:
      >>> ensure_all_enum_values_lower_snake([PolicyType, MarkovEdgeKind, TableName])
    """
    for E in enums:
        for m in E:
            if not is_lower_snake(m.value):
                raise AssertionError(
                    f"{E.__name__}.{m.name} has non-lower_snake value: {m.value!r}"
                )
