"""
Grain allocation: split a policy's budget among identities by cred.

Responsibilities
- Validate the identity snapshot before any arithmetic (non-empty, unique ids, consistent
  and finite cred, non-zero cred for cred-based policies).
- Compute exact integer receipts for the policy and re-check budget conservation.
- Group several allocations computed against one snapshot into a Distribution.

Notes
- Receipts are aligned with the input identity order, one per identity, including zero
  receipts. SPECIAL allocations also list every identity; only the recipient gets a
  non-zero amount.
- ``compute_allocation`` is pure apart from drawing a fresh allocation id; identical
  inputs give identical receipts.
- Recording the result is the caller's job (see ``credgrain.ledger.ledger.Ledger``).

Examples:
    >>> from credgrain.ledger.allocation import AllocationIdentity, compute_allocation
    >>> from credgrain.ledger.policies import BalancedPolicy
    >>> ids = [AllocationIdentity(id="a", paid=0, cred=(1, 1)),
    ...        AllocationIdentity(id="b", paid=0, cred=(3, 0))]
    >>> [r.amount for r in compute_allocation(BalancedPolicy(budget=100), ids).receipts]
    [40, 60]
"""

from __future__ import annotations

import logging
import math
import uuid
from collections.abc import Iterable, Sequence
from fractions import Fraction

from pydantic import BaseModel, ConfigDict, Field

from credgrain.core.errors import FatalInvariantError, InputError
from credgrain.core.typing import IdentityId, JsonDict, TimestampMs

from .grain import split_budget
from .policies import (
    AllocationPolicy,
    BalancedPolicy,
    ImmediatePolicy,
    RecentPolicy,
    SpecialPolicy,
    balanced_weights,
    immediate_weights,
    parse_policy,
    recent_weights,
)

__all__ = [
    "AllocationIdentity",
    "GrainReceipt",
    "Allocation",
    "Distribution",
    "compute_allocation",
    "compute_distribution",
]

logger = logging.getLogger(__name__)

_MODEL_CONFIG = ConfigDict(extra="forbid", frozen=True)


class AllocationIdentity(BaseModel):
    """
    Snapshot of one identity as seen by the allocation engine.

    Attributes:
        id (str): Identity id.
        paid (int): Raw grain paid to this identity so far, >= 0.
        cred (tuple[float, ...]): Cred per interval, oldest first.
    """

    model_config = _MODEL_CONFIG

    id: IdentityId
    paid: int = Field(..., ge=0)
    cred: tuple[float, ...]


class GrainReceipt(BaseModel):
    """Amount of raw grain paid to one identity by an allocation."""

    model_config = _MODEL_CONFIG

    id: IdentityId
    amount: int = Field(..., ge=0)


class Allocation(BaseModel):
    """
    Result of applying one policy to one identity snapshot.

    Attributes:
        id (str): Fresh unique allocation id (hex uuid4).
        policy (AllocationPolicy): Policy that produced the receipts.
        receipts (tuple[GrainReceipt, ...]): Receipts in identity order.

    Notes:
        Σ receipts.amount == policy.budget is checked by ``_validate_allocation_budget``.
    """

    model_config = _MODEL_CONFIG

    id: str
    policy: AllocationPolicy
    receipts: tuple[GrainReceipt, ...]

    @property
    def total(self) -> int:
        return sum(r.amount for r in self.receipts)


class Distribution(BaseModel):
    """
    Allocations computed together against one cred snapshot.

    Attributes:
        id (str): Fresh unique distribution id.
        cred_timestamp_ms (int): Time at which the cred snapshot was taken.
        allocations (tuple[Allocation, ...]): One allocation per policy, in policy order.
    """

    model_config = _MODEL_CONFIG

    id: str
    cred_timestamp_ms: TimestampMs
    allocations: tuple[Allocation, ...]


def _validate_identities(identities: Sequence[AllocationIdentity]) -> None:
    if not identities:
        raise InputError("must have at least one identity")
    seen: set[str] = set()
    for i in identities:
        if i.id in seen:
            raise InputError(f"duplicate identity id {i.id!r}")
        seen.add(i.id)
    lengths = {len(i.cred) for i in identities}
    if len(lengths) != 1:
        raise InputError("inconsistent cred length")
    for i in identities:
        if not all(math.isfinite(c) for c in i.cred):
            raise InputError(f"invalid cred for identity {i.id!r}")
        if any(c < 0 for c in i.cred):
            raise InputError(f"invalid cred for identity {i.id!r}: negative value")


def _validate_allocation_budget(allocation: Allocation) -> None:
    distributed = allocation.total
    budget = allocation.policy.budget
    if distributed != budget:
        raise FatalInvariantError(
            f"allocation {allocation.id} has budget of {budget} but distributed {distributed}"
        )


def _weights(
    policy: AllocationPolicy, identities: Sequence[AllocationIdentity]
) -> list[Fraction]:
    creds = [i.cred for i in identities]
    match policy:
        case ImmediatePolicy():
            return immediate_weights(policy, creds)
        case RecentPolicy():
            return recent_weights(policy, creds)
        case BalancedPolicy():
            return balanced_weights(policy, creds, [i.paid for i in identities])
        case _:
            raise InputError(f"policy {policy.policy_type!r} has no cred weights")


def _special_amounts(policy: SpecialPolicy, identities: Sequence[AllocationIdentity]) -> list[int]:
    if not any(i.id == policy.recipient for i in identities):
        raise InputError(f"no active grain account for identity {policy.recipient!r}")
    return [policy.budget if i.id == policy.recipient else 0 for i in identities]


def compute_allocation(
    policy: AllocationPolicy | JsonDict,
    identities: Iterable[AllocationIdentity],
) -> Allocation:
    """
    Compute the receipts of one policy over an identity snapshot.

    Args:
        policy: Policy model, or a mapping accepted by ``parse_policy``.
        identities: Ordered, non-empty identity snapshot.

    Returns:
        Allocation: Fresh id, the policy, and one receipt per identity.

    Raises:
        InputError: On an empty or inconsistent snapshot, NaN/Infinity cred, zero total
            cred (cred-based policies), or an unknown SPECIAL recipient.
        FatalInvariantError: If the receipts do not sum to the budget.
    """
    policy = parse_policy(policy)
    identities = tuple(identities)
    _validate_identities(identities)

    if isinstance(policy, SpecialPolicy):
        amounts = _special_amounts(policy, identities)
    else:
        if all(c == 0 for i in identities for c in i.cred):
            raise InputError("cred is zero")
        weights = _weights(policy, identities)
        if policy.budget == 0:
            amounts = [0] * len(identities)
        elif sum(weights) == 0:
            raise InputError("cred is zero in the intervals this policy considers")
        else:
            amounts = split_budget(policy.budget, weights)

    allocation = Allocation(
        id=uuid.uuid4().hex,
        policy=policy,
        receipts=tuple(GrainReceipt(id=i.id, amount=a) for i, a in zip(identities, amounts)),
    )
    _validate_allocation_budget(allocation)
    logger.debug(
        "allocation %s: %s policy, budget %d over %d identities",
        allocation.id,
        policy.policy_type,
        policy.budget,
        len(identities),
    )
    return allocation


def compute_distribution(
    policies: Iterable[AllocationPolicy | JsonDict],
    identities: Iterable[AllocationIdentity],
    cred_timestamp_ms: TimestampMs,
) -> Distribution:
    """
    Compute one allocation per policy against the same identity snapshot.

    Every policy sees the same ``paid`` values; allocations within a distribution do not
    observe each other's receipts.
    """
    identities = tuple(identities)
    allocations = tuple(compute_allocation(p, identities) for p in policies)
    logger.info(
        "distribution over %d identities: %d allocations, %d grain total",
        len(identities),
        len(allocations),
        sum(a.total for a in allocations),
    )
    return Distribution(
        id=uuid.uuid4().hex,
        cred_timestamp_ms=cred_timestamp_ms,
        allocations=allocations,
    )
