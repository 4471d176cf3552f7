"""
credgrain.ledger — Grain allocation and the ledger collaborator.

## Responsibilities
- Represent grain as exact fixed-point integers and split budgets without loss.
- Model allocation policies as a closed tagged union (immediate, recent, balanced, special).
- Compute budget-conserving allocations over identity snapshots.
- Record allocations as atomic payments in a caller-owned, in-memory ledger.

## Public API
- ONE, ZERO, from_string, from_float_string, format_grain, split_budget: grain arithmetic.
- ImmediatePolicy, RecentPolicy, BalancedPolicy, SpecialPolicy, parse_policy: policies.
- AllocationIdentity, Allocation, compute_allocation, compute_distribution: allocation.
- Ledger, allocation_identities: ledger collaborator.

## Import DAG discipline
- Depends on stdlib, pydantic and credgrain.core. Cred arrives as plain per-interval
  sequences (see CredGraph.cred_history).
- MUST NOT import credgrain.credrank or credgrain.io.
"""

from __future__ import annotations

from .allocation import (
    Allocation,
    AllocationIdentity,
    Distribution,
    GrainReceipt,
    compute_allocation,
    compute_distribution,
)
from .grain import ONE, ZERO, format_grain, from_float_string, from_string, split_budget
from .ledger import Identity, Ledger, LedgerAccount, allocation_identities
from .policies import (
    BalancedPolicy,
    ImmediatePolicy,
    RecentPolicy,
    SpecialPolicy,
    parse_policy,
)

__all__ = [
    "ONE",
    "ZERO",
    "from_string",
    "from_float_string",
    "format_grain",
    "split_budget",
    "ImmediatePolicy",
    "RecentPolicy",
    "BalancedPolicy",
    "SpecialPolicy",
    "parse_policy",
    "AllocationIdentity",
    "GrainReceipt",
    "Allocation",
    "Distribution",
    "compute_allocation",
    "compute_distribution",
    "Identity",
    "LedgerAccount",
    "Ledger",
    "allocation_identities",
]
