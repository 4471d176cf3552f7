"""
In-memory ledger of identities, their cred history and the grain paid to them.

The ledger is an explicit, caller-owned object: there is no module-level instance, so
independent allocation runs (and tests) never share state. It is the only place where
receipts become payments; ``distribute_grain`` applies an allocation as one atomic
append under a lock.

Examples:
    >>> from credgrain.ledger.ledger import Ledger, allocation_identities
    >>> ledger = Ledger()
    >>> _ = ledger.add_identity("alice", address=("user", "alice"))
    >>> ledger.activate("alice")
    >>> ledger.update_cred({"alice": (1.0, 2.0)})
    >>> [i.cred for i in allocation_identities(ledger.accounts())]
    [(1.0, 2.0)]
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace

from credgrain.core.address import NodeAddress
from credgrain.core.errors import InputError
from credgrain.core.typing import IdentityId

from .allocation import Allocation, AllocationIdentity

__all__ = [
    "Identity",
    "LedgerAccount",
    "Ledger",
    "allocation_identities",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Identity:
    """
    Ledger identity.

    Attributes:
        id (str): Unique id, shared with the cred participant id.
        name (str): Unique human-readable name.
        address (NodeAddress): Identity node in the contribution graph.
    """

    id: IdentityId
    name: str
    address: NodeAddress


@dataclass(frozen=True, slots=True)
class LedgerAccount:
    """
    Read-only view of one identity's ledger state.

    Attributes:
        identity (Identity): The identity.
        paid (int): Raw grain paid so far.
        cred_history (tuple[float, ...]): Cred per interval from the last cred update.
        active (bool): Whether the identity may receive grain.
    """

    identity: Identity
    paid: int = 0
    cred_history: tuple[float, ...] = field(default_factory=tuple)
    active: bool = False


class Ledger:
    """
    Identities, balances and the append-only allocation log.

    Notes:
        - Accounts are kept in insertion order; ``accounts()`` returns them in that order.
        - Every mutating method validates fully before changing any state.
    """

    def __init__(self) -> None:
        self._accounts: dict[str, LedgerAccount] = {}
        self._allocations: list[Allocation] = []
        self._allocation_ids: set[str] = set()
        self._lock = threading.Lock()

    def add_identity(
        self,
        identity_id: IdentityId,
        *,
        name: str | None = None,
        address: NodeAddress | Sequence[str] | None = None,
    ) -> Identity:
        """
        Register a new, inactive identity.

        Raises:
            InputError: If the id or name is already taken.
        """
        name = identity_id if name is None else name
        if address is None:
            address = NodeAddress.from_parts(["credgrain", "identity", identity_id])
        elif not isinstance(address, NodeAddress):
            address = NodeAddress.from_parts(address)
        identity = Identity(identity_id, name, address)
        with self._lock:
            if identity_id in self._accounts:
                raise InputError(f"identity {identity_id!r} already exists")
            if any(a.identity.name == name for a in self._accounts.values()):
                raise InputError(f"identity name {name!r} already taken")
            self._accounts[identity_id] = LedgerAccount(identity)
        return identity

    def _set_active(self, identity_id: str, active: bool) -> None:
        with self._lock:
            account = self._account(identity_id)
            self._accounts[identity_id] = replace(account, active=active)

    def activate(self, identity_id: str) -> None:
        self._set_active(identity_id, True)

    def deactivate(self, identity_id: str) -> None:
        self._set_active(identity_id, False)

    def _account(self, identity_id: str) -> LedgerAccount:
        account = self._accounts.get(identity_id)
        if account is None:
            raise InputError(f"no identity with id {identity_id!r}")
        return account

    def account(self, identity_id: str) -> LedgerAccount:
        return self._account(identity_id)

    def accounts(self) -> tuple[LedgerAccount, ...]:
        return tuple(self._accounts.values())

    def update_cred(self, cred: Mapping[str, Sequence[float]]) -> None:
        """
        Replace every account's cred history.

        Args:
            cred: Identity id to cred per interval, e.g. ``CredGraph.cred_history()``.
                Identities without cred get zeros of the same length.
        """
        history = {k: tuple(float(c) for c in v) for k, v in cred.items()}
        lengths = {len(v) for v in history.values()}
        if len(lengths) > 1:
            raise InputError("inconsistent cred length")
        width = lengths.pop() if lengths else 0
        with self._lock:
            self._accounts = {
                k: replace(a, cred_history=tuple(history.get(k, (0.0,) * width)))
                for k, a in self._accounts.items()
            }

    def distribute_grain(self, allocation: Allocation) -> None:
        """
        Pay out an allocation's receipts as one atomic append.

        Raises:
            InputError: If the allocation was already applied or a receipt names an
                unknown or inactive identity; the ledger is unchanged.
        """
        with self._lock:
            if allocation.id in self._allocation_ids:
                raise InputError(f"allocation {allocation.id} was already distributed")
            for receipt in allocation.receipts:
                account = self._accounts.get(receipt.id)
                if account is None or not account.active:
                    raise InputError(f"no active grain account for identity {receipt.id!r}")
            for receipt in allocation.receipts:
                account = self._accounts[receipt.id]
                self._accounts[receipt.id] = replace(account, paid=account.paid + receipt.amount)
            self._allocations.append(allocation)
            self._allocation_ids.add(allocation.id)
        logger.info(
            "distributed allocation %s (%s): %d grain to %d identities",
            allocation.id,
            allocation.policy.policy_type,
            allocation.total,
            len(allocation.receipts),
        )

    def allocations(self) -> tuple[Allocation, ...]:
        return tuple(self._allocations)


def allocation_identities(accounts: Iterable[LedgerAccount]) -> list[AllocationIdentity]:
    """Build allocation snapshots for the active accounts, in account order."""
    return [
        AllocationIdentity(id=a.identity.id, paid=a.paid, cred=a.cred_history)
        for a in accounts
        if a.active
    ]
