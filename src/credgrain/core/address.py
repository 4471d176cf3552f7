"""
Hierarchical node and edge addresses.

Addresses are tuples of string parts (e.g. ``("github", "PULL", "repo", "42")``).
They are interned, hashable, and totally ordered by their parts, so equality checks
and dictionary lookups in the Markov-process hot paths never re-build strings.

Notes:
    - Parts must be ``str`` and must not contain the NUL character.
    - NodeAddress and EdgeAddress never compare equal to each other, even with the same
      parts; mixing them is a type error at the call site.
    - AddressIndex answers "all addresses under prefix P" (e.g. every node of a plugin).

Examples:
    >>> from credgrain.core.address import NodeAddress
    >>> a = NodeAddress.from_parts(["github", "user", "alice"])
    >>> a is NodeAddress.from_parts(("github", "user", "alice"))
    True
    >>> a.has_prefix(NodeAddress.from_parts(["github"]))
    True
    >>> str(a)
    'N["github","user","alice"]'
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import ClassVar, TypeVar

from .errors import InputError

__all__ = [
    "NodeAddress",
    "EdgeAddress",
    "AddressIndex",
]

A = TypeVar("A", "NodeAddress", "EdgeAddress")


def _check_parts(parts: Iterable[str]) -> tuple[str, ...]:
    out = tuple(parts)
    for p in out:
        if not isinstance(p, str):
            raise InputError(f"address parts must be strings, got {p!r}")
        if "\0" in p:
            raise InputError(f"address part must not contain NUL: {p!r}")
    return out


@dataclass(frozen=True, order=True, slots=True)
class NodeAddress:
    """Address of a node in a contribution or Markov process graph."""

    parts: tuple[str, ...]

    _interned: ClassVar[dict[tuple[str, ...], NodeAddress]] = {}
    _tag: ClassVar[str] = "N"

    @classmethod
    def from_parts(cls, parts: Iterable[str]) -> NodeAddress:
        key = _check_parts(parts)
        cached = cls._interned.get(key)
        if cached is None:
            cached = cls._interned.setdefault(key, cls(key))
        return cached

    def append(self, *parts: str) -> NodeAddress:
        return NodeAddress.from_parts(self.parts + tuple(parts))

    def has_prefix(self, prefix: NodeAddress) -> bool:
        n = len(prefix.parts)
        return self.parts[:n] == prefix.parts

    def __str__(self) -> str:
        return f"{self._tag}[" + ",".join(f'"{p}"' for p in self.parts) + "]"


@dataclass(frozen=True, order=True, slots=True)
class EdgeAddress:
    """Address of an edge in a contribution graph."""

    parts: tuple[str, ...]

    _interned: ClassVar[dict[tuple[str, ...], EdgeAddress]] = {}
    _tag: ClassVar[str] = "E"

    @classmethod
    def from_parts(cls, parts: Iterable[str]) -> EdgeAddress:
        key = _check_parts(parts)
        cached = cls._interned.get(key)
        if cached is None:
            cached = cls._interned.setdefault(key, cls(key))
        return cached

    def append(self, *parts: str) -> EdgeAddress:
        return EdgeAddress.from_parts(self.parts + tuple(parts))

    def has_prefix(self, prefix: EdgeAddress) -> bool:
        n = len(prefix.parts)
        return self.parts[:n] == prefix.parts

    def __str__(self) -> str:
        return f"{self._tag}[" + ",".join(f'"{p}"' for p in self.parts) + "]"


class AddressIndex:
    """
    Prefix index over addresses of a single kind.

    Every address is registered under each of its prefixes, so ``under(prefix)`` is a
    dictionary lookup rather than a scan.

    Examples:
        >>> idx = AddressIndex()
        >>> idx.add(NodeAddress.from_parts(["p", "x"]))
        >>> idx.add(NodeAddress.from_parts(["q"]))
        >>> [str(a) for a in idx.under(NodeAddress.from_parts(["p"]))]
        ['N["p","x"]']
    """

    def __init__(self) -> None:
        self._by_prefix: dict[tuple[str, ...], set[NodeAddress | EdgeAddress]] = {}

    def add(self, address: NodeAddress | EdgeAddress) -> None:
        parts = address.parts
        for n in range(len(parts) + 1):
            self._by_prefix.setdefault(parts[:n], set()).add(address)

    def under(self, prefix: A) -> Iterator[A]:
        """Yield every indexed address starting with ``prefix``, in sorted order."""
        found = self._by_prefix.get(prefix.parts, ())
        yield from sorted(a for a in found if type(a) is type(prefix))  # type: ignore[misc]

    def __contains__(self, address: object) -> bool:
        if not isinstance(address, (NodeAddress, EdgeAddress)):
            return False
        return address in self._by_prefix.get(address.parts, ())

    def __len__(self) -> int:
        return len(self._by_prefix.get((), ()))
