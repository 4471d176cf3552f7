"""
Weighted contribution graph consumed by the Markov process graph builder.

The graph itself is produced by upstream ingestion; this module only models it.
Nodes carry an optional timestamp; edges carry a timestamp and a pair of directional
weights resolved through prefix-keyed weight maps.

Weights
-------
Both node and edge weights are keyed by address *prefix*. The weight of an address is
the product of the weights of every prefix present in the map (including the full
address itself); unmatched prefixes contribute 1. This lets configuration say "all
reactions weigh 0.5" once instead of per node.

| Key in map                     | Applies to
|--------------------------------|-------------------------------------------
| N["github"]                    | every github node
| N["github","PULL"]             | every pull request (multiplied with the above)
| E["github","AUTHORS"]          | every authorship edge, forwards and backwards

Examples:
    >>> from credgrain.core.address import NodeAddress as NA
    >>> from credgrain.core.graph import Weights, node_weight_evaluator
    >>> w = Weights(node_weights={NA.from_parts(["gh"]): 2.0, NA.from_parts(["gh", "pr"]): 3.0})
    >>> node_weight_evaluator(w)(NA.from_parts(["gh", "pr", "1"]))
    6.0
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from .address import AddressIndex, EdgeAddress, NodeAddress
from .errors import InputError

__all__ = [
    "Node",
    "Edge",
    "Graph",
    "EdgeWeight",
    "Weights",
    "WeightedGraph",
    "node_weight_evaluator",
    "edge_weight_evaluator",
]


@dataclass(frozen=True, slots=True)
class Node:
    """
    Contribution graph node.

    Attributes:
        address (NodeAddress): Unique node address.
        description (str): Human-readable description.
        timestamp_ms (int | None): Creation time; None for timeless nodes such as users.
    """

    address: NodeAddress
    description: str
    timestamp_ms: int | None = None


@dataclass(frozen=True, slots=True)
class Edge:
    """
    Directed contribution graph edge.

    Attributes:
        address (EdgeAddress): Unique edge address.
        src (NodeAddress): Source node address.
        dst (NodeAddress): Destination node address.
        timestamp_ms (int): Time the relationship was created.
    """

    address: EdgeAddress
    src: NodeAddress
    dst: NodeAddress
    timestamp_ms: int


class Graph:
    """
    Insertion-ordered contribution graph.

    Notes:
        - Re-adding an identical node/edge is a no-op; a conflicting one raises InputError.
        - Edges may reference nodes that are not (yet) present. Consumers that need a
          closed graph (the Markov process graph builder) reject such dangling edges.
    """

    def __init__(self) -> None:
        self._nodes: dict[NodeAddress, Node] = {}
        self._edges: dict[EdgeAddress, Edge] = {}
        self._node_index = AddressIndex()
        self._edge_index = AddressIndex()

    def add_node(self, node: Node) -> Graph:
        existing = self._nodes.get(node.address)
        if existing is not None:
            if existing != node:
                raise InputError(f"conflict: node {node.address} already present with other data")
            return self
        self._nodes[node.address] = node
        self._node_index.add(node.address)
        return self

    def add_edge(self, edge: Edge) -> Graph:
        existing = self._edges.get(edge.address)
        if existing is not None:
            if existing != edge:
                raise InputError(f"conflict: edge {edge.address} already present with other data")
            return self
        self._edges[edge.address] = edge
        self._edge_index.add(edge.address)
        return self

    def node(self, address: NodeAddress) -> Node | None:
        return self._nodes.get(address)

    def edge(self, address: EdgeAddress) -> Edge | None:
        return self._edges.get(address)

    def nodes(self, prefix: NodeAddress | None = None) -> Iterator[Node]:
        """Yield nodes in insertion order, or every node under ``prefix`` in address order."""
        if prefix is None:
            yield from self._nodes.values()
            return
        for address in self._node_index.under(prefix):
            yield self._nodes[address]

    def edges(self, prefix: EdgeAddress | None = None) -> Iterator[Edge]:
        """Yield edges in insertion order, or every edge under ``prefix`` in address order."""
        if prefix is None:
            yield from self._edges.values()
            return
        for address in self._edge_index.under(prefix):
            yield self._edges[address]

    def is_dangling(self, edge: Edge) -> bool:
        return edge.src not in self._nodes or edge.dst not in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)


@dataclass(frozen=True, slots=True)
class EdgeWeight:
    """
    Directional edge weight.

    Attributes:
        forwards (float): Weight of flow from src to dst.
        backwards (float): Weight of flow from dst to src.

    Raises:
        InputError: If either component is negative or not finite.
    """

    forwards: float = 1.0
    backwards: float = 1.0

    def __post_init__(self) -> None:
        for name in ("forwards", "backwards"):
            v = getattr(self, name)
            if not math.isfinite(v) or v < 0:
                raise InputError(f"edge weight {name} must be finite and >= 0, got {v!r}")

    @property
    def is_zero(self) -> bool:
        return self.forwards == 0 and self.backwards == 0


@dataclass(frozen=True)
class Weights:
    """
    Prefix-keyed node and edge weights.

    Attributes:
        node_weights (Mapping[NodeAddress, float]): Node prefix -> multiplicative weight.
        edge_weights (Mapping[EdgeAddress, EdgeWeight]): Edge prefix -> directional weight.
    """

    node_weights: Mapping[NodeAddress, float] = field(default_factory=dict)
    edge_weights: Mapping[EdgeAddress, EdgeWeight] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for address, w in self.node_weights.items():
            if not math.isfinite(w) or w < 0:
                raise InputError(f"node weight for {address} must be finite and >= 0, got {w!r}")
        object.__setattr__(self, "node_weights", MappingProxyType(dict(self.node_weights)))
        object.__setattr__(self, "edge_weights", MappingProxyType(dict(self.edge_weights)))


def node_weight_evaluator(weights: Weights) -> Callable[[NodeAddress], float]:
    """Return a function mapping a node address to the product of its prefix weights."""
    table = weights.node_weights

    def evaluate(address: NodeAddress) -> float:
        w = 1.0
        parts = address.parts
        for n in range(len(parts) + 1):
            prefix_weight = table.get(NodeAddress.from_parts(parts[:n]))
            if prefix_weight is not None:
                w *= prefix_weight
        return w

    return evaluate


def edge_weight_evaluator(weights: Weights) -> Callable[[EdgeAddress], EdgeWeight]:
    """Return a function mapping an edge address to its component-wise prefix weight product."""
    table = weights.edge_weights

    def evaluate(address: EdgeAddress) -> EdgeWeight:
        forwards = 1.0
        backwards = 1.0
        parts = address.parts
        for n in range(len(parts) + 1):
            w = table.get(EdgeAddress.from_parts(parts[:n]))
            if w is not None:
                forwards *= w.forwards
                backwards *= w.backwards
        return EdgeWeight(forwards, backwards)

    return evaluate


@dataclass(frozen=True)
class WeightedGraph:
    """Contribution graph paired with its weights; consumed read-only."""

    graph: Graph
    weights: Weights = field(default_factory=Weights)
