"""
Markov process graph: the normalized transition structure behind CredRank.

A Markov process graph sits between the weighted contribution graph and a raw transition
matrix. Edges are one-directional and carry transition probabilities; every node's
outgoing probabilities sum to 1. Parallel edges stay reified (each keeps the contribution
edge it came from) and are only collapsed when the solver asks for a Markov chain.

Node families
-------------
- base:  one per contribution graph node, ordered by address.
- seed:  one per participant. Every node teleports ``alpha`` uniformly to the seeds;
         seeds mint the remaining ``1 - alpha`` into base nodes proportional to node
         weight.
- epoch: one per (participant, interval). Contribution edges incident to a participant
         are rewired to the participant's epoch node for the relevant interval, so cred
         flowing to a participant is recorded per interval.

Transition budget per node
--------------------------
| Node kind | teleport | retention | attribution      | graph edges
|-----------|----------|-----------|------------------|------------------------------
| base      | alpha    | -         | -                | 1 - alpha
| seed      | alpha    | -         | -                | 1 - alpha (minted by weight)
| epoch     | alpha    | beta      | R * Σ q          | R * (1 - Σ q), R = 1 - alpha - beta

Graph-edge mass is split over candidates proportional to ``forwards * gamma_forward``
(src -> dst) and ``backwards * gamma_backward`` (dst -> src). Mass with no candidate
(dangling nodes, zero total mint) teleports to the seeds.

Examples:
    >>> from credgrain.core.address import NodeAddress as NA
    >>> from credgrain.core.graph import Graph, Node, WeightedGraph
    >>> from credgrain.core.interval import Interval
    >>> g = Graph().add_node(Node(NA.from_parts(["user", "a"]), "a"))
    >>> mpg = build(
    ...     WeightedGraph(g),
    ...     [Interval(0, 10)],
    ...     [Participant("a", NA.from_parts(["user", "a"]), "a")],
    ...     MarkovProcessParameters(alpha=0.2, beta=0.3),
    ... )
    >>> len(mpg.nodes())  # base + seed + one epoch
    3
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from credgrain.core.address import EdgeAddress, NodeAddress
from credgrain.core.constants import (
    DEFAULT_ALPHA,
    DEFAULT_BETA,
    DEFAULT_GAMMA_BACKWARD,
    DEFAULT_GAMMA_FORWARD,
    TRANSITION_TOLERANCE,
)
from credgrain.core.errors import ConfigError, FatalInvariantError
from credgrain.core.graph import Edge, WeightedGraph, edge_weight_evaluator, node_weight_evaluator
from credgrain.core.grammar import MarkovEdgeKind, MarkovNodeKind
from credgrain.core.interval import Interval, IntervalSequence, find_interval_index, interval_sequence
from credgrain.core.typing import ParticipantId, TimestampMs

from .personal_attribution import IndexedAttributions, PersonalAttribution

__all__ = [
    "Participant",
    "MarkovProcessParameters",
    "MarkovNode",
    "MarkovEdge",
    "MarkovChain",
    "MarkovProcessGraph",
    "SYNTHETIC_PREFIX",
    "build",
]

logger = logging.getLogger(__name__)

# Synthetic seed/epoch nodes live under this prefix; contribution graphs must not use it.
SYNTHETIC_PREFIX = NodeAddress.from_parts(["credgrain", "credrank"])
_SEED_PREFIX = SYNTHETIC_PREFIX.append("seed")
_EPOCH_PREFIX = SYNTHETIC_PREFIX.append("epoch")

# Per-destination sparse rows: for node j, ((i, p_ij), ...).
MarkovChain = tuple[tuple[tuple[int, float], ...], ...]


@dataclass(frozen=True, slots=True)
class Participant:
    """
    Identity eligible to receive cred.

    Attributes:
        id (str): Opaque unique identifier (shared with the ledger identity id).
        address (NodeAddress): The participant's node in the contribution graph.
        description (str): Human-readable label.
    """

    id: ParticipantId
    address: NodeAddress
    description: str = ""


class MarkovProcessParameters(BaseModel):
    """
    CredRank transition parameters.

    Attributes:
        alpha (float): Teleportation mass to the seed nodes, in (0, 1].
        beta (float): Retention mass along epoch chains, in [0, 1].
        gamma_forward (float): Scale for forwards edge weights, >= 0.
        gamma_backward (float): Scale for backwards edge weights, >= 0.

    Notes:
        ``alpha + beta <= 1`` is a cross-field rule enforced by ``build`` (ConfigError)
        so parameter sets can be assembled field by field from settings.
    """

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        allow_inf_nan=False,
    )

    alpha: float = Field(DEFAULT_ALPHA, gt=0.0, le=1.0)
    beta: float = Field(DEFAULT_BETA, ge=0.0, le=1.0)
    gamma_forward: float = Field(DEFAULT_GAMMA_FORWARD, ge=0.0)
    gamma_backward: float = Field(DEFAULT_GAMMA_BACKWARD, ge=0.0)


@dataclass(frozen=True, slots=True)
class MarkovNode:
    """
    Node of a Markov process graph.

    Attributes:
        address (NodeAddress): Base node address or synthetic seed/epoch address.
        description (str): Human-readable label.
        kind (MarkovNodeKind): base, seed, or epoch.
        mint (float): Share of seed mass this node receives (node weight; 0 for synthetic
            and participant nodes).
    """

    address: NodeAddress
    description: str
    kind: MarkovNodeKind
    mint: float = 0.0


@dataclass(frozen=True, slots=True)
class MarkovEdge:
    """
    Directed transition of a Markov process graph.

    Attributes:
        src (NodeAddress): Source node.
        dst (NodeAddress): Destination node.
        kind (MarkovEdgeKind): Transition family.
        transition_probability (float): Probability in (0, 1].
        source_edge (EdgeAddress | None): Contribution edge this transition came from.
        reversed (bool): True when the transition runs dst -> src of ``source_edge``.
    """

    src: NodeAddress
    dst: NodeAddress
    kind: MarkovEdgeKind
    transition_probability: float
    source_edge: EdgeAddress | None = None
    reversed: bool = False


class MarkovProcessGraph:
    """
    Immutable Markov process graph produced by ``build``.

    Notes:
        - ``nodes()`` order is the canonical index order used by ``to_markov_chain``.
        - ``transition_probability`` sums parallel edges; absent pairs return 0.0.
    """

    def __init__(
        self,
        *,
        nodes: Sequence[MarkovNode],
        edges: Sequence[MarkovEdge],
        participants: Sequence[Participant],
        intervals: IntervalSequence,
        parameters: MarkovProcessParameters,
    ) -> None:
        self._nodes = tuple(nodes)
        self._edges = tuple(edges)
        self._participants = tuple(participants)
        self._intervals = intervals
        self._parameters = parameters
        self._index = MappingProxyType({n.address: i for i, n in enumerate(self._nodes)})
        out: dict[NodeAddress, list[MarkovEdge]] = defaultdict(list)
        pair: dict[tuple[NodeAddress, NodeAddress], float] = defaultdict(float)
        for e in self._edges:
            out[e.src].append(e)
            pair[(e.src, e.dst)] += e.transition_probability
        self._out = MappingProxyType({k: tuple(v) for k, v in out.items()})
        self._pair = MappingProxyType(dict(pair))
        self._total_mint = math.fsum(n.mint for n in self._nodes)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def participants(self) -> tuple[Participant, ...]:
        return self._participants

    @property
    def intervals(self) -> IntervalSequence:
        return self._intervals

    @property
    def parameters(self) -> MarkovProcessParameters:
        return self._parameters

    @property
    def total_mint(self) -> float:
        return self._total_mint

    def nodes(self) -> tuple[MarkovNode, ...]:
        return self._nodes

    def edges(self) -> tuple[MarkovEdge, ...]:
        return self._edges

    def node(self, address: NodeAddress) -> MarkovNode | None:
        i = self._index.get(address)
        return None if i is None else self._nodes[i]

    def node_index(self, address: NodeAddress) -> int:
        return self._index[address]

    def out_edges(self, address: NodeAddress) -> tuple[MarkovEdge, ...]:
        return self._out.get(address, ())

    def transition_probability(self, src: NodeAddress, dst: NodeAddress) -> float:
        return self._pair.get((src, dst), 0.0)

    def has_transition(self, src: NodeAddress, dst: NodeAddress) -> bool:
        return (src, dst) in self._pair

    @staticmethod
    def seed_address(participant_id: ParticipantId) -> NodeAddress:
        return _SEED_PREFIX.append(participant_id)

    def epoch_address(self, participant_id: ParticipantId, interval_index: int) -> NodeAddress:
        interval = self._intervals[interval_index]
        return _epoch_address(participant_id, interval)

    def epoch_addresses(self, participant_id: ParticipantId) -> tuple[NodeAddress, ...]:
        return tuple(_epoch_address(participant_id, i) for i in self._intervals)

    def to_markov_chain(self) -> MarkovChain:
        """
        Collapse parallel edges into per-destination sparse rows.

        Returns:
            MarkovChain: ``rows[j]`` lists ``(i, p_ij)`` for every source ``i`` with a
            transition into node ``j``, sources in ascending index order.
        """
        rows: list[dict[int, float]] = [{} for _ in self._nodes]
        for e in self._edges:
            i = self._index[e.src]
            j = self._index[e.dst]
            rows[j][i] = rows[j].get(i, 0.0) + e.transition_probability
        return tuple(tuple(sorted(r.items())) for r in rows)

    def __repr__(self) -> str:
        return (
            f"MarkovProcessGraph(nodes={len(self._nodes)}, edges={len(self._edges)}, "
            f"participants={len(self._participants)}, intervals={len(self._intervals)})"
        )


def _epoch_address(participant_id: ParticipantId, interval: Interval) -> NodeAddress:
    return _EPOCH_PREFIX.append(participant_id, str(interval.start_time_ms))


@dataclass(slots=True)
class _Candidate:
    dst: NodeAddress
    kind: MarkovEdgeKind
    raw: float
    source_edge: EdgeAddress
    reversed: bool


def _check_participants(
    participants: Sequence[Participant], weighted_graph: WeightedGraph
) -> None:
    if not participants:
        raise ConfigError("must have at least one participant")
    ids: set[str] = set()
    addresses: set[NodeAddress] = set()
    for p in participants:
        if p.id in ids:
            raise ConfigError(f"duplicate participant id {p.id!r}")
        if p.address in addresses:
            raise ConfigError(f"duplicate participant address {p.address}")
        ids.add(p.id)
        addresses.add(p.address)
    clash = next(weighted_graph.graph.nodes(SYNTHETIC_PREFIX), None)
    if clash is not None:
        raise ConfigError(f"graph node {clash.address} collides with reserved prefix {SYNTHETIC_PREFIX}")


def _bind_interval(
    intervals: IntervalSequence,
    starts: Sequence[int],
    timestamp_ms: TimestampMs | None,
    edge: Edge,
) -> int:
    if timestamp_ms is None:
        timestamp_ms = edge.timestamp_ms
    k = find_interval_index(intervals, timestamp_ms, starts=starts)
    if k is None:
        raise ConfigError(
            f"timestamp {timestamp_ms} of edge {edge.address} is outside every interval"
        )
    return k


def build(
    weighted_graph: WeightedGraph,
    intervals: Iterable[Interval | Mapping[str, object]],
    participants: Sequence[Participant],
    parameters: MarkovProcessParameters,
    personal_attributions: Iterable[PersonalAttribution | Mapping[str, object]] = (),
) -> MarkovProcessGraph:
    """
    Build a Markov process graph from a weighted contribution graph.

    Args:
        weighted_graph (WeightedGraph): Contribution graph and its weights (read-only).
        intervals: Strictly ascending, non-overlapping intervals.
        participants (Sequence[Participant]): Identities eligible for cred.
        parameters (MarkovProcessParameters): alpha, beta, gamma_forward, gamma_backward.
        personal_attributions: Optional cred redirections between participants.

    Returns:
        MarkovProcessGraph: Immutable graph whose outgoing probabilities sum to 1 per node.

    Raises:
        ConfigError: If alpha + beta > 1, intervals are malformed, an edge references a
            missing node, participants are missing/duplicated, a participant-bound
            timestamp lies outside every interval, or attributions are invalid.
        FatalInvariantError: If a node's outgoing probabilities do not sum to 1.
    """
    alpha = parameters.alpha
    beta = parameters.beta
    if alpha + beta > 1.0:
        raise ConfigError(f"alpha + beta must not exceed 1, got {alpha} + {beta}")
    seq = interval_sequence(intervals)
    starts = [i.start_time_ms for i in seq]
    participants = tuple(participants)
    _check_participants(participants, weighted_graph)
    attributions = IndexedAttributions(personal_attributions, [p.id for p in participants])

    graph = weighted_graph.graph
    for edge in graph.edges():
        if graph.is_dangling(edge):
            raise ConfigError(f"edge {edge.address} references a missing node")

    by_address = {p.address: p for p in participants}
    node_weight = node_weight_evaluator(weighted_graph.weights)
    edge_weight = edge_weight_evaluator(weighted_graph.weights)

    # Nodes ------------------------------------------------------------
    nodes: list[MarkovNode] = []
    for gnode in sorted(graph.nodes(), key=lambda n: n.address):
        mint = 0.0 if gnode.address in by_address else node_weight(gnode.address)
        nodes.append(MarkovNode(gnode.address, gnode.description, MarkovNodeKind.BASE, mint))
    seeds = [MarkovProcessGraph.seed_address(p.id) for p in participants]
    for p, seed in zip(participants, seeds):
        nodes.append(MarkovNode(seed, f"seed for {p.description or p.id}", MarkovNodeKind.SEED))
    # epoch address -> (participant id, interval index)
    epochs: dict[NodeAddress, tuple[ParticipantId, int]] = {}
    for p in participants:
        for k, interval in enumerate(seq):
            address = _epoch_address(p.id, interval)
            epochs[address] = (p.id, k)
            nodes.append(
                MarkovNode(
                    address,
                    f"{p.description or p.id} @ {interval.start_time_ms}",
                    MarkovNodeKind.EPOCH,
                )
            )

    # Graph-edge candidates --------------------------------------------
    candidates: dict[NodeAddress, list[_Candidate]] = defaultdict(list)
    gamma_f = parameters.gamma_forward
    gamma_b = parameters.gamma_backward
    dropped = 0
    for edge in graph.edges():
        w = edge_weight(edge.address)
        if w.is_zero:
            dropped += 1
            continue
        src, dst = edge.src, edge.dst
        src_p = by_address.get(src)
        dst_p = by_address.get(dst)
        src_node = graph.node(src)
        dst_node = graph.node(dst)
        if src_p is not None:
            other_ts = None if dst_p is not None or dst_node is None else dst_node.timestamp_ms
            src = _epoch_address(src_p.id, seq[_bind_interval(seq, starts, other_ts, edge)])
        if dst_p is not None:
            other_ts = None if src_p is not None or src_node is None else src_node.timestamp_ms
            dst = _epoch_address(dst_p.id, seq[_bind_interval(seq, starts, other_ts, edge)])
        kind = (
            MarkovEdgeKind.MINT
            if src_p is not None or dst_p is not None
            else MarkovEdgeKind.CONTRIBUTION
        )
        if w.forwards * gamma_f > 0:
            candidates[src].append(_Candidate(dst, kind, w.forwards * gamma_f, edge.address, False))
        if w.backwards * gamma_b > 0:
            candidates[dst].append(_Candidate(src, kind, w.backwards * gamma_b, edge.address, True))

    # Transitions --------------------------------------------------------
    edges: list[MarkovEdge] = []
    total_mint = math.fsum(n.mint for n in nodes)
    mint_nodes = [n for n in nodes if n.mint > 0]

    for node in nodes:
        addr = node.address
        leftover = 0.0
        if node.kind is MarkovNodeKind.SEED:
            if total_mint > 0:
                for target in mint_nodes:
                    edges.append(
                        MarkovEdge(
                            addr,
                            target.address,
                            MarkovEdgeKind.SEED,
                            (1.0 - alpha) * target.mint / total_mint,
                        )
                    )
            else:
                leftover = 1.0 - alpha
        else:
            remainder = 1.0 - alpha
            if node.kind is MarkovNodeKind.EPOCH:
                remainder -= beta
                participant_id, k = epochs[addr]
                attributed = _epoch_links(
                    addr, participant_id, k, seq, attributions, remainder, beta, edges
                )
                graph_share = remainder - attributed
            else:
                graph_share = remainder
            leftover += _distribute(addr, candidates.get(addr, ()), graph_share, edges)

        teleport = alpha + leftover
        for seed in seeds:
            edges.append(MarkovEdge(addr, seed, MarkovEdgeKind.TELEPORT, teleport / len(seeds)))

    edges = [e for e in edges if e.transition_probability > 0]
    mpg = MarkovProcessGraph(
        nodes=nodes,
        edges=edges,
        participants=participants,
        intervals=seq,
        parameters=parameters,
    )
    _check_stochastic(mpg)
    logger.debug(
        "built markov process graph: %d nodes, %d edges, %d zero-weight edges dropped",
        len(nodes),
        len(edges),
        dropped,
    )
    return mpg


def _epoch_links(
    address: NodeAddress,
    participant_id: ParticipantId,
    k: int,
    seq: IntervalSequence,
    attributions: IndexedAttributions,
    remainder: float,
    beta: float,
    edges: list[MarkovEdge],
) -> float:
    """Append retention and attribution edges for an epoch node; return attributed mass."""
    next_k = k + 1 if k + 1 < len(seq) else k
    edges.append(
        MarkovEdge(
            address,
            _epoch_address(participant_id, seq[next_k]),
            MarkovEdgeKind.RETENTION,
            beta,
        )
    )
    attributed = 0.0
    for to_id, q in attributions.proportions_at(participant_id, seq[k].start_time_ms).items():
        mass = remainder * q
        attributed += mass
        edges.append(
            MarkovEdge(
                address,
                _epoch_address(to_id, seq[k]),
                MarkovEdgeKind.ATTRIBUTION,
                mass,
            )
        )
    return attributed


def _distribute(
    src: NodeAddress,
    candidates: Sequence[_Candidate],
    share: float,
    edges: list[MarkovEdge],
) -> float:
    """Split ``share`` over candidates by raw weight; return undistributed mass."""
    total = math.fsum(c.raw for c in candidates)
    if total <= 0 or share <= 0:
        return max(share, 0.0)
    for c in candidates:
        edges.append(
            MarkovEdge(src, c.dst, c.kind, share * c.raw / total, c.source_edge, c.reversed)
        )
    return 0.0


def _check_stochastic(mpg: MarkovProcessGraph) -> None:
    for node in mpg.nodes():
        total = math.fsum(e.transition_probability for e in mpg.out_edges(node.address))
        if not abs(total - 1.0) <= TRANSITION_TOLERANCE:
            raise FatalInvariantError(
                f"outgoing transition probabilities of {node.address} sum to {total!r}, not 1"
            )
