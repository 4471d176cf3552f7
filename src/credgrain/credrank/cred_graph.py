"""
Cred graph: per-participant cred read off a solved Markov process graph.

A participant's cred in interval ``k`` is the stationary mass of its epoch node for that
interval times a scale factor; total cred is the exact sum of the per-interval values.

Notes:
    - ``default_scale`` chooses the factor so the cred of all participants adds up to the
      total minted node weight. Callers may pass any finite non-negative scale instead.
    - CredGraph keeps a reference to its Markov process graph and distribution for
      inspection; neither is copied.

Examples:
    >>> cg = compute_cred_graph(mpg)  # doctest: +SKIP
    >>> [round(p.cred, 3) for p in cg.participants()]  # doctest: +SKIP
    [3.0, 0.0]
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass

from credgrain.core.address import NodeAddress
from credgrain.core.constants import DEFAULT_CONVERGENCE_THRESHOLD, DEFAULT_MAX_ITERATIONS
from credgrain.core.errors import InputError
from credgrain.core.grammar import MarkovNodeKind
from credgrain.core.interval import IntervalSequence

from .markov_process_graph import MarkovProcessGraph
from .pagerank import solve

__all__ = [
    "CredParticipant",
    "CredGraph",
    "assemble",
    "default_scale",
    "compute_cred_graph",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CredParticipant:
    """
    Cred scores of one participant.

    Attributes:
        id (str): Participant id.
        address (NodeAddress): Participant node in the contribution graph.
        description (str): Human-readable label.
        cred (float): Sum of ``cred_per_interval``.
        cred_per_interval (tuple[float, ...]): One entry per interval, in interval order.
    """

    id: str
    address: NodeAddress
    description: str
    cred: float
    cred_per_interval: tuple[float, ...]


class CredGraph:
    """Participants' cred together with the graph and distribution it came from."""

    def __init__(
        self,
        markov_process_graph: MarkovProcessGraph,
        distribution: Mapping[NodeAddress, float],
        participants: tuple[CredParticipant, ...],
    ) -> None:
        self._mpg = markov_process_graph
        self._distribution = distribution
        self._participants = participants
        self._by_id = {p.id: p for p in participants}

    @property
    def markov_process_graph(self) -> MarkovProcessGraph:
        return self._mpg

    @property
    def distribution(self) -> Mapping[NodeAddress, float]:
        return self._distribution

    @property
    def intervals(self) -> IntervalSequence:
        return self._mpg.intervals

    @property
    def total_cred(self) -> float:
        return math.fsum(p.cred for p in self._participants)

    def participants(self) -> tuple[CredParticipant, ...]:
        return self._participants

    def participant(self, participant_id: str) -> CredParticipant | None:
        return self._by_id.get(participant_id)

    def cred_history(self) -> dict[str, tuple[float, ...]]:
        """Participant id to cred per interval, the plain form the ledger consumes."""
        return {p.id: p.cred_per_interval for p in self._participants}

    def __repr__(self) -> str:
        return f"CredGraph(participants={len(self._participants)}, total_cred={self.total_cred:.6g})"


def default_scale(
    markov_process_graph: MarkovProcessGraph, distribution: Mapping[NodeAddress, float]
) -> float:
    """
    Scale that makes participants' cred sum to the total minted node weight.

    Returns 0.0 when nothing is minted or the epoch nodes hold no mass.
    """
    epoch_mass = math.fsum(
        distribution[n.address]
        for n in markov_process_graph.nodes()
        if n.kind is MarkovNodeKind.EPOCH
    )
    total_mint = markov_process_graph.total_mint
    if epoch_mass <= 0 or total_mint <= 0:
        return 0.0
    return total_mint / epoch_mass


def assemble(
    markov_process_graph: MarkovProcessGraph,
    distribution: Mapping[NodeAddress, float],
    scale: float,
) -> CredGraph:
    """
    Build a CredGraph from a Markov process graph and its stationary distribution.

    Args:
        markov_process_graph (MarkovProcessGraph): Solved graph.
        distribution (Mapping[NodeAddress, float]): Probability per node.
        scale (float): Multiplier applied to epoch mass, finite and >= 0.

    Returns:
        CredGraph: One CredParticipant per participant, in participant order.

    Raises:
        InputError: If scale is negative or not finite, or the distribution misses a node.
    """
    if not math.isfinite(scale) or scale < 0:
        raise InputError(f"scale must be finite and >= 0, got {scale!r}")
    for node in markov_process_graph.nodes():
        if node.address not in distribution:
            raise InputError(f"distribution has no value for node {node.address}")

    out: list[CredParticipant] = []
    for p in markov_process_graph.participants:
        per_interval = tuple(
            distribution[a] * scale for a in markov_process_graph.epoch_addresses(p.id)
        )
        out.append(
            CredParticipant(
                id=p.id,
                address=p.address,
                description=p.description,
                cred=math.fsum(per_interval),
                cred_per_interval=per_interval,
            )
        )
    return CredGraph(markov_process_graph, distribution, tuple(out))


def compute_cred_graph(
    markov_process_graph: MarkovProcessGraph,
    *,
    epsilon: float = DEFAULT_CONVERGENCE_THRESHOLD,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    scale: float | None = None,
) -> CredGraph:
    """Solve ``markov_process_graph`` and assemble its CredGraph (``default_scale`` when scale is None)."""
    distribution = solve(markov_process_graph, epsilon, max_iterations)
    if scale is None:
        scale = default_scale(markov_process_graph, distribution)
    cred_graph = assemble(markov_process_graph, distribution, scale)
    logger.info(
        "computed cred for %d participants over %d intervals (total=%.6g, iterations=%d)",
        len(cred_graph.participants()),
        len(cred_graph.intervals),
        cred_graph.total_cred,
        distribution.iterations,
    )
    return cred_graph
