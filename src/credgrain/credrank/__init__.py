"""
credgrain.credrank — CredRank over a weighted contribution graph.

## Responsibilities
- Turn a weighted contribution graph, an interval sequence and a participant list into a
  Markov process graph (seed, epoch and base nodes; normalized transitions).
- Solve the graph's stationary distribution with a bounded, deterministic power iteration.
- Read per-interval participant cred off the distribution.

## Public API
- MarkovProcessParameters, Participant, build: Markov process graph construction.
- PersonalAttribution, IndexedAttributions: time-scoped cred redirection between participants.
- solve, StationaryDistribution: stationary distribution solver.
- assemble, compute_cred_graph, CredGraph, CredParticipant: cred extraction.

## Import DAG discipline
- Depends on stdlib, pydantic and credgrain.core only.
- MUST NOT import credgrain.ledger or credgrain.io.

## Examples
```python
from credgrain.credrank import MarkovProcessParameters, build, compute_cred_graph

mpg = build(weighted_graph, intervals, participants, MarkovProcessParameters())  # doctest: +SKIP
cred = compute_cred_graph(mpg)  # doctest: +SKIP
cred.participant("p1").cred_per_interval  # doctest: +SKIP
```
"""

from __future__ import annotations

from .cred_graph import CredGraph, CredParticipant, assemble, compute_cred_graph, default_scale
from .markov_process_graph import (
    MarkovEdge,
    MarkovNode,
    MarkovProcessGraph,
    MarkovProcessParameters,
    Participant,
    build,
)
from .pagerank import StationaryDistribution, solve
from .personal_attribution import IndexedAttributions, PersonalAttribution

__all__ = [
    "MarkovProcessParameters",
    "Participant",
    "MarkovNode",
    "MarkovEdge",
    "MarkovProcessGraph",
    "build",
    "PersonalAttribution",
    "IndexedAttributions",
    "StationaryDistribution",
    "solve",
    "CredParticipant",
    "CredGraph",
    "assemble",
    "default_scale",
    "compute_cred_graph",
]
