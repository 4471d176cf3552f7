"""Sample contribution graph shared by the credrank tests.

Two participants, two intervals [0, 2) and [2, 4), two contributions:

    c0 (t=0, weight 1) --e0 {1, 0}--> participant1
    c1 (t=2, weight 2) --e1 {2, 1}--> participant1
    c0 --e2 (unset, {1, 1})--> c1
    c0 --e3 {0, 0}--> c1
"""

from __future__ import annotations

import pytest

from credgrain.core.address import EdgeAddress, NodeAddress
from credgrain.core.graph import Edge, EdgeWeight, Graph, Node, WeightedGraph, Weights
from credgrain.core.interval import Interval
from credgrain.credrank.markov_process_graph import (
    MarkovProcessParameters,
    Participant,
    build,
)


def na(name: str) -> NodeAddress:
    return NodeAddress.from_parts([name])


def ea(name: str) -> EdgeAddress:
    return EdgeAddress.from_parts([name])


PARTICIPANT_1 = Participant("p1", na("participant1"), "participant1")
PARTICIPANT_2 = Participant("p2", na("participant2"), "participant2")
INTERVALS = (Interval(0, 2), Interval(2, 4))
PARAMETERS = MarkovProcessParameters(alpha=0.2, beta=0.2, gamma_forward=0.15, gamma_backward=0.1)

ATTRIBUTIONS = [
    {
        "fromParticipantId": "p1",
        "recipients": [
            {
                "toParticipantId": "p2",
                "proportions": [
                    {"timestampMs": -2, "proportionValue": 0.2},
                    {"timestampMs": -1, "proportionValue": 0.1},
                    {"timestampMs": 0, "proportionValue": 0.5},
                ],
            }
        ],
    },
    {
        "fromParticipantId": "p2",
        "recipients": [
            {"toParticipantId": "p1", "proportions": [{"timestampMs": 2, "proportionValue": 0.3}]}
        ],
    },
]


def sample_graph() -> Graph:
    g = Graph()
    g.add_node(Node(na("participant1"), "participant1"))
    g.add_node(Node(na("participant2"), "participant2"))
    g.add_node(Node(na("c0"), "c0", 0))
    g.add_node(Node(na("c1"), "c1", 2))
    g.add_edge(Edge(ea("e0"), na("c0"), na("participant1"), 1))
    g.add_edge(Edge(ea("e1"), na("c1"), na("participant1"), 3))
    g.add_edge(Edge(ea("e2"), na("c0"), na("c1"), 4))
    g.add_edge(Edge(ea("e3"), na("c0"), na("c1"), 4))
    return g


def sample_weights() -> Weights:
    return Weights(
        node_weights={na("c0"): 1.0, na("c1"): 2.0},
        edge_weights={
            ea("e0"): EdgeWeight(1.0, 0.0),
            ea("e1"): EdgeWeight(2.0, 1.0),
            ea("e3"): EdgeWeight(0.0, 0.0),
        },
    )


@pytest.fixture
def weighted_graph() -> WeightedGraph:
    return WeightedGraph(sample_graph(), sample_weights())


@pytest.fixture
def mpg(weighted_graph):
    return build(weighted_graph, INTERVALS, [PARTICIPANT_1, PARTICIPANT_2], PARAMETERS)


@pytest.fixture
def mpg_with_attributions(weighted_graph):
    return build(
        weighted_graph,
        INTERVALS,
        [PARTICIPANT_1, PARTICIPANT_2],
        PARAMETERS,
        ATTRIBUTIONS,
    )
