import math

import pytest
from pydantic import ValidationError

from credgrain.core.address import EdgeAddress, NodeAddress
from credgrain.core.constants import TRANSITION_TOLERANCE
from credgrain.core.errors import ConfigError, FatalInvariantError
from credgrain.core.graph import Edge, EdgeWeight, Graph, Node, WeightedGraph, Weights
from credgrain.core.grammar import MarkovEdgeKind, MarkovNodeKind
from credgrain.core.interval import Interval
from credgrain.credrank.markov_process_graph import (
    MarkovEdge,
    MarkovNode,
    MarkovProcessGraph,
    MarkovProcessParameters,
    Participant,
    _check_stochastic,
    build,
)

from .conftest import INTERVALS, PARAMETERS, PARTICIPANT_1, PARTICIPANT_2, ea, na

SEED_1 = MarkovProcessGraph.seed_address("p1")


def _out_total(mpg, address) -> float:
    return math.fsum(e.transition_probability for e in mpg.out_edges(address))


def test_node_layout(mpg) -> None:
    kinds = [n.kind for n in mpg.nodes()]
    assert kinds == [MarkovNodeKind.BASE] * 4 + [MarkovNodeKind.SEED] * 2 + [MarkovNodeKind.EPOCH] * 4
    base = [n.address for n in mpg.nodes() if n.kind is MarkovNodeKind.BASE]
    assert base == sorted(base)
    assert mpg.total_mint == pytest.approx(3.0)
    # participants never mint
    assert mpg.node(na("participant1")).mint == 0.0


def test_every_node_is_stochastic(mpg, mpg_with_attributions) -> None:
    for graph in (mpg, mpg_with_attributions):
        for node in graph.nodes():
            assert abs(_out_total(graph, node.address) - 1.0) <= TRANSITION_TOLERANCE


def test_contribution_transitions(mpg) -> None:
    p1_0 = mpg.epoch_address("p1", 0)
    p1_1 = mpg.epoch_address("p1", 1)
    # c0: 0.8 split evenly between e0 forwards (0.15) and e2 forwards (0.15)
    assert mpg.transition_probability(na("c0"), p1_0) == pytest.approx(0.4)
    assert mpg.transition_probability(na("c0"), na("c1")) == pytest.approx(0.4)
    # c1: e1 forwards 0.3 vs e2 backwards 0.1
    assert mpg.transition_probability(na("c1"), p1_1) == pytest.approx(0.6)
    assert mpg.transition_probability(na("c1"), na("c0")) == pytest.approx(0.2)
    # p1 in interval 1 flows back along e1 with the whole non-teleport, non-retention mass
    assert mpg.transition_probability(p1_1, na("c1")) == pytest.approx(0.6)


def test_seed_mints_by_node_weight(mpg) -> None:
    assert mpg.transition_probability(SEED_1, na("c0")) == pytest.approx(0.8 / 3)
    assert mpg.transition_probability(SEED_1, na("c1")) == pytest.approx(1.6 / 3)
    assert not mpg.has_transition(SEED_1, na("participant1"))


def test_retention_and_teleport(mpg) -> None:
    p1_0 = mpg.epoch_address("p1", 0)
    p1_1 = mpg.epoch_address("p1", 1)
    assert mpg.transition_probability(p1_0, p1_1) == pytest.approx(0.2)
    assert mpg.transition_probability(p1_1, p1_1) == pytest.approx(0.2)
    # p1 in interval 0 has no outgoing graph edge (e0 backwards is 0): its share teleports
    assert mpg.transition_probability(p1_0, SEED_1) == pytest.approx(0.4)
    assert mpg.transition_probability(na("c0"), SEED_1) == pytest.approx(0.1)


def test_edge_kinds_and_provenance(mpg) -> None:
    p1_0 = mpg.epoch_address("p1", 0)
    by_source = {}
    for e in mpg.edges():
        if e.source_edge is not None:
            by_source.setdefault(e.source_edge, []).append(e)
    assert {e.kind for e in by_source[ea("e0")]} == {MarkovEdgeKind.MINT}
    assert {e.kind for e in by_source[ea("e2")]} == {MarkovEdgeKind.CONTRIBUTION}
    assert [(e.src, e.dst, e.reversed) for e in by_source[ea("e0")]] == [(na("c0"), p1_0, False)]
    assert sorted(e.reversed for e in by_source[ea("e2")]) == [False, True]
    assert ea("e3") not in by_source


def test_zero_weight_edge_has_no_transition() -> None:
    g = Graph()
    g.add_node(Node(na("a"), "a", 0)).add_node(Node(na("b"), "b", 0))
    g.add_node(Node(na("user"), "user"))
    g.add_edge(Edge(ea("z"), na("a"), na("b"), 0))
    weights = Weights(edge_weights={ea("z"): EdgeWeight(0.0, 0.0)})
    mpg = build(
        WeightedGraph(g, weights),
        [Interval(0, 10)],
        [Participant("u", na("user"), "user")],
        MarkovProcessParameters(),
    )
    assert not mpg.has_transition(na("a"), na("b"))
    assert not mpg.has_transition(na("b"), na("a"))
    assert mpg.transition_probability(na("a"), na("b")) == 0.0


def test_attribution_transitions(mpg_with_attributions) -> None:
    mpg = mpg_with_attributions
    p1_0, p1_1 = mpg.epoch_addresses("p1")
    p2_0, p2_1 = mpg.epoch_addresses("p2")
    # remainder 0.6; p1 -> p2 proportion 0.5 is in effect from t=0
    assert mpg.transition_probability(p1_0, p2_0) == pytest.approx(0.3)
    assert mpg.transition_probability(p1_1, p2_1) == pytest.approx(0.3)
    assert mpg.transition_probability(p1_1, na("c1")) == pytest.approx(0.3)
    # p2 -> p1 starts at t=2, so only interval 1 is redirected
    assert not mpg.has_transition(p2_0, p1_0)
    assert mpg.transition_probability(p2_1, p1_1) == pytest.approx(0.18)
    kinds = {e.kind for e in mpg.out_edges(p2_1)}
    assert MarkovEdgeKind.ATTRIBUTION in kinds


def test_markov_chain_rows_match_transitions(mpg) -> None:
    chain = mpg.to_markov_chain()
    addresses = [n.address for n in mpg.nodes()]
    assert len(chain) == len(addresses)
    j = mpg.node_index(na("c1"))
    row = dict(chain[j])
    i = mpg.node_index(na("c0"))
    assert row[i] == pytest.approx(mpg.transition_probability(na("c0"), na("c1")))
    # column sums over destinations equal 1 per source
    totals = [0.0] * len(addresses)
    for dst_row in chain:
        for src, p in dst_row:
            totals[src] += p
    assert totals == pytest.approx([1.0] * len(addresses))


def test_alpha_plus_beta_above_one(weighted_graph) -> None:
    params = MarkovProcessParameters(alpha=0.6, beta=0.5)
    with pytest.raises(ConfigError, match="alpha \\+ beta"):
        build(weighted_graph, INTERVALS, [PARTICIPANT_1], params)


def test_parameters_validate_ranges_and_aliases() -> None:
    p = MarkovProcessParameters.model_validate({"alpha": 0.3, "gammaForward": 0.5})
    assert p.gamma_forward == 0.5
    with pytest.raises(ValueError):
        MarkovProcessParameters(alpha=0.0)
    with pytest.raises(ValueError):
        MarkovProcessParameters(gamma_backward=-1.0)


@pytest.mark.parametrize("field", ["alpha", "beta", "gamma_forward", "gamma_backward"])
@pytest.mark.parametrize("value", [math.inf, math.nan])
def test_parameters_reject_non_finite(field, value) -> None:
    with pytest.raises(ValidationError):
        MarkovProcessParameters(**{field: value})


def test_infinite_gamma_never_reaches_build(weighted_graph) -> None:
    with pytest.raises(ValidationError, match=r"gamma_?[Ff]orward"):
        build(
            weighted_graph,
            INTERVALS,
            [PARTICIPANT_1],
            MarkovProcessParameters(gamma_forward=math.inf),
        )


def test_participant_errors(weighted_graph) -> None:
    with pytest.raises(ConfigError, match="at least one participant"):
        build(weighted_graph, INTERVALS, [], PARAMETERS)
    dup_id = Participant("p1", na("participant2"))
    with pytest.raises(ConfigError, match="duplicate participant id"):
        build(weighted_graph, INTERVALS, [PARTICIPANT_1, dup_id], PARAMETERS)
    dup_address = Participant("p3", na("participant1"))
    with pytest.raises(ConfigError, match="duplicate participant address"):
        build(weighted_graph, INTERVALS, [PARTICIPANT_1, dup_address], PARAMETERS)


def test_dangling_edge_rejected() -> None:
    g = Graph().add_node(Node(na("a"), "a", 0))
    g.add_edge(Edge(ea("x"), na("a"), na("missing"), 0))
    with pytest.raises(ConfigError, match="missing node"):
        build(WeightedGraph(g), INTERVALS, [PARTICIPANT_1], PARAMETERS)


def test_timestamp_outside_intervals(weighted_graph) -> None:
    # c1 (t=2) links to participant1 but only [0, 2) exists
    with pytest.raises(ConfigError, match="outside every interval"):
        build(weighted_graph, [Interval(0, 2)], [PARTICIPANT_1, PARTICIPANT_2], PARAMETERS)


def test_reserved_prefix_rejected() -> None:
    g = Graph().add_node(Node(NodeAddress.from_parts(["credgrain", "credrank", "seed", "x"]), "x"))
    with pytest.raises(ConfigError, match="reserved prefix"):
        build(WeightedGraph(g), INTERVALS, [PARTICIPANT_1], PARAMETERS)


def test_attributions_above_one_rejected(weighted_graph) -> None:
    bad = [
        {
            "from_participant_id": "p1",
            "recipients": [
                {
                    "to_participant_id": "p2",
                    "proportions": [{"timestamp_ms": 0, "proportion_value": 0.7}],
                },
                {
                    "to_participant_id": "p3",
                    "proportions": [{"timestamp_ms": 1, "proportion_value": 0.4}],
                },
            ],
        }
    ]
    p3 = Participant("p3", na("participant3"))
    with pytest.raises(ConfigError, match="must not exceed 1"):
        build(weighted_graph, INTERVALS, [PARTICIPANT_1, PARTICIPANT_2, p3], PARAMETERS, bad)


def test_stochastic_check_rejects_nan_mass() -> None:
    a = na("x")
    graph = MarkovProcessGraph(
        nodes=[MarkovNode(a, "x", MarkovNodeKind.BASE)],
        edges=[MarkovEdge(a, a, MarkovEdgeKind.CONTRIBUTION, math.nan)],
        participants=[],
        intervals=(),
        parameters=PARAMETERS,
    )
    with pytest.raises(FatalInvariantError, match="nan"):
        _check_stochastic(graph)


def test_long_weekly_history_binds_each_contribution_to_its_week() -> None:
    week = 7 * 24 * 3600 * 1000
    intervals = [Interval(k * week, (k + 1) * week) for k in range(312)]
    alice = NodeAddress.from_parts(["user", "alice"])
    g = Graph().add_node(Node(alice, "alice"))
    for k in range(312):
        ts = k * week + 1
        work = NodeAddress.from_parts(["work", str(k)])
        g.add_node(Node(work, f"work {k}", ts))
        g.add_edge(Edge(EdgeAddress.from_parts(["authors", str(k)]), work, alice, ts))
    mpg = build(WeightedGraph(g), intervals, [Participant("alice", alice, "alice")], PARAMETERS)

    for k in (0, 150, 311):
        work = NodeAddress.from_parts(["work", str(k)])
        assert mpg.transition_probability(work, mpg.epoch_address("alice", k)) > 0
    assert mpg.transition_probability(mpg.epoch_address("alice", 7), mpg.epoch_address("alice", 8)) == pytest.approx(0.2)
    last = mpg.epoch_address("alice", 311)
    assert mpg.transition_probability(last, last) == pytest.approx(0.2)
