import math

import pytest

from credgrain.core.address import EdgeAddress, NodeAddress
from credgrain.core.errors import InputError
from credgrain.core.graph import (
    Edge,
    EdgeWeight,
    Graph,
    Node,
    Weights,
    edge_weight_evaluator,
    node_weight_evaluator,
)

NA = NodeAddress.from_parts
EA = EdgeAddress.from_parts


def test_node_weights_multiply_over_prefixes() -> None:
    w = Weights(node_weights={NA(["gh"]): 2.0, NA(["gh", "pr"]): 3.0, NA(["gh", "pr", "1"]): 0.5})
    evaluate = node_weight_evaluator(w)
    assert evaluate(NA(["gh", "pr", "1"])) == pytest.approx(3.0)
    assert evaluate(NA(["gh", "issue", "1"])) == pytest.approx(2.0)
    assert evaluate(NA(["other"])) == 1.0


def test_edge_weights_multiply_componentwise() -> None:
    w = Weights(
        edge_weights={
            EA(["gh"]): EdgeWeight(2.0, 0.5),
            EA(["gh", "AUTHORS"]): EdgeWeight(3.0, 4.0),
        }
    )
    got = edge_weight_evaluator(w)(EA(["gh", "AUTHORS", "1"]))
    assert (got.forwards, got.backwards) == (6.0, 2.0)
    assert edge_weight_evaluator(w)(EA(["x"])) == EdgeWeight(1.0, 1.0)


@pytest.mark.parametrize("bad", [-1.0, math.nan, math.inf])
def test_invalid_weights_rejected(bad: float) -> None:
    with pytest.raises(InputError):
        EdgeWeight(bad, 1.0)
    with pytest.raises(InputError):
        Weights(node_weights={NA(["x"]): bad})


def test_graph_add_is_idempotent_but_rejects_conflicts() -> None:
    g = Graph()
    n = Node(NA(["a"]), "a", 0)
    g.add_node(n).add_node(n)
    assert len(g) == 1
    with pytest.raises(InputError):
        g.add_node(Node(NA(["a"]), "different", 0))

    e = Edge(EA(["e"]), NA(["a"]), NA(["b"]), 1)
    g.add_edge(e).add_edge(e)
    with pytest.raises(InputError):
        g.add_edge(Edge(EA(["e"]), NA(["a"]), NA(["a"]), 1))
    assert g.is_dangling(e)
    g.add_node(Node(NA(["b"]), "b"))
    assert not g.is_dangling(e)


def test_graph_prefix_queries() -> None:
    g = Graph()
    for parts in (["gh", "2"], ["gh", "1"], ["dc", "1"]):
        g.add_node(Node(NA(parts), "/".join(parts)))
    assert [n.description for n in g.nodes(NA(["gh"]))] == ["gh/1", "gh/2"]
    assert [n.description for n in g.nodes()] == ["gh/2", "gh/1", "dc/1"]
