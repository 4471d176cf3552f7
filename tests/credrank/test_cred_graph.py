import math

import pytest

from credgrain.core.errors import InputError
from credgrain.credrank.cred_graph import assemble, compute_cred_graph, default_scale
from credgrain.credrank.pagerank import solve


def test_sample_cred(mpg) -> None:
    cg = compute_cred_graph(mpg)
    p1 = cg.participant("p1")
    p2 = cg.participant("p2")
    assert p1.cred == pytest.approx(3.0, abs=1e-4)
    assert p2.cred == pytest.approx(0.0, abs=1e-4)
    assert len(p1.cred_per_interval) == 2
    # c1 (weight 2, interval 1) feeds participant1 more than c0 does
    assert p1.cred_per_interval[1] > p1.cred_per_interval[0] > 0
    assert cg.total_cred == pytest.approx(mpg.total_mint)


def test_cred_is_sum_of_intervals(mpg_with_attributions) -> None:
    cg = compute_cred_graph(mpg_with_attributions)
    for p in cg.participants():
        assert p.cred == math.fsum(p.cred_per_interval)
    assert [p.id for p in cg.participants()] == ["p1", "p2"]
    # attribution moves cred from p1 to p2
    assert cg.participant("p2").cred > 0.1


def test_explicit_scale_reads_raw_epoch_mass(mpg) -> None:
    pi = solve(mpg)
    cg = assemble(mpg, pi, 1.0)
    p1 = cg.participant("p1")
    assert p1.cred_per_interval == tuple(pi[a] for a in mpg.epoch_addresses("p1"))
    assert cg.distribution is pi
    assert cg.markov_process_graph is mpg
    scaled = assemble(mpg, pi, default_scale(mpg, pi))
    assert scaled.total_cred == pytest.approx(3.0)


def test_assemble_rejects_bad_inputs(mpg) -> None:
    pi = solve(mpg)
    with pytest.raises(InputError):
        assemble(mpg, pi, -1.0)
    with pytest.raises(InputError):
        assemble(mpg, pi, math.inf)
    with pytest.raises(InputError, match="no value for node"):
        assemble(mpg, {}, 1.0)


def test_unknown_participant_is_none(mpg) -> None:
    assert compute_cred_graph(mpg).participant("nobody") is None


def test_cred_history_is_plain_per_interval_cred(mpg) -> None:
    cg = compute_cred_graph(mpg)
    history = cg.cred_history()
    assert list(history) == ["p1", "p2"]
    assert history["p1"] == cg.participant("p1").cred_per_interval
    assert all(isinstance(v, tuple) and len(v) == 2 for v in history.values())
