import math

import pytest

from credgrain.core.errors import ConvergenceError, InputError
from credgrain.credrank.pagerank import solve


def test_distribution_is_a_probability_vector(mpg) -> None:
    pi = solve(mpg)
    assert len(pi) == len(mpg.nodes())
    assert math.fsum(pi.values()) == pytest.approx(1.0, abs=1e-12)
    assert all(v >= 0 for v in pi.values())
    assert pi.delta < 1e-7
    assert 1 <= pi.iterations <= 255


def test_distribution_is_fixed_point(mpg) -> None:
    pi = solve(mpg, epsilon=1e-12, max_iterations=2000)
    chain = mpg.to_markov_chain()
    addresses = list(pi)
    stepped = [math.fsum(pi[addresses[i]] * p for i, p in row) for row in chain]
    assert stepped == pytest.approx([pi[a] for a in addresses], abs=1e-10)


def test_solver_is_deterministic(mpg_with_attributions) -> None:
    a = solve(mpg_with_attributions)
    b = solve(mpg_with_attributions)
    assert list(a.items()) == list(b.items())
    assert a.iterations == b.iterations


def test_participant_without_inflow_gets_no_mass(mpg) -> None:
    pi = solve(mpg, epsilon=1e-12, max_iterations=2000)
    for address in mpg.epoch_addresses("p2"):
        assert pi[address] == pytest.approx(0.0, abs=1e-9)


def test_convergence_error_carries_progress(mpg) -> None:
    with pytest.raises(ConvergenceError) as excinfo:
        solve(mpg, epsilon=1e-15, max_iterations=1)
    assert excinfo.value.iterations == 1
    assert excinfo.value.delta >= 1e-15


@pytest.mark.parametrize(("epsilon", "max_iterations"), [(0.0, 10), (-1.0, 10), (1e-7, 0)])
def test_invalid_solver_arguments(mpg, epsilon, max_iterations) -> None:
    with pytest.raises(InputError):
        solve(mpg, epsilon, max_iterations)
