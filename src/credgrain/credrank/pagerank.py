"""
Stationary distribution solver for Markov process graphs.

Power iteration over the collapsed Markov chain: start uniform, repeatedly push mass along
transitions, stop once the L∞ distance between consecutive iterates is below ``epsilon``.
Row sums use ``math.fsum`` and the iteration order is fixed, so results are bitwise
reproducible for a given graph.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterator, Mapping, Sequence

from credgrain.core.address import NodeAddress
from credgrain.core.constants import DEFAULT_CONVERGENCE_THRESHOLD, DEFAULT_MAX_ITERATIONS
from credgrain.core.errors import ConvergenceError, InputError

from .markov_process_graph import MarkovProcessGraph

__all__ = ["StationaryDistribution", "solve"]

logger = logging.getLogger(__name__)


class StationaryDistribution(Mapping[NodeAddress, float]):
    """
    Read-only node -> probability mapping returned by ``solve``.

    Attributes:
        iterations (int): Power iteration steps performed.
        delta (float): L∞ distance between the last two iterates.
    """

    def __init__(
        self,
        addresses: Sequence[NodeAddress],
        values: Sequence[float],
        *,
        iterations: int,
        delta: float,
    ) -> None:
        self._values = dict(zip(addresses, values))
        self.iterations = iterations
        self.delta = delta

    def __getitem__(self, key: NodeAddress) -> float:
        return self._values[key]

    def __iter__(self) -> Iterator[NodeAddress]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return (
            f"StationaryDistribution(nodes={len(self._values)}, "
            f"iterations={self.iterations}, delta={self.delta:.3g})"
        )


def solve(
    markov_process_graph: MarkovProcessGraph,
    epsilon: float = DEFAULT_CONVERGENCE_THRESHOLD,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> StationaryDistribution:
    """
    Compute the stationary distribution of a Markov process graph.

    Args:
        markov_process_graph (MarkovProcessGraph): Graph to solve (not modified).
        epsilon (float): Convergence threshold on the L∞ delta, > 0.
        max_iterations (int): Upper bound on power iteration steps, >= 1.

    Returns:
        StationaryDistribution: Probabilities summing to 1, keyed by node address in
        graph order.

    Raises:
        InputError: If epsilon <= 0 or max_iterations < 1.
        ConvergenceError: If the delta is still >= epsilon after max_iterations steps.
    """
    if not epsilon > 0:
        raise InputError(f"epsilon must be > 0, got {epsilon!r}")
    if max_iterations < 1:
        raise InputError(f"max_iterations must be >= 1, got {max_iterations!r}")

    addresses = [n.address for n in markov_process_graph.nodes()]
    chain = markov_process_graph.to_markov_chain()
    n = len(addresses)
    pi = [1.0 / n] * n
    delta = math.inf

    for iteration in range(1, max_iterations + 1):
        nxt = [math.fsum(pi[i] * p for i, p in row) for row in chain]
        delta = max(abs(a - b) for a, b in zip(nxt, pi))
        pi = nxt
        if delta < epsilon:
            total = math.fsum(pi)
            pi = [v / total for v in pi]
            logger.debug("pagerank converged after %d iterations (delta=%.3g)", iteration, delta)
            return StationaryDistribution(addresses, pi, iterations=iteration, delta=delta)

    raise ConvergenceError(
        f"pagerank did not converge within {max_iterations} iterations (delta={delta:.3g})",
        iterations=max_iterations,
        delta=delta,
    )
