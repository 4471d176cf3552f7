"""
Core package aggregator for credgrain contracts (errors, constants, grammar, addresses,
intervals, contribution graph, table descriptors).

## Contracts (single source of truth)
- Grammar: enums for policy types, Markov node/edge kinds and table names; lower_snake helpers.
- Addresses: interned, ordered node/edge addresses with prefix queries.
- Intervals: half-open epochs, validated sequences, UTC week builders.
- Graph: contribution graph plus prefix-keyed node/edge weights.
- Tables: descriptors for the io layer to materialize cred and receipt frames.

## Notes
- Zero‑IO policy: stdlib only; no file/network IO.
- Naming policy: enum `.value` and column names are lower_snake.
- Errors: InputError/ConfigError for caller mistakes, ConvergenceError for solver budget
  exhaustion, FatalInvariantError for violated post-conditions.

## Downstream usage
- credgrain.credrank: builds Markov process graphs from `graph` + `interval`, keyed by `address`.
- credgrain.ledger: uses `grammar.PolicyType` as the allocation policy discriminator.
- credgrain.io: validates polars frames against `tables` and sources defaults from `constants`.

## Examples
```python
from credgrain.core.grammar import PolicyType, policy_type_from_value
policy_type_from_value("BALANCED") == PolicyType.BALANCED  # True

from credgrain.core.interval import week_intervals
len(week_intervals(0, 0))  # 1
```
"""
