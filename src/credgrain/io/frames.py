"""
Polars frames for cred results and grain receipts.

Materializes the canonical tables described in credgrain.core.tables without touching the
filesystem; writing the frames anywhere is up to the caller.

| Frame             | Built from             | Rows
|-------------------|------------------------|---------------------------------------
| cred_per_interval | CredGraph              | one per (participant, interval)
| grain_receipts    | Allocation             | one per receipt, in receipt order

Notes
- Grain amounts are decimal integer strings (raw units) so that 18-decimal fixed point
  survives the trip through a columnar frame.
- ``identities_from_frame`` is the inverse direction: it turns a cred frame (for example
  one loaded by the caller from disk) into allocation snapshots.

Examples:
    >>> df = cred_frame(cred_graph)  # doctest: +SKIP
    >>> df.group_by("participant_id").agg(pl.col("cred").sum())  # doctest: +SKIP
"""

from __future__ import annotations

from collections.abc import Mapping

import polars as pl

from credgrain.core.tables import CRED_PER_INTERVAL_DESC, GRAIN_RECEIPTS_DESC
from credgrain.credrank.cred_graph import CredGraph
from credgrain.ledger.allocation import Allocation, AllocationIdentity
from credgrain.ledger.grain import format_grain

from .config import GrainSettings
from .errors import IoSchemaError
from .validate import validate_frame_against_descriptor

__all__ = [
    "cred_frame",
    "receipts_frame",
    "format_receipts",
    "identities_from_frame",
]

_POLARS_DTYPES = {"i64": pl.Int64, "f64": pl.Float64, "str": pl.Utf8}


def cred_frame(cred_graph: CredGraph) -> pl.DataFrame:
    """Return the cred_per_interval frame for ``cred_graph``, participant-major."""
    rows: dict[str, list] = {c: [] for c in CRED_PER_INTERVAL_DESC.columns}
    intervals = cred_graph.intervals
    for p in cred_graph.participants():
        for k, (interval, cred) in enumerate(zip(intervals, p.cred_per_interval)):
            rows["participant_id"].append(p.id)
            rows["participant_description"].append(p.description)
            rows["interval_index"].append(k)
            rows["start_time_ms"].append(interval.start_time_ms)
            rows["end_time_ms"].append(interval.end_time_ms)
            rows["cred"].append(cred)
    df = pl.DataFrame(
        rows,
        schema={c: _POLARS_DTYPES[t] for c, t in CRED_PER_INTERVAL_DESC.columns.items()},
    )
    return validate_frame_against_descriptor(df, CRED_PER_INTERVAL_DESC)


def receipts_frame(allocation: Allocation) -> pl.DataFrame:
    """Return the grain_receipts frame for ``allocation``."""
    n = len(allocation.receipts)
    df = pl.DataFrame(
        {
            "allocation_id": [allocation.id] * n,
            "policy_type": [allocation.policy.policy_type] * n,
            "receipt_index": list(range(n)),
            "identity_id": [r.id for r in allocation.receipts],
            "amount": [str(r.amount) for r in allocation.receipts],
        },
        schema={c: _POLARS_DTYPES[t] for c, t in GRAIN_RECEIPTS_DESC.columns.items()},
    )
    return validate_frame_against_descriptor(df, GRAIN_RECEIPTS_DESC)


def format_receipts(frame: pl.DataFrame, settings: GrainSettings | None = None) -> pl.DataFrame:
    """Append an ``amount_display`` column rendering raw amounts as whole grain."""
    settings = settings or GrainSettings()
    frame = validate_frame_against_descriptor(frame, GRAIN_RECEIPTS_DESC)
    display = [
        format_grain(int(a), decimals=settings.decimal_precision, suffix=settings.suffix)
        for a in frame["amount"].to_list()
    ]
    return frame.with_columns(pl.Series("amount_display", display, dtype=pl.Utf8))


def identities_from_frame(
    cred_df: pl.DataFrame, paid: Mapping[str, int] | None = None
) -> list[AllocationIdentity]:
    """
    Build allocation snapshots from a cred_per_interval frame.

    Args:
        cred_df (pl.DataFrame): Frame matching the cred_per_interval descriptor.
        paid (Mapping[str, int] | None): Raw grain paid per participant id (default 0).

    Returns:
        list[AllocationIdentity]: One per participant, ordered by first appearance, with
        cred ordered by ``interval_index``.

    Raises:
        IoSchemaError: If the frame does not validate or a participant's interval indices
            are not exactly 0..n-1.
    """
    paid = paid or {}
    df = validate_frame_against_descriptor(cred_df, CRED_PER_INTERVAL_DESC)
    df = df.with_row_index("_row")
    grouped = (
        df.sort("interval_index")
        .group_by("participant_id", maintain_order=False)
        .agg(
            pl.col("_row").min().alias("_first"),
            pl.col("interval_index"),
            pl.col("cred"),
        )
        .sort("_first")
    )
    out: list[AllocationIdentity] = []
    width: int | None = None
    for row in grouped.iter_rows(named=True):
        indices = row["interval_index"]
        if indices != list(range(len(indices))):
            raise IoSchemaError(
                f"participant {row['participant_id']!r} has interval indices {indices!r}"
            )
        if width is not None and len(indices) != width:
            raise IoSchemaError("participants cover different numbers of intervals")
        width = len(indices)
        out.append(
            AllocationIdentity(
                id=row["participant_id"],
                paid=int(paid.get(row["participant_id"], 0)),
                cred=tuple(row["cred"]),
            )
        )
    return out
