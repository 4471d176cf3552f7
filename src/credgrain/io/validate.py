"""
Schema validation utilities for credgrain.io.

Purpose
- Validate Polars DataFrames against canonical table descriptors from credgrain.core.tables.
- Apply pragmatic checks with safe casting for scalar dtypes.

Checks performed
- Required columns present.
- When strict=True: no columns outside (required ∪ nullable).
- Scalar types ("i64","f64","str") are cast non-strictly; values that fail the cast
  become null and are then rejected if the column is required.
- Required columns contain no nulls.
"""

from __future__ import annotations

from collections.abc import Iterable

import polars as pl

from credgrain.core.grammar import TableName
from credgrain.core.tables import TableDescriptor, get_table

from .errors import IoSchemaError

__all__ = ["validate_frame_against_descriptor", "validate_frame_for_table"]

# Polars dtypes are class-like singletons; keep this mapping loosely typed.
_DTYPE_MAP: dict[str, object] = {
    "i64": pl.Int64,
    "f64": pl.Float64,
    "str": pl.Utf8,
}


def _safe_cast(df: pl.DataFrame, col: str, target: object) -> pl.DataFrame:
    try:
        return df.with_columns(pl.col(col).cast(target, strict=False))  # type: ignore[arg-type]
    except pl.exceptions.PolarsError as exc:
        raise IoSchemaError(f"failed to cast column {col!r} to {target}: {exc}") from exc


def _ensure_columns_present(df: pl.DataFrame, needed: Iterable[str]) -> None:
    missing = [c for c in needed if c not in df.columns]
    if missing:
        raise IoSchemaError(f"missing required columns: {missing!r}")


def _ensure_no_extra_columns(df: pl.DataFrame, allowed: set[str]) -> None:
    extras = [c for c in df.columns if c not in allowed]
    if extras:
        raise IoSchemaError(f"unexpected columns present: {extras!r} (allowed={sorted(allowed)!r})")


def validate_frame_against_descriptor(
    df: pl.DataFrame,
    desc: TableDescriptor,
    *,
    strict: bool = True,
) -> pl.DataFrame:
    """
    Validate a Polars DataFrame against a TableDescriptor.

    Args:
        df (pl.DataFrame): Frame to validate.
        desc (TableDescriptor): Canonical descriptor from credgrain.core.tables.
        strict (bool): Enforce exact column set (no extras) when True.

    Returns:
        pl.DataFrame: Frame with descriptor dtypes, in its original column order.

    Raises:
        IoSchemaError: If required columns are missing, extras are present under strict
            mode, a descriptor dtype is unknown, or a required column holds nulls.
    """
    required = set(desc.required)
    nullable = set(desc.nullable)
    _ensure_columns_present(df, required)
    if strict:
        _ensure_no_extra_columns(df, required | nullable)

    for col, dtype_name in desc.columns.items():
        if col not in df.columns:
            continue
        expected = _DTYPE_MAP.get(dtype_name)
        if expected is None:
            raise IoSchemaError(f"unknown descriptor dtype {dtype_name!r} for column {col!r}")
        if df.schema[col] != expected:
            df = _safe_cast(df, col, expected)
        if col in required and df[col].null_count() > 0:
            raise IoSchemaError(f"column {col!r} has null or uncastable values")

    return df


def validate_frame_for_table(
    df: pl.DataFrame,
    table: TableName | str,
    *,
    strict: bool = True,
) -> pl.DataFrame:
    """
    Validate a DataFrame against the descriptor for a given table.

    Args:
        df (pl.DataFrame): DataFrame to validate.
        table (TableName | str): Canonical table name (enum or lower_snake string).
        strict (bool): Enforce exact column set when True.

    Returns:
        pl.DataFrame: Possibly casted frame.

    Raises:
        credgrain.io.errors.IoSchemaError: On validation failure or an unknown table name.
    """
    tname = table.value if isinstance(table, TableName) else str(table)
    try:
        desc = get_table(TableName(tname))
    except ValueError as exc:
        raise IoSchemaError(f"unknown table {tname!r}") from exc
    return validate_frame_against_descriptor(df, desc, strict=strict)
