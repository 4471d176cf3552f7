"""
Frozen table descriptors for credgrain canonical frames.

Notes:
    - Descriptors declare column names/dtypes and required/nullable columns.
    - Column names are lower_snake.
    - Grain amounts are stored as decimal integer strings ("str"): 18-decimal fixed
      point overflows 64-bit integer columns for budgets above ~9 grain.
    - Core is zero-IO (stdlib only); credgrain.io materializes and validates frames.
"""

from __future__ import annotations

from dataclasses import dataclass

from .grammar import TableName

__all__ = [
    "TableDescriptor",
    "CRED_PER_INTERVAL_DESC",
    "GRAIN_RECEIPTS_DESC",
    "get_table",
    "list_tables",
]


@dataclass(frozen=True)
class TableDescriptor:
    """
    Frozen descriptor for a canonical credgrain frame.

    Attributes:
        name (TableName): Canonical table identifier (lower_snake serialized).
        columns (dict[str, str]): Mapping of lower_snake column_name -> dtype
            where dtype ∈ {"i64","f64","str"}.
        required (list[str]): Columns that must exist and be populated (non-null).
        nullable (list[str]): Columns permitted to contain nulls.

    Examples:
        >>> from credgrain.core.tables import get_table, TableName
        >>> desc = get_table(TableName.GRAIN_RECEIPTS)
        >>> desc.columns["amount"]
        'str'

    Notes:
        - required ⊆ columns; (required ∪ nullable) ⊆ columns; and required ∩ nullable = ∅
          are guarded by tests downstream.
    """

    name: TableName
    columns: dict[str, str]
    required: list[str]
    nullable: list[str]


# -----------------------------------------------------------------------------
# Table descriptors
# -----------------------------------------------------------------------------

# One row per (participant, interval); cred == Σ rows per participant.
CRED_PER_INTERVAL_DESC = TableDescriptor(
    name=TableName.CRED_PER_INTERVAL,
    columns={
        "participant_id": "str",
        "participant_description": "str",
        "interval_index": "i64",
        "start_time_ms": "i64",
        "end_time_ms": "i64",
        "cred": "f64",
    },
    required=[
        "participant_id",
        "participant_description",
        "interval_index",
        "start_time_ms",
        "end_time_ms",
        "cred",
    ],
    nullable=[],
)

# One row per receipt, in allocation order.
GRAIN_RECEIPTS_DESC = TableDescriptor(
    name=TableName.GRAIN_RECEIPTS,
    columns={
        "allocation_id": "str",
        "policy_type": "str",
        "receipt_index": "i64",
        "identity_id": "str",
        "amount": "str",
    },
    required=[
        "allocation_id",
        "policy_type",
        "receipt_index",
        "identity_id",
        "amount",
    ],
    nullable=[],
)


# Registry
_TABLES: dict[TableName, TableDescriptor] = {
    CRED_PER_INTERVAL_DESC.name: CRED_PER_INTERVAL_DESC,
    GRAIN_RECEIPTS_DESC.name: GRAIN_RECEIPTS_DESC,
}


def get_table(name: TableName) -> TableDescriptor:
    """
    Look up a table descriptor by canonical name.

    Args:
        name (TableName): Canonical table name.

    Returns:
        TableDescriptor: Descriptor for the requested table.
    """
    return _TABLES[name]


def list_tables() -> list[TableDescriptor]:
    """
    Return all registered table descriptors.

    Returns:
        list[TableDescriptor]: List of all descriptors in registry order.
    """
    return list(_TABLES.values())
