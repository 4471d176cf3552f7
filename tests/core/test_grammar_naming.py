import pytest

from credgrain.core.grammar import (
    MarkovEdgeKind,
    MarkovNodeKind,
    PolicyType,
    TableName,
    edge_kind_from_value,
    ensure_all_enum_values_lower_snake,
    policy_type_from_value,
)


def test_all_enum_values_are_lower_snake() -> None:
    ensure_all_enum_values_lower_snake([PolicyType, MarkovNodeKind, MarkovEdgeKind, TableName])


def test_policy_type_accepts_legacy_upper_case() -> None:
    assert policy_type_from_value("IMMEDIATE") is PolicyType.IMMEDIATE
    assert policy_type_from_value(" balanced ") is PolicyType.BALANCED


def test_policy_type_rejects_unknown() -> None:
    with pytest.raises(ValueError):
        policy_type_from_value("lottery")


def test_edge_kind_requires_lower_snake() -> None:
    assert edge_kind_from_value("teleport") is MarkovEdgeKind.TELEPORT
    with pytest.raises(ValueError):
        edge_kind_from_value("Teleport")
