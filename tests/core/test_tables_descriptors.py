from credgrain.core.grammar import TableName, is_lower_snake
from credgrain.core.tables import get_table, list_tables


def test_descriptors_contract() -> None:
    for desc in list_tables():
        # column names lower_snake
        for col in desc.columns.keys():
            assert is_lower_snake(col), f"column {col!r} not lower_snake for {desc.name.value}"
        assert set(desc.required).issubset(desc.columns.keys()), (
            f"required not subset of columns for {desc.name.value}"
        )
        assert set(desc.required).isdisjoint(desc.nullable), (
            f"required/nullable not disjoint for {desc.name.value}"
        )
        assert set(desc.required).union(desc.nullable).issubset(desc.columns.keys()), (
            f"required∪nullable not subset of columns for {desc.name.value}"
        )
        assert set(desc.columns.values()) <= {"i64", "f64", "str"}


def test_get_table_roundtrip() -> None:
    for name in TableName:
        desc = get_table(name)
        assert desc.name == name


def test_grain_amounts_are_strings() -> None:
    assert get_table(TableName.GRAIN_RECEIPTS).columns["amount"] == "str"
