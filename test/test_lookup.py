# test/test_lookup.py
import pytest

from enginesignals.core import ChannelNotFound, LayerNotFound, LookupTable, SchemaViolationError, SourceEntry


def _table(source_entries) -> LookupTable:
    return LookupTable(
        groups={
            "Eng": {"SrcA": ["rpm", "trq"], "SrcB": ["enginespeed", "enginetorque"]},
            "Cool": {"SrcA": ["tw"], "SrcB": ["watertemp"]},
        },
        layers=["SrcA", "SrcB"],
        source_type_of={"SrcA": "TabA", "SrcB": ""},
        source_tabs={"TabA": source_entries + [SourceEntry("Cool", "tw", 1.0, "degC", "")]},
    )


def test_layers_are_stored_in_layer_form(source_entries):
    table = _table(source_entries)
    assert table.layers == ("SrcANames", "SrcBNames")
    assert table.has_layer("SrcB")
    assert not table.has_layer("SrcC")


def test_rows_and_columns(source_entries):
    table = _table(source_entries)
    assert table.rows() == [
        ("rpm", "enginespeed"),
        ("trq", "enginetorque"),
        ("tw", "watertemp"),
    ]
    assert table.rows(["SrcB"]) == [("enginespeed",), ("enginetorque",), ("watertemp",)]
    assert table.column("SrcA") == ["rpm", "trq", "tw"]
    with pytest.raises(LayerNotFound):
        table.column("SrcC")


def test_source_attributes(source_entries):
    table = _table(source_entries)
    assert table.source_type("SrcA") == "TabA"
    assert table.source_type("SrcBNames") == ""
    assert table.source_entry("SrcA", "rpm").description == "Engine speed"
    assert table.conversion("SrcA", "trq") == (None, "Nm")
    assert table.conversion("SrcA", "tw") == (1.0, "degC")
    with pytest.raises(ChannelNotFound):
        table.conversion("SrcA", "unknown")


def test_ragged_group_is_a_schema_violation():
    with pytest.raises(SchemaViolationError) as exc:
        LookupTable(groups={"Eng": {"SrcA": ["rpm", "trq"], "SrcB": ["enginespeed"]}}, layers=["SrcA", "SrcB"])
    assert any("row-aligned" in e for e in exc.value.errors)


def test_violations_are_accumulated():
    with pytest.raises(SchemaViolationError) as exc:
        LookupTable(
            groups={"1Eng": {"SrcA": ["bad name"]}},
            layers=["SrcA"],
            source_tabs={"TabA": [SourceEntry("Eng", "rpm"), SourceEntry("Eng", "rpm")]},
        )
    errors = exc.value.errors
    assert len(errors) == 3
    assert any("Invalid group name" in e for e in errors)
    assert any("bad name" in e for e in errors)
    assert any("repeated signal names" in e for e in errors)


def test_lookup_table_is_frozen(source_entries):
    table = _table(source_entries)
    with pytest.raises(AttributeError):
        table.layers = ()  # type: ignore[misc]
