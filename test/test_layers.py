# test/test_layers.py
import logging

import numpy as np
import pytest

from enginesignals.config import Settings
from enginesignals.core import (
    Dataset,
    DatasetArray,
    InvalidDataset,
    InvalidSignalGroup,
    LayerNotFound,
    LookupTable,
    SignalGroup,
    SignalGroupArray,
    add_layer,
    add_layer_report,
    reconcile_layers,
    remove_layer,
    remove_layers_except,
    rename_layer,
    reorder_fields,
)


def _src_a(*names: str) -> SignalGroup:
    return SignalGroup(values=np.zeros((2, len(names))), layers={"SrcA": list(names)})


def test_add_layer_fills_names_from_lookup(eng_lookup):
    g = add_layer(_src_a("rpm"), "SrcB", lookup=eng_lookup)
    assert g.layer_names == ("SrcANames", "SrcBNames")
    assert g.names("SrcB") == ("enginespeed",)


def test_unmatched_names_are_reported_and_left_blank(eng_lookup, caplog):
    with caplog.at_level(logging.WARNING, logger="enginesignals.core.layers"):
        result = add_layer_report(_src_a("rpm", "unknownx"), "SrcB", lookup=eng_lookup)
    assert result.obj.names("SrcB") == ("enginespeed", "")
    assert result.unmatched == {"SrcBNames": [("unknownx",)]}
    assert "unknownx" in caplog.text
    assert "'SrcBNames' blank" in caplog.text


def test_new_layer_is_blank_without_lookup(eng_lookup):
    g = _src_a("rpm", "x")
    assert add_layer(g, "Mdf").names("Mdf") == ("", "")
    assert add_layer(g, "SrcB", lookup=eng_lookup, use_lookup=False).names("SrcB") == ("", "")


def test_add_existing_layer_is_a_no_op(eng_lookup):
    g = add_layer(_src_a("rpm"), "SrcB", lookup=eng_lookup)
    assert add_layer(g, ["SrcA", "SrcBNames"], lookup=eng_lookup) is g


def test_add_then_remove_round_trip(eng_lookup):
    g = _src_a("rpm", "unknownx")
    assert remove_layer(add_layer(g, "SrcB", lookup=eng_lookup), "SrcB") == g


def test_round_trip_moves_layers_into_table_order(eng_lookup):
    g = SignalGroup(values=np.zeros((1, 1)), layers={"Foo": ["f"], "SrcA": ["rpm"]})
    back = remove_layer(add_layer(g, "SrcB", lookup=eng_lookup), "SrcB")
    assert back.layer_names == ("SrcANames", "FooNames")
    assert dict(back.layers) == dict(g.layers)
    assert back == reorder_fields(g, eng_lookup)


def test_known_layers_are_added_first(eng_lookup):
    g = add_layer(_src_a("rpm"), ["Foo", "SrcB"], lookup=eng_lookup)
    assert g.layer_names == ("SrcANames", "SrcBNames", "FooNames")
    assert g.names("SrcB") == ("enginespeed",)
    assert g.names("Foo") == ("",)


def test_add_layer_to_dataset_copies_time_name():
    time = SignalGroup(values=np.arange(3.0), layers={"Eng": ["Time"]}, units=["s"])
    ds = Dataset(groups={"Time": time, "Engine": SignalGroup(values=np.ones((3, 2)), layers={"Eng": ["a", "b"]})})
    out = add_layer(ds, "Mdf")
    assert out["Time"].names("Mdf") == ("Time",)
    assert out["Engine"].names("Mdf") == ("", "")


def test_add_layer_to_dataset_from_lookup(engine_dataset, caplog):
    lookup = LookupTable(
        groups={"G": {"Eng": ["a", "d"], "New": ["alpha", "delta"]}},
        layers=["Eng", "New"],
    )
    with caplog.at_level(logging.WARNING):
        result = add_layer_report(engine_dataset, "New", lookup=lookup)
    ds = result.obj
    assert ds["Engine"].names("New") == ("alpha", "", "")
    assert ds["Aux"].names("New") == ("delta", "alpha")
    assert ds["Time"].names("New") == ("Time",)
    assert result.unmatched == {"NewNames": [("b",), ("c",)]}
    assert "in group 'Engine'" in caplog.text


def test_add_layer_to_arrays(eng_lookup, engine_dataset):
    arr = SignalGroupArray([_src_a("rpm"), _src_a("rpm")])
    out = add_layer(arr, "SrcB", lookup=eng_lookup)
    assert all(g.names("SrcB") == ("enginespeed",) for g in out)

    ds_arr = add_layer(DatasetArray([engine_dataset, engine_dataset]), "Mdf")
    assert ds_arr.layer_names == ("EngNames", "MdfNames")


def _overlap_lookup() -> LookupTable:
    return LookupTable(
        groups={"Eng": {"SrcA": ["rpm", ""], "SrcB": ["enginespeed", "foo"]}},
        layers=["SrcA", "SrcB"],
    )


def test_min_overlap_guards_blank_keys():
    g = _src_a("rpm", "")
    assert add_layer(g, "SrcB", lookup=_overlap_lookup()).names("SrcB") == ("enginespeed", "")
    assert add_layer(g, "SrcB", lookup=_overlap_lookup(), min_overlap=0).names("SrcB") == ("enginespeed", "foo")
    relaxed = Settings(lookup_min_overlap=0)
    assert add_layer(g, "SrcB", lookup=_overlap_lookup(), settings=relaxed).names("SrcB") == ("enginespeed", "foo")


def test_first_matching_row_wins():
    lookup = LookupTable(
        groups={"Eng": {"SrcA": ["rpm", "rpm"], "SrcB": ["speed1", "speed2"]}},
        layers=["SrcA", "SrcB"],
    )
    assert add_layer(_src_a("rpm"), "SrcB", lookup=lookup).names("SrcB") == ("speed1",)


def test_keys_compare_as_tuples_not_concatenations():
    lookup = LookupTable(
        groups={"G": {"A": ["a"], "B": ["bc"], "C": ["x"]}},
        layers=["A", "B", "C"],
    )
    g = SignalGroup(values=np.zeros((1, 1)), layers={"A": ["ab"], "B": ["c"]})
    result = add_layer_report(g, "C", lookup=lookup)
    assert result.obj.names("C") == ("",)
    assert result.unmatched == {"CNames": [("ab", "c")]}


def test_remove_layer_errors(abc_group, engine_dataset):
    with pytest.raises(LayerNotFound):
        remove_layer(abc_group, "Zzz")
    with pytest.raises(InvalidSignalGroup):
        remove_layer(abc_group, "Eng")
    with pytest.raises(InvalidDataset):
        remove_layer(engine_dataset, ["EngNames"])


def test_remove_layers_except(abc_group):
    g = abc_group.with_layer("Ecu", ["x", "y", "z"]).with_layer("Mdf", ["", "", ""])
    out = remove_layers_except(g, "Ecu")
    assert out.layer_names == ("EcuNames",)
    assert out.names("Ecu") == ("x", "y", "z")
    assert remove_layers_except(out, ["Ecu"]) is out
    with pytest.raises(LayerNotFound):
        remove_layers_except(g, "Zzz")


def test_rename_layer(abc_group, engine_dataset):
    g = rename_layer(abc_group.with_layer("Ecu", ["x", "y", "z"]), "Eng", "Motor")
    assert g.layer_names == ("MotorNames", "EcuNames")
    assert g.names("Motor") == ("a", "b", "c")
    with pytest.raises(InvalidSignalGroup):
        rename_layer(g, "Motor", "EcuNames")
    with pytest.raises(LayerNotFound):
        rename_layer(g, "Eng", "Other")
    assert rename_layer(engine_dataset, "Eng", "Motor")["Time"].names("Motor") == ("Time",)


def test_reconcile_layers_gives_every_input_the_union(abc_group, caplog):
    g1 = abc_group
    g2 = SignalGroup(values=np.zeros((2, 1)), layers={"Ecu": ["x"]})
    with caplog.at_level(logging.INFO, logger="enginesignals.core.layers"):
        out1, out2 = reconcile_layers(g1, g2)
    assert out1.layer_names == ("EngNames", "EcuNames")
    assert out2.layer_names == ("EcuNames", "EngNames")
    assert out2.names("Eng") == ("",)
    assert "Processing dataset #1" in caplog.text
    assert "Processing dataset #2" in caplog.text


def test_reorder_fields_on_group(eng_lookup):
    g = SignalGroup(values=np.zeros((1, 1)), layers={"Foo": ["f"], "SrcB": ["enginespeed"], "SrcA": ["rpm"]})
    assert reorder_fields(g, eng_lookup).layer_names == ("SrcANames", "SrcBNames", "FooNames")
    assert reorder_fields(g).layer_names == g.layer_names


def test_reorder_fields_on_dataset(abc_group):
    time = SignalGroup(values=np.arange(4.0), layers={"Eng": ["Time"]}, units=["s"])
    ds = Dataset(
        groups={"Engine": abc_group, "Time": time},
        meta={"source": "x.mf4", "note": "n", "casename": "run"},
    )
    assert not ds.is_canonical()
    out = reorder_fields(ds)
    assert out.is_canonical()
    assert list(out.to_record()) == ["casename", "note", "Time", "Engine", "source"]
    assert out["Engine"] == ds["Engine"]
    assert out.meta == ds.meta
