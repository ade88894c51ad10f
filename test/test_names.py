# test/test_names.py
import pytest

from enginesignals.core import InvalidName, as_layer_list, is_valid_name, layer_to_source, source_to_layer


def test_is_valid_name():
    assert is_valid_name("rpm")
    assert is_valid_name("Eng_Speed2")
    assert not is_valid_name("")
    assert not is_valid_name("2nd")
    assert not is_valid_name("eng speed")
    assert not is_valid_name(None)


def test_source_to_layer_appends_suffix_once():
    assert source_to_layer("Ecu") == "EcuNames"
    assert source_to_layer("EcuNames") == "EcuNames"
    assert source_to_layer(source_to_layer("Ecu")) == "EcuNames"


def test_layer_to_source_is_strict_inverse():
    assert layer_to_source("EcuNames") == "Ecu"
    assert layer_to_source(source_to_layer("Mdf")) == "Mdf"
    with pytest.raises(InvalidName):
        layer_to_source("Ecu")


@pytest.mark.parametrize("bad", ["", "1abc", "has space", "x-y"])
def test_codec_rejects_invalid_identifiers(bad):
    with pytest.raises(InvalidName):
        source_to_layer(bad)


def test_codec_rejects_non_strings():
    with pytest.raises(InvalidName):
        source_to_layer(3)  # type: ignore[arg-type]


def test_as_layer_list_accepts_single_and_many():
    assert as_layer_list("Ecu") == ["EcuNames"]
    assert as_layer_list(["Ecu", "MdfNames"]) == ["EcuNames", "MdfNames"]
