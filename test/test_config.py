# test/test_config.py
from pathlib import Path

import pytest

from enginesignals.config import DEFAULT_SETTINGS, Settings, load_settings
from enginesignals.core import InvalidName, ShapeError


def test_defaults():
    assert DEFAULT_SETTINGS.default_name_layer == ""
    assert DEFAULT_SETTINGS.name_tables is None
    assert DEFAULT_SETTINGS.lookup_min_overlap == 1
    assert DEFAULT_SETTINGS.mdf_layer == "Mdf"
    assert DEFAULT_SETTINGS.load_lookup() is None


def test_default_layer_is_normalized():
    assert Settings(default_name_layer="Eng").default_name_layer == "EngNames"
    assert Settings(default_name_layer="EngNames").default_name_layer == "EngNames"
    with pytest.raises(InvalidName):
        Settings(default_name_layer="1Eng")


def test_invalid_options():
    with pytest.raises(ShapeError):
        Settings(lookup_min_overlap="2")
    with pytest.raises(ValueError):
        Settings(lookup_min_overlap=-1)
    with pytest.raises(ValueError):
        Settings(mdf_layer="bad layer")
    with pytest.raises(ValueError, match="colour"):
        Settings.from_mapping({"colour": "red"})


def test_settings_are_frozen():
    with pytest.raises(AttributeError):
        DEFAULT_SETTINGS.mdf_layer = "Other"  # type: ignore[misc]


def test_load_settings_from_yaml(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text(
        "default_name_layer: Eng\n"
        "name_tables: tables/NameTables.xlsx\n"
        "lookup_min_overlap: 2\n",
        encoding="utf-8",
    )
    settings = load_settings(path)
    assert settings.default_name_layer == "EngNames"
    assert settings.name_tables == tmp_path / "tables" / "NameTables.xlsx"
    assert settings.lookup_min_overlap == 2
    assert settings.mdf_layer == "Mdf"


def test_absolute_table_path_is_kept(tmp_path):
    absolute = (tmp_path / "x.xlsx").resolve()
    settings = Settings.from_mapping({"name_tables": str(absolute)}, base_dir=Path("elsewhere"))
    assert settings.name_tables == absolute


def test_empty_yaml_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    assert load_settings(path) == DEFAULT_SETTINGS


def test_non_mapping_yaml_is_rejected(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ShapeError):
        load_settings(path)


def test_load_lookup_reads_configured_workbook(tmp_path):
    settings = Settings(name_tables=tmp_path / "missing.xlsx")
    with pytest.raises(FileNotFoundError):
        settings.load_lookup()
