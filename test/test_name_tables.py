# test/test_name_tables.py
import numpy as np
import pandas as pd
import pytest

from enginesignals.core import SchemaViolationError
from enginesignals.io.name_tables import (
    check_name_tables,
    export_name_tables,
    format_name_tables,
    list_source_types,
    load_lookup_table,
    parse_name_tables,
)

nan = np.nan
TAB_HEADERS = ["Group", "Signal", "Factor", "Units", "Comments", "Descriptions"]


def _master_rows() -> list[list]:
    return [
        ["Group", "SrcA", "SrcB", "<-- comments"],
        [nan, "TabA", nan, nan],
        ["Eng", "rpm", "enginespeed", "engine speed"],
        ["Eng", "trq", "enginetorque", nan],
        [nan, nan, nan, nan],
        ["Cool", "tw", "watertemp", nan],
    ]


def _tab_rows() -> list[list]:
    return [
        list(TAB_HEADERS),
        ["Eng", "rpm", 1, "rpm", nan, "Engine speed"],
        ["Eng", "trq", "*", "Nm", nan, "Engine torque"],
        [nan, nan, nan, nan, nan, nan],
        ["Cool", "tw", 1.0, "degC", nan, "Water temperature"],
    ]


def _sheets(master=None, tab=None) -> dict[str, pd.DataFrame]:
    return {
        "MASTER": pd.DataFrame(master if master is not None else _master_rows(), dtype=object),
        "TabA": pd.DataFrame(tab if tab is not None else _tab_rows(), dtype=object),
    }


def test_valid_workbook_checks_clean():
    assert check_name_tables(_sheets()) == (True, [])
    assert list_source_types(_sheets()) == ["TabA"]


def test_parse_builds_lookup_table():
    table = parse_name_tables(_sheets())
    assert table.layers == ("SrcANames", "SrcBNames")
    assert list(table.groups) == ["Eng", "Cool"]
    assert table.rows() == [("rpm", "enginespeed"), ("trq", "enginetorque"), ("tw", "watertemp")]
    assert table.source_type("SrcA") == "TabA"
    assert table.source_type("SrcB") == ""
    assert table.conversion("SrcA", "rpm") == (1.0, "rpm")
    # wildcard factor means "no fixed factor"
    assert table.conversion("SrcA", "trq") == (None, "Nm")
    assert table.source_entry("SrcA", "tw").description == "Water temperature"


def test_source_tab_columns_may_come_in_any_order():
    rows = [[r[i] for i in (1, 0, 5, 4, 3, 2)] for r in _tab_rows()]
    assert parse_name_tables(_sheets(tab=rows)).conversion("SrcA", "rpm") == (1.0, "rpm")


def test_missing_master():
    sheets = _sheets()
    del sheets["MASTER"]
    assert check_name_tables(sheets) == (False, ["MASTER tab does not exist."])


def test_invalid_group_name():
    master = _master_rows()
    master[5][0] = "1Cool"
    valid, errors = check_name_tables(_sheets(master=master))
    assert not valid
    assert errors == ["MASTER tab: Invalid group names: {'1Cool'}."]


def test_name_without_group():
    master = _master_rows()
    master[4][1] = "xx"
    valid, errors = check_name_tables(_sheets(master=master))
    assert not valid
    assert "MASTER tab: Column 'SrcA': No group assigned: {'xx'}." in errors


def test_unregistered_name_on_source_layer():
    master = _master_rows()
    master[2][1] = "rpmx"
    valid, errors = check_name_tables(_sheets(master=master))
    assert not valid
    assert errors == ["MASTER tab: Layer 'SrcANames': Group 'Eng': Unregistered names: {'rpmx'}."]


def test_missing_source_tab():
    sheets = _sheets()
    del sheets["TabA"]
    assert check_name_tables(sheets) == (False, ["Source tab 'TabA' does not exist."])


def test_missing_source_tab_headers():
    tab = [r[:5] for r in _tab_rows()]
    valid, errors = check_name_tables(_sheets(tab=tab))
    assert not valid
    assert "Missing one or more required columns" in errors[0]


def test_source_tab_errors_are_accumulated():
    tab = _tab_rows()
    tab[2][2] = "abc"
    tab.append(["Cool", "rpm", 1, "rpm", nan, ""])
    valid, errors = check_name_tables(_sheets(tab=tab))
    assert not valid
    assert "Source tab 'TabA': Repeated signal names: {'rpm'}." in errors
    assert "Source tab 'TabA': Non-numeric conversion factor entries: {'abc'}." in errors


def test_missing_signal_name_reports_line():
    tab = _tab_rows()
    tab[4][1] = nan
    valid, errors = check_name_tables(_sheets(tab=tab))
    assert not valid
    assert "Source tab 'TabA': Missing signal name on lines: 5." in errors


def test_parse_raises_with_every_error():
    master = _master_rows()
    master[5][0] = "1Cool"
    master[4][2] = "yy"
    with pytest.raises(SchemaViolationError) as exc:
        parse_name_tables(_sheets(master=master))
    assert len(exc.value.errors) == 2


def test_format_name_tables():
    text = format_name_tables(_sheets())
    lines = text.splitlines()
    assert set(lines[0]) == {"-"}
    assert lines[1] == " MASTER"
    assert lines[3].startswith("1:  Group  SrcA  SrcB")
    assert lines[3].endswith("<-- comments")
    assert "5:" in lines
    assert text.endswith("\n")
    # sections are separated by two blank lines
    assert "\n\n\n-" in text
    assert text.index(" MASTER") < text.index(" TabA")
    assert "2:  Eng    rpm     1" in text


def test_format_rejects_unsupported_cells():
    tab = _tab_rows()
    tab[1][4] = pd.Timestamp("2024-01-01")
    with pytest.raises(SchemaViolationError):
        format_name_tables(_sheets(tab=tab))


@pytest.mark.integration
def test_xlsx_round_trip(tmp_path):
    pytest.importorskip("openpyxl")
    path = tmp_path / "names.xlsx"
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        for name, df in _sheets().items():
            df.to_excel(writer, sheet_name=name, header=False, index=False)

    assert check_name_tables(path) == (True, [])
    table = load_lookup_table(path)
    assert table.column("SrcB") == ["enginespeed", "enginetorque", "watertemp"]
    assert table.conversion("SrcA", "tw") == (1.0, "degC")

    out = export_name_tables(path)
    assert out == tmp_path / "names.dat"
    assert out.read_text(encoding="utf-8") == format_name_tables(_sheets())


def test_load_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_lookup_table(tmp_path / "nope.xlsx")
