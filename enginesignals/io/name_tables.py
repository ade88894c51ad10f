from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, Mapping, NamedTuple

import numpy as np
import pandas as pd

from enginesignals.core.exceptions import SchemaViolationError
from enginesignals.core.lookup import LookupTable, SourceEntry
from enginesignals.core.names import is_valid_name, source_to_layer

logger = logging.getLogger(__name__)

MASTER = "MASTER"
SOURCE_HEADERS = ("Group", "Signal", "Factor", "Units", "Comments", "Descriptions")
WILDCARD = "*"
COMMENT_PREFIX = "<"

Sheets = Mapping[str, pd.DataFrame]


# ---------------------------------------------------------------------------
# Cells
# ---------------------------------------------------------------------------
def _is_blank(cell: Any) -> bool:
    if cell is None:
        return True
    if isinstance(cell, float) and np.isnan(cell):
        return True
    return isinstance(cell, str) and cell.strip() == ""


def _is_number(cell: Any) -> bool:
    return isinstance(cell, (int, float, np.integer, np.floating)) and not isinstance(cell, bool)


def _text(cell: Any) -> str:
    """Cell as text: blanks are "", numbers use %g."""
    if _is_blank(cell):
        return ""
    if _is_number(cell):
        return f"{cell:g}"
    return str(cell).strip()


def _listed(items: Iterable[Any]) -> str:
    return "{" + ",".join(f"'{_text(x)}'" for x in items) + "}"


def _grid(df: pd.DataFrame) -> list[list[Any]]:
    return [list(row) for row in df.itertuples(index=False, name=None)]


# ---------------------------------------------------------------------------
# Workbook access
# ---------------------------------------------------------------------------
def read_workbook(path: str | Path) -> dict[str, pd.DataFrame]:
    """Every sheet of the workbook as raw cells (no header row)."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Name tables file not found: {path}")
    logger.debug("Reading workbook %s", path)
    return pd.read_excel(path, sheet_name=None, header=None, dtype=object, engine="openpyxl")


def list_source_types(sheets: Sheets) -> list[str]:
    """Names of every source tab (all sheets except MASTER), sorted."""
    return sorted(name for name in sheets if name != MASTER)


# ---------------------------------------------------------------------------
# MASTER sheet
# ---------------------------------------------------------------------------
class _Master(NamedTuple):
    headers: list[str]
    source_types: list[str]
    body: list[list[str]]  # group, then one name per header


def _read_master(df: pd.DataFrame) -> _Master:
    rows = [[_text(c) for c in row] for row in _grid(df)]
    if not rows:
        return _Master([], [], [])
    header_row = rows[0]
    keep = [j for j, h in enumerate(header_row) if j > 0 and not h.startswith(COMMENT_PREFIX)]
    while keep and header_row[keep[-1]] == "":
        keep.pop()  # unlabeled trailing columns hold comments

    def pick(row: list[str]) -> list[str]:
        return [row[j] if j < len(row) else "" for j in keep]

    headers = pick(header_row)
    source_types = pick(rows[1]) if len(rows) > 1 else [""] * len(headers)
    body = [[row[0]] + pick(row) for row in rows[2:]]
    return _Master(headers, source_types, body)


def _check_master(master: _Master) -> list[str]:
    errors: list[str] = []
    headers = master.headers
    if not headers:
        return ["MASTER tab: No name columns found."]

    if any(h == "" for h in headers):
        errors.append("MASTER tab: One or more name columns is not labeled.")
    bad = [h for h in headers if h and not is_valid_name(h)]
    if bad:
        errors.append(f"MASTER tab: Invalid column headers: {_listed(bad)}.")

    types = list(dict.fromkeys(t for t in master.source_types if t))
    bad = [t for t in types if not is_valid_name(t)]
    if bad:
        errors.append(f"MASTER tab: Invalid source types: {_listed(bad)}.")

    groups = list(dict.fromkeys(row[0] for row in master.body if row[0]))
    bad = [g for g in groups if not is_valid_name(g)]
    if bad:
        errors.append(f"MASTER tab: Invalid group names: {_listed(bad)}.")

    for k, header in enumerate(headers, start=1):
        names = [row[k] for row in master.body if row[k]]
        bad = [nm for nm in names if not is_valid_name(nm)]
        if bad:
            errors.append(f"MASTER tab: Column '{header}': Invalid signal names: {_listed(bad)}.")
        orphans = [row[k] for row in master.body if not row[0] and row[k]]
        if orphans:
            errors.append(f"MASTER tab: Column '{header}': No group assigned: {_listed(orphans)}.")
    return errors


# ---------------------------------------------------------------------------
# Source tabs
# ---------------------------------------------------------------------------
def _read_source_tab(df: pd.DataFrame, tab: str) -> tuple[list[list[Any]] | None, list[str]]:
    """Body rows in SOURCE_HEADERS order, or None when headers are missing."""
    rows = _grid(df)
    if not rows:
        return None, [f"Source tab '{tab}': Column headers are invalid. Missing one or more required columns."]
    header_row = rows[0]
    position: dict[str, int] = {}
    for j, cell in enumerate(header_row):
        if isinstance(cell, str) and cell.strip() and cell.strip() not in position:
            position[cell.strip()] = j
    if not all(h in position for h in SOURCE_HEADERS):
        return None, [f"Source tab '{tab}': Column headers are invalid. Missing one or more required columns."]
    body = [[row[position[h]] for h in SOURCE_HEADERS] for row in rows[1:]]
    return body, []


def _check_source_tab(df: pd.DataFrame, tab: str) -> list[str]:
    body, errors = _read_source_tab(df, tab)
    if body is None:
        return errors

    spacer = [_is_blank(row[0]) for row in body]
    groups = list(dict.fromkeys(_text(row[0]) for row in body if not _is_blank(row[0])))
    bad = [g for g in groups if not is_valid_name(g)]
    if bad:
        errors.append(f"Source tab '{tab}': Invalid group names: {_listed(bad)}.")

    names = [_text(row[1]) for row in body if not _is_blank(row[1])]
    bad = [nm for nm in names if not is_valid_name(nm)]
    if bad:
        errors.append(f"Source tab '{tab}': Invalid signal names: {_listed(bad)}.")
    repeated = sorted({nm for nm in names if names.count(nm) > 1})
    if repeated:
        errors.append(f"Source tab '{tab}': Repeated signal names: {_listed(repeated)}.")

    # line numbers count the header as line 1
    lines = [str(i + 2) for i, row in enumerate(body) if not spacer[i] and _is_blank(row[1])]
    if lines:
        errors.append(f"Source tab '{tab}': Missing signal name on lines: {', '.join(lines)}.")
    orphans = [row[1] for i, row in enumerate(body) if spacer[i] and not _is_blank(row[1])]
    if orphans:
        errors.append(f"Source tab '{tab}': No group assigned: {_listed(orphans)}.")

    factors = [row[2] for row in body if not _is_blank(row[2])]
    bad = [f for f in factors if not _is_number(f) and _text(f) != WILDCARD]
    if bad:
        errors.append(f"Source tab '{tab}': Non-numeric conversion factor entries: {_listed(bad)}.")

    bad = [u for u in (row[3] for row in body) if _is_number(u)]
    if bad:
        errors.append(f'Source tab \'{tab}\': Invalid "units" string entries: {_listed(bad)}.')

    spurious = [c for i, row in enumerate(body) if spacer[i] for c in (row[2], row[3]) if not _is_blank(c)]
    if spurious:
        errors.append(f"Source tab '{tab}': Spurious text on spacer lines: {_listed(spurious)}.")
    return errors


def _parse_source_tab(df: pd.DataFrame, tab: str) -> list[SourceEntry]:
    body, errors = _read_source_tab(df, tab)
    if body is None:
        raise SchemaViolationError(errors)
    entries: list[SourceEntry] = []
    for group, name, factor, units, _comments, description in body:
        if _is_blank(group):
            continue
        entries.append(
            SourceEntry(
                group=_text(group),
                name=_text(name),
                factor=float(factor) if _is_number(factor) else None,
                units=_text(units),
                description=_text(description),
            )
        )
    return entries


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def _as_sheets(source: str | Path | Sheets) -> Sheets:
    if isinstance(source, (str, Path)):
        return read_workbook(source)
    return source


def check_name_tables(source: str | Path | Sheets) -> tuple[bool, list[str]]:
    """
    Validate a name-tables workbook end to end.

    Returns ``(is_valid, errors)``; every detected violation is listed.
    Source tabs are checked only once the MASTER sheet is valid.
    """
    sheets = _as_sheets(source)
    if MASTER not in sheets:
        return False, ["MASTER tab does not exist."]

    master = _read_master(sheets[MASTER])
    errors = _check_master(master)
    if errors:
        return False, errors

    tabs = list_source_types(sheets)
    for tab in tabs:
        errors.extend(_check_source_tab(sheets[tab], tab))
    for tab in dict.fromkeys(t for t in master.source_types if t):
        if tab not in sheets:
            errors.append(f"Source tab '{tab}' does not exist.")
    if errors:
        return False, errors

    registered = {tab: {e.name for e in _parse_source_tab(sheets[tab], tab)} for tab in tabs}
    groups = list(dict.fromkeys(row[0] for row in master.body if row[0]))
    for k, (header, tab) in enumerate(zip(master.headers, master.source_types), start=1):
        if not tab:
            continue
        layer = source_to_layer(header)
        for group in groups:
            names = [row[k] for row in master.body if row[0] == group and row[k]]
            unknown = [nm for nm in names if nm not in registered[tab]]
            if unknown:
                errors.append(
                    f"MASTER tab: Layer '{layer}': Group '{group}': Unregistered names: {_listed(unknown)}."
                )
    return not errors, errors


def parse_name_tables(sheets: Sheets) -> LookupTable:
    """Build a LookupTable from workbook sheets; raises SchemaViolationError."""
    valid, errors = check_name_tables(sheets)
    if not valid:
        raise SchemaViolationError(errors)

    master = _read_master(sheets[MASTER])
    layers = [source_to_layer(h) for h in master.headers]
    groups: dict[str, dict[str, list[str]]] = {}
    for row in master.body:
        group = row[0]
        if not group:
            continue  # separator
        columns = groups.setdefault(group, {layer: [] for layer in layers})
        for layer, name in zip(layers, row[1:]):
            columns[layer].append(name)

    source_tabs = {tab: _parse_source_tab(sheets[tab], tab) for tab in list_source_types(sheets)}
    return LookupTable(
        groups=groups,
        layers=layers,
        source_type_of=dict(zip(layers, master.source_types)),
        source_tabs=source_tabs,
    )


def load_lookup_table(path: str | Path) -> LookupTable:
    logger.info("Loading name tables from %s", path)
    table = parse_name_tables(read_workbook(path))
    logger.debug("Loaded %d groups on layers %s", len(table.groups), list(table.layers))
    return table


# ---------------------------------------------------------------------------
# Text export
# ---------------------------------------------------------------------------
def _format_sheet(title: str, df: pd.DataFrame) -> list[str]:
    rows = _grid(df)
    cells: list[list[str]] = []
    for row in rows:
        out = []
        for c in row:
            if not (_is_blank(c) or _is_number(c) or isinstance(c, str)):
                raise SchemaViolationError(f"The '{title}' tab has one or more invalid entries.")
            out.append(_text(c))
        cells.append(out)

    labels = [f"{i}:" for i in range(1, len(cells) + 1)]
    label_width = max((len(lb) for lb in labels), default=0)
    ncols = max((len(r) for r in cells), default=0)
    widths = [max(len(r[j]) if j < len(r) else 0 for r in cells) for j in range(ncols)]

    lines = []
    for label, row in zip(labels, cells):
        parts = [label.rjust(label_width)] + [
            (row[j] if j < len(row) else "").ljust(widths[j]) for j in range(ncols)
        ]
        lines.append("  ".join(parts).rstrip())
    rule = "-" * (label_width + sum(widths) + 2 * ncols)
    return [rule, f" {title}", rule, *lines]


def format_name_tables(sheets: Sheets) -> str:
    """Stable, diffable text rendering: MASTER first, then every source tab."""
    if MASTER not in sheets:
        raise SchemaViolationError("MASTER tab does not exist.")
    sections = [_format_sheet(MASTER, sheets[MASTER])]
    sections += [_format_sheet(tab, sheets[tab]) for tab in list_source_types(sheets)]
    return "\n\n\n".join("\n".join(lines) for lines in sections) + "\n"


def export_name_tables(path: str | Path, outfile: str | Path | None = None) -> Path:
    """Write the text rendering of `path` (default: same stem, ``.dat``)."""
    path = Path(path)
    outfile = path.with_suffix(".dat") if outfile is None else Path(outfile)
    text = format_name_tables(read_workbook(path))
    outfile.write_text(text, encoding="utf-8")
    logger.info("File %s written.", outfile)
    return outfile
