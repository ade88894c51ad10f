# enginesignals/core/rules.py
"""
Content and homogeneity rules shared by the value types and the public
validity predicates.

Rules operate on plain parts (arrays, name tuples) so they can judge both
constructed objects and raw records coming from an I/O collaborator. They
never raise: every outcome is a `Validity`.
"""
from __future__ import annotations

from typing import Any, Mapping, NamedTuple, Sequence

import numpy as np

from .exceptions import (
    CoreError,
    InvalidDataset,
    InvalidSignalGroup,
    ShapeError,
)
from .names import is_valid_name

TIME = "Time"
DATETIME_UNITS = "datetime"


class Validity(NamedTuple):
    """Tri-state outcome of a validity check.

    is_candidate: the input has the right container kind and field set
    is_valid:     it also satisfies every content rule
    message:      first violated rule ("" when valid)
    kind:         exception class a strict caller should raise
    """

    is_candidate: bool
    is_valid: bool
    message: str = ""
    kind: type[CoreError] | None = None

    def raise_if_invalid(self, prefix: str | None = None) -> None:
        if self.is_valid:
            return
        kind = self.kind or ShapeError
        msg = self.message if prefix is None else f"{prefix}: {self.message}"
        raise kind(msg)


VALID = Validity(True, True)


def not_candidate(message: str, kind: type[CoreError] = ShapeError) -> Validity:
    return Validity(False, False, message, kind)


def invalid(message: str, kind: type[CoreError]) -> Validity:
    return Validity(True, False, message, kind)


class GroupParts(NamedTuple):
    """Normalized view of one signal group."""

    values: np.ndarray
    layers: Mapping[str, Sequence[Any]]
    units: Sequence[Any]
    descriptions: Sequence[Any]

    @property
    def n_signals(self) -> int:
        return int(self.values.shape[1]) if self.values.ndim == 2 else 0

    @property
    def n_samples(self) -> int:
        return int(self.values.shape[0]) if self.values.ndim >= 1 else 0


def as_text(entry: Any) -> str:
    """Missing entries compare as the empty string."""
    if entry is None:
        return ""
    if isinstance(entry, float) and np.isnan(entry):
        return ""
    return entry


def _is_string_array(seq: Any) -> bool:
    if isinstance(seq, (str, bytes)) or not isinstance(seq, (list, tuple, np.ndarray)):
        return False
    return all(e is None or isinstance(e, str) for e in seq)


def _is_sequence(seq: Any) -> bool:
    return isinstance(seq, (list, tuple, np.ndarray)) and not isinstance(seq, (str, bytes))


def is_numeric_dtype(dtype: np.dtype) -> bool:
    return bool(np.issubdtype(dtype, np.number) or np.issubdtype(dtype, np.bool_))


# ---------------------------------------------------------------------------
# Single signal group
# ---------------------------------------------------------------------------
def inspect_group(parts: GroupParts, *, time: bool = False) -> Validity:
    values = parts.values
    units = parts.units

    if not _is_sequence(units):
        return invalid("The 'Units' field is not valid. Must be a sequence of strings.", InvalidSignalGroup)
    if not _is_string_array(units):
        return invalid("The 'Units' field contains one or more non-string entries.", InvalidSignalGroup)

    is_datetime = (
        len(units) == 1 and units[0] == DATETIME_UNITS and np.issubdtype(values.dtype, np.datetime64)
    )
    if not is_datetime and not is_numeric_dtype(values.dtype):
        return invalid(
            f"The 'Values' field is not of valid type (dtype {values.dtype}).", InvalidSignalGroup
        )
    if values.ndim > 2:
        return invalid("The 'Values' field has dimension > 2.", InvalidSignalGroup)
    if values.ndim < 2:
        return invalid("The 'Values' field must be a 2-D array.", InvalidSignalGroup)

    n = values.shape[1]
    for layer, names in parts.layers.items():
        if not _is_sequence(names):
            return invalid(f"The '{layer}' layer is not a valid sequence.", InvalidSignalGroup)
        if len(names) != n:
            return invalid(
                f"The '{layer}' layer has the wrong length ({len(names)} names for {n} signals).",
                InvalidSignalGroup,
            )
        if not _is_string_array(names):
            return invalid(f"The '{layer}' layer contains one or more non-string entries.", InvalidSignalGroup)
        bad = [nm for nm in names if nm and not is_valid_name(nm)]
        if bad:
            listed = ", ".join(f"'{b}'" for b in bad)
            return invalid(
                f"The '{layer}' layer contains one or more invalid names: {{{listed}}}.",
                InvalidSignalGroup,
            )

    if len(units) != n:
        return invalid(
            f"The 'Units' field has the wrong length ({len(units)} entries for {n} signals).",
            InvalidSignalGroup,
        )

    descriptions = parts.descriptions
    if not _is_sequence(descriptions):
        return invalid("The 'Descriptions' field is not valid. Must be a sequence of strings.", InvalidSignalGroup)
    if not _is_string_array(descriptions):
        return invalid("The 'Descriptions' field contains one or more non-string entries.", InvalidSignalGroup)
    if len(descriptions) != n:
        return invalid(
            f"The 'Descriptions' field has the wrong length ({len(descriptions)} entries for {n} signals).",
            InvalidSignalGroup,
        )

    if time and n != 1:
        return not_candidate("'Time' signal groups must contain a single data column.", InvalidSignalGroup)
    return VALID


# ---------------------------------------------------------------------------
# Homogeneity
# ---------------------------------------------------------------------------
def names_rows(parts: GroupParts) -> list[tuple[str, ...]]:
    """One tuple of names per channel, layers in group order."""
    cols = [tuple(as_text(nm) for nm in names) for names in parts.layers.values()]
    return [tuple(col[k] for col in cols) for k in range(parts.n_signals)]


def channel_label(parts: GroupParts, k: int) -> str:
    """First non-empty name of channel `k`, or its position."""
    for names in parts.layers.values():
        nm = as_text(names[k])
        if nm:
            return nm
    return f"#{k}"


def _quoted(labels: Sequence[str]) -> str:
    return " ".join(f"'{lb}'" for lb in labels)


def inspect_homogeneity(
    items: Sequence[GroupParts],
    *,
    time: bool = False,
    kind: type[CoreError] = InvalidSignalGroup,
    what: str = "signal group array",
) -> Validity:
    """Compare layer lists, names matrices and units across `items`."""
    if len(items) < 2:
        return VALID

    first = items[0]
    layers0 = list(first.layers)
    rows0 = names_rows(first)
    for i, parts in enumerate(items[1:], start=1):
        if list(parts.layers) != layers0:
            return invalid(
                f"Non-homogeneous {what}. Element #{i} has name layers {list(parts.layers)}, "
                f"expected {layers0}.",
                kind,
            )
        if parts.n_signals != first.n_signals:
            return invalid(
                f"Non-homogeneous {what}. Element #{i} has {parts.n_signals} signals, "
                f"expected {first.n_signals}.",
                kind,
            )
        rows = names_rows(parts)
        differing = [channel_label(first, k) for k, (a, b) in enumerate(zip(rows0, rows)) if a != b]
        if differing:
            return invalid(
                f"Non-homogeneous {what}. Names do not match at element #{i} for these signals: "
                f"{_quoted(differing)}.",
                kind,
            )

    if time:
        units0 = [as_text(u) for u in first.units]
        if any([as_text(u) for u in parts.units] != units0 for parts in items[1:]):
            return invalid("Incompatible/non-uniform time units.", kind)

    inconsistent: list[str] = []
    for k in range(first.n_signals):
        row = {as_text(parts.units[k]) for parts in items}
        if len(row) > 1:
            inconsistent.append(channel_label(first, k))
    if inconsistent:
        return invalid(
            f"Non-homogeneous {what}. These signals have inconsistent units: {_quoted(inconsistent)}.",
            kind,
        )
    return VALID


# ---------------------------------------------------------------------------
# Datasets
# ---------------------------------------------------------------------------
def collect_parts(groups: Mapping[str, GroupParts]) -> GroupParts | None:
    """Concatenate every non-Time group column-wise (None if incompatible)."""
    members = [p for name, p in groups.items() if name != TIME]
    if not members:
        return None
    layers = list(members[0].layers)
    if any(list(p.layers) != layers for p in members):
        return None
    try:
        values = np.concatenate([p.values for p in members], axis=1)
    except ValueError:
        return None
    merged = {layer: tuple(nm for p in members for nm in p.layers[layer]) for layer in layers}
    units = tuple(u for p in members for u in p.units)
    descriptions = tuple(d for p in members for d in p.descriptions)
    return GroupParts(values, merged, units, descriptions)


def inspect_dataset(groups: Mapping[str, GroupParts]) -> Validity:
    if TIME not in groups:
        return not_candidate("Missing 'Time' field.")
    time_check = inspect_group(groups[TIME], time=True)
    if not time_check.is_valid:
        return not_candidate(f"The 'Time' field is not a valid signal group: {time_check.message}")
    if not [name for name in groups if name != TIME]:
        return not_candidate("Dataset must contain at least one non-Time signal group.")

    bad = [name for name, parts in groups.items() if not inspect_group(parts).is_valid]
    if bad:
        listed = ",".join(f"'{b}'" for b in bad)
        return invalid(f"Contains invalid signal group(s): {{{listed}}}.", InvalidDataset)

    layer_lists = [list(p.layers) for p in groups.values()]
    if any(sorted(ls) != sorted(layer_lists[0]) for ls in layer_lists):
        return invalid("Signal group name layers do not match.", InvalidDataset)
    if any(ls != layer_lists[0] for ls in layer_lists):
        return invalid("Order of name layers does not match across all signal groups.", InvalidDataset)

    dtypes = {p.values.dtype for name, p in groups.items() if name != TIME}
    if len(dtypes) > 1:
        return invalid("Data types do not match across all signal groups.", InvalidDataset)

    lengths = {name: p.n_samples for name, p in groups.items()}
    if len(set(lengths.values())) > 1:
        detail = ", ".join(f"'{k}': {v}" for k, v in lengths.items())
        return invalid(f"Signal groups have incompatible data lengths ({detail}).", InvalidDataset)
    return VALID


def inspect_dataset_homogeneity(items: Sequence[Mapping[str, GroupParts]]) -> Validity:
    if len(items) < 2:
        return VALID

    group_names0 = list(items[0])
    for i, groups in enumerate(items[1:], start=1):
        if list(groups) != group_names0:
            return invalid(
                f"Non-homogeneous array. Element #{i} has signal groups {list(groups)}, "
                f"expected {group_names0}.",
                InvalidDataset,
            )

    for name in group_names0:
        if name == TIME:
            continue
        check = inspect_homogeneity(
            [groups[name] for groups in items], kind=InvalidDataset, what=f"array (group '{name}')"
        )
        if not check.is_valid:
            return check

    collected = [collect_parts(groups) for groups in items]
    if any(c is None for c in collected):
        return invalid("Non-homogeneous array. Signal groups cannot be collected.", InvalidDataset)
    check = inspect_homogeneity(collected, kind=InvalidDataset, what="array")  # type: ignore[arg-type]
    if not check.is_valid:
        return check

    times = [groups[TIME] for groups in items]
    units0 = [as_text(u) for u in times[0].units]
    if any([as_text(u) for u in t.units] != units0 for t in times[1:]):
        return invalid("Datasets have incompatible time vectors.", InvalidDataset)
    return VALID
