# enginesignals/core/validation.py
"""
Validity predicates.

Each ``check_*`` function accepts either a constructed value or its raw record
form (mappings as produced by ``to_record`` or by an I/O collaborator) and
returns a `Validity` tuple ``(is_candidate, is_valid, message, kind)``.
The predicates never raise.
"""
from __future__ import annotations

from typing import Any, Mapping

import numpy as np

from .dataset import Dataset, DatasetArray
from .exceptions import InvalidDataset, InvalidSignalGroup
from .names import is_layer_name
from .rules import (
    VALID,
    GroupParts,
    Validity,
    inspect_dataset,
    inspect_dataset_homogeneity,
    inspect_group,
    inspect_homogeneity,
    invalid,
    not_candidate,
)
from .signal_group import DATA_FIELDS, SignalGroup, SignalGroupArray


def _record_parts(record: Any) -> tuple[Validity, GroupParts | None]:
    if isinstance(record, SignalGroup):
        return VALID, record.as_parts()
    if not isinstance(record, Mapping):
        return not_candidate(f"Not a signal group (got {type(record).__name__})."), None
    for key in DATA_FIELDS:
        if key not in record:
            return not_candidate(f"The '{key}' field is missing."), None
    layer_keys = [k for k in record if k not in DATA_FIELDS]
    if not layer_keys:
        return not_candidate("Name fields are missing."), None
    if not all(is_layer_name(k) for k in layer_keys):
        return not_candidate("Contains one or more unrecognized fields."), None
    try:
        values = np.asarray(record["Values"])
    except (TypeError, ValueError):
        return invalid("The 'Values' field is not of valid type.", InvalidSignalGroup), None
    layers = {k: record[k] for k in layer_keys}
    return VALID, GroupParts(values, layers, record["Units"], record["Descriptions"])


def _is_sequence(x: Any) -> bool:
    return isinstance(x, (list, tuple))


# ---------------------------------------------------------------------------
# Signal groups
# ---------------------------------------------------------------------------
def check_signal_group(x: Any, *, time: bool = False) -> Validity:
    """Check one signal group (instance or record); `time` applies the width-1 rule."""
    shape, parts = _record_parts(x)
    if parts is None:
        return shape
    return inspect_group(parts, time=time)


def check_signal_group_array(x: Any, *, time: bool = False) -> Validity:
    """Check a signal group array; a single group counts as an array of one."""
    if isinstance(x, SignalGroupArray):
        if x.time or not time:
            return VALID
        elements: list[Any] = list(x)
    else:
        elements = list(x) if _is_sequence(x) else [x]

    parts: list[GroupParts] = []
    bad: list[int] = []
    for i, element in enumerate(elements):
        shape, p = _record_parts(element)
        if not shape.is_candidate:
            return not_candidate("Not a signal group array.")
        check = inspect_group(p, time=time) if p is not None else shape
        if not check.is_candidate:
            return not_candidate(f"Not a signal group array: {check.message}")
        if not check.is_valid:
            bad.append(i)
        else:
            parts.append(p)  # type: ignore[arg-type]
    if bad:
        listed = ",".join(str(i) for i in bad)
        return invalid(f"Contains one or more invalid element(s): [{listed}].", InvalidSignalGroup)
    return inspect_homogeneity(parts, time=time)


# ---------------------------------------------------------------------------
# Datasets
# ---------------------------------------------------------------------------
def _dataset_parts(x: Any) -> tuple[Validity, dict[str, GroupParts] | None]:
    if isinstance(x, Dataset):
        return VALID, {k: g.as_parts() for k, g in x.groups.items()}
    if not isinstance(x, Mapping):
        return not_candidate(f"Not a dataset (got {type(x).__name__})."), None

    groups: dict[str, GroupParts] = {}
    for key, value in x.items():
        shape, parts = _record_parts(value)
        if shape.is_candidate and parts is None:
            # right shape, unreadable values
            return invalid(f"Contains invalid signal group(s): {{'{key}'}}.", InvalidDataset), None
        if parts is not None:
            groups[key] = parts
    return VALID, groups


def check_dataset(x: Any) -> Validity:
    """Check one dataset (instance or record)."""
    shape, groups = _dataset_parts(x)
    if groups is None:
        return shape
    return inspect_dataset(groups)


def check_dataset_array(x: Any) -> Validity:
    """Check a dataset array; a single dataset counts as an array of one."""
    if isinstance(x, DatasetArray):
        return VALID
    elements = list(x) if _is_sequence(x) else [x]

    all_groups: list[dict[str, GroupParts]] = []
    bad: list[int] = []
    for i, element in enumerate(elements):
        check = check_dataset(element)
        if not check.is_candidate:
            return not_candidate("Not a dataset array.")
        if not check.is_valid:
            bad.append(i)
            continue
        _, groups = _dataset_parts(element)
        all_groups.append(groups)  # type: ignore[arg-type]
    if bad:
        listed = ",".join(str(i) for i in bad)
        return invalid(f"Contains one or more invalid element(s): [{listed}].", InvalidDataset)
    return inspect_dataset_homogeneity(all_groups)


# ---- boolean shortcuts ----
def is_signal_group(x: Any, *, time: bool = False) -> bool:
    return check_signal_group(x, time=time).is_valid


def is_signal_group_array(x: Any, *, time: bool = False) -> bool:
    return check_signal_group_array(x, time=time).is_valid


def is_dataset(x: Any) -> bool:
    return check_dataset(x).is_valid


def is_dataset_array(x: Any) -> bool:
    return check_dataset_array(x).is_valid
