# enginesignals/core/mutators.py
"""
Selection, removal, copy and rename primitives.

Every function returns a new value. Name selectors that match nothing are
handled according to `missing`:

  - "raise":  ChannelNotFound
  - "ignore": log a warning and report the miss in the returned result
"""
from __future__ import annotations

import logging
from typing import Any, Iterable, NamedTuple, Sequence

import numpy as np

from .dataset import Dataset, DatasetArray
from .exceptions import ChannelNotFound, InvalidName, InvalidSignalGroup, ShapeError
from .names import is_valid_name, source_to_layer
from .resolver import find_name
from .rules import TIME
from .signal_group import SignalGroup, SignalGroupArray
from .value import SignalObject, collect_signals, require_object

logger = logging.getLogger(__name__)

MISSING_MODES = ("raise", "ignore")
REMOVE_MODES = ("drop", "blank")


class Selection(NamedTuple):
    group: SignalGroup | SignalGroupArray
    matched: tuple[bool, ...]
    index: tuple[int, ...]  # 0-based, -1 where unmatched


class Removal(NamedTuple):
    group: SignalGroup | SignalGroupArray
    matched: tuple[bool, ...]


class CopyResult(NamedTuple):
    target: SignalGroup | Dataset
    matched: tuple[bool, ...]


class Replacement(NamedTuple):
    obj: SignalObject
    matched: bool


def _check_missing(missing: str) -> None:
    if missing not in MISSING_MODES:
        raise ValueError(f"missing must be one of {MISSING_MODES}, got {missing!r}.")


def _report_unmatched(unmatched: Sequence[Any], missing: str, where: str) -> None:
    if not unmatched:
        return
    if missing == "raise":
        raise ChannelNotFound(f"The following selections were not found in the {where}: {list(unmatched)}.")
    logger.warning("The following selections were not found in the %s: %s", where, list(unmatched))


def _is_index_selector(selector: Any) -> bool:
    if isinstance(selector, np.ndarray):
        return np.issubdtype(selector.dtype, np.integer)
    return (
        isinstance(selector, (list, tuple))
        and len(selector) > 0
        and all(isinstance(s, (int, np.integer)) and not isinstance(s, bool) for s in selector)
    )


def _as_selector(selector: Any) -> tuple[list[Any], bool]:
    """(items, is_index) for a name, a list of names, or a list of indices."""
    if isinstance(selector, str):
        return [selector], False
    if _is_index_selector(selector):
        return [int(s) for s in selector], True
    if isinstance(selector, (list, tuple, np.ndarray)) and all(isinstance(s, str) for s in selector):
        return list(selector), False
    raise ShapeError("Invalid selector: expected a name, a list of names, or a list of indices.")


def _first_group(obj: SignalGroup | SignalGroupArray) -> SignalGroup:
    if isinstance(obj, SignalGroup):
        return obj
    if isinstance(obj, SignalGroupArray):
        require_object(obj)
        return obj[0]
    raise ShapeError(f"Works for signal groups only (got {type(obj).__name__}).")


def _apply(obj: SignalGroup | SignalGroupArray, fn) -> SignalGroup | SignalGroupArray:
    return fn(obj) if isinstance(obj, SignalGroup) else obj.map(fn)


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------
def select_from_group(selector: Any, group: SignalGroup | SignalGroupArray, *, missing: str = "raise") -> Selection:
    """
    Gather channels in selector order.

    Names resolve to their first matching channel, so a repeated name
    yields a repeated column. Integer selectors are 0-based column indices.
    """
    _check_missing(missing)
    first = _first_group(group)
    items, by_index = _as_selector(selector)

    index: list[int] = []
    for item in items:
        if by_index:
            index.append(item if 0 <= item < first.n_signals else -1)
        else:
            found = find_name(item, first)
            index.append(found[0] if found else -1)
    matched = tuple(i >= 0 for i in index)
    _report_unmatched([s for s, ok in zip(items, matched) if not ok], missing, "signal group")

    kept = [i for i in index if i >= 0]
    return Selection(_apply(group, lambda g: g.take(kept)), matched, tuple(index))


def select_from_dataset(selector: Any, data: Dataset | DatasetArray, *, missing: str = "raise") -> Selection:
    """Select channels from all non-Time groups of `data`, collected into one group."""
    if isinstance(data, Dataset):
        collected: SignalGroup | SignalGroupArray = collect_signals(data)
    elif isinstance(data, DatasetArray):
        require_object(data)
        collected = SignalGroupArray([collect_signals(ds) for ds in data])
    else:
        raise ShapeError(f"Works for datasets only (got {type(data).__name__}).")
    return select_from_group(selector, collected, missing=missing)


# ---------------------------------------------------------------------------
# Removal
# ---------------------------------------------------------------------------
def _blank_columns(group: SignalGroup, indices: Sequence[int]) -> SignalGroup:
    values = group.values.astype(np.result_type(group.values.dtype, np.float64))
    values[:, list(indices)] = np.nan
    blank = set(indices)
    return SignalGroup(
        values=values,
        layers={k: tuple("" if j in blank else nm for j, nm in enumerate(v)) for k, v in group.layers.items()},
        units=tuple("" if j in blank else u for j, u in enumerate(group.units)),
        descriptions=tuple("" if j in blank else d for j, d in enumerate(group.descriptions)),
    )


def remove_from_group(
    selector: Any,
    group: SignalGroup | SignalGroupArray,
    *,
    mode: str = "drop",
    missing: str = "raise",
) -> Removal:
    """
    Remove every channel matching each selector.

    mode:
      - "drop":  delete the columns
      - "blank": keep the columns but set values to NaN and clear names,
                 units and descriptions
    """
    _check_missing(missing)
    if mode not in REMOVE_MODES:
        raise ValueError(f"mode must be one of {REMOVE_MODES}, got {mode!r}.")
    first = _first_group(group)
    items, by_index = _as_selector(selector)

    hits: list[list[int]] = []
    for item in items:
        if by_index:
            hits.append([item] if 0 <= item < first.n_signals else [])
        else:
            hits.append(find_name(item, first))
    matched = tuple(bool(h) for h in hits)
    _report_unmatched([s for s, ok in zip(items, matched) if not ok], missing, "signal group")

    remove = sorted({i for h in hits for i in h})
    if mode == "drop":
        keep = [j for j in range(first.n_signals) if j not in set(remove)]
        out = _apply(group, lambda g: g.take(keep))
    else:
        out = _apply(group, lambda g: _blank_columns(g, remove))
    return Removal(out, matched)


# ---------------------------------------------------------------------------
# Copy
# ---------------------------------------------------------------------------
def _assign(group: SignalGroup, indices: Sequence[int], column: np.ndarray, units: str, description: str, dtype) -> SignalGroup:
    values = group.values.astype(dtype)
    values[:, list(indices)] = column.reshape(-1, 1)
    idx = set(indices)
    return group.with_values(values).with_units(
        tuple(units if j in idx else u for j, u in enumerate(group.units))
    ).with_descriptions(
        tuple(description if j in idx else d for j, d in enumerate(group.descriptions))
    )


def copy_signals(
    src: SignalGroup | Dataset,
    dst: SignalGroup | Dataset,
    names: str | Iterable[str],
    *,
    missing: str = "raise",
) -> CopyResult:
    """
    Copy data, units and description of each named source channel onto
    every matching channel of `dst`.

    `matched[k]` is True when names[k] was found in both objects.
    """
    _check_missing(missing)
    names = [names] if isinstance(names, str) else list(names)
    if not all(isinstance(n, str) for n in names):
        raise ShapeError("Input 'names' must be a list of strings.")
    if any(n == "" for n in names):
        raise InvalidName("Input 'names' cannot contain empty entries.")
    for which, obj in (("source", src), ("target", dst)):
        if not isinstance(obj, (SignalGroup, Dataset)):
            raise ShapeError(f"The {which} must be a signal group or a dataset (got {type(obj).__name__}).")

    if isinstance(src, Dataset):
        sel = select_from_dataset(names, src, missing=missing)
    else:
        sel = select_from_group(names, src, missing=missing)
    source: SignalGroup = sel.group  # type: ignore[assignment]

    dst_length = dst.n_samples if isinstance(dst, SignalGroup) else dst.data_length
    if source.n_samples != dst_length:
        raise InvalidSignalGroup(
            f"Source and target have incompatible data lengths ({source.n_samples} vs {dst_length})."
        )

    if isinstance(dst, SignalGroup):
        groups = {"": dst}
    else:
        groups = {k: g for k, g in dst.items() if k != TIME}
    dtype = np.result_type(*(g.values.dtype for g in groups.values()), source.values.dtype)

    matched: list[bool] = []
    unmatched_dst: list[str] = []
    col = 0
    for name, ok in zip(names, sel.matched):
        if not ok:
            matched.append(False)
            continue
        column = source.values[:, col]
        units, description = source.units[col], source.descriptions[col]
        col += 1

        hit = False
        for key, group in groups.items():
            idx = find_name(name, group)
            if idx:
                groups[key] = _assign(group, idx, column, units, description, dtype)
                hit = True
        matched.append(hit)
        if not hit:
            unmatched_dst.append(name)
    _report_unmatched(unmatched_dst, missing, "target")

    if isinstance(dst, SignalGroup):
        return CopyResult(groups[""], tuple(matched))
    if any(matched):
        # one dtype across groups
        groups = {k: g.with_values(g.values.astype(dtype)) for k, g in groups.items()}
    target = Dataset(groups={k: groups.get(k, g) for k, g in dst.items()}, meta=dict(dst.meta))
    return CopyResult(target, tuple(matched))


# ---------------------------------------------------------------------------
# Single-attribute replacement
# ---------------------------------------------------------------------------
def _replace(obj: SignalObject, name: str, fn, *, missing: str) -> Replacement:
    """Apply `fn(group, indices)` to every group containing `name`."""
    _check_missing(missing)
    require_object(obj)
    if not isinstance(name, str):
        raise ShapeError(f"Signal name must be a string (got {type(name).__name__}).")

    found = find_name(name, obj)
    if not found:
        _report_unmatched([name], missing, "object")
        return Replacement(obj, False)

    def edit_group(g: SignalGroup) -> SignalGroup:
        return fn(g, found)

    def edit_dataset(ds: Dataset) -> Dataset:
        groups = {k: (fn(g, found[k]) if k in found else g) for k, g in ds.items()}
        return Dataset(groups=groups, meta=dict(ds.meta))

    if isinstance(obj, (SignalGroup, SignalGroupArray)):
        out = _apply(obj, edit_group)
    elif isinstance(obj, Dataset):
        out = edit_dataset(obj)
    else:
        out = obj.map(edit_dataset)
    return Replacement(out, True)


def _set_at(seq: Sequence[str], indices: Sequence[int], value: str) -> tuple[str, ...]:
    idx = set(indices)
    return tuple(value if j in idx else s for j, s in enumerate(seq))


def rename_on_layer(obj: SignalObject, name: str, new_name: str, layer: str, *, missing: str = "raise") -> Replacement:
    """Rename every channel matching `name` (on any layer) to `new_name` on `layer`."""
    layer = source_to_layer(layer)
    if new_name and not is_valid_name(new_name):
        raise InvalidName(f"'{new_name}' is not a valid signal name.")

    def fn(g: SignalGroup, indices: Sequence[int]) -> SignalGroup:
        return g.with_layer(layer, _set_at(g.names(layer), indices, new_name))

    return _replace(obj, name, fn, missing=missing)


def replace_units(obj: SignalObject, name: str, units: str, *, missing: str = "raise") -> Replacement:
    if not isinstance(units, str):
        raise ShapeError("Invalid 'units' input.")
    return _replace(obj, name, lambda g, idx: g.with_units(_set_at(g.units, idx, units)), missing=missing)


def replace_description(obj: SignalObject, name: str, description: str, *, missing: str = "raise") -> Replacement:
    if not isinstance(description, str):
        raise ShapeError("Invalid 'description' input.")
    return _replace(
        obj, name, lambda g, idx: g.with_descriptions(_set_at(g.descriptions, idx, description)), missing=missing
    )


def change_signal_units(
    obj: SignalObject, name: str, factor: float, units: str, *, missing: str = "raise"
) -> Replacement:
    """Scale every channel matching `name` by `factor` and relabel its units."""
    if isinstance(factor, bool) or not isinstance(factor, (int, float, np.number)):
        raise ShapeError("Invalid 'factor' input.")
    if not isinstance(units, str):
        raise ShapeError("Invalid 'units' input.")

    def fn(g: SignalGroup, indices: Sequence[int]) -> SignalGroup:
        values = g.values.astype(np.result_type(g.values.dtype, np.float64))
        values[:, list(indices)] *= factor
        return g.with_values(values).with_units(_set_at(g.units, indices, units))

    if isinstance(obj, (Dataset, DatasetArray)) and find_name(name, obj):
        # scaled groups become float; keep one dtype across groups
        def as_float(ds: Dataset) -> Dataset:
            return ds.map_groups(
                lambda g: g.with_values(g.values.astype(np.result_type(g.values.dtype, np.float64))),
                include_time=False,
            )

        obj = as_float(obj) if isinstance(obj, Dataset) else obj.map(as_float)
    return _replace(obj, name, fn, missing=missing)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------
def build_time_group(
    group_or_n: SignalGroup | int,
    name: str = "Time",
    ts: Any = 1.0,
    units: str = "s",
    description: str = "Time vector",
    *,
    layers: Iterable[str] | None = None,
) -> SignalGroup:
    """
    Build a width-1 time group.

    `ts` is a sample period, a ``(t0, ts)`` pair, or a full time vector.
    The time group carries `name` on every layer of `group_or_n` (or on
    `layers` when a plain sample count is given).
    """
    if isinstance(group_or_n, SignalGroup):
        n = group_or_n.n_samples
        layer_keys = list(group_or_n.layer_names)
    elif isinstance(group_or_n, (int, np.integer)) and not isinstance(group_or_n, bool):
        n = int(group_or_n)
        layer_keys = [source_to_layer(lay) for lay in (layers or ["Default"])]
    else:
        raise ShapeError("Input #1 must be a signal group or a sample count.")
    if not is_valid_name(name):
        raise InvalidName(f"'{name}' is not a valid signal name.")

    ts_arr = np.asarray(ts, dtype=float)
    if ts_arr.ndim == 0:
        t = float(ts_arr) * np.arange(n)
    elif ts_arr.shape == (2,) and n != 2:
        t = ts_arr[0] + ts_arr[1] * np.arange(n)
    elif ts_arr.size == n:
        t = ts_arr.reshape(-1)
    else:
        raise ShapeError("Invalid 'ts' input: expected a period, a (t0, ts) pair, or a time vector.")

    return SignalGroup(
        values=t.reshape(-1, 1),
        layers={lay: (name,) for lay in layer_keys},
        units=(units,),
        descriptions=(description,),
    )


def merge_signal_groups(*groups: SignalGroup) -> SignalGroup:
    """Concatenate channels of groups with identical layers and lengths."""
    if not groups:
        raise ShapeError("At least one signal group is required.")
    for g in groups:
        if not isinstance(g, SignalGroup):
            raise ShapeError(f"One or more inputs is not a signal group (got {type(g).__name__}).")
    layers = groups[0].layer_names
    if any(g.layer_names != layers for g in groups[1:]):
        raise InvalidSignalGroup("Inputs have incompatible name layers.")
    if len({g.n_samples for g in groups}) > 1:
        raise InvalidSignalGroup("Inputs have incompatible signal lengths.")
    return SignalGroup(
        values=np.concatenate([g.values for g in groups], axis=1),
        layers={lay: tuple(nm for g in groups for nm in g.layers[lay]) for lay in layers},
        units=tuple(u for g in groups for u in g.units),
        descriptions=tuple(d for g in groups for d in g.descriptions),
    )
