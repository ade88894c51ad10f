# enginesignals/core/value.py
"""
The four value kinds handled by resolvers and mutators, and helpers that
dispatch over them.
"""
from __future__ import annotations

from typing import Callable, Union

import numpy as np

from .dataset import Dataset, DatasetArray
from .exceptions import InvalidDataset, ShapeError
from .rules import TIME
from .signal_group import SignalGroup, SignalGroupArray

SignalObject = Union[SignalGroup, SignalGroupArray, Dataset, DatasetArray]

GroupFn = Callable[[SignalGroup], SignalGroup]


def require_object(obj: object) -> None:
    if not isinstance(obj, (SignalGroup, SignalGroupArray, Dataset, DatasetArray)):
        raise ShapeError(
            f"Works for signal groups, datasets, and their arrays only (got {type(obj).__name__})."
        )
    if isinstance(obj, (SignalGroupArray, DatasetArray)) and len(obj) == 0:
        raise ShapeError("Input array is empty.")


def first_element(obj: SignalObject) -> SignalGroup | Dataset:
    """Representative element (arrays are homogeneous)."""
    require_object(obj)
    if isinstance(obj, (SignalGroupArray, DatasetArray)):
        return obj[0]
    return obj


def layers_of(obj: SignalObject) -> tuple[str, ...]:
    return first_element(obj).layer_names


def data_length(obj: SignalObject) -> int | list[int]:
    """Row count (a list of row counts for arrays)."""
    require_object(obj)
    if isinstance(obj, SignalGroup):
        return obj.n_samples
    if isinstance(obj, Dataset):
        return obj.data_length
    if isinstance(obj, SignalGroupArray):
        return [g.n_samples for g in obj]
    return obj.data_lengths


def num_signals(obj: SignalObject) -> int:
    """Channel count (all non-Time groups for datasets)."""
    element = first_element(obj)
    if isinstance(element, Dataset):
        return collect_signals(element).n_signals
    return element.n_signals


def collect_signals(data: Dataset) -> SignalGroup:
    """Concatenate every non-Time group of `data` into one signal group."""
    if not isinstance(data, Dataset):
        raise ShapeError(f"Works for datasets only (got {type(data).__name__}).")
    members = [g for name, g in data.items() if name != TIME]
    if not members:
        raise InvalidDataset("Input dataset has no non-Time signal groups.")
    layers = members[0].layer_names
    return SignalGroup(
        values=np.concatenate([g.values for g in members], axis=1),
        layers={layer: tuple(nm for g in members for nm in g.layers[layer]) for layer in layers},
        units=tuple(u for g in members for u in g.units),
        descriptions=tuple(d for g in members for d in g.descriptions),
    )


def map_groups(obj: SignalObject, fn: GroupFn, *, time_fn: GroupFn | None = None) -> SignalObject:
    """
    Apply `fn` to every signal group contained in `obj`.

    Time groups (of datasets, or of a time SignalGroupArray) go through
    `time_fn` when given, otherwise through `fn`.
    """
    require_object(obj)
    tfn = time_fn or fn
    if isinstance(obj, SignalGroup):
        return fn(obj)
    if isinstance(obj, SignalGroupArray):
        return obj.map(tfn if obj.time else fn)
    if isinstance(obj, Dataset):
        return Dataset(
            groups={k: (tfn(g) if k == TIME else fn(g)) for k, g in obj.items()},
            meta=dict(obj.meta),
        )
    return obj.map(lambda ds: map_groups(ds, fn, time_fn=time_fn))
