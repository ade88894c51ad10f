# enginesignals/core/dataset.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Mapping, Sequence, overload

import numpy as np

from .exceptions import GroupNotFound, InvalidDataset, ShapeError
from .names import is_valid_name
from .rules import TIME, inspect_dataset, inspect_dataset_homogeneity
from .signal_group import DATA_FIELDS, SignalGroup

# metadata fields that lead a canonical record, in this order
LEADING_META = ("casename", "pathnames", "start")
# metadata field that closes a canonical record
TRAILING_META = "source"


def canonical_field_order(meta_keys: Iterable[str], group_names: Iterable[str]) -> list[str]:
    """
    Canonical order of dataset fields: leading metadata, remaining metadata,
    Time, remaining groups (discovery order), and "source" last.
    """
    meta_keys = list(meta_keys)
    group_names = list(group_names)
    lead = [k for k in LEADING_META if k in meta_keys]
    rest = [k for k in meta_keys if k not in lead and k != TRAILING_META]
    groups = ([TIME] if TIME in group_names else []) + [g for g in group_names if g != TIME]
    tail = [TRAILING_META] if TRAILING_META in meta_keys else []
    return lead + rest + groups + tail


def _is_group_record(value: Any) -> bool:
    return isinstance(value, Mapping) and all(k in value for k in DATA_FIELDS)


def _meta_equal(a: Mapping[str, Any], b: Mapping[str, Any]) -> bool:
    if set(a) != set(b):
        return False
    for key in a:
        x, y = a[key], b[key]
        if isinstance(x, np.ndarray) or isinstance(y, np.ndarray):
            if not np.array_equal(np.asarray(x), np.asarray(y)):
                return False
        elif x != y:
            return False
    return True


@dataclass(frozen=True, slots=True, eq=False)
class Dataset:
    """
    Dataset = named signal groups sharing one time axis, plus metadata.

    Design goals:
    - dict-like access: ds["Engine"]
    - safe + predictable: immutable, validated on construction
    - composable transformations: add/drop/select return new Dataset
    """
    groups: Mapping[str, SignalGroup] = field(default_factory=dict, repr=False)
    meta: Mapping[str, Any] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        if not isinstance(self.groups, Mapping):
            raise ShapeError("Dataset.groups must be a mapping (e.g., dict).")
        meta = {} if self.meta is None else self.meta
        if not isinstance(meta, Mapping):
            raise ShapeError("Dataset.meta must be a mapping (e.g., dict).")

        groups: dict[str, SignalGroup] = {}
        for key, group in self.groups.items():
            if not isinstance(group, SignalGroup):
                raise ShapeError(f"Dataset.groups['{key}'] is not a SignalGroup instance.")
            if not is_valid_name(key):
                raise InvalidDataset(f"Signal group name '{key}' is not a valid identifier.")
            groups[key] = group

        normalized_meta: dict[str, Any] = {}
        for key, value in meta.items():
            if not is_valid_name(key):
                raise InvalidDataset(f"Metadata field '{key}' is not a valid identifier.")
            if key in groups:
                raise InvalidDataset(f"Metadata field '{key}' collides with a signal group.")
            if isinstance(value, SignalGroup):
                raise ShapeError(f"Metadata field '{key}' holds a SignalGroup; put it in groups.")
            normalized_meta[key] = value

        check = inspect_dataset({k: g.as_parts() for k, g in groups.items()})
        check.raise_if_invalid("Invalid dataset")

        object.__setattr__(self, "groups", groups)
        object.__setattr__(self, "meta", normalized_meta)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Dataset):
            return NotImplemented
        return list(self.groups.items()) == list(other.groups.items()) and _meta_equal(
            self.meta, other.meta
        )

    __hash__ = None  # type: ignore[assignment]

    # ---- dict-like API over signal groups ----
    def __len__(self) -> int:
        return len(self.groups)

    def __iter__(self) -> Iterator[str]:
        return iter(self.groups)

    def __contains__(self, name: object) -> bool:
        return name in self.groups

    def keys(self) -> Iterable[str]:
        return self.groups.keys()

    def items(self) -> Iterable[tuple[str, SignalGroup]]:
        return self.groups.items()

    def values(self) -> Iterable[SignalGroup]:
        return self.groups.values()

    def __getitem__(self, name: str) -> SignalGroup:
        try:
            return self.groups[name]
        except KeyError as e:
            raise GroupNotFound(f"Signal group '{name}' is not present in the dataset.") from e

    def get(self, name: str, default: SignalGroup | None = None) -> SignalGroup | None:
        return self.groups.get(name, default)

    # ---- derived properties ----
    @property
    def time(self) -> SignalGroup:
        return self.groups[TIME]

    @property
    def data_length(self) -> int:
        return self.time.n_samples

    @property
    def layer_names(self) -> tuple[str, ...]:
        return self.time.layer_names

    @property
    def signal_group_names(self) -> tuple[str, ...]:
        """Non-Time group names, in stored order."""
        return tuple(k for k in self.groups if k != TIME)

    # ---- transformations ----
    def add(self, name: str, group: SignalGroup, *, overwrite: bool = False) -> "Dataset":
        """
        Return a new Dataset with `group` stored under `name`.

        If overwrite=False and the group already exists, raises InvalidDataset.
        """
        if (name in self.groups) and not overwrite:
            raise InvalidDataset(f"Signal group '{name}' already exists (overwrite=False).")
        new_groups = dict(self.groups)
        new_groups[name] = group
        return Dataset(groups=new_groups, meta=dict(self.meta))

    def drop(self, names: str | Iterable[str], *, missing: str = "raise") -> "Dataset":
        """
        Drop one or more signal groups ("Time" cannot be dropped).

        missing:
          - "raise": error if any name is missing
          - "ignore": skip missing names
        """
        names_set = {names} if isinstance(names, str) else set(names)
        if TIME in names_set:
            raise InvalidDataset("The 'Time' signal group cannot be removed.")

        new_groups = dict(self.groups)
        for n in names_set:
            if n in new_groups:
                del new_groups[n]
            elif missing == "raise":
                raise GroupNotFound(f"Signal group '{n}' is not present in the dataset.")
        return Dataset(groups=new_groups, meta=dict(self.meta))

    def select(self, names: Iterable[str], *, missing: str = "raise") -> "Dataset":
        """
        Keep "Time" plus the given groups (order preserved by `names`).

        missing:
          - "raise": error if any name is missing
          - "ignore": skip missing names
        """
        selected: dict[str, SignalGroup] = {TIME: self.time}
        for n in names:
            if n in self.groups:
                selected[n] = self.groups[n]
            elif missing == "raise":
                raise GroupNotFound(f"Signal group '{n}' is not present in the dataset.")
        return Dataset(groups=selected, meta=dict(self.meta))

    def rename_group(self, old: str, new: str) -> "Dataset":
        if old not in self.groups:
            raise GroupNotFound(f"Signal group '{old}' is not present in the dataset.")
        if old == TIME:
            raise InvalidDataset("The 'Time' signal group cannot be renamed.")
        if new in self.groups or new in self.meta:
            raise InvalidDataset(f"Field '{new}' already exists.")
        new_groups = {(new if k == old else k): g for k, g in self.groups.items()}
        return Dataset(groups=new_groups, meta=dict(self.meta))

    def map_groups(self, fn, *, include_time: bool = True) -> "Dataset":
        """Apply `fn(group)` to every group (optionally skipping Time)."""
        new_groups = {
            k: (fn(g) if include_time or k != TIME else g) for k, g in self.groups.items()
        }
        return Dataset(groups=new_groups, meta=dict(self.meta))

    def with_meta(self, **fields: Any) -> "Dataset":
        new_meta = dict(self.meta)
        new_meta.update(fields)
        return Dataset(groups=dict(self.groups), meta=new_meta)

    # ---- record form ----
    def field_order(self) -> list[str]:
        """Stored order: metadata, signal groups, then "source" if present."""
        head = [k for k in self.meta if k != TRAILING_META]
        tail = [TRAILING_META] if TRAILING_META in self.meta else []
        return head + list(self.groups) + tail

    def is_canonical(self) -> bool:
        return self.field_order() == canonical_field_order(self.meta, self.groups)

    def to_record(self) -> dict[str, Any]:
        """Flat record in `field_order()`; signal groups as group records."""
        record: dict[str, Any] = {}
        for key in self.field_order():
            record[key] = self.groups[key].to_record() if key in self.groups else self.meta[key]
        return record

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Dataset":
        if not isinstance(record, Mapping):
            raise ShapeError("Not a dataset record (expected a mapping).")
        groups: dict[str, SignalGroup] = {}
        meta: dict[str, Any] = {}
        for key, value in record.items():
            if isinstance(value, SignalGroup):
                groups[key] = value
            elif _is_group_record(value):
                groups[key] = SignalGroup.from_record(value)
            else:
                meta[key] = value
        return cls(groups=groups, meta=meta)


@dataclass(frozen=True, slots=True)
class DatasetArray(Sequence[Dataset]):
    """
    Ordered, homogeneous collection of Datasets.

    Elements share group names, collected names and units, and time units;
    data lengths may differ.
    """
    items: Sequence[Dataset] = ()

    def __post_init__(self) -> None:
        if isinstance(self.items, Dataset) or not isinstance(self.items, Iterable):
            raise ShapeError("DatasetArray.items must be a sequence of Dataset.")
        items = tuple(self.items)
        for i, ds in enumerate(items):
            if not isinstance(ds, Dataset):
                raise ShapeError(f"Not a dataset array: element #{i} is {type(ds).__name__}.")

        check = inspect_dataset_homogeneity(
            [{k: g.as_parts() for k, g in ds.groups.items()} for ds in items]
        )
        check.raise_if_invalid()
        object.__setattr__(self, "items", items)

    def __len__(self) -> int:
        return len(self.items)

    @overload
    def __getitem__(self, index: int) -> Dataset: ...

    @overload
    def __getitem__(self, index: slice) -> "DatasetArray": ...

    def __getitem__(self, index):
        if isinstance(index, slice):
            return DatasetArray(self.items[index])
        return self.items[index]

    def __iter__(self) -> Iterator[Dataset]:
        return iter(self.items)

    @property
    def layer_names(self) -> tuple[str, ...]:
        return self.items[0].layer_names if self.items else ()

    @property
    def data_lengths(self) -> list[int]:
        return [ds.data_length for ds in self.items]

    def map(self, fn) -> "DatasetArray":
        return DatasetArray([fn(ds) for ds in self.items])
