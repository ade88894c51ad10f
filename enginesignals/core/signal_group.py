# enginesignals/core/signal_group.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Mapping, Sequence, overload

import numpy as np

from .exceptions import InvalidSignalGroup, LayerNotFound, ShapeError
from .names import as_layer_list, is_layer_name, source_to_layer
from .rules import GroupParts, as_text, inspect_group, inspect_homogeneity, names_rows

VALUES = "Values"
UNITS = "Units"
DESCRIPTIONS = "Descriptions"
DATA_FIELDS = (VALUES, UNITS, DESCRIPTIONS)


def _as_names(seq: Any) -> Any:
    # leave non-sequences untouched so the content rules can report them
    if isinstance(seq, (list, tuple, np.ndarray)):
        return tuple(as_text(e) for e in seq)
    return seq


def _as_values(values: Any) -> np.ndarray:
    try:
        v = np.array(values, copy=True)
    except (TypeError, ValueError) as e:
        raise InvalidSignalGroup(f"The 'Values' field cannot be converted to an array: {e}") from e
    if v.ndim == 1:
        v = v.reshape(-1, 1)
    return v


@dataclass(frozen=True, slots=True, eq=False)
class SignalGroup:
    """
    A rectangular block of same-length channels with aliased names.

    - values: N x M numeric array (read-only private copy)
    - layers: ordered mapping layer -> M names ("" = not named on that layer)
    - units, descriptions: M strings each

    Layer keys may be given in source form ("Ecu") and are stored in layer
    form ("EcuNames"). Construction validates every content rule.
    """
    values: np.ndarray = field(repr=False)
    layers: Mapping[str, Sequence[str]] = field(default_factory=dict)
    units: Sequence[str] | None = None
    descriptions: Sequence[str] | None = None

    def __post_init__(self) -> None:
        values = _as_values(self.values)
        n = values.shape[1] if values.ndim == 2 else 0

        if not isinstance(self.layers, Mapping):
            raise ShapeError("SignalGroup.layers must be a mapping (layer -> names).")
        if not self.layers:
            raise ShapeError("Name fields are missing. At least one name layer is required.")

        layers: dict[str, Any] = {}
        for key, names in self.layers.items():
            layer = source_to_layer(key)
            if layer in layers:
                raise InvalidSignalGroup(f"Name layer '{layer}' is given more than once.")
            layers[layer] = _as_names(names)

        units = ("",) * n if self.units is None else _as_names(self.units)
        descriptions = ("",) * n if self.descriptions is None else _as_names(self.descriptions)

        check = inspect_group(GroupParts(values, layers, units, descriptions))
        check.raise_if_invalid("Invalid signal group")

        values.flags.writeable = False
        object.__setattr__(self, "values", values)
        object.__setattr__(self, "layers", layers)
        object.__setattr__(self, "units", units)
        object.__setattr__(self, "descriptions", descriptions)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SignalGroup):
            return NotImplemented
        if list(self.layers.items()) != list(other.layers.items()):
            return False
        if self.units != other.units or self.descriptions != other.descriptions:
            return False
        if self.values.shape != other.values.shape:
            return False
        if np.issubdtype(self.values.dtype, np.inexact) or np.issubdtype(self.values.dtype, np.datetime64):
            return bool(np.array_equal(self.values, other.values, equal_nan=True))
        return bool(np.array_equal(self.values, other.values))

    __hash__ = None  # type: ignore[assignment]

    # ---- shape ----
    @property
    def n_samples(self) -> int:
        return int(self.values.shape[0])

    @property
    def n_signals(self) -> int:
        return int(self.values.shape[1])

    @property
    def layer_names(self) -> tuple[str, ...]:
        return tuple(self.layers)

    def has_layer(self, layer: str) -> bool:
        return source_to_layer(layer) in self.layers

    def names(self, layer: str) -> tuple[str, ...]:
        key = source_to_layer(layer)
        try:
            return tuple(self.layers[key])
        except KeyError as e:
            raise LayerNotFound(f"Name layer '{key}' is not present in the signal group.") from e

    def names_rows(self) -> list[tuple[str, ...]]:
        return names_rows(self.as_parts())

    def as_parts(self) -> GroupParts:
        return GroupParts(self.values, self.layers, self.units, self.descriptions)

    # ---- transformations (always return a new group) ----
    def _derive(self, **changes: Any) -> "SignalGroup":
        kwargs = {
            "values": self.values,
            "layers": dict(self.layers),
            "units": self.units,
            "descriptions": self.descriptions,
        }
        kwargs.update(changes)
        return SignalGroup(**kwargs)

    def take(self, indices: Iterable[int]) -> "SignalGroup":
        """Gather columns `indices` (repeats allowed, order preserved)."""
        idx = np.asarray(list(indices), dtype=int)
        return self._derive(
            values=np.take(self.values, idx, axis=1),
            layers={k: tuple(v[i] for i in idx) for k, v in self.layers.items()},
            units=tuple(self.units[i] for i in idx),
            descriptions=tuple(self.descriptions[i] for i in idx),
        )

    def with_layer(self, layer: str, names: Sequence[str]) -> "SignalGroup":
        """Add (at the end) or replace one name layer."""
        layers = dict(self.layers)
        layers[source_to_layer(layer)] = tuple(names)
        return self._derive(layers=layers)

    def without_layers(self, layers: str | Iterable[str]) -> "SignalGroup":
        drop = set(as_layer_list(layers))
        missing = drop - set(self.layers)
        if missing:
            raise LayerNotFound(f"Name layer(s) {sorted(missing)} not present in the signal group.")
        kept = {k: v for k, v in self.layers.items() if k not in drop}
        if not kept:
            raise InvalidSignalGroup("Removing all existing name layers is not permitted.")
        return self._derive(layers=kept)

    def rename_layer(self, old: str, new: str) -> "SignalGroup":
        """Rename one layer in place (position kept)."""
        old, new = source_to_layer(old), source_to_layer(new)
        if old not in self.layers:
            raise LayerNotFound(f"Name layer '{old}' is not present in the signal group.")
        if new != old and new in self.layers:
            raise InvalidSignalGroup(f"Name layer '{new}' already exists.")
        return self._derive(layers={(new if k == old else k): v for k, v in self.layers.items()})

    def with_layer_order(self, order: Sequence[str]) -> "SignalGroup":
        order = as_layer_list(order)
        if sorted(order) != sorted(self.layers):
            raise InvalidSignalGroup(
                f"Layer order {order} is not a permutation of {list(self.layers)}."
            )
        return self._derive(layers={k: self.layers[k] for k in order})

    def with_values(self, values: Any) -> "SignalGroup":
        return self._derive(values=values)

    def with_units(self, units: Sequence[str]) -> "SignalGroup":
        return self._derive(units=units)

    def with_descriptions(self, descriptions: Sequence[str]) -> "SignalGroup":
        return self._derive(descriptions=descriptions)

    def add_signal(
        self,
        name: str,
        x: Any = None,
        units: str = "",
        description: str = "",
        layer: str | None = None,
    ) -> "SignalGroup":
        """
        Append one channel named `name` on `layer` (default: first layer).

        `x` may be None (NaN column), a scalar (repeated), or a length-N vector.
        The new channel is blank on every other layer.
        """
        key = source_to_layer(layer) if layer is not None else self.layer_names[0]
        if key not in self.layers:
            raise LayerNotFound(f"Name layer '{key}' is not present in the signal group.")

        n = self.n_samples
        if x is None:
            col = np.full((n, 1), np.nan)
        else:
            col = np.asarray(x, dtype=float) if np.ndim(x) == 0 else np.asarray(x)
            if col.ndim == 0:
                col = np.full((n, 1), col)
            col = col.reshape(-1, 1) if col.ndim == 1 else col
            if col.shape != (n, 1):
                raise InvalidSignalGroup(f"Signal '{name}' has shape {col.shape}, expected ({n}, 1).")

        layers = {
            k: tuple(v) + ((name,) if k == key else ("",))
            for k, v in self.layers.items()
        }
        return self._derive(
            values=np.concatenate([self.values, col], axis=1),
            layers=layers,
            units=tuple(self.units) + (units,),
            descriptions=tuple(self.descriptions) + (description,),
        )

    @classmethod
    def from_signal(
        cls,
        name: str,
        x: Any,
        units: str = "",
        description: str = "",
        layer: str = "Default",
    ) -> "SignalGroup":
        """Build a single-channel group."""
        return cls(
            values=np.asarray(x).reshape(-1, 1),
            layers={layer: (name,)},
            units=(units,),
            descriptions=(description,),
        )

    # ---- record form ----
    def to_record(self) -> dict[str, Any]:
        """Flat record: one key per layer, then Values / Units / Descriptions."""
        record: dict[str, Any] = {k: list(v) for k, v in self.layers.items()}
        record[VALUES] = self.values.copy()
        record[UNITS] = list(self.units)
        record[DESCRIPTIONS] = list(self.descriptions)
        return record

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "SignalGroup":
        if not isinstance(record, Mapping):
            raise ShapeError("Not a signal group record (expected a mapping).")
        for key in DATA_FIELDS:
            if key not in record:
                raise ShapeError(f"The '{key}' field is missing.")
        extra = [k for k in record if k not in DATA_FIELDS and not is_layer_name(k)]
        if extra:
            raise ShapeError(f"Contains one or more unrecognized fields: {extra}.")
        layers = {k: v for k, v in record.items() if k not in DATA_FIELDS}
        return cls(
            values=record[VALUES],
            layers=layers,
            units=record[UNITS],
            descriptions=record[DESCRIPTIONS],
        )


@dataclass(frozen=True, slots=True)
class SignalGroupArray(Sequence[SignalGroup]):
    """
    Ordered, homogeneous collection of SignalGroups.

    All elements share the same layers, names matrix and per-channel units.
    With time=True every element is a width-1 group with uniform time units.
    """
    items: Sequence[SignalGroup] = ()
    time: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.items, SignalGroup) or not isinstance(self.items, Iterable):
            raise ShapeError("SignalGroupArray.items must be a sequence of SignalGroup.")
        items = tuple(self.items)
        for i, g in enumerate(items):
            if not isinstance(g, SignalGroup):
                raise ShapeError(f"Not a signal group array: element #{i} is {type(g).__name__}.")
            if self.time and g.n_signals != 1:
                raise ShapeError(f"Element #{i}: 'Time' signal groups must contain a single data column.")

        check = inspect_homogeneity([g.as_parts() for g in items], time=self.time)
        check.raise_if_invalid()
        object.__setattr__(self, "items", items)

    def __len__(self) -> int:
        return len(self.items)

    @overload
    def __getitem__(self, index: int) -> SignalGroup: ...

    @overload
    def __getitem__(self, index: slice) -> "SignalGroupArray": ...

    def __getitem__(self, index):
        if isinstance(index, slice):
            return SignalGroupArray(self.items[index], time=self.time)
        return self.items[index]

    def __iter__(self) -> Iterator[SignalGroup]:
        return iter(self.items)

    @property
    def layer_names(self) -> tuple[str, ...]:
        return self.items[0].layer_names if self.items else ()

    def map(self, fn) -> "SignalGroupArray":
        return SignalGroupArray([fn(g) for g in self.items], time=self.time)
