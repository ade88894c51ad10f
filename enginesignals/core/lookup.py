# enginesignals/core/lookup.py
"""
In-memory name lookup table.

Built once (see `enginesignals.io.name_tables`) and read-only afterwards,
so one instance can be shared freely.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, NamedTuple, Sequence

from .exceptions import ChannelNotFound, InvalidName, LayerNotFound, SchemaViolationError
from .names import is_valid_name, source_to_layer


class SourceEntry(NamedTuple):
    """One row of a source tab. `factor` is None for "no fixed factor"."""

    group: str
    name: str
    factor: float | None = None
    units: str = ""
    description: str = ""


@dataclass(frozen=True, slots=True)
class LookupTable:
    """
    groups:         group -> layer -> ordered names (row-aligned per group)
    layers:         every layer, in table order (layer form)
    source_type_of: layer -> source type ("" when the layer has none)
    source_tabs:    source type -> entries of its tab
    """
    groups: Mapping[str, Mapping[str, Sequence[str]]]
    layers: Sequence[str]
    source_type_of: Mapping[str, str] = field(default_factory=dict)
    source_tabs: Mapping[str, Sequence[SourceEntry]] = field(default_factory=dict)
    _index: Mapping[str, Mapping[str, SourceEntry]] = field(
        init=False, repr=False, compare=False, default_factory=dict
    )

    def __post_init__(self) -> None:
        errors: list[str] = []

        layers: list[str] = []
        for layer in self.layers:
            try:
                layers.append(source_to_layer(layer))
            except InvalidName:
                errors.append(f"Invalid layer header: '{layer}'.")
        if len(set(layers)) != len(layers):
            errors.append("Repeated layer headers.")

        groups: dict[str, dict[str, tuple[str, ...]]] = {}
        for group, columns in self.groups.items():
            if not is_valid_name(group):
                errors.append(f"Invalid group name: '{group}'.")
            cols = {source_to_layer(k): tuple(v) for k, v in columns.items() if is_valid_name(k)}
            if sorted(cols) != sorted(layers):
                errors.append(f"Group '{group}': layers do not match the table layers.")
                continue
            lengths = {len(v) for v in cols.values()}
            if len(lengths) > 1:
                errors.append(f"Group '{group}': name columns are not row-aligned.")
            bad = sorted({nm for v in cols.values() for nm in v if nm and not is_valid_name(nm)})
            if bad:
                errors.append(f"Group '{group}': invalid signal names: {bad}.")
            groups[group] = {layer: cols[layer] for layer in layers}

        source_type_of: dict[str, str] = {}
        for layer in layers:
            key = next((k for k in self.source_type_of if _same_layer(k, layer)), None)
            source_type_of[layer] = (self.source_type_of.get(key) or "") if key else ""

        tabs: dict[str, tuple[SourceEntry, ...]] = {}
        index: dict[str, dict[str, SourceEntry]] = {}
        for tab, entries in self.source_tabs.items():
            entries = tuple(SourceEntry(*e) for e in entries)
            seen: dict[str, SourceEntry] = {}
            repeated: list[str] = []
            for e in entries:
                if not is_valid_name(e.name):
                    errors.append(f"Source tab '{tab}': invalid signal name: '{e.name}'.")
                elif e.name in seen:
                    repeated.append(e.name)
                else:
                    seen[e.name] = e
            if repeated:
                errors.append(f"Source tab '{tab}': repeated signal names: {sorted(set(repeated))}.")
            tabs[tab] = entries
            index[tab] = seen

        if errors:
            raise SchemaViolationError(errors)

        object.__setattr__(self, "layers", tuple(layers))
        object.__setattr__(self, "groups", groups)
        object.__setattr__(self, "source_type_of", source_type_of)
        object.__setattr__(self, "source_tabs", tabs)
        object.__setattr__(self, "_index", index)

    # ---- queries ----
    def has_layer(self, layer: str) -> bool:
        return source_to_layer(layer) in self.layers

    def rows(self, layers: Iterable[str] | None = None) -> list[tuple[str, ...]]:
        """
        Every body row across groups, one tuple per row.

        Columns follow table layer order, or `layers` when given.
        """
        cols = self.layers if layers is None else [self._require(layer) for layer in layers]
        out: list[tuple[str, ...]] = []
        for columns in self.groups.values():
            n = len(next(iter(columns.values()), ()))
            out.extend(tuple(columns[c][k] for c in cols) for k in range(n))
        return out

    def column(self, layer: str) -> list[str]:
        """All names of `layer`, rows of every group concatenated."""
        key = self._require(layer)
        return [nm for columns in self.groups.values() for nm in columns[key]]

    def source_type(self, layer: str) -> str:
        return self.source_type_of[self._require(layer)]

    def source_entry(self, layer: str, name: str) -> SourceEntry:
        tab = self.source_type(layer)
        try:
            return self._index[tab][name]
        except KeyError as e:
            raise ChannelNotFound(
                f"Signal '{name}' is not registered for layer '{source_to_layer(layer)}'."
            ) from e

    def conversion(self, layer: str, name: str) -> tuple[float | None, str]:
        """(factor, units) registered for `name` on `layer`."""
        entry = self.source_entry(layer, name)
        return entry.factor, entry.units

    def _require(self, layer: str) -> str:
        key = source_to_layer(layer)
        if key not in self.layers:
            raise LayerNotFound(f"Name layer '{key}' is not registered in the lookup table.")
        return key


def _same_layer(key: str, layer: str) -> bool:
    return is_valid_name(key) and source_to_layer(key) == layer
