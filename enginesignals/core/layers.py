# enginesignals/core/layers.py
"""
Adding, removing and ordering name layers.

New layers are filled from a `LookupTable` when one is given: each channel's
names on the layers the table also knows form a key tuple, and the first
table row with an equal tuple supplies the new name.
"""
from __future__ import annotations

import logging
from typing import Iterable, NamedTuple

from .. import config
from .dataset import LEADING_META, TRAILING_META, Dataset
from .exceptions import InvalidDataset, InvalidSignalGroup, LayerNotFound
from .lookup import LookupTable
from .names import as_layer_list, source_to_layer
from .rules import TIME
from .signal_group import SignalGroup
from .value import SignalObject, first_element, layers_of, map_groups, require_object

logger = logging.getLogger(__name__)


class LayerResult(NamedTuple):
    obj: SignalObject
    unmatched: dict[str, list[tuple[str, ...]]]


def _content_error(obj: SignalObject) -> type[InvalidSignalGroup] | type[InvalidDataset]:
    return InvalidSignalGroup if isinstance(first_element(obj), SignalGroup) else InvalidDataset


# ---------------------------------------------------------------------------
# Adding layers
# ---------------------------------------------------------------------------
def _add_blank_layer(obj: SignalObject, layer: str) -> SignalObject:
    def blank(g: SignalGroup) -> SignalGroup:
        return g.with_layer(layer, ("",) * g.n_signals)

    def copy_time_name(g: SignalGroup) -> SignalGroup:
        return g.with_layer(layer, g.names(g.layer_names[0]))

    if isinstance(first_element(obj), Dataset):
        return map_groups(obj, blank, time_fn=copy_time_name)
    return map_groups(obj, blank)


def _lookup_names(
    group: SignalGroup,
    keys: list[str],
    table: dict[tuple[str, ...], str],
    min_overlap: int,
) -> tuple[tuple[str, ...], list[tuple[str, ...]]]:
    names: list[str] = []
    unmatched: list[tuple[str, ...]] = []
    columns = [group.names(k) for k in keys]
    for j in range(group.n_signals):
        key = tuple(col[j] for col in columns)
        overlap = sum(1 for nm in key if nm)
        if overlap >= min_overlap and key in table:
            names.append(table[key])
        else:
            names.append("")
            unmatched.append(key)
    return tuple(names), unmatched


def _populate(
    obj: SignalObject,
    layer: str,
    lookup: LookupTable,
    min_overlap: int,
) -> tuple[SignalObject, list[tuple[str, ...]]]:
    present = [lay for lay in layers_of(obj) if lay != layer]
    keys = [lay for lay in present if lookup.has_layer(lay)]

    table: dict[tuple[str, ...], str] = {}
    for key, new_name in zip(lookup.rows(keys), lookup.column(layer)):
        table.setdefault(key, new_name)  # first row wins

    element = first_element(obj)
    if isinstance(element, Dataset):
        group_items = [(name, g) for name, g in element.items() if name != TIME]
    else:
        group_items = [("", element)]

    new_names: dict[str, tuple[str, ...]] = {}
    unmatched: list[tuple[str, ...]] = []
    for name, group in group_items:
        new_names[name], missed = _lookup_names(group, keys, table, min_overlap)
        if missed:
            where = f" in group '{name}'" if name else ""
            logger.warning(
                "These name combination(s)%s are not recognized: %s. "
                "Leaving the corresponding entry(ies) in layer '%s' blank.",
                where, missed, layer,
            )
        unmatched.extend(missed)

    if isinstance(element, Dataset):
        def fill(ds: Dataset) -> Dataset:
            groups = {
                k: (g if k == TIME else g.with_layer(layer, new_names[k])) for k, g in ds.items()
            }
            return Dataset(groups=groups, meta=dict(ds.meta))

        obj = fill(obj) if isinstance(obj, Dataset) else obj.map(fill)
    else:
        obj = map_groups(obj, lambda g: g.with_layer(layer, new_names[""]))
    return obj, unmatched


def add_layer_report(
    obj: SignalObject,
    layers: str | Iterable[str],
    *,
    lookup: LookupTable | None = None,
    use_lookup: bool = True,
    min_overlap: int | None = None,
    settings: config.Settings | None = None,
) -> LayerResult:
    """
    Add name layers to `obj`, reporting unmatched key tuples per layer.

    Layers already present are skipped. Layers known to `lookup` are added
    first so their lookups are not keyed on blank layers. With
    ``use_lookup=False`` (or no table) new layers are left blank. Time
    groups copy their existing time name onto the new layer.
    """
    require_object(obj)
    settings = settings or config.DEFAULT_SETTINGS
    if min_overlap is None:
        min_overlap = settings.lookup_min_overlap
    table = lookup if use_lookup else None

    selections = as_layer_list(layers)
    if table is not None:
        selections = [s for s in selections if table.has_layer(s)] + [
            s for s in selections if not table.has_layer(s)
        ]

    unmatched: dict[str, list[tuple[str, ...]]] = {}
    for layer in selections:
        present = layers_of(obj)
        if layer in present:
            continue
        obj = _add_blank_layer(obj, layer)
        if table is None or not table.has_layer(layer):
            continue
        if not any(table.has_layer(p) for p in present):
            logger.debug("No layer of the object is registered; '%s' left blank.", layer)
            continue
        obj, missed = _populate(obj, layer, table, min_overlap)
        if missed:
            unmatched[layer] = missed
        obj = reorder_fields(obj, table)
    return LayerResult(obj, unmatched)


def add_layer(
    obj: SignalObject,
    layers: str | Iterable[str],
    *,
    lookup: LookupTable | None = None,
    use_lookup: bool = True,
    min_overlap: int | None = None,
    settings: config.Settings | None = None,
) -> SignalObject:
    """Add name layers to `obj` (see `add_layer_report`)."""
    return add_layer_report(
        obj,
        layers,
        lookup=lookup,
        use_lookup=use_lookup,
        min_overlap=min_overlap,
        settings=settings,
    ).obj


# ---------------------------------------------------------------------------
# Removing / renaming layers
# ---------------------------------------------------------------------------
def remove_layer(obj: SignalObject, layers: str | Iterable[str]) -> SignalObject:
    """Remove name layers from every contained group; at least one must remain."""
    require_object(obj)
    drop = as_layer_list(layers)
    present = layers_of(obj)
    missing = [lay for lay in drop if lay not in present]
    if missing:
        raise LayerNotFound(f"Name layer(s) {missing} not present.")
    if set(present) <= set(drop):
        raise _content_error(obj)("Removing all existing name layers is not permitted.")
    return map_groups(obj, lambda g: g.without_layers(drop))


def remove_layers_except(obj: SignalObject, layers: str | Iterable[str]) -> SignalObject:
    """Keep only `layers` (which must all be present)."""
    require_object(obj)
    keep = as_layer_list(layers)
    present = layers_of(obj)
    missing = [lay for lay in keep if lay not in present]
    if missing:
        raise LayerNotFound(f"Name layer(s) {missing} not present.")
    drop = [lay for lay in present if lay not in keep]
    if not drop:
        return obj
    return remove_layer(obj, drop)


def rename_layer(obj: SignalObject, old: str, new: str) -> SignalObject:
    require_object(obj)
    old, new = source_to_layer(old), source_to_layer(new)
    if old == new:
        return obj
    return map_groups(obj, lambda g: g.rename_layer(old, new))


def reconcile_layers(
    *objs: SignalObject,
    lookup: LookupTable | None = None,
    use_lookup: bool = True,
    min_overlap: int | None = None,
    settings: config.Settings | None = None,
) -> tuple[SignalObject, ...]:
    """Give every input the union of all their layers (added in sorted order)."""
    for obj in objs:
        require_object(obj)
    union = sorted({lay for obj in objs for lay in layers_of(obj)})

    out = []
    for k, obj in enumerate(objs):
        logger.info("Processing dataset #%d", k + 1)
        out.append(
            add_layer(
                obj,
                union,
                lookup=lookup,
                use_lookup=use_lookup,
                min_overlap=min_overlap,
                settings=settings,
            )
        )
    return tuple(out)


# ---------------------------------------------------------------------------
# Canonical order
# ---------------------------------------------------------------------------
def _layer_order(present: Iterable[str], lookup: LookupTable | None) -> list[str]:
    present = list(present)
    if lookup is None:
        return present
    known = [lay for lay in lookup.layers if lay in present]
    return known + [lay for lay in present if lay not in known]


def _canonical_dataset(ds: Dataset, lookup: LookupTable | None) -> Dataset:
    order = _layer_order(ds.layer_names, lookup)
    groups = {TIME: ds.time.with_layer_order(order)}
    for name, group in ds.items():
        if name != TIME:
            groups[name] = group.with_layer_order(order)

    lead = [k for k in LEADING_META if k in ds.meta]
    rest = [k for k in ds.meta if k not in lead and k != TRAILING_META]
    tail = [TRAILING_META] if TRAILING_META in ds.meta else []
    meta = {k: ds.meta[k] for k in lead + rest + tail}
    return Dataset(groups=groups, meta=meta)


def reorder_fields(obj: SignalObject, lookup: LookupTable | None = None) -> SignalObject:
    """
    Canonical field order.

    Layers follow the lookup table's layer order when given (unregistered
    layers after, in input order). Datasets additionally order metadata as
    casename, pathnames, start, other metadata, and "source" last, with
    Time first among the signal groups.
    """
    element = first_element(obj)
    if isinstance(element, Dataset):
        if isinstance(obj, Dataset):
            return _canonical_dataset(obj, lookup)
        return obj.map(lambda ds: _canonical_dataset(ds, lookup))
    order = _layer_order(element.layer_names, lookup)
    return map_groups(obj, lambda g: g.with_layer_order(order))
