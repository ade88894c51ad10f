# enginesignals/core/resolver.py
"""
Name queries across layers.

Every query accepts any `SignalObject`. Arrays are homogeneous in their
names, so queries on an array answer for its first element.
"""
from __future__ import annotations

import logging

import pandas as pd

from .. import config
from .dataset import Dataset
from .exceptions import ChannelNotFound, ShapeError
from .names import source_to_layer
from .rules import as_text
from .signal_group import SignalGroup
from .value import SignalObject, collect_signals, first_element

logger = logging.getLogger(__name__)


def _find_in_group(name: str, group: SignalGroup) -> list[int]:
    rows = group.names_rows()
    if name == "":
        return [k for k, row in enumerate(rows) if all(nm == "" for nm in row)]
    return [k for k, row in enumerate(rows) if name in row]


def find_name(name: str, obj: SignalObject) -> list[int] | dict[str, list[int]]:
    """
    Locate `name` on any layer.

    For a signal group returns the matching channel indices (0-based,
    ascending, one per channel). For a dataset returns ``{group: indices}``
    for the groups that contain a match, in group order.
    The empty name matches only channels that are unnamed on every layer.
    """
    if not isinstance(name, str):
        raise ShapeError(f"Signal name must be a string (got {type(name).__name__}).")
    element = first_element(obj)
    if isinstance(element, SignalGroup):
        return _find_in_group(name, element)

    found: dict[str, list[int]] = {}
    for group_name, group in element.items():
        idx = _find_in_group(name, group)
        if idx:
            found[group_name] = idx
    return found


def _flat_group(obj: SignalObject) -> SignalGroup:
    element = first_element(obj)
    if isinstance(element, Dataset):
        return collect_signals(element)
    return element


def names_matrix(obj: SignalObject) -> pd.DataFrame:
    """One row per channel, one column per layer; blanks are ""."""
    group = _flat_group(obj)
    return pd.DataFrame(
        {layer: [as_text(nm) for nm in names] for layer, names in group.layers.items()},
        index=pd.RangeIndex(group.n_signals, name="channel"),
        columns=list(group.layer_names),
    )


def default_names(
    obj: SignalObject,
    settings: config.Settings | None = None,
    *,
    default_layer: str | None = None,
) -> list[str]:
    """
    One display name per channel.

    The preferred layer is `default_layer`, else the configured
    ``settings.default_name_layer``, else the first layer. A channel without
    a name there takes its first non-empty name in layer order.
    """
    settings = settings or config.DEFAULT_SETTINGS
    group = _flat_group(obj)

    preferred = default_layer if default_layer is not None else settings.default_name_layer
    layer = source_to_layer(preferred) if preferred else ""
    if layer not in group.layers:
        if preferred:
            logger.debug("Default layer '%s' not present; using '%s'.", layer, group.layer_names[0])
        layer = group.layer_names[0]

    names = list(group.names(layer))
    nameless: list[int] = []
    for k, row in enumerate(group.names_rows()):
        if names[k]:
            continue
        names[k] = next((nm for nm in row if nm), "")
        if not names[k]:
            nameless.append(k)
    if nameless:
        logger.warning("No default names found for channels %s.", nameless)
    return names


def get_names(obj: SignalObject, layer: str) -> list[str]:
    """Non-empty names on `layer`, in channel order."""
    group = _flat_group(obj)
    return [nm for nm in group.names(layer) if nm]


def channel_names(obj: SignalObject, index: int) -> dict[str, str]:
    """All names of channel `index`, keyed by layer."""
    group = _flat_group(obj)
    if not -group.n_signals <= index < group.n_signals:
        raise ChannelNotFound(f"Channel index {index} is out of range (0..{group.n_signals - 1}).")
    return {layer: as_text(names[index]) for layer, names in group.layers.items()}


def describe_name(name: str, obj: SignalObject) -> str:
    """Readable report of where `name` occurs."""
    found = find_name(name, obj)
    if isinstance(found, list):
        found = {"": found} if found else {}
    if not found:
        return f"'{name}' not found."

    element = first_element(obj)
    lines = [f"'{name}' found:"]
    for group_name, indices in found.items():
        group = element if isinstance(element, SignalGroup) else element[group_name]
        for k in indices:
            layers = [layer for layer, names in group.layers.items() if names[k] == name] or ["(all blank)"]
            where = f"group '{group_name}', channel {k}" if group_name else f"channel {k}"
            lines.append(f"  {where}: {', '.join(layers)}")
    return "\n".join(lines)
