# enginesignals/core/names.py
"""
Name-layer codec.

A *source* is a bare identifier such as ``"Ecu"``; its name *layer* is the
same identifier with the ``"Names"`` suffix (``"EcuNames"``). Signal groups
store one name array per layer.
"""
from __future__ import annotations

import re
from typing import Iterable

from .exceptions import InvalidName

LAYER_SUFFIX = "Names"

NAME_PATTERN = re.compile(r"^[A-Za-z]\w*$")
_LAYER_PATTERN = re.compile(r"^[A-Za-z]\w*" + LAYER_SUFFIX + "$")


def is_valid_name(name: object) -> bool:
    return isinstance(name, str) and NAME_PATTERN.match(name) is not None


def is_layer_name(name: object) -> bool:
    return isinstance(name, str) and _LAYER_PATTERN.match(name) is not None


def source_to_layer(source: str) -> str:
    """Return the layer identifier for `source` (idempotent on layer input)."""
    if not isinstance(source, str):
        raise InvalidName(f"Source must be a string, got {type(source).__name__}.")
    if not is_valid_name(source):
        raise InvalidName(f"'{source}' is not a valid source or name layer string.")
    if source.endswith(LAYER_SUFFIX):
        return source
    return source + LAYER_SUFFIX


def layer_to_source(layer: str) -> str:
    """Strict inverse of `source_to_layer`: the suffix must be present."""
    if not isinstance(layer, str):
        raise InvalidName(f"Layer must be a string, got {type(layer).__name__}.")
    if not is_layer_name(layer):
        raise InvalidName(f"'{layer}' is not a valid name layer string.")
    return layer[: -len(LAYER_SUFFIX)]


def as_layer_list(layers: str | Iterable[str]) -> list[str]:
    """Normalize one layer or a list of layers (source or layer form)."""
    if isinstance(layers, str):
        layers = [layers]
    out: list[str] = []
    for layer in layers:
        out.append(source_to_layer(layer))
    return out
