# enginesignals/core/__init__.py
"""
Core domain objects for enginesignals.

This module defines the format-agnostic data model and its name engine:
- SignalGroup: block of same-length channels with aliased names (layers)
- Dataset: signal groups sharing one Time group, plus metadata
- SignalGroupArray / DatasetArray: homogeneous collections of the above
- LookupTable: name aliases across layers, read from a name-tables workbook

The core layer is independent from I/O and storage formats.
"""

from .names import LAYER_SUFFIX, is_valid_name, source_to_layer, layer_to_source, as_layer_list
from .rules import TIME, Validity
from .signal_group import SignalGroup, SignalGroupArray
from .dataset import Dataset, DatasetArray, canonical_field_order
from .value import SignalObject, layers_of, data_length, num_signals, collect_signals, map_groups
from .validation import (
    check_signal_group,
    check_signal_group_array,
    check_dataset,
    check_dataset_array,
    is_signal_group,
    is_signal_group_array,
    is_dataset,
    is_dataset_array,
)
from .lookup import LookupTable, SourceEntry
from .resolver import find_name, names_matrix, default_names, get_names, channel_names, describe_name
from .layers import (
    LayerResult,
    add_layer,
    add_layer_report,
    remove_layer,
    remove_layers_except,
    rename_layer,
    reconcile_layers,
    reorder_fields,
)
from .mutators import (
    Selection,
    Removal,
    CopyResult,
    Replacement,
    select_from_group,
    select_from_dataset,
    remove_from_group,
    copy_signals,
    rename_on_layer,
    replace_units,
    replace_description,
    change_signal_units,
    build_time_group,
    merge_signal_groups,
)
from .exceptions import (
    CoreError,
    ShapeError,
    ContentError,
    InvalidSignalGroup,
    InvalidDataset,
    InvalidName,
    UnresolvedNameError,
    ChannelNotFound,
    GroupNotFound,
    LayerNotFound,
    SchemaViolationError,
)


__all__ = [
    # names
    "LAYER_SUFFIX",
    "is_valid_name",
    "source_to_layer",
    "layer_to_source",
    "as_layer_list",

    # domain objects
    "TIME",
    "SignalGroup",
    "SignalGroupArray",
    "Dataset",
    "DatasetArray",
    "canonical_field_order",
    "SignalObject",
    "layers_of",
    "data_length",
    "num_signals",
    "collect_signals",
    "map_groups",

    # validity
    "Validity",
    "check_signal_group",
    "check_signal_group_array",
    "check_dataset",
    "check_dataset_array",
    "is_signal_group",
    "is_signal_group_array",
    "is_dataset",
    "is_dataset_array",

    # names engine
    "LookupTable",
    "SourceEntry",
    "find_name",
    "names_matrix",
    "default_names",
    "get_names",
    "channel_names",
    "describe_name",
    "LayerResult",
    "add_layer",
    "add_layer_report",
    "remove_layer",
    "remove_layers_except",
    "rename_layer",
    "reconcile_layers",
    "reorder_fields",

    # mutators
    "Selection",
    "Removal",
    "CopyResult",
    "Replacement",
    "select_from_group",
    "select_from_dataset",
    "remove_from_group",
    "copy_signals",
    "rename_on_layer",
    "replace_units",
    "replace_description",
    "change_signal_units",
    "build_time_group",
    "merge_signal_groups",

    # exceptions
    "CoreError",
    "ShapeError",
    "ContentError",
    "InvalidSignalGroup",
    "InvalidDataset",
    "InvalidName",
    "UnresolvedNameError",
    "ChannelNotFound",
    "GroupNotFound",
    "LayerNotFound",
    "SchemaViolationError",
]
