# enginesignals/config.py
"""
Settings shared by the resolver, the layer population and the MDF reader.

Settings are read from a small YAML mapping, e.g.::

    default_name_layer: Eng
    name_tables: tables/NameTables.xlsx
    lookup_min_overlap: 2
    mdf_layer: Mdf
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping

import yaml

from .core.exceptions import ShapeError
from .core.names import is_valid_name, source_to_layer

if TYPE_CHECKING:
    from .core.lookup import LookupTable

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Settings:
    """
    Fixed, typed option set.

    default_name_layer: layer preferred by `default_names` ("" = first layer)
    name_tables:        workbook holding the LookupTable (None = no table)
    lookup_min_overlap: fewest non-empty names a key tuple needs to be looked up
    mdf_layer:          name layer given to channels read from MDF files
    """
    default_name_layer: str = ""
    name_tables: Path | None = None
    lookup_min_overlap: int = 1
    mdf_layer: str = "Mdf"

    def __post_init__(self) -> None:
        if not isinstance(self.default_name_layer, str):
            raise ShapeError("default_name_layer must be a string.")
        if self.default_name_layer:
            # validates and normalizes
            object.__setattr__(self, "default_name_layer", source_to_layer(self.default_name_layer))
        if self.name_tables is not None:
            object.__setattr__(self, "name_tables", Path(self.name_tables))
        if isinstance(self.lookup_min_overlap, bool) or not isinstance(self.lookup_min_overlap, int):
            raise ShapeError("lookup_min_overlap must be an integer.")
        if self.lookup_min_overlap < 0:
            raise ValueError("lookup_min_overlap must be >= 0.")
        if not is_valid_name(self.mdf_layer):
            raise ValueError(f"mdf_layer '{self.mdf_layer}' is not a valid identifier.")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, base_dir: Path | None = None) -> "Settings":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown settings: {unknown}.")
        kwargs = dict(data)
        tables = kwargs.get("name_tables")
        if tables is not None and base_dir is not None and not Path(tables).is_absolute():
            kwargs["name_tables"] = base_dir / tables
        return cls(**kwargs)

    def load_lookup(self) -> "LookupTable | None":
        """Build the LookupTable from `name_tables` (None when unset)."""
        if self.name_tables is None:
            return None
        from .io.name_tables import load_lookup_table

        return load_lookup_table(self.name_tables)


DEFAULT_SETTINGS = Settings()


def load_settings(path: str | Path) -> Settings:
    """Read settings from a YAML file; relative table paths resolve beside it."""
    path = Path(path)
    with path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, Mapping):
        raise ShapeError(f"Settings file {path} must contain a mapping.")
    settings = Settings.from_mapping(data, base_dir=path.parent)
    logger.debug("Loaded settings from %s: %s", path, settings)
    return settings
