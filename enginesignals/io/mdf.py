# enginesignals/io/mdf.py
from __future__ import annotations

import logging
from pathlib import Path

import numpy as np

from enginesignals.config import DEFAULT_SETTINGS, Settings
from enginesignals.core.dataset import Dataset
from enginesignals.core.exceptions import InvalidDataset
from enginesignals.core.rules import TIME, is_numeric_dtype
from enginesignals.core.signal_group import SignalGroup
from enginesignals.io.mdf_reader import AsammdfReader

logger = logging.getLogger(__name__)


def _time_base(first_time: np.ndarray, raster: float | None) -> np.ndarray:
    if raster is None:
        return np.asarray(first_time, dtype=float)
    if raster <= 0:
        raise ValueError("raster must be positive.")
    t0, t1 = float(first_time[0]), float(first_time[-1])
    return t0 + raster * np.arange(int(np.floor((t1 - t0) / raster)) + 1)


def load_mdf(
    path: str | Path,
    *,
    layer: str | None = None,
    group: str = "Signals",
    raster: float | None = None,
    start_time: float | None = None,
    end_time: float | None = None,
    settings: Settings | None = None,
) -> Dataset:
    """
    Read an MDF file into a Dataset with one signal group.

    Every numeric data channel is interpolated onto one time base: the first
    channel's timestamps, or a fixed `raster` (seconds) spanning them.
    Channel names are sanitized to identifiers and stored on `layer`
    (default: ``settings.mdf_layer``). `start_time` / `end_time` clip every
    channel to that window (seconds, inclusive) before resampling.
    """
    settings = settings or DEFAULT_SETTINGS
    layer = layer or settings.mdf_layer
    path = Path(path)
    logger.info("Loading MDF file %s", path)

    names: list[str] = []
    units: list[str] = []
    descriptions: list[str] = []
    columns: list[np.ndarray] = []
    t: np.ndarray | None = None

    with AsammdfReader(str(path)) as reader:
        channels = reader.list_channels()
        data = reader.read_channels([ch.name for ch in channels], start_time, end_time)
        for raw_ch in channels:
            ct, cv = data[raw_ch.name].time, data[raw_ch.name].values
            if cv.ndim != 1 or not is_numeric_dtype(cv.dtype) or len(ct) == 0:
                logger.warning("Skipping non-numeric or empty MDF channel '%s'", raw_ch.raw_name)
                continue
            if t is None:
                t = _time_base(ct, raster)
            columns.append(np.interp(t, ct, cv.astype(float)))
            names.append(raw_ch.name)
            units.append(raw_ch.unit)
            descriptions.append(raw_ch.comment)

    if t is None:
        raise InvalidDataset(f"No numeric data channels found in {path}.")
    logger.debug("Read %d channels, %d samples", len(columns), len(t))

    time = SignalGroup(values=t, layers={layer: (TIME,)}, units=("s",), descriptions=("Time",))
    signals = SignalGroup(
        values=np.column_stack(columns),
        layers={layer: tuple(names)},
        units=tuple(units),
        descriptions=tuple(descriptions),
    )
    return Dataset(
        groups={TIME: time, group: signals},
        meta={"casename": path.stem, "pathnames": str(path), "source": "MDF"},
    )
