from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterable, List

from asammdf import MDF
import numpy as np

from enginesignals.core.exceptions import ChannelNotFound

logger = logging.getLogger(__name__)

_NON_WORD = re.compile(r"\W+")


def sanitize_name(raw: str) -> str:
    """
    Turn an MDF channel name into a signal identifier.

    Examples
    --------
    "Eng.Speed"     -> "Eng_Speed"
    "ECU/Torque[1]" -> "ECU_Torque_1"
    "2ndGear"       -> "x2ndGear"
    """
    name = _NON_WORD.sub("_", raw.strip()).strip("_")
    if not name:
        return "x"
    if not name[0].isalpha() or not name[0].isascii():
        name = "x" + name
    return name


@dataclass
class RawChannelInfo:
    """One data channel of an MDF file plus a lazy loader for its samples."""

    raw_name: str               # name as stored in the file
    name: str                   # sanitized identifier
    unit: str
    comment: str
    group_index: int            # group id inside the MDF
    channel_index: int          # channel id inside the group

    # reads ONLY this channel -> (time, values)
    loader: Callable[[], tuple["np.ndarray", "np.ndarray"]]

    def load(self) -> tuple[np.ndarray, np.ndarray]:
        return self.loader()


@dataclass
class RawChannelData:
    time: "np.ndarray"
    values: "np.ndarray"


class AsammdfReader:
    """Channel index over an MDF file, backed by asammdf.MDF.

    Master (time) channels are skipped. Sanitized names that collide get a
    numeric suffix ("speed", "speed_2", ...).
    """

    def __init__(self, path: str):
        self._path = path
        self._mdf = MDF(path)
        self._channels: dict[str, RawChannelInfo] = {}
        self._build_index()

    def __enter__(self) -> "AsammdfReader":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self._mdf.close()

    # ------------------------------------------------------------------
    # Index construction
    # ------------------------------------------------------------------
    def _build_index(self) -> None:
        masters = getattr(self._mdf, "masters_db", {}) or {}

        for group_index, group in enumerate(self._mdf.groups):
            for channel_index, channel in enumerate(group.channels):
                if masters.get(group_index) == channel_index:
                    continue

                def make_loader(g_i: int = group_index, c_i: int = channel_index):
                    def _loader() -> tuple[np.ndarray, np.ndarray]:
                        sig = self._mdf.get(group=g_i, index=c_i)
                        return np.asarray(sig.timestamps), np.asarray(sig.samples)

                    return _loader

                name = sanitize_name(channel.name)
                base, k = name, 1
                while name in self._channels:
                    k += 1
                    name = f"{base}_{k}"
                if name != channel.name:
                    logger.debug("MDF channel '%s' renamed to '%s'", channel.name, name)

                self._channels[name] = RawChannelInfo(
                    raw_name=channel.name,
                    name=name,
                    unit=channel.unit or "",
                    comment=getattr(channel, "comment", "") or "",
                    group_index=group_index,
                    channel_index=channel_index,
                    loader=make_loader(),
                )

    # ------------------------------------------------------------------
    # Reader API
    # ------------------------------------------------------------------
    def list_channels(self) -> List[RawChannelInfo]:
        """Data channels in file order."""
    def read_channels(
        self,
        names: Iterable[str],
        start_time: float | None = None,
        end_time: float | None = None,
    ) -> dict[str, RawChannelData]:
        """Samples of each sanitized channel name, clipped to [start_time, end_time]."""
        out: dict[str, RawChannelData] = {}
        for name in names:
            info = self._channels.get(name)
            if info is None:
                raise ChannelNotFound(f"Channel '{name}' is not present in {self._path}.")
            t, v = info.load()
            keep = _in_window(t, start_time, end_time)
            out[name] = RawChannelData(time=t[keep], values=v[keep])
        return out


def _in_window(t: np.ndarray, start: float | None, end: float | None) -> np.ndarray:
    keep = np.full(t.shape, True)
    if start is not None:
        keep &= t >= start
    if end is not None:
        keep &= t <= end
    return keep
