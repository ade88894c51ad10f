# enginesignals/core/exceptions.py
from __future__ import annotations

from typing import Iterable


class CoreError(Exception):
    """Base error for all core-domain exceptions."""


# ---- Structural errors: input is not even a candidate for its type ----
class ShapeError(CoreError, TypeError):
    """Raised when an input has the wrong container kind or misses required fields."""


# ---- Content errors: right shape, broken content rule ----
class ContentError(CoreError, ValueError):
    """Raised when a candidate value violates a content rule."""


class InvalidSignalGroup(ContentError):
    """Raised when a SignalGroup / SignalGroupArray has invalid content."""


class InvalidDataset(ContentError):
    """Raised when a Dataset / DatasetArray has invalid content."""


class InvalidName(ContentError):
    """Raised when a signal name, layer or source identifier is malformed."""


# ---- Lookup errors (also behave like KeyError for dict-like APIs) ----
class UnresolvedNameError(CoreError, KeyError):
    """Raised when a requested name or selector matched nothing."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep messages readable
        return str(self.args[0]) if self.args else ""


class ChannelNotFound(UnresolvedNameError):
    """Raised when a requested channel name is not present."""


class GroupNotFound(UnresolvedNameError):
    """Raised when a requested signal group is not present in a dataset."""


class LayerNotFound(UnresolvedNameError):
    """Raised when a requested name layer is not present."""


# ---- LookupTable source errors ----
class SchemaViolationError(CoreError, ValueError):
    """Raised when a name-table source fails its own consistency rules.

    All detected violations are carried in ``errors``.
    """

    def __init__(self, errors: str | Iterable[str]) -> None:
        if isinstance(errors, str):
            errors = [errors]
        self.errors: list[str] = list(errors)
        super().__init__("\n".join(self.errors))
