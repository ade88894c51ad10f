# test/test_exceptions.py
import pytest

from enginesignals.core import (
    ChannelNotFound,
    ContentError,
    CoreError,
    GroupNotFound,
    InvalidDataset,
    InvalidName,
    InvalidSignalGroup,
    LayerNotFound,
    SchemaViolationError,
    ShapeError,
    UnresolvedNameError,
)


def test_exception_inheritance_validation():
    assert issubclass(ShapeError, CoreError)
    assert issubclass(ShapeError, TypeError)
    for cls in (InvalidSignalGroup, InvalidDataset, InvalidName):
        assert issubclass(cls, ContentError)
        assert issubclass(cls, ValueError)


def test_exception_inheritance_lookup_keyerror():
    for cls in (ChannelNotFound, GroupNotFound, LayerNotFound):
        assert issubclass(cls, UnresolvedNameError)
        assert issubclass(cls, KeyError)
        assert issubclass(cls, CoreError)


def test_lookup_errors_can_be_raised_and_caught_as_keyerror():
    with pytest.raises(KeyError):
        raise ChannelNotFound("eng_spd")

    with pytest.raises(KeyError):
        raise GroupNotFound("Engine")


def test_lookup_error_message_is_not_quoted():
    assert str(ChannelNotFound("Signal 'a' not found.")) == "Signal 'a' not found."


def test_schema_violation_carries_every_error():
    err = SchemaViolationError(["first", "second"])
    assert err.errors == ["first", "second"]
    assert str(err) == "first\nsecond"
    assert SchemaViolationError("only").errors == ["only"]
    assert isinstance(err, ValueError)
