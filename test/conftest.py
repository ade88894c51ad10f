# test/conftest.py
import numpy as np
import pytest

from enginesignals.core import Dataset, LookupTable, SignalGroup, SourceEntry


@pytest.fixture
def eng_lookup() -> LookupTable:
    """One group, two layers, one row: SrcA 'rpm' <-> SrcB 'enginespeed'."""
    return LookupTable(
        groups={"Eng": {"SrcA": ["rpm"], "SrcB": ["enginespeed"]}},
        layers=["SrcA", "SrcB"],
    )


@pytest.fixture
def abc_group() -> SignalGroup:
    """Three channels a, b, c on layer 'Eng'."""
    return SignalGroup(
        values=np.arange(12, dtype=float).reshape(4, 3),
        layers={"Eng": ["a", "b", "c"]},
        units=["rpm", "Nm", "degC"],
        descriptions=["speed", "torque", "temperature"],
    )


@pytest.fixture
def engine_dataset(abc_group) -> Dataset:
    time = SignalGroup(values=np.arange(4) * 0.1, layers={"Eng": ["Time"]}, units=["s"], descriptions=["Time"])
    aux = SignalGroup(
        values=np.ones((4, 2)),
        layers={"Eng": ["d", "a"]},
        units=["bar", "rpm"],
        descriptions=["pressure", "speed copy"],
    )
    return Dataset(
        groups={"Time": time, "Engine": abc_group, "Aux": aux},
        meta={"casename": "run1", "source": "unit-test"},
    )


@pytest.fixture
def source_entries() -> list[SourceEntry]:
    return [
        SourceEntry("Eng", "rpm", 1.0, "rpm", "Engine speed"),
        SourceEntry("Eng", "trq", None, "Nm", "Engine torque"),
    ]
