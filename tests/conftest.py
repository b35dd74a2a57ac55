"""Shared pytest fixtures for radiotuner tests."""

import pytest

from radiotuner.core import ManualScheduler, TunerMachine, TunerState


@pytest.fixture
def scheduler() -> ManualScheduler:
    """Virtual-clock scheduler; ticks only fire on advance()."""
    return ManualScheduler()


@pytest.fixture
def machine(scheduler: ManualScheduler):
    """Fresh tuner in OFF at 108.0 MHz."""
    tuner = TunerMachine(scheduler=scheduler)
    yield tuner
    tuner.close()


@pytest.fixture
def drive_to():
    """Factory that walks a machine into the requested state."""
    paths = {
        TunerState.OFF: [],
        TunerState.TOP: ["on"],
        TunerState.SCANNING: ["on", "scan"],
        TunerState.TUNED: ["on", "scan", "lock"],
        TunerState.BOTTOM: ["on", "scan", "end"],
    }

    def _drive(tuner: TunerMachine, state: TunerState) -> TunerMachine:
        for event in paths[state]:
            tuner.dispatch(event)
        assert tuner.state is state
        return tuner

    return _drive
