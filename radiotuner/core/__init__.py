"""Tuner state machine, scan scheduling and transition records."""

from .records import TransitionLog, TransitionOutcome
from .scheduler import ManualScheduler, Scheduler, ThreadingScheduler
from .transitions import TRANSITIONS, SideEffect, Transition, TunerEvent, TunerState
from .tuner_machine import (
    MAX_FREQ,
    MIN_FREQ,
    SCAN_INTERVAL_MS,
    STEP,
    ScanSession,
    TunerConfig,
    TunerMachine,
)

__all__ = [
    'MAX_FREQ', 'MIN_FREQ', 'SCAN_INTERVAL_MS', 'STEP',
    'ManualScheduler', 'Scheduler', 'ScanSession', 'SideEffect', 'ThreadingScheduler',
    'TRANSITIONS', 'Transition', 'TransitionLog', 'TransitionOutcome',
    'TunerConfig', 'TunerEvent', 'TunerMachine', 'TunerState',
]
