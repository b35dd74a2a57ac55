"""Simulated FM radio tuner driven by a finite state machine."""

from .core import TunerMachine, TunerState, TunerEvent, TunerConfig

__version__ = "0.1.0"

__all__ = ['TunerMachine', 'TunerState', 'TunerEvent', 'TunerConfig']
