"""User interface components for the radio tuner."""

from .app import TunerApp, TextualScheduler, setup_logging

__all__ = ['TunerApp', 'TextualScheduler', 'setup_logging']
