"""Tuner states, event names and the transition table."""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple


class TunerState(str, Enum):
    """Tuner state."""
    OFF = "off"
    TOP = "top"
    SCANNING = "scanning"
    TUNED = "tuned"        # Locked on the last scanned frequency
    BOTTOM = "bottom"      # Scan ran down to the bottom of the band

    def __str__(self) -> str:
        return self.name


class TunerEvent(str, Enum):
    """The six commands the presentation layer can send."""
    ON = "on"
    SCAN = "scan"
    RESET = "reset"
    OFF = "off"
    LOCK = "lock"
    END = "end"


class SideEffect(Enum):
    """What a matched rule does besides changing state."""
    NONE = "none"
    RESET_FREQUENCY = "reset-frequency"
    START_SCAN = "start-scan"
    STOP_SCAN = "stop-scan"
    STOP_SCAN_RESET_FREQUENCY = "stop-scan+reset-frequency"
    STOP_SCAN_BOTTOM_FREQUENCY = "stop-scan+bottom-frequency"

    @property
    def stops_scan(self) -> bool:
        return self in (
            SideEffect.STOP_SCAN,
            SideEffect.STOP_SCAN_RESET_FREQUENCY,
            SideEffect.STOP_SCAN_BOTTOM_FREQUENCY,
        )


@dataclass(frozen=True)
class Transition:
    next_state: TunerState
    effect: SideEffect = SideEffect.NONE


_S = TunerState
_E = TunerEvent
_FX = SideEffect

TRANSITIONS: Mapping[Tuple[TunerState, TunerEvent], Transition] = MappingProxyType({
    (_S.OFF, _E.ON): Transition(_S.TOP, _FX.RESET_FREQUENCY),

    (_S.TOP, _E.SCAN): Transition(_S.SCANNING, _FX.START_SCAN),
    (_S.TOP, _E.RESET): Transition(_S.TOP, _FX.RESET_FREQUENCY),
    (_S.TOP, _E.OFF): Transition(_S.OFF),

    # scan while scanning re-arms the session and drops a step right away
    (_S.SCANNING, _E.SCAN): Transition(_S.SCANNING, _FX.START_SCAN),
    (_S.SCANNING, _E.RESET): Transition(_S.TOP, _FX.STOP_SCAN_RESET_FREQUENCY),
    (_S.SCANNING, _E.OFF): Transition(_S.OFF, _FX.STOP_SCAN),
    (_S.SCANNING, _E.LOCK): Transition(_S.TUNED, _FX.STOP_SCAN),
    (_S.SCANNING, _E.END): Transition(_S.BOTTOM, _FX.STOP_SCAN_BOTTOM_FREQUENCY),

    (_S.TUNED, _E.SCAN): Transition(_S.SCANNING, _FX.START_SCAN),
    (_S.TUNED, _E.RESET): Transition(_S.TOP, _FX.RESET_FREQUENCY),
    (_S.TUNED, _E.OFF): Transition(_S.OFF),

    # Bottom + scan is deliberately absent: the button stays enabled but does nothing
    (_S.BOTTOM, _E.RESET): Transition(_S.TOP, _FX.RESET_FREQUENCY),
    (_S.BOTTOM, _E.OFF): Transition(_S.OFF),
})


def parse_event(name) -> Optional[TunerEvent]:
    """Map a raw event name onto a TunerEvent, or None if it isn't one."""
    if isinstance(name, TunerEvent):
        return name
    if not isinstance(name, str):
        return None
    try:
        return TunerEvent(name)
    except ValueError:
        return None


def lookup(state: TunerState, event) -> Optional[Transition]:
    """Return the rule for (state, event), or None when nothing matches."""
    parsed = parse_event(event)
    if parsed is None:
        return None
    return TRANSITIONS.get((state, parsed))
