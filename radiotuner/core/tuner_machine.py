import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, List, Optional

from .records import LOG_HISTORY_SIZE, TransitionLog, TransitionOutcome
from .scheduler import Scheduler, ThreadingScheduler
from .transitions import SideEffect, Transition, TunerEvent, TunerState, lookup

logger = logging.getLogger(__name__)

# Band and scan parameters
MAX_FREQ = 108.0  # MHz, top of the FM band; where the tuner starts
MIN_FREQ = 88.0  # MHz, bottom of the band; scanning stops here
STEP = 0.5  # MHz dropped per scan tick
SCAN_INTERVAL_MS = 500  # Period of the scan timer


@dataclass(frozen=True)
class TunerConfig:
    """Tuner configuration. The band itself is fixed."""
    scan_interval_ms: int = SCAN_INTERVAL_MS
    log_history_size: int = LOG_HISTORY_SIZE

    def __post_init__(self):
        if self.scan_interval_ms <= 0:
            raise ValueError(f"scan_interval_ms must be positive, got {self.scan_interval_ms}")
        if self.log_history_size <= 0:
            raise ValueError(f"log_history_size must be positive, got {self.log_history_size}")


class ScanSession:
    """A live periodic-callback registration while the tuner is scanning."""

    def __init__(self):
        self.handle = None
        self.ticks = 0

    def __repr__(self) -> str:
        return f"ScanSession(handle={self.handle!r}, ticks={self.ticks})"


def _event_name(event) -> str:
    if isinstance(event, TunerEvent):
        return event.value
    return str(event)


class TunerMachine:
    """
    Simulated radio tuner state machine.

    Owns state, frequency and the scan session. Every mutation happens under a
    single re-entrant lock, so user events and scan ticks arriving from a timer
    thread never interleave mid-transition. The lock is re-entrant because a
    tick may synthesize a nested `dispatch("end")` when it reaches the bottom
    of the band.
    """

    def __init__(self, scheduler: Optional[Scheduler] = None, config: Optional[TunerConfig] = None):
        self.config = config or TunerConfig()
        self.scheduler = scheduler if scheduler is not None else ThreadingScheduler()
        self.transition_log = TransitionLog(self.config.log_history_size)
        self.on_update: Optional[Callable[["TunerMachine"], None]] = None
        self._lock = threading.RLock()
        self._state = TunerState.OFF
        self._frequency = MAX_FREQ
        self._session: Optional[ScanSession] = None
        self._closed = False
        # Filled under the lock, published once the outermost holder lets go
        self._depth = 0
        self._pending: List[TransitionOutcome] = []
        self._update_pending = False

    def set_update_callback(self, callback: Optional[Callable[["TunerMachine"], None]]) -> None:
        """Sets the callback run after every dispatch and every scan tick."""
        self.on_update = callback

    # Read-only accessors

    @property
    def state(self) -> TunerState:
        with self._lock:
            return self._state

    @property
    def frequency(self) -> float:
        with self._lock:
            return self._frequency

    def current_state(self) -> TunerState:
        return self.state

    def current_frequency(self) -> float:
        return self.frequency

    @property
    def is_scanning(self) -> bool:
        with self._lock:
            return self._session is not None

    @property
    def session(self) -> Optional[ScanSession]:
        with self._lock:
            return self._session

    @property
    def closed(self) -> bool:
        return self._closed

    # Event handling

    def dispatch(self, event) -> TransitionOutcome:
        """
        Apply one event to the machine.

        Unknown or currently inapplicable events are no-ops: state and
        frequency stay as they are and the outcome reports no transition.
        Never raises for bad input.
        """
        with self._mutating():
            old_state = self._state
            rule = None if self._closed else lookup(old_state, event)
            if rule is not None:
                self._apply(rule)
            outcome = TransitionOutcome(
                event=_event_name(event),
                from_state=old_state,
                to_state=self._state,
                transitioned=rule is not None,
                frequency=self._frequency,
            )
            self.transition_log.append(outcome)
            self._pending.append(outcome)
            self._update_pending = True
        return outcome

    @contextmanager
    def _mutating(self):
        """
        Hold the machine lock for a mutation.

        Log subscribers and the update callback run only after the outermost
        holder releases the lock, so a listener that waits on another thread
        reading the machine cannot deadlock against it.
        """
        with self._lock:
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
                if self._depth == 0:
                    pending, self._pending = self._pending, []
                    notify, self._update_pending = self._update_pending, False
                else:
                    pending, notify = [], False
        for outcome in pending:
            self.transition_log.publish(outcome)
        if notify:
            self._notify_update()

    def _apply(self, rule: Transition) -> None:
        effect = rule.effect
        if effect.stops_scan:
            self._stop_scan()
        if effect in (SideEffect.RESET_FREQUENCY, SideEffect.STOP_SCAN_RESET_FREQUENCY):
            self._set_frequency(MAX_FREQ)
        elif effect is SideEffect.STOP_SCAN_BOTTOM_FREQUENCY:
            self._set_frequency(MIN_FREQ)
        self._state = rule.next_state
        if effect is SideEffect.START_SCAN:
            self._start_scan()

    # Frequency arithmetic

    def _set_frequency(self, value: float) -> None:
        self._frequency = max(MIN_FREQ, min(MAX_FREQ, value))

    def _step_down(self) -> bool:
        """Drop one step. Returns True once the bottom of the band is reached."""
        self._set_frequency(self._frequency - STEP)
        return self._frequency <= MIN_FREQ

    # Scan session lifecycle

    def _start_scan(self) -> None:
        self._stop_scan()

        # Drop one step immediately
        if self._step_down():
            self.dispatch(TunerEvent.END)
            return

        session = ScanSession()
        session.handle = self.scheduler.arm_periodic(
            self.config.scan_interval_ms, lambda: self._tick(session)
        )
        self._session = session
        logger.debug("Scan started at %.1f MHz (%r)", self._frequency, session)

    def _stop_scan(self) -> None:
        session, self._session = self._session, None
        if session is not None:
            self.scheduler.cancel(session.handle)
            logger.debug("Scan stopped at %.1f MHz after %d ticks", self._frequency, session.ticks)

    def _tick(self, session: ScanSession) -> None:
        with self._mutating():
            if self._state is not TunerState.SCANNING or self._session is not session:
                # Stale tick that raced a manual exit or a re-arm
                self.scheduler.cancel(session.handle)
                if self._session is session:
                    self._session = None
                return
            session.ticks += 1
            self._update_pending = True
            if self._step_down():
                self.dispatch(TunerEvent.END)

    def _notify_update(self) -> None:
        if self.on_update:
            try:
                self.on_update(self)
            except Exception:
                logger.exception("Tuner update callback failed")

    # Shutdown

    def close(self) -> None:
        """Cancel any active scan session. Later dispatches are no-ops."""
        with self._lock:
            self._stop_scan()
            self._closed = True
        logger.info("Tuner closed in state %s at %.1f MHz", self._state, self._frequency)

    def __enter__(self) -> "TunerMachine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
