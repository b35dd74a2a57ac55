"""Transition records and the log the presentation layer reads from."""

import datetime
import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .transitions import TunerState

logger = logging.getLogger(__name__)

LOG_HISTORY_SIZE = 200


@dataclass(frozen=True)
class TransitionOutcome:
    """Result of one dispatch."""
    event: str
    from_state: TunerState
    to_state: TunerState
    transitioned: bool
    frequency: float  # in MHz, after the dispatch completed
    timestamp: datetime.datetime = field(default_factory=datetime.datetime.now)

    @property
    def message(self) -> str:
        if self.transitioned and self.from_state != self.to_state:
            return f"Event '{self.event}' : {self.from_state.name} -> {self.to_state.name}"
        if self.transitioned:
            return f"Event '{self.event}' : {self.from_state.name} -> {self.to_state.name} ({self.frequency:.1f} MHz)"
        return f"Event '{self.event}' : no transition (remains {self.to_state.name})"

    def format(self) -> str:
        return f"[{self.timestamp.strftime('%H:%M:%S')}] {self.message}"

    def __str__(self) -> str:
        return self.message


class TransitionLog:
    """Bounded history of transition records with subscriber callbacks."""

    def __init__(self, maxlen: int = LOG_HISTORY_SIZE):
        self._records: deque = deque(maxlen=maxlen)
        self._subscribers: List[Callable[[TransitionOutcome], None]] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Callable[[TransitionOutcome], None]) -> None:
        """Register a callback that receives every new record."""
        with self._lock:
            if callback not in self._subscribers:
                self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[TransitionOutcome], None]) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def record(self, outcome: TransitionOutcome) -> None:
        """Append a record, log it and hand it to the subscribers."""
        self.append(outcome)
        self.publish(outcome)

    def append(self, outcome: TransitionOutcome) -> None:
        """Add a record to the history without notifying anyone."""
        with self._lock:
            self._records.append(outcome)

    def publish(self, outcome: TransitionOutcome) -> None:
        """Log an already appended record and hand it to the subscribers."""
        with self._lock:
            subscribers = list(self._subscribers)
        logger.info(outcome.message)
        for callback in subscribers:
            try:
                callback(outcome)
            except Exception:
                logger.exception("Transition log subscriber failed")

    def history(self) -> List[TransitionOutcome]:
        """Get all retained records, oldest first."""
        with self._lock:
            return list(self._records)

    def last(self) -> Optional[TransitionOutcome]:
        with self._lock:
            return self._records[-1] if self._records else None

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
