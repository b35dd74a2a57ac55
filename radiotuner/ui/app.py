from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import Header, Footer, Static, Button, Log
from textual.reactive import reactive
from pathlib import Path
from typing import Optional
import datetime
import logging
import threading
import traceback

from ..core.records import TransitionOutcome
from ..core.transitions import TunerEvent, TunerState
from ..core.tuner_machine import TunerMachine, TunerConfig


def setup_logging(log_dir: Path = Path("logs"), level: int = logging.INFO) -> Path:
    """Log to a timestamped file under `log_dir` and to the console."""
    log_dir.mkdir(exist_ok=True)
    log_file = log_dir / f"tuner_{datetime.datetime.now().strftime('%Y%m%d_%H%M%S')}.log"

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(name)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )
    return log_file


class TextualScheduler:
    """Runs scan ticks on the app's event loop via `App.set_interval`."""

    def __init__(self, app: App):
        self.app = app

    def arm_periodic(self, interval_ms: int, callback):
        return self.app.set_interval(interval_ms / 1000.0, callback, name="scan-timer")

    def cancel(self, handle) -> None:
        handle.stop()


# Which events each button is enabled for; the machine accepts all of them anyway
BUTTON_ENABLED = {
    TunerEvent.ON: lambda state: state is TunerState.OFF,
    TunerEvent.SCAN: lambda state: state is not TunerState.OFF,
    TunerEvent.RESET: lambda state: state is not TunerState.OFF,
    TunerEvent.OFF: lambda state: True,
    TunerEvent.LOCK: lambda state: state is TunerState.SCANNING,
    TunerEvent.END: lambda state: state is TunerState.SCANNING,
}


class TunerApp(App):
    """Textual TUI for the simulated radio tuner."""

    TITLE = "Radio State Machine"

    BINDINGS = [
        ("o", "dispatch('on')", "On"),
        ("s", "dispatch('scan')", "Scan"),
        ("r", "dispatch('reset')", "Reset"),
        ("f", "dispatch('off')", "Off"),
        ("l", "dispatch('lock')", "Lock"),
        ("e", "dispatch('end')", "End"),
        ("q", "quit_app", "Quit"),
    ]

    tuner_state = reactive(TunerState.OFF)
    frequency = reactive(0.0)
    status_line = reactive("Press 'o' to switch the tuner on.")

    def __init__(self, machine: Optional[TunerMachine] = None, config: Optional[TunerConfig] = None,
                 *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.machine = machine or TunerMachine(scheduler=TextualScheduler(self), config=config)
        self.machine.set_update_callback(self.update_from_machine)
        self.machine.transition_log.subscribe(self.record_transition)
        self._ui_thread: Optional[int] = None
        logging.info("Tuner app initialized")

    def compose(self) -> ComposeResult:
        """Create child widgets for the app's layout."""
        yield Header()
        with Vertical(id="main_container"):
            yield Static(id="state_display")
            yield Static(id="freq_display")
            with Horizontal(id="button_row_1"):
                yield Button("on", id="btn_on")
                yield Button("scan", id="btn_scan")
                yield Button("reset", id="btn_reset")
            with Horizontal(id="button_row_2"):
                yield Button("off", id="btn_off")
                yield Button("lock", id="btn_lock")
                yield Button("end", id="btn_end")
            yield Static(id="status_display")
            yield Log(id="transition_log")
        yield Footer()

    def on_mount(self) -> None:
        """Called when the app is first mounted."""
        self._ui_thread = threading.get_ident()
        self._refresh_view()
        self.watch_tuner_state(self.tuner_state)
        self.watch_frequency(self.frequency)
        self.watch_status_line(self.status_line)

    def dispatch_event(self, event: str) -> TransitionOutcome:
        """Hand an event to the machine."""
        return self.machine.dispatch(event)

    async def action_dispatch(self, event: str) -> None:
        try:
            self.dispatch_event(event)
        except Exception as e:
            error_msg = f"Error handling '{event}': {str(e)}"
            self.status_line = error_msg
            logging.error(f"{error_msg}\n{traceback.format_exc()}")

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        """Handle button press events."""
        button_id = event.button.id or ""
        if button_id.startswith("btn_"):
            await self.action_dispatch(button_id[len("btn_"):])

    def _on_ui_thread(self) -> bool:
        return self._ui_thread is None or threading.get_ident() == self._ui_thread

    def update_from_machine(self, machine: TunerMachine) -> None:
        """Thread-safe refresh; ticks from a timer thread are marshalled onto the UI loop."""
        if self._on_ui_thread():
            self._refresh_view()
        else:
            self.call_from_thread(self._refresh_view)

    def record_transition(self, outcome: TransitionOutcome) -> None:
        if self._on_ui_thread():
            self._append_log(outcome)
        else:
            self.call_from_thread(self._append_log, outcome)

    def _refresh_view(self) -> None:
        self.tuner_state = self.machine.current_state()
        self.frequency = self.machine.current_frequency()

    def _append_log(self, outcome: TransitionOutcome) -> None:
        self.status_line = outcome.message
        if self._view_ready():
            self.query_one("#transition_log", Log).write_line(outcome.format())

    def _view_ready(self) -> bool:
        return self._ui_thread is not None

    def watch_tuner_state(self, state: TunerState) -> None:
        if not self._view_ready():
            return
        self.query_one("#state_display", Static).update(f"Current state: {state.name}")
        for tuner_event, enabled in BUTTON_ENABLED.items():
            self.query_one(f"#btn_{tuner_event.value}", Button).disabled = not enabled(state)

    def watch_frequency(self, frequency: float) -> None:
        if self._view_ready():
            self.query_one("#freq_display", Static).update(f"Current frequency: {frequency:.1f} MHz")

    def watch_status_line(self, new_status: str) -> None:
        if self._view_ready():
            self.query_one("#status_display", Static).update(new_status)

    async def action_quit_app(self) -> None:
        """Called when 'q' is pressed or quit is triggered."""
        self.status_line = "Shutting down tuner..."
        self.machine.close()
        logging.info("Shutdown complete")
        self.exit("Tuner closed.")

    def on_unmount(self) -> None:
        if not self.machine.closed:
            self.machine.close()
