"""Terminal recording screen with a live countdown."""

import queue
import time
import logging
from typing import Optional

import click
from pubsub import pub
from rich.align import Align
from rich.console import Console, Group
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..errors import MinutetakerError, NoAudioCaptured
from ..models.audio import AudioArtifact
from ..models.events import SessionEvent
from ..models.session import RecordingState, SessionSnapshot
from ..services.meeting_service import MeetingService
from ..session.countdown import (
    BreakInterlude, CountdownLevel, countdown_level, format_clock, remaining_display_seconds,
)
from .keyboard_input import create_input_handler

logger = logging.getLogger(__name__)

# a loop iteration this much longer than expected means the host was suspended
SUSPEND_GAP_SECONDS = 5.0

LEVEL_STYLES = {
    CountdownLevel.NONE: "bold white",
    CountdownLevel.NORMAL: "bold green",
    CountdownLevel.WARNING: "bold yellow",
    CountdownLevel.URGENT: "bold red",
    CountdownLevel.TIME_UP: "bold white on red",
}

STATE_LABELS = {
    RecordingState.IDLE: ("IDLE", "dim"),
    RecordingState.RECORDING: ("● RECORDING", "bold red"),
    RecordingState.PAUSED: ("❚❚ PAUSED", "bold yellow"),
    RecordingState.INTERRUPTED: ("⚠ INTERRUPTED", "bold magenta"),
    RecordingState.STOPPED: ("■ STOPPED", "bold blue"),
}


class RecordingScreen:
    """Runs one recording from start to stop (or cancel) in the terminal.

    Keys are read on a background thread and queued; every transition happens
    on the screen's own loop. Prompts (cancel confirmation, the time-up menu)
    suspend key reading and the live display while they are open.
    """

    def __init__(self, service: MeetingService, console: Optional[Console] = None):
        self.service = service
        self.session = service.session
        self.console = console or Console()
        self.keys: "queue.Queue[str]" = queue.Queue()
        self.input_handler = None
        self.time_up_pending = False
        self.message = ""

        publisher = service.publisher
        pub.subscribe(self._on_time_up, publisher.time_up_topic)
        pub.subscribe(self._on_state, publisher.state_topic)

    def close(self) -> None:
        publisher = self.service.publisher
        pub.unsubscribe(self._on_time_up, publisher.time_up_topic)
        pub.unsubscribe(self._on_state, publisher.state_topic)

    # Event listeners (called on session threads)

    def _on_time_up(self, event: SessionEvent) -> None:
        self.time_up_pending = True

    def _on_state(self, event: SessionEvent) -> None:
        if event.event_type == "interrupted":
            self.message = "Microphone lost. Press X to reconnect, S to stop and keep what was recorded."

    def _on_key(self, key: str) -> bool:
        self.keys.put(key)
        return True

    # Rendering

    def render(self, snapshot: SessionSnapshot) -> Layout:
        layout = Layout()
        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="main", ratio=1),
            Layout(name="footer", size=3),
        )

        label, style = STATE_LABELS[snapshot.state]
        header = Text.assemble(("minutetaker", "bold blue"), "  |  ", (label, style),
                               "  |  ", f"{self.service.mode.label}")
        layout["header"].update(Panel(Align.center(header), style="bright_blue"))

        level = countdown_level(snapshot.remaining_seconds, snapshot.state == RecordingState.PAUSED,
                                self.service.thresholds)
        if snapshot.remaining_seconds is not None:
            clock_text = Text(format_clock(remaining_display_seconds(max(0.0, snapshot.remaining_seconds))),
                              style=LEVEL_STYLES[level])
        else:
            clock_text = Text(format_clock(snapshot.elapsed_seconds), style=LEVEL_STYLES[level])

        details = Table.grid(padding=(0, 2))
        details.add_column(style="cyan")
        details.add_column()
        details.add_row("Elapsed", format_clock(snapshot.elapsed_seconds))
        if snapshot.countdown_target is not None:
            details.add_row("Budget", format_clock(snapshot.countdown_target))
        details.add_row("Chunks", str(snapshot.chunk_count))

        body = [Align.center(clock_text), Text(""), Align.center(details)]
        if level == CountdownLevel.TIME_UP:
            body.append(Align.center(Text("Time is up", style="bold red")))
        if self.message:
            body.append(Text(""))
            body.append(Align.center(Text(self.message, style="magenta")))
        layout["main"].update(Panel(Group(*body), border_style="green"))

        controls = Text.assemble(
            ("P", "bold yellow"), " Pause  ",
            ("R", "bold green"), " Resume  ",
            ("X", "bold magenta"), " Reconnect  ",
            ("S", "bold blue"), " Stop  ",
            ("C", "bold red"), " Cancel",
        )
        layout["footer"].update(Panel(Align.center(controls), style="bright_black"))
        return layout

    # Main loop

    def run(self) -> Optional[AudioArtifact]:
        """Show the screen until the recording is stopped or cancelled.

        Returns:
            The finished recording, or None if it was cancelled
        """
        try:
            while True:
                outcome = self._live_loop()
                if outcome == "stop":
                    artifact = self._stop()
                    if artifact is not None:
                        return artifact
                elif outcome == "cancel":
                    if self._confirm_cancel():
                        return None
                elif outcome == "time_up":
                    artifact = self._time_up_menu()
                    if artifact is not None:
                        return artifact
        finally:
            self._stop_input()
            self.close()

    def _start_input(self) -> None:
        self.input_handler = create_input_handler(self._on_key)
        self.input_handler.start()

    def _stop_input(self) -> None:
        if self.input_handler is not None:
            self.input_handler.stop()
            self.input_handler = None

    def _live_loop(self) -> str:
        """Refresh the display and handle keys until a prompt is needed."""
        self._start_input()
        try:
            with Live(self.render(self.session.snapshot()), console=self.console,
                      refresh_per_second=4, screen=True) as live:
                last = time.time()
                while True:
                    now = time.time()
                    if now - last > SUSPEND_GAP_SECONDS:
                        logger.info(f"Host resumed after {now - last:.1f}s gap")
                        self.session.on_host_resumed()
                    last = now

                    outcome = self._drain_keys()
                    if outcome:
                        return outcome
                    if self.time_up_pending:
                        self.time_up_pending = False
                        return "time_up"

                    live.update(self.render(self.session.snapshot()))
                    time.sleep(0.1)
        finally:
            self._stop_input()

    def _drain_keys(self) -> Optional[str]:
        while True:
            try:
                key = self.keys.get_nowait()
            except queue.Empty:
                return None
            outcome = self.handle_key(key)
            if outcome:
                return outcome

    def handle_key(self, key: str) -> Optional[str]:
        """Apply a key to the session.

        Returns:
            "stop" or "cancel" when the loop must leave the live display, else None
        """
        state = self.session.state
        logger.debug(f"Handling key '{key}' in state {state.value}")
        try:
            if key == 'p' and state == RecordingState.RECORDING:
                self.session.pause()
            elif key == 'r' and state == RecordingState.PAUSED:
                self.session.resume()
            elif key == 'x' and state == RecordingState.INTERRUPTED:
                self.session.resume_interrupted()
                self.message = ""
            elif key == 's':
                return "stop"
            elif key == 'c':
                return "cancel"
        except MinutetakerError as e:
            logger.warning(f"Key '{key}' rejected: {e.detail}")
            self.message = e.detail
        return None

    # Prompts

    def _stop(self) -> Optional[AudioArtifact]:
        try:
            return self.service.stop_recording()
        except NoAudioCaptured as e:
            self.message = e.detail + ". Press X to reconnect or C to cancel."
            return None

    def _confirm_cancel(self) -> bool:
        if not click.confirm("Discard this recording? This cannot be undone.", default=False):
            return False
        self.session.cancel()
        self.console.print("Recording discarded.", style="bold red")
        return True

    def _time_up_menu(self) -> Optional[AudioArtifact]:
        """Ask whether to end, extend or take a break and then extend."""
        settings = self.service.countdown_settings
        self.console.print("\n⏰ The scheduled time is up.", style="bold red")
        choice = click.prompt(
            "End the meeting (e), extend now (x) or take a break and extend (b)?",
            type=click.Choice(["e", "x", "b"]), default="e",
        )
        if choice == "e":
            return self._stop()

        minutes = click.prompt("Extend by how many minutes?",
                               type=click.Choice([str(m) for m in settings.extend_options]),
                               default=str(settings.extend_options[0]))
        try:
            if choice == "x":
                if not click.confirm("Extend without a break? Long meetings lose focus.", default=True):
                    return None
                self.service.extend(int(minutes))
            else:
                self._run_break(self.service.start_break())
                self.service.extend(int(minutes), after_break=True)
        except MinutetakerError as e:
            logger.warning(f"Extension rejected: {e.detail}")
            self.message = e.detail
        return None

    def _run_break(self, interlude: BreakInterlude) -> None:
        self.console.print("Break started. Press K to skip.", style="bold cyan")
        self._start_input()
        try:
            with Live(console=self.console, refresh_per_second=4) as live:
                while not interlude.finished:
                    try:
                        if self.keys.get_nowait() == 'k':
                            interlude.skip()
                    except queue.Empty:
                        pass
                    live.update(Panel(Align.center(Text(f"☕ Break  {format_clock(interlude.remaining_seconds)}",
                                                        style="bold cyan"))))
                    time.sleep(0.2)
        finally:
            self._stop_input()
