"""Single-key input for the terminal screens."""

import sys
import threading
import time
from typing import Optional, Callable
import logging

logger = logging.getLogger(__name__)


class KeyboardInputHandler:
    """Reads single keypresses on a background thread without waiting for Enter."""

    def __init__(self, callback: Callable[[str], bool]):
        """Initialize keyboard handler.

        Args:
            callback: Function that takes a key and returns True to continue, False to stop reading
        """
        self.callback = callback
        self.running = False
        self.thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self.running:
            return

        self.running = True
        self.thread = threading.Thread(target=self._input_loop, daemon=True)
        self.thread.name = "KeyboardInputThread"
        self.thread.start()
        logger.debug("Keyboard input handler started")

    def stop(self) -> None:
        """Stop reading keys so the terminal can be used for prompts."""
        self.running = False
        if self.thread and self.thread is not threading.current_thread():
            self.thread.join(timeout=1.0)
        self.thread = None
        logger.debug("Keyboard input handler stopped")

    def _input_loop(self) -> None:
        while self.running:
            key = self._get_key()
            if key:
                logger.debug(f"Key detected: '{key}'")
                if not self.callback(key):
                    break
            time.sleep(0.05)
        self.running = False

    def _get_key(self) -> Optional[str]:
        if sys.platform == "win32":
            return self._get_key_windows()
        return self._get_key_unix()

    def _get_key_windows(self) -> Optional[str]:
        import msvcrt
        if msvcrt.kbhit():
            return msvcrt.getch().decode('utf-8', errors='ignore').lower()
        return None

    def _get_key_unix(self) -> Optional[str]:
        import select
        import termios
        import tty

        if not select.select([sys.stdin], [], [], 0.1)[0]:
            return None

        old_settings = termios.tcgetattr(sys.stdin)
        try:
            tty.setcbreak(sys.stdin.fileno())
            return sys.stdin.read(1).lower()
        finally:
            termios.tcsetattr(sys.stdin, termios.TCSADRAIN, old_settings)


class SimpleInputHandler:
    """Line-based fallback for terminals without raw key access."""

    def __init__(self, callback: Callable[[str], bool]):
        self.callback = callback
        self.running = False
        self.thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self.running:
            return

        self.running = True
        self.thread = threading.Thread(target=self._input_loop, daemon=True)
        self.thread.name = "SimpleInputThread"
        self.thread.start()
        logger.debug("Simple input handler started")

    def stop(self) -> None:
        # input() cannot be interrupted; the thread exits after the next line
        self.running = False
        logger.debug("Simple input handler stopped")

    def _input_loop(self) -> None:
        while self.running:
            try:
                user_input = input().strip().lower()
            except EOFError:
                break
            if user_input and self.running and not self.callback(user_input[0]):
                break
        self.running = False


def create_input_handler(callback: Callable[[str], bool]):
    """Create the best available input handler for the current terminal.

    Args:
        callback: Function that takes a key and returns True to continue, False to stop

    Returns:
        An input handler with start() and stop()
    """
    if sys.stdin.isatty():
        return KeyboardInputHandler(callback)
    logger.warning("stdin is not a terminal; falling back to line input")
    return SimpleInputHandler(callback)
