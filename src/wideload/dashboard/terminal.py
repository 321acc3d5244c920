"""Terminal display surface: screen lifecycle, frame drawing and key input."""

import logging
import os
import select
import sys
import termios
import tty
from typing import Callable, List, Optional

from rich.console import Console, RenderableType
from rich.live import Live

logger = logging.getLogger(__name__)

ESCAPE_SEQUENCES = {
    "\x1b[A": "up",
    "\x1b[B": "down",
    "\x1b[C": "right",
    "\x1b[D": "left",
    "\x1bOA": "up",
    "\x1bOB": "down",
    "\x1bOC": "right",
    "\x1bOD": "left",
}


def decode_keys(data: bytes) -> List[str]:
    """Translate raw terminal input into key names.

    Arrow keys become ``left``/``right``/``up``/``down``, a lone escape
    becomes ``esc``, ETX becomes ``ctrl+c`` and printable characters are
    returned as themselves. Unrecognised escape sequences are skipped.
    """
    text = data.decode("utf-8", errors="replace")
    keys: List[str] = []
    i = 0
    while i < len(text):
        char = text[i]
        if char == "\x1b":
            sequence = text[i:i + 3]
            if sequence in ESCAPE_SEQUENCES:
                keys.append(ESCAPE_SEQUENCES[sequence])
                i += 3
                continue
            if i + 1 < len(text) and text[i + 1] in "[O":
                # Skip an unknown CSI/SS3 sequence up to its final byte
                j = i + 2
                while j < len(text) and not ("@" <= text[j] <= "~"):
                    j += 1
                i = j + 1
                continue
            keys.append("esc")
        elif char == "\x03":
            keys.append("ctrl+c")
        else:
            keys.append(char)
        i += 1
    return keys


class Terminal:
    """Full-screen rich display with non-blocking keyboard polling.

    While active, stdin is in cbreak mode with signal generation disabled so
    that Ctrl+C is delivered as a key press rather than SIGINT.
    """

    def __init__(self, console: Optional[Console] = None, stdin=None):
        self.console = console or Console()
        self.stdin = stdin or sys.stdin
        self._live: Optional[Live] = None
        self._saved_attrs = None

    def _fd(self) -> Optional[int]:
        try:
            if self.stdin.isatty():
                return self.stdin.fileno()
        except (AttributeError, ValueError, OSError):
            pass
        return None

    def init(self) -> None:
        fd = self._fd()
        if fd is not None:
            self._saved_attrs = termios.tcgetattr(fd)
            tty.setcbreak(fd)
            attrs = termios.tcgetattr(fd)
            attrs[3] &= ~termios.ISIG
            termios.tcsetattr(fd, termios.TCSANOW, attrs)

        live = Live(console=self.console, screen=True, auto_refresh=False)
        try:
            live.start()
        except Exception:
            # Put stdin back the way it was before leaving
            self.restore()
            raise
        self._live = live
        self.console.show_cursor(False)
        logger.debug("Terminal initialized")

    def draw(self, render: Callable[[int], RenderableType]) -> None:
        """Render one frame; ``render`` receives the console width."""
        if self._live is None:
            raise RuntimeError("terminal is not initialized")
        self._live.update(render(self.console.size.width), refresh=True)

    def poll_keys(self) -> List[str]:
        """Return keys pressed since the last poll without blocking."""
        fd = self._fd()
        if fd is None:
            return []
        ready, _, _ = select.select([fd], [], [], 0)
        if not ready:
            return []
        return decode_keys(os.read(fd, 1024))

    def restore(self) -> None:
        """Leave the alternate screen and restore terminal settings. Idempotent."""
        if self._live is not None:
            self._live.stop()
            self._live = None

        if self._saved_attrs is not None:
            fd = self._fd()
            if fd is not None:
                termios.tcsetattr(fd, termios.TCSADRAIN, self._saved_attrs)
            self._saved_attrs = None

        self.console.clear()
        self.console.show_cursor(True)
        logger.debug("Terminal restored")
