"""Terminal state guard for the browser.

Textual puts the terminal in raw mode on the alternate screen and normally
undoes that itself. ``TerminalGuard`` covers the paths where it cannot: an
exit while the editor is suspended, SIGTERM/SIGHUP, or an interpreter exit
that skips the app's shutdown. It saves the tty attributes on entry and puts
them back, together with the main screen and a visible cursor, however the
block is left.
"""

import atexit
import logging
import signal
import sys
import termios
from typing import Any, Optional, TextIO

logger = logging.getLogger(__name__)

LEAVE_ALT_SCREEN = "\x1b[?1049l"
SHOW_CURSOR = "\x1b[?25h"

GUARDED_SIGNALS = tuple(
    sig for sig in (getattr(signal, "SIGTERM", None), getattr(signal, "SIGHUP", None)) if sig
)


class TerminalGuard:
    """Context manager that restores the terminal on any exit path."""

    def __init__(self, stream: Optional[TextIO] = None, fd: Optional[int] = None):
        self.stream = stream if stream is not None else sys.__stdout__
        self.fd = fd if fd is not None else self._default_fd()
        self.saved_attrs: Optional[list[Any]] = None
        self.restored = False
        self._previous_handlers: dict[int, Any] = {}

    @staticmethod
    def _default_fd() -> Optional[int]:
        try:
            fd = sys.__stdin__.fileno()
        except (AttributeError, OSError, ValueError):
            return None
        return fd

    def __enter__(self) -> "TerminalGuard":
        self.restored = False
        if self.fd is not None:
            try:
                self.saved_attrs = termios.tcgetattr(self.fd)
            except (termios.error, OSError):
                logger.debug("stdin is not a tty; no terminal attributes to save")
                self.saved_attrs = None

        atexit.register(self.restore)
        for sig in GUARDED_SIGNALS:
            try:
                self._previous_handlers[sig] = signal.signal(sig, self._handle_signal)
            except ValueError:
                # Only the main thread may install handlers
                logger.debug(f"Could not install handler for signal {sig}")
        return self

    def __exit__(self, *exc) -> None:
        self.restore()
        self._uninstall_handlers()
        atexit.unregister(self.restore)

    def restore(self) -> None:
        """Put the terminal back. Safe to call more than once."""
        if self.restored:
            return
        self.restored = True

        try:
            self.stream.write(LEAVE_ALT_SCREEN + SHOW_CURSOR)
            self.stream.flush()
        except (OSError, ValueError) as e:
            logger.warning(f"Could not reset terminal screen: {e}")

        if self.saved_attrs is not None and self.fd is not None:
            try:
                termios.tcsetattr(self.fd, termios.TCSADRAIN, self.saved_attrs)
            except (termios.error, OSError) as e:
                logger.warning(f"Could not restore terminal attributes: {e}")

    def _uninstall_handlers(self) -> None:
        for sig, handler in self._previous_handlers.items():
            try:
                signal.signal(sig, handler)
            except ValueError:
                logger.debug(f"Could not restore handler for signal {sig}")
        self._previous_handlers.clear()

    def _handle_signal(self, signum: int, frame: Any) -> None:
        logger.warning(f"Received signal {signum}; restoring terminal")
        previous = self._previous_handlers.get(signum)
        self.restore()
        self._uninstall_handlers()
        if callable(previous):
            previous(signum, frame)
        elif previous == signal.SIG_IGN:
            return
        else:
            raise SystemExit(128 + signum)
