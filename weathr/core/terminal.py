"""Terminal capability detection and the raw-mode / alternate-screen session."""

from __future__ import annotations

import logging
import os
import re
import select
import shutil
import sys
import termios
import tty
from enum import Enum
from typing import Mapping, Optional, TextIO

logger = logging.getLogger(__name__)

# Escape sequences
ENTER_ALT_SCREEN = "\033[?1049h"
LEAVE_ALT_SCREEN = "\033[?1049l"
HIDE_CURSOR = "\033[?25l"
SHOW_CURSOR = "\033[?25h"
RESET_STYLE = "\033[0m"
CLEAR_SCREEN = "\033[2J"
CURSOR_HOME = "\033[H"

# TERM values known to carry at least 256 colors
_TERM_256_PATTERN = re.compile(
    r"(256col|kitty|alacritty|wezterm|ghostty|foot|tmux|screen\.xterm|direct)",
    re.IGNORECASE,
)
_TRUECOLOR_VALUES = ("truecolor", "24bit")


class TerminalCapability(Enum):
    """Color depth the terminal can display."""
    NO_COLOR = "no-color"
    ANSI_256 = "256-color"
    TRUECOLOR = "truecolor"


class TerminalError(RuntimeError):
    """The terminal cannot be switched into the modes the animation needs."""


def accessibility_disabled(env: Mapping[str, str]) -> bool:
    """True when the user asked for no color (https://no-color.org)."""
    return "NO_COLOR" in env


def detect(env: Optional[Mapping[str, str]] = None) -> TerminalCapability:
    """Detect color support from environment signals.

    Precedence: NO_COLOR > COLORTERM truecolor hint > TERM 256-color pattern > no color.
    """
    if env is None:
        env = os.environ
    if accessibility_disabled(env):
        return TerminalCapability.NO_COLOR
    colorterm = env.get("COLORTERM", "").lower()
    if any(value in colorterm for value in _TRUECOLOR_VALUES):
        return TerminalCapability.TRUECOLOR
    term = env.get("TERM", "")
    if term and _TERM_256_PATTERN.search(term):
        return TerminalCapability.ANSI_256
    return TerminalCapability.NO_COLOR


class TerminalSession:
    """Scoped terminal state: cbreak input, alternate screen, hidden cursor.

    Usage::

        with TerminalSession() as term:
            term.write(frame)
            key = term.read_key()

    Leaving the block always restores the saved tty attributes, the main
    screen and the cursor, whatever caused the exit.
    """

    def __init__(self, stdin: Optional[TextIO] = None, stdout: Optional[TextIO] = None):
        self.stdin = stdin if stdin is not None else sys.stdin
        self.stdout = stdout if stdout is not None else sys.stdout
        self._fd: Optional[int] = None
        self._saved_attrs: Optional[list] = None
        self._active = False

    def __enter__(self) -> "TerminalSession":
        try:
            fd = self.stdin.fileno()
            if not os.isatty(fd):
                raise TerminalError("stdin is not a terminal")
            self._saved_attrs = termios.tcgetattr(fd)
            tty.setcbreak(fd)
        except TerminalError:
            raise
        except (termios.error, OSError, ValueError) as exc:
            raise TerminalError(f"cannot enter raw mode: {exc}") from exc

        self._fd = fd
        self._active = True
        try:
            self.stdout.write(ENTER_ALT_SCREEN + HIDE_CURSOR + CLEAR_SCREEN)
            self.stdout.flush()
        except OSError as exc:
            self.restore()
            raise TerminalError(f"cannot switch to alternate screen: {exc}") from exc
        logger.debug("Terminal session started on fd %d", fd)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.restore()

    def restore(self) -> None:
        """Undo every mode change. Safe to call more than once."""
        if not self._active:
            return
        self._active = False
        try:
            self.stdout.write(RESET_STYLE + SHOW_CURSOR + LEAVE_ALT_SCREEN)
            self.stdout.flush()
        except OSError:
            logger.debug("Could not write terminal reset sequence", exc_info=True)
        if self._fd is not None and self._saved_attrs is not None:
            try:
                termios.tcsetattr(self._fd, termios.TCSADRAIN, self._saved_attrs)
            except termios.error:
                logger.warning("Could not restore terminal attributes")
        logger.debug("Terminal session restored")

    @property
    def active(self) -> bool:
        return self._active

    def size(self) -> tuple[int, int]:
        """Current (columns, rows)."""
        try:
            size = os.get_terminal_size(self.stdout.fileno())
        except (OSError, ValueError):
            size = shutil.get_terminal_size()
        return size.columns, size.lines

    def read_key(self, timeout: float = 0.0) -> Optional[str]:
        """Return one pending character, or None if nothing arrived within ``timeout``."""
        if self._fd is None:
            return None
        ready, _, _ = select.select([self._fd], [], [], timeout)
        if not ready:
            return None
        data = os.read(self._fd, 1)
        return data.decode(errors="ignore") or None

    def write(self, text: str) -> None:
        self.stdout.write(text)
        self.stdout.flush()
