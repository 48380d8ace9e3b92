"""Terminal output that honours verbosity and colour preferences."""

from __future__ import annotations

import enum
import os
import sys
from typing import Optional, TextIO

_BOLD = "\x1b[1m"
_RESET = "\x1b[0m"
_FG_RESET = "\x1b[39m"
_ERASE_LINE = "\x1b[K"


class Color(enum.Enum):
    """When to colour the output."""

    AUTO = "auto"
    NEVER = "never"
    ALWAYS = "always"

    @classmethod
    def parse(cls, value: str) -> "Color":
        """Parse a ``--color`` argument."""
        for member in cls:
            if member.value == value:
                return member
        raise ValueError(
            f"argument for --color must be auto, always, or never, but found `{value}`"
        )

    def __str__(self) -> str:
        return self.value


class Verbosity(enum.Enum):
    """The requested verbosity of output."""

    VERBOSE = "verbose"
    NORMAL = "normal"
    QUIET = "quiet"


class Colors(enum.IntEnum):
    """ANSI foreground colours, valued by their SGR code."""

    BLACK = 30
    RED = 31
    GREEN = 32
    YELLOW = 33
    BLUE = 34
    MAGENTA = 35
    CYAN = 36
    WHITE = 37
    DEFAULT = 39
    BRIGHT_BLACK = 90
    BRIGHT_RED = 91
    BRIGHT_GREEN = 92
    BRIGHT_YELLOW = 93
    BRIGHT_BLUE = 94
    BRIGHT_MAGENTA = 95
    BRIGHT_CYAN = 96
    BRIGHT_WHITE = 97


def _paint(text: str, color: Optional[Colors]) -> str:
    if color is None:
        return text
    return f"\x1b[{int(color)}m{text}{_FG_RESET}"


class Terminal:
    """Writes status messages to stderr, or to a plain writable object."""

    def __init__(self, verbosity: Verbosity, color: Color) -> None:
        self._verbosity = verbosity
        self._color = color
        self._out: Optional[TextIO] = None
        try:
            self._is_terminal = sys.stderr.isatty()
        except (AttributeError, ValueError):
            self._is_terminal = False
        self.needs_clear = False

    @classmethod
    def from_write(cls, out: TextIO) -> "Terminal":
        """Create a terminal over a writable text object, uncoloured and verbose."""
        terminal = cls(Verbosity.VERBOSE, Color.NEVER)
        terminal._out = out
        terminal._is_terminal = False
        return terminal

    def supports_color(self) -> bool:
        """Whether coloured output should be produced."""
        if self._out is not None:
            return False
        if self._color is Color.AUTO:
            return self._is_terminal
        return self._color is Color.ALWAYS

    def status(self, status: object, message: object) -> None:
        """Print a green, right-justified status followed by a message."""
        self._emit(status, message, True, Colors.GREEN, respect_quiet=True)

    def status_with_color(self, status: object, message: object, color: Colors) -> None:
        """Print a right-justified status in the given colour followed by a message."""
        self._emit(status, message, True, color, respect_quiet=True)

    def note(self, message: object) -> None:
        """Print a cyan ``note`` message."""
        self._emit("note", message, False, Colors.CYAN, respect_quiet=True)

    def warn(self, message: object) -> None:
        """Print a yellow ``warning`` message."""
        self._emit("warning", message, False, Colors.YELLOW, respect_quiet=True)

    def error(self, message: object) -> None:
        """Print a red ``error`` message; errors are shown even when quiet."""
        self._emit("error", message, False, Colors.RED, respect_quiet=False)

    def write_stdout(self, fragment: object, color: Optional[Colors] = None) -> None:
        """Write a fragment to stdout, coloured when supported."""
        if self._out is not None:
            self._out.write(str(fragment))
            return
        text = str(fragment)
        if color is not None and self.supports_color():
            text = _paint(text, color)
        sys.stdout.write(text)
        sys.stdout.flush()

    def print_status(self, status: object, message: object, justified: bool) -> None:
        """Print a status, justified or followed by a colon, then a message."""
        self._emit(status, message, justified, None, respect_quiet=True)

    def clear_stderr(self) -> None:
        """Erase the current stderr line if something left it dirty."""
        if not self.needs_clear:
            return
        if self.supports_color():
            if os.name == "nt":
                width = self.width()
                if width is not None:
                    sys.stderr.write(" " * width + "\r")
            else:
                sys.stderr.write(_ERASE_LINE)
            sys.stderr.flush()
        self.needs_clear = False

    def width(self) -> Optional[int]:
        """The width of the terminal in columns, if stderr is a terminal."""
        if self._out is not None:
            return None
        try:
            columns = os.get_terminal_size(sys.stderr.fileno()).columns
        except (AttributeError, OSError, ValueError):
            return None
        return columns if columns > 0 else None

    def verbosity(self) -> Verbosity:
        """The verbosity of this terminal."""
        return self._verbosity

    def _emit(
        self,
        status: object,
        message: object,
        justified: bool,
        color: Optional[Colors],
        *,
        respect_quiet: bool,
    ) -> None:
        if respect_quiet and self._verbosity is Verbosity.QUIET:
            return
        self.clear_stderr()

        colored = self.supports_color()
        text = f"{status!s:>12}" if justified else str(status)
        if colored:
            text = f"{_BOLD}{_paint(text, color)}{_RESET}"
        if not justified:
            text += ":"
        text += " " if message is None else f" {message}\n"

        stream = self._out if self._out is not None else sys.stderr
        stream.write(text)
        stream.flush()