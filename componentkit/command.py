"""Options shared by every command."""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from typing import Optional

from componentkit.terminal import Color, Terminal, Verbosity

_AFTER_HELP = (
    "Unrecognized subcommands will be passed to cargo verbatim after relevant "
    "component bindings are updated."
)


def _color_argument(value: str) -> Color:
    try:
        return Color.parse(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def add_common_arguments(parser: argparse.ArgumentParser) -> argparse.ArgumentParser:
    """Add ``--quiet``, ``--verbose`` and ``--color`` to a parser."""
    parser.add_argument(
        "-q", "--quiet", action="store_true", help="Do not print log messages"
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Use verbose output (-vv very verbose output)",
    )
    parser.add_argument(
        "--color",
        metavar="WHEN",
        type=_color_argument,
        default=None,
        help="Coloring: auto, always, never",
    )
    if parser.epilog is None:
        parser.epilog = _AFTER_HELP
    return parser


@dataclass
class CommonOptions:
    """Common options for commands."""

    quiet: bool = False
    verbose: int = 0
    color: Optional[Color] = None

    @classmethod
    def from_namespace(cls, namespace: argparse.Namespace) -> "CommonOptions":
        """Build the options from parsed arguments."""
        return cls(
            quiet=bool(getattr(namespace, "quiet", False)),
            verbose=int(getattr(namespace, "verbose", 0) or 0),
            color=getattr(namespace, "color", None),
        )

    def new_terminal(self) -> Terminal:
        """Create a terminal honouring these options."""
        if self.quiet:
            verbosity = Verbosity.QUIET
        elif self.verbose == 0:
            verbosity = Verbosity.NORMAL
        else:
            verbosity = Verbosity.VERBOSE
        return Terminal(verbosity, self.color or Color.AUTO)