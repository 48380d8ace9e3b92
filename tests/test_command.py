import argparse

import pytest

from componentkit.command import CommonOptions, add_common_arguments
from componentkit.terminal import Color, Verbosity


def _parse(*args):
    parser = add_common_arguments(argparse.ArgumentParser(prog="tool"))
    return CommonOptions.from_namespace(parser.parse_args(list(args)))


def test_defaults():
    options = _parse()
    assert options == CommonOptions(quiet=False, verbose=0, color=None)
    terminal = options.new_terminal()
    assert terminal.verbosity() is Verbosity.NORMAL


def test_verbose_counts():
    options = _parse("-vv")
    assert options.verbose == 2
    assert options.new_terminal().verbosity() is Verbosity.VERBOSE


def test_single_verbose():
    assert _parse("--verbose").new_terminal().verbosity() is Verbosity.VERBOSE


def test_quiet_wins_over_verbose():
    options = _parse("-q", "-v")
    assert options.quiet is True
    assert options.new_terminal().verbosity() is Verbosity.QUIET


@pytest.mark.parametrize(
    "value, expected, supports",
    [("never", Color.NEVER, False), ("always", Color.ALWAYS, True)],
)
def test_color_option(value, expected, supports):
    options = _parse("--color", value)
    assert options.color is expected
    assert options.new_terminal().supports_color() is supports


def test_invalid_color_rejected(capsys):
    with pytest.raises(SystemExit):
        _parse("--color", "sometimes")
    assert "must be auto, always, or never" in capsys.readouterr().err


def test_epilog_is_set():
    parser = add_common_arguments(argparse.ArgumentParser(prog="tool"))
    assert "passed to cargo verbatim" in parser.format_help()


def test_existing_epilog_kept():
    parser = add_common_arguments(argparse.ArgumentParser(prog="tool", epilog="mine"))
    assert parser.epilog == "mine"