import io

import pytest

from componentkit.terminal import Color, Colors, Terminal, Verbosity


def _strip(text):
    for seq in ("\x1b[1m", "\x1b[0m", "\x1b[39m", "\x1b[32m", "\x1b[31m"):
        text = text.replace(seq, "")
    return text


@pytest.mark.parametrize("value", ["auto", "never", "always"])
def test_color_parse_round_trip(value):
    assert str(Color.parse(value)) == value


def test_color_parse_rejects_unknown():
    with pytest.raises(ValueError, match="must be auto, always, or never, but found `sometimes`"):
        Color.parse("sometimes")


def test_status_is_right_justified():
    out = io.StringIO()
    Terminal.from_write(out).status("Updating", "logs")
    assert out.getvalue() == "Updating".rjust(12) + " logs\n"


def test_note_warn_error_prefixes():
    out = io.StringIO()
    terminal = Terminal.from_write(out)
    terminal.note("a")
    terminal.warn("b")
    terminal.error("c")
    assert out.getvalue().splitlines() == ["note: a", "warning: b", "error: c"]


def test_print_status_without_message_has_no_newline():
    out = io.StringIO()
    Terminal.from_write(out).print_status("Fetching", None, True)
    assert out.getvalue() == "Fetching".rjust(12) + " "


def test_status_with_color_plain_when_written():
    out = io.StringIO()
    Terminal.from_write(out).status_with_color("Blocking", "waiting", Colors.CYAN)
    assert "\x1b" not in out.getvalue()
    assert out.getvalue().endswith("Blocking waiting\n")


def test_write_terminal_properties():
    terminal = Terminal.from_write(io.StringIO())
    assert terminal.supports_color() is False
    assert terminal.width() is None
    assert terminal.verbosity() is Verbosity.VERBOSE


def test_write_stdout_goes_to_writer():
    out = io.StringIO()
    Terminal.from_write(out).write_stdout("fragment", Colors.RED)
    assert out.getvalue() == "fragment"


def test_quiet_suppresses_all_but_errors(capsys):
    terminal = Terminal(Verbosity.QUIET, Color.NEVER)
    terminal.status("Updating", "logs")
    terminal.warn("careful")
    terminal.note("fyi")
    terminal.error("boom")
    assert capsys.readouterr().err == "error: boom\n"


def test_never_color_stream_is_plain(capsys):
    terminal = Terminal(Verbosity.NORMAL, Color.NEVER)
    assert terminal.supports_color() is False
    terminal.status("Done", "ok")
    assert capsys.readouterr().err == "Done".rjust(12) + " ok\n"


def test_always_color_stream_is_styled(capsys):
    terminal = Terminal(Verbosity.NORMAL, Color.ALWAYS)
    assert terminal.supports_color() is True
    terminal.status("Updating", "done")
    err = capsys.readouterr().err
    assert "\x1b[1m" in err
    assert "\x1b[32m" in err
    assert _strip(err) == "Updating".rjust(12) + " done\n"


def test_always_color_error_keeps_colon_outside_style(capsys):
    Terminal(Verbosity.NORMAL, Color.ALWAYS).error("bad")
    err = capsys.readouterr().err
    assert "\x1b[31m" in err
    assert _strip(err) == "error: bad\n"


def test_write_stdout_colored(capsys):
    Terminal(Verbosity.NORMAL, Color.ALWAYS).write_stdout("hi", Colors.RED)
    out = capsys.readouterr().out
    assert "\x1b[31m" in out
    assert _strip(out) == "hi"


def test_write_stdout_uncolored_when_never(capsys):
    Terminal(Verbosity.NORMAL, Color.NEVER).write_stdout("hi", Colors.RED)
    assert capsys.readouterr().out == "hi"


def test_clear_stderr_resets_flag(capsys):
    terminal = Terminal(Verbosity.NORMAL, Color.ALWAYS)
    terminal.needs_clear = True
    terminal.clear_stderr()
    assert terminal.needs_clear is False
    assert capsys.readouterr().err in ("\x1b[K", "")


def test_clear_stderr_noop_when_clean(capsys):
    terminal = Terminal(Verbosity.NORMAL, Color.ALWAYS)
    terminal.clear_stderr()
    assert capsys.readouterr().err == ""


def test_auto_color_off_when_not_a_tty(capsys):
    terminal = Terminal(Verbosity.NORMAL, Color.AUTO)
    assert terminal.supports_color() is False