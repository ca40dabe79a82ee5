"""Integration tests for the CLI module.

These tests run the command line interface in process, feeding standard input
and checking standard output, standard error and the exit status.
"""

from __future__ import annotations

import functools
import io
from typing import TYPE_CHECKING, Any
from unittest.mock import patch

import typer
import typer.testing

from strip_ansi_escapes.cli import app
from strip_ansi_escapes.writer import Writer

if TYPE_CHECKING:
    from collections.abc import Sequence

    # typer.testing.Result is not explicitly exported and is an alias for
    # click.testing.Result
    from click.testing import Result as TestingResult
    from conftest import ConsoleFixture, FlakySink


class CliRunner(typer.testing.CliRunner):
    """Typer CLI runner that patches sys.argv."""

    def invoke(  # type: ignore[override]
        self,
        app: typer.Typer,
        args: str | Sequence[str] | None = None,
        *args_,  # noqa: ANN002
        **kwargs,  # noqa: ANN003
    ) -> TestingResult:
        """Invoke the CLI with patched sys.argv."""
        if isinstance(args, str):
            args = [args]
        elif args is None:
            args = []
        with patch("sys.argv", ["strip-ansi-escapes", *args]):
            result = super().invoke(app, args, *args_, **kwargs)
            exception = result.exception
            if isinstance(exception, Exception) and not isinstance(
                exception, typer.Exit
            ):
                raise exception
            return result

    functools.update_wrapper(invoke, typer.testing.CliRunner.invoke)


runner = CliRunner()


def test_pass_normal_text_through() -> None:
    """Text without escape sequences is copied unchanged."""
    result = runner.invoke(app, input=b"hello")
    assert result.exit_code == 0
    assert result.stdout_bytes == b"hello"


def test_strip_escape_sequences() -> None:
    """A two-byte escape sequence does not swallow the following text."""
    result = runner.invoke(app, input=b"foo\x1b7bar")
    assert result.exit_code == 0
    assert result.stdout_bytes == b"foobar"


def test_strip_colored_lines() -> None:
    """Colors are removed and every line feed is kept."""
    data = b"\x1b[1;31merror:\x1b[0m one\n\x1b[33mwarning:\x1b[0m two\n"
    result = runner.invoke(app, input=data)
    assert result.exit_code == 0
    assert result.stdout_bytes == b"error: one\nwarning: two\n"


def test_binary_input() -> None:
    """Non UTF-8 input does not stop the copy."""
    result = runner.invoke(app, input=b"a\xffb\n")
    assert result.exit_code == 0
    assert result.stdout_bytes == b"ab\n"


def test_write_error(console_out: ConsoleFixture, sink: FlakySink) -> None:
    """Output errors are reported on one line, with exit status 1."""
    sink.errors.append(BrokenPipeError("Broken pipe"))

    def failing_writer(_stdout: Any) -> Writer[FlakySink]:  # noqa: ANN401
        return Writer(sink)

    with patch("strip_ansi_escapes.cli.Writer", failing_writer):
        result = runner.invoke(app, input=b"lost\n")
    assert result.exit_code == 1
    assert result.stdout_bytes == b""
    assert console_out.getvalue() == (
        "I/O error copying stdin to stdout: Broken pipe\n"
    )


def test_unwrap_error(console_out: ConsoleFixture, sink: FlakySink) -> None:
    """Errors writing the last, unterminated line are reported too."""
    sink.errors.append(OSError("No space left on device"))

    def failing_writer(_stdout: Any) -> Writer[FlakySink]:  # noqa: ANN401
        return Writer(sink)

    with patch("strip_ansi_escapes.cli.Writer", failing_writer):
        result = runner.invoke(app, input=b"no line feed")
    assert result.exit_code == 1
    assert console_out.getvalue() == (
        "I/O error copying stdin to stdout: "
        "Failed to write buffered output: No space left on device\n"
    )


def test_help() -> None:
    """The command has no options besides help."""
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "Copy stdin to stdout" in result.output


def test_closed_stdout(console_out: ConsoleFixture) -> None:
    """A closed output is reported like other I/O errors."""
    closed = io.BytesIO()
    closed.close()

    def closed_writer(_stdout: Any) -> Writer[io.BytesIO]:  # noqa: ANN401
        return Writer(closed)

    with patch("strip_ansi_escapes.cli.Writer", closed_writer):
        result = runner.invoke(app, input=b"text\n")
    assert result.exit_code == 1
    assert console_out.getvalue() == (
        "I/O error copying stdin to stdout: I/O operation on closed file.\n"
    )
