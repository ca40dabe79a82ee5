"""Strip-ansi-escapes command line interface.

Copy standard input to standard output, removing terminal escape sequences
such as colors and cursor movements. Useful to write the output of a
colorful program to a log file.
"""

import sys

import typer
from rich.markup import escape

from strip_ansi_escapes.console import print_error
from strip_ansi_escapes.writer import Writer

app = typer.Typer(add_completion=False)

CHUNK_SIZE = 64 * 1024


@app.command()
def main() -> None:
    """Copy stdin to stdout, stripping ANSI escape sequences."""
    stdin = sys.stdin.buffer
    writer = Writer(sys.stdout.buffer)
    try:
        while chunk := stdin.read1(CHUNK_SIZE):
            writer.write(chunk)
        writer.unwrap().flush()
    except OSError as error:
        print_error("I/O error copying stdin to stdout:", escape(str(error)))
        raise typer.Exit(1) from error


if __name__ == "__main__":
    app()
