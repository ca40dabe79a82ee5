"""Strip ANSI escape sequences from byte streams.

Use `strip` to clean a whole buffer at once, or wrap a binary sink in a
`Writer` to strip escape sequences as bytes are written, e.g. to keep a log
file free of colors and cursor movements.
"""

from strip_ansi_escapes.parser import Parser, Performer
from strip_ansi_escapes.writer import (
    IntoInnerError,
    LineWriter,
    Sink,
    SinkClosedError,
    Writer,
    WriterConsumedError,
    strip,
    strip_text,
)

__all__ = [
    "IntoInnerError",
    "LineWriter",
    "Parser",
    "Performer",
    "Sink",
    "SinkClosedError",
    "Writer",
    "WriterConsumedError",
    "strip",
    "strip_text",
]
