"""Writer that strips escape sequences from the bytes written to it.

`Writer` wraps a byte sink, such as a log file, that cannot meaningfully
render terminal control codes. Bytes written to it go through the escape
sequence `Parser`; only printable characters and line feeds reach the sink.
"""

from __future__ import annotations

import io
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Generic, Protocol, TypeVar

from strip_ansi_escapes.parser import Parser, Performer

if TYPE_CHECKING:
    from collections.abc import Buffer, Iterator
    from types import TracebackType


LF = 0x0A
DEFAULT_CAPACITY = 1024


class Sink(Protocol):
    """Destination for bytes: binary files, pipes, `io.BytesIO`..."""

    def write(self, data: bytes, /) -> int | None:
        """Write bytes, return the number of bytes written."""

    def flush(self) -> None:
        """Flush buffered data to the final destination."""


SinkT = TypeVar("SinkT", bound=Sink)


class WriterConsumedError(ValueError):
    """Error when using a writer after it was unwrapped."""

    def __init__(self) -> None:
        """Initialize with a fixed message."""
        super().__init__("Writer was already unwrapped")


class SinkClosedError(OSError):
    """Error when the sink was closed, e.g. `ValueError` from a closed file."""


@contextmanager
def _closed_sink_as_os_error() -> Iterator[None]:
    try:
        yield
    except ValueError as error:
        raise SinkClosedError(str(error)) from error


class IntoInnerError(OSError):
    """Error when unwrapping a writer could not write out its buffer.

    The line writer still owns the sink and the unwritten bytes, so nothing
    is lost: the caller can retry with `error.writer.unwrap()`, or take the
    sink with `error.sink`.
    """

    def __init__(self, error: OSError, writer: LineWriter[Any]) -> None:
        """Initialize with the flush error and the line writer."""
        self.error = error
        self.writer = writer
        super().__init__(f"Failed to write buffered output: {error}")

    @property
    def sink(self) -> Any:  # noqa: ANN401
        """The sink still owned by the line writer."""
        return self.writer.sink

    def __rich__(self) -> str:
        """Rich formatted error message."""
        return (
            f"[bold red]Error:[/] Failed to write buffered output\n"
            f"[bold]Cause:[/] {self.error!r}\n"
            f"[bold]Unwritten:[/] {len(self.writer.buffer)} bytes"
        )


class LineWriter(Generic[SinkT]):
    """Line buffered writer over a byte sink.

    Data is buffered until a line feed is written, then the buffer is written
    out and the sink is flushed. Without line feeds, the buffer is written out
    (without flushing the sink) when it reaches `capacity` bytes.

    When the sink fails, the unwritten bytes stay in the buffer and are
    retried on the next write out.
    """

    def __init__(self, sink: SinkT, capacity: int = DEFAULT_CAPACITY) -> None:
        """Initialize with an empty buffer."""
        self.sink = sink
        self.capacity = capacity
        self._buffer = bytearray()

    @property
    def buffer(self) -> bytes:
        """Bytes accepted but not yet written to the sink."""
        return bytes(self._buffer)

    def write(self, data: bytes) -> int:
        """Buffer data, writing out and flushing on line feeds."""
        self._buffer += data
        if b"\n" in data:
            self._write_out()
            self._flush_sink()
        elif len(self._buffer) >= self.capacity:
            self._write_out()
        return len(data)

    def flush(self) -> None:
        """Write out the buffer and flush the sink."""
        self._write_out()
        self._flush_sink()

    def unwrap(self) -> SinkT:
        """Write out the buffer and return the sink.

        The sink itself is not flushed.

        Raises:
            IntoInnerError: The buffer could not be written out. The error
                carries this line writer, still owning the sink.
        """
        try:
            self._write_out()
        except OSError as error:
            raise IntoInnerError(error, self) from error
        return self.sink

    def _write_out(self) -> None:
        written = 0
        try:
            while written < len(self._buffer):
                remaining = bytes(self._buffer[written:])
                with _closed_sink_as_os_error():
                    count = self.sink.write(remaining)
                if count is None:
                    # Text-like sinks that do not report a count
                    count = len(remaining)
                if count == 0:
                    msg = "failed to write the buffered data"
                    raise OSError(msg)
                written += count
        finally:
            del self._buffer[:written]

    def _flush_sink(self) -> None:
        with _closed_sink_as_os_error():
            self.sink.flush()


class Dispatcher(Performer):
    """Performer that forwards visible output and discards everything else.

    Printable characters and line feeds go to the line writer. Every other
    control function and all escape, control, operating system command and
    device control sequences are dropped.

    A failure to forward is not raised: it is kept in `error`, so the parser
    can go on with the rest of the buffer. A later failure replaces it.
    """

    def __init__(self, writer: LineWriter[Any]) -> None:
        """Initialize with no pending error."""
        self.writer = writer
        self.error: OSError | None = None

    def print(self, char: str) -> None:
        """Forward a printable character, UTF-8 encoded."""
        self._forward(char.encode())

    def execute(self, byte: int) -> None:
        """Forward line feeds, drop other control functions."""
        if byte == LF:
            self._forward(b"\n")

    def _forward(self, data: bytes) -> None:
        try:
            self.writer.write(data)
        except OSError as error:
            self.error = error


class Writer(Generic[SinkT]):
    r"""Writer stripping escape sequences before writing to a sink.

    >>> sink = io.BytesIO()
    >>> writer = Writer(sink)
    >>> writer.write(b"\x1b[32mfoo\x1b[m bar\n")
    16
    >>> sink.getvalue()
    b'foo bar\n'

    The writer owns the sink until `unwrap` returns it. After `unwrap`,
    successful or not, the writer cannot be used anymore.
    """

    def __init__(self, sink: SinkT, capacity: int = DEFAULT_CAPACITY) -> None:
        """Initialize with a line buffered writer over `sink`."""
        self._line_writer = LineWriter(sink, capacity)
        self._dispatcher = Dispatcher(self._line_writer)
        self._parser = Parser()
        self._consumed = False

    def write(self, data: Buffer) -> int:
        """Strip escape sequences from data and write the rest to the sink.

        All of `data` is always processed, even after a write to the sink
        failed, so the parser state stays consistent for the next call.

        Returns:
            The length of data in bytes; the whole buffer is consumed.

        Raises:
            OSError: Writing to the sink failed. When several writes failed,
                the last error is raised.
        """
        self._check_not_consumed()
        dispatcher = self._dispatcher
        dispatcher.error = None
        advance = self._parser.advance
        view = memoryview(data).cast("B")
        for byte in view:
            advance(dispatcher, byte)
        error, dispatcher.error = dispatcher.error, None
        if error is not None:
            raise error
        return len(view)

    def writable(self) -> bool:
        """Return True, writers are always writable."""
        return True

    def flush(self) -> None:
        """Write out buffered bytes and flush the sink."""
        self._check_not_consumed()
        self._line_writer.flush()

    def unwrap(self) -> SinkT:
        """Write out buffered bytes and return the sink.

        Raises:
            IntoInnerError: The buffered bytes could not be written. The error
                carries the line writer, which still owns the sink and the
                unwritten bytes.
        """
        self._check_not_consumed()
        self._consumed = True
        return self._line_writer.unwrap()

    def __enter__(self) -> Writer[SinkT]:
        """Enter the context, returning the writer itself."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        """Flush the writer, unless it was unwrapped or an error is raised."""
        if exc_type is None and not self._consumed:
            self.flush()

    def _check_not_consumed(self) -> None:
        if self._consumed:
            raise WriterConsumedError


def strip(data: Buffer) -> bytes:
    r"""Strip escape sequences from data, return the remaining bytes.

    >>> strip(b"\x1b[32mfoo\x1b[m bar")
    b'foo bar'
    """
    writer = Writer(io.BytesIO())
    writer.write(data)
    return writer.unwrap().getvalue()


def strip_text(text: str) -> str:
    r"""Strip escape sequences from a string.

    >>> strip_text("\x1b[1;31merror:\x1b[0m oops")
    'error: oops'
    """
    return strip(text.encode()).decode()
