"""Common test fixtures."""

from __future__ import annotations

from dataclasses import dataclass, field
from io import StringIO
from typing import TYPE_CHECKING
from unittest.mock import patch

import pytest
from rich.console import Console

if TYPE_CHECKING:
    from collections.abc import Iterator


@dataclass
class ConsoleFixture:
    """Console output fixture that tracks whether output was checked.

    Usage patterns:
    1. Verify specific output: assert console_out.getvalue() == "expected"
    2. No output expected: don't call getvalue(), fixture verifies empty
    3. Ignore output: call console_out.ignore_output()

    NEVER call getvalue() without asserting its value - this defeats the
    safety check for unexpected output.
    """

    _output: StringIO
    _checked: bool = field(default=False, init=False)

    def getvalue(self) -> str:
        """Get console output, marking it as checked."""
        self._checked = True
        return self._output.getvalue()

    def ignore_output(self) -> None:
        """Mark output as intentionally ignored."""
        self._checked = True

    def assert_no_unexpected_output(self) -> None:
        """Assert no unexpected output if not already checked."""
        if not self._checked:
            output = self._output.getvalue()
            assert output == "", "Unexpected console output"


@pytest.fixture
def console_out() -> Iterator[ConsoleFixture]:
    """Patch console with test console using StringIO (no colors)."""
    output = StringIO()
    test_console = Console(file=output, force_terminal=False, soft_wrap=True)
    fixture = ConsoleFixture(output)

    with patch("strip_ansi_escapes.console._console", test_console):
        yield fixture

    fixture.assert_no_unexpected_output()


@dataclass
class FlakySink:
    """In-memory sink that can fail or accept partial writes.

    Errors queued in `errors` are raised by the next calls to `write`, one per
    call. When `max_write` is set, each write accepts at most that many bytes.
    """

    data: bytearray = field(default_factory=bytearray)
    errors: list[OSError] = field(default_factory=list)
    max_write: int | None = None
    writes: list[bytes] = field(default_factory=list)
    flushes: int = 0

    def write(self, data: bytes) -> int:
        """Record data, or raise the next queued error."""
        if self.errors:
            raise self.errors.pop(0)
        chunk = data if self.max_write is None else data[: self.max_write]
        self.data += chunk
        self.writes.append(bytes(chunk))
        return len(chunk)

    def flush(self) -> None:
        """Count flushes."""
        self.flushes += 1


@pytest.fixture
def sink() -> FlakySink:
    """Return an empty in-memory sink."""
    return FlakySink()
