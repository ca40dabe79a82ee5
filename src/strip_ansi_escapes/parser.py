"""Byte level parser for terminal escape sequences.

The state machine follows the DEC ANSI parser diagram by Paul Williams, with
UTF-8 decoding in the ground state instead of C1 "anywhere" transitions. Each
recognized token is reported to a `Performer`, which decides what to do with
it; the parser itself never interprets a sequence.
"""

from enum import Enum, auto

# ruff: noqa: PLR2004 Byte ranges of the escape sequence grammar
# ruff: noqa: FBT001 Performer callbacks take the ignore flag positionally

MAX_PARAMS = 16
MAX_INTERMEDIATES = 2
MAX_OSC_RAW = 1024
MAX_OSC_PARAMS = 16
MAX_PARAM_VALUE = 2**63 - 1

BEL = 0x07
CAN = 0x18
SUB = 0x1A
ESC = 0x1B
DEL = 0x7F
ST_C1 = 0x9C
SEMICOLON = 0x3B
REPLACEMENT_CHARACTER = "\ufffd"


class State(Enum):
    """Parser states."""

    GROUND = auto()
    ESCAPE = auto()
    ESCAPE_INTERMEDIATE = auto()
    CSI_ENTRY = auto()
    CSI_PARAM = auto()
    CSI_INTERMEDIATE = auto()
    CSI_IGNORE = auto()
    DCS_ENTRY = auto()
    DCS_PARAM = auto()
    DCS_INTERMEDIATE = auto()
    DCS_PASSTHROUGH = auto()
    DCS_IGNORE = auto()
    OSC_STRING = auto()
    SOS_PM_APC_STRING = auto()
    UTF8 = auto()


class Performer:
    """Receiver of the tokens recognized by a `Parser`.

    Every method does nothing by default. Subclasses override the tokens they
    care about.
    """

    def print(self, char: str) -> None:
        """Display a printable character."""

    def execute(self, byte: int) -> None:
        """Execute a C0 or C1 control function."""

    def hook(
        self,
        params: tuple[int, ...],
        intermediates: bytes,
        ignore: bool,
        action: str,
    ) -> None:
        """Start a device control string; `put` calls follow."""

    def put(self, byte: int) -> None:
        """Pass through one byte of a device control string."""

    def unhook(self) -> None:
        """End the current device control string."""

    def osc_dispatch(self, params: list[bytes]) -> None:
        """Dispatch an operating system command."""

    def csi_dispatch(
        self,
        params: tuple[int, ...],
        intermediates: bytes,
        ignore: bool,
        action: str,
    ) -> None:
        """Dispatch a control sequence (ESC [ ... final)."""

    def esc_dispatch(
        self,
        intermediates: bytes,
        ignore: bool,
        byte: int,
    ) -> None:
        """Dispatch a plain escape sequence (ESC intermediates final)."""


def _is_c0(byte: int) -> bool:
    return byte < 0x20


def _is_intermediate(byte: int) -> bool:
    return 0x20 <= byte <= 0x2F


def _is_param(byte: int) -> bool:
    return 0x30 <= byte <= 0x39 or byte == SEMICOLON


def _is_private_marker(byte: int) -> bool:
    return 0x3C <= byte <= 0x3F


def _is_final(byte: int) -> bool:
    return 0x40 <= byte <= 0x7E


def _utf8_length(byte: int) -> int:
    """Number of continuation bytes announced by a UTF-8 lead byte, or 0."""
    if 0xC2 <= byte <= 0xDF:
        return 1
    if 0xE0 <= byte <= 0xEF:
        return 2
    if 0xF0 <= byte <= 0xF4:
        return 3
    return 0


class Parser:
    """Incremental escape sequence parser.

    Feed bytes one at a time with `advance`. State is kept between calls, so
    a sequence split across several buffers is recognized the same way as an
    unsplit one. Malformed or unterminated sequences are never errors: their
    bytes are consumed until the grammar gets back to the ground state.
    """

    def __init__(self) -> None:
        """Initialize the parser in the ground state."""
        self.state = State.GROUND
        self._params: list[int] = []
        self._param = 0
        self._intermediates = bytearray()
        self._ignoring = False
        self._osc_raw = bytearray()
        self._utf8 = bytearray()
        self._utf8_remaining = 0
        self._handlers = {
            State.GROUND: self._ground,
            State.ESCAPE: self._escape,
            State.ESCAPE_INTERMEDIATE: self._escape_intermediate,
            State.CSI_ENTRY: self._csi_entry,
            State.CSI_PARAM: self._csi_param,
            State.CSI_INTERMEDIATE: self._csi_intermediate,
            State.CSI_IGNORE: self._csi_ignore,
            State.DCS_ENTRY: self._dcs_entry,
            State.DCS_PARAM: self._dcs_param,
            State.DCS_INTERMEDIATE: self._dcs_intermediate,
            State.DCS_PASSTHROUGH: self._dcs_passthrough,
            State.DCS_IGNORE: self._string_ignore,
            State.OSC_STRING: self._osc_string,
            State.SOS_PM_APC_STRING: self._string_ignore,
        }

    def advance(self, performer: Performer, byte: int) -> None:
        """Process one byte, reporting any completed token to `performer`."""
        if self.state is State.UTF8:
            self._utf8_continue(performer, byte)
            return
        if byte in (CAN, SUB):
            self._transition(performer, State.GROUND)
            performer.execute(byte)
            return
        if byte == ESC:
            self._transition(performer, State.ESCAPE)
            return
        self._handlers[self.state](performer, byte)

    def _transition(self, performer: Performer, state: State) -> None:
        """Run the exit action of the current state and enter `state`."""
        if self.state is State.DCS_PASSTHROUGH:
            performer.unhook()
        elif self.state is State.OSC_STRING:
            performer.osc_dispatch(self._osc_params())
        self.state = state
        if state in (State.ESCAPE, State.CSI_ENTRY, State.DCS_ENTRY):
            self._clear()
        elif state is State.OSC_STRING:
            self._osc_raw.clear()

    def _clear(self) -> None:
        self._params.clear()
        self._param = 0
        self._intermediates.clear()
        self._ignoring = False

    def _collect(self, byte: int) -> None:
        if len(self._intermediates) < MAX_INTERMEDIATES:
            self._intermediates.append(byte)
        else:
            self._ignoring = True

    def _param_byte(self, byte: int) -> None:
        if byte == SEMICOLON:
            self._push_param()
        else:
            self._param = min(self._param * 10 + byte - 0x30, MAX_PARAM_VALUE)

    def _push_param(self) -> None:
        if len(self._params) < MAX_PARAMS:
            self._params.append(self._param)
        else:
            self._ignoring = True
        self._param = 0

    def _osc_params(self) -> list[bytes]:
        return bytes(self._osc_raw).split(b";", MAX_OSC_PARAMS - 1)

    # Ground and UTF-8

    def _ground(self, performer: Performer, byte: int) -> None:
        if _is_c0(byte):
            performer.execute(byte)
        elif byte < DEL:
            performer.print(chr(byte))
        elif byte == DEL:
            pass
        elif byte <= 0x9F:
            performer.execute(byte)
        elif remaining := _utf8_length(byte):
            self._utf8[:] = (byte,)
            self._utf8_remaining = remaining
            self.state = State.UTF8

    def _utf8_continue(self, performer: Performer, byte: int) -> None:
        if not 0x80 <= byte <= 0xBF:
            # Truncated character: report it once, then reprocess the byte
            performer.print(REPLACEMENT_CHARACTER)
            self.state = State.GROUND
            self.advance(performer, byte)
            return
        self._utf8.append(byte)
        self._utf8_remaining -= 1
        if self._utf8_remaining:
            return
        self.state = State.GROUND
        try:
            char = self._utf8.decode()
        except UnicodeDecodeError:
            # Overlong forms and surrogates
            char = REPLACEMENT_CHARACTER
        performer.print(char)

    # Escape sequences

    def _escape(self, performer: Performer, byte: int) -> None:
        if _is_c0(byte):
            performer.execute(byte)
        elif _is_intermediate(byte):
            self._collect(byte)
            self.state = State.ESCAPE_INTERMEDIATE
        elif byte == ord("["):
            self._transition(performer, State.CSI_ENTRY)
        elif byte == ord("]"):
            self._transition(performer, State.OSC_STRING)
        elif byte == ord("P"):
            self._transition(performer, State.DCS_ENTRY)
        elif byte in b"X^_":
            self.state = State.SOS_PM_APC_STRING
        elif byte < DEL:
            performer.esc_dispatch(
                bytes(self._intermediates), self._ignoring, byte
            )
            self.state = State.GROUND

    def _escape_intermediate(self, performer: Performer, byte: int) -> None:
        if _is_c0(byte):
            performer.execute(byte)
        elif _is_intermediate(byte):
            self._collect(byte)
        elif byte < DEL:
            performer.esc_dispatch(
                bytes(self._intermediates), self._ignoring, byte
            )
            self.state = State.GROUND

    # Control sequences

    def _csi_dispatch(self, performer: Performer, byte: int) -> None:
        self._push_param()
        performer.csi_dispatch(
            tuple(self._params),
            bytes(self._intermediates),
            self._ignoring,
            chr(byte),
        )
        self.state = State.GROUND

    def _csi_entry(self, performer: Performer, byte: int) -> None:
        if _is_c0(byte):
            performer.execute(byte)
        elif _is_intermediate(byte):
            self._collect(byte)
            self.state = State.CSI_INTERMEDIATE
        elif _is_param(byte):
            self._param_byte(byte)
            self.state = State.CSI_PARAM
        elif _is_private_marker(byte):
            self._collect(byte)
            self.state = State.CSI_PARAM
        elif _is_final(byte):
            self._csi_dispatch(performer, byte)
        elif byte != DEL:
            self.state = State.CSI_IGNORE

    def _csi_param(self, performer: Performer, byte: int) -> None:
        if _is_c0(byte):
            performer.execute(byte)
        elif _is_param(byte):
            self._param_byte(byte)
        elif _is_intermediate(byte):
            self._collect(byte)
            self.state = State.CSI_INTERMEDIATE
        elif _is_final(byte):
            self._csi_dispatch(performer, byte)
        elif byte != DEL:
            self.state = State.CSI_IGNORE

    def _csi_intermediate(self, performer: Performer, byte: int) -> None:
        if _is_c0(byte):
            performer.execute(byte)
        elif _is_intermediate(byte):
            self._collect(byte)
        elif _is_final(byte):
            self._csi_dispatch(performer, byte)
        elif byte != DEL:
            self.state = State.CSI_IGNORE

    def _csi_ignore(self, performer: Performer, byte: int) -> None:
        if _is_c0(byte):
            performer.execute(byte)
        elif _is_final(byte):
            self.state = State.GROUND

    # Device control strings

    def _hook(self, performer: Performer, byte: int) -> None:
        self._push_param()
        performer.hook(
            tuple(self._params),
            bytes(self._intermediates),
            self._ignoring,
            chr(byte),
        )
        self.state = State.DCS_PASSTHROUGH

    def _dcs_entry(self, performer: Performer, byte: int) -> None:
        if _is_intermediate(byte):
            self._collect(byte)
            self.state = State.DCS_INTERMEDIATE
        elif _is_param(byte):
            self._param_byte(byte)
            self.state = State.DCS_PARAM
        elif _is_private_marker(byte):
            self._collect(byte)
            self.state = State.DCS_PARAM
        elif _is_final(byte):
            self._hook(performer, byte)
        elif byte == ord(":"):
            self.state = State.DCS_IGNORE

    def _dcs_param(self, performer: Performer, byte: int) -> None:
        if _is_param(byte):
            self._param_byte(byte)
        elif _is_intermediate(byte):
            self._collect(byte)
            self.state = State.DCS_INTERMEDIATE
        elif _is_final(byte):
            self._hook(performer, byte)
        elif byte == ord(":") or _is_private_marker(byte):
            self.state = State.DCS_IGNORE

    def _dcs_intermediate(self, performer: Performer, byte: int) -> None:
        if _is_intermediate(byte):
            self._collect(byte)
        elif _is_final(byte):
            self._hook(performer, byte)
        elif 0x30 <= byte <= 0x3F:
            self.state = State.DCS_IGNORE

    def _dcs_passthrough(self, performer: Performer, byte: int) -> None:
        if byte < DEL:
            performer.put(byte)
        elif byte == ST_C1:
            self._transition(performer, State.GROUND)

    # Strings

    def _osc_string(self, performer: Performer, byte: int) -> None:
        if byte in (BEL, ST_C1):
            self._transition(performer, State.GROUND)
        elif not _is_c0(byte) and len(self._osc_raw) < MAX_OSC_RAW:
            self._osc_raw.append(byte)

    def _string_ignore(self, performer: Performer, byte: int) -> None:
        if byte == ST_C1:
            self._transition(performer, State.GROUND)
