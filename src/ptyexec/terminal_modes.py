"""Terminal mode settings passed through to the slave side of a PTY.

The flag words and control-character indices are the host's own ``termios``
values; nothing here interprets the bits beyond building a sensible default.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, replace
from typing import Any


class ControlChar(enum.Enum):
    """Semantic roles of the control characters, valued by their ``termios`` index name."""

    INTERRUPT = "VINTR"
    QUIT = "VQUIT"
    ERASE = "VERASE"
    KILL = "VKILL"
    SUSPEND = "VSUSP"
    REPRINT = "VREPRINT"
    WORD_ERASE = "VWERASE"
    END_OF_FILE = "VEOF"
    FLOW_START = "VSTART"
    FLOW_STOP = "VSTOP"

    @property
    def index(self) -> int | None:
        """Position of this role in the host's ``c_cc`` array, or None if the host lacks it."""
        import termios  # noqa: PLC0415

        return getattr(termios, self.value, None)


def _ctrl(key: str) -> bytes:
    return bytes([ord(key) & 0x1F])


_DEFAULT_BINDINGS: dict[ControlChar, bytes] = {
    ControlChar.INTERRUPT: _ctrl("C"),
    ControlChar.QUIT: _ctrl("\\"),
    ControlChar.ERASE: b"\x7f",
    ControlChar.KILL: _ctrl("U"),
    ControlChar.SUSPEND: _ctrl("Z"),
    ControlChar.REPRINT: _ctrl("R"),
    ControlChar.WORD_ERASE: _ctrl("W"),
    ControlChar.END_OF_FILE: _ctrl("D"),
    ControlChar.FLOW_START: _ctrl("Q"),
    ControlChar.FLOW_STOP: _ctrl("S"),
}


@dataclass(frozen=True)
class TerminalModes:
    """Input, output, control and local flags plus the control-character table."""

    iflag: int
    oflag: int
    cflag: int
    lflag: int
    cc: tuple[Any, ...]
    ispeed: int | None = None
    ospeed: int | None = None

    def to_attributes(self) -> list[Any]:
        """Return the list shape accepted by ``termios.tcsetattr``."""
        import termios  # noqa: PLC0415

        ispeed = self.ispeed if self.ispeed is not None else termios.B38400
        ospeed = self.ospeed if self.ospeed is not None else termios.B38400
        return [self.iflag, self.oflag, self.cflag, self.lflag, ispeed, ospeed, list(self.cc)]

    @classmethod
    def from_attributes(cls, attributes: list[Any]) -> TerminalModes:
        """Build from the list returned by ``termios.tcgetattr``."""
        iflag, oflag, cflag, lflag, ispeed, ospeed, cc = attributes
        return cls(
            iflag=iflag,
            oflag=oflag,
            cflag=cflag,
            lflag=lflag,
            cc=tuple(cc),
            ispeed=ispeed,
            ospeed=ospeed,
        )

    def control_char(self, role: ControlChar) -> Any:
        index = role.index
        if index is None:
            return None
        return self.cc[index]

    def with_control_char(self, role: ControlChar, value: bytes) -> TerminalModes:
        """Return a copy with ``role`` bound to ``value``."""
        index = role.index
        if index is None:
            error_message = f"{role.name} is not supported by this platform's termios"
            raise ValueError(error_message)
        cc = list(self.cc)
        cc[index] = value
        return replace(self, cc=tuple(cc))


def _flags(termios_module: Any, *names: str) -> int:
    value = 0
    for name in names:
        value |= getattr(termios_module, name, 0)
    return value


def default_terminal_modes() -> TerminalModes:
    """Modes applied to the slave when the caller supplies none.

    Canonical input with echo and job-control signals. Output post-processing
    stays on but ``ONLCR`` is off, so a ``\\n`` written by the child reaches the
    master unchanged.
    """
    import termios  # noqa: PLC0415

    iflag = _flags(termios, "BRKINT", "ICRNL", "IXON", "IXANY", "IMAXBEL", "IUTF8")
    oflag = _flags(termios, "OPOST")
    cflag = _flags(termios, "CREAD", "CS8", "HUPCL")
    lflag = _flags(termios, "ICANON", "ISIG", "IEXTEN", "ECHO", "ECHOE", "ECHOK", "ECHOKE", "ECHOCTL")

    cc: list[Any] = [b"\x00"] * termios.NCCS
    for role, value in _DEFAULT_BINDINGS.items():
        index = role.index
        if index is not None:
            cc[index] = value
    # VMIN/VTIME share slots with VEOF/VEOL on some hosts; only set them where distinct.
    if termios.VMIN != termios.VEOF:
        cc[termios.VMIN] = 1
    if termios.VTIME != getattr(termios, "VEOL", -1):
        cc[termios.VTIME] = 0

    return TerminalModes(
        iflag=iflag,
        oflag=oflag,
        cflag=cflag,
        lflag=lflag,
        cc=tuple(cc),
        ispeed=termios.B38400,
        ospeed=termios.B38400,
    )
