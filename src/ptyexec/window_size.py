"""Terminal window size value type."""

from __future__ import annotations

import struct
from dataclasses import dataclass

# struct winsize { unsigned short ws_row, ws_col, ws_xpixel, ws_ypixel; }
_WINSIZE_FORMAT = "HHHH"
WINSIZE_STRUCT_SIZE = struct.calcsize(_WINSIZE_FORMAT)
_MAX_FIELD = 0xFFFF


@dataclass(frozen=True)
class WindowSize:
    """Rows, columns and pixel dimensions of a terminal window."""

    rows: int
    cols: int
    xpixel: int = 0
    ypixel: int = 0

    def __post_init__(self) -> None:
        for name in ("rows", "cols", "xpixel", "ypixel"):
            value = getattr(self, name)
            if not isinstance(value, int) or not 0 <= value <= _MAX_FIELD:
                error_message = f"WindowSize.{name} must be an integer in [0, {_MAX_FIELD}], got {value!r}"
                raise ValueError(error_message)

    def pack(self) -> bytes:
        """Encode as a native ``struct winsize``."""
        return struct.pack(_WINSIZE_FORMAT, self.rows, self.cols, self.xpixel, self.ypixel)

    @classmethod
    def unpack(cls, data: bytes) -> WindowSize:
        """Decode a native ``struct winsize``."""
        rows, cols, xpixel, ypixel = struct.unpack(_WINSIZE_FORMAT, data[:WINSIZE_STRUCT_SIZE])
        return cls(rows=rows, cols=cols, xpixel=xpixel, ypixel=ypixel)
