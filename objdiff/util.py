"""Small helpers shared by the object readers and formatters."""

from __future__ import annotations

from typing import BinaryIO


def format_signed_hex(value: int, upper: bool = False, alternate: bool = False) -> str:
    """Format an integer as sign-aware hexadecimal, e.g. ``-0x10`` instead of two's complement."""
    digits = format(abs(value), "X" if upper else "x")
    prefix = "0x" if alternate else ""
    sign = "-" if value < 0 else ""
    return f"{sign}{prefix}{digits}"


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise EOFError(f"expected {size} bytes, got {len(data)}")
    return data


def read_u32(endian: str, stream: BinaryIO) -> int:
    """Read an unsigned 32-bit integer in the given byte order (``"little"`` or ``"big"``)."""
    return int.from_bytes(_read_exact(stream, 4), endian)


def read_u16(endian: str, stream: BinaryIO) -> int:
    """Read an unsigned 16-bit integer in the given byte order (``"little"`` or ``"big"``)."""
    return int.from_bytes(_read_exact(stream, 2), endian)