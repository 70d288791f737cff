"""Reading and writing of the ``.note.split`` ELF section holding split-object metadata."""

from __future__ import annotations

import io
from collections.abc import Iterator
from dataclasses import dataclass
from typing import BinaryIO, Optional

SPLITMETA_SECTION = ".note.split"
SHT_SPLITMETA = 7  # SHT_NOTE
ELF_NOTE_SPLIT = b"Split"

NT_SPLIT_GENERATOR = int.from_bytes(b"GENR", "big")
NT_SPLIT_MODULE_NAME = int.from_bytes(b"MODN", "big")
NT_SPLIT_MODULE_ID = int.from_bytes(b"MODI", "big")
NT_SPLIT_VIRTUAL_ADDRESSES = int.from_bytes(b"VIRT", "big")

# Name size, desc size and type words, then the name padded to 4 bytes.
NOTE_HEADER_SIZE = 12 + ((len(ELF_NOTE_SPLIT) + 4) & ~3)

_U32_MASK = 0xFFFFFFFF


@dataclass(frozen=True)
class Note:
    """An ELF note entry; ``name`` has its trailing NUL bytes removed."""

    n_type: int
    name: bytes
    desc: bytes


def _align_up(value: int, align: int) -> int:
    return (value + align - 1) & ~(align - 1)


def iter_notes(data: bytes, align: int, endian: str, is_64: bool) -> Iterator[Note]:
    """Yield the notes in an ELF note section.

    The note header is made of 32-bit words in both ELF classes, so ``is_64``
    does not change the layout.
    """
    if align <= 4:
        align = 4
    elif align != 8:
        raise ValueError("Invalid ELF note alignment")
    view = memoryview(bytes(data))
    while len(view):
        if len(view) < 12:
            raise ValueError("ELF note is too short")
        namesz = int.from_bytes(view[0:4], endian)
        descsz = int.from_bytes(view[4:8], endian)
        n_type = int.from_bytes(view[8:12], endian)
        name_end = 12 + namesz
        if name_end > len(view):
            raise ValueError("Invalid ELF note namesz")
        name = bytes(view[12:name_end]).rstrip(b"\0")
        desc_start = _align_up(name_end, align)
        desc_end = desc_start + descsz
        if desc_end > len(view):
            raise ValueError("Invalid ELF note descsz")
        desc = bytes(view[desc_start:desc_end])
        next_offset = _align_up(desc_end, align)
        view = view[next_offset:] if next_offset <= len(view) else view[len(view):]
        yield Note(n_type, name, desc)


def _decode_utf8(desc: bytes) -> str:
    try:
        return desc.decode("utf-8")
    except UnicodeDecodeError as err:
        raise ValueError(f"invalid UTF-8 in split metadata: {err}") from err


def _padding(length: int) -> bytes:
    return b"\0" * ((4 - length % 4) % 4)


@dataclass
class SplitMeta:
    """Metadata about the source of an object file."""

    # The tool that generated the object. Informational only.
    generator: Optional[str] = None
    # The name of the source module (e.g. the DOL or REL name).
    module_name: Optional[str] = None
    # The ID of the source module.
    module_id: Optional[int] = None
    # Original virtual addresses of each symbol; index 0 is the ELF null symbol.
    virtual_addresses: Optional[list[int]] = None

    @classmethod
    def from_note_data(cls, data: bytes, align: int, endian: str, is_64: bool) -> SplitMeta:
        """Parse the contents of a ``.note.split`` section."""
        result = cls()
        for note in iter_notes(data, align, endian, is_64):
            if note.name != ELF_NOTE_SPLIT:
                continue
            if note.n_type == NT_SPLIT_GENERATOR:
                result.generator = _decode_utf8(note.desc)
            elif note.n_type == NT_SPLIT_MODULE_NAME:
                result.module_name = _decode_utf8(note.desc)
            elif note.n_type == NT_SPLIT_MODULE_ID:
                if len(note.desc) != 4:
                    raise ValueError("Invalid module ID size")
                result.module_id = int.from_bytes(note.desc, endian)
            elif note.n_type == NT_SPLIT_VIRTUAL_ADDRESSES:
                width = 8 if is_64 else 4
                count = len(note.desc) // width
                result.virtual_addresses = [
                    int.from_bytes(note.desc[i * width:(i + 1) * width], endian)
                    for i in range(count)
                ]
        return result

    def to_writer(self, writer: BinaryIO, endian: str, is_64: bool) -> None:
        """Write the metadata as ELF notes to a binary writer."""
        if self.generator is not None:
            encoded = self.generator.encode("utf-8")
            _write_note_header(writer, endian, NT_SPLIT_GENERATOR, len(encoded))
            writer.write(encoded)
            writer.write(_padding(len(encoded)))
        if self.module_name is not None:
            encoded = self.module_name.encode("utf-8")
            _write_note_header(writer, endian, NT_SPLIT_MODULE_NAME, len(encoded))
            writer.write(encoded)
            writer.write(_padding(len(encoded)))
        if self.module_id is not None:
            _write_note_header(writer, endian, NT_SPLIT_MODULE_ID, 4)
            writer.write((self.module_id & _U32_MASK).to_bytes(4, endian))
        if self.virtual_addresses is not None:
            width = 8 if is_64 else 4
            mask = (1 << (width * 8)) - 1
            _write_note_header(
                writer, endian, NT_SPLIT_VIRTUAL_ADDRESSES, width * len(self.virtual_addresses)
            )
            for addr in self.virtual_addresses:
                writer.write((addr & mask).to_bytes(width, endian))

    def to_bytes(self, endian: str, is_64: bool) -> bytes:
        """Return the encoded note section contents."""
        buffer = io.BytesIO()
        self.to_writer(buffer, endian, is_64)
        return buffer.getvalue()

    def write_size(self, is_64: bool) -> int:
        """Number of bytes ``to_writer`` produces."""
        size = 0
        if self.generator is not None:
            size = _align_up(size + NOTE_HEADER_SIZE + len(self.generator.encode("utf-8")), 4)
        if self.module_name is not None:
            size = _align_up(size + NOTE_HEADER_SIZE + len(self.module_name.encode("utf-8")), 4)
        if self.module_id is not None:
            size = _align_up(size + NOTE_HEADER_SIZE + 4, 4)
        if self.virtual_addresses is not None:
            width = 8 if is_64 else 4
            size = _align_up(size + NOTE_HEADER_SIZE + width * len(self.virtual_addresses), 4)
        return size


def _write_note_header(writer: BinaryIO, endian: str, kind: int, desc_len: int) -> None:
    name_len = len(ELF_NOTE_SPLIT) + 1
    writer.write(name_len.to_bytes(4, endian))
    writer.write(desc_len.to_bytes(4, endian))
    writer.write(kind.to_bytes(4, endian))
    writer.write(ELF_NOTE_SPLIT)
    writer.write(b"\0")
    writer.write(_padding(name_len))