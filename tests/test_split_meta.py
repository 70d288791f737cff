import io

import pytest

from objdiff.split_meta import (
    ELF_NOTE_SPLIT,
    NOTE_HEADER_SIZE,
    Note,
    SplitMeta,
    iter_notes,
)

FULL = SplitMeta(
    generator="tool 1.0",
    module_name="main.dol",
    module_id=7,
    virtual_addresses=[0, 0x80003100, 0x80004000],
)


@pytest.mark.parametrize("endian", ["little", "big"])
@pytest.mark.parametrize("is_64", [False, True])
def test_round_trip(endian, is_64):
    data = FULL.to_bytes(endian, is_64)
    assert SplitMeta.from_note_data(data, 4, endian, is_64) == FULL


@pytest.mark.parametrize("is_64", [False, True])
@pytest.mark.parametrize(
    "meta",
    [
        SplitMeta(),
        SplitMeta(generator="a"),
        SplitMeta(module_name="abcd"),
        SplitMeta(module_id=1),
        SplitMeta(virtual_addresses=[1, 2, 3]),
        FULL,
    ],
)
def test_write_size_matches_output(meta, is_64):
    data = meta.to_bytes("big", is_64)
    assert meta.write_size(is_64) == len(data)
    assert len(data) % 4 == 0


def test_empty_descriptor_note_is_header_only():
    meta = SplitMeta(generator="")
    data = meta.to_bytes("big", False)
    assert len(data) == 20
    assert len(data) == NOTE_HEADER_SIZE
    assert meta.write_size(False) == 20


def test_module_id_wire_bytes():
    data = SplitMeta(module_id=0x01020304).to_bytes("big", False)
    expected = (
        (len(ELF_NOTE_SPLIT) + 1).to_bytes(4, "big")
        + (4).to_bytes(4, "big")
        + b"MODI"
        + b"Split\x00\x00\x00"
        + bytes([1, 2, 3, 4])
    )
    assert data == expected


def test_to_writer_matches_to_bytes():
    buffer = io.BytesIO()
    FULL.to_writer(buffer, "little", True)
    assert buffer.getvalue() == FULL.to_bytes("little", True)


def test_32bit_addresses_truncate():
    meta = SplitMeta(virtual_addresses=[(1 << 32) + 0x10])
    parsed = SplitMeta.from_note_data(meta.to_bytes("little", False), 4, "little", False)
    assert parsed.virtual_addresses == [0x10]


def test_empty_section_gives_defaults():
    assert SplitMeta.from_note_data(b"", 4, "big", False) == SplitMeta()


def test_iter_notes_strips_name_nulls():
    data = (
        (4).to_bytes(4, "little")
        + (2).to_bytes(4, "little")
        + (9).to_bytes(4, "little")
        + b"ABC\x00"
        + b"hi\x00\x00"
    )
    assert list(iter_notes(data, 4, "little", False)) == [Note(9, b"ABC", b"hi")]


def test_foreign_notes_are_ignored():
    foreign = (
        (4).to_bytes(4, "big")
        + (4).to_bytes(4, "big")
        + b"MODI"
        + b"GNU\x00"
        + b"\x00\x00\x00\x05"
    )
    data = foreign + SplitMeta(module_name="x").to_bytes("big", False)
    assert SplitMeta.from_note_data(data, 4, "big", False) == SplitMeta(module_name="x")


def test_invalid_module_id_size():
    data = SplitMeta(generator="abcdef").to_bytes("big", False)
    # Relabel the generator note as a module ID note with a 6-byte descriptor.
    data = data[:8] + b"MODI" + data[12:]
    with pytest.raises(ValueError):
        SplitMeta.from_note_data(data, 4, "big", False)


def test_truncated_data_raises():
    data = FULL.to_bytes("big", False)
    with pytest.raises(ValueError):
        SplitMeta.from_note_data(data[:-3], 4, "big", False)
    with pytest.raises(ValueError):
        list(iter_notes(b"\x00\x00\x00", 4, "big", False))


def test_invalid_alignment():
    with pytest.raises(ValueError):
        list(iter_notes(FULL.to_bytes("big", False), 16, "big", False))


def test_invalid_utf8():
    data = SplitMeta(generator="ab").to_bytes("little", False)
    broken = data[:20] + b"\xff\xfe" + data[22:]
    with pytest.raises(ValueError):
        SplitMeta.from_note_data(broken, 4, "little", False)