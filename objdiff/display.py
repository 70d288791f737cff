"""Turning an instruction diff into a sequence of styled text segments."""

from __future__ import annotations

import enum
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Optional, Union

from objdiff.diff_types import ObjInsArgDiff, ObjInsDiff
from objdiff.obj import InsArgKind, ObjInsArgValue, ObjReloc, ObjSymbol


class DiffTextKind(enum.Enum):
    BASIC = "basic"
    BASIC_COLOR = "basic_color"
    LINE = "line"
    ADDRESS = "address"
    OPCODE = "opcode"
    ARGUMENT = "argument"
    BRANCH_DEST = "branch_dest"
    SYMBOL = "symbol"
    SPACING = "spacing"
    EOL = "eol"


@dataclass(frozen=True)
class DiffText:
    """One segment of a displayed instruction.

    ``text`` holds the literal text of BASIC, BASIC_COLOR and OPCODE segments.
    ``number`` holds the color index, line number, address, opcode or space count.
    ``arg`` and ``diff`` describe an ARGUMENT; ``diff`` is also set on BRANCH_DEST.
    ``symbol`` is the target of a SYMBOL segment.
    """

    kind: DiffTextKind
    text: str = ""
    number: int = 0
    arg: Optional[ObjInsArgValue] = None
    diff: Optional[ObjInsArgDiff] = None
    symbol: Optional[ObjSymbol] = None


@dataclass(frozen=True)
class HighlightKind:
    """What the user highlighted; ``kind is None`` means nothing is highlighted."""

    kind: Optional[DiffTextKind] = None
    value: Union[int, str, ObjInsArgValue, None] = None

    @classmethod
    def from_text(cls, text: DiffText) -> HighlightKind:
        """The highlight selected by clicking on a text segment."""
        if text.kind is DiffTextKind.OPCODE:
            return cls(DiffTextKind.OPCODE, text.number)
        if text.kind is DiffTextKind.ARGUMENT:
            return cls(DiffTextKind.ARGUMENT, text.arg)
        if text.kind is DiffTextKind.SYMBOL and text.symbol is not None:
            return cls(DiffTextKind.SYMBOL, text.symbol.name)
        if text.kind in (DiffTextKind.ADDRESS, DiffTextKind.BRANCH_DEST):
            return cls(DiffTextKind.ADDRESS, text.number)
        return cls()

    def matches(self, text: DiffText) -> bool:
        """Whether a text segment should be shown highlighted."""
        if self.kind is DiffTextKind.OPCODE:
            return text.kind is DiffTextKind.OPCODE and self.value == text.number
        if self.kind is DiffTextKind.ARGUMENT:
            return (
                text.kind is DiffTextKind.ARGUMENT
                and text.arg is not None
                and self.value.loose_eq(text.arg)
            )
        if self.kind is DiffTextKind.SYMBOL:
            return (
                text.kind is DiffTextKind.SYMBOL
                and text.symbol is not None
                and self.value == text.symbol.name
            )
        if self.kind is DiffTextKind.ADDRESS:
            return (
                text.kind in (DiffTextKind.ADDRESS, DiffTextKind.BRANCH_DEST)
                and self.value == text.number
            )
        return False


def _reloc_name(reloc: ObjReloc) -> Iterator[DiffText]:
    yield DiffText(DiffTextKind.SYMBOL, symbol=reloc.target)
    if reloc.addend > 0:
        yield DiffText(DiffTextKind.BASIC, text=f"+{reloc.addend:#x}")
    elif reloc.addend < 0:
        yield DiffText(DiffTextKind.BASIC, text=f"-{-reloc.addend:#x}")


def display_diff(ins_diff: ObjInsDiff, base_addr: int) -> Iterator[DiffText]:
    """Yield the text segments of one instruction row, ending with EOL."""
    ins = ins_diff.ins
    if ins is None:
        yield DiffText(DiffTextKind.EOL)
        return
    if ins.line is not None:
        yield DiffText(DiffTextKind.LINE, number=ins.line)
    yield DiffText(DiffTextKind.ADDRESS, number=ins.address - base_addr)
    if ins_diff.branch_from is not None:
        yield DiffText(DiffTextKind.BASIC_COLOR, text=" ~> ", number=ins_diff.branch_from.branch_idx)
    else:
        yield DiffText(DiffTextKind.SPACING, number=4)
    yield DiffText(DiffTextKind.OPCODE, text=ins.mnemonic, number=ins.op)
    for i, arg in enumerate(ins.args):
        if i == 0:
            yield DiffText(DiffTextKind.SPACING, number=1)
        diff = ins_diff.arg_diff[i] if i < len(ins_diff.arg_diff) else None
        if arg.kind is InsArgKind.PLAIN_TEXT:
            yield DiffText(DiffTextKind.BASIC, text=arg.value)
        elif arg.kind is InsArgKind.ARG:
            yield DiffText(DiffTextKind.ARGUMENT, arg=arg.value, diff=diff)
        elif arg.kind is InsArgKind.RELOC:
            if ins.reloc is None:
                raise ValueError(f"instruction at {ins.address:#x} has a reloc argument but no reloc")
            yield from _reloc_name(ins.reloc)
        else:
            dest = arg.value - base_addr
            if dest >= 0:
                yield DiffText(DiffTextKind.BRANCH_DEST, number=dest, diff=diff)
            else:
                yield DiffText(DiffTextKind.BASIC, text="<unknown>")
    if ins_diff.branch_to is not None:
        yield DiffText(DiffTextKind.BASIC_COLOR, text=" ~>", number=ins_diff.branch_to.branch_idx)
    yield DiffText(DiffTextKind.EOL)