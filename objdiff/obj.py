"""In-memory model of a parsed object file: sections, symbols, relocations and instructions."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from objdiff.util import format_signed_hex

_U64_MASK = (1 << 64) - 1


class ObjSectionKind(enum.Enum):
    CODE = "code"
    DATA = "data"
    BSS = "bss"


class ObjSymbolFlags(enum.Flag):
    GLOBAL = enum.auto()
    LOCAL = enum.auto()
    WEAK = enum.auto()
    COMMON = enum.auto()
    HIDDEN = enum.auto()
    # Has extra data associated with the symbol (e.g. exception table entry)
    HAS_EXTRA = enum.auto()


class ObjSymbolKind(enum.Enum):
    UNKNOWN = "unknown"
    FUNCTION = "function"
    OBJECT = "object"
    SECTION = "section"


class ArgValueKind(enum.Enum):
    SIGNED = "signed"
    UNSIGNED = "unsigned"
    OPAQUE = "opaque"


@dataclass(frozen=True)
class ObjInsArgValue:
    """A value operand of an instruction: signed, unsigned or an opaque string."""

    kind: ArgValueKind
    value: Union[int, str]

    def loose_eq(self, other: ObjInsArgValue) -> bool:
        """Compare values, treating signed and unsigned integers with equal bits as equal."""
        kinds = (self.kind, other.kind)
        if self.kind == other.kind:
            return self.value == other.value
        if kinds == (ArgValueKind.SIGNED, ArgValueKind.UNSIGNED):
            return (self.value & _U64_MASK) == other.value
        if kinds == (ArgValueKind.UNSIGNED, ArgValueKind.SIGNED):
            return (other.value & _U64_MASK) == self.value
        return False

    def __str__(self) -> str:
        if self.kind is ArgValueKind.SIGNED:
            return format_signed_hex(self.value, False, True)
        if self.kind is ArgValueKind.UNSIGNED:
            return f"{self.value:#x}"
        return str(self.value)


class InsArgKind(enum.Enum):
    PLAIN_TEXT = "plain_text"
    ARG = "arg"
    RELOC = "reloc"
    BRANCH_DEST = "branch_dest"


@dataclass(frozen=True)
class ObjInsArg:
    """One piece of an instruction's operand list."""

    kind: InsArgKind
    value: Union[str, ObjInsArgValue, int, None] = None

    @classmethod
    def plain_text(cls, text: str) -> ObjInsArg:
        return cls(InsArgKind.PLAIN_TEXT, text)

    @classmethod
    def arg(cls, value: ObjInsArgValue) -> ObjInsArg:
        return cls(InsArgKind.ARG, value)

    @classmethod
    def reloc(cls) -> ObjInsArg:
        return cls(InsArgKind.RELOC, None)

    @classmethod
    def branch_dest(cls, address: int) -> ObjInsArg:
        return cls(InsArgKind.BRANCH_DEST, address)

    def loose_eq(self, other: ObjInsArg) -> bool:
        """Compare operands loosely; plain text never compares equal."""
        if self.kind != other.kind:
            return False
        if self.kind is InsArgKind.ARG:
            return self.value.loose_eq(other.value)
        if self.kind is InsArgKind.RELOC:
            return True
        if self.kind is InsArgKind.BRANCH_DEST:
            return self.value == other.value
        return False

    def __str__(self) -> str:
        if self.kind is InsArgKind.RELOC:
            return ""
        return str(self.value)


@dataclass
class ObjSymbol:
    name: str
    demangled_name: Optional[str] = None
    address: int = 0
    section_address: int = 0
    size: int = 0
    size_known: bool = False
    kind: ObjSymbolKind = ObjSymbolKind.UNKNOWN
    flags: ObjSymbolFlags = ObjSymbolFlags(0)
    orig_section_index: Optional[int] = None
    # Original virtual address (from .note.split section)
    virtual_address: Optional[int] = None
    # Original index in object symbol table
    original_index: Optional[int] = None
    bytes: bytes = b""


@dataclass
class ObjReloc:
    flags: Any
    address: int
    target: ObjSymbol
    addend: int = 0


@dataclass
class ObjIns:
    address: int = 0
    size: int = 0
    op: int = 0
    mnemonic: str = ""
    args: list[ObjInsArg] = field(default_factory=list)
    reloc: Optional[ObjReloc] = None
    branch_dest: Optional[int] = None
    line: Optional[int] = None
    formatted: str = ""
    # Original (unsimplified) instruction
    orig: Optional[str] = None


@dataclass
class ObjSection:
    name: str
    kind: ObjSectionKind
    address: int = 0
    size: int = 0
    data: bytes = b""
    orig_index: int = 0
    symbols: list[ObjSymbol] = field(default_factory=list)
    relocations: list[ObjReloc] = field(default_factory=list)
    virtual_address: Optional[int] = None
    # Line number info: address -> line
    line_info: dict[int, int] = field(default_factory=dict)


@dataclass(frozen=True, order=True)
class SymbolRef:
    """Locates a symbol; ``section_idx == len(sections)`` refers to the common symbols."""

    section_idx: int = 0
    symbol_idx: int = 0


@dataclass
class ObjInfo:
    arch: Any = None
    path: Any = None
    timestamp: Any = None
    sections: list[ObjSection] = field(default_factory=list)
    # Common BSS symbols
    common: list[ObjSymbol] = field(default_factory=list)
    split_meta: Any = None

    def section_symbol(self, symbol_ref: SymbolRef) -> tuple[Optional[ObjSection], ObjSymbol]:
        """Return the section (``None`` for common symbols) and symbol for a reference."""
        if symbol_ref.section_idx == len(self.sections):
            return None, self.common[symbol_ref.symbol_idx]
        section = self.sections[symbol_ref.section_idx]
        return section, section.symbols[symbol_ref.symbol_idx]