"""Configuration and result types produced by diffing two object files."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional

from objdiff.obj import ObjIns, ObjInfo, SymbolRef


class _DescribedEnum(enum.Enum):
    """Enum whose members carry a display message and an optional longer description."""

    def __new__(cls, value: str, message: str, detailed_message: Optional[str] = None):
        member = object.__new__(cls)
        member._value_ = value
        member.message = message
        member.detailed_message = detailed_message
        return member

    @classmethod
    def default(cls):
        """The default member, which is always the first one declared."""
        return next(iter(cls))


class X86Formatter(_DescribedEnum):
    INTEL = ("Intel", "Intel (default)")
    GAS = ("Gas", "AT&T")
    NASM = ("Nasm", "NASM")
    MASM = ("Masm", "MASM")


class MipsAbi(_DescribedEnum):
    AUTO = ("Auto", "Auto (default)")
    O32 = ("O32", "O32")
    N32 = ("N32", "N32")
    N64 = ("N64", "N64")


class MipsInstrCategory(_DescribedEnum):
    AUTO = ("Auto", "Auto (default)")
    CPU = ("Cpu", "CPU")
    RSP = ("Rsp", "RSP (N64)")
    R3000_GTE = ("R3000Gte", "R3000 GTE (PS1)")
    R4000_ALLEGREX = ("R4000Allegrex", "R4000 ALLEGREX (PSP)")
    R5900 = ("R5900", "R5900 EE (PS2)")


class ArmArchVersion(_DescribedEnum):
    AUTO = ("Auto", "Auto (default)")
    V4T = ("V4T", "ARMv4T (GBA)")
    V5TE = ("V5TE", "ARMv5TE (DS)")
    V6K = ("V6K", "ARMv6K (3DS)")


class ArmR9Usage(_DescribedEnum):
    GENERAL_PURPOSE = (
        "GeneralPurpose",
        "R9 or V6 (default)",
        "Use R9 as a general-purpose register.",
    )
    SB = ("Sb", "SB (static base)", "Used for position-independent data (PID).")
    TR = ("Tr", "TR (TLS register)", "Used for thread-local storage.")


@dataclass
class MappingConfig:
    # Manual symbol mappings: left symbol name -> right symbol name
    mappings: dict[str, str] = field(default_factory=dict)
    # The right object symbol name that we're selecting a left symbol for
    selecting_left: Optional[str] = None
    # The left object symbol name that we're selecting a right symbol for
    selecting_right: Optional[str] = None


@dataclass
class DiffObjConfig:
    relax_reloc_diffs: bool = False
    space_between_args: bool = True
    combine_data_sections: bool = False
    symbol_mappings: MappingConfig = field(default_factory=MappingConfig)
    # x86
    x86_formatter: X86Formatter = X86Formatter.INTEL
    # MIPS
    mips_abi: MipsAbi = MipsAbi.AUTO
    mips_instr_category: MipsInstrCategory = MipsInstrCategory.AUTO
    # ARM
    arm_arch_version: ArmArchVersion = ArmArchVersion.AUTO
    arm_unified_syntax: bool = True
    arm_av_registers: bool = False
    arm_r9_usage: ArmR9Usage = ArmR9Usage.GENERAL_PURPOSE
    arm_sl_usage: bool = False
    arm_fp_usage: bool = False
    arm_ip_usage: bool = False

    def separator(self) -> str:
        """Text placed between instruction arguments."""
        return ", " if self.space_between_args else ","


class ObjInsDiffKind(enum.Enum):
    NONE = "none"
    OP_MISMATCH = "op_mismatch"
    ARG_MISMATCH = "arg_mismatch"
    REPLACE = "replace"
    DELETE = "delete"
    INSERT = "insert"


class ObjDataDiffKind(enum.Enum):
    NONE = "none"
    REPLACE = "replace"
    DELETE = "delete"
    INSERT = "insert"


@dataclass(frozen=True)
class ObjInsArgDiff:
    # Incrementing index for coloring
    idx: int


@dataclass
class ObjInsBranchFrom:
    # Source instruction indices
    ins_idx: list[int] = field(default_factory=list)
    # Incrementing index for coloring
    branch_idx: int = 0


@dataclass
class ObjInsBranchTo:
    # Target instruction index
    ins_idx: int
    # Incrementing index for coloring
    branch_idx: int


@dataclass
class ObjInsDiff:
    ins: Optional[ObjIns] = None
    kind: ObjInsDiffKind = ObjInsDiffKind.NONE
    branch_from: Optional[ObjInsBranchFrom] = None
    branch_to: Optional[ObjInsBranchTo] = None
    arg_diff: list[Optional[ObjInsArgDiff]] = field(default_factory=list)


@dataclass
class ObjSymbolDiff:
    # The symbol this diff belongs to
    symbol_ref: SymbolRef = field(default_factory=SymbolRef)
    # The symbol in the other object that this symbol was diffed against
    target_symbol: Optional[SymbolRef] = None
    instructions: list[ObjInsDiff] = field(default_factory=list)
    match_percent: Optional[float] = None


@dataclass
class ObjDataDiff:
    data: bytes = b""
    kind: ObjDataDiffKind = ObjDataDiffKind.NONE
    len: int = 0
    symbol: str = ""


@dataclass
class ObjSectionDiff:
    symbols: list[ObjSymbolDiff] = field(default_factory=list)
    data_diff: list[ObjDataDiff] = field(default_factory=list)
    match_percent: Optional[float] = None

    def merge(self, other: ObjSectionDiff) -> None:
        """Take the data diff and match percentage of ``other``; symbols are kept."""
        self.data_diff = other.data_diff
        self.match_percent = other.match_percent


@dataclass
class ObjDiff:
    # A list of all section diffs in the object.
    sections: list[ObjSectionDiff] = field(default_factory=list)
    # Common BSS symbols don't live in a section, so they're stored separately.
    common: list[ObjSymbolDiff] = field(default_factory=list)
    # Candidate diffs while a symbol mapping is being selected.
    mapping_symbols: list[ObjSymbolDiff] = field(default_factory=list)

    @classmethod
    def new_from_obj(cls, obj: ObjInfo) -> ObjDiff:
        """Create an empty diff with one entry per section and symbol of ``obj``."""
        sections = [
            ObjSectionDiff(
                symbols=[
                    ObjSymbolDiff(symbol_ref=SymbolRef(section_idx, symbol_idx))
                    for symbol_idx in range(len(section.symbols))
                ],
                data_diff=[
                    ObjDataDiff(
                        data=bytes(section.data),
                        kind=ObjDataDiffKind.NONE,
                        len=len(section.data),
                        symbol=section.name,
                    )
                ],
            )
            for section_idx, section in enumerate(obj.sections)
        ]
        common_idx = len(obj.sections)
        common = [
            ObjSymbolDiff(symbol_ref=SymbolRef(common_idx, symbol_idx))
            for symbol_idx in range(len(obj.common))
        ]
        return cls(sections=sections, common=common)

    def section_diff(self, section_idx: int) -> ObjSectionDiff:
        return self.sections[section_idx]

    def symbol_diff(self, symbol_ref: SymbolRef) -> ObjSymbolDiff:
        if symbol_ref.section_idx == len(self.sections):
            return self.common[symbol_ref.symbol_idx]
        return self.sections[symbol_ref.section_idx].symbols[symbol_ref.symbol_idx]

    def set_symbol_diff(self, symbol_ref: SymbolRef, diff: ObjSymbolDiff) -> None:
        if symbol_ref.section_idx == len(self.sections):
            self.common[symbol_ref.symbol_idx] = diff
        else:
            self.sections[symbol_ref.section_idx].symbols[symbol_ref.symbol_idx] = diff


@dataclass
class DiffObjsResult:
    left: Optional[ObjDiff] = None
    right: Optional[ObjDiff] = None
    prev: Optional[ObjDiff] = None