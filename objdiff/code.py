"""Instruction-level diffing of code symbols."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from objdiff.diff_types import (
    DiffObjConfig,
    ObjInsArgDiff,
    ObjInsBranchFrom,
    ObjInsBranchTo,
    ObjInsDiff,
    ObjInsDiffKind,
    ObjSymbolDiff,
)
from objdiff.obj import InsArgKind, ObjIns, ObjInfo, ObjInsArg, ObjReloc, ObjSymbolFlags, SymbolRef
from objdiff.patience import capture_diff


@dataclass
class ProcessCodeResult:
    """Decoded instructions of a symbol and the opcode sequence used to align them."""

    ops: list[int] = field(default_factory=list)
    insts: list[ObjIns] = field(default_factory=list)


def process_code_symbol(
    obj: ObjInfo, symbol_ref: SymbolRef, config: DiffObjConfig
) -> ProcessCodeResult:
    """Disassemble a code symbol with the object's architecture."""
    section, symbol = obj.section_symbol(symbol_ref)
    if section is None:
        raise ValueError("Code symbol section not found")
    start = symbol.section_address
    end = start + symbol.size
    if end > len(section.data):
        raise IndexError(f"symbol {symbol.name} extends past the end of section {section.name}")
    code = bytes(section.data[start:end])
    return obj.arch.process_code(
        symbol.address,
        code,
        section.orig_index,
        section.relocations,
        section.line_info,
        config,
    )


def no_diff_code(out: ProcessCodeResult, symbol_ref: SymbolRef) -> ObjSymbolDiff:
    """A diff entry for a code symbol with no counterpart."""
    diffs = [ObjInsDiff(ins=ins, kind=ObjInsDiffKind.NONE) for ins in out.insts]
    resolve_branches(diffs)
    return ObjSymbolDiff(symbol_ref=symbol_ref, instructions=diffs)


def diff_code(
    left_obj: ObjInfo,
    right_obj: ObjInfo,
    left_out: ProcessCodeResult,
    right_out: ProcessCodeResult,
    left_symbol_ref: SymbolRef,
    right_symbol_ref: SymbolRef,
    config: DiffObjConfig,
) -> tuple[ObjSymbolDiff, ObjSymbolDiff]:
    """Align and compare the instructions of two code symbols."""
    left_diff, right_diff = _diff_instructions(left_out, right_out)
    resolve_branches(left_diff)
    resolve_branches(right_diff)

    state = _InsDiffState()
    for left, right in zip(left_diff, right_diff):
        result = _compare_ins(config, left_obj, right_obj, left, right, state)
        left.kind = result.kind
        right.kind = result.kind
        left.arg_diff = result.left_args_diff
        right.arg_diff = result.right_args_diff

    total = max(len(left_out.insts), len(right_out.insts))
    if state.diff_count >= total:
        percent = 0.0
    else:
        percent = (total - state.diff_count) / total * 100.0

    return (
        ObjSymbolDiff(
            symbol_ref=left_symbol_ref,
            target_symbol=right_symbol_ref,
            instructions=left_diff,
            match_percent=percent,
        ),
        ObjSymbolDiff(
            symbol_ref=right_symbol_ref,
            target_symbol=left_symbol_ref,
            instructions=right_diff,
            match_percent=percent,
        ),
    )


def _diff_instructions(
    left_code: ProcessCodeResult, right_code: ProcessCodeResult
) -> tuple[list[ObjInsDiff], list[ObjInsDiff]]:
    ops = capture_diff(left_code.ops, right_code.ops)
    if not ops:
        return (
            [ObjInsDiff(ins=ins) for ins in left_code.insts],
            [ObjInsDiff(ins=ins) for ins in right_code.insts],
        )
    left_diff: list[ObjInsDiff] = []
    right_diff: list[ObjInsDiff] = []
    for op in ops:
        _, left_range, right_range = op.as_tag_tuple()
        length = max(len(left_range), len(right_range))
        left_diff.extend(
            ObjInsDiff(ins=ins) for ins in left_code.insts[left_range.start:left_range.stop]
        )
        right_diff.extend(
            ObjInsDiff(ins=ins) for ins in right_code.insts[right_range.start:right_range.stop]
        )
        left_diff.extend(ObjInsDiff() for _ in range(length - len(left_range)))
        right_diff.extend(ObjInsDiff() for _ in range(length - len(right_range)))
    return left_diff, right_diff


def resolve_branches(diffs: list[ObjInsDiff]) -> None:
    """Link branch instructions to their destinations within the same list."""
    addr_map = {d.ins.address: i for i, d in enumerate(diffs) if d.ins is not None}
    branches: dict[int, ObjInsBranchFrom] = {}
    next_branch_idx = 0
    for i, ins_diff in enumerate(diffs):
        ins = ins_diff.ins
        if ins is None or ins.branch_dest is None:
            continue
        target = addr_map.get(ins.branch_dest)
        if target is None:
            continue
        branch = branches.get(target)
        if branch is not None:
            ins_diff.branch_to = ObjInsBranchTo(ins_idx=target, branch_idx=branch.branch_idx)
            branch.ins_idx.append(i)
        else:
            ins_diff.branch_to = ObjInsBranchTo(ins_idx=target, branch_idx=next_branch_idx)
            branches[target] = ObjInsBranchFrom(ins_idx=[i], branch_idx=next_branch_idx)
            next_branch_idx += 1
    for target, branch in branches.items():
        diffs[target].branch_from = branch


def _address_eq(left: ObjReloc, right: ObjReloc) -> bool:
    return left.target.address + left.addend == right.target.address + right.addend


def _section_name_eq(
    left_obj: ObjInfo, right_obj: ObjInfo, left_index: int, right_index: int
) -> bool:
    left_section = next((s for s in left_obj.sections if s.orig_index == left_index), None)
    right_section = next((s for s in right_obj.sections if s.orig_index == right_index), None)
    if left_section is None or right_section is None:
        return False
    return left_section.name == right_section.name


def _reloc_eq(
    config: DiffObjConfig,
    left_obj: ObjInfo,
    right_obj: ObjInfo,
    left: Optional[ObjReloc],
    right: Optional[ObjReloc],
) -> bool:
    if left is None or right is None:
        return False
    if left.flags != right.flags:
        return False
    if config.relax_reloc_diffs:
        return True

    name_matches = left.target.name == right.target.name
    left_index = left.target.orig_section_index
    right_index = right.target.orig_section_index
    if left_index is not None and right_index is not None:
        # Match if section and name or address match
        return _section_name_eq(left_obj, right_obj, left_index, right_index) and (
            name_matches or _address_eq(left, right)
        )
    if left_index is not None:
        return False
    if right_index is not None:
        # Match if possibly stripped weak symbol
        return name_matches and bool(right.target.flags & ObjSymbolFlags.WEAK)
    return name_matches


def _ins_reloc(ins_diff: ObjInsDiff) -> Optional[ObjReloc]:
    return ins_diff.ins.reloc if ins_diff.ins is not None else None


def _arg_eq(
    config: DiffObjConfig,
    left_obj: ObjInfo,
    right_obj: ObjInfo,
    left: ObjInsArg,
    right: ObjInsArg,
    left_diff: ObjInsDiff,
    right_diff: ObjInsDiff,
) -> bool:
    if left.kind is InsArgKind.PLAIN_TEXT:
        return right.kind is InsArgKind.PLAIN_TEXT and left.value == right.value
    if left.kind is InsArgKind.ARG:
        if right.kind is InsArgKind.ARG:
            return left.value == right.value
        # A constant on the left may stand for a relocation on the right when relaxed.
        if right.kind is InsArgKind.RELOC:
            return config.relax_reloc_diffs
        return False
    if left.kind is InsArgKind.RELOC:
        return right.kind is InsArgKind.RELOC and _reloc_eq(
            config, left_obj, right_obj, _ins_reloc(left_diff), _ins_reloc(right_diff)
        )
    # Branch destinations are compared by destination instruction index.
    left_target = left_diff.branch_to.ins_idx if left_diff.branch_to is not None else None
    right_target = right_diff.branch_to.ins_idx if right_diff.branch_to is not None else None
    return left_target == right_target


@dataclass
class _InsDiffState:
    diff_count: int = 0
    left_args_idx: dict[str, int] = field(default_factory=dict)
    right_args_idx: dict[str, int] = field(default_factory=dict)

    @staticmethod
    def _index(table: dict[str, int], key: str) -> ObjInsArgDiff:
        return ObjInsArgDiff(idx=table.setdefault(key, len(table)))

    def left_index(self, arg: ObjInsArg) -> ObjInsArgDiff:
        return self._index(self.left_args_idx, str(arg))

    def right_index(self, arg: ObjInsArg) -> ObjInsArgDiff:
        return self._index(self.right_args_idx, str(arg))


@dataclass
class _InsDiffResult:
    kind: ObjInsDiffKind = ObjInsDiffKind.NONE
    left_args_diff: list[Optional[ObjInsArgDiff]] = field(default_factory=list)
    right_args_diff: list[Optional[ObjInsArgDiff]] = field(default_factory=list)


def _plain_text_differs(left_ins: ObjIns, right_ins: ObjIns) -> bool:
    return any(
        a.kind is InsArgKind.PLAIN_TEXT and b.kind is InsArgKind.PLAIN_TEXT and a.value != b.value
        for a, b in zip(left_ins.args, right_ins.args)
    )


def _compare_ins(
    config: DiffObjConfig,
    left_obj: ObjInfo,
    right_obj: ObjInfo,
    left: ObjInsDiff,
    right: ObjInsDiff,
    state: _InsDiffState,
) -> _InsDiffResult:
    result = _InsDiffResult()
    left_ins, right_ins = left.ins, right.ins
    if left_ins is None or right_ins is None:
        result.kind = ObjInsDiffKind.DELETE if left_ins is not None else ObjInsDiffKind.INSERT
        state.diff_count += 1
        return result

    if (
        len(left_ins.args) != len(right_ins.args)
        or left_ins.op != right_ins.op
        # Differing punctuation or spacing means more than an argument mismatch.
        or _plain_text_differs(left_ins, right_ins)
    ):
        result.kind = ObjInsDiffKind.REPLACE
        state.diff_count += 1
        return result

    if left_ins.mnemonic != right_ins.mnemonic:
        # Same op but different mnemonic; arguments are still compared.
        result.kind = ObjInsDiffKind.OP_MISMATCH
        state.diff_count += 1

    for a, b in zip(left_ins.args, right_ins.args):
        if _arg_eq(config, left_obj, right_obj, a, b, left, right):
            result.left_args_diff.append(None)
            result.right_args_diff.append(None)
            continue
        if result.kind is ObjInsDiffKind.NONE:
            result.kind = ObjInsDiffKind.ARG_MISMATCH
            state.diff_count += 1
        result.left_args_diff.append(state.left_index(a))
        result.right_args_diff.append(state.right_index(b))
    return result