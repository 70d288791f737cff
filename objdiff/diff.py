"""Matching symbols and sections between objects and diffing each matched pair."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Optional

from objdiff.code import diff_code, no_diff_code, process_code_symbol
from objdiff.data import (
    diff_bss_section,
    diff_bss_symbol,
    diff_data_section,
    diff_data_symbol,
    diff_generic_section,
    no_diff_symbol,
)
from objdiff.diff_types import DiffObjConfig, DiffObjsResult, MappingConfig, ObjDiff
from objdiff.obj import ObjInfo, ObjSection, ObjSectionKind, ObjSymbol, SymbolRef

log = logging.getLogger(__name__)

_SECTION_DIFFERS = {
    ObjSectionKind.CODE: diff_generic_section,
    ObjSectionKind.DATA: diff_data_section,
    ObjSectionKind.BSS: diff_bss_section,
}


@dataclass(frozen=True)
class _SymbolMatch:
    left: Optional[SymbolRef]
    right: Optional[SymbolRef]
    prev: Optional[SymbolRef]
    section_kind: ObjSectionKind


@dataclass(frozen=True)
class _SectionMatch:
    left: Optional[int]
    right: Optional[int]
    section_kind: ObjSectionKind


def diff_objs(
    config: DiffObjConfig,
    left: Optional[ObjInfo] = None,
    right: Optional[ObjInfo] = None,
    prev: Optional[ObjInfo] = None,
) -> DiffObjsResult:
    """Diff two objects (and optionally a previous build of the right one)."""
    symbol_matches = _matching_symbols(left, right, prev, config.symbol_mappings)
    section_matches = _matching_sections(left, right)
    left_out = ObjDiff.new_from_obj(left) if left is not None else None
    right_out = ObjDiff.new_from_obj(right) if right is not None else None
    prev_out = ObjDiff.new_from_obj(prev) if prev is not None else None

    for match in symbol_matches:
        if match.left is not None and match.right is not None:
            _diff_matched_symbols(config, match, left, left_out, right, right_out, prev, prev_out)
        elif match.left is not None:
            _diff_unmatched_symbol(config, left, left_out, match.left, match.section_kind)
        elif match.right is not None:
            _diff_unmatched_symbol(config, right, right_out, match.right, match.section_kind)

    for match in section_matches:
        if match.left is None or match.right is None:
            continue
        left_section_diff = left_out.section_diff(match.left)
        right_section_diff = right_out.section_diff(match.right)
        left_diff, right_diff = _SECTION_DIFFERS[match.section_kind](
            left.sections[match.left],
            right.sections[match.right],
            left_section_diff,
            right_section_diff,
        )
        left_section_diff.merge(left_diff)
        right_section_diff.merge(right_diff)

    if left is not None and right is not None:
        mappings = config.symbol_mappings
        if mappings.selecting_left is not None:
            _generate_mapping_symbols(right, mappings.selecting_left, left, left_out, config)
        if mappings.selecting_right is not None:
            _generate_mapping_symbols(left, mappings.selecting_right, right, right_out, config)

    return DiffObjsResult(left=left_out, right=right_out, prev=prev_out)


def _diff_matched_symbols(
    config: DiffObjConfig,
    match: _SymbolMatch,
    left: ObjInfo,
    left_out: ObjDiff,
    right: ObjInfo,
    right_out: ObjDiff,
    prev: Optional[ObjInfo],
    prev_out: Optional[ObjDiff],
) -> None:
    if match.section_kind is ObjSectionKind.CODE:
        left_code = process_code_symbol(left, match.left, config)
        right_code = process_code_symbol(right, match.right, config)
        left_diff, right_diff = diff_code(
            left, right, left_code, right_code, match.left, match.right, config
        )
        left_out.set_symbol_diff(match.left, left_diff)
        right_out.set_symbol_diff(match.right, right_diff)
        if match.prev is not None and prev is not None:
            prev_code = process_code_symbol(prev, match.prev, config)
            _, prev_diff = diff_code(
                left, right, right_code, prev_code, match.right, match.prev, config
            )
            prev_out.set_symbol_diff(match.prev, prev_diff)
        return
    differ = diff_data_symbol if match.section_kind is ObjSectionKind.DATA else diff_bss_symbol
    left_diff, right_diff = differ(left, right, match.left, match.right)
    left_out.set_symbol_diff(match.left, left_diff)
    right_out.set_symbol_diff(match.right, right_diff)


def _diff_unmatched_symbol(
    config: DiffObjConfig,
    obj: ObjInfo,
    out: ObjDiff,
    symbol_ref: SymbolRef,
    section_kind: ObjSectionKind,
) -> None:
    if section_kind is ObjSectionKind.CODE:
        code = process_code_symbol(obj, symbol_ref, config)
        out.set_symbol_diff(symbol_ref, no_diff_code(code, symbol_ref))
    else:
        out.set_symbol_diff(symbol_ref, no_diff_symbol(obj, symbol_ref))


def _generate_mapping_symbols(
    base_obj: ObjInfo,
    base_name: str,
    target_obj: ObjInfo,
    target_out: ObjDiff,
    config: DiffObjConfig,
) -> None:
    """Diff every same-kind symbol of the target against the selected base symbol."""
    base_ref = _symbol_ref_by_name(base_obj, base_name)
    if base_ref is None:
        return
    base_section, base_symbol = base_obj.section_symbol(base_ref)
    if base_section is None:
        return
    base_code = (
        process_code_symbol(base_obj, base_ref, config)
        if base_section.kind is ObjSectionKind.CODE
        else None
    )
    for section_idx, section in enumerate(target_obj.sections):
        if section.kind != base_section.kind:
            continue
        for symbol_idx, symbol in enumerate(section.symbols):
            if symbol.kind != base_symbol.kind:
                continue
            target_ref = SymbolRef(section_idx, symbol_idx)
            if base_section.kind is ObjSectionKind.CODE:
                target_code = process_code_symbol(target_obj, target_ref, config)
                diff, _ = diff_code(
                    target_obj, base_obj, target_code, base_code, target_ref, base_ref, config
                )
            elif base_section.kind is ObjSectionKind.DATA:
                diff, _ = diff_data_symbol(target_obj, base_obj, target_ref, base_ref)
            else:
                diff, _ = diff_bss_symbol(target_obj, base_obj, target_ref, base_ref)
            target_out.mapping_symbols.append(diff)


def _symbol_ref_by_name(obj: ObjInfo, name: str) -> Optional[SymbolRef]:
    for section_idx, section in enumerate(obj.sections):
        for symbol_idx, symbol in enumerate(section.symbols):
            if symbol.name == name:
                return SymbolRef(section_idx, symbol_idx)
    return None


def _apply_symbol_mappings(
    left: ObjInfo,
    right: ObjInfo,
    mapping_config: MappingConfig,
    left_used: set[SymbolRef],
    right_used: set[SymbolRef],
    matches: list[_SymbolMatch],
) -> None:
    # A symbol being selected must never be matched to anything else.
    if mapping_config.selecting_left is not None:
        symbol = _symbol_ref_by_name(left, mapping_config.selecting_left)
        if symbol is not None:
            left_used.add(symbol)
    if mapping_config.selecting_right is not None:
        symbol = _symbol_ref_by_name(right, mapping_config.selecting_right)
        if symbol is not None:
            right_used.add(symbol)

    for left_name, right_name in mapping_config.mappings.items():
        left_symbol = _symbol_ref_by_name(left, left_name)
        if left_symbol is None or left_symbol in left_used:
            continue
        right_symbol = _symbol_ref_by_name(right, right_name)
        if right_symbol is None or right_symbol in right_used:
            continue
        left_section = left.sections[left_symbol.section_idx]
        right_section = right.sections[right_symbol.section_idx]
        if left_section.kind != right_section.kind:
            log.warning(
                "Symbol section kind mismatch: %s (%s) vs %s (%s)",
                left_name,
                left_section.kind,
                right_name,
                right_section.kind,
            )
            continue
        matches.append(_SymbolMatch(left_symbol, right_symbol, None, left_section.kind))
        left_used.add(left_symbol)
        right_used.add(right_symbol)


def _matching_symbols(
    left: Optional[ObjInfo],
    right: Optional[ObjInfo],
    prev: Optional[ObjInfo],
    mappings: MappingConfig,
) -> list[_SymbolMatch]:
    matches: list[_SymbolMatch] = []
    left_used: set[SymbolRef] = set()
    right_used: set[SymbolRef] = set()
    if left is not None:
        if right is not None:
            _apply_symbol_mappings(left, right, mappings, left_used, right_used, matches)
        for section_idx, section in enumerate(left.sections):
            for symbol_idx, symbol in enumerate(section.symbols):
                symbol_ref = SymbolRef(section_idx, symbol_idx)
                if symbol_ref in left_used:
                    continue
                match = _SymbolMatch(
                    left=symbol_ref,
                    right=_find_symbol(right, symbol, section, right_used),
                    prev=_find_symbol(prev, symbol, section, None),
                    section_kind=section.kind,
                )
                matches.append(match)
                if match.right is not None:
                    right_used.add(match.right)
        for symbol_idx, symbol in enumerate(left.common):
            symbol_ref = SymbolRef(len(left.sections), symbol_idx)
            if symbol_ref in left_used:
                continue
            match = _SymbolMatch(
                left=symbol_ref,
                right=_find_common_symbol(right, symbol),
                prev=_find_common_symbol(prev, symbol),
                section_kind=ObjSectionKind.BSS,
            )
            matches.append(match)
            if match.right is not None:
                right_used.add(match.right)
    if right is not None:
        for section_idx, section in enumerate(right.sections):
            for symbol_idx, symbol in enumerate(section.symbols):
                symbol_ref = SymbolRef(section_idx, symbol_idx)
                if symbol_ref in right_used:
                    continue
                matches.append(
                    _SymbolMatch(
                        None, symbol_ref, _find_symbol(prev, symbol, section, None), section.kind
                    )
                )
        for symbol_idx, symbol in enumerate(right.common):
            symbol_ref = SymbolRef(len(right.sections), symbol_idx)
            if symbol_ref in right_used:
                continue
            matches.append(
                _SymbolMatch(
                    None, symbol_ref, _find_common_symbol(prev, symbol), ObjSectionKind.BSS
                )
            )
    return matches


def _unmatched_symbols(
    section: ObjSection, section_idx: int, used: Optional[set[SymbolRef]]
) -> Iterator[tuple[int, ObjSymbol]]:
    for symbol_idx, symbol in enumerate(section.symbols):
        if used is not None and SymbolRef(section_idx, symbol_idx) in used:
            continue
        yield symbol_idx, symbol


def _is_numeric(text: str) -> bool:
    return all(c.isnumeric() for c in text)


def _find_symbol(
    obj: Optional[ObjInfo],
    in_symbol: ObjSymbol,
    in_section: ObjSection,
    used: Optional[set[SymbolRef]],
) -> Optional[SymbolRef]:
    if obj is None:
        return None
    # Exact name match
    for section_idx, section in enumerate(obj.sections):
        if section.kind != in_section.kind:
            continue
        for symbol_idx, symbol in _unmatched_symbols(section, section_idx, used):
            if symbol.name == in_symbol.name:
                return SymbolRef(section_idx, symbol_idx)
    # Compiler-generated symbols (e.g. @251 -> @60) at the same address in the same section
    if in_symbol.name.startswith("@") and in_section.kind in (
        ObjSectionKind.DATA,
        ObjSectionKind.BSS,
    ):
        found = next(
            ((i, s) for i, s in enumerate(obj.sections) if s.name == in_section.name), None
        )
        if found is not None:
            section_idx, section = found
            for symbol_idx, symbol in _unmatched_symbols(section, section_idx, used):
                if symbol.address == in_symbol.address and symbol.name.startswith("@"):
                    return SymbolRef(section_idx, symbol_idx)
    # Metrowerks symbol$1234 against symbol$2345
    prefix, sep, suffix = in_symbol.name.partition("$")
    if sep:
        if not _is_numeric(suffix):
            return None
        for section_idx, section in enumerate(obj.sections):
            if section.kind != in_section.kind:
                continue
            for symbol_idx, symbol in _unmatched_symbols(section, section_idx, used):
                p, s_sep, s = symbol.name.partition("$")
                if s_sep and p == prefix and _is_numeric(s):
                    return SymbolRef(section_idx, symbol_idx)
    return None


def _find_common_symbol(obj: Optional[ObjInfo], in_symbol: ObjSymbol) -> Optional[SymbolRef]:
    if obj is None:
        return None
    for symbol_idx, symbol in enumerate(obj.common):
        if symbol.name == in_symbol.name:
            return SymbolRef(len(obj.sections), symbol_idx)
    return None


def _matching_sections(left: Optional[ObjInfo], right: Optional[ObjInfo]) -> list[_SectionMatch]:
    matches: list[_SectionMatch] = []
    if left is not None:
        for section_idx, section in enumerate(left.sections):
            matches.append(
                _SectionMatch(
                    section_idx, _find_section(right, section.name, section.kind), section.kind
                )
            )
    if right is not None:
        for section_idx, section in enumerate(right.sections):
            if any(m.right == section_idx for m in matches):
                continue
            matches.append(_SectionMatch(None, section_idx, section.kind))
    return matches


def _find_section(
    obj: Optional[ObjInfo], name: str, section_kind: ObjSectionKind
) -> Optional[int]:
    if obj is None:
        return None
    for section_idx, section in enumerate(obj.sections):
        if section.kind == section_kind and section.name == name:
            return section_idx
    return None