"""Diffing of data and BSS symbols and of whole sections."""

from __future__ import annotations

import math
from typing import Optional

from objdiff.diff_types import ObjDataDiff, ObjDataDiffKind, ObjSectionDiff, ObjSymbolDiff
from objdiff.obj import ObjInfo, ObjSection, ObjSymbol, SymbolRef
from objdiff.patience import DiffTag, capture_diff, diff_ratio

_TAG_KINDS = {
    DiffTag.EQUAL: ObjDataDiffKind.NONE,
    DiffTag.DELETE: ObjDataDiffKind.DELETE,
    DiffTag.INSERT: ObjDataDiffKind.INSERT,
    DiffTag.REPLACE: ObjDataDiffKind.REPLACE,
}


def _pair(
    left_ref: SymbolRef, right_ref: SymbolRef, percent: Optional[float]
) -> tuple[ObjSymbolDiff, ObjSymbolDiff]:
    return (
        ObjSymbolDiff(symbol_ref=left_ref, target_symbol=right_ref, match_percent=percent),
        ObjSymbolDiff(symbol_ref=right_ref, target_symbol=left_ref, match_percent=percent),
    )


def _section_pair(percent: float) -> tuple[ObjSectionDiff, ObjSectionDiff]:
    return ObjSectionDiff(match_percent=percent), ObjSectionDiff(match_percent=percent)


def _symbol_data(section: ObjSection, symbol: ObjSymbol) -> bytes:
    start = symbol.section_address
    end = start + symbol.size
    if end > len(section.data):
        raise IndexError(f"symbol {symbol.name} extends past the end of section {section.name}")
    return bytes(section.data[start:end])


def _divide(numerator: float, denominator: float) -> float:
    if denominator:
        return numerator / denominator
    if numerator == 0 or math.isnan(numerator):
        return math.nan
    return math.copysign(math.inf, numerator)


def diff_bss_symbol(
    left_obj: ObjInfo,
    right_obj: ObjInfo,
    left_symbol_ref: SymbolRef,
    right_symbol_ref: SymbolRef,
) -> tuple[ObjSymbolDiff, ObjSymbolDiff]:
    """BSS symbols match fully when their sizes agree, half otherwise."""
    _, left_symbol = left_obj.section_symbol(left_symbol_ref)
    _, right_symbol = right_obj.section_symbol(right_symbol_ref)
    percent = 100.0 if left_symbol.size == right_symbol.size else 50.0
    return _pair(left_symbol_ref, right_symbol_ref, percent)


def no_diff_symbol(obj: ObjInfo, symbol_ref: SymbolRef) -> ObjSymbolDiff:
    """A diff entry for a symbol that has no counterpart."""
    return ObjSymbolDiff(symbol_ref=symbol_ref)


def diff_data_section(
    left: ObjSection,
    right: ObjSection,
    left_section_diff: ObjSectionDiff,
    right_section_diff: ObjSectionDiff,
) -> tuple[ObjSectionDiff, ObjSectionDiff]:
    """Compare the data sections of two object files."""
    left_max = min(max((s.section_address + s.size for s in left.symbols), default=0), left.size)
    right_max = min(
        max((s.section_address + s.size for s in right.symbols), default=0), right.size
    )
    left_bytes = bytes(left.data[:left_max])
    right_bytes = bytes(right.data[:right_max])
    ops = capture_diff(left_bytes, right_bytes)
    match_percent = diff_ratio(ops, len(left_bytes), len(right_bytes)) * 100.0

    left_diff: list[ObjDataDiff] = []
    right_diff: list[ObjDataDiff] = []
    for op in ops:
        tag, left_range, right_range = op.as_tag_tuple()
        left_len = len(left_range)
        right_len = len(right_range)
        kind = _TAG_KINDS[tag]
        # Replacements are kept to equal length; the excess becomes an insert or delete.
        length = min(left_len, right_len) if kind is ObjDataDiffKind.REPLACE else max(
            left_len, right_len
        )
        left_part = bytes(left.data[left_range.start:left_range.stop])
        right_part = bytes(right.data[right_range.start:right_range.stop])
        left_diff.append(ObjDataDiff(data=left_part[:length], kind=kind, len=length))
        right_diff.append(ObjDataDiff(data=right_part[:length], kind=kind, len=length))
        if kind is not ObjDataDiffKind.REPLACE:
            continue
        if left_len < right_len:
            extra = right_len - left_len
            left_diff.append(ObjDataDiff(kind=ObjDataDiffKind.INSERT, len=extra))
            right_diff.append(
                ObjDataDiff(
                    data=right_part[left_len:right_len], kind=ObjDataDiffKind.INSERT, len=extra
                )
            )
        elif left_len > right_len:
            extra = left_len - right_len
            left_diff.append(
                ObjDataDiff(
                    data=left_part[right_len:left_len], kind=ObjDataDiffKind.DELETE, len=extra
                )
            )
            right_diff.append(ObjDataDiff(kind=ObjDataDiffKind.DELETE, len=extra))

    left_result, right_result = diff_generic_section(
        left, right, left_section_diff, right_section_diff
    )
    left_result.data_diff = left_diff
    right_result.data_diff = right_diff
    # Take the better of matching symbols by name and diffing the raw data.
    current = left_result.match_percent if left_result.match_percent is not None else -1.0
    if current < match_percent:
        left_result.match_percent = match_percent
        right_result.match_percent = match_percent
    return left_result, right_result


def diff_data_symbol(
    left_obj: ObjInfo,
    right_obj: ObjInfo,
    left_symbol_ref: SymbolRef,
    right_symbol_ref: SymbolRef,
) -> tuple[ObjSymbolDiff, ObjSymbolDiff]:
    """Compare the bytes of two data symbols."""
    left_section, left_symbol = left_obj.section_symbol(left_symbol_ref)
    right_section, right_symbol = right_obj.section_symbol(right_symbol_ref)
    if left_section is None or right_section is None:
        raise ValueError("Data symbol section not found")
    left_bytes = _symbol_data(left_section, left_symbol)
    right_bytes = _symbol_data(right_section, right_symbol)
    ops = capture_diff(left_bytes, right_bytes)
    match_percent = diff_ratio(ops, len(left_bytes), len(right_bytes)) * 100.0
    return _pair(left_symbol_ref, right_symbol_ref, match_percent)


def diff_generic_section(
    left: ObjSection,
    right: ObjSection,
    left_diff: ObjSectionDiff,
    right_diff: ObjSectionDiff,
) -> tuple[ObjSectionDiff, ObjSectionDiff]:
    """Match percentage of a section as the size-weighted sum of its symbols' percentages."""
    if all(d.match_percent == 100.0 for d in left_diff.symbols):
        match_percent = 100.0
    else:
        weighted = sum(
            (d.match_percent if d.match_percent is not None else 0.0) * s.size
            for s, d in zip(left.symbols, left_diff.symbols)
        )
        match_percent = _divide(float(weighted), float(left.size))
    return _section_pair(match_percent)


def diff_bss_section(
    left: ObjSection,
    right: ObjSection,
    left_diff: ObjSectionDiff,
    right_diff: ObjSectionDiff,
) -> tuple[ObjSectionDiff, ObjSectionDiff]:
    """Compare the addresses and sizes of each symbol in two BSS sections."""
    left_sizes = [(s.section_address, s.size) for s in left.symbols]
    right_sizes = [(s.section_address, s.size) for s in right.symbols]
    ops = capture_diff(left_sizes, right_sizes)
    match_percent = diff_ratio(ops, len(left_sizes), len(right_sizes)) * 100.0

    generic, _ = diff_generic_section(left, right, left_diff, right_diff)
    generic_percent = generic.match_percent if generic.match_percent is not None else -1.0
    if generic_percent > match_percent:
        match_percent = generic_percent
    return _section_pair(match_percent)