"""Patience diff over sequences of hashable items, reported as equal/delete/insert/replace ops."""

from __future__ import annotations

import enum
from collections.abc import Hashable, Sequence
from dataclasses import dataclass
from typing import Optional


class DiffTag(enum.Enum):
    EQUAL = "equal"
    DELETE = "delete"
    INSERT = "insert"
    REPLACE = "replace"


@dataclass(frozen=True)
class DiffOp:
    """One step of a diff, covering ``old[old_index:old_index+old_len]`` and likewise for new."""

    tag: DiffTag
    old_index: int
    old_len: int
    new_index: int
    new_len: int

    @property
    def old_range(self) -> range:
        return range(self.old_index, self.old_index + self.old_len)

    @property
    def new_range(self) -> range:
        return range(self.new_index, self.new_index + self.new_len)

    def as_tag_tuple(self) -> tuple[DiffTag, range, range]:
        return self.tag, self.old_range, self.new_range


_Match = tuple[int, int, int]


def _common_prefix(old: Sequence, os: int, oe: int, new: Sequence, ns: int, ne: int) -> int:
    count = 0
    while os + count < oe and ns + count < ne and old[os + count] == new[ns + count]:
        count += 1
    return count


def _common_suffix(old: Sequence, os: int, oe: int, new: Sequence, ns: int, ne: int) -> int:
    count = 0
    while oe - count > os and ne - count > ns and old[oe - count - 1] == new[ne - count - 1]:
        count += 1
    return count


def _middle_snake(
    old: Sequence, os: int, oe: int, new: Sequence, ns: int, ne: int
) -> Optional[tuple[int, int]]:
    n = oe - os
    m = ne - ns
    delta = n - m
    odd = delta & 1 == 1
    vf = {1: 0}
    vb = {1: 0}
    for d in range((n + m + 1) // 2 + 1):
        for k in range(d, -d - 1, -2):
            if k == -d or (k != d and vf.get(k - 1, 0) < vf.get(k + 1, 0)):
                x = vf.get(k + 1, 0)
            else:
                x = vf.get(k - 1, 0) + 1
            y = x - k
            x0, y0 = x, y
            if x < n and 0 <= y < m:
                x += _common_prefix(old, os + x, oe, new, ns + y, ne)
            vf[k] = x
            if odd and abs(k - delta) <= d - 1 and vf[k] + vb.get(-(k - delta), 0) >= n:
                return os + x0, ns + y0
        for k in range(d, -d - 1, -2):
            if k == -d or (k != d and vb.get(k - 1, 0) < vb.get(k + 1, 0)):
                x = vb.get(k + 1, 0)
            else:
                x = vb.get(k - 1, 0) + 1
            y = x - k
            if x < n and 0 <= y < m:
                advance = _common_suffix(old, os, os + n - x, new, ns, ns + m - y)
                x += advance
                y += advance
            vb[k] = x
            if not odd and abs(k - delta) <= d and vb[k] + vf.get(-(k - delta), 0) >= n:
                return os + n - x, ns + m - y
    return None


def _myers(old: Sequence, os: int, oe: int, new: Sequence, ns: int, ne: int) -> list[_Match]:
    """Equal runs ``(old_start, new_start, len)`` found by Myers' divide-and-conquer diff."""
    matches: list[_Match] = []
    pending = [(os, oe, ns, ne)]
    while pending:
        os, oe, ns, ne = pending.pop()
        prefix = _common_prefix(old, os, oe, new, ns, ne)
        if prefix:
            matches.append((os, ns, prefix))
            os += prefix
            ns += prefix
        suffix = _common_suffix(old, os, oe, new, ns, ne)
        oe -= suffix
        ne -= suffix
        if suffix:
            matches.append((oe, ne, suffix))
        if os < oe and ns < ne:
            snake = _middle_snake(old, os, oe, new, ns, ne)
            if snake is not None:
                x, y = snake
                pending.append((os, x, ns, y))
                pending.append((x, oe, y, ne))
    matches.sort()
    return matches


def _unique_indexes(items: Sequence[Hashable]) -> list[int]:
    """Indexes of the items that occur exactly once, in order of position."""
    first_seen: dict[Hashable, Optional[int]] = {}
    for index, item in enumerate(items):
        if item in first_seen:
            first_seen[item] = None
        else:
            first_seen[item] = index
    return sorted(index for index in first_seen.values() if index is not None)


def _build_ops(matches: list[_Match], old_len: int, new_len: int) -> list[DiffOp]:
    merged: list[list[int]] = []
    for old_start, new_start, length in matches:
        if merged:
            last = merged[-1]
            if last[0] + last[2] == old_start and last[1] + last[2] == new_start:
                last[2] += length
                continue
        merged.append([old_start, new_start, length])

    ops: list[DiffOp] = []

    def gap(old_start: int, old_end: int, new_start: int, new_end: int) -> None:
        old_span = old_end - old_start
        new_span = new_end - new_start
        if old_span and new_span:
            ops.append(DiffOp(DiffTag.REPLACE, old_start, old_span, new_start, new_span))
        elif old_span:
            ops.append(DiffOp(DiffTag.DELETE, old_start, old_span, new_start, 0))
        elif new_span:
            ops.append(DiffOp(DiffTag.INSERT, old_start, 0, new_start, new_span))

    old_pos = new_pos = 0
    for old_start, new_start, length in merged:
        gap(old_pos, old_start, new_pos, new_start)
        ops.append(DiffOp(DiffTag.EQUAL, old_start, length, new_start, length))
        old_pos = old_start + length
        new_pos = new_start + length
    gap(old_pos, old_len, new_pos, new_len)
    return ops


def capture_diff(old: Sequence[Hashable], new: Sequence[Hashable]) -> list[DiffOp]:
    """Diff two sequences with the patience algorithm.

    Items unique to both sides anchor the alignment; the gaps between anchors are
    diffed with Myers' algorithm. Adjacent deletions and insertions are reported
    as a single replacement.
    """
    old_unique = _unique_indexes(old)
    new_unique = _unique_indexes(new)
    old_values = [old[i] for i in old_unique]
    new_values = [new[i] for i in new_unique]
    anchors = _myers(old_values, 0, len(old_values), new_values, 0, len(new_values))

    matches: list[_Match] = []
    old_cur = new_cur = 0
    for unique_old, unique_new, length in anchors:
        for offset in range(length):
            old_anchor = old_unique[unique_old + offset]
            new_anchor = new_unique[unique_new + offset]
            start_old, start_new = old_cur, new_cur
            while old_cur < old_anchor and new_cur < new_anchor and old[old_cur] == new[new_cur]:
                old_cur += 1
                new_cur += 1
            if old_cur > start_old:
                matches.append((start_old, start_new, old_cur - start_old))
            matches.extend(_myers(old, old_cur, old_anchor, new, new_cur, new_anchor))
            old_cur, new_cur = old_anchor, new_anchor
    matches.extend(_myers(old, old_cur, len(old), new, new_cur, len(new)))
    matches.sort()
    return _build_ops(matches, len(old), len(new))


def diff_ratio(ops: Sequence[DiffOp], old_len: int, new_len: int) -> float:
    """Similarity in ``[0, 1]``: twice the matched items over the total length."""
    matched = sum(op.old_len for op in ops if op.tag is DiffTag.EQUAL)
    total = old_len + new_len
    if total == 0:
        return 1.0
    return 2.0 * matched / total