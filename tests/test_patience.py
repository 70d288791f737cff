import pytest

from objdiff.patience import DiffOp, DiffTag, capture_diff, diff_ratio


def _apply(old, new, ops):
    """Rebuild ``new`` from ``old`` using only the op ranges."""
    result = []
    for op in ops:
        tag, old_range, new_range = op.as_tag_tuple()
        if tag is DiffTag.EQUAL:
            result.extend(old[old_range.start:old_range.stop])
        else:
            result.extend(new[new_range.start:new_range.stop])
    return result


def _check_invariants(old, new, ops):
    old_pos = new_pos = 0
    previous = None
    for op in ops:
        assert op.old_index == old_pos
        assert op.new_index == new_pos
        if op.tag is DiffTag.EQUAL:
            assert op.old_len == op.new_len
            assert list(old[op.old_index:op.old_index + op.old_len]) == list(
                new[op.new_index:op.new_index + op.new_len]
            )
        elif op.tag is DiffTag.DELETE:
            assert op.old_len > 0 and op.new_len == 0
        elif op.tag is DiffTag.INSERT:
            assert op.old_len == 0 and op.new_len > 0
        else:
            assert op.old_len > 0 and op.new_len > 0
        if previous is not None:
            # Non-equal ops between two equal runs are always merged into one.
            assert previous.tag is DiffTag.EQUAL or op.tag is DiffTag.EQUAL
        previous = op
        old_pos += op.old_len
        new_pos += op.new_len
    assert old_pos == len(old)
    assert new_pos == len(new)


CASES = [
    (b"", b""),
    (b"abc", b"abc"),
    (b"abc", b""),
    (b"", b"xyz"),
    (b"abcdef", b"abXdef"),
    (b"\x00\x00\x01\x02\x00\x00", b"\x00\x01\x00\x02\x00"),
    (b"the quick brown fox", b"the quack brown fix jumps"),
    (list("aaaabbbbcccc"), list("bbbbaaaacccc")),
    ([(0, 4), (4, 8), (8, 4)], [(0, 4), (4, 4), (8, 4)]),
    (list(range(50)), list(range(10, 60))),
]


@pytest.mark.parametrize("old,new", CASES)
def test_ops_cover_inputs_and_reconstruct(old, new):
    ops = capture_diff(old, new)
    _check_invariants(old, new, ops)
    assert _apply(old, new, ops) == list(new)


def test_identical_is_single_equal():
    data = b"\x10\x20\x30\x40"
    assert capture_diff(data, data) == [DiffOp(DiffTag.EQUAL, 0, 4, 0, 4)]


def test_empty_inputs_give_no_ops():
    assert capture_diff(b"", b"") == []


def test_disjoint_is_single_replace():
    ops = capture_diff([1, 2, 3], [4, 5])
    assert [op.as_tag_tuple() for op in ops] == [(DiffTag.REPLACE, range(0, 3), range(0, 2))]


def test_pure_insert_and_delete():
    assert capture_diff(b"", b"ab") == [DiffOp(DiffTag.INSERT, 0, 0, 0, 2)]
    assert capture_diff(b"ab", b"") == [DiffOp(DiffTag.DELETE, 0, 2, 0, 0)]


def test_single_change_at_end():
    ops = capture_diff(b"abc", b"abd")
    assert ops == [DiffOp(DiffTag.EQUAL, 0, 2, 0, 2), DiffOp(DiffTag.REPLACE, 2, 1, 2, 1)]


def test_ratio_bounds():
    assert diff_ratio([], 0, 0) == 1.0
    data = b"abcdef"
    assert diff_ratio(capture_diff(data, data), len(data), len(data)) == 1.0
    assert diff_ratio(capture_diff(b"abc", b"xyz"), 3, 3) == 0.0


@pytest.mark.parametrize("old,new", CASES)
def test_ratio_in_unit_interval_and_symmetric(old, new):
    forward = diff_ratio(capture_diff(old, new), len(old), len(new))
    assert 0.0 <= forward <= 1.0
    matched_forward = sum(op.old_len for op in capture_diff(old, new) if op.tag is DiffTag.EQUAL)
    assert forward == pytest.approx(
        2.0 * matched_forward / (len(old) + len(new)) if old or new else 1.0
    )


def test_ranges_of_delete_and_insert_are_empty_on_other_side():
    op = DiffOp(DiffTag.DELETE, 3, 2, 1, 0)
    tag, old_range, new_range = op.as_tag_tuple()
    assert tag is DiffTag.DELETE
    assert old_range == range(3, 5)
    assert len(new_range) == 0