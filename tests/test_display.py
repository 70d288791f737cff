import pytest

from objdiff.diff_types import ObjInsArgDiff, ObjInsBranchFrom, ObjInsBranchTo, ObjInsDiff
from objdiff.display import DiffText, DiffTextKind, HighlightKind, display_diff
from objdiff.obj import ArgValueKind, ObjIns, ObjInsArg, ObjInsArgValue, ObjReloc, ObjSymbol


def _kinds(texts):
    return [t.kind for t in texts]


def test_missing_instruction_yields_only_eol():
    assert list(display_diff(ObjInsDiff(), 0)) == [DiffText(DiffTextKind.EOL)]


def test_full_row_sequence():
    value = ObjInsArgValue(ArgValueKind.SIGNED, 5)
    ins = ObjIns(
        address=0x20,
        op=7,
        mnemonic="li",
        args=[ObjInsArg.plain_text("r3"), ObjInsArg.plain_text(", "), ObjInsArg.arg(value)],
        line=12,
    )
    diff = ObjInsDiff(ins=ins, arg_diff=[None, None, ObjInsArgDiff(2)])
    texts = list(display_diff(diff, 0))
    assert texts == [
        DiffText(DiffTextKind.LINE, number=12),
        DiffText(DiffTextKind.ADDRESS, number=0x20),
        DiffText(DiffTextKind.SPACING, number=4),
        DiffText(DiffTextKind.OPCODE, text="li", number=7),
        DiffText(DiffTextKind.SPACING, number=1),
        DiffText(DiffTextKind.BASIC, text="r3"),
        DiffText(DiffTextKind.BASIC, text=", "),
        DiffText(DiffTextKind.ARGUMENT, arg=value, diff=ObjInsArgDiff(2)),
        DiffText(DiffTextKind.EOL),
    ]


def test_address_is_relative_to_base():
    texts = list(display_diff(ObjInsDiff(ins=ObjIns(address=0x108)), 0x100))
    address = next(t for t in texts if t.kind is DiffTextKind.ADDRESS)
    assert address.number == 8


def test_branch_colors():
    diff = ObjInsDiff(
        ins=ObjIns(address=0, mnemonic="b"),
        branch_from=ObjInsBranchFrom([3], 1),
        branch_to=ObjInsBranchTo(0, 2),
    )
    texts = list(display_diff(diff, 0))
    assert texts[1] == DiffText(DiffTextKind.BASIC_COLOR, text=" ~> ", number=1)
    assert texts[-2] == DiffText(DiffTextKind.BASIC_COLOR, text=" ~>", number=2)
    assert DiffTextKind.SPACING not in _kinds(texts)


def test_branch_dest_relative_and_unknown():
    ins = ObjIns(address=0x100, args=[ObjInsArg.branch_dest(0x100)])
    texts = list(display_diff(ObjInsDiff(ins=ins, arg_diff=[ObjInsArgDiff(0)]), 0x100))
    dest = next(t for t in texts if t.kind is DiffTextKind.BRANCH_DEST)
    assert dest.number == 0
    assert dest.diff == ObjInsArgDiff(0)

    ins = ObjIns(address=0x100, args=[ObjInsArg.branch_dest(0x50)])
    texts = list(display_diff(ObjInsDiff(ins=ins), 0x100))
    assert DiffText(DiffTextKind.BASIC, text="<unknown>") in texts
    assert DiffTextKind.BRANCH_DEST not in _kinds(texts)


@pytest.mark.parametrize("addend,suffix", [(0x10, "+0x10"), (-8, "-0x8")])
def test_reloc_with_addend(addend, suffix):
    target = ObjSymbol("foo")
    ins = ObjIns(args=[ObjInsArg.reloc()], reloc=ObjReloc(flags=None, address=0, target=target, addend=addend))
    texts = list(display_diff(ObjInsDiff(ins=ins), 0))
    index = _kinds(texts).index(DiffTextKind.SYMBOL)
    assert texts[index].symbol is target
    assert texts[index + 1] == DiffText(DiffTextKind.BASIC, text=suffix)


def test_reloc_without_addend():
    target = ObjSymbol("foo")
    ins = ObjIns(args=[ObjInsArg.reloc()], reloc=ObjReloc(flags=None, address=0, target=target))
    texts = list(display_diff(ObjInsDiff(ins=ins), 0))
    index = _kinds(texts).index(DiffTextKind.SYMBOL)
    assert texts[index + 1].kind is DiffTextKind.EOL


def test_reloc_arg_without_reloc_raises():
    ins = ObjIns(args=[ObjInsArg.reloc()])
    with pytest.raises(ValueError):
        list(display_diff(ObjInsDiff(ins=ins), 0))


def test_highlight_opcode():
    highlight = HighlightKind.from_text(DiffText(DiffTextKind.OPCODE, text="li", number=7))
    assert highlight.matches(DiffText(DiffTextKind.OPCODE, text="addi", number=7))
    assert not highlight.matches(DiffText(DiffTextKind.OPCODE, text="li", number=8))


def test_highlight_argument_is_loose():
    signed = ObjInsArgValue(ArgValueKind.SIGNED, -1)
    unsigned = ObjInsArgValue(ArgValueKind.UNSIGNED, (1 << 64) - 1)
    highlight = HighlightKind.from_text(DiffText(DiffTextKind.ARGUMENT, arg=signed))
    assert highlight.matches(DiffText(DiffTextKind.ARGUMENT, arg=unsigned))
    assert not highlight.matches(
        DiffText(DiffTextKind.ARGUMENT, arg=ObjInsArgValue(ArgValueKind.UNSIGNED, 1))
    )


def test_highlight_address_matches_branch_dest():
    highlight = HighlightKind.from_text(DiffText(DiffTextKind.BRANCH_DEST, number=0x40))
    assert highlight == HighlightKind(DiffTextKind.ADDRESS, 0x40)
    assert highlight.matches(DiffText(DiffTextKind.ADDRESS, number=0x40))
    assert not highlight.matches(DiffText(DiffTextKind.LINE, number=0x40))


def test_highlight_symbol_and_none():
    highlight = HighlightKind.from_text(DiffText(DiffTextKind.SYMBOL, symbol=ObjSymbol("foo")))
    assert highlight.matches(DiffText(DiffTextKind.SYMBOL, symbol=ObjSymbol("foo")))
    assert not highlight.matches(DiffText(DiffTextKind.SYMBOL, symbol=ObjSymbol("bar")))
    none = HighlightKind.from_text(DiffText(DiffTextKind.EOL))
    assert none == HighlightKind()
    assert not none.matches(DiffText(DiffTextKind.EOL))