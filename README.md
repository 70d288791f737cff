# objdiff

A library for comparing two builds of the same object file, symbol by symbol.
It pairs symbols and sections between a "left" and a "right" object, diffs
code instruction by instruction and data byte by byte, and reports a match
percentage for every symbol and section.

It has no dependencies outside the standard library.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## The object model

`objdiff.obj` describes an object file in memory:

- `ObjInfo` holds a list of `ObjSection`s, a list of common BSS symbols
  (`common`), and an `arch` object used to disassemble code.
- `ObjSection` has a `name`, a `kind` (`ObjSectionKind.CODE`, `DATA` or
  `BSS`), `address`, `size`, `data`, `symbols`, `relocations` and `line_info`
  (address to line number).
- `ObjSymbol` has a `name`, `address`, `section_address`, `size`, `kind`
  (`ObjSymbolKind`) and `flags` (`ObjSymbolFlags`).
- `ObjReloc` points at a target `ObjSymbol` with an `addend`.
- `ObjIns` is one decoded instruction; its operands are `ObjInsArg`s built
  with `ObjInsArg.plain_text`, `ObjInsArg.arg`, `ObjInsArg.reloc` and
  `ObjInsArg.branch_dest`. Value operands are `ObjInsArgValue`s, and
  `loose_eq` treats signed and unsigned values with the same bits as equal.
- `SymbolRef(section_idx, symbol_idx)` addresses a symbol. A `section_idx`
  equal to the number of sections refers to the common symbols.
  `ObjInfo.section_symbol` resolves a reference to `(section, symbol)`, with
  `None` as the section for common symbols.

## Diffing objects

The entry point is `objdiff.diff.diff_objs(config, left, right, prev)`:

```python
from objdiff.diff import diff_objs
from objdiff.diff_types import DiffObjConfig
from objdiff.obj import ObjInfo, ObjSection, ObjSectionKind, ObjSymbol, ObjSymbolKind


def make_obj(data: bytes) -> ObjInfo:
    symbol = ObjSymbol("table", size=len(data), kind=ObjSymbolKind.OBJECT)
    section = ObjSection(
        name=".data", kind=ObjSectionKind.DATA, size=len(data), data=data, symbols=[symbol]
    )
    return ObjInfo(sections=[section])


result = diff_objs(DiffObjConfig(), make_obj(b"\x01\x02\x03\x04"), make_obj(b"\x01\x02\x03\x04"))
print(result.left.sections[0].symbols[0].match_percent)  # 100.0
print(result.left.sections[0].match_percent)             # 100.0
```

Any of `left`, `right` and `prev` may be `None`. The result is a
`DiffObjsResult` whose `left`, `right` and `prev` are `ObjDiff`s. Each
`ObjDiff` has an `ObjSectionDiff` per section (`symbols`, `data_diff`,
`match_percent`), an `ObjSymbolDiff` per common symbol in `common`, and
`mapping_symbols` (see below). Look symbol diffs up with
`ObjDiff.symbol_diff(symbol_ref)`.

Symbols are paired by, in order:

1. manual mappings from `config.symbol_mappings.mappings` (left name to right
   name), skipped when the two sections differ in kind;
2. an exact name match in a section of the same kind;
3. for data and BSS symbols named `@...`, another `@...` symbol at the same
   address in the section of the same name;
4. for names of the form `prefix$digits`, another `prefix$digits` symbol.

Common symbols are paired by name. When `prev` is given, each paired code
symbol of `right` is also diffed against its counterpart in `prev`.

Sections are paired by name and kind. Code sections score the size-weighted
average of their symbols' match percentages. Data sections take the better of
that and a byte diff of the section contents, and carry the byte diff in
`data_diff` as `ObjDataDiff` runs (`ObjDataDiffKind.NONE`, `REPLACE`,
`DELETE`, `INSERT`). BSS sections take the better of that average and a diff
of the symbols' addresses and sizes.

### Options

`DiffObjConfig` fields used by the diff:

- `relax_reloc_diffs` – ignore differences in relocation targets, and let a
  constant on the left match a relocation on the right.
- `symbol_mappings` – a `MappingConfig` with `mappings`, `selecting_left`
  and `selecting_right`. While `selecting_left` names a right symbol (or
  `selecting_right` a left one), that symbol is kept out of automatic
  matching, and every symbol of the same section and symbol kind on the
  other side is diffed against it; those diffs land in that side's
  `ObjDiff.mapping_symbols`.
- `space_between_args` – chooses what `DiffObjConfig.separator()` returns
  (`", "` or `","`).

The remaining fields (`combine_data_sections`, `x86_formatter`, `mips_abi`,
`mips_instr_category`, `arm_*`) are carried through to the `arch` object; the
enums `X86Formatter`, `MipsAbi`, `MipsInstrCategory`, `ArmArchVersion` and
`ArmR9Usage` each have a `message`, a `detailed_message` and a `default()`.

## Code diffs

`objdiff.code` compares instructions. `process_code_symbol` slices a code
symbol's bytes out of its section and calls

```python
obj.arch.process_code(address, code, section_orig_index, relocations, line_info, config)
```

which must return a `ProcessCodeResult` with `insts` (a list of `ObjIns`)
and `ops` (one opcode value per instruction, used to align the two sides).

`diff_code` aligns two `ProcessCodeResult`s and marks each row with an
`ObjInsDiffKind`: `NONE`, `OP_MISMATCH` (same op, different mnemonic),
`ARG_MISMATCH`, `REPLACE`, `DELETE` or `INSERT`. Mismatching arguments get an
`ObjInsArgDiff` index for colouring. The match percentage is the share of
rows without a difference. `no_diff_code` builds the rows for an unpaired
symbol, and `resolve_branches` links each branch to its destination row
(`branch_to` / `branch_from`).

## Display

`objdiff.display.display_diff(ins_diff, base_addr)` yields the `DiffText`
segments of one instruction row (line number, address, branch arrows,
opcode, arguments, relocation symbol and addend) and ends with an `EOL`
segment. `HighlightKind.from_text` builds a highlight from a clicked
segment, and `HighlightKind.matches` tells whether another segment should be
highlighted with it.

## Other modules

- `objdiff.data` – `diff_data_symbol`, `diff_bss_symbol`, `no_diff_symbol`,
  `diff_data_section`, `diff_bss_section`, `diff_generic_section`.
- `objdiff.patience` – `capture_diff(old, new)` returns `DiffOp`s tagged
  `DiffTag.EQUAL`, `DELETE`, `INSERT` or `REPLACE`; `diff_ratio(ops,
  old_len, new_len)` gives the similarity between 0 and 1.
- `objdiff.split_meta` – `SplitMeta` reads (`from_note_data`) and writes
  (`to_writer`, `to_bytes`, `write_size`) the contents of a `.note.split` ELF
  note section: generator, module name, module id and virtual addresses.
  `iter_notes` walks the notes of any ELF note section.
- `objdiff.font_matching` – `find_best_match(candidates, query)` picks the
  `FontProperties` closest to a query by stretch, then `Style`, then weight,
  and raises `FontNotFoundError` when there are no candidates.
- `objdiff.util` – `format_signed_hex` (e.g. `-0x10` rather than two's
  complement) and `read_u32` / `read_u16` from a binary stream in
  `"little"` or `"big"` byte order.

## What this package does not do

- It does not read object files from disk. There is no ELF or COFF parser:
  `ObjInfo`, its sections, symbols and relocations are built by the caller.
- It has no disassembler. Diffing code symbols requires an `arch` object on
  `ObjInfo` that provides `process_code` as described above; data and BSS
  symbols need no `arch`.
- It has no command-line tool, no graphical interface and no project or
  build configuration handling.