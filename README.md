# minic

Building blocks for a small C-like compiler that emits 32-bit ARM (ARMv7)
assembly.

## What is inside

- `minic.ast`: abstract syntax tree nodes (`AstNode`, `AstOperator`,
  `ValueType`) and the helpers that build them: `new_node`, `new_int_literal`,
  `new_var_id`, `new_type_node`, `create_contain_node`, `create_func_def`,
  `create_func_call`, `create_type_node`, `type_attr_to_type`,
  `create_var_decl_node`, `create_var_decl_stmt_node` and `add_var_decl_node`.
  `FrontEndExecutor` is an abstract base for a parser that fills in `ast_root`.
- `minic.graph`: `node_name` gives the text shown for a node, `to_dot` renders
  a tree as Graphviz DOT text, and `output_ast` writes that text to a `.dot` or
  `.gv` file. Any other suffix, or none, raises `ValueError`.
- `minic.platform`: ARM32 facts: register names (`REG_NAMES`), register
  numbers for fp, sp, lr and the scratch register, `RegisterValue` and
  `INT_REG_VAL`, `const_expr` for encodable immediates, `is_disp` for valid
  load/store offsets and `is_reg`.
- `minic.iloc`: `ILocArm32`, a list of `ArmInst` assembly lines with helpers
  for immediates, symbols, loads, stores, stack frames, calls and jumps,
  `delete_unused_label`, and `output` to a text stream.
- `minic.regalloc`: `SimpleRegisterAllocator`, which hands out r0-r10 and
  spills the value that has held its register longest when none is free.
- `minic.instselector`: `InstSelectorArm32` turns linear IR instructions (see
  `IROp`) into ILOC code. An unknown operator, or a call whose ARG
  instructions do not match, raises `ValueError`.
- `minic.codegen`: `CodeGenerator.run(out_file_name)` writes to the named file,
  or to standard output when the name is empty; `CodeGeneratorAsm` writes a
  header, a data section and the code of every non-builtin function.
- `minic.codegen_arm32`: `CodeGeneratorArm32`, which lays out call arguments,
  stack slots and parameters, then writes the assembly of each function.

## Installing

```
pip install .
```

Use `pip install .[test]` to get pytest as well, then run `pytest`.

## A short example

```python
import io

from minic.iloc import ILocArm32

iloc = ILocArm32(None)
iloc.label(".L1")
iloc.load_imm(0, 70000)
iloc.jump(".L1")
iloc.delete_unused_label()

out = io.StringIO()
iloc.output(out, False)
print(out.getvalue())
```

Offsets that do not fit an instruction's immediate field are first loaded into
a scratch register. Labels that no branch refers to are dropped before output.

## What it does not do

- There is no lexer or parser: `FrontEndExecutor` is only an abstract base,
  and trees are built with the helpers in `minic.ast`.
- Nothing turns an AST into linear IR, and there are no IR, function, module
  or symbol-table classes. The code generators and the instruction selector
  take any objects with the attributes their module docstrings describe.
- There is no command-line program.
- `output_ast` writes DOT text only; it does not render images.