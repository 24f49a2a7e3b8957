# toyc

`toyc` is the back half of a compiler for a small C-like language. It takes an
abstract syntax tree, checks it for semantic errors and emits 32-bit RISC-V
assembly text.

The language has `int` and `void` functions, `int` locals, `if`/`else`,
`while`, `break`, `continue`, `return`, and integer expressions with
arithmetic (`+ - * / %`), comparison (`< > <= >= == !=`), logical (`&& ||`)
and unary (`- ! +`) operators, and function calls.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Usage

Build a tree from the node classes in `toyc.ast`, analyse it with
`toyc.semantic`, then generate assembly with `toyc.codegen`:

```python
from toyc.ast import (
    BinaryOp, Block, CompUnit, Declare, FuncDef, Identifier, IntConst, Return,
    print_ast,
)
from toyc.semantic import SemanticError, semantic_analyze
from toyc.codegen import generate_riscv, write_riscv

body = Block([
    Declare("x", IntConst(40)),
    Return(BinaryOp("+", Identifier("x"), IntConst(2))),
])
unit = CompUnit([FuncDef("int", "main", [], body)])

print_ast(unit)

try:
    funcs = semantic_analyze(unit)
except SemanticError as err:
    raise SystemExit(str(err))

print(generate_riscv(unit, funcs), end="")
write_riscv(unit, funcs, "out.s")   # "-" writes to standard output
```

## The syntax tree

`toyc.ast` holds one dataclass per node:

- expressions: `IntConst`, `Identifier`, `UnaryOp`, `BinaryOp`, `FuncCall`;
- statements: `Block`, `EmptyStmt`, `ExprStmt`, `Assign`, `Declare`, `If`,
  `While`, `Break`, `Continue`, `Return`;
- `FuncDef` (return type, name, parameter names, body) and `CompUnit` (the
  functions in source order).

Nodes compare and hash by identity. `format_expr`, `format_stmt` and
`format_ast` render a subtree as an indented text dump, one node per line;
`print_ast` writes the dump of a whole unit to a file (standard output by
default).

## Checks done by the analyser

`semantic_analyze` raises `SemanticError` on the first rule broken:

- there is no tree to analyse;
- two functions have the same name;
- there is no `main`, or `main` is not `int main()`;
- a variable is used or assigned before it is declared, declared twice in the
  same scope, or declared without an initializer;
- a called function does not exist, is defined after the caller (recursion is
  allowed), gets the wrong number of arguments, or is a `void` function whose
  result is used as a value;
- `break` or `continue` is outside a loop;
- `return` carries a value in a `void` function or none in an `int` function;
- an `int` function may not return on every path. `always_returns` makes this
  check and is conservative: a block returns if any statement in it does, an
  `if` only if it has an `else` and both branches return, and a `while` never
  counts.

The error's `message` attribute holds the text; `str(err)` reads
`Semantic error: <message>`.

On success it returns one `FuncInfo` per function, in source order. Each one
records the function's signature, its number of locals, and the frame-pointer
offsets of its variables, of each identifier use and of each assignment or
declaration target. The code generator relies on these.

## Generated code

Each function gets a 16-byte-aligned frame that holds `ra`, `s0` and one
4-byte slot per parameter and local. Expressions are evaluated on the stack,
and the stack is padded to 16 bytes before each call. The first eight
arguments are passed in `a0`–`a7` and the rest on the stack; the result is
returned in `a0`.

`generate_riscv` returns the assembly as a string, and `write_riscv` writes it
to a path (raising `OSError` if that fails) or to standard output for `"-"`.
`CodeGenerator` numbers labels across everything it generates, so one instance
can be reused to emit several units with no label clashes.

## What it does not do

There is no lexer or parser and no command-line program: the package does not
read ToyC source text. Trees have to be built in Python from the node classes,
and source lines are not tracked, so errors carry no line numbers. The output
is assembly text only; assembling and linking are left to other tools.