"""Syntax tree for ToyC programs and a readable tree dump."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import TextIO, Union

# Nodes compare and hash by identity, so the semantic pass can key
# per-node facts (resolved stack offsets) on the nodes themselves.


@dataclass(eq=False)
class IntConst:
    """Integer literal."""

    value: int


@dataclass(eq=False)
class Identifier:
    """Reference to a variable."""

    name: str


@dataclass(eq=False)
class UnaryOp:
    """Unary operator ('+', '-' or '!') applied to an operand."""

    op: str
    operand: "Expr"


@dataclass(eq=False)
class BinaryOp:
    """Binary operator applied to two operands."""

    op: str
    left: "Expr"
    right: "Expr"


@dataclass(eq=False)
class FuncCall:
    """Call of a named function."""

    name: str
    args: list["Expr"] = field(default_factory=list)


Expr = Union[IntConst, Identifier, UnaryOp, BinaryOp, FuncCall]


@dataclass(eq=False)
class Block:
    """Braced sequence of statements opening a new scope."""

    stmts: list["Stmt"] = field(default_factory=list)


@dataclass(eq=False)
class EmptyStmt:
    """A lone semicolon."""


@dataclass(eq=False)
class ExprStmt:
    """Expression evaluated for its side effects."""

    expr: Expr


@dataclass(eq=False)
class Assign:
    """Assignment to an existing variable."""

    target: str
    value: Expr


@dataclass(eq=False)
class Declare:
    """Declaration of a local variable with its initializer."""

    name: str
    init: Expr | None


@dataclass(eq=False)
class If:
    """Conditional with an optional else branch."""

    cond: Expr
    then: "Stmt"
    else_: "Stmt | None" = None


@dataclass(eq=False)
class While:
    """Pre-tested loop."""

    cond: Expr
    body: "Stmt"


@dataclass(eq=False)
class Break:
    """Leave the innermost loop."""


@dataclass(eq=False)
class Continue:
    """Jump to the next iteration of the innermost loop."""


@dataclass(eq=False)
class Return:
    """Return from the function, with or without a value."""

    value: Expr | None = None


Stmt = Union[Block, EmptyStmt, ExprStmt, Assign, Declare, If, While, Break, Continue, Return]


@dataclass(eq=False)
class FuncDef:
    """Function definition."""

    return_type: str
    name: str
    params: list[str] = field(default_factory=list)
    body: Stmt | None = None


@dataclass(eq=False)
class CompUnit:
    """A whole source file: its functions in order."""

    funcs: list[FuncDef] = field(default_factory=list)


def _pad(indent: int) -> str:
    return "  " * indent


def format_expr(expr: Expr | None, indent: int = 0) -> str:
    """Render an expression subtree, one node per line."""
    pad = _pad(indent)
    match expr:
        case None:
            return f"{pad}NULL\n"
        case IntConst(value):
            return f"{pad}IntConst: {value}\n"
        case Identifier(name):
            return f"{pad}Identifier: {name}\n"
        case UnaryOp(op, operand):
            return f"{pad}UnaryOp: '{op}'\n" + format_expr(operand, indent + 1)
        case BinaryOp(op, left, right):
            return (
                f"{pad}BinaryOp: {op}\n"
                + format_expr(left, indent + 1)
                + format_expr(right, indent + 1)
            )
        case FuncCall(name, args):
            return f"{pad}FuncCall: {name}\n" + "".join(
                format_expr(arg, indent + 1) for arg in args
            )
    raise TypeError(f"not an expression node: {expr!r}")


def format_stmt(stmt: Stmt | None, indent: int = 0) -> str:
    """Render a statement subtree, one node per line."""
    pad = _pad(indent)
    inner = _pad(indent + 1)
    match stmt:
        case None:
            return f"{pad}NULL\n"
        case Block(stmts):
            body = "".join(format_stmt(sub, indent + 1) for sub in stmts)
            return f"{pad}Block {{\n{body}{pad}}}\n"
        case EmptyStmt():
            return f"{pad}EmptyStmt\n"
        case ExprStmt(expr):
            return f"{pad}ExprStmt\n" + format_expr(expr, indent + 1)
        case Assign(target, value):
            return f"{pad}Assign: {target}\n" + format_expr(value, indent + 1)
        case Declare(name, init):
            return f"{pad}Declare: {name}\n" + format_expr(init, indent + 1)
        case If(cond, then, else_):
            text = (
                f"{pad}If\n"
                f"{inner}Cond:\n" + format_expr(cond, indent + 2)
                + f"{inner}Then:\n" + format_stmt(then, indent + 2)
            )
            if else_ is not None:
                text += f"{inner}Else:\n" + format_stmt(else_, indent + 2)
            return text
        case While(cond, body):
            return (
                f"{pad}While\n"
                f"{inner}Cond:\n" + format_expr(cond, indent + 2)
                + f"{inner}Body:\n" + format_stmt(body, indent + 2)
            )
        case Break():
            return f"{pad}Break\n"
        case Continue():
            return f"{pad}Continue\n"
        case Return(value):
            text = f"{pad}Return\n"
            if value is not None:
                text += format_expr(value, indent + 1)
            return text
    return f"{pad}UnknownStmt\n"


def format_ast(root: CompUnit | None, indent: int = 0) -> str:
    """Render a whole compilation unit."""
    if root is None:
        return "Empty AST\n"
    parts = ["CompUnit {\n"]
    for func in root.funcs:
        parts.append(f"{_pad(indent + 1)}FuncDef: {func.name} return {func.return_type}\n")
        params = "".join(f"{p} " for p in func.params)
        parts.append(f"{_pad(indent + 2)}Params: {params}\n")
        parts.append(f"{_pad(indent + 2)}Body:\n")
        parts.append(format_stmt(func.body, indent + 3))
    parts.append("}\n")
    return "".join(parts)


def print_ast(root: CompUnit | None, file: TextIO | None = None) -> None:
    """Write the tree dump of ``root`` to ``file`` (stdout by default)."""
    (file or sys.stdout).write(format_ast(root))