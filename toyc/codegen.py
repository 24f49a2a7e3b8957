"""RISC-V assembly generation for checked ToyC programs."""

from __future__ import annotations

import sys
from pathlib import Path

from toyc.ast import (
    Assign,
    BinaryOp,
    Block,
    Break,
    CompUnit,
    Continue,
    Declare,
    EmptyStmt,
    Expr,
    ExprStmt,
    FuncCall,
    Identifier,
    If,
    IntConst,
    Return,
    Stmt,
    UnaryOp,
    While,
)
from toyc.semantic import FuncInfo

_ARG_REGISTERS = 8

# Instructions computing ``t0 = t0 <op> t1`` (left in t0, right in t1).
_BINARY_OPS: dict[str, tuple[str, ...]] = {
    "+": ("add t0, t0, t1",),
    "-": ("sub t0, t0, t1",),
    "*": ("mul t0, t0, t1",),
    "/": ("div t0, t0, t1",),
    "%": ("rem t0, t0, t1",),
    "<": ("slt t0, t0, t1",),
    ">": ("slt t0, t1, t0",),
    "<=": ("slt t2, t1, t0", "xori t0, t2, 1"),
    ">=": ("slt t2, t0, t1", "xori t0, t2, 1"),
    "==": ("xor t2, t0, t1", "sltu t0, zero, t2", "xori t0, t0, 1"),
    "!=": ("xor t2, t0, t1", "sltu t0, zero, t2"),
}


def _align16(value: int) -> int:
    return (value + 15) // 16 * 16


def _off_s0(offset: int) -> str:
    return f"{offset}(s0)"


class CodeGenerator:
    """Stack-machine style code generator emitting RISC-V assembly text.

    Label numbers keep increasing across calls to :meth:`generate`, so
    output from one generator never reuses a label.
    """

    def __init__(self) -> None:
        self._label_id = 0
        self._lines: list[str] = []
        self._sp_bytes = 0
        self._loops: list[tuple[str, str]] = []
        self._info: FuncInfo | None = None

    def generate(self, root: CompUnit, funcs: list[FuncInfo]) -> str:
        """Return the assembly for ``root`` using the analysis in ``funcs``."""
        self._lines = []
        for func, info in zip(root.funcs, funcs, strict=True):
            self._info = info
            self._sp_bytes = 0
            self._loops = []

            total_slots = len(info.params) + info.num_locals
            frame = _align16(12 + 4 * total_slots)

            self._emit(f".globl {info.name}")
            self._emit(f"{info.name}:")
            self._emit(f"addi sp, sp, -{frame}")
            self._emit(f"sw ra, {frame - 4}(sp)")
            self._emit(f"sw s0, {frame - 8}(sp)")
            self._emit(f"addi s0, sp, {frame}")

            for position, param in enumerate(info.params):
                offset = info.var_offset[param]
                if position < _ARG_REGISTERS:
                    self._emit(f"sw a{position}, {_off_s0(offset)}")
                else:
                    self._emit(f"lw t0, {position * 4}(s0)")
                    self._emit(f"sw t0, {_off_s0(offset)}")

            self._stmt(func.body)

            self._emit(f"__func_end_{info.name}:")
            self._emit(f"lw ra, {frame - 4}(sp)")
            self._emit(f"lw s0, {frame - 8}(sp)")
            self._emit(f"addi sp, sp, {frame}")
            self._emit("jr ra")
            self._emit("")
        text = "".join(f"{line}\n" for line in self._lines)
        self._lines = []
        self._info = None
        return text

    def _label(self, base: str) -> str:
        label = f"{base}_{self._label_id}"
        self._label_id += 1
        return label

    def _emit(self, line: str) -> None:
        self._lines.append(line)

    def _push_t0(self) -> None:
        self._emit("addi sp, sp, -4")
        self._emit("sw t0, 0(sp)")
        self._sp_bytes += 4

    def _pop_t0(self) -> None:
        self._emit("lw t0, 0(sp)")
        self._emit("addi sp, sp, 4")
        self._sp_bytes -= 4

    def _resolved(self, expr: Identifier) -> int:
        assert self._info is not None
        return self._info.expr_resolved_offset[expr]

    def _call(self, call: FuncCall, push_return: bool) -> None:
        argc = len(call.args)
        args_bytes = argc * 4
        pad = (16 - (self._sp_bytes + args_bytes) % 16) % 16
        if pad > 0:
            self._emit(f"addi sp, sp, -{pad}")
            self._sp_bytes += pad
        for arg in reversed(call.args):
            self._expr(arg)
        for reg in range(min(_ARG_REGISTERS, argc)):
            self._emit(f"lw a{reg}, {reg * 4}(sp)")
        self._emit(f"call {call.name}")
        if args_bytes + pad > 0:
            self._emit(f"addi sp, sp, {args_bytes + pad}")
            self._sp_bytes -= args_bytes + pad
        if push_return:
            self._emit("mv t0, a0")
            self._push_t0()

    def _short_circuit(self, left: Expr, right: Expr, is_and: bool) -> None:
        exit_label = self._label("Lfalse" if is_and else "Ltrue")
        end_label = self._label("Lend")
        self._expr(left)
        self._pop_t0()
        self._emit(f"{'beqz' if is_and else 'bnez'} t0, {exit_label}")
        self._expr(right)
        self._pop_t0()
        self._emit("sltu t0, zero, t0")
        self._emit(f"j {end_label}")
        self._emit(f"{exit_label}:")
        self._emit(f"li t0, {0 if is_and else 1}")
        self._emit(f"{end_label}:")
        self._push_t0()

    def _expr(self, expr: Expr | None) -> None:
        """Evaluate ``expr`` and push its value."""
        match expr:
            case None:
                return
            case IntConst(value):
                self._emit(f"li t0, {value}")
                self._push_t0()
            case Identifier():
                self._emit(f"lw t0, {_off_s0(self._resolved(expr))}")
                self._push_t0()
            case UnaryOp(op, operand):
                self._expr(operand)
                self._pop_t0()
                if op == "-":
                    self._emit("sub t0, zero, t0")
                elif op == "!":
                    self._emit("sltu t0, zero, t0")
                    self._emit("xori t0, t0, 1")
                self._push_t0()
            case BinaryOp("&&", left, right):
                self._short_circuit(left, right, is_and=True)
            case BinaryOp("||", left, right):
                self._short_circuit(left, right, is_and=False)
            case BinaryOp(op, left, right):
                self._expr(left)
                self._expr(right)
                self._pop_t0()
                self._emit("mv t1, t0")
                self._pop_t0()
                for line in _BINARY_OPS.get(op, (f"# unknown op: {op}",)):
                    self._emit(line)
                self._push_t0()
            case FuncCall():
                self._call(expr, push_return=True)

    def _expr_to_reg(self, expr: Expr | None, reg: str) -> None:
        """Evaluate ``expr`` straight into ``reg`` where that is cheap."""
        match expr:
            case None:
                return
            case IntConst(value):
                self._emit(f"li {reg}, {value}")
            case Identifier():
                self._emit(f"lw {reg}, {_off_s0(self._resolved(expr))}")
            case FuncCall():
                self._call(expr, push_return=False)
                if reg != "a0":
                    self._emit(f"mv {reg}, a0")
            case _:
                self._expr(expr)
                self._pop_t0()
                self._emit(f"mv {reg}, t0")

    def _store_to_lhs(self, stmt: Stmt) -> None:
        assert self._info is not None
        self._emit(f"sw t0, {_off_s0(self._info.stmt_lhs_offset[stmt])}")

    def _stmt(self, stmt: Stmt | None) -> None:
        assert self._info is not None
        match stmt:
            case None | EmptyStmt():
                return
            case Block(stmts):
                for sub in stmts:
                    self._stmt(sub)
            case ExprStmt(expr):
                self._expr(expr)
                self._pop_t0()
            case Declare(_, init):
                self._expr(init)
                self._pop_t0()
                self._store_to_lhs(stmt)
            case Assign(_, value):
                self._expr(value)
                self._pop_t0()
                self._store_to_lhs(stmt)
            case If(cond, then, else_):
                else_label = self._label("Lelse")
                end_label = self._label("Lend")
                self._expr(cond)
                self._pop_t0()
                self._emit(f"beqz t0, {else_label}")
                self._stmt(then)
                self._emit(f"j {end_label}")
                self._emit(f"{else_label}:")
                if else_ is not None:
                    self._stmt(else_)
                self._emit(f"{end_label}:")
            case While(cond, body):
                begin_label = self._label("Lwhile_begin")
                end_label = self._label("Lwhile_end")
                self._emit(f"{begin_label}:")
                self._expr(cond)
                self._pop_t0()
                self._emit(f"beqz t0, {end_label}")
                self._loops.append((begin_label, end_label))
                try:
                    self._stmt(body)
                finally:
                    self._loops.pop()
                self._emit(f"j {begin_label}")
                self._emit(f"{end_label}:")
            case Break():
                if self._loops:
                    self._emit(f"j {self._loops[-1][1]}")
                else:
                    self._emit("# break used outside loop")
            case Continue():
                if self._loops:
                    self._emit(f"j {self._loops[-1][0]}")
                else:
                    self._emit("# continue used outside loop")
            case Return(value):
                if value is not None:
                    self._expr_to_reg(value, "a0")
                self._emit(f"j __func_end_{self._info.name}")
            case _:
                self._emit("# unknown stmt")


def generate_riscv(root: CompUnit, funcs: list[FuncInfo]) -> str:
    """Return the assembly text for an analysed compilation unit."""
    return CodeGenerator().generate(root, funcs)


def write_riscv(root: CompUnit, funcs: list[FuncInfo], out_path: str | Path) -> None:
    """Write the assembly to ``out_path``, or to stdout when it is ``"-"``.

    Raises OSError when the output file cannot be written.
    """
    text = generate_riscv(root, funcs)
    if str(out_path) == "-":
        sys.stdout.write(text)
    else:
        Path(out_path).write_text(text)