"""Semantic checks for ToyC and stack-slot assignment for code generation."""

from __future__ import annotations

from dataclasses import dataclass, field

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
    FuncDef,
    Identifier,
    If,
    IntConst,
    Return,
    Stmt,
    UnaryOp,
    While,
)


class SemanticError(Exception):
    """Raised when a program breaks a rule of the language."""

    def __init__(self, message: str, line: int = 0) -> None:
        super().__init__(message)
        self.message = message
        self.line = line

    def __str__(self) -> str:
        if self.line > 0:
            return f"Semantic error (line {self.line}): {self.message}"
        return f"Semantic error: {self.message}"


@dataclass
class FuncInfo:
    """What code generation needs to know about one function."""

    name: str
    return_type: str
    params: list[str] = field(default_factory=list)
    index_in_file: int = -1
    num_locals: int = 0
    var_offset: dict[str, int] = field(default_factory=dict)
    expr_resolved_offset: dict[Expr, int] = field(default_factory=dict)
    stmt_lhs_offset: dict[Stmt, int] = field(default_factory=dict)


def _slot_offset(index: int) -> int:
    """Offset from the frame pointer of the local slot with this index."""
    return -12 - 4 * index


def always_returns(stmt: Stmt | None) -> bool:
    """Conservatively tell whether ``stmt`` returns on every path."""
    match stmt:
        case Return():
            return True
        case Block(stmts):
            return any(always_returns(sub) for sub in stmts)
        case If(_, then, else_) if else_ is not None:
            return always_returns(then) and always_returns(else_)
    return False


class _FunctionAnalyzer:
    def __init__(
        self,
        func: FuncDef,
        index: int,
        funcs: list[FuncInfo],
        func_index: dict[str, int],
    ) -> None:
        self.func = func
        self.index = index
        self.funcs = funcs
        self.func_index = func_index
        self.info = FuncInfo(
            name=func.name,
            return_type=func.return_type,
            params=list(func.params),
            index_in_file=index,
        )
        self.scopes: list[dict[str, int]] = [{}]
        self.next_slot = 0
        self.loop_depth = 0

    def run(self) -> FuncInfo:
        for param in self.func.params:
            offset = self._new_slot()
            self.scopes[-1][param] = offset
            self.info.var_offset[param] = offset

        self._stmt(self.func.body)
        self.info.num_locals = self.next_slot - len(self.func.params)

        if self.func.return_type == "int" and not always_returns(self.func.body):
            raise SemanticError(
                f"int function '{self.func.name}' may not return on every path"
            )
        return self.info

    def _new_slot(self) -> int:
        offset = _slot_offset(self.next_slot)
        self.next_slot += 1
        return offset

    def _resolve(self, name: str) -> int | None:
        for scope in reversed(self.scopes):
            if name in scope:
                return scope[name]
        return None

    def _expr(self, expr: Expr | None, allow_void: bool) -> None:
        match expr:
            case None | IntConst():
                return
            case Identifier(name):
                offset = self._resolve(name)
                if offset is None:
                    raise SemanticError(f"use of undeclared variable: {name}")
                self.info.expr_resolved_offset[expr] = offset
            case UnaryOp(_, operand):
                self._expr(operand, allow_void)
            case BinaryOp(_, left, right):
                self._expr(left, allow_void)
                self._expr(right, allow_void)
            case FuncCall(name, args):
                self._call(name, args, allow_void)
            case _:
                raise SemanticError("unknown expression type encountered")

    def _call(self, name: str, args: list[Expr], allow_void: bool) -> None:
        found = self.func_index.get(name)
        if found is None:
            raise SemanticError(f"call to undefined function: {name}")
        if found > self.index:
            raise SemanticError(
                f"call to function declared later: {name} "
                "(declaration must appear before call)"
            )
        callee = self.funcs[found]
        if len(args) != len(callee.params):
            raise SemanticError(f"call argument count mismatch for {name}")
        for arg in args:
            self._expr(arg, True)
        if not allow_void and callee.return_type == "void":
            raise SemanticError(f"void function '{name}' used in expression context")

    def _stmt(self, stmt: Stmt | None) -> None:
        match stmt:
            case None | EmptyStmt():
                return
            case Block(stmts):
                self.scopes.append({})
                try:
                    for sub in stmts:
                        self._stmt(sub)
                finally:
                    self.scopes.pop()
            case ExprStmt(expr):
                self._expr(expr, True)
            case Declare(name, init):
                if init is None:
                    raise SemanticError(
                        f"variable declaration must have initializer for: {name}"
                    )
                top = self.scopes[-1]
                if name in top:
                    raise SemanticError(f"redeclaration in same scope: {name}")
                offset = self._new_slot()
                top[name] = offset
                self.info.var_offset[name] = offset
                self.info.stmt_lhs_offset[stmt] = offset
                self._expr(init, False)
            case Assign(target, value):
                self._expr(value, False)
                offset = self._resolve(target)
                if offset is None:
                    raise SemanticError(f"assignment to undeclared variable: {target}")
                self.info.stmt_lhs_offset[stmt] = offset
            case If(cond, then, else_):
                self._expr(cond, False)
                self._stmt(then)
                if else_ is not None:
                    self._stmt(else_)
            case While(cond, body):
                self._expr(cond, False)
                self.loop_depth += 1
                try:
                    self._stmt(body)
                finally:
                    self.loop_depth -= 1
            case Break():
                if self.loop_depth <= 0:
                    raise SemanticError("break used outside of loop")
            case Continue():
                if self.loop_depth <= 0:
                    raise SemanticError("continue used outside of loop")
            case Return(value):
                if value is not None:
                    if self.func.return_type == "void":
                        raise SemanticError("return with a value in void function")
                    self._expr(value, False)
                elif self.func.return_type == "int":
                    raise SemanticError("missing return value in int function")


def semantic_analyze(root: CompUnit | None) -> list[FuncInfo]:
    """Check ``root`` and return one FuncInfo per function, in file order.

    Raises SemanticError on the first rule that is broken.
    """
    if root is None:
        raise SemanticError("No AST to analyze")

    funcs: list[FuncInfo] = []
    func_index: dict[str, int] = {}
    for index, func in enumerate(root.funcs):
        if func.name in func_index:
            raise SemanticError(f"Duplicate function name: {func.name}")
        func_index[func.name] = index
        funcs.append(
            FuncInfo(
                name=func.name,
                return_type=func.return_type,
                params=list(func.params),
                index_in_file=index,
            )
        )

    main = next((info for info in funcs if info.name == "main"), None)
    if main is None:
        raise SemanticError("missing entry function: int main()")
    if main.return_type != "int" or main.params:
        raise SemanticError("main must be: int main()")

    for index, func in enumerate(root.funcs):
        funcs[index] = _FunctionAnalyzer(func, index, funcs, func_index).run()
    return funcs