import pytest

from toyc.ast import (
    Assign,
    BinaryOp,
    Block,
    Break,
    CompUnit,
    Continue,
    Declare,
    EmptyStmt,
    ExprStmt,
    FuncCall,
    FuncDef,
    Identifier,
    If,
    IntConst,
    Return,
    While,
)
from toyc.semantic import FuncInfo, SemanticError, always_returns, semantic_analyze


def main_returning(*stmts):
    return FuncDef("int", "main", [], Block([*stmts, Return(IntConst(0))]))


def unit(*funcs):
    return CompUnit(list(funcs))


def test_minimal_main():
    infos = semantic_analyze(unit(main_returning()))
    assert len(infos) == 1
    info = infos[0]
    assert isinstance(info, FuncInfo)
    assert info.name == "main"
    assert info.return_type == "int"
    assert info.num_locals == 0
    assert info.index_in_file == 0


def test_param_offsets():
    add = FuncDef(
        "int", "add", ["a", "b"],
        Block([Return(BinaryOp("+", Identifier("a"), Identifier("b")))]),
    )
    infos = semantic_analyze(unit(add, main_returning()))
    assert infos[0].var_offset == {"a": -12, "b": -16}
    assert infos[0].num_locals == 0
    assert infos[1].index_in_file == 1


def test_declaration_slot_and_resolution():
    decl = Declare("x", IntConst(5))
    use = Identifier("x")
    body = Block([decl, Return(use)])
    info = semantic_analyze(unit(FuncDef("int", "main", [], body)))[0]
    assert info.stmt_lhs_offset[decl] == -12
    assert info.expr_resolved_offset[use] == info.stmt_lhs_offset[decl]
    assert info.num_locals == 1


def test_locals_follow_params():
    decl = Declare("t", Identifier("p"))
    f = FuncDef("void", "f", ["p"], Block([decl]))
    info = semantic_analyze(unit(f, main_returning()))[0]
    assert info.stmt_lhs_offset[decl] == info.var_offset["p"] - 4
    assert info.num_locals == 1


def test_shadowing_in_inner_block():
    outer = Declare("x", IntConst(1))
    inner = Declare("x", IntConst(2))
    inner_use = Identifier("x")
    outer_use = Identifier("x")
    body = Block([outer, Block([inner, ExprStmt(inner_use)]), Return(outer_use)])
    info = semantic_analyze(unit(FuncDef("int", "main", [], body)))[0]
    assert info.expr_resolved_offset[inner_use] == info.stmt_lhs_offset[inner]
    assert info.expr_resolved_offset[outer_use] == info.stmt_lhs_offset[outer]
    assert info.stmt_lhs_offset[inner] != info.stmt_lhs_offset[outer]
    assert info.num_locals == 2


def test_assign_resolves_target():
    decl = Declare("x", IntConst(1))
    assign = Assign("x", IntConst(2))
    info = semantic_analyze(unit(main_returning(decl, assign)))[0]
    assert info.stmt_lhs_offset[assign] == info.stmt_lhs_offset[decl]


def test_recursion_allowed():
    fact = FuncDef(
        "int", "fact", ["n"],
        Block([Return(FuncCall("fact", [Identifier("n")]))]),
    )
    infos = semantic_analyze(unit(fact, main_returning()))
    assert [i.name for i in infos] == ["fact", "main"]


def test_void_call_as_statement_allowed():
    g = FuncDef("void", "g", [], Block([Return()]))
    infos = semantic_analyze(unit(g, main_returning(ExprStmt(FuncCall("g")))))
    assert infos[0].return_type == "void"


def test_no_ast():
    with pytest.raises(SemanticError, match="No AST to analyze"):
        semantic_analyze(None)


def test_duplicate_function():
    with pytest.raises(SemanticError, match="Duplicate function name: main"):
        semantic_analyze(unit(main_returning(), main_returning()))


def test_missing_main():
    f = FuncDef("void", "f", [], Block([]))
    with pytest.raises(SemanticError, match="missing entry function"):
        semantic_analyze(unit(f))


@pytest.mark.parametrize(
    "func",
    [
        FuncDef("void", "main", [], Block([])),
        FuncDef("int", "main", ["a"], Block([Return(IntConst(0))])),
    ],
)
def test_bad_main_signature(func):
    with pytest.raises(SemanticError, match=r"main must be: int main\(\)"):
        semantic_analyze(unit(func))


def test_undeclared_variable():
    body = Block([Return(Identifier("nope"))])
    with pytest.raises(SemanticError, match="use of undeclared variable: nope"):
        semantic_analyze(unit(FuncDef("int", "main", [], body)))


def test_assign_to_undeclared():
    with pytest.raises(SemanticError, match="assignment to undeclared variable: y"):
        semantic_analyze(unit(main_returning(Assign("y", IntConst(1)))))


def test_undefined_function():
    with pytest.raises(SemanticError, match="call to undefined function: h"):
        semantic_analyze(unit(main_returning(ExprStmt(FuncCall("h")))))


def test_call_to_later_function():
    later = FuncDef("void", "later", [], Block([]))
    with pytest.raises(SemanticError, match="call to function declared later: later"):
        semantic_analyze(unit(main_returning(ExprStmt(FuncCall("later"))), later))


def test_argument_count_mismatch():
    f = FuncDef("void", "f", ["a"], Block([]))
    with pytest.raises(SemanticError, match="call argument count mismatch for f"):
        semantic_analyze(unit(f, main_returning(ExprStmt(FuncCall("f")))))


def test_void_call_in_expression():
    g = FuncDef("void", "g", [], Block([]))
    with pytest.raises(SemanticError, match="void function 'g' used in expression context"):
        semantic_analyze(unit(g, main_returning(Declare("x", FuncCall("g")))))


def test_return_value_in_void():
    f = FuncDef("void", "f", [], Block([Return(IntConst(1))]))
    with pytest.raises(SemanticError, match="return with a value in void function"):
        semantic_analyze(unit(f, main_returning()))


def test_missing_return_value_in_int():
    body = Block([Return()])
    with pytest.raises(SemanticError, match="missing return value in int function"):
        semantic_analyze(unit(FuncDef("int", "main", [], body)))


def test_break_outside_loop():
    with pytest.raises(SemanticError, match="break used outside of loop"):
        semantic_analyze(unit(main_returning(Break())))


def test_continue_outside_loop():
    with pytest.raises(SemanticError, match="continue used outside of loop"):
        semantic_analyze(unit(main_returning(Continue())))


def test_break_and_continue_inside_loop():
    loop = While(IntConst(1), Block([Continue(), Break()]))
    info = semantic_analyze(unit(main_returning(loop)))[0]
    assert info.num_locals == 0


def test_redeclaration_in_same_scope():
    with pytest.raises(SemanticError, match="redeclaration in same scope: x"):
        semantic_analyze(unit(main_returning(Declare("x", IntConst(1)), Declare("x", IntConst(2)))))


def test_declaration_needs_initializer():
    with pytest.raises(SemanticError, match="must have initializer for: x"):
        semantic_analyze(unit(main_returning(Declare("x", None))))


def test_int_function_must_return():
    body = Block([If(IntConst(1), Return(IntConst(1)))])
    with pytest.raises(SemanticError, match="int function 'main' may not return on every path"):
        semantic_analyze(unit(FuncDef("int", "main", [], body)))


def test_error_string_has_prefix():
    err = SemanticError("boom")
    assert str(err) == "Semantic error: boom"
    assert err.message == "boom"


def test_always_returns():
    ret = Return(IntConst(0))
    assert always_returns(ret)
    assert not always_returns(None)
    assert not always_returns(EmptyStmt())
    assert not always_returns(If(IntConst(1), ret))
    assert always_returns(If(IntConst(1), ret, Return(IntConst(1))))
    assert not always_returns(If(IntConst(1), ret, EmptyStmt()))
    assert not always_returns(While(IntConst(1), ret))
    assert always_returns(Block([EmptyStmt(), ret, EmptyStmt()]))
    assert not always_returns(Block([]))