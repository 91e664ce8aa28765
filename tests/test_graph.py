import pytest

from minic.ast import (
    AstNode,
    AstOperator,
    ValueType,
    create_contain_node,
    create_func_def,
    new_int_literal,
    new_type_node,
    new_var_id,
)
from minic.graph import node_name, output_ast, to_dot


def _sample_tree():
    expr = create_contain_node(AstOperator.ADD, new_var_id("a", 2), new_int_literal(3, 2))
    ret = create_contain_node(AstOperator.RETURN, expr)
    block = create_contain_node(AstOperator.BLOCK, ret)
    func = create_func_def(new_type_node(ValueType.INT), new_var_id("main", 1), block)
    return create_contain_node(AstOperator.COMPILE_UNIT, func)


def _count_nodes(node):
    return 1 + sum(_count_nodes(son) for son in node.sons)


@pytest.mark.parametrize(
    "op, text",
    [
        (AstOperator.BLOCK, "block"),
        (AstOperator.RETURN, "return"),
        (AstOperator.FUNC_DEF, "func-def"),
        (AstOperator.COMPILE_UNIT, "compile-unit"),
        (AstOperator.FUNC_FORMAL_PARAMS, "formal-params"),
        (AstOperator.VAR_DECL, "var-decl"),
        (AstOperator.DECL_STMT, "decl-stmt"),
        (AstOperator.ADD, "+"),
        (AstOperator.SUB, "-"),
        (AstOperator.MUL, "*"),
        (AstOperator.DIV, "/"),
        (AstOperator.MOD, "%"),
        (AstOperator.NEG, "neg"),
        (AstOperator.ASSIGN, "="),
        (AstOperator.FUNC_CALL, "func-call"),
        (AstOperator.FUNC_REAL_PARAMS, "real-params"),
        (AstOperator.FUNC_FORMAL_PARAM, "unknown"),
        (AstOperator.MAX, "unknown"),
    ],
)
def test_operator_names(op, text):
    assert node_name(AstNode(op)) == text


def test_leaf_names():
    assert node_name(new_var_id("count")) == "count"
    assert node_name(new_int_literal(42)) == "42"
    assert node_name(new_type_node(ValueType.INT)) == "i32"
    assert node_name(new_type_node(ValueType.VOID)) == "void"


def test_literal_shown_as_signed():
    assert node_name(new_int_literal(0xFFFFFFFF)) == "-1"


def test_float_literal_has_six_decimals():
    node = AstNode(AstOperator.LEAF_LITERAL_FLOAT, float_val=1.5)
    assert node_name(node) == "1.500000"


def test_dot_has_one_edge_per_child():
    root = _sample_tree()
    dot = to_dot(root)
    assert dot.startswith("digraph ast {")
    assert dot.rstrip().endswith("}")
    assert dot.count("->") == _count_nodes(root) - 1
    assert dot.count(" [") == _count_nodes(root)


def test_children_come_before_parent_and_edges_keep_order():
    root = create_contain_node(AstOperator.SUB, new_var_id("x"), new_var_id("y"))
    lines = to_dot(root).splitlines()
    edges = [line.strip() for line in lines if "->" in line]
    assert edges == ["n2 -> n0;", "n2 -> n1;"]


def test_empty_tree():
    dot = to_dot(None)
    assert "->" not in dot
    assert "label" not in dot


def test_output_ast_writes_dot(tmp_path):
    root = _sample_tree()
    target = tmp_path / "ast.dot"
    output_ast(root, target)
    assert target.read_text(encoding="utf-8") == to_dot(root)


def test_output_ast_accepts_gv(tmp_path):
    root = _sample_tree()
    target = tmp_path / "ast.gv"
    output_ast(root, str(target))
    assert target.read_text(encoding="utf-8") == to_dot(root)


@pytest.mark.parametrize("name", ["ast.png", "ast.svg", "ast"])
def test_output_ast_refuses_image_formats(tmp_path, name):
    target = tmp_path / name
    with pytest.raises(ValueError):
        output_ast(_sample_tree(), target)
    assert not target.exists()