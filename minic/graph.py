"""Graph description of an abstract syntax tree in the DOT language."""

from __future__ import annotations

import itertools
from pathlib import Path

from minic.ast import AstNode, AstOperator

_OPERATOR_NAMES = {
    AstOperator.BLOCK: "block",
    AstOperator.RETURN: "return",
    AstOperator.FUNC_DEF: "func-def",
    AstOperator.COMPILE_UNIT: "compile-unit",
    AstOperator.FUNC_FORMAL_PARAMS: "formal-params",
    AstOperator.VAR_DECL: "var-decl",
    AstOperator.DECL_STMT: "decl-stmt",
    AstOperator.ADD: "+",
    AstOperator.SUB: "-",
    AstOperator.MUL: "*",
    AstOperator.DIV: "/",
    AstOperator.MOD: "%",
    AstOperator.NEG: "neg",
    AstOperator.ASSIGN: "=",
    AstOperator.FUNC_CALL: "func-call",
    AstOperator.FUNC_REAL_PARAMS: "real-params",
}

_TEXT_FORMATS = frozenset({"dot", "gv"})

_LEAF_ATTRS = (
    ("fontcolor", "black"),
    ("fontname", "SimSun"),
    ("shape", "record"),
    ("style", "filled"),
    ("fillcolor", "yellow"),
)


def _as_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def node_name(node):
    """Return the text shown for an AST node."""
    kind = node.node_type
    if kind is AstOperator.LEAF_LITERAL_UINT:
        return str(_as_int32(node.integer_val))
    if kind is AstOperator.LEAF_LITERAL_FLOAT:
        return f"{node.float_val:f}"
    if kind is AstOperator.LEAF_VAR_ID:
        return node.name
    if kind is AstOperator.LEAF_TYPE:
        return str(node.type)
    return _OPERATOR_NAMES.get(kind, "unknown")


def _quote(text: str, record: bool = False) -> str:
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    if record:
        for special in "{}|<>":
            escaped = escaped.replace(special, "\\" + special)
    return '"' + escaped + '"'


def _attrs(pairs, record: bool = False) -> str:
    parts = []
    for key, value in pairs:
        parts.append(f"{key}={_quote(value, record and key == 'label')}")
    return "[" + ", ".join(parts) + "]"


def to_dot(root):
    """Return a directed graph of the tree rooted at root, in DOT text."""
    lines = ["digraph ast {", '\tdpi="600";']
    ids = (f"n{k}" for k in itertools.count())

    def visit(node: AstNode) -> str:
        if node.is_leaf():
            node_id = next(ids)
            attrs = list(_LEAF_ATTRS)
            attrs.insert(2, ("label", node_name(node)))
            lines.append(f"\t{node_id} {_attrs(attrs, record=True)};")
            return node_id
        son_ids = [visit(son) for son in node.sons if son is not None]
        node_id = next(ids)
        attrs = (("label", node_name(node)), ("shape", "ellipse"))
        lines.append(f"\t{node_id} {_attrs(attrs)};")
        lines.extend(f"\t{node_id} -> {son_id};" for son_id in son_ids)
        return node_id

    if root is not None:
        visit(root)
    lines.append("}")
    return "\n".join(lines) + "\n"


def output_ast(root, file_path):
    """Write the tree's graph to file_path; the suffix picks the format.

    Only DOT text (.dot or .gv) can be written. A path without a suffix
    asks for png, as does any image suffix, and is refused.
    """
    path = Path(file_path)
    file_path = str(file_path)
    pos = file_path.rfind(".")
    ext = "png" if pos == -1 else file_path[pos + 1 :]
    if ext.lower() not in _TEXT_FORMATS:
        raise ValueError(f"unsupported graph output format: {ext!r}")
    path.write_text(to_dot(root), encoding="utf-8")