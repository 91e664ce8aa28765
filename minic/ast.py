"""Abstract syntax tree nodes and the helpers that build them."""

from __future__ import annotations

import enum
import itertools
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


class AstOperator(enum.Enum):
    """Kinds of AST node."""

    LEAF_LITERAL_UINT = 0
    LEAF_LITERAL_FLOAT = 1
    LEAF_VAR_ID = 2
    LEAF_TYPE = 3
    COMPILE_UNIT = 4
    FUNC_DEF = 5
    FUNC_FORMAL_PARAMS = 6
    FUNC_FORMAL_PARAM = 7
    FUNC_CALL = 8
    FUNC_REAL_PARAMS = 9
    BLOCK = 10
    COMPOUNDSTMT = 10
    RETURN = 11
    ASSIGN = 12
    DECL_STMT = 13
    VAR_DECL = 14
    ADD = 15
    SUB = 16
    MUL = 17
    DIV = 18
    MOD = 19
    NEG = 20
    MAX = 21


_LEAF_OPERATORS = frozenset(
    {
        AstOperator.LEAF_LITERAL_UINT,
        AstOperator.LEAF_LITERAL_FLOAT,
        AstOperator.LEAF_VAR_ID,
        AstOperator.LEAF_TYPE,
    }
)


class ValueType(enum.Enum):
    """Value types known to the front end."""

    INT = "i32"
    VOID = "void"

    @property
    def size(self) -> int:
        """Storage size in bytes."""
        return 4 if self is ValueType.INT else 0

    def __str__(self) -> str:
        return self.value


@dataclass(eq=False)
class AstNode:
    """One node of the abstract syntax tree."""

    node_type: AstOperator
    type: ValueType = ValueType.VOID
    line_no: int = -1
    integer_val: int = 0
    float_val: float = 0.0
    name: str = ""
    parent: AstNode | None = field(default=None, repr=False)
    sons: list[AstNode] = field(default_factory=list)
    block_insts: list[Any] = field(default_factory=list, repr=False)
    val: Any = field(default=None, repr=False)
    need_scope: bool = True

    def is_leaf(self):
        """Return whether the node is a leaf."""
        return self.node_type in _LEAF_OPERATORS

    def insert_son_node(self, node):
        """Append node as the last child, ignoring None, and return self."""
        if node is not None:
            node.parent = self
            self.sons.append(node)
        return self


class FrontEndExecutor(ABC):
    """A front end that parses a source file into an AST."""

    def __init__(self, filename: str) -> None:
        self.filename = filename
        self.ast_root: AstNode | None = None

    @abstractmethod
    def run(self):
        """Parse the file; return True on success."""


def new_node(node_type, *args):
    """Create a node with the given children, stopping at the first None."""
    node = AstNode(node_type)
    for child in itertools.takewhile(lambda son: son is not None, args):
        node.insert_son_node(child)
    return node


def new_int_literal(value, line_no=-1):
    """Create an unsigned 32-bit integer literal leaf."""
    return AstNode(
        AstOperator.LEAF_LITERAL_UINT,
        ValueType.INT,
        line_no,
        integer_val=value & 0xFFFFFFFF,
    )


def new_var_id(name, line_no=-1):
    """Create an identifier leaf."""
    return AstNode(AstOperator.LEAF_VAR_ID, ValueType.VOID, line_no, name=name)


def new_type_node(value_type):
    """Create a type leaf."""
    return AstNode(AstOperator.LEAF_TYPE, value_type)


def create_contain_node(node_type, first_child=None, second_child=None, third_child=None):
    """Create an internal node with up to three children, skipping None."""
    node = AstNode(node_type)
    for child in (first_child, second_child, third_child):
        node.insert_son_node(child)
    return node


def create_func_def(type_node, name_node, block_node=None, params_node=None):
    """Create a function definition: type, name, formal params and body."""
    node = AstNode(AstOperator.FUNC_DEF, type_node.type, name_node.line_no, name=name_node.name)
    if params_node is None:
        params_node = AstNode(AstOperator.FUNC_FORMAL_PARAMS)
    if block_node is None:
        block_node = AstNode(AstOperator.BLOCK)
    for child in (type_node, name_node, params_node, block_node):
        node.insert_son_node(child)
    return node


def create_func_call(funcname_node, params_node=None):
    """Create a function call: callee name and real params."""
    node = AstNode(AstOperator.FUNC_CALL, name=funcname_node.name)
    if params_node is None:
        params_node = AstNode(AstOperator.FUNC_REAL_PARAMS)
    node.insert_son_node(funcname_node)
    node.insert_son_node(params_node)
    return node


def type_attr_to_type(type_attr):
    """Map a basic type keyword to a value type: "int" is INT, anything else VOID."""
    if isinstance(type_attr, ValueType):
        return type_attr
    return ValueType.INT if type_attr == "int" else ValueType.VOID


def create_type_node(type_attr):
    """Create a type leaf from a basic type keyword."""
    return new_type_node(type_attr_to_type(type_attr))


def create_var_decl_node(var_type, name, line_no=-1):
    """Create a variable declaration holding a type leaf and a name leaf."""
    value_type = type_attr_to_type(var_type)
    decl = create_contain_node(
        AstOperator.VAR_DECL, new_type_node(value_type), new_var_id(name, line_no)
    )
    decl.type = value_type
    return decl


def create_var_decl_stmt_node(first_child=None):
    """Create a declaration statement, optionally with its first declaration."""
    stmt = create_contain_node(AstOperator.DECL_STMT)
    if first_child is not None:
        stmt.type = first_child.type
        stmt.insert_son_node(first_child)
    return stmt


def add_var_decl_node(stmt_node, name, line_no=-1):
    """Append a declaration of the statement's type to stmt_node and return it."""
    stmt_node.insert_son_node(create_var_decl_node(stmt_node.type, name, line_no))
    return stmt_node