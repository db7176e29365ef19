"""AST nodes for MBasic expressions and statements."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .lexer import Token


@dataclass(frozen=True)
class Literal:
    value: object


@dataclass(frozen=True)
class Grouping:
    expression: "Expr"


@dataclass(frozen=True)
class Unary:
    op: Token
    right: "Expr"


@dataclass(frozen=True)
class Binary:
    left: "Expr"
    op: Token
    right: "Expr"


@dataclass(frozen=True)
class Logical:
    left: "Expr"
    op: Token
    right: "Expr"


@dataclass(frozen=True)
class Variable:
    name: Token


@dataclass(frozen=True)
class Assign:
    name: Token
    value: "Expr"


@dataclass(frozen=True)
class Call:
    callee: "Expr"
    paren: Token
    arguments: tuple["Expr", ...]


@dataclass(frozen=True)
class Expression:
    expression: "Expr"


@dataclass(frozen=True)
class Var:
    name: Token
    initializer: "Expr | None" = None
    declared_type: Token | None = None


@dataclass(frozen=True)
class Block:
    statements: tuple["Stmt", ...]


@dataclass(frozen=True)
class If:
    condition: "Expr"
    then_branch: "Stmt"
    else_branch: "Stmt | None" = None


@dataclass(frozen=True)
class Return:
    keyword: Token
    value: "Expr | None" = None


@dataclass(frozen=True)
class Function:
    name: Token
    params: tuple[Token, ...]
    body: tuple["Stmt", ...]


@dataclass(frozen=True)
class Namespace:
    name: Token
    body: tuple["Stmt", ...]


Expr = Union[Literal, Grouping, Unary, Binary, Logical, Variable, Assign, Call]
Stmt = Union[Expression, Var, Block, If, Return, Function, Namespace]
