"""Static pass that annotates local variable uses with their scope distance."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

from .ast import Assign, Binary, Block, Call, Expr, Expression, Function, Grouping, If, Literal, Logical, Namespace, Return, Stmt, Unary, Var, Variable
from .errors import ResolveError
from .lexer import Token

logger = logging.getLogger(__name__)


class ResolutionTarget(Protocol):
    def resolve(self, expr: Expr, depth: int) -> None:
        ...


@dataclass
class Resolver:
    """Walks a program once; names declared at top level stay unresolved (globals)."""

    target: ResolutionTarget
    scopes: list[set[str]] = field(default_factory=list)
    errors: list[ResolveError] = field(default_factory=list)
    function_depth: int = 0
    registered: int = 0

    def resolve(self, statements: list[Stmt] | tuple[Stmt, ...]) -> list[ResolveError]:
        for stmt in statements:
            self._resolve_stmt(stmt)
        logger.debug("resolved %d local references", self.registered)
        return self.errors

    def _declare(self, name: Token) -> None:
        if self.scopes:
            self.scopes[-1].add(name.text)

    def _resolve_local(self, expr: Variable | Assign) -> None:
        for depth, scope in enumerate(reversed(self.scopes)):
            if expr.name.text in scope:
                self.target.resolve(expr, depth)
                self.registered += 1
                return

    def _resolve_body(self, statements: tuple[Stmt, ...], params: tuple[Token, ...] = ()) -> None:
        self.scopes.append({p.text for p in params})
        try:
            for stmt in statements:
                self._resolve_stmt(stmt)
        finally:
            self.scopes.pop()

    def _resolve_stmt(self, stmt: Stmt) -> None:
        if isinstance(stmt, Expression):
            self._resolve_expr(stmt.expression)
        elif isinstance(stmt, Var):
            if stmt.initializer is not None:
                self._resolve_expr(stmt.initializer)
            self._declare(stmt.name)
        elif isinstance(stmt, Block):
            self._resolve_body(stmt.statements)
        elif isinstance(stmt, If):
            self._resolve_expr(stmt.condition)
            self._resolve_stmt(stmt.then_branch)
            if stmt.else_branch is not None:
                self._resolve_stmt(stmt.else_branch)
        elif isinstance(stmt, Return):
            if self.function_depth == 0:
                self.errors.append(ResolveError.at_token(stmt.keyword, "Can't return from top-level code."))
            if stmt.value is not None:
                self._resolve_expr(stmt.value)
        elif isinstance(stmt, Function):
            # Declared before the body so the function can call itself.
            self._declare(stmt.name)
            self.function_depth += 1
            try:
                self._resolve_body(stmt.body, stmt.params)
            finally:
                self.function_depth -= 1
        elif isinstance(stmt, Namespace):
            # Namespace bodies never execute.
            return
        else:
            raise TypeError(f"Unsupported statement node: {type(stmt)!r}")

    def _resolve_expr(self, expr: Expr) -> None:
        if isinstance(expr, Literal):
            return
        if isinstance(expr, Grouping):
            self._resolve_expr(expr.expression)
        elif isinstance(expr, Unary):
            self._resolve_expr(expr.right)
        elif isinstance(expr, (Binary, Logical)):
            self._resolve_expr(expr.left)
            self._resolve_expr(expr.right)
        elif isinstance(expr, Variable):
            self._resolve_local(expr)
        elif isinstance(expr, Assign):
            self._resolve_expr(expr.value)
            self._resolve_local(expr)
        elif isinstance(expr, Call):
            self._resolve_expr(expr.callee)
            for argument in expr.arguments:
                self._resolve_expr(argument)
        else:
            raise TypeError(f"Unsupported expression node: {type(expr)!r}")
