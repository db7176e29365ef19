"""Structured error types for compile/runtime separation."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from .lexer import Token


class MBasicError(Exception):
    """Base class for structured mbasic errors."""


class StaticError(SyntaxError):
    """A single compile-time diagnostic with its source line."""

    stage = "static"

    def __init__(self, message: str, line: int, where: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.line = line
        self.where = where

    @classmethod
    def at_token(cls, token: "Token", message: str) -> "StaticError":
        if token.kind == "EOF":
            return cls(message, token.line, " at end")
        return cls(message, token.line, f" at '{token.text}'")

    def __str__(self) -> str:
        return f"[line {self.line}] Error{self.where}: {self.message}"


class LexError(StaticError):
    stage = "lex"


class ParseError(StaticError):
    stage = "parse"


class ResolveError(StaticError):
    stage = "resolve"


class MBasicCompileError(MBasicError):
    """Every static error found in a program; evaluation never starts."""

    def __init__(self, errors: Iterable[StaticError]) -> None:
        self.errors: tuple[StaticError, ...] = tuple(errors)
        super().__init__(str(self))

    def __str__(self) -> str:
        return "\n".join(str(err) for err in self.errors)


class MBasicRuntimeError(MBasicError):
    """Failure raised while evaluating a successfully compiled program."""

    def __init__(self, message: str, token: "Token | None" = None) -> None:
        super().__init__(message)
        self.message = message
        self.token = token

    @property
    def line(self) -> int | None:
        return None if self.token is None else self.token.line

    def with_token(self, token: "Token") -> "MBasicRuntimeError":
        """Attach a location when the raising site had none (native bodies)."""
        if self.token is None:
            self.token = token
        return self

    def __str__(self) -> str:
        return self.message


class MBasicTypeError(MBasicRuntimeError):
    """Operand or argument kind is not accepted by an operator or native."""


class UndefinedVariableError(MBasicRuntimeError):
    """Name lookup or assignment found no binding."""


class ArityError(MBasicRuntimeError):
    """Call argument count differs from the callee's arity."""


class RadixError(MBasicRuntimeError):
    """Malformed or mismatched hexadecimal/binary numeral."""


def format_runtime_error(err: MBasicRuntimeError) -> str:
    if err.line is None:
        return err.message
    return f"{err.message}\n[line {err.line}]"
