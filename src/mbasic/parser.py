"""Recursive-descent parser for MBasic."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final

from .ast import Assign, Binary, Block, Call, Expr, Expression, Function, Grouping, If, Literal, Logical, Namespace, Return, Stmt, Unary, Var, Variable
from .errors import MBasicCompileError, ParseError, StaticError
from .lexer import TYPE_KEYWORDS, Token, tokenize

MAX_ARGUMENTS: Final[int] = 255

_SYNC_KINDS: Final[frozenset[str]] = frozenset({"DO", "LET", "IF", "RETURN", "NAMESPACE"})
_TYPE_KINDS: Final[frozenset[str]] = frozenset(TYPE_KEYWORDS.values())
_LITERAL_KINDS: Final[frozenset[str]] = frozenset({"INT_LIT", "FLOAT_LIT", "HEX_LIT", "BIN_LIT", "STRING_LIT", "CHAR_LIT"})

# Binary precedence levels, loosest first; each level is left-associative.
_BINARY_LEVELS: Final[tuple[frozenset[str], ...]] = (
    frozenset({"BANG_EQUAL", "EQUAL_EQUAL"}),
    frozenset({"GREATER", "GREATER_EQUAL", "LESS", "LESS_EQUAL"}),
    frozenset({"BITWISE_OR", "BITWISE_AND"}),
    frozenset({"MINUS", "PLUS"}),
    frozenset({"SLASH", "STAR", "PERCENT"}),
)


class _Unwind(Exception):
    """Abandon the current declaration after recording a ParseError."""


@dataclass
class _Parser:
    tokens: list[Token]
    index: int = 0
    errors: list[StaticError] = field(default_factory=list)

    def parse_program(self) -> list[Stmt]:
        statements: list[Stmt] = []
        while not self._at_end():
            stmt = self._declaration()
            if stmt is not None:
                statements.append(stmt)
        return statements

    def _peek(self) -> Token:
        return self.tokens[self.index]

    def _previous(self) -> Token:
        return self.tokens[self.index - 1]

    def _at_end(self) -> bool:
        return self._peek().kind == "EOF"

    def _check(self, kind: str) -> bool:
        return not self._at_end() and self._peek().kind == kind

    def _advance(self) -> Token:
        if not self._at_end():
            self.index += 1
        return self._previous()

    def _match(self, *kinds: str) -> bool:
        for kind in kinds:
            if self._check(kind):
                self._advance()
                return True
        return False

    def _expect(self, kind: str, message: str) -> Token:
        if self._check(kind):
            return self._advance()
        raise self._error(self._peek(), message)

    def _error(self, token: Token, message: str) -> _Unwind:
        self.errors.append(ParseError.at_token(token, message))
        return _Unwind()

    def _synchronize(self) -> None:
        self._advance()
        while not self._at_end():
            if self._previous().kind == "SEMICOLON":
                return
            if self._peek().kind in _SYNC_KINDS:
                return
            self._advance()

    def _declaration(self) -> Stmt | None:
        try:
            if self._match("LET"):
                return self._var_declaration()
            if self._match(*_TYPE_KINDS):
                return self._var_declaration(declared_type=self._previous())
            if self._match("DO"):
                return self._function()
            if self._match("NAMESPACE"):
                return self._namespace()
            return self._statement()
        except _Unwind:
            self._synchronize()
            return None

    def _var_declaration(self, declared_type: Token | None = None) -> Var:
        name = self._expect("IDENTIFIER", "Expect variable name.")
        initializer = None
        if self._match("EQUAL"):
            initializer = self._expression()
        self._expect("SEMICOLON", "Expect ';' after variable declaration.")
        return Var(name=name, initializer=initializer, declared_type=declared_type)

    def _function(self) -> Function:
        name = self._expect("IDENTIFIER", "Expect function name.")
        self._expect("LEFT_PAREN", "Expect '(' after function name.")
        params: list[Token] = []
        if not self._check("RIGHT_PAREN"):
            while True:
                if len(params) >= MAX_ARGUMENTS:
                    self._error(self._peek(), f"Can't have more than {MAX_ARGUMENTS} parameters.")
                params.append(self._expect("IDENTIFIER", "Expect parameter name."))
                if not self._match("COMMA"):
                    break
        self._expect("RIGHT_PAREN", "Expect ')' after parameters.")
        self._expect("LEFT_BRACE", "Expect '{' before function body.")
        return Function(name=name, params=tuple(params), body=self._block())

    def _namespace(self) -> Namespace:
        name = self._expect("IDENTIFIER", "Expect namespace name.")
        self._expect("LEFT_BRACE", "Expect '{' before namespace body.")
        return Namespace(name=name, body=self._block(closing="Expect '}' after namespace body."))

    def _block(self, closing: str = "Expect '}' after block.") -> tuple[Stmt, ...]:
        statements: list[Stmt] = []
        while not self._check("RIGHT_BRACE") and not self._at_end():
            stmt = self._declaration()
            if stmt is not None:
                statements.append(stmt)
        self._expect("RIGHT_BRACE", closing)
        return tuple(statements)

    def _statement(self) -> Stmt:
        if self._match("IF"):
            return self._if_statement()
        if self._match("RETURN"):
            return self._return_statement()
        if self._match("LEFT_BRACE"):
            return Block(statements=self._block())
        expr = self._expression()
        self._expect("SEMICOLON", "Expect ';' after expression.")
        return Expression(expression=expr)

    def _if_statement(self) -> If:
        self._expect("LEFT_PAREN", "Expect '(' after 'if'.")
        condition = self._expression()
        self._expect("RIGHT_PAREN", "Expect ')' after if condition.")
        then_branch = self._statement()
        else_branch = self._statement() if self._match("ELSE") else None
        return If(condition=condition, then_branch=then_branch, else_branch=else_branch)

    def _return_statement(self) -> Return:
        keyword = self._previous()
        value = None if self._check("SEMICOLON") else self._expression()
        self._expect("SEMICOLON", "Expect ';' after return value.")
        return Return(keyword=keyword, value=value)

    def _expression(self) -> Expr:
        return self._assignment()

    def _assignment(self) -> Expr:
        expr = self._or()
        if self._match("EQUAL"):
            equals = self._previous()
            value = self._assignment()
            if isinstance(expr, Variable):
                return Assign(name=expr.name, value=value)
            # Reported without unwinding: the parser is still in a sane state.
            self._error(equals, "Invalid assignment target.")
        return expr

    def _or(self) -> Expr:
        expr = self._and()
        while self._match("LOGICAL_OR"):
            op = self._previous()
            expr = Logical(left=expr, op=op, right=self._and())
        return expr

    def _and(self) -> Expr:
        expr = self._binary(0)
        while self._match("LOGICAL_AND"):
            op = self._previous()
            expr = Logical(left=expr, op=op, right=self._binary(0))
        return expr

    def _binary(self, level: int) -> Expr:
        if level == len(_BINARY_LEVELS):
            return self._unary()
        expr = self._binary(level + 1)
        while self._match(*_BINARY_LEVELS[level]):
            op = self._previous()
            expr = Binary(left=expr, op=op, right=self._binary(level + 1))
        return expr

    def _unary(self) -> Expr:
        if self._match("BANG", "MINUS"):
            op = self._previous()
            return Unary(op=op, right=self._unary())
        return self._call()

    def _call(self) -> Expr:
        expr = self._primary()
        while self._match("LEFT_PAREN"):
            expr = self._finish_call(expr)
        return expr

    def _finish_call(self, callee: Expr) -> Call:
        arguments: list[Expr] = []
        if not self._check("RIGHT_PAREN"):
            while True:
                if len(arguments) >= MAX_ARGUMENTS:
                    self._error(self._peek(), f"Can't have more than {MAX_ARGUMENTS} arguments.")
                arguments.append(self._expression())
                if not self._match("COMMA"):
                    break
        paren = self._expect("RIGHT_PAREN", "Expect ')' after arguments.")
        return Call(callee=callee, paren=paren, arguments=tuple(arguments))

    def _primary(self) -> Expr:
        if self._match("FALSE"):
            return Literal(False)
        if self._match("TRUE"):
            return Literal(True)
        if self._match("NULL"):
            return Literal(None)
        if self._match(*_LITERAL_KINDS):
            return Literal(self._previous().literal)
        if self._match("IDENTIFIER"):
            return Variable(name=self._previous())
        if self._match("LEFT_PAREN"):
            expr = self._expression()
            self._expect("RIGHT_PAREN", "Expect ')' after expression.")
            return Grouping(expression=expr)
        raise self._error(self._peek(), "Expect expression.")


def parse_tokens(tokens: list[Token]) -> tuple[list[Stmt], list[StaticError]]:
    """Parse a token list, returning the statements and every error recorded on the way."""
    parser = _Parser(tokens)
    statements = parser.parse_program()
    return statements, parser.errors


def parse_program(source: str) -> list[Stmt]:
    """Scan and parse ``source``; raise MBasicCompileError if any static error occurred."""
    lex_errors: list[StaticError] = []
    tokens = tokenize(source, lex_errors)
    statements, parse_errors = parse_tokens(tokens)
    errors = [*lex_errors, *parse_errors]
    if errors:
        raise MBasicCompileError(sorted(errors, key=lambda err: err.line))
    return statements
