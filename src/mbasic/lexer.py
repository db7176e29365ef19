"""Tokenization for MBasic source text."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from .errors import LexError
from .values import BIN_DIGITS, HEX_DIGITS, Binary, Hex


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    literal: object = None
    line: int = 1
    pos: int = 0
    end: int = 0

    def __str__(self) -> str:
        return f"{self.kind} {self.text!r} {self.literal!r}"


KEYWORDS: Final[dict[str, str]] = {
    "do": "DO",
    "else": "ELSE",
    "false": "FALSE",
    "if": "IF",
    "let": "LET",
    "null": "NULL",
    "return": "RETURN",
    "true": "TRUE",
    "namespace": "NAMESPACE",
}

# Declaration type keywords: `int x = 1;` parses like `let x = 1;`.
TYPE_KEYWORDS: Final[dict[str, str]] = {
    "boolean": "BOOL",
    "hex": "HEX",
    "bin": "BIN",
    "char": "CHAR",
    "string": "STRING",
    "int": "INT",
    "float": "FLOAT",
}

_SINGLE_TOKENS: Final[dict[str, str]] = {
    "(": "LEFT_PAREN",
    ")": "RIGHT_PAREN",
    "{": "LEFT_BRACE",
    "}": "RIGHT_BRACE",
    ",": "COMMA",
    ".": "DOT",
    "-": "MINUS",
    "+": "PLUS",
    ";": "SEMICOLON",
    "*": "STAR",
    "%": "PERCENT",
    "/": "SLASH",
}

_DOUBLE_TOKENS: Final[dict[str, str]] = {
    "!=": "BANG_EQUAL",
    "==": "EQUAL_EQUAL",
    "<=": "LESS_EQUAL",
    ">=": "GREATER_EQUAL",
    "||": "LOGICAL_OR",
    "&&": "LOGICAL_AND",
}

_CHAR_ESCAPES: Final[dict[str, str]] = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "0": "\0",
    "\\": "\\",
    "'": "'",
    '"': '"',
}

_BARE_OPERATORS: Final[dict[str, str]] = {
    "!": "BANG",
    "=": "EQUAL",
    "<": "LESS",
    ">": "GREATER",
    "|": "BITWISE_OR",
    "&": "BITWISE_AND",
}


def _is_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


def _is_ident_start(ch: str) -> bool:
    return ch == "_" or ("a" <= ch <= "z") or ("A" <= ch <= "Z")


def _is_ident_continue(ch: str) -> bool:
    return _is_ident_start(ch) or _is_digit(ch)


def _scan_while(source: str, start: int, predicate) -> int:
    i = start
    while i < len(source) and predicate(source[i]):
        i += 1
    return i


@dataclass
class _Scanner:
    source: str
    errors: list[LexError] | None = None
    line: int = 1

    def _fail(self, message: str) -> None:
        err = LexError(message, self.line)
        if self.errors is None:
            raise err
        self.errors.append(err)

    def _scan_number(self, start: int) -> tuple[Token, int]:
        i = _scan_while(self.source, start, _is_digit)
        if i + 1 < len(self.source) and self.source[i] == "." and _is_digit(self.source[i + 1]):
            i = _scan_while(self.source, i + 1, _is_digit)
            text = self.source[start:i]
            return Token("FLOAT_LIT", text, float(text), self.line, start, i), i
        text = self.source[start:i]
        return Token("INT_LIT", text, int(text), self.line, start, i), i

    def _scan_radix(self, start: int) -> tuple[Token | None, int]:
        marker = self.source[start + 1]
        if marker == "x":
            kind, numeral, alphabet = "HEX_LIT", Hex, HEX_DIGITS
        else:
            kind, numeral, alphabet = "BIN_LIT", Binary, BIN_DIGITS
        i = _scan_while(self.source, start + 2, lambda ch: ch.upper() in alphabet)
        text = self.source[start:i]
        if i == start + 2:
            self._fail(f"Expected {'hexadecimal' if marker == 'x' else 'binary'} digits after '{text}'.")
            return None, i
        return Token(kind, text, numeral(text[2:]), self.line, start, i), i

    def _scan_string(self, start: int) -> tuple[Token | None, int]:
        first_line = self.line
        i = start + 1
        while i < len(self.source) and self.source[i] != '"':
            if self.source[i] == "\n":
                self.line += 1
            i += 1
        if i >= len(self.source):
            self._fail("String is not terminated.")
            return None, i
        text = self.source[start : i + 1]
        return Token("STRING_LIT", text, text[1:-1], first_line, start, i + 1), i + 1

    def _scan_char(self, start: int) -> tuple[Token | None, int]:
        source = self.source
        i = start + 1
        value: str | None = None
        if source.startswith("\\", i):
            value = _CHAR_ESCAPES.get(source[i + 1 : i + 2])
            i += 2
        elif i < len(source) and source[i] not in {"'", "\n"}:
            value = source[i]
            i += 1
        if i < len(source) and source[i] == "'" and value is not None:
            return Token("CHAR_LIT", source[start : i + 1], value, self.line, start, i + 1), i + 1
        close = source.find("'", i)
        if close < 0:
            self._fail("Character is not terminated.")
            return None, len(source)
        self._fail("Invalid syntax for a character.")
        return None, close + 1

    def scan(self) -> list[Token]:
        source = self.source
        tokens: list[Token] = []
        i = 0

        while i < len(source):
            ch = source[i]

            if ch in {" ", "\r", "\t", "$"}:
                i += 1
                continue

            if ch == "\n":
                self.line += 1
                i += 1
                continue

            if source.startswith("//", i):
                i = _scan_while(source, i, lambda c: c != "\n")
                continue

            pair = source[i : i + 2]
            if pair in _DOUBLE_TOKENS:
                tokens.append(Token(_DOUBLE_TOKENS[pair], pair, None, self.line, i, i + 2))
                i += 2
                continue

            if ch in _BARE_OPERATORS:
                tokens.append(Token(_BARE_OPERATORS[ch], ch, None, self.line, i, i + 1))
                i += 1
                continue

            if ch in _SINGLE_TOKENS:
                tokens.append(Token(_SINGLE_TOKENS[ch], ch, None, self.line, i, i + 1))
                i += 1
                continue

            token: Token | None
            if ch == "0" and i + 1 < len(source) and source[i + 1] in {"x", "b"}:
                token, i = self._scan_radix(i)
            elif _is_digit(ch):
                token, i = self._scan_number(i)
            elif ch == '"':
                token, i = self._scan_string(i)
            elif ch == "'":
                token, i = self._scan_char(i)
            elif _is_ident_start(ch):
                end = _scan_while(source, i, _is_ident_continue)
                text = source[i:end]
                kind = KEYWORDS.get(text) or TYPE_KEYWORDS.get(text) or "IDENTIFIER"
                token = Token(kind, text, None, self.line, i, end)
                i = end
            else:
                self._fail(f"Unexpected character {ch!r}.")
                token = None
                i += 1

            if token is not None:
                tokens.append(token)

        tokens.append(Token("EOF", "", None, self.line, len(source), len(source)))
        return tokens


def tokenize(source: str, errors: list[LexError] | None = None) -> list[Token]:
    """Scan ``source``; with an ``errors`` list, record problems and keep scanning."""
    return _Scanner(source, errors).scan()
