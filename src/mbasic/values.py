"""Runtime value model and validators for the MBasic evaluator."""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Final

from .errors import RadixError

HEX_DIGITS: Final[str] = "0123456789ABCDEF"
BIN_DIGITS: Final[str] = "01"


@dataclass(frozen=True, eq=False)
class RadixNumeral:
    """Digits of a tagged numeral, most significant first, without the prefix."""

    digits: str
    base: ClassVar[int]
    prefix: ClassVar[str]
    alphabet: ClassVar[str]

    def __post_init__(self) -> None:
        digits = self.digits.upper()
        if not digits:
            raise RadixError(f"Expected {self.kind_name} digits after '{self.prefix}'.")
        for ch in digits:
            if ch not in self.alphabet:
                raise RadixError(f"Invalid {self.kind_name} digit {ch!r} in '{self.prefix}{self.digits}'.")
        object.__setattr__(self, "digits", digits)

    @property
    def kind_name(self) -> str:
        return "hexadecimal" if self.base == 16 else "binary"

    @property
    def magnitude(self) -> int:
        return int(self.digits, self.base)

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self.magnitude == other.magnitude

    def __hash__(self) -> int:
        return hash((self.prefix, self.magnitude))

    def __str__(self) -> str:
        return f"{self.prefix}{self.digits}"


@dataclass(frozen=True, eq=False)
class Hex(RadixNumeral):
    base: ClassVar[int] = 16
    prefix: ClassVar[str] = "0x"
    alphabet: ClassVar[str] = HEX_DIGITS


@dataclass(frozen=True, eq=False)
class Binary(RadixNumeral):
    base: ClassVar[int] = 2
    prefix: ClassVar[str] = "0b"
    alphabet: ClassVar[str] = BIN_DIGITS


class ValueKind(str, Enum):
    NULL = "null"
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    STRING = "string"
    HEX = "hex"
    BINARY = "binary"
    CALLABLE = "callable"


def is_callable_value(value: object) -> bool:
    return bool(getattr(value, "_mbasic_callable", False))


def kind_of(value: object) -> ValueKind:
    if value is None:
        return ValueKind.NULL
    # bool first: it is an int subclass.
    if isinstance(value, bool):
        return ValueKind.BOOL
    if isinstance(value, int):
        return ValueKind.INT
    if isinstance(value, float):
        return ValueKind.FLOAT
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, Hex):
        return ValueKind.HEX
    if isinstance(value, Binary):
        return ValueKind.BINARY
    if is_callable_value(value):
        return ValueKind.CALLABLE
    raise TypeError(f"unsupported runtime type {type(value).__name__}")


def validate_value(value: object, *, where: str = "value") -> None:
    try:
        kind_of(value)
    except TypeError as exc:
        raise TypeError(f"{where} has unsupported runtime type {type(value).__name__}") from exc


def parse_tagged(text: str) -> RadixNumeral | None:
    """Recognize a well-formed ``0x``/``0b`` string; anything else stays a plain string."""
    if len(text) <= 2:
        return None
    prefix, body = text[:2], text[2:].upper()
    if prefix == Hex.prefix and all(ch in HEX_DIGITS for ch in body):
        return Hex(body)
    if prefix == Binary.prefix and all(ch in BIN_DIGITS for ch in body):
        return Binary(body)
    return None


def is_truthy(value: object) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    return True


def values_equal(left: object, right: object) -> bool:
    if left is None or right is None:
        return left is None and right is None
    if kind_of(left) is not kind_of(right):
        return False
    return left == right


def _float_text(value: float) -> str:
    """Decimal notation for 1e-3 <= |x| < 1e7, ``d.dddEn`` scientific notation outside it."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    magnitude = abs(value)
    if magnitude == 0 or 1e-3 <= magnitude < 1e7:
        return repr(value)
    sign, digits, exponent = Decimal(repr(value)).as_tuple()
    text = "".join(str(d) for d in digits).rstrip("0") or "0"
    scale = len(digits) - 1 + exponent
    return f"{'-' if sign else ''}{text[0]}.{text[1:] or '0'}E{scale}"


def stringify(value: object) -> str:
    if value is None:
        return "nil"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        text = _float_text(value)
        if text.endswith(".0"):
            text = text[:-2]
        return text
    return str(value)
