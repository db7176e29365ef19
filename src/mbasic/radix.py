"""Arithmetic over hexadecimal and binary tagged numerals.

Every operation converts through a decimal magnitude: digits are read most
significant first and weighted by ``base ** k`` for the k-th digit from the
end, and results are re-encoded by repeated ``n mod base``. Results always come
back in the operands' own base.
"""

from __future__ import annotations

from typing import Final

from .errors import RadixError
from .values import BIN_DIGITS, HEX_DIGITS, Binary, Hex, RadixNumeral, parse_tagged

_NUMERAL_TYPES: Final[dict[int, type[RadixNumeral]]] = {16: Hex, 2: Binary}
_ALPHABETS: Final[dict[int, str]] = {16: HEX_DIGITS, 2: BIN_DIGITS}


def _as_numeral(value: object, *, where: str) -> RadixNumeral:
    if isinstance(value, RadixNumeral):
        return value
    if isinstance(value, str):
        tagged = parse_tagged(value)
        if tagged is not None:
            return tagged
        raise RadixError(f"Expected hexadecimal or binary value in {where}, got {value!r}.")
    raise RadixError(f"Expected hexadecimal or binary value in {where}.")


def _common_base(numerals: tuple[RadixNumeral, ...], *, where: str) -> int:
    bases = {n.base for n in numerals}
    if len(bases) != 1:
        raise RadixError(f"Operands of {where} must share one base.")
    return bases.pop()


def to_decimal(value: RadixNumeral | str) -> int:
    numeral = _as_numeral(value, where="conversion")
    alphabet = _ALPHABETS[numeral.base]
    total = 0
    for k, ch in enumerate(reversed(numeral.digits)):
        total += alphabet.index(ch) * numeral.base**k
    return total


def from_decimal(n: int, base: int) -> RadixNumeral:
    if base not in _NUMERAL_TYPES:
        raise RadixError(f"Unsupported base {base}.")
    if n < 0:
        raise RadixError("Cannot encode a negative value as a tagged numeral.")
    alphabet = _ALPHABETS[base]
    if n == 0:
        return _NUMERAL_TYPES[base](alphabet[0])
    digits: list[str] = []
    while n:
        n, rem = divmod(n, base)
        digits.append(alphabet[rem])
    return _NUMERAL_TYPES[base]("".join(reversed(digits)))


def convert(value: RadixNumeral | str, base: int) -> RadixNumeral:
    numeral = _as_numeral(value, where="conversion")
    if numeral.base == base:
        return numeral
    return from_decimal(to_decimal(numeral), base)


def add(*values: RadixNumeral | str) -> RadixNumeral:
    if not values:
        raise RadixError("add() needs at least one operand.")
    numerals = tuple(_as_numeral(v, where="add") for v in values)
    base = _common_base(numerals, where="add")
    return from_decimal(sum(to_decimal(n) for n in numerals), base)


def subtract(left: RadixNumeral | str, right: RadixNumeral | str) -> RadixNumeral:
    """Difference of two numerals; the sign of a negative result is dropped."""
    numerals = (_as_numeral(left, where="subtract"), _as_numeral(right, where="subtract"))
    base = _common_base(numerals, where="subtract")
    return from_decimal(abs(to_decimal(numerals[0]) - to_decimal(numerals[1])), base)


def _bit_patterns(left: RadixNumeral, right: RadixNumeral) -> tuple[str, str]:
    lbits = convert(left, 2).digits
    rbits = convert(right, 2).digits
    width = max(len(lbits), len(rbits))
    return lbits.zfill(width), rbits.zfill(width)


def _bitwise(left, right, *, where: str, set_bit) -> RadixNumeral:
    numerals = (_as_numeral(left, where=where), _as_numeral(right, where=where))
    base = _common_base(numerals, where=where)
    lbits, rbits = _bit_patterns(*numerals)
    bits = "".join("1" if set_bit(a, b) else "0" for a, b in zip(lbits, rbits))
    return convert(Binary(bits), base)


def bit_and(left: RadixNumeral | str, right: RadixNumeral | str) -> RadixNumeral:
    return _bitwise(left, right, where="&", set_bit=lambda a, b: a == "1" and b == "1")


def bit_or(left: RadixNumeral | str, right: RadixNumeral | str) -> RadixNumeral:
    return _bitwise(left, right, where="|", set_bit=lambda a, b: not (a == "0" and b == "0"))
