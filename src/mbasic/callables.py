"""Callable protocol shared by native host functions and user closures."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, ClassVar, Final, Sequence

from . import radix
from .ast import Function
from .environment import Environment
from .errors import MBasicTypeError, RadixError
from .values import Binary, Hex, RadixNumeral, ValueKind, kind_of, parse_tagged, stringify

if TYPE_CHECKING:
    from .evaluator import Interpreter

logger = logging.getLogger(__name__)

NativeBody = Callable[["Interpreter", Sequence[object]], object]


class MBasicCallable:
    """Anything a Call expression may invoke."""

    _mbasic_callable: ClassVar[bool] = True

    @property
    def arity(self) -> int:
        raise NotImplementedError

    def call(self, interpreter: "Interpreter", arguments: Sequence[object]) -> object:
        raise NotImplementedError


@dataclass(frozen=True, eq=False)
class NativeFunction(MBasicCallable):
    name: str
    native_arity: int
    body: NativeBody

    @property
    def arity(self) -> int:
        return self.native_arity

    def call(self, interpreter: "Interpreter", arguments: Sequence[object]) -> object:
        return self.body(interpreter, arguments)

    def __str__(self) -> str:
        return "<native fn>"


@dataclass(frozen=True, eq=False)
class UserFunction(MBasicCallable):
    declaration: Function
    closure: Environment

    @property
    def arity(self) -> int:
        return len(self.declaration.params)

    def call(self, interpreter: "Interpreter", arguments: Sequence[object]) -> object:
        # Parameters and top-level body statements share one scope.
        env = Environment(self.closure)
        for param, argument in zip(self.declaration.params, arguments):
            env.define(param, argument)
        completion = interpreter.execute_block(self.declaration.body, env)
        return completion.value

    def __str__(self) -> str:
        return f"<fn {self.declaration.name.text}>"


def _as_numeral(value: object) -> RadixNumeral | None:
    if isinstance(value, RadixNumeral):
        return value
    if isinstance(value, str):
        return parse_tagged(value)
    return None


def _coerce_radix(value: object, base: int) -> RadixNumeral:
    numeral = _as_numeral(value)
    if numeral is not None:
        return radix.convert(numeral, base)
    if kind_of(value) is ValueKind.INT:
        if value < 0:
            raise RadixError(f"Cannot encode negative value {value} in base {base}.")
        return radix.from_decimal(value, base)
    raise MBasicTypeError("Expected bin, int, or hex.")


def _native_clock(_interpreter, _arguments) -> float:
    return time.time()


def _native_print(interpreter, arguments) -> None:
    interpreter.stdout.write(stringify(arguments[0]) + "\n")
    return None


def _native_str(_interpreter, arguments) -> str:
    return stringify(arguments[0])


def _native_read(interpreter, _arguments) -> str | None:
    line = interpreter.stdin.readline()
    if line == "":
        return None
    return line.rstrip("\r\n")


def _native_binary(_interpreter, arguments) -> Binary:
    return _coerce_radix(arguments[0], 2)


def _native_hexadecimal(_interpreter, arguments) -> Hex:
    return _coerce_radix(arguments[0], 16)


def _native_decimal(_interpreter, arguments) -> object:
    value = arguments[0]
    kind = kind_of(value)
    if kind in {ValueKind.INT, ValueKind.FLOAT}:
        return value
    numeral = _as_numeral(value)
    if numeral is not None:
        return radix.to_decimal(numeral)
    if kind is ValueKind.STRING:
        text = value.strip()
        if "." in text:
            # Already a decimal numeral; passed through untouched.
            return value
        try:
            return int(text)
        except ValueError:
            pass
    raise MBasicTypeError(f"Expected int, got {stringify(value)!r}.")


NATIVE_FUNCTIONS: Final[dict[str, tuple[int, NativeBody]]] = {
    "clock": (0, _native_clock),
    "print": (1, _native_print),
    "str": (1, _native_str),
    "read": (0, _native_read),
    "binary": (1, _native_binary),
    "hexadecimal": (1, _native_hexadecimal),
    "decimal": (1, _native_decimal),
}


def install_natives(env: Environment) -> None:
    for name, (arity, body) in NATIVE_FUNCTIONS.items():
        env.define(name, NativeFunction(name, arity, body))
    logger.debug("registered %d native functions", len(NATIVE_FUNCTIONS))
