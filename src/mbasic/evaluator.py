"""Tree-walking evaluator for MBasic programs."""

from __future__ import annotations

import logging
import math
import operator
import os
import sys
import threading
import weakref
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Callable, Final, TextIO

from . import radix
from .ast import Assign, Binary, Block, Call, Expr, Expression, Function, Grouping, If, Literal, Logical, Namespace, Return, Stmt, Unary, Var, Variable
from .callables import MBasicCallable, UserFunction, install_natives
from .environment import Environment
from .errors import ArityError, MBasicCompileError, MBasicRuntimeError, MBasicTypeError, RadixError
from .lexer import Token
from .parser import parse_program
from .resolver import Resolver
from .values import RadixNumeral, ValueKind, is_truthy, kind_of, values_equal

logger = logging.getLogger(__name__)

_PROGRAM_CACHE_MAX: Final[int] = max(1, int(os.environ.get("MBASIC_PROGRAM_CACHE_MAX", "256")))
_RECURSION_LIMIT: Final[int] = max(1000, int(os.environ.get("MBASIC_RECURSION_LIMIT", "50000")))
_STACK_BYTES: Final[int] = max(1 << 20, int(os.environ.get("MBASIC_STACK_BYTES", str(256 << 20))))


def _call_with_deep_stack(fn: Callable[[], object]) -> object:
    """Run ``fn`` on a worker thread sized for deep MBasic recursion and re-raise its error here.

    MBasic has no loop statement, so recursion depth is the iteration budget.
    """
    outcome: dict[str, object] = {}

    def target() -> None:
        try:
            outcome["value"] = fn()
        except BaseException as exc:
            outcome["error"] = exc

    previous_limit = sys.getrecursionlimit()
    previous_stack = threading.stack_size(_STACK_BYTES)
    try:
        sys.setrecursionlimit(max(previous_limit, _RECURSION_LIMIT))
        worker = threading.Thread(target=target, name="mbasic-run", daemon=True)
        worker.start()
        worker.join()
    finally:
        threading.stack_size(previous_stack)
        sys.setrecursionlimit(previous_limit)
    if "error" in outcome:
        raise outcome["error"]
    return outcome.get("value")


@lru_cache(maxsize=_PROGRAM_CACHE_MAX)
def _parse_program_cached(source: str) -> tuple[Stmt, ...]:
    return tuple(parse_program(source))


@dataclass(frozen=True)
class Completion:
    """How a statement finished: fell through, or hit ``return`` carrying a value."""

    returned: bool = False
    value: object = None


NORMAL: Final[Completion] = Completion()


class OperandPair(str, Enum):
    FLOAT_FLOAT = "float×float"
    INT_INT = "int×int"
    HEX_HEX = "hex×hex"
    BIN_BIN = "bin×bin"
    INT_FLOAT = "int×float"
    FLOAT_INT = "float×int"


_PAIRS: Final[dict[tuple[ValueKind, ValueKind], OperandPair]] = {
    (ValueKind.FLOAT, ValueKind.FLOAT): OperandPair.FLOAT_FLOAT,
    (ValueKind.INT, ValueKind.INT): OperandPair.INT_INT,
    (ValueKind.HEX, ValueKind.HEX): OperandPair.HEX_HEX,
    (ValueKind.BINARY, ValueKind.BINARY): OperandPair.BIN_BIN,
    (ValueKind.INT, ValueKind.FLOAT): OperandPair.INT_FLOAT,
    (ValueKind.FLOAT, ValueKind.INT): OperandPair.FLOAT_INT,
}
_RADIX_PAIRS: Final[frozenset[OperandPair]] = frozenset({OperandPair.HEX_HEX, OperandPair.BIN_BIN})

_COMPARISONS: Final[dict[str, Callable[[object, object], bool]]] = {
    "GREATER": operator.gt,
    "GREATER_EQUAL": operator.ge,
    "LESS": operator.lt,
    "LESS_EQUAL": operator.le,
}


def classify_operands(op: Token, left: object, right: object) -> OperandPair:
    pair = _PAIRS.get((kind_of(left), kind_of(right)))
    if pair is None:
        raise MBasicTypeError("Operands must be numbers.", op)
    return pair


def _native_number(pair: OperandPair, value: object) -> object:
    if pair in _RADIX_PAIRS:
        return radix.to_decimal(value)
    return value


def _truncated_mod(left: int, right: int) -> int:
    # Remainder takes the sign of the dividend.
    rem = abs(left) % abs(right)
    return -rem if left < 0 else rem


def _float_divide(left: float, right: float) -> float:
    """IEEE 754 division: a zero divisor gives a signed infinity, or NaN for 0/0."""
    if right != 0:
        return left / right
    if left == 0 or math.isnan(left):
        return math.nan
    return math.copysign(math.inf, math.copysign(1.0, left) * math.copysign(1.0, right))


def _radix_call(op: Token, fn, left: RadixNumeral, right: RadixNumeral) -> RadixNumeral:
    try:
        return fn(left, right)
    except RadixError as exc:
        raise exc.with_token(op)


def _eval_binary(op: Token, left: object, right: object) -> object:
    kind = op.kind

    if kind == "EQUAL_EQUAL":
        return values_equal(left, right)
    if kind == "BANG_EQUAL":
        return not values_equal(left, right)

    if kind == "PLUS":
        left_kind, right_kind = kind_of(left), kind_of(right)
        if left_kind is ValueKind.STRING and right_kind is ValueKind.STRING:
            return left + right
        if (left_kind, right_kind) in {
            (ValueKind.FLOAT, ValueKind.FLOAT),
            (ValueKind.INT, ValueKind.INT),
        }:
            return left + right
        if left_kind is right_kind and left_kind in {ValueKind.HEX, ValueKind.BINARY}:
            return _radix_call(op, radix.add, left, right)
        raise MBasicTypeError("Operands must be two numbers or two strings.", op)

    pair = classify_operands(op, left, right)

    if kind in _COMPARISONS:
        return _COMPARISONS[kind](_native_number(pair, left), _native_number(pair, right))

    if kind == "MINUS":
        if pair in _RADIX_PAIRS:
            return _radix_call(op, radix.subtract, left, right)
        return left - right

    if kind in {"STAR", "SLASH"}:
        if pair in _RADIX_PAIRS:
            raise MBasicTypeError("Operands must be decimal numbers.", op)
        if kind == "STAR":
            return float(left) * float(right)
        return _float_divide(float(left), float(right))

    if kind == "PERCENT":
        if pair is not OperandPair.INT_INT:
            raise MBasicTypeError("Operands must be integers.", op)
        if right == 0:
            raise MBasicTypeError("Modulo by zero.", op)
        return _truncated_mod(left, right)

    if kind == "BITWISE_OR":
        if pair not in _RADIX_PAIRS:
            raise MBasicTypeError("Operands must be hexadecimal or binary numbers.", op)
        return _radix_call(op, radix.bit_or, left, right)

    if kind == "BITWISE_AND":
        if pair not in _RADIX_PAIRS:
            raise MBasicTypeError("Operands must be hexadecimal or binary numbers.", op)
        return _radix_call(op, radix.bit_and, left, right)

    raise MBasicRuntimeError(f"Unknown binary operator '{op.text}'.", op)


def _eval_unary(op: Token, right: object) -> object:
    if op.kind == "BANG":
        return not is_truthy(right)
    if op.kind == "MINUS":
        if kind_of(right) not in {ValueKind.INT, ValueKind.FLOAT}:
            raise MBasicTypeError("Operand must be a number.", op)
        return -right
    raise MBasicRuntimeError(f"Unknown unary operator '{op.text}'.", op)


class Interpreter:
    """Executes resolved statements; the active scope is always passed explicitly."""

    def __init__(self, stdout: TextIO | None = None, stdin: TextIO | None = None) -> None:
        self.stdout = stdout if stdout is not None else sys.stdout
        self.stdin = stdin if stdin is not None else sys.stdin
        self.globals = Environment()
        install_natives(self.globals)
        # id(node) -> (weak ref to node, depth); an entry leaves with its node.
        self._locals: dict[int, tuple[weakref.ref, int]] = {}

    def _forget(self, key: int) -> Callable[[weakref.ref], None]:
        locals_ = self._locals

        def drop(ref: weakref.ref) -> None:
            entry = locals_.get(key)
            if entry is not None and entry[0] is ref:
                del locals_[key]

        return drop

    def resolve(self, expr: Expr, depth: int) -> None:
        key = id(expr)
        entry = self._locals.get(key)
        ref = entry[0] if entry is not None and entry[0]() is expr else weakref.ref(expr, self._forget(key))
        self._locals[key] = (ref, depth)

    def distance_of(self, expr: Expr) -> int | None:
        entry = self._locals.get(id(expr))
        if entry is None or entry[0]() is not expr:
            return None
        return entry[1]

    @property
    def resolution_count(self) -> int:
        return len(self._locals)

    def interpret(self, statements: list[Stmt] | tuple[Stmt, ...]) -> MBasicRuntimeError | None:
        """Run top-level statements; stop at the first runtime error and hand it back."""
        for stmt in statements:
            try:
                completion = self.execute(stmt, self.globals)
            except MBasicRuntimeError as err:
                logger.debug("runtime error halted the program: %s", err)
                return err
            if completion.returned:
                break
        return None

    def execute_block(self, statements: tuple[Stmt, ...], env: Environment) -> Completion:
        for stmt in statements:
            completion = self.execute(stmt, env)
            if completion.returned:
                return completion
        return NORMAL

    def execute(self, stmt: Stmt, env: Environment) -> Completion:
        if isinstance(stmt, Expression):
            self.evaluate(stmt.expression, env)
            return NORMAL

        if isinstance(stmt, Var):
            value = None if stmt.initializer is None else self.evaluate(stmt.initializer, env)
            env.define(stmt.name, value)
            return NORMAL

        if isinstance(stmt, Block):
            return self.execute_block(stmt.statements, Environment(env))

        if isinstance(stmt, If):
            if is_truthy(self.evaluate(stmt.condition, env)):
                return self.execute(stmt.then_branch, env)
            if stmt.else_branch is not None:
                return self.execute(stmt.else_branch, env)
            return NORMAL

        if isinstance(stmt, Function):
            env.define(stmt.name, UserFunction(declaration=stmt, closure=env))
            return NORMAL

        if isinstance(stmt, Return):
            value = None if stmt.value is None else self.evaluate(stmt.value, env)
            return Completion(returned=True, value=value)

        if isinstance(stmt, Namespace):
            # TODO: bind namespace members once member access has syntax.
            return NORMAL

        raise TypeError(f"Unsupported statement node: {type(stmt)!r}")

    def _look_up(self, name: Token, expr: Expr, env: Environment) -> object:
        distance = self.distance_of(expr)
        if distance is not None:
            return env.get_at(distance, name)
        return self.globals.get(name)

    def evaluate(self, expr: Expr, env: Environment) -> object:
        if isinstance(expr, Literal):
            return expr.value

        if isinstance(expr, Grouping):
            return self.evaluate(expr.expression, env)

        if isinstance(expr, Logical):
            left = self.evaluate(expr.left, env)
            if expr.op.kind == "LOGICAL_OR":
                if is_truthy(left):
                    return left
            elif not is_truthy(left):
                return left
            return self.evaluate(expr.right, env)

        if isinstance(expr, Unary):
            return _eval_unary(expr.op, self.evaluate(expr.right, env))

        if isinstance(expr, Binary):
            left = self.evaluate(expr.left, env)
            right = self.evaluate(expr.right, env)
            return _eval_binary(expr.op, left, right)

        if isinstance(expr, Variable):
            return self._look_up(expr.name, expr, env)

        if isinstance(expr, Assign):
            value = self.evaluate(expr.value, env)
            distance = self.distance_of(expr)
            if distance is not None:
                env.assign_at(distance, expr.name, value)
            else:
                self.globals.assign(expr.name, value)
            return value

        if isinstance(expr, Call):
            callee = self.evaluate(expr.callee, env)
            arguments = [self.evaluate(argument, env) for argument in expr.arguments]
            return self.call_value(callee, arguments, expr.paren)

        raise TypeError(f"Unsupported expression node: {type(expr)!r}")

    def call_value(self, callee: object, arguments: list[object], paren: Token) -> object:
        if not isinstance(callee, MBasicCallable):
            raise MBasicTypeError("Can only call functions.", paren)
        if len(arguments) != callee.arity:
            raise ArityError(f"Expected {callee.arity} arguments but got {len(arguments)}.", paren)
        try:
            return callee.call(self, arguments)
        except MBasicRuntimeError as err:
            raise err.with_token(paren)


class Session:
    """One interpreter kept alive across several source runs (REPL state)."""

    def __init__(self, stdout: TextIO | None = None, stdin: TextIO | None = None) -> None:
        self.interpreter = Interpreter(stdout=stdout, stdin=stdin)

    @property
    def globals(self) -> Environment:
        return self.interpreter.globals

    def compile(self, source: str) -> tuple[Stmt, ...]:
        statements = _parse_program_cached(source)
        errors = Resolver(self.interpreter).resolve(statements)
        if errors:
            raise MBasicCompileError(errors)
        return statements

    def run(self, source: str) -> None:
        """Compile and execute ``source``; raise the first runtime error after halting."""
        _call_with_deep_stack(lambda: self._run(source))

    def _run(self, source: str) -> None:
        statements = self.compile(source)
        logger.debug("executing %d top-level statements", len(statements))
        err = self.interpreter.interpret(statements)
        if err is not None:
            raise err


def run(source: str, *, stdout: TextIO | None = None, stdin: TextIO | None = None) -> Session:
    """Compile and execute a whole program in a fresh session."""
    session = Session(stdout=stdout, stdin=stdin)
    session.run(source)
    return session
