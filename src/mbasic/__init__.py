"""mbasic public API."""

import logging

from .environment import Environment
from .errors import (
    ArityError,
    MBasicCompileError,
    MBasicError,
    MBasicRuntimeError,
    MBasicTypeError,
    RadixError,
    UndefinedVariableError,
)
from .evaluator import Completion, Interpreter, Session, run
from .parser import parse_program
from .values import Binary, Hex, stringify

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "parse_program",
    "run",
    "Session",
    "Interpreter",
    "Completion",
    "Environment",
    "Hex",
    "Binary",
    "stringify",
    "MBasicError",
    "MBasicCompileError",
    "MBasicRuntimeError",
    "MBasicTypeError",
    "UndefinedVariableError",
    "ArityError",
    "RadixError",
]
