"""Lexical scope chain."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Final

from .errors import UndefinedVariableError
from .lexer import Token
from .values import validate_value


def _name_of(name: Token | str) -> str:
    return name if isinstance(name, str) else name.text


def _undefined(name: Token | str) -> UndefinedVariableError:
    token = name if isinstance(name, Token) else None
    return UndefinedVariableError(f"Undefined variable '{_name_of(name)}'.", token)


_MISSING: Final = object()


class Environment(Mapping[str, object]):
    """One scope of bindings plus a link to the enclosing scope.

    Mapping access (``env[name]``, ``name in env``, iteration) sees the whole
    chain, innermost binding first; ``define`` only ever touches this scope.
    """

    def __init__(self, enclosing: "Environment | None" = None) -> None:
        self.data: dict[str, object] = {}
        self.enclosing = enclosing

    def define(self, name: Token | str, value: object) -> None:
        validate_value(value, where=f"binding {_name_of(name)!r}")
        self.data[_name_of(name)] = value

    def get(self, name: Token | str, default: object = _MISSING) -> object:
        """Innermost binding of ``name``; without a default a missing name is a runtime error."""
        key = _name_of(name)
        scope: Environment | None = self
        while scope is not None:
            if key in scope.data:
                return scope.data[key]
            scope = scope.enclosing
        if default is not _MISSING:
            return default
        raise _undefined(name)

    def assign(self, name: Token | str, value: object) -> None:
        key = _name_of(name)
        scope: Environment | None = self
        while scope is not None:
            if key in scope.data:
                scope.data[key] = value
                return
            scope = scope.enclosing
        raise _undefined(name)

    def ancestor(self, distance: int) -> "Environment":
        scope = self
        for _ in range(distance):
            if scope.enclosing is None:
                raise ValueError(f"scope chain is shorter than distance {distance}")
            scope = scope.enclosing
        return scope

    def get_at(self, distance: int, name: Token | str) -> object:
        scope = self.ancestor(distance)
        key = _name_of(name)
        if key not in scope.data:
            raise _undefined(name)
        return scope.data[key]

    def assign_at(self, distance: int, name: Token | str, value: object) -> None:
        scope = self.ancestor(distance)
        key = _name_of(name)
        if key not in scope.data:
            raise _undefined(name)
        scope.data[key] = value

    def __getitem__(self, key: str) -> object:
        try:
            return self.get(key)
        except UndefinedVariableError as exc:
            raise KeyError(key) from exc

    def __contains__(self, key: object) -> bool:
        scope: Environment | None = self
        while scope is not None:
            if key in scope.data:
                return True
            scope = scope.enclosing
        return False

    def __iter__(self) -> Iterator[str]:
        seen: set[str] = set()
        scope: Environment | None = self
        while scope is not None:
            for key in scope.data:
                if key not in seen:
                    seen.add(key)
                    yield key
            scope = scope.enclosing

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __repr__(self) -> str:
        depth = 0
        scope = self.enclosing
        while scope is not None:
            depth += 1
            scope = scope.enclosing
        return f"Environment(names={sorted(self.data)!r}, depth={depth})"
