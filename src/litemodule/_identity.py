from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, TypeVar


T = TypeVar("T")


class Symbol:
    """Opaque unique token. Two symbols are equal only if they are the same object."""

    __slots__ = ("description",)

    def __init__(self, description: str) -> None:
        self.description = description

    def __repr__(self) -> str:
        return f"Symbol({self.description!r})"


@dataclass(frozen=True, eq=False)
class _Token:
    name: str
    symbol: Symbol = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "symbol", Symbol(self.name))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, _Token):
            return NotImplemented
        return type(self) is type(other) and self.symbol is other.symbol

    def __hash__(self) -> int:
        return hash(self.symbol)


@dataclass(frozen=True, eq=False, repr=True)
class ServiceKey(_Token, Generic[T]):
    """Address of one logical service.

    The name is for diagnostics only: every construction allocates a new
    symbol, so ``ServiceKey("db") != ServiceKey("db")``.
    """


@dataclass(frozen=True, eq=False, repr=True)
class ServiceScope(_Token):
    """Tag grouping factories for ``ServiceModule.dispose(scope)``."""
