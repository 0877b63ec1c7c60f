from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, TypeVar

from ._factory import ServiceFactory


if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Sequence

    from ._identity import ServiceKey, ServiceScope, Symbol

    T = TypeVar("T")


logger = logging.getLogger(__name__)


class ServiceModuleError(RuntimeError):
    pass


class CompositionError(ServiceModuleError):
    """Raised by ``ServiceModule.compose`` when the factories do not form a valid module."""


class SelfDependencyError(CompositionError):
    def __init__(self, service: ServiceKey[Any]) -> None:
        self.service = service
        super().__init__(f"Recursive dependency detected on: {service.name}")


class MissingDependencyError(CompositionError):
    def __init__(self, service: ServiceKey[Any], missing: Sequence[ServiceKey[Any]]) -> None:
        self.service = service
        self.missing = tuple(missing)
        dependency_list = "\n".join(f" -> {key.name}" for key in self.missing)
        super().__init__(f"{service.name} will fail because it depends on:\n{dependency_list}")


class CircularDependencyError(CompositionError):
    def __init__(self, cycle: Sequence[ServiceKey[Any]]) -> None:
        self.cycle = tuple(cycle)
        super().__init__("Circular dependency detected: " + " -> ".join(key.name for key in self.cycle))


class ResolutionError(ServiceModuleError, LookupError):
    def __init__(self, key: ServiceKey[Any]) -> None:
        self.key = key
        super().__init__(f"Could not find a suitable factory for {key.name}")


class ServiceModule:
    """Immutable, validated set of factories.

    - compose factories and other modules (last factory for a key wins)
    - asynchronous resolution of a key and its dependency graph
    - disposal of cached singletons, optionally limited to one scope.
    """

    def __init__(self, factories: Sequence[ServiceFactory[Any]], *, _from_compose: bool = False) -> None:
        if not _from_compose:
            msg = "ServiceModule instances must be created via ServiceModule.compose()"
            raise RuntimeError(msg)

        self._factories = tuple(factories)
        self._by_symbol: dict[Symbol, ServiceFactory[Any]] = {f.provides.symbol: f for f in self._factories}

        for factory in self._factories:
            self._check_self_dependency(factory)
            self._check_missing_dependencies(factory)
        self._check_cycles()

    @classmethod
    def compose(cls, entries: Iterable[ServiceModule | ServiceFactory[Any]]) -> ServiceModule:
        """Build a module from factories and modules, in order.

        Modules are flattened into their factories. When several factories
        provide the same key, the last one takes precedence, which lets a
        caller override a default by appending a replacement:

          ServiceModule.compose([base_module, ServiceFactory.singleton(provides=Db, initialize=FakeDb)])

        """
        flattened: list[ServiceFactory[Any]] = []
        for entry in entries:
            if isinstance(entry, ServiceModule):
                flattened.extend(entry.factories)
            elif isinstance(entry, ServiceFactory):
                flattened.append(entry)
            else:
                msg = f"Expected ServiceFactory or ServiceModule, got {type(entry).__name__}"
                raise TypeError(msg)

        by_symbol: dict[Symbol, ServiceFactory[Any]] = {}
        for factory in flattened:
            previous = by_symbol.get(factory.provides.symbol)
            if previous is not None and previous is not factory:
                logger.debug("Factory for %s overridden by %r", factory.provides.name, factory)
            by_symbol[factory.provides.symbol] = factory

        module = cls(list(by_symbol.values()), _from_compose=True)
        logger.debug("Composed module with %d factories", len(module))
        return module

    @property
    def factories(self) -> tuple[ServiceFactory[Any], ...]:
        return self._factories

    def __len__(self) -> int:
        return len(self._factories)

    def __iter__(self) -> Iterator[ServiceFactory[Any]]:
        return iter(self._factories)

    def __contains__(self, key: object) -> bool:
        symbol = getattr(key, "symbol", None)
        return symbol in self._by_symbol

    def __repr__(self) -> str:
        return f"ServiceModule({', '.join(f.provides.name for f in self._factories)})"

    async def get(self, key: ServiceKey[T]) -> T:
        """Resolve ``key``, resolving its dependencies first.

        Dependencies are requested concurrently and passed to the factory's
        initializer in declared order. A singleton that is already cached or
        being produced is returned without resolving its dependencies again.
        """
        factory = self._by_symbol.get(key.symbol)
        if factory is None:
            raise ResolutionError(key)

        logger.debug("Resolving %s", key.name)

        async def resolve_dependencies() -> list[Any]:
            return await asyncio.gather(*(self.get(dep) for dep in factory.depends_on))

        return await factory.produce(resolve_dependencies)

    def dispose(self, scope: ServiceScope | None = None) -> None:
        """Dispose factories in ``scope``, or every factory if no scope is given.

        Singleton factories release their cached instance (running the
        teardown callback); one-shot factories hold nothing and are skipped.
        Factories are disposed in module order. Do not call this while a
        ``get`` for the same scope is still running.
        """
        factories = [f for f in self._factories if f.scope == scope] if scope is not None else self._factories

        for factory in factories:
            if factory.dispose is not None:
                factory.dispose()

    def _check_self_dependency(self, factory: ServiceFactory[Any]) -> None:
        if factory.provides in factory.depends_on:
            raise SelfDependencyError(factory.provides)

    def _check_missing_dependencies(self, factory: ServiceFactory[Any]) -> None:
        missing = [key for key in factory.depends_on if key.symbol not in self._by_symbol]
        if missing:
            raise MissingDependencyError(factory.provides, missing)

    def _check_cycles(self) -> None:
        """Depth-first search over the dependency graph; raise on the first back edge."""
        done: set[Symbol] = set()

        for root in self._factories:
            if root.provides.symbol in done:
                continue

            path: list[ServiceKey[Any]] = [root.provides]
            on_path: set[Symbol] = {root.provides.symbol}
            stack: list[Iterator[ServiceKey[Any]]] = [iter(root.depends_on)]

            while stack:
                dep = next(stack[-1], None)
                if dep is None:
                    stack.pop()
                    finished = path.pop()
                    on_path.discard(finished.symbol)
                    done.add(finished.symbol)
                    continue

                if dep.symbol in on_path:
                    start = next(i for i, key in enumerate(path) if key.symbol is dep.symbol)
                    raise CircularDependencyError([*path[start:], dep])

                if dep.symbol in done:
                    continue

                path.append(dep)
                on_path.add(dep.symbol)
                stack.append(iter(self._by_symbol[dep.symbol].depends_on))
