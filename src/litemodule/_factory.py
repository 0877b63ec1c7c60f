from __future__ import annotations

import asyncio
import inspect
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Any, Generic, TypeVar


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from ._identity import ServiceKey, ServiceScope


logger = logging.getLogger(__name__)

T = TypeVar("T")

_MISSING: Any = object()


class Lifetime(Enum):
    SINGLETON = "singleton"
    ONE_SHOT = "one_shot"


class ServiceFactory(ABC, Generic[T]):
    """Recipe producing the value addressed by ``provides``.

    There are exactly two implementations, picked by the constructors below:

      ServiceFactory.singleton(provides=Db, initialize=connect, dispose=close)
      ServiceFactory.one_shot(provides=Request, depends_on=[Db], initialize=Request)

    ``depends_on`` order is the positional argument order of ``initialize``.
    """

    lifetime: Lifetime

    def __init__(
        self,
        provides: ServiceKey[T],
        depends_on: Sequence[ServiceKey[Any]],
        initializer: Callable[..., T | Awaitable[T]],
        scope: ServiceScope | None = None,
    ) -> None:
        if not callable(initializer):
            msg = f"`initialize` for {provides.name} must be callable, got {type(initializer).__name__}"
            raise TypeError(msg)

        self._provides = provides
        self._depends_on = tuple(depends_on)
        self._initializer = initializer
        self._scope = scope

    @property
    def provides(self) -> ServiceKey[T]:
        return self._provides

    @property
    def depends_on(self) -> tuple[ServiceKey[Any], ...]:
        return self._depends_on

    @property
    def scope(self) -> ServiceScope | None:
        return self._scope

    @abstractmethod
    async def initialize(self, *dependencies: Any) -> T: ...

    async def produce(self, resolve_dependencies: Callable[[], Awaitable[Sequence[Any]]]) -> T:
        """Resolve dependencies with ``resolve_dependencies``, then initialize."""
        return await self.initialize(*await resolve_dependencies())

    # Overridden by SingletonFactory; one-shot factories expose no teardown.
    dispose: Callable[[], None] | None = None

    def __repr__(self) -> str:
        deps = ", ".join(k.name for k in self._depends_on)
        return f"{type(self).__name__}(provides={self._provides.name!r}, depends_on=[{deps}])"

    async def _call_initializer(self, dependencies: tuple[Any, ...]) -> T:
        result = self._initializer(*dependencies)
        if inspect.isawaitable(result):
            result = await result
        return result

    @staticmethod
    def singleton(
        *,
        provides: ServiceKey[T],
        depends_on: Sequence[ServiceKey[Any]] = (),
        scope: ServiceScope | None = None,
        initialize: Callable[..., T | Awaitable[T]],
        dispose: Callable[[T], None] | None = None,
    ) -> SingletonFactory[T]:
        """Factory producing one instance, cached until disposed."""
        return SingletonFactory(
            provides=provides,
            depends_on=depends_on,
            scope=scope,
            initializer=initialize,
            finalizer=dispose,
        )

    @staticmethod
    def one_shot(
        *,
        provides: ServiceKey[T],
        depends_on: Sequence[ServiceKey[Any]],
        initialize: Callable[..., T | Awaitable[T]],
    ) -> OneShotFactory[T]:
        """Factory producing a new instance on every request."""
        return OneShotFactory(provides=provides, depends_on=depends_on, initializer=initialize)


class SingletonFactory(ServiceFactory[T]):
    lifetime = Lifetime.SINGLETON

    def __init__(
        self,
        provides: ServiceKey[T],
        depends_on: Sequence[ServiceKey[Any]],
        initializer: Callable[..., T | Awaitable[T]],
        scope: ServiceScope | None = None,
        finalizer: Callable[[T], None] | None = None,
    ) -> None:
        super().__init__(provides, depends_on, initializer, scope)
        self._finalizer = finalizer
        self._instance: T = _MISSING
        # In-flight production shared by concurrent first requests
        self._pending: asyncio.Task[T] | None = None

    @property
    def has_instance(self) -> bool:
        return self._instance is not _MISSING

    async def initialize(self, *dependencies: Any) -> T:
        async def given() -> Sequence[Any]:
            return dependencies

        return await self.produce(given)

    async def produce(self, resolve_dependencies: Callable[[], Awaitable[Sequence[Any]]]) -> T:
        """Return the cached instance, or join or start its production.

        Dependencies are only resolved by the request that starts production.
        Cancelling one waiter leaves the shared production running for the others.
        """
        if self._instance is not _MISSING:
            return self._instance

        if self._pending is None:
            logger.debug("Producing singleton %s", self._provides.name)
            self._pending = asyncio.ensure_future(self._produce(resolve_dependencies))
        else:
            logger.debug("Joining in-flight production of %s", self._provides.name)

        return await asyncio.shield(self._pending)

    async def _produce(self, resolve_dependencies: Callable[[], Awaitable[Sequence[Any]]]) -> T:
        try:
            dependencies = await resolve_dependencies()
            instance = await self._call_initializer(tuple(dependencies))
            self._instance = instance
            return instance
        finally:
            self._pending = None

    def dispose(self) -> None:  # type: ignore[override]
        if self._instance is _MISSING:
            return

        instance = self._instance
        if self._finalizer is not None:
            self._finalizer(instance)
        self._instance = _MISSING
        logger.debug("Disposed singleton %s", self._provides.name)


class OneShotFactory(ServiceFactory[T]):
    lifetime = Lifetime.ONE_SHOT

    async def initialize(self, *dependencies: Any) -> T:
        return await self._call_initializer(dependencies)


singleton = ServiceFactory.singleton
one_shot = ServiceFactory.one_shot
