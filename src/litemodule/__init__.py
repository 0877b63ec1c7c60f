"""Minimal asynchronous dependency injection library.

Services are addressed by `ServiceKey` tokens and produced by factories that
declare their dependencies up front. Factories are composed into a validated,
immutable `ServiceModule` which resolves a key together with its dependency
graph and disposes cached singletons, optionally per `ServiceScope`.

Exports:
- `ServiceKey`, `ServiceScope`: identity tokens compared by identity, never by name.
- `ServiceFactory`: `singleton` (cached until disposed) and `one_shot` (new value
  per request) factory constructors; also exported as plain functions.
- `ServiceModule`: composition (`compose`), resolution (`get`) and disposal (`dispose`).
- `create_dot_graph`, `print_dot_graph`: Graphviz rendering of a module's dependencies.
"""

from ._factory import Lifetime, OneShotFactory, ServiceFactory, SingletonFactory, one_shot, singleton
from ._graph import DotGraphOptions, create_dot_graph, dependency_edges, print_dot_graph
from ._identity import ServiceKey, ServiceScope
from ._module import (
    CircularDependencyError,
    CompositionError,
    MissingDependencyError,
    ResolutionError,
    SelfDependencyError,
    ServiceModule,
    ServiceModuleError,
)


__all__ = [
    "CircularDependencyError",
    "CompositionError",
    "DotGraphOptions",
    "Lifetime",
    "MissingDependencyError",
    "OneShotFactory",
    "ResolutionError",
    "SelfDependencyError",
    "ServiceFactory",
    "ServiceKey",
    "ServiceModule",
    "ServiceModuleError",
    "ServiceScope",
    "SingletonFactory",
    "create_dot_graph",
    "dependency_edges",
    "one_shot",
    "print_dot_graph",
    "singleton",
]
