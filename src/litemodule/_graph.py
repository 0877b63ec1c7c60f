from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal, TextIO


if TYPE_CHECKING:
    from collections.abc import Iterator

    from ._factory import ServiceFactory
    from ._identity import ServiceKey, Symbol
    from ._module import ServiceModule

    Direction = Literal["TB", "LR", "BT", "RL"]


_DIRECTIONS = ("TB", "LR", "BT", "RL")

_LEAF_STYLE = ' [fillcolor="#c8e6c9", color="#388e3c"]'
_ROOT_STYLE = ' [fillcolor="#ffccbc", color="#d84315"]'

GRAPHVIZ_VIEWER_URL = "https://dreampuf.github.io/GraphvizOnline/"


@dataclass(frozen=True)
class DotGraphOptions:
    direction: Direction = "TB"
    title: str = "Service Dependency Graph"
    # Nodes with no dependencies
    highlight_leaves: bool = True
    # Nodes nothing depends on
    highlight_roots: bool = True

    def __post_init__(self) -> None:
        if self.direction not in _DIRECTIONS:
            msg = f"direction must be one of {', '.join(_DIRECTIONS)}, got {self.direction!r}"
            raise ValueError(msg)


def dependency_edges(module: ServiceModule) -> Iterator[tuple[ServiceFactory[Any], ServiceKey[Any]]]:
    """Yield ``(dependent factory, dependency key)`` pairs in module order."""
    for factory in module.factories:
        for dependency in factory.depends_on:
            yield factory, dependency


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def create_dot_graph(module: ServiceModule, options: DotGraphOptions | None = None) -> str:
    """Render the module's dependency graph in Graphviz DOT notation.

    Edges point from a service to what it depends on.
    """
    options = options or DotGraphOptions()

    lines = [
        "digraph ServiceDependencies {",
        f'  label="{_escape(options.title)}";',
        '  labelloc="t";',
        "  fontsize=16;",
        f"  rankdir={options.direction};",
        "",
        "  node [",
        "    shape=box,",
        '    style="rounded,filled",',
        '    fillcolor="#e1f5ff",',
        '    color="#0288d1",',
        '    fontname="Arial",',
        "    fontsize=12",
        "  ];",
        "",
        "  edge [",
        '    color="#666666",',
        "    arrowsize=0.8",
        "  ];",
        "",
    ]

    edges = list(dependency_edges(module))
    has_dependents: set[Symbol] = {dependency.symbol for _, dependency in edges}

    node_ids: dict[Symbol, str] = {}
    for index, factory in enumerate(module.factories):
        node_id = f"node{index}"
        node_ids[factory.provides.symbol] = node_id

        is_leaf = not factory.depends_on
        is_root = factory.provides.symbol not in has_dependents

        style = ""
        if options.highlight_leaves and is_leaf:
            style = _LEAF_STYLE
        elif options.highlight_roots and is_root:
            style = _ROOT_STYLE

        lines.append(f'  {node_id} [label="{_escape(factory.provides.name)}"]{style};')

    lines.append("")

    for factory, dependency in edges:
        target = node_ids.get(dependency.symbol)
        if target is not None:
            lines.append(f"  {node_ids[factory.provides.symbol]} -> {target};")

    lines.append("}")
    return "\n".join(lines)


def print_dot_graph(
    module: ServiceModule,
    options: DotGraphOptions | None = None,
    *,
    file: TextIO | None = None,
) -> None:
    """Write the DOT graph followed by a pointer to an online viewer."""
    out = file if file is not None else sys.stdout
    print(create_dot_graph(module, options), file=out)  # noqa: T201
    print(f"\n\nCopy the DOT output above and paste it into:\n{GRAPHVIZ_VIEWER_URL}", file=out)  # noqa: T201
