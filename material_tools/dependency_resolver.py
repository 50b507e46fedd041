"""Module graph extraction and dependency-ordered closure computation."""
from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List, Sequence
import re

from .errors import CyclicDependencyError, UnknownModuleError
from .models import DependencyGraph

CORE_MODULE = "core"

# angular.module('material.components.tooltip', ['material.core', 'ngAria'])
_DECLARATION = re.compile(
    r"""\.module\(\s*(['"])(?P<name>[\w.\-]+)\1\s*,\s*\[(?P<deps>[^\]]*)\]""",
    re.DOTALL,
)
_STRING = re.compile(r"""(['"])([^'"]+)\1""")

_NAMESPACE_PREFIXES = ("material.components.", "material.")


def module_id(name: str, prefixes: Sequence[str] = _NAMESPACE_PREFIXES) -> str | None:
    """Return the short module id for a declared name, or ``None`` if external.

    ``material.components.tooltip`` becomes ``tooltip`` and submodules such
    as ``material.core.theming`` fold into their parent (``core``).
    """

    for prefix in prefixes:
        if name.startswith(prefix):
            remainder = name[len(prefix):]
            return remainder.split(".", 1)[0] or None
    return None


def parse_module_graph(source: str, prefixes: Sequence[str] = _NAMESPACE_PREFIXES) -> DependencyGraph:
    """Build the module graph from the module declarations in ``source``."""

    modules: List[str] = []
    edges: Dict[str, List[str]] = {}
    for match in _DECLARATION.finditer(source):
        module = module_id(match.group("name"), prefixes)
        if module is None:
            continue
        if module not in edges:
            modules.append(module)
            edges[module] = []
        for _, raw_dep in _STRING.findall(match.group("deps")):
            dependency = module_id(raw_dep, prefixes)
            if dependency is None or dependency == module or dependency in edges[module]:
                continue
            edges[module].append(dependency)
    return DependencyGraph(
        modules=tuple(modules),
        edges={module: tuple(deps) for module, deps in edges.items()},
    )


class DependencyResolver:
    """Resolve the dependency-ordered module list for a build."""

    def __init__(self, prefixes: Sequence[str] = _NAMESPACE_PREFIXES, core_module: str = CORE_MODULE) -> None:
        self._prefixes = tuple(prefixes)
        self._core = core_module

    def graph(self, entry_file: Path | str) -> DependencyGraph:
        source = Path(entry_file).read_text(encoding="utf-8")
        return parse_module_graph(source, self._prefixes)

    def resolve(self, entry_file: Path | str, requested: Iterable[str] | None = None) -> List[str]:
        return self.order(self.graph(entry_file), requested)

    def normalize(self, name: str) -> str:
        name = name.strip()
        return module_id(name, self._prefixes) or name

    def order(self, graph: DependencyGraph, requested: Iterable[str] | None = None) -> List[str]:
        """Topologically order the closure of ``requested`` plus the core module.

        Every module follows its dependencies; ties keep first-discovery
        order. ``requested=None`` selects every module in the graph.
        """

        available = list(graph.modules)
        if requested is None:
            roots = available
        else:
            roots = [self.normalize(name) for name in requested if name and name.strip()]
            for name in roots:
                if name not in graph:
                    raise UnknownModuleError(name, available)

        if self._core not in graph:
            raise UnknownModuleError(self._core, available)

        index = graph.index()
        # 0 = unvisited, 1 = on the current path, 2 = emitted
        state = [0] * len(available)
        path: List[int] = []
        order: List[str] = []

        def visit(position: int) -> None:
            if state[position] == 2:
                return
            if state[position] == 1:
                start = path.index(position)
                cycle = [available[item] for item in path[start:]] + [available[position]]
                raise CyclicDependencyError(cycle)
            state[position] = 1
            path.append(position)
            module = available[position]
            for dependency in graph.dependencies(module):
                if dependency not in index:
                    raise UnknownModuleError(dependency, available, required_by=module)
                visit(index[dependency])
            path.pop()
            state[position] = 2
            order.append(module)

        visit(index[self._core])
        for name in roots:
            visit(index[name])
        return order


__all__ = ["CORE_MODULE", "DependencyResolver", "module_id", "parse_module_graph"]
