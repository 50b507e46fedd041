"""Value types passed between the resolvers, builders and the orchestrator."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Sequence

from .versioning import Version


@dataclass(frozen=True, slots=True)
class DependencyGraph:
    """Adjacency mapping of module id to declared dependency ids.

    ``modules`` keeps declaration order, which doubles as the discovery
    order used to break ties during topological sorting.
    """

    modules: tuple[str, ...]
    edges: Mapping[str, tuple[str, ...]]

    def __contains__(self, module: object) -> bool:
        return module in self.edges

    def dependencies(self, module: str) -> tuple[str, ...]:
        return self.edges.get(module, ())

    def index(self) -> Dict[str, int]:
        return {module: position for position, module in enumerate(self.modules)}


@dataclass(frozen=True, slots=True)
class ModuleFiles:
    """Files resolved for a single module directory."""

    module: str
    directory: Path
    js: Path
    styles: tuple[Path, ...] = ()
    themes: tuple[Path, ...] = ()


@dataclass(frozen=True, slots=True)
class ResolvedModuleFiles:
    """Per-module files in dependency order, with aggregated views."""

    modules: tuple[ModuleFiles, ...]

    def __iter__(self) -> Iterator[ModuleFiles]:
        return iter(self.modules)

    @property
    def js(self) -> List[Path]:
        return [entry.js for entry in self.modules]

    @property
    def styles(self) -> List[Path]:
        return [path for entry in self.modules for path in entry.styles]

    @property
    def css(self) -> List[Path]:
        return [path for path in self.styles if path.suffix == ".css"]

    @property
    def scss(self) -> List[Path]:
        return [path for path in self.styles if path.suffix == ".scss"]

    @property
    def themes(self) -> List[Path]:
        return [path for entry in self.modules for path in entry.themes]


@dataclass(frozen=True, slots=True)
class ResolvedBuild:
    modules: tuple[str, ...]
    files: ResolvedModuleFiles
    root: Path
    version: Version


@dataclass(frozen=True, slots=True)
class BuildArtifact:
    """A named output relative to the destination directory."""

    name: str
    content: bytes
    siblings: tuple["BuildArtifact", ...] = ()
    banner: bool = True

    def flatten(self) -> Iterator["BuildArtifact"]:
        yield self
        for sibling in self.siblings:
            yield from sibling.flatten()


@dataclass(slots=True)
class BuildResult:
    version: Version
    modules: List[str]
    destination: Path
    artifacts: List[BuildArtifact] = field(default_factory=list)
    written: List[Path] = field(default_factory=list)

    def artifact_names(self) -> Sequence[str]:
        return [artifact.name for root in self.artifacts for artifact in root.flatten()]


__all__ = [
    "DependencyGraph",
    "ModuleFiles",
    "ResolvedModuleFiles",
    "ResolvedBuild",
    "BuildArtifact",
    "BuildResult",
]
