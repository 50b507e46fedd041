"""Resolve each module's JS, stylesheet and theme files on disk."""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Sequence
import re

from .errors import InvalidModuleLayoutError, ModuleDirectoryNotFoundError
from .models import ModuleFiles, ResolvedModuleFiles

# Module directory candidates, newest layout first.
MODULE_LAYOUTS: tuple[str, ...] = ("modules/js/{module}", "{module}")

_STYLE_SUFFIXES = {".css", ".scss"}
_THEME_PATTERN = re.compile(r"-theme\.s?css$")


def is_minified(path: Path) -> bool:
    return ".min." in path.name


def is_theme(path: Path) -> bool:
    return bool(_THEME_PATTERN.search(path.name))


class LocalResolver:
    """Classify the files of every requested module directory."""

    def __init__(self, layouts: Sequence[str] = MODULE_LAYOUTS) -> None:
        self._layouts = tuple(layouts)

    def module_directory(self, module: str, root: Path) -> Path:
        for layout in self._layouts:
            candidate = root / layout.format(module=module)
            if candidate.is_dir():
                return candidate
        raise ModuleDirectoryNotFoundError(root, module)

    def resolve_module(self, module: str, root: Path) -> ModuleFiles:
        directory = self.module_directory(module, root)
        js: List[Path] = []
        styles: List[Path] = []
        themes: List[Path] = []
        for path in sorted(directory.iterdir()):
            if not path.is_file() or is_minified(path):
                continue
            if path.suffix == ".js":
                js.append(path)
            elif path.suffix in _STYLE_SUFFIXES:
                (themes if is_theme(path) else styles).append(path)
        if len(js) != 1:
            raise InvalidModuleLayoutError(module, directory, js)
        return ModuleFiles(
            module=module,
            directory=directory,
            js=js[0],
            styles=tuple(styles),
            themes=tuple(themes),
        )

    def resolve(self, modules: Iterable[str], root: Path | str) -> ResolvedModuleFiles:
        """Resolve ``modules`` under ``root``, keeping the given (dependency) order."""

        root_path = Path(root).expanduser()
        if not root_path.is_dir():
            raise ModuleDirectoryNotFoundError(root_path)
        return ResolvedModuleFiles(
            modules=tuple(self.resolve_module(module, root_path) for module in modules)
        )


__all__ = ["LocalResolver", "MODULE_LAYOUTS", "is_minified", "is_theme"]
