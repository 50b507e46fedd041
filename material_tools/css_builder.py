"""Stylesheet bundles (with and without layout) and the static theme."""
from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Sequence, Tuple
import re

from .errors import CompilationError
from .models import ResolvedBuild
from .theming import ThemingBuilder
from .toolchain import Toolchain
from .versioning import Version

THEME_BASE_FILES: tuple[str, ...] = ("variables.scss", "mixins.scss")

# Releases before 1.1.0 kept some theme mixins in themes.scss.
LEGACY_THEME_MIXINS_FILE = "themes.scss"
LEGACY_THEME_MIXINS_BEFORE = Version(1, 1, 0)

_LAYOUT_PATTERN = re.compile(r"^layouts?(?:[-.]|$)")


def is_layout(path: Path) -> bool:
    return bool(_LAYOUT_PATTERN.match(path.name))


def theme_base_files(version: Version) -> tuple[str, ...]:
    if version < LEGACY_THEME_MIXINS_BEFORE:
        return THEME_BASE_FILES + (LEGACY_THEME_MIXINS_FILE,)
    return THEME_BASE_FILES


@dataclass(frozen=True, slots=True)
class Stylesheet:
    source: str
    compressed: str


@dataclass(frozen=True, slots=True)
class CSSOutput:
    layout: Stylesheet
    no_layout: Stylesheet


class SourceBundle:
    """Concatenated stylesheet sources that remember where each file starts."""

    def __init__(self, paths: Iterable[Path]) -> None:
        self.paths: List[Path] = list(paths)
        chunks: List[str] = []
        self._starts: List[int] = []
        line = 1
        for path in self.paths:
            text = path.read_text(encoding="utf-8")
            if text and not text.endswith("\n"):
                text += "\n"
            self._starts.append(line)
            chunks.append(text)
            line += text.count("\n")
        self.text = "".join(chunks)

    def __bool__(self) -> bool:
        return bool(self.paths)

    def locate(self, line: int) -> Tuple[Path, int] | None:
        """Map a 1-based line of :attr:`text` back to ``(file, line)``."""

        if not self.paths or line < 1:
            return None
        position = bisect_right(self._starts, line) - 1
        if position < 0:
            return None
        return self.paths[position], line - self._starts[position] + 1


class CSSBuilder:
    def __init__(self, toolchain: Toolchain) -> None:
        self._toolchain = toolchain

    def compile(self, bundle: SourceBundle) -> str:
        try:
            return self._toolchain.compile_scss(bundle.text)
        except CompilationError as exc:
            location = bundle.locate(exc.line) if exc.line is not None else None
            if location is None:
                if exc.source is None and len(bundle.paths) == 1:
                    raise CompilationError(exc.detail, source=bundle.paths[0]) from exc
                raise
            path, line = location
            raise CompilationError(exc.detail, source=path, line=line) from exc

    def build_stylesheet(self, css: str) -> Stylesheet:
        return Stylesheet(source=css, compressed=self._toolchain.minify_css(css) if css.strip() else "")

    def _build_bundle(self, paths: Sequence[Path]) -> Stylesheet:
        bundle = SourceBundle(paths)
        if not bundle:
            return Stylesheet(source="", compressed="")
        return self.build_stylesheet(self.compile(bundle))

    def build(self, resolved: ResolvedBuild) -> CSSOutput:
        styles = resolved.files.styles
        return CSSOutput(
            layout=self._build_bundle(styles),
            no_layout=self._build_bundle([path for path in styles if not is_layout(path)]),
        )

    @staticmethod
    def theme_sources(resolved: ResolvedBuild) -> List[Path]:
        """Base SCSS files (in fixed name order) followed by every theme file."""

        names = theme_base_files(resolved.version)
        styles = resolved.files.styles
        base = [path for name in names for path in styles if path.name == name]
        return base + resolved.files.themes

    def build_static_theme(self, resolved: ResolvedBuild, theming: ThemingBuilder) -> Stylesheet:
        bundle = SourceBundle(self.theme_sources(resolved))
        compiled = self.compile(bundle) if bundle else ""
        return self.build_stylesheet(theming.build(compiled))


__all__ = [
    "CSSBuilder",
    "CSSOutput",
    "LEGACY_THEME_MIXINS_BEFORE",
    "LEGACY_THEME_MIXINS_FILE",
    "SourceBundle",
    "Stylesheet",
    "THEME_BASE_FILES",
    "is_layout",
    "theme_base_files",
]
