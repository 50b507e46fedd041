"""Helpers that write fixture packages and stand in for the external tools."""
from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Mapping, Sequence
import json
import threading

from material_tools.errors import CompilationError, MinificationError
from material_tools.toolchain import MinifiedScript

LICENSE_TEXT = "The MIT License\n\nCopyright (c) Google\n"


def _qualified(module: str) -> str:
    return "material.core" if module == "core" else f"material.components.{module}"


def entry_source(modules: Mapping[str, Sequence[str]]) -> str:
    lines = [
        "(function(){",
        "angular.module('ngMaterial', [\"ng\",\"ngAnimate\",\"ngAria\","
        + ",".join(f'"{_qualified(name)}"' for name in modules)
        + "]);",
    ]
    for name, deps in modules.items():
        declared = ["ngAnimate"] + [_qualified(dep) for dep in deps]
        if name == "core":
            declared.append("material.core.theming")
        quoted = ", ".join(f"'{dep}'" for dep in declared)
        lines.append(f"angular.module('{_qualified(name)}', [{quoted}]);")
        if name == "core":
            lines.append("angular.module('material.core.theming', ['material.core.theming.palette']);")
            lines.append("angular.module('material.core.theming').provider('$mdTheming', ThemingProvider);")
    lines.append("})();")
    return "\n".join(lines) + "\n"


def write_package(
    root: Path,
    modules: Mapping[str, Sequence[str]],
    *,
    version: str = "1.1.0",
    files: Mapping[str, Mapping[str, str]] | None = None,
    main_filename: str = "angular-material.js",
) -> Path:
    """Write a package with one directory per module under ``modules/js``.

    Every module gets ``<name>.js``, ``<name>.css``, a default theme
    template and minified copies unless ``files`` overrides its contents.
    """

    root.mkdir(parents=True, exist_ok=True)
    (root / "package.json").write_text(json.dumps({"name": "angular-material", "version": version}))
    (root / main_filename).write_text(entry_source(modules))
    (root / "LICENSE").write_text(LICENSE_TEXT)
    overrides = files or {}
    for name in modules:
        directory = root / "modules" / "js" / name
        directory.mkdir(parents=True, exist_ok=True)
        contents = overrides.get(name)
        if contents is None:
            contents = {
                f"{name}.js": f"/* {name} */\nvar {name}Module = '{name}';\n",
                f"{name}.min.js": f"var {name}Module='{name}';",
                f"{name}.css": f".md-{name} {{ display: block; }}\n",
                f"{name}.min.css": f".md-{name}{{display:block}}",
                f"{name}-default-theme.scss": f"md-{name}.md-THEME_NAME-theme {{ color: '{{{{primary-color}}}}'; }}\n",
            }
        for filename, text in contents.items():
            (directory / filename).write_text(text)
    return root


class FakeToolchain:
    """Deterministic stand-in for sass and terser.

    ``compile_scss`` drops ``$variable`` and ``@mixin``/``@include`` lines
    and fails on ``@error``; minifiers collapse whitespace.
    """

    def __init__(self) -> None:
        self.compiled: List[str] = []
        self.minified_js: List[Dict[str, str]] = []
        self._lock = threading.Lock()

    def compile_scss(self, source: str) -> str:
        with self._lock:
            self.compiled.append(source)
        kept: List[str] = []
        for number, line in enumerate(source.splitlines(), start=1):
            stripped = line.strip()
            if stripped.startswith("@error"):
                raise CompilationError(stripped, line=number)
            if stripped.startswith(("$", "@mixin", "@include")):
                continue
            kept.append(line)
        return "\n".join(kept) + ("\n" if kept else "")

    def minify_css(self, source: str) -> str:
        return " ".join(source.split())

    def minify_js(self, source: str, *, source_name: str, output_name: str) -> MinifiedScript:
        if "syntax error" in source:
            raise MinificationError("Unexpected token", source=source_name)
        with self._lock:
            self.minified_js.append({"source_name": source_name, "output_name": output_name})
        source_map = {"version": 3, "file": "tmp-output.js", "sources": ["stdin"], "names": [], "mappings": "AAAA"}
        return MinifiedScript(code=" ".join(source.split()), map=json.dumps(source_map))
