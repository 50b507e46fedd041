"""Error taxonomy shared by the resolvers and builders."""
from __future__ import annotations

from pathlib import Path
from typing import Sequence


class MaterialToolsError(Exception):
    """Base class for every failure that aborts a build."""


class ConfigurationError(MaterialToolsError, ValueError):
    """Raised when the build options are missing or malformed."""


class VersionNotFoundError(MaterialToolsError, LookupError):
    """Raised when a package version cannot be located or fetched."""

    def __init__(self, version: str, reason: str | None = None) -> None:
        message = f"Version '{version}' could not be resolved"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.version = version
        self.reason = reason


class CyclicDependencyError(MaterialToolsError, ValueError):
    """Raised when the module graph contains a cycle."""

    def __init__(self, cycle: Sequence[str]) -> None:
        super().__init__(f"Circular module dependency detected: {' -> '.join(cycle)}")
        self.cycle = list(cycle)


class UnknownModuleError(MaterialToolsError, LookupError):
    """Raised when a module id is not declared by the package."""

    def __init__(self, module: str, available: Sequence[str] = (), *, required_by: str | None = None) -> None:
        message = f"Module '{module}' not found"
        if required_by:
            message = f"{message} (required by '{required_by}')"
        if available:
            message = f"{message}. Available modules: {', '.join(available)}"
        super().__init__(message)
        self.module = module
        self.required_by = required_by

    def __str__(self) -> str:
        return str(self.args[0])


class ModuleDirectoryNotFoundError(MaterialToolsError, FileNotFoundError):
    """Raised when a package root or a module directory does not exist."""

    def __init__(self, path: Path, module: str | None = None) -> None:
        if module:
            message = f"Directory for module '{module}' not found under {path}"
        else:
            message = f"Directory not found: {path}"
        super().__init__(message)
        self.path = path
        self.module = module

    def __str__(self) -> str:
        return str(self.args[0])


class PackageFileNotFoundError(MaterialToolsError, FileNotFoundError):
    """Raised when a file every package ships (such as LICENSE) is missing."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"Package file not found: {path}")
        self.path = path

    def __str__(self) -> str:
        return str(self.args[0])


class InvalidModuleLayoutError(MaterialToolsError, ValueError):
    """Raised when a module directory does not hold exactly one JS source."""

    def __init__(self, module: str, directory: Path, js_files: Sequence[Path]) -> None:
        if js_files:
            names = ", ".join(path.name for path in js_files)
            message = f"Module '{module}' has ambiguous JS sources in {directory}: {names}"
        else:
            message = f"Module '{module}' has no JS source in {directory}"
        super().__init__(message)
        self.module = module
        self.directory = directory
        self.js_files = list(js_files)


class CompilationError(MaterialToolsError, RuntimeError):
    """Raised when the stylesheet compiler rejects its input."""

    def __init__(self, message: str, *, source: Path | str | None = None, line: int | None = None) -> None:
        location = ""
        if source is not None:
            location = f" ({source}" + (f":{line}" if line is not None else "") + ")"
        elif line is not None:
            location = f" (line {line})"
        super().__init__(f"Stylesheet compilation failed{location}: {message}")
        self.detail = message
        self.source = source
        self.line = line


class MinificationError(MaterialToolsError, RuntimeError):
    """Raised when the minifier fails on its input."""

    def __init__(self, message: str, *, source: str | None = None) -> None:
        prefix = f"Minification of '{source}' failed" if source else "Minification failed"
        super().__init__(f"{prefix}: {message}")
        self.detail = message
        self.source = source


__all__ = [
    "MaterialToolsError",
    "ConfigurationError",
    "VersionNotFoundError",
    "CyclicDependencyError",
    "UnknownModuleError",
    "ModuleDirectoryNotFoundError",
    "PackageFileNotFoundError",
    "InvalidModuleLayoutError",
    "CompilationError",
    "MinificationError",
]
