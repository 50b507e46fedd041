"""Build custom Angular Material bundles from a package version and module subset."""
from __future__ import annotations

from .build import BuildOrchestrator, license_banner
from .config_loader import MaterialToolsOptions, apply_defaults, load_options
from .dependency_resolver import DependencyResolver
from .errors import (
    CompilationError,
    ConfigurationError,
    CyclicDependencyError,
    InvalidModuleLayoutError,
    MaterialToolsError,
    MinificationError,
    ModuleDirectoryNotFoundError,
    PackageFileNotFoundError,
    UnknownModuleError,
    VersionNotFoundError,
)
from .local_resolver import LocalResolver
from .models import BuildArtifact, BuildResult, ResolvedBuild, ResolvedModuleFiles
from .package_resolver import PackageResolver
from .theming import MdTheme, ThemingBuilder
from .versioning import LOCAL_VERSION, Version

__all__ = [
    "BuildArtifact",
    "BuildOrchestrator",
    "BuildResult",
    "CompilationError",
    "ConfigurationError",
    "CyclicDependencyError",
    "DependencyResolver",
    "InvalidModuleLayoutError",
    "LOCAL_VERSION",
    "LocalResolver",
    "MaterialToolsError",
    "MaterialToolsOptions",
    "MdTheme",
    "MinificationError",
    "ModuleDirectoryNotFoundError",
    "PackageFileNotFoundError",
    "PackageResolver",
    "ResolvedBuild",
    "ResolvedModuleFiles",
    "ThemingBuilder",
    "UnknownModuleError",
    "Version",
    "VersionNotFoundError",
    "apply_defaults",
    "license_banner",
    "load_options",
]
