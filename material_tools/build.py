"""Build orchestration: resolve a package, run the builders, write artifacts."""
from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from datetime import date
from pathlib import Path
from typing import Any, List, Mapping, Sequence

from .command_runner import SubprocessCommandRunner
from .config_loader import MaterialToolsOptions, load_options
from .console import BuildConsole, SilentConsole
from .css_builder import CSSBuilder, CSSOutput, Stylesheet
from .dependency_resolver import DependencyResolver
from .errors import ConfigurationError, PackageFileNotFoundError
from .js_builder import JSBuilder, JSOutput
from .local_resolver import LocalResolver
from .models import BuildArtifact, BuildResult, ResolvedBuild
from .package_resolver import PackageResolver, RegistryFetcher
from .theming import ThemingBuilder
from .toolchain import ExternalToolchain, Toolchain
from .versioning import Version

PRODUCT_NAME = "Angular Material Design"
REPOSITORY_URL = "https://github.com/angular/material"
LICENSE_ID = "MIT"
TOOL_NAME = "material-tools"
LICENSE_FILENAME = "LICENSE"


def license_banner(version: Version | str, modules: Sequence[str], year: int | None = None) -> str:
    """Return the comment banner written in front of every text artifact."""

    lines = [
        PRODUCT_NAME,
        REPOSITORY_URL,
        f"@license {LICENSE_ID}",
        f"v{version}",
        f"Built with: {TOOL_NAME}",
        f"Includes modules: {', '.join(modules)}",
        "",
        f"Copyright {year or date.today().year} Google Inc. All Rights Reserved.",
        "Use of this source code is governed by an MIT-style license that can be "
        "found in the LICENSE file at http://material.angularjs.org/LICENSE.",
    ]
    body = [f" * {line}".rstrip() for line in lines]
    return "\n".join(["/*!", *body, " */"]) + "\n\n"


class BuildOrchestrator:
    """Sequence the resolvers and builders for one bundle build."""

    def __init__(
        self,
        options: MaterialToolsOptions | Mapping[str, Any] | Path | str | None,
        *,
        package_resolver: PackageResolver | None = None,
        dependency_resolver: DependencyResolver | None = None,
        local_resolver: LocalResolver | None = None,
        toolchain: Toolchain | None = None,
        console: BuildConsole | None = None,
    ) -> None:
        self.options = load_options(options)
        self._console = console or SilentConsole()
        opts = self.options
        self._packages = package_resolver or PackageResolver(
            opts.package_name,
            fetcher=RegistryFetcher(
                opts.package_name,
                registry_url=opts.registry_url,
                timeout=opts.fetch_timeout,
                console=self._console,
            ),
            entry_filename=opts.main_filename,
            console=self._console,
        )
        self._dependencies = dependency_resolver or DependencyResolver()
        self._local = local_resolver or LocalResolver()
        self._toolchain = toolchain or ExternalToolchain(
            SubprocessCommandRunner(),
            sass=opts.sass,
            terser=opts.terser,
            console=self._console,
        )
        self._theming: ThemingBuilder | None = None
        if opts.theme is not None:
            try:
                self._theming = ThemingBuilder(opts.theme)
            except ValueError as exc:
                raise ConfigurationError(f"Invalid theme: {exc}") from exc

    def resolve(self) -> ResolvedBuild:
        opts = self.options
        package = self._packages.resolve(opts.version, opts.cache)
        self._console.info(f"Resolved {opts.package_name} {package.version} at {package.root}")
        modules = self._dependencies.resolve(package.root / opts.main_filename, opts.modules)
        self._console.info(f"Modules: {', '.join(modules)}")
        files = self._local.resolve(modules, package.root)
        return ResolvedBuild(
            modules=tuple(modules),
            files=files,
            root=package.root,
            version=package.version,
        )

    def artifacts(self, resolved: ResolvedBuild, *, banner: str = "") -> List[BuildArtifact]:
        """Run the JS, CSS and theme builders concurrently and collect their output."""

        license_path = resolved.root / LICENSE_FILENAME
        try:
            license_text = license_path.read_bytes()
        except FileNotFoundError as exc:
            raise PackageFileNotFoundError(license_path) from exc

        base = self.options.destination_filename
        minified_js = f"{base}.min.js"
        js_builder = JSBuilder(self._toolchain)
        css_builder = CSSBuilder(self._toolchain)

        with ThreadPoolExecutor(max_workers=self.options.jobs) as executor:
            js_future: Future[JSOutput] = executor.submit(
                js_builder.build, resolved, minified_js, preamble_lines=banner.count("\n")
            )
            css_future: Future[CSSOutput] = executor.submit(css_builder.build, resolved)
            theme_future: Future[Stylesheet] | None = None
            if self._theming is not None:
                theme_future = executor.submit(css_builder.build_static_theme, resolved, self._theming)
            js = js_future.result()
            css = css_future.result()
            theme = theme_future.result() if theme_future is not None else None

        def text(name: str, content: str, **kwargs: Any) -> BuildArtifact:
            return BuildArtifact(name=name, content=content.encode("utf-8"), **kwargs)

        artifacts = [
            text(f"{base}.js", js.source),
            text(minified_js, js.compressed, siblings=(text(f"{minified_js}.map", js.map, banner=False),)),
            text(f"{base}.css", css.layout.source),
            text(f"{base}.min.css", css.layout.compressed),
            text(f"{base}-no-layout.css", css.no_layout.source),
            text(f"{base}-no-layout.min.css", css.no_layout.compressed),
        ]
        if theme is not None:
            artifacts.append(text(f"{base}-theme.css", theme.source))
            artifacts.append(text(f"{base}-theme.min.css", theme.compressed))
        artifacts.append(
            BuildArtifact(
                name=LICENSE_FILENAME,
                content=license_text,
                banner=False,
            )
        )
        return artifacts

    def build(self, *, dry_run: bool = False) -> BuildResult:
        """Resolve, build and write every artifact.

        Writes are not transactional: when a later write fails, files written
        before it stay on disk.
        """

        resolved = self.resolve()
        banner = license_banner(resolved.version, resolved.modules)
        artifacts = self.artifacts(resolved, banner=banner)
        destination = self.options.destination
        result = BuildResult(
            version=resolved.version,
            modules=list(resolved.modules),
            destination=destination,
            artifacts=artifacts,
        )

        if dry_run:
            for name in result.artifact_names():
                self._console.dry(f"Would write {destination / name}")
            return result

        destination.mkdir(parents=True, exist_ok=True)
        prefix = banner.encode("utf-8")
        for root in artifacts:
            for artifact in root.flatten():
                path = destination / artifact.name
                path.write_bytes(prefix + artifact.content if artifact.banner else artifact.content)
                result.written.append(path)
                self._console.info(f"Wrote {path}")
        return result


def build(options: MaterialToolsOptions | Mapping[str, Any] | Path | str | None, **kwargs: Any) -> BuildResult:
    """Convenience wrapper: ``BuildOrchestrator(options, **kwargs).build()``."""

    return BuildOrchestrator(options, **kwargs).build()


__all__ = ["BuildOrchestrator", "build", "license_banner"]
