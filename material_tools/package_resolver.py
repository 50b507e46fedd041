"""Locate a package version on disk, fetching it into the cache when needed."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol
import json
import os
import shutil
import tempfile
import urllib.error
import urllib.parse
import urllib.request

from .archive import ArchiveManager, archive_format_for
from .console import BuildConsole, SilentConsole
from .errors import VersionNotFoundError
from .versioning import LOCAL_VERSION, Version, is_local


@dataclass(frozen=True, slots=True)
class ResolvedPackage:
    version: Version
    root: Path


class PackageFetcher(Protocol):
    def fetch(self, version: str, destination: Path) -> None:
        """Materialize ``version`` into ``destination`` (which must not exist)."""
        ...


class RegistryFetcher:
    """Fetch package tarballs from an npm-compatible registry."""

    def __init__(
        self,
        package_name: str,
        *,
        registry_url: str = "https://registry.npmjs.org",
        timeout: float = 30.0,
        archive_manager: ArchiveManager | None = None,
        console: BuildConsole | None = None,
    ) -> None:
        self._package_name = package_name
        self._registry_url = registry_url.rstrip("/")
        self._timeout = timeout
        self._console = console or SilentConsole()
        self._archives = archive_manager or ArchiveManager(self._console)

    def _open(self, url: str):
        request = urllib.request.Request(url, headers={"User-Agent": "material-tools"})
        return urllib.request.urlopen(request, timeout=self._timeout)

    def tarball_url(self, version: str) -> str:
        package = urllib.parse.quote(self._package_name, safe="@")
        url = f"{self._registry_url}/{package}/{urllib.parse.quote(version)}"
        self._console.debug(f"Querying {url}")
        try:
            with self._open(url) as response:
                metadata = json.loads(response.read().decode("utf-8"))
        except urllib.error.HTTPError as exc:
            raise VersionNotFoundError(version, f"registry answered {exc.code} for {url}") from exc
        except (urllib.error.URLError, TimeoutError, OSError) as exc:
            raise VersionNotFoundError(version, f"could not reach {url}: {exc}") from exc
        except ValueError as exc:
            raise VersionNotFoundError(version, f"invalid registry response from {url}") from exc
        tarball = metadata.get("dist", {}).get("tarball") if isinstance(metadata, dict) else None
        if not tarball:
            raise VersionNotFoundError(version, f"registry metadata at {url} has no tarball")
        return str(tarball)

    def fetch(self, version: str, destination: Path) -> None:
        url = self.tarball_url(version)
        name = Path(urllib.parse.urlparse(url).path).name or "package.tgz"
        try:
            archive_format_for(name)
        except ValueError:
            name = f"{name}.tgz"
        with tempfile.TemporaryDirectory(prefix=".fetch-", dir=destination.parent) as temp_dir:
            workdir = Path(temp_dir)
            archive = workdir / name
            self._console.info(f"Downloading {url}")
            try:
                with self._open(url) as response, archive.open("wb") as handle:
                    shutil.copyfileobj(response, handle)
            except (urllib.error.URLError, TimeoutError, OSError) as exc:
                raise VersionNotFoundError(version, f"download of {url} failed: {exc}") from exc

            extract_dir = workdir / "extract"
            try:
                self._archives.extract_archive(archive_path=archive, destination_dir=extract_dir)
            except (ValueError, OSError) as exc:
                raise VersionNotFoundError(version, f"could not extract {name}: {exc}") from exc

            entries = list(extract_dir.iterdir())
            # npm tarballs wrap everything in a single top-level directory
            root = entries[0] if len(entries) == 1 and entries[0].is_dir() else extract_dir
            shutil.move(str(root), str(destination))


def find_local_install(package_name: str, start: Path | None = None) -> Path | None:
    """Return the nearest ``node_modules/<package_name>`` directory above ``start``."""

    current = (start or Path.cwd()).resolve()
    for base in (current, *current.parents):
        candidate = base / "node_modules" / package_name
        if (candidate / "package.json").is_file():
            return candidate
    return None


class PackageResolver:
    """Resolve a version identifier to a package root directory.

    Cached versions live in ``<cache>/<version>/``. An existing directory is
    trusted as-is; its contents are not re-validated.
    """

    def __init__(
        self,
        package_name: str = "angular-material",
        *,
        fetcher: PackageFetcher | None = None,
        search_root: Path | None = None,
        entry_filename: str | None = None,
        console: BuildConsole | None = None,
    ) -> None:
        self._package_name = package_name
        self._console = console or SilentConsole()
        self._fetcher = fetcher or RegistryFetcher(package_name, console=self._console)
        self._search_root = search_root
        self._entry_filename = entry_filename

    def resolve(self, version: str | None, cache_dir: Path | str) -> ResolvedPackage:
        if is_local(version):
            resolved = self._resolve_local()
        else:
            resolved = self._resolve_cached(str(version).strip(), Path(cache_dir).expanduser())
        self._check_entry(resolved, str(version or LOCAL_VERSION))
        return resolved

    def _check_entry(self, package: ResolvedPackage, requested: str) -> None:
        if self._entry_filename and not (package.root / self._entry_filename).is_file():
            raise VersionNotFoundError(
                requested, f"package at {package.root} has no entry file '{self._entry_filename}'"
            )

    def _resolve_local(self) -> ResolvedPackage:
        root = find_local_install(self._package_name, self._search_root)
        if root is None:
            raise VersionNotFoundError(LOCAL_VERSION, f"'{self._package_name}' is not installed locally")
        try:
            metadata = json.loads((root / "package.json").read_text(encoding="utf-8"))
            version = Version.parse(str(metadata["version"]))
        except (OSError, ValueError, KeyError, TypeError) as exc:
            raise VersionNotFoundError(LOCAL_VERSION, f"cannot read the version of {root}: {exc}") from exc
        self._console.info(f"Using local {self._package_name} {version} from {root}")
        return ResolvedPackage(version=version, root=root)

    def _resolve_cached(self, requested: str, cache_dir: Path) -> ResolvedPackage:
        text = requested[1:] if requested.startswith("v") else requested
        try:
            version = Version.parse(text)
        except ValueError as exc:
            raise VersionNotFoundError(requested, str(exc)) from exc

        target = (cache_dir / text).resolve()
        if target.is_dir():
            self._console.debug(f"Cache hit for {self._package_name} {text}: {target}")
            return ResolvedPackage(version=version, root=target)

        self._console.info(f"Fetching {self._package_name} {text} into {cache_dir}")
        cache_dir.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=f".{text}-", dir=cache_dir))
        try:
            package_dir = staging / "package"
            self._fetcher.fetch(text, package_dir)
            if not package_dir.is_dir():
                raise VersionNotFoundError(requested, "fetch produced no package directory")
            try:
                os.replace(package_dir, target)
            except OSError:
                # another build published the same version first
                if not target.is_dir():
                    raise
                self._console.debug(f"Keeping concurrently published {target}")
        finally:
            shutil.rmtree(staging, ignore_errors=True)
        return ResolvedPackage(version=version, root=target)


__all__ = [
    "PackageFetcher",
    "PackageResolver",
    "RegistryFetcher",
    "ResolvedPackage",
    "find_local_install",
]
