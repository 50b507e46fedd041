"""Extraction of fetched package archives into the package cache."""
from __future__ import annotations

from pathlib import Path, PurePosixPath
from typing import Iterable, Iterator
import tarfile
import zipfile

import zstandard as zstd

from .console import BuildConsole, SilentConsole

# npm serves gzip tarballs; mirrors may repackage them.
PACKAGE_ARCHIVE_SUFFIXES: dict[str, str] = {
    ".tgz": "r:gz",
    ".tar.gz": "r:gz",
    ".tar.bz2": "r:bz2",
    ".tar.xz": "r:xz",
    ".tar": "r:",
    ".tar.zst": "zst",
    ".tzst": "zst",
    ".zip": "zip",
}


def archive_format_for(name: str) -> str:
    """Return the open mode (``r:gz``, ``zst``, ``zip``...) for an archive name."""

    lowered = name.lower()
    # longest suffix first so ".tar.gz" is not read as ".tar"
    for suffix in sorted(PACKAGE_ARCHIVE_SUFFIXES, key=len, reverse=True):
        if lowered.endswith(suffix):
            return PACKAGE_ARCHIVE_SUFFIXES[suffix]
    raise ValueError(f"Cannot determine archive format for '{name}'")


def _check_member_name(name: str) -> None:
    path = PurePosixPath(name)
    if path.is_absolute() or ".." in path.parts:
        raise ValueError(f"Archive member escapes the destination: {name}")


def _regular_members(members: Iterable[tarfile.TarInfo]) -> Iterator[tarfile.TarInfo]:
    # links are never needed by a package and could point outside the cache
    for member in members:
        _check_member_name(member.name)
        if member.issym() or member.islnk():
            continue
        yield member


class ArchiveManager:
    """Unpack downloaded package archives (npm tarballs and mirror formats)."""

    def __init__(self, console: BuildConsole | None = None) -> None:
        self._console = console or SilentConsole()

    def extract_archive(
        self,
        *,
        archive_path: Path | str,
        destination_dir: Path | str,
    ) -> None:
        archive = Path(archive_path).expanduser()
        if not archive.is_file():
            raise FileNotFoundError(f"Package archive '{archive}' does not exist")
        mode = archive_format_for(archive.name)
        dest = Path(destination_dir).expanduser()
        dest.mkdir(parents=True, exist_ok=True)

        if mode == "zst":
            with archive.open("rb") as raw, zstd.ZstdDecompressor().stream_reader(raw) as reader:
                with tarfile.open(fileobj=reader, mode="r|") as tar:
                    for member in _regular_members(tar):
                        tar.extract(member, path=dest, filter="data")
        elif mode == "zip":
            with zipfile.ZipFile(archive) as bundle:
                for name in bundle.namelist():
                    _check_member_name(name)
                bundle.extractall(dest)
        else:
            with tarfile.open(archive, mode) as tar:
                tar.extractall(path=dest, members=list(_regular_members(tar)), filter="data")

        self._console.debug(f"Unpacked {archive.name} into {dest}")


__all__ = ["ArchiveManager", "PACKAGE_ARCHIVE_SUFFIXES", "archive_format_for"]
