"""Structured package versions with release-candidate aware ordering."""
from __future__ import annotations

from dataclasses import dataclass, field
from functools import total_ordering
import re

LOCAL_VERSION = "local"
"""Sentinel version meaning "use the locally installed package"."""

LOCAL_VERSION_ALIASES = frozenset({LOCAL_VERSION, "node"})

_VERSION_PATTERN = re.compile(
    r"^v?(?P<major>\d+)\.(?P<minor>\d+)\.(?P<patch>\d+)"
    r"(?:-rc(?:[.\-]?(?P<rc>\d+)))?$"
)


def is_local(version: str | None) -> bool:
    return version is None or str(version).strip().lower() in LOCAL_VERSION_ALIASES


@total_ordering
@dataclass(frozen=True, slots=True)
class Version:
    """A ``major.minor.patch[-rc.N]`` version.

    Release candidates sort below the final release of the same number, so
    ``1.1.0-rc.1 < 1.1.0 < 1.2.0``. ``text`` keeps the spelling the version
    was parsed from (``1.1.0-rc1``) and takes no part in comparisons.
    """

    major: int
    minor: int
    patch: int
    rc: int | None = None
    text: str | None = field(default=None, compare=False)

    @classmethod
    def parse(cls, text: str) -> "Version":
        spelled = str(text).strip()
        match = _VERSION_PATTERN.match(spelled)
        if match is None:
            raise ValueError(f"Invalid version string: '{text}'")
        rc = match.group("rc")
        return cls(
            major=int(match.group("major")),
            minor=int(match.group("minor")),
            patch=int(match.group("patch")),
            rc=int(rc) if rc is not None else None,
            text=spelled[1:] if spelled.startswith("v") else spelled,
        )

    def _sort_key(self) -> tuple[int, int, int, int, int]:
        # finals sort after every release candidate of the same number
        if self.rc is None:
            return (self.major, self.minor, self.patch, 1, 0)
        return (self.major, self.minor, self.patch, 0, self.rc)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._sort_key() < other._sort_key()

    def __str__(self) -> str:
        if self.text:
            return self.text
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.rc is not None:
            text = f"{text}-rc.{self.rc}"
        return text


__all__ = ["LOCAL_VERSION", "LOCAL_VERSION_ALIASES", "Version", "is_local"]
