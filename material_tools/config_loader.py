"""Options loading and defaulting for a bundle build."""
from __future__ import annotations

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Sequence
import json
import tomllib

import yaml

from .errors import ConfigurationError
from .theming import MdTheme
from .versioning import LOCAL_VERSION, is_local


ConfigLoader = Callable[[Any], Mapping[str, Any]]


FILE_LOADERS: Dict[str, ConfigLoader] = {
    ".toml": lambda stream: tomllib.load(stream),
    ".json": lambda stream: json.load(stream),
    ".yaml": lambda stream: yaml.safe_load(stream),
    ".yml": lambda stream: yaml.safe_load(stream),
}
"""Mapping of file suffixes to loader callables."""


def load_config_file(path: Path) -> Mapping[str, Any]:
    """Load and decode a configuration mapping from ``path``."""

    suffix = path.suffix.lower()
    loader = FILE_LOADERS.get(suffix)
    if loader is None:
        supported = ", ".join(sorted(FILE_LOADERS)) or "<none>"
        raise ValueError(
            f"Unsupported configuration file extension: {suffix}. Supported: {supported}"
        )

    mode = "rb" if suffix == ".toml" else "r"
    kwargs: Dict[str, Any] = {}
    if mode == "r":
        kwargs["encoding"] = "utf-8"

    with path.open(mode, **kwargs) as handle:
        data = loader(handle)

    if not isinstance(data, Mapping):
        raise TypeError(f"Configuration file '{path}' must contain a mapping at the root")

    return data


def normalize_string_list(value: Any, *, field_name: str | None = None) -> List[str]:
    """Coerce ``value`` into a list of trimmed strings.

    A single string is split on commas, so ``"tooltip, dialog"`` and
    ``["tooltip", "dialog"]`` are equivalent.
    """

    if value is None:
        return []

    if isinstance(value, (str, bytes)):
        text = value.decode() if isinstance(value, bytes) else value
        return [part.strip() for part in text.split(",") if part.strip()]

    if isinstance(value, Sequence):
        items: List[str] = []
        for item in value:
            if not isinstance(item, str):
                label = f"{field_name} " if field_name else ""
                raise TypeError(f"{label}entries must be strings")
            text = item.strip()
            if text:
                items.append(text)
        return items

    label = f"{field_name} " if field_name else ""
    raise TypeError(f"{label}must be a string or sequence of strings")


# Keys of the historical options format.
_KEY_ALIASES: Dict[str, str] = {
    "destinationFilename": "destination_filename",
    "mainFilename": "main_filename",
    "packageName": "package_name",
    "registryUrl": "registry_url",
    "fetchTimeout": "fetch_timeout",
}


@dataclass(slots=True)
class MaterialToolsOptions:
    destination: Path
    destination_filename: str = "angular-material"
    version: str = LOCAL_VERSION
    modules: List[str] | None = None
    cache: Path = Path(".material-cache")
    theme: MdTheme | None = None
    main_filename: str = "angular-material.js"
    package_name: str = "angular-material"
    registry_url: str = "https://registry.npmjs.org"
    fetch_timeout: float = 30.0
    sass: str = "sass"
    terser: str = "terser"
    jobs: int = 3

    def with_overrides(self, **overrides: Any) -> "MaterialToolsOptions":
        """Return a copy with the non-``None`` ``overrides`` applied."""

        values = {key: value for key, value in overrides.items() if value is not None}
        if not values:
            return self
        return apply_defaults({**self.to_mapping(), **values})

    def to_mapping(self) -> Dict[str, Any]:
        return {item.name: getattr(self, item.name) for item in fields(self)}


def _normalize_keys(data: Mapping[str, Any]) -> Dict[str, Any]:
    normalized: Dict[str, Any] = {}
    for raw_key, value in data.items():
        key = _KEY_ALIASES.get(str(raw_key), str(raw_key))
        normalized[key] = value
    return normalized


def apply_defaults(data: Mapping[str, Any]) -> MaterialToolsOptions:
    """Build options from ``data``, filling every missing field with its default.

    The input mapping is never modified.
    """

    if not data:
        raise ConfigurationError("No options have been specified.")

    values = _normalize_keys(data)
    known = {item.name for item in fields(MaterialToolsOptions)}
    unknown = sorted(key for key in values if key not in known)
    if unknown:
        raise ConfigurationError(f"Unknown option(s): {', '.join(unknown)}")

    destination = values.get("destination")
    if not destination:
        raise ConfigurationError("You have to specify a destination.")

    version = values.get("version")
    version = LOCAL_VERSION if is_local(version) else str(version).strip()

    raw_modules = values.get("modules")
    try:
        modules = normalize_string_list(raw_modules, field_name="modules") if raw_modules is not None else None
    except TypeError as exc:
        raise ConfigurationError(str(exc)) from exc

    theme = values.get("theme")
    if theme is not None and not isinstance(theme, MdTheme):
        if not isinstance(theme, Mapping):
            raise ConfigurationError("theme must be a mapping")
        try:
            theme = MdTheme.from_mapping(theme)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid theme: {exc}") from exc

    try:
        jobs = int(values.get("jobs", 3))
        fetch_timeout = float(values.get("fetch_timeout", 30.0))
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid numeric option: {exc}") from exc
    if jobs < 1:
        raise ConfigurationError("jobs must be at least 1")

    options = MaterialToolsOptions(
        destination=Path(destination).expanduser().resolve(),
        version=version,
        modules=modules or None,
        theme=theme,
        jobs=jobs,
        fetch_timeout=fetch_timeout,
    )
    for key in ("destination_filename", "main_filename", "package_name", "registry_url", "sass", "terser"):
        if values.get(key):
            options = replace(options, **{key: str(values[key])})
    if values.get("cache"):
        options = replace(options, cache=Path(values["cache"]).expanduser())
    return options


def load_options(source: MaterialToolsOptions | Mapping[str, Any] | Path | str | None) -> MaterialToolsOptions:
    """Load options from an instance, a mapping, or an options file path."""

    if source is None:
        raise ConfigurationError("No options have been specified.")
    if isinstance(source, MaterialToolsOptions):
        return source
    if isinstance(source, Mapping):
        return apply_defaults(source)

    path = Path(source).expanduser()
    if not path.is_file():
        raise ConfigurationError(f"Options file not found: {path}")
    try:
        data = load_config_file(path)
    except (ValueError, TypeError, OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Could not load options from {path}: {exc}") from exc

    # Relative paths in an options file are relative to the file itself.
    data = dict(data)
    for key in ("destination", "cache"):
        value = data.get(key)
        if value and not Path(str(value)).expanduser().is_absolute():
            data[key] = str(path.parent / str(value))
    return apply_defaults(data)


__all__ = [
    "ConfigLoader",
    "FILE_LOADERS",
    "MaterialToolsOptions",
    "apply_defaults",
    "load_config_file",
    "load_options",
    "normalize_string_list",
]
