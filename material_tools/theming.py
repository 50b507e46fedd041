"""Static theme generation from compiled theme templates."""
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from importlib import resources
from typing import Any, Dict, List, Mapping
import re

import yaml

from .errors import CompilationError

ROLES = ("primary", "accent", "warn", "background")

_HUE_MAPS: Dict[str, Dict[str, str]] = {
    "primary": {"default": "500", "hue-1": "300", "hue-2": "800", "hue-3": "A100"},
    "accent": {"default": "A200", "hue-1": "A100", "hue-2": "A400", "hue-3": "A700"},
    "warn": {"default": "500", "hue-1": "300", "hue-2": "800", "hue-3": "A100"},
    "background": {"default": "50", "hue-1": "A100", "hue-2": "100", "hue-3": "300"},
}

_DARK_BACKGROUND_HUES = {"default": "A400", "hue-1": "800", "hue-2": "900", "hue-3": "A200"}

_FOREGROUNDS = {
    False: {
        "1": "rgba(0,0,0,0.87)",
        "2": "rgba(0,0,0,0.54)",
        "3": "rgba(0,0,0,0.38)",
        "4": "rgba(0,0,0,0.12)",
        "shadow": "",
    },
    True: {
        "1": "rgba(255,255,255,1.0)",
        "2": "rgba(255,255,255,0.7)",
        "3": "rgba(255,255,255,0.5)",
        "4": "rgba(255,255,255,0.12)",
        "shadow": "1px 1px 0px rgba(0,0,0,0.4), -1px -1px 0px rgba(0,0,0,0.4)",
    },
}

_DARK_CONTRAST = "#000000"
_DARK_CONTRAST_OPACITY = 0.87
_LIGHT_CONTRAST = "#ffffff"

_HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")

_PLACEHOLDER = re.compile(
    r"""(?P<quote>['"]?)\{\{\s*(?P<role>primary|accent|warn|background|foreground)"""
    r"""(?:-(?P<hue>color|default|hue-[1-3]|shadow|A?\d+))?"""
    r"""(?:-(?P<opacity>\d?\.\d+|[01]))?"""
    r"""(?:-(?P<contrast>contrast)(?:-(?P<contrast_opacity>\d?\.\d+|[01]))?)?\s*\}\}(?P=quote)"""
)

# anything left over after substitution is an unsupported placeholder
_LEFTOVER = re.compile(r"\{\{[^{}]*\}\}")

_THEME_NAME = re.compile(r"THEME_NAME")


@dataclass(frozen=True, slots=True)
class Palette:
    name: str
    hues: Mapping[str, str]
    contrast_dark: frozenset[str] = frozenset()

    def color(self, hue: str) -> str:
        try:
            return self.hues[hue]
        except KeyError:
            raise KeyError(f"Palette '{self.name}' has no hue '{hue}'") from None

    def contrast(self, hue: str, opacity: float | None = None) -> str:
        if hue in self.contrast_dark:
            return _format_color(_DARK_CONTRAST, _DARK_CONTRAST_OPACITY if opacity is None else opacity)
        return _format_color(_LIGHT_CONTRAST, opacity)

    @classmethod
    def from_mapping(cls, name: str, data: Mapping[str, Any]) -> "Palette":
        raw_hues = data.get("hues", data)
        hues: Dict[str, str] = {}
        for raw_hue, raw_color in raw_hues.items():
            hue = str(raw_hue)
            if hue == "contrast_dark":
                continue
            color = str(raw_color).strip()
            if not _HEX_COLOR.match(color):
                raise ValueError(f"Palette '{name}' hue {hue} is not a hex color: {color}")
            hues[hue] = color
        contrast_dark = frozenset(str(hue) for hue in data.get("contrast_dark", ()))
        return cls(name=name, hues=hues, contrast_dark=contrast_dark)


@lru_cache(maxsize=1)
def load_palettes() -> Dict[str, Palette]:
    """Return the bundled Material Design palettes keyed by name."""

    text = resources.files(__package__).joinpath("palettes.yaml").read_text(encoding="utf-8")
    raw = yaml.safe_load(text) or {}
    return {str(name): Palette.from_mapping(str(name), data) for name, data in raw.items()}


PaletteRef = str | Mapping[str, Any]

_THEME_KEYS = {
    "primary": ("primary", "primaryPalette", "primary_palette"),
    "accent": ("accent", "accentPalette", "accent_palette"),
    "warn": ("warn", "warnPalette", "warn_palette"),
    "background": ("background", "backgroundPalette", "background_palette"),
}


@dataclass(frozen=True, slots=True)
class MdTheme:
    """Palette references for each theme role and the light/dark variant."""

    primary: PaletteRef = "indigo"
    accent: PaletteRef = "pink"
    warn: PaletteRef = "deep-orange"
    background: PaletteRef = "grey"
    dark: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "MdTheme":
        values: Dict[str, Any] = {}
        for role, keys in _THEME_KEYS.items():
            for key in keys:
                if data.get(key) is not None:
                    value = data[key]
                    if not isinstance(value, (str, Mapping)):
                        raise TypeError(f"theme.{role} must be a palette name or a mapping of hues")
                    values[role] = value
                    break
        dark = data.get("dark", False)
        if not isinstance(dark, bool):
            raise TypeError("theme.dark must be a boolean")
        return cls(dark=dark, **values)


class ThemingBuilder:
    """Turns a compiled theme template into a fixed-palette stylesheet."""

    def __init__(self, theme: MdTheme, *, theme_name: str = "default", palettes: Mapping[str, Palette] | None = None) -> None:
        self._theme = theme
        self._theme_name = theme_name
        available = palettes if palettes is not None else load_palettes()
        self._palettes = {role: self._palette(role, getattr(theme, role), available) for role in ROLES}

    @property
    def theme(self) -> MdTheme:
        return self._theme

    @staticmethod
    def _palette(role: str, ref: PaletteRef, available: Mapping[str, Palette]) -> Palette:
        if isinstance(ref, Mapping):
            return Palette.from_mapping(f"custom-{role}", ref)
        name = str(ref).strip()
        if name not in available:
            raise ValueError(
                f"Unknown {role} palette '{name}'. Available: {', '.join(sorted(available))}"
            )
        return available[name]

    def _hue_map(self, role: str) -> Dict[str, str]:
        if role == "background" and self._theme.dark:
            return _DARK_BACKGROUND_HUES
        return _HUE_MAPS[role]

    def _resolve_hue(self, role: str, hue: str | None) -> str:
        if hue in (None, "color", "default"):
            return self._hue_map(role)["default"]
        if hue.startswith("hue-"):
            return self._hue_map(role)[hue]
        return hue

    def color(self, role: str, hue: str | None = None, opacity: float | None = None, *, contrast: bool = False) -> str:
        if role == "foreground":
            key = hue or "1"
            try:
                return _FOREGROUNDS[self._theme.dark][key]
            except KeyError:
                raise KeyError(f"Unknown foreground level '{key}'") from None
        if role not in self._palettes:
            raise KeyError(f"Unknown theme role '{role}'")
        resolved = self._resolve_hue(role, hue)
        palette = self._palettes[role]
        if contrast:
            palette.color(resolved)
            return palette.contrast(resolved, opacity)
        return _format_color(palette.color(resolved), opacity)

    def definitions(self) -> str:
        """Return a ``:root`` block of custom properties for every role hue."""

        lines: List[str] = [":root {"]
        for role in ROLES:
            for hue in ("default", "hue-1", "hue-2", "hue-3"):
                lines.append(f"  --md-theme-{role}-{hue}: {self.color(role, hue)};")
            lines.append(f"  --md-theme-{role}-contrast: {self.color(role, contrast=True)};")
        for level in ("1", "2", "3", "4"):
            lines.append(f"  --md-theme-foreground-{level}: {self.color('foreground', level)};")
        lines.append("}")
        return "\n".join(lines) + "\n"

    def build(self, compiled_css: str) -> str:
        """Replace theme placeholders in ``compiled_css`` and prepend definitions."""

        def replacement(match: re.Match[str]) -> str:
            role = match.group("role")
            hue = match.group("hue")
            contrast = bool(match.group("contrast"))
            raw_opacity = match.group("contrast_opacity") if contrast else None
            raw_opacity = raw_opacity or match.group("opacity")
            opacity = float(raw_opacity) if raw_opacity is not None else None
            try:
                return self.color(role, hue, opacity, contrast=contrast)
            except KeyError as exc:
                raise CompilationError(f"{exc.args[0]} in placeholder {match.group(0)}") from exc

        themed = _THEME_NAME.sub(self._theme_name, compiled_css)
        themed = _PLACEHOLDER.sub(replacement, themed)
        leftover = _LEFTOVER.search(themed)
        if leftover is not None:
            line = themed.count("\n", 0, leftover.start()) + 1
            raise CompilationError(f"Unsupported theme placeholder {leftover.group(0)}", line=line)
        return self.definitions() + themed


def _format_color(hex_color: str, opacity: float | None) -> str:
    digits = hex_color.lstrip("#")
    if len(digits) == 3:
        digits = "".join(char * 2 for char in digits)
    red, green, blue = (int(digits[index:index + 2], 16) for index in (0, 2, 4))
    if opacity is None:
        return f"rgb({red},{green},{blue})"
    return f"rgba({red},{green},{blue},{opacity:g})"


__all__ = ["MdTheme", "Palette", "ThemingBuilder", "load_palettes", "ROLES"]
