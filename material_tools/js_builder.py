"""Concatenate module scripts and produce the minified bundle with its map."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List
import json
import string

from .errors import MinificationError
from .models import ResolvedBuild
from .toolchain import Toolchain


@dataclass(frozen=True, slots=True)
class JSOutput:
    source: str
    compressed: str
    map: str


def _source_name_for(minified_name: str) -> str:
    if minified_name.endswith(".min.js"):
        return minified_name[: -len(".min.js")] + ".js"
    return minified_name + ".src.js"


_BASE64 = string.ascii_uppercase + string.ascii_lowercase + string.digits + "+/"


def _decode_vlq(segment: str) -> List[int]:
    values: List[int] = []
    value = shift = 0
    for char in segment:
        digit = _BASE64.find(char)
        if digit < 0:
            raise ValueError(f"invalid base64 VLQ character '{char}'")
        value += (digit & 31) << shift
        if digit & 32:
            shift += 5
            continue
        values.append(-(value >> 1) if value & 1 else value >> 1)
        value = shift = 0
    if shift:
        raise ValueError(f"truncated VLQ segment '{segment}'")
    return values


def _encode_vlq(values: List[int]) -> str:
    chars: List[str] = []
    for value in values:
        vlq = ((-value) << 1) | 1 if value < 0 else value << 1
        while True:
            digit = vlq & 31
            vlq >>= 5
            chars.append(_BASE64[digit | 32] if vlq else _BASE64[digit])
            if not vlq:
                break
    return "".join(chars)


def shift_source_lines(mappings: str, offset: int) -> str:
    """Move every original (source-side) line in ``mappings`` down by ``offset``.

    Source lines are stored relative to the previous segment, so only the
    first segment that carries a source position needs rewriting.
    """

    if not offset:
        return mappings
    lines = mappings.split(";")
    for line_number, line in enumerate(lines):
        segments = line.split(",")
        for position, segment in enumerate(segments):
            if not segment:
                continue
            fields = _decode_vlq(segment)
            if len(fields) < 4:
                continue
            fields[2] += offset
            segments[position] = _encode_vlq(fields)
            lines[line_number] = ",".join(segments)
            return ";".join(lines)
    return mappings


class JSBuilder:
    def __init__(self, toolchain: Toolchain) -> None:
        self._toolchain = toolchain

    @staticmethod
    def concatenate(resolved: ResolvedBuild) -> str:
        chunks = []
        for path in resolved.files.js:
            text = path.read_text(encoding="utf-8")
            if text and not text.endswith("\n"):
                text += "\n"
            chunks.append(text)
        return "".join(chunks)

    def build(self, resolved: ResolvedBuild, minified_name: str, *, preamble_lines: int = 0) -> JSOutput:
        """Build the JS bundle; the map's ``file`` is always ``minified_name``.

        ``preamble_lines`` is the number of lines written in front of both the
        bundle and its minified form (such as a license banner); the mappings
        are shifted on both sides to match the files on disk.
        """

        source = self.concatenate(resolved)
        source_name = _source_name_for(minified_name)
        result = self._toolchain.minify_js(source, source_name=source_name, output_name=minified_name)

        try:
            source_map = json.loads(result.map)
        except ValueError as exc:
            raise MinificationError(f"invalid source map: {exc}", source=source_name) from exc
        if not isinstance(source_map, dict):
            raise MinificationError("source map is not a JSON object", source=source_name)
        source_map["file"] = minified_name
        source_map["sources"] = [source_name]
        if preamble_lines:
            try:
                mappings = shift_source_lines(str(source_map.get("mappings", "")), preamble_lines)
            except ValueError as exc:
                raise MinificationError(f"invalid source map mappings: {exc}", source=source_name) from exc
            source_map["mappings"] = ";" * preamble_lines + mappings

        compressed = result.code.rstrip("\n")
        reference = f"//# sourceMappingURL={minified_name}.map"
        if not compressed.endswith(reference):
            compressed = "\n".join(
                line for line in compressed.split("\n") if not line.startswith("//# sourceMappingURL=")
            )
            compressed = f"{compressed}\n{reference}"
        return JSOutput(
            source=source,
            compressed=compressed + "\n",
            map=json.dumps(source_map, separators=(",", ":")),
        )


__all__ = ["JSBuilder", "JSOutput", "shift_source_lines"]
