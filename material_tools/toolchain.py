"""External stylesheet compiler and minifier primitives."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Protocol, Sequence, runtime_checkable
import re
import subprocess
import tempfile

from .command_runner import CommandError, CommandRunner, SubprocessCommandRunner
from .console import BuildConsole, SilentConsole
from .errors import CompilationError, MinificationError


@dataclass(frozen=True, slots=True)
class MinifiedScript:
    code: str
    map: str


@runtime_checkable
class Toolchain(Protocol):
    """Transformation primitives the builders rely on."""

    def compile_scss(self, source: str) -> str:
        ...

    def minify_css(self, source: str) -> str:
        ...

    def minify_js(self, source: str, *, source_name: str, output_name: str) -> MinifiedScript:
        ...


# dart-sass reports stdin positions as "  - 12:3  root stylesheet" or "stdin 12:3".
_SASS_LOCATION = re.compile(r"(?:^\s*-\s*|stdin\s+)(?P<line>\d+):(?P<column>\d+)", re.MULTILINE)


def _first_line(text: str) -> str:
    for line in text.splitlines():
        stripped = line.strip()
        if stripped:
            return stripped
    return "unknown error"


class ExternalToolchain:
    """Toolchain backed by the ``sass`` and ``terser`` command line tools."""

    def __init__(
        self,
        runner: CommandRunner | None = None,
        *,
        sass: str = "sass",
        terser: str = "terser",
        timeout: float | None = 120.0,
        console: BuildConsole | None = None,
    ) -> None:
        self._runner = runner or SubprocessCommandRunner()
        self._sass = sass
        self._terser = terser
        self._timeout = timeout
        self._console = console or SilentConsole()

    def _sass_command(self, style: str) -> List[str]:
        return [self._sass, "--stdin", "--no-source-map", f"--style={style}"]

    def _run_sass(self, source: str, *, style: str) -> str:
        command = self._sass_command(style)
        self._console.debug(f"Running {self._runner.format_command(command)}")
        try:
            result = self._runner.run(command, input=source, timeout=self._timeout)
        except CommandError as exc:
            stderr = exc.result.stderr or exc.result.stdout
            match = _SASS_LOCATION.search(stderr)
            line = int(match.group("line")) if match else None
            raise CompilationError(_first_line(stderr), line=line) from exc
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise CompilationError(f"could not run '{self._sass}': {exc}") from exc
        return result.stdout

    def compile_scss(self, source: str) -> str:
        return self._run_sass(source, style="expanded")

    def minify_css(self, source: str) -> str:
        try:
            return self._run_sass(source, style="compressed")
        except CompilationError as exc:
            raise MinificationError(exc.detail) from exc

    def minify_js(self, source: str, *, source_name: str, output_name: str) -> MinifiedScript:
        with tempfile.TemporaryDirectory(prefix="material-tools-") as temp_dir:
            workdir = Path(temp_dir)
            input_path = workdir / source_name
            output_path = workdir / output_name
            map_path = workdir / f"{output_name}.map"
            input_path.write_text(source, encoding="utf-8")
            command: Sequence[str] = [
                self._terser,
                source_name,
                "--compress",
                "--mangle",
                "--source-map",
                f"filename='{output_name}',url='{output_name}.map'",
                "--output",
                output_name,
            ]
            self._console.debug(f"Running {self._runner.format_command(command)}")
            try:
                self._runner.run(command, cwd=workdir, timeout=self._timeout)
            except CommandError as exc:
                raise MinificationError(_first_line(exc.result.stderr or exc.result.stdout), source=source_name) from exc
            except (OSError, subprocess.TimeoutExpired) as exc:
                raise MinificationError(f"could not run '{self._terser}': {exc}", source=source_name) from exc
            if not output_path.is_file() or not map_path.is_file():
                raise MinificationError("minifier produced no output", source=source_name)
            return MinifiedScript(
                code=output_path.read_text(encoding="utf-8"),
                map=map_path.read_text(encoding="utf-8"),
            )


__all__ = ["ExternalToolchain", "MinifiedScript", "Toolchain"]
