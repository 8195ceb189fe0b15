"""Running the external style tools: Dart Sass and Tailwind CSS."""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import Any, Sequence, Union

from .settings import SourcedSiteFile, TailwindConfig

log = logging.getLogger(__name__)

Executable = Union[str, "os.PathLike[str]", Sequence[str]]

_DEFAULT_TAILWIND_CONFIG = """/** @type {import('tailwindcss').Config} */
    module.exports = {
      content: {
        relative: true,
        files: ["*.html", "./src/**/*.rs"],
      },
      theme: {
        extend: {},
      },
      plugins: [],
    }
    """


class ToolError(RuntimeError):
    """An external tool could not be run or reported a failure."""

    def __init__(self, message: str, stdout: str = "", stderr: str = "") -> None:
        super().__init__(message)
        self.stdout = stdout
        self.stderr = stderr


def _program(exe: Executable) -> list[str]:
    if isinstance(exe, (str, os.PathLike)):
        return [os.fspath(exe)]
    return list(exe)


def _run(name: str, command: list[str]) -> subprocess.CompletedProcess:
    try:
        return subprocess.run(command, capture_output=True, text=True, check=False)
    except OSError as exc:
        raise ToolError(f"Could not run {name}: {exc}") from exc


def sass_args(style_file: SourcedSiteFile, optimise: bool) -> list[str]:
    """The arguments given to sass for a style file."""
    args = [str(style_file.source)]
    if optimise:
        args.append("--no-source-map")
    return args


def compile_sass(style_file: SourcedSiteFile, optimise: bool, exe: Executable) -> str:
    """Compile a sass/scss file and return the css."""
    args = sass_args(style_file, optimise)
    log.debug("Style running sass %s", " ".join(args))
    result = _run("Dart Sass", [*_program(exe), *args])
    if result.returncode != 0:
        log.warning("Dart Sass failed with:\n%s", result.stderr)
        raise ToolError(f"Dart Sass failed:\n{result.stderr}", result.stdout, result.stderr)
    return result.stdout


def tailwind_args(proj: Any, tw_conf: TailwindConfig) -> list[str]:
    """The arguments given to tailwindcss; minified in release builds."""
    args = ["--input", str(tw_conf.input_file)]
    if tw_conf.config_file is not None:
        args += ["--config", str(tw_conf.config_file)]
    args += ["--output", str(tw_conf.tmp_file)]
    if proj.release:
        args.append("--minify")
    return args


def write_default_tailwind_config(config_file: str | Path) -> None:
    """Write a starter tailwind config file."""
    Path(config_file).write_text(_DEFAULT_TAILWIND_CONFIG, encoding="utf-8")


def compile_tailwind(proj: Any, tw_conf: TailwindConfig, exe: Executable) -> str:
    """Run tailwindcss and return the css it wrote to the temporary file."""
    if tw_conf.config_file is not None and not Path(tw_conf.config_file).exists():
        write_default_tailwind_config(tw_conf.config_file)

    args = tailwind_args(proj, tw_conf)
    line = f"tailwindcss {' '.join(args)}"
    result = _run("Tailwind", [*_program(exe), *args])

    if result.returncode != 0:
        log.warning("Tailwind failed")
        raise ToolError(
            f"Tailwind failed:\n{result.stdout}{result.stderr}", result.stdout, result.stderr
        )

    stderr_lines = result.stderr.splitlines()
    if not stderr_lines or "Done" not in stderr_lines[-1]:
        log.warning("Tailwind failed %s", line)
        raise ToolError(
            f"Tailwind failed {line}\n{result.stdout}\n{result.stderr}",
            result.stdout,
            result.stderr,
        )

    log.info("Tailwind finished %s", line)
    try:
        return Path(tw_conf.tmp_file).read_text(encoding="utf-8")
    except OSError as exc:
        raise ToolError(f"Failed to read tailwind result: {exc}") from exc