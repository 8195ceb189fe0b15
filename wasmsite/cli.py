"""Command line options and the project template command."""

from __future__ import annotations

import argparse
import copy
import subprocess
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Sequence

_TRUE_WORDS = frozenset({"y", "yes", "t", "true", "on", "1"})
_FALSE_WORDS = frozenset({"n", "no", "f", "false", "off", "0"})

_TOP_VALUE_FLAGS = frozenset({"--manifest-path", "--log"})
_OPTS_VALUE_FLAGS = frozenset(
    {
        "--project",
        "--features",
        "--lib-features",
        "--lib-cargo-args",
        "--bin-features",
        "--bin-cargo-args",
        "--js-minify",
    }
)
_OPTS_SHORT_VALUE_FLAGS = frozenset({"p"})
_TRAILING_COMMANDS = frozenset({"serve", "watch"})

_STARTERS = {
    "start-trunk": "start-trunk",
    "leptos-rs/start-trunk": "start-trunk",
    "start-actix": "start",
    "leptos-rs/start": "start",
    "leptos-rs/start-actix": "start",
    "start-axum": "start-axum",
    "leptos-rs/start-axum": "start-axum",
    "start-axum-workspace": "start-axum-workspace",
    "leptos-rs/start-axum-workspace": "start-axum-workspace",
    "start-aws": "start-aws",
    "leptos-rs/start-aws": "start-aws",
    "start-spin": "start-spin",
    "leptos-rs/start-spin": "start-spin",
}


class Log(Enum):
    """Dependencies whose logs may be shown."""

    WASM = "wasm"
    """WASM build (wasm, wasm-opt, walrus)."""
    SERVER = "server"
    """Internal reload and csr server."""


@dataclass
class Opts:
    """Options shared by the build, test, serve and watch commands."""

    release: bool = False
    precompress: bool = False
    hot_reload: bool = False
    project: str | None = None
    features: list[str] = field(default_factory=list)
    lib_features: list[str] = field(default_factory=list)
    lib_cargo_args: list[str] | None = None
    bin_features: list[str] = field(default_factory=list)
    bin_cargo_args: list[str] | None = None
    wasm_debug: bool = False
    verbose: int = 0
    js_minify: bool = True


def absolute_git_url(url: str | None) -> str | None:
    """Expand a starter template shortcut to a full repository URL."""
    if url is None:
        return None
    repo = _STARTERS.get(url)
    if repo is None:
        return url
    return f"https://github.com/leptos-rs/{repo}"


@dataclass
class NewCommand:
    """Create a new project from a template."""

    git: str | None = None
    branch: str | None = None
    tag: str | None = None
    path: str | None = None
    name: str | None = None
    force: bool = False
    verbose: bool = False
    init: bool = False

    def __post_init__(self) -> None:
        if self.git is not None and self.path is not None:
            raise ValueError("--git and --path cannot be used together")
        if self.branch is not None and self.tag is not None:
            raise ValueError("--branch and --tag cannot be used together")

    def generate_args(self) -> dict[str, Any]:
        """The template generation arguments, with the git shortcut expanded."""
        return {
            "template_path": {
                "git": absolute_git_url(self.git),
                "branch": self.branch,
                "tag": self.tag,
                "path": self.path,
            },
            "name": self.name,
            "force": self.force,
            "verbose": self.verbose,
            "init": self.init,
        }

    def command_line(self) -> list[str]:
        """The cargo-generate invocation for these arguments."""
        spec = self.generate_args()
        template = spec["template_path"]
        line = ["cargo", "generate"]
        for flag, value in (
            ("--git", template["git"]),
            ("--branch", template["branch"]),
            ("--tag", template["tag"]),
            ("--path", template["path"]),
            ("--name", spec["name"]),
        ):
            if value is not None:
                line += [flag, value]
        for flag, enabled in (
            ("--force", spec["force"]),
            ("--verbose", spec["verbose"]),
            ("--init", spec["init"]),
        ):
            if enabled:
                line.append(flag)
        return line

    def run(self) -> None:
        """Generate the project; raises CalledProcessError on failure."""
        subprocess.run(self.command_line(), check=True)


@dataclass
class Cli:
    """The parsed command line."""

    command: str
    manifest_path: Path | None = None
    log: list[Log] = field(default_factory=list)
    options: Opts | None = None
    trailing: list[str] = field(default_factory=list)
    new_command: NewCommand | None = None

    def opts(self) -> Opts | None:
        """A copy of the build options, or None for the new command."""
        if self.command == "new" or self.options is None:
            return None
        return copy.deepcopy(self.options)

    def bin_args(self) -> list[str] | None:
        """Arguments passed on to the server binary, for serve and watch."""
        if self.command in _TRAILING_COMMANDS:
            return list(self.trailing)
        return None


def _boolish(value: str) -> bool:
    word = value.strip().lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    raise argparse.ArgumentTypeError(f"invalid boolean value: {value!r}")


def _add_opts(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-r", "--release", action="store_true",
                        help="Build artifacts in release mode, with optimizations.")
    parser.add_argument("-P", "--precompress", action="store_true",
                        help="Precompress static assets with gzip and brotli (release only).")
    parser.add_argument("--hot-reload", action="store_true",
                        help="Turn on partial hot-reloading.")
    parser.add_argument("-p", "--project",
                        help="Which project to use, from the projects of a workspace.")
    parser.add_argument("--features", action="append",
                        help="The features to use when compiling all targets.")
    parser.add_argument("--lib-features", action="append",
                        help="The features to use when compiling the lib target.")
    parser.add_argument("--lib-cargo-args", action="append",
                        help="Cargo flags for compiling the lib target.")
    parser.add_argument("--bin-features", action="append",
                        help="The features to use when compiling the bin target.")
    parser.add_argument("--bin-cargo-args", action="append",
                        help="Cargo flags for compiling the bin target.")
    parser.add_argument("--wasm-debug", action="store_true",
                        help="Include debug information in the Wasm output.")
    parser.add_argument("-v", dest="verbose", action="count", default=0,
                        help="Verbosity (-v: verbose, -vv: very verbose).")
    parser.add_argument("--js-minify", type=_boolish, default=True,
                        help="Minify javascript assets (release only).")


def _build_parser() -> tuple[argparse.ArgumentParser, argparse.ArgumentParser]:
    parser = argparse.ArgumentParser(prog="wasmsite")
    parser.add_argument("--manifest-path", type=Path, help="Path to Cargo.toml.")
    parser.add_argument("--log", action="append", choices=[item.value for item in Log],
                        help="Output logs from dependencies (may be repeated).")
    commands = parser.add_subparsers(dest="command", required=True)

    for name, text in (
        ("build", "Build the server and the client."),
        ("test", "Run the cargo tests for app, client and server."),
        ("end-to-end", "Start the server and end-2-end tests."),
        ("serve", "Serve. Defaults to hydrate mode."),
        ("watch", "Serve and automatically reload when files change."),
    ):
        _add_opts(commands.add_parser(name, help=text, description=text))

    new_parser = commands.add_parser(
        "new", help="Create a new project from a template.",
        description="Create a new project from a template.",
    )
    source = new_parser.add_mutually_exclusive_group()
    source.add_argument("-g", "--git", help="Git repository or starter shortcut to clone.")
    source.add_argument("-p", "--path", help="Local path to copy the template from.")
    revision = new_parser.add_mutually_exclusive_group()
    revision.add_argument("-b", "--branch", help="Branch to use when installing from git.")
    revision.add_argument("-t", "--tag", help="Tag to use when installing from git.")
    new_parser.add_argument("-n", "--name", help="Directory to create / project name.")
    new_parser.add_argument("-f", "--force", action="store_true",
                            help="Don't convert the project name to kebab-case.")
    new_parser.add_argument("-v", "--verbose", action="store_true",
                            help="Enables more verbose output.")
    new_parser.add_argument("--init", action="store_true",
                            help="Generate directly into the current directory.")
    return parser, new_parser


def _takes_value(token: str, long_flags: frozenset[str], short_flags: frozenset[str]) -> bool:
    """Whether the option token takes the following argument as its value."""
    if token.startswith("--"):
        return "=" not in token and token in long_flags
    for pos, char in enumerate(token[1:], start=1):
        if char in short_flags:
            return pos == len(token) - 1
    return False


def _first_positional(
    argv: Sequence[str], start: int, long_flags: frozenset[str], short_flags: frozenset[str]
) -> int:
    i = start
    while i < len(argv):
        token = argv[i]
        if token in ("--", "-") or not token.startswith("-"):
            return i
        i += 2 if _takes_value(token, long_flags, short_flags) else 1
    return len(argv)


def parse_cli(argv: Sequence[str] | None = None) -> Cli:
    """Parse the command line; exits with status 2 on invalid input."""
    args = list(sys.argv[1:] if argv is None else argv)
    parser, new_parser = _build_parser()

    sub = _first_positional(args, 0, _TOP_VALUE_FLAGS, frozenset())
    subcommand = args[sub] if sub < len(args) else None

    split = len(args)
    if subcommand in _TRAILING_COMMANDS:
        split = _first_positional(args, sub + 1, _OPTS_VALUE_FLAGS, _OPTS_SHORT_VALUE_FLAGS)
    head, tail = args[:split], args[split:]
    if tail[:1] == ["--"]:
        tail = tail[1:]

    if subcommand == "new" and sub == len(args) - 1:
        new_parser.print_help(sys.stderr)
        raise SystemExit(2)

    ns = parser.parse_args(head)
    cli = Cli(
        command=ns.command,
        manifest_path=ns.manifest_path,
        log=[Log(value) for value in ns.log or []],
    )
    if ns.command == "new":
        cli.new_command = NewCommand(
            git=ns.git, branch=ns.branch, tag=ns.tag, path=ns.path,
            name=ns.name, force=ns.force, verbose=ns.verbose, init=ns.init,
        )
        return cli

    cli.options = Opts(
        release=ns.release,
        precompress=ns.precompress,
        hot_reload=ns.hot_reload,
        project=ns.project,
        features=ns.features or [],
        lib_features=ns.lib_features or [],
        lib_cargo_args=ns.lib_cargo_args,
        bin_features=ns.bin_features or [],
        bin_cargo_args=ns.bin_cargo_args,
        wasm_debug=ns.wasm_debug,
        verbose=ns.verbose,
        js_minify=ns.js_minify,
    )
    cli.trailing = tail
    return cli