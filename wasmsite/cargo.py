"""Cargo invocations for the server and front-end packages, and the test command."""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass, field
from typing import Iterable

from .project import Config, Project

log = logging.getLogger(__name__)


def build_cargo_command_string(args: Iterable[str]) -> str:
    """A printable cargo command line, quoting arguments that contain spaces."""
    parts = ["cargo"]
    parts += (f"'{arg}'" if " " in arg else arg for arg in args)
    return " ".join(parts)


@dataclass
class CargoCommand:
    """A cargo command ready to run: the program, its arguments and extra environment."""

    program: list[str] = field(default_factory=lambda: ["cargo"])
    args: list[str] = field(default_factory=list)
    envs: list[tuple[str, str]] = field(default_factory=list)

    def env_string(self) -> str:
        """The extra environment as space separated NAME=value pairs."""
        return " ".join(f"{name}={value}" for name, value in self.envs)

    def line(self) -> str:
        """The cargo command line as it is shown to the user."""
        return build_cargo_command_string(self.args)

    def spawn(self) -> subprocess.Popen:
        """Start the command with the extra environment on top of the current one."""
        env = {**os.environ, **dict(self.envs)}
        return subprocess.Popen([*self.program, *self.args], env=env)


def build_cargo_front_cmd(cmd: str, wasm: bool, proj: Project) -> CargoCommand:
    """The cargo command that builds or tests the front-end library."""
    lib = proj.lib
    args = [
        cmd,
        f"--package={lib.name}",
        "--lib",
        f"--target-dir={lib.front_target_path}",
    ]
    if wasm:
        args.append("--target=wasm32-unknown-unknown")
    if not lib.default_features:
        args.append("--no-default-features")
    if lib.features:
        args.append(f"--features={','.join(lib.features)}")
    if lib.cargo_args is not None:
        args += lib.cargo_args
    args += lib.profile.args()
    return CargoCommand(program=["cargo"], args=args, envs=proj.to_envs())


def _server_program(proj: Project) -> list[str]:
    raw_command = proj.bin.cargo_command if proj.bin.cargo_command is not None else "cargo"
    try:
        program = shlex.split(raw_command)
    except ValueError as exc:
        raise ValueError(f"bin-cargo-command cannot be parsed: {raw_command!r}") from exc
    if not program:
        raise ValueError("bin-cargo-command is empty")
    return program


def build_cargo_server_cmd(cmd: str, proj: Project) -> CargoCommand:
    """The cargo command that builds or tests the server package."""
    bin_package = proj.bin
    args = [cmd, f"--package={bin_package.name}"]

    # A wasm server is built as a library so that a wasm runtime can host it.
    server_is_wasm = bin_package.target_triple is not None and "wasm" in bin_package.target_triple
    if cmd != "test":
        args.append("--lib" if server_is_wasm else f"--bin={bin_package.target}")

    if bin_package.target_dir is not None:
        args.append(f"--target-dir={bin_package.target_dir}")
    if bin_package.target_triple is not None:
        args.append(f"--target={bin_package.target_triple}")
    if not bin_package.default_features:
        args.append("--no-default-features")
    if bin_package.features:
        args.append(f"--features={','.join(bin_package.features)}")

    log.debug("Bin cargo args: %s", bin_package.cargo_args)
    if bin_package.cargo_args is not None:
        args += bin_package.cargo_args
    args += bin_package.profile.args()
    return CargoCommand(program=_server_program(proj), args=args, envs=proj.to_envs())


def front_cargo_process(
    cmd: str, wasm: bool, proj: Project
) -> tuple[CargoCommand, subprocess.Popen]:
    """Start the front-end cargo command; return it with the running process."""
    command = build_cargo_front_cmd(cmd, wasm, proj)
    return command, command.spawn()


def server_cargo_process(cmd: str, proj: Project) -> tuple[CargoCommand, subprocess.Popen]:
    """Start the server cargo command; return it with the running process."""
    command = build_cargo_server_cmd(cmd, proj)
    return command, command.spawn()


def test_project(proj: Project) -> bool:
    """Run the server and front-end tests; True when both pass."""
    command, process = server_cargo_process("test", proj)
    server_status = process.wait()
    log.debug("Cargo envs: %s", command.env_string())
    log.info("Cargo server tests finished %s", command.line())

    command, process = front_cargo_process("test", False, proj)
    front_status = process.wait()
    log.debug("Cargo envs: %s", command.env_string())
    log.info("Cargo front tests finished %s", command.line())

    return server_status == 0 and front_status == 0


def test_all(config: Config) -> None:
    """Test every project; raise naming the first project whose tests failed."""
    first_failed: Project | None = None
    for proj in config.projects:
        if not test_project(proj) and first_failed is None:
            first_failed = proj
    if first_failed is not None:
        raise RuntimeError(f"Tests failed for {first_failed.name}")