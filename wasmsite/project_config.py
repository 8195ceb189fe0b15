"""Per-project settings read from the leptos metadata section and the environment."""

from __future__ import annotations

import ipaddress
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Iterable, Mapping

from dotenv import dotenv_values

from .version import ENV_VAR_LEPTOS_SASS_VERSION, ENV_VAR_LEPTOS_TAILWIND_VERSION

log = logging.getLogger(__name__)

CARGO_TARGET_DIR_MARKER = "CARGO_TARGET_DIR"
"""A site root starting with this is placed inside the cargo target directory."""
CARGO_BUILD_TARGET_DIR_MARKER = "CARGO_BUILD_TARGET_DIR"
"""A site root starting with this is placed inside the cargo target directory."""

_FORBIDDEN_SITE_ROOTS = ("/", ".", CARGO_TARGET_DIR_MARKER, CARGO_BUILD_TARGET_DIR_MARKER)


class ConfigError(ValueError):
    """The project configuration is invalid."""


def _parse_port(text: str, what: str) -> int:
    digits = text[1:] if text.startswith("+") else text
    if not digits.isdigit() or int(digits) > 65535:
        raise ConfigError(f"invalid {what}: {text!r}")
    return int(digits)


def _parse_socket_addr(text: str) -> tuple[str, int]:
    """Split 'ip:port' or '[ipv6]:port' into a normalised address and its port."""
    if text.startswith("["):
        host, sep, port = text[1:].partition("]:")
        if not sep:
            raise ConfigError(f"invalid socket address: {text!r}")
        try:
            ip: ipaddress.IPv4Address | ipaddress.IPv6Address = ipaddress.IPv6Address(host)
        except ValueError as exc:
            raise ConfigError(f"invalid socket address: {text!r}") from exc
        if not port.isdigit():
            raise ConfigError(f"invalid socket address: {text!r}")
        number = _parse_port(port, "socket address port")
        return f"[{ip}]:{number}", number
    host, sep, port = text.rpartition(":")
    if not sep or not port.isdigit():
        raise ConfigError(f"invalid socket address: {text!r}")
    try:
        ip = ipaddress.IPv4Address(host)
    except ValueError as exc:
        raise ConfigError(f"invalid socket address: {text!r}") from exc
    number = _parse_port(port, "socket address port")
    return f"{ip}:{number}", number


def _parse_bool(text: str) -> bool:
    if text == "true":
        return True
    if text == "false":
        return False
    raise ConfigError(f"invalid boolean value: {text!r}")


def _setting(kind: str, default: Any = None, factory: Any = None) -> Any:
    if factory is not None:
        return field(default_factory=factory, metadata={"kind": kind})
    return field(default=default, metadata={"kind": kind})


def _type_error(key: str, expected: str, value: Any) -> ConfigError:
    return ConfigError(f"invalid type for {key}: expected {expected}, got {value!r}")


def _convert(kind: str, key: str, value: Any) -> Any:
    if value is None:
        if kind.startswith("opt_"):
            return None
        raise _type_error(key, kind, value)
    base = kind.removeprefix("opt_")
    if base in ("str", "path"):
        if not isinstance(value, str):
            raise _type_error(key, "a string", value)
        return Path(value) if base == "path" else value
    if base == "bool":
        if not isinstance(value, bool):
            raise _type_error(key, "a boolean", value)
        return value
    if base in ("strs", "paths"):
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise _type_error(key, "a list of strings", value)
        return [Path(item) for item in value] if base == "paths" else list(value)
    if base == "port":
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 65535:
            raise _type_error(key, "a port number", value)
        return value
    if base == "addr":
        if not isinstance(value, str):
            raise _type_error(key, "a socket address", value)
        return _parse_socket_addr(value)[0]
    raise AssertionError(f"unknown setting kind {kind}")


@dataclass
class ProjectConfig:
    """The settings of one project, as written in its metadata section."""

    output_name: str = _setting("str", "")
    site_addr: str = _setting("addr", "127.0.0.1:3000")
    site_root: Path = _setting("path", factory=lambda: Path(CARGO_TARGET_DIR_MARKER) / "site")
    site_pkg_dir: Path = _setting("path", factory=lambda: Path("pkg"))
    style_file: Path | None = _setting("opt_path")
    hash_file_name: Path | None = _setting("opt_path")
    hash_files: bool = _setting("bool", False)
    tailwind_input_file: Path | None = _setting("opt_path")
    tailwind_config_file: Path | None = _setting("opt_path")
    assets_dir: Path | None = _setting("opt_path")
    js_dir: Path | None = _setting("opt_path")
    js_minify: bool = _setting("bool", True)
    watch_additional_files: list[Path] | None = _setting("opt_paths")
    reload_port: int = _setting("port", 3001)
    end2end_cmd: str | None = _setting("opt_str")
    end2end_dir: Path | None = _setting("opt_path")
    browserquery: str = _setting("str", "defaults")
    bin_target: str = _setting("str", "")
    bin_target_triple: str | None = _setting("opt_str")
    bin_target_dir: str | None = _setting("opt_str")
    bin_cargo_command: str | None = _setting("opt_str")
    bin_cargo_args: list[str] | None = _setting("opt_strs")
    bin_exe_name: str | None = _setting("opt_str")
    features: list[str] = _setting("strs", factory=list)
    lib_features: list[str] = _setting("strs", factory=list)
    lib_default_features: bool = _setting("bool", False)
    lib_cargo_args: list[str] | None = _setting("opt_strs")
    bin_features: list[str] = _setting("strs", factory=list)
    bin_default_features: bool = _setting("bool", False)
    server_fn_prefix: str | None = _setting("opt_str")
    disable_server_fn_hash: bool = _setting("bool", False)
    server_fn_mod_path: bool = _setting("bool", False)
    separate_front_target_dir: bool | None = _setting("opt_bool")
    lib_profile_dev: str | None = _setting("opt_str")
    lib_profile_release: str | None = _setting("opt_str")
    bin_profile_dev: str | None = _setting("opt_str")
    bin_profile_release: str | None = _setting("opt_str")
    config_dir: Path = field(default_factory=lambda: Path(""))
    tmp_dir: Path = field(default_factory=lambda: Path(""))

    @property
    def site_port(self) -> int:
        """The port of the site address."""
        return _parse_socket_addr(self.site_addr)[1]

    @classmethod
    def _from_section(cls, section: Mapping[str, Any]) -> ProjectConfig:
        if not isinstance(section, Mapping):
            raise ConfigError(f"invalid project section: expected a table, got {section!r}")
        values = {}
        for setting in fields(cls):
            kind = setting.metadata.get("kind")
            key = setting.name.replace("_", "-")
            if kind is not None and key in section:
                values[setting.name] = _convert(kind, key, section[key])
        return cls(**values)

    @classmethod
    def parse(
        cls,
        directory: str | Path,
        section: Mapping[str, Any],
        target_directory: str | Path,
    ) -> ProjectConfig:
        """Read a metadata section, overlay .env files and the environment, and validate."""
        directory = Path(directory)
        target_directory = Path(target_directory)
        conf = cls._from_section(section)
        conf.config_dir = directory
        conf.tmp_dir = target_directory / "tmp"
        overlay_env(conf, load_dotenvs(directory))

        if str(conf.site_root) in _FORBIDDEN_SITE_ROOTS:
            raise ConfigError(
                f"site-root cannot be '{conf.site_root}'. "
                "All the content is erased when building the site."
            )
        for marker in (CARGO_TARGET_DIR_MARKER, CARGO_BUILD_TARGET_DIR_MARKER):
            if conf.site_root.parts[:1] == (marker,):
                conf.site_root = target_directory / conf.site_root.relative_to(marker)

        if conf.site_port == conf.reload_port:
            raise ConfigError(
                f"The site-addr port and reload-port cannot be the same: {conf.reload_port}"
            )

        if conf.separate_front_target_dir is not None:
            log.warning("Deprecated: the `separate-front-target-dir` option is deprecated")
            log.warning("It is now unconditionally enabled; you can remove it from your Cargo.toml")
        return conf


def load_dotenvs(directory: str | Path) -> list[tuple[str, str]] | None:
    """The entries of the nearest .env file in the directory or its ancestors."""
    current = Path(directory)
    while True:
        candidate = current / ".env"
        if candidate.is_file():
            return [(key, value or "") for key, value in dotenv_values(candidate).items()]
        parent = current.parent
        if parent == current:
            return None
        current = parent


def overlay_env(
    conf: ProjectConfig,
    dotenvs: Iterable[tuple[str, str]] | None,
    environ: Mapping[str, str] | None = None,
) -> None:
    """Apply .env entries, then the process environment, on top of the config."""
    if dotenvs is not None:
        overlay(conf, dotenvs)
    overlay(conf, (os.environ if environ is None else environ).items())


def overlay(conf: ProjectConfig, envs: Iterable[tuple[str, str]]) -> None:
    """Apply the recognised environment variables to the config."""
    for key, val in envs:
        if key == "LEPTOS_OUTPUT_NAME":
            conf.output_name = val
        elif key == "LEPTOS_SITE_ROOT":
            conf.site_root = Path(val)
        elif key == "LEPTOS_SITE_PKG_DIR":
            conf.site_pkg_dir = Path(val)
        elif key == "LEPTOS_STYLE_FILE":
            conf.style_file = Path(val)
        elif key == "LEPTOS_ASSETS_DIR":
            conf.assets_dir = Path(val)
        elif key == "LEPTOS_SITE_ADDR":
            conf.site_addr = _parse_socket_addr(val)[0]
        elif key == "LEPTOS_RELOAD_PORT":
            conf.reload_port = _parse_port(val, "reload port")
        elif key == "LEPTOS_END2END_CMD":
            conf.end2end_cmd = val
        elif key == "LEPTOS_END2END_DIR":
            conf.end2end_dir = Path(val)
        elif key == "LEPTOS_HASH_FILES":
            conf.hash_files = _parse_bool(val)
        elif key == "LEPTOS_HASH_FILE_NAME":
            conf.hash_file_name = Path(val)
        elif key == "LEPTOS_BROWSERQUERY":
            conf.browserquery = val
        elif key == "LEPTOS_BIN_EXE_NAME":
            conf.bin_exe_name = val
        elif key == "LEPTOS_BIN_TARGET":
            conf.bin_target = val
        elif key == "LEPTOS_BIN_TARGET_TRIPLE":
            conf.bin_target_triple = val
        elif key == "LEPTOS_BIN_TARGET_DIR":
            conf.bin_target_dir = val
        elif key == "LEPTOS_BIN_CARGO_COMMAND":
            conf.bin_cargo_command = val
        elif key == "LEPTOS_JS_MINIFY":
            conf.js_minify = _parse_bool(val)
        elif key == "SERVER_FN_PREFIX":
            conf.server_fn_prefix = val
        elif key == "DISABLE_SERVER_FN_HASH":
            conf.disable_server_fn_hash = True
        elif key in (ENV_VAR_LEPTOS_TAILWIND_VERSION, ENV_VAR_LEPTOS_SASS_VERSION):
            pass
        elif key.startswith("LEPTOS_"):
            log.warning("Env %s is not used", key)