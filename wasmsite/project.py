"""Projects of a workspace and the loaded configuration."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Sequence

from .cli import Opts
from .packages import BinPackage, LibPackage, Metadata, Package
from .project_config import ConfigError, ProjectConfig
from .settings import AssetsConfig, End2EndConfig, HashFile, Site, StyleConfig

log = logging.getLogger(__name__)


def _leptos_metadata(metadata: Any) -> Any:
    if isinstance(metadata, Mapping):
        return metadata.get("leptos")
    return None


@dataclass(frozen=True)
class ProjectDefinition:
    """Which packages make up a project."""

    name: str
    bin_package: str
    lib_package: str

    @classmethod
    def _from_section(cls, section: Mapping[str, Any]) -> ProjectDefinition:
        values = []
        for key in ("name", "bin-package", "lib-package"):
            value = section.get(key)
            if not isinstance(value, str):
                raise ConfigError(f"missing or invalid field `{key}` in project section")
            values.append(value)
        return cls(*values)

    @classmethod
    def _from_workspace(
        cls, leptos: Any, directory: Path, metadata: Metadata
    ) -> list[tuple[ProjectDefinition, ProjectConfig]]:
        if not isinstance(leptos, list):
            return []
        found = []
        for section in leptos:
            conf = ProjectConfig.parse(directory, section, metadata.target_directory)
            found.append((cls._from_section(section), conf))
        return found

    @classmethod
    def _from_project(
        cls, package: Package, leptos: Any, directory: Path, metadata: Metadata
    ) -> tuple[ProjectDefinition, ProjectConfig]:
        conf = ProjectConfig.parse(directory, leptos, metadata.target_directory)
        if package.cdylib_target() is None:
            raise ConfigError(
                "Cargo.toml has leptos metadata but is missing a cdylib library target. "
                f"{package.manifest_path}"
            )
        if not package.has_bin_target():
            raise ConfigError(
                f"Cargo.toml has leptos metadata but is missing a bin target. {package.manifest_path}"
            )
        return cls(package.name, package.name, package.name), conf

    @classmethod
    def parse_all(cls, metadata: Metadata) -> list[tuple[ProjectDefinition, ProjectConfig]]:
        """Projects from the workspace metadata, then from the member packages."""
        found = []
        workspace_leptos = _leptos_metadata(metadata.workspace_metadata)
        if workspace_leptos is not None:
            found += cls._from_workspace(workspace_leptos, Path(""), metadata)
        for package in metadata.workspace_packages():
            leptos = _leptos_metadata(package.metadata)
            if leptos is None:
                continue
            try:
                rel_manifest = package.manifest_path.relative_to(metadata.workspace_root)
            except ValueError as exc:
                raise ConfigError(
                    f"{package.manifest_path} is not inside {metadata.workspace_root}"
                ) from exc
            found.append(cls._from_project(package, leptos, rel_manifest.parent, metadata))
        return found


def _flag(value: bool) -> str:
    return "true" if value else "false"


@dataclass
class Project:
    """A fully resolved project: its packages, site and build settings."""

    working_dir: Path
    name: str
    lib: LibPackage
    bin: BinPackage
    style: StyleConfig
    watch: bool
    release: bool
    precompress: bool
    hot_reload: bool
    wasm_debug: bool
    site: Site
    end2end: End2EndConfig | None
    assets: AssetsConfig | None
    js_dir: Path
    watch_additional_files: list[Path]
    hash_file: HashFile
    hash_files: bool
    js_minify: bool
    server_fn_prefix: str | None = None
    disable_server_fn_hash: bool = False
    server_fn_mod_path: bool = False

    @classmethod
    def resolve(
        cls,
        cli: Opts,
        cwd: str | Path,
        metadata: Metadata,
        watch: bool,
        bin_args: Sequence[str] | None,
    ) -> list[Project]:
        """All projects, or just the one whose packages lie under cwd."""
        cwd = Path(cwd)
        is_workspace = len(metadata.workspace_members) > 1
        log.debug("Detected workspace: %s", is_workspace)
        resolved = []
        for definition, config in ProjectDefinition.parse_all(metadata):
            if not config.output_name:
                config.output_name = definition.name
            lib = LibPackage.resolve(cli, metadata, definition, config)
            bin_package = BinPackage.resolve(cli, metadata, definition, config, bin_args)
            hash_file = HashFile.create(
                metadata.workspace_root if is_workspace else None,
                bin_package.exe_file,
                bin_package.abs_dir,
                config.hash_file_name,
            )
            resolved.append(
                cls(
                    working_dir=metadata.workspace_root,
                    name=definition.name,
                    lib=lib,
                    bin=bin_package,
                    style=StyleConfig.from_config(config),
                    watch=watch,
                    release=cli.release,
                    precompress=cli.precompress,
                    hot_reload=cli.hot_reload,
                    wasm_debug=cli.wasm_debug,
                    site=Site.from_config(config),
                    end2end=End2EndConfig.from_config(config),
                    assets=AssetsConfig.from_config(config),
                    js_dir=config.js_dir if config.js_dir is not None else Path("src"),
                    watch_additional_files=list(config.watch_additional_files or []),
                    hash_file=hash_file,
                    hash_files=config.hash_files,
                    js_minify=cli.release and cli.js_minify and config.js_minify,
                    server_fn_prefix=config.server_fn_prefix,
                    disable_server_fn_hash=config.disable_server_fn_hash,
                    server_fn_mod_path=config.server_fn_mod_path,
                )
            )

        in_cwd = [
            proj
            for proj in resolved
            if proj.bin.abs_dir.is_relative_to(cwd) or proj.lib.abs_dir.is_relative_to(cwd)
        ]
        return in_cwd if len(in_cwd) == 1 else resolved

    def to_envs(self) -> list[tuple[str, str]]:
        """Environment variables for the external commands of the build."""
        envs = [
            ("LEPTOS_OUTPUT_NAME", self.lib.output_name),
            ("LEPTOS_SITE_ROOT", str(self.site.root_dir)),
            ("LEPTOS_SITE_PKG_DIR", str(self.site.pkg_dir)),
            ("LEPTOS_SITE_ADDR", self.site.addr),
            ("LEPTOS_RELOAD_PORT", str(self.site.reload_port)),
            ("LEPTOS_LIB_DIR", str(self.lib.rel_dir)),
            ("LEPTOS_BIN_DIR", str(self.bin.rel_dir)),
            ("LEPTOS_JS_MINIFY", _flag(self.js_minify)),
            ("LEPTOS_HASH_FILES", _flag(self.hash_files)),
        ]
        if self.hash_files:
            envs.append(("LEPTOS_HASH_FILE_NAME", str(self.hash_file.rel)))
        if self.watch:
            envs.append(("LEPTOS_WATCH", "true"))
        if self.server_fn_prefix is not None:
            envs.append(("SERVER_FN_PREFIX", self.server_fn_prefix))
        if self.disable_server_fn_hash:
            envs.append(("DISABLE_SERVER_FN_HASH", "true"))
        if self.server_fn_mod_path:
            envs.append(("SERVER_FN_MOD_PATH", "true"))
        return envs


def _names(projects: Sequence[Project]) -> str:
    return ", ".join(proj.name for proj in projects)


@dataclass
class Config:
    """The loaded configuration: the selected projects and the options."""

    working_dir: Path
    projects: list[Project] = field(default_factory=list)
    cli: Opts = field(default_factory=Opts)
    watch: bool = False

    @classmethod
    def load(
        cls,
        cli: Opts,
        cwd: str | Path,
        manifest_path: str | Path,
        watch: bool,
        bin_args: Sequence[str] | None,
    ) -> Config:
        """Read the cargo metadata of the manifest and resolve its projects."""
        metadata = Metadata.load(manifest_path)
        return cls.from_metadata(cli, cwd, metadata, watch, bin_args)

    @classmethod
    def from_metadata(
        cls,
        cli: Opts,
        cwd: str | Path,
        metadata: Metadata,
        watch: bool,
        bin_args: Sequence[str] | None,
    ) -> Config:
        projects = Project.resolve(cli, cwd, metadata, watch, bin_args)
        if not projects:
            raise ConfigError(
                "Please define leptos projects in the workspace Cargo.toml sections "
                "[[workspace.metadata.leptos]]"
            )
        if cli.project is not None:
            chosen = [proj for proj in projects if proj.name == cli.project]
            if not chosen:
                raise ConfigError(
                    f'The specified project "{cli.project}" not found. '
                    f"Available projects: {_names(projects)}"
                )
            projects = chosen[:1]
        return cls(working_dir=metadata.workspace_root, projects=projects, cli=cli, watch=watch)

    def current_project(self) -> Project:
        """The only selected project; raises when several are available."""
        if len(self.projects) == 1:
            return self.projects[0]
        raise ConfigError(
            f"There are several projects available ({_names(self.projects)}). "
            "Please select one of them with the command line parameter --project"
        )