"""Derived settings of a project: site layout, style, assets, end-to-end and hash file."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from .project_config import ConfigError, ProjectConfig
from .version import VersionConfig

log = logging.getLogger(__name__)


def _with_extension(path: Path, ext: str) -> Path:
    return path.with_suffix(f".{ext}")


@dataclass(frozen=True)
class SiteFile:
    """A file of the generated site."""

    dest: Path
    """Where the file is written."""
    site: Path
    """The path of the file relative to the site root."""


@dataclass(frozen=True)
class SourcedSiteFile:
    """A site file produced from a source file."""

    source: Path
    dest: Path
    site: Path


@dataclass(frozen=True)
class Site:
    """The layout and addresses of the generated site."""

    root_dir: Path
    pkg_dir: Path
    addr: str
    reload_port: int

    @classmethod
    def from_config(cls, config: ProjectConfig) -> Site:
        return cls(
            root_dir=config.site_root,
            pkg_dir=config.site_pkg_dir,
            addr=config.site_addr,
            reload_port=config.reload_port,
        )

    def root_relative_pkg_dir(self) -> Path:
        """The package directory inside the site root."""
        return self.root_dir / self.pkg_dir


@dataclass(frozen=True)
class TailwindConfig:
    """Inputs and output of the tailwind step."""

    input_file: Path
    config_file: Path | None
    tmp_file: Path

    @classmethod
    def from_config(cls, config: ProjectConfig) -> TailwindConfig | None:
        """The tailwind settings, or None when no input file is configured."""
        if config.tailwind_input_file is None:
            if config.tailwind_config_file is not None:
                raise ConfigError(
                    "The Cargo.toml `tailwind-input-file` is required when using "
                    "`tailwind-config-file`"
                )
            return None
        input_file = config.config_dir / config.tailwind_input_file

        if VersionConfig.TAILWIND.version().startswith("v4"):
            if (
                config.tailwind_config_file is not None
                or (config.config_dir / "tailwind.config.js").exists()
            ):
                log.info(
                    "JavaScript config files are no longer required in Tailwind CSS v4. "
                    "If you still need one, see the Tailwind CSS upgrade guide."
                )
            config_file = config.tailwind_config_file
        else:
            config_file = config.config_dir / (
                config.tailwind_config_file or Path("tailwind.config.js")
            )

        return cls(
            input_file=input_file,
            config_file=config_file,
            tmp_file=config.tmp_dir / "tailwind.css",
        )


@dataclass(frozen=True)
class StyleConfig:
    """The style sources of a project and the stylesheet they produce."""

    file: SourcedSiteFile | None
    browserquery: str
    tailwind: TailwindConfig | None
    site_file: SiteFile

    @classmethod
    def from_config(cls, config: ProjectConfig) -> StyleConfig:
        site_rel = _with_extension(config.site_pkg_dir / config.output_name, "css")
        site_file = SiteFile(dest=config.site_root / site_rel, site=site_rel)
        style_file = None
        if config.style_file is not None:
            style_file = SourcedSiteFile(
                source=config.config_dir / config.style_file,
                dest=config.site_root / site_rel,
                site=site_rel,
            )
        return cls(
            file=style_file,
            browserquery=config.browserquery,
            tailwind=TailwindConfig.from_config(config),
            site_file=site_file,
        )


@dataclass(frozen=True)
class AssetsConfig:
    """The directory whose content is copied into the site root."""

    dir: Path

    @classmethod
    def from_config(cls, config: ProjectConfig) -> AssetsConfig | None:
        if config.assets_dir is None:
            return None
        return cls(dir=config.config_dir / config.assets_dir)


@dataclass(frozen=True)
class End2EndConfig:
    """The command that runs the end-to-end tests and where it runs."""

    cmd: str
    dir: Path

    @classmethod
    def from_config(cls, config: ProjectConfig) -> End2EndConfig | None:
        if config.end2end_cmd is None:
            return None
        return cls(cmd=config.end2end_cmd, dir=config.end2end_dir or Path(""))


@dataclass(frozen=True)
class HashFile:
    """The file listing the hashes of the front-end files."""

    abs: Path
    rel: Path

    @classmethod
    def create(
        cls,
        workspace_root: Path | None,
        exe_file: Path,
        bin_abs_dir: Path,
        rel: Path | None,
    ) -> HashFile:
        """Place the hash file next to the server executable."""
        rel = Path(rel) if rel is not None else Path("hash.txt")
        exe_file_dir = Path(exe_file).parent
        base = Path(workspace_root) if workspace_root is not None else Path(bin_abs_dir)
        log.debug("Hash file placed in %s", exe_file_dir)
        return cls(abs=base / exe_file_dir / rel, rel=rel)