"""Cargo workspace metadata and the bin and lib packages of a project."""

from __future__ import annotations

import json
import logging
import subprocess
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, Mapping, Protocol, Sequence

from .cli import Opts
from .profile import Profile
from .project_config import ConfigError, ProjectConfig
from .settings import SiteFile, SourcedSiteFile

log = logging.getLogger(__name__)


class _Definition(Protocol):
    bin_package: str
    lib_package: str


def _with_extension(path: Path, ext: str) -> Path:
    """Replace the extension of the file name; an empty one removes it."""
    return path.with_suffix(f".{ext}" if ext else "")


def _unbase(path: Path, base: Path) -> Path:
    try:
        return path.relative_to(base)
    except ValueError as exc:
        raise ConfigError(f"{path} is not inside {base}") from exc


@dataclass(frozen=True)
class Target:
    """A build target of a package."""

    name: str
    kind: tuple[str, ...] = ()
    crate_types: tuple[str, ...] = ()

    def is_bin(self) -> bool:
        return "bin" in self.kind


@dataclass(frozen=True)
class Package:
    """A package of the cargo workspace."""

    id: str
    name: str
    manifest_path: Path
    targets: tuple[Target, ...] = ()
    dependency_paths: tuple[Path, ...] = ()
    metadata: Any = None

    def has_bin_target(self) -> bool:
        return any(target.is_bin() for target in self.targets)

    def cdylib_target(self) -> Target | None:
        """The first target built as a cdylib, if any."""
        return next(
            (target for target in self.targets if "cdylib" in target.crate_types), None
        )


def _parse_target(data: Mapping[str, Any]) -> Target:
    return Target(
        name=data["name"],
        kind=tuple(data.get("kind") or ()),
        crate_types=tuple(data.get("crate_types") or ()),
    )


def _parse_package(data: Mapping[str, Any]) -> Package:
    return Package(
        id=data["id"],
        name=data["name"],
        manifest_path=Path(data["manifest_path"]),
        targets=tuple(_parse_target(target) for target in data.get("targets") or ()),
        dependency_paths=tuple(
            Path(dep["path"]) for dep in data.get("dependencies") or () if dep.get("path")
        ),
        metadata=data.get("metadata"),
    )


@dataclass
class Metadata:
    """The parts of the cargo metadata output that the build needs."""

    workspace_root: Path
    target_directory: Path
    packages: list[Package] = field(default_factory=list)
    workspace_members: list[str] = field(default_factory=list)
    workspace_metadata: Any = None

    @classmethod
    def from_json(cls, data: str | bytes | Mapping[str, Any]) -> Metadata:
        """Build from the JSON text or the decoded object of `cargo metadata`."""
        if isinstance(data, (str, bytes)):
            try:
                data = json.loads(data)
            except json.JSONDecodeError as exc:
                raise ConfigError(f"invalid cargo metadata: {exc}") from exc
        if not isinstance(data, Mapping):
            raise ConfigError("invalid cargo metadata: expected an object")
        try:
            return cls(
                workspace_root=Path(data["workspace_root"]),
                target_directory=Path(data["target_directory"]),
                packages=[_parse_package(pkg) for pkg in data.get("packages") or ()],
                workspace_members=list(data.get("workspace_members") or ()),
                workspace_metadata=data.get("metadata"),
            )
        except KeyError as exc:
            raise ConfigError(f"invalid cargo metadata: missing {exc.args[0]}") from exc

    @classmethod
    def load(cls, manifest_path: str | Path) -> Metadata:
        """Run `cargo metadata` for the manifest and parse its output."""
        command = [
            "cargo",
            "metadata",
            "--format-version",
            "1",
            "--no-deps",
            "--manifest-path",
            str(manifest_path),
        ]
        try:
            result = subprocess.run(command, capture_output=True, text=True, check=False)
        except OSError as exc:
            raise ConfigError(f"could not run cargo metadata: {exc}") from exc
        if result.returncode != 0:
            raise ConfigError(f"cargo metadata failed: {result.stderr.strip()}")
        return cls.from_json(result.stdout)

    def workspace_packages(self) -> list[Package]:
        members = set(self.workspace_members)
        return [pkg for pkg in self.packages if pkg.id in members]

    def rel_target_dir(self) -> Path:
        """The target directory relative to the workspace root, when inside it."""
        try:
            return self.target_directory.relative_to(self.workspace_root)
        except ValueError:
            return self.target_directory

    def _relative(self, path: Path) -> Path:
        try:
            return path.relative_to(self.workspace_root)
        except ValueError:
            return path

    def src_path_dependencies(self, package_id: str) -> list[Path]:
        """The src dirs of the path dependencies of a package, followed transitively."""
        by_id = {pkg.id: pkg for pkg in self.packages}
        by_dir = {pkg.manifest_path.parent: pkg for pkg in self.packages}
        root = by_id.get(package_id)
        if root is None:
            return []
        seen_dirs = {root.manifest_path.parent}

        def visit(pkg: Package) -> Iterator[Path]:
            for dep_dir in pkg.dependency_paths:
                if dep_dir in seen_dirs:
                    continue
                seen_dirs.add(dep_dir)
                yield self._relative(dep_dir) / "src"
                dep = by_dir.get(dep_dir)
                if dep is not None:
                    yield from visit(dep)

        return list(visit(root))


def _src_paths(metadata: Metadata, package: Package, rel_dir: Path) -> list[Path]:
    paths = metadata.src_path_dependencies(package.id)
    paths.append(Path("src") if rel_dir == Path(".") else rel_dir / "src")
    return paths


@dataclass
class BinPackage:
    """The server package of a project and how to build it."""

    name: str
    abs_dir: Path
    rel_dir: Path
    exe_file: Path
    target: str
    features: list[str]
    default_features: bool
    src_paths: list[Path]
    profile: Profile
    target_triple: str | None = None
    target_dir: str | None = None
    cargo_command: str | None = None
    cargo_args: list[str] | None = None
    bin_args: list[str] | None = None

    @classmethod
    def resolve(
        cls,
        cli: Opts,
        metadata: Metadata,
        project: _Definition,
        config: ProjectConfig,
        bin_args: Sequence[str] | None,
    ) -> BinPackage:
        features = list(cli.bin_features or config.bin_features)
        features += config.features
        features += cli.features

        name = project.bin_package
        package = next(
            (
                pkg
                for pkg in metadata.workspace_packages()
                if pkg.name == name and pkg.has_bin_target()
            ),
            None,
        )
        if package is None:
            raise ConfigError(f'Could not find the project bin-package "{name}"')

        targets = [target for target in package.targets if target.is_bin()]
        if config.bin_target:
            target = next((t for t in targets if t.name == config.bin_target), None)
            if target is None:
                raise ConfigError(
                    "Could not find the target specified: [[workspace.metadata.leptos]] "
                    f'bin-target = "{config.bin_target}"'
                )
        elif len(targets) == 1:
            target = targets[0]
        elif not targets:
            raise ConfigError(f"No bin targets found for member {name}")
        else:
            raise ConfigError(
                f'Several bin targets found for member "{name}", please specify which one '
                'to use with: [[workspace.metadata.leptos]] bin-target = "name"'
            )

        abs_dir = package.manifest_path.parent
        rel_dir = _unbase(abs_dir, metadata.workspace_root)
        profile = Profile.resolve(
            cli.release, config.bin_profile_release, config.bin_profile_dev
        )

        triple = config.bin_target_triple
        if sys.platform == "win32" and (triple is None or "-pc-windows-" in triple):
            file_ext = "exe"
        elif triple is not None and triple.startswith("wasm32-"):
            file_ext = "wasm"
        else:
            file_ext = ""
        base = (
            Path(config.bin_target_dir)
            if config.bin_target_dir is not None
            else metadata.rel_target_dir()
        )
        if triple is not None:
            base = base / triple
        exe_name = config.bin_exe_name if config.bin_exe_name is not None else name
        exe_file = _with_extension(base / str(profile) / exe_name, file_ext)

        cargo_args = cli.bin_cargo_args if cli.bin_cargo_args is not None else config.bin_cargo_args
        log.debug("Bin cargo command %s", config.bin_cargo_command)
        return cls(
            name=name,
            abs_dir=abs_dir,
            rel_dir=rel_dir,
            exe_file=exe_file,
            target=target.name,
            features=features,
            default_features=config.bin_default_features,
            src_paths=_src_paths(metadata, package, rel_dir),
            profile=profile,
            target_triple=triple,
            target_dir=config.bin_target_dir,
            cargo_command=config.bin_cargo_command,
            cargo_args=list(cargo_args) if cargo_args is not None else None,
            bin_args=list(bin_args) if bin_args is not None else None,
        )


@dataclass
class LibPackage:
    """The front-end package of a project and the files it produces."""

    name: str
    abs_dir: Path
    rel_dir: Path
    wasm_file: SourcedSiteFile
    js_file: SiteFile
    features: list[str]
    default_features: bool
    output_name: str
    src_paths: list[Path]
    front_target_path: Path
    profile: Profile
    cargo_args: list[str] | None = None

    @classmethod
    def resolve(
        cls,
        cli: Opts,
        metadata: Metadata,
        project: _Definition,
        config: ProjectConfig,
    ) -> LibPackage:
        name = project.lib_package
        output_name = config.output_name or name.replace("-", "_")

        package = next(
            (pkg for pkg in metadata.workspace_packages() if pkg.name == name), None
        )
        if package is None:
            raise ConfigError(f'Could not find the project lib-package "{name}"')

        features = list(cli.lib_features or config.lib_features)
        features += config.features
        features += cli.features

        abs_dir = package.manifest_path.parent
        rel_dir = _unbase(abs_dir, metadata.workspace_root)
        profile = Profile.resolve(
            cli.release, config.lib_profile_release, config.lib_profile_dev
        )

        wasm_site = _with_extension(config.site_pkg_dir / output_name, "wasm")
        wasm_file = SourcedSiteFile(
            source=_with_extension(
                metadata.rel_target_dir()
                / "front"
                / "wasm32-unknown-unknown"
                / str(profile)
                / name.replace("-", "_"),
                "wasm",
            ),
            dest=config.site_root / wasm_site,
            site=wasm_site,
        )
        js_site = _with_extension(config.site_pkg_dir / output_name, "js")
        js_file = SiteFile(dest=config.site_root / js_site, site=js_site)

        cargo_args = cli.lib_cargo_args if cli.lib_cargo_args is not None else config.lib_cargo_args
        return cls(
            name=name,
            abs_dir=abs_dir,
            rel_dir=rel_dir,
            wasm_file=wasm_file,
            js_file=js_file,
            features=features,
            default_features=config.lib_default_features,
            output_name=output_name,
            src_paths=_src_paths(metadata, package, rel_dir),
            front_target_path=metadata.target_directory / "front",
            profile=profile,
            cargo_args=list(cargo_args) if cargo_args is not None else None,
        )