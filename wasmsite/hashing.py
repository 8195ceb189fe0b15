"""Content hashes in the file names of the generated front-end files."""

from __future__ import annotations

import base64
import hashlib
import logging
import os
from pathlib import Path
from typing import Any, Mapping

log = logging.getLogger(__name__)


def _file_hash(path: Path) -> str:
    digest = hashlib.md5(path.read_bytes()).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def _is_skipped(path: Path, css_file: Path) -> bool:
    if path.suffix == ".css" and path != css_file:
        return True
    # Inline snippets are loaded by the wasm under their plain names.
    return "snippets" in str(path) and "inline" in path.name and path.suffix == ".js"


def compute_front_file_hashes(pkg_dir: str | Path, css_file: str | Path) -> dict[Path, str]:
    """Hash every file under the package directory that gets a hashed name.

    Stylesheets other than ``css_file`` and inline snippet scripts are left out.
    """
    pkg_dir = Path(pkg_dir)
    css_file = Path(css_file)
    hashes: dict[Path, str] = {}
    for root, _dirs, files in os.walk(pkg_dir):
        for name in files:
            path = Path(root) / name
            if not path.is_file() or _is_skipped(path, css_file):
                continue
            hashes[path] = _file_hash(path)
    return hashes


def rename_files(files_to_hashes: Mapping[Path, str]) -> dict[Path, Path]:
    """Rename each file to ``<stem>.<hash>.<ext>``; return old path to new path."""
    old_to_new: dict[Path, Path] = {}
    for path, digest in files_to_hashes.items():
        path = Path(path)
        if not path.stem:
            raise ValueError(f"no file stem: {path}")
        if not path.suffix:
            raise ValueError(f"no extension: {path}")
        new_path = path.with_name(f"{path.stem}.{digest}{path.suffix}")
        try:
            path.replace(new_path)
        except OSError as exc:
            raise OSError(f"Failed to rename {path} to {new_path}: {exc}") from exc
        old_to_new[path] = new_path
    return old_to_new


def replace_in_file(
    path: str | Path, old_to_new: Mapping[Path, Path], root_dir: str | Path
) -> None:
    """Replace the old names with the new ones, both taken relative to root_dir."""
    path = Path(path)
    root_dir = Path(root_dir)
    contents = path.read_text(encoding="utf-8")
    for old_path, new_path in old_to_new.items():
        try:
            old_rel = Path(old_path).relative_to(root_dir)
            new_rel = Path(new_path).relative_to(root_dir)
        except ValueError as exc:
            raise ValueError(f"could not strip root path {root_dir}") from exc
        contents = contents.replace(str(old_rel), str(new_rel))
    path.write_text(contents, encoding="utf-8")


def _extension(path: Path) -> str:
    if not path.suffix:
        raise ValueError(f"no extension: {path}")
    return path.suffix[1:]


def _lookup(mapping: Mapping[Path, Any], path: Path, where: Path) -> Any:
    try:
        return mapping[path]
    except KeyError:
        raise FileNotFoundError(f"{path} was not found in {where}") from None


def add_hashes_to_site(proj: Any) -> dict[Path, Path]:
    """Add content hashes to the css, js and wasm file names and write the hash file.

    Returns the mapping of the original paths to the renamed ones.
    """
    pkg_dir = Path(proj.site.root_relative_pkg_dir())
    js_dest = Path(proj.lib.js_file.dest)
    wasm_dest = Path(proj.lib.wasm_file.dest)
    css_dest = Path(proj.style.site_file.dest)

    files_to_hashes = compute_front_file_hashes(pkg_dir, css_dest)
    log.debug("Hash computed: %s", files_to_hashes)

    renamed = rename_files(files_to_hashes)
    replace_in_file(_lookup(renamed, js_dest, pkg_dir), renamed, pkg_dir)

    hash_path = Path(proj.hash_file.abs)
    try:
        hash_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise OSError(f"Failed to create parent dir for {hash_path}: {exc}") from exc

    lines = "".join(
        f"{_extension(dest)}: {_lookup(files_to_hashes, dest, pkg_dir)}\n"
        for dest in (js_dest, wasm_dest, css_dest)
    )
    try:
        hash_path.write_text(lines, encoding="utf-8")
    except OSError as exc:
        raise OSError(f"Failed to write hash file to {hash_path}: {exc}") from exc
    log.debug("Hash written to %s", hash_path)
    return renamed