"""Mirroring of the assets directory into the site root."""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Any, Sequence

from .change import ChangeSet

log = logging.getLogger(__name__)


def reserved(src: str | Path, pkg_dir: str | Path) -> list[Path]:
    """Paths inside the assets that must not be copied to the site."""
    return [Path(src) / "index.html", Path(pkg_dir)]


def clean_dest(dest: str | Path, pkg_dir: str | Path) -> None:
    """Remove everything from dest except the package directory and index.html."""
    dest = Path(dest)
    pkg_dir_name = Path(pkg_dir).name
    if not pkg_dir_name:
        log.warning("Assets No site-pkg-dir given, defaulting to 'pkg' for checks what to delete.")
        log.warning("Assets This will probably delete already generated files.")
        pkg_dir_name = "pkg"

    with os.scandir(dest) as entries:
        for entry in list(entries):
            if entry.is_dir(follow_symlinks=False):
                if entry.name != pkg_dir_name:
                    log.debug("Assets removing folder %s", entry.path)
                    shutil.rmtree(entry.path)
            elif entry.name != "index.html":
                log.debug("Assets removing file %s", entry.path)
                os.remove(entry.path)


def mirror(
    src_root: str | Path, dest_root: str | Path, reserved: Sequence[str | Path]
) -> None:
    """Copy the entries of src_root into dest_root, leaving out reserved paths."""
    src_root = Path(src_root)
    dest_root = Path(dest_root)
    skipped = {Path(path) for path in reserved}
    for source in src_root.iterdir():
        target = dest_root / source.relative_to(src_root)
        if source in skipped:
            log.warning("Assets skipping reserved path %s", source)
            continue
        if source.is_dir():
            log.debug("Assets copy folder %s -> %s", source, target)
            shutil.copytree(source, target, dirs_exist_ok=True)
        else:
            log.debug("Assets copy file %s -> %s", source, target)
            shutil.copy(source, target)


def resync(src: str | Path, dest: str | Path, pkg_dir: str | Path) -> None:
    """Clean the site root and copy the assets into it again."""
    clean_dest(dest, pkg_dir)
    mirror(src, dest, reserved(src, pkg_dir))


def sync_assets(proj: Any, changes: ChangeSet) -> bool:
    """Resync the assets when they changed; True when the site was updated."""
    if not changes.need_assets_change():
        return False
    if proj.assets is None:
        return False
    log.debug("Assets starting resync")
    resync(proj.assets.dir, proj.site.root_dir, proj.site.pkg_dir)
    log.debug("Assets finished")
    return True