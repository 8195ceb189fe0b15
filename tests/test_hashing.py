import string
from pathlib import Path
from types import SimpleNamespace

import pytest

from wasmsite.hashing import (
    add_hashes_to_site,
    compute_front_file_hashes,
    rename_files,
    replace_in_file,
)
from wasmsite.settings import HashFile, Site, SiteFile

URLSAFE = set(string.ascii_letters + string.digits + "-_")


def _write(path: Path, content: bytes) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path


def test_empty_file_hash_is_md5_base64url_unpadded(tmp_path):
    pkg = tmp_path / "pkg"
    empty = _write(pkg / "app.wasm", b"")
    hashes = compute_front_file_hashes(pkg, pkg / "app.css")
    assert hashes == {empty: "1B2M2Y8AsgTpgAmY7PhCfg"}


def test_hashes_are_urlsafe_and_depend_on_content(tmp_path):
    pkg = tmp_path / "pkg"
    a = _write(pkg / "a.js", b"one")
    b = _write(pkg / "b.js", b"one")
    c = _write(pkg / "c.js", b"two")
    hashes = compute_front_file_hashes(pkg, pkg / "app.css")
    assert hashes[a] == hashes[b]
    assert hashes[a] != hashes[c]
    assert all(set(h) <= URLSAFE and "=" not in h for h in hashes.values())


def test_skips_other_css_and_inline_snippets(tmp_path):
    pkg = tmp_path / "pkg"
    css = _write(pkg / "app.css", b"body{}")
    _write(pkg / "other.css", b"p{}")
    _write(pkg / "snippets" / "crate" / "inline0.js", b"x")
    kept = _write(pkg / "snippets" / "crate" / "module.js", b"y")
    hashes = compute_front_file_hashes(pkg, css)
    assert set(hashes) == {css, kept}


def test_missing_dir_gives_no_hashes(tmp_path):
    assert compute_front_file_hashes(tmp_path / "nope", tmp_path / "a.css") == {}


def test_rename_files_inserts_hash(tmp_path):
    path = _write(tmp_path / "app.js", b"code")
    renamed = rename_files({path: "HASH"})
    new_path = renamed[path]
    assert new_path == tmp_path / "app.HASH.js"
    assert new_path.read_bytes() == b"code"
    assert not path.exists()


def test_rename_files_requires_extension(tmp_path):
    path = _write(tmp_path / "Makefile", b"")
    with pytest.raises(ValueError):
        rename_files({path: "HASH"})


def test_replace_in_file_uses_relative_paths(tmp_path):
    root = tmp_path / "pkg"
    js = _write(root / "app.js", b"load('app.wasm')")
    replace_in_file(js, {root / "app.wasm": root / "app.H.wasm"}, root)
    assert js.read_text() == "load('app.H.wasm')"


def test_replace_in_file_rejects_paths_outside_root(tmp_path):
    root = tmp_path / "pkg"
    js = _write(root / "app.js", b"")
    with pytest.raises(ValueError):
        replace_in_file(js, {tmp_path / "x.wasm": tmp_path / "y.wasm"}, root)


def _project(tmp_path):
    root = tmp_path / "site"
    pkg = Path("pkg")

    def site_file(name):
        return SiteFile(dest=root / pkg / name, site=pkg / name)

    return SimpleNamespace(
        site=Site(root_dir=root, pkg_dir=pkg, addr="127.0.0.1:3000", reload_port=3001),
        lib=SimpleNamespace(js_file=site_file("app.js"), wasm_file=site_file("app.wasm")),
        style=SimpleNamespace(site_file=site_file("app.css")),
        hash_file=HashFile(abs=tmp_path / "bin" / "hash.txt", rel=Path("hash.txt")),
    )


def test_add_hashes_to_site(tmp_path):
    proj = _project(tmp_path)
    pkg = proj.site.root_relative_pkg_dir()
    _write(pkg / "app.js", b"init('app.wasm')")
    _write(pkg / "app.wasm", b"\x00asm")
    _write(pkg / "app.css", b"body{}")

    renamed = add_hashes_to_site(proj)

    entries = dict(
        line.split(": ") for line in (tmp_path / "bin" / "hash.txt").read_text().splitlines()
    )
    assert sorted(entries) == ["css", "js", "wasm"]
    new_js = renamed[pkg / "app.js"]
    assert new_js == pkg / f"app.{entries['js']}.js"
    assert renamed[pkg / "app.wasm"] == pkg / f"app.{entries['wasm']}.wasm"
    assert new_js.read_text() == f"init('app.{entries['wasm']}.wasm')"


def test_add_hashes_to_site_requires_stylesheet(tmp_path):
    proj = _project(tmp_path)
    pkg = proj.site.root_relative_pkg_dir()
    _write(pkg / "app.js", b"")
    _write(pkg / "app.wasm", b"")
    with pytest.raises(FileNotFoundError):
        add_hashes_to_site(proj)