import logging
from pathlib import Path

import pytest

from wasmsite.project_config import (
    ConfigError,
    ProjectConfig,
    load_dotenvs,
    overlay,
    overlay_env,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    import os

    for key in list(os.environ):
        if key.startswith("LEPTOS_") or key in ("SERVER_FN_PREFIX", "DISABLE_SERVER_FN_HASH"):
            monkeypatch.delenv(key)


def test_defaults_from_empty_section(tmp_path):
    target = tmp_path / "target"
    conf = ProjectConfig.parse(tmp_path, {}, target)
    assert conf.site_root == target / "site"
    assert conf.site_pkg_dir == Path("pkg")
    assert conf.site_addr == "127.0.0.1:3000"
    assert conf.reload_port == 3001
    assert conf.browserquery == "defaults"
    assert conf.js_minify is True
    assert conf.hash_files is False
    assert conf.tmp_dir == target / "tmp"
    assert conf.config_dir == tmp_path


def test_kebab_case_keys_are_read(tmp_path):
    section = {
        "name": "project1",
        "bin-package": "server-package",
        "output-name": "project1",
        "site-root": "target/site/project1",
        "bin-features": ["ssr"],
        "lib-default-features": True,
        "server-fn-prefix": "/custom/prefix",
        "server-fn-mod-path": True,
        "watch-additional-files": ["extra.txt"],
    }
    conf = ProjectConfig.parse(tmp_path, section, tmp_path / "target")
    assert conf.output_name == "project1"
    assert conf.site_root == Path("target/site/project1")
    assert conf.bin_features == ["ssr"]
    assert conf.lib_default_features is True
    assert conf.server_fn_prefix == "/custom/prefix"
    assert conf.server_fn_mod_path is True
    assert conf.watch_additional_files == [Path("extra.txt")]


def test_build_target_marker_is_replaced(tmp_path):
    target = tmp_path / "target"
    conf = ProjectConfig.parse(tmp_path, {"site-root": "CARGO_BUILD_TARGET_DIR/web"}, target)
    assert conf.site_root == target / "web"


@pytest.mark.parametrize("root", ["/", ".", "CARGO_TARGET_DIR", "CARGO_BUILD_TARGET_DIR"])
def test_forbidden_site_roots(tmp_path, root):
    with pytest.raises(ConfigError, match="site-root cannot be"):
        ProjectConfig.parse(tmp_path, {"site-root": root}, tmp_path / "target")


def test_same_ports_rejected(tmp_path):
    section = {"site-addr": "127.0.0.1:3000", "reload-port": 3000}
    with pytest.raises(ConfigError, match="cannot be the same"):
        ProjectConfig.parse(tmp_path, section, tmp_path / "target")


@pytest.mark.parametrize(
    "section",
    [
        {"hash-files": "yes"},
        {"reload-port": 70000},
        {"features": "ssr"},
        {"site-addr": "localhost"},
        {"output-name": None},
    ],
)
def test_invalid_values_rejected(tmp_path, section):
    with pytest.raises(ConfigError):
        ProjectConfig.parse(tmp_path, section, tmp_path / "target")


def test_non_table_section_rejected(tmp_path):
    with pytest.raises(ConfigError):
        ProjectConfig.parse(tmp_path, ["site-root"], tmp_path / "target")


def test_null_for_optional_is_none(tmp_path):
    conf = ProjectConfig.parse(tmp_path, {"style-file": None}, tmp_path / "target")
    assert conf.style_file is None


def test_site_port_follows_address():
    conf = ProjectConfig(site_addr="127.0.0.1:3000")
    assert conf.site_port == 3000


def test_overlay_sets_fields():
    conf = ProjectConfig()
    overlay(
        conf,
        [
            ("LEPTOS_OUTPUT_NAME", "example"),
            ("LEPTOS_SITE_ROOT", "target/site"),
            ("LEPTOS_RELOAD_PORT", "3001"),
            ("LEPTOS_HASH_FILES", "true"),
            ("LEPTOS_HASH_FILE_NAME", "hash.txt"),
            ("SERVER_FN_PREFIX", "/custom/prefix"),
            ("DISABLE_SERVER_FN_HASH", "false"),
        ],
    )
    assert conf.output_name == "example"
    assert conf.site_root == Path("target/site")
    assert conf.reload_port == 3001
    assert conf.hash_files is True
    assert conf.hash_file_name == Path("hash.txt")
    assert conf.server_fn_prefix == "/custom/prefix"
    assert conf.disable_server_fn_hash is True


@pytest.mark.parametrize(
    "entry",
    [("LEPTOS_JS_MINIFY", "yes"), ("LEPTOS_RELOAD_PORT", "port"), ("LEPTOS_SITE_ADDR", "x:1")],
)
def test_overlay_rejects_bad_values(entry):
    with pytest.raises(ConfigError):
        overlay(ProjectConfig(), [entry])


def test_overlay_warns_on_unknown_leptos_var(caplog):
    with caplog.at_level(logging.WARNING):
        overlay(ProjectConfig(), [("LEPTOS_UNKNOWN_THING", "1"), ("OTHER", "1")])
    assert "LEPTOS_UNKNOWN_THING" in caplog.text
    assert "OTHER" not in caplog.text


def test_overlay_ignores_tool_versions(caplog):
    with caplog.at_level(logging.WARNING):
        overlay(ProjectConfig(), [("LEPTOS_TAILWIND_VERSION", "v4.0.6")])
    assert caplog.records == []


def test_environment_overrides_dotenvs():
    conf = ProjectConfig()
    overlay_env(
        conf,
        [("LEPTOS_OUTPUT_NAME", "from-file"), ("LEPTOS_BROWSERQUERY", "kept")],
        {"LEPTOS_OUTPUT_NAME": "from-env"},
    )
    assert conf.output_name == "from-env"
    assert conf.browserquery == "kept"


def test_load_dotenvs_finds_nearest(tmp_path):
    (tmp_path / ".env").write_text("LEPTOS_OUTPUT_NAME=outer\n")
    inner = tmp_path / "a"
    deeper = inner / "b"
    deeper.mkdir(parents=True)
    assert load_dotenvs(deeper) == [("LEPTOS_OUTPUT_NAME", "outer")]
    (inner / ".env").write_text("LEPTOS_OUTPUT_NAME=inner\n")
    assert load_dotenvs(deeper) == [("LEPTOS_OUTPUT_NAME", "inner")]


def test_parse_applies_dotenv(tmp_path):
    (tmp_path / ".env").write_text("LEPTOS_RELOAD_PORT=3002\n")
    conf = ProjectConfig.parse(tmp_path, {}, tmp_path / "target")
    assert conf.reload_port == 3002


def test_parse_applies_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("LEPTOS_SITE_PKG_DIR", "assets-pkg")
    conf = ProjectConfig.parse(tmp_path, {}, tmp_path / "target")
    assert conf.site_pkg_dir == Path("assets-pkg")