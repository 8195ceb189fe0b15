from wasmsite.version import (
    ENV_VAR_LEPTOS_SASS_VERSION,
    ENV_VAR_LEPTOS_TAILWIND_VERSION,
    VersionConfig,
)


def test_default_versions():
    assert VersionConfig.TAILWIND.default_version() == "v4.0.6"
    assert VersionConfig.SASS.default_version() == "1.83.4"


def test_env_var_names():
    assert VersionConfig.TAILWIND.env_var_version_name() == "LEPTOS_TAILWIND_VERSION"
    assert VersionConfig.SASS.env_var_version_name() == ENV_VAR_LEPTOS_SASS_VERSION


def test_version_falls_back_to_default(monkeypatch):
    monkeypatch.delenv(ENV_VAR_LEPTOS_TAILWIND_VERSION, raising=False)
    monkeypatch.delenv(ENV_VAR_LEPTOS_SASS_VERSION, raising=False)
    assert VersionConfig.TAILWIND.version() == VersionConfig.TAILWIND.default_version()
    assert VersionConfig.SASS.version() == VersionConfig.SASS.default_version()


def test_version_read_from_environment(monkeypatch):
    monkeypatch.setenv(ENV_VAR_LEPTOS_TAILWIND_VERSION, "v3.4.1")
    assert VersionConfig.TAILWIND.version() == "v3.4.1"


def test_version_from_explicit_mapping():
    env = {ENV_VAR_LEPTOS_SASS_VERSION: "1.70.0"}
    assert VersionConfig.SASS.version(env) == "1.70.0"
    assert VersionConfig.TAILWIND.version(env) == "v4.0.6"