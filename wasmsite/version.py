"""Versions of the external style tools, overridable from the environment."""

from __future__ import annotations

import os
from enum import Enum

ENV_VAR_LEPTOS_TAILWIND_VERSION = "LEPTOS_TAILWIND_VERSION"
ENV_VAR_LEPTOS_SASS_VERSION = "LEPTOS_SASS_VERSION"


class VersionConfig(Enum):
    """An external tool whose version can be configured."""

    TAILWIND = "tailwind"
    SASS = "sass"

    def version(self) -> str:
        """The configured version, falling back to the default one."""
        return os.environ.get(self.env_var_version_name(), self.default_version())

    def default_version(self) -> str:
        if self is VersionConfig.TAILWIND:
            return "v4.0.6"
        return "1.83.4"

    def env_var_version_name(self) -> str:
        if self is VersionConfig.TAILWIND:
            return ENV_VAR_LEPTOS_TAILWIND_VERSION
        return ENV_VAR_LEPTOS_SASS_VERSION