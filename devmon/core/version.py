"""Build/version metadata.

The version comes from the build environment when CI injects it, otherwise
from the installed ``devmon`` distribution, otherwise a dev marker (plain
source checkout).
"""

from __future__ import annotations

import os
from importlib.metadata import PackageNotFoundError, version

DIST_NAME = "devmon"
_DEV_VERSION = "0.1.0-dev"


def _package_version() -> str:
    try:
        return version(DIST_NAME)
    except PackageNotFoundError:
        return _DEV_VERSION


def get_build_info() -> dict[str, str]:
    """Return build metadata.

    Environment variables (set by CI/build scripts):
    - DEVMON_VERSION: human readable version (e.g. "0.3.0")
    - DEVMON_GIT_SHA: short git sha
    - DEVMON_BUILD_DATE: ISO date
    """

    return {
        "version": os.getenv("DEVMON_VERSION") or _package_version(),
        "git_sha": os.getenv("DEVMON_GIT_SHA", "dev"),
        "build_date": os.getenv("DEVMON_BUILD_DATE", ""),
    }


def get_version_string() -> str:
    info = get_build_info()
    ver = info["version"].strip() or _DEV_VERSION
    sha = info["git_sha"].strip() or "dev"
    date = info["build_date"].strip()
    if date:
        return f"v{ver} ({sha}, {date})"
    return f"v{ver} ({sha})"
