"""
Version management for tgcp.

Reads the version from pyproject.toml, the single source of truth, when
running from a checkout. Installed copies fall back to the distribution
metadata.
"""

from importlib import metadata
from pathlib import Path

import tomli

FALLBACK_VERSION = "0.0.0"


def _find_project_root() -> Path:
    """
    Find the directory containing pyproject.toml.

    Returns:
        Path: The project root, or the package parent when none is found
    """
    file_path = Path(__file__).resolve()
    for candidate in (file_path.parent.parent, Path.cwd()):
        if (candidate / "pyproject.toml").exists():
            return candidate
    return file_path.parent.parent


PROJECT_ROOT = _find_project_root()
PYPROJECT_PATH = PROJECT_ROOT / "pyproject.toml"


def get_version_from_pyproject() -> str:
    """
    Read the version string from pyproject.toml.

    Returns:
        str: Version string, e.g. "0.4.0"
    """
    try:
        with open(PYPROJECT_PATH, "rb") as f:
            pyproject_data = tomli.load(f)
        if pyproject_data["project"]["name"] == "tgcp":
            return pyproject_data["project"]["version"]
    except (FileNotFoundError, KeyError, tomli.TOMLDecodeError):
        pass
    try:
        return metadata.version("tgcp")
    except metadata.PackageNotFoundError:
        return FALLBACK_VERSION


# The package version, loaded from pyproject.toml
__version__ = get_version_from_pyproject()


def get_version() -> str:
    return __version__
