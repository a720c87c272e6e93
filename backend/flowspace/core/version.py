"""Application version, taken from the installed distribution or the VERSION file."""

from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

VERSION_FILE = Path(__file__).resolve().parents[3] / "VERSION"


def get_version() -> str:
    if VERSION_FILE.exists():
        return VERSION_FILE.read_text().strip()
    try:
        return version("flowspace")
    except PackageNotFoundError:
        return "0.0.0"


__version__ = get_version()
