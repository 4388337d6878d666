"""Browser tool server and scenario runner for the eKyte web application."""

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _get_version

try:
    __version__ = _get_version("ekyte-tools")
except PackageNotFoundError:  # pragma: no cover - when running from source tree
    __version__ = "0.0.0"
