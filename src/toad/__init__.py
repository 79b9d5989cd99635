"""Mumbling Toad - interactive terminal SEO crawler."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("mumbling-toad")
except PackageNotFoundError:
    __version__ = "dev"
