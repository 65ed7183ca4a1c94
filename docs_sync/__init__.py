"""Docs Sync - mirror a GitHub directory of Markdown docs into a content store."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("docs-sync")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"  # Fallback for development without install
