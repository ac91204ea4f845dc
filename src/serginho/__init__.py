"""Serginho — tiered model orchestration with fallback chains and hybrid races."""

from importlib import metadata

try:
    __version__ = metadata.version("serginho")
except metadata.PackageNotFoundError:
    __version__ = "0.0.0-dev"
