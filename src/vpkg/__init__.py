"""
vpkg - Package Template Installer
=================================

A tool that installs packages from a template registry into a host
project: it looks up the package descriptor, builds a rendering context,
renders the package's Jinja2 templates, and writes the results into the
project tree.

Features
--------
- **Two package shapes**: ``fx-module`` libraries and ``cli-command`` executables
- **Dry runs**: See every file an install would write, byte counts included
- **Safe installs**: Missing sources, conflicts and template errors are all
  detected before the first file is written
- **Discovery**: Filter the registry by type and tags

Quick Start
-----------
```bash
# List cache packages
vpkg list --tags cache

# Preview, then install
vpkg add vandor/redis-cache --dry-run
vpkg add vandor/redis-cache
```

Example
-------
>>> from vpkg import InstallOptions, install, load_index
>>> index = load_index("registry/")
>>> report = install("vandor/redis-cache", ".", InstallOptions(), index=index)
>>> len(report.files)
2

Architecture
------------
- ``registry``: Registry index and package descriptor loading
- ``models``: Pydantic models for entries, descriptors and the template context
- ``casing``: String-case helpers exposed to templates
- ``context``: Template context builder
- ``renderer``: Jinja2 rendering and verbatim copying
- ``installer``: The install pipeline
- ``query``: Filtering and search
- ``config``: Settings from vpkg.toml and the environment
- ``cli``: Typer-based command line interface
- ``errors``: Exception hierarchy
"""

# =============================================================================
# Package Metadata
# =============================================================================
__version__ = "0.1.0"
__license__ = "MIT"

# =============================================================================
# Public API Exports
# =============================================================================

from vpkg.context import build_context
from vpkg.errors import ConflictError, VpkgError, WriteError
from vpkg.installer import InstallOptions, InstallReport, install
from vpkg.models import PackageMetadata, PackageType, RegistryEntry, TemplateContext
from vpkg.query import list_entries
from vpkg.registry import MetadataLoader, RegistryIndex, load_index
from vpkg.renderer import Renderer


__all__ = [
    "ConflictError",
    "InstallOptions",
    "InstallReport",
    "MetadataLoader",
    "PackageMetadata",
    "PackageType",
    "RegistryEntry",
    "RegistryIndex",
    "Renderer",
    "TemplateContext",
    "VpkgError",
    "WriteError",
    "__version__",
    "build_context",
    "install",
    "list_entries",
    "load_index",
]
