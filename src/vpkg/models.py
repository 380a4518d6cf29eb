"""
vpkg.models - Pydantic Models for Registry Data
===============================================

This module defines the data models shared by every part of vpkg. As with
any data read from disk, we lean on Pydantic for:

1. **Validation**: Malformed descriptors are rejected with precise messages
2. **Immutability**: Every model is frozen once constructed
3. **Aliases**: Registry documents may spell some keys more than one way

Architecture Notes
------------------
::

    RegistryEntry      one row of the registry index
    PackageMetadata    the per-package descriptor (meta.yaml / meta.toml)
    TemplateContext    read-only data bag handed to templates
    └── PackageType (enum, shared by the two above)

Usage Example
-------------
>>> from vpkg.models import PackageType, RegistryEntry
>>> entry = RegistryEntry(
...     identifier="vandor/redis-cache",
...     type="fx-module",
...     tags=["cache", "redis"],
...     metadata_location="packages/vandor/redis-cache/meta.yaml",
... )
>>> entry.type is PackageType.FX_MODULE
True
"""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# =============================================================================
# Enumerations
# =============================================================================

class PackageType(str, Enum):
    """
    The two mutually exclusive package shapes.

    Attributes
    ----------
    FX_MODULE : str
        An importable library module wired into the host application.

    CLI_COMMAND : str
        A standalone executable command. Requires an ``entry`` file.
    """

    FX_MODULE = "fx-module"
    CLI_COMMAND = "cli-command"

    @property
    def description(self) -> str:
        """Human-readable description for listings."""
        descriptions = {
            PackageType.FX_MODULE: "Library module",
            PackageType.CLI_COMMAND: "Executable command",
        }
        return descriptions[self]

    @property
    def requires_entry(self) -> bool:
        """Whether descriptors of this type must name an entry-point file."""
        return self is PackageType.CLI_COMMAND


# =============================================================================
# Validation Helpers
# =============================================================================

# MAJOR.MINOR.PATCH with optional "v" prefix and pre-release/build suffix
SEMVER_PATTERN = re.compile(
    r"^v?(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?$"
)


def check_relative_path(value: str, what: str) -> str:
    value = value.strip()
    if not value:
        msg = f"{what} must not be empty"
        raise ValueError(msg)
    if PurePosixPath(value).is_absolute() or PureWindowsPath(value).is_absolute():
        msg = f"{what} must be a relative path: {value!r}"
        raise ValueError(msg)
    if ".." in PurePosixPath(value.replace("\\", "/")).parts:
        msg = f"{what} must not contain '..': {value!r}"
        raise ValueError(msg)
    return value


def _coerce_tags(value: Any) -> Any:
    # Accept "a, b" as well as ["a", "b"]
    if value is None:
        return frozenset()
    if isinstance(value, str):
        value = value.split(",")
    if isinstance(value, (list, tuple, set, frozenset)):
        return frozenset(str(t).strip() for t in value if str(t).strip())
    return value


# =============================================================================
# Registry Entry
# =============================================================================

class RegistryEntry(BaseModel):
    """
    One package listed in the registry index.

    Attributes
    ----------
    identifier : str
        Unique ``namespace/name`` identifier. Documents may use ``name``.

    type : PackageType
        Declared package shape.

    tags : frozenset[str]
        Discovery tags.

    metadata_location : str
        Path of the package descriptor, relative to the index document.
        Documents may use ``metadata``, ``metadataLocation`` or ``path``.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    identifier: str = Field(
        min_length=1,
        validation_alias=AliasChoices("identifier", "name"),
    )
    type: PackageType
    tags: frozenset[str] = Field(default_factory=frozenset)
    metadata_location: str = Field(
        validation_alias=AliasChoices(
            "metadata_location", "metadataLocation", "metadata", "path"
        ),
    )

    @field_validator("identifier")
    @classmethod
    def strip_identifier(cls, v: str) -> str:
        return v.strip()

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: Any) -> Any:
        return _coerce_tags(v)

    @field_validator("metadata_location")
    @classmethod
    def validate_location(cls, v: str) -> str:
        return check_relative_path(v, "metadata location")


# =============================================================================
# Package Metadata
# =============================================================================

class PackageMetadata(BaseModel):
    """
    Per-package descriptor controlling what gets rendered and where.

    The descriptor is parsed fresh for every install or query and discarded
    afterwards.

    Attributes
    ----------
    name : str
        Package identifier. Must equal the registry entry's identifier.

    title, description : str
        Display text, also exposed to templates.

    type : PackageType
        Package shape. Must equal the registry entry's type.

    entry : str | None
        Entry-point file name. Required for ``cli-command`` packages.

    templates : tuple[str, ...]
        Ordered, non-empty list of template sources relative to the
        descriptor's directory.

    destination : str
        Destination path template, relative to the host project, e.g.
        ``internal/vpkg/{namespace}/{package}``.

    version : str
        Semantic version string.

    license, author : str
        Attribution, exposed to templates.

    tags : frozenset[str]
        Discovery tags.

    dependencies : tuple[str, ...]
        External dependency identifiers. Informational only; vpkg does not
        resolve them.

    package_dir : Path | None
        Directory the descriptor was loaded from. Set by the loader.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = Field(
        min_length=1,
        validation_alias=AliasChoices("name", "identifier"),
    )
    title: str = ""
    description: str = ""
    type: PackageType
    entry: str | None = None
    templates: tuple[str, ...] = Field(min_length=1)
    destination: str
    version: str = "0.1.0"
    license: str = ""
    author: str = ""
    tags: frozenset[str] = Field(default_factory=frozenset)
    dependencies: tuple[str, ...] = ()
    package_dir: Path | None = Field(default=None, exclude=True)

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()

    @field_validator("templates")
    @classmethod
    def validate_templates(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(check_relative_path(t, "template path") for t in v)

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        return check_relative_path(v, "destination")

    @field_validator("version", mode="before")
    @classmethod
    def validate_version(cls, v: Any) -> str:
        v = str(v).strip()
        if not SEMVER_PATTERN.match(v):
            msg = f"Invalid semantic version: {v!r}"
            raise ValueError(msg)
        return v

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: Any) -> Any:
        return _coerce_tags(v)

    @field_validator("dependencies", mode="before")
    @classmethod
    def normalize_dependencies(cls, v: Any) -> Any:
        if v is None:
            return ()
        return v

    @model_validator(mode="after")
    def validate_entry(self) -> PackageMetadata:
        """
        Enforce the entry-point rule.

        ``cli-command`` packages must name the file holding ``main``;
        the field carries no meaning for ``fx-module`` packages.
        """
        if self.type.requires_entry and not (self.entry and self.entry.strip()):
            msg = f"Packages of type '{self.type.value}' must declare an entry file"
            raise ValueError(msg)
        return self

    # -------------------------------------------------------------------------
    # Computed Properties
    # -------------------------------------------------------------------------

    @property
    def display_title(self) -> str:
        """Title, falling back to the identifier."""
        return self.title or self.name

    def source_path(self, template: str) -> Path:
        """
        Absolute path of a declared template source.

        Parameters
        ----------
        template : str
            One of :attr:`templates`.

        Returns
        -------
        Path
            The template resolved against :attr:`package_dir` (or the
            current directory when the descriptor was built in memory).
        """
        base = self.package_dir or Path.cwd()
        return base / template


# =============================================================================
# Template Context
# =============================================================================

class TemplateContext(BaseModel):
    """
    Read-only data bag available to template files.

    One instance is built per install and shared by every render job.
    All ``package_*`` projections derive from :attr:`package`, so two
    contexts for the same package and host module differ only in
    :attr:`created_at`.

    Templates see every field below as a variable::

        package {{ package_ident }}

        // {{ title }} v{{ version }}, generated {{ created_at }}
        type {{ package_pascal }} struct{}
    """

    model_config = ConfigDict(frozen=True)

    module: str
    identifier: str
    namespace: str
    package: str
    package_title: str
    package_camel: str
    package_pascal: str
    package_snake: str
    package_kebab: str
    package_upper: str
    package_lower: str
    package_ident: str
    destination: str
    version: str
    author: str
    created_at: str
    title: str
    description: str
    type: str
    entry: str | None = None
    license: str = ""
    tags: tuple[str, ...] = ()
    dependencies: tuple[str, ...] = ()

    def as_template_vars(self) -> dict[str, Any]:
        """Context as a plain dict for Jinja2."""
        return self.model_dump()
