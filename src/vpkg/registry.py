"""
vpkg.registry - Registry Index and Package Metadata Loader
=========================================================

A registry is a directory holding one index document plus one descriptor
per package::

    registry/
    ├── index.yaml
    └── packages/
        └── vandor/
            └── redis-cache/
                ├── meta.yaml
                └── templates/
                    ├── module.go.tmpl
                    └── README.md

The index enumerates packages::

    packages:
      - name: vandor/redis-cache
        type: fx-module
        tags: [cache, redis]
        metadata: packages/vandor/redis-cache/meta.yaml

Documents may be YAML (``.yaml``/``.yml``) or TOML (``.toml``).

The index is loaded into an explicit :class:`RegistryIndex` object that the
caller passes around for the duration of one command. There is no global
registry.

Usage Example
-------------
>>> index = load_index("registry/")
>>> loader = MetadataLoader(index)
>>> meta = loader.load("vandor/redis-cache")
>>> meta.destination
'internal/vpkg/{namespace}/{package}'
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from pydantic import ValidationError

from vpkg.errors import (
    DuplicateIdentifierError,
    IntegrityError,
    MetadataParseError,
    PackageNotFoundError,
    RegistryParseError,
    SchemaViolationError,
    VpkgError,
)
from vpkg.models import PackageMetadata, RegistryEntry


if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator


logger = logging.getLogger(__name__)

# Looked up in this order when the registry source is a directory
INDEX_FILENAMES = ("index.yaml", "index.yml", "index.toml")

YAML_SUFFIXES = frozenset({".yaml", ".yml"})
TOML_SUFFIXES = frozenset({".toml"})


# =============================================================================
# Document Reading
# =============================================================================

def read_document(
    path: Path,
    error_cls: type[VpkgError],
    identifier: str | None = None,
) -> dict[str, Any]:
    """
    Read a YAML or TOML document that must contain a mapping.

    Parameters
    ----------
    path : Path
        Document to read. The suffix selects the parser.

    error_cls : type[VpkgError]
        Error raised for any read or parse failure.

    identifier : str | None
        Package identifier attached to raised errors.

    Returns
    -------
    dict[str, Any]
        The parsed top-level mapping.
    """
    suffix = path.suffix.lower()
    if suffix not in YAML_SUFFIXES | TOML_SUFFIXES:
        raise error_cls(
            f"Unsupported document format '{suffix or path.name}' "
            "(expected .yaml, .yml or .toml)",
            identifier=identifier,
            path=path,
        )

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise error_cls(
            f"Cannot read {path}: {e}", identifier=identifier, path=path
        ) from e

    try:
        if suffix in TOML_SUFFIXES:
            data = tomllib.loads(text)
        else:
            data = yaml.safe_load(text)
    except (yaml.YAMLError, tomllib.TOMLDecodeError) as e:
        raise error_cls(
            f"Invalid document {path}: {e}", identifier=identifier, path=path
        ) from e

    if not isinstance(data, dict):
        raise error_cls(
            f"Expected a mapping at the top of {path}, got {type(data).__name__}",
            identifier=identifier,
            path=path,
        )

    return data


def format_validation_error(exc: ValidationError) -> str:
    """Flatten a Pydantic error into ``field: message; ...``."""
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error["loc"]) or "document"
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)


# =============================================================================
# Registry Index
# =============================================================================

class RegistryIndex:
    """
    Immutable, ordered collection of registry entries.

    Parameters
    ----------
    entries : Iterable of RegistryEntry
        Entries in source order. Identifiers must be unique.

    source : Path
        The index document the entries came from. Descriptor locations
        are resolved against its directory.

    Raises
    ------
    DuplicateIdentifierError
        If two entries share an identifier.
    """

    def __init__(self, entries: Iterable[RegistryEntry], source: Path) -> None:
        self._entries = tuple(entries)
        self._source = source
        self._by_identifier: dict[str, RegistryEntry] = {}

        for entry in self._entries:
            if entry.identifier in self._by_identifier:
                raise DuplicateIdentifierError(
                    f"Duplicate package identifier '{entry.identifier}' in {source}",
                    identifier=entry.identifier,
                    path=source,
                )
            self._by_identifier[entry.identifier] = entry

    @property
    def entries(self) -> tuple[RegistryEntry, ...]:
        return self._entries

    @property
    def source(self) -> Path:
        return self._source

    @property
    def root(self) -> Path:
        """Directory descriptor locations are relative to."""
        return self._source.parent

    def get(self, identifier: str) -> RegistryEntry:
        """
        Look up an entry by identifier.

        Raises
        ------
        PackageNotFoundError
            If the identifier is not in the index.
        """
        try:
            return self._by_identifier[identifier]
        except KeyError:
            raise PackageNotFoundError(
                f"Package '{identifier}' not found in registry {self._source}",
                identifier=identifier,
            ) from None

    def metadata_path(self, entry: RegistryEntry) -> Path:
        return self.root / entry.metadata_location

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._by_identifier

    def __iter__(self) -> Iterator[RegistryEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"RegistryIndex(source={self._source!s}, entries={len(self._entries)})"


def find_index_file(source: Path) -> Path:
    """
    Resolve a registry source to its index document.

    Parameters
    ----------
    source : Path
        An index document, or a directory containing one of
        :data:`INDEX_FILENAMES`.

    Raises
    ------
    RegistryParseError
        If no index document exists at the source.
    """
    if source.is_dir():
        for name in INDEX_FILENAMES:
            candidate = source / name
            if candidate.is_file():
                return candidate
        names = ", ".join(INDEX_FILENAMES)
        raise RegistryParseError(
            f"No registry index ({names}) found in {source}", path=source
        )

    if not source.is_file():
        raise RegistryParseError(f"Registry index not found: {source}", path=source)

    return source


def load_index(source: Path | str) -> RegistryIndex:
    """
    Load the registry index.

    Parameters
    ----------
    source : Path | str
        Index document or registry directory.

    Returns
    -------
    RegistryIndex
        Entries in document order.

    Raises
    ------
    RegistryParseError
        If the document is missing, unparseable, lacks a ``packages`` list,
        or contains an invalid entry.
    DuplicateIdentifierError
        If two entries share an identifier.
    """
    index_path = find_index_file(Path(source))
    data = read_document(index_path, RegistryParseError)

    packages = data.get("packages")
    if not isinstance(packages, list):
        raise RegistryParseError(
            f"Registry index {index_path} must contain a 'packages' list",
            path=index_path,
        )

    entries: list[RegistryEntry] = []
    for position, item in enumerate(packages):
        if not isinstance(item, dict):
            raise RegistryParseError(
                f"Entry #{position} in {index_path} is not a mapping",
                path=index_path,
            )
        try:
            entries.append(RegistryEntry.model_validate(item))
        except ValidationError as e:
            name = item.get("identifier") or item.get("name")
            raise RegistryParseError(
                f"Invalid entry #{position} in {index_path}: "
                f"{format_validation_error(e)}",
                identifier=name if isinstance(name, str) else None,
                path=index_path,
            ) from e

    index = RegistryIndex(entries, index_path)
    logger.debug("Loaded %d registry entries from %s", len(index), index_path)
    return index


# =============================================================================
# Package Metadata Loader
# =============================================================================

class MetadataLoader:
    """
    Loads and cross-checks package descriptors for one registry index.

    Parameters
    ----------
    index : RegistryIndex
        The index identifiers are looked up in.
    """

    def __init__(self, index: RegistryIndex) -> None:
        self.index = index

    def load(self, identifier: str) -> PackageMetadata:
        """
        Load the descriptor for a package.

        Parameters
        ----------
        identifier : str
            ``namespace/name`` identifier.

        Returns
        -------
        PackageMetadata
            Validated descriptor with ``package_dir`` set.

        Raises
        ------
        PackageNotFoundError
            If the identifier is not in the index or its descriptor file
            does not exist.
        MetadataParseError
            If the descriptor cannot be parsed.
        SchemaViolationError
            If required fields are missing or invalid.
        IntegrityError
            If the descriptor's name or type disagrees with the index.
        """
        entry = self.index.get(identifier)
        path = self.index.metadata_path(entry)

        if not path.is_file():
            raise PackageNotFoundError(
                f"Descriptor for '{identifier}' not found at {path}",
                identifier=identifier,
                path=path,
            )

        data = read_document(path, MetadataParseError, identifier)
        data["package_dir"] = path.parent

        try:
            metadata = PackageMetadata.model_validate(data)
        except ValidationError as e:
            raise SchemaViolationError(
                f"Invalid descriptor: {format_validation_error(e)}",
                identifier=identifier,
                path=path,
            ) from e

        if metadata.name != entry.identifier:
            raise IntegrityError(
                f"Descriptor name '{metadata.name}' does not match registry "
                f"identifier '{entry.identifier}'",
                identifier=identifier,
                path=path,
            )

        if metadata.type is not entry.type:
            raise IntegrityError(
                f"Descriptor type '{metadata.type.value}' does not match registry "
                f"type '{entry.type.value}'",
                identifier=identifier,
                path=path,
            )

        logger.debug("Loaded descriptor for %s from %s", identifier, path)
        return metadata
