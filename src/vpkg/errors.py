"""
vpkg.errors - Error Taxonomy
============================

Every failure the engine can report has its own exception class so callers
(and the CLI) can tell a malformed registry from a conflicting install
without parsing messages.

All errors derive from :class:`VpkgError`, which optionally carries the
package identifier and the file involved. The CLI uses those two attributes
to build its stderr message.

Hierarchy
---------
::

    VpkgError
    ├── ConfigError
    ├── RegistryParseError
    ├── DuplicateIdentifierError
    ├── PackageNotFoundError
    ├── MetadataParseError
    ├── SchemaViolationError
    ├── IntegrityError
    ├── MalformedIdentifierError
    ├── TemplateError
    │   ├── TemplateSyntaxError
    │   └── UndefinedReferenceError
    ├── MissingTemplateFileError
    ├── ConflictError
    └── WriteError

None of these is ever downgraded to a warning: each is fatal to the
operation that raised it.
"""

from __future__ import annotations

from pathlib import Path


class VpkgError(Exception):
    """
    Base class for all vpkg errors.

    Parameters
    ----------
    message : str
        Human-readable description of the failure.

    identifier : str | None
        Package identifier the failure relates to, if any.

    path : Path | str | None
        File the failure relates to, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        identifier: str | None = None,
        path: Path | str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.identifier = identifier
        self.path = Path(path) if path is not None else None

    def describe(self) -> str:
        """Message prefixed with the package identifier, when known."""
        if self.identifier:
            return f"{self.identifier}: {self.message}"
        return self.message


class ConfigError(VpkgError):
    """Raised when a vpkg.toml file or VPKG_* variable is invalid."""


# =============================================================================
# Registry and Metadata
# =============================================================================

class RegistryParseError(VpkgError):
    """Raised when the registry index document cannot be read or is malformed."""


class DuplicateIdentifierError(VpkgError):
    """Raised when two registry entries share an identifier."""


class PackageNotFoundError(VpkgError):
    """Raised when an identifier is not present in the registry index."""


class MetadataParseError(VpkgError):
    """Raised when a package descriptor cannot be parsed."""


class SchemaViolationError(VpkgError):
    """
    Raised when a package descriptor is parseable but invalid.

    Covers missing required fields, an empty template list, a type outside
    the closed set, and unsafe (absolute or escaping) paths.
    """


class IntegrityError(VpkgError):
    """Raised when a descriptor disagrees with its registry entry."""


class MalformedIdentifierError(VpkgError):
    """Raised when an identifier is not of the form ``namespace/name``."""


# =============================================================================
# Rendering
# =============================================================================

class TemplateError(VpkgError):
    """
    Base class for per-file render failures.

    Attributes
    ----------
    lineno : int | None
        Line in the template where the failure was detected, when known.
    """

    def __init__(
        self,
        message: str,
        *,
        identifier: str | None = None,
        path: Path | str | None = None,
        lineno: int | None = None,
    ) -> None:
        super().__init__(message, identifier=identifier, path=path)
        self.lineno = lineno

    def describe(self) -> str:
        location = ""
        if self.path is not None:
            location = f"{self.path}"
            if self.lineno is not None:
                location += f":{self.lineno}"
            location += ": "
        prefix = f"{self.identifier}: " if self.identifier else ""
        return f"{prefix}{location}{self.message}"


class TemplateSyntaxError(TemplateError):
    """Raised when a template file cannot be parsed."""


class UndefinedReferenceError(TemplateError):
    """
    Raised when a template references a field or helper that does not exist.

    Attributes
    ----------
    reference : str | None
        The offending name, when it could be determined.
    """

    def __init__(
        self,
        message: str,
        *,
        reference: str | None = None,
        identifier: str | None = None,
        path: Path | str | None = None,
        lineno: int | None = None,
    ) -> None:
        super().__init__(message, identifier=identifier, path=path, lineno=lineno)
        self.reference = reference


# =============================================================================
# Installation
# =============================================================================

class MissingTemplateFileError(VpkgError):
    """
    Raised when declared template sources are missing from the registry.

    Attributes
    ----------
    missing : list[Path]
        Every missing source, not just the first one found.
    """

    def __init__(
        self,
        missing: list[Path],
        *,
        identifier: str | None = None,
    ) -> None:
        self.missing = list(missing)
        listing = ", ".join(str(p) for p in self.missing)
        super().__init__(
            f"Template file(s) not found: {listing}",
            identifier=identifier,
            path=self.missing[0] if self.missing else None,
        )


class ConflictError(VpkgError):
    """
    Raised when destination files already exist and overwriting is disabled.

    Attributes
    ----------
    conflicts : list[Path]
        Every existing destination file, or every existing non-directory
        that blocks a destination directory.

    written : list
        FileReports of files written before the conflict was detected.
        Empty unless the conflict appeared after the pre-scan.
    """

    def __init__(
        self,
        conflicts: list[Path],
        *,
        identifier: str | None = None,
        overwritable: bool = True,
        written: list | None = None,
    ) -> None:
        self.conflicts = list(conflicts)
        self.written = list(written or [])
        listing = ", ".join(str(p) for p in self.conflicts)
        if overwritable:
            message = f"Files already exist: {listing}. Use --force to overwrite."
        else:
            message = f"Paths are in the way of destination directories: {listing}"
        super().__init__(
            message,
            identifier=identifier,
            path=self.conflicts[0] if self.conflicts else None,
        )


class WriteError(VpkgError):
    """
    Raised when destination files could not be written.

    Files of other jobs may already be in place; they are listed in
    :attr:`written` and are not rolled back.

    Attributes
    ----------
    failures : list[tuple[Path, OSError]]
        Each destination that failed and why.

    written : list
        FileReports of the files that were written.
    """

    def __init__(
        self,
        failures: list[tuple[Path, OSError]],
        *,
        identifier: str | None = None,
        written: list | None = None,
    ) -> None:
        self.failures = list(failures)
        self.written = list(written or [])
        listing = "; ".join(f"{p}: {e.strerror or e}" for p, e in self.failures)
        super().__init__(
            f"Could not write {len(self.failures)} file(s) "
            f"({len(self.written)} written): {listing}",
            identifier=identifier,
            path=self.failures[0][0] if self.failures else None,
        )
