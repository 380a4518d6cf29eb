"""
vpkg.context - Template Context Builder
=======================================

Derives the read-only :class:`~vpkg.models.TemplateContext` for one
install from the host module, the package descriptor, and a timestamp.

:func:`build_context` is pure: given the same arguments it returns an equal
context. The only input that varies between runs is ``now``, which feeds
``created_at`` and nothing else.

Destination Placeholders
------------------------
A descriptor's ``destination`` may reference these placeholders, expanded
with :meth:`str.format_map` (values shown for ``vandor/redis-cache``):

- ``{namespace}``: vandor
- ``{package}`` / ``{name}``: redis-cache
- ``{package_snake}``: redis_cache
- ``{package_kebab}``: redis-cache
- ``{package_pascal}``: RedisCache
- ``{package_ident}``: redis_cache
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path

from vpkg import casing
from vpkg.errors import (
    MalformedIdentifierError,
    SchemaViolationError,
    UndefinedReferenceError,
)
from vpkg.models import PackageMetadata, TemplateContext, check_relative_path


logger = logging.getLogger(__name__)

IDENTIFIER_SEPARATOR = "/"


def split_identifier(identifier: str) -> tuple[str, str]:
    """
    Split ``namespace/name`` on the first separator.

    Raises
    ------
    MalformedIdentifierError
        If there is no separator or either half is empty.

    Examples
    --------
    >>> split_identifier("vandor/redis-cache")
    ('vandor', 'redis-cache')
    """
    namespace, sep, package = identifier.partition(IDENTIFIER_SEPARATOR)
    if not sep or not namespace or not package:
        raise MalformedIdentifierError(
            f"Identifier '{identifier}' must have the form 'namespace/name'",
            identifier=identifier,
        )
    return namespace, package


def destination_placeholders(namespace: str, package: str) -> dict[str, str]:
    return {
        "namespace": namespace,
        "package": package,
        "name": package,
        "package_snake": casing.snake(package),
        "package_kebab": casing.kebab(package),
        "package_pascal": casing.pascal(package),
        "package_ident": casing.go_ident(package),
    }


def resolve_destination(template: str, identifier: str) -> str:
    """
    Expand placeholders in a destination path template.

    Parameters
    ----------
    template : str
        Destination from the descriptor.

    identifier : str
        Package identifier supplying the placeholder values.

    Returns
    -------
    str
        Relative destination path with forward slashes.

    Raises
    ------
    UndefinedReferenceError
        If the template uses an unknown placeholder.
    SchemaViolationError
        If the template is not a valid format string, or the expanded
        path is absolute or escapes the project root.
    """
    namespace, package = split_identifier(identifier)
    values = destination_placeholders(namespace, package)

    try:
        resolved = template.format_map(values)
    except KeyError as e:
        name = e.args[0]
        known = ", ".join(f"{{{k}}}" for k in values)
        raise UndefinedReferenceError(
            f"Unknown placeholder '{{{name}}}' in destination '{template}' "
            f"(known: {known})",
            reference=str(name),
            identifier=identifier,
        ) from None
    except (ValueError, IndexError, AttributeError) as e:
        raise SchemaViolationError(
            f"Invalid destination template '{template}': {e}",
            identifier=identifier,
        ) from e

    try:
        return check_relative_path(resolved, "destination")
    except ValueError as e:
        raise SchemaViolationError(str(e), identifier=identifier) from e


def format_timestamp(now: datetime) -> str:
    """RFC3339 timestamp in UTC, e.g. ``2026-10-18T09:30:00Z``."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    return now.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def detect_module(project_root: Path) -> str:
    """
    Detect the host module path from the project's ``go.mod``.

    Falls back to the project directory name when there is no ``go.mod``
    or it has no ``module`` directive.

    Parameters
    ----------
    project_root : Path
        Root of the host project.

    Returns
    -------
    str
        Module path, e.g. ``github.com/acme/shop``.
    """
    go_mod = project_root / "go.mod"
    if go_mod.is_file():
        for line in go_mod.read_text(encoding="utf-8").splitlines():
            parts = line.split("//", 1)[0].split()
            if len(parts) >= 2 and parts[0] == "module":
                return parts[1].strip('"`')

    fallback = project_root.resolve().name
    logger.warning(
        "No module directive found in %s; using directory name '%s'",
        go_mod,
        fallback,
    )
    return fallback


def build_context(
    module: str,
    metadata: PackageMetadata,
    now: datetime,
) -> TemplateContext:
    """
    Build the template context for one install.

    Parameters
    ----------
    module : str
        Host module identifier.

    metadata : PackageMetadata
        Descriptor of the package being installed.

    now : datetime
        Render time. Naive datetimes are taken as UTC.

    Returns
    -------
    TemplateContext
        Frozen context shared by every render job.

    Raises
    ------
    MalformedIdentifierError
        If the package name is not ``namespace/name``.
    UndefinedReferenceError, SchemaViolationError
        If the destination template cannot be resolved.
    """
    namespace, package = split_identifier(metadata.name)

    return TemplateContext(
        module=module,
        identifier=metadata.name,
        namespace=namespace,
        package=package,
        package_title=casing.title(package),
        package_camel=casing.camel(package),
        package_pascal=casing.pascal(package),
        package_snake=casing.snake(package),
        package_kebab=casing.kebab(package),
        package_upper=casing.upper(package),
        package_lower=casing.lower(package),
        package_ident=casing.go_ident(package),
        destination=resolve_destination(metadata.destination, metadata.name),
        version=metadata.version,
        author=metadata.author,
        created_at=format_timestamp(now),
        title=metadata.display_title,
        description=metadata.description,
        type=metadata.type.value,
        entry=metadata.entry,
        license=metadata.license,
        tags=tuple(sorted(metadata.tags)),
        dependencies=metadata.dependencies,
    )
