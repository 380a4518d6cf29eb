"""
vpkg.installer - Package Installation
=====================================

This module materializes a registry package into a host project.

Architecture
------------
Installation follows a pipeline pattern:

    1. Load the registry entry and package descriptor
    2. Build the template context
    3. Resolve the destination root inside the host project
    4. Plan one RenderJob per declared template, checking every source exists
    5. Pre-scan for files blocking destination directories, and for
       existing destinations (unless overwriting)
    6. Render all jobs, then write them (skipped for dry runs)
    7. Report what was (or would be) written

Steps 1-5 fail before anything touches the host project, and rendering
finishes for every job before the first write, so a doomed install never
leaves partial output behind. A filesystem failure during the write phase
raises WriteError listing the files already written; they are not rolled
back.

Jobs are independent of each other and run on a thread pool. They share
the frozen context and the renderer, neither of which is mutated.

Cancellation
------------
Setting ``InstallOptions.cancel_event`` stops jobs that have not been
written yet. Files already written stay in place; the report lists only
those, with ``cancelled=True``. This is at-most-once per file, not a
transaction.

Usage Example
-------------
>>> from vpkg.installer import InstallOptions, install
>>> from vpkg.registry import load_index
>>> index = load_index("registry/")
>>> report = install(
...     "vandor/redis-cache",
...     "/path/to/shop",
...     InstallOptions(dry_run=True),
...     index=index,
... )
>>> [f.destination.name for f in report.files]
['module.go', 'README.md']
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from vpkg.context import build_context, detect_module
from vpkg.errors import (
    ConflictError,
    MissingTemplateFileError,
    SchemaViolationError,
    VpkgError,
    WriteError,
)
from vpkg.registry import MetadataLoader
from vpkg.renderer import Renderer, is_template, output_name


if TYPE_CHECKING:
    import threading

    from vpkg.models import PackageMetadata, TemplateContext
    from vpkg.registry import RegistryIndex


logger = logging.getLogger(__name__)


# =============================================================================
# Data Classes
# =============================================================================

@dataclass(frozen=True)
class RenderJob:
    """
    One template source mapped to one destination file.

    Attributes
    ----------
    source : Path
        Absolute path of the template source in the registry.

    destination : Path
        Absolute path of the output file in the host project.

    is_template : bool
        True if the source is rendered, False if it is copied verbatim.
    """

    source: Path
    destination: Path
    is_template: bool


@dataclass
class InstallOptions:
    """
    Options controlling an install.

    Attributes
    ----------
    dry_run : bool
        Compute everything, write nothing.

    overwrite : bool
        Replace existing files instead of failing with ConflictError.

    module : str | None
        Host module identifier. Detected from go.mod when None.

    workers : int | None
        Upper bound on worker threads. Defaults to one per job.

    cancel_event : threading.Event | None
        When set, jobs not yet written are skipped.
    """

    dry_run: bool = False
    overwrite: bool = False
    module: str | None = None
    workers: int | None = None
    cancel_event: threading.Event | None = None


@dataclass(frozen=True)
class FileReport:
    """One written (or, for dry runs, would-be-written) file."""

    source: Path
    destination: Path
    size: int


@dataclass
class InstallReport:
    """
    Outcome of an install.

    Attributes
    ----------
    identifier : str
        Installed package.

    destination_root : Path
        Absolute directory the package was installed into.

    context : TemplateContext
        The context every template was rendered with.

    files : list[FileReport]
        Completed jobs, in descriptor order.

    dry_run : bool
        True if nothing was written.

    cancelled : bool
        True if cancellation skipped at least one job.

    entry_point : Path | None
        Destination of the entry file, for cli-command packages.
    """

    identifier: str
    destination_root: Path
    context: TemplateContext
    files: list[FileReport] = field(default_factory=list)
    dry_run: bool = False
    cancelled: bool = False
    entry_point: Path | None = None

    @property
    def total_bytes(self) -> int:
        return sum(f.size for f in self.files)


# =============================================================================
# Planning and Validation
# =============================================================================

def plan_jobs(metadata: PackageMetadata, destination_root: Path) -> list[RenderJob]:
    """
    Build one RenderJob per declared template, in declaration order.

    The destination of each job is the source file name, minus the
    ``.tmpl`` suffix, inside ``destination_root``.

    Raises
    ------
    SchemaViolationError
        If two templates map to the same destination file.
    """
    jobs: list[RenderJob] = []
    seen: dict[Path, str] = {}

    for template in metadata.templates:
        destination = destination_root / output_name(template)
        if destination in seen:
            raise SchemaViolationError(
                f"Templates '{seen[destination]}' and '{template}' both "
                f"produce {destination.name}",
                identifier=metadata.name,
            )
        seen[destination] = template
        jobs.append(
            RenderJob(
                source=metadata.source_path(template),
                destination=destination,
                is_template=is_template(template),
            )
        )

    return jobs


def resolve_entry_point(
    metadata: PackageMetadata,
    jobs: list[RenderJob],
) -> Path | None:
    """
    Find the job producing the package's entry file.

    Returns None for packages without an entry requirement.

    Raises
    ------
    SchemaViolationError
        If a cli-command package's entry is not produced by any template.
    """
    if not metadata.type.requires_entry or not metadata.entry:
        return None

    wanted = output_name(metadata.entry)
    for job in jobs:
        if job.destination.name == wanted:
            return job.destination

    raise SchemaViolationError(
        f"Entry file '{metadata.entry}' is not produced by any template",
        identifier=metadata.name,
    )


def check_sources(jobs: list[RenderJob], identifier: str) -> None:
    """
    Verify every template source exists.

    Raises
    ------
    MissingTemplateFileError
        Listing every missing source.
    """
    missing = [job.source for job in jobs if not job.source.is_file()]
    if missing:
        raise MissingTemplateFileError(missing, identifier=identifier)


def find_conflicts(jobs: list[RenderJob]) -> list[Path]:
    """Destinations that already exist, in job order."""
    return [job.destination for job in jobs if job.destination.exists()]


def find_blocked_parents(jobs: list[RenderJob]) -> list[Path]:
    """
    Existing non-directories where a destination directory must go.

    For each destination, the nearest existing ancestor must be a
    directory; otherwise the directory tree cannot be created.
    """
    blocked: list[Path] = []
    for job in jobs:
        for parent in job.destination.parents:
            if parent.exists() or parent.is_symlink():
                if not parent.is_dir() and parent not in blocked:
                    blocked.append(parent)
                break
    return blocked


# =============================================================================
# Execution
# =============================================================================

def _pool_size(job_count: int, workers: int | None) -> int:
    if workers is not None and workers > 0:
        return max(1, min(job_count, workers))
    return max(1, job_count)


def render_jobs(
    jobs: list[RenderJob],
    context: TemplateContext,
    renderer: Renderer,
    *,
    identifier: str,
    workers: int,
) -> list[bytes]:
    """
    Render every job, in parallel, before anything is written.

    Returns
    -------
    list[bytes]
        Output content, aligned with ``jobs``.

    Raises
    ------
    TemplateSyntaxError, UndefinedReferenceError
        From the earliest failing job in declaration order, tagged with
        the package identifier.
    """

    def _render(job: RenderJob) -> bytes:
        logger.debug(
            "%s %s", "Rendering" if job.is_template else "Copying", job.source
        )
        return renderer.render(job.source, context)

    try:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            return list(pool.map(_render, jobs))
    except VpkgError as e:
        if e.identifier is None:
            e.identifier = identifier
        raise


def write_outputs(
    jobs: list[RenderJob],
    contents: list[bytes],
    *,
    identifier: str,
    overwrite: bool,
    workers: int,
    cancel_event: threading.Event | None = None,
) -> list[FileReport | None]:
    """
    Write rendered content to the host project.

    Without ``overwrite`` files are opened in exclusive-create mode, so a
    file that appeared after the conflict pre-scan is never clobbered.

    Returns
    -------
    list[FileReport | None]
        Aligned with ``jobs``; None for jobs skipped by cancellation.

    Raises
    ------
    ConflictError
        If a destination appeared after the pre-scan. Carries the reports
        of files written by the other jobs.
    WriteError
        If any other write failed (permissions, a directory in the way,
        a full disk). Carries the reports of files that were written.
    """
    mode = "wb" if overwrite else "xb"

    def _write(job: RenderJob, content: bytes) -> FileReport | None:
        if cancel_event is not None and cancel_event.is_set():
            return None
        job.destination.parent.mkdir(parents=True, exist_ok=True)
        with job.destination.open(mode) as f:
            f.write(content)
        logger.debug("Wrote %s (%d bytes)", job.destination, len(content))
        return FileReport(job.source, job.destination, len(content))

    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(_write, job, content) for job, content in zip(jobs, contents)]

    results: list[FileReport | None] = []
    conflicts: list[Path] = []
    failures: list[tuple[Path, OSError]] = []
    for job, future in zip(jobs, futures):
        try:
            results.append(future.result())
        except FileExistsError as e:
            results.append(None)
            if e.filename is not None and Path(e.filename) == job.destination:
                conflicts.append(job.destination)
            else:
                failures.append((job.destination, e))
        except OSError as e:
            results.append(None)
            failures.append((job.destination, e))

    written = [r for r in results if r is not None]
    if failures:
        for path, e in failures:
            logger.error("Failed to write %s: %s", path, e)
        raise WriteError(failures, identifier=identifier, written=written)
    if conflicts:
        raise ConflictError(conflicts, identifier=identifier, written=written)

    return results


# =============================================================================
# Main Install Function
# =============================================================================

def install(
    identifier: str,
    project_root: Path | str,
    options: InstallOptions | None = None,
    *,
    index: RegistryIndex,
    now: datetime | None = None,
    renderer: Renderer | None = None,
) -> InstallReport:
    """
    Install a registry package into a host project.

    Parameters
    ----------
    identifier : str
        ``namespace/name`` of the package.

    project_root : Path | str
        Root of the host project. Output lands under it.

    options : InstallOptions | None
        Dry-run, overwrite, module, worker and cancellation settings.

    index : RegistryIndex
        Registry the package is looked up in.

    now : datetime | None
        Render time for ``created_at``. Defaults to the current UTC time.

    renderer : Renderer | None
        Renderer to use. Defaults to a fresh one.

    Returns
    -------
    InstallReport
        Files written (or that would be written) and the context used.

    Raises
    ------
    PackageNotFoundError, MetadataParseError, SchemaViolationError,
    IntegrityError, MalformedIdentifierError
        From loading and context building. Nothing has been written.
    MissingTemplateFileError
        If any declared source is missing. Nothing has been written.
    ConflictError
        If destinations exist and ``overwrite`` is False, or a file sits
        where a destination directory must be created. Nothing has been
        written.
    TemplateSyntaxError, UndefinedReferenceError
        If any template fails to render. Nothing has been written.
    WriteError
        If the filesystem rejects a write. Files listed in its
        ``written`` attribute stay in place.
    """
    options = options or InstallOptions()
    project_root = Path(project_root).resolve()

    # Step 1: Load descriptor (validated against the index)
    metadata = MetadataLoader(index).load(identifier)

    # Step 2: Build context
    module = options.module or detect_module(project_root)
    context = build_context(module, metadata, now or datetime.now(UTC))

    # Step 3: Resolve destination root
    destination_root = project_root / context.destination

    # Step 4: Plan jobs and validate sources
    jobs = plan_jobs(metadata, destination_root)
    entry_point = resolve_entry_point(metadata, jobs)
    check_sources(jobs, identifier)

    # Step 5: Conflict pre-scan. Blocked directories cannot be overwritten.
    blocked = find_blocked_parents(jobs)
    if blocked:
        raise ConflictError(blocked, identifier=identifier, overwritable=False)
    if not options.overwrite:
        conflicts = find_conflicts(jobs)
        if conflicts:
            raise ConflictError(conflicts, identifier=identifier)

    # Step 6: Render everything, then write
    workers = _pool_size(len(jobs), options.workers)
    contents = render_jobs(
        jobs, context, renderer or Renderer(), identifier=identifier, workers=workers
    )

    report = InstallReport(
        identifier=identifier,
        destination_root=destination_root,
        context=context,
        dry_run=options.dry_run,
        entry_point=entry_point,
    )

    if options.dry_run:
        report.files = [
            FileReport(job.source, job.destination, len(content))
            for job, content in zip(jobs, contents)
        ]
        logger.info(
            "Dry run for %s: %d file(s) under %s",
            identifier,
            len(report.files),
            destination_root,
        )
        return report

    results = write_outputs(
        jobs,
        contents,
        identifier=identifier,
        overwrite=options.overwrite,
        workers=workers,
        cancel_event=options.cancel_event,
    )

    # Step 7: Report completed jobs only
    report.files = [r for r in results if r is not None]
    report.cancelled = len(report.files) < len(jobs)

    if report.cancelled:
        logger.warning(
            "Install of %s cancelled after %d of %d file(s)",
            identifier,
            len(report.files),
            len(jobs),
        )
    else:
        logger.info(
            "Installed %s: %d file(s) under %s",
            identifier,
            len(report.files),
            destination_root,
        )

    return report
