"""
vpkg.cli - Command Line Interface
=================================

This module provides the command-line interface for vpkg using Typer,
with Rich for tables and panels and questionary for confirmation.

Architecture
------------
::

    app (main entry point)
    ├── list   - Discover packages by type, tags or search term
    ├── info   - Show one package's descriptor
    └── add    - Install a package into the current project

Every command exits with code 0 on success and 1 on any vpkg error. Errors
go to stderr and name the package and, where known, the failing file.

Usage Examples
--------------
    $ vpkg list --type fx-module --tags cache,redis
    $ vpkg info vandor/redis-cache
    $ vpkg add vandor/redis-cache --dry-run
    $ vpkg add vandor/redis-cache --yes

See Also
--------
- installer.py: The install pipeline
- config.py: Where the registry location comes from
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated

import questionary
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from vpkg import __version__
from vpkg.config import Settings, load_settings
from vpkg.errors import ConflictError, VpkgError, WriteError
from vpkg.installer import InstallOptions, InstallReport, install
from vpkg.models import PackageType
from vpkg.query import list_entries, search_entries
from vpkg.registry import MetadataLoader, RegistryIndex, load_index


# =============================================================================
# CLI Application Setup
# =============================================================================

app = typer.Typer(
    name="vpkg",
    help="Install packages from a template registry into your project.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=True,
)

# Console for regular output
console = Console()

# Console for errors and log records
err_console = Console(stderr=True)


# =============================================================================
# Shared Helpers
# =============================================================================

def version_callback(value: bool) -> None:
    """Display version information and exit."""
    if value:
        console.print(Panel(
            f"[bold green]vpkg[/] version [cyan]{__version__}[/]\n\n"
            f"[dim]Package template installer[/]",
            border_style="green",
        ))
        raise typer.Exit()


def configure_logging(verbose: bool) -> None:
    """Route log records through Rich on stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def fail(error: VpkgError | str) -> typer.Exit:
    """Print an error to stderr and return the exit to raise."""
    message = error.describe() if isinstance(error, VpkgError) else error
    err_console.print(f"[red]Error:[/] {escape(message)}")
    return typer.Exit(1)


def resolve_settings(
    project: Path,
    registry: Path | None,
    module: str | None = None,
) -> Settings:
    """Load settings for a project and apply command-line overrides."""
    settings = load_settings(project)
    overrides: dict[str, object] = {}
    if registry is not None:
        overrides["registry"] = registry
    if module is not None:
        overrides["module"] = module
    return settings.model_copy(update=overrides) if overrides else settings


def open_registry(project: Path, registry: Path | None) -> RegistryIndex:
    settings = resolve_settings(project, registry)
    return load_index(settings.registry)


def parse_tags(tags: str | None) -> set[str] | None:
    if tags is None:
        return None
    return {t.strip() for t in tags.split(",") if t.strip()}


# Options shared by every command
RegistryOption = Annotated[
    Path | None,
    typer.Option(
        "--registry",
        "-r",
        help="Registry directory or index file (default: from vpkg.toml or VPKG_REGISTRY)",
    ),
]

ProjectOption = Annotated[
    Path,
    typer.Option(
        "--path",
        "-p",
        help="Path to the host project",
        file_okay=False,
        dir_okay=True,
    ),
]


# =============================================================================
# Main Application Callback
# =============================================================================

@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Show debug logging.",
        ),
    ] = False,
) -> None:
    """
    [bold]vpkg[/] - Package template installer.

    [bold]Quick Start:[/]

        vpkg list
        vpkg add vandor/redis-cache --dry-run
    """
    configure_logging(verbose)


# =============================================================================
# List Command
# =============================================================================

@app.command("list")
def list_command(
    type_: Annotated[
        str | None,
        typer.Option(
            "--type",
            "-t",
            help="Package type: fx-module, cli-command",
        ),
    ] = None,
    tags: Annotated[
        str | None,
        typer.Option(
            "--tags",
            help="Comma-separated tags; packages must have all of them",
        ),
    ] = None,
    search: Annotated[
        str | None,
        typer.Option(
            "--search",
            "-s",
            help="Substring to match against identifiers and tags",
        ),
    ] = None,
    registry: RegistryOption = None,
    path: ProjectOption = Path("."),
) -> None:
    """
    List packages in the registry.

    [bold]Examples:[/]

        vpkg list
        vpkg list --type cli-command
        vpkg list --tags cache,redis
    """
    if type_ is not None:
        try:
            type_ = PackageType(type_.lower()).value
        except ValueError:
            valid = ", ".join(pt.value for pt in PackageType)
            raise fail(f"Invalid package type '{type_}'. Valid: {valid}") from None

    try:
        index = open_registry(path.resolve(), registry)
    except VpkgError as e:
        raise fail(e) from e

    entries = list_entries(index, type_filter=type_, tag_filter=parse_tags(tags))
    if search:
        entries = search_entries(entries, search)

    if not entries:
        console.print("[yellow]No packages match.[/]")
        return

    table = Table(title="Packages", show_header=True)
    table.add_column("Package", style="cyan")
    table.add_column("Type", style="green")
    table.add_column("Tags", style="dim")

    for entry in entries:
        table.add_row(
            entry.identifier,
            entry.type.value,
            ", ".join(sorted(entry.tags)),
        )

    console.print(table)


# =============================================================================
# Info Command
# =============================================================================

@app.command()
def info(
    identifier: Annotated[
        str,
        typer.Argument(help="Package identifier, e.g. vandor/redis-cache"),
    ],
    registry: RegistryOption = None,
    path: ProjectOption = Path("."),
) -> None:
    """
    Show a package's descriptor.

    [bold]Example:[/]

        vpkg info vandor/redis-cache
    """
    try:
        index = open_registry(path.resolve(), registry)
        metadata = MetadataLoader(index).load(identifier)
    except VpkgError as e:
        raise fail(e) from e

    table = Table(show_header=False, box=None)
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    table.add_row("Type", metadata.type.value)
    table.add_row("Version", metadata.version)
    if metadata.author:
        table.add_row("Author", metadata.author)
    if metadata.license:
        table.add_row("License", metadata.license)
    if metadata.entry:
        table.add_row("Entry", metadata.entry)
    table.add_row("Destination", metadata.destination)
    table.add_row("Templates", "\n".join(metadata.templates))
    if metadata.tags:
        table.add_row("Tags", ", ".join(sorted(metadata.tags)))
    if metadata.dependencies:
        table.add_row("Dependencies", "\n".join(metadata.dependencies))

    console.print(Panel(
        table,
        title=f"[bold]{escape(metadata.display_title)}[/]",
        subtitle=escape(metadata.name),
        border_style="blue",
    ))
    if metadata.description:
        console.print(metadata.description, markup=False)


# =============================================================================
# Add Command
# =============================================================================

def print_plan(report: InstallReport, project: Path, overwrite: bool) -> None:
    """Show the files an install will write."""
    table = Table(title=f"Files for {report.identifier}", show_header=True)
    table.add_column("File", style="cyan")
    table.add_column("Bytes", justify="right")
    table.add_column("Status", style="dim")

    for item in report.files:
        if item.destination.exists():
            status = "[yellow]will overwrite[/]" if overwrite else "[red]exists[/]"
        else:
            status = "[green]will create[/]"
        table.add_row(
            str(item.destination.relative_to(project)),
            str(item.size),
            status,
        )

    console.print(table)


@app.command()
def add(
    identifier: Annotated[
        str,
        typer.Argument(help="Package identifier, e.g. vandor/redis-cache"),
    ],
    path: ProjectOption = Path("."),
    registry: RegistryOption = None,
    module: Annotated[
        str | None,
        typer.Option(
            "--module",
            "-m",
            help="Host module path (default: read from go.mod)",
        ),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            help="Show what would be written without writing anything",
        ),
    ] = False,
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Overwrite existing files",
        ),
    ] = False,
    yes: Annotated[
        bool,
        typer.Option(
            "--yes",
            "-y",
            help="Skip confirmation prompt",
        ),
    ] = False,
) -> None:
    """
    Install a package into a project.

    Renders the package's templates into the destination its descriptor
    declares. Nothing is written if any file would fail.

    [bold]Examples:[/]

        vpkg add vandor/redis-cache --dry-run
        vpkg add vandor/redis-cache --yes
        vpkg add vandor/redis-cli --path ./shop --force
    """
    # Resolve path early to avoid /tmp vs /private/tmp issues on macOS
    project = path.resolve()

    try:
        settings = resolve_settings(project, registry, module)
        index = load_index(settings.registry)

        options = InstallOptions(
            dry_run=True,
            overwrite=force,
            module=settings.module,
            workers=settings.workers,
        )
        preview = install(identifier, project, options, index=index)
    except VpkgError as e:
        raise fail(e) from e

    console.print()
    print_plan(preview, project, force)
    console.print()

    if dry_run:
        console.print("[yellow]DRY RUN - No changes were made[/]")
        console.print("[dim]Run without --dry-run to write these files[/]")
        return

    if not yes:
        if not questionary.confirm(
            f"Install {identifier}?",
            default=True,
        ).ask():
            raise typer.Abort()

    options.dry_run = False
    try:
        report = install(identifier, project, options, index=index)
    except (ConflictError, WriteError) as e:
        for written in e.written:
            console.print(
                f"[yellow]Left in place:[/] "
                f"{escape(str(written.destination.relative_to(project)))}"
            )
        raise fail(e) from e
    except VpkgError as e:
        raise fail(e) from e

    lines = "\n".join(
        f"  - {escape(str(f.destination.relative_to(project)))}" for f in report.files
    )
    message = (
        f"[bold green]Installed {escape(identifier)}![/]\n\n"
        f"Wrote {len(report.files)} file(s), {report.total_bytes} bytes:\n{lines}"
    )
    if report.entry_point is not None:
        entry = escape(str(report.entry_point.relative_to(project)))
        message += f"\n\n[dim]Entry point:[/] {entry}"

    console.print(Panel(
        message,
        title="[bold]Success[/]",
        border_style="green",
    ))


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == "__main__":
    app()
