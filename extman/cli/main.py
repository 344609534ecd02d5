"""Main CLI application for extman."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from extman import __version__
from extman.config.parser import ConfigError, load_settings
from extman.config.schemas import ExtmanSettings
from extman.core.errors import BatchInstallError, BatchUninstallError, ExtensionError
from extman.core.installer import ExtensionInstaller
from extman.core.localization import LanguagePackCache
from extman.core.output import ConsoleOutput
from extman.core.query import list_extensions, locate_extensions
from extman.core.uninstaller import ExtensionUninstaller
from extman.registry.local import LocalGalleryClient, LocalGalleryError
from extman.store.local import FileSystemExtensionStore

app = typer.Typer(
    name="extman",
    help="Install, update, uninstall and locate extensions",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)

logger = logging.getLogger("extman")

DEFAULT_HOME = Path.home() / ".extman"

# Errors that end a command with exit code 1
COMMAND_ERRORS = (
    ConfigError,
    ExtensionError,
    BatchInstallError,
    BatchUninstallError,
    LocalGalleryError,
)


def setup_logging(verbosity: int) -> None:
    """Configure logging based on verbosity level.

    Args:
        verbosity: 0=WARNING, 1=INFO, 2+=DEBUG
    """
    if verbosity == 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    logger.setLevel(level)

    # Only add handler if not already configured
    if not logger.handlers:
        handler = RichHandler(
            console=error_console,
            show_time=verbosity >= 2,
            show_path=verbosity >= 3,
            rich_tracebacks=True,
        )
        handler.setLevel(level)
        logger.addHandler(handler)
    else:
        for h in logger.handlers:
            h.setLevel(level)


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    error_console.print(f"[red]Error:[/red] {escape(message)}", soft_wrap=True)


@dataclass
class Services:
    """Collaborators wired from the extman settings."""

    home: Path
    settings: ExtmanSettings
    store: FileSystemExtensionStore
    gallery: LocalGalleryClient | None
    localization: LanguagePackCache


def resolve_path(home: Path, value: str) -> Path:
    path = Path(value).expanduser()
    return path if path.is_absolute() else home / path


def get_services(home: Path) -> Services:
    """Build the store, gallery and localization cache from settings."""
    try:
        settings = load_settings(home)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(1) from e

    gallery = None
    if settings.gallery:
        gallery_url = settings.gallery
        if not gallery_url.startswith("file:"):
            gallery_url = str(resolve_path(home, gallery_url))
        gallery = LocalGalleryClient(gallery_url)

    system_dir = (
        resolve_path(home, settings.system_extensions_dir)
        if settings.system_extensions_dir
        else None
    )
    store = FileSystemExtensionStore(
        resolve_path(home, settings.extensions_dir),
        system_extensions_dir=system_dir,
        gallery=gallery,
    )
    localization = LanguagePackCache(store, resolve_path(home, settings.localization_cache))

    return Services(
        home=home,
        settings=settings,
        store=store,
        gallery=gallery,
        localization=localization,
    )


@app.callback()
def callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            count=True,
            help="Increase verbosity (-v info, -vv debug)",
        ),
    ] = 0,
    home: Annotated[
        Path,
        typer.Option(
            "--home",
            envvar="EXTMAN_HOME",
            help="extman home directory (holds config.yaml and installed extensions)",
        ),
    ] = DEFAULT_HOME,
) -> None:
    """extman - command-line extension manager."""
    setup_logging(verbose)
    ctx.obj = home.expanduser().resolve()


@app.command()
def version() -> None:
    """Show the extman version."""
    console.print(f"extman {__version__}")


@app.command("list")
def list_command(
    ctx: typer.Context,
    category: Annotated[
        str | None,
        typer.Option(
            "--category",
            help="Only list extensions in this category (pass '' to see categories)",
        ),
    ] = None,
    show_versions: Annotated[
        bool,
        typer.Option("--show-versions", help="Show the installed version of each extension"),
    ] = False,
) -> None:
    """List installed extensions."""
    services = get_services(ctx.obj)
    try:
        list_extensions(
            services.store, ConsoleOutput(console, error_console), show_versions, category
        )
    except COMMAND_ERRORS as e:
        print_error(str(e))
        raise typer.Exit(1) from e


@app.command()
def install(
    ctx: typer.Context,
    extensions: Annotated[
        list[str] | None,
        typer.Argument(
            help="Extensions to install (e.g., 'publisher.name', 'publisher.name@1.2.3', "
            "'./publisher.name-1.2.3.tar.gz')",
        ),
    ] = None,
    builtin: Annotated[
        list[str] | None,
        typer.Option(
            "--builtin",
            help="Install an extension as builtin (repeatable)",
        ),
    ] = None,
    machine: Annotated[
        bool,
        typer.Option("--machine", help="Install the extensions machine-wide"),
    ] = False,
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Update already installed extensions and allow downgrades",
        ),
    ] = False,
) -> None:
    """Install or update extensions.

    Already installed extensions are skipped unless --force or an explicit
    '@<version>' is given. Installing an older version than the installed
    one requires --force.
    """
    if not extensions and not builtin:
        console.print("No extensions to install")
        return

    services = get_services(ctx.obj)
    installer = ExtensionInstaller(
        services.store,
        services.gallery,
        services.localization,
        max_workers=services.settings.max_workers,
    )
    try:
        installer.install(
            extensions or [],
            ConsoleOutput(console, error_console),
            builtin_references=builtin or [],
            is_machine_scoped=machine,
            force=force,
        )
    except COMMAND_ERRORS as e:
        print_error(str(e))
        raise typer.Exit(1) from e


@app.command()
def uninstall(
    ctx: typer.Context,
    extensions: Annotated[
        list[str],
        typer.Argument(help="Extensions to uninstall (identifiers or package paths)"),
    ],
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Uninstall extensions marked as builtin",
        ),
    ] = False,
) -> None:
    """Uninstall extensions."""
    services = get_services(ctx.obj)
    uninstaller = ExtensionUninstaller(services.store, services.localization)
    try:
        uninstaller.uninstall(extensions, ConsoleOutput(console, error_console), force=force)
    except COMMAND_ERRORS as e:
        print_error(str(e))
        raise typer.Exit(1) from e


@app.command()
def locate(
    ctx: typer.Context,
    extensions: Annotated[
        list[str],
        typer.Argument(help="Extension identifiers to locate"),
    ],
) -> None:
    """Print the install folder of each extension."""
    services = get_services(ctx.obj)
    try:
        locate_extensions(services.store, extensions, ConsoleOutput(console, error_console))
    except COMMAND_ERRORS as e:
        print_error(str(e))
        raise typer.Exit(1) from e
