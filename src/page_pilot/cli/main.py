"""
Main CLI application for page-pilot.

Provides quick one-shot commands against a single page:
- Reading the title or text of a page
- Saving screenshots
- Waiting for a selector to appear
- Managing configuration
"""

import asyncio
from pathlib import Path
from typing import Optional

import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from page_pilot import __version__
from page_pilot.config import Settings, find_config_file, load_config
from page_pilot.core.exceptions import PagePilotError, WaitTimeoutError
from page_pilot.pilot import Pilot
from page_pilot.utils.logging import setup_logging, get_logger

# Initialize Typer app
app = typer.Typer(
    name="page-pilot",
    help="page-pilot - Drive a headless browser page from the command line",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()
logger = get_logger(__name__)


def version_callback(value: bool) -> None:
    """Print the package version for --version."""
    if value:
        console.print(f"[bold blue]page-pilot[/bold blue] v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Print the version and exit",
    ),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="YAML configuration file (default: searched for)",
        exists=True,
        dir_okay=False,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Log at DEBUG level",
    ),
) -> None:
    """
    page-pilot - Drive a headless browser page.

    Use 'page-pilot --help' for command list.
    """
    try:
        settings = load_config(config_file or find_config_file())
    except PagePilotError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    setup_logging(settings.logging, level="DEBUG" if verbose else None)
    ctx.obj = settings


def _settings(ctx: typer.Context) -> Settings:
    return ctx.obj if isinstance(ctx.obj, Settings) else Settings()


def _run(coro, failure: str) -> None:
    """Run one command coroutine, mapping failures onto exit code 1."""
    try:
        asyncio.run(coro)
    except KeyboardInterrupt:
        console.print("\n[yellow]Cancelled by user[/yellow]")
        raise typer.Exit(1)
    except WaitTimeoutError as e:
        console.print(f"[red]Timed out:[/red] {escape(str(e))}")
        raise typer.Exit(1)
    except PagePilotError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        logger.debug(failure, exc_info=True)
        raise typer.Exit(1)


def _parse_clip(clip: str) -> tuple[float, float, float, float]:
    parts = [part.strip() for part in clip.split(",")]
    if len(parts) != 4:
        raise typer.BadParameter("expected top,left,width,height")
    try:
        top, left, width, height = (float(part) for part in parts)
    except ValueError:
        raise typer.BadParameter("clip values must be numbers") from None
    return top, left, width, height


@app.command()
def title(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="URL to open"),
) -> None:
    """
    Print the title and final URL of a page.

    Example:
        page-pilot title https://example.com
    """
    async def _title() -> None:
        async with Pilot(_settings(ctx)) as pilot:
            await pilot.open(url)
            page_title = await pilot.title()
            final_url = await pilot.url()
            console.print(page_title, markup=False, highlight=False)
            console.print(final_url, style="dim", markup=False, highlight=False)

    _run(_title(), "title failed")


@app.command()
def text(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="URL to open"),
    selector: Optional[str] = typer.Option(
        None,
        "--selector",
        "-s",
        help="Only print the text of this element",
    ),
) -> None:
    """
    Print the visible text of a page or of one element.

    Example:
        page-pilot text https://example.com --selector h1
    """
    async def _text() -> None:
        async with Pilot(_settings(ctx)) as pilot:
            await pilot.open(url)
            console.print(await pilot.text(selector), markup=False, highlight=False)

    _run(_text(), "text failed")


@app.command()
def screenshot(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="URL to open"),
    path: Path = typer.Argument(..., help="Output image file"),
    clip: Optional[str] = typer.Option(
        None,
        "--clip",
        help="Clip rectangle as top,left,width,height",
    ),
) -> None:
    """
    Save a screenshot of a page.

    Example:
        page-pilot screenshot https://example.com shot.png --clip 0,0,800,600
    """
    geometry = _parse_clip(clip) if clip else (None, None, None, None)

    async def _screenshot() -> None:
        async with Pilot(_settings(ctx)) as pilot:
            await pilot.open(url)
            await pilot.screenshot(path, *geometry)

    _run(_screenshot(), "screenshot failed")
    console.print(f"[green]✓[/green] Screenshot saved to: {path}")


@app.command(name="wait-for")
def wait_for(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="URL to open"),
    selector: str = typer.Argument(..., help="CSS selector to wait for"),
) -> None:
    """
    Open a page and wait until a selector matches.

    Exits with status 1 if the session timeout elapses first.

    Example:
        page-pilot wait-for https://example.com "#content"
    """
    async def _wait_for() -> None:
        async with Pilot(_settings(ctx)) as pilot:
            await pilot.open(url)
            await pilot.wait_for_selector(selector)

    _run(_wait_for(), "wait-for failed")
    console.print(f"[green]✓[/green] Found: {escape(selector)}")


@app.command()
def config(
    ctx: typer.Context,
    show: bool = typer.Option(False, "--show", "-s", help="Print the effective settings"),
    init: bool = typer.Option(False, "--init", help="Write the default settings to a YAML file"),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Where --init writes (default: ./config.yaml)",
    ),
) -> None:
    """
    Inspect or bootstrap configuration.

    Examples:
        page-pilot config --show
        page-pilot --config ./pilot.yaml config --show
        page-pilot config --init --output ./pilot.yaml
    """
    if init:
        _init_config(output or Path("config.yaml"))
    elif show:
        _show_config(_settings(ctx))
    else:
        console.print("Nothing to do: pass --show or --init")


def _show_config(settings: Settings) -> None:
    table = Table(title="Effective configuration", show_lines=False)
    table.add_column("Setting", style="cyan", no_wrap=True)
    table.add_column("Value")

    for section, values in settings.model_dump(mode="json").items():
        for key, value in values.items():
            table.add_row(f"{section}.{key}", escape(repr(value)))

    console.print(table)


def _init_config(path: Path) -> None:
    if path.exists() and not typer.confirm(f"{path} already exists. Overwrite?"):
        raise typer.Exit(0)

    defaults = Settings().model_dump(mode="json")
    path.write_text(yaml.safe_dump(defaults, sort_keys=False), encoding="utf-8")
    console.print(f"[green]✓[/green] Wrote default configuration to {escape(str(path))}")


if __name__ == "__main__":
    app()
