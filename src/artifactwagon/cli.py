"""Artifact Wagon CLI."""

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from artifactwagon.config import WagonConfig, get_config_template, load_config
from artifactwagon.errors import (
    ConfigurationError,
    ResourceNotFoundError,
    WagonError,
)
from artifactwagon.events import TransferEvent, TransferEventType
from artifactwagon.wagon import ArtifactWagon

app = typer.Typer(help="Artifact Wagon - fetch and publish artifacts in a remote package repository")
console = Console()

CONFIG_FILE = "wagon.yaml"


def setup_logging(verbose: bool = False):
    """Configure logging with rich handler."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("google.auth").setLevel(logging.WARNING)


class ConsoleTransferListener:
    """Prints a line per finished transfer."""

    def __init__(self):
        self.transferred = 0

    def on_transfer_event(self, event: TransferEvent) -> None:
        name = event.resource.name
        if event.event_type == TransferEventType.STARTED:
            self.transferred = 0
            console.print(f"[dim]{event.request_type.value}[/dim] {name}")
        elif event.event_type == TransferEventType.COMPLETED:
            console.print(f"[green]done[/green] {name} ({format_size(self.transferred)})")

    def on_transfer_progress(self, event: TransferEvent, length: int) -> None:
        self.transferred += length


def get_config(config_path: Path, repository: str | None) -> WagonConfig:
    """Load the config file, letting --repository override or replace it."""
    if config_path.exists():
        config = load_config(config_path)
        if repository:
            config = config.model_copy(update={"repository": repository})
        return config
    if repository:
        return WagonConfig(repository=repository)
    console.print(
        f"[red]Error:[/red] {config_path} not found. "
        "Run 'artifact-wagon init' or pass --repository."
    )
    raise typer.Exit(1)


def open_wagon(config: WagonConfig) -> ArtifactWagon:
    wagon = ArtifactWagon(config)
    wagon.add_transfer_listener(ConsoleTransferListener())
    try:
        wagon.connect()
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(2)
    return wagon


def exit_for_error(e: WagonError) -> typer.Exit:
    console.print(f"[red]Error:[/red] {e}")
    if isinstance(e, ResourceNotFoundError):
        return typer.Exit(3)
    return typer.Exit(1)


@app.command()
def init():
    """Write a configuration template to the current directory."""
    config_file = Path(CONFIG_FILE)

    if config_file.exists():
        console.print(f"[yellow]Warning:[/yellow] {CONFIG_FILE} already exists.")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit(0)

    config_file.write_text(get_config_template())
    console.print(f"[green]Wrote {CONFIG_FILE}.[/green]")
    console.print(f"\nEdit {CONFIG_FILE} to point at your repository.")


@app.command()
def resolve(
    artifact_path: str = typer.Argument(..., help="Artifact path within the repository"),
    config_path: Path = typer.Option(Path(CONFIG_FILE), "--config", "-c", help="Config file"),
    repository: str | None = typer.Option(None, "--repository", "-r", help="Repository locator"),
):
    """Print the URL an artifact path resolves to."""
    config = get_config(config_path, repository)
    wagon = ArtifactWagon(config)
    try:
        wagon.connect()
        console.print(wagon.build_url(artifact_path).url)
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(2)
    finally:
        wagon.disconnect()


@app.command()
def get(
    artifact_path: str = typer.Argument(..., help="Artifact path within the repository"),
    destination: Path = typer.Argument(..., help="Local file to write"),
    config_path: Path = typer.Option(Path(CONFIG_FILE), "--config", "-c", help="Config file"),
    repository: str | None = typer.Option(None, "--repository", "-r", help="Repository locator"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
):
    """Download an artifact."""
    setup_logging(verbose)
    wagon = open_wagon(get_config(config_path, repository))
    try:
        wagon.get(artifact_path, destination)
    except WagonError as e:
        raise exit_for_error(e)
    finally:
        wagon.disconnect()


@app.command()
def put(
    source: Path = typer.Argument(..., help="Local file to upload"),
    artifact_path: str = typer.Argument(..., help="Artifact path within the repository"),
    config_path: Path = typer.Option(Path(CONFIG_FILE), "--config", "-c", help="Config file"),
    repository: str | None = typer.Option(None, "--repository", "-r", help="Repository locator"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
):
    """Upload an artifact."""
    setup_logging(verbose)
    if not source.is_file():
        console.print(f"[red]Error:[/red] {source} is not a file.")
        raise typer.Exit(1)

    wagon = open_wagon(get_config(config_path, repository))
    try:
        wagon.put(source, artifact_path)
    except WagonError as e:
        raise exit_for_error(e)
    finally:
        wagon.disconnect()


def format_size(num_bytes: int) -> str:
    """Format a byte count as a human-readable size."""
    if num_bytes < 1024:
        return f"{num_bytes} B"
    elif num_bytes < 1024 * 1024:
        return f"{num_bytes / 1024:.1f} KiB"
    else:
        return f"{num_bytes / (1024 * 1024):.1f} MiB"


if __name__ == "__main__":
    app()
