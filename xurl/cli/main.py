"""Main CLI entry point for xurl."""

import typer
from rich.console import Console

from xurl.cli.commands import auth, media, request
from xurl.core.config import Config
from xurl.core.exceptions import ValidationError
from xurl.core.logging import configure_logging

app = typer.Typer(
    name="xurl",
    help="Auth enabled curl-like interface for the X API",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.add_typer(auth.app, name="auth", help="Authentication management")
app.add_typer(media.app, name="media", help="Media upload operations")
app.command(name="request")(request.request)


@app.command()
def version() -> None:
    """Show version information."""
    from xurl import __version__

    console = Console()
    console.print(f"[bold cyan]xurl[/bold cyan] version [green]{__version__}[/green]")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """xurl CLI."""
    if verbose:
        configure_logging("DEBUG")
        return
    try:
        configure_logging(Config.load().log_level)
    except ValidationError:
        # Reported by the command that loads the configuration
        configure_logging()


if __name__ == "__main__":
    app()
