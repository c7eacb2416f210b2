"""Media upload commands for the xurl CLI."""

import typer
from rich.console import Console

from xurl.api import MediaUploader
from xurl.cli.presenters import ResponsePresenter
from xurl.cli.services import build_api_client, open_store
from xurl.core.config import Config
from xurl.core.exceptions import XurlError

app = typer.Typer(help="Media upload operations")


@app.command()
def upload(
    file: str = typer.Argument(..., help="Path of the file to upload"),
    media_type: str = typer.Option("video/mp4", "--media-type", help="MIME type of the media"),
    category: str = typer.Option("amplify_video", "--category", help="Media category"),
    wait: bool = typer.Option(
        True, "--wait/--no-wait", help="Wait for video processing to complete"
    ),
    auth: str | None = typer.Option(None, "--auth", help="Authentication type: oauth1, oauth2 or app"),
    username: str | None = typer.Option(None, "--username", "-u", help="OAuth2 username"),
    header: list[str] | None = typer.Option(None, "--header", "-H", help="Extra request header"),
) -> None:
    """Upload a media file in chunks.

    Example:
        xurl media upload path/to/video.mp4
    """
    console = Console()
    presenter = ResponsePresenter(console)

    try:
        config = Config.load()
        store = open_store(config)
        with build_api_client(config, store) as client:
            uploader = MediaUploader(client, file, auth, username, header)
            payload = uploader.upload(media_type, category, wait=wait)
    except XurlError as e:
        presenter.present_error(e)
        raise typer.Exit(1) from None

    presenter.present_json(payload)
    console.print(f"[green]Media uploaded successfully! Media ID: {uploader.media_id}[/green]")


@app.command()
def status(
    media_id: str = typer.Argument(..., help="Media ID returned by the upload"),
    wait: bool = typer.Option(False, "--wait", "-w", help="Poll until processing finishes"),
    auth: str | None = typer.Option(None, "--auth", help="Authentication type: oauth1, oauth2 or app"),
    username: str | None = typer.Option(None, "--username", "-u", help="OAuth2 username"),
    header: list[str] | None = typer.Option(None, "--header", "-H", help="Extra request header"),
) -> None:
    """Show the processing status of an uploaded media file."""
    presenter = ResponsePresenter(Console())

    try:
        config = Config.load()
        store = open_store(config)
        with build_api_client(config, store) as client:
            uploader = MediaUploader.for_media_id(client, media_id, auth, username, header)
            payload = uploader.wait_for_processing() if wait else uploader.check_status()
    except XurlError as e:
        presenter.present_error(e)
        raise typer.Exit(1) from None

    presenter.present_json(payload)
