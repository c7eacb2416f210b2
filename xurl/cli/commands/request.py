"""Raw API request command for the xurl CLI."""

import typer
from rich.console import Console

from xurl.api import is_media_append_request, is_streaming_endpoint, send_media_append
from xurl.cli.presenters import ResponsePresenter
from xurl.cli.services import build_api_client, open_store
from xurl.core.config import Config
from xurl.core.exceptions import XurlError


def request(
    url: str = typer.Argument(..., help="Endpoint path (e.g. /2/users/me) or absolute URL"),
    method: str = typer.Option("GET", "--method", "-X", help="HTTP method"),
    header: list[str] | None = typer.Option(
        None, "--header", "-H", help="Request header as 'Name: value' (repeatable)"
    ),
    data: str = typer.Option("", "--data", "-d", help="Request body (JSON or form-encoded)"),
    auth: str | None = typer.Option(None, "--auth", help="Authentication type: oauth1, oauth2 or app"),
    username: str | None = typer.Option(
        None, "--username", "-u", help="Username for OAuth2 authentication"
    ),
    stream: bool = typer.Option(
        False, "--stream", "-s", help="Force streaming mode for non-streaming endpoints"
    ),
    file: str | None = typer.Option(
        None, "--file", "-F", help="File to upload with a media APPEND request"
    ),
) -> None:
    """Send an authenticated request to the X API.

    Examples:
        xurl request /2/users/me
        xurl request -X POST /2/tweets -d '{"text": "Hello world!"}'
        xurl request /2/tweets/search/stream --auth app
    """
    presenter = ResponsePresenter(Console())
    headers = header or []

    try:
        config = Config.load()
        store = open_store(config)
        with build_api_client(config, store) as client:
            if is_media_append_request(url, file):
                payload = send_media_append(
                    client, url, file, method, headers, data, auth, username
                )
                presenter.present_json(payload)
            elif stream or is_streaming_endpoint(url):
                for line in client.stream_request(method, url, headers, data, auth, username):
                    presenter.present_stream_line(line)
            else:
                payload = client.send_request(method, url, headers, data, auth, username)
                presenter.present_json(payload)
    except XurlError as e:
        presenter.present_error(e)
        raise typer.Exit(1) from None
