"""Presenters for API responses and errors in the CLI."""

import json
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from xurl.auth.storage import TokenStore
from xurl.core.exceptions import ApiError, XurlError


class ResponsePresenter:
    """Render API payloads, stream lines and errors.

    Contains no request logic; commands hand it whatever came back.
    """

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def present_json(self, payload: Any) -> None:
        """Pretty-print a decoded JSON payload."""
        self.console.print_json(data=payload)

    def present_stream_line(self, line: str) -> None:
        """Print one streamed line; lines that are JSON are pretty-printed."""
        try:
            payload = json.loads(line)
        except ValueError:
            self.console.print(line, markup=False, highlight=False)
            return
        self.present_json(payload)

    def present_error(self, error: XurlError) -> None:
        """Show the server payload for API errors, otherwise the message."""
        if isinstance(error, ApiError) and not isinstance(error.payload, str):
            self.present_json(error.payload)
            return
        self.console.print(
            Panel(
                f"[red]{error}[/red]",
                title=type(error).__name__,
                border_style="red",
            )
        )


class AuthStatusPresenter:
    """Summarise which credentials the store holds."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def present(self, store: TokenStore) -> None:
        table = Table(title="Authentication Status")
        table.add_column("Method", style="cyan")
        table.add_column("Status", style="green")

        usernames = store.get_oauth2_usernames()
        if usernames:
            table.add_row("OAuth2", ", ".join(usernames))
        else:
            table.add_row("OAuth2", "[yellow]No OAuth2 accounts configured[/yellow]")
        table.add_row("OAuth1", _configured(store.has_oauth1_tokens()))
        table.add_row("App Auth", _configured(store.has_bearer_token()))
        table.add_row("Token Store", str(store.file_path))

        self.console.print(table)


def _configured(present: bool) -> str:
    return "Configured" if present else "[yellow]Not configured[/yellow]"
