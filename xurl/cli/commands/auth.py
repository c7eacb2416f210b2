"""Authentication commands for the xurl CLI."""

from typing import NoReturn

import typer
from rich.console import Console
from rich.panel import Panel

from xurl.auth import HttpxHttpClient, PKCEFlow, TokenStore
from xurl.cli.presenters import AuthStatusPresenter, ResponsePresenter
from xurl.cli.services import open_store
from xurl.core.config import Config
from xurl.core.exceptions import XurlError

app = typer.Typer(help="Authentication management")


def _fail(console: Console, error: XurlError) -> NoReturn:
    ResponsePresenter(console).present_error(error)
    raise typer.Exit(1) from None


@app.command("app")
def app_auth(
    bearer_token: str = typer.Option(..., "--bearer-token", help="Bearer token for app authentication"),
) -> None:
    """Store an app-only bearer token.

    Example:
        xurl auth app --bearer-token AAAA...
    """
    console = Console()
    try:
        store = open_store(Config.load())
        store.save_bearer_token(bearer_token)
    except XurlError as e:
        _fail(console, e)
    console.print("[green]✅ App authentication successful![/green]")


@app.command()
def oauth1(
    consumer_key: str = typer.Option(..., "--consumer-key", help="Consumer key for OAuth1"),
    consumer_secret: str = typer.Option(..., "--consumer-secret", help="Consumer secret for OAuth1"),
    access_token: str = typer.Option(..., "--access-token", help="Access token for OAuth1"),
    token_secret: str = typer.Option(..., "--token-secret", help="Token secret for OAuth1"),
) -> None:
    """Store OAuth1 user-context credentials."""
    console = Console()
    try:
        store = open_store(Config.load())
        store.save_oauth1_tokens(access_token, token_secret, consumer_key, consumer_secret)
    except XurlError as e:
        _fail(console, e)
    console.print("[green]✅ OAuth1 credentials saved successfully![/green]")


@app.command()
def oauth2(
    no_browser: bool = typer.Option(
        False, "--no-browser", help="Print the authorization URL instead of opening a browser"
    ),
) -> None:
    """Authorize an account with OAuth2 (PKCE) in the browser.

    This starts a local listener on REDIRECT_URI and waits for the
    authorization callback. Tokens are stored under the account's username.

    Example:
        xurl auth oauth2
    """
    console = Console()
    try:
        config = Config.load()
        store = open_store(config)
        console.print("[yellow]A browser window will open for authentication...[/yellow]")
        http_client = HttpxHttpClient(timeout=config.http_timeout)
        try:
            username = PKCEFlow(store, config, http_client).authenticate(
                open_browser=not no_browser
            )
        finally:
            http_client.close()
    except XurlError as e:
        _fail(console, e)

    console.print(
        Panel(
            f"[green]✅ Successfully authenticated![/green]\n\nUsername: {username}",
            title="OAuth2 Login Success",
            border_style="green",
        )
    )


@app.command()
def status() -> None:
    """Show which credentials are configured."""
    console = Console()
    try:
        store = open_store(Config.load())
    except XurlError as e:
        _fail(console, e)
    AuthStatusPresenter(console).present(store)


@app.command()
def clear(
    all_: bool = typer.Option(False, "--all", help="Clear all authentication"),
    oauth1: bool = typer.Option(False, "--oauth1", help="Clear OAuth1 tokens"),
    bearer: bool = typer.Option(False, "--bearer", help="Clear bearer token"),
    oauth2_username: str | None = typer.Option(
        None, "--oauth2-username", help="Clear OAuth2 token for username"
    ),
) -> None:
    """Remove stored credentials."""
    console = Console()
    try:
        config = Config.load()
        if all_:
            # Written without reading the current file, which may be corrupt
            TokenStore(config.token_store_path).clear_all()
            message = "All authentication cleared!"
        elif oauth1:
            open_store(config).clear_oauth1_tokens()
            message = "OAuth1 tokens cleared!"
        elif oauth2_username:
            open_store(config).clear_oauth2_token(oauth2_username)
            message = f"OAuth2 token cleared for {oauth2_username}!"
        elif bearer:
            open_store(config).clear_bearer_token()
            message = "Bearer token cleared!"
        else:
            console.print(
                "[red]No authentication cleared! Use --all to clear all authentication.[/red]"
            )
            raise typer.Exit(1)
    except XurlError as e:
        _fail(console, e)
    console.print(f"[green]{message}[/green]")
