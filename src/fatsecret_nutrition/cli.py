"""Interactive console for connecting a FatSecret account."""

import asyncio
import webbrowser
from collections.abc import Callable, Coroutine
from functools import wraps
from typing import Any

import typer
from rich.console import Console

from .config import configure_logging, get_settings
from .credentials import CredentialStore
from .exceptions import FatSecretError
from .oauth_flow import AuthorizationSession, AuthState, OAuthFlowManager
from .transport import RequestExecutor

app = typer.Typer(
    no_args_is_help=True,
    help="Manage the FatSecret credentials used by the nutrition MCP server.",
)

console = Console()
error_console = Console(stderr=True)


def print_error(message: str) -> None:
    error_console.print(f"[red]Error:[/red] {message}")


def print_success(message: str) -> None:
    console.print(f"[green]✓[/green] {message}")


def print_info(message: str) -> None:
    console.print(f"[blue]i[/blue] {message}")


def async_command(
    f: Callable[..., Coroutine[Any, Any, Any]],
) -> Callable[..., Any]:
    """Run an async Typer command, reporting domain errors as exit code 1."""

    @wraps(f)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return asyncio.run(f(*args, **kwargs))
        except FatSecretError as e:
            print_error(str(e))
            raise typer.Exit(1) from None

    return wrapper


@app.callback()
def main(
    log_level: str | None = typer.Option(
        None, "--log-level", help="Override FATSECRET_LOG_LEVEL."
    ),
) -> None:
    configure_logging(log_level or get_settings().log_level)


async def _authorize(store: CredentialStore, no_browser: bool) -> None:
    """Run all three legs of the handshake against the stored credentials."""
    settings = get_settings()
    credentials = store.load()

    if not credentials.has_consumer_credentials:
        print_error("No Client ID and Secret configured.")
        print_info("Run 'fatsecret-nutrition setup' first.")
        raise typer.Exit(1)

    async with RequestExecutor() as executor:
        flow = OAuthFlowManager(settings, store, executor)
        session = AuthorizationSession(flow, credentials)

        # Step 1: Get request token
        print_info("Requesting a token from FatSecret...")
        auth_url = await session.start()

        # Step 2: Open browser or show URL
        if no_browser:
            console.print("\nOpen this URL in your browser:")
        else:
            print_info("Opening browser for authorization...")
            webbrowser.open(auth_url)
            console.print("\n[dim]If browser didn't open, visit:[/dim]")
        console.print(auth_url, soft_wrap=True)

        # Step 3: Get verifier from user
        console.print()
        session.receive_verifier(
            typer.prompt("Enter the verifier code from the authorization page")
        )

        # Step 4: Exchange for access token
        print_info("Exchanging verifier code for access token...")
        access_token = await session.complete()

    print_success(f"Authenticated successfully! Credentials saved to {store.path}")
    if access_token.user_id:
        print_info(f"User ID: {access_token.user_id}")


@app.command("setup")
@async_command
async def setup(
    authenticate: bool | None = typer.Option(
        None,
        "--authenticate/--no-authenticate",
        help="Connect a user account after saving the credentials.",
    ),
    no_browser: bool = typer.Option(
        False, "--no-browser", help="Don't open browser automatically."
    ),
) -> None:
    """Save a FatSecret Client ID and Secret.

    Get them from https://platform.fatsecret.com/api/
    """
    settings = get_settings()
    store = CredentialStore.from_settings(settings)
    current = store.load()

    keep = current.has_consumer_credentials and typer.confirm(
        f"Credentials for Client ID {current.consumer_key} exist. Keep them?",
        default=True,
    )

    if not keep:
        client_id = typer.prompt("Client ID")
        client_secret = typer.prompt("Client Secret", hide_input=True)

        async with RequestExecutor() as executor:
            OAuthFlowManager(settings, store, executor).set_credentials(
                client_id, client_secret
            )
        print_success(f"Credentials saved to {store.path}")

    if authenticate is None:
        authenticate = typer.confirm(
            "Do you want to authenticate a user now?", default=True
        )

    if authenticate:
        await _authorize(store, no_browser)
    else:
        print_info("Run 'fatsecret-nutrition login' when ready to connect a user.")


@app.command("login")
@async_command
async def login(
    no_browser: bool = typer.Option(
        False, "--no-browser", help="Don't open browser automatically."
    ),
) -> None:
    """Connect a FatSecret user account with OAuth.

    This command runs the OAuth flow:
    1. Opens browser for FatSecret authorization
    2. Prompts for verifier code
    3. Saves access token for future use
    """
    await _authorize(CredentialStore.from_settings(get_settings()), no_browser)


@app.command("status")
def status() -> None:
    """Show how far the stored credentials have progressed."""
    store = CredentialStore.from_settings(get_settings())
    credentials = store.load()
    state = OAuthFlowManager.state_of(credentials)

    console.print(f"Credentials file: {store.path}", soft_wrap=True)

    if state is AuthState.NO_CREDENTIALS:
        print_info("Not configured - run 'fatsecret-nutrition setup'")
    elif state is AuthState.CREDENTIALS_SET:
        console.print(f"Client ID: {credentials.consumer_key}")
        print_info("No user connected - run 'fatsecret-nutrition login'")
    else:
        console.print(f"Client ID: {credentials.consumer_key}")
        console.print(f"User ID: {credentials.user_id or 'N/A'}")
        print_success("Fully authenticated")


@app.command("logout")
def logout() -> None:
    """Remove the stored user token, keeping the Client ID and Secret."""
    store = CredentialStore.from_settings(get_settings())

    if not store.load().has_access_token:
        print_info("No user token to clear.")
        return

    store.clear_access_token()
    print_success("User token removed.")


if __name__ == "__main__":
    app()
