"""Main CLI application using Typer."""
import asyncio
import os
from pathlib import Path
from urllib.parse import urlsplit, urlunsplit

import httpx
import typer
from dotenv import load_dotenv
from rich.console import Console

from ..config import CLIENT_LOG_FILE, DEFAULT_PROVIDER, HEALTH_PATH, RECONNECT_DELAY_SECONDS, TRANSCRIPT_LOG_DIR
from ..llm import API_KEY_VARS
from ..logging_setup import configure_logging
from .providers import get_auth_token, get_server_host, get_server_port, get_server_url, require_llm

# Load environment variables
load_dotenv()

# Create Typer app
app = typer.Typer(
    name="jean",
    help="Streaming coding assistant: WebSocket model server and terminal chat client",
    no_args_is_help=True,
    add_completion=True,
)

# Console for rich output
console = Console()


def health_url(server_url: str) -> str:
    """HTTP health endpoint of the server behind a ws:// or wss:// chat URL."""
    parts = urlsplit(server_url)
    scheme = {"ws": "http", "wss": "https"}.get(parts.scheme, parts.scheme)
    return urlunsplit((scheme, parts.netloc, HEALTH_PATH, "", ""))


@app.command()
def serve(
    host: str = typer.Option(None, "--host", help="Interface to bind (default: JEAN_HOST or 127.0.0.1)"),
    port: int = typer.Option(None, "--port", "-p", help="Port to bind (default: JEAN_PORT or 3000)"),
    model: str = typer.Option(None, "--model", "-m", help="Override the provider's model"),
    log_level: str = typer.Option("info", "--log-level", "-l", help="Log level (debug, info, warning, error)"),
):
    """Run the WebSocket model server."""
    from ..server import JeanServer

    configure_logging(log_level)
    llm = require_llm(console)
    bind_host = host or get_server_host()
    bind_port = port if port is not None else get_server_port(console)

    async def _serve():
        async with llm:
            server = JeanServer(
                llm,
                host=bind_host,
                port=bind_port,
                auth_token=get_auth_token(),
                model=model,
            )
            await server.start()

    console.print(f"[bold cyan]Jean server[/bold cyan] [dim]{llm.model} on ws://{bind_host}:{bind_port}[/dim]")
    try:
        asyncio.run(_serve())
    except KeyboardInterrupt:
        console.print("\n[dim]Server stopped.[/dim]")
    except OSError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)


@app.command()
def chat(
    url: str = typer.Option(None, "--url", "-u", help="Chat endpoint (default: JEAN_SERVER_URL)"),
    directory: Path = typer.Option(
        Path("."),
        "--directory",
        "-d",
        exists=True,
        file_okay=False,
        dir_okay=True,
        help="Directory the tools read and search",
    ),
    log_level: str = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Show log panel with level (debug, info, warning, error)",
    ),
    log_file: Path = typer.Option(Path(CLIENT_LOG_FILE), "--log-file", help="Client log file"),
    transcript: bool = typer.Option(True, "--transcript/--no-transcript", help="Write a JSONL transcript"),
    transcript_dir: Path = typer.Option(Path(TRANSCRIPT_LOG_DIR), "--transcript-dir", help="Transcript directory"),
    reconnect_delay: float = typer.Option(
        RECONNECT_DELAY_SECONDS,
        "--reconnect-delay",
        help="Seconds between reconnect attempts",
    ),
):
    """Launch the terminal chat client.

    Controls:
      - Ctrl+J: Send message
      - Ctrl+C / Ctrl+Q: Quit
      - Ctrl+L: Clear tools panel
      - Ctrl+D: Toggle log panel
      - Ctrl+R: Copy last response
    """
    from ..ui import run_textual_tui

    # The TUI owns the terminal, so logs go to a file.
    configure_logging(log_level or "info", log_file=log_file)

    asyncio.run(run_textual_tui(
        url or get_server_url(),
        token=get_auth_token(),
        reconnect_delay=reconnect_delay,
        base_path=directory.resolve(),
        log_level=log_level,
        transcript_dir=transcript_dir if transcript else None,
    ))


@app.command()
def health(
    url: str = typer.Option(None, "--url", "-u", help="Chat endpoint (default: JEAN_SERVER_URL)"),
    timeout: float = typer.Option(5.0, "--timeout", "-t", help="Request timeout in seconds"),
):
    """Check server reachability and provider configuration."""
    target = health_url(url or get_server_url())
    healthy = True

    try:
        response = httpx.get(target, timeout=timeout)
        if response.status_code == 200:
            console.print(f"[green]+[/green] Server {target}: OK")
        else:
            healthy = False
            console.print(f"[red]x[/red] Server {target}: HTTP {response.status_code}")
    except httpx.HTTPError as e:
        healthy = False
        console.print(f"[red]x[/red] Server {target}: FAILED ({e})")

    provider = os.getenv("LLM_PROVIDER", DEFAULT_PROVIDER).lower()
    key_var = API_KEY_VARS.get(provider)
    if key_var is None:
        console.print(f"[yellow]![/yellow] LLM_PROVIDER: unknown provider {provider!r}")
    elif os.getenv(key_var):
        console.print(f"[green]+[/green] {key_var} ({provider}): SET")
    else:
        console.print(f"[yellow]![/yellow] {key_var} ({provider}): NOT SET")

    if not healthy:
        raise typer.Exit(code=1)


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
