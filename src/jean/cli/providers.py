"""Factory functions for CLI commands.

Centralizes creation of the LLM provider and the network settings from
environment variables. Hides configuration details from command
implementations.
"""

import os

import typer
from rich.console import Console

from ..config import DEFAULT_HOST, DEFAULT_PORT, DEFAULT_PROVIDER, default_server_url
from ..llm import API_KEY_VARS, LLMProvider, create_llm_provider

# Default console for output
_console = Console()

# Environment variable overriding each provider's default model
MODEL_VARS = {
    "openai": "OPENAI_MODEL",
    "deepseek": "DEEPSEEK_MODEL",
    "anthropic": "ANTHROPIC_MODEL",
    "claude": "ANTHROPIC_MODEL",
}


def get_llm(console: Console | None = None) -> LLMProvider | None:
    """Create LLM provider from environment variables.

    Args:
        console: Optional Rich console for output

    Returns:
        LLM provider instance, or None if not configured

    Environment variables:
        LLM_PROVIDER: Provider type (openai, deepseek, anthropic; default: openai)
        OPENAI_API_KEY / DEEPSEEK_API_KEY / ANTHROPIC_API_KEY: Key for the chosen provider
        OPENAI_MODEL: OpenAI model (default: gpt-4o-mini)
        OPENAI_BASE_URL: OpenAI-compatible endpoint override
        DEEPSEEK_MODEL: DeepSeek model (default: deepseek-chat)
        ANTHROPIC_MODEL: Anthropic model (default: claude-sonnet-4-20250514)
    """
    con = console or _console
    llm_provider = os.getenv("LLM_PROVIDER", DEFAULT_PROVIDER).lower()

    key_var = API_KEY_VARS.get(llm_provider)
    if key_var is None:
        con.print(f"[red]Error: Unknown LLM provider: {llm_provider}[/red]")
        return None
    api_key = os.getenv(key_var)
    if not api_key:
        con.print(f"[yellow]Warning: {key_var} not set[/yellow]")
        return None

    config = {"api_key": api_key}
    model = os.getenv(MODEL_VARS[llm_provider])
    if model:
        config["model"] = model
    if llm_provider == "openai" and os.getenv("OPENAI_BASE_URL"):
        config["base_url"] = os.getenv("OPENAI_BASE_URL")
    return create_llm_provider(llm_provider, **config)


def require_llm(console: Console | None = None) -> LLMProvider:
    """Get LLM provider, exiting if not configured.

    Raises:
        typer.Exit: If the provider is not configured
    """
    con = console or _console
    llm = get_llm(con)
    if not llm:
        con.print("[red]Error: LLM provider not configured[/red]")
        raise typer.Exit(code=1)
    return llm


def get_server_host() -> str:
    return os.getenv("JEAN_HOST", DEFAULT_HOST)


def get_server_port(console: Console | None = None) -> int:
    """Port from JEAN_PORT (default 3000).

    Raises:
        typer.Exit: If JEAN_PORT is not an integer
    """
    raw = os.getenv("JEAN_PORT")
    if not raw:
        return DEFAULT_PORT
    try:
        return int(raw)
    except ValueError:
        (console or _console).print(f"[red]Error: JEAN_PORT must be an integer, got {raw!r}[/red]")
        raise typer.Exit(code=1) from None


def get_auth_token() -> str | None:
    return os.getenv("JEAN_AUTH_TOKEN") or None


def get_server_url() -> str:
    """Chat endpoint URL from JEAN_SERVER_URL, else built from JEAN_HOST and JEAN_PORT."""
    url = os.getenv("JEAN_SERVER_URL")
    if url:
        return url
    return default_server_url(get_server_host(), get_server_port())
