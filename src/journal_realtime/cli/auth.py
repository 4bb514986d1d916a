"""CLI: journal-rt auth login|status|logout"""

from typing import Optional

import click
from rich.console import Console

console = Console()


def _load_config() -> dict:
    from journal_realtime.cli.main import _load_config
    return _load_config()


def _save_config(cfg: dict) -> None:
    from journal_realtime.cli.main import _save_config
    _save_config(cfg)


@click.group()
def auth():
    """Credential commands."""


@auth.command("login")
@click.option("--token", prompt=True, hide_input=True, help="Access token issued by the journal login route")
@click.option("--api-base-url", default=None, help="Journal REST API base URL")
@click.option("--socket-url", default=None, help="Journal Socket.IO URL")
def auth_login(token: str, api_base_url: Optional[str], socket_url: Optional[str]):
    """Store an access token for later commands."""
    cfg = _load_config()
    cfg["access_token"] = token
    if api_base_url:
        cfg["api_base_url"] = api_base_url
    if socket_url:
        cfg["socket_url"] = socket_url
    _save_config(cfg)
    console.print("[green]Token saved to ~/.journal-rt/config.json[/green]")


@auth.command("status")
def auth_status():
    """Show stored credentials."""
    cfg = _load_config()
    if cfg.get("access_token"):
        console.print("[green]Logged in[/green]")
        console.print(f"  API:    {cfg.get('api_base_url', '(default)')}")
        console.print(f"  Socket: {cfg.get('socket_url', '(default)')}")
    else:
        console.print("[yellow]Not logged in[/yellow]")


@auth.command("logout")
def auth_logout():
    """Forget the stored token."""
    cfg = _load_config()
    cfg.pop("access_token", None)
    _save_config(cfg)
    console.print("[green]Logged out[/green]")
