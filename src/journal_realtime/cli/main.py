"""
journal-realtime CLI: `journal-rt` command.

Commands:
  journal-rt serve               Run the Socket.IO server (uvicorn)
  journal-rt token               Sign a development token
  journal-rt auth login|status   Store / show credentials
  journal-rt listen              Stream pushed events, reconnecting on drops
  journal-rt send <to> <text>    Send a message through the REST API
  journal-rt conversations       List conversations
"""

import asyncio
import json
import logging
from pathlib import Path

try:
    import click
    from rich.console import Console
except ImportError:
    raise SystemExit("CLI requires extras: pip install journal-realtime[cli]")

from journal_realtime.client import AsyncJournalClient
from journal_realtime.config import get_settings

console = Console()
CONFIG_FILE = Path.home() / ".journal-rt" / "config.json"


def _load_config() -> dict:
    try:
        return json.loads(CONFIG_FILE.read_text())
    except (FileNotFoundError, json.JSONDecodeError):
        return {}


def _save_config(cfg: dict) -> None:
    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    CONFIG_FILE.write_text(json.dumps(cfg, indent=2))


def _get_client() -> AsyncJournalClient:
    cfg = _load_config()
    if not cfg.get("access_token"):
        console.print("[red]Not logged in. Run `journal-rt auth login` first.[/red]")
        raise SystemExit(1)
    settings = get_settings()
    return AsyncJournalClient(
        access_token=cfg["access_token"],
        api_base_url=cfg.get("api_base_url", settings.api_base_url),
        socket_url=cfg.get("socket_url", settings.socket_url),
        socketio_path=settings.socketio_path,
        max_attempts=settings.reconnect_max_attempts,
        retry_delay=settings.reconnect_delay,
        ready_timeout=settings.ready_timeout,
    )


def _run(coro):
    return asyncio.run(coro)


@click.group()
@click.version_option("0.1.0")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging")
def main(verbose: bool):
    """journal-realtime CLI: live message delivery for the school journal."""
    level = logging.DEBUG if verbose else getattr(logging, get_settings().log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


# Register subcommands from separate modules
from journal_realtime.cli.auth import auth
from journal_realtime.cli.messages import conversations_cmd, listen_cmd, send_cmd
from journal_realtime.cli.server import serve_cmd, token_cmd

main.add_command(auth)
main.add_command(listen_cmd)
main.add_command(send_cmd)
main.add_command(conversations_cmd)
main.add_command(serve_cmd)
main.add_command(token_cmd)


if __name__ == "__main__":
    main()
