"""CLI: journal-rt serve, journal-rt token"""

from datetime import timedelta
from typing import Optional

import click
from rich.console import Console

from journal_realtime.auth import issue_token
from journal_realtime.config import get_settings
from journal_realtime.models.session import Identity

console = Console()


@click.command("serve")
@click.option("--host", default=None, help="Bind address")
@click.option("--port", type=int, default=None, help="Bind port")
def serve_cmd(host: Optional[str], port: Optional[int]):
    """Run the Socket.IO server."""
    import uvicorn

    from journal_realtime.server import RealtimeServer

    settings = get_settings()
    server = RealtimeServer.from_settings(settings)
    console.print(f"[cyan]Socket.IO listening on {host or settings.host}:{port or settings.port}/{settings.socketio_path}[/cyan]")
    uvicorn.run(
        server.asgi_app(),
        host=host or settings.host,
        port=port or settings.port,
        log_level=settings.log_level.lower(),
    )


@click.command("token")
@click.option("--user-id", type=int, required=True)
@click.option("--role", type=click.Choice(["student", "teacher", "admin", "director"]), required=True)
@click.option("--username", default=None)
@click.option("--hours", type=float, default=24.0, help="Validity in hours")
def token_cmd(user_id: int, role: str, username: Optional[str], hours: float):
    """Sign a development token with the server's secret."""
    settings = get_settings()
    token = issue_token(
        Identity(user_id=user_id, role=role, username=username),
        settings.jwt_secret,
        expires_in=timedelta(hours=hours),
        algorithm=settings.jwt_algorithm,
    )
    click.echo(token)
