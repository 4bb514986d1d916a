"""CLI: journal-rt listen, send, conversations"""

import json

import click
from rich.console import Console
from rich.table import Table

from journal_realtime.models.events import DeliveryKind
from journal_realtime.reconnect import ConnectionState

console = Console()


def _get_client():
    from journal_realtime.cli.main import _get_client
    return _get_client()


def _run(coro):
    from journal_realtime.cli.main import _run
    return _run(coro)


@click.command("listen")
@click.option("--json-output", "--json", is_flag=True)
def listen_cmd(json_output: bool):
    """Print pushed events until Ctrl+C."""

    async def _listen():
        client = _get_client()
        if not json_output:
            client.controller.add_state_handler(lambda state: console.print(f"[dim][connection: {state}][/dim]"))
        try:
            await client.connect()
            async for event in client.subscribe():
                if json_output:
                    click.echo(json.dumps(event.to_wire(), default=str))
                elif event.kind == DeliveryKind.NEW_MESSAGE:
                    msg = event.payload.get("payload", {})
                    console.print(f"[green]#{msg.get('id')} from {msg.get('fromUserId')}:[/green] {msg.get('content', '')}")
                elif event.kind == DeliveryKind.MESSAGE_DELETED:
                    console.print(f"[yellow]Message #{event.payload.get('messageId')} deleted[/yellow]")
                elif event.kind == DeliveryKind.MESSAGES_READ:
                    console.print(f"[cyan]User {event.payload.get('fromUserId')} read your messages[/cyan]")
            if client.state == ConnectionState.FAILED:
                console.print("[red]Offline: reconnection attempts exhausted[/red]")
        finally:
            await client.aclose()

    try:
        _run(_listen())
    except KeyboardInterrupt:
        pass


@click.command("send")
@click.argument("to_user_id", type=int)
@click.argument("content")
@click.option("--json-output", "--json", is_flag=True)
def send_cmd(to_user_id: int, content: str, json_output: bool):
    """Send a message through the REST API."""

    async def _send():
        client = _get_client()
        try:
            message = await client.send_message(to_user_id, content)
        finally:
            await client.aclose()
        if json_output:
            click.echo(json.dumps(message.to_wire(), default=str))
        else:
            console.print(f"[green]Sent #{message.id} to user {to_user_id}[/green]")

    _run(_send())


@click.command("conversations")
def conversations_cmd():
    """List conversations with unread counts."""

    async def _list():
        client = _get_client()
        try:
            rows = await client.messages.conversations()
        finally:
            await client.aclose()
        table = Table("User", "Role", "Last message", "Unread")
        for conv in rows:
            table.add_row(
                f"{conv.user.name} (#{conv.user.id})",
                conv.user.role,
                str(conv.last_message.get("content", ""))[:60],
                str(conv.unread_count),
            )
        console.print(table)

    _run(_list())
