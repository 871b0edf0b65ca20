"""CLI entry point for chat-hitl."""

import asyncio
import json
import logging

import click
import httpx

from . import config
from .client import LeaderClient
from .core import Attachment, DialogResolution
from .node import Node
from .presenter import PRESENTERS, get_presenter
from .rpc import RpcHandler
from .stdio import run_stdio


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr.")
def main(verbose: bool):
    """Let AI agents wait for a human decision before they stop."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.option("--port", type=int, default=None, help="Coordination port (default: settings or 23987).")
@click.option("--host", default=None, help="Host to bind to.")
@click.option(
    "--workspace", "-w", "workspaces", multiple=True,
    help="Workspace this window has open. Repeat for several; omit to claim everything.",
)
@click.option(
    "--presenter", type=click.Choice(sorted(PRESENTERS)), default="console",
    help="How dialogs are shown.",
)
@click.option("--poll-interval", type=float, default=None, help="Follower poll interval in seconds.")
def serve(port, host, workspaces, presenter, poll_interval):
    """Run a front-end: Leader if the port is free, Follower otherwise."""
    node = Node(
        port=port or config.get_port(),
        presenter=get_presenter(presenter),
        workspaces=list(workspaces),
        host=host,
        poll_interval=poll_interval or config.get_poll_interval(),
        snapshot_path=config.get_snapshot_path(),
    )
    # An explicit --port pins the port; otherwise follow settings changes.
    port_source = None if port else config.get_port

    async def run():
        role = await node.start()
        click.echo(f"chat-hitl {role.value} on {node.url}", err=True)
        try:
            await node.serve_forever(port_source)
        finally:
            await node.stop()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass


@main.command()
@click.option("--port", type=int, default=None, help="Port of the running front-end.")
def stdio(port):
    """Serve MCP over stdio, forwarding dialogs to the running front-end."""
    client = LeaderClient(config.base_url(port or config.get_port()))

    async def run():
        try:
            await run_stdio(RpcHandler(client))
        finally:
            await client.aclose()

    asyncio.run(run())


@main.command()
@click.option("--port", type=int, default=None)
@click.option("--workspace", "-w", default=None, help="Only dialogs for this workspace.")
def pending(port, workspace):
    """List dialogs waiting for an answer."""
    dialogs = _call(port, lambda c: c.list_pending(workspace))
    if not dialogs:
        click.echo("No pending dialogs.")
        return
    for d in dialogs:
        click.echo(f"{d.id}  #{d.sequence_number}  {d.workspace}\n    {d.reason}")


@main.command()
@click.argument("dialog_id")
@click.option("--continue/--stop", "should_continue", default=True, help="Continue or stop the agent.")
@click.option("--input", "-i", "user_input", default="", help="New instructions for the agent.")
@click.option(
    "--attach", "-a", "attachments", multiple=True, type=click.Path(exists=True, dir_okay=False),
    help="Attach a text file.",
)
@click.option("--port", type=int, default=None)
def respond(dialog_id, should_continue, user_input, attachments, port):
    """Answer a pending dialog."""
    resolution = DialogResolution(
        should_continue=should_continue,
        user_input=user_input,
        attachments=[_file_attachment(path) for path in attachments],
    )
    if _call(port, lambda c: c.respond(dialog_id, resolution)):
        click.echo(f"Answered {dialog_id}")
    else:
        raise click.ClickException(f"Dialog not found: {dialog_id}")


@main.command()
@click.option("--port", type=int, default=None)
def health(port):
    """Show the Leader's health report."""
    click.echo(json.dumps(_call(port, lambda c: c.health()), indent=2))


@main.command("set-port")
@click.argument("new_port", type=click.IntRange(1024, 65535))
def set_port(new_port):
    """Store a new coordination port; running front-ends re-bind to it."""
    settings = config.load_settings()
    settings["serverPort"] = new_port
    path = config.save_settings(settings)
    click.echo(f"Port set to {new_port} in {path}")


def _file_attachment(path: str) -> Attachment:
    with open(path, encoding="utf-8") as f:
        content = f.read()
    return Attachment(kind="file", name=path, content=content)


def _call(port, fn):
    client = LeaderClient(config.base_url(port or config.get_port()))

    async def run():
        try:
            return await fn(client)
        finally:
            await client.aclose()

    try:
        return asyncio.run(run())
    except httpx.HTTPError as e:
        raise click.ClickException(f"Cannot reach chat-hitl on {client.base_url}: {e}")
