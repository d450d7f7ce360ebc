"""Health check command for the assistant server."""

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer

from relay.cli.console import console, create_table, error, success

if TYPE_CHECKING:
    from relay.config import RelayConfig


def register(app: typer.Typer) -> None:
    """Register the health command."""

    @app.command()
    def health(
        config: Annotated[
            Path | None,
            typer.Option(
                "--config",
                "-c",
                help="Path to configuration file",
            ),
        ] = None,
        list_conversations: Annotated[
            bool,
            typer.Option(
                "--list",
                "-l",
                help="Also list conversations on the server",
            ),
        ] = False,
    ) -> None:
        """Check that the assistant server is reachable."""
        from relay.config import load_config

        relay_config = load_config(config)
        ok = asyncio.run(_check(relay_config, list_conversations))
        if not ok:
            raise typer.Exit(1)


async def _check(relay_config: "RelayConfig", list_conversations: bool) -> bool:
    from relay.assistant import AssistantClientError
    from relay.runtime import build_assistant_client

    base_url = relay_config.assistant.base_url
    async with build_assistant_client(relay_config.assistant) as client:
        if not await client.health_check():
            error(f"Assistant server is not reachable at {base_url}")
            return False
        success(f"Assistant server is up at {base_url}")

        if not list_conversations:
            return True

        try:
            conversations = await client.list_conversations()
        except AssistantClientError as e:
            error(f"Could not list conversations: {e}")
            return False

        table = create_table(
            "Conversations", [("ID", "cyan"), ("Title", "green"), ("Updated", "dim")]
        )
        for conversation in conversations:
            table.add_row(
                conversation.id,
                conversation.title or "",
                conversation.updated_at or "",
            )
        console.print(table)
        return True
