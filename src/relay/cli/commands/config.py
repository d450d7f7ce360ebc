"""Configuration management commands."""

from pathlib import Path
from typing import Annotated

import click
import typer

from relay.cli.console import console, dim, error, success, warning


def register(app: typer.Typer) -> None:
    """Register the config command."""

    @app.command()
    def config(
        action: Annotated[
            str | None,
            typer.Argument(help="Action: show, validate"),
        ] = None,
        path: Annotated[
            Path | None,
            typer.Option(
                "--path",
                "-p",
                help="Path to config file (default: search ./, $RELAY_HOME, /etc/relay)",
            ),
        ] = None,
    ) -> None:
        """Manage configuration."""
        if action is None:
            ctx = click.get_current_context()
            click.echo(ctx.get_help())
            raise typer.Exit(0)

        from pydantic import ValidationError
        from rich.syntax import Syntax
        from rich.table import Table

        from relay.config import find_config_path, load_config

        try:
            config_path = find_config_path(path)
        except FileNotFoundError as e:
            error(str(e))
            raise typer.Exit(1) from None

        if action == "show":
            if config_path is None:
                error("No config file found")
                dim("Relay will run from environment variables and defaults")
                raise typer.Exit(1)

            content = config_path.read_text()
            syntax = Syntax(content, "toml", theme="monokai", line_numbers=True)
            console.print(f"[bold]Config file: {config_path}[/bold]\n")
            console.print(syntax)

        elif action == "validate":
            try:
                config_obj = load_config(config_path)
            except ValidationError as e:
                error("Configuration validation failed:")
                console.print()
                for err in e.errors():
                    loc = ".".join(str(x) for x in err["loc"])
                    console.print(f"  [yellow]{loc}[/yellow]: {err['msg']}")
                raise typer.Exit(1) from None
            except Exception as e:
                error(f"Error loading config: {e}")
                raise typer.Exit(1) from None

            table = Table(title="Configuration Summary")
            table.add_column("Setting", style="cyan")
            table.add_column("Value", style="green")

            table.add_row("Source", str(config_path) if config_path else "environment")
            has_token = bool(config_obj.telegram and config_obj.telegram.bot_token)
            table.add_row(
                "Telegram",
                "configured" if has_token else "[dim]not configured[/dim]",
            )
            table.add_row("Assistant", config_obj.assistant.base_url)
            table.add_row("Timeout", f"{config_obj.assistant.timeout:g}s")
            table.add_row("Agent", config_obj.assistant.agent or "[dim]server default[/dim]")
            table.add_row(
                "Working directory", str(config_obj.sessions.default_working_directory)
            )
            table.add_row("Max message length", str(config_obj.chunking.max_length))

            success("Configuration is valid!")
            if not has_token:
                warning("No Telegram bot token configured; relay serve will not start")
            console.print()
            console.print(table)

        else:
            error(f"Unknown action: {action}")
            console.print("Valid actions: show, validate")
            raise typer.Exit(1)
