"""Main CLI application."""

import typer

from relay.cli.commands import config, health, serve

app = typer.Typer(
    name="relay",
    help="Relay - Telegram bridge for a local coding assistant",
    no_args_is_help=True,
)

serve.register(app)
health.register(app)
config.register(app)


if __name__ == "__main__":
    app()
