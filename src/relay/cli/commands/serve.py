"""Server command for running the Telegram bridge."""

import asyncio
import logging
from pathlib import Path
from typing import Annotated

import typer

logger = logging.getLogger(__name__)


def register(app: typer.Typer) -> None:
    """Register the serve command."""

    @app.command()
    def serve(
        config: Annotated[
            Path | None,
            typer.Option(
                "--config",
                "-c",
                help="Path to configuration file",
            ),
        ] = None,
        log_to_file: Annotated[
            bool,
            typer.Option(
                "--log-file/--no-log-file",
                help="Also write JSONL logs to $RELAY_HOME/logs",
            ),
        ] = True,
    ) -> None:
        """Start the Relay bridge."""
        try:
            asyncio.run(_run_server(config, log_to_file))
        except KeyboardInterrupt:
            # Use print here since logging may not be configured yet
            print("\nServer stopped")


async def _run_server(config_path: Path | None = None, log_to_file: bool = True) -> None:
    """Run the bridge until interrupted."""
    import signal as signal_module

    from relay.config import ConfigError, load_config
    from relay.logging import configure_logging
    from relay.runtime import build_bridge_runtime

    configure_logging(use_rich=True, log_to_file=log_to_file)

    logger.info("Loading configuration")
    relay_config = load_config(config_path)

    if relay_config.sentry:
        from relay.observability import init_sentry

        init_sentry(relay_config.sentry)

    try:
        runtime = build_bridge_runtime(relay_config)
    except ConfigError as e:
        logger.error(str(e))
        raise typer.Exit(1) from None

    assistant = relay_config.assistant
    logger.info("Waiting for assistant server at %s", assistant.base_url)
    if not await runtime.session_manager.wait_for_server(
        assistant.wait_attempts, assistant.wait_interval
    ):
        logger.error("Assistant server is not reachable at %s", assistant.base_url)
        await runtime.client.close()
        raise typer.Exit(1)

    loop = asyncio.get_running_loop()
    bridge_task = asyncio.create_task(runtime.bridge.start())

    def handle_signal() -> None:
        if not bridge_task.done():
            bridge_task.cancel()

    for sig in (signal_module.SIGTERM, signal_module.SIGINT):
        loop.add_signal_handler(sig, handle_signal)

    logger.info("Starting Telegram polling")
    try:
        await bridge_task
    except asyncio.CancelledError:
        logger.info("Telegram polling cancelled")
    finally:
        await runtime.close()
        stats = runtime.session_manager.get_stats()
        logger.info(
            "bridge_stopped",
            extra={"sessions": stats.total, "messages": stats.total_messages},
        )
