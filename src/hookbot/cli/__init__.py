from __future__ import annotations

from functools import partial
from pathlib import Path
from typing import NoReturn

import anyio
import typer

from .. import __version__
from ..bots import build_bot
from ..config import ConfigError, HookbotConfig, load_config
from ..inference import InferenceService, WorkersAIClient
from ..logging import get_logger, setup_logging
from ..telegram.bot import TelegramBot
from ..telegram.client import TelegramClient
from ..transports import configure_shared_limiter

logger = get_logger(__name__)

_CONFIG_OPTION = typer.Option(
    None, "--config", "-c", help="Path to hookbot.toml (defaults to ./hookbot.toml)."
)
_DEBUG_OPTION = typer.Option(False, "--debug/--no-debug", help="Verbose console logs.")


def _exit_config_error(exc: ConfigError) -> NoReturn:
    typer.echo(f"error: {exc}", err=True)
    raise typer.Exit(code=1) from exc


def _load_config_or_exit(path: Path | None) -> HookbotConfig:
    try:
        return load_config(path)
    except ConfigError as exc:
        _exit_config_error(exc)


def build_inference(config: HookbotConfig) -> InferenceService | None:
    if not config.inference.enabled:
        return None
    return WorkersAIClient.from_config(config.inference)


def build_bots(
    config: HookbotConfig, *, inference: InferenceService | None = None
) -> list[TelegramBot]:
    """Build every configured bot, all sharing one process-wide limiter."""
    limiter = configure_shared_limiter(
        max_calls=config.rate_limit.max_calls,
        window_s=config.rate_limit.window_s,
    )
    return [
        build_bot(bot_config, inference=inference, limiter=limiter)
        for bot_config in config.bots
    ]


def serve(
    config_path: Path | None = _CONFIG_OPTION,
    host: str | None = typer.Option(None, "--host", help="Override server.host."),
    port: int | None = typer.Option(None, "--port", help="Override server.port."),
    debug: bool = _DEBUG_OPTION,
) -> None:
    """Serve the webhook endpoint for every configured bot."""
    import uvicorn

    from ..server import create_app

    setup_logging(debug=debug)
    config = _load_config_or_exit(config_path)
    inference = build_inference(config)
    try:
        bots = build_bots(config, inference=inference)
    except ConfigError as exc:
        _exit_config_error(exc)
    logger.info("serve.starting", bots=[bot.name for bot in config.bots])
    uvicorn.run(
        create_app(bots, inference=inference),
        host=host or config.server.host,
        port=port or config.server.port,
        log_config=None,
    )


async def _set_webhooks(config: HookbotConfig, base_url: str, only: str | None) -> bool:
    ok = True
    for bot in config.bots:
        if only is not None and bot.name != only:
            continue
        client = TelegramClient(bot.token)
        try:
            result = await client.set_webhook(f"{base_url.rstrip('/')}/{bot.token}")
        finally:
            await client.close()
        if result.ok:
            typer.echo(f"{bot.name}: webhook set")
        else:
            ok = False
            typer.echo(f"{bot.name}: {result.description}", err=True)
    return ok


def set_webhook(
    base_url: str = typer.Argument(..., help="Public base URL, e.g. https://bot.example.com"),
    bot: str | None = typer.Option(None, "--bot", help="Only this bot (by name)."),
    config_path: Path | None = _CONFIG_OPTION,
    debug: bool = _DEBUG_OPTION,
) -> None:
    """Point each bot's webhook at <base_url>/<token>."""
    setup_logging(debug=debug)
    config = _load_config_or_exit(config_path)
    if not anyio.run(partial(_set_webhooks, config, base_url, bot)):
        raise typer.Exit(code=1)


async def _set_commands(
    bots: list[TelegramBot], inference: InferenceService | None
) -> None:
    try:
        for bot in bots:
            try:
                await bot.initialize_commands()
            finally:
                await bot.api.close()
    finally:
        if inference is not None:
            await inference.close()


def set_commands(
    config_path: Path | None = _CONFIG_OPTION,
    debug: bool = _DEBUG_OPTION,
) -> None:
    """Publish each bot's registered commands to Telegram."""
    setup_logging(debug=debug)
    config = _load_config_or_exit(config_path)
    inference = build_inference(config)
    try:
        bots = build_bots(config, inference=inference)
    except ConfigError as exc:
        _exit_config_error(exc)
    anyio.run(_set_commands, bots, inference)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


def app_main(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show the version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Webhook dispatcher for Telegram bots."""


def create_app() -> typer.Typer:
    app = typer.Typer(add_completion=False, help="Webhook dispatcher for Telegram bots.")
    app.callback()(app_main)
    app.command(name="serve")(serve)
    app.command(name="set-webhook")(set_webhook)
    app.command(name="set-commands")(set_commands)
    return app


def main() -> None:
    app = create_app()
    app()


if __name__ == "__main__":
    main()
