"""Sample bots: an assistant, a search-link bot and an inline translator."""

from __future__ import annotations

from urllib.parse import quote

import httpx

from .config import BotConfig, ConfigError
from .inference import ChatMessage, InferenceService
from .logging import get_logger
from .telegram.bot import TelegramBot
from .telegram.client import TelegramClient
from .telegram.context import ExecutionContext
from .transports import FixedWindowRateLimiter
from .updates import UpdateKind

logger = get_logger(__name__)

SYSTEM_PROMPT = "You are a friendly assistant"
INLINE_MAX_TOKENS = 50
SEARCH_URL = "https://duckduckgo.com/?q="
TRANSLATE_SOURCE_LANG = "french"
TRANSLATE_TARGET_LANG = "english"


def _ok() -> httpx.Response:
    return httpx.Response(200, text="ok")


async def _acknowledge(ctx: ExecutionContext) -> httpx.Response:
    return _ok()


def _acknowledge_rest(bot: TelegramBot) -> TelegramBot:
    """Acknowledge every update kind that has no handler yet."""
    for kind in UpdateKind:
        if kind not in bot.events:
            bot.register_event(kind, _acknowledge)
    return bot


def _prompt(text: str) -> list[ChatMessage]:
    return [
        ChatMessage(role="system", content=SYSTEM_PROMPT),
        ChatMessage(role="user", content=text),
    ]


def setup_assistant(bot: TelegramBot, inference: InferenceService) -> TelegramBot:
    async def start(ctx: ExecutionContext) -> httpx.Response:
        await ctx.reply("Hi! Send me a message, or mention me inline to ask a quick question.")
        return _ok()

    async def on_message(ctx: ExecutionContext) -> httpx.Response:
        await ctx.send_typing()
        answer = await inference.complete(_prompt(ctx.text))
        await ctx.reply(answer)
        return _ok()

    async def on_inline(ctx: ExecutionContext) -> httpx.Response:
        answer = await inference.complete(_prompt(ctx.text), max_tokens=INLINE_MAX_TOKENS)
        await ctx.reply(answer)
        return _ok()

    return _acknowledge_rest(
        bot.register_command("start", "Say hello", start)
        .register_event(UpdateKind.MESSAGE, on_message)
        .register_event(UpdateKind.BUSINESS_MESSAGE, on_message)
        .register_event(UpdateKind.INLINE, on_inline)
    )


def setup_search(bot: TelegramBot) -> TelegramBot:
    async def search_link(ctx: ExecutionContext) -> httpx.Response:
        await ctx.reply(SEARCH_URL + quote(ctx.text, safe=""))
        return _ok()

    return _acknowledge_rest(
        bot.register_event(UpdateKind.MESSAGE, search_link).register_event(
            UpdateKind.INLINE, search_link
        )
    )


def setup_translator(bot: TelegramBot, inference: InferenceService) -> TelegramBot:
    async def translate(ctx: ExecutionContext) -> httpx.Response:
        translated = await inference.translate(
            ctx.text,
            source_lang=TRANSLATE_SOURCE_LANG,
            target_lang=TRANSLATE_TARGET_LANG,
        )
        await ctx.reply(translated)
        return _ok()

    return _acknowledge_rest(bot.register_event(UpdateKind.INLINE, translate))


def build_bot(
    config: BotConfig,
    *,
    inference: InferenceService | None,
    limiter: FixedWindowRateLimiter | None = None,
    api: TelegramClient | None = None,
) -> TelegramBot:
    bot = TelegramBot(config.token, api, limiter=limiter)
    match config.kind:
        case "search":
            return setup_search(bot)
        case "assistant" | "translator" if inference is None:
            raise ConfigError(
                f"Bot {config.name!r} ({config.kind}) needs the `[inference]` table."
            )
        case "assistant":
            return setup_assistant(bot, inference)
        case "translator":
            return setup_translator(bot, inference)
        case _:
            raise ConfigError(f"Unknown bot kind {config.kind!r} for {config.name!r}.")
