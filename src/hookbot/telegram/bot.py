from __future__ import annotations

from collections.abc import Awaitable, Callable

import httpx
import msgspec

from ..logging import get_logger
from ..transports import FixedWindowRateLimiter
from ..updates import UpdateKind
from .api_models import BotCommand, Update
from .client import TelegramClient
from .context import ExecutionContext
from .webhook import Webhook

logger = get_logger(__name__)

Handler = Callable[[ExecutionContext], Awaitable[httpx.Response]]


def _text_response(text: str, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, text=text)


class TelegramBot:
    """Webhook dispatcher for one bot token.

    Commands take precedence over update kinds, and at most one handler runs
    per request.
    """

    def __init__(
        self,
        token: str,
        api: TelegramClient | None = None,
        *,
        limiter: FixedWindowRateLimiter | None = None,
    ) -> None:
        self.token = token
        self.api = api if api is not None else TelegramClient(token, limiter=limiter)
        self.commands: dict[str, Handler] = {}
        self.events: dict[UpdateKind, Handler] = {}
        self.command_list: list[BotCommand] = []
        logger.info("bot.initialized")

    def register_command(
        self, name: str, description: str, handler: Handler
    ) -> TelegramBot:
        self.commands[name] = handler
        self.command_list.append(BotCommand(command=name, description=description))
        logger.info("bot.command_registered", command=name, description=description)
        return self

    def register_event(self, kind: UpdateKind, handler: Handler) -> TelegramBot:
        self.events[kind] = handler
        logger.info("bot.event_registered", kind=kind.value)
        return self

    def command(self, name: str, description: str) -> Callable[[Handler], Handler]:
        def decorator(handler: Handler) -> Handler:
            self.register_command(name, description, handler)
            return handler

        return decorator

    def event(self, kind: UpdateKind) -> Callable[[Handler], Handler]:
        def decorator(handler: Handler) -> Handler:
            self.register_event(kind, handler)
            return handler

        return decorator

    async def initialize_commands(self) -> TelegramBot:
        """Publish the full command list upstream; safe to call repeatedly."""
        if not self.command_list:
            return self
        try:
            response = await self.api.set_my_commands(self.command_list)
        except httpx.HTTPError as e:
            logger.error(
                "bot.set_commands_error",
                error=str(e),
                error_type=e.__class__.__name__,
            )
            return self
        if response.ok:
            logger.info("bot.set_commands", count=len(self.command_list))
        else:
            logger.error("bot.set_commands_failed", description=response.description)
        return self

    def matches(self, request: httpx.Request) -> bool:
        return request.url.path == f"/{self.token}"

    async def handle(self, request: httpx.Request) -> httpx.Response:
        try:
            if not self.matches(request):
                return _text_response("ok")
            match request.method:
                case "POST":
                    return await self._dispatch(request)
                case "GET":
                    if request.url.params.get("command") == "set":
                        return await Webhook(self.api, self.token, request).set()
            return _text_response("ok")
        except Exception:
            logger.exception("bot.handle_error", method=request.method)
            return _text_response("Internal Server Error", 500)

    async def _dispatch(self, request: httpx.Request) -> httpx.Response:
        body = request.content
        update = msgspec.json.decode(body, type=Update)
        raw = msgspec.json.decode(body)
        logger.debug("bot.update_received", update_id=update.update_id)
        ctx = ExecutionContext.from_update(
            self, update, raw if isinstance(raw, dict) else None
        )

        if ctx.kind is None:
            logger.warning("bot.unhandled_update", update_id=update.update_id)
            return _text_response("Unhandled update type", 400)

        if ctx.command and ctx.command in self.commands:
            logger.info("bot.dispatch_command", command=ctx.command)
            return await self.commands[ctx.command](ctx)

        handler = self.events.get(ctx.kind)
        if handler is not None:
            logger.info("bot.dispatch_event", kind=ctx.kind.value)
            return await handler(ctx)

        logger.warning(
            "bot.no_handler", kind=ctx.kind.value, command=ctx.command
        )
        return _text_response("No handler for this update type", 400)
