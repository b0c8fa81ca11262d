"""Per-request execution context and the reply channel adapter.

Replies are shaped by the kind of the inbound update: chat messages get a
direct send, inline queries get an inline result, business messages carry
their connection id. Upstream failures are logged and never raised, so a
failed send cannot abort dispatch.
"""

from __future__ import annotations

from collections.abc import Awaitable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx

from ..logging import get_logger
from ..updates import (
    MESSAGE_KINDS,
    UpdateKind,
    classify_update,
    extract_command,
    message_text,
)
from .api_models import (
    ApiResponse,
    InlineQueryResult,
    InlineQueryResultArticle,
    InlineQueryResultPhoto,
    InlineQueryResultVideo,
    InputTextMessageContent,
    Update,
)
from .client import TelegramClient
from .types import InputFileBytes

if TYPE_CHECKING:
    from .bot import TelegramBot

logger = get_logger(__name__)

MAX_MESSAGE_LENGTH = 4096
LONG_TEXT_CAPTION = "This reply is too long for a message, so it is attached as a text file."
LONG_TEXT_FILENAME = "reply.txt"
INLINE_RESULT_ID = "1"

# Inline video results need these, but nothing in the update supplies them.
VIDEO_MIME_TYPE = "video/mp4"
VIDEO_THUMBNAIL_PLACEHOLDER = "https://example.com/thumb.jpg"
VIDEO_TITLE_PLACEHOLDER = "Video"
VIDEO_CAPTION_PLACEHOLDER = "Video"


def _merge_extras(
    extras: dict[str, Any], positional: tuple[str, ...], **fixed: Any
) -> dict[str, Any]:
    """Fold caller extras under the adapter's own fields; the adapter wins."""
    params = {key: value for key, value in extras.items() if key not in positional}
    params.update(fixed)
    return params


def _resolve_target(update: Update, kind: UpdateKind | None) -> tuple[str, str, str]:
    """Return ``(chat_id, reply_to_message_id, business_connection_id)``."""
    if kind in MESSAGE_KINDS:
        message = update.message
    elif kind is UpdateKind.BUSINESS_MESSAGE:
        message = update.business_message
    else:
        return "", "", ""
    if message is None:
        return "", "", ""
    chat_id = str(message.chat.id) if message.chat is not None else ""
    message_id = str(message.message_id) if message.message_id is not None else ""
    business_id = ""
    if kind is UpdateKind.BUSINESS_MESSAGE and message.business_connection_id:
        business_id = message.business_connection_id
    return chat_id, message_id, business_id


@dataclass(frozen=True, slots=True)
class ExecutionContext:
    bot: TelegramBot
    update: Update
    kind: UpdateKind | None
    command: str | None
    chat_id: str = ""
    reply_to_message_id: str = ""
    business_connection_id: str = ""
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_update(
        cls,
        bot: TelegramBot,
        update: Update,
        raw: dict[str, Any] | None = None,
    ) -> ExecutionContext:
        kind = classify_update(update)
        if kind is None:
            logger.warning("context.unclassified_update", update_id=update.update_id)
        chat_id, reply_to, business_id = _resolve_target(update, kind)
        return cls(
            bot=bot,
            update=update,
            kind=kind,
            command=extract_command(update, kind),
            chat_id=chat_id,
            reply_to_message_id=reply_to,
            business_connection_id=business_id,
            raw=raw if raw is not None else {},
        )

    @property
    def api(self) -> TelegramClient:
        return self.bot.api

    @property
    def text(self) -> str:
        """Message text, or the live query text for inline updates."""
        if self.kind is UpdateKind.INLINE and self.update.inline_query is not None:
            return self.update.inline_query.query
        return message_text(self.update)

    @property
    def inline_query_id(self) -> str:
        query = self.update.inline_query
        return query.id if query is not None else ""

    @property
    def _reply_to(self) -> str | None:
        return self.reply_to_message_id or None

    @property
    def _business_id(self) -> str | None:
        return self.business_connection_id or None

    async def _check(self, method: str, call: Awaitable[ApiResponse]) -> bool:
        try:
            response = await call
        except httpx.HTTPError as e:
            logger.error(
                "reply.transport_error",
                method=method,
                kind=self._kind_label,
                error=str(e),
                error_type=e.__class__.__name__,
            )
            return False
        if not response.ok:
            logger.error(
                "reply.api_error",
                method=method,
                kind=self._kind_label,
                error_code=response.error_code,
                description=response.description or "Unknown error",
            )
            return False
        return True

    @property
    def _kind_label(self) -> str | None:
        return self.kind.value if self.kind is not None else None

    def _unsupported(self, operation: str) -> None:
        logger.warning(
            "reply.unsupported_kind", operation=operation, kind=self._kind_label
        )

    async def _answer_inline(self, result: InlineQueryResult) -> bool:
        return await self._check(
            "answerInlineQuery",
            self.api.answer_inline_query(self.inline_query_id, [result]),
        )

    async def reply(
        self, text: str, parse_mode: str | None = None, **extras: Any
    ) -> None:
        """Reply with text, falling back to a file attachment for long text.

        The length limit does not apply to inline queries, whose answer is an
        article result rather than a message.
        """
        if self.kind is None:
            self._unsupported("reply")
            return

        if len(text) > MAX_MESSAGE_LENGTH and self.kind is not UpdateKind.INLINE:
            document = InputFileBytes(
                data=text.encode("utf-8"),
                filename=LONG_TEXT_FILENAME,
                mime_type="text/plain",
            )
            await self._check(
                "sendDocument",
                self.api.send_document(
                    self.chat_id,
                    document,
                    **_merge_extras(
                        extras,
                        ("chat_id", "document", "parse_mode"),
                        caption=LONG_TEXT_CAPTION,
                        reply_to_message_id=self._reply_to,
                        business_connection_id=self._business_id,
                    ),
                ),
            )
            return

        match self.kind:
            case UpdateKind.MESSAGE | UpdateKind.PHOTO | UpdateKind.DOCUMENT:
                await self._check(
                    "sendMessage",
                    self.api.send_message(
                        self.chat_id,
                        text,
                        **_merge_extras(
                            extras,
                            ("chat_id", "text"),
                            reply_to_message_id=self._reply_to,
                            parse_mode=parse_mode,
                        ),
                    ),
                )
            case UpdateKind.INLINE:
                await self._answer_inline(
                    InlineQueryResultArticle(
                        id=INLINE_RESULT_ID,
                        title=text,
                        input_message_content=InputTextMessageContent(
                            message_text=text, parse_mode=parse_mode
                        ),
                    )
                )
            case UpdateKind.BUSINESS_MESSAGE:
                await self._check(
                    "sendMessage",
                    self.api.send_message(
                        self.chat_id,
                        text,
                        **_merge_extras(
                            extras,
                            ("chat_id", "text"),
                            parse_mode=parse_mode,
                            business_connection_id=self._business_id,
                        ),
                    ),
                )
            case _:
                self._unsupported("reply")

    async def reply_photo(self, photo: str, caption: str = "", **extras: Any) -> None:
        """Send a photo (URL or file id) back to the chat or as an inline result."""
        match self.kind:
            case UpdateKind.MESSAGE | UpdateKind.PHOTO:
                await self._check(
                    "sendPhoto",
                    self.api.send_photo(
                        self.chat_id,
                        photo,
                        **_merge_extras(
                            extras,
                            ("chat_id", "photo"),
                            caption=caption or None,
                            reply_to_message_id=self._reply_to,
                        ),
                    ),
                )
            case UpdateKind.INLINE:
                await self._answer_inline(
                    InlineQueryResultPhoto(
                        id=INLINE_RESULT_ID,
                        photo_url=photo,
                        thumbnail_url=photo,
                        caption=caption or None,
                    )
                )
            case _:
                self._unsupported("reply_photo")

    async def reply_video(self, video: str, **extras: Any) -> None:
        match self.kind:
            case UpdateKind.MESSAGE:
                await self._check(
                    "sendVideo",
                    self.api.send_video(
                        self.chat_id,
                        video,
                        **_merge_extras(
                            extras,
                            ("chat_id", "video"),
                            reply_to_message_id=self._reply_to,
                        ),
                    ),
                )
            case UpdateKind.INLINE:
                await self._answer_inline(
                    InlineQueryResultVideo(
                        id=INLINE_RESULT_ID,
                        video_url=video,
                        mime_type=VIDEO_MIME_TYPE,
                        thumbnail_url=VIDEO_THUMBNAIL_PLACEHOLDER,
                        title=VIDEO_TITLE_PLACEHOLDER,
                        caption=VIDEO_CAPTION_PLACEHOLDER,
                    )
                )
            case _:
                self._unsupported("reply_video")

    async def send_typing(self) -> None:
        match self.kind:
            case UpdateKind.MESSAGE | UpdateKind.PHOTO | UpdateKind.DOCUMENT:
                await self._check(
                    "sendChatAction", self.api.send_chat_action(self.chat_id, "typing")
                )
            case UpdateKind.BUSINESS_MESSAGE:
                await self._check(
                    "sendChatAction",
                    self.api.send_chat_action(
                        self.chat_id,
                        "typing",
                        business_connection_id=self._business_id,
                    ),
                )
            case _:
                self._unsupported("send_typing")

    async def reply_inline(
        self, title: str, text: str, parse_mode: str | None = None
    ) -> None:
        """Answer an inline query with one article titled ``title``."""
        if self.kind is not UpdateKind.INLINE:
            self._unsupported("reply_inline")
            return
        await self._answer_inline(
            InlineQueryResultArticle(
                id=INLINE_RESULT_ID,
                title=title,
                input_message_content=InputTextMessageContent(
                    message_text=text, parse_mode=parse_mode
                ),
            )
        )

    async def answer_callback(
        self, text: str | None = None, *, show_alert: bool = False
    ) -> None:
        if self.kind is not UpdateKind.CALLBACK or self.update.callback_query is None:
            self._unsupported("answer_callback")
            return
        await self._check(
            "answerCallbackQuery",
            self.api.answer_callback_query(
                self.update.callback_query.id,
                text=text,
                show_alert=show_alert or None,
            ),
        )

    async def get_file(self, file_id: str) -> httpx.Response:
        """Download a file by id; failures come back as an error response."""
        try:
            return await self.api.get_file(file_id)
        except httpx.HTTPError as e:
            logger.error(
                "reply.transport_error",
                method="getFile",
                error=str(e),
                error_type=e.__class__.__name__,
            )
            return httpx.Response(502, text=f"Error: {e}")
