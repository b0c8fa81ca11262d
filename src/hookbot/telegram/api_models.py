from __future__ import annotations

from typing import Any

import msgspec

__all__ = [
    "ApiResponse",
    "BotCommand",
    "CallbackQuery",
    "Chat",
    "Document",
    "File",
    "InlineQuery",
    "InlineQueryResult",
    "InlineQueryResultArticle",
    "InlineQueryResultPhoto",
    "InlineQueryResultVideo",
    "InputTextMessageContent",
    "Message",
    "PhotoSize",
    "Update",
    "User",
]


class User(msgspec.Struct, forbid_unknown_fields=False):
    id: int
    is_bot: bool | None = None
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None


class Chat(msgspec.Struct, forbid_unknown_fields=False):
    id: int
    type: str | None = None


class PhotoSize(msgspec.Struct, forbid_unknown_fields=False):
    file_id: str
    file_unique_id: str | None = None
    width: int | None = None
    height: int | None = None
    file_size: int | None = None


class Document(msgspec.Struct, forbid_unknown_fields=False):
    file_id: str
    file_unique_id: str | None = None
    file_name: str | None = None
    mime_type: str | None = None
    file_size: int | None = None


class Message(msgspec.Struct, forbid_unknown_fields=False):
    message_id: int | None = None
    chat: Chat | None = None
    from_: User | None = msgspec.field(default=None, name="from")
    text: str | None = None
    caption: str | None = None
    photo: list[PhotoSize] | None = None
    document: Document | None = None
    business_connection_id: str | None = None


class InlineQuery(msgspec.Struct, forbid_unknown_fields=False):
    id: str = ""
    query: str = ""
    offset: str | None = None
    from_: User | None = msgspec.field(default=None, name="from")


class CallbackQuery(msgspec.Struct, forbid_unknown_fields=False):
    id: str = ""
    data: str | None = None
    from_: User | None = msgspec.field(default=None, name="from")
    # May be an "inaccessible message" stub, so it stays untyped.
    message: dict[str, Any] | None = None


class Update(msgspec.Struct, forbid_unknown_fields=False):
    update_id: int | None = None
    message: Message | None = None
    business_message: Message | None = None
    inline_query: InlineQuery | None = None
    callback_query: CallbackQuery | None = None


class ApiResponse(msgspec.Struct, forbid_unknown_fields=False):
    ok: bool = False
    result: Any = None
    description: str | None = None
    error_code: int | None = None


class File(msgspec.Struct, forbid_unknown_fields=False):
    file_id: str = ""
    file_path: str | None = None
    file_size: int | None = None


class BotCommand(msgspec.Struct):
    command: str
    description: str


class InputTextMessageContent(msgspec.Struct, omit_defaults=True):
    message_text: str
    parse_mode: str | None = None


class _InlineResult(msgspec.Struct, tag_field="type", omit_defaults=True):
    pass


class InlineQueryResultArticle(_InlineResult, tag="article"):
    id: str
    title: str
    input_message_content: InputTextMessageContent


class InlineQueryResultPhoto(_InlineResult, tag="photo"):
    id: str
    photo_url: str
    thumbnail_url: str
    caption: str | None = None


class InlineQueryResultVideo(_InlineResult, tag="video"):
    id: str
    video_url: str
    mime_type: str
    thumbnail_url: str
    title: str
    caption: str | None = None


InlineQueryResult = (
    InlineQueryResultArticle | InlineQueryResultPhoto | InlineQueryResultVideo
)
