"""Update classification and command extraction.

An update is assigned at most one kind by walking ``UPDATE_KIND_RULES`` from
top to bottom and taking the first predicate that matches. A message carrying
both a photo and text is therefore a ``PHOTO`` update, not a ``MESSAGE``.
"""

from __future__ import annotations

import enum
import re
from collections.abc import Callable

from .telegram.api_models import Update


class UpdateKind(str, enum.Enum):
    MESSAGE = "message"
    PHOTO = "photo"
    DOCUMENT = "document"
    INLINE = "inline"
    CALLBACK = "callback"
    BUSINESS_MESSAGE = "business_message"


# Kinds whose replies go straight to the originating chat.
MESSAGE_KINDS = frozenset({UpdateKind.MESSAGE, UpdateKind.PHOTO, UpdateKind.DOCUMENT})
COMMAND_KINDS = frozenset({UpdateKind.MESSAGE, UpdateKind.BUSINESS_MESSAGE})

_COMMAND_TOKEN_RE = re.compile(r"\S*")


def _has_photo(update: Update) -> bool:
    return update.message is not None and update.message.photo is not None


def _has_document(update: Update) -> bool:
    return update.message is not None and update.message.document is not None


def _has_text(update: Update) -> bool:
    return update.message is not None and bool(update.message.text)


def _has_inline_query(update: Update) -> bool:
    return update.inline_query is not None and bool(update.inline_query.query)


def _has_callback(update: Update) -> bool:
    return update.callback_query is not None and bool(update.callback_query.id)


def _has_business_message(update: Update) -> bool:
    return update.business_message is not None


# Order is precedence.
UPDATE_KIND_RULES: tuple[tuple[UpdateKind, Callable[[Update], bool]], ...] = (
    (UpdateKind.PHOTO, _has_photo),
    (UpdateKind.DOCUMENT, _has_document),
    (UpdateKind.MESSAGE, _has_text),
    (UpdateKind.INLINE, _has_inline_query),
    (UpdateKind.CALLBACK, _has_callback),
    (UpdateKind.BUSINESS_MESSAGE, _has_business_message),
)


def classify_update(update: Update) -> UpdateKind | None:
    for kind, predicate in UPDATE_KIND_RULES:
        if predicate(update):
            return kind
    return None


def message_text(update: Update) -> str:
    if update.message is not None and update.message.text:
        return update.message.text
    if update.business_message is not None and update.business_message.text:
        return update.business_message.text
    return ""


def extract_command(update: Update, kind: UpdateKind | None) -> str | None:
    """Return the token after a leading ``/``, suffixes and case untouched."""
    if kind not in COMMAND_KINDS:
        return None
    text = message_text(update)
    if not text.startswith("/"):
        return None
    match = _COMMAND_TOKEN_RE.match(text, 1)
    return match.group(0) if match is not None else ""
