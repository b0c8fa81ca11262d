from __future__ import annotations

import json
from typing import Any

import httpx
import msgspec

from hookbot.telegram.api_models import Update
from hookbot.telegram.bot import TelegramBot
from hookbot.telegram.client import TelegramClient
from hookbot.telegram.context import ExecutionContext
from hookbot.transports import FixedWindowRateLimiter

TOKEN = "123456:ABCdefGHIjklMNOpqr"
BASE_URL = "https://bot.example.com"


class FakeTelegram:
    """MockTransport handler that records Bot API calls."""

    def __init__(
        self,
        *,
        results: dict[str, Any] | None = None,
        fail: set[str] | None = None,
        raise_on: set[str] | None = None,
        files: dict[str, bytes] | None = None,
    ) -> None:
        self.results = results or {}
        self.fail = fail or set()
        self.raise_on = raise_on or set()
        self.files = files or {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.startswith("/file/"):
            name = path.split("/", 3)[-1]
            if name in self.files:
                return httpx.Response(200, content=self.files[name], request=request)
            return httpx.Response(404, text="Not Found", request=request)
        method = path.rsplit("/", 1)[-1]
        if method in self.raise_on:
            raise httpx.ConnectError("connection refused", request=request)
        if method in self.fail:
            return httpx.Response(
                400,
                json={
                    "ok": False,
                    "error_code": 400,
                    "description": "Bad Request: chat not found",
                },
                request=request,
            )
        return httpx.Response(
            200,
            json={"ok": True, "result": self.results.get(method, True)},
            request=request,
        )

    @property
    def methods(self) -> list[str]:
        return [request.url.path.rsplit("/", 1)[-1] for request in self.requests]

    def body(self, index: int = -1) -> dict[str, Any]:
        return json.loads(self.requests[index].content)


def make_client(
    fake: FakeTelegram,
    *,
    token: str = TOKEN,
    limiter: FixedWindowRateLimiter | None = None,
) -> TelegramClient:
    return TelegramClient(
        token,
        limiter=limiter or FixedWindowRateLimiter(max_calls=1000),
        client=httpx.AsyncClient(transport=httpx.MockTransport(fake)),
    )


def make_bot(fake: FakeTelegram, *, token: str = TOKEN) -> TelegramBot:
    return TelegramBot(token, make_client(fake, token=token))


def make_context(bot: TelegramBot, payload: dict[str, Any]) -> ExecutionContext:
    return ExecutionContext.from_update(
        bot, msgspec.convert(payload, type=Update), payload
    )


def message_update(
    text: str | None = "hello",
    *,
    photo: bool = False,
    document: bool = False,
    chat_id: int = 42,
    message_id: int = 7,
) -> dict[str, Any]:
    message: dict[str, Any] = {
        "message_id": message_id,
        "date": 1700000000,
        "chat": {"id": chat_id, "type": "private"},
        "from": {"id": 1001, "is_bot": False, "first_name": "Ada"},
    }
    if text is not None:
        message["text"] = text
    if photo:
        message["photo"] = [
            {"file_id": "photo-small", "file_unique_id": "p1", "width": 90, "height": 90},
            {"file_id": "photo-big", "file_unique_id": "p2", "width": 800, "height": 800},
        ]
    if document:
        message["document"] = {
            "file_id": "doc-1",
            "file_unique_id": "d1",
            "file_name": "notes.txt",
        }
    return {"update_id": 1, "message": message}


def business_update(
    text: str = "hello", *, connection_id: str = "biz-conn-1"
) -> dict[str, Any]:
    return {
        "update_id": 2,
        "business_message": {
            "message_id": 11,
            "date": 1700000000,
            "business_connection_id": connection_id,
            "chat": {"id": 77, "type": "private"},
            "text": text,
        },
    }


def inline_update(query: str = "weather", *, query_id: str = "inline-1") -> dict[str, Any]:
    return {
        "update_id": 3,
        "inline_query": {
            "id": query_id,
            "from": {"id": 1001, "is_bot": False, "first_name": "Ada"},
            "query": query,
            "offset": "",
        },
    }


def callback_update(query_id: str = "cb-1", data: str = "yes") -> dict[str, Any]:
    return {
        "update_id": 4,
        "callback_query": {
            "id": query_id,
            "from": {"id": 1001, "is_bot": False, "first_name": "Ada"},
            "chat_instance": "ci",
            "data": data,
        },
    }


def webhook_request(
    payload: dict[str, Any] | None = None,
    *,
    token: str = TOKEN,
    method: str = "POST",
    params: dict[str, str] | None = None,
) -> httpx.Request:
    return httpx.Request(
        method,
        f"{BASE_URL}/{token}",
        params=params,
        json=payload if method == "POST" else None,
    )
