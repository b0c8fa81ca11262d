from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

import httpx
import msgspec

from ..logging import get_logger
from ..transports import FixedWindowRateLimiter, shared_limiter
from .api_models import ApiResponse, BotCommand, File, InlineQueryResult
from .types import InputFile, InputFileBytes, InputFileRef

logger = get_logger(__name__)

DEFAULT_API_BASE = "https://api.telegram.org"


def _compact(params: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in params.items() if value is not None}


def _form_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(msgspec.to_builtins(value))


class TelegramClient:
    """Bot API client; every upstream HTTP request passes the rate limiter.

    Transport failures surface as ``httpx.HTTPError``. API-level failures come
    back as an ``ApiResponse`` with ``ok=False``.
    """

    def __init__(
        self,
        token: str,
        *,
        limiter: FixedWindowRateLimiter | None = None,
        client: httpx.AsyncClient | None = None,
        timeout_s: float = 30,
        api_base: str = DEFAULT_API_BASE,
    ) -> None:
        if not token:
            raise ValueError("Telegram token is empty")
        api_base = api_base.rstrip("/")
        self._base = f"{api_base}/bot{token}"
        self._file_base = f"{api_base}/file/bot{token}"
        self._limiter = limiter if limiter is not None else shared_limiter()
        self._client = client or httpx.AsyncClient(timeout=timeout_s)
        self._owns_client = client is None

    @property
    def limiter(self) -> FixedWindowRateLimiter:
        return self._limiter

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _decode(self, method: str, resp: httpx.Response) -> ApiResponse:
        try:
            payload = msgspec.json.decode(resp.content, type=ApiResponse)
        except msgspec.DecodeError as e:
            logger.error(
                "telegram.bad_response",
                method=method,
                status=resp.status_code,
                error=str(e),
                body=resp.text[:500],
            )
            return ApiResponse(
                ok=False,
                description=f"invalid response (HTTP {resp.status_code})",
                error_code=resp.status_code,
            )
        logger.debug("telegram.response", method=method, ok=payload.ok)
        return payload

    async def _post(self, method: str, params: dict[str, Any]) -> ApiResponse:
        await self._limiter.acquire()
        logger.debug("telegram.request", method=method)
        resp = await self._client.post(
            f"{self._base}/{method}", json=msgspec.to_builtins(_compact(params))
        )
        return self._decode(method, resp)

    async def _post_multipart(
        self,
        method: str,
        params: dict[str, Any],
        files: dict[str, tuple[str, bytes, str]],
    ) -> ApiResponse:
        await self._limiter.acquire()
        logger.debug("telegram.request", method=method, multipart=True)
        data = {key: _form_value(value) for key, value in _compact(params).items()}
        resp = await self._client.post(
            f"{self._base}/{method}", data=data, files=files
        )
        return self._decode(method, resp)

    async def _get(self, method: str, params: dict[str, Any]) -> ApiResponse:
        await self._limiter.acquire()
        logger.debug("telegram.request", method=method)
        resp = await self._client.get(f"{self._base}/{method}", params=params)
        return self._decode(method, resp)

    async def set_my_commands(self, commands: Sequence[BotCommand]) -> ApiResponse:
        return await self._post("setMyCommands", {"commands": list(commands)})

    async def set_webhook(self, url: str, **extras: Any) -> ApiResponse:
        return await self._post("setWebhook", {**extras, "url": url})

    async def send_message(
        self,
        chat_id: str,
        text: str,
        *,
        reply_to_message_id: str | None = None,
        parse_mode: str | None = None,
        business_connection_id: str | None = None,
        **extras: Any,
    ) -> ApiResponse:
        return await self._post(
            "sendMessage",
            {
                **extras,
                "chat_id": chat_id,
                "text": text,
                "reply_to_message_id": reply_to_message_id,
                "parse_mode": parse_mode,
                "business_connection_id": business_connection_id,
            },
        )

    async def send_photo(
        self,
        chat_id: str,
        photo: str,
        *,
        caption: str | None = None,
        reply_to_message_id: str | None = None,
        business_connection_id: str | None = None,
        **extras: Any,
    ) -> ApiResponse:
        return await self._post(
            "sendPhoto",
            {
                **extras,
                "chat_id": chat_id,
                "photo": photo,
                "caption": caption,
                "reply_to_message_id": reply_to_message_id,
                "business_connection_id": business_connection_id,
            },
        )

    async def send_video(
        self,
        chat_id: str,
        video: str,
        *,
        caption: str | None = None,
        reply_to_message_id: str | None = None,
        business_connection_id: str | None = None,
        **extras: Any,
    ) -> ApiResponse:
        return await self._post(
            "sendVideo",
            {
                **extras,
                "chat_id": chat_id,
                "video": video,
                "caption": caption,
                "reply_to_message_id": reply_to_message_id,
                "business_connection_id": business_connection_id,
            },
        )

    async def send_document(
        self,
        chat_id: str,
        document: InputFile,
        *,
        caption: str | None = None,
        reply_to_message_id: str | None = None,
        parse_mode: str | None = None,
        business_connection_id: str | None = None,
        **extras: Any,
    ) -> ApiResponse:
        params: dict[str, Any] = {
            **extras,
            "chat_id": chat_id,
            "caption": caption,
            "reply_to_message_id": reply_to_message_id,
            "parse_mode": parse_mode,
            "business_connection_id": business_connection_id,
        }
        match document:
            case InputFileBytes(data=data, filename=filename, mime_type=mime_type):
                return await self._post_multipart(
                    "sendDocument",
                    params,
                    {"document": (filename, data, mime_type)},
                )
            case InputFileRef(ref=ref):
                return await self._post("sendDocument", {**params, "document": ref})

    async def send_chat_action(
        self,
        chat_id: str,
        action: str = "typing",
        *,
        business_connection_id: str | None = None,
    ) -> ApiResponse:
        return await self._post(
            "sendChatAction",
            {
                "chat_id": chat_id,
                "action": action,
                "business_connection_id": business_connection_id,
            },
        )

    async def answer_inline_query(
        self,
        inline_query_id: str,
        results: Sequence[InlineQueryResult],
        *,
        cache_time: int | None = None,
        is_personal: bool | None = None,
        next_offset: str | None = None,
        **extras: Any,
    ) -> ApiResponse:
        return await self._post(
            "answerInlineQuery",
            {
                **extras,
                "inline_query_id": inline_query_id,
                "results": list(results),
                "cache_time": cache_time,
                "is_personal": is_personal,
                "next_offset": next_offset,
            },
        )

    async def answer_callback_query(
        self,
        callback_query_id: str,
        *,
        text: str | None = None,
        show_alert: bool | None = None,
        url: str | None = None,
        cache_time: int | None = None,
    ) -> ApiResponse:
        return await self._post(
            "answerCallbackQuery",
            {
                "callback_query_id": callback_query_id,
                "text": text,
                "show_alert": show_alert,
                "url": url,
                "cache_time": cache_time,
            },
        )

    async def get_file(self, file_id: str) -> httpx.Response:
        """Resolve ``file_id`` with ``getFile`` and download its content."""
        if not file_id:
            return httpx.Response(400, text="file_id is required")
        meta = await self._get("getFile", {"file_id": file_id})
        if not meta.ok:
            logger.error(
                "telegram.get_file.failed",
                file_id=file_id,
                description=meta.description,
            )
            return httpx.Response(400, text=f"Error: {meta.description}")
        try:
            file = msgspec.convert(meta.result, type=File)
        except msgspec.ValidationError as e:
            logger.error("telegram.get_file.bad_result", file_id=file_id, error=str(e))
            return httpx.Response(400, text=f"Error: {e}")
        if not file.file_path:
            return httpx.Response(400, text="Error: file has no file_path")
        await self._limiter.acquire()
        return await self._client.get(f"{self._file_base}/{file.file_path}")
