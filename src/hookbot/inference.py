"""Thin client for the text-generation and translation models the bots use."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Literal, Protocol

import httpx
import msgspec

from .config import InferenceConfig
from .logging import get_logger

logger = get_logger(__name__)

CLOUDFLARE_API_BASE = "https://api.cloudflare.com/client/v4"

Role = Literal["system", "user", "assistant"]


class ChatMessage(msgspec.Struct):
    role: Role
    content: str


class InferenceError(RuntimeError):
    pass


class InferenceService(Protocol):
    async def complete(
        self, messages: Sequence[ChatMessage], *, max_tokens: int | None = None
    ) -> str: ...

    async def translate(
        self, text: str, *, source_lang: str, target_lang: str
    ) -> str: ...

    async def close(self) -> None: ...


class _RunResult(msgspec.Struct, forbid_unknown_fields=False):
    response: str | None = None
    translated_text: str | None = None


class _RunEnvelope(msgspec.Struct, forbid_unknown_fields=False):
    success: bool = False
    result: _RunResult | None = None
    errors: list[Any] = msgspec.field(default_factory=list)


class WorkersAIClient:
    def __init__(
        self,
        *,
        account_id: str,
        api_token: str,
        chat_model: str,
        translate_model: str,
        client: httpx.AsyncClient | None = None,
        timeout_s: float = 60,
        api_base: str = CLOUDFLARE_API_BASE,
    ) -> None:
        self._base = f"{api_base.rstrip('/')}/accounts/{account_id}/ai/run"
        self._headers = {"Authorization": f"Bearer {api_token}"}
        self.chat_model = chat_model
        self.translate_model = translate_model
        self._client = client or httpx.AsyncClient(timeout=timeout_s)
        self._owns_client = client is None

    @classmethod
    def from_config(
        cls, config: InferenceConfig, *, client: httpx.AsyncClient | None = None
    ) -> WorkersAIClient:
        if not config.account_id or not config.api_token:
            raise InferenceError("inference account_id and api_token are required")
        return cls(
            account_id=config.account_id,
            api_token=config.api_token,
            chat_model=config.chat_model,
            translate_model=config.translate_model,
            client=client,
        )

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _run(self, model: str, payload: dict[str, Any]) -> _RunResult:
        logger.debug("inference.request", model=model)
        resp = await self._client.post(
            f"{self._base}/{model}", json=payload, headers=self._headers
        )
        try:
            envelope = msgspec.json.decode(resp.content, type=_RunEnvelope)
        except msgspec.DecodeError as e:
            raise InferenceError(
                f"{model}: invalid response (HTTP {resp.status_code})"
            ) from e
        if not envelope.success or envelope.result is None:
            logger.error(
                "inference.failed",
                model=model,
                status=resp.status_code,
                errors=envelope.errors,
            )
            raise InferenceError(f"{model}: {envelope.errors or 'request failed'}")
        return envelope.result

    async def complete(
        self, messages: Sequence[ChatMessage], *, max_tokens: int | None = None
    ) -> str:
        payload: dict[str, Any] = {"messages": msgspec.to_builtins(list(messages))}
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens
        result = await self._run(self.chat_model, payload)
        return result.response or ""

    async def translate(self, text: str, *, source_lang: str, target_lang: str) -> str:
        result = await self._run(
            self.translate_model,
            {"text": text, "source_lang": source_lang, "target_lang": target_lang},
        )
        return result.translated_text or ""
