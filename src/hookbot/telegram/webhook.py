from __future__ import annotations

import httpx
import msgspec

from ..logging import get_logger
from .client import TelegramClient

logger = get_logger(__name__)


def webhook_url_for(request: httpx.Request, token: str) -> str:
    url = request.url
    return f"{url.scheme}://{url.netloc.decode('ascii')}/{token}"


class Webhook:
    """Points the bot's webhook at the host the registration request came to."""

    def __init__(self, api: TelegramClient, token: str, request: httpx.Request) -> None:
        self.api = api
        self.token = token
        self.request = request

    @property
    def url(self) -> str:
        return webhook_url_for(self.request, self.token)

    async def set(self) -> httpx.Response:
        result = await self.api.set_webhook(self.url)
        if result.ok:
            logger.info("webhook.set", url=self.url)
        else:
            logger.error("webhook.set_failed", url=self.url, description=result.description)
        return httpx.Response(
            200 if result.ok else 400, json=msgspec.to_builtins(result)
        )
