"""ASGI surface that forwards webhook requests to the matching bot."""

from __future__ import annotations

from collections.abc import Sequence
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, Response

from .inference import InferenceService
from .logging import get_logger
from .telegram.bot import TelegramBot

logger = get_logger(__name__)


async def to_httpx_request(request: Request) -> httpx.Request:
    return httpx.Request(
        request.method,
        str(request.url),
        headers={
            key: value
            for key, value in request.headers.items()
            if key == "content-type"
        },
        content=await request.body(),
    )


def to_fastapi_response(response: httpx.Response) -> Response:
    return Response(
        content=response.content,
        status_code=response.status_code,
        media_type=response.headers.get("content-type"),
    )


def create_app(
    bots: Sequence[TelegramBot],
    *,
    inference: InferenceService | None = None,
    initialize_commands: bool = True,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if initialize_commands:
            for bot in bots:
                await bot.initialize_commands()
        yield
        for bot in bots:
            await bot.api.close()
        if inference is not None:
            await inference.close()

    app = FastAPI(lifespan=lifespan)

    @app.get("/healthz")
    async def healthz():
        return {"status": "ok", "bots": len(bots)}

    @app.api_route("/{path:path}", methods=["GET", "POST"])
    async def webhook(request: Request) -> Response:
        forwarded = await to_httpx_request(request)
        for bot in bots:
            if bot.matches(forwarded):
                return to_fastapi_response(await bot.handle(forwarded))
        # Unknown paths are acknowledged silently, like a token mismatch.
        return PlainTextResponse("ok")

    return app
