from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class InputFileBytes:
    """File content uploaded inline with the request (multipart)."""

    data: bytes
    filename: str = "document.txt"
    mime_type: str = "application/octet-stream"


@dataclass(frozen=True, slots=True)
class InputFileRef:
    """A file id already known to Telegram, or a URL it can fetch."""

    ref: str


InputFile = InputFileBytes | InputFileRef
