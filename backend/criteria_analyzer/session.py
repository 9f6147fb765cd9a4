from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
import math
from pathlib import Path
import secrets
import time
from typing import Iterable

from criteria_analyzer.checklist import RawExchange
from criteria_analyzer.store import ResultStore

logger = logging.getLogger("criteria.session")

_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"
_SIZE_UNITS = ("Bytes", "KB", "MB", "GB")


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits: list[str] = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def generate_session_id() -> str:
    timestamp = _to_base36(int(time.time() * 1000))
    suffix = "".join(secrets.choice(_BASE36_DIGITS) for _ in range(6))
    return f"{timestamp}-{suffix}"


def format_file_size(size_bytes: int) -> str:
    if size_bytes <= 0:
        return "0 Bytes"
    exponent = min(int(math.floor(math.log(size_bytes, 1024))), len(_SIZE_UNITS) - 1)
    value = round(size_bytes / (1024**exponent), 2)
    return f"{value:g} {_SIZE_UNITS[exponent]}"


@dataclass(frozen=True)
class UploadedFile:
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.content)

    def describe(self) -> dict[str, object]:
        return {
            "filename": self.filename,
            "content_type": self.content_type,
            "size_bytes": self.size,
            "size": format_file_size(self.size),
        }


class Session:
    """One in-memory unit of work: queued files, results and raw exchanges."""

    def __init__(self, supported_extensions: Iterable[str] = (".pdf", ".hwp")) -> None:
        self.supported_extensions = tuple(extension.lower() for extension in supported_extensions)
        self.session_id = generate_session_id()
        self.files: list[UploadedFile] = []
        self.results = ResultStore()
        self.raw_exchanges: list[RawExchange] = []
        self.last_batch: dict[str, object] | None = None
        # Held for the whole of one ingestion batch.
        self.batch_lock = asyncio.Lock()

    @classmethod
    def new(cls, supported_extensions: Iterable[str] = (".pdf", ".hwp")) -> "Session":
        return cls(supported_extensions)

    def reset(self) -> None:
        self.session_id = generate_session_id()
        self.files = []
        self.results.clear()
        self.raw_exchanges = []
        self.last_batch = None
        logger.info("session_reset", extra={"event": "session_reset", "session_id": self.session_id})

    def is_supported(self, filename: str) -> bool:
        return Path(filename).suffix.lower() in self.supported_extensions

    def add_files(self, files: Iterable[UploadedFile]) -> list[UploadedFile]:
        accepted = [upload for upload in files if self.is_supported(upload.filename)]
        self.files.extend(accepted)
        return accepted

    def clear_files(self) -> None:
        self.files = []

    def start_batch(self) -> None:
        self.results.clear()
        self.raw_exchanges = []

    def describe(self) -> dict[str, object]:
        return {
            "session_id": self.session_id,
            "files": [upload.describe() for upload in self.files],
            "result_count": len(self.results),
            "raw_exchange_count": len(self.raw_exchanges),
        }
