"""Supabase Storage access for uploaded onboarding files."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from shopboost.core.errors import StorageError

logger = logging.getLogger(__name__)

DEFAULT_BUCKET = "shop-imports"


def decode_text(content: bytes) -> str:
    """Decode uploaded bytes as UTF-8 (BOM tolerant), replacing invalid sequences."""
    return content.decode("utf-8-sig", errors="replace")


class IntakeFileStorage:
    """
    Read-only view of the onboarding upload bucket.

    ``download`` raises ``StorageError``; ``download_text`` and ``fetch_text``
    fold a missing path and a failed download into ``None``, which the
    importer treats as "file not provided".
    """

    def __init__(self, client: Any, bucket: str = DEFAULT_BUCKET) -> None:
        self._client = client
        self._bucket = bucket

    def download(self, path: str) -> bytes:
        try:
            content = self._client.storage.from_(self._bucket).download(path)
        except Exception as exc:
            raise StorageError(
                f"download of {self._bucket}/{path} failed: {type(exc).__name__}: {exc}"
            ) from exc
        if isinstance(content, str):
            return content.encode("utf-8")
        return content or b""

    def download_text(self, path: str | None) -> str | None:
        if not path:
            return None
        try:
            content = self.download(path)
        except StorageError as exc:
            logger.info("%s; treating as not provided", exc)
            return None
        if not content:
            return None
        return decode_text(content)

    async def fetch_text(self, path: str | None) -> str | None:
        """Async wrapper so several files can download concurrently."""
        if not path:
            return None
        return await asyncio.to_thread(self.download_text, path)
