"""
Push fan-out for assignments and notifications.

`send_batch` splits a token list into chunks of at most 500 (the FCM
multicast limit), sends one multicast per chunk, and sums the per-chunk
counts. A chunk whose call raises counts every one of its tokens as failed;
later chunks are still sent.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any

from core import fcm, settings

logger = logging.getLogger(__name__)

Sender = Callable[[list[str], dict[str, str]], Awaitable[fcm.MulticastResult]]


@dataclass(frozen=True)
class DeliveryTally:
    success: int = 0
    failed: int = 0

    @property
    def attempted(self) -> int:
        return self.success + self.failed

    def add(self, *, success: int, failed: int) -> DeliveryTally:
        return DeliveryTally(success=self.success + success, failed=self.failed + failed)

    def as_dict(self) -> dict[str, int]:
        return {"success": self.success, "failed": self.failed}


def chunk_tokens(tokens: Sequence[str], chunk_size: int) -> list[list[str]]:
    size = max(1, min(int(chunk_size), settings.MAX_PUSH_CHUNK_SIZE))
    return [list(tokens[i : i + size]) for i in range(0, len(tokens), size)]


def _stringify(data: dict[str, Any]) -> dict[str, str]:
    # FCM data payloads are string -> string maps.
    return {str(k): "" if v is None else str(v) for k, v in data.items()}


async def send_batch(
    tokens: Sequence[str],
    data: dict[str, Any],
    *,
    sender: Sender | None = None,
    chunk_size: int | None = None,
) -> DeliveryTally:
    tally = DeliveryTally()
    if not tokens:
        logger.info("push_skipped reason=no_tokens")
        return tally

    send = sender or fcm.send_multicast
    payload = _stringify(data)
    chunks = chunk_tokens(tokens, chunk_size or settings.push_chunk_size())
    logger.info("push_start tokens=%s chunks=%s", len(tokens), len(chunks))

    for index, chunk in enumerate(chunks):
        try:
            result = await send(chunk, payload)
        except Exception as exc:
            logger.error("push_chunk_failed chunk=%s size=%s error=%s", index, len(chunk), exc)
            tally = tally.add(success=0, failed=len(chunk))
            continue

        tally = tally.add(success=result.success_count, failed=result.failure_count)
        logger.info(
            "push_chunk_sent chunk=%s success=%s failed=%s",
            index,
            result.success_count,
            result.failure_count,
        )

    logger.info("push_complete success=%s total=%s", tally.success, len(tokens))
    return tally
