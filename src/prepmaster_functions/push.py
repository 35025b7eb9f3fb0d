"""Best-effort delivery through the Expo push service."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

import requests
from pydantic import BaseModel

from .config import EXPO_PUSH_URL

logger = logging.getLogger(__name__)

# Expo accepts up to 100 messages per request; keep some headroom
CHUNK_SIZE = 90


class PushMessage(BaseModel):
    to: str
    title: str
    body: str


@dataclass
class PushReport:
    """Outcome of a best-effort send, counted per request."""

    messages: int = 0
    batches_sent: int = 0
    batches_failed: int = 0

    @property
    def all_failed(self) -> bool:
        return self.batches_failed > 0 and self.batches_sent == 0


class PushSender(Protocol):
    def __call__(self, messages: Sequence[PushMessage]) -> PushReport: ...


def send_expo_push(
    messages: Sequence[PushMessage],
    url: str = EXPO_PUSH_URL,
    chunk_size: int = CHUNK_SIZE,
    timeout: float = 15.0,
) -> PushReport:
    """Send messages in chunks. Failures are logged and counted, never raised."""
    report = PushReport(messages=len(messages))
    for start in range(0, len(messages), chunk_size):
        batch = [m.model_dump() for m in messages[start : start + chunk_size]]
        try:
            resp = requests.post(
                url,
                headers={"Content-Type": "application/json", "Accept": "application/json"},
                json=batch,
                timeout=timeout,
            )
        except requests.RequestException:
            logger.exception("Expo push request failed for %d messages", len(batch))
            report.batches_failed += 1
            continue
        if resp.status_code >= 400:
            logger.error("Expo push rejected %d messages: %s %s", len(batch), resp.status_code, resp.text)
            report.batches_failed += 1
        else:
            report.batches_sent += 1
    return report


class ExpoPushSender:
    """`send_expo_push` bound to deployment settings."""

    def __init__(self, url: str = EXPO_PUSH_URL, chunk_size: int = CHUNK_SIZE, timeout: float = 15.0):
        self._url = url
        self._chunk_size = chunk_size
        self._timeout = timeout

    def __call__(self, messages: Sequence[PushMessage]) -> PushReport:
        return send_expo_push(messages, url=self._url, chunk_size=self._chunk_size, timeout=self._timeout)
