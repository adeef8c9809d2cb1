"""
Escalation channels for audit records that could not be persisted.

A lost violation record is itself a security event, so the audit sink hands
failed records to both channels here:

- ``DeadLetterStore``: append-only JSON-lines file, one record per line.
- ``WebhookAlerter``: optional HTTP POST to an alerting endpoint.

Neither channel raises; their own failures are reported on the
security-alert logger.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any

import requests

from lms_governance.logging_config import SECURITY_ALERT_LOGGER

alert_logger = logging.getLogger(SECURITY_ALERT_LOGGER)


class DeadLetterStore:
    """
    JSON-lines fallback store for audit records.

    Writes are serialized with a lock so concurrent appends from the request
    threadpool never interleave within a line.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def push(self, record: dict[str, Any], reason: str) -> bool:
        entry = {"reason": reason, "record": record}
        line = json.dumps(entry, default=str, separators=(",", ":"))
        try:
            with self._lock:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                with open(self._path, "a", encoding="utf-8") as f:
                    f.write(line + "\n")
        except OSError:
            alert_logger.critical("Dead-letter write failed path=%s record=%s", self._path, line, exc_info=True)
            return False
        return True

    def entries(self) -> list[dict[str, Any]]:
        """Read back all dead-lettered entries (for replay or inspection)."""

        if not self._path.exists():
            return []
        out: list[dict[str, Any]] = []
        with self._lock, open(self._path, encoding="utf-8") as f:
            for raw in f:
                raw = raw.strip()
                if raw:
                    out.append(json.loads(raw))
        return out


class WebhookAlerter:
    """POST a JSON alert to an operator endpoint. Disabled when no URL is configured."""

    def __init__(self, url: str | None, timeout_seconds: float = 5.0) -> None:
        self._url = url
        self._timeout = timeout_seconds

    @property
    def enabled(self) -> bool:
        return bool(self._url)

    def send(self, summary: str, record: dict[str, Any]) -> bool:
        if not self.enabled:
            return False
        payload = {"severity": "critical", "summary": summary, "record": record}
        try:
            resp = requests.post(
                self._url,
                data=json.dumps(payload, default=str),
                headers={"Content-Type": "application/json"},
                timeout=self._timeout,
            )
            resp.raise_for_status()
        except requests.RequestException:
            alert_logger.critical("Audit alert webhook failed url=%s summary=%s", self._url, summary, exc_info=True)
            return False
        return True
