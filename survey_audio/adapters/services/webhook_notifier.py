"""
Fire-and-forget pipeline event delivery.

notify() schedules a background task on the running loop and returns.
Delivery failures are logged and never reach the pipeline.
"""
import asyncio
from typing import Any, Dict, Optional, Set

import requests

from survey_audio.config.settings import Settings
from survey_audio.core.models.audio_job import utc_now_iso
from survey_audio.core.ports.notifier import NotifierPort, PipelineEvent
from survey_audio.infrastructure.logging.log_config import get_logger


logger = get_logger("WebhookNotifier")


class NullNotifier(NotifierPort):
    """Used when no webhook URL is configured."""

    def notify(self, event: PipelineEvent, payload: Dict[str, Any]) -> None:
        logger.debug("Notification skipped, no webhook configured", extra={"extra_fields": {
            "event": event.value
        }})

    async def drain(self, timeout: float) -> None:
        return None


class WebhookNotifier(NotifierPort):
    """
    POSTs {"event", "occurred_at", "payload"} to a webhook with bounded retries.
    """

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None):
        self.url = settings.notification_webhook_url
        self.max_attempts = max(1, settings.notification_max_attempts)
        self.backoff_seconds = settings.notification_backoff_seconds
        self.timeout_seconds = settings.notification_timeout_seconds
        self.session = session or requests.Session()
        self._pending: Set[asyncio.Task] = set()

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def notify(self, event: PipelineEvent, payload: Dict[str, Any]) -> None:
        body = {"event": event.value, "occurred_at": utc_now_iso(), "payload": payload}
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop, notification dropped", extra={"extra_fields": {
                "event": event.value
            }})
            return

        task = loop.create_task(self._deliver(body))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, body: Dict[str, Any]) -> bool:
        for attempt in range(1, self.max_attempts + 1):
            try:
                response = await asyncio.to_thread(
                    self.session.post, self.url, json=body, timeout=self.timeout_seconds
                )
                if response.ok:
                    logger.debug("Notification delivered", extra={"extra_fields": {
                        "event": body["event"],
                        "attempt": attempt
                    }})
                    return True
                reason = f"HTTP {response.status_code}"
            except requests.RequestException as e:
                reason = str(e)

            logger.warning("Notification delivery attempt failed", extra={"extra_fields": {
                "event": body["event"],
                "attempt": attempt,
                "max_attempts": self.max_attempts,
                "reason": reason
            }})
            if attempt < self.max_attempts:
                await asyncio.sleep(self.backoff_seconds * (2 ** (attempt - 1)))

        logger.error("Notification dropped after retries", extra={"extra_fields": {
            "event": body["event"],
            "attempts": self.max_attempts
        }})
        return False

    async def drain(self, timeout: float) -> None:
        """Give in-flight deliveries up to timeout seconds before the runtime freezes."""
        if not self._pending:
            return
        done, pending = await asyncio.wait(set(self._pending), timeout=timeout)
        if pending:
            logger.warning("Notifications still in flight after drain timeout", extra={"extra_fields": {
                "pending": len(pending),
                "timeout_seconds": timeout
            }})
