"""Delivery of ``INSPECTION_WORK_COMPLETED`` events.

Features:
* ``HttpNotifier``: POSTs the event JSON to a webhook with
  exponential-backoff retry.  4xx responses are not retried.
* ``LoggingNotifier``: writes the event to the structured log only.

Neither notifier raises; delivery failures are logged so a broken
webhook can never undo a committed validation.
"""

from __future__ import annotations

import time
from typing import Callable, Optional

import httpx
import structlog

from inspection_core.config import CoreSettings
from inspection_core.schemas import InspectionWorkCompleted
from inspection_core.workflow.base import Notifier

logger = structlog.get_logger(__name__)


class LoggingNotifier(Notifier):
    """Log-only sink, used when no webhook is configured."""

    def notify(self, event: InspectionWorkCompleted) -> None:
        logger.info(
            "inspection_work_completed",
            inspection_id=event.inspection_id,
            has_anomalies=event.has_anomalies,
            anomalies_count=event.anomalies_count,
        )


class HttpNotifier(Notifier):
    """Sends events to a webhook URL.

    Parameters
    ----------
    url :
        Absolute webhook URL.
    max_retries :
        Attempts per event, including the first one.
    timeout :
        Per-request timeout in seconds.
    client :
        Optional pre-built ``httpx.Client``; one is created otherwise.
    sleep :
        Back-off function, replaceable in tests.
    """

    def __init__(
        self,
        url: str,
        *,
        max_retries: int = 3,
        timeout: float = 5.0,
        client: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._url = url
        self._max_retries = max(1, max_retries)
        self._client = client or httpx.Client(timeout=timeout)
        self._owns_client = client is None
        self._sleep = sleep

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def notify(self, event: InspectionWorkCompleted) -> None:
        delivered = self.send(event)
        if not delivered:
            logger.error(
                "notification_dropped",
                inspection_id=event.inspection_id,
                url=self._url,
            )

    def send(self, event: InspectionWorkCompleted) -> bool:
        """POST *event*.  Returns ``True`` once the webhook accepted it."""
        payload = event.model_dump_json(by_alias=True)

        for attempt in range(1, self._max_retries + 1):
            try:
                response = self._client.post(
                    self._url,
                    content=payload,
                    headers={"Content-Type": "application/json"},
                )

                if 400 <= response.status_code < 500:
                    logger.error(
                        "notification_rejected",
                        status=response.status_code,
                        body=response.text[:500],
                    )
                    return False

                response.raise_for_status()
                logger.info(
                    "notification_sent",
                    inspection_id=event.inspection_id,
                    status=response.status_code,
                )
                return True

            except httpx.HTTPStatusError as exc:
                wait = 2 ** (attempt - 1)
                logger.warning(
                    "notification_server_error",
                    attempt=attempt,
                    max_retries=self._max_retries,
                    status=exc.response.status_code,
                    retry_in=wait,
                )
                if attempt < self._max_retries:
                    self._sleep(wait)

            except httpx.RequestError as exc:
                wait = 2 ** (attempt - 1)
                logger.warning(
                    "notification_network_error",
                    attempt=attempt,
                    max_retries=self._max_retries,
                    error=str(exc),
                    retry_in=wait,
                )
                if attempt < self._max_retries:
                    self._sleep(wait)

        return False


def build_notifier(settings: CoreSettings) -> Notifier:
    """Webhook notifier when a URL is configured, log-only otherwise."""
    if settings.notify_webhook_url:
        return HttpNotifier(
            settings.notify_webhook_url,
            max_retries=settings.notify_max_retries,
            timeout=settings.notify_timeout_seconds,
        )
    return LoggingNotifier()
