"""
Alert notification delivery.

High-severity alerts are handed to an external sink on a small worker pool.
Delivery is fire-and-forget: failures are logged and dropped, never retried
and never raised to the code that created the alert.
"""

import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import datetime
from typing import Optional, Set

import httpx
import structlog

from pulse_monitor.core.exceptions import NotificationError

from .models import Alert, AlertSeverity

logger = structlog.get_logger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org/bot{token}/sendMessage"
TELEGRAM_MAX_MESSAGE_LEN = 3900


def format_alert_message(alert: Alert) -> str:
    """Render the operator-facing notification text for an alert."""
    created = datetime.fromtimestamp(alert.created_at).strftime("%Y-%m-%d %H:%M:%S")
    lines = [
        "🚨 System alert",
        "",
        f"🕐 Time: {created}",
        f"🔥 Severity: {alert.severity.value.upper()}",
        f"📋 Type: {alert.type}",
        f"📝 Message: {alert.message}",
        "",
        "Please check the system and take appropriate action.",
    ]
    return "\n".join(lines)[:TELEGRAM_MAX_MESSAGE_LEN]


class AlertSink(ABC):
    """Outbound destination for high-severity alerts."""

    name = "sink"

    @abstractmethod
    def send(self, alert: Alert) -> None:
        """Deliver one alert. Raise NotificationError on failure."""

    def close(self) -> None:
        """Release transport resources."""


class LoggingAlertSink(AlertSink):
    """Fallback sink used when no external transport is configured."""

    name = "log"

    def send(self, alert: Alert) -> None:
        logger.warning("Alert notification (no transport configured)",
                       alert_id=alert.id,
                       alert_type=alert.type,
                       severity=alert.severity.value,
                       message=alert.message)


class TelegramAlertSink(AlertSink):
    """Posts alert text to a Telegram chat through the Bot API."""

    name = "telegram"

    def __init__(self,
                 bot_token: str,
                 chat_id: str,
                 timeout_seconds: float = 15.0,
                 client: Optional[httpx.Client] = None):
        self.bot_token = bot_token
        self.chat_id = chat_id
        self._client = client or httpx.Client(timeout=timeout_seconds)

    def send(self, alert: Alert) -> None:
        url = TELEGRAM_API_URL.format(token=self.bot_token)
        payload = {"chat_id": self.chat_id, "text": format_alert_message(alert)}

        try:
            response = self._client.post(url, json=payload)
            data = response.json()
        except Exception as e:
            raise NotificationError(self._redact(f"{type(e).__name__}: {e}")) from e

        if not data.get("ok"):
            description = data.get("description") or f"HTTP {response.status_code}"
            raise NotificationError(self._redact(f"Telegram rejected message: {description}"))

    def close(self) -> None:
        self._client.close()

    def _redact(self, text: str) -> str:
        if self.bot_token:
            return text.replace(self.bot_token, "<redacted>")
        return text


class AlertNotifier:
    """
    Fire-and-forget delivery of high-severity alerts to a sink.

    ``notify`` returns immediately; the send runs on a worker thread.
    Medium-severity alerts are recorded by the caller but never pushed.
    """

    def __init__(self, sink: AlertSink, max_workers: int = 2):
        self.sink = sink
        self._executor = ThreadPoolExecutor(max_workers=max_workers,
                                            thread_name_prefix="alert-notifier")
        self._pending: Set[Future] = set()
        self._lock = threading.Lock()
        self._closed = False

    def notify(self, alert: Alert) -> Optional[Future]:
        """Schedule delivery for high-severity alerts; no-op otherwise."""

        if alert.severity is not AlertSeverity.HIGH:
            return None

        with self._lock:
            if self._closed:
                logger.warning("Notifier closed, alert not delivered", alert_id=alert.id)
                return None
            try:
                future = self._executor.submit(self._deliver, alert)
            except RuntimeError as e:
                logger.error("Alert notification not scheduled",
                             alert_id=alert.id, error=str(e))
                return None
            self._pending.add(future)

        future.add_done_callback(self._forget)
        return future

    @property
    def closed(self) -> bool:
        return self._closed

    def drain(self, timeout: Optional[float] = None) -> bool:
        """Wait for in-flight deliveries. Returns True if all finished."""
        with self._lock:
            pending = set(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def close(self, timeout: Optional[float] = 5.0) -> None:
        """Stop accepting alerts, let in-flight sends finish, release the sink."""
        with self._lock:
            if self._closed:
                return
            self._closed = True

        if not self.drain(timeout):
            logger.warning("Alert notifications still pending at shutdown")
        self._executor.shutdown(wait=False, cancel_futures=True)

        try:
            self.sink.close()
        except Exception as e:
            logger.error("Error closing alert sink", sink=self.sink.name, error=str(e))

    def _deliver(self, alert: Alert) -> bool:
        try:
            self.sink.send(alert)
        except Exception as e:
            logger.error("Alert notification failed",
                         sink=self.sink.name,
                         alert_id=alert.id,
                         error=str(e))
            return False

        logger.info("Alert notification delivered",
                    sink=self.sink.name,
                    alert_id=alert.id,
                    alert_type=alert.type)
        return True

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)
