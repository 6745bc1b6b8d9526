# SPDX-License-Identifier: MIT
"""
Notification trigger contract for high-severity findings.

Delivery itself belongs to the notifier implementation; this module only
defines the interface and runs each dispatch under its own deadline.
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Protocol

from reconsecrets.core.findings import SecretFinding
from reconsecrets.core.redaction import redact_secret

logger = logging.getLogger(__name__)

NOTIFICATION_TIMEOUT_SECONDS = 30.0


class NotificationChannel(Enum):
    """Which service's notification route to use."""

    MONITOR_SERVICE = "monitor_service"
    SCAN_SERVICE = "scan_service"


@dataclass
class NotificationContext:
    """Deadline and cancellation signal handed to the notifier."""

    deadline: float
    cancelled: threading.Event = field(default_factory=threading.Event)

    @classmethod
    def with_timeout(cls, seconds: float) -> "NotificationContext":
        return cls(deadline=time.monotonic() + seconds)

    def remaining(self) -> float:
        return max(0.0, self.deadline - time.monotonic())

    @property
    def done(self) -> bool:
        return self.cancelled.is_set() or self.remaining() == 0.0

    def cancel(self) -> None:
        self.cancelled.set()


class SecretNotifier(Protocol):
    """Sends one alert per high-severity finding. Must be safe for concurrent use."""

    def send_high_severity_secret_notification(
        self, ctx: NotificationContext, finding: SecretFinding, channel: NotificationChannel
    ) -> None:
        ...


def dispatch_notification(
    notifier: SecretNotifier,
    finding: SecretFinding,
    channel: NotificationChannel = NotificationChannel.MONITOR_SERVICE,
    timeout: float = NOTIFICATION_TIMEOUT_SECONDS,
) -> bool:
    """
    Send one notification, waiting at most *timeout* seconds.

    Failures and timeouts are logged, never raised.

    Returns:
        True if the notifier returned without error inside the deadline
    """
    ctx = NotificationContext.with_timeout(timeout)
    outcome: dict = {}

    def _send() -> None:
        try:
            notifier.send_high_severity_secret_notification(ctx, finding, channel)
            outcome["ok"] = True
        except Exception as e:  # notifier errors must not reach the scan
            outcome["error"] = e

    worker = threading.Thread(target=_send, name=f"notify-{finding.rule_id}", daemon=True)
    worker.start()
    worker.join(timeout)

    if worker.is_alive():
        ctx.cancel()
        logger.warning(
            "Notification for %s (%s) timed out after %.0fs",
            finding.rule_id,
            finding.source_url,
            timeout,
        )
        return False

    error: Optional[Exception] = outcome.get("error")
    if error is not None:
        logger.error(
            "Failed to send notification for %s secret %s in %s: %s",
            finding.rule_id,
            redact_secret(finding.secret_text),
            finding.source_url,
            error,
        )
        return False
    return True
