"""
Alert dispatch: turns a decided AlertEvent into a notification and hands it to
a sink (local push notification on the phone, console, log, ...).

Priority, sound and vibration are chosen from severity:
- critical: MAX priority, sound and vibration always on
- attention: HIGH priority, sound and vibration per configuration
"""

import inspect
from collections.abc import Awaitable
from typing import Protocol

import structlog
from rich.console import Console
from rich.panel import Panel

from babyguard.config import AlertConfig
from babyguard.domain.errors import DispatchError
from babyguard.domain.models import (
    AlertEvent,
    DispatchOutcome,
    Notification,
    NotificationPriority,
    Severity,
)

logger = structlog.get_logger(__name__)


class NotificationSink(Protocol):
    """
    Delivers notifications to the user.

    ``deliver`` may be sync or async. Returning False or raising means the
    notification was not delivered.
    """

    def deliver(self, notification: Notification) -> bool | Awaitable[bool]: ...


class LoggingNotificationSink:
    """Sink that records every notification as a structured log event."""

    def __init__(self) -> None:
        self.logger = logger.bind(component="logging_sink")

    def deliver(self, notification: Notification) -> bool:
        self.logger.warning(
            "notification",
            title=notification.title,
            body=notification.body,
            priority=notification.priority.value,
            play_sound=notification.play_sound,
            vibrate=notification.vibrate,
        )
        return True


class ConsoleNotificationSink:
    """Development sink that renders notifications as rich panels."""

    _STYLES = {
        NotificationPriority.MAX: "bold red",
        NotificationPriority.HIGH: "yellow",
        NotificationPriority.DEFAULT: "blue",
    }

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def deliver(self, notification: Notification) -> bool:
        flags = []
        if notification.play_sound:
            flags.append("sound")
        if notification.vibrate:
            flags.append("vibration")

        self.console.print(
            Panel(
                f"{notification.body}\n\n[dim]{', '.join(flags) or 'silent'}[/dim]",
                title=notification.title,
                subtitle=notification.priority.value.upper(),
                style=self._STYLES[notification.priority],
            )
        )
        return True


class AlertDispatcher:
    """Chooses delivery options for an alert and delegates to the sink."""

    def __init__(self, sink: NotificationSink, config: AlertConfig | None = None) -> None:
        self.sink = sink
        self.config = config or AlertConfig()
        self.logger = logger.bind(component="alert_dispatcher")

    def build_notification(self, event: AlertEvent) -> Notification:
        if event.severity is Severity.CRITICAL:
            return Notification(
                title=event.title,
                body=f"{event.message}\nValue: {event.value}\nCheck the baby IMMEDIATELY!",
                priority=NotificationPriority.MAX,
                play_sound=True,
                vibrate=True,
            )

        return Notification(
            title=event.title,
            body=f"{event.message}\nValue: {event.value}\nMonitor closely.",
            priority=NotificationPriority.HIGH,
            play_sound=self.config.attention_sound,
            vibrate=event.requires_vibration,
        )

    async def dispatch(self, event: AlertEvent) -> DispatchOutcome:
        """
        Deliver one alert.

        Raises:
            DispatchError: the sink raised or reported failure.
        """
        notification = self.build_notification(event)

        try:
            result = self.sink.deliver(notification)
            delivered = await result if inspect.isawaitable(result) else result
        except Exception as e:
            self.logger.error(
                "alert_dispatch_failed", error=str(e), alert_key=str(event.key), title=event.title
            )
            raise DispatchError(f"sink failed to deliver {event.key}: {e}", cause=e) from e

        if not delivered:
            self.logger.error(
                "alert_dispatch_rejected", alert_key=str(event.key), title=event.title
            )
            raise DispatchError(f"sink rejected {event.key}")

        self.logger.info(
            "alert_dispatched",
            alert_key=str(event.key),
            priority=notification.priority.value,
            value=event.value,
        )
        return DispatchOutcome(
            key=event.key,
            priority=notification.priority,
            play_sound=notification.play_sound,
            vibrate=notification.vibrate,
        )
