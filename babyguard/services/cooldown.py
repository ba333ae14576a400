"""
Cooldown registry: remembers when each kind of alert last fired.

One registry belongs to one monitored subject. Entries live until
``clear_history`` is called; a key with no entry may fire immediately.
"""

from datetime import datetime, timedelta

import structlog

from babyguard.domain.models import AlertKey

logger = structlog.get_logger(__name__)


class CooldownRegistry:
    """Mapping ``AlertKey -> last fired at`` with a read-only eligibility check."""

    def __init__(self) -> None:
        self._last_fired: dict[AlertKey, datetime] = {}
        self.logger = logger.bind(component="cooldown_registry")

    def should_fire(self, key: AlertKey, now: datetime, cooldown: timedelta) -> bool:
        """True iff ``key`` never fired or its cooldown has strictly elapsed."""
        last = self._last_fired.get(key)
        return last is None or now - last > cooldown

    def record_fired(self, key: AlertKey, now: datetime) -> None:
        self._last_fired[key] = now

    def last_fired(self, key: AlertKey) -> datetime | None:
        return self._last_fired.get(key)

    def clear_history(self) -> None:
        cleared = len(self._last_fired)
        self._last_fired.clear()
        self.logger.info("alert_history_cleared", entries=cleared)

    def __len__(self) -> int:
        return len(self._last_fired)

    def __contains__(self, key: object) -> bool:
        return key in self._last_fired
