"""Shared test doubles and fixtures for the monitoring pipeline."""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from babyguard.domain.errors import AcquisitionError
from babyguard.domain.models import MovementState, Notification, VitalReading
from babyguard.domain.thresholds import ThresholdTable
from babyguard.services.cooldown import CooldownRegistry
from babyguard.services.data_source import Result
from babyguard.services.deduplicator import AlertDeduplicator
from babyguard.services.dispatcher import AlertDispatcher

NORMAL_PAYLOAD: dict[str, Any] = {
    "temperature": 36.8,
    "heartRate": 120,
    "respiratoryRate": 35,
    "oxygenSaturation": 98,
    "movement": "sleeping",
}

FEVER_PAYLOAD: dict[str, Any] = {**NORMAL_PAYLOAD, "temperature": 38.6, "heartRate": 130}


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class RecordingSink:
    """Notification sink double that records deliveries or fails on demand."""

    def __init__(self, delay_seconds: float = 0.0) -> None:
        self.notifications: list[Notification] = []
        self.attempts = 0
        self.fail_with: Exception | None = None
        self.reject = False
        self.delay_seconds = delay_seconds

    async def deliver(self, notification: Notification) -> bool:
        self.attempts += 1
        if self.delay_seconds > 0:
            await asyncio.sleep(self.delay_seconds)
        if self.fail_with is not None:
            raise self.fail_with
        if self.reject:
            return False
        self.notifications.append(notification)
        return True


class StubDataSource:
    """
    Data source double serving queued payloads, then a default.

    A queued AcquisitionError is returned as a failed Result; any other
    exception is raised from ``fetch_latest``.
    """

    endpoint = "stub://sensor/api/dados"

    def __init__(self, *responses: Any, default: Any = NORMAL_PAYLOAD) -> None:
        self.responses: deque[Any] = deque(responses)
        self.default = default
        self.calls = 0
        self.gate: asyncio.Event | None = None

    def queue(self, *responses: Any) -> None:
        self.responses.extend(responses)

    async def fetch_latest(self) -> Result[Any, AcquisitionError]:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        item = self.responses.popleft() if self.responses else self.default
        if isinstance(item, AcquisitionError):
            return Result.err(item)
        if isinstance(item, Exception):
            raise item
        return Result.ok(item)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def thresholds() -> ThresholdTable:
    return ThresholdTable()


@pytest.fixture
def registry() -> CooldownRegistry:
    return CooldownRegistry()


@pytest.fixture
def dispatcher(sink: RecordingSink) -> AlertDispatcher:
    return AlertDispatcher(sink)


@pytest.fixture
def deduplicator(
    thresholds: ThresholdTable,
    registry: CooldownRegistry,
    dispatcher: AlertDispatcher,
    clock: FakeClock,
) -> AlertDeduplicator:
    return AlertDeduplicator(thresholds, registry, dispatcher, clock=clock)


@pytest.fixture
def make_reading() -> Callable[..., VitalReading]:
    """Factory for readings that default to normal values."""

    def _make(
        temperature: float = 36.8,
        heart_rate: int = 120,
        respiratory_rate: int = 35,
        oxygen_saturation: int = 98,
        movement: MovementState = MovementState.SLEEPING,
    ) -> VitalReading:
        return VitalReading(
            temperature_c=temperature,
            heart_rate_bpm=heart_rate,
            respiratory_rate_rpm=respiratory_rate,
            oxygen_saturation_pct=oxygen_saturation,
            movement_state=movement,
        )

    return _make
