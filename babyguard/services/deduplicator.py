"""
Alert deduplication: classification + cooldown registry -> alerts to dispatch.

Every abnormal metric is evaluated on its own ``(metric, severity)`` key, so a
reading that is abnormal in two metrics can raise two alerts. The cooldown is
only consumed by a dispatch that succeeded; a failed delivery leaves the key
eligible for the next abnormal reading.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import structlog

from babyguard.domain.errors import DispatchError
from babyguard.domain.models import (
    AlertEvent,
    AlertKey,
    Classification,
    Direction,
    Metric,
    MetricAssessment,
    Severity,
    VitalReading,
)
from babyguard.domain.thresholds import ThresholdTable
from babyguard.services.classifier import classify
from babyguard.services.cooldown import CooldownRegistry
from babyguard.services.dispatcher import AlertDispatcher

logger = structlog.get_logger(__name__)

DEFAULT_COOLDOWN = timedelta(minutes=5)

Clock = Callable[[], datetime]
Classifier = Callable[[VitalReading, ThresholdTable], Classification]

_MESSAGES: dict[tuple[Metric, Severity, Direction], str] = {
    (Metric.TEMPERATURE, Severity.CRITICAL, "high"): "High fever detected!",
    (Metric.TEMPERATURE, Severity.CRITICAL, "low"): "Temperature very low!",
    (Metric.TEMPERATURE, Severity.ATTENTION, "high"): "Elevated temperature",
    (Metric.TEMPERATURE, Severity.ATTENTION, "low"): "Low temperature",
    (Metric.HEART_RATE, Severity.CRITICAL, "high"): "Severe tachycardia!",
    (Metric.HEART_RATE, Severity.CRITICAL, "low"): "Severe bradycardia!",
    (Metric.HEART_RATE, Severity.ATTENTION, "high"): "Fast heartbeat",
    (Metric.HEART_RATE, Severity.ATTENTION, "low"): "Slow heartbeat",
    (Metric.RESPIRATORY_RATE, Severity.CRITICAL, "high"): "Breathing very fast!",
    (Metric.RESPIRATORY_RATE, Severity.CRITICAL, "low"): "Breathing very slow!",
    (Metric.RESPIRATORY_RATE, Severity.ATTENTION, "high"): "Fast breathing",
    (Metric.RESPIRATORY_RATE, Severity.ATTENTION, "low"): "Slow breathing",
    (Metric.OXYGEN_SATURATION, Severity.CRITICAL, "low"): (
        "Critical saturation! Seek medical help IMMEDIATELY!"
    ),
    (Metric.OXYGEN_SATURATION, Severity.ATTENTION, "low"): "Low saturation - monitor closely",
    (Metric.OXYGEN_SATURATION, Severity.CRITICAL, "high"): "Saturation far above range!",
    (Metric.OXYGEN_SATURATION, Severity.ATTENTION, "high"): "Saturation above range",
}


def build_alert_event(
    assessment: MetricAssessment, attention_vibration: bool = True
) -> AlertEvent:
    """Word an abnormal assessment as a dispatch-ready alert."""
    metric, severity = assessment.metric, assessment.severity
    direction = assessment.direction or "high"

    if severity is Severity.CRITICAL:
        title = f"CRITICAL ALERT - {metric.label}"
    else:
        title = f"Attention - {metric.label}"

    return AlertEvent(
        metric=metric,
        severity=severity,
        title=title,
        message=_MESSAGES[(metric, severity, direction)],
        value=metric.format_value(assessment.value),
        requires_vibration=severity is Severity.CRITICAL or attention_vibration,
    )


@dataclass
class ProcessedReading:
    """Outcome of pushing one reading through the deduplicator."""

    reading: VitalReading
    classification: Classification
    fired: list[AlertEvent] = field(default_factory=list)
    suppressed: list[AlertKey] = field(default_factory=list)
    failed: list[AlertKey] = field(default_factory=list)
    discarded: bool = False


class AlertDeduplicator:
    """
    Single serialized entry point from readings to dispatched alerts.

    The should_fire -> dispatch -> record_fired sequence runs under one lock,
    so two concurrent abnormal readings for the same key (a periodic tick and
    a manual refresh, say) cannot both pass the cooldown check.
    """

    def __init__(
        self,
        thresholds: ThresholdTable,
        registry: CooldownRegistry,
        dispatcher: AlertDispatcher,
        cooldown: timedelta = DEFAULT_COOLDOWN,
        clock: Clock = lambda: datetime.now(UTC),
        classifier: Classifier = classify,
        attention_vibration: bool = True,
    ) -> None:
        if cooldown <= timedelta(0):
            raise ValueError("cooldown must be positive")
        self.thresholds = thresholds
        self.registry = registry
        self.dispatcher = dispatcher
        self.cooldown = cooldown
        self.clock = clock
        self.classifier = classifier
        self.attention_vibration = attention_vibration
        self.logger = logger.bind(component="alert_deduplicator")
        self._lock = asyncio.Lock()

    def set_cooldown(self, seconds: float) -> None:
        if seconds <= 0:
            raise ValueError("cooldown must be positive")
        self.cooldown = timedelta(seconds=seconds)
        self.logger.info("cooldown_updated", cooldown_seconds=seconds)

    def clear_history(self) -> None:
        self.registry.clear_history()

    async def process(
        self, reading: VitalReading, still_current: Callable[[], bool] | None = None
    ) -> ProcessedReading:
        """
        Classify ``reading`` and dispatch every abnormal metric whose cooldown allows it.

        ``still_current`` is checked once the lock is held; when it returns
        False the reading is dropped without dispatching anything.
        """
        classification = self.classifier(reading, self.thresholds)
        result = ProcessedReading(reading=reading, classification=classification)

        abnormal = classification.abnormal()
        if not abnormal:
            return result

        async with self._lock:
            if still_current is not None and not still_current():
                self.logger.debug("reading_discarded", overall=classification.overall.value)
                result.discarded = True
                return result

            for assessment in abnormal:
                key = AlertKey(metric=assessment.metric, severity=assessment.severity)
                now = self.clock()

                if not self.registry.should_fire(key, now, self.cooldown):
                    self.logger.debug("alert_suppressed", alert_key=str(key))
                    result.suppressed.append(key)
                    continue

                event = build_alert_event(assessment, self.attention_vibration)
                try:
                    await self.dispatcher.dispatch(event)
                except DispatchError as e:
                    self.logger.warning("alert_not_fired", alert_key=str(key), error=str(e))
                    result.failed.append(key)
                    continue

                self.registry.record_fired(key, now)
                result.fired.append(event)

        self.logger.info(
            "reading_processed",
            overall=classification.overall.value,
            fired=len(result.fired),
            suppressed=len(result.suppressed),
            failed=len(result.failed),
        )
        return result
