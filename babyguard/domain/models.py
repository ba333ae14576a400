"""
Domain models for infant vital-sign monitoring.

These models represent the core business concepts and are framework-agnostic.
They use Pydantic for validation. Value objects are frozen and are shared
freely between pipeline stages.
"""

from collections.abc import Iterable
from datetime import UTC, datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class Metric(str, Enum):
    """Physiological quantities reported by the sensor."""

    TEMPERATURE = "temperature"
    HEART_RATE = "heartRate"
    RESPIRATORY_RATE = "respiratoryRate"
    OXYGEN_SATURATION = "oxygenSaturation"

    @property
    def label(self) -> str:
        return _METRIC_LABELS[self]

    @property
    def unit(self) -> str:
        return _METRIC_UNITS[self]

    def format_value(self, value: float) -> str:
        """Render a value the way it appears in an alert, e.g. ``36.8°C`` or ``130 bpm``."""
        if self is Metric.TEMPERATURE:
            return f"{value:.1f}{self.unit}"
        if self is Metric.OXYGEN_SATURATION:
            return f"{int(value)}{self.unit}"
        return f"{int(value)} {self.unit}"


_METRIC_LABELS = {
    Metric.TEMPERATURE: "Temperature",
    Metric.HEART_RATE: "Heart rate",
    Metric.RESPIRATORY_RATE: "Respiratory rate",
    Metric.OXYGEN_SATURATION: "Oxygen saturation",
}

_METRIC_UNITS = {
    Metric.TEMPERATURE: "°C",
    Metric.HEART_RATE: "bpm",
    Metric.RESPIRATORY_RATE: "rpm",
    Metric.OXYGEN_SATURATION: "%",
}


class MovementState(str, Enum):
    """Movement state reported by the sensor."""

    ACTIVE = "active"
    SLEEPING = "sleeping"
    RESTLESS = "restless"

    @classmethod
    def parse(cls, raw: str) -> "MovementState | None":
        """Resolve a canonical or localized movement name; None when unrecognized."""
        value = raw.strip().lower()
        try:
            return cls(value)
        except ValueError:
            return _LOCALIZED_MOVEMENT.get(value)


_LOCALIZED_MOVEMENT = {
    "ativo": MovementState.ACTIVE,
    "dormindo": MovementState.SLEEPING,
    "agitado": MovementState.RESTLESS,
}


class Severity(str, Enum):
    """Ordered alert severity: normal < attention < critical."""

    NORMAL = "normal"
    ATTENTION = "attention"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    @property
    def is_abnormal(self) -> bool:
        return self is not Severity.NORMAL

    @classmethod
    def highest(cls, severities: Iterable["Severity"]) -> "Severity":
        """Most severe level in ``severities``; NORMAL for an empty iterable."""
        return max(severities, key=lambda s: s.rank, default=cls.NORMAL)


_SEVERITY_RANK = {Severity.NORMAL: 0, Severity.ATTENTION: 1, Severity.CRITICAL: 2}


class VitalReading(BaseModel):
    """One sampled observation from the sensor."""

    model_config = ConfigDict(frozen=True)

    temperature_c: float
    heart_rate_bpm: int
    respiratory_rate_rpm: int
    oxygen_saturation_pct: int
    movement_state: MovementState = MovementState.SLEEPING
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def value_of(self, metric: Metric) -> float:
        """Numeric value of a single metric."""
        if metric is Metric.TEMPERATURE:
            return self.temperature_c
        if metric is Metric.HEART_RATE:
            return self.heart_rate_bpm
        if metric is Metric.RESPIRATORY_RATE:
            return self.respiratory_rate_rpm
        return self.oxygen_saturation_pct


class AlertKey(BaseModel):
    """Identifies a class of recurring alert; the unit of deduplication."""

    model_config = ConfigDict(frozen=True)

    metric: Metric
    severity: Severity

    def __str__(self) -> str:
        return f"{self.metric.value}:{self.severity.value}"


Direction = Literal["high", "low"]


class MetricAssessment(BaseModel):
    """Classification of one metric of a reading."""

    model_config = ConfigDict(frozen=True)

    metric: Metric
    severity: Severity
    value: float
    direction: Direction | None = Field(
        default=None, description="Which limit was breached; None when normal"
    )


class Classification(BaseModel):
    """Per-metric severities of a reading plus the aggregate."""

    model_config = ConfigDict(frozen=True)

    assessments: tuple[MetricAssessment, ...]

    @property
    def overall(self) -> Severity:
        return Severity.highest(a.severity for a in self.assessments)

    @property
    def severities(self) -> dict[Metric, Severity]:
        return {a.metric: a.severity for a in self.assessments}

    def for_metric(self, metric: Metric) -> MetricAssessment:
        for assessment in self.assessments:
            if assessment.metric is metric:
                return assessment
        raise KeyError(metric)

    def abnormal(self) -> list[MetricAssessment]:
        return [a for a in self.assessments if a.severity.is_abnormal]


class AlertEvent(BaseModel):
    """A decided, dispatch-ready alert."""

    model_config = ConfigDict(frozen=True)

    metric: Metric
    severity: Literal[Severity.ATTENTION, Severity.CRITICAL]
    title: str = Field(min_length=1)
    message: str = Field(min_length=1)
    value: str = Field(description="Formatted value, e.g. '38.6°C'")
    requires_vibration: bool

    @property
    def key(self) -> AlertKey:
        return AlertKey(metric=self.metric, severity=self.severity)


class NotificationPriority(str, Enum):
    """Priority levels understood by the notification sink."""

    DEFAULT = "default"
    HIGH = "high"
    MAX = "max"


class Notification(BaseModel):
    """What the notification sink receives."""

    model_config = ConfigDict(frozen=True)

    title: str
    body: str
    priority: NotificationPriority
    play_sound: bool
    vibrate: bool


class DispatchOutcome(BaseModel):
    """Successful delivery of one alert."""

    model_config = ConfigDict(frozen=True)

    key: AlertKey
    priority: NotificationPriority
    play_sound: bool
    vibrate: bool
    delivered_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ConnectionStatus(BaseModel):
    """Connectivity state of the acquisition loop, exposed to the host."""

    model_config = ConfigDict(frozen=True)

    connected: bool = False
    message: str = "Disconnected"
    latency_ms: float | None = Field(default=None, ge=0.0)
    last_error: str | None = None
    last_reading: VitalReading | None = None
    updated_at: datetime | None = None


class ConnectionProbe(BaseModel):
    """Result of an explicit connection test against the sensor."""

    model_config = ConfigDict(frozen=True)

    connected: bool
    message: str
    endpoint: str
    latency_ms: float | None = Field(default=None, ge=0.0)
