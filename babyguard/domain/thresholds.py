"""
Threshold bands used to classify vital signs.

Each metric has two nested abnormal bands. A value at or beyond a ``critical``
limit is critical; otherwise a value at or beyond an ``attention`` limit needs
attention; anything else is normal. Oxygen saturation only has a lower limit.
"""

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator

from babyguard.domain.errors import UnknownMetric
from babyguard.domain.models import Direction, Metric


class Range(BaseModel):
    """Inclusive outer limits; a value ``<= min`` or ``>= max`` falls in the band."""

    model_config = ConfigDict(frozen=True)

    min: float | None = None
    max: float | None = None

    @model_validator(mode="after")
    def at_least_one_limit(self) -> "Range":
        if self.min is None and self.max is None:
            raise ValueError("a range needs a min or a max limit")
        if self.min is not None and self.max is not None and self.min >= self.max:
            raise ValueError(f"range min {self.min} must be below max {self.max}")
        return self

    def breach(self, value: float) -> Direction | None:
        """Which limit ``value`` reaches, if any."""
        if self.max is not None and value >= self.max:
            return "high"
        if self.min is not None and value <= self.min:
            return "low"
        return None


class ThresholdBand(BaseModel):
    """Critical and attention ranges for one metric."""

    model_config = ConfigDict(frozen=True)

    critical: Range
    attention: Range

    @model_validator(mode="after")
    def critical_is_more_extreme(self) -> "ThresholdBand":
        critical, attention = self.critical, self.attention
        if (critical.min is None) != (attention.min is None) or (critical.max is None) != (
            attention.max is None
        ):
            raise ValueError("critical and attention ranges must bound the same sides")
        if critical.min is not None and attention.min is not None and critical.min > attention.min:
            raise ValueError(
                f"critical min {critical.min} must not exceed attention min {attention.min}"
            )
        if critical.max is not None and attention.max is not None and attention.max > critical.max:
            raise ValueError(
                f"attention max {attention.max} must not exceed critical max {critical.max}"
            )
        return self

    @property
    def two_sided(self) -> bool:
        return self.critical.min is not None and self.critical.max is not None


DEFAULT_THRESHOLDS: Mapping[Metric, ThresholdBand] = MappingProxyType(
    {
        Metric.TEMPERATURE: ThresholdBand(
            critical=Range(min=35.0, max=38.5), attention=Range(min=35.5, max=37.8)
        ),
        Metric.HEART_RATE: ThresholdBand(
            critical=Range(min=80, max=180), attention=Range(min=90, max=160)
        ),
        Metric.RESPIRATORY_RATE: ThresholdBand(
            critical=Range(min=20, max=60), attention=Range(min=25, max=50)
        ),
        Metric.OXYGEN_SATURATION: ThresholdBand(
            critical=Range(min=90), attention=Range(min=94)
        ),
    }
)


# Bands may be given as models or as plain dicts, e.g. loaded from JSON
BandsInput = Mapping[Metric | str, ThresholdBand | dict[str, Any]]


def _coerce_metric(key: Metric | str) -> Metric:
    if isinstance(key, Metric):
        return key
    try:
        return Metric(key)
    except ValueError:
        raise UnknownMetric(key) from None


class ThresholdTable:
    """
    Mapping from metric to threshold band, hot-swappable as a whole.

    Readers take the current mapping in a single attribute read, and
    ``replace_all`` validates the complete replacement before assigning it,
    so no reader observes a half-updated table.
    """

    def __init__(self, bands: BandsInput | None = None) -> None:
        self._bands: Mapping[Metric, ThresholdBand] = (
            DEFAULT_THRESHOLDS if bands is None else self._build(bands)
        )

    @staticmethod
    def _build(bands: BandsInput) -> Mapping[Metric, ThresholdBand]:
        table: dict[Metric, ThresholdBand] = {}
        for key, band in bands.items():
            metric = _coerce_metric(key)
            table[metric] = (
                band if isinstance(band, ThresholdBand) else ThresholdBand.model_validate(band)
            )

        missing = [m for m in Metric if m not in table]
        if missing:
            raise UnknownMetric(
                missing[0],
                f"threshold table has no bands for {', '.join(m.value for m in missing)}",
            )
        return MappingProxyType(table)

    def bands_for(self, metric: Metric | str) -> ThresholdBand:
        """Band for ``metric``. Raises UnknownMetric when not registered."""
        bands = self._bands
        resolved = _coerce_metric(metric)
        try:
            return bands[resolved]
        except KeyError:
            raise UnknownMetric(metric) from None

    def replace_all(self, bands: BandsInput) -> None:
        """Replace every band at once. The current table is kept if validation fails."""
        self._bands = self._build(bands)

    def snapshot(self) -> Mapping[Metric, ThresholdBand]:
        """Read-only view of the current table."""
        return self._bands
