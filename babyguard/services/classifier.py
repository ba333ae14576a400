"""
Rule-based severity classification of vital readings.

Pure functions: no I/O, no state. For every metric the critical band is tested
first, then the attention band, so a value inside both is reported critical.
Limits are inclusive.
"""

from collections.abc import Mapping

from babyguard.domain.errors import UnknownMetric
from babyguard.domain.models import (
    Classification,
    Metric,
    MetricAssessment,
    Severity,
    VitalReading,
)
from babyguard.domain.thresholds import DEFAULT_THRESHOLDS, ThresholdBand, ThresholdTable


def assess(metric: Metric, value: float, band: ThresholdBand) -> MetricAssessment:
    """Classify a single metric value against its band."""
    direction = band.critical.breach(value)
    if direction is not None:
        return MetricAssessment(
            metric=metric, severity=Severity.CRITICAL, value=value, direction=direction
        )

    direction = band.attention.breach(value)
    if direction is not None:
        return MetricAssessment(
            metric=metric, severity=Severity.ATTENTION, value=value, direction=direction
        )

    return MetricAssessment(metric=metric, severity=Severity.NORMAL, value=value)


def classify(
    reading: VitalReading,
    thresholds: ThresholdTable | Mapping[Metric, ThresholdBand] = DEFAULT_THRESHOLDS,
) -> Classification:
    """Classify every metric of ``reading``; ``overall`` is the most severe result."""
    # Every metric of one reading sees the same table
    bands = thresholds.snapshot() if isinstance(thresholds, ThresholdTable) else thresholds

    assessments = []
    for metric in Metric:
        try:
            band = bands[metric]
        except KeyError:
            raise UnknownMetric(metric) from None
        assessments.append(assess(metric, reading.value_of(metric), band))

    return Classification(assessments=tuple(assessments))
