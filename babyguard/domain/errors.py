"""
Error taxonomy for the monitoring pipeline.

- AcquisitionError: recovered inside the acquisition loop, never fatal.
- UnknownMetric: threshold misconfiguration, surfaced to the caller.
- DispatchError: the notification sink failed; the alert counts as not fired.
"""


class BabyGuardError(Exception):
    """Base class for all monitoring errors."""


class AcquisitionError(BabyGuardError):
    """Fetching or parsing a sensor reading failed."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class UnknownMetric(BabyGuardError, KeyError):
    """A metric is not registered in the threshold table."""

    def __init__(self, metric: object, detail: str | None = None) -> None:
        self.metric = metric
        self.detail = detail or f"no threshold bands registered for metric {metric!r}"
        super().__init__(self.detail)

    def __str__(self) -> str:
        return self.detail


class DispatchError(BabyGuardError):
    """The notification sink did not deliver an alert."""

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause
