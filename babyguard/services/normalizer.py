"""
Normalization of raw sensor payloads into VitalReading objects.

The sensor firmware reports either canonical (``temperature``) or localized
(``temperatura``) field names; the localized name wins when both are present.
Absent fields fall back to the last known good reading, or to the defaults
below when there is none yet.
"""

import math
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from babyguard.domain.errors import AcquisitionError
from babyguard.domain.models import MovementState, VitalReading

DEFAULT_TEMPERATURE_C = 36.8
DEFAULT_HEART_RATE_BPM = 120
DEFAULT_RESPIRATORY_RATE_RPM = 35
DEFAULT_OXYGEN_SATURATION_PCT = 98
DEFAULT_MOVEMENT_STATE = MovementState.SLEEPING

# reading field -> accepted payload keys, localized first
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "temperature_c": ("temperatura", "temperature"),
    "heart_rate_bpm": ("batimentos", "heartRate"),
    "respiratory_rate_rpm": ("respiracao", "respiratoryRate"),
    "oxygen_saturation_pct": ("saturacao", "oxygenSaturation"),
    "movement_state": ("movimento", "movement"),
}

_DEFAULTS: dict[str, Any] = {
    "temperature_c": DEFAULT_TEMPERATURE_C,
    "heart_rate_bpm": DEFAULT_HEART_RATE_BPM,
    "respiratory_rate_rpm": DEFAULT_RESPIRATORY_RATE_RPM,
    "oxygen_saturation_pct": DEFAULT_OXYGEN_SATURATION_PCT,
    "movement_state": DEFAULT_MOVEMENT_STATE,
}

_INTEGER_FIELDS = {"heart_rate_bpm", "respiratory_rate_rpm", "oxygen_saturation_pct"}


def _lookup(payload: Mapping[str, Any], aliases: tuple[str, ...]) -> Any:
    for key in aliases:
        value = payload.get(key)
        if value is not None and value != "":
            return value
    return None


def _parse_number(field_name: str, raw: Any) -> float:
    if isinstance(raw, bool):
        raise AcquisitionError(f"field {field_name} is not numeric: {raw!r}")
    if isinstance(raw, int | float):
        value = float(raw)
    elif isinstance(raw, str):
        try:
            value = float(raw.strip())
        except ValueError:
            raise AcquisitionError(f"field {field_name} is not numeric: {raw!r}") from None
    else:
        raise AcquisitionError(f"field {field_name} is not numeric: {raw!r}")

    if not math.isfinite(value):
        raise AcquisitionError(f"field {field_name} is not finite: {raw!r}")
    return value


def _unwrap(payload: Any) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise AcquisitionError(f"payload is not a JSON object: {type(payload).__name__}")

    # {"success": true, "data": {...}} envelope
    envelope = payload.get("data")
    if isinstance(envelope, Mapping) and not _has_vital_fields(payload):
        return envelope
    return payload


def _has_vital_fields(payload: Mapping[str, Any]) -> bool:
    return any(_lookup(payload, aliases) is not None for aliases in FIELD_ALIASES.values())


def normalize_payload(
    payload: Any, observed_at: datetime, last_known: VitalReading | None = None
) -> VitalReading:
    """
    Build a VitalReading from a raw payload.

    Raises:
        AcquisitionError: the payload is not an object, has none of the
            recognized fields, or carries a value that cannot be parsed.
    """
    fields = _unwrap(payload)
    if not _has_vital_fields(fields):
        raise AcquisitionError("payload contains no vital-sign fields")

    values: dict[str, Any] = {}
    for name, aliases in FIELD_ALIASES.items():
        raw = _lookup(fields, aliases)

        if name == "movement_state":
            state = MovementState.parse(str(raw)) if raw is not None else None
            if state is not None:
                values[name] = state
                continue
        elif raw is not None:
            number = _parse_number(aliases[-1], raw)
            values[name] = int(number) if name in _INTEGER_FIELDS else number
            continue

        values[name] = getattr(last_known, name) if last_known is not None else _DEFAULTS[name]

    return VitalReading(observed_at=observed_at, **values)
