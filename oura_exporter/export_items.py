"""Sink-specific export items and the per-record-kind conversions to them."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Union

from pydantic_core import PydanticSerializationError

from .dates import midnight_utc
from .exceptions import SerializationError
from .records import (
    ErrorRecord,
    HeartRate,
    HeartRateVariability,
    Readiness,
    Record,
    Sleep,
    SleepPhase,
)

logger = logging.getLogger(__name__)

FieldValue = Union[int, float, bool]


class PubSubTopic(str, Enum):
    """Pub/sub topics records are published to."""

    HEART_RATE = "heart_rate"
    SLEEP = "sleep"
    ACTIVITY = "activity"
    READINESS = "readiness"


@dataclass(frozen=True)
class TimeSeriesPoint:
    """One time-series data point; ``timestamp`` is in epoch seconds."""

    measurement: str
    timestamp: int
    tags: dict[str, str] = field(default_factory=dict)
    fields: dict[str, FieldValue] = field(default_factory=dict)


@dataclass(frozen=True)
class PubSubMessage:
    """One message for the pub/sub sink."""

    topic: PubSubTopic
    payload: str


ExportItem = Union[TimeSeriesPoint, PubSubMessage]


def _seconds(timestamp: datetime) -> int:
    return int(timestamp.timestamp())


def _present(fields: dict[str, Any]) -> dict[str, FieldValue]:
    """Drop fields without a value; line protocol has no null."""
    return {key: value for key, value in fields.items() if value is not None}


def serialize_record(record: Record) -> str:
    """
    JSON payload of a record.

    Raises:
        SerializationError: If the record cannot be encoded
    """
    try:
        return record.model_dump_json()
    except (PydanticSerializationError, ValueError, TypeError) as e:
        raise SerializationError(
            f"Cannot serialize {type(record).__name__} record: {e}",
            person=getattr(record, "person_name", None),
        ) from e


def heart_rate_point(record: HeartRate) -> TimeSeriesPoint:
    return TimeSeriesPoint(
        measurement="heart_rate",
        timestamp=_seconds(record.timestamp),
        tags={"source": record.source.value, "person_name": record.person_name},
        fields={"bpm": record.bpm},
    )


def heart_rate_items(record: HeartRate) -> list[ExportItem]:
    """A pub/sub message and a time-series point.

    A serialization failure drops only the message.
    """
    items: list[ExportItem] = []
    try:
        items.append(PubSubMessage(topic=PubSubTopic.HEART_RATE, payload=serialize_record(record)))
    except SerializationError as e:
        logger.error("Dropping pub/sub message: %s", e.message)

    items.append(heart_rate_point(record))
    return items


def hrv_items(record: HeartRateVariability) -> list[ExportItem]:
    return [
        TimeSeriesPoint(
            measurement="heart_rate_variability",
            timestamp=_seconds(record.timestamp),
            tags={"person_name": record.person_name},
            fields={"ms": record.ms},
        )
    ]


def sleep_items(record: Sleep) -> list[ExportItem]:
    fields = _present(
        {
            "average_breath": record.average_breath,
            "average_heart_rate": record.average_heart_rate,
            "average_hrv": record.average_hrv,
            "awake_time": record.awake_time,
            "bedtime_end": _seconds(record.bedtime_end),
            "day": _seconds(midnight_utc(record.day)),
            "deep_sleep_duration": record.deep_sleep_duration,
            "efficiency": record.efficiency,
            "latency": record.latency,
            "light_sleep_duration": record.light_sleep_duration,
            "low_battery_alert": record.low_battery_alert,
            "lowest_heart_rate": record.lowest_heart_rate,
            "readiness_score_delta": (
                record.readiness_score_delta if record.readiness_score_delta is not None else 0.0
            ),
            "rem_sleep_duration": record.rem_sleep_duration,
            "restless_periods": record.restless_periods,
            "sleep_score_delta": (
                record.sleep_score_delta if record.sleep_score_delta is not None else 0.0
            ),
            "time_in_bed": record.time_in_bed,
            "total_sleep_duration": record.total_sleep_duration,
        }
    )
    return [
        TimeSeriesPoint(
            measurement="sleep",
            timestamp=_seconds(record.bedtime_start),
            tags={"sleep_type": record.sleep_type.value, "person_name": record.person_name},
            fields=fields,
        )
    ]


def sleep_phase_items(record: SleepPhase) -> list[ExportItem]:
    return [
        TimeSeriesPoint(
            measurement="sleep_phase",
            timestamp=_seconds(record.timestamp),
            tags={"person_name": record.person_name, "sleep_id": record.sleep_id},
            fields={"phase": int(record.sleep_phase)},
        )
    ]


def readiness_items(record: Readiness) -> list[ExportItem]:
    contributions = {
        f"{name}_contribution": value
        for name, value in record.contributors.model_dump().items()
    }
    fields = _present(
        {
            "readiness_score": record.score,
            "temperature_deviation": record.temperature_deviation,
            "temperature_trend_deviation": record.temperature_trend_deviation,
            **contributions,
        }
    )
    return [
        TimeSeriesPoint(
            measurement="readiness",
            timestamp=_seconds(record.timestamp),
            tags={"person_name": record.person_name},
            fields=fields,
        )
    ]


def error_items(record: ErrorRecord) -> list[ExportItem]:
    logger.error("Cannot export error record for %s: %s", record.person_name, record.message)
    return []


EXPORTERS: dict[type, Callable[[Any], list[ExportItem]]] = {
    HeartRate: heart_rate_items,
    HeartRateVariability: hrv_items,
    Sleep: sleep_items,
    SleepPhase: sleep_phase_items,
    Readiness: readiness_items,
    ErrorRecord: error_items,
}


def to_export_items(record: Record) -> list[ExportItem]:
    """Map one record to its export items."""
    return EXPORTERS[type(record)](record)
