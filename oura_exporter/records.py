"""Normalized domain records produced from Oura documents.

Every record carries the name of the person whose credentials fetched it.
``Record`` is the closed union consumed by the export layer; ``ErrorRecord``
stands in for the outputs of any document, record, or fetch that failed.
"""

from datetime import date, datetime
from enum import Enum, IntEnum
from typing import TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .exceptions import OuraExporterError, UnknownEnumVariantError

E = TypeVar("E", bound=Enum)


def decode_literal(enum_cls: type[E], value: str) -> E:
    """Decode an exact, case-sensitive vendor literal into ``enum_cls``."""
    try:
        return enum_cls(value)
    except ValueError as e:
        raise UnknownEnumVariantError(enum_cls.__name__, value) from e


class HeartRateSource(str, Enum):
    """Where a heart rate sample was measured."""

    AWAKE = "awake"
    REST = "rest"
    SLEEP = "sleep"
    SESSION = "session"
    LIVE = "live"


class SleepType(str, Enum):
    """Oura classification of a sleep period."""

    DELETED = "deleted"
    SLEEP = "sleep"
    LONG_SLEEP = "long_sleep"
    LATE_NAP = "late_nap"
    REST = "rest"


class SleepPhaseType(IntEnum):
    """Sleep phase of one 5-minute bucket; the value is the vendor digit."""

    DEEP_SLEEP = 1
    LIGHT_SLEEP = 2
    REM_SLEEP = 3
    AWAKE = 4

    @classmethod
    def from_code(cls, code: str) -> "SleepPhaseType":
        """Decode one character of ``sleep_phase_5_min``."""
        phase = _PHASE_CODES.get(code)
        if phase is None:
            raise UnknownEnumVariantError(cls.__name__, code)
        return phase


_PHASE_CODES = {str(phase.value): phase for phase in SleepPhaseType}


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True)

    person_name: str


class HeartRate(_Record):
    """One heart rate sample."""

    bpm: int = Field(..., ge=0, le=255)
    source: HeartRateSource
    timestamp: datetime


class HeartRateVariability(_Record):
    """One HRV sample (RMSSD in milliseconds)."""

    ms: int = Field(..., ge=0, le=65535)
    timestamp: datetime


class Sleep(_Record):
    """One sleep period, copied field by field from its vendor document.

    Score deltas stay optional here; sinks decide their own defaults.
    """

    id: str
    average_breath: float | None = None
    average_heart_rate: float | None = None
    average_hrv: int | None = None
    awake_time: int | None = None
    bedtime_end: datetime
    bedtime_start: datetime
    day: date
    deep_sleep_duration: int | None = None
    efficiency: int | None = None
    latency: int | None = None
    light_sleep_duration: int | None = None
    low_battery_alert: bool | None = None
    lowest_heart_rate: int | None = None
    readiness_score_delta: float | None = None
    rem_sleep_duration: int | None = None
    restless_periods: int | None = None
    sleep_score_delta: float | None = None
    time_in_bed: int | None = None
    total_sleep_duration: int | None = None
    sleep_type: SleepType


class SleepPhase(_Record):
    """Sleep phase of one 5-minute bucket of a sleep period."""

    sleep_id: str
    sleep_phase: SleepPhaseType
    timestamp: datetime


class Contributors(BaseModel):
    """Readiness sub-scores."""

    model_config = ConfigDict(frozen=True)

    activity_balance: int | None = None
    body_temperature: int | None = None
    hrv_balance: int | None = None
    previous_day_activity: int | None = None
    previous_night: int | None = None
    recovery_index: int | None = None
    resting_heart_rate: int | None = None
    sleep_balance: int | None = None


class Readiness(_Record):
    """Readiness score of one day; timestamped at midnight UTC."""

    score: int = Field(..., ge=0, le=255)
    temperature_deviation: float | None = None
    temperature_trend_deviation: float | None = None
    contributors: Contributors
    timestamp: datetime


class ErrorRecord(BaseModel):
    """Placeholder for a derivation or fetch that failed."""

    model_config = ConfigDict(frozen=True)

    message: str
    person_name: str | None = None


Record = Union[HeartRate, HeartRateVariability, Sleep, SleepPhase, Readiness, ErrorRecord]


def error_record(exc: Exception, person_name: str | None = None) -> ErrorRecord:
    """
    Convert a recovered failure into an ``ErrorRecord``.

    This is the one place where exporter errors (and pydantic validation
    failures raised while building a record) become records.
    """
    if isinstance(exc, OuraExporterError):
        message = exc.message
        person_name = exc.person or person_name
    elif isinstance(exc, ValidationError):
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        message = f"Invalid {exc.title} data ({location}): {first['msg']}"
    else:
        message = f"{exc.__class__.__name__}: {exc}"

    return ErrorRecord(message=message, person_name=person_name)


def record_timestamp(record: Record) -> datetime | None:
    """Timestamp a record is exported at, ``None`` for error records."""
    if isinstance(record, ErrorRecord):
        return None
    if isinstance(record, Sleep):
        return record.bedtime_start
    return record.timestamp
