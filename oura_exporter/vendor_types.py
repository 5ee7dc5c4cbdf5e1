"""Pydantic models for the raw documents returned by the Oura API v2."""

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class OuraApiResponse(BaseModel, Generic[T]):
    """Envelope of every ``/v2/usercollection`` response."""

    data: list[T] = Field(default_factory=list)
    next_token: str | None = None  # parsed, never followed


class OuraHeartRateSample(BaseModel):
    """One sample from ``/v2/usercollection/heartrate``."""

    bpm: int
    source: str
    timestamp: str


class OuraSleepMeasurement(BaseModel):
    """Interval series embedded in a sleep document (``heart_rate``, ``hrv``)."""

    interval: float
    items: list[float | None] = Field(default_factory=list)
    timestamp: str


class OuraContributors(BaseModel):
    """Readiness sub-scores."""

    activity_balance: int | None = None
    body_temperature: int | None = None
    hrv_balance: int | None = None
    previous_day_activity: int | None = None
    previous_night: int | None = None
    recovery_index: int | None = None
    resting_heart_rate: int | None = None
    sleep_balance: int | None = None


class OuraReadiness(BaseModel):
    """Readiness block embedded in a sleep document."""

    contributors: OuraContributors = Field(default_factory=OuraContributors)
    score: int | None = None
    temperature_deviation: float | None = None
    temperature_trend_deviation: float | None = None


class OuraSleepDocument(BaseModel):
    """
    One document from ``/v2/usercollection/sleep``.

    The API has changed shape over time, so every embedded block and most
    numeric fields are optional. Derivations that need a missing block fail
    with a typed error instead of assuming a fixed schema.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    average_breath: float | None = None
    average_heart_rate: float | None = None
    average_hrv: int | None = None
    awake_time: int | None = None
    bedtime_end: str
    bedtime_start: str
    day: str
    deep_sleep_duration: int | None = None
    efficiency: int | None = None
    heart_rate: OuraSleepMeasurement | None = None
    hrv: OuraSleepMeasurement | None = None
    latency: int | None = None
    light_sleep_duration: int | None = None
    low_battery_alert: bool | None = None
    lowest_heart_rate: int | None = None
    movement_30_sec: str | None = None
    period: int | None = None
    readiness: OuraReadiness | None = None
    readiness_score_delta: float | None = None
    rem_sleep_duration: int | None = None
    restless_periods: int | None = None
    sleep_phase_5_min: str | None = None
    sleep_score_delta: float | None = None
    time_in_bed: int | None = None
    total_sleep_duration: int | None = None
    sleep_type: str = Field(alias="type")
