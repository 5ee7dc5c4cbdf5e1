"""
Derivation of domain records from Oura documents.

One plain function per (document kind, record kind) pair, collected in
``DERIVATIONS``. Functions raise on failure; ``derive_records`` is the
recovery boundary that turns a failed document into a single ``ErrorRecord``
without stopping its siblings.
"""

import logging
import math
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime, timedelta
from typing import Any

from pydantic import ValidationError

from .dates import midnight_utc, parse_date, parse_timestamp
from .exceptions import (
    NoHeartRateDataFoundError,
    NoHrvDataFoundError,
    NoReadinessDataFoundError,
    NoReadinessScoreFoundError,
    NoSleepPhaseDataFoundError,
    NonFiniteValueError,
    OuraExporterError,
)
from .records import (
    Contributors,
    HeartRate,
    HeartRateSource,
    HeartRateVariability,
    Readiness,
    Record,
    Sleep,
    SleepPhase,
    SleepPhaseType,
    SleepType,
    decode_literal,
    error_record,
)
from .vendor_types import OuraHeartRateSample, OuraSleepDocument, OuraSleepMeasurement

logger = logging.getLogger(__name__)

SLEEP_PHASE_BUCKET = timedelta(minutes=5)


def round_half_away(value: float) -> int:
    """Round to the nearest integer, halves away from zero.

    Raises:
        NonFiniteValueError: For NaN and infinite values
    """
    if not math.isfinite(value):
        raise NonFiniteValueError(value)
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def reconstruct_series(measurement: OuraSleepMeasurement) -> list[tuple[datetime, float]]:
    """
    Expand an interval series into ``(timestamp, value)`` samples.

    The interval is rounded to whole seconds. The cursor starts at the series
    timestamp and advances one interval per item; ``None`` items are skipped
    but still advance it.
    """
    step = timedelta(seconds=round_half_away(measurement.interval))
    cursor = parse_timestamp(measurement.timestamp)

    samples = []
    for value in measurement.items:
        if value is not None:
            samples.append((cursor, value))
        cursor += step

    return samples


# Heart rate samples


def heart_rate_from_sample(sample: OuraHeartRateSample, person_name: str) -> HeartRate:
    return HeartRate(
        bpm=sample.bpm,
        source=decode_literal(HeartRateSource, sample.source),
        timestamp=parse_timestamp(sample.timestamp),
        person_name=person_name,
    )


# Sleep documents


def heart_rates_from_sleep(document: OuraSleepDocument, person_name: str) -> list[HeartRate]:
    """Heart rate measured during sleep, one record per present sample."""
    if document.heart_rate is None:
        raise NoHeartRateDataFoundError(document.id)

    return [
        HeartRate(
            bpm=round_half_away(value),
            source=HeartRateSource.SLEEP,
            timestamp=timestamp,
            person_name=person_name,
        )
        for timestamp, value in reconstruct_series(document.heart_rate)
    ]


def hrv_from_sleep(document: OuraSleepDocument, person_name: str) -> list[HeartRateVariability]:
    """HRV measured during sleep, one record per present sample."""
    if document.hrv is None:
        raise NoHrvDataFoundError(document.id)

    return [
        HeartRateVariability(
            ms=round_half_away(value),
            timestamp=timestamp,
            person_name=person_name,
        )
        for timestamp, value in reconstruct_series(document.hrv)
    ]


def sleep_from_document(document: OuraSleepDocument, person_name: str) -> Sleep:
    return Sleep(
        id=document.id,
        average_breath=document.average_breath,
        average_heart_rate=document.average_heart_rate,
        average_hrv=document.average_hrv,
        awake_time=document.awake_time,
        bedtime_end=parse_timestamp(document.bedtime_end),
        bedtime_start=parse_timestamp(document.bedtime_start),
        day=parse_date(document.day),
        deep_sleep_duration=document.deep_sleep_duration,
        efficiency=document.efficiency,
        latency=document.latency,
        light_sleep_duration=document.light_sleep_duration,
        low_battery_alert=document.low_battery_alert,
        lowest_heart_rate=document.lowest_heart_rate,
        readiness_score_delta=document.readiness_score_delta,
        rem_sleep_duration=document.rem_sleep_duration,
        restless_periods=document.restless_periods,
        sleep_score_delta=document.sleep_score_delta,
        time_in_bed=document.time_in_bed,
        total_sleep_duration=document.total_sleep_duration,
        sleep_type=decode_literal(SleepType, document.sleep_type),
        person_name=person_name,
    )


def sleep_phases_from_document(document: OuraSleepDocument, person_name: str) -> list[SleepPhase]:
    """
    One record per character of ``sleep_phase_5_min``, anchored at bedtime.

    An unknown phase digit fails the whole document.
    """
    if document.sleep_phase_5_min is None:
        raise NoSleepPhaseDataFoundError(document.id)

    bedtime_start = parse_timestamp(document.bedtime_start)

    return [
        SleepPhase(
            sleep_id=document.id,
            sleep_phase=SleepPhaseType.from_code(code),
            timestamp=bedtime_start + SLEEP_PHASE_BUCKET * index,
            person_name=person_name,
        )
        for index, code in enumerate(document.sleep_phase_5_min)
    ]


def readiness_from_document(document: OuraSleepDocument, person_name: str) -> Readiness:
    readiness = document.readiness
    if readiness is None:
        raise NoReadinessDataFoundError(document.id)
    if readiness.score is None:
        raise NoReadinessScoreFoundError(document.id)

    return Readiness(
        score=readiness.score,
        temperature_deviation=readiness.temperature_deviation,
        temperature_trend_deviation=readiness.temperature_trend_deviation,
        contributors=Contributors(**readiness.contributors.model_dump()),
        timestamp=midnight_utc(parse_date(document.day)),
        person_name=person_name,
    )


DERIVATIONS: dict[tuple[type, type], Callable[[Any, str], Any]] = {
    (OuraHeartRateSample, HeartRate): heart_rate_from_sample,
    (OuraSleepDocument, HeartRate): heart_rates_from_sleep,
    (OuraSleepDocument, HeartRateVariability): hrv_from_sleep,
    (OuraSleepDocument, Sleep): sleep_from_document,
    (OuraSleepDocument, SleepPhase): sleep_phases_from_document,
    (OuraSleepDocument, Readiness): readiness_from_document,
}

# Per-person output order of sleep document derivations
SLEEP_DOCUMENT_TARGETS: Sequence[type] = (
    HeartRate,
    HeartRateVariability,
    Sleep,
    SleepPhase,
    Readiness,
)


def derive_records(
    documents: Iterable[Any],
    target: type,
    person_name: str,
) -> list[Record]:
    """
    Run the derivation for ``target`` over every document.

    A document whose derivation fails contributes exactly one ``ErrorRecord``
    in place of its outputs.
    """
    records: list[Record] = []

    for document in documents:
        derive = DERIVATIONS[(type(document), target)]
        try:
            result = derive(document, person_name)
        except (OuraExporterError, ValidationError, OverflowError) as e:
            logger.debug("Derivation of %s failed for %s: %s", target.__name__, person_name, e)
            records.append(error_record(e, person_name))
            continue

        if isinstance(result, list):
            records.extend(result)
        else:
            records.append(result)

    return records


def derive_from_heart_rate_samples(
    samples: Sequence[OuraHeartRateSample], person_name: str
) -> list[Record]:
    return derive_records(samples, HeartRate, person_name)


def derive_from_sleep_documents(
    documents: Sequence[OuraSleepDocument], person_name: str
) -> list[Record]:
    """All sleep-document derivations, grouped by record kind."""
    records: list[Record] = []
    for target in SLEEP_DOCUMENT_TARGETS:
        records.extend(derive_records(documents, target, person_name))
    return records
