"""Tests for record to export item conversion."""

import json
from datetime import date, datetime, timezone
from unittest.mock import patch

from oura_exporter.exceptions import SerializationError
from oura_exporter.export_items import (
    PubSubMessage,
    PubSubTopic,
    TimeSeriesPoint,
    to_export_items,
)
from oura_exporter.records import (
    Contributors,
    ErrorRecord,
    HeartRate,
    HeartRateSource,
    HeartRateVariability,
    Readiness,
    Sleep,
    SleepPhase,
    SleepPhaseType,
    SleepType,
)

EPOCH_2021 = 1609459200


def make_heart_rate(**overrides):
    fields = {
        "bpm": 60,
        "source": HeartRateSource.REST,
        "timestamp": datetime(2021, 1, 1, tzinfo=timezone.utc),
        "person_name": "alice",
    }
    fields.update(overrides)
    return HeartRate(**fields)


def make_sleep(**overrides):
    fields = {
        "id": "sleep-1",
        "average_breath": 14.5,
        "average_heart_rate": None,
        "bedtime_end": datetime(2021, 1, 2, 7, 0, tzinfo=timezone.utc),
        "bedtime_start": datetime(2021, 1, 1, 23, 0, tzinfo=timezone.utc),
        "day": date(2021, 1, 2),
        "efficiency": 90,
        "low_battery_alert": False,
        "sleep_type": SleepType.LONG_SLEEP,
        "person_name": "alice",
    }
    fields.update(overrides)
    return Sleep(**fields)


class TestHeartRateItems:
    """Tests for heart rate export items."""

    def test_message_and_point(self):
        record = make_heart_rate()

        items = to_export_items(record)

        assert len(items) == 2
        message, point = items
        assert isinstance(message, PubSubMessage)
        assert message.topic == PubSubTopic.HEART_RATE
        assert json.loads(message.payload)["bpm"] == 60
        assert json.loads(message.payload)["person_name"] == "alice"
        assert point == TimeSeriesPoint(
            measurement="heart_rate",
            timestamp=EPOCH_2021,
            tags={"source": "rest", "person_name": "alice"},
            fields={"bpm": 60},
        )

    def test_serialization_failure_drops_only_the_message(self):
        record = make_heart_rate()

        with patch(
            "oura_exporter.export_items.serialize_record",
            side_effect=SerializationError("boom"),
        ):
            items = to_export_items(record)

        assert len(items) == 1
        assert isinstance(items[0], TimeSeriesPoint)


def test_hrv_point():
    record = HeartRateVariability(
        ms=48,
        timestamp=datetime(2021, 1, 1, tzinfo=timezone.utc),
        person_name="bob",
    )

    assert to_export_items(record) == [
        TimeSeriesPoint(
            measurement="heart_rate_variability",
            timestamp=EPOCH_2021,
            tags={"person_name": "bob"},
            fields={"ms": 48},
        )
    ]


class TestSleepItems:
    """Tests for sleep export items."""

    def test_point(self):
        (point,) = to_export_items(make_sleep())

        assert point.measurement == "sleep"
        assert point.timestamp == EPOCH_2021 + 23 * 3600
        assert point.tags == {"sleep_type": "long_sleep", "person_name": "alice"}
        assert point.fields["average_breath"] == 14.5
        assert point.fields["bedtime_end"] == EPOCH_2021 + 31 * 3600
        assert point.fields["day"] == EPOCH_2021 + 24 * 3600
        assert point.fields["low_battery_alert"] is False

    def test_missing_values_are_dropped(self):
        (point,) = to_export_items(make_sleep())

        assert "average_heart_rate" not in point.fields
        assert "latency" not in point.fields

    def test_score_deltas_default_to_zero(self):
        (point,) = to_export_items(make_sleep())

        assert point.fields["readiness_score_delta"] == 0.0
        assert point.fields["sleep_score_delta"] == 0.0

    def test_score_deltas_kept(self):
        (point,) = to_export_items(make_sleep(sleep_score_delta=1.5))

        assert point.fields["sleep_score_delta"] == 1.5


def test_sleep_phase_point():
    record = SleepPhase(
        sleep_id="sleep-1",
        sleep_phase=SleepPhaseType.REM_SLEEP,
        timestamp=datetime(2021, 1, 1, tzinfo=timezone.utc),
        person_name="alice",
    )

    (point,) = to_export_items(record)

    assert point.measurement == "sleep_phase"
    assert point.tags == {"person_name": "alice", "sleep_id": "sleep-1"}
    assert point.fields == {"phase": 3}


def test_readiness_point():
    record = Readiness(
        score=80,
        temperature_deviation=-0.1,
        temperature_trend_deviation=None,
        contributors=Contributors(hrv_balance=70, recovery_index=100),
        timestamp=datetime(2021, 1, 1, tzinfo=timezone.utc),
        person_name="alice",
    )

    (point,) = to_export_items(record)

    assert point.measurement == "readiness"
    assert point.timestamp == EPOCH_2021
    assert point.fields == {
        "readiness_score": 80,
        "temperature_deviation": -0.1,
        "hrv_balance_contribution": 70,
        "recovery_index_contribution": 100,
    }


def test_error_record_has_no_items():
    assert to_export_items(ErrorRecord(message="failed", person_name="alice")) == []
