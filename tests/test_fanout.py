"""Tests for batching and concurrent dispatch to the sinks."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from oura_exporter.exceptions import SinkError
from oura_exporter.export_items import PubSubMessage, TimeSeriesPoint
from oura_exporter.fanout import batched, dispatch_batch, export_records, partition
from oura_exporter.records import ErrorRecord, HeartRate, HeartRateSource, HeartRateVariability
from oura_exporter.sinks import InfluxSink


class RecordingPublisher:
    """Publisher that keeps every message it receives."""

    def __init__(self):
        self.calls = []

    async def publish(self, messages):
        self.calls.append(list(messages))
        return len(messages)

    @property
    def messages(self):
        return [message for call in self.calls for message in call]


def make_influx_sink(side_effect=None):
    sink = MagicMock(spec=InfluxSink)
    sink.write = AsyncMock(side_effect=side_effect or (lambda points: len(points)))
    return sink


def heart_rates(count, person_name="alice"):
    start = datetime(2021, 1, 1, tzinfo=timezone.utc)
    return [
        HeartRate(
            bpm=60 + i % 10,
            source=HeartRateSource.AWAKE,
            timestamp=start + timedelta(seconds=i),
            person_name=person_name,
        )
        for i in range(count)
    ]


def test_batched():
    assert list(batched(range(7), 3)) == [[0, 1, 2], [3, 4, 5], [6]]
    assert list(batched([], 3)) == []


def test_partition_preserves_order():
    first = TimeSeriesPoint(measurement="a", timestamp=1)
    second = PubSubMessage(topic="heart_rate", payload="{}")
    third = TimeSeriesPoint(measurement="b", timestamp=2)

    assert partition([first, second, third]) == ([first, third], [second])


@pytest.mark.asyncio
async def test_export_in_batches():
    """Test 250 heart rates (500 items) go out in 5 batches of 100."""
    sink = make_influx_sink()
    publisher = RecordingPublisher()

    summary = await export_records(heart_rates(250), sink, publisher, batch_size=100)

    assert summary.records == 250
    assert summary.batches == 5
    assert summary.points == summary.points_written == 250
    assert summary.messages == summary.messages_published == 250
    assert summary.failed_writes == 0
    assert sink.write.await_count == 5
    assert all(len(call.args[0]) == 50 for call in sink.write.await_args_list)


@pytest.mark.asyncio
async def test_pubsub_unchanged_without_time_series_sink():
    """Test that dropping the time-series sink does not change what is published."""
    records = heart_rates(30) + [
        HeartRateVariability(ms=40, timestamp=datetime(2021, 1, 1, tzinfo=timezone.utc), person_name="alice")
    ]
    with_sink = RecordingPublisher()
    without_sink = RecordingPublisher()

    await export_records(records, make_influx_sink(), with_sink, batch_size=7)
    summary = await export_records(records, None, without_sink, batch_size=7)

    assert set(with_sink.messages) == set(without_sink.messages)
    assert len(without_sink.messages) == 30
    assert summary.points == 31
    assert summary.points_written == 0


@pytest.mark.asyncio
async def test_sink_failure_does_not_stop_publishing():
    sink = make_influx_sink(side_effect=SinkError("InfluxDB unavailable"))
    publisher = RecordingPublisher()

    summary = await export_records(heart_rates(10), sink, publisher, batch_size=4)

    assert summary.batches == 5
    assert summary.failed_writes == 5
    assert summary.points_written == 0
    assert summary.messages_published == 10


@pytest.mark.asyncio
async def test_error_records_are_counted_not_exported():
    publisher = RecordingPublisher()
    records = [ErrorRecord(message="failed", person_name="alice")] + heart_rates(1)

    summary = await export_records(records, None, publisher)

    assert summary.records == 2
    assert summary.error_records == 1
    assert summary.messages == 1


@pytest.mark.asyncio
async def test_dispatch_batch_publish_failure():
    publisher = MagicMock()
    publisher.publish = AsyncMock(side_effect=SinkError("SNS unavailable"))
    sink = make_influx_sink()
    batch = [
        PubSubMessage(topic="heart_rate", payload="{}"),
        TimeSeriesPoint(measurement="heart_rate", timestamp=1, fields={"bpm": 60}),
    ]

    summary = await dispatch_batch(batch, sink, publisher)

    assert summary.points_written == 1
    assert summary.messages_published == 0
    assert summary.failed_writes == 1


@pytest.mark.asyncio
async def test_max_concurrency():
    sink = make_influx_sink()
    publisher = RecordingPublisher()

    summary = await export_records(heart_rates(20), sink, publisher, batch_size=10, max_concurrency=1)

    assert summary.batches == 4
    assert summary.points_written == 20
