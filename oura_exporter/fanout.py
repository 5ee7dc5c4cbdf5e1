"""
Export fan-out: records to export items, batches, and concurrent dispatch.

Each batch is split into its time-series points and pub/sub messages, which
are sent to their sinks concurrently. Batches themselves are dispatched
concurrently, so write order across batches is not guaranteed.
"""

import asyncio
import logging
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from itertools import islice
from typing import TypeVar

from .exceptions import SinkError
from .export_items import ExportItem, PubSubMessage, TimeSeriesPoint, to_export_items
from .records import ErrorRecord, Record
from .sinks import InfluxSink, Publisher

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100

T = TypeVar("T")


@dataclass
class ExportSummary:
    """Counts from one export pass."""

    records: int = 0
    error_records: int = 0
    batches: int = 0
    points: int = 0
    points_written: int = 0
    messages: int = 0
    messages_published: int = 0
    failed_writes: int = 0

    def add(self, other: "ExportSummary") -> None:
        for name in self.__dataclass_fields__:
            setattr(self, name, getattr(self, name) + getattr(other, name))


def batched(items: Iterable[T], size: int) -> Iterator[list[T]]:
    """Consecutive lists of at most ``size`` items, order preserved."""
    iterator = iter(items)
    while batch := list(islice(iterator, size)):
        yield batch


def partition(batch: Sequence[ExportItem]) -> tuple[list[TimeSeriesPoint], list[PubSubMessage]]:
    points: list[TimeSeriesPoint] = []
    messages: list[PubSubMessage] = []
    for item in batch:
        if isinstance(item, TimeSeriesPoint):
            points.append(item)
        else:
            messages.append(item)
    return points, messages


async def _write_points(sink: InfluxSink | None, points: list[TimeSeriesPoint]) -> int | None:
    if sink is None:
        return 0
    try:
        return await sink.write(points)
    except SinkError as e:
        logger.error("Dropping %d time-series points: %s", len(points), e.message)
        return None


async def _publish(publisher: Publisher, messages: list[PubSubMessage]) -> int | None:
    try:
        return await publisher.publish(messages)
    except SinkError as e:
        logger.error("Dropping %d pub/sub messages: %s", len(messages), e.message)
        return None


async def dispatch_batch(
    batch: Sequence[ExportItem],
    influx_sink: InfluxSink | None,
    publisher: Publisher,
) -> ExportSummary:
    """
    Send one batch to both sinks and wait for both.

    Without a time-series sink the points are still built, just not sent.
    """
    points, messages = partition(batch)
    written, published = await asyncio.gather(
        _write_points(influx_sink, points),
        _publish(publisher, messages),
    )

    return ExportSummary(
        batches=1,
        points=len(points),
        points_written=written or 0,
        messages=len(messages),
        messages_published=published or 0,
        failed_writes=(written is None) + (published is None),
    )


async def export_records(
    records: Iterable[Record],
    influx_sink: InfluxSink | None,
    publisher: Publisher,
    batch_size: int = DEFAULT_BATCH_SIZE,
    max_concurrency: int | None = None,
) -> ExportSummary:
    """
    Export records to the sinks.

    Args:
        records: Records in the order they were produced
        influx_sink: Time-series sink, or None when not configured
        publisher: Pub/sub sink
        batch_size: Export items per batch
        max_concurrency: Batches in flight at once, unbounded when None

    Returns:
        ExportSummary of the pass
    """
    summary = ExportSummary()
    semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None

    def items() -> Iterator[ExportItem]:
        for record in records:
            summary.records += 1
            if isinstance(record, ErrorRecord):
                summary.error_records += 1
            yield from to_export_items(record)

    async def run(batch: list[ExportItem]) -> ExportSummary:
        if semaphore is None:
            return await dispatch_batch(batch, influx_sink, publisher)
        async with semaphore:
            return await dispatch_batch(batch, influx_sink, publisher)

    tasks = [asyncio.create_task(run(batch)) for batch in batched(items(), batch_size)]
    for result in await asyncio.gather(*tasks):
        summary.add(result)

    logger.info(
        "Exported %d records in %d batches: %d/%d points written, %d/%d messages published",
        summary.records,
        summary.batches,
        summary.points_written,
        summary.points,
        summary.messages_published,
        summary.messages,
    )
    return summary
