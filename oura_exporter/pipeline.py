"""
The periodic poll-and-export driver.

The poll loop and the export loop run concurrently, joined by an unbounded
order-preserving queue: a slow sink never delays the start of the next fetch
window. No backpressure is applied to the poller.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from .client import OuraClient
from .config import Config
from .fanout import DEFAULT_BATCH_SIZE, ExportSummary, batched, export_records
from .poller import Poller
from .records import Record, record_timestamp
from .sinks import InfluxSink, LoggingPublisher, Publisher, SnsPublisher

logger = logging.getLogger(__name__)

QUEUE_CHUNK_SIZE = 10


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class PollWindow:
    """
    Start of the next fetch window.

    After each cycle the start moves one second past the latest record
    timestamp seen, so already exported data is not fetched again. It never
    moves backwards.
    """

    start: datetime

    @classmethod
    def initial(cls, now: datetime, poller_interval: int, lookback_hours: int) -> "PollWindow":
        return cls(start=now - timedelta(seconds=poller_interval) - timedelta(hours=lookback_hours))

    def advance(self, records: Sequence[Record]) -> datetime:
        timestamps = [ts for ts in map(record_timestamp, records) if ts is not None]
        if timestamps:
            self.start = max(self.start, max(timestamps) + timedelta(seconds=1))
        return self.start


class ExportPipeline:
    """Polls on a fixed interval and exports every cycle's records."""

    def __init__(
        self,
        poller: Poller,
        publisher: Publisher,
        influx_sink: InfluxSink | None = None,
        poller_interval: int = 300,
        batch_size: int = DEFAULT_BATCH_SIZE,
        initial_lookback_hours: int = 64,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.poller = poller
        self.publisher = publisher
        self.influx_sink = influx_sink
        self.poller_interval = poller_interval
        self.batch_size = batch_size
        self.initial_lookback_hours = initial_lookback_hours
        self.clock = clock

    async def export(self, records: Sequence[Record]) -> ExportSummary:
        return await export_records(
            records,
            self.influx_sink,
            self.publisher,
            batch_size=self.batch_size,
        )

    async def poll_once(
        self, start_time: datetime, end_time: datetime
    ) -> tuple[list[Record], ExportSummary]:
        """One poll cycle followed by its export."""
        records = await self.poller.poll(start_time, end_time)
        return records, await self.export(records)

    async def run(self, max_cycles: int | None = None) -> ExportSummary:
        """
        Run the poll and export loops.

        Args:
            max_cycles: Stop after this many poll cycles; run forever when None

        Returns:
            Accumulated ExportSummary (only reached when max_cycles is set)
        """
        queue: asyncio.Queue[list[Record] | None] = asyncio.Queue()
        summary = ExportSummary()
        await asyncio.gather(
            self._poll_loop(queue, max_cycles),
            self._export_loop(queue, summary),
        )
        return summary

    async def _poll_loop(
        self, queue: "asyncio.Queue[list[Record] | None]", max_cycles: int | None
    ) -> None:
        window = PollWindow.initial(
            self.clock(), self.poller_interval, self.initial_lookback_hours
        )
        cycle = 0

        try:
            while max_cycles is None or cycle < max_cycles:
                cycle += 1
                end_time = self.clock()
                logger.info("Poll cycle %d: %s to %s", cycle, window.start.isoformat(), end_time.isoformat())

                try:
                    records = await self.poller.poll(window.start, end_time)
                except Exception:
                    logger.exception("Poll cycle %d failed", cycle)
                    records = []

                for chunk in batched(records, QUEUE_CHUNK_SIZE):
                    queue.put_nowait(chunk)
                window.advance(records)

                if max_cycles is not None and cycle >= max_cycles:
                    break
                await asyncio.sleep(self.poller_interval)
        finally:
            queue.put_nowait(None)

    async def _export_loop(
        self, queue: "asyncio.Queue[list[Record] | None]", summary: ExportSummary
    ) -> None:
        while (chunk := await queue.get()) is not None:
            try:
                summary.add(await self.export(chunk))
            except Exception:
                logger.exception("Export of %d records failed", len(chunk))


@asynccontextmanager
async def pipeline_from_config(config: Config, dry_run: bool = False) -> AsyncIterator[ExportPipeline]:
    """
    Build a pipeline and its collaborators from configuration.

    With ``dry_run`` no sink is contacted: points are dropped and messages
    are only logged.
    """
    influx_sink = None
    if config.influxdb is not None and not dry_run:
        influx_sink = InfluxSink.from_config(config.influxdb)

    publisher: Publisher = LoggingPublisher()
    if config.pubsub is not None and not dry_run:
        publisher = SnsPublisher.from_config(config.pubsub)

    async with OuraClient(base_url=config.api_base_url) as client:
        if influx_sink is not None:
            await influx_sink.open()
        try:
            yield ExportPipeline(
                poller=Poller(config.persons, client),
                publisher=publisher,
                influx_sink=influx_sink,
                poller_interval=config.poller_interval,
                batch_size=config.export_batch_size,
                initial_lookback_hours=config.initial_lookback_hours,
            )
        finally:
            if influx_sink is not None:
                await influx_sink.close()
