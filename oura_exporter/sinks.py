"""
Sink collaborators: the InfluxDB time-series writer and pub/sub publishers.

Sinks are constructed once and are read-only afterwards, so concurrently
dispatched batches share them without locking.
"""

import asyncio
import logging
from collections import defaultdict
from collections.abc import Sequence
from typing import Any, Protocol

import aiohttp
import boto3
from botocore.exceptions import BotoCoreError, ClientError
from influxdb_client import Point, WritePrecision
from influxdb_client.client.influxdb_client_async import InfluxDBClientAsync
from influxdb_client.rest import ApiException

from .config import InfluxDBConfig, PubSubConfig
from .exceptions import SinkError
from .export_items import PubSubMessage, PubSubTopic, TimeSeriesPoint

logger = logging.getLogger(__name__)


def to_influx_point(point: TimeSeriesPoint) -> Point:
    """Build the ``influxdb_client`` point for a time-series item."""
    influx_point = Point(point.measurement).time(point.timestamp, WritePrecision.S)
    for key, value in point.tags.items():
        influx_point.tag(key, value)
    for key, value in point.fields.items():
        influx_point.field(key, value)
    return influx_point


class InfluxSink:
    """Writes time-series points to one InfluxDB bucket with second precision."""

    def __init__(
        self,
        url: str,
        token: str,
        organization: str,
        bucket: str,
        client: InfluxDBClientAsync | None = None,
    ):
        self.url = url
        self.token = token
        self.organization = organization
        self.bucket = bucket
        self._client = client

    @classmethod
    def from_config(cls, config: InfluxDBConfig) -> "InfluxSink":
        return cls(
            url=config.url,
            token=config.token,
            organization=config.organization,
            bucket=config.bucket,
        )

    async def open(self) -> None:
        """Create the async client; must run inside the event loop."""
        if self._client is None:
            self._client = InfluxDBClientAsync(
                url=self.url, token=self.token, org=self.organization
            )

    async def write(self, points: Sequence[TimeSeriesPoint]) -> int:
        """
        Write a batch of points.

        Returns:
            Number of points written

        Raises:
            SinkError: If the sink is not open or the write fails
        """
        if not points:
            return 0
        if self._client is None:
            raise SinkError("InfluxDB sink is not open")

        logger.debug("Writing %d points to InfluxDB bucket %s", len(points), self.bucket)
        try:
            await self._client.write_api().write(
                bucket=self.bucket,
                record=[to_influx_point(point) for point in points],
                write_precision=WritePrecision.S,
            )
        except (ApiException, aiohttp.ClientError, OSError) as e:
            raise SinkError(f"Error writing to InfluxDB bucket {self.bucket}: {e}") from e

        return len(points)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def __aenter__(self) -> "InfluxSink":
        await self.open()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


class Publisher(Protocol):
    """Pub/sub collaborator."""

    async def publish(self, messages: Sequence[PubSubMessage]) -> int: ...


class LoggingPublisher:
    """Logs pub/sub messages instead of sending them anywhere."""

    async def publish(self, messages: Sequence[PubSubMessage]) -> int:
        if messages:
            logger.info(
                "Pub/sub export items: %d, last: %s %s",
                len(messages),
                messages[-1].topic.value,
                messages[-1].payload,
            )
        return len(messages)


class SnsPublisher:
    """
    Publishes messages to AWS SNS, one topic per ``PubSubTopic``.

    Messages are grouped by topic and sent with ``publish_batch``. boto3 is
    blocking, so each batch runs on a worker thread.
    """

    MAX_BATCH_ENTRIES = 10

    def __init__(
        self,
        topic_arn_prefix: str,
        region: str = "us-east-1",
        sns_client: Any | None = None,
    ):
        self.topic_arn_prefix = topic_arn_prefix
        self.region = region
        self.sns = sns_client or boto3.client("sns", region_name=region)

    @classmethod
    def from_config(cls, config: PubSubConfig) -> "SnsPublisher":
        return cls(topic_arn_prefix=config.topic_arn_prefix, region=config.region)

    def topic_arn(self, topic: PubSubTopic) -> str:
        return f"{self.topic_arn_prefix}{topic.value}"

    async def publish(self, messages: Sequence[PubSubMessage]) -> int:
        """
        Publish messages.

        Returns:
            Number of messages SNS accepted

        Raises:
            SinkError: If a publish call fails
        """
        if not messages:
            return 0
        return await asyncio.to_thread(self._publish_sync, list(messages))

    def _publish_sync(self, messages: list[PubSubMessage]) -> int:
        by_topic: dict[PubSubTopic, list[PubSubMessage]] = defaultdict(list)
        for message in messages:
            by_topic[message.topic].append(message)

        published = 0
        for topic, topic_messages in by_topic.items():
            arn = self.topic_arn(topic)
            for offset in range(0, len(topic_messages), self.MAX_BATCH_ENTRIES):
                chunk = topic_messages[offset : offset + self.MAX_BATCH_ENTRIES]
                try:
                    response = self.sns.publish_batch(
                        TopicArn=arn,
                        PublishBatchRequestEntries=[
                            {"Id": str(index), "Message": message.payload}
                            for index, message in enumerate(chunk)
                        ],
                    )
                except (ClientError, BotoCoreError) as e:
                    raise SinkError(f"Failed to publish to {arn}: {e}") from e

                for failure in response.get("Failed", []):
                    logger.warning(
                        "SNS rejected message %s on %s: %s",
                        failure.get("Id"),
                        arn,
                        failure.get("Message", failure.get("Code")),
                    )
                published += len(response.get("Successful", []))

        return published
