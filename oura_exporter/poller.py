"""Per-person polling: fetch, derive, and merge into one record sequence."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime
from typing import Protocol, TypeVar

from .config import Person
from .derivation import derive_from_heart_rate_samples, derive_from_sleep_documents
from .exceptions import FetchError
from .records import ErrorRecord, Record, error_record
from .vendor_types import OuraApiResponse, OuraHeartRateSample, OuraSleepDocument

logger = logging.getLogger(__name__)

T = TypeVar("T")


class OuraFetcher(Protocol):
    """The two vendor fetch operations the poller depends on."""

    async def fetch_heart_rate(
        self, access_token: str, start_time: datetime, end_time: datetime
    ) -> OuraApiResponse[OuraHeartRateSample]: ...

    async def fetch_sleep_documents(
        self, access_token: str, start_time: datetime, end_time: datetime
    ) -> OuraApiResponse[OuraSleepDocument]: ...


class Poller:
    """
    Polls every registered person over one time window.

    Both endpoints of all persons are fetched concurrently. A failed fetch
    becomes one ``ErrorRecord`` for that person and endpoint; the rest of the
    cycle carries on.
    """

    def __init__(self, persons: Sequence[Person], fetcher: OuraFetcher):
        self.persons = list(persons)
        self.fetcher = fetcher

    async def poll(self, start_time: datetime, end_time: datetime) -> list[Record]:
        """Records of all persons for ``[start_time, end_time)``."""
        per_person = await asyncio.gather(
            *(self.poll_person(person, start_time, end_time) for person in self.persons)
        )
        return [record for records in per_person for record in records]

    async def poll_person(
        self,
        person: Person,
        start_time: datetime,
        end_time: datetime,
    ) -> list[Record]:
        """
        Records of one person.

        Order: heart rate samples, then heart rate, HRV, sleep, sleep phases
        and readiness derived from sleep documents.
        """
        heart_rate, sleep = await asyncio.gather(
            self._fetch(person, self.fetcher.fetch_heart_rate, start_time, end_time),
            self._fetch(person, self.fetcher.fetch_sleep_documents, start_time, end_time),
        )

        records: list[Record] = []

        if isinstance(heart_rate, ErrorRecord):
            records.append(heart_rate)
        else:
            records.extend(derive_from_heart_rate_samples(heart_rate.data, person.name))

        if isinstance(sleep, ErrorRecord):
            records.append(sleep)
        else:
            records.extend(derive_from_sleep_documents(sleep.data, person.name))

        logger.info(
            "Polled %d records for %s between %s and %s",
            len(records),
            person.name,
            start_time.isoformat(),
            end_time.isoformat(),
        )
        return records

    @staticmethod
    async def _fetch(
        person: Person,
        fetch: Callable[[str, datetime, datetime], Awaitable[T]],
        start_time: datetime,
        end_time: datetime,
    ) -> T | ErrorRecord:
        try:
            return await fetch(person.access_token, start_time, end_time)
        except FetchError as e:
            logger.warning("Fetch failed for %s: %s", person.name, e.message)
            e.person = person.name
            return error_record(e, person.name)
