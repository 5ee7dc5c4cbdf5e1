"""Async client for the Oura API v2 ``usercollection`` endpoints."""

import logging
from datetime import datetime
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from .exceptions import FetchError
from .vendor_types import OuraApiResponse, OuraHeartRateSample, OuraSleepDocument

logger = logging.getLogger(__name__)

OURA_API_BASE = "https://api.ouraring.com"
HEART_RATE_PATH = "/v2/usercollection/heartrate"
SLEEP_PATH = "/v2/usercollection/sleep"

M = TypeVar("M", bound=BaseModel)


class OuraClient:
    """
    Fetches heart rate samples and sleep documents for one access token.

    Pagination (``next_token``) is exposed on the response but not followed.
    """

    def __init__(
        self,
        base_url: str = OURA_API_BASE,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.http_client = http_client or httpx.AsyncClient(timeout=timeout)

    async def fetch_heart_rate(
        self,
        access_token: str,
        start_time: datetime,
        end_time: datetime,
    ) -> OuraApiResponse[OuraHeartRateSample]:
        """
        Fetch heart rate samples in ``[start_time, end_time)``.

        Raises:
            FetchError: On transport failure, non-2xx status, or invalid body
        """
        params = {
            "start_datetime": start_time.isoformat(),
            "end_datetime": end_time.isoformat(),
        }
        return await self._get(
            HEART_RATE_PATH,
            params,
            access_token,
            OuraApiResponse[OuraHeartRateSample],
        )

    async def fetch_sleep_documents(
        self,
        access_token: str,
        start_time: datetime,
        end_time: datetime,
    ) -> OuraApiResponse[OuraSleepDocument]:
        """
        Fetch sleep documents for the days covered by the window.

        Raises:
            FetchError: On transport failure, non-2xx status, or invalid body
        """
        params = {
            "start_date": start_time.strftime("%Y-%m-%d"),
            "end_date": end_time.strftime("%Y-%m-%d"),
        }
        return await self._get(
            SLEEP_PATH,
            params,
            access_token,
            OuraApiResponse[OuraSleepDocument],
        )

    async def _get(
        self,
        path: str,
        params: dict[str, Any],
        access_token: str,
        model: type[M],
    ) -> M:
        url = f"{self.base_url}{path}"
        logger.debug("Sending request to Oura API: url=%s params=%s", url, params)

        try:
            response = await self.http_client.get(
                url,
                params=params,
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.RequestError as e:
            raise FetchError(
                f"Failed to send request to Oura API: {e}",
                url=url,
                error=str(e),
            ) from e

        if not 200 <= response.status_code < 300:
            body = response.text or "Unknown error response from Oura API"
            raise FetchError.from_response(url, response.status_code, body)

        try:
            result = model.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise FetchError(
                f"Invalid response body from Oura API when requesting url: {url}: {e}",
                url=url,
                status_code=response.status_code,
                error=str(e),
            ) from e

        logger.debug(
            "Received response from Oura API: url=%s status=%s items=%d",
            url,
            response.status_code,
            len(getattr(result, "data", [])),
        )
        return result

    async def close(self) -> None:
        """Close HTTP client."""
        await self.http_client.aclose()

    async def __aenter__(self) -> "OuraClient":
        """Context manager entry."""
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Context manager exit."""
        await self.close()
