"""
Sensor data sources.

Key patterns:
- Protocol-based dependency injection (the loop only needs ``fetch_latest``)
- Explicit Result type: expected failures (timeouts, bad status, bad body)
  are values, not exceptions
- Total deadline per request so a fetch always resolves, even when the
  sensor trickles its response byte by byte
"""

import asyncio
import time
from collections.abc import Mapping
from typing import Any, Generic, Protocol, TypeVar

import httpx
import structlog

from babyguard.config import SensorConfig
from babyguard.domain.errors import AcquisitionError
from babyguard.domain.models import ConnectionProbe

logger = structlog.get_logger(__name__)

ValueT = TypeVar("ValueT")
ErrorT = TypeVar("ErrorT", bound=BaseException)


class Result(Generic[ValueT, ErrorT]):
    """
    Explicit error handling without exceptions for expected failures.

    When to use: when failure is expected business logic, not exceptional.
    """

    def __init__(self, value: ValueT | None = None, error: ErrorT | None = None) -> None:
        if value is not None and error is not None:
            raise ValueError("Result cannot have both value and error")
        if value is None and error is None:
            raise ValueError("Result must have either value or error")
        self._value: ValueT | None = value
        self._error: ErrorT | None = error

    @classmethod
    def ok(cls, value: ValueT) -> "Result[ValueT, ErrorT]":
        return cls(value=value)

    @classmethod
    def err(cls, error: ErrorT) -> "Result[ValueT, ErrorT]":
        return cls(error=error)

    def is_ok(self) -> bool:
        return self._error is None

    def is_err(self) -> bool:
        return self._error is not None

    def unwrap(self) -> ValueT:
        if self._error is not None:
            raise self._error
        return self._value  # type: ignore

    def unwrap_or(self, default: ValueT) -> ValueT:
        return self._value if self._error is None else default  # type: ignore

    def unwrap_err(self) -> ErrorT:
        if self._error is None:
            raise ValueError("Called unwrap_err() on an Ok value")
        return self._error


class DataSource(Protocol):
    """Where readings come from. One call, one latest payload."""

    endpoint: str

    async def fetch_latest(self) -> Result[Any, AcquisitionError]:
        """
        Fetch the latest raw payload.

        Returns:
            Result containing the decoded JSON payload or an AcquisitionError.
        """
        ...


class HttpDataSource:
    """
    Polls the sensor's HTTP API with httpx.

    The client is created lazily unless one is injected; an injected client
    is never closed by this source.
    """

    HEADERS: Mapping[str, str] = {
        "Accept": "application/json",
        "Content-Type": "application/json",
    }

    def __init__(self, config: SensorConfig, client: httpx.AsyncClient | None = None) -> None:
        self.config = config
        self.endpoint = config.url
        self._client = client
        self._owns_client = client is None
        self.logger = logger.bind(component="http_data_source", endpoint=self.endpoint)

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.config.timeout_seconds)
        return self._client

    async def _get(self) -> httpx.Response:
        # httpx timeouts are per phase; the deadline bounds the whole exchange
        async with asyncio.timeout(self.config.timeout_seconds):
            return await self.client.get(
                self.endpoint, headers=dict(self.HEADERS), timeout=self.config.timeout_seconds
            )

    async def fetch_latest(self) -> Result[Any, AcquisitionError]:
        try:
            response = await self._get()
        except (httpx.TimeoutException, TimeoutError):
            reason = f"timed out after {self.config.timeout_seconds}s"
            self.logger.warning(
                "sensor_fetch_timeout", timeout_seconds=self.config.timeout_seconds
            )
            return Result.err(AcquisitionError(reason))
        except httpx.HTTPError as e:
            self.logger.warning("sensor_fetch_failed", error=str(e))
            return Result.err(AcquisitionError(f"request failed: {e}"))

        if not response.is_success:
            self.logger.warning("sensor_bad_status", status_code=response.status_code)
            return Result.err(AcquisitionError(f"HTTP error {response.status_code}"))

        try:
            payload = response.json()
        except ValueError as e:
            self.logger.warning("sensor_body_unparsable", error=str(e))
            return Result.err(AcquisitionError("response body is not valid JSON"))

        if not isinstance(payload, dict):
            return Result.err(AcquisitionError("response body is not a JSON object"))

        self.logger.debug("sensor_payload_received", keys=sorted(payload))
        return Result.ok(payload)

    async def probe(self) -> ConnectionProbe:
        """Test the connection once and measure its latency."""
        started = time.perf_counter()
        try:
            response = await self._get()
        except (httpx.HTTPError, TimeoutError) as e:
            self.logger.info("sensor_probe_failed", error=str(e) or type(e).__name__)
            return ConnectionProbe(
                connected=False, message="Sensor API not found", endpoint=self.endpoint
            )

        latency_ms = (time.perf_counter() - started) * 1000.0
        if not response.is_success:
            return ConnectionProbe(
                connected=False,
                message=f"HTTP error {response.status_code}",
                endpoint=self.endpoint,
            )

        return ConnectionProbe(
            connected=True,
            message="Sensor API connected",
            endpoint=self.endpoint,
            latency_ms=round(latency_ms, 3),
        )

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "HttpDataSource":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
