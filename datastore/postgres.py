"""PostgreSQL persistence with per-attempt connections and fixed backoff."""

from __future__ import annotations

import asyncio
import logging
import ssl
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import asyncpg
from pydantic import ValidationError

from datastore.schemas import MovementDataRow, SensorDataRow
from models.records import WindowAggregate

logger = logging.getLogger(__name__)

SSL_ROOT_CERT_PARAM = "sslrootcert"

SENSOR_DATA_INSERT = (
    "INSERT INTO sensor_data(sensor_mac, temperature, humidity, pressure, time, name, samples) "
    "VALUES ($1, $2, $3, $4, $5, $6, $7)"
)
MOVEMENT_DATA_INSERT = (
    "INSERT INTO movement_data(sensor_mac, acceleration_x, acceleration_y, acceleration_z, "
    "movement_counter, time, name, samples) "
    "VALUES ($1, $2, $3, $4, $5, $6, $7, $8)"
)

Operation = Callable[[Any], Awaitable[Any]]


class PersistenceError(RuntimeError):
    """A store call gave up; ``attempts`` connection attempts were made."""

    def __init__(self, reason: str, attempts: int) -> None:
        super().__init__(reason)
        self.reason = reason
        self.attempts = attempts


class MissingCertificateError(PersistenceError):

    def __init__(self) -> None:
        super().__init__(f"{SSL_ROOT_CERT_PARAM} parameter missing", attempts=0)


@dataclass(frozen=True)
class ConnectionTarget:
    dsn: str
    ca_file: str


def parse_database_url(database_url: str) -> ConnectionTarget:
    """Split ``sslrootcert`` out of the URL; asyncpg gets the rest.

    A URL that cannot be parsed is reported as a ``PersistenceError`` with
    zero attempts, like a missing certificate parameter.
    """
    try:
        parts = urlsplit(database_url)
        query = parse_qsl(parts.query, keep_blank_values=True)
    except ValueError as exc:
        raise PersistenceError(f"invalid database URL: {exc}", attempts=0) from exc

    ca_file: Optional[str] = None
    params = []
    for key, value in query:
        if key == SSL_ROOT_CERT_PARAM:
            ca_file = value
        else:
            params.append((key, value))
    if not ca_file:
        raise MissingCertificateError()
    dsn = urlunsplit(parts._replace(query=urlencode(params)))
    return ConnectionTarget(dsn=dsn, ca_file=ca_file)


def create_ssl_context(ca_file: str) -> ssl.SSLContext:
    context = ssl.create_default_context(cafile=ca_file)
    # Servers with self-signed certificates are accepted; peer verification is off.
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


class PostgresStore:
    """Writes window aggregates to ``sensor_data`` and ``movement_data``.

    Every attempt opens a brand-new connection which is closed afterwards;
    nothing is reused between attempts or calls.
    """

    def __init__(
        self,
        database_url: str,
        max_attempts: int = 100,
        retry_delay_seconds: float = 5.0,
        connect: Callable[..., Awaitable[Any]] = asyncpg.connect,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        ssl_context_factory: Callable[[str], Any] = create_ssl_context,
    ) -> None:
        self.database_url = database_url
        self.max_attempts = max_attempts
        self.retry_delay_seconds = retry_delay_seconds
        self._connect = connect
        self._sleep = sleep
        self._ssl_context_factory = ssl_context_factory

    async def execute_with_retry(self, operation: Operation, table: str = "") -> int:
        """Run ``operation`` on a fresh connection until it succeeds.

        Returns the number of attempts used. Raises ``MissingCertificateError``
        immediately when the URL lacks ``sslrootcert``, a zero-attempt
        ``PersistenceError`` when the URL cannot be parsed, and ``PersistenceError``
        once ``max_attempts`` attempts have failed.
        """
        target = parse_database_url(self.database_url)

        for attempt in range(1, self.max_attempts + 1):
            log_extra = {"table": table, "attempt": attempt, "max_attempts": self.max_attempts}
            try:
                ssl_context = self._ssl_context_factory(target.ca_file)
            except OSError as exc:
                logger.error("SSL context error: %s", exc, extra=log_extra)
            else:
                if await self._attempt(target.dsn, ssl_context, operation, log_extra):
                    return attempt

            if attempt < self.max_attempts:
                await self._sleep(self.retry_delay_seconds)

        raise PersistenceError("Max retries exceeded", attempts=self.max_attempts)

    async def _attempt(
        self, dsn: str, ssl_context: Any, operation: Operation, log_extra: dict
    ) -> bool:
        try:
            connection = await self._connect(dsn, ssl=ssl_context)
        except Exception as exc:
            logger.error("Connection error: %s", exc, extra=log_extra)
            return False

        try:
            await operation(connection)
        except Exception as exc:
            logger.error("Query error: %s", exc, extra=log_extra)
            return False
        finally:
            await self._close(connection)
        return True

    @staticmethod
    async def _close(connection: Any) -> None:
        try:
            await connection.close()
        except Exception as exc:  # pragma: no cover - best effort cleanup
            logger.debug("Closing connection failed: %s", exc)

    async def store_sensor_data(self, sensor_mac: str, aggregate: WindowAggregate) -> int:
        try:
            row = SensorDataRow.from_aggregate(sensor_mac, aggregate)
        except ValidationError as exc:
            raise PersistenceError(f"invalid sensor_data row: {exc}", attempts=0) from exc

        async def insert(connection: Any) -> Any:
            return await connection.execute(SENSOR_DATA_INSERT, *row.as_params())

        return await self.execute_with_retry(insert, table="sensor_data")

    async def store_movement_data(self, sensor_mac: str, aggregate: WindowAggregate) -> int:
        try:
            row = MovementDataRow.from_aggregate(sensor_mac, aggregate)
        except ValidationError as exc:
            raise PersistenceError(f"invalid movement_data row: {exc}", attempts=0) from exc

        async def insert(connection: Any) -> Any:
            return await connection.execute(MOVEMENT_DATA_INSERT, *row.as_params())

        return await self.execute_with_retry(insert, table="movement_data")
