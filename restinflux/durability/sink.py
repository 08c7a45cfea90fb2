import logging
from typing import List
from urllib.parse import urlsplit, urlunsplit

from influxdb_client_3 import InfluxDBClient3, Point
from influxdb_client_3.exceptions import InfluxDBError
from urllib3.exceptions import HTTPError

from restinflux.config import Config, ConfigError
from restinflux.durability.influx_point import InfluxPoint

logger = logging.getLogger(__name__)

_DEFAULT_PORTS = {"http": 80, "https": 443}


class SinkError(Exception):
    """Raised when points could not be delivered to InfluxDB."""


def client_host(url: str) -> str:
    """Return ``url`` with an explicit port.

    InfluxDBClient3 assumes port 443 when none is given, whatever the scheme,
    and ignores any path, so URLs with a path are rejected.
    """
    parts = urlsplit(url)
    if parts.scheme not in _DEFAULT_PORTS or not parts.hostname:
        raise ConfigError(f"influxdb2 url must be http:// or https:// with a host: {url!r}")
    if parts.path.strip("/") or parts.query or parts.fragment:
        raise ConfigError(f"influxdb2 url must not have a path prefix: {url!r}")
    try:
        port = parts.port
    except ValueError as e:
        raise ConfigError(f"influxdb2 url has an invalid port: {url!r}") from e
    netloc = parts.netloc
    if port is None:
        netloc = f"{netloc}:{_DEFAULT_PORTS[parts.scheme]}"
    return urlunsplit((parts.scheme, netloc, "", "", ""))


class InfluxSink:
    """
    Writes points to an InfluxDB bucket.

    Points are held by ``write`` and sent by ``flush``; the pipeline flushes after
    every point, so at most one point is ever pending.
    """

    def __init__(self, client: InfluxDBClient3, bucket: str):
        self._client = client
        self._bucket = bucket
        self._pending: List[Point] = []
        self._closed = False

    @classmethod
    def from_config(cls, config: Config) -> "InfluxSink":
        client = InfluxDBClient3(
            host=client_host(config.url),
            token=config.token,
            org=config.org,
            database=config.bucket,
        )
        logger.info("init influxdb connection url=%s org=%s bucket=%s", config.url, config.org, config.bucket)
        return cls(client, config.bucket)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def write(self, point: InfluxPoint) -> None:
        self._pending.append(point.to_point())

    def flush(self) -> None:
        if not self._pending:
            return
        batch, self._pending = self._pending, []
        try:
            self._client.write(database=self._bucket, record=batch)
        except (InfluxDBError, HTTPError) as e:
            raise SinkError(f"writing {len(batch)} point(s) to {self._bucket}: {e}") from e

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self.flush()
        finally:
            self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
