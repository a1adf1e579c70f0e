"""
EnergyExporter InfluxDB Exporter Module

Writes device metrics to InfluxDB 2.x as line protocol over its HTTP API.
One point is written per device, tagged with the device id, with one field
per non-null metric.
"""

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, List, Optional, Tuple

import httpx
import structlog

from energyexporter.modules.schema_extractor import SchemaExtractor, format_float
from energyexporter.modules.schema_registry import SchemaRegistry
from energyexporter.utils.config import InfluxDbSettings
from energyexporter.utils.exceptions import DeviceExportError, PublishError, SchemaError

logger = structlog.get_logger(__name__)

WRITE_ENDPOINT = "/api/v2/write"


# ============================================================================
# Line Protocol
# ============================================================================

def escape_key(key: str) -> str:
    """Escape a measurement, tag or field key."""
    return key.replace("\\", "\\\\").replace(",", "\\,").replace("=", "\\=").replace(" ", "\\ ")


def quote_string(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def format_field_value(value: Any) -> Optional[str]:
    """
    Render a field value in line protocol, None if InfluxDB cannot store it.
    """
    if isinstance(value, Enum):
        return quote_string(value.name)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return f"{value}i"
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return None
        return format_float(value)
    return quote_string(str(value))


class InfluxDbExporter:
    """
    Builds and writes line protocol points for devices.
    """

    def __init__(self, settings: InfluxDbSettings, registry: Optional[SchemaRegistry] = None):
        self.settings = settings
        self.extractor = SchemaExtractor(registry)
        self._http_session: Optional[httpx.AsyncClient] = None

    def build_point(self, device: Any, timestamp: Optional[datetime] = None) -> Optional[str]:
        """
        Build the line protocol point of a device, None if it has no values.
        """
        identity = self.extractor.identity(device)

        fields = []
        for metric in self.extractor.metrics(device):
            rendered = format_field_value(metric.value)
            if rendered is None:
                continue
            fields.append(f"{escape_key(metric.field)}={rendered}")

        if not fields:
            return None

        timestamp = timestamp or datetime.now(timezone.utc)
        return (
            f"{escape_key(identity.measurement)},device_id={escape_key(identity.device_id)} "
            f"{','.join(fields)} {int(timestamp.timestamp())}"
        )

    def build_points(
        self, devices: Iterable[Any], timestamp: Optional[datetime] = None
    ) -> Tuple[List[str], List[SchemaError]]:
        """Build points for all devices, collecting schema errors instead of stopping."""
        timestamp = timestamp or datetime.now(timezone.utc)
        points: List[str] = []
        failures: List[SchemaError] = []

        for device in devices:
            try:
                point = self.build_point(device, timestamp)
            except SchemaError as e:
                logger.error(
                    "Device export failed",
                    kind="influxdb",
                    device_type=type(device).__name__,
                    exc_info=e,
                )
                failures.append(e)
                continue
            if point is not None:
                points.append(point)

        return points, failures

    async def _get_session(self) -> httpx.AsyncClient:
        if self._http_session is None:
            self._http_session = httpx.AsyncClient(
                base_url=self.settings.url,
                timeout=self.settings.timeout_seconds,
                headers={"Authorization": f"Token {self.settings.token}"},
            )
        return self._http_session

    async def write(self, devices: Iterable[Any]) -> int:
        """
        Write one point per device. Returns the number of points written.

        Raises:
            PublishError: if InfluxDB cannot be reached or rejects the write
            DeviceExportError: after writing, if some devices had schema errors
        """
        if not self.settings.enabled:
            logger.debug("InfluxDB output disabled, skipping export")
            return 0

        points, failures = self.build_points(devices)

        if points:
            session = await self._get_session()
            try:
                response = await session.post(
                    WRITE_ENDPOINT,
                    params={
                        "org": self.settings.org,
                        "bucket": self.settings.bucket,
                        "precision": "s",
                    },
                    content="\n".join(points).encode("utf-8"),
                    headers={"Content-Type": "text/plain; charset=utf-8"},
                )
                response.raise_for_status()
            except httpx.HTTPError as e:
                raise PublishError("influxdb", self.settings.url, str(e)) from e
            logger.debug("Wrote points to InfluxDB", count=len(points))

        if failures:
            raise DeviceExportError(failures) from failures[0]
        return len(points)

    async def close(self) -> None:
        if self._http_session is not None:
            await self._http_session.aclose()
            self._http_session = None
