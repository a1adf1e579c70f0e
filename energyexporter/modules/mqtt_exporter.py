"""
EnergyExporter MQTT Exporter Module

Publishes device state and Home Assistant discovery information over MQTT.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Iterable, List, Optional

import structlog

from energyexporter.models.schemas import ExportResult, MqttMessage
from energyexporter.modules.connection_manager import MqttConnectionManager
from energyexporter.modules.discovery_publisher import DiscoveryPublisher
from energyexporter.modules.schema_extractor import SchemaExtractor
from energyexporter.modules.schema_registry import SchemaRegistry
from energyexporter.modules.state_publisher import StatePublisher
from energyexporter.utils.config import MqttSettings
from energyexporter.utils.exceptions import DeviceExportError, SchemaError
from energyexporter.utils.logging import LogContext, log_performance

logger = structlog.get_logger(__name__)


class MqttExporter:
    """
    Exports devices to an MQTT broker.

    Devices are exported one after another. A device whose schema is broken
    is skipped without publishing anything for it, and the round ends with a
    DeviceExportError naming it. Transport errors end the round immediately.
    """

    def __init__(
        self,
        settings: MqttSettings,
        registry: Optional[SchemaRegistry] = None,
        connection: Optional[MqttConnectionManager] = None,
    ):
        self.settings = settings
        self.extractor = SchemaExtractor(registry)
        self.state_publisher = StatePublisher(settings.topic, self.extractor)
        self.discovery_publisher = DiscoveryPublisher(
            settings.topic, settings.discovery_topic, self.extractor
        )
        self.connection = connection or MqttConnectionManager(settings)

    async def publish_metrics(self, devices: Iterable[Any]) -> ExportResult:
        """Publish the current state of every metric of every device."""
        return await self._export(devices, self.state_publisher.build_messages, "metrics")

    async def publish_discovery(self, devices: Iterable[Any]) -> ExportResult:
        """Announce every classified metric of every device to Home Assistant."""
        return await self._export(
            devices, self.discovery_publisher.build_messages, "discovery"
        )

    async def _export(
        self,
        devices: Iterable[Any],
        build: Callable[[Any], List[MqttMessage]],
        kind: str,
    ) -> ExportResult:
        result = ExportResult()
        if not self.settings.enabled:
            logger.debug("MQTT output disabled, skipping export", kind=kind)
            return result

        start_time = datetime.now(timezone.utc)
        logger.debug("Publishing on MQTT", kind=kind)
        await self.connection.ensure_connected()

        failures: List[SchemaError] = []
        for device in devices:
            try:
                identity = self.extractor.identity(device)
                messages = build(device)
            except SchemaError as e:
                logger.error(
                    "Device export failed",
                    kind=kind,
                    device_type=type(device).__name__,
                    exc_info=e,
                )
                failures.append(e)
                continue

            with LogContext(device_id=identity.device_id, measurement=identity.measurement):
                for message in messages:
                    await self.connection.publish(message)
                logger.debug("Published device", kind=kind, messages=len(messages))

            result.devices_exported += 1
            result.messages_published += len(messages)

        log_performance(
            logger,
            f"MQTT {kind} export",
            start_time,
            devices=result.devices_exported,
            messages=result.messages_published,
        )

        if failures:
            raise DeviceExportError(failures) from failures[0]
        return result

    async def shutdown(self) -> None:
        await self.connection.shutdown()
