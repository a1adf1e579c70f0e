"""
EnergyExporter Discovery Publisher Module

Builds Home Assistant MQTT discovery documents for classified metrics.
See https://www.home-assistant.io/integrations/mqtt/#mqtt-discovery

Every classified metric becomes one sensor, and all sensors of a device
are grouped under one Home Assistant device through a shared identifier.
"""

import json
from typing import Any, Dict, List, Optional

from energyexporter.models.schemas import (
    DeviceIdentity,
    ExtractedMetric,
    MqttMessage,
    QoS,
)
from energyexporter.modules.schema_extractor import SchemaExtractor
from energyexporter.modules.state_publisher import state_topic
from energyexporter.utils.exceptions import ConfigurationError


def config_topic(discovery_topic: str, identity: DeviceIdentity, field: str) -> str:
    """Discovery topic: {discovery}/sensor/{measurement}_{device_id}/{field}/config."""
    return (
        f"{discovery_topic}/sensor/{identity.measurement}_{identity.device_id}/{field}/config"
    )


def unique_id(base_topic: str, identity: DeviceIdentity, field: str) -> str:
    return f"{identity.device_id}_{identity.measurement}_{field}_{base_topic}"


def device_block(identity: DeviceIdentity) -> Dict[str, Any]:
    """
    The device sub-object shared by all sensors of a device.

    Home Assistant expects every key here, so missing values become empty
    strings and the name falls back to the measurement.
    """
    return {
        "identifiers": [f"{identity.device_id}_{identity.measurement}"],
        "manufacturer": identity.manufacturer,
        "model": identity.model,
        "name": identity.name or identity.measurement,
        "sw_version": identity.sw_version,
    }


class DiscoveryPublisher:
    """
    Builds retained discovery messages, one per classified metric.

    Documents are recomputed from schema and record on every call, so
    republishing is idempotent.
    """

    def __init__(
        self,
        base_topic: str,
        discovery_topic: str,
        extractor: Optional[SchemaExtractor] = None,
    ):
        if not base_topic:
            raise ConfigurationError("Base topic must not be empty", field="topic")
        if not discovery_topic:
            raise ConfigurationError(
                "Discovery topic must not be empty", field="discovery_topic"
            )
        self.base_topic = base_topic
        self.discovery_topic = discovery_topic
        self.extractor = extractor or SchemaExtractor()

    def build_document(self, identity: DeviceIdentity, metric: ExtractedMetric) -> Dict[str, Any]:
        """Build the discovery document of one metric. Absent optional keys are omitted."""
        classification = metric.descriptor.classification
        field = metric.field

        document: Dict[str, Any] = {"device": device_block(identity)}
        if classification is not None and classification.device_class is not None:
            document["device_class"] = classification.device_class
        document["enabled_by_default"] = True
        if classification is not None and classification.state_class is not None:
            document["state_class"] = classification.state_class
        document["state_topic"] = state_topic(self.base_topic, identity, field)
        document["name"] = field
        document["unique_id"] = unique_id(self.base_topic, identity, field)
        if classification is not None and classification.unit is not None:
            document["unit_of_measurement"] = classification.unit
        return document

    def build_documents(self, device: Any) -> Dict[str, Dict[str, Any]]:
        """Discovery documents of a device keyed by config topic."""
        identity = self.extractor.identity(device)
        return {
            config_topic(self.discovery_topic, identity, metric.field): self.build_document(
                identity, metric
            )
            for metric in self.extractor.metrics(device)
            if metric.descriptor.is_discoverable
        }

    def build_messages(self, device: Any) -> List[MqttMessage]:
        """
        Build the discovery messages of a device.

        Losing one leaves a sensor unregistered until the next announcement,
        so they are sent at least once.
        """
        return [
            MqttMessage(
                topic=topic,
                payload=json.dumps(document, indent=2, ensure_ascii=False),
                qos=QoS.AT_LEAST_ONCE,
                retain=True,
            )
            for topic, document in self.build_documents(device).items()
        ]
