"""
EnergyExporter State Publisher Module

Turns extracted metric values into retained MQTT state messages.
"""

from typing import Any, List, Optional

from energyexporter.models.schemas import DeviceIdentity, MqttMessage, QoS
from energyexporter.modules.schema_extractor import SchemaExtractor
from energyexporter.utils.exceptions import ConfigurationError


def state_topic(base_topic: str, identity: DeviceIdentity, field: str) -> str:
    """Topic of a metric's state: {base}/{measurement}/{device_id}/{field}."""
    return f"{base_topic}/{identity.measurement}/{identity.device_id}/{field}"


class StatePublisher:
    """
    Builds one state message per non-null metric of a device.

    State messages are a last-value-wins stream: they are retained and sent
    at most once, the next round supersedes a dropped message.
    """

    def __init__(self, base_topic: str, extractor: Optional[SchemaExtractor] = None):
        if not base_topic:
            raise ConfigurationError("Base topic must not be empty", field="topic")
        self.base_topic = base_topic
        self.extractor = extractor or SchemaExtractor()

    def build_messages(self, device: Any) -> List[MqttMessage]:
        """
        Build the state messages of a device.

        The whole list is built before returning, so a schema error leaves
        nothing half-published.
        """
        identity = self.extractor.identity(device)
        return [
            MqttMessage(
                topic=state_topic(self.base_topic, identity, field),
                payload=value,
                qos=QoS.AT_MOST_ONCE,
                retain=True,
            )
            for field, value in self.extractor.extract(device)
        ]
