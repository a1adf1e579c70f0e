"""
EnergyExporter - Energy Device Telemetry Exporter

Republishes typed energy device records to MQTT (with Home Assistant
discovery), a Prometheus endpoint and InfluxDB, driven by declarative
per-device schemas.
"""

__version__ = "0.1.0"
__license__ = "MIT"

from energyexporter.models.schemas import (
    DeviceInfoDescriptor,
    DeviceSchema,
    MetricDescriptor,
    MqttMessage,
)

__all__ = [
    "__version__",
    "DeviceInfoDescriptor",
    "DeviceSchema",
    "MetricDescriptor",
    "MqttMessage",
]
