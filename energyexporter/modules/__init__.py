"""
EnergyExporter Core Modules

This package contains the core processing modules of the exporter:
- schema_registry: Device schemas keyed by record class
- schema_extractor: Metric value extraction and wire formatting
- state_publisher: Retained MQTT state messages
- discovery_publisher: Home Assistant discovery documents
- connection_manager: Lazily connected MQTT client
- mqtt_exporter: MQTT export rounds
- prometheus_exporter: Prometheus endpoint
- influxdb_exporter: InfluxDB line protocol writer
"""

from energyexporter.modules.schema_registry import (
    SchemaRegistry,
    default_registry,
    register_device_schema,
    validate_schema,
)
from energyexporter.modules.schema_extractor import (
    ExtractedMetrics,
    SchemaExtractor,
    format_float,
    format_value,
)
from energyexporter.modules.state_publisher import (
    StatePublisher,
    state_topic,
)
from energyexporter.modules.discovery_publisher import (
    DiscoveryPublisher,
    config_topic,
    device_block,
    unique_id,
)
from energyexporter.modules.connection_manager import (
    ConnectionState,
    MqttConnectionManager,
    create_client,
)
from energyexporter.modules.mqtt_exporter import (
    MqttExporter,
)
from energyexporter.modules.prometheus_exporter import (
    DeviceCollector,
    PrometheusExporter,
    numeric_value,
)
from energyexporter.modules.influxdb_exporter import (
    InfluxDbExporter,
    escape_key,
    format_field_value,
)

__all__ = [
    # Schema Registry
    "SchemaRegistry",
    "default_registry",
    "register_device_schema",
    "validate_schema",
    # Schema Extractor
    "ExtractedMetrics",
    "SchemaExtractor",
    "format_float",
    "format_value",
    # State Publisher
    "StatePublisher",
    "state_topic",
    # Discovery Publisher
    "DiscoveryPublisher",
    "config_topic",
    "device_block",
    "unique_id",
    # Connection Manager
    "ConnectionState",
    "MqttConnectionManager",
    "create_client",
    # MQTT Exporter
    "MqttExporter",
    # Prometheus Exporter
    "DeviceCollector",
    "PrometheusExporter",
    "numeric_value",
    # InfluxDB Exporter
    "InfluxDbExporter",
    "escape_key",
    "format_field_value",
]
