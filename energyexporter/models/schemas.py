"""
EnergyExporter Pydantic Models

This module defines the declarative device schema model (metric and device
info descriptors) and the records that flow from the schema extractor to the
sinks.
"""

from enum import Enum
from typing import Any, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from energyexporter.utils.exceptions import MissingDeviceInfoError


# ============================================================================
# Enums
# ============================================================================

class MetricType(str, Enum):
    """Prometheus metric kinds a descriptor can be exported as."""
    GAUGE = "gauge"
    COUNTER = "counter"


class QoS(int, Enum):
    """MQTT delivery guarantees used by the exporter."""
    AT_MOST_ONCE = 0
    AT_LEAST_ONCE = 1


# ============================================================================
# Descriptor Models
# ============================================================================

class SensorClassification(BaseModel):
    """
    Home Assistant classification of a metric.
    A metric carrying one of these is announced through discovery.
    """
    model_config = ConfigDict(frozen=True)

    unit: Optional[str] = Field(None, description="unit_of_measurement")
    device_class: Optional[str] = Field(None, description="Home Assistant device class")
    state_class: Optional[str] = Field(None, description="Home Assistant state class")


class PrometheusMetricSpec(BaseModel):
    """Prometheus export metadata of a metric."""
    model_config = ConfigDict(frozen=True)

    metric_type: MetricType = Field(..., description="Gauge or counter")
    name: str = Field(..., description="Prometheus metric name")
    help: str = Field(..., description="Prometheus help text")


class MetricDescriptor(BaseModel):
    """
    Schema-level description of one exposed device field.
    """
    model_config = ConfigDict(frozen=True)

    field: str = Field(..., description="Sink-facing field name")
    accessor: str = Field(..., description="Attribute read from the device record")
    classification: Optional[SensorClassification] = Field(
        None, description="Discovery metadata, None to publish state only"
    )
    prometheus: Optional[PrometheusMetricSpec] = Field(
        None, description="Prometheus metadata, None to skip the metrics endpoint"
    )

    @property
    def is_discoverable(self) -> bool:
        return self.classification is not None


class DeviceInfoDescriptor(BaseModel):
    """
    Names the record attributes that supply a device's identity.
    Only ``id`` is required; the rest are looked up when set.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Attribute holding the unique identifier")
    manufacturer: Optional[str] = Field(None, description="Attribute holding the manufacturer")
    model: Optional[str] = Field(None, description="Attribute holding the model")
    name: Optional[str] = Field(None, description="Attribute holding the display name")
    sw_version: Optional[str] = Field(None, description="Attribute holding the firmware version")


class DeviceSchema(BaseModel):
    """
    Declarative schema of one device type.
    """
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Device type name, e.g. 'battery'")
    measurement: str = Field(..., description="Measurement name used in topics and ids")
    metrics: Tuple[MetricDescriptor, ...] = Field(default=(), description="Ordered metrics")
    device_info: Optional[DeviceInfoDescriptor] = Field(None, description="Identity accessors")

    def require_device_info(self) -> DeviceInfoDescriptor:
        if self.device_info is None:
            raise MissingDeviceInfoError(self.name)
        return self.device_info

    @property
    def discoverable_metrics(self) -> Tuple[MetricDescriptor, ...]:
        return tuple(m for m in self.metrics if m.is_discoverable)


# ============================================================================
# Extraction Models
# ============================================================================

class ExtractedMetric(BaseModel):
    """
    A single metric value read from a device record.
    """
    model_config = ConfigDict(frozen=True)

    descriptor: MetricDescriptor = Field(..., description="Descriptor the value was read through")
    value: Any = Field(..., description="Typed value as decoded by the transport")
    formatted: str = Field(..., description="Wire text of the value")

    @property
    def field(self) -> str:
        return self.descriptor.field


class DeviceIdentity(BaseModel):
    """
    Identity of one device instance, resolved through its device info descriptor.
    Missing optional attributes resolve to an empty string.
    """
    model_config = ConfigDict(frozen=True)

    measurement: str
    device_id: str
    manufacturer: str = ""
    model: str = ""
    name: str = ""
    sw_version: str = ""


# ============================================================================
# Output Models
# ============================================================================

class MqttMessage(BaseModel):
    """
    An addressed MQTT application message ready to publish.
    """
    model_config = ConfigDict(frozen=True)

    topic: str = Field(..., description="Full topic")
    payload: str = Field(..., description="UTF-8 text payload")
    qos: QoS = Field(QoS.AT_MOST_ONCE, description="Delivery guarantee")
    retain: bool = Field(True, description="Broker keeps the last value")


class ExportResult(BaseModel):
    """Outcome of one export round."""
    devices_exported: int = 0
    messages_published: int = 0


# ============================================================================
# Authoring helpers
# ============================================================================

def sensor(
    unit: Optional[str] = None,
    device_class: Optional[str] = None,
    state_class: Optional[str] = None,
) -> SensorClassification:
    """Shorthand for a discovery classification."""
    return SensorClassification(unit=unit, device_class=device_class, state_class=state_class)


def gauge(name: str, help: str) -> PrometheusMetricSpec:
    return PrometheusMetricSpec(metric_type=MetricType.GAUGE, name=name, help=help)


def counter(name: str, help: str) -> PrometheusMetricSpec:
    return PrometheusMetricSpec(metric_type=MetricType.COUNTER, name=name, help=help)
