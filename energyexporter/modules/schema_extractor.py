"""
EnergyExporter Schema Extractor Module

This module walks a device record through its declared schema, reading the
metric values and rendering them as culture-invariant wire text.
"""

from decimal import Decimal
from enum import Enum
from typing import Any, Iterator, Optional, Tuple

import structlog

from energyexporter.models.schemas import (
    DeviceIdentity,
    DeviceSchema,
    ExtractedMetric,
)
from energyexporter.modules.schema_registry import SchemaRegistry, default_registry
from energyexporter.utils.exceptions import MissingIdentifierError

logger = structlog.get_logger(__name__)


# ============================================================================
# Value Formatting
# ============================================================================

def format_float(value: float) -> str:
    """
    Render a float in positional notation with '.' as decimal separator.

    Uses the shortest digits that round-trip, never an exponent, and drops
    a trailing '.0'. NaN and infinities render as 'NaN' and 'Infinity'.
    """
    text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_value(value: Any) -> str:
    """
    Render a metric value as wire text.

    Enumeration members render their symbolic name, floats render through
    format_float and everything else through str().
    """
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, float):
        return format_float(value)
    return str(value)


def _read(device: Any, accessor: Optional[str]) -> Any:
    if accessor is None:
        return None
    return getattr(device, accessor, None)


# ============================================================================
# Extracted Metrics
# ============================================================================

class ExtractedMetrics:
    """
    Lazy sequence of (field, formatted value) pairs of one device.

    Every iteration walks the record again, so the sequence can be consumed
    any number of times.
    """

    def __init__(self, device: Any, schema: DeviceSchema):
        self.device = device
        self.schema = schema

    def metrics(self) -> Iterator[ExtractedMetric]:
        for descriptor in self.schema.metrics:
            value = getattr(self.device, descriptor.accessor, None)
            if value is None:
                continue
            yield ExtractedMetric(
                descriptor=descriptor,
                value=value,
                formatted=format_value(value),
            )

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        for metric in self.metrics():
            yield metric.field, metric.formatted


# ============================================================================
# Schema Extractor
# ============================================================================

class SchemaExtractor:
    """
    Extracts metric values and identity from device records.
    """

    def __init__(self, registry: Optional[SchemaRegistry] = None):
        self.registry = registry if registry is not None else default_registry

    def schema_for(self, device: Any) -> DeviceSchema:
        return self.registry.get(device)

    def extract(self, device: Any) -> ExtractedMetrics:
        """
        Extract the (field, formatted value) pairs of a device.

        Schema errors are raised here, before anything is iterated.
        """
        return ExtractedMetrics(device, self.schema_for(device))

    def metrics(self, device: Any) -> Iterator[ExtractedMetric]:
        """Extract the metrics of a device, with their descriptors and raw values."""
        return self.extract(device).metrics()

    def identity(self, device: Any) -> DeviceIdentity:
        """
        Resolve the identity of a device through its device info descriptor.

        Raises:
            UnknownDeviceTypeError: if the device type has no schema
            MissingDeviceInfoError: if the schema has no device info descriptor
            MissingIdentifierError: if the identifier is None or empty

        Descriptive fields that are not strings resolve to an empty string.
        """
        schema = self.schema_for(device)
        info = schema.require_device_info()

        device_id = _read(device, info.id)
        if device_id is None or str(device_id) == "":
            raise MissingIdentifierError(schema.name, info.id)

        def text(accessor: Optional[str]) -> str:
            value = _read(device, accessor)
            return value if isinstance(value, str) else ""

        return DeviceIdentity(
            measurement=schema.measurement,
            device_id=str(device_id),
            manufacturer=text(info.manufacturer),
            model=text(info.model),
            name=text(info.name),
            sw_version=text(info.sw_version),
        )
