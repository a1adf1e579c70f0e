"""
EnergyExporter Schema Registry Module

Maps device record classes to their declarative schemas. Schemas are checked
once, when they are registered, so that every later lookup can trust them.
"""

import re
from typing import Any, Dict, List, Optional

import structlog

from energyexporter.models.schemas import DeviceSchema
from energyexporter.utils.exceptions import SchemaDefinitionError, UnknownDeviceTypeError

logger = structlog.get_logger(__name__)

# Names end up as single MQTT topic levels.
_INVALID_NAME = re.compile(r"[/+#\s]")


def _declares(device_type: type, accessor: str) -> bool:
    """Check that a record class exposes an attribute, without instantiating it."""
    if accessor in getattr(device_type, "model_fields", {}):
        return True
    if accessor in getattr(device_type, "__dataclass_fields__", {}):
        return True
    return hasattr(device_type, accessor)


def _check_name(device_type: str, kind: str, name: str) -> None:
    if not name:
        raise SchemaDefinitionError(device_type, f"empty {kind} name")
    if _INVALID_NAME.search(name):
        raise SchemaDefinitionError(
            device_type, f"{kind} name '{name}' contains a topic separator, wildcard or space"
        )


def validate_schema(device_type: type, schema: DeviceSchema) -> None:
    """
    Validate a schema against the record class it describes.

    Raises:
        SchemaDefinitionError: on invalid or duplicate names and unknown accessors
    """
    _check_name(schema.name, "measurement", schema.measurement)

    seen: set[str] = set()
    for metric in schema.metrics:
        _check_name(schema.name, "field", metric.field)
        if metric.field in seen:
            raise SchemaDefinitionError(schema.name, f"duplicate field name '{metric.field}'")
        seen.add(metric.field)
        if not _declares(device_type, metric.accessor):
            raise SchemaDefinitionError(
                schema.name,
                f"{device_type.__name__} has no attribute '{metric.accessor}'",
            )

    if schema.device_info is not None:
        info = schema.device_info
        for accessor in (info.id, info.manufacturer, info.model, info.name, info.sw_version):
            if accessor is not None and not _declares(device_type, accessor):
                raise SchemaDefinitionError(
                    schema.name,
                    f"{device_type.__name__} has no attribute '{accessor}'",
                )


class SchemaRegistry:
    """
    Registry of device schemas keyed by record class.
    Subclasses of a registered class resolve to the nearest registered base.
    """

    def __init__(self):
        self._schemas: Dict[type, DeviceSchema] = {}

    def register(self, device_type: type, schema: DeviceSchema) -> DeviceSchema:
        """Validate and register the schema of a device record class."""
        if device_type in self._schemas:
            raise SchemaDefinitionError(
                schema.name, f"{device_type.__name__} is already registered"
            )
        validate_schema(device_type, schema)
        self._schemas[device_type] = schema
        logger.debug(
            "Registered device schema",
            device_type=schema.name,
            measurement=schema.measurement,
            metrics=len(schema.metrics),
        )
        return schema

    def find(self, device: Any) -> Optional[DeviceSchema]:
        """Look up the schema of a record class or instance, None if unknown."""
        device_type = device if isinstance(device, type) else type(device)
        for klass in device_type.__mro__:
            schema = self._schemas.get(klass)
            if schema is not None:
                return schema
        return None

    def get(self, device: Any) -> DeviceSchema:
        """
        Look up the schema of a record class or instance.

        Raises:
            UnknownDeviceTypeError: if no schema supplies a measurement name
        """
        schema = self.find(device)
        if schema is None:
            device_type = device if isinstance(device, type) else type(device)
            raise UnknownDeviceTypeError(device_type.__name__)
        return schema

    def type_named(self, name: str) -> Optional[type]:
        """Find a registered record class by its schema name."""
        for device_type, schema in self._schemas.items():
            if schema.name == name:
                return device_type
        return None

    def device_types(self) -> List[type]:
        return list(self._schemas)

    def schemas(self) -> List[DeviceSchema]:
        return list(self._schemas.values())

    def __contains__(self, device: Any) -> bool:
        return self.find(device) is not None

    def __len__(self) -> int:
        return len(self._schemas)


default_registry = SchemaRegistry()


def register_device_schema(device_type: type, schema: DeviceSchema) -> DeviceSchema:
    """Register a schema with the process-wide registry."""
    return default_registry.register(device_type, schema)
