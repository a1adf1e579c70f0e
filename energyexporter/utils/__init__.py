"""
EnergyExporter Utilities

Common utilities for configuration, logging and error handling.
"""

from energyexporter.utils.config import (
    InfluxDbSettings,
    MqttSettings,
    PrometheusSettings,
    Settings,
    get_settings,
    reload_settings,
)
from energyexporter.utils.exceptions import (
    BrokerConnectionError,
    ConfigurationError,
    DeviceExportError,
    EnergyExporterError,
    MissingDeviceInfoError,
    MissingIdentifierError,
    OutputError,
    PublishError,
    SchemaDefinitionError,
    SchemaError,
    UnknownDeviceTypeError,
)
from energyexporter.utils.logging import (
    LogContext,
    configure_logging,
    get_logger,
    log_performance,
)

__all__ = [
    # Config
    "InfluxDbSettings",
    "MqttSettings",
    "PrometheusSettings",
    "Settings",
    "get_settings",
    "reload_settings",
    # Exceptions
    "BrokerConnectionError",
    "ConfigurationError",
    "DeviceExportError",
    "EnergyExporterError",
    "MissingDeviceInfoError",
    "MissingIdentifierError",
    "OutputError",
    "PublishError",
    "SchemaDefinitionError",
    "SchemaError",
    "UnknownDeviceTypeError",
    # Logging
    "LogContext",
    "configure_logging",
    "get_logger",
    "log_performance",
]
