"""
EnergyExporter Custom Exceptions

Centralized exception definitions for consistent error handling across the exporter.
All exceptions inherit from EnergyExporterError for unified error handling.
"""

from typing import Any, Dict, List, Optional


class EnergyExporterError(Exception):
    """
    Base exception for all EnergyExporter errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional error context
        recoverable: Whether the error is recoverable
    """

    def __init__(
        self,
        message: str,
        code: str = "ENERGYEXPORTER_ERROR",
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = True,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}
        self.recoverable = recoverable

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }

    def __str__(self) -> str:
        if self.details:
            return f"[{self.code}] {self.message} - {self.details}"
        return f"[{self.code}] {self.message}"


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(EnergyExporterError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        if field:
            details["field"] = field
        super().__init__(
            message=message,
            code="CONFIG_ERROR",
            details=details,
            recoverable=False,
            **kwargs
        )


# =============================================================================
# Schema Errors
# =============================================================================

class SchemaError(EnergyExporterError):
    """
    Base class for device schema errors.

    A schema error is an authoring defect, never a transient condition,
    so it is not recoverable by retrying.
    """

    def __init__(self, message: str, device_type: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        if device_type:
            details["device_type"] = device_type
        super().__init__(
            message=message,
            code="SCHEMA_ERROR",
            details=details,
            recoverable=False,
            **kwargs
        )
        self.device_type = device_type


class SchemaDefinitionError(SchemaError):
    """Raised when a device schema is malformed at definition time."""

    def __init__(self, device_type: str, reason: str, **kwargs):
        details = kwargs.pop("details", {})
        details["reason"] = reason
        super().__init__(
            message=f"Invalid schema for device {device_type}: {reason}",
            device_type=device_type,
            details=details,
            **kwargs
        )
        self.code = "SCHEMA_DEFINITION_ERROR"


class UnknownDeviceTypeError(SchemaError):
    """Raised when a device type has no registered schema, hence no measurement name."""

    def __init__(self, device_type: str, **kwargs):
        super().__init__(
            message=f"Device {device_type} has no measurement schema",
            device_type=device_type,
            **kwargs
        )
        self.code = "UNKNOWN_DEVICE_TYPE"


class MissingDeviceInfoError(SchemaError):
    """Raised when a device type has no device info descriptor."""

    def __init__(self, device_type: str, **kwargs):
        super().__init__(
            message=f"Device {device_type} has no device info descriptor",
            device_type=device_type,
            **kwargs
        )
        self.code = "MISSING_DEVICE_INFO"


class MissingIdentifierError(SchemaError):
    """Raised when a device instance does not resolve a usable identifier."""

    def __init__(self, device_type: str, accessor: str, **kwargs):
        details = kwargs.pop("details", {})
        details["accessor"] = accessor
        super().__init__(
            message=f"Device {device_type} has no value for identifier '{accessor}'",
            device_type=device_type,
            details=details,
            **kwargs
        )
        self.code = "MISSING_IDENTIFIER"


class DeviceExportError(SchemaError):
    """Raised after an export round in which one or more devices failed on schema errors."""

    def __init__(self, errors: List[SchemaError], **kwargs):
        details = kwargs.pop("details", {})
        details["devices"] = [e.device_type for e in errors]
        super().__init__(
            message=f"Export failed for {len(errors)} device(s)",
            details=details,
            **kwargs
        )
        self.code = "DEVICE_EXPORT_FAILED"
        self.errors = errors


# =============================================================================
# Output Errors
# =============================================================================

class OutputError(EnergyExporterError):
    """Base class for output/publishing errors."""

    def __init__(self, message: str, output_type: str, **kwargs):
        details = kwargs.pop("details", {})
        details["output_type"] = output_type
        super().__init__(
            message=message,
            code="OUTPUT_ERROR",
            details=details,
            **kwargs
        )


class BrokerConnectionError(OutputError):
    """Raised when the broker refuses or never acknowledges a connection."""

    def __init__(self, host: str, port: int, reason: str = "", **kwargs):
        details = kwargs.pop("details", {})
        details.update({"host": host, "port": port, "reason": reason})
        super().__init__(
            message=f"Failed to connect to mqtt at {host}:{port}",
            output_type="mqtt",
            details=details,
            **kwargs
        )
        self.code = "CONNECTION_FAILED"


class PublishError(OutputError):
    """Raised when publishing a message fails."""

    def __init__(self, output_type: str, destination: str, reason: str, **kwargs):
        details = kwargs.pop("details", {})
        details.update({
            "destination": destination,
            "reason": reason
        })
        super().__init__(
            message=f"Failed to publish to {output_type}: {reason}",
            output_type=output_type,
            details=details,
            **kwargs
        )
        self.code = "PUBLISH_ERROR"
