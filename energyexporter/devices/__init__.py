"""
EnergyExporter Device Types

Importing this package registers every known device schema with the
default schema registry.
"""

from energyexporter.devices.solaredge_battery import (
    SOLAREDGE_BATTERY_SCHEMA,
    SolarEdgeBattery,
    SolarEdgeBatteryStatus,
)

__all__ = [
    "SOLAREDGE_BATTERY_SCHEMA",
    "SolarEdgeBattery",
    "SolarEdgeBatteryStatus",
]
