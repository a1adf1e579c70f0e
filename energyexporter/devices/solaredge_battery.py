"""
SolarEdge battery device record and schema.

Records are built by the Modbus transport from the battery register block
(0xE100 for battery 1, 0xE200 for battery 2) and are immutable.
Measurements in that block are float32 registers; a decoded value is kept
as the shortest decimal that reads back as the same float32, so 398.2 is
published as "398.2" rather than "398.20001220703125".
"""

import struct
from enum import IntEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from energyexporter.models.schemas import (
    DeviceInfoDescriptor,
    DeviceSchema,
    MetricDescriptor,
    counter,
    gauge,
    sensor,
)
from energyexporter.modules.schema_registry import register_device_schema


def _pack_float32(value: float) -> Optional[bytes]:
    try:
        return struct.pack("<f", value)
    except OverflowError:
        return None


def shortest_float32(value: float) -> float:
    """Return the shortest decimal for a value that is exactly a float32."""
    packed = _pack_float32(value)
    if packed is None or struct.unpack("<f", packed)[0] != value:
        return value
    for precision in range(1, 10):
        candidate = float(f"{value:.{precision}g}")
        if _pack_float32(candidate) == packed:
            return candidate
    return value


class SolarEdgeBatteryStatus(IntEnum):
    # Member names are published verbatim, so they keep SolarEdge's casing.
    Off = 0
    Standby = 1
    Initializing = 2
    Charging = 3
    Discharging = 4
    Fault = 5
    Idle = 7


class SolarEdgeBattery(BaseModel):
    """A decoded SolarEdge battery register block."""

    model_config = ConfigDict(frozen=True)

    device_identifier: str = Field(..., description="Battery index on the inverter")
    manufacturer: Optional[str] = None
    model: Optional[str] = None
    version: Optional[str] = None
    serial_number: Optional[str] = None
    device_address: Optional[int] = None
    rated_capacity: Optional[float] = None
    max_charge_continuous_power: Optional[float] = None
    max_discharge_continuous_power: Optional[float] = None
    max_charge_peak_power: Optional[float] = None
    max_discharge_peak_power: Optional[float] = None
    avg_temperature: Optional[float] = None
    max_temperature: Optional[float] = None
    voltage: Optional[float] = None
    current: Optional[float] = None
    power: Optional[float] = None
    lifetime_exported_energy: Optional[int] = None
    lifetime_imported_energy: Optional[int] = None
    capacity: Optional[float] = None
    charge: Optional[float] = None
    capacity_percent: Optional[float] = None
    charge_percent: Optional[float] = None
    status: Optional[SolarEdgeBatteryStatus] = None
    vendor_status: Optional[int] = None
    last_event: Optional[int] = None

    @field_validator("*", mode="after")
    @classmethod
    def _snap_float32(cls, value):
        if isinstance(value, float):
            return shortest_float32(value)
        return value


SOLAREDGE_BATTERY_SCHEMA = DeviceSchema(
    name="battery",
    measurement="solaredge_battery",
    device_info=DeviceInfoDescriptor(
        id="device_identifier",
        manufacturer="manufacturer",
        model="model",
        sw_version="version",
    ),
    metrics=[
        MetricDescriptor(field="manufacturer", accessor="manufacturer"),
        MetricDescriptor(field="model", accessor="model"),
        MetricDescriptor(field="version", accessor="version"),
        MetricDescriptor(field="serial_number", accessor="serial_number"),
        MetricDescriptor(field="device_address", accessor="device_address"),
        MetricDescriptor(
            field="rated_capacity",
            accessor="rated_capacity",
            prometheus=gauge("solaredge_battery_rated_capacity", "Rated capacity"),
        ),
        MetricDescriptor(
            field="max_charge_continuous_power",
            accessor="max_charge_continuous_power",
            prometheus=gauge(
                "solaredge_battery_max_charge_continuous_power", "Max charge continuous power"
            ),
        ),
        MetricDescriptor(
            field="max_discharge_continuous_power",
            accessor="max_discharge_continuous_power",
            prometheus=gauge(
                "solaredge_battery_max_discharge_continuous_power",
                "Max discharge continuous power",
            ),
        ),
        MetricDescriptor(
            field="max_charge_peak_power",
            accessor="max_charge_peak_power",
            prometheus=gauge("solaredge_battery_max_charge_peak_power", "Max charge peak power"),
        ),
        MetricDescriptor(
            field="max_discharge_peak_power",
            accessor="max_discharge_peak_power",
            prometheus=gauge(
                "solaredge_battery_max_discharge_peak_power", "Max discharge peak power"
            ),
        ),
        MetricDescriptor(
            field="avg_temperature",
            accessor="avg_temperature",
            classification=sensor(
                unit="°C", device_class="temperature", state_class="measurement"
            ),
            prometheus=gauge("solaredge_battery_avg_temperature", "Average temperature"),
        ),
        MetricDescriptor(
            field="max_temperature",
            accessor="max_temperature",
            classification=sensor(
                unit="°C", device_class="temperature", state_class="measurement"
            ),
            prometheus=gauge("solaredge_battery_max_temperature", "Maximum temperature"),
        ),
        MetricDescriptor(
            field="voltage",
            accessor="voltage",
            classification=sensor(unit="V", device_class="voltage", state_class="measurement"),
            prometheus=gauge("solaredge_battery_voltage", "Voltage"),
        ),
        MetricDescriptor(
            field="current",
            accessor="current",
            classification=sensor(unit="A", device_class="current", state_class="measurement"),
            prometheus=gauge("solaredge_battery_current", "Current"),
        ),
        MetricDescriptor(
            field="power",
            accessor="power",
            classification=sensor(unit="W", device_class="power", state_class="measurement"),
            prometheus=gauge("solaredge_battery_power", "Power"),
        ),
        MetricDescriptor(
            field="lifetime_exported_energy",
            accessor="lifetime_exported_energy",
            prometheus=counter(
                "solaredge_battery_lifetime_exported_energy", "Lifetime exported energy"
            ),
        ),
        MetricDescriptor(
            field="lifetime_imported_energy",
            accessor="lifetime_imported_energy",
            prometheus=counter(
                "solaredge_battery_lifetime_imported_energy", "Lifetime imported energy"
            ),
        ),
        MetricDescriptor(
            field="capacity",
            accessor="capacity",
            classification=sensor(unit="Wh", device_class="energy"),
            prometheus=gauge("solaredge_battery_capacity", "Capacity"),
        ),
        MetricDescriptor(
            field="charge",
            accessor="charge",
            prometheus=gauge("solaredge_battery_charge", "Charge"),
        ),
        MetricDescriptor(
            field="capacity_percent",
            accessor="capacity_percent",
            classification=sensor(unit="%", state_class="measurement"),
            prometheus=gauge("solaredge_battery_capacity_percent", "Capacity in percent"),
        ),
        MetricDescriptor(
            field="charge_percent",
            accessor="charge_percent",
            classification=sensor(unit="%", state_class="measurement"),
            prometheus=gauge("solaredge_battery_charge_percent", "Charge in percent"),
        ),
        MetricDescriptor(
            field="status",
            accessor="status",
            classification=sensor(device_class="enum"),
            prometheus=gauge("solaredge_battery_status", "Status"),
        ),
        MetricDescriptor(
            field="vendor_status",
            accessor="vendor_status",
            classification=sensor(device_class="enum"),
            prometheus=gauge("solaredge_battery_vendor_status", "Vendor status"),
        ),
        MetricDescriptor(field="last_event", accessor="last_event"),
    ],
)

register_device_schema(SolarEdgeBattery, SOLAREDGE_BATTERY_SCHEMA)
