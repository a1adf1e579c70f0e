"""
Pytest configuration and shared fixtures.
"""

import threading
from enum import Enum
from typing import Optional

import pytest
import structlog
from paho.mqtt.packettypes import PacketTypes
from paho.mqtt.reasoncodes import ReasonCode
from pydantic import BaseModel, ConfigDict

from energyexporter.devices import (
    SOLAREDGE_BATTERY_SCHEMA,
    SolarEdgeBattery,
    SolarEdgeBatteryStatus,
)
from energyexporter.models.schemas import (
    DeviceInfoDescriptor,
    DeviceSchema,
    MetricDescriptor,
    sensor,
)
from energyexporter.modules.schema_extractor import SchemaExtractor
from energyexporter.modules.schema_registry import SchemaRegistry
from energyexporter.utils.config import MqttSettings


# ============================================================================
# Device records
# ============================================================================

class GridState(Enum):
    ON_GRID = 1
    OFF_GRID = 2


class GridMeter(BaseModel):
    """A second device type, to show schemas are not battery specific."""

    model_config = ConfigDict(frozen=True)

    serial: Optional[str] = None
    vendor: Optional[str] = None
    label: Optional[str] = None
    frequency: Optional[float] = None
    import_energy: Optional[int] = None
    firmware: Optional[int] = None
    grid_state: Optional[GridState] = None


class Unschematized(BaseModel):
    value: float = 1.0


GRID_METER_SCHEMA = DeviceSchema(
    name="meter",
    measurement="grid_meter",
    device_info=DeviceInfoDescriptor(
        id="serial", manufacturer="vendor", name="label", sw_version="firmware"
    ),
    metrics=[
        MetricDescriptor(
            field="frequency",
            accessor="frequency",
            classification=sensor(unit="Hz", device_class="frequency", state_class="measurement"),
        ),
        MetricDescriptor(
            field="import_energy",
            accessor="import_energy",
            classification=sensor(unit="Wh", state_class="total_increasing"),
        ),
        MetricDescriptor(field="grid_state", accessor="grid_state"),
    ],
)


class NamelessMeter(GridMeter):
    """A meter type registered without device info."""


NAMELESS_METER_SCHEMA = DeviceSchema(
    name="nameless_meter",
    measurement="nameless_meter",
    metrics=[MetricDescriptor(field="frequency", accessor="frequency")],
)


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo logging configuration done by a test, e.g. through the CLI."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def registry() -> SchemaRegistry:
    """A fresh registry holding the battery, meter and nameless meter schemas."""
    registry = SchemaRegistry()
    registry.register(SolarEdgeBattery, SOLAREDGE_BATTERY_SCHEMA)
    registry.register(GridMeter, GRID_METER_SCHEMA)
    registry.register(NamelessMeter, NAMELESS_METER_SCHEMA)
    return registry


@pytest.fixture
def extractor(registry) -> SchemaExtractor:
    return SchemaExtractor(registry)


@pytest.fixture
def battery() -> SolarEdgeBattery:
    """A battery with every register populated."""
    return SolarEdgeBattery(
        device_identifier="1",
        manufacturer="SolarEdge",
        model="BAT-10K1P",
        version="1.2.3",
        serial_number="7E1234AB",
        device_address=15,
        rated_capacity=9700.0,
        max_charge_continuous_power=5000.0,
        max_discharge_continuous_power=5000.0,
        max_charge_peak_power=7500.0,
        max_discharge_peak_power=7500.0,
        avg_temperature=24.5,
        max_temperature=26.0,
        voltage=398.2,
        current=-1.5,
        power=-597.3,
        lifetime_exported_energy=1234567,
        lifetime_imported_energy=2345678,
        capacity=9200.0,
        charge=4600.0,
        capacity_percent=94.8,
        charge_percent=50.0,
        status=SolarEdgeBatteryStatus.Charging,
        vendor_status=3,
        last_event=0,
    )


@pytest.fixture
def sparse_battery() -> SolarEdgeBattery:
    """A battery where only a few registers could be decoded."""
    return SolarEdgeBattery(
        device_identifier="2",
        voltage=398.2,
        status=SolarEdgeBatteryStatus.Idle,
        last_event=4,
    )


@pytest.fixture
def meter() -> GridMeter:
    return GridMeter(
        serial="M-001",
        vendor="Acme",
        label="House meter",
        frequency=50.01,
        import_energy=1000,
        firmware=7,
        grid_state=GridState.ON_GRID,
    )


@pytest.fixture
def mqtt_settings() -> MqttSettings:
    return MqttSettings(
        enabled=True,
        broker_host="broker.local",
        broker_port=1883,
        topic="energy",
        discovery_topic="homeassistant",
        connect_timeout=0.2,
    )


# ============================================================================
# Fake paho client
# ============================================================================

class FakeMessageInfo:
    def __init__(self, rc: int = 0):
        self.rc = rc


class FakeMqttClient:
    """
    Stand-in for paho.mqtt.client.Client.

    loop_start() delivers the CONNACK synchronously; ``connack`` selects the
    reason code, None means the broker never answers.
    """

    def __init__(self, connack: Optional[str] = "Success", connect_error=None, publish_rc=0):
        self.connack = connack
        self.connect_error = connect_error
        self.publish_rc = publish_rc

        self.on_connect = None
        self.on_disconnect = None
        self.connected = False
        self.loop_running = False
        self.connect_calls = 0
        self.loop_start_calls = 0
        self.loop_stop_calls = 0
        self.disconnect_calls = 0
        self.published: list[tuple] = []
        self.threads: dict[str, int] = {}
        self._awaiting_connack = False

    def connect(self, host, port=1883, keepalive=60):
        self.connect_calls += 1
        if self.connect_error is not None:
            raise self.connect_error
        self._awaiting_connack = True
        return 0

    def loop_start(self):
        self.loop_start_calls += 1
        self.loop_running = True
        if self._awaiting_connack and self.connack is not None:
            self._awaiting_connack = False
            reason = ReasonCode(PacketTypes.CONNACK, self.connack)
            self.connected = not reason.is_failure
            self.on_connect(self, None, {}, reason, None)

    def loop_stop(self):
        self.threads["loop_stop"] = threading.get_ident()
        self.loop_stop_calls += 1
        self.loop_running = False

    def is_connected(self):
        return self.connected

    def publish(self, topic, payload=None, qos=0, retain=False):
        self.published.append((topic, payload, qos, retain))
        return FakeMessageInfo(self.publish_rc)

    def disconnect(self):
        self.threads["disconnect"] = threading.get_ident()
        self.disconnect_calls += 1
        was_connected = self.connected
        self.connected = False
        if was_connected and self.on_disconnect is not None:
            reason = ReasonCode(PacketTypes.DISCONNECT, "Normal disconnection")
            self.on_disconnect(self, None, None, reason, None)
        return 0

    def drop(self):
        """Simulate the broker going away."""
        self.connected = False
        self.on_disconnect(
            self, None, None, ReasonCode(PacketTypes.DISCONNECT, "Unspecified error"), None
        )

    @property
    def topics(self) -> list[str]:
        return [p[0] for p in self.published]


@pytest.fixture
def fake_client() -> FakeMqttClient:
    return FakeMqttClient()


@pytest.fixture
def client_factory(fake_client):
    return lambda settings: fake_client
