"""
Unit tests for the Prometheus Exporter module.
"""

import pytest

from energyexporter.devices import SolarEdgeBatteryStatus
from energyexporter.modules import prometheus_exporter
from energyexporter.modules.prometheus_exporter import PrometheusExporter, numeric_value
from energyexporter.utils.config import PrometheusSettings

from .conftest import NamelessMeter, Unschematized


@pytest.fixture
def devices(battery, sparse_battery, meter) -> list:
    return [battery, sparse_battery, meter]


@pytest.fixture
def exporter(registry, devices) -> PrometheusExporter:
    return PrometheusExporter(PrometheusSettings(enabled=True), lambda: devices, registry=registry)


def collect(exporter: PrometheusExporter) -> dict:
    return {family.name: family for family in exporter.collector.collect()}


class TestNumericValue:

    def test_values(self):
        assert numeric_value(398.2) == 398.2
        assert numeric_value(3) == 3.0
        assert numeric_value(True) == 1.0
        assert numeric_value(SolarEdgeBatteryStatus.Charging) == 3.0
        assert numeric_value("SolarEdge") is None


class TestDeviceCollector:
    """Tests for scrape-time collection."""

    def test_gauge_samples_per_device(self, exporter):
        voltage = collect(exporter)["solaredge_battery_voltage"]
        assert voltage.type == "gauge"
        assert voltage.documentation == "Voltage"
        assert {s.labels["device_id"]: s.value for s in voltage.samples} == {"1": 398.2, "2": 398.2}

    def test_counter_family(self, exporter):
        family = collect(exporter)["solaredge_battery_lifetime_exported_energy"]
        assert family.type == "counter"
        assert family.samples[0].name == "solaredge_battery_lifetime_exported_energy_total"
        assert family.samples[0].value == 1234567.0

    def test_enum_exported_as_number(self, exporter):
        status = collect(exporter)["solaredge_battery_status"]
        assert {s.labels["device_id"]: s.value for s in status.samples} == {"1": 3.0, "2": 7.0}

    def test_only_metrics_with_prometheus_metadata(self, exporter):
        names = set(collect(exporter))
        assert "solaredge_battery_charge" in names
        assert not any("last_event" in name for name in names)
        assert not any("frequency" in name for name in names)

    def test_null_values_skipped(self, exporter):
        capacity = collect(exporter)["solaredge_battery_capacity"]
        assert [s.labels["device_id"] for s in capacity.samples] == ["1"]

    def test_broken_devices_skipped(self, registry, battery):
        devices = [NamelessMeter(frequency=50.0), Unschematized(), battery]
        exporter = PrometheusExporter(PrometheusSettings(), lambda: devices, registry=registry)
        assert len(collect(exporter)["solaredge_battery_voltage"].samples) == 1

    def test_reads_latest_devices(self, registry, battery, sparse_battery):
        devices = [battery]
        exporter = PrometheusExporter(PrometheusSettings(), lambda: devices, registry=registry)
        assert len(collect(exporter)["solaredge_battery_voltage"].samples) == 1

        devices.append(sparse_battery)
        assert len(collect(exporter)["solaredge_battery_voltage"].samples) == 2


class TestPrometheusExporter:
    """Tests for the exposition endpoint."""

    def test_render(self, exporter):
        output = exporter.render().decode("utf-8")
        assert "# HELP solaredge_battery_voltage Voltage" in output
        assert "# TYPE solaredge_battery_voltage gauge" in output
        assert 'solaredge_battery_voltage{device_id="1"} 398.2' in output
        assert "# TYPE solaredge_battery_lifetime_exported_energy counter" in output

    def test_content_type(self, exporter):
        assert exporter.content_type.startswith("text/plain")

    def test_start_server_once(self, exporter, monkeypatch):
        calls = []
        monkeypatch.setattr(
            prometheus_exporter, "start_http_server", lambda *args, **kwargs: calls.append(kwargs)
        )

        exporter.start_server()
        exporter.start_server()

        assert len(calls) == 1
        assert calls[0]["registry"] is exporter.collector_registry

    def test_disabled_server(self, registry, monkeypatch):
        calls = []
        monkeypatch.setattr(
            prometheus_exporter, "start_http_server", lambda *args, **kwargs: calls.append(kwargs)
        )

        exporter = PrometheusExporter(PrometheusSettings(enabled=False), list, registry=registry)
        exporter.start_server()
        assert calls == []
