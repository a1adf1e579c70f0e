"""
Unit tests for the InfluxDB Exporter module.

HTTP traffic is served by httpx.MockTransport, no InfluxDB is needed.
"""

from datetime import datetime, timezone

import httpx
import pytest

from energyexporter.modules.influxdb_exporter import (
    InfluxDbExporter,
    escape_key,
    format_field_value,
)
from energyexporter.utils.config import InfluxDbSettings
from energyexporter.utils.exceptions import DeviceExportError, PublishError

from .conftest import GridMeter, GridState, NamelessMeter

TIMESTAMP = datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)


@pytest.fixture
def influx_settings() -> InfluxDbSettings:
    return InfluxDbSettings(
        enabled=True,
        url="http://influx:8086/",
        org="home",
        bucket="energy",
        token="s3cr3t",
    )


@pytest.fixture
def exporter(influx_settings, registry) -> InfluxDbExporter:
    return InfluxDbExporter(influx_settings, registry=registry)


def attach_transport(exporter: InfluxDbExporter, handler) -> None:
    exporter._http_session = httpx.AsyncClient(
        base_url=exporter.settings.url, transport=httpx.MockTransport(handler)
    )


class TestLineProtocol:
    """Tests for line protocol rendering."""

    def test_escape_key(self):
        assert escape_key("House meter") == "House\\ meter"
        assert escape_key("a,b=c") == "a\\,b\\=c"

    @pytest.mark.parametrize(
        "value,expected",
        [
            (398.2, "398.2"),
            (5.0, "5"),
            (1000, "1000i"),
            (True, "true"),
            ("SolarEdge", '"SolarEdge"'),
            ('say "hi"', '"say \\"hi\\""'),
            (GridState.ON_GRID, '"ON_GRID"'),
        ],
    )
    def test_field_values(self, value, expected):
        assert format_field_value(value) == expected

    def test_non_finite_floats_dropped(self):
        assert format_field_value(float("nan")) is None
        assert format_field_value(float("inf")) is None

    def test_sparse_battery_point(self, exporter, sparse_battery):
        assert exporter.build_point(sparse_battery, TIMESTAMP) == (
            'solaredge_battery,device_id=2 voltage=398.2,status="Idle",last_event=4i 1700000000'
        )

    def test_meter_point(self, exporter, meter):
        assert exporter.build_point(meter, TIMESTAMP) == (
            'grid_meter,device_id=M-001 frequency=50.01,import_energy=1000i,grid_state="ON_GRID" '
            "1700000000"
        )

    def test_device_without_values(self, exporter):
        device = GridMeter(serial="M-002", frequency=float("nan"))
        assert exporter.build_point(device, TIMESTAMP) is None

    def test_build_points_collects_failures(self, exporter, meter):
        points, failures = exporter.build_points([NamelessMeter(), meter], TIMESTAMP)
        assert len(points) == 1
        assert failures[0].device_type == "nameless_meter"


class TestWrite:
    """Tests for the HTTP write path."""

    @pytest.mark.asyncio
    async def test_write_request(self, exporter, sparse_battery, meter):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(204)

        attach_transport(exporter, handler)
        written = await exporter.write([sparse_battery, meter])

        assert written == 2
        request = requests[0]
        assert request.method == "POST"
        assert request.url.path == "/api/v2/write"
        assert request.url.params["org"] == "home"
        assert request.url.params["bucket"] == "energy"
        assert request.url.params["precision"] == "s"

        lines = request.content.decode("utf-8").split("\n")
        assert lines[0].startswith("solaredge_battery,device_id=2 ")
        assert lines[1].startswith("grid_meter,device_id=M-001 ")
        await exporter.close()

    @pytest.mark.asyncio
    async def test_session_headers(self, exporter):
        session = await exporter._get_session()
        assert session.headers["Authorization"] == "Token s3cr3t"
        assert session.base_url.host == "influx"
        await exporter.close()
        assert exporter._http_session is None

    @pytest.mark.asyncio
    async def test_rejected_write(self, exporter, meter):
        attach_transport(exporter, lambda request: httpx.Response(401, text="unauthorized"))

        with pytest.raises(PublishError) as exc_info:
            await exporter.write([meter])
        assert exc_info.value.details["output_type"] == "influxdb"

    @pytest.mark.asyncio
    async def test_unreachable_server(self, exporter, meter):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        attach_transport(exporter, handler)
        with pytest.raises(PublishError):
            await exporter.write([meter])

    @pytest.mark.asyncio
    async def test_broken_device_after_write(self, exporter, meter):
        bodies = []

        def handler(request):
            bodies.append(request.content.decode("utf-8"))
            return httpx.Response(204)

        attach_transport(exporter, handler)
        with pytest.raises(DeviceExportError):
            await exporter.write([NamelessMeter(frequency=50.0), meter])

        assert len(bodies) == 1
        assert bodies[0].startswith("grid_meter,")

    @pytest.mark.asyncio
    async def test_nothing_to_write(self, exporter):
        def handler(request):
            raise AssertionError("no request expected")

        attach_transport(exporter, handler)
        assert await exporter.write([]) == 0

    @pytest.mark.asyncio
    async def test_disabled_output(self, registry, meter):
        exporter = InfluxDbExporter(InfluxDbSettings(enabled=False), registry=registry)
        assert await exporter.write([meter]) == 0
        assert exporter._http_session is None
