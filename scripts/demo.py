#!/usr/bin/env python3
"""
EnergyExporter Demo

Feeds two SolarEdge battery records through every sink and shows what each
one would receive: MQTT state messages, Home Assistant discovery documents,
the Prometheus exposition and InfluxDB line protocol.

Usage:
    python scripts/demo.py                          # Print messages only (no broker needed)
    python scripts/demo.py --broker localhost       # Also publish to a running broker
"""

import argparse
import asyncio
import sys

from energyexporter.devices import SolarEdgeBattery, SolarEdgeBatteryStatus

# ---------------------------------------------------------------------------
# The demo batteries: one fully decoded, one with only a few registers read
# ---------------------------------------------------------------------------

BATTERIES = [
    SolarEdgeBattery(
        device_identifier="1",
        manufacturer="SolarEdge",
        model="BAT-10K1P",
        version="1.2.3",
        serial_number="7E1234AB",
        rated_capacity=9700.0,
        avg_temperature=24.5,
        max_temperature=26.0,
        voltage=398.2,
        current=-1.5,
        power=-597.3,
        lifetime_exported_energy=1234567,
        lifetime_imported_energy=2345678,
        capacity=9200.0,
        charge_percent=50.0,
        status=SolarEdgeBatteryStatus.Charging,
    ),
    SolarEdgeBattery(
        device_identifier="2",
        voltage=401.0,
        status=SolarEdgeBatteryStatus.Idle,
    ),
]


def _bold(text: str) -> str:
    return f"\033[1m{text}\033[0m"


def _green(text: str) -> str:
    return f"\033[32m{text}\033[0m"


def _cyan(text: str) -> str:
    return f"\033[36m{text}\033[0m"


def _dim(text: str) -> str:
    return f"\033[2m{text}\033[0m"


def _section(title: str) -> None:
    print(_bold(f"--- {title} ---"))
    print()


# ---------------------------------------------------------------------------
# In-process rendering (no broker needed)
# ---------------------------------------------------------------------------


def show_messages(topic: str, discovery_topic: str) -> None:
    from energyexporter.modules.discovery_publisher import DiscoveryPublisher
    from energyexporter.modules.influxdb_exporter import InfluxDbExporter
    from energyexporter.modules.prometheus_exporter import PrometheusExporter
    from energyexporter.modules.schema_extractor import SchemaExtractor
    from energyexporter.modules.state_publisher import StatePublisher
    from energyexporter.utils.config import InfluxDbSettings, PrometheusSettings

    extractor = SchemaExtractor()
    state = StatePublisher(topic, extractor)
    discovery = DiscoveryPublisher(topic, discovery_topic, extractor)

    _section("MQTT state")
    for battery in BATTERIES:
        for message in state.build_messages(battery):
            print(f"  {_cyan(message.topic)} = {_green(message.payload)}")
    print()

    _section("Home Assistant discovery")
    first = discovery.build_messages(BATTERIES[0])
    for message in first[:1]:
        print(f"  {_cyan(message.topic)}")
        for line in message.payload.splitlines():
            print(f"    {_dim(line)}")
    print(f"  ... {len(first) - 1} more for battery 1, "
          f"{len(discovery.build_messages(BATTERIES[1]))} for battery 2")
    print()

    _section("Prometheus")
    prometheus = PrometheusExporter(PrometheusSettings(), lambda: BATTERIES)
    for line in prometheus.render().decode("utf-8").splitlines():
        if "voltage" in line or "status" in line:
            print(f"  {line}")
    print()

    _section("InfluxDB line protocol")
    influx = InfluxDbExporter(InfluxDbSettings())
    points, _ = influx.build_points(BATTERIES)
    for point in points:
        print(f"  {point}")
    print()


# ---------------------------------------------------------------------------
# Broker round (requires running broker)
# ---------------------------------------------------------------------------


async def publish_to_broker(host: str, port: int, topic: str, discovery_topic: str) -> None:
    from energyexporter.modules.mqtt_exporter import MqttExporter
    from energyexporter.utils.config import MqttSettings

    settings = MqttSettings(
        enabled=True,
        broker_host=host,
        broker_port=port,
        topic=topic,
        discovery_topic=discovery_topic,
    )
    exporter = MqttExporter(settings)
    try:
        announced = await exporter.publish_discovery(BATTERIES)
        published = await exporter.publish_metrics(BATTERIES)
    finally:
        await exporter.shutdown()

    print(f"  Discovery messages: {announced.messages_published}")
    print(f"  State messages:     {published.messages_published}")


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


async def main(args: argparse.Namespace) -> int:
    print()
    print(_bold("=" * 70))
    print(_bold("  EnergyExporter Demo"))
    print(_bold("=" * 70))
    print()

    show_messages(args.topic, args.discovery_topic)

    if args.broker:
        _section(f"Publishing to {args.broker}:{args.port}")
        try:
            await publish_to_broker(args.broker, args.port, args.topic, args.discovery_topic)
        except Exception as e:
            print(f"  \033[31mError: {e}\033[0m")
            print("  Is the broker running? Try: docker run -p 1883:1883 eclipse-mosquitto")
            return 1
        print()

    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="EnergyExporter Demo")
    parser.add_argument(
        "--broker",
        type=str,
        default=None,
        help="MQTT broker host. Omit to only print the messages.",
    )
    parser.add_argument("--port", type=int, default=1883, help="MQTT broker port")
    parser.add_argument("--topic", type=str, default="energy", help="Base topic")
    parser.add_argument(
        "--discovery-topic", type=str, default="homeassistant", help="Discovery prefix"
    )

    sys.exit(asyncio.run(main(parser.parse_args())))
