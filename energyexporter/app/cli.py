"""
EnergyExporter Command Line Interface

Provides CLI commands for checking configuration and inspecting device schemas.
"""

import argparse
import asyncio
import json
import sys
from typing import Optional

from energyexporter import __version__
from energyexporter.utils.config import get_settings
from energyexporter.utils.logging import configure_logging, get_logger


def create_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="energyexporter",
        description="Republish energy device telemetry to MQTT, Prometheus and InfluxDB",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  energyexporter check                  Check configuration
  energyexporter check --full           Check configuration and broker connectivity
  energyexporter schema list            List device types and their metrics
  energyexporter test battery '{"device_identifier": "1", "voltage": 398.2}'
                                        Show the MQTT messages of a device record
  energyexporter version                Show version information

Environment Variables:
  ENERGYEXPORTER_ENV                    Environment (development/staging/production)
  LOG_LEVEL                             Logging level (DEBUG/INFO/WARNING/ERROR)
  MQTT_BROKER_HOST                      MQTT broker hostname
  MQTT_TOPIC                            Base topic for state messages
  MQTT_DISCOVERY_TOPIC                  Home Assistant discovery prefix
  INFLUXDB_URL                          InfluxDB base URL
        """,
    )

    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (can be repeated)",
    )

    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress non-error output",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Check command
    check_parser = subparsers.add_parser(
        "check",
        help="Check configuration and connectivity",
    )
    check_parser.add_argument(
        "--full",
        action="store_true",
        help="Also connect to the MQTT broker",
    )

    # Version command
    subparsers.add_parser(
        "version",
        help="Show version information",
    )

    # Schema command
    schema_parser = subparsers.add_parser(
        "schema",
        help="Device schema commands",
    )
    schema_subparsers = schema_parser.add_subparsers(dest="schema_command")
    schema_subparsers.add_parser(
        "list",
        help="List registered device types",
    )

    # Test command
    test_parser = subparsers.add_parser(
        "test",
        help="Show the MQTT messages built for a device record",
    )
    test_parser.add_argument(
        "device_type",
        type=str,
        help="Device type name (see 'schema list')",
    )
    test_parser.add_argument(
        "input",
        type=str,
        help="Device record (JSON string or @filename)",
    )

    return parser


def get_log_level(verbose: int, quiet: bool) -> str:
    """Determine log level from verbosity flags."""
    if quiet:
        return "ERROR"
    if verbose >= 2:
        return "DEBUG"
    if verbose >= 1:
        return "INFO"
    return get_settings().log_level


async def _check_broker() -> Optional[str]:
    from energyexporter.modules.connection_manager import MqttConnectionManager

    connection = MqttConnectionManager(get_settings().mqtt)
    try:
        await connection.ensure_connected()
        return None
    except Exception as e:
        return str(e)
    finally:
        await connection.shutdown()


def cmd_check(args: argparse.Namespace) -> int:
    """Run the check command."""
    from energyexporter.modules.schema_registry import default_registry

    settings = get_settings()

    print("EnergyExporter Configuration Check")
    print("=" * 40)
    print()

    errors = []
    warnings = []

    print(f"Environment: {settings.env}")
    print(f"Log Level: {settings.log_level}")
    print()

    print("Outputs:")
    print(f"  MQTT: {'enabled' if settings.mqtt.enabled else 'disabled'}")
    if settings.mqtt.enabled:
        print(f"    Broker: {settings.mqtt.broker_host}:{settings.mqtt.broker_port}")
        print(f"    Topic: {settings.mqtt.topic}")
        print(f"    Discovery: {settings.mqtt.discovery_topic}")
    print(f"  Prometheus: {'enabled' if settings.prometheus.enabled else 'disabled'}")
    if settings.prometheus.enabled:
        print(f"    Address: {settings.prometheus.host}:{settings.prometheus.port}")
    print(f"  InfluxDB: {'enabled' if settings.influxdb.enabled else 'disabled'}")
    if settings.influxdb.enabled:
        print(f"    URL: {settings.influxdb.url}")
        print(f"    Bucket: {settings.influxdb.org}/{settings.influxdb.bucket}")
    print()

    if not (settings.mqtt.enabled or settings.prometheus.enabled or settings.influxdb.enabled):
        warnings.append("No output is enabled")

    print("Device Schemas:")
    for schema in default_registry.schemas():
        if schema.device_info is None:
            warnings.append(f"Device {schema.name} has no device info and cannot be published")
        print(f"  {schema.name}: {len(schema.metrics)} metrics")
    if len(default_registry) == 0:
        errors.append("No device schemas registered")
    print()

    if args.full and settings.mqtt.enabled:
        print("Connectivity Checks:")
        failure = asyncio.run(_check_broker())
        if failure is None:
            print("  MQTT: OK")
        else:
            errors.append(f"MQTT connection failed: {failure}")
            print(f"  MQTT: FAILED - {failure}")
        print()

    print("=" * 40)
    if errors:
        print(f"ERRORS: {len(errors)}")
        for err in errors:
            print(f"  - {err}")
    if warnings:
        print(f"WARNINGS: {len(warnings)}")
        for warn in warnings:
            print(f"  - {warn}")
    if not errors and not warnings:
        print("All checks passed!")

    return 1 if errors else 0


def cmd_version(args: argparse.Namespace) -> int:
    """Run the version command."""
    print(f"EnergyExporter v{__version__}")
    print()
    print("Python:", sys.version.split()[0])
    print("Platform:", sys.platform)
    return 0


def cmd_schema_list(args: argparse.Namespace) -> int:
    """List registered device types and their metrics."""
    from energyexporter.modules.schema_registry import default_registry

    for device_type, schema in zip(default_registry.device_types(), default_registry.schemas()):
        print(f"{schema.name} ({device_type.__name__}) -> {schema.measurement}")
        for metric in schema.metrics:
            line = f"  - {metric.field}"
            classification = metric.classification
            if classification is not None:
                tags = [
                    v for v in (
                        classification.unit,
                        classification.device_class,
                        classification.state_class,
                    )
                    if v
                ]
                line += f" [discovery: {', '.join(tags) or 'unclassified'}]"
            if metric.prometheus is not None:
                line += f" [{metric.prometheus.metric_type.value}]"
            print(line)
    return 0


def cmd_test(args: argparse.Namespace) -> int:
    """Build and print the state and discovery messages of a device record."""
    from energyexporter.modules.discovery_publisher import DiscoveryPublisher
    from energyexporter.modules.schema_extractor import SchemaExtractor
    from energyexporter.modules.schema_registry import default_registry
    from energyexporter.modules.state_publisher import StatePublisher

    settings = get_settings()

    if args.input.startswith("@"):
        with open(args.input[1:], "r") as f:
            input_data = f.read()
    else:
        input_data = args.input

    try:
        payload = json.loads(input_data)
    except json.JSONDecodeError as e:
        print(f"Error: Invalid JSON input - {e}")
        return 1

    device_type = default_registry.type_named(args.device_type)
    if device_type is None:
        print(f"Error: Unknown device type '{args.device_type}'")
        return 1
    device = device_type.model_validate(payload)

    extractor = SchemaExtractor()
    state = StatePublisher(settings.mqtt.topic, extractor)
    discovery = DiscoveryPublisher(settings.mqtt.topic, settings.mqtt.discovery_topic, extractor)

    print("State Messages:")
    for message in state.build_messages(device):
        print(f"  {message.topic} = {message.payload}")
    print()

    print("Discovery Messages:")
    for message in discovery.build_messages(device):
        print(f"  {message.topic}")
        for line in message.payload.splitlines():
            print(f"    {line}")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        log_level = get_log_level(args.verbose, args.quiet)
        settings = get_settings()
    except Exception as e:
        print(f"Error: Invalid configuration - {e}", file=sys.stderr)
        return 1

    configure_logging(
        log_level=log_level,
        json_logs=settings.json_logs,
        development=settings.is_development,
    )
    logger = get_logger("cli")

    # Register the built-in device types
    import energyexporter.devices  # noqa: F401

    if args.command is None:
        parser.print_help()
        return 0

    try:
        if args.command == "check":
            return cmd_check(args)
        elif args.command == "version":
            return cmd_version(args)
        elif args.command == "schema":
            if args.schema_command == "list":
                return cmd_schema_list(args)
            parser.print_help()
            return 1
        elif args.command == "test":
            return cmd_test(args)
        else:
            parser.print_help()
            return 1
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130
    except Exception as e:
        logger.debug("Command failed", command=args.command, exc_info=e)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
