"""
EnergyExporter Prometheus Exporter Module

Exposes device metrics on a pull-based Prometheus endpoint.

Usage:
    exporter = PrometheusExporter(settings.prometheus, lambda: catalog.devices)
    exporter.start_server()

Values are read from the device catalog at scrape time, so the endpoint
always serves the latest records.
"""

from enum import Enum
from typing import Any, Callable, Dict, Iterable, Iterator, Optional

import structlog
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    generate_latest,
    start_http_server,
)
from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily, Metric
from prometheus_client.registry import Collector

from energyexporter.models.schemas import MetricType
from energyexporter.modules.schema_extractor import SchemaExtractor
from energyexporter.modules.schema_registry import SchemaRegistry
from energyexporter.utils.config import PrometheusSettings
from energyexporter.utils.exceptions import SchemaError

logger = structlog.get_logger(__name__)

DEVICE_LABELS = ["device_id"]


def numeric_value(value: Any) -> Optional[float]:
    """Numeric sample value of a metric, None for values Prometheus cannot hold."""
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, (bool, int, float)):
        return float(value)
    return None


class DeviceCollector(Collector):
    """Collects one sample per device for every metric with Prometheus metadata."""

    def __init__(self, device_source: Callable[[], Iterable[Any]], extractor: SchemaExtractor):
        self.device_source = device_source
        self.extractor = extractor

    def collect(self) -> Iterator[Metric]:
        families: Dict[str, Metric] = {}

        for device in self.device_source():
            try:
                identity = self.extractor.identity(device)
                metrics = list(self.extractor.metrics(device))
            except SchemaError as e:
                logger.error(
                    "Skipping device in scrape",
                    device_type=type(device).__name__,
                    exc_info=e,
                )
                continue

            for metric in metrics:
                spec = metric.descriptor.prometheus
                if spec is None:
                    continue
                value = numeric_value(metric.value)
                if value is None:
                    continue

                family = families.get(spec.name)
                if family is None:
                    family_cls = (
                        CounterMetricFamily
                        if spec.metric_type == MetricType.COUNTER
                        else GaugeMetricFamily
                    )
                    family = family_cls(spec.name, spec.help, labels=DEVICE_LABELS)
                    families[spec.name] = family
                family.add_metric([identity.device_id], value)

        yield from families.values()


class PrometheusExporter:
    """
    Serves device metrics in the Prometheus exposition format.
    """

    def __init__(
        self,
        settings: PrometheusSettings,
        device_source: Callable[[], Iterable[Any]],
        registry: Optional[SchemaRegistry] = None,
    ):
        self.settings = settings
        self.collector_registry = CollectorRegistry()
        self.collector = DeviceCollector(device_source, SchemaExtractor(registry))
        self.collector_registry.register(self.collector)
        self._server_started = False

    def render(self) -> bytes:
        """Get metrics in Prometheus exposition format."""
        return generate_latest(self.collector_registry)

    @property
    def content_type(self) -> str:
        return CONTENT_TYPE_LATEST

    def start_server(self) -> None:
        """Start the HTTP endpoint, once."""
        if not self.settings.enabled:
            logger.debug("Prometheus output disabled, not starting server")
            return
        if self._server_started:
            return
        start_http_server(
            self.settings.port, addr=self.settings.host, registry=self.collector_registry
        )
        self._server_started = True
        logger.info("Prometheus endpoint started", host=self.settings.host, port=self.settings.port)
