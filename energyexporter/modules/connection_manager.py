"""
EnergyExporter MQTT Connection Manager

Owns the single paho-mqtt client of the exporter. The client connects lazily
on the first publish, is reused while the broker reports it connected and is
re-established by the next publish after a disconnect.
"""

import asyncio
import threading
from enum import Enum
from typing import Any, Callable, Optional

import paho.mqtt.client as mqtt
import structlog

from energyexporter.models.schemas import MqttMessage
from energyexporter.utils.config import MqttSettings
from energyexporter.utils.exceptions import BrokerConnectionError, PublishError

logger = structlog.get_logger(__name__)


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


def create_client(settings: MqttSettings) -> mqtt.Client:
    """Create a paho client from settings."""
    # The network loop must not reconnect on its own; the next publish does.
    client = mqtt.Client(
        mqtt.CallbackAPIVersion.VERSION2,
        client_id=settings.client_id,
        reconnect_on_failure=False,
    )
    if settings.username:
        client.username_pw_set(settings.username, settings.password)
    client.connect_timeout = settings.connect_timeout
    return client


class MqttConnectionManager:
    """
    Lazily connected MQTT client.

    Not thread-safe: a single publish path is expected to own it, and one
    round of publishes must complete before the next starts.
    """

    def __init__(
        self,
        settings: MqttSettings,
        client_factory: Optional[Callable[[MqttSettings], Any]] = None,
    ):
        self.settings = settings
        self._client_factory = client_factory or create_client
        self._client = None
        self._state = ConnectionState.DISCONNECTED
        self._loop_started = False
        self._closing = False

        self._connack = threading.Event()
        self._connack_failure: Optional[str] = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._client is not None and self._client.is_connected()

    def _get_client(self):
        if self._client is None:
            self._client = self._client_factory(self.settings)
            self._client.on_connect = self._on_connect
            self._client.on_disconnect = self._on_disconnect
        return self._client

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        """Callback when the broker answers the connection request."""
        if reason_code.is_failure:
            self._connack_failure = str(reason_code)
            logger.error(
                "MQTT connection refused",
                broker_host=self.settings.broker_host,
                broker_port=self.settings.broker_port,
                reason=str(reason_code),
            )
        else:
            logger.info(
                "MQTT connected",
                broker_host=self.settings.broker_host,
                broker_port=self.settings.broker_port,
            )
        self._connack.set()

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties=None):
        """Callback when the connection is lost or closed."""
        self._state = ConnectionState.DISCONNECTED
        if self._closing:
            logger.debug("MQTT disconnected", reason=str(reason_code))
        else:
            logger.warning("MQTT disconnected", reason=str(reason_code))

    async def _stop_loop(self, client) -> None:
        """Join paho's network thread off the event loop."""
        if self._loop_started:
            await asyncio.to_thread(client.loop_stop)
            self._loop_started = False

    async def ensure_connected(self) -> None:
        """
        Connect unless the client already reports a live connection.

        Raises:
            BrokerConnectionError: if the broker refuses or never acknowledges
            OSError: socket errors from paho are passed through unmodified
        """
        client = self._get_client()
        if client.is_connected():
            self._state = ConnectionState.CONNECTED
            return

        host, port = self.settings.broker_host, self.settings.broker_port
        self._state = ConnectionState.CONNECTING
        self._connack.clear()
        self._connack_failure = None

        await self._stop_loop(client)

        logger.debug("Connecting MQTT client", broker_host=host, broker_port=port)
        try:
            await asyncio.to_thread(client.connect, host, port, self.settings.keepalive)
        except Exception:
            self._state = ConnectionState.DISCONNECTED
            raise

        client.loop_start()
        self._loop_started = True

        acknowledged = await asyncio.to_thread(self._connack.wait, self.settings.connect_timeout)
        if not acknowledged or self._connack_failure is not None:
            self._state = ConnectionState.DISCONNECTED
            await self._stop_loop(client)
            raise BrokerConnectionError(
                host, port, reason=self._connack_failure or "no CONNACK received"
            )

        self._state = ConnectionState.CONNECTED
        logger.debug("Connected MQTT client", broker_host=host, broker_port=port)

    async def publish(self, message: MqttMessage) -> None:
        """
        Publish one message, connecting first if needed.

        Raises:
            PublishError: if paho does not accept the message
        """
        await self.ensure_connected()
        info = self._client.publish(
            message.topic,
            message.payload.encode("utf-8"),
            qos=int(message.qos),
            retain=message.retain,
        )
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise PublishError(
                "mqtt",
                message.topic,
                mqtt.error_string(info.rc),
                details={"rc": info.rc},
            )

    async def shutdown(self) -> None:
        """
        Disconnect gracefully and release the client.
        Both steps are best-effort and never raise.
        """
        client = self._client
        if client is None:
            return

        self._closing = True
        try:
            await asyncio.to_thread(client.disconnect)
        except Exception as e:
            logger.warning("MQTT disconnect failed", error=str(e))

        try:
            await self._stop_loop(client)
        except Exception as e:
            self._loop_started = False
            logger.warning("MQTT loop stop failed", error=str(e))

        self._client = None
        self._state = ConnectionState.DISCONNECTED
        self._closing = False
        logger.info("MQTT connection closed")

    async def __aenter__(self) -> "MqttConnectionManager":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.shutdown()
