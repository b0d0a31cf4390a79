"""MQTT transport layer."""

import logging
import sys
import threading
from typing import Optional, TextIO, Tuple
from urllib.parse import urlparse

import paho.mqtt.client as mqtt

from .config import AgentConfig

# Fire-and-forget delivery
QOS_AT_MOST_ONCE = 0

PLAIN_SCHEMES = ("tcp", "mqtt")
TLS_SCHEMES = ("ssl", "mqtts")
DEFAULT_PORTS = {"tcp": 1883, "mqtt": 1883, "ssl": 8883, "mqtts": 8883}

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """Base exception for transport errors."""
    pass


class BrokerConnectionError(TransportError):
    """The broker could not be reached or refused the connection."""
    pass


class PublishError(TransportError):
    """A single message could not be handed to the broker connection."""
    pass


def parse_broker_url(url: str) -> Tuple[str, int, bool]:
    """
    Split a broker URL into host, port and TLS flag.

    Args:
        url: Broker address such as ``tcp://localhost:1883``

    Returns:
        Tuple of (host, port, use_tls)

    Raises:
        TransportError: On unsupported scheme or missing host
    """
    parsed = urlparse(url)
    scheme = parsed.scheme.lower()

    if scheme not in PLAIN_SCHEMES + TLS_SCHEMES:
        raise TransportError(f"Unsupported broker URL scheme in {url!r}")

    if not parsed.hostname:
        raise TransportError(f"Broker URL {url!r} has no host")

    try:
        port = parsed.port or DEFAULT_PORTS[scheme]
    except ValueError as e:
        raise TransportError(f"Invalid port in broker URL {url!r}: {e}")

    return parsed.hostname, port, scheme in TLS_SCHEMES


class BrokerClient:
    """Connection to an MQTT broker, shared by every publish call."""

    def __init__(self, config: AgentConfig):
        self.config = config
        self.host, self.port, self.use_tls = parse_broker_url(config.broker_url)

        self._connack = threading.Event()
        self._connack_reason = None

        self._client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=config.client_id,
        )
        self._client.connect_timeout = config.connect_timeout
        self._client.on_connect = self._on_connect
        self._client.on_disconnect = self._on_disconnect

        if self.use_tls:
            # Use system CAs
            self._client.tls_set()

    def _on_connect(self, client, userdata, flags, reason_code, properties) -> None:
        self._connack_reason = reason_code
        self._connack.set()

    def _on_disconnect(self, client, userdata, flags, reason_code, properties) -> None:
        if reason_code.is_failure:
            logger.warning(f"connection to broker lost: {reason_code}")

    def connect(self) -> None:
        """
        Connect and wait for the broker to accept the session.

        Raises:
            BrokerConnectionError: If the broker is unreachable, refuses the
                connection or does not answer within the connect timeout
        """
        logger.info(f"Creating MQTT connection to {self.host}:{self.port}")

        try:
            self._client.connect(self.host, self.port, keepalive=self.config.keepalive)
        except (OSError, ValueError) as e:
            raise BrokerConnectionError(f"Cannot connect to {self.config.broker_url}: {e}")

        self._client.loop_start()

        if not self._connack.wait(self.config.connect_timeout):
            self._abort()
            raise BrokerConnectionError(f"No answer from {self.config.broker_url}")

        if self._connack_reason is not None and self._connack_reason.is_failure:
            self._abort()
            raise BrokerConnectionError(
                f"Broker {self.config.broker_url} refused connection: {self._connack_reason}"
            )

        logger.info("MQTT connection established")

    def _abort(self) -> None:
        """Close a half-open connection after a failed handshake."""
        # Return code ignored, the connect failure is what gets reported
        self._client.disconnect()
        self._client.loop_stop()

    def publish(self, topic: str, payload: str, qos: int = QOS_AT_MOST_ONCE) -> None:
        """
        Queue a message without waiting for delivery.

        Raises:
            PublishError: If the client rejects the message
        """
        try:
            info = self._client.publish(topic, payload, qos=qos)
        except ValueError as e:
            raise PublishError(f"Invalid message for {topic}: {e}")

        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise PublishError(f"Publish to {topic} failed: {mqtt.error_string(info.rc)}")

    def disconnect(self) -> None:
        """
        Disconnect from the broker and stop the network thread.

        Raises:
            TransportError: If the disconnect could not be sent
        """
        try:
            rc = self._client.disconnect()
        finally:
            self._client.loop_stop()

        if rc != mqtt.MQTT_ERR_SUCCESS:
            raise TransportError(f"Disconnect failed: {mqtt.error_string(rc)}")


class ConsoleClient:
    """Stand-in for BrokerClient that writes messages to a stream (dry runs)."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream or sys.stdout

    def connect(self) -> None:
        pass

    def publish(self, topic: str, payload: str, qos: int = QOS_AT_MOST_ONCE) -> None:
        print(f"{topic} {payload}", file=self.stream)

    def disconnect(self) -> None:
        pass
