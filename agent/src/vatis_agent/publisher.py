"""Encoding and dispatch of single metrics."""

import logging

from .metrics import Metric
from .transport import QOS_AT_MOST_ONCE, TransportError

logger = logging.getLogger(__name__)


def metric_topic(identity: str, metric: Metric) -> str:
    return f"metrics/{identity}/{metric.name}"


def metric_payload(metric: Metric) -> str:
    return f"{metric.timestamp};{metric.value}"


def publish_metric(client, identity: str, metric: Metric) -> bool:
    """
    Publish one metric, fire-and-forget.

    Failures are logged and reported through the return value, never raised.

    Returns:
        True if the client accepted the message
    """
    topic = metric_topic(identity, metric)

    try:
        client.publish(topic, metric_payload(metric), qos=QOS_AT_MOST_ONCE)
    except TransportError as e:
        logger.warning(f"error sending message: {e}")
        return False

    return True
