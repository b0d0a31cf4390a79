"""Vatis agent - host memory and TCP telemetry over MQTT."""

__version__ = "0.2.0"
