"""Apex Dashboard API — block, TPS and witness telemetry over HTTP/JSON."""

__version__ = "0.1.0"
