"""Support library for a cloud asset inventory tool: policy sources, fetch filtering, logging, telemetry and persistent data."""

__version__ = "0.1.0"