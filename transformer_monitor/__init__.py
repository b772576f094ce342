"""Transformer telemetry monitor package.

Simulated transformers emit voltage, current, temperature and load readings on
a fixed cadence. Readings are merged through a bounded router, smoothed over a
short rolling window, classified for anomalies and projected into a UI-facing
state store.
"""

__all__ = [
    "config",
    "core",
    "data",
    "web",
    "utils",
    "service",
]
