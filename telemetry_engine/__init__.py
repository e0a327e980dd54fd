"""Synthetic telemetry engine.

Generates correlated CPU, memory, disk and network series with matching logs
and alerts, for driving a monitoring UI without real infrastructure.
"""
