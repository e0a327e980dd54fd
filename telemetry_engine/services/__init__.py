"""
Core services for the telemetry engine.

This package contains the generators, the correlation, alert and log
subsystems, the orchestrating engine and the async runner that drives it.
"""

from .alerts import AlertEvaluator
from .correlation import DEFAULT_CORRELATION_RULES, CorrelationEngine
from .engine import SimulationEvent, TelemetryEngine
from .generators import (
    CpuGenerator,
    DiskGenerator,
    MemoryGenerator,
    MetricGenerator,
    NetworkGenerator,
)
from .log_synthesizer import LogSynthesizer, LogTemplate
from .runner import EngineRunner
from .scheduler import EffectScheduler, ScheduledEffect

__all__ = [
    "AlertEvaluator",
    "CorrelationEngine",
    "CpuGenerator",
    "DEFAULT_CORRELATION_RULES",
    "DiskGenerator",
    "EffectScheduler",
    "EngineRunner",
    "LogSynthesizer",
    "LogTemplate",
    "MemoryGenerator",
    "MetricGenerator",
    "NetworkGenerator",
    "ScheduledEffect",
    "SimulationEvent",
    "TelemetryEngine",
]
