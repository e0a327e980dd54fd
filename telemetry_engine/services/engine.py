"""
The telemetry engine: owns the generators and the correlation, alert and log
subsystems, advances them tick by tick and publishes immutable snapshots.

Data flows one way per tick: generator value -> correlation check -> incident
log -> alert check -> snapshot. The engine is the only writer of its state;
deferred effects run from its own scheduler inside `update_metrics`.
"""

import random
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from enum import Enum
from typing import Any

import structlog

from telemetry_engine.config import SimulationConfig
from telemetry_engine.domain.models import (
    Alert,
    AlertType,
    CorrelationRule,
    LastUpdated,
    LogEntry,
    MetricsSnapshot,
    MetricType,
    SystemState,
    ThresholdSettings,
)
from telemetry_engine.services.alerts import AlertEvaluator, new_alert
from telemetry_engine.services.correlation import CorrelationEngine
from telemetry_engine.services.generators import (
    CpuGenerator,
    DiskGenerator,
    MemoryGenerator,
    MetricGenerator,
    NetworkGenerator,
)
from telemetry_engine.services.log_synthesizer import LogSynthesizer
from telemetry_engine.services.scheduler import EffectScheduler
from telemetry_engine.services.stochastic import Calendar

logger = structlog.get_logger(__name__)


class SimulationEvent(str, Enum):
    """Operational incidents a caller can inject by name."""

    CPU_SPIKE = "cpuSpike"
    MEMORY_LEAK = "memoryLeak"
    GARBAGE_COLLECTION = "garbageCollection"
    DISK_CLEANUP = "diskCleanup"
    LARGE_DISK_WRITE = "largeDiskWrite"
    DISK_IO_PRESSURE = "diskIoPressure"
    NETWORK_SPIKE = "networkSpike"
    NETWORK_CONGESTION = "networkCongestion"


class TelemetryEngine:
    """
    Orchestrates the simulation.

    Usage:
        engine = TelemetryEngine()
        state = engine.update_metrics()          # tick everything
        state = engine.update_metrics("network") # tick one metric
        engine.trigger_event("memoryLeak")
        engine.shutdown()
    """

    def __init__(
        self,
        initial_state: SystemState | None = None,
        thresholds: ThresholdSettings | Mapping[str, Any] | None = None,
        *,
        config: SimulationConfig | None = None,
        scheduler: EffectScheduler | None = None,
        rng: random.Random | None = None,
        calendar: Calendar | None = None,
    ) -> None:
        self.config = config or SimulationConfig()
        self.rng = rng if rng is not None else random.Random(self.config.seed)
        self.scheduler = scheduler or EffectScheduler()
        self.logger = logger.bind(component="telemetry_engine")

        def initial_value(metric_type: MetricType, default: float) -> float:
            if initial_state is None:
                return default
            return initial_state.metrics.for_metric(metric_type).current

        self.cpu = CpuGenerator(
            self.scheduler, initial_value(MetricType.CPU, 30), self.rng, calendar
        )
        self.memory = MemoryGenerator(
            self.scheduler,
            initial_value(MetricType.MEMORY, 40),
            self.rng,
            calendar,
            tick_interval_seconds=self.config.memory_interval_seconds,
        )
        self.disk = DiskGenerator(
            self.scheduler, initial_value(MetricType.DISK, 60), self.rng, calendar
        )
        self.network = NetworkGenerator(
            self.scheduler, initial_value(MetricType.NETWORK, 3), self.rng, calendar
        )
        self.generators: dict[MetricType, MetricGenerator] = {
            MetricType.CPU: self.cpu,
            MetricType.MEMORY: self.memory,
            MetricType.DISK: self.disk,
            MetricType.NETWORK: self.network,
        }

        self.alert_evaluator = AlertEvaluator(self._coerce_thresholds(thresholds), self.rng)
        self.log_synthesizer = LogSynthesizer(self.rng)
        self.correlation = CorrelationEngine(self.scheduler)
        self._register_correlation_targets()

        self._events: dict[SimulationEvent, tuple[MetricType, Callable[[], object]]] = {
            SimulationEvent.CPU_SPIKE: (
                MetricType.CPU,
                lambda: self.cpu.simulate_process_spike("node", 30),
            ),
            SimulationEvent.MEMORY_LEAK: (
                MetricType.MEMORY,
                lambda: self.memory.simulate_memory_leak(120),
            ),
            SimulationEvent.GARBAGE_COLLECTION: (
                MetricType.MEMORY,
                self.memory.simulate_garbage_collection,
            ),
            SimulationEvent.DISK_CLEANUP: (
                MetricType.DISK,
                lambda: self.disk.simulate_disk_cleanup(15),
            ),
            SimulationEvent.LARGE_DISK_WRITE: (
                MetricType.DISK,
                lambda: self.disk.simulate_large_file_write(10),
            ),
            SimulationEvent.DISK_IO_PRESSURE: (
                MetricType.DISK,
                lambda: self.disk.simulate_io_pressure(0.8, 10),
            ),
            SimulationEvent.NETWORK_SPIKE: (
                MetricType.NETWORK,
                lambda: self.network.simulate_bandwidth_spike(30),
            ),
            SimulationEvent.NETWORK_CONGESTION: (
                MetricType.NETWORK,
                lambda: self.network.simulate_network_congestion(60),
            ),
        }

        self._state = SystemState(
            metrics=self._read_metrics(),
            alerts=initial_state.alerts[: self.config.retention_limit] if initial_state else (),
            logs=initial_state.logs[: self.config.retention_limit] if initial_state else (),
            top_processes=tuple(self.cpu.top_processes()),
        )
        self.logger.info("engine_initialized", retention_limit=self.config.retention_limit)

    @staticmethod
    def _coerce_thresholds(
        thresholds: ThresholdSettings | Mapping[str, Any] | None,
    ) -> ThresholdSettings:
        if thresholds is None:
            return ThresholdSettings()
        if isinstance(thresholds, ThresholdSettings):
            return thresholds
        return ThresholdSettings.model_validate(thresholds)

    def _register_correlation_targets(self) -> None:
        def nudge_cpu(rule: CorrelationRule) -> None:
            self.cpu.apply_external_influence(rule.impact)

        def leak_memory(rule: CorrelationRule) -> None:
            self.memory.simulate_memory_leak(rule.duration_seconds)

        def write_disk(rule: CorrelationRule) -> None:
            self.disk.simulate_large_file_write(rule.impact * 10)

        def spike_network(rule: CorrelationRule) -> None:
            self.network.simulate_bandwidth_spike(rule.duration_seconds)

        self.correlation.register_target(MetricType.CPU, nudge_cpu)
        self.correlation.register_target(MetricType.MEMORY, leak_memory)
        self.correlation.register_target(MetricType.DISK, write_disk)
        self.correlation.register_target(MetricType.NETWORK, spike_network)

    def _read_metrics(self) -> MetricsSnapshot:
        return MetricsSnapshot(
            **{metric_type.value: gen.state() for metric_type, gen in self.generators.items()}
        )

    def _publish(
        self,
        alerts: list[Alert],
        logs: list[LogEntry],
        last_updated: dict[str, datetime],
    ) -> SystemState:
        limit = self.config.retention_limit
        self._state = SystemState(
            metrics=self._read_metrics(),
            alerts=tuple(alerts[:limit]),
            logs=tuple(logs[:limit]),
            top_processes=tuple(self.cpu.top_processes()),
            last_updated=LastUpdated(**last_updated),
        )
        return self._state

    def update_metrics(self, metric_type: MetricType | str | None = None) -> SystemState:
        """
        Advance one metric (or all of them, in order cpu, memory, disk, network).

        At most one threshold alert is raised per call, from the first metric
        that breaches; background logs and alerts are drawn independently.
        """
        selected = set(MetricType) if metric_type is None else {MetricType(metric_type)}

        self.scheduler.run_due()

        now = datetime.now(UTC)
        alerts = list(self._state.alerts)
        logs = list(self._state.logs)
        last_updated = self._state.last_updated.model_dump()
        readings = {m: gen.state().current for m, gen in self.generators.items()}
        alert_raised = False

        for current_type in MetricType:
            if current_type not in selected:
                continue

            value = self.generators[current_type].tick()
            readings[current_type] = value
            last_updated[current_type.value] = now

            self.correlation.check(current_type, value)

            error_log = self.log_synthesizer.generate_correlated_error_log(current_type, value)
            if error_log:
                logs.insert(0, error_log)
                last_updated["logs"] = now

            if not alert_raised:
                alert = self.alert_evaluator.check_thresholds(
                    readings[MetricType.CPU],
                    readings[MetricType.MEMORY],
                    readings[MetricType.DISK],
                    readings[MetricType.NETWORK],
                )
                if alert:
                    alerts.insert(0, alert)
                    last_updated["alerts"] = now
                    alert_raised = True

        if self.rng.random() < self.config.background_log_probability:
            logs.insert(0, self.log_synthesizer.generate_random_log())
            last_updated["logs"] = now

        if self.rng.random() < self.config.random_alert_probability:
            alerts.insert(0, self.alert_evaluator.generate_random_alert())
            last_updated["alerts"] = now

        self.logger.debug(
            "metrics_updated",
            metrics=sorted(m.value for m in selected),
            readings={m.value: v for m, v in readings.items()},
        )
        return self._publish(alerts, logs, last_updated)

    def trigger_event(self, event_type: str) -> bool:
        """
        Inject a named incident. Unknown names are ignored.

        Returns True when an event was dispatched.
        """
        try:
            event = SimulationEvent(event_type)
        except ValueError:
            self.logger.warning("unknown_event_ignored", event_type=event_type)
            return False

        target_metric, action = self._events[event]
        action()

        now = datetime.now(UTC)
        alerts = list(self._state.alerts)
        alerts.insert(0, new_alert(f"Simulated event: {event.value}", AlertType.INFO, "simulation"))
        last_updated = self._state.last_updated.model_dump()
        last_updated[target_metric.value] = now
        last_updated["alerts"] = now

        self.logger.info("event_injected", event_type=event.value, metric=target_metric.value)
        self._publish(alerts, list(self._state.logs), last_updated)
        return True

    def update_thresholds(self, thresholds: ThresholdSettings | Mapping[str, Any]) -> None:
        """Replace the live thresholds; inverted warning/critical pairs are rejected."""
        self.alert_evaluator.set_thresholds(self._coerce_thresholds(thresholds))

    @property
    def thresholds(self) -> ThresholdSettings:
        return self.alert_evaluator.thresholds

    def get_state(self) -> SystemState:
        return self._state

    def shutdown(self) -> int:
        """
        Cancel every pending deferred effect and settle the generators.

        Returns the number of effects cancelled.
        """
        cancelled = self.scheduler.cancel_all()
        self.correlation.reset()
        if self.memory.leak_active:
            self.memory.end_leak()
        self.logger.info("engine_shutdown", cancelled_effects=cancelled)
        return cancelled
