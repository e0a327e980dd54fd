"""
Per-metric generators for CPU, memory, disk and network.

Every generator composes a `StochasticProcess` and implements the
`MetricGenerator` protocol. Time-bounded events (leaks, spikes, pressure)
queue their expiry on the shared `EffectScheduler` rather than on timers.
"""

import random
from typing import Protocol

import structlog

from telemetry_engine.domain.models import MetricState, MetricType, ProcessUsage
from telemetry_engine.services.scheduler import EffectScheduler, ScheduledEffect
from telemetry_engine.services.stochastic import (
    Calendar,
    CalendarContext,
    ProcessProfile,
    StochasticProcess,
)

logger = structlog.get_logger(__name__)


class MetricGenerator(Protocol):
    """What the engine needs from a generator."""

    metric_type: MetricType

    def tick(self, external_influence: float = 0.0) -> float: ...

    def state(self) -> MetricState: ...

    def apply_external_influence(self, value: float) -> float: ...


class CpuGenerator:
    """CPU usage with a pronounced business-hours load and a process side-table."""

    metric_type = MetricType.CPU
    profile = ProcessProfile(
        minimum=0, maximum=100, volatility=0.5, trend_strength=0.12, seasonal_strength=0.4
    )

    def __init__(
        self,
        scheduler: EffectScheduler,
        initial_value: float = 30,
        rng: random.Random | None = None,
        calendar: Calendar | None = None,
    ) -> None:
        self.scheduler = scheduler
        self.process = StochasticProcess(self.profile, initial_value, rng, calendar)
        self.rng = self.process.rng
        self.processes: dict[str, float] = {
            "nginx": 5,
            "node": 12,
            "postgres": 8,
            "redis": 3,
            "system": 2,
        }
        self.logger = logger.bind(component="cpu_generator")

    def _business_hours_offset(self, context: CalendarContext) -> float:
        return 0.2 if context.is_business_hours else -0.1

    def tick(self, external_influence: float = 0.0) -> float:
        context = self.process.context()
        return self.process.step(
            external_influence,
            context=context,
            seasonal_offset=self._business_hours_offset(context),
        )

    def state(self) -> MetricState:
        return self.process.state()

    def apply_external_influence(self, value: float) -> float:
        return self.tick(value)

    def simulate_process_spike(self, process_name: str, magnitude: float) -> bool:
        """
        Bump overall CPU and one process's usage; the process entry reverts in 3-5 s.

        The raised CPU value becomes `state().current` at once but is only
        appended to history by the next tick, so until then `current` may sit
        above `state().max`.
        """
        if process_name not in self.processes:
            self.logger.warning("unknown_process", process=process_name)
            return False

        self.processes[process_name] += magnitude
        self.process.set_current(self.process.current_value + magnitude)

        # Undo only this spike's share so overlapping spikes unwind correctly.
        def revert() -> None:
            self.processes[process_name] -= magnitude

        self.scheduler.schedule(
            self.rng.uniform(3.0, 5.0), revert, label=f"cpu:revert_process:{process_name}"
        )
        self.logger.info("process_spike_simulated", process=process_name, magnitude=magnitude)
        return True

    def top_processes(self) -> list[ProcessUsage]:
        """Processes sorted by usage, highest first."""
        ranked = sorted(self.processes.items(), key=lambda item: item[1], reverse=True)
        return [ProcessUsage(name=name, usage=usage) for name, usage in ranked]


class MemoryGenerator:
    """Memory usage: low noise, strong trend, with leak and GC events."""

    metric_type = MetricType.MEMORY
    profile = ProcessProfile(
        minimum=0,
        maximum=100,
        volatility=0.3,
        trend_strength=0.15,
        noise_strength=0.1,
        seasonal_strength=0.25,
    )

    def __init__(
        self,
        scheduler: EffectScheduler,
        initial_value: float = 40,
        rng: random.Random | None = None,
        calendar: Calendar | None = None,
        tick_interval_seconds: float = 1.0,
    ) -> None:
        self.scheduler = scheduler
        self.process = StochasticProcess(self.profile, initial_value, rng, calendar)
        self.rng = self.process.rng
        # Cadence the generator is ticked at; leaks spread their increase over it.
        self.tick_interval_seconds = tick_interval_seconds
        self.leak_active = False
        self.leak_rate = 0.0
        self.leak_ticks_remaining = 0
        # Total added by the current (or most recent) leak, as a fraction of the range.
        self.leaked = 0.0
        self._baseline_anchor = self.process.anchor
        self._leak_expiry: ScheduledEffect | None = None
        self.logger = logger.bind(component="memory_generator")

    def tick(self, external_influence: float = 0.0) -> float:
        trend_offset = 0.0
        if self.leak_active:
            trend_offset = self.leak_rate
            self.leaked += self.leak_rate
            self.leak_ticks_remaining -= 1
            # Leaked memory is held: move the seasonal target with it.
            self.process.anchor = self._baseline_anchor + self.leaked

        value = self.process.step(external_influence, trend_offset=trend_offset)
        if self.leak_active and self.leak_ticks_remaining <= 0:
            self.end_leak()
        return value

    def state(self) -> MetricState:
        return self.process.state()

    def apply_external_influence(self, value: float) -> float:
        return self.tick(value)

    def simulate_memory_leak(self, duration_seconds: float = 60.0) -> bool:
        """
        Start a leak that adds 15-30% of the range over `duration_seconds`.

        The increase is split evenly over the ticks that fit in the duration at
        `tick_interval_seconds`, and the leak ends on its last tick. A scheduled
        expiry one interval after the duration ends it if ticks stop arriving.

        Returns False without changing anything if a leak is already running.
        """
        if self.leak_active:
            return False

        target_increase = self.rng.uniform(0.15, 0.30)
        ticks = max(1, round(duration_seconds / self.tick_interval_seconds))
        self.leak_active = True
        self.leak_rate = target_increase / ticks
        self.leak_ticks_remaining = ticks
        self.leaked = 0.0
        self._baseline_anchor = self.process.anchor

        self._leak_expiry = self.scheduler.schedule(
            duration_seconds + self.tick_interval_seconds, self.end_leak, label="memory:end_leak"
        )
        self.logger.info(
            "memory_leak_started",
            duration_seconds=duration_seconds,
            ticks=ticks,
            target_increase=round(target_increase, 3),
        )
        return True

    def end_leak(self) -> None:
        """Stop leaking and release the held level; `leaked` keeps the leak's total."""
        if self._leak_expiry is not None:
            self._leak_expiry.cancel()
            self._leak_expiry = None
        self.leak_active = False
        self.leak_rate = 0.0
        self.leak_ticks_remaining = 0
        self.process.anchor = self._baseline_anchor
        self.logger.info("memory_leak_ended", leaked=round(self.leaked, 3))

    def simulate_garbage_collection(self) -> float:
        """Drop usage by 10-20% of its current value and record it in history."""
        reduction = self.process.current_value * self.rng.uniform(0.1, 0.2)
        return self.process.record(self.process.current_value - reduction)


class DiskGenerator:
    """Disk usage: the least volatile metric, with slow organic growth."""

    metric_type = MetricType.DISK
    profile = ProcessProfile(
        minimum=0,
        maximum=100,
        volatility=0.1,
        trend_strength=0.05,
        noise_strength=0.05,
        seasonal_strength=0.05,
    )
    growth_rate = 0.0005

    def __init__(
        self,
        scheduler: EffectScheduler,
        initial_value: float = 60,
        rng: random.Random | None = None,
        calendar: Calendar | None = None,
    ) -> None:
        self.scheduler = scheduler
        self.process = StochasticProcess(self.profile, initial_value, rng, calendar)
        self.rng = self.process.rng

    def tick(self, external_influence: float = 0.0) -> float:
        return self.process.step(external_influence, trend_offset=self.growth_rate)

    def state(self) -> MetricState:
        return self.process.state()

    def apply_external_influence(self, value: float) -> float:
        return self.tick(value)

    def simulate_disk_cleanup(self, percent: float = 10) -> float:
        current = self.process.current_value
        reduction = min(percent, current * (percent / 100))
        return self.process.record(current - reduction)

    def simulate_large_file_write(self, percent: float = 5) -> float:
        increase = self.profile.maximum * (percent / 100)
        return self.process.record(self.process.current_value + increase)

    def simulate_io_pressure(self, intensity: float = 0.8, duration_seconds: float = 10.0) -> float:
        """Temporary usage increase that settles back after `duration_seconds`."""
        original = self.process.current_value
        value = self.process.record(original + self.profile.maximum * 0.15 * intensity)

        def settle() -> None:
            self.process.set_current(original + self.growth_rate * 5)

        self.scheduler.schedule(duration_seconds, settle, label="disk:settle_io_pressure")
        return value

    def simulate_disk_error(self) -> bool:
        """Whether a disk error occurs now; far likelier near capacity."""
        current = self.process.current_value
        if current > 90:
            threshold = 0.7
        elif current > 80:
            threshold = 0.3
        else:
            threshold = 0.05
        return self.rng.random() < threshold


class NetworkGenerator:
    """Network throughput in MB/s with an hour-of-day traffic table."""

    metric_type = MetricType.NETWORK
    profile = ProcessProfile(
        minimum=0.1,
        maximum=15,
        volatility=0.6,
        trend_strength=0.1,
        noise_strength=0.3,
        seasonal_strength=0.5,
    )
    # (start hour, end hour exclusive, multiplier)
    traffic_patterns: tuple[tuple[int, int, float], ...] = (
        (9, 12, 1.5),
        (13, 16, 1.3),
        (20, 22, 1.2),
        (0, 5, 0.5),
    )

    def __init__(
        self,
        scheduler: EffectScheduler,
        initial_value: float = 3,
        rng: random.Random | None = None,
        calendar: Calendar | None = None,
    ) -> None:
        self.scheduler = scheduler
        self.process = StochasticProcess(self.profile, initial_value, rng, calendar)
        self.rng = self.process.rng

    def traffic_offset(self, hour: int) -> float:
        for start, end, multiplier in self.traffic_patterns:
            if start <= hour < end:
                return (multiplier - 1) * 0.2
        return 0.0

    def tick(self, external_influence: float = 0.0) -> float:
        context = self.process.context()
        return self.process.step(
            external_influence,
            context=context,
            seasonal_offset=self.traffic_offset(context.hour),
        )

    def state(self) -> MetricState:
        return self.process.state()

    def apply_external_influence(self, value: float) -> float:
        return self.tick(value)

    def _scale_temporarily(self, factor: float, duration_seconds: float, label: str) -> float:
        original = self.process.current_value
        value = self.process.record(original * factor)

        def restore() -> None:
            self.process.set_current(original)

        self.scheduler.schedule(duration_seconds, restore, label=label)
        return value

    def simulate_bandwidth_spike(self, duration_seconds: float = 10.0) -> float:
        """Multiply throughput by 3-5x, restoring the pre-spike value afterwards."""
        return self._scale_temporarily(
            self.rng.uniform(3.0, 5.0), duration_seconds, "network:end_bandwidth_spike"
        )

    def simulate_network_congestion(self, duration_seconds: float = 30.0) -> float:
        """Cut throughput to 50-70%, restoring the previous value afterwards."""
        return self._scale_temporarily(
            self.rng.uniform(0.5, 0.7), duration_seconds, "network:end_congestion"
        )
