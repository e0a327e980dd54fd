"""
Polling loop that drives a `TelemetryEngine` at per-metric cadences.

One coroutine owns the engine, so ticks never overlap. Between ticks it also
drains due deferred effects, so delayed correlation impacts land on time even
for metrics with long cadences.
"""

import asyncio
from collections.abc import AsyncIterator, Callable

import structlog

from telemetry_engine.config import SimulationConfig
from telemetry_engine.domain.models import MetricType, SystemState
from telemetry_engine.services.engine import TelemetryEngine

logger = structlog.get_logger(__name__)


class EngineRunner:
    """
    Ticks each metric on its own interval and yields the snapshot after each tick.

    Usage:
        runner = EngineRunner(engine, config.simulation)
        async for state in runner.run():
            render(state)
            if done:
                break
    """

    def __init__(
        self,
        engine: TelemetryEngine,
        config: SimulationConfig | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.engine = engine
        self.config = config or engine.config
        # Cadences and deferred effects must be measured on the same clock.
        self.clock = clock or engine.scheduler.clock
        self.logger = logger.bind(component="engine_runner")
        self._is_running = False
        self.tick_count = 0

    @property
    def is_running(self) -> bool:
        return self._is_running

    def _next_due(self, schedule: dict[MetricType, float]) -> tuple[MetricType, float]:
        # min() keeps enum order on ties, so simultaneous ticks run cpu, memory, disk, network.
        metric_type = min(schedule, key=lambda m: schedule[m])
        return metric_type, schedule[metric_type]

    async def run(self) -> AsyncIterator[SystemState]:
        """Run until `stop()` is called or the consumer stops iterating."""
        self._is_running = True
        start = self.clock()
        schedule = {m: start for m in MetricType}
        self.logger.info(
            "runner_started",
            intervals={m.value: self.config.interval_for(m) for m in MetricType},
        )

        try:
            while self._is_running:
                metric_type, due_at = self._next_due(schedule)
                wait = max(0.0, due_at - self.clock())

                # Drain an effect that falls due before the tick, then sleep out the rest.
                next_effect = self.engine.scheduler.next_fire_at()
                if next_effect is not None:
                    until_effect = max(0.0, next_effect - self.clock())
                    if until_effect < wait:
                        await asyncio.sleep(until_effect)
                        self.engine.scheduler.run_due()
                        wait -= until_effect

                if wait > 0:
                    await asyncio.sleep(wait)
                if not self._is_running:
                    break

                state = self.engine.update_metrics(metric_type)
                self.tick_count += 1
                schedule[metric_type] = max(
                    due_at + self.config.interval_for(metric_type), self.clock()
                )
                yield state

        except asyncio.CancelledError:
            self.logger.info("runner_cancelled")
            raise
        finally:
            self._is_running = False
            self.engine.shutdown()
            self.logger.info("runner_stopped", ticks=self.tick_count)

    async def stop(self) -> None:
        """Ask the loop to finish after the current tick."""
        self.logger.info("stopping_runner")
        self._is_running = False
