"""
Console demo of the telemetry engine.

Drives the engine with the async runner for a number of ticks, injects a few
events along the way and renders the latest snapshot.

Run with: uv run python run_simulation.py [ticks]
"""

import asyncio
import sys
from contextlib import aclosing

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from telemetry_engine.config import get_config
from telemetry_engine.domain.models import MetricType, SystemState
from telemetry_engine.logging_setup import configure_logging
from telemetry_engine.services.engine import TelemetryEngine
from telemetry_engine.services.runner import EngineRunner

console = Console()

UNITS = {
    MetricType.CPU: "%",
    MetricType.MEMORY: "%",
    MetricType.DISK: "%",
    MetricType.NETWORK: " MB/s",
}

# tick number -> event injected right after it
SCRIPTED_EVENTS = {
    5: "cpuSpike",
    10: "memoryLeak",
    20: "networkSpike",
    30: "diskCleanup",
}


def render_state(state: SystemState, tick: int) -> None:
    metrics = Table(title=f"Metrics after tick {tick}")
    metrics.add_column("Metric")
    metrics.add_column("Current", justify="right")
    metrics.add_column("Min", justify="right")
    metrics.add_column("Max", justify="right")
    metrics.add_column("Updated")

    for metric_type in MetricType:
        metric = state.metrics.for_metric(metric_type)
        unit = UNITS[metric_type]
        metrics.add_row(
            metric_type.value,
            f"{metric.current}{unit}",
            f"{metric.min}{unit}",
            f"{metric.max}{unit}",
            getattr(state.last_updated, metric_type.value).strftime("%H:%M:%S"),
        )
    console.print(metrics)

    alerts = Table(title="Latest alerts")
    alerts.add_column("Type")
    alerts.add_column("Message")
    for alert in state.alerts[:5]:
        alerts.add_row(alert.type.value, alert.message)
    console.print(alerts)

    logs = Table(title="Latest logs")
    logs.add_column("Level")
    logs.add_column("Service")
    logs.add_column("Message")
    for entry in state.logs[:5]:
        logs.add_row(entry.level.value, entry.service, entry.message)
    console.print(logs)


async def main(ticks: int) -> None:
    config = get_config()
    configure_logging(config.logging)

    engine = TelemetryEngine(thresholds=config.thresholds, config=config.simulation)
    runner = EngineRunner(engine, config.simulation)

    console.print(Panel.fit("Synthetic telemetry simulation", style="bold blue"))

    async with aclosing(runner.run()) as states:
        async for state in states:
            tick = runner.tick_count
            event = SCRIPTED_EVENTS.get(tick)
            if event:
                engine.trigger_event(event)
                console.print(f"[yellow]Injected event:[/yellow] {event}")
            if tick % 10 == 0:
                render_state(state, tick)
            if tick >= ticks:
                break

    render_state(engine.get_state(), runner.tick_count)
    console.print("[green]Simulation stopped; pending effects cancelled[/green]")


if __name__ == "__main__":
    asyncio.run(main(int(sys.argv[1]) if len(sys.argv) > 1 else 40))
