"""
Deferred one-shot effects for the simulation.

Delayed correlation impacts and self-reverting events (leak expiry, bandwidth
restore, process usage revert) are queued here instead of on free-running
timers. The engine drains due effects synchronously on its own tick, so an
effect never runs concurrently with a tick and `cancel_all()` leaves nothing
behind when the engine stops.
"""

import heapq
import itertools
import time
from collections.abc import Callable
from dataclasses import dataclass, field

import structlog

logger = structlog.get_logger(__name__)

Clock = Callable[[], float]


@dataclass(order=True)
class ScheduledEffect:
    """Handle for a queued effect; ordering is by fire time, then scheduling order."""

    fire_at: float
    sequence: int
    action: Callable[[], None] = field(compare=False)
    label: str = field(default="effect", compare=False)
    cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self.cancelled = True


class EffectScheduler:
    """Priority queue of `(fire_at, action)` pairs driven by an injectable clock."""

    def __init__(self, clock: Clock = time.monotonic) -> None:
        self.clock = clock
        self._queue: list[ScheduledEffect] = []
        self._sequence = itertools.count()
        self.logger = logger.bind(component="effect_scheduler")

    def now(self) -> float:
        return self.clock()

    def schedule(
        self, delay_seconds: float, action: Callable[[], None], label: str = "effect"
    ) -> ScheduledEffect:
        """Queue `action` to run once `delay_seconds` have passed on the scheduler clock."""
        effect = ScheduledEffect(
            fire_at=self.clock() + max(0.0, delay_seconds),
            sequence=next(self._sequence),
            action=action,
            label=label,
        )
        heapq.heappush(self._queue, effect)
        self.logger.debug("effect_scheduled", label=label, delay_seconds=delay_seconds)
        return effect

    def run_due(self, now: float | None = None) -> int:
        """
        Run every effect whose fire time has passed, in fire order.

        Effects scheduled by a running effect are picked up in the same pass if
        they are already due. A failing effect is logged and skipped.
        """
        current = self.clock() if now is None else now
        executed = 0

        while self._queue and self._queue[0].fire_at <= current:
            effect = heapq.heappop(self._queue)
            if effect.cancelled:
                continue
            try:
                effect.action()
                executed += 1
            except Exception as e:
                self.logger.exception("scheduled_effect_failed", label=effect.label, error=str(e))

        return executed

    def cancel_all(self) -> int:
        """Cancel and drop every pending effect. Returns how many were pending."""
        pending = self.pending
        for effect in self._queue:
            effect.cancel()
        self._queue.clear()
        if pending:
            self.logger.info("pending_effects_cancelled", count=pending)
        return pending

    @property
    def pending(self) -> int:
        return sum(1 for effect in self._queue if not effect.cancelled)

    def pending_labels(self) -> list[str]:
        return [effect.label for effect in sorted(self._queue) if not effect.cancelled]

    def next_fire_at(self) -> float | None:
        """Fire time of the earliest live effect, if any."""
        live = [effect.fire_at for effect in self._queue if not effect.cancelled]
        return min(live) if live else None
