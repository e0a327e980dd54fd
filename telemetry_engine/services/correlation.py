"""
Cross-metric propagation.

A correlation rule fires when its source metric reaches the threshold: the
impact on the target lands after `delay_seconds`, and the rule stays armed
(`active`) until `delay_seconds + duration_seconds` have passed, so a
sustained high reading produces one effect, not a pile of overlapping ones.
"""

from collections.abc import Callable, Iterable

import structlog

from telemetry_engine.domain.models import CorrelationRule, MetricType
from telemetry_engine.services.scheduler import EffectScheduler

logger = structlog.get_logger(__name__)

ImpactHandler = Callable[[CorrelationRule], None]

DEFAULT_CORRELATION_RULES: tuple[CorrelationRule, ...] = (
    CorrelationRule(
        source_metric=MetricType.CPU,
        target_metric=MetricType.MEMORY,
        threshold=85,
        impact=0.3,
        delay_seconds=10,
        duration_seconds=60,
    ),
    CorrelationRule(
        source_metric=MetricType.MEMORY,
        target_metric=MetricType.DISK,
        threshold=90,
        impact=0.1,
        delay_seconds=20,
        duration_seconds=30,
    ),
    CorrelationRule(
        source_metric=MetricType.CPU,
        target_metric=MetricType.NETWORK,
        threshold=80,
        impact=0.5,
        delay_seconds=5,
        duration_seconds=15,
    ),
)


class CorrelationEngine:
    """Watches generator output and schedules delayed effects on other metrics."""

    def __init__(
        self,
        scheduler: EffectScheduler,
        rules: Iterable[CorrelationRule] | None = None,
    ) -> None:
        self.scheduler = scheduler
        # Rules carry mutable trigger state, so each engine gets its own copies.
        source_rules = DEFAULT_CORRELATION_RULES if rules is None else rules
        self.rules: list[CorrelationRule] = [rule.model_copy() for rule in source_rules]
        self._handlers: dict[MetricType, ImpactHandler] = {}
        self.logger = logger.bind(component="correlation_engine")

    def register_target(self, metric_type: MetricType, handler: ImpactHandler) -> None:
        """Set how an impact lands on `metric_type`."""
        self._handlers[metric_type] = handler

    def check(self, source_metric: MetricType, value: float) -> list[CorrelationRule]:
        """Trigger every idle rule for `source_metric` that `value` reaches. Returns them."""
        triggered = []
        for rule in self.rules:
            if rule.source_metric != source_metric or rule.active or value < rule.threshold:
                continue

            rule.active = True
            rule.start_time = self.scheduler.now()
            label = f"{rule.source_metric.value}->{rule.target_metric.value}"
            self.scheduler.schedule(
                rule.delay_seconds,
                lambda rule=rule: self._apply_impact(rule),
                label=f"correlation:impact:{label}",
            )
            self.scheduler.schedule(
                rule.delay_seconds + rule.duration_seconds,
                lambda rule=rule: self._release(rule),
                label=f"correlation:release:{label}",
            )
            triggered.append(rule)

            self.logger.info(
                "correlation_triggered",
                source=rule.source_metric.value,
                target=rule.target_metric.value,
                value=value,
                threshold=rule.threshold,
                delay_seconds=rule.delay_seconds,
            )
        return triggered

    def _apply_impact(self, rule: CorrelationRule) -> None:
        handler = self._handlers.get(rule.target_metric)
        if handler is None:
            self.logger.warning("no_impact_handler", target=rule.target_metric.value)
            return
        handler(rule)
        self.logger.info(
            "correlation_impact_applied",
            source=rule.source_metric.value,
            target=rule.target_metric.value,
            impact=rule.impact,
        )

    def _release(self, rule: CorrelationRule) -> None:
        rule.active = False
        rule.start_time = None

    def active_rules(self) -> list[CorrelationRule]:
        return [rule for rule in self.rules if rule.active]

    def reset(self) -> None:
        """Disarm all rules; used when pending effects are cancelled."""
        for rule in self.rules:
            self._release(rule)
