"""Tests for cross-metric correlation rules."""

import pytest

from telemetry_engine.domain.models import CorrelationRule, MetricType
from telemetry_engine.services.correlation import DEFAULT_CORRELATION_RULES, CorrelationEngine
from telemetry_engine.services.scheduler import EffectScheduler
from tests.unit.telemetry_engine.helpers import FakeClock


class TestCorrelationEngine:
    @pytest.fixture
    def impacts(self) -> list[tuple[MetricType, float]]:
        return []

    @pytest.fixture
    def engine(
        self, scheduler: EffectScheduler, impacts: list[tuple[MetricType, float]]
    ) -> CorrelationEngine:
        correlation = CorrelationEngine(scheduler)
        for metric_type in MetricType:
            correlation.register_target(
                metric_type, lambda rule: impacts.append((rule.target_metric, rule.impact))
            )
        return correlation

    def test_default_rules(self, engine: CorrelationEngine) -> None:
        pairs = [(r.source_metric, r.target_metric, r.threshold) for r in engine.rules]

        assert pairs == [
            (MetricType.CPU, MetricType.MEMORY, 85),
            (MetricType.MEMORY, MetricType.DISK, 90),
            (MetricType.CPU, MetricType.NETWORK, 80),
        ]

    def test_rule_state_is_per_engine(self, engine: CorrelationEngine) -> None:
        engine.check(MetricType.CPU, 99)

        assert all(rule.active is False for rule in DEFAULT_CORRELATION_RULES)
        assert len(engine.active_rules()) == 2

    def test_below_threshold_does_nothing(
        self, engine: CorrelationEngine, scheduler: EffectScheduler
    ) -> None:
        assert engine.check(MetricType.CPU, 79.9) == []
        assert scheduler.pending == 0

    def test_threshold_is_inclusive(self, engine: CorrelationEngine) -> None:
        triggered = engine.check(MetricType.CPU, 80)
        assert [r.target_metric for r in triggered] == [MetricType.NETWORK]

    def test_trigger_records_start_time_and_schedules_impact_and_release(
        self, engine: CorrelationEngine, scheduler: EffectScheduler, clock: FakeClock
    ) -> None:
        clock.advance(100)
        (rule,) = engine.check(MetricType.MEMORY, 91)

        assert rule.active is True
        assert rule.start_time == 100
        assert scheduler.pending_labels() == [
            "correlation:impact:memory->disk",
            "correlation:release:memory->disk",
        ]

    def test_active_rule_does_not_retrigger(
        self,
        engine: CorrelationEngine,
        scheduler: EffectScheduler,
        clock: FakeClock,
        impacts: list[tuple[MetricType, float]],
    ) -> None:
        engine.check(MetricType.CPU, 90)
        clock.advance(1)
        assert engine.check(MetricType.CPU, 95) == []
        assert scheduler.pending == 4

        clock.advance(10)
        scheduler.run_due()

        assert impacts.count((MetricType.MEMORY, 0.3)) == 1
        assert impacts.count((MetricType.NETWORK, 0.5)) == 1

    def test_impact_lands_after_delay_and_rule_rearms_after_duration(
        self,
        engine: CorrelationEngine,
        scheduler: EffectScheduler,
        clock: FakeClock,
        impacts: list[tuple[MetricType, float]],
    ) -> None:
        engine.check(MetricType.MEMORY, 95)

        clock.advance(19)
        scheduler.run_due()
        assert impacts == []

        clock.advance(1)
        scheduler.run_due()
        assert impacts == [(MetricType.DISK, 0.1)]
        assert engine.active_rules()

        clock.advance(30)
        scheduler.run_due()
        assert engine.active_rules() == []
        assert len(engine.check(MetricType.MEMORY, 95)) == 1

    def test_missing_handler_is_skipped(self, scheduler: EffectScheduler) -> None:
        rule = CorrelationRule(
            source_metric=MetricType.DISK,
            target_metric=MetricType.CPU,
            threshold=50,
            impact=0.2,
            delay_seconds=0,
            duration_seconds=5,
        )
        correlation = CorrelationEngine(scheduler, [rule])

        correlation.check(MetricType.DISK, 60)
        assert scheduler.run_due() == 1

    def test_reset_disarms_every_rule(self, engine: CorrelationEngine) -> None:
        engine.check(MetricType.CPU, 99)
        engine.check(MetricType.MEMORY, 99)

        engine.reset()

        assert engine.active_rules() == []
        assert all(rule.start_time is None for rule in engine.rules)
