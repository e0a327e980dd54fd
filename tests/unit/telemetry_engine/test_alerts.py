"""Tests for threshold alert evaluation."""

import random

import pytest

from telemetry_engine.domain.models import AlertType, MetricThreshold, ThresholdSettings
from telemetry_engine.services.alerts import (
    RANDOM_ALERT_CATALOG,
    AlertEvaluator,
    format_metric_value,
)
from telemetry_engine.services.generators import CpuGenerator
from telemetry_engine.services.scheduler import EffectScheduler


class TestAlertEvaluator:
    @pytest.fixture
    def evaluator(self) -> AlertEvaluator:
        return AlertEvaluator(rng=random.Random(0))

    def test_nothing_below_thresholds(self, evaluator: AlertEvaluator) -> None:
        assert evaluator.check_thresholds(30, 40, 60, 3) is None

    @pytest.mark.parametrize(
        "readings,message,alert_type,source",
        [
            ((92.5, 10, 10, 1), "Critical CPU usage: 92.5%", AlertType.ERROR, "cpu"),
            ((75, 10, 10, 1), "High CPU usage: 75%", AlertType.WARNING, "cpu"),
            ((10, 91, 10, 1), "Critical memory usage: 91%", AlertType.ERROR, "memory"),
            ((10, 80.2, 10, 1), "High memory usage: 80.2%", AlertType.WARNING, "memory"),
            ((10, 10, 96, 1), "Critical disk usage: 96%", AlertType.ERROR, "disk"),
            ((10, 10, 85, 1), "High disk usage: 85%", AlertType.WARNING, "disk"),
            ((10, 10, 10, 13.1), "Critical network I/O: 13.1 MB/s", AlertType.ERROR, "network"),
            ((10, 10, 10, 8), "High network I/O: 8 MB/s", AlertType.WARNING, "network"),
        ],
    )
    def test_messages_and_types(
        self,
        evaluator: AlertEvaluator,
        readings: tuple[float, float, float, float],
        message: str,
        alert_type: AlertType,
        source: str,
    ) -> None:
        alert = evaluator.check_thresholds(*readings)

        assert alert is not None
        assert alert.message == message
        assert alert.type == alert_type
        assert alert.source == source
        assert alert.acknowledged is False

    def test_cpu_wins_when_everything_breaches(self, evaluator: AlertEvaluator) -> None:
        alert = evaluator.check_thresholds(92.3, 99, 99, 14)

        assert alert is not None
        assert alert.message == "Critical CPU usage: 92.3%"
        assert alert.type == AlertType.ERROR

    def test_earlier_warning_beats_later_critical(self, evaluator: AlertEvaluator) -> None:
        alert = evaluator.check_thresholds(72, 95, 10, 1)

        assert alert is not None
        assert alert.message == "High CPU usage: 72%"

    def test_thresholds_are_inclusive(self, evaluator: AlertEvaluator) -> None:
        alert = evaluator.check_thresholds(90, 10, 10, 1)
        assert alert is not None and alert.type == AlertType.ERROR

    def test_updated_thresholds_apply_immediately(self, evaluator: AlertEvaluator) -> None:
        evaluator.set_thresholds(
            ThresholdSettings(cpu=MetricThreshold(warning=20, critical=25))
        )

        alert = evaluator.check_thresholds(30, 10, 10, 1)
        assert alert is not None
        assert alert.message == "Critical CPU usage: 30%"

    def test_each_alert_gets_a_fresh_id(self, evaluator: AlertEvaluator) -> None:
        first = evaluator.check_thresholds(95, 0, 0, 0)
        second = evaluator.check_thresholds(95, 0, 0, 0)

        assert first is not None and second is not None
        assert first.id != second.id

    def test_ticking_cpu_into_the_critical_band_raises_critical_alert(
        self, evaluator: AlertEvaluator, business_hours
    ) -> None:
        cpu = CpuGenerator(
            EffectScheduler(), 30, rng=random.Random(1), calendar=business_hours
        )
        value = cpu.state().current
        for _ in range(200):
            value = cpu.tick(0.05)
            if value >= 90:
                break

        assert value >= 90
        alert = evaluator.check_thresholds(value, 0, 0, 0)
        assert alert is not None
        assert alert.type == AlertType.ERROR
        assert alert.message == f"Critical CPU usage: {format_metric_value(value)}%"

    def test_random_alert_comes_from_catalog(self, evaluator: AlertEvaluator) -> None:
        catalog = set(RANDOM_ALERT_CATALOG)

        for _ in range(20):
            alert = evaluator.generate_random_alert()
            assert (alert.message, alert.type, alert.source) in catalog


@pytest.mark.parametrize("value,rendered", [(92.0, "92"), (92.3, "92.3"), (0.1, "0.1")])
def test_format_metric_value(value: float, rendered: str) -> None:
    assert format_metric_value(value) == rendered
