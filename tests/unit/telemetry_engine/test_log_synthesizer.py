"""Tests for template resolution and log synthesis."""

import random

import pytest

from telemetry_engine.domain.models import LogLevel, MetricType
from telemetry_engine.services.log_synthesizer import (
    BACKGROUND_TEMPLATES,
    INCIDENT_TEMPLATES,
    LogSynthesizer,
    LogTemplate,
    resolve_template,
)


class TestResolveTemplate:
    def test_tokens_are_filled_from_candidates(self) -> None:
        message = resolve_template(
            "Handled request {method} {path}",
            {"method": ("GET",), "path": ("/health",)},
            random.Random(0),
        )
        assert message == "Handled request GET /health"

    def test_unknown_tokens_stay_literal(self) -> None:
        message = resolve_template(
            "User {userId} did {thing}", {"userId": ("u1",)}, random.Random(0)
        )
        assert message == "User u1 did {thing}"

    def test_plain_pattern_is_unchanged(self) -> None:
        assert resolve_template("Transaction completed", {}, random.Random(0)) == (
            "Transaction completed"
        )


class TestLogSynthesizer:
    @pytest.fixture
    def synthesizer(self) -> LogSynthesizer:
        return LogSynthesizer(random.Random(5))

    def test_random_logs_come_from_the_background_catalog(
        self, synthesizer: LogSynthesizer
    ) -> None:
        pairs = {(t.level, t.service) for t in BACKGROUND_TEMPLATES}
        token_names = {name for t in BACKGROUND_TEMPLATES for name in t.tokens}

        for _ in range(50):
            entry = synthesizer.generate_random_log()
            assert (entry.level, entry.service) in pairs
            assert not any(f"{{{name}}}" in entry.message for name in token_names)

    def test_every_background_token_has_candidates(self) -> None:
        for template in BACKGROUND_TEMPLATES:
            for pattern in template.patterns:
                resolved = resolve_template(pattern, template.tokens, random.Random(0))
                assert "{" not in resolved or template.level == LogLevel.DEBUG

    @pytest.mark.parametrize(
        "metric_type,below,at",
        [
            (MetricType.CPU, 84.9, 85),
            (MetricType.MEMORY, 84.9, 85),
            (MetricType.DISK, 89.9, 90),
            (MetricType.NETWORK, 11.9, 12),
        ],
    )
    def test_incident_thresholds(
        self, synthesizer: LogSynthesizer, metric_type: MetricType, below: float, at: float
    ) -> None:
        assert synthesizer.generate_correlated_error_log(metric_type, below) is None

        entry = synthesizer.generate_correlated_error_log(metric_type, at)
        assert entry is not None
        assert entry.level == LogLevel.ERROR

    def test_moderate_cpu_gives_no_incident_but_severe_cpu_does(
        self, synthesizer: LogSynthesizer
    ) -> None:
        assert synthesizer.generate_correlated_error_log("cpu", 80) is None

        entry = synthesizer.generate_correlated_error_log("cpu", 92)
        assert entry is not None
        assert entry.level == LogLevel.ERROR
        assert entry.service in {t.service for t in INCIDENT_TEMPLATES}

    def test_incident_message_carries_the_value(self) -> None:
        template = LogTemplate(
            level=LogLevel.ERROR,
            service="api",
            patterns=("Service unhealthy: CPU usage at {value}%",),
        )
        synthesizer = LogSynthesizer(random.Random(0), incident_templates=[template])

        entry = synthesizer.generate_correlated_error_log(MetricType.CPU, 92.5)

        assert entry is not None
        assert entry.message == "Service unhealthy: CPU usage at 92.5%"

    def test_incident_catalog_is_separate_from_background(self) -> None:
        background = {p for t in BACKGROUND_TEMPLATES for p in t.patterns}
        incident = {p for t in INCIDENT_TEMPLATES for p in t.patterns}

        assert background.isdisjoint(incident)
        assert all(t.level == LogLevel.ERROR for t in INCIDENT_TEMPLATES)

    def test_entries_have_unique_ids(self, synthesizer: LogSynthesizer) -> None:
        ids = {synthesizer.generate_random_log().id for _ in range(20)}
        assert len(ids) == 20
