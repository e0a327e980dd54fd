"""Threshold-based alert evaluation and background alert noise."""

import random
import uuid

import structlog

from telemetry_engine.domain.models import Alert, AlertType, MetricType, ThresholdSettings

logger = structlog.get_logger(__name__)

# (metric, critical message, warning message); order is evaluation priority.
_THRESHOLD_MESSAGES: tuple[tuple[MetricType, str, str], ...] = (
    (MetricType.CPU, "Critical CPU usage: {value}%", "High CPU usage: {value}%"),
    (MetricType.MEMORY, "Critical memory usage: {value}%", "High memory usage: {value}%"),
    (MetricType.DISK, "Critical disk usage: {value}%", "High disk usage: {value}%"),
    (MetricType.NETWORK, "Critical network I/O: {value} MB/s", "High network I/O: {value} MB/s"),
)

RANDOM_ALERT_CATALOG: tuple[tuple[str, AlertType, str], ...] = (
    ("Container restart detected", AlertType.WARNING, "container"),
    ("Pipeline failure", AlertType.ERROR, "pipeline"),
    ("Database connection issue", AlertType.WARNING, "database"),
    ("API endpoint timeout", AlertType.WARNING, "api"),
    ("Authentication service error", AlertType.ERROR, "auth"),
    ("Redis cache failure", AlertType.ERROR, "cache"),
    ("Disk space running low", AlertType.WARNING, "disk"),
    ("Network connectivity issues", AlertType.WARNING, "network"),
)


def format_metric_value(value: float) -> str:
    """Render 92.0 as '92' and 92.3 as '92.3'."""
    return f"{value:g}"


def new_alert(message: str, alert_type: AlertType, source: str | None = None) -> Alert:
    return Alert(id=uuid.uuid4().hex, type=alert_type, message=message, source=source)


class AlertEvaluator:
    """
    Produces at most one alert per evaluation.

    Metrics are checked in the fixed order CPU, memory, disk, network, and for
    each one the critical level before the warning level.
    """

    def __init__(
        self, thresholds: ThresholdSettings | None = None, rng: random.Random | None = None
    ) -> None:
        self.thresholds = thresholds or ThresholdSettings()
        self.rng = rng if rng is not None else random.Random()
        self.logger = logger.bind(component="alert_evaluator")

    def set_thresholds(self, thresholds: ThresholdSettings) -> None:
        self.thresholds = thresholds
        self.logger.info("thresholds_updated", thresholds=thresholds.model_dump())

    def check_thresholds(
        self, cpu: float, memory: float, disk: float, network: float
    ) -> Alert | None:
        values = {
            MetricType.CPU: cpu,
            MetricType.MEMORY: memory,
            MetricType.DISK: disk,
            MetricType.NETWORK: network,
        }

        for metric_type, critical_message, warning_message in _THRESHOLD_MESSAGES:
            value = values[metric_type]
            threshold = self.thresholds.for_metric(metric_type)
            rendered = format_metric_value(value)

            if value >= threshold.critical:
                alert = new_alert(
                    critical_message.format(value=rendered), AlertType.ERROR, metric_type.value
                )
            elif value >= threshold.warning:
                alert = new_alert(
                    warning_message.format(value=rendered), AlertType.WARNING, metric_type.value
                )
            else:
                continue

            self.logger.info(
                "threshold_alert_raised",
                metric=metric_type.value,
                value=value,
                alert_type=alert.type.value,
            )
            return alert

        return None

    def generate_random_alert(self) -> Alert:
        message, alert_type, source = self.rng.choice(RANDOM_ALERT_CATALOG)
        return new_alert(message, alert_type, source)
