"""
Domain models for the synthetic telemetry engine.

These models describe what the engine hands to its callers: metric series,
alerts, log lines and the aggregate snapshot. Snapshot models are frozen and
use tuples for their sequences so a returned snapshot can't be mutated in place.
"""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class MetricType(str, Enum):
    """The fixed set of simulated system metrics."""

    CPU = "cpu"
    MEMORY = "memory"
    DISK = "disk"
    NETWORK = "network"


class AlertType(str, Enum):
    """Alert types understood by the monitoring UI."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LogLevel(str, Enum):
    """Log levels for synthesized log lines."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    DEBUG = "debug"


class MetricState(BaseModel):
    """Current value and bounded history of one metric."""

    model_config = ConfigDict(frozen=True)

    current: float
    history: tuple[float, ...] = Field(max_length=60)
    min: float
    max: float

    @model_validator(mode="after")
    def bounds_match_history(self) -> "MetricState":
        if self.history and (self.min != min(self.history) or self.max != max(self.history)):
            raise ValueError("min/max must match the history window")
        return self


class Alert(BaseModel):
    """An alert raised by threshold evaluation, background noise or event injection."""

    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    type: AlertType
    message: str
    acknowledged: bool = False
    source: str | None = Field(default=None, description="Subsystem that produced the alert")


class LogEntry(BaseModel):
    """A single synthesized log line."""

    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    level: LogLevel
    service: str
    message: str


class ProcessUsage(BaseModel):
    """CPU usage attributed to a named process."""

    model_config = ConfigDict(frozen=True)

    name: str
    usage: float


class CorrelationRule(BaseModel):
    """
    A metric crossing `threshold` schedules a delayed, time-limited effect on another.

    `active` guards against re-triggering while a previous effect is pending or
    in progress; `start_time` is the scheduler clock reading at trigger time.
    """

    source_metric: MetricType
    target_metric: MetricType
    threshold: float
    impact: float
    delay_seconds: float = Field(ge=0.0)
    duration_seconds: float = Field(gt=0.0)
    active: bool = False
    start_time: float | None = None


class MetricThreshold(BaseModel):
    """Warning and critical levels for one metric."""

    model_config = ConfigDict(frozen=True)

    warning: float
    critical: float

    @model_validator(mode="after")
    def warning_not_above_critical(self) -> "MetricThreshold":
        """Reject inverted thresholds instead of guessing which one the caller meant."""
        if self.warning > self.critical:
            raise ValueError(
                f"warning threshold {self.warning} is above critical threshold {self.critical}"
            )
        return self


class ThresholdSettings(BaseModel):
    """Alert thresholds for all metrics; network values are in MB/s."""

    model_config = ConfigDict(frozen=True)

    cpu: MetricThreshold = MetricThreshold(warning=70, critical=90)
    memory: MetricThreshold = MetricThreshold(warning=75, critical=90)
    disk: MetricThreshold = MetricThreshold(warning=80, critical=95)
    network: MetricThreshold = MetricThreshold(warning=8, critical=12)

    def for_metric(self, metric_type: MetricType) -> MetricThreshold:
        return getattr(self, metric_type.value)


class MetricsSnapshot(BaseModel):
    """States of all four metrics at one point in time."""

    model_config = ConfigDict(frozen=True)

    cpu: MetricState
    memory: MetricState
    disk: MetricState
    network: MetricState

    def for_metric(self, metric_type: MetricType) -> MetricState:
        return getattr(self, metric_type.value)


class LastUpdated(BaseModel):
    """When each part of the snapshot last changed."""

    model_config = ConfigDict(frozen=True)

    cpu: datetime = Field(default_factory=lambda: datetime.now(UTC))
    memory: datetime = Field(default_factory=lambda: datetime.now(UTC))
    disk: datetime = Field(default_factory=lambda: datetime.now(UTC))
    network: datetime = Field(default_factory=lambda: datetime.now(UTC))
    logs: datetime = Field(default_factory=lambda: datetime.now(UTC))
    alerts: datetime = Field(default_factory=lambda: datetime.now(UTC))


class SystemState(BaseModel):
    """Immutable snapshot of the whole simulation, newest alerts and logs first."""

    model_config = ConfigDict(frozen=True)

    metrics: MetricsSnapshot
    alerts: tuple[Alert, ...] = ()
    logs: tuple[LogEntry, ...] = ()
    top_processes: tuple[ProcessUsage, ...] = ()
    last_updated: LastUpdated = Field(default_factory=LastUpdated)
