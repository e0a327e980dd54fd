"""
Template-based log synthesis.

Background logs come from a catalog grouped by (level, service). Incident logs
come from a separate error-only catalog and are only produced when a metric is
past its incident threshold, which sits above the alert thresholds.
"""

import random
import string
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

import structlog

from telemetry_engine.domain.models import LogEntry, LogLevel, MetricType

logger = structlog.get_logger(__name__)

_FORMATTER = string.Formatter()

INCIDENT_THRESHOLDS: dict[MetricType, float] = {
    MetricType.CPU: 85,
    MetricType.MEMORY: 85,
    MetricType.DISK: 90,
    MetricType.NETWORK: 12,
}


@dataclass(frozen=True)
class LogTemplate:
    """Message patterns for one (level, service) pair and the values their tokens draw from."""

    level: LogLevel
    service: str
    patterns: tuple[str, ...]
    tokens: Mapping[str, Sequence[str]] = field(default_factory=dict)


def resolve_template(
    pattern: str, tokens: Mapping[str, Sequence[str]], rng: random.Random
) -> str:
    """Fill each `{token}` with a random candidate; tokens without candidates stay literal."""
    parts = []
    for literal, token, _format_spec, _conversion in _FORMATTER.parse(pattern):
        parts.append(literal)
        if token is None:
            continue
        candidates = tokens.get(token)
        parts.append(rng.choice(candidates) if candidates else f"{{{token}}}")
    return "".join(parts)


_IPS = ("192.168.1.1", "10.0.0.23", "172.16.254.1", "54.231.0.10")
_USER_IDS = ("user_123", "admin_007", "customer_458", "user_781")
_SLOW_TIMES = ("450", "612", "783", "924")

BACKGROUND_TEMPLATES: tuple[LogTemplate, ...] = (
    LogTemplate(
        level=LogLevel.INFO,
        service="nginx",
        patterns=(
            "Handled request {method} {path} {status}",
            "Client {ip} connected",
            "Upstream response time: {time}ms",
            "Request processed successfully",
        ),
        tokens={
            "method": ("GET", "POST", "PUT", "DELETE"),
            "path": ("/api/v1/users", "/api/v1/products", "/api/v1/orders", "/health", "/metrics"),
            "status": ("200", "201", "204", "304"),
            "ip": _IPS,
            "time": ("12", "45", "87", "120", "32"),
        },
    ),
    LogTemplate(
        level=LogLevel.INFO,
        service="api",
        patterns=(
            "User {userId} logged in",
            "Created resource with id {resourceId}",
            "Database query executed in {time}ms",
            "Cache hit ratio: {ratio}%",
        ),
        tokens={
            "userId": _USER_IDS,
            "resourceId": ("res_42", "doc_756", "img_094", "file_381"),
            "time": ("24", "56", "84", "102", "17"),
            "ratio": ("78.5", "92.1", "64.7", "88.3"),
        },
    ),
    LogTemplate(
        level=LogLevel.WARNING,
        service="api",
        patterns=(
            "Slow query detected: {query} ({time}ms)",
            "Rate limit approaching for client {ip}",
            "Retrying operation after failure (attempt {attempt})",
            "High latency detected on endpoint {endpoint}",
        ),
        tokens={
            "query": (
                "SELECT * FROM users",
                'UPDATE orders SET status = "processed"',
                "JOIN large_table ON id",
            ),
            "time": _SLOW_TIMES,
            "ip": _IPS,
            "attempt": ("2", "3", "4"),
            "endpoint": ("/api/v1/reports", "/api/v1/analytics", "/api/v1/search"),
        },
    ),
    LogTemplate(
        level=LogLevel.ERROR,
        service="api",
        patterns=(
            "Database connection failed: {error}",
            "Unhandled exception in request handler: {error}",
            "Failed to process request: {error}",
            "Authentication failed for user {userId}",
        ),
        tokens={
            "error": (
                "Connection timeout",
                "No route to host",
                "Out of memory",
                "Permission denied",
                "Invalid input syntax",
            ),
            "userId": _USER_IDS,
        },
    ),
    LogTemplate(
        level=LogLevel.DEBUG,
        service="api",
        patterns=(
            "Request payload: {payload}",
            "Response body: {response}",
            "Headers: {headers}",
            "Session data: {session}",
        ),
        tokens={
            "payload": (
                '{"id":123,"action":"update"}',
                '{"filter":{"status":"active"}}',
                '{"user":{"name":"John","role":"admin"}}',
            ),
            "response": (
                '{"status":"success","data":[...]}',
                '{"error":null,"results":{"count":42}}',
                '{"message":"Operation completed"}',
            ),
            "headers": (
                "Content-Type: application/json, Authorization: Bearer jwt...",
                "X-Request-ID: req-123, User-Agent: Mozilla...",
                "Accept: */*, Cache-Control: no-cache",
            ),
            "session": (
                '{"user":{"id":123},"permissions":["read","write"]}',
                '{"authenticated":true,"expires":"2023-12-01T00:00:00Z"}',
                '{"locale":"en-US","theme":"dark"}',
            ),
        },
    ),
    LogTemplate(
        level=LogLevel.INFO,
        service="database",
        patterns=(
            "Connected to database {dbName}",
            "Query executed successfully in {time}ms",
            "Transaction completed",
            "Indexes updated",
        ),
        tokens={
            "dbName": ("main", "users", "products", "analytics"),
            "time": ("31", "67", "94", "106", "22"),
        },
    ),
    LogTemplate(
        level=LogLevel.WARNING,
        service="database",
        patterns=(
            "Slow query detected: {time}ms",
            "High connection pool usage: {usage}%",
            "Table {table} approaching size limit",
            "Deadlock detected and resolved",
        ),
        tokens={
            "time": _SLOW_TIMES,
            "usage": ("85", "87", "92", "95"),
            "table": ("users", "orders", "products", "audit_log"),
        },
    ),
    LogTemplate(
        level=LogLevel.INFO,
        service="cache",
        patterns=(
            "Cache hit for key {key}",
            "Cache miss for key {key}",
            "Cache eviction: {count} items",
            "Cache size: {size}MB",
        ),
        tokens={
            "key": ("user:123", "product:456", "settings", "menu:main"),
            "count": ("5", "12", "27", "41"),
            "size": ("256", "384", "512", "640"),
        },
    ),
)

INCIDENT_TEMPLATES: tuple[LogTemplate, ...] = (
    LogTemplate(
        level=LogLevel.ERROR,
        service="api",
        patterns=(
            "Service unhealthy: CPU usage at {value}%",
            "Request timed out due to high system load",
            "Process terminated unexpectedly due to OOM",
            "Health check failed: system overloaded",
        ),
    ),
    LogTemplate(
        level=LogLevel.ERROR,
        service="database",
        patterns=(
            "Database connection pool exhausted",
            "Query failed due to timeout",
            "Disk I/O performance degraded",
            "Out of memory error in query execution",
        ),
    ),
    LogTemplate(
        level=LogLevel.ERROR,
        service="cache",
        patterns=(
            "Cache server disconnected",
            "Memory limit reached, entries evicted",
            "Failed to store object: out of memory",
            "Cache service restarting due to high memory pressure",
        ),
    ),
    LogTemplate(
        level=LogLevel.ERROR,
        service="auth-service",
        patterns=(
            "Authentication service unresponsive",
            "Failed to validate tokens: service overloaded",
            "Connection pool limit reached",
            "Auth service scaling up due to high load",
        ),
    ),
)


class LogSynthesizer:
    """Produces background log lines and incident errors tied to metric values."""

    def __init__(
        self,
        rng: random.Random | None = None,
        templates: Sequence[LogTemplate] = BACKGROUND_TEMPLATES,
        incident_templates: Sequence[LogTemplate] = INCIDENT_TEMPLATES,
    ) -> None:
        self.rng = rng if rng is not None else random.Random()
        self.templates = tuple(templates)
        self.incident_templates = tuple(incident_templates)
        self.logger = logger.bind(component="log_synthesizer")

    def _entry(self, template: LogTemplate, tokens: Mapping[str, Sequence[str]]) -> LogEntry:
        pattern = self.rng.choice(template.patterns)
        return LogEntry(
            id=uuid.uuid4().hex,
            level=template.level,
            service=template.service,
            message=resolve_template(pattern, tokens, self.rng),
        )

    def generate_random_log(self) -> LogEntry:
        template = self.rng.choice(self.templates)
        return self._entry(template, template.tokens)

    def generate_correlated_error_log(
        self, metric_type: MetricType | str, value: float
    ) -> LogEntry | None:
        """Incident error for a severe reading, or None below the incident threshold."""
        threshold = INCIDENT_THRESHOLDS[MetricType(metric_type)]
        if value < threshold:
            return None

        template = self.rng.choice(self.incident_templates)
        entry = self._entry(template, {**template.tokens, "value": (f"{value:g}",)})
        self.logger.debug(
            "incident_log_generated", metric=MetricType(metric_type).value, service=entry.service
        )
        return entry
