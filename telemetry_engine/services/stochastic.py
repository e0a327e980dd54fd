"""
Shared signal math for the metric generators.

Each generator composes one `StochasticProcess` and feeds it per-metric extras
(leak rates, organic growth, traffic tables). A tick's change is the sum of a
smoothed random-walk trend, per-tick noise, a seasonal pull toward a
time-of-day target level, and an occasional spike, all expressed as a
fraction of the metric's range.
"""

import random
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from telemetry_engine.domain.models import MetricState

HISTORY_SIZE = 60

# Seasonal factors shift the target level by half their value, and the pull
# toward that target is `seasonal_strength * SEASONAL_PULL` of the gap per tick.
SEASONAL_TARGET_SCALE = 0.5
SEASONAL_PULL = 0.2

BUSINESS_HOURS_SPIKE_CHANCE = 0.03
OFF_HOURS_SPIKE_CHANCE = 0.01
POSITIVE_SPIKE_CHANCE = 0.7

Calendar = Callable[[], datetime]


def round_value(value: float) -> float:
    return round(value, 1)


def local_now() -> datetime:
    return datetime.now().astimezone()


@dataclass(frozen=True)
class CalendarContext:
    """Wall-clock classification driving seasonal load and spike odds."""

    hour: int
    weekday: int  # Monday == 0
    is_weekend: bool
    is_daytime: bool
    is_business_hours: bool

    @classmethod
    def from_datetime(cls, moment: datetime) -> "CalendarContext":
        weekday = moment.weekday()
        is_weekend = weekday >= 5
        return cls(
            hour=moment.hour,
            weekday=weekday,
            is_weekend=is_weekend,
            is_daytime=8 <= moment.hour < 20,
            is_business_hours=9 <= moment.hour <= 17 and not is_weekend,
        )

    def base_seasonal_factor(self) -> float:
        if self.is_business_hours:
            return 0.5
        if self.is_daytime:
            return 0.3
        return -0.3


@dataclass(frozen=True)
class ProcessProfile:
    """Per-metric parameters of the stochastic process."""

    minimum: float
    maximum: float
    volatility: float
    trend_strength: float = 0.1
    noise_strength: float = 0.2
    seasonal_strength: float = 0.3

    @property
    def span(self) -> float:
        return self.maximum - self.minimum


@dataclass(frozen=True)
class SignalComponents:
    """The parts of the most recent tick's change, as fractions of the range."""

    trend: float = 0.0
    noise: float = 0.0
    seasonal: float = 0.0
    spike: float = 0.0
    external: float = 0.0

    @property
    def total(self) -> float:
        return self.trend + self.noise + self.seasonal + self.spike + self.external


class StochasticProcess:
    """Bounded random process with a fixed-capacity history of rounded values."""

    def __init__(
        self,
        profile: ProcessProfile,
        initial_value: float,
        rng: random.Random | None = None,
        calendar: Calendar | None = None,
    ) -> None:
        self.profile = profile
        self.rng = rng if rng is not None else random.Random()
        self.calendar = calendar or local_now
        self.current_value = self.clamp(initial_value)
        # Level (fraction of range) the seasonal target is centred on.
        self.anchor = self.position(self.current_value)
        self.trend = 0.0
        self.history: deque[float] = deque(
            [round_value(self.current_value)] * HISTORY_SIZE, maxlen=HISTORY_SIZE
        )
        self.last_components = SignalComponents()

    def clamp(self, value: float) -> float:
        return max(self.profile.minimum, min(self.profile.maximum, value))

    def position(self, value: float) -> float:
        return (value - self.profile.minimum) / self.profile.span

    def context(self) -> CalendarContext:
        return CalendarContext.from_datetime(self.calendar())

    def trend_component(self) -> float:
        self.trend = self.trend * 0.95 + (self.rng.random() - 0.5) * 0.1
        return self.trend * self.profile.trend_strength

    def noise_component(self) -> float:
        return (self.rng.random() - 0.5) * self.profile.noise_strength * self.profile.volatility

    def seasonal_component(self, factor: float) -> float:
        target = self.anchor + factor * SEASONAL_TARGET_SCALE
        gap = target - self.position(self.current_value)
        return gap * self.profile.seasonal_strength * SEASONAL_PULL

    def spike_component(self, context: CalendarContext) -> float:
        chance = (
            BUSINESS_HOURS_SPIKE_CHANCE if context.is_business_hours else OFF_HOURS_SPIKE_CHANCE
        )
        if self.rng.random() >= chance:
            return 0.0
        direction = 1.0 if self.rng.random() < POSITIVE_SPIKE_CHANCE else -1.0
        return direction * self.rng.uniform(0.1, 0.3)

    def step(
        self,
        external_influence: float = 0.0,
        *,
        context: CalendarContext | None = None,
        trend_offset: float = 0.0,
        seasonal_offset: float = 0.0,
    ) -> float:
        """Advance one tick and return the new rounded value."""
        context = context or self.context()
        seasonal_factor = context.base_seasonal_factor() * self.profile.seasonal_strength
        components = SignalComponents(
            trend=self.trend_component() + trend_offset,
            noise=self.noise_component(),
            seasonal=self.seasonal_component(seasonal_factor + seasonal_offset),
            spike=self.spike_component(context),
            external=external_influence,
        )
        self.last_components = components
        self.current_value = self.clamp(self.current_value + components.total * self.profile.span)
        return self._append(self.current_value)

    def record(self, value: float) -> float:
        """Set the current value directly and append it to history."""
        self.current_value = self.clamp(value)
        return self._append(self.current_value)

    def set_current(self, value: float) -> None:
        """Set the current value without touching history; the next tick records it."""
        self.current_value = self.clamp(value)

    def _append(self, value: float) -> float:
        rounded = round_value(value)
        self.history.append(rounded)
        return rounded

    def state(self) -> MetricState:
        history = tuple(self.history)
        return MetricState(
            current=round_value(self.current_value),
            history=history,
            min=min(history),
            max=max(history),
        )
