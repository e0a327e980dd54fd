"""Test doubles: a manual clock, scripted randomness and fixed wall-clock moments."""

import random
from datetime import datetime

# Wednesday 11:00 is inside business hours; Wednesday 02:00 is night.
BUSINESS_HOURS = datetime(2024, 6, 5, 11, 0)
NIGHT = datetime(2024, 6, 5, 2, 0)
SATURDAY_NOON = datetime(2024, 6, 8, 12, 0)


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedRandom(random.Random):
    """Random whose `random()` (and so `uniform()`) returns scripted values in order."""

    def __init__(self, values: list[float]) -> None:
        super().__init__(0)
        self._values = iter(values)

    def random(self) -> float:
        return next(self._values)
