"""Shared fixtures built on the test doubles in `helpers`."""

import random

import pytest

from telemetry_engine.services.scheduler import EffectScheduler
from tests.unit.telemetry_engine.helpers import BUSINESS_HOURS, NIGHT, FakeClock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler(clock: FakeClock) -> EffectScheduler:
    return EffectScheduler(clock=clock)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(42)


@pytest.fixture
def business_hours():
    return lambda: BUSINESS_HOURS


@pytest.fixture
def night():
    return lambda: NIGHT
