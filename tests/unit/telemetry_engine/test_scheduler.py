"""Tests for the deferred-effect scheduler."""

from telemetry_engine.services.scheduler import EffectScheduler
from tests.unit.telemetry_engine.helpers import FakeClock


class TestEffectScheduler:
    def test_effects_wait_until_their_delay_has_passed(
        self, scheduler: EffectScheduler, clock: FakeClock
    ) -> None:
        fired: list[str] = []
        scheduler.schedule(5, lambda: fired.append("a"), label="a")

        clock.advance(4.9)
        assert scheduler.run_due() == 0
        assert fired == []

        clock.advance(0.1)
        assert scheduler.run_due() == 1
        assert fired == ["a"]
        assert scheduler.pending == 0

    def test_due_effects_run_in_fire_order_then_scheduling_order(
        self, scheduler: EffectScheduler, clock: FakeClock
    ) -> None:
        fired: list[str] = []
        scheduler.schedule(3, lambda: fired.append("late"))
        scheduler.schedule(1, lambda: fired.append("first"))
        scheduler.schedule(1, lambda: fired.append("second"))

        clock.advance(10)
        scheduler.run_due()

        assert fired == ["first", "second", "late"]

    def test_cancelled_effect_never_runs(
        self, scheduler: EffectScheduler, clock: FakeClock
    ) -> None:
        fired: list[str] = []
        handle = scheduler.schedule(1, lambda: fired.append("cancelled"))
        scheduler.schedule(1, lambda: fired.append("kept"))

        handle.cancel()
        assert scheduler.pending == 1

        clock.advance(1)
        assert scheduler.run_due() == 1
        assert fired == ["kept"]

    def test_cancel_all_drops_everything(
        self, scheduler: EffectScheduler, clock: FakeClock
    ) -> None:
        fired: list[str] = []
        for delay in (1, 2, 3):
            scheduler.schedule(delay, lambda: fired.append("x"))

        assert scheduler.cancel_all() == 3
        assert scheduler.pending == 0
        assert scheduler.next_fire_at() is None

        clock.advance(100)
        assert scheduler.run_due() == 0
        assert fired == []

    def test_failing_effect_does_not_stop_the_rest(
        self, scheduler: EffectScheduler, clock: FakeClock
    ) -> None:
        fired: list[str] = []

        def boom() -> None:
            raise RuntimeError("effect failed")

        scheduler.schedule(1, boom, label="boom")
        scheduler.schedule(1, lambda: fired.append("after"))

        clock.advance(1)
        assert scheduler.run_due() == 1
        assert fired == ["after"]

    def test_effect_scheduled_by_an_effect_runs_in_same_pass_when_due(
        self, scheduler: EffectScheduler, clock: FakeClock
    ) -> None:
        fired: list[str] = []

        def chain() -> None:
            fired.append("outer")
            scheduler.schedule(0, lambda: fired.append("inner"))

        scheduler.schedule(1, chain)
        clock.advance(1)

        assert scheduler.run_due() == 2
        assert fired == ["outer", "inner"]

    def test_run_due_accepts_an_explicit_time(self, scheduler: EffectScheduler) -> None:
        fired: list[str] = []
        scheduler.schedule(5, lambda: fired.append("x"))

        assert scheduler.run_due(now=5.0) == 1
        assert fired == ["x"]

    def test_negative_delay_is_treated_as_due_now(
        self, scheduler: EffectScheduler, clock: FakeClock
    ) -> None:
        handle = scheduler.schedule(-3, lambda: None)
        assert handle.fire_at == clock.now

    def test_introspection_reports_live_effects(
        self, scheduler: EffectScheduler, clock: FakeClock
    ) -> None:
        clock.advance(10)
        scheduler.schedule(7, lambda: None, label="later")
        cancelled = scheduler.schedule(2, lambda: None, label="cancelled")
        scheduler.schedule(4, lambda: None, label="sooner")
        cancelled.cancel()

        assert scheduler.pending_labels() == ["sooner", "later"]
        assert scheduler.next_fire_at() == 14.0
