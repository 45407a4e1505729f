"""Tests for the daily decision scheduler.

Verifies:
- Eligibility filtering and idempotent selection
- Batch rotation across days
- Category ordering and the daily decision cap
- Re-entrancy protection
- Weekly pruning
"""

from __future__ import annotations

import pytest

from alliances.errors import SchedulerStateError
from alliances.simulation.clock import SimTime
from alliances.simulation.scheduler import DecisionScheduler, SchedulerPhase
from alliances.social.assistance import AssistanceNegotiation
from alliances.social.investment import SecrecyInvestment
from alliances.social.opportunism import OpportunisticActions
from tests.helpers import FixedRandom, make_clan


class RecordingCategory:
    """Category handler that logs its calls and optionally fires a decision."""

    def __init__(self, name, calls, memory=None, clock=None):
        self.name = name
        self.calls = calls
        self.memory = memory
        self.clock = clock

    def __call__(self, clan):
        self.calls.append((self.name, clan.id))
        if self.memory is None:
            return 0
        self.memory.record(clan.id, f"{self.name}_decision", self.clock.now())
        return 1


@pytest.fixture
def scheduler(
    world, coalitions, requests, memory, clock, ledger, model, thresholds, lifecycle, exposure, config
):
    """Scheduler over the real decision components."""
    assistance = AssistanceNegotiation(world, coalitions, requests, ledger, model, thresholds, config)
    investment = SecrecyInvestment(world, coalitions, ledger, model, thresholds, config)
    opportunism = OpportunisticActions(
        world, coalitions, exposure, lifecycle, ledger, model, thresholds, config
    )
    return DecisionScheduler(
        world,
        coalitions,
        requests,
        memory,
        clock,
        lifecycle,
        assistance,
        investment,
        opportunism,
        config,
        rng=FixedRandom(0.0),
    )


def install(scheduler, calls, firing=(), memory=None, clock=None):
    """Replace the scheduler's categories with recording doubles."""
    names = ["alliance", "assistance", "investment", "opportunistic"]
    scheduler.categories = [
        (
            name,
            RecordingCategory(
                name,
                calls,
                memory if name in firing else None,
                clock if name in firing else None,
            ),
        )
        for name in names
    ]


class TestEligibility:
    """Test which clans may act."""

    def test_filters_player_eliminated_leaderless_and_benched(self, world, memory, clock, scheduler):
        """Only ordinary, led, un-benched clans are eligible."""
        make_clan(world, "ok")
        make_clan(world, "player", is_player=True)
        make_clan(world, "gone")
        make_clan(world, "headless", leader_id=None)
        make_clan(world, "benched")
        world.eliminate("gone")
        memory.set_daily_cooldown("benched", clock.now(), 24)

        assert [clan.id for clan in scheduler.select_eligible()] == ["ok"]

    def test_selection_is_idempotent(self, world, scheduler):
        """Selecting twice without changes gives the same list."""
        for clan_id in ("a", "b", "c"):
            make_clan(world, clan_id)

        first = scheduler.select_eligible()
        second = scheduler.select_eligible()

        assert [c.id for c in first] == [c.id for c in second]


class TestBatching:
    """Test the bounded, rotating batch."""

    def test_batch_rotates_over_days(self, world, clock, scheduler):
        """Twelve clans, ten per day: the two left over go first tomorrow."""
        for i in range(12):
            make_clan(world, f"c{i:02d}")
        calls = []
        install(scheduler, calls)

        first = scheduler.run_cycle()
        clock.advance_days(1)
        calls.clear()
        second = scheduler.run_cycle()

        assert first.eligible == 12
        assert first.processed == 10
        assert second.processed == 10
        processed = [clan_id for name, clan_id in calls if name == "alliance"]
        assert processed[:3] == ["c10", "c11", "c00"]

    def test_empty_world(self, scheduler):
        """A cycle with nobody eligible does nothing."""
        summary = scheduler.run_cycle()
        assert summary.processed == 0
        assert summary.decisions == 0


class TestCategories:
    """Test category order and the daily cap."""

    def test_fixed_order(self, world, scheduler):
        """Alliance, assistance, investment, then opportunistic."""
        make_clan(world, "a")
        calls = []
        install(scheduler, calls)

        fired, capped = scheduler.process_clan(world.snapshot("a"))

        assert (fired, capped) == (0, False)
        assert [name for name, _ in calls] == [
            "alliance",
            "assistance",
            "investment",
            "opportunistic",
        ]

    def test_cap_stops_remaining_categories(self, world, memory, clock, scheduler):
        """Two decisions end the clan's turn."""
        make_clan(world, "a")
        calls = []
        install(scheduler, calls, firing={"alliance", "assistance"}, memory=memory, clock=clock)

        fired, capped = scheduler.process_clan(world.snapshot("a"))

        assert (fired, capped) == (2, True)
        assert [name for name, _ in calls] == ["alliance", "assistance"]

    def test_cap_counts_earlier_decisions(self, world, memory, clock, scheduler):
        """A clan already at the cap does nothing at all."""
        make_clan(world, "a")
        memory.record("a", "x", clock.now())
        memory.record("a", "y", clock.now())
        calls = []
        install(scheduler, calls)

        assert scheduler.process_clan(world.snapshot("a")) == (0, True)
        assert calls == []

    def test_daily_cooldown_benches_after_turn(self, world, memory, clock, scheduler):
        """With a daily cooldown configured the clan sits out until it expires."""
        make_clan(world, "a")
        scheduler.config.daily_cooldown_hours = 24.0
        install(scheduler, [])

        scheduler.process_clan(world.snapshot("a"))

        assert memory.has_daily_cooldown("a", clock.now())
        assert scheduler.select_eligible() == []


class TestCycle:
    """Test cycle state handling and pruning."""

    def test_reentrant_cycle_rejected(self, world, scheduler):
        """Starting a cycle from inside a cycle raises and leaves the scheduler idle."""
        make_clan(world, "a")

        def reenter(clan):
            scheduler.run_cycle()
            return 0

        scheduler.categories = [("alliance", reenter)]

        with pytest.raises(SchedulerStateError):
            scheduler.run_cycle()
        assert scheduler.phase is SchedulerPhase.IDLE

    def test_weekly_prune_runs_once_per_week(self, memory, clock, scheduler):
        """Day 14 prunes the day-0 record; a second run that day does not prune again."""
        memory.record("a", "old", SimTime.of_days(0))
        clock.advance_days(14)

        first = scheduler.run_cycle()
        second = scheduler.run_cycle()
        clock.advance_days(1)
        third = scheduler.run_cycle()

        assert first.weekly_prune
        assert first.pruned_decisions == 1
        assert not second.weekly_prune
        assert not third.weekly_prune
        assert memory.decisions_for("a") == []

    def test_player_and_eliminated_never_decide(self, world, memory, clock, scheduler):
        """A real multi-day run leaves no record for excluded clans."""
        world.populate(8)
        world.eliminate("clan_3")

        for _ in range(10):
            clock.advance_days(1)
            scheduler.run_cycle()

        assert memory.decisions_for("clan_0") == []
        assert memory.decisions_for("clan_3") == []
