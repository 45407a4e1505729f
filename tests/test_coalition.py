"""Tests for coalition formation and management.

Tests the in-memory coalition store including:
- Coalition creation and membership
- Proposal acceptance and refusal
- Leader promotion and dissolution
- Daily upkeep
- History tagging
"""

from __future__ import annotations

import pytest

from alliances.social.coalition import (
    MANAGER_HISTORY_LIMIT,
    MAX_HISTORY_ENTRIES,
    Coalition,
    CoalitionManager,
    HistoryCategory,
    categorize,
)
from alliances.social.formation import CoalitionFormation
from tests.helpers import FixedRandom, make_clan


class TestCoalition:
    """Test Coalition data structure."""

    def test_coalition_creation(self):
        """Test basic coalition creation."""
        coalition = Coalition(
            id="test123", name="Test", leader_id="a", founder_id="a", members=["a", "b"]
        )

        assert coalition.size == 2
        assert coalition.trust == 0.5
        assert coalition.secrecy == 1.0
        assert coalition.active

    def test_leader_departure_promotes_next_member(self):
        """The first remaining member takes over."""
        coalition = Coalition(
            id="c", name="C", leader_id="a", founder_id="a", members=["a", "b", "c"]
        )
        coalition.remove_member("a")
        assert coalition.leader_id == "b"
        assert coalition.founder_id == "a"

    def test_last_member_leaving_dissolves(self):
        """An empty coalition is inactive."""
        coalition = Coalition(id="c", name="C", leader_id="a", founder_id="a", members=["a"])
        coalition.remove_member("a")
        assert not coalition.active

    def test_history_is_capped(self):
        """Only the most recent entries are kept."""
        coalition = Coalition(id="c", name="C", leader_id="a", founder_id="a", members=["a"])
        for i in range(MAX_HISTORY_ENTRIES + 5):
            coalition.add_history_entry(f"entry {i}")
        assert len(coalition.history) == MAX_HISTORY_ENTRIES
        assert coalition.history[0].text == "entry 5"

    def test_trust_and_secrecy_are_bounded(self):
        """Adjustments clamp to [0, 1]."""
        coalition = Coalition(id="c", name="C", leader_id="a", founder_id="a")
        coalition.adjust_trust(5.0)
        coalition.adjust_secrecy(-5.0)
        assert coalition.trust == 1.0
        assert coalition.secrecy == 0.0


class TestHistoryTagging:
    """Test keyword tagging of history entries."""

    def test_keywords_override_default(self):
        """Entries mentioning failed, leaked, or betrayed are negative."""
        assert categorize("X failed to fulfill assistance request") is HistoryCategory.FAILED
        assert categorize("Information leaked by X") is HistoryCategory.LEAKED
        assert categorize("X betrayed Y") is HistoryCategory.BETRAYED
        assert categorize("X joined", HistoryCategory.JOINED) is HistoryCategory.JOINED

    def test_negative_entry_count(self):
        """Only negative entries feed dissatisfaction."""
        coalition = Coalition(id="c", name="C", leader_id="a", founder_id="a")
        coalition.add_history_entry("X betrayed Y")
        coalition.add_history_entry("X assisted in battle", category=HistoryCategory.ASSISTANCE)
        assert coalition.negative_entry_count() == 1
        assert coalition.has_history(HistoryCategory.BETRAYED)


class TestCoalitionFormation:
    """Test the acceptance and admission policy."""

    def test_friendly_balanced_peer_accepts_readily(self, world):
        """Relation, balance, and shared faction add up."""
        make_clan(world, "a", strength=500.0)
        make_clan(world, "b", strength=480.0)
        world.set_relation("a", "b", 60)

        chance = CoalitionFormation().acceptance_chance(world.snapshot("a"), world.snapshot("b"))

        assert chance == pytest.approx(0.2 + 0.24 + 0.2 + 0.1)

    def test_war_and_cruelty_discourage(self, world):
        """Enemies and merciless targets rarely accept."""
        make_clan(world, "a", faction="north", strength=100.0)
        make_clan(world, "b", faction="south", strength=900.0, mercy=-2)
        world.declare_war("north", "south")

        chance = CoalitionFormation().acceptance_chance(world.snapshot("a"), world.snapshot("b"))

        assert chance == 0.0

    def test_admission_depends_on_leader_relation(self, world):
        """Leaders admit friends more readily."""
        make_clan(world, "leader")
        make_clan(world, "friend")
        make_clan(world, "rival")
        world.set_relation("leader", "friend", 50)
        world.set_relation("leader", "rival", -50)
        formation = CoalitionFormation()
        leader = world.snapshot("leader")

        assert formation.admission_chance(leader, world.snapshot("friend")) == pytest.approx(0.8)
        assert formation.admission_chance(leader, world.snapshot("rival")) == 0.0


class TestCoalitionManager:
    """Test CoalitionManager proposal and membership flow."""

    def test_accepted_proposal_forms_coalition(self, world, coalitions):
        """An accepted proposal immediately creates an active coalition."""
        make_clan(world, "a")
        make_clan(world, "b")

        assert coalitions.propose_alliance("a", "b")

        coalition = coalitions.alliance("a", "b")
        assert coalition is not None
        assert coalition.leader_id == "a"
        assert coalition.founder_id == "a"
        assert coalition.history[0].category is HistoryCategory.FORMED
        assert world.relation("a", "b") == 5

    def test_refused_proposal_leaves_no_trace(self, world, clock):
        """A refusal creates nothing and blocks re-proposing for a week."""
        manager = CoalitionManager(world, clock, rng=FixedRandom(0.99))
        make_clan(world, "a")
        make_clan(world, "b")

        assert not manager.propose_alliance("a", "b")

        assert manager.all_active() == []
        assert not manager.can_propose("a", "b")
        clock.advance_days(7)
        assert manager.can_propose("a", "b")

    def test_cannot_propose_to_ally_or_eliminated(self, world, coalitions):
        """Existing allies and destroyed clans are not valid targets."""
        make_clan(world, "a")
        make_clan(world, "b")
        make_clan(world, "c")
        coalitions.create_coalition(["a", "b"])
        world.eliminate("c")

        assert not coalitions.can_propose("a", "b")
        assert not coalitions.can_propose("a", "c")
        assert not coalitions.can_propose("a", "a")

    def test_join_warms_relations(self, world, coalitions):
        """A newcomer gains +3 with every existing member."""
        for clan_id in ("a", "b", "c"):
            make_clan(world, clan_id)
        coalition = coalitions.create_coalition(["a", "b"])

        assert coalitions.join_alliance(coalition, "c")

        assert coalition.members == ["a", "b", "c"]
        assert world.relation("a", "c") == 3
        assert world.relation("b", "c") == 3

    def test_join_respects_max_size(self, world, clock):
        """A full coalition admits nobody."""
        manager = CoalitionManager(world, clock, rng=FixedRandom(0.0), max_size=2)
        for clan_id in ("a", "b", "c"):
            make_clan(world, clan_id)
        coalition = manager.create_coalition(["a", "b"])

        assert not manager.join_alliance(coalition, "c")

    def test_leave_costs_relations(self, world, coalitions):
        """Remaining members resent a departure."""
        for clan_id in ("a", "b", "c"):
            make_clan(world, clan_id)
        coalition = coalitions.create_coalition(["a", "b", "c"])

        assert coalitions.leave_alliance(coalition, "c")

        assert world.relation("a", "c") == 5 - 10
        assert coalition.history[-1].category is HistoryCategory.LEFT

    def test_last_leaver_dissolves(self, world, coalitions):
        """The coalition is retired once empty."""
        make_clan(world, "a")
        make_clan(world, "b")
        coalition = coalitions.create_coalition(["a", "b"])

        coalitions.leave_alliance(coalition, "b")
        coalitions.leave_alliance(coalition, "a")

        assert not coalition.active
        assert coalitions.get(coalition.id) is None
        assert coalition.history[-1].category is HistoryCategory.DISSOLVED

    def test_only_leader_dissolves(self, world, coalitions):
        """Members cannot dissolve a coalition."""
        make_clan(world, "a")
        make_clan(world, "b")
        coalition = coalitions.create_coalition(["a", "b"], leader_id="a")

        assert not coalitions.dissolve(coalition, "b")
        assert coalitions.dissolve(coalition, "a")
        assert coalitions.alliances_for("a") == []
        assert world.relation("a", "b") == 0

    def test_daily_maintenance_decays_trust(self, world, clock):
        """Trust erodes slowly and secrecy recovers on lucky days."""
        manager = CoalitionManager(world, clock, rng=FixedRandom(0.05))
        make_clan(world, "a")
        make_clan(world, "b")
        coalition = manager.create_coalition(["a", "b"])
        coalition.secrecy = 0.5

        manager.daily_maintenance()

        assert coalition.trust == pytest.approx(0.499)
        assert coalition.secrecy == pytest.approx(0.51)

    def test_trustless_coalition_collapses(self, world, clock):
        """Near-zero trust can end a coalition outright."""
        manager = CoalitionManager(world, clock, rng=FixedRandom(0.01))
        make_clan(world, "a")
        make_clan(world, "b")
        coalition = manager.create_coalition(["a", "b"])
        coalition.trust = 0.05

        manager.daily_maintenance()

        assert not coalition.active
        assert manager.all_active() == []

    def test_membership_history(self, world, clock):
        """Formation, rejection, and departures are all logged."""
        manager = CoalitionManager(world, clock, rng=FixedRandom(0.0))
        for clan_id in ("a", "b", "c"):
            make_clan(world, clan_id)
        coalition = manager.create_coalition(["a", "b"])
        manager.leave_alliance(coalition, "b")
        manager.rng = FixedRandom(0.99)
        manager.propose_alliance("a", "c")

        events = [entry["event"] for entry in manager.coalition_history()]

        assert events == ["formed", "member_left", "rejected"]

    def test_maintenance_forgets_lapsed_proposal_cooldowns(self, world, clock):
        """A rejected pair's cooldown is dropped once it has run out."""
        manager = CoalitionManager(world, clock, rng=FixedRandom(0.99))
        make_clan(world, "a")
        make_clan(world, "b")
        assert not manager.propose_alliance("a", "b")

        clock.advance_days(6)
        manager.daily_maintenance()
        assert ("a", "b") in manager._proposal_cooldowns
        assert not manager.can_propose("a", "b")

        clock.advance_days(1)
        manager.daily_maintenance()
        assert manager._proposal_cooldowns == {}
        assert manager.can_propose("a", "b")

    def test_membership_history_is_bounded(self, world, clock):
        """Only the most recent membership events are kept."""
        manager = CoalitionManager(world, clock, rng=FixedRandom(0.0))
        make_clan(world, "a")
        make_clan(world, "b")

        for _ in range(MANAGER_HISTORY_LIMIT + 10):
            manager.create_coalition(["a", "b"])

        history = manager.coalition_history()
        assert len(history) == MANAGER_HISTORY_LIMIT
        assert all(entry["event"] == "formed" for entry in history)
