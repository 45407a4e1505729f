"""Tests for decision memory: cooldowns, decision logs, and blob persistence."""

from __future__ import annotations

import pytest

from alliances.errors import SerializationError
from alliances.memory.decisions import DecisionLedger, DecisionMemory, DecisionRecord
from alliances.simulation.clock import SimTime
from tests.helpers import make_clan


def day(n: float) -> SimTime:
    return SimTime.of_days(n)


class TestDecisionRecord:
    """Test the structured decision record."""

    def test_key_layout(self):
        """Serialized as year_day_label."""
        assert DecisionRecord(1, 5, "proposed_alliance_b").key == "1_5_proposed_alliance_b"

    def test_parse_keeps_underscored_labels(self):
        """Labels may themselves contain underscores."""
        record = DecisionRecord.parse("0_12_accepted_request_abc")
        assert record == DecisionRecord(0, 12, "accepted_request_abc")

    def test_parse_rejects_garbage(self):
        """Non-numeric dates are a serialization error."""
        with pytest.raises(SerializationError):
            DecisionRecord.parse("year_day_label")
        with pytest.raises(SerializationError):
            DecisionRecord.parse("3_4")

    def test_alliance_tagging(self):
        """Alliance decisions are recognised by their label."""
        assert DecisionRecord(0, 0, "left_alliance_c1").is_alliance_decision
        assert not DecisionRecord(0, 0, "accepted_request_r1").is_alliance_decision


class TestCooldowns:
    """Test per-key cooldowns."""

    def test_record_starts_decision_cooldown(self, memory):
        """Recording a decision blocks the same label for six hours."""
        now = day(3)
        memory.record("a", "proposed_alliance_b", now)

        assert memory.is_decision_on_cooldown("a", "proposed_alliance_b", now)
        assert memory.is_decision_on_cooldown("a", "proposed_alliance_b", now + SimTime(5.9))
        assert not memory.is_decision_on_cooldown("a", "proposed_alliance_b", now + SimTime(6.0))
        assert not memory.is_decision_on_cooldown("a", "proposed_alliance_c", now)

    def test_daily_cooldown(self, memory):
        """A daily cooldown benches the whole clan until it expires."""
        memory.set_daily_cooldown("a", day(1), hours=24)
        assert memory.has_daily_cooldown("a", day(1.5))
        assert not memory.has_daily_cooldown("a", day(2))

    def test_prune_drops_only_strictly_expired(self, memory):
        """Entries expiring before now go; entries expiring at or after now stay."""
        memory.set_cooldown("old", SimTime(10.0))
        memory.set_cooldown("edge", SimTime(20.0))
        memory.set_cooldown("future", SimTime(30.0))

        removed = memory.prune_cooldowns(SimTime(20.0))

        assert removed == 1
        assert memory.cooldown_until("old") is None
        assert memory.cooldown_until("edge") == SimTime(20.0)
        assert memory.cooldown_until("future") == SimTime(30.0)


class TestDecisionLog:
    """Test the per-clan decision log."""

    def test_count_in_year_ignores_other_years(self, memory):
        """Only records from the current year count toward the cap."""
        memory.record("a", "x", SimTime.from_date(0, 83))
        memory.record("a", "y", SimTime.from_date(1, 0))
        memory.record("a", "z", SimTime.from_date(1, 0))

        assert memory.count_in_year("a", SimTime.from_date(1, 0)) == 2
        assert memory.count_in_year("b", SimTime.from_date(1, 0)) == 0

    def test_weekly_prune_drops_stale_records_and_empty_logs(self, memory):
        """Records older than seven days are removed; empty logs vanish."""
        memory.record("a", "old", day(0))
        memory.record("a", "new", day(5))
        memory.record("b", "ancient", day(0))

        removed = memory.prune_decisions(day(8))

        assert removed == 2
        assert [r.label for r in memory.decisions_for("a")] == ["new"]
        assert memory.tracked_clans == ["a"]

    def test_seven_day_old_record_is_still_recent(self, memory):
        """The window is inclusive of the seventh day."""
        memory.record("a", "edge", day(1))
        assert memory.prune_decisions(day(8)) == 0

    def test_recent_alliance_decision(self, memory):
        """Alliance labels within the window block new alliance proposals."""
        memory.record("a", "proposed_alliance_b", day(2))
        assert memory.has_recent_alliance_decision("a", day(9))
        assert not memory.has_recent_alliance_decision("a", day(10))


class TestBlobs:
    """Test persistence as opaque blobs."""

    def test_restore_is_exact(self, memory):
        """Blobs restore to an identical memory."""
        memory.record("a", "proposed_alliance_b", day(2))
        memory.record("a", "accepted_request_r1", day(3))
        memory.set_daily_cooldown("b", day(3), 12)
        cooldowns, decisions = memory.to_blobs()

        restored = DecisionMemory.from_blobs(cooldowns, decisions)

        assert restored.to_blobs() == (cooldowns, decisions)
        assert restored.is_decision_on_cooldown("a", "accepted_request_r1", day(3))

    def test_malformed_cooldown_rejected(self, memory):
        """A non-numeric expiry raises SerializationError."""
        with pytest.raises(SerializationError):
            memory.load_blobs({"daily_a": "soon"}, {}, 84)

    def test_malformed_log_rejected(self, memory):
        """A bad record key raises and leaves memory untouched."""
        memory.record("a", "kept", day(1))
        with pytest.raises(SerializationError):
            memory.load_blobs({}, {"a": ["not-a-record"]}, 84)
        assert [r.label for r in memory.decisions_for("a")] == ["kept"]

    def test_non_mapping_rejected(self, memory):
        """Blobs must be mappings."""
        with pytest.raises(SerializationError):
            memory.load_blobs([], {}, 84)


class TestDecisionLedger:
    """Test the ledger that all decision components write through."""

    def test_record_notifies_listeners(self, world, memory, clock):
        """Every recorded decision reaches subscribers and memory."""
        make_clan(world, "a")
        ledger = DecisionLedger(memory, clock)
        seen = []
        ledger.subscribe(seen.append)
        clock.advance_days(3)

        event = ledger.record(
            world.snapshot("a"), "alliance", "proposed_alliance_b", 65.0, 60.0, target_id="b"
        )

        assert seen == [event]
        assert event.day == 3
        assert event.clan_name == "A"
        assert ledger.count_today("a") == 1
        assert ledger.on_cooldown("a", "proposed_alliance_b")
