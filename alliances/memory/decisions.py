"""Decision memory: per-clan decision logs and per-key cooldowns.

Used by the scheduler to suppress repeated decisions. Two stores:

- cooldowns: key -> expiry time. Keys are ``daily_<clan>`` (the whole
  clan sits out) or ``decision_<clan>_<label>`` (one decision repeats).
- decisions: clan -> ordered ``DecisionRecord`` list, each tagged with
  the year and day-of-year it was made.

Both reduce to plain key->float and key->list[str] blobs for saving.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from alliances.errors import SerializationError
from alliances.simulation.clock import SimTime
from alliances.trajectory.schema import DecisionEvent

if TYPE_CHECKING:
    from alliances.agents.identity import ClanSnapshot
    from alliances.protocols import Calendar


@dataclass(frozen=True)
class DecisionRecord:
    """A decision tagged with the date it was made."""

    year: int
    day_of_year: int
    label: str

    @property
    def key(self) -> str:
        """Serialized form: ``<year>_<dayOfYear>_<label>``."""
        return f"{self.year}_{self.day_of_year}_{self.label}"

    @classmethod
    def parse(cls, key: str) -> DecisionRecord:
        parts = key.split("_", 2)
        if len(parts) != 3 or not parts[2]:
            raise SerializationError(f"Malformed decision record: {key!r}")
        try:
            year, day = int(parts[0]), int(parts[1])
        except ValueError as e:
            raise SerializationError(f"Malformed decision record: {key!r}") from e
        return cls(year, day, parts[2])

    @property
    def is_alliance_decision(self) -> bool:
        return "alliance" in self.label

    def age_days(self, now: SimTime) -> int:
        then = self.year * now.days_per_year + self.day_of_year
        return now.absolute_day - then


class DecisionMemory:
    """Cooldown and recent-decision bookkeeping for every clan."""

    def __init__(self, recent_days: int = 7, decision_cooldown_hours: float = 6.0):
        self.recent_days = recent_days
        self.decision_cooldown_hours = decision_cooldown_hours
        self._cooldowns: dict[str, SimTime] = {}
        self._decisions: dict[str, list[DecisionRecord]] = {}

    # -- keys -------------------------------------------------------------

    @staticmethod
    def daily_key(clan_id: str) -> str:
        return f"daily_{clan_id}"

    @staticmethod
    def decision_key(clan_id: str, label: str) -> str:
        return f"decision_{clan_id}_{label}"

    # -- cooldowns --------------------------------------------------------

    def set_cooldown(self, key: str, until: SimTime) -> None:
        self._cooldowns[key] = until

    def cooldown_until(self, key: str) -> SimTime | None:
        return self._cooldowns.get(key)

    def is_on_cooldown(self, key: str, now: SimTime) -> bool:
        until = self._cooldowns.get(key)
        return until is not None and now < until

    def has_daily_cooldown(self, clan_id: str, now: SimTime) -> bool:
        return self.is_on_cooldown(self.daily_key(clan_id), now)

    def set_daily_cooldown(self, clan_id: str, now: SimTime, hours: float) -> None:
        self.set_cooldown(self.daily_key(clan_id), now + SimTime.of_hours(hours, now.days_per_year))

    def is_decision_on_cooldown(self, clan_id: str, label: str, now: SimTime) -> bool:
        return self.is_on_cooldown(self.decision_key(clan_id, label), now)

    def prune_cooldowns(self, now: SimTime) -> int:
        """Drop cooldowns that expired strictly before ``now``.

        Returns:
            Number of entries removed
        """
        expired = [key for key, until in self._cooldowns.items() if until < now]
        for key in expired:
            del self._cooldowns[key]
        return len(expired)

    # -- decisions --------------------------------------------------------

    def record(self, clan_id: str, label: str, now: SimTime) -> DecisionRecord:
        """Log a decision and start its per-decision cooldown."""
        record = DecisionRecord(now.year, now.day_of_year, label)
        self._decisions.setdefault(clan_id, []).append(record)
        self.set_cooldown(
            self.decision_key(clan_id, label),
            now + SimTime.of_hours(self.decision_cooldown_hours, now.days_per_year),
        )
        return record

    def decisions_for(self, clan_id: str) -> list[DecisionRecord]:
        return list(self._decisions.get(clan_id, ()))

    def count_in_year(self, clan_id: str, now: SimTime) -> int:
        """Decisions logged by ``clan_id`` during the current year.

        Only the last week is ever kept, so this is in practice the
        clan's recent decisions.
        """
        return sum(1 for r in self._decisions.get(clan_id, ()) if r.year == now.year)

    def is_recent(self, record: DecisionRecord, now: SimTime) -> bool:
        return record.age_days(now) <= self.recent_days

    def has_recent_alliance_decision(self, clan_id: str, now: SimTime) -> bool:
        return any(
            r.is_alliance_decision and self.is_recent(r, now)
            for r in self._decisions.get(clan_id, ())
        )

    def prune_decisions(self, now: SimTime) -> int:
        """Drop records older than the recent window; drop emptied logs.

        Returns:
            Number of records removed
        """
        removed = 0
        for clan_id in list(self._decisions):
            kept = [r for r in self._decisions[clan_id] if self.is_recent(r, now)]
            removed += len(self._decisions[clan_id]) - len(kept)
            if kept:
                self._decisions[clan_id] = kept
            else:
                del self._decisions[clan_id]
        return removed

    @property
    def tracked_clans(self) -> list[str]:
        return list(self._decisions)

    # -- persistence ------------------------------------------------------

    def to_blobs(self) -> tuple[dict[str, float], dict[str, list[str]]]:
        """The two maps as plain ``key -> hours`` and ``key -> [record]`` blobs."""
        cooldowns = {key: until.hours for key, until in self._cooldowns.items()}
        decisions = {
            clan_id: [r.key for r in records] for clan_id, records in self._decisions.items()
        }
        return cooldowns, decisions

    def load_blobs(
        self,
        cooldowns: dict[str, float],
        decisions: dict[str, list[str]],
        days_per_year: int,
    ) -> None:
        """Replace current contents with previously saved blobs.

        Raises:
            SerializationError: If either blob is malformed
        """
        if not isinstance(cooldowns, dict) or not isinstance(decisions, dict):
            raise SerializationError("Decision memory blobs must be mappings")

        restored_cooldowns: dict[str, SimTime] = {}
        for key, hours in cooldowns.items():
            if (
                not isinstance(key, str)
                or isinstance(hours, bool)
                or not isinstance(hours, (int, float))
                or not math.isfinite(hours)
            ):
                raise SerializationError(f"Malformed cooldown entry: {key!r} -> {hours!r}")
            restored_cooldowns[key] = SimTime(float(hours), days_per_year)

        restored_decisions: dict[str, list[DecisionRecord]] = {}
        for clan_id, keys in decisions.items():
            if not isinstance(clan_id, str) or not isinstance(keys, list):
                raise SerializationError(f"Malformed decision log for {clan_id!r}")
            if not all(isinstance(k, str) for k in keys):
                raise SerializationError(f"Malformed decision log for {clan_id!r}")
            restored_decisions[clan_id] = [DecisionRecord.parse(k) for k in keys]

        self._cooldowns = restored_cooldowns
        self._decisions = restored_decisions

    @classmethod
    def from_blobs(
        cls,
        cooldowns: dict[str, float],
        decisions: dict[str, list[str]],
        days_per_year: int = 84,
        recent_days: int = 7,
        decision_cooldown_hours: float = 6.0,
    ) -> DecisionMemory:
        memory = cls(recent_days=recent_days, decision_cooldown_hours=decision_cooldown_hours)
        memory.load_blobs(cooldowns, decisions, days_per_year)
        return memory


class DecisionLedger:
    """Records fired decisions into memory and notifies listeners.

    Every decision component writes through one ledger so that cooldowns,
    the daily cap, and trajectory recording all see the same events.
    """

    def __init__(self, memory: DecisionMemory, calendar: Calendar):
        self.memory = memory
        self.calendar = calendar
        self._listeners: list[Callable[[DecisionEvent], None]] = []

    def subscribe(self, listener: Callable[[DecisionEvent], None]) -> None:
        self._listeners.append(listener)

    def on_cooldown(self, clan_id: str, label: str) -> bool:
        return self.memory.is_decision_on_cooldown(clan_id, label, self.calendar.now())

    def count_today(self, clan_id: str) -> int:
        return self.memory.count_in_year(clan_id, self.calendar.now())

    def has_recent_alliance_decision(self, clan_id: str) -> bool:
        return self.memory.has_recent_alliance_decision(clan_id, self.calendar.now())

    def record(
        self,
        clan: ClanSnapshot,
        category: str,
        label: str,
        utility: float = 0.0,
        threshold: float = 0.0,
        target_id: str | None = None,
        coalition_id: str | None = None,
    ) -> DecisionEvent:
        """Log a fired decision and broadcast it."""
        now = self.calendar.now()
        record = self.memory.record(clan.id, label, now)
        event = DecisionEvent(
            day=now.absolute_day,
            year=record.year,
            day_of_year=record.day_of_year,
            clan_id=clan.id,
            clan_name=clan.name,
            category=category,
            label=label,
            utility=utility,
            threshold=threshold,
            target_id=target_id,
            coalition_id=coalition_id,
        )
        for listener in self._listeners:
            listener(event)
        return event
