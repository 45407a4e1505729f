"""Leaks and exposure: the in-memory ``ExposureService``.

A leak costs a coalition secrecy in proportion to how scandalous it is
and raises every member's exposure score, which fades day by day.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import TYPE_CHECKING

from alliances.social.coalition import HistoryCategory

if TYPE_CHECKING:
    from alliances.protocols import Calendar
    from alliances.simulation.world import World
    from alliances.social.coalition import Coalition

logger = logging.getLogger(__name__)

EXPOSURE_DECAY_PER_DAY = 0.01


@dataclass(frozen=True)
class LeakRecord:
    """One leak event."""

    coalition_id: str
    source_id: str | None
    severity: float
    day: int
    context: str


class LeakTracker:
    """Generates leaks and tracks per-clan exposure."""

    def __init__(self, world: World, calendar: Calendar, rng: random.Random | None = None):
        self.world = world
        self.calendar = calendar
        self.rng = rng or random.Random()
        self._exposure: dict[str, float] = {}
        self._leaks: list[LeakRecord] = []

    def severity(self, coalition: Coalition) -> float:
        """How damaging a leak about ``coalition`` would be, in [0, 1].

        Strong, large, and cross-faction coalitions make bigger scandals;
        members from factions at war make the biggest.
        """
        severity = 0.3 + coalition.trust * 0.4
        severity += max(0, coalition.size - 2) * 0.1

        factions = []
        for member_id in coalition.members:
            snapshot = self.world.snapshot(member_id)
            if snapshot is not None and snapshot.faction_id is not None:
                if snapshot.faction_id not in factions:
                    factions.append(snapshot.faction_id)
        if len(factions) > 1:
            severity += 0.3
            at_war = any(
                self.world.factions_at_war(a, b)
                for i, a in enumerate(factions)
                for b in factions[i + 1:]
            )
            if at_war:
                severity += 0.5
        return min(1.0, severity)

    def force_leak(
        self, coalition: Coalition, source_id: str | None = None, context: str = "forced"
    ) -> LeakRecord | None:
        """Leak information about ``coalition``.

        Args:
            coalition: Coalition being exposed
            source_id: Member who leaked; a random member when omitted
            context: Free-text reason kept on the leak record

        Returns:
            The leak record, or None for an empty or dissolved coalition
        """
        if not coalition.active or not coalition.members:
            return None
        if source_id is None:
            source_id = self.rng.choice(coalition.members)

        severity = self.severity(coalition)
        source = self.world.snapshot(source_id)
        source_name = source.name if source is not None else "unknown source"

        coalition.adjust_secrecy(-severity * 0.3)
        coalition.add_history_entry(
            f"Information leaked by {source_name} (Severity: {severity:.2f})",
            self.calendar.now(),
            HistoryCategory.LEAKED,
        )
        for member_id in coalition.members:
            self.add_exposure(member_id, severity * 0.2)

        record = LeakRecord(
            coalition_id=coalition.id,
            source_id=source_id,
            severity=severity,
            day=self.calendar.now().absolute_day,
            context=context,
        )
        self._leaks.append(record)
        logger.info(f"Leak about {coalition.name} by {source_name} (severity {severity:.2f})")
        return record

    def add_exposure(self, clan_id: str, amount: float) -> None:
        self._exposure[clan_id] = min(1.0, self._exposure.get(clan_id, 0.0) + amount)

    def exposure(self, clan_id: str) -> float:
        return self._exposure.get(clan_id, 0.0)

    def decay(self) -> None:
        """Fade every exposure score by one day's worth, dropping zeros."""
        for clan_id in list(self._exposure):
            remaining = self._exposure[clan_id] - EXPOSURE_DECAY_PER_DAY
            if remaining <= 0:
                del self._exposure[clan_id]
            else:
                self._exposure[clan_id] = remaining

    def leaks_for(self, coalition_id: str) -> list[LeakRecord]:
        return [leak for leak in self._leaks if leak.coalition_id == coalition_id]

    def all_leaks(self) -> list[LeakRecord]:
        return list(self._leaks)
