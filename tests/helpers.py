"""Shared test doubles for the alliance decision engine test suites.

These are dataclass-based and subclass-based test doubles, not
unittest.mock.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field

from alliances.agents.identity import Clan, DispositionTraits, SettlementKind
from alliances.utility.model import UtilityModel

# ============================================================================
# Randomness
# ============================================================================


class FixedRandom(random.Random):
    """``random()`` always returns ``value``; everything else is seeded."""

    def __init__(self, value: float = 0.0, seed: int = 7):
        super().__init__(seed)
        self.value = value

    def random(self) -> float:
        return self.value


# ============================================================================
# World builders
# ============================================================================


def make_clan(
    world,
    clan_id: str,
    *,
    faction: str | None = "north",
    honor: int = 0,
    calculating: int = 0,
    generosity: int = 0,
    mercy: int = 0,
    **overrides,
) -> Clan:
    """Add a comfortable, settled clan to ``world`` and return it.

    Defaults keep desperation at zero so thresholds sit at their base.
    """
    fields = {
        "name": clan_id.title(),
        "wealth": 10000,
        "strength": 500.0,
        "faction_id": faction,
        "leader_id": f"hero_{clan_id}",
        "settlements": [SettlementKind.TOWN],
        "traits": DispositionTraits(
            honor=honor, calculating=calculating, generosity=generosity, mercy=mercy
        ),
    }
    fields.update(overrides)
    return world.add_clan(Clan(id=clan_id, **fields))


# ============================================================================
# Scoring doubles
# ============================================================================


class ScriptedModel(UtilityModel):
    """Utility model whose scores can be pinned per decision type.

    Any score left as None falls through to the real computation.
    """

    def __init__(
        self,
        config=None,
        formation: float | None = None,
        join: float | None = None,
        assistance: float | None = None,
        investment: float | None = None,
        betrayal: float | None = None,
    ):
        super().__init__(config)
        self.scores = {
            "formation": formation,
            "join": join,
            "assistance": assistance,
            "investment": investment,
            "betrayal": betrayal,
        }

    def formation_utility(self, a, b):
        if self.scores["formation"] is None:
            return super().formation_utility(a, b)
        return self.scores["formation"]

    def join_utility(self, clan, coalition, members):
        if self.scores["join"] is None:
            return super().join_utility(clan, coalition, members)
        return self.scores["join"]

    def assistance_utility(self, clan, request, requester=None, coalition=None):
        if self.scores["assistance"] is None:
            return super().assistance_utility(clan, request, requester, coalition)
        return self.scores["assistance"]

    def investment_utility(self, clan, coalition):
        if self.scores["investment"] is None:
            return super().investment_utility(clan, coalition)
        return self.scores["investment"]

    def betrayal_utility(self, clan, target, beneficiary, coalition):
        if self.scores["betrayal"] is None:
            return super().betrayal_utility(clan, target, beneficiary, coalition)
        return self.scores["betrayal"]


# ============================================================================
# Collaborator doubles
# ============================================================================


@dataclass
class MockBattle:
    """Battle that records who joined."""

    size: int = 500
    near_settlement: bool = False
    combatants: list = field(default_factory=list)

    def add_combatant(self, clan_id: str, side: str) -> None:
        self.combatants.append((clan_id, side))


@dataclass
class RefusingBattle:
    """Battle whose resolver cannot take late joiners."""

    size: int = 500
    near_settlement: bool = True

    def add_combatant(self, clan_id: str, side: str) -> None:
        raise RuntimeError("battle already resolved")


@dataclass
class BrokenExposure:
    """Exposure service that always fails."""

    calls: int = 0

    def force_leak(self, coalition, source_id=None):
        self.calls += 1
        raise RuntimeError("exposure backend offline")
