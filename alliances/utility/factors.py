"""Bounded sub-scores feeding the composite decision utilities.

Every function here is pure and takes ``ClanSnapshot`` values. Results
are clamped to their documented range before the caller weights them,
so no single factor can dominate a composite score.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from alliances.agents.identity import SettlementKind

if TYPE_CHECKING:
    from alliances.agents.identity import ClanSnapshot
    from alliances.social.coalition import Coalition


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def distance(a: ClanSnapshot, b: ClanSnapshot) -> float:
    return math.hypot(a.position[0] - b.position[0], a.position[1] - b.position[1])


def proximity(a: ClanSnapshot, b: ClanSnapshot, radius: float) -> float:
    """Inverse-linear falloff: 1.0 at the same spot, 0.0 at ``radius`` or beyond."""
    if radius <= 0:
        return 0.0
    return clamp((radius - distance(a, b)) / radius)


def count_common_enemies(a: ClanSnapshot, b: ClanSnapshot) -> int:
    return len(a.hostile_factions & b.hostile_factions)


def settlement_synergy(a: ClanSnapshot, b: ClanSnapshot) -> float:
    """0.2 for each town/castle pairing across the two clans."""
    synergy = 0.0
    if a.has_settlement(SettlementKind.TOWN) and b.has_settlement(SettlementKind.CASTLE):
        synergy += 0.2
    if a.has_settlement(SettlementKind.CASTLE) and b.has_settlement(SettlementKind.TOWN):
        synergy += 0.2
    return synergy


def trait_compatibility(a: ClanSnapshot, b: ClanSnapshot) -> float:
    """Similarity of honor and calculating levels, in [0, 0.5]."""
    if not a.has_leader or not b.has_leader:
        return 0.0
    honor = (1.0 - abs(a.traits.honor - b.traits.honor) / 5.0) * 0.3
    calculating = (1.0 - abs(a.traits.calculating - b.traits.calculating) / 5.0) * 0.2
    return honor + calculating


def threat_level(clan: ClanSnapshot) -> float:
    """How exposed a clan is on its own, in [0, 1]."""
    threat = 0.0
    if clan.strength < 100:
        threat += 0.3
    threat += len(clan.hostile_factions) * 0.2
    if clan.wealth < 5000:
        threat += 0.2
    return clamp(threat)


def desperation_level(clan: ClanSnapshot) -> float:
    """Financial, military, political and territorial distress, in [0, 1]."""
    desperation = 0.0
    if clan.wealth < 1000:
        desperation += 0.3
    elif clan.wealth < 5000:
        desperation += 0.1
    if clan.strength < 50:
        desperation += 0.3
    elif clan.strength < 100:
        desperation += 0.1
    if clan.at_war:
        desperation += 0.2
    if not clan.settlements:
        desperation += 0.2
    return clamp(desperation)


# -- formation sub-scores -------------------------------------------------


def military_utility(a: ClanSnapshot, b: ClanSnapshot, radius: float = 200.0) -> float:
    """Balanced strength, proximity, and shared enemies. Range [0, 1]."""
    strongest = max(a.strength, b.strength)
    balance = min(a.strength, b.strength) / strongest if strongest > 0 else 0.0
    utility = balance * 0.5
    utility += proximity(a, b, radius) * 0.4
    utility += min(0.3, count_common_enemies(a, b) * 0.1)
    return clamp(utility)


def economic_utility(a: ClanSnapshot, b: ClanSnapshot, radius: float = 150.0) -> float:
    """Similar wealth, trade proximity, and settlement complementarity. Range [0, 1]."""
    gap = abs(a.wealth - b.wealth) / max(a.wealth + b.wealth, 1)
    utility = (1.0 - gap) * 0.5
    utility += proximity(a, b, radius) * 0.4
    utility += settlement_synergy(a, b)
    return clamp(utility)


def political_utility(a: ClanSnapshot, b: ClanSnapshot) -> float:
    """Relation, faction standing, culture, and traits. Range [-0.5, 1]."""
    utility = max(0.0, a.relation_with(b.id) / 100.0) * 0.5
    if a.shares_faction_with(b):
        utility += 0.3
    elif a.is_at_war_with(b):
        utility -= 0.5
    if a.culture == b.culture:
        utility += 0.2
    utility += trait_compatibility(a, b) * 0.2
    return clamp(utility, -0.5, 1.0)


def security_utility(a: ClanSnapshot, b: ClanSnapshot) -> float:
    """Mutual protection value plus a small network bonus. Range [0, 1]."""
    utility = (threat_level(a) + threat_level(b)) * 0.3
    utility += min(0.2, (a.coalition_count + b.coalition_count) * 0.05)
    return clamp(utility)


# -- betrayal sub-scores --------------------------------------------------


class BetrayalFactors:
    """Named betrayal sub-scores, each in [0, 1].

    Subclass and override any method to swap in a richer model; the
    composite weighting in ``UtilityModel.betrayal_utility`` stays the same.
    """

    def opportunity_cost(
        self, agent: ClanSnapshot, ally: ClanSnapshot, beneficiary: ClanSnapshot
    ) -> float:
        """How much better the beneficiary looks than the current ally."""
        gap = agent.relation_with(beneficiary.id) - agent.relation_with(ally.id)
        return clamp(0.5 + gap / 200.0)

    def power_imbalance(self, agent: ClanSnapshot, ally: ClanSnapshot) -> float:
        strongest = max(agent.strength, ally.strength)
        if strongest <= 0:
            return 0.0
        return clamp(1.0 - min(agent.strength, ally.strength) / strongest)

    def political_shift(
        self, agent: ClanSnapshot, ally: ClanSnapshot, beneficiary: ClanSnapshot
    ) -> float:
        shift = 0.0
        if agent.is_at_war_with(ally):
            shift += 0.6
        elif not agent.shares_faction_with(ally):
            shift += 0.3
        if agent.shares_faction_with(beneficiary):
            shift += 0.4
        return clamp(shift)

    def alliance_burden(self, agent: ClanSnapshot, coalition: Coalition) -> float:
        return clamp((1.0 - coalition.trust) * 0.6 + (1.0 - coalition.secrecy) * 0.4)

    def external_pressure(self, agent: ClanSnapshot, beneficiary: ClanSnapshot) -> float:
        total = agent.strength + beneficiary.strength
        if total <= 0:
            return 0.0
        return clamp(beneficiary.strength / total + desperation_level(agent) * 0.3)
