"""Composite decision utilities on a 0-100 scale.

``UtilityModel`` weights the bounded sub-scores from
``alliances.utility.factors`` into one number per decision. It holds no
state beyond configuration and the betrayal factor set, so the same
inputs always produce the same score.
"""

from __future__ import annotations

from statistics import fmean
from typing import TYPE_CHECKING

from alliances.config import DecisionConfig
from alliances.social.coalition import HistoryCategory
from alliances.utility.factors import (
    BetrayalFactors,
    clamp,
    economic_utility,
    military_utility,
    political_utility,
    security_utility,
)

if TYPE_CHECKING:
    from alliances.agents.identity import ClanSnapshot
    from alliances.social.coalition import Coalition
    from alliances.social.requests import Request

BETRAYAL_WEIGHTS = {
    "opportunity_cost": 0.3,
    "power_imbalance": 0.25,
    "political_shift": 0.2,
    "alliance_burden": 0.15,
    "external_pressure": 0.1,
}


def dissatisfaction(trust: float, secrecy: float, negative_entries: int) -> float:
    """``(1 - trust) * 40 + (1 - secrecy) * 30 + 10 * negative_entries``."""
    return (1.0 - trust) * 40.0 + (1.0 - secrecy) * 30.0 + negative_entries * 10.0


def capability_score(clan: ClanSnapshot) -> float:
    """Military plus economic capacity to help, in [0, 80]."""
    return min(50.0, clan.strength / 20.0) + min(30.0, clan.wealth / 1000.0)


class UtilityModel:
    """Scores every decision type for one clan at a time."""

    def __init__(self, config: DecisionConfig | None = None, betrayal: BetrayalFactors | None = None):
        self.config = config or DecisionConfig()
        self.betrayal = betrayal or BetrayalFactors()

    # -- formation --------------------------------------------------------

    def formation_components(self, a: ClanSnapshot, b: ClanSnapshot) -> dict[str, float]:
        """The four clamped sub-utilities of an alliance between ``a`` and ``b``."""
        return {
            "military": military_utility(a, b, self.config.military_radius),
            "economic": economic_utility(a, b, self.config.trade_radius),
            "political": political_utility(a, b),
            "security": security_utility(a, b),
        }

    def combine_formation(
        self, military: float, economic: float, political: float, security: float
    ) -> float:
        """Weighted sum of formation sub-utilities, scaled to 0-100.

        Weights are non-negative, so raising any input never lowers the result.
        """
        return 100.0 * (
            military * self.config.military_weight
            + economic * self.config.economic_weight
            + political * self.config.political_weight
            + security * self.config.security_weight
        )

    def formation_utility(self, a: ClanSnapshot, b: ClanSnapshot) -> float:
        if a.id == b.id:
            return 0.0
        return self.combine_formation(**self.formation_components(a, b))

    # -- join -------------------------------------------------------------

    def join_utility(
        self, clan: ClanSnapshot, coalition: Coalition, members: list[ClanSnapshot]
    ) -> float:
        """Value of joining ``coalition`` whose current members are ``members``.

        Mean formation utility toward the members, less a risk penalty for
        cross-faction ties, open wars, exposure and size, plus trust.
        """
        others = [m for m in members if m.id != clan.id]
        if not others:
            return 0.0
        utility = fmean(self.formation_utility(clan, m) for m in others)
        utility -= self.join_risk_penalty(clan, coalition, others)
        utility += coalition.trust * 10.0
        return clamp(utility, 0.0, 100.0)

    def join_risk_penalty(
        self, clan: ClanSnapshot, coalition: Coalition, members: list[ClanSnapshot]
    ) -> float:
        penalty = 0.0
        if any(not clan.shares_faction_with(m) for m in members):
            penalty += 15.0
        if any(clan.is_at_war_with(m) for m in members):
            penalty += 25.0
        penalty += (1.0 - coalition.secrecy) * 20.0
        penalty += max(0, coalition.size - 2) * 5.0
        return penalty

    # -- leave ------------------------------------------------------------

    def dissatisfaction(self, coalition: Coalition) -> float:
        return dissatisfaction(
            coalition.trust, coalition.secrecy, coalition.negative_entry_count()
        )

    # -- assistance -------------------------------------------------------

    def assistance_utility(
        self,
        clan: ClanSnapshot,
        request: Request,
        requester: ClanSnapshot | None = None,
        coalition: Coalition | None = None,
    ) -> float:
        """Value to ``clan`` of granting ``request``.

        Works without a coalition (unsolicited requests) and without a
        requester snapshot (requester no longer known to the host).
        """
        from alliances.social.requests import RequestType

        utility = 0.0
        if requester is not None and clan.has_leader and requester.has_leader:
            utility += clan.relation_with(requester.id) / 5.0 * 0.3

        if coalition is not None:
            utility += coalition.trust * 20.0
            utility += (1.0 - coalition.secrecy) * 10.0

        if request.request_type is RequestType.BATTLE_ASSISTANCE:
            if clan.strength > 300:
                utility += 10.0
            if requester is None or not clan.is_at_war_with(requester):
                utility += 15.0
        elif request.request_type is RequestType.TRIBUTE:
            if clan.wealth > request.reward * 2:
                utility += 15.0
            elif clan.wealth < request.reward:
                utility -= 20.0
        elif request.request_type is RequestType.TRADE_CONVOY_ESCORT:
            utility += 10.0
        else:
            utility += 5.0

        utility += request.estimated_reward / 100.0 - request.risk * 15.0
        utility += capability_score(clan) * 0.2

        utility *= self._assistance_modifier(clan)
        return clamp(utility, 0.0, 100.0)

    def _assistance_modifier(self, clan: ClanSnapshot) -> float:
        if not clan.has_leader:
            return 1.0
        modifier = 1.0
        if clan.traits.generosity > 0:
            modifier += 0.3
        if clan.traits.honor > 0:
            modifier += 0.2
        if clan.traits.calculating > 0:
            modifier -= 0.1
        return modifier

    # -- investment -------------------------------------------------------

    def investment_utility(self, clan: ClanSnapshot, coalition: Coalition) -> float:
        """Value of paying to restore ``coalition``'s secrecy."""
        cost = max(1, self.config.secrecy_investment_cost)
        utility = (1.0 - coalition.secrecy) * 40.0
        utility += min(1.0, clan.wealth / cost) * 20.0
        utility += coalition.trust * 15.0
        if coalition.has_history(HistoryCategory.LEAKED):
            utility += 25.0
        if clan.has_leader and clan.traits.calculating > 0:
            utility *= 1.4
        return clamp(utility, 0.0, 100.0)

    # -- betrayal ---------------------------------------------------------

    def betrayal_components(
        self,
        clan: ClanSnapshot,
        target: ClanSnapshot,
        beneficiary: ClanSnapshot,
        coalition: Coalition,
    ) -> dict[str, float]:
        factors = self.betrayal
        return {
            "opportunity_cost": clamp(factors.opportunity_cost(clan, target, beneficiary)),
            "power_imbalance": clamp(factors.power_imbalance(clan, target)),
            "political_shift": clamp(factors.political_shift(clan, target, beneficiary)),
            "alliance_burden": clamp(factors.alliance_burden(clan, coalition)),
            "external_pressure": clamp(factors.external_pressure(clan, beneficiary)),
        }

    def betrayal_modifier(self, clan: ClanSnapshot) -> float:
        """Disposition multiplier: honor restrains, calculation tempts."""
        if not clan.has_leader:
            return 1.0
        modifier = 1.0 - clan.traits.honor * 0.3 + clan.traits.calculating * 0.2
        return clamp(modifier, 0.1, 2.0)

    def betrayal_utility(
        self,
        clan: ClanSnapshot,
        target: ClanSnapshot,
        beneficiary: ClanSnapshot,
        coalition: Coalition,
    ) -> float:
        """Value to ``clan`` of betraying ``target`` for ``beneficiary``.

        Coalitions the clan founded are never betrayed and score 0.
        """
        if coalition.founder_id == clan.id:
            return 0.0
        components = self.betrayal_components(clan, target, beneficiary, coalition)
        base = 100.0 * sum(components[name] * w for name, w in BETRAYAL_WEIGHTS.items())
        return base * self.betrayal_modifier(clan)
