"""Disposition-adjusted decision thresholds.

Every decision compares a 0-100 utility against a threshold derived from
a base value and the deciding clan's disposition and distress:

    threshold = base + honor * 10 (defection-style only)
                     - calculating * 5
                     - desperation * 20

clamped to [floor, ceiling]. Betrayal additionally never drops below its
own base, so it always stays harder than ordinary decisions.
"""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING

from alliances.utility.factors import clamp, desperation_level

if TYPE_CHECKING:
    from alliances.agents.identity import ClanSnapshot
    from alliances.config import DecisionConfig


class DecisionKind(enum.Enum):
    """Decision categories with their own threshold."""

    FORMATION = "formation"
    JOIN = "join"
    LEAVE = "leave"
    INVESTMENT = "investment"
    ACCEPT = "accept"
    DECLINE = "decline"
    BETRAYAL = "betrayal"


# Honor makes a leader slower to walk away from their word
DEFECTION_KINDS = frozenset({DecisionKind.LEAVE, DecisionKind.BETRAYAL})


class ThresholdPolicy:
    """Computes per-clan thresholds from configuration."""

    def __init__(self, config: DecisionConfig):
        self.config = config

    def base(self, kind: DecisionKind) -> float:
        return {
            DecisionKind.FORMATION: self.config.formation_threshold,
            DecisionKind.JOIN: self.config.join_threshold,
            DecisionKind.LEAVE: self.config.leave_threshold,
            DecisionKind.INVESTMENT: self.config.investment_threshold,
            DecisionKind.ACCEPT: self.config.accept_threshold,
            DecisionKind.DECLINE: self.config.decline_threshold,
            DecisionKind.BETRAYAL: self.config.betrayal_threshold,
        }[kind]

    def threshold(self, clan: ClanSnapshot, kind: DecisionKind) -> float:
        """Threshold ``clan`` must reach (or exceed) to act on ``kind``.

        The decline threshold is a fixed cut-off and is not adjusted.
        """
        base = self.base(kind)
        if kind is DecisionKind.DECLINE:
            return base

        adjusted = base
        if clan.has_leader:
            if kind in DEFECTION_KINDS:
                adjusted += clan.traits.honor * self.config.honor_threshold_step
            adjusted -= clan.traits.calculating * self.config.calculating_threshold_step
        adjusted -= desperation_level(clan) * self.config.desperation_threshold_scale
        adjusted = clamp(adjusted, self.config.threshold_floor, self.config.threshold_ceiling)

        if kind is DecisionKind.BETRAYAL:
            return max(base, adjusted)
        return adjusted

    def passes(self, clan: ClanSnapshot, kind: DecisionKind, utility: float) -> bool:
        return utility >= self.threshold(clan, kind)
