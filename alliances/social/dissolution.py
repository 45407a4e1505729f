"""Coalition departure detection.

Monitors how unhappy a member is with each of its coalitions and flags
when it should walk away.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from alliances.utility.thresholds import DecisionKind

if TYPE_CHECKING:
    from alliances.agents.identity import ClanSnapshot
    from alliances.social.coalition import Coalition
    from alliances.utility.model import UtilityModel
    from alliances.utility.thresholds import ThresholdPolicy


class DissolutionDetector:
    """Decides when a member should leave a coalition.

    Dissatisfaction grows with low trust, lost secrecy, and every
    failed/leaked/betrayed entry in the coalition's history.
    """

    def __init__(self, model: UtilityModel, thresholds: ThresholdPolicy):
        """Initialize departure detector.

        Args:
            model: Utility model providing the dissatisfaction score
            thresholds: Disposition-adjusted threshold policy
        """
        self.model = model
        self.thresholds = thresholds

    def dissatisfaction(self, coalition: Coalition) -> float:
        return self.model.dissatisfaction(coalition)

    def should_leave(self, clan: ClanSnapshot, coalition: Coalition) -> bool:
        """Check if ``clan`` should leave ``coalition``.

        A leader never leaves this way; it has to dissolve the coalition.

        Args:
            clan: Member considering departure
            coalition: Coalition to evaluate

        Returns:
            True if dissatisfaction meets the clan's leave threshold
        """
        if not coalition.active or not coalition.is_member(clan.id):
            return False
        if coalition.leader_id == clan.id:
            return False
        return self.thresholds.passes(clan, DecisionKind.LEAVE, self.dissatisfaction(coalition))

    def departure_risk(self, clan: ClanSnapshot, coalition: Coalition) -> float:
        """How close ``clan`` is to leaving, from 0.0 (content) to 1.0 (leaving)."""
        threshold = self.thresholds.threshold(clan, DecisionKind.LEAVE)
        if threshold <= 0:
            return 1.0
        return min(1.0, max(0.0, self.dissatisfaction(coalition) / threshold))
