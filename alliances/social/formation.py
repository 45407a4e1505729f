"""Coalition formation policy of the membership store.

Decides whether a proposal target accepts and whether a coalition
leader admits a newcomer. These are the *other side's* answers; the
proposing clan's own decision lives in ``alliances.social.lifecycle``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from alliances.utility.factors import clamp

if TYPE_CHECKING:
    from alliances.agents.identity import ClanSnapshot


class CoalitionFormation:
    """Acceptance and admission chances for the coalition store."""

    def __init__(self, base_acceptance: float = 0.2, base_admission: float = 0.3):
        """Initialize formation policy.

        Args:
            base_acceptance: Acceptance chance before relation, power and trait terms
            base_admission: Admission chance before the leader's relation term
        """
        self.base_acceptance = base_acceptance
        self.base_admission = base_admission

    def acceptance_chance(self, proposer: ClanSnapshot, target: ClanSnapshot) -> float:
        """Probability that ``target`` accepts an alliance from ``proposer``.

        Args:
            proposer: Clan making the proposal
            target: Clan receiving it

        Returns:
            Chance in [0, 1]
        """
        chance = self.base_acceptance

        if proposer.has_leader and target.has_leader:
            chance += (proposer.relation_with(target.id) / 100.0) * 0.4

        # Similar strength makes the deal look fair to both sides
        total = proposer.strength + target.strength
        if total > 0 and 0.3 < proposer.strength / total < 0.7:
            chance += 0.2

        if proposer.shares_faction_with(target):
            chance += 0.1
        elif proposer.is_at_war_with(target):
            chance -= 0.3

        if target.has_leader:
            if target.traits.honor > 0:
                chance += 0.1
            if target.traits.calculating > 0:
                chance += 0.15
            if target.traits.mercy < 0:
                chance -= 0.1

        return clamp(chance)

    def admission_chance(self, leader: ClanSnapshot, candidate: ClanSnapshot) -> float:
        """Probability that a coalition's leader admits ``candidate``."""
        if not leader.has_leader or not candidate.has_leader:
            return 0.0
        return clamp(self.base_admission + leader.relation_with(candidate.id) / 100.0)
