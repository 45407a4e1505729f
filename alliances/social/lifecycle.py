"""Alliance lifecycle decisions: create, join, leave, and betray.

A proposal is either accepted on the spot (the coalition becomes active)
or refused and leaves no trace. Members leave when dissatisfied, except
the leader, who must dissolve instead. Betrayal is a harsher departure
reached only through opportunistic actions.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import TYPE_CHECKING

from alliances.social.coalition import HistoryCategory
from alliances.social.dissolution import DissolutionDetector
from alliances.utility.thresholds import DecisionKind

if TYPE_CHECKING:
    from alliances.agents.identity import ClanSnapshot
    from alliances.config import DecisionConfig
    from alliances.memory.decisions import DecisionLedger
    from alliances.protocols import CoalitionStore
    from alliances.simulation.world import World
    from alliances.social.coalition import Coalition
    from alliances.utility.model import UtilityModel
    from alliances.utility.thresholds import ThresholdPolicy

logger = logging.getLogger(__name__)

CATEGORY = "alliance"


def snapshot_with_coalitions(
    world: World, coalitions: CoalitionStore, clan_id: str
) -> ClanSnapshot | None:
    """World snapshot of ``clan_id`` with its coalition count filled in."""
    snapshot = world.snapshot(clan_id)
    if snapshot is None:
        return None
    return dataclasses.replace(snapshot, coalition_count=len(coalitions.alliances_for(clan_id)))


class AllianceLifecycle:
    """Runs one clan's alliance decisions for the day.

    Order: consider creating a new alliance, then joining an existing
    one, then leaving one that has gone sour.
    """

    def __init__(
        self,
        world: World,
        coalitions: CoalitionStore,
        ledger: DecisionLedger,
        model: UtilityModel,
        thresholds: ThresholdPolicy,
        config: DecisionConfig,
    ):
        self.world = world
        self.coalitions = coalitions
        self.ledger = ledger
        self.model = model
        self.thresholds = thresholds
        self.config = config
        self.detector = DissolutionDetector(model, thresholds)

    def process(self, clan: ClanSnapshot) -> int:
        """Run create, join, and leave for ``clan``.

        Returns:
            Number of decisions recorded
        """
        fired = 0
        if self.should_consider_creation(clan):
            fired += self.consider_creation(clan)
        if self.should_consider_joining(clan):
            fired += self.consider_joining(clan)
        fired += self.evaluate_existing(clan)
        return fired

    def _snapshot(self, clan_id: str) -> ClanSnapshot | None:
        return snapshot_with_coalitions(self.world, self.coalitions, clan_id)

    # -- create -----------------------------------------------------------

    def should_consider_creation(self, clan: ClanSnapshot) -> bool:
        if clan.coalition_count >= self.config.max_coalitions_for_creation:
            return False
        return not self.ledger.has_recent_alliance_decision(clan.id)

    def creation_candidates(self, clan: ClanSnapshot) -> list[tuple[ClanSnapshot, float]]:
        """Best partners by formation utility, highest first.

        Skips eliminated clans, existing allies, and clans already at the
        coalition limit.
        """
        scored = []
        for other in self.world.all_clans():
            if other.id == clan.id or other.eliminated:
                continue
            if self.coalitions.alliance(clan.id, other.id) is not None:
                continue
            other = self._snapshot(other.id)
            if other.coalition_count >= self.config.max_coalitions_for_creation:
                continue
            scored.append((other, self.model.formation_utility(clan, other)))
        scored.sort(key=lambda pair: pair[1], reverse=True)
        return scored[: self.config.creation_candidate_pool]

    def consider_creation(self, clan: ClanSnapshot) -> int:
        threshold = self.thresholds.threshold(clan, DecisionKind.FORMATION)
        candidates = self.creation_candidates(clan)[: self.config.creation_candidate_attempts]
        for target, utility in candidates:
            if utility < threshold:
                logger.debug(
                    f"{clan.name} passes on {target.name} "
                    f"(utility {utility:.1f} < {threshold:.1f})"
                )
                continue
            label = f"proposed_alliance_{target.id}"
            if self.ledger.on_cooldown(clan.id, label):
                continue
            if self.coalitions.propose_alliance(clan.id, target.id):
                coalition = self.coalitions.alliance(clan.id, target.id)
                self.ledger.record(
                    clan,
                    CATEGORY,
                    label,
                    utility,
                    threshold,
                    target_id=target.id,
                    coalition_id=coalition.id if coalition is not None else None,
                )
                logger.info(
                    f"{clan.name} proposed alliance to {target.name} (utility {utility:.1f})"
                )
                return 1
        return 0

    # -- join -------------------------------------------------------------

    def should_consider_joining(self, clan: ClanSnapshot) -> bool:
        return len(self.coalitions.alliances_for(clan.id)) < self.config.max_coalitions_for_joining

    def joinable(self, clan: ClanSnapshot) -> list[Coalition]:
        return [
            c
            for c in self.coalitions.all_active()
            if not c.is_member(clan.id) and c.size < self.config.max_coalition_size
        ]

    def consider_joining(self, clan: ClanSnapshot) -> int:
        threshold = self.thresholds.threshold(clan, DecisionKind.JOIN)
        for coalition in self.joinable(clan):
            members = [s for s in (self._snapshot(m) for m in coalition.members) if s is not None]
            utility = self.model.join_utility(clan, coalition, members)
            if utility < threshold:
                continue
            label = f"joined_alliance_{coalition.id}"
            if self.ledger.on_cooldown(clan.id, label):
                continue
            if self.coalitions.join_alliance(coalition, clan.id):
                self.ledger.record(
                    clan, CATEGORY, label, utility, threshold, coalition_id=coalition.id
                )
                logger.info(f"{clan.name} joined {coalition.name} (utility {utility:.1f})")
                return 1
        return 0

    # -- leave ------------------------------------------------------------

    def evaluate_existing(self, clan: ClanSnapshot) -> int:
        """Leave the first coalition whose dissatisfaction clears the bar."""
        threshold = self.thresholds.threshold(clan, DecisionKind.LEAVE)
        for coalition in list(self.coalitions.alliances_for(clan.id)):
            if not self.detector.should_leave(clan, coalition):
                continue
            label = f"left_alliance_{coalition.id}"
            if self.ledger.on_cooldown(clan.id, label):
                continue
            dissatisfaction = self.detector.dissatisfaction(coalition)
            if self.coalitions.leave_alliance(coalition, clan.id):
                self.ledger.record(
                    clan, CATEGORY, label, dissatisfaction, threshold, coalition_id=coalition.id
                )
                logger.info(
                    f"{clan.name} left {coalition.name} "
                    f"(dissatisfaction {dissatisfaction:.1f})"
                )
                return 1
        return 0

    # -- betray -----------------------------------------------------------

    def betray(
        self,
        clan: ClanSnapshot,
        coalition: Coalition,
        target: ClanSnapshot,
        beneficiary: ClanSnapshot,
    ) -> bool:
        """Walk out on ``coalition`` to the benefit of ``beneficiary``.

        Every remaining member takes a severe relation hit with the
        betrayer; the beneficiary warms to them.

        Returns:
            False if the store refused the departure
        """
        if not self.coalitions.leave_alliance(coalition, clan.id):
            return False

        for member_id in coalition.members:
            self.world.change_relation(clan.id, member_id, self.config.betrayal_relation_penalty)
        self.world.change_relation(clan.id, beneficiary.id, self.config.betrayal_beneficiary_bonus)

        if coalition.active:
            coalition.adjust_trust(-self.config.betrayal_trust_penalty)
            coalition.add_history_entry(
                f"{clan.name} betrayed {target.name}",
                self.ledger.calendar.now(),
                HistoryCategory.BETRAYED,
            )
        logger.info(f"{clan.name} betrayed {target.name} in favor of {beneficiary.name}")
        return True
