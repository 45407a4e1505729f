"""Opportunistic actions: rare betrayals and leaks by dishonorable clans.

Both branches sit behind flat random gates on top of the scheduler's own
opportunistic roll, so they fire only a handful of times per campaign.
"""

from __future__ import annotations

import logging
import random
from typing import TYPE_CHECKING

from alliances.social.coalition import HistoryCategory
from alliances.social.lifecycle import snapshot_with_coalitions
from alliances.utility.thresholds import DecisionKind

if TYPE_CHECKING:
    from alliances.agents.identity import ClanSnapshot
    from alliances.config import DecisionConfig
    from alliances.memory.decisions import DecisionLedger
    from alliances.protocols import CoalitionStore, ExposureService
    from alliances.simulation.world import World
    from alliances.social.coalition import Coalition
    from alliances.social.lifecycle import AllianceLifecycle
    from alliances.utility.model import UtilityModel
    from alliances.utility.thresholds import ThresholdPolicy

logger = logging.getLogger(__name__)

CATEGORY = "opportunistic"

# Secrecy lost when the exposure service fails and the leak is only noted
FALLBACK_LEAK_SECRECY_LOSS = 0.1


class OpportunisticActions:
    """Betrayal and leak decisions for one clan."""

    def __init__(
        self,
        world: World,
        coalitions: CoalitionStore,
        exposure: ExposureService,
        lifecycle: AllianceLifecycle,
        ledger: DecisionLedger,
        model: UtilityModel,
        thresholds: ThresholdPolicy,
        config: DecisionConfig,
        rng: random.Random | None = None,
    ):
        self.world = world
        self.coalitions = coalitions
        self.exposure = exposure
        self.lifecycle = lifecycle
        self.ledger = ledger
        self.model = model
        self.thresholds = thresholds
        self.config = config
        self.rng = rng or random.Random(config.seed)

    def process(self, clan: ClanSnapshot) -> int:
        """Try a betrayal, then a leak.

        Returns:
            Number of decisions recorded
        """
        fired = 0
        if self.should_consider_betrayal(clan):
            fired += self.consider_betrayal(clan)
        if self.should_consider_leak(clan):
            fired += self.consider_leak(clan)
        return fired

    # -- betrayal ---------------------------------------------------------

    def should_consider_betrayal(self, clan: ClanSnapshot) -> bool:
        if clan.traits.honor >= 0:
            return False
        return self.rng.random() < self.config.betrayal_probability

    def beneficiaries(self, clan: ClanSnapshot, target: ClanSnapshot) -> list[ClanSnapshot]:
        """Clans outside the target's faction who would welcome a betrayal."""
        return [
            other
            for other in self.world.all_clans()
            if other.id not in (clan.id, target.id)
            and not other.eliminated
            and other.faction_id != target.faction_id
        ]

    def consider_betrayal(self, clan: ClanSnapshot) -> int:
        threshold = self.thresholds.threshold(clan, DecisionKind.BETRAYAL)
        for coalition in list(self.coalitions.alliances_for(clan.id)):
            for target_id in coalition.other_members(clan.id):
                target = snapshot_with_coalitions(self.world, self.coalitions, target_id)
                if target is None or target.eliminated:
                    continue
                for beneficiary in self.beneficiaries(clan, target):
                    utility = self.model.betrayal_utility(clan, target, beneficiary, coalition)
                    if utility < threshold:
                        continue
                    label = f"betrayed_{target.id}"
                    if self.ledger.on_cooldown(clan.id, label):
                        continue
                    if not self.lifecycle.betray(clan, coalition, target, beneficiary):
                        continue
                    self.ledger.record(
                        clan,
                        CATEGORY,
                        label,
                        utility,
                        threshold,
                        target_id=target.id,
                        coalition_id=coalition.id,
                    )
                    return 1
        return 0

    # -- leaking ----------------------------------------------------------

    def should_consider_leak(self, clan: ClanSnapshot) -> bool:
        return clan.traits.honor < 0 and clan.wealth < self.config.leak_wealth_floor

    def consider_leak(self, clan: ClanSnapshot) -> int:
        for coalition in list(self.coalitions.alliances_for(clan.id)):
            if coalition.secrecy <= self.config.leak_secrecy_floor:
                continue
            if self.rng.random() >= self.config.leak_probability:
                continue
            label = f"leaked_alliance_{coalition.id}"
            if self.ledger.on_cooldown(clan.id, label):
                continue
            self.leak(clan, coalition)
            self.ledger.record(clan, CATEGORY, label, coalition_id=coalition.id)
            return 1
        return 0

    def leak(self, clan: ClanSnapshot, coalition: Coalition) -> None:
        """Hand the leak to the exposure service, noting it locally if that fails."""
        try:
            self.exposure.force_leak(coalition, source_id=clan.id)
        except Exception as e:
            logger.warning(
                f"Exposure service failed for {coalition.name} ({e}); recording leak locally"
            )
            coalition.adjust_secrecy(-FALLBACK_LEAK_SECRECY_LOSS)
            coalition.add_history_entry(
                f"Information leaked by {clan.name}",
                self.ledger.calendar.now(),
                HistoryCategory.LEAKED,
            )
            return
        logger.info(f"{clan.name} leaked secrets of {coalition.name}")
