"""Secrecy investment: paying gold to keep a coalition hidden."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from alliances.social.coalition import HistoryCategory
from alliances.utility.thresholds import DecisionKind

if TYPE_CHECKING:
    from alliances.agents.identity import ClanSnapshot
    from alliances.config import DecisionConfig
    from alliances.memory.decisions import DecisionLedger
    from alliances.protocols import CoalitionStore, WorldMutator
    from alliances.utility.model import UtilityModel
    from alliances.utility.thresholds import ThresholdPolicy

logger = logging.getLogger(__name__)

CATEGORY = "investment"


class SecrecyInvestment:
    """Spends a wealthy member's gold on an exposed coalition's secrecy.

    At most one investment per clan per cycle.
    """

    def __init__(
        self,
        world: WorldMutator,
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

    def eligible(self, clan: ClanSnapshot, secrecy: float) -> bool:
        return (
            secrecy < self.config.secrecy_investment_ceiling
            and clan.wealth > self.config.investment_wealth_floor
        )

    def process(self, clan: ClanSnapshot) -> int:
        threshold = self.thresholds.threshold(clan, DecisionKind.INVESTMENT)
        for coalition in self.coalitions.alliances_for(clan.id):
            if not self.eligible(clan, coalition.secrecy):
                continue
            utility = self.model.investment_utility(clan, coalition)
            if utility < threshold:
                continue
            label = f"secrecy_investment_{coalition.id}"
            if self.ledger.on_cooldown(clan.id, label):
                continue

            self.world.change_wealth(clan.id, -self.config.secrecy_investment_cost)
            coalition.adjust_secrecy(self.config.secrecy_investment_gain)
            coalition.add_history_entry(
                f"{clan.name} invested in alliance secrecy",
                self.ledger.calendar.now(),
                HistoryCategory.INVESTMENT,
            )
            self.ledger.record(
                clan, CATEGORY, label, utility, threshold, coalition_id=coalition.id
            )
            logger.info(
                f"{clan.name} invested {self.config.secrecy_investment_cost} "
                f"in {coalition.name} secrecy (now {coalition.secrecy:.2f})"
            )
            return 1
        return 0
