"""Assistance negotiation: answering and originating mutual-aid requests.

For each pending request a clan scores the ask and either accepts,
declines, or waits. A waiting request stays pending and is scored again
on a later day until it expires. Clans short on gold or troops may also
ask their best-placed ally for help, at most once per day.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from alliances.simulation.clock import SimTime
from alliances.social.lifecycle import snapshot_with_coalitions
from alliances.social.requests import REQUEST_PROFILES, Request, RequestType
from alliances.utility.thresholds import DecisionKind

if TYPE_CHECKING:
    from alliances.agents.identity import ClanSnapshot
    from alliances.config import DecisionConfig
    from alliances.memory.decisions import DecisionLedger
    from alliances.protocols import CoalitionStore, RequestStore
    from alliances.simulation.world import World
    from alliances.utility.model import UtilityModel
    from alliances.utility.thresholds import ThresholdPolicy

logger = logging.getLogger(__name__)

CATEGORY = "assistance"
DECLINE_REASON = "Current circumstances do not permit assistance"


@dataclass(frozen=True)
class AssistanceNeed:
    """Something a clan is short of and the terms it offers."""

    request_type: RequestType
    description: str
    reward: int


class AssistanceNegotiation:
    """Runs one clan's assistance decisions for the day."""

    def __init__(
        self,
        world: World,
        coalitions: CoalitionStore,
        requests: RequestStore,
        ledger: DecisionLedger,
        model: UtilityModel,
        thresholds: ThresholdPolicy,
        config: DecisionConfig,
    ):
        self.world = world
        self.coalitions = coalitions
        self.requests = requests
        self.ledger = ledger
        self.model = model
        self.thresholds = thresholds
        self.config = config

    def process(self, clan: ClanSnapshot) -> int:
        """Answer pending requests, then possibly ask for help.

        Returns:
            Number of decisions recorded
        """
        fired = self.respond_to_pending(clan)
        if self.should_request(clan):
            fired += self.consider_request(clan)
        return fired

    # -- responding -------------------------------------------------------

    def evaluate(self, clan: ClanSnapshot, request: Request) -> float:
        requester = self.world.snapshot(request.requester_id)
        coalition = self.coalitions.alliance(clan.id, request.requester_id)
        return self.model.assistance_utility(clan, request, requester, coalition)

    def respond_to_pending(self, clan: ClanSnapshot) -> int:
        accept_at = self.thresholds.threshold(clan, DecisionKind.ACCEPT)
        decline_below = self.thresholds.threshold(clan, DecisionKind.DECLINE)
        fired = 0
        for request in list(self.requests.pending_for(clan.id)):
            utility = self.evaluate(clan, request)
            if utility >= accept_at:
                label = f"accepted_request_{request.id}"
                if self.ledger.on_cooldown(clan.id, label):
                    continue
                self.requests.accept(request)
                self.ledger.record(
                    clan, CATEGORY, label, utility, accept_at, target_id=request.requester_id
                )
                logger.info(
                    f"{clan.name} accepted {request.request_type.value} request "
                    f"from {request.requester_id} (utility {utility:.1f})"
                )
                fired += 1
            elif utility < decline_below:
                label = f"declined_request_{request.id}"
                if self.ledger.on_cooldown(clan.id, label):
                    continue
                self.requests.decline(request, DECLINE_REASON)
                self.ledger.record(
                    clan, CATEGORY, label, utility, decline_below, target_id=request.requester_id
                )
                logger.info(
                    f"{clan.name} declined {request.request_type.value} request "
                    f"from {request.requester_id} (utility {utility:.1f})"
                )
                fired += 1
            else:
                logger.debug(
                    f"{clan.name} defers request {request.id} (utility {utility:.1f})"
                )
        return fired

    # -- originating ------------------------------------------------------

    def should_request(self, clan: ClanSnapshot) -> bool:
        if not self.coalitions.alliances_for(clan.id):
            return False
        return (
            clan.wealth < self.config.wealth_need_floor
            or clan.strength < self.config.strength_need_floor
        )

    def assess_needs(self, clan: ClanSnapshot) -> list[AssistanceNeed]:
        allowed = set(self.config.originated_request_types)
        needs = []
        if clan.wealth < self.config.tribute_wealth_floor and RequestType.TRIBUTE.value in allowed:
            needs.append(
                AssistanceNeed(
                    RequestType.TRIBUTE,
                    "Financial assistance needed for clan maintenance",
                    0,
                )
            )
        if (
            clan.strength < self.config.battle_strength_floor
            and RequestType.BATTLE_ASSISTANCE.value in allowed
        ):
            needs.append(
                AssistanceNeed(
                    RequestType.BATTLE_ASSISTANCE,
                    "Military assistance needed for upcoming conflicts",
                    self.config.battle_request_reward,
                )
            )
        return needs

    def best_ally(self, clan: ClanSnapshot, need: AssistanceNeed) -> tuple[ClanSnapshot, float] | None:
        """The ally most willing to grant ``need``, scored from the ally's side."""
        ally_ids = []
        for coalition in self.coalitions.alliances_for(clan.id):
            for member_id in coalition.other_members(clan.id):
                if member_id not in ally_ids:
                    ally_ids.append(member_id)

        best = None
        for ally_id in ally_ids:
            ally = snapshot_with_coalitions(self.world, self.coalitions, ally_id)
            if ally is None or ally.eliminated:
                continue
            probe = self._probe_request(clan, ally, need)
            coalition = self.coalitions.alliance(clan.id, ally.id)
            utility = self.model.assistance_utility(ally, probe, clan, coalition)
            if best is None or utility > best[1]:
                best = (ally, utility)
        return best

    def _probe_request(self, clan: ClanSnapshot, ally: ClanSnapshot, need: AssistanceNeed) -> Request:
        """An unfiled request used only to score how an ally would answer."""
        now = self.ledger.calendar.now()
        hours, risk = REQUEST_PROFILES[need.request_type]
        return Request(
            id="probe",
            request_type=need.request_type,
            requester_id=clan.id,
            target_id=ally.id,
            description=need.description,
            reward=need.reward,
            risk=risk,
            created_at=now,
            expires_at=now + SimTime.of_hours(hours, now.days_per_year),
        )

    def consider_request(self, clan: ClanSnapshot) -> int:
        for need in self.assess_needs(clan):
            choice = self.best_ally(clan, need)
            if choice is None:
                continue
            ally, utility = choice
            label = f"requested_{need.request_type.value}_{ally.id}"
            if self.ledger.on_cooldown(clan.id, label):
                continue
            request = self.requests.create(
                need.request_type, clan.id, ally.id, need.description, need.reward
            )
            if request is None:
                continue
            self.ledger.record(clan, CATEGORY, label, utility, target_id=ally.id)
            logger.info(f"{clan.name} requested {need.request_type.value} from {ally.name}")
            return 1
        return 0
