"""Daily decision scheduler.

Once per simulated day the scheduler selects the clans allowed to act,
processes a bounded batch of them, and every seventh day prunes decision
memory. Each clan's turn runs its decision categories in fixed order:
alliance, assistance, investment, then (rarely) opportunistic actions.
A clan stops as soon as it reaches the daily decision cap.
"""

from __future__ import annotations

import enum
import logging
import random
from typing import TYPE_CHECKING

from alliances.errors import SchedulerStateError
from alliances.social.lifecycle import snapshot_with_coalitions
from alliances.trajectory.schema import CycleSummary

if TYPE_CHECKING:
    from alliances.agents.identity import ClanSnapshot
    from alliances.config import DecisionConfig
    from alliances.memory.decisions import DecisionMemory
    from alliances.protocols import Calendar, CoalitionStore, RequestStore
    from alliances.simulation.world import World
    from alliances.social.assistance import AssistanceNegotiation
    from alliances.social.investment import SecrecyInvestment
    from alliances.social.lifecycle import AllianceLifecycle
    from alliances.social.opportunism import OpportunisticActions

logger = logging.getLogger(__name__)


class SchedulerPhase(enum.Enum):
    """Where the scheduler is within a cycle."""

    IDLE = "idle"
    SELECT_ELIGIBLE = "select_eligible"
    PROCESS_BATCH = "process_batch"
    WEEKLY_PRUNE = "weekly_prune"


class DecisionScheduler:
    """Drives every clan's daily decisions.

    The batch is load shedding: clans past the batch size wait for a
    later day. A cursor rotates the batch start so nobody waits forever.
    """

    def __init__(
        self,
        world: World,
        coalitions: CoalitionStore,
        requests: RequestStore,
        memory: DecisionMemory,
        calendar: Calendar,
        lifecycle: AllianceLifecycle,
        assistance: AssistanceNegotiation,
        investment: SecrecyInvestment,
        opportunism: OpportunisticActions,
        config: DecisionConfig,
        rng: random.Random | None = None,
    ):
        self.world = world
        self.coalitions = coalitions
        self.requests = requests
        self.memory = memory
        self.calendar = calendar
        self.config = config
        self.rng = rng or random.Random(config.seed)
        self.phase = SchedulerPhase.IDLE
        self.cursor = 0
        self.last_prune_day: int | None = None

        # Category handlers in priority order
        self.categories = [
            ("alliance", lifecycle.process),
            ("assistance", assistance.process),
            ("investment", investment.process),
            ("opportunistic", self._opportunistic(opportunism)),
        ]

    def _opportunistic(self, opportunism: OpportunisticActions):
        def run(clan: ClanSnapshot) -> int:
            if self.rng.random() >= self.config.opportunistic_probability:
                return 0
            return opportunism.process(clan)

        return run

    # -- eligibility ------------------------------------------------------

    def is_eligible(self, clan: ClanSnapshot) -> bool:
        if clan is None or clan.eliminated or clan.is_player:
            return False
        if not clan.has_leader:
            return False
        return not self.memory.has_daily_cooldown(clan.id, self.calendar.now())

    def select_eligible(self) -> list[ClanSnapshot]:
        """Clans allowed to act today, in stable world order.

        Reads state only; calling it twice without changes in between
        returns the same list.
        """
        return [clan for clan in self.world.all_clans() if self.is_eligible(clan)]

    def next_batch(self, eligible: list[ClanSnapshot]) -> list[ClanSnapshot]:
        """Up to ``daily_batch_size`` clans starting at the cursor, then advance it."""
        if not eligible:
            return []
        size = min(self.config.daily_batch_size, len(eligible))
        start = self.cursor % len(eligible)
        batch = [eligible[(start + i) % len(eligible)] for i in range(size)]
        self.cursor = (start + size) % len(eligible)
        return batch

    # -- one clan ---------------------------------------------------------

    def at_cap(self, clan_id: str) -> bool:
        now = self.calendar.now()
        return self.memory.count_in_year(clan_id, now) >= self.config.max_decisions_per_day

    def process_clan(self, clan: ClanSnapshot) -> tuple[int, bool]:
        """Run every decision category for ``clan`` until the daily cap.

        Returns:
            (decisions recorded, whether the cap cut the turn short)
        """
        fired = 0
        for name, handler in self.categories:
            if self.at_cap(clan.id):
                logger.debug(f"{clan.name} reached the daily cap before {name}")
                return fired, True
            # Refresh so each category sees the previous one's effects
            current = snapshot_with_coalitions(self.world, self.coalitions, clan.id)
            if current is None or current.eliminated:
                return fired, False
            fired += handler(current)

        if self.config.daily_cooldown_hours > 0:
            self.memory.set_daily_cooldown(
                clan.id, self.calendar.now(), self.config.daily_cooldown_hours
            )
        return fired, False

    # -- cycle ------------------------------------------------------------

    def is_prune_day(self) -> bool:
        day = self.calendar.now().absolute_day
        return day % self.config.week_length_days == 0 and day != self.last_prune_day

    def weekly_prune(self) -> int:
        self.phase = SchedulerPhase.WEEKLY_PRUNE
        now = self.calendar.now()
        removed = self.memory.prune_decisions(now)
        self.last_prune_day = now.absolute_day
        logger.debug(f"Weekly prune removed {removed} decision records")
        return removed

    def run_cycle(self) -> CycleSummary:
        """Run one day's decisions.

        Raises:
            SchedulerStateError: If called while a cycle is already running
        """
        if self.phase is not SchedulerPhase.IDLE:
            raise SchedulerStateError(f"Cycle already in progress (phase {self.phase.value})")

        now = self.calendar.now()
        try:
            self.phase = SchedulerPhase.SELECT_ELIGIBLE
            eligible = self.select_eligible()

            self.phase = SchedulerPhase.PROCESS_BATCH
            batch = self.next_batch(eligible)
            decisions = 0
            capped = 0
            for clan in batch:
                fired, was_capped = self.process_clan(clan)
                decisions += fired
                capped += int(was_capped)

            pruned_cooldowns = self.memory.prune_cooldowns(now)
            weekly = self.is_prune_day()
            pruned_decisions = self.weekly_prune() if weekly else 0
        finally:
            self.phase = SchedulerPhase.IDLE

        summary = CycleSummary(
            day=now.absolute_day,
            eligible=len(eligible),
            processed=len(batch),
            capped=capped,
            decisions=decisions,
            active_coalitions=len(self.coalitions.all_active()),
            pending_requests=sum(
                len(self.requests.pending_for(c.id)) for c in self.world.all_clans()
            ),
            pruned_cooldowns=pruned_cooldowns,
            pruned_decisions=pruned_decisions,
            weekly_prune=weekly,
        )
        logger.info(
            f"Day {now.absolute_day}: {decisions} decisions from "
            f"{len(batch)}/{len(eligible)} eligible clans"
        )
        return summary
