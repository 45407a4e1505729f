"""Campaign simulation for the alliance decision engine.

Wires the clock, world, coalition and request stores, exposure tracker,
decision memory, and scheduler together and advances them one simulated
day at a time.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field

from alliances.config import DecisionConfig
from alliances.memory.decisions import DecisionLedger, DecisionMemory
from alliances.simulation.clock import SimulationClock
from alliances.simulation.scheduler import DecisionScheduler
from alliances.simulation.world import World
from alliances.social.assistance import AssistanceNegotiation
from alliances.social.coalition import CoalitionManager
from alliances.social.exposure import LeakTracker
from alliances.social.investment import SecrecyInvestment
from alliances.social.lifecycle import AllianceLifecycle
from alliances.social.opportunism import OpportunisticActions
from alliances.social.requests import RequestBoard
from alliances.trajectory.schema import CycleSummary
from alliances.utility.model import UtilityModel
from alliances.utility.thresholds import ThresholdPolicy

logger = logging.getLogger(__name__)


@dataclass
class SimulationState:
    """Current state of the campaign."""

    day: int = 0
    history: list[CycleSummary] = field(default_factory=list)
    expired_requests: int = 0


class AllianceSimulation:
    """One campaign: a world of clans making alliance decisions daily."""

    def __init__(
        self,
        config: DecisionConfig | None = None,
        world: World | None = None,
        model: UtilityModel | None = None,
    ):
        self.config = config or DecisionConfig()
        self.rng = random.Random(self.config.seed)
        self.clock = SimulationClock(days_per_year=self.config.days_per_year)
        self.world = world or World(self.config.seed)
        self.coalitions = CoalitionManager(
            self.world,
            self.clock,
            rng=self.rng,
            max_size=self.config.max_coalition_size,
        )
        self.requests = RequestBoard(self.world, self.coalitions, self.clock, rng=self.rng)
        self.exposure = LeakTracker(self.world, self.clock, rng=self.rng)

        self.memory = DecisionMemory(
            recent_days=self.config.decision_memory_days,
            decision_cooldown_hours=self.config.decision_cooldown_hours,
        )
        self.ledger = DecisionLedger(self.memory, self.clock)
        self.model = model or UtilityModel(self.config)
        self.thresholds = ThresholdPolicy(self.config)

        self.lifecycle = AllianceLifecycle(
            self.world, self.coalitions, self.ledger, self.model, self.thresholds, self.config
        )
        self.assistance = AssistanceNegotiation(
            self.world,
            self.coalitions,
            self.requests,
            self.ledger,
            self.model,
            self.thresholds,
            self.config,
        )
        self.investment = SecrecyInvestment(
            self.world, self.coalitions, self.ledger, self.model, self.thresholds, self.config
        )
        self.opportunism = OpportunisticActions(
            self.world,
            self.coalitions,
            self.exposure,
            self.lifecycle,
            self.ledger,
            self.model,
            self.thresholds,
            self.config,
            rng=self.rng,
        )
        self.scheduler = DecisionScheduler(
            self.world,
            self.coalitions,
            self.requests,
            self.memory,
            self.clock,
            self.lifecycle,
            self.assistance,
            self.investment,
            self.opportunism,
            self.config,
            rng=self.rng,
        )
        self.state = SimulationState()

        # Trajectory recording (lazy init if enabled)
        self.recorder = None
        if self.config.trajectory_recording:
            from alliances.trajectory.recorder import DecisionRecorder

            self.recorder = DecisionRecorder(self)

        # Auto-checkpointing (lazy init if enabled)
        self.checkpoints = None
        if self.config.checkpoint_interval > 0:
            from alliances.persistence.checkpoint import CheckpointManager

            self.checkpoints = CheckpointManager(
                checkpoint_dir=self.config.checkpoint_dir,
                auto_interval=self.config.checkpoint_interval,
                max_checkpoints=self.config.checkpoint_max,
            )

    def populate(self, count: int, factions: int = 3) -> None:
        """Fill the world with ``count`` random clans."""
        self.world.populate(count, factions=factions)

    def step_day(self) -> CycleSummary:
        """Advance one day and run that day's decisions.

        Order: expire stale requests, age coalitions, fade exposure, then
        run the decision cycle (which prunes memory on week boundaries).
        """
        self.clock.advance_days(1)
        self.state.day = self.clock.now().absolute_day

        self.state.expired_requests += len(self.requests.expire())
        self.coalitions.daily_maintenance()
        self.exposure.decay()
        summary = self.scheduler.run_cycle()

        self.state.history.append(summary)
        if self.recorder is not None:
            self.recorder.record_cycle(summary)
        if self.checkpoints is not None:
            saved = self.checkpoints.auto_checkpoint(self)
            if saved:
                logger.info(f"Auto-checkpoint saved to {saved}")
        return summary

    def run(self, days: int) -> list[CycleSummary]:
        """Run ``days`` consecutive days."""
        if self.recorder is not None and not self.recorder.started:
            self.recorder.start_run(days)
        summaries = [self.step_day() for _ in range(days)]
        if self.recorder is not None:
            self.recorder.end_run()
        return summaries

    def summary(self) -> dict:
        """Headline numbers for the campaign so far."""
        coalitions = self.coalitions.all_active()
        at_risk = 0
        for coalition in coalitions:
            for member_id in coalition.members:
                clan = self.world.snapshot(member_id)
                if clan is not None and self.lifecycle.detector.departure_risk(clan, coalition) >= 0.75:
                    at_risk += 1
        return {
            "day": self.state.day,
            "active_coalitions": len(coalitions),
            "decisions": sum(s.decisions for s in self.state.history),
            "leaks": len(self.exposure.all_leaks()),
            "expired_requests": self.state.expired_requests,
            "members_at_risk": at_risk,
        }
