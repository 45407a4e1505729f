"""Trajectory data schemas.

Defines the structure of a recorded decision run:
- DecisionEvent: One decision that fired
- CycleSummary: Outcome of one daily decision cycle
- RunMetadata: Metadata for an entire campaign run
- TrajectoryDataset: Complete dataset from one run
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field


@dataclass
class DecisionEvent:
    """A single fired decision."""

    day: int  # absolute simulated day
    year: int
    day_of_year: int
    clan_id: str
    clan_name: str
    category: str  # "alliance" | "assistance" | "investment" | "opportunistic"
    label: str  # decision tag stored in decision memory
    utility: float
    threshold: float
    target_id: str | None = None
    coalition_id: str | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return asdict(self)


@dataclass
class CycleSummary:
    """What one daily cycle did."""

    day: int
    eligible: int
    processed: int
    capped: int
    decisions: int
    active_coalitions: int
    pending_requests: int
    pruned_cooldowns: int = 0
    pruned_decisions: int = 0
    weekly_prune: bool = False

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return asdict(self)


@dataclass
class RunMetadata:
    """Metadata for an entire campaign run."""

    run_id: str
    timestamp: str  # ISO 8601
    seed: int
    config: dict  # full DecisionConfig as dict
    num_clans: int
    max_days: int
    actual_days: int = 0
    clans: list[dict] = field(default_factory=list)  # [{id, name, faction_id, traits}]
    final_state: dict = field(default_factory=dict)  # {active_coalitions, decisions, leaks}

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return asdict(self)


@dataclass
class TrajectoryDataset:
    """Complete dataset from one run."""

    metadata: RunMetadata
    decisions: list[DecisionEvent] = field(default_factory=list)
    cycles: list[CycleSummary] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "metadata": self.metadata.to_dict(),
            "decisions": [d.to_dict() for d in self.decisions],
            "cycles": [c.to_dict() for c in self.cycles],
        }
