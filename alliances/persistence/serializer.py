"""State serialization: convert decision engine state to/from dict.

Only the decision engine's own state is saved: the two DecisionMemory
blobs, the clock, and the scheduler's cursor and last prune day. Clans, coalitions,
and requests belong to the host's stores and are restored by the host.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from alliances.errors import SerializationError
from alliances.simulation.clock import SimTime

if TYPE_CHECKING:
    from alliances.simulation.engine import AllianceSimulation
    from alliances.simulation.world import World


class MemorySerializer:
    """Serialize and deserialize decision engine state."""

    SCHEMA_VERSION = 1

    def serialize(self, engine: AllianceSimulation) -> dict:
        """Serialize engine state to a JSON-ready dict.

        Args:
            engine: The simulation whose decision state to save

        Returns:
            Dictionary containing the decision memory and scheduler state
        """
        cooldowns, decisions = engine.memory.to_blobs()
        return {
            "schema_version": self.SCHEMA_VERSION,
            "timestamp": datetime.now(UTC).isoformat(),
            "config": engine.config.model_dump(),
            "state": {
                "hours": engine.clock.now().hours,
                "day": engine.state.day,
                "cursor": engine.scheduler.cursor,
                "last_prune_day": engine.scheduler.last_prune_day,
            },
            "memory": {
                "cooldowns": cooldowns,
                "decisions": decisions,
            },
        }

    def deserialize(
        self,
        data: dict,
        config_override: dict | None = None,
        world: World | None = None,
    ) -> AllianceSimulation:
        """Reconstruct a simulation from a serialized dict.

        Args:
            data: Serialized state dictionary
            config_override: Optional config fields to override (for branching)
            world: Host world to attach; a fresh empty world when omitted

        Returns:
            Simulation with its decision memory, clock, and cursor restored

        Raises:
            SerializationError: If the data is malformed or from a newer schema
        """
        self._check_version(data)

        from alliances.config import DecisionConfig
        from alliances.simulation.engine import AllianceSimulation

        config_dict = dict(data.get("config", {}))
        if config_override:
            config_dict.update(config_override)
        engine = AllianceSimulation(DecisionConfig(**config_dict), world=world)
        self.restore(engine, data)
        return engine

    def restore(self, engine: AllianceSimulation, data: dict) -> None:
        """Load saved decision state into an existing simulation.

        Raises:
            SerializationError: If the data is malformed or from a newer schema
        """
        self._check_version(data)
        try:
            state = data["state"]
            memory = data["memory"]
            hours = state["hours"]
            cursor = state["cursor"]
            cooldowns = memory["cooldowns"]
            decisions = memory["decisions"]
        except (KeyError, TypeError) as e:
            raise SerializationError(f"Checkpoint is missing {e}") from e

        if isinstance(hours, bool) or not isinstance(hours, (int, float)):
            raise SerializationError(f"Malformed clock time: {hours!r}")
        if not math.isfinite(hours):
            raise SerializationError(f"Malformed clock time: {hours!r}")
        if isinstance(cursor, bool) or not isinstance(cursor, int) or cursor < 0:
            raise SerializationError(f"Malformed scheduler cursor: {cursor!r}")
        last_prune_day = state.get("last_prune_day")
        if last_prune_day is not None and (
            isinstance(last_prune_day, bool) or not isinstance(last_prune_day, int)
        ):
            raise SerializationError(f"Malformed last prune day: {last_prune_day!r}")

        days_per_year = engine.config.days_per_year
        engine.memory.load_blobs(cooldowns, decisions, days_per_year)
        engine.clock.set(SimTime(float(hours), days_per_year))
        engine.state.day = engine.clock.now().absolute_day
        engine.scheduler.cursor = cursor
        engine.scheduler.last_prune_day = last_prune_day

    def _check_version(self, data: dict) -> None:
        if not isinstance(data, dict):
            raise SerializationError("Checkpoint data must be a mapping")
        version = data.get("schema_version", 1)
        if not isinstance(version, int) or version > self.SCHEMA_VERSION:
            raise SerializationError(f"Unsupported checkpoint schema version: {version!r}")
