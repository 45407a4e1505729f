"""Decision-memory checkpoints on disk.

Each checkpoint is one JSON file named ``{day:06d}_{label}_{stamp}.json``
(label optional). Files are written through a hidden temp file and
renamed into place, so a crash never leaves a half-written checkpoint.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from alliances.persistence.serializer import MemorySerializer

if TYPE_CHECKING:
    from alliances.simulation.engine import AllianceSimulation
    from alliances.simulation.world import World

logger = logging.getLogger(__name__)

STAMP_FORMAT = "%Y%m%dT%H%M%S%f"


@dataclass(frozen=True, order=True)
class CheckpointInfo:
    """A checkpoint file found on disk, ordered oldest first."""

    day: int
    stamp: str
    label: str
    path: str

    @classmethod
    def from_path(cls, filepath: Path) -> CheckpointInfo | None:
        """Parse a checkpoint filename; None for anything else in the directory."""
        if filepath.name.startswith("."):
            return None
        parts = filepath.stem.split("_")
        if len(parts) not in (2, 3) or not parts[0].isdigit():
            return None
        label = parts[1] if len(parts) == 3 else ""
        return cls(day=int(parts[0]), stamp=parts[-1], label=label, path=str(filepath))


class CheckpointManager:
    """Saves, restores, and rotates decision-memory checkpoints."""

    def __init__(
        self,
        checkpoint_dir: str = "data/checkpoints",
        auto_interval: int = 7,
        max_checkpoints: int = 10,
    ):
        """Initialize checkpoint manager.

        Args:
            checkpoint_dir: Directory holding checkpoint files
            auto_interval: Simulated days between automatic checkpoints (0 = never)
            max_checkpoints: How many checkpoints ``prune`` keeps
        """
        self._dir = Path(checkpoint_dir)
        self._interval = auto_interval
        self._max = max_checkpoints
        self._serializer = MemorySerializer()
        self._last_auto_day = 0

        self._dir.mkdir(parents=True, exist_ok=True)

    # -- writing ----------------------------------------------------------

    def save(self, engine: AllianceSimulation, label: str = "") -> str:
        """Write the engine's decision state to a new checkpoint file.

        Underscores in ``label`` become dashes so the filename stays parseable.

        Returns:
            Path of the written file
        """
        stamp = datetime.now(UTC).strftime(STAMP_FORMAT)
        name_parts = [f"{engine.state.day:06d}"]
        if label:
            name_parts.append(label.replace("_", "-"))
        name_parts.append(stamp)
        filepath = self._dir / ("_".join(name_parts) + ".json")
        return self.write(self._serializer.serialize(engine), filepath)

    def write(self, data: dict, filepath: Path) -> str:
        """Atomically write ``data`` as JSON to ``filepath``."""
        filepath.parent.mkdir(parents=True, exist_ok=True)
        staging = filepath.with_name(f".{filepath.name}.tmp")
        try:
            with open(staging, "w") as f:
                json.dump(data, f, indent=2)
            os.replace(staging, filepath)
        finally:
            staging.unlink(missing_ok=True)
        logger.debug(f"Checkpoint written to {filepath}")
        return str(filepath)

    def auto_checkpoint(self, engine: AllianceSimulation) -> str | None:
        """Save if at least ``auto_interval`` days passed since the last auto save.

        Call once per simulated day; old checkpoints are rotated out.
        """
        if self._interval <= 0:
            return None
        day = engine.state.day
        if day - self._last_auto_day < self._interval:
            return None

        path = self.save(engine, label="auto")
        self._last_auto_day = day
        self.prune()
        return path

    # -- reading ----------------------------------------------------------

    @staticmethod
    def _read(path: str) -> dict:
        with open(path) as f:
            return json.load(f)

    def load(
        self,
        path: str,
        config_override: dict | None = None,
        world: World | None = None,
    ) -> AllianceSimulation:
        """Build a new simulation from a checkpoint file.

        Args:
            path: Checkpoint file
            config_override: Config fields to change in the restored run
            world: Host world to attach to the restored simulation

        Raises:
            FileNotFoundError: If ``path`` does not exist
            SerializationError: If the checkpoint is malformed
        """
        return self._serializer.deserialize(self._read(path), config_override, world=world)

    def restore(self, engine: AllianceSimulation, path: str) -> None:
        """Load a checkpoint's decision state into a running simulation."""
        self._serializer.restore(engine, self._read(path))

    # -- rotation ---------------------------------------------------------

    def list_checkpoints(self) -> list[CheckpointInfo]:
        """Checkpoints in the directory, oldest first."""
        found = (CheckpointInfo.from_path(p) for p in self._dir.glob("*.json"))
        return sorted(info for info in found if info is not None)

    def latest_checkpoint(self) -> str | None:
        checkpoints = self.list_checkpoints()
        return checkpoints[-1].path if checkpoints else None

    def prune(self) -> int:
        """Delete the oldest checkpoints beyond ``max_checkpoints``.

        Returns:
            Number of files removed
        """
        checkpoints = self.list_checkpoints()
        excess = checkpoints[: max(0, len(checkpoints) - self._max)]
        for info in excess:
            Path(info.path).unlink()
        if excess:
            logger.info(f"Pruned {len(excess)} old checkpoints from {self._dir}")
        return len(excess)
