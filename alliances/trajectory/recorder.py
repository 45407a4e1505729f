"""Decision recorder: captures fired decisions and daily cycles during a run.

Subscribes to the decision ledger and streams to JSONL for crash safety.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, TextIO

from alliances.trajectory.schema import (
    CycleSummary,
    DecisionEvent,
    RunMetadata,
    TrajectoryDataset,
)

if TYPE_CHECKING:
    from alliances.simulation.engine import AllianceSimulation

logger = logging.getLogger(__name__)


class DecisionRecorder:
    """Records decision data during a campaign.

    Every decision written through the engine's ledger is captured, and
    the engine hands over one ``CycleSummary`` per day.
    """

    def __init__(
        self,
        engine: AllianceSimulation,
        output_dir: str | None = None,
        run_id: str | None = None,
    ):
        self.engine = engine
        self.run_id = run_id or str(uuid.uuid4())[:12]
        base = output_dir or engine.config.trajectory_output_dir
        self.output_dir = Path(base) / self.run_id
        self._decisions: list[DecisionEvent] = []
        self._cycles: list[CycleSummary] = []
        self._jsonl_file: TextIO | None = None
        self._metadata: RunMetadata | None = None
        engine.ledger.subscribe(self.record_decision)

    @property
    def started(self) -> bool:
        return self._metadata is not None

    def start_run(self, max_days: int) -> None:
        """Initialize recording. Called before the first day."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self._metadata = self._build_metadata(max_days)
        self._jsonl_file = (self.output_dir / "trajectory.jsonl").open("w")
        self._write_jsonl({"type": "metadata", **self._metadata.to_dict()})

    def record_decision(self, event: DecisionEvent) -> None:
        self._decisions.append(event)
        self._write_jsonl({"type": "decision", **event.to_dict()})

    def record_cycle(self, summary: CycleSummary) -> None:
        self._cycles.append(summary)
        self._write_jsonl({"type": "cycle", **summary.to_dict()})

    def end_run(self) -> None:
        """Finalize recording. Called after the last day."""
        if self._metadata:
            summary = self.engine.summary()
            self._metadata.actual_days = summary["day"]
            self._metadata.final_state = {
                "active_coalitions": summary["active_coalitions"],
                "decisions": len(self._decisions),
                "leaks": summary["leaks"],
            }
            self._write_jsonl({"type": "run_complete", **self._metadata.to_dict()})
        if self._jsonl_file:
            self._jsonl_file.close()
            self._jsonl_file = None

        self._try_parquet_export()

    def _try_parquet_export(self) -> None:
        """Export to Parquet format if pyarrow is installed."""
        try:
            from alliances.trajectory.parquet import ParquetExporter

            ParquetExporter.export(self.get_dataset(), str(self.output_dir))
        except ImportError:
            logger.debug("pyarrow not installed; skipping Parquet export")
        except OSError as e:
            logger.warning(f"Parquet export to {self.output_dir} failed: {e}")

    def _build_metadata(self, max_days: int) -> RunMetadata:
        """Build initial run metadata from engine state."""
        clans = [
            {
                "id": clan.id,
                "name": clan.name,
                "faction_id": clan.faction_id,
                "traits": clan.traits.as_dict(),
            }
            for clan in self.engine.world.all_clans()
        ]
        return RunMetadata(
            run_id=self.run_id,
            timestamp=datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            seed=self.engine.config.seed,
            config=self.engine.config.model_dump(),
            num_clans=len(clans),
            max_days=max_days,
            actual_days=0,
            clans=clans,
        )

    def _write_jsonl(self, data: dict) -> None:
        """Write a single line to the JSONL file."""
        if self._jsonl_file:
            self._jsonl_file.write(json.dumps(data) + "\n")
            self._jsonl_file.flush()

    def get_dataset(self) -> TrajectoryDataset:
        """Get the current dataset (useful for in-memory analysis)."""
        if not self._metadata:
            raise RuntimeError("Recorder not started; call start_run() first")
        return TrajectoryDataset(
            metadata=self._metadata,
            decisions=list(self._decisions),
            cycles=list(self._cycles),
        )
