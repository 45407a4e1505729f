"""Columnar export of recorded decision runs.

A run directory holds ``decisions.parquet``, ``cycles.parquet`` and a
``metadata.json`` stamped with ``schema_version``. Arrow schemas are
derived from the schema dataclasses, so a new field on ``DecisionEvent``
or ``CycleSummary`` becomes a new column without touching this module.

Needs pyarrow: ``pip install secret-alliances[data]``.
"""

from __future__ import annotations

import json
from dataclasses import fields
from pathlib import Path
from typing import TYPE_CHECKING

from alliances.trajectory.schema import CycleSummary, DecisionEvent, RunMetadata, TrajectoryDataset

if TYPE_CHECKING:
    import pyarrow as pa

TABLES = {"decisions": DecisionEvent, "cycles": CycleSummary}
METADATA_FILE = "metadata.json"


def _require_pyarrow():
    try:
        import pyarrow
        import pyarrow.parquet
    except ImportError:
        raise ImportError(
            "pyarrow is required for Parquet trajectories.\n"
            "Install with: pip install secret-alliances[data]"
        ) from None
    return pyarrow, pyarrow.parquet


def arrow_schema(record_type: type) -> pa.Schema:
    """Arrow schema for a flat schema dataclass. Optional fields stay nullable."""
    pa, _ = _require_pyarrow()
    arrow_types = {
        "int": pa.int32(),
        "float": pa.float64(),
        "str": pa.string(),
        "bool": pa.bool_(),
    }
    columns = []
    for f in fields(record_type):
        base = str(f.type).split("|")[0].strip()
        columns.append((f.name, arrow_types[base]))
    return pa.schema(columns)


class ParquetExporter:
    """Writes and reads run directories in Parquet form."""

    SCHEMA_VERSION = "1.0.0"

    @staticmethod
    def export(dataset: TrajectoryDataset, output_dir: str) -> dict[str, Path]:
        """Write one run's decisions, cycles and metadata.

        Args:
            dataset: Recorded run
            output_dir: Run directory, created when missing

        Returns:
            ``{"decisions": path, "cycles": path, "metadata": path}``

        Raises:
            ImportError: If pyarrow is not installed
        """
        pa, pq = _require_pyarrow()
        run_dir = Path(output_dir)
        run_dir.mkdir(parents=True, exist_ok=True)

        rows_by_table = {
            "decisions": [event.to_dict() for event in dataset.decisions],
            "cycles": [cycle.to_dict() for cycle in dataset.cycles],
        }
        written: dict[str, Path] = {}
        for table_name, record_type in TABLES.items():
            schema = arrow_schema(record_type)
            rows = rows_by_table[table_name]
            table = pa.Table.from_pylist(rows, schema=schema) if rows else schema.empty_table()
            target = run_dir / f"{table_name}.parquet"
            pq.write_table(table, target)
            written[table_name] = target

        stamped = {**dataset.metadata.to_dict(), "schema_version": ParquetExporter.SCHEMA_VERSION}
        meta_target = run_dir / METADATA_FILE
        meta_target.write_text(json.dumps(stamped, indent=2))
        written["metadata"] = meta_target
        return written

    @staticmethod
    def load(input_dir: str) -> TrajectoryDataset:
        """Read a run directory written by ``export``.

        Raises:
            FileNotFoundError: If any of the three files is absent
            ImportError: If pyarrow is not installed
        """
        _, pq = _require_pyarrow()
        run_dir = Path(input_dir)
        expected = [run_dir / f"{name}.parquet" for name in TABLES] + [run_dir / METADATA_FILE]
        missing = [str(p) for p in expected if not p.exists()]
        if missing:
            raise FileNotFoundError(f"Incomplete trajectory export, missing: {', '.join(missing)}")

        meta = json.loads((run_dir / METADATA_FILE).read_text())
        meta.pop("schema_version", None)

        loaded = {
            name: [
                record_type(**row)
                for row in pq.read_table(run_dir / f"{name}.parquet").to_pylist()
            ]
            for name, record_type in TABLES.items()
        }
        return TrajectoryDataset(metadata=RunMetadata(**meta), **loaded)
