"""Decision trajectory recording and dataset management.

Captures every fired decision and daily cycle of a campaign for later
analysis.
"""

from alliances.trajectory.schema import (
    CycleSummary,
    DecisionEvent,
    RunMetadata,
    TrajectoryDataset,
)

__all__ = [
    "CycleSummary",
    "DecisionEvent",
    "RunMetadata",
    "TrajectoryDataset",
]

# Optional exports, available only when pyarrow/duckdb are installed
try:
    from alliances.trajectory.parquet import ParquetExporter  # noqa: F401

    __all__.append("ParquetExporter")
except ImportError:
    pass

try:
    from alliances.trajectory.query import DecisionQuery  # noqa: F401

    __all__.append("DecisionQuery")
except ImportError:
    pass
