"""Persistence package: save/load decision engine state.

Provides decision-memory serialization and checkpoint management.
"""

from alliances.persistence.checkpoint import CheckpointManager
from alliances.persistence.serializer import MemorySerializer

__all__ = ["MemorySerializer", "CheckpointManager"]
