"""Clan identity: disposition traits, holdings, and read-only snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

TRAIT_MIN = -2
TRAIT_MAX = 2


@dataclass
class DispositionTraits:
    """Leader disposition. Each trait is an integer level in [-2, 2].

    Negative honor marks a leader willing to break their word; positive
    calculating marks one who weighs every deal coldly.
    """

    honor: int = 0
    calculating: int = 0
    generosity: int = 0
    mercy: int = 0

    def __post_init__(self):
        for name in ("honor", "calculating", "generosity", "mercy"):
            setattr(self, name, _clamp_trait(getattr(self, name)))

    def as_dict(self) -> dict[str, int]:
        """Return traits as a flat dictionary."""
        return {
            "honor": self.honor,
            "calculating": self.calculating,
            "generosity": self.generosity,
            "mercy": self.mercy,
        }

    def copy(self) -> DispositionTraits:
        """Return a copy of these traits."""
        return DispositionTraits(**self.as_dict())


def _clamp_trait(value: int) -> int:
    return max(TRAIT_MIN, min(TRAIT_MAX, int(value)))


class SettlementKind(Enum):
    """Holdings that feed the economic synergy score."""

    TOWN = "town"
    CASTLE = "castle"
    VILLAGE = "village"


@dataclass
class Clan:
    """Mutable clan state owned by the world.

    The decision engine never touches this directly; it reads
    ``ClanSnapshot`` copies and requests changes through the mutation
    surface.
    """

    id: str
    name: str
    wealth: int = 5000
    strength: float = 300.0
    faction_id: str | None = None
    culture: str = "neutral"
    traits: DispositionTraits = field(default_factory=DispositionTraits)
    leader_id: str | None = None
    is_player: bool = False
    eliminated: bool = False
    position: tuple[float, float] = (0.0, 0.0)
    settlements: list[SettlementKind] = field(default_factory=list)

    def snapshot(
        self,
        hostile_factions: frozenset[str] = frozenset(),
        relations: dict[str, int] | None = None,
        coalition_count: int = 0,
    ) -> ClanSnapshot:
        """Freeze the current state into an immutable snapshot."""
        return ClanSnapshot(
            id=self.id,
            name=self.name,
            wealth=self.wealth,
            strength=self.strength,
            faction_id=self.faction_id,
            culture=self.culture,
            traits=self.traits.copy(),
            leader_id=self.leader_id,
            is_player=self.is_player,
            eliminated=self.eliminated,
            position=self.position,
            settlements=tuple(self.settlements),
            hostile_factions=hostile_factions,
            relations=dict(relations or {}),
            coalition_count=coalition_count,
        )


@dataclass(frozen=True)
class ClanSnapshot:
    """Immutable view of a clan passed to every scoring function.

    Attributes:
        id: Clan identifier
        name: Display name
        wealth: Gold held by the clan leader
        strength: Aggregate military strength of the clan's parties
        faction_id: Kingdom the clan serves, or None when independent
        culture: Culture label; matching cultures ease political ties
        traits: Leader disposition
        leader_id: Hero leading the clan; None means no leader
        is_player: The player's clan never gets automatic decisions
        eliminated: Destroyed clans are skipped everywhere
        position: Map position of the clan's main party
        settlements: Kinds of settlements the clan holds
        hostile_factions: Factions currently at war with this clan's faction
        relations: Leader-to-leader relation (-100..100) keyed by clan id
        coalition_count: Number of active coalitions the clan belongs to
    """

    id: str
    name: str
    wealth: int = 5000
    strength: float = 300.0
    faction_id: str | None = None
    culture: str = "neutral"
    traits: DispositionTraits = field(default_factory=DispositionTraits)
    leader_id: str | None = None
    is_player: bool = False
    eliminated: bool = False
    position: tuple[float, float] = (0.0, 0.0)
    settlements: tuple[SettlementKind, ...] = ()
    hostile_factions: frozenset[str] = frozenset()
    relations: dict[str, int] = field(default_factory=dict, hash=False, compare=False)
    coalition_count: int = 0

    @property
    def at_war(self) -> bool:
        return bool(self.hostile_factions)

    @property
    def has_leader(self) -> bool:
        return self.leader_id is not None

    def relation_with(self, other_id: str) -> int:
        """Leader relation toward another clan, 0 when unknown."""
        return self.relations.get(other_id, 0)

    def is_at_war_with(self, other: ClanSnapshot) -> bool:
        return other.faction_id is not None and other.faction_id in self.hostile_factions

    def shares_faction_with(self, other: ClanSnapshot) -> bool:
        return self.faction_id is not None and self.faction_id == other.faction_id

    def has_settlement(self, kind: SettlementKind) -> bool:
        return kind in self.settlements
