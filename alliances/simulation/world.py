"""In-memory world graph: clans, leader relations, and faction wars.

Stands in for the host game's entity layer. Implements both the
``WorldView`` and ``WorldMutator`` protocols.
"""

from __future__ import annotations

import logging
import random

from alliances.agents.identity import Clan, ClanSnapshot, DispositionTraits, SettlementKind
from alliances.errors import ValidationError

logger = logging.getLogger(__name__)

RELATION_MIN = -100
RELATION_MAX = 100

CULTURES = ("empire", "sturgia", "aserai", "vlandia", "battania", "khuzait")
CLAN_NAMES = (
    "Dey Meroc", "Varrogah", "Olgerim", "Fen Calhorn", "Banu Qild", "Arkit",
    "Pethrel", "Kharsoun", "Isyar", "Tordan", "Corvec", "Hurlam",
    "Sarmen", "Vostrik", "Lanfor", "Eleftheros", "Dunnhald", "Qurah",
)


def _pair(a: str, b: str) -> tuple[str, str]:
    return (a, b) if a <= b else (b, a)


class World:
    """The clans of one campaign and the relations between their leaders."""

    def __init__(self, seed: int = 42):
        """Initialize an empty world.

        Args:
            seed: Random seed for reproducible population generation
        """
        self.seed = seed
        self._rng = random.Random(seed)
        self._clans: dict[str, Clan] = {}
        self._relations: dict[tuple[str, str], int] = {}
        self._wars: set[tuple[str, str]] = set()

    # -- population -------------------------------------------------------

    def add_clan(self, clan: Clan) -> Clan:
        if clan.id in self._clans:
            raise ValidationError(f"Clan {clan.id} already exists")
        self._clans[clan.id] = clan
        return clan

    def get_clan(self, clan_id: str) -> Clan | None:
        return self._clans.get(clan_id)

    def eliminate(self, clan_id: str) -> None:
        clan = self._clans.get(clan_id)
        if clan is not None:
            clan.eliminated = True
            logger.info(f"Clan {clan.name} eliminated")

    def populate(self, count: int, factions: int = 3, player: bool = True) -> list[Clan]:
        """Generate ``count`` random clans spread over ``factions`` kingdoms.

        The first clan is the player's when ``player`` is set.
        """
        created = []
        faction_ids = [f"faction_{i}" for i in range(max(1, factions))]
        for i in range(count):
            base = CLAN_NAMES[i % len(CLAN_NAMES)]
            name = base if i < len(CLAN_NAMES) else f"{base} {i // len(CLAN_NAMES) + 1}"
            clan_id = f"clan_{i}"
            holdings = self._rng.choice(
                [[], [SettlementKind.TOWN], [SettlementKind.CASTLE],
                 [SettlementKind.TOWN, SettlementKind.VILLAGE],
                 [SettlementKind.CASTLE, SettlementKind.VILLAGE]]
            )
            clan = Clan(
                id=clan_id,
                name=name,
                wealth=self._rng.randint(500, 20000),
                strength=float(self._rng.randint(40, 900)),
                faction_id=self._rng.choice(faction_ids),
                culture=self._rng.choice(CULTURES),
                traits=DispositionTraits(
                    honor=self._rng.randint(-2, 2),
                    calculating=self._rng.randint(-2, 2),
                    generosity=self._rng.randint(-2, 2),
                    mercy=self._rng.randint(-2, 2),
                ),
                leader_id=f"hero_{i}",
                is_player=player and i == 0,
                position=(self._rng.uniform(0, 600), self._rng.uniform(0, 600)),
                settlements=holdings,
            )
            self.add_clan(clan)
            created.append(clan)

        for i, a in enumerate(created):
            for b in created[i + 1:]:
                base = 20 if a.faction_id == b.faction_id else 0
                self.set_relation(a.id, b.id, base + self._rng.randint(-30, 50))

        if len(faction_ids) > 1:
            self.declare_war(faction_ids[0], faction_ids[-1])
        return created

    # -- wars -------------------------------------------------------------

    def declare_war(self, faction_a: str, faction_b: str) -> None:
        self._wars.add(_pair(faction_a, faction_b))

    def factions_at_war(self, faction_a: str | None, faction_b: str | None) -> bool:
        if faction_a is None or faction_b is None or faction_a == faction_b:
            return False
        return _pair(faction_a, faction_b) in self._wars

    def hostile_factions(self, faction_id: str | None) -> frozenset[str]:
        if faction_id is None:
            return frozenset()
        return frozenset(
            b if a == faction_id else a for a, b in self._wars if faction_id in (a, b)
        )

    # -- WorldView --------------------------------------------------------

    def all_clans(self) -> list[ClanSnapshot]:
        return [self.snapshot(clan_id) for clan_id in self._clans]

    def snapshot(self, clan_id: str) -> ClanSnapshot | None:
        clan = self._clans.get(clan_id)
        if clan is None:
            return None
        relations = {
            other: self.relation(clan_id, other) for other in self._clans if other != clan_id
        }
        return clan.snapshot(
            hostile_factions=self.hostile_factions(clan.faction_id),
            relations=relations,
        )

    def relation(self, a: str, b: str) -> int:
        if a == b:
            return RELATION_MAX
        return self._relations.get(_pair(a, b), 0)

    # -- WorldMutator -----------------------------------------------------

    def set_relation(self, a: str, b: str, value: int) -> None:
        self._relations[_pair(a, b)] = max(RELATION_MIN, min(RELATION_MAX, int(value)))

    def change_relation(self, a: str, b: str, delta: int) -> None:
        if a == b:
            return
        self.set_relation(a, b, self.relation(a, b) + delta)

    def change_wealth(self, clan_id: str, delta: int) -> None:
        clan = self._clans.get(clan_id)
        if clan is None:
            return
        clan.wealth = max(0, clan.wealth + int(delta))
