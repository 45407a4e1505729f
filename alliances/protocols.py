"""Protocols for the host collaborators the decision engine consumes.

The engine owns scoring and decision memory only. Everything else (the
world graph, coalition membership, request inboxes, exposure, the
calendar and battles) is reached through these contracts, so a host can
plug in its own stores. In-memory implementations live next to the
domain code they serve.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from alliances.agents.identity import ClanSnapshot
    from alliances.simulation.clock import SimTime
    from alliances.social.coalition import Coalition
    from alliances.social.requests import Request, RequestType


@runtime_checkable
class WorldView(Protocol):
    """Read-only world/entity query surface."""

    def all_clans(self) -> list[ClanSnapshot]:
        """Enumerate every clan, eliminated ones included, in stable order."""
        ...

    def snapshot(self, clan_id: str) -> ClanSnapshot | None:
        """Current snapshot of one clan, or None if the host has no such clan."""
        ...

    def relation(self, a: str, b: str) -> int:
        """Leader-to-leader relation score between two clans."""
        ...

    def factions_at_war(self, faction_a: str | None, faction_b: str | None) -> bool:
        """True when the two factions are currently at war."""
        ...


@runtime_checkable
class WorldMutator(Protocol):
    """Mutation surface: the only way the engine changes entities."""

    def change_wealth(self, clan_id: str, delta: int) -> None:
        ...

    def change_relation(self, a: str, b: str, delta: int) -> None:
        ...


@runtime_checkable
class CoalitionStore(Protocol):
    """Alliance membership store and its mutators."""

    def propose_alliance(self, proposer: str, target: str) -> bool:
        ...

    def join_alliance(self, coalition: Coalition, clan_id: str) -> bool:
        ...

    def leave_alliance(self, coalition: Coalition, clan_id: str) -> bool:
        ...

    def alliances_for(self, clan_id: str) -> list[Coalition]:
        ...

    def all_active(self) -> list[Coalition]:
        ...

    def alliance(self, a: str, b: str) -> Coalition | None:
        """The active coalition both clans belong to, if any."""
        ...


@runtime_checkable
class RequestStore(Protocol):
    """Inbox/outbox of mutual-aid requests."""

    def pending_for(self, clan_id: str) -> list[Request]:
        ...

    def sent_by(self, clan_id: str) -> list[Request]:
        ...

    def accept(self, request: Request) -> None:
        ...

    def decline(self, request: Request, reason: str) -> None:
        ...

    def create(
        self,
        request_type: RequestType,
        requester: str,
        target: str,
        description: str,
        reward: int,
    ) -> Request | None:
        ...

    def add(self, request: Request) -> None:
        ...


@runtime_checkable
class ExposureService(Protocol):
    """Leak/exposure collaborator."""

    def force_leak(self, coalition: Coalition, source_id: str | None = None) -> object:
        ...


@runtime_checkable
class Calendar(Protocol):
    """Current simulated time."""

    def now(self) -> SimTime:
        ...


@runtime_checkable
class BattleView(Protocol):
    """A battle in progress that allies may join.

    ``add_combatant`` replaces reaching into the host's battle internals;
    hosts whose resolver cannot accept late joiners may raise from it.
    """

    @property
    def size(self) -> int:
        """Total troops engaged."""
        ...

    @property
    def near_settlement(self) -> bool:
        ...

    def add_combatant(self, clan_id: str, side: str) -> None:
        ...
