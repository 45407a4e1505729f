"""Coalition data structures and the in-memory membership store.

A Coalition is a small secret alliance of clans sharing trust, secrecy,
and a history log. The CoalitionManager handles proposals, membership
changes, dissolution, and daily upkeep, and satisfies the
``CoalitionStore`` protocol.
"""

from __future__ import annotations

import enum
import logging
import random
import uuid
from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from alliances.simulation.clock import SimTime
from alliances.social.formation import CoalitionFormation
from alliances.utility.factors import clamp

if TYPE_CHECKING:
    from alliances.protocols import Calendar
    from alliances.simulation.world import World

logger = logging.getLogger(__name__)

MAX_HISTORY_ENTRIES = 50
PROPOSAL_COOLDOWN_DAYS = 7
MANAGER_HISTORY_LIMIT = 500


class HistoryCategory(enum.Enum):
    """Tag carried by every history entry."""

    GENERAL = "general"
    FORMED = "formed"
    JOINED = "joined"
    LEFT = "left"
    DISSOLVED = "dissolved"
    ASSISTANCE = "assistance"
    INVESTMENT = "investment"
    FAILED = "failed"
    LEAKED = "leaked"
    BETRAYED = "betrayed"


NEGATIVE_CATEGORIES = frozenset(
    {HistoryCategory.FAILED, HistoryCategory.LEAKED, HistoryCategory.BETRAYED}
)

# Checked in order; an entry mentioning several still counts once
_KEYWORD_CATEGORIES = (
    ("failed", HistoryCategory.FAILED),
    ("leaked", HistoryCategory.LEAKED),
    ("betrayed", HistoryCategory.BETRAYED),
)


def categorize(text: str, default: HistoryCategory = HistoryCategory.GENERAL) -> HistoryCategory:
    """Tag an entry by keyword, falling back to ``default``."""
    for keyword, category in _KEYWORD_CATEGORIES:
        if keyword in text:
            return category
    return default


@dataclass(frozen=True)
class HistoryEntry:
    """One timestamped line of a coalition's history log."""

    text: str
    category: HistoryCategory = HistoryCategory.GENERAL
    years: float = 0.0

    @property
    def is_negative(self) -> bool:
        return self.category in NEGATIVE_CATEGORIES

    def __str__(self) -> str:
        return f"[{self.years:.1f}] {self.text}"


@dataclass(eq=False)
class Coalition:
    """A secret alliance of clans.

    Attributes:
        id: Unique 8-character coalition identifier
        name: Human-readable coalition name
        leader_id: Clan leading the coalition; always a current member
        founder_id: Clan that proposed the coalition
        members: Member clan IDs in joining order
        trust: Cooperation quality (0.0-1.0)
        secrecy: Inverse of exposure (0.0-1.0)
        history: Most recent history entries, oldest first
        active: False once dissolved
    """

    id: str
    name: str
    leader_id: str
    founder_id: str
    members: list[str] = field(default_factory=list)
    trust: float = 0.5
    secrecy: float = 1.0
    history: list[HistoryEntry] = field(default_factory=list)
    active: bool = True

    @property
    def size(self) -> int:
        """Number of members in the coalition."""
        return len(self.members)

    def is_member(self, clan_id: str) -> bool:
        return clan_id in self.members

    def other_members(self, clan_id: str) -> list[str]:
        return [m for m in self.members if m != clan_id]

    def add_member(self, clan_id: str) -> None:
        """Add a clan to the coalition."""
        if clan_id not in self.members:
            self.members.append(clan_id)

    def remove_member(self, clan_id: str) -> None:
        """Remove a clan, promoting the next member if the leader left.

        A coalition left with no members is dissolved.
        """
        if clan_id not in self.members:
            return
        self.members.remove(clan_id)
        if not self.members:
            self.active = False
            return
        if clan_id == self.leader_id:
            self.leader_id = self.members[0]

    def adjust_trust(self, delta: float) -> None:
        self.trust = clamp(self.trust + delta)

    def adjust_secrecy(self, delta: float) -> None:
        self.secrecy = clamp(self.secrecy + delta)

    def add_history_entry(
        self,
        text: str,
        when: SimTime | None = None,
        category: HistoryCategory | None = None,
    ) -> HistoryEntry:
        """Append a history entry, keeping only the most recent 50."""
        entry = HistoryEntry(
            text=text,
            category=categorize(text, category or HistoryCategory.GENERAL),
            years=when.to_years if when is not None else 0.0,
        )
        self.history.append(entry)
        if len(self.history) > MAX_HISTORY_ENTRIES:
            del self.history[: len(self.history) - MAX_HISTORY_ENTRIES]
        return entry

    def negative_entry_count(self) -> int:
        return sum(1 for entry in self.history if entry.is_negative)

    def has_history(self, category: HistoryCategory) -> bool:
        return any(entry.category is category for entry in self.history)


class CoalitionManager:
    """Manages all active coalitions and membership.

    Responsibilities:
    - Accept or reject alliance proposals
    - Admit, release, and dissolve members
    - Apply the relation side effects of membership changes
    - Run daily trust decay and secrecy recovery
    - Record coalition history
    """

    def __init__(
        self,
        world: World,
        calendar: Calendar,
        rng: random.Random | None = None,
        max_size: int = 5,
        formation: CoalitionFormation | None = None,
    ):
        self.world = world
        self.calendar = calendar
        self.rng = rng or random.Random()
        self.max_size = max_size
        self.formation = formation or CoalitionFormation()
        self._coalitions: dict[str, Coalition] = {}
        self._proposal_cooldowns: dict[tuple[str, str], SimTime] = {}
        self._history: deque[dict] = deque(maxlen=MANAGER_HISTORY_LIMIT)

    # -- proposals --------------------------------------------------------

    def can_propose(self, proposer_id: str, target_id: str) -> bool:
        """Check whether ``proposer_id`` may propose to ``target_id`` now."""
        if proposer_id == target_id:
            return False
        proposer = self.world.snapshot(proposer_id)
        target = self.world.snapshot(target_id)
        if proposer is None or target is None:
            return False
        if proposer.eliminated or target.eliminated:
            return False
        if self.alliance(proposer_id, target_id) is not None:
            return False
        until = self._proposal_cooldowns.get((proposer_id, target_id))
        return until is None or self.calendar.now() >= until

    def propose_alliance(self, proposer_id: str, target_id: str) -> bool:
        """Propose a two-clan alliance; the target answers immediately.

        Returns:
            True if the target accepted and the coalition was formed
        """
        if not self.can_propose(proposer_id, target_id):
            return False

        now = self.calendar.now()
        self._proposal_cooldowns[(proposer_id, target_id)] = now + SimTime.of_days(
            PROPOSAL_COOLDOWN_DAYS, now.days_per_year
        )

        proposer = self.world.snapshot(proposer_id)
        target = self.world.snapshot(target_id)
        chance = self.formation.acceptance_chance(proposer, target)
        if self.rng.random() < chance:
            self.create_coalition(
                [proposer_id, target_id],
                leader_id=proposer_id,
                name=f"Alliance of {proposer.name} and {target.name}",
            )
            return True

        self._history.append(
            {"event": "rejected", "proposer_id": proposer_id, "target_id": target_id}
        )
        logger.debug(f"{target.name} turned down {proposer.name} (chance {chance:.2f})")
        return False

    def create_coalition(
        self, member_ids: list[str], leader_id: str | None = None, name: str | None = None
    ) -> Coalition | None:
        """Form a coalition directly from an agreed member list.

        Args:
            member_ids: Founding members, at least two
            leader_id: Leader and founder (defaults to the first member)
            name: Optional name (auto-generated if None)

        Returns:
            The new coalition, or None if fewer than two members were given
        """
        members = list(dict.fromkeys(member_ids))
        if len(members) < 2:
            return None
        if leader_id not in members:
            leader_id = members[0]

        coalition_id = uuid.UUID(int=self.rng.getrandbits(128)).hex[:8]
        coalition = Coalition(
            id=coalition_id,
            name=name or f"Coalition-{coalition_id}",
            leader_id=leader_id,
            founder_id=leader_id,
            members=members,
        )
        coalition.add_history_entry(
            f"Alliance '{coalition.name}' created with {len(members)} members",
            self.calendar.now(),
            HistoryCategory.FORMED,
        )
        self._coalitions[coalition_id] = coalition

        for i, a in enumerate(members):
            for b in members[i + 1:]:
                self.world.change_relation(a, b, 5)

        self._history.append(
            {
                "coalition_id": coalition_id,
                "event": "formed",
                "day": self.calendar.now().absolute_day,
                "members": list(members),
            }
        )
        logger.info(f"Coalition {coalition.name} formed")
        return coalition

    # -- membership -------------------------------------------------------

    def join_alliance(self, coalition: Coalition, clan_id: str) -> bool:
        """Ask the coalition's leader to admit ``clan_id``.

        Returns:
            True if admitted
        """
        if coalition is None or not coalition.active or coalition.is_member(clan_id):
            return False
        if coalition.size >= self.max_size:
            return False
        candidate = self.world.snapshot(clan_id)
        leader = self.world.snapshot(coalition.leader_id)
        if candidate is None or leader is None or candidate.eliminated:
            return False

        if self.rng.random() >= self.formation.admission_chance(leader, candidate):
            return False

        existing = list(coalition.members)
        coalition.add_member(clan_id)
        for member_id in existing:
            self.world.change_relation(member_id, clan_id, 3)
        coalition.add_history_entry(
            f"{candidate.name} joined the alliance", self.calendar.now(), HistoryCategory.JOINED
        )
        self._history.append(
            {"coalition_id": coalition.id, "event": "member_joined", "clan_id": clan_id}
        )
        return True

    def leave_alliance(self, coalition: Coalition, clan_id: str) -> bool:
        """Remove ``clan_id`` from the coalition.

        Remaining members resent the departure (-10 relation). A departing
        leader hands over to the next member; an emptied coalition is
        dissolved.

        Returns:
            True if the clan was a member and has left
        """
        if coalition is None or not coalition.is_member(clan_id):
            return False

        coalition.remove_member(clan_id)
        for member_id in coalition.members:
            self.world.change_relation(member_id, clan_id, -10)

        snapshot = self.world.snapshot(clan_id)
        name = snapshot.name if snapshot is not None else clan_id
        coalition.add_history_entry(
            f"{name} left the alliance", self.calendar.now(), HistoryCategory.LEFT
        )
        self._history.append(
            {"coalition_id": coalition.id, "event": "member_left", "clan_id": clan_id}
        )

        if not coalition.active:
            coalition.add_history_entry(
                "Alliance dissolved - no members remaining",
                self.calendar.now(),
                HistoryCategory.DISSOLVED,
            )
            self._retire(coalition, reason="no_members")
        return True

    def dissolve(self, coalition: Coalition, requesting_id: str) -> bool:
        """Dissolve a coalition at its leader's request.

        Returns:
            True if dissolved, False if the requester is not the leader
        """
        if coalition is None or not coalition.active:
            return False
        if requesting_id != coalition.leader_id:
            return False

        coalition.active = False
        snapshot = self.world.snapshot(requesting_id)
        name = snapshot.name if snapshot is not None else requesting_id
        coalition.add_history_entry(
            f"Alliance dissolved by {name}", self.calendar.now(), HistoryCategory.DISSOLVED
        )
        members = list(coalition.members)
        for i, a in enumerate(members):
            for b in members[i + 1:]:
                self.world.change_relation(a, b, -5)
        self._retire(coalition, reason="dissolved_by_leader")
        return True

    def _retire(self, coalition: Coalition, reason: str) -> None:
        coalition.active = False
        self._coalitions.pop(coalition.id, None)
        self._history.append(
            {
                "coalition_id": coalition.id,
                "event": "dissolved",
                "reason": reason,
                "final_members": list(coalition.members),
            }
        )
        logger.info(f"Coalition {coalition.name} dissolved ({reason})")

    # -- upkeep -----------------------------------------------------------

    def daily_maintenance(self) -> None:
        """Trust decays a little each day; secrecy slowly recovers.

        Coalitions whose trust has nearly vanished may collapse outright.
        Lapsed proposal cooldowns are forgotten.
        """
        now = self.calendar.now()
        self._proposal_cooldowns = {
            pair: until for pair, until in self._proposal_cooldowns.items() if until > now
        }
        for coalition in self.all_active():
            coalition.adjust_trust(-0.001)
            if self.rng.random() < 0.1:
                coalition.adjust_secrecy(0.01)
            if coalition.trust < 0.1 and self.rng.random() < 0.05:
                coalition.active = False
                coalition.add_history_entry(
                    "Alliance dissolved due to lack of trust",
                    self.calendar.now(),
                    HistoryCategory.DISSOLVED,
                )
                self._retire(coalition, reason="lack_of_trust")

    # -- queries ----------------------------------------------------------

    def alliances_for(self, clan_id: str) -> list[Coalition]:
        return [c for c in self._coalitions.values() if c.active and c.is_member(clan_id)]

    def all_active(self) -> list[Coalition]:
        return [c for c in self._coalitions.values() if c.active]

    def alliance(self, a: str, b: str) -> Coalition | None:
        for coalition in self._coalitions.values():
            if coalition.active and coalition.is_member(a) and coalition.is_member(b):
                return coalition
        return None

    def get(self, coalition_id: str) -> Coalition | None:
        return self._coalitions.get(coalition_id)

    def coalition_history(self) -> list[dict]:
        """Get the complete membership event history."""
        return list(self._history)
