"""Mutual-aid requests and the in-memory request board.

A Request is a directed ask from one clan to an ally. The RequestBoard
keeps every request, applies the relation/trust consequences of each
status change, and satisfies the ``RequestStore`` protocol.
"""

from __future__ import annotations

import enum
import logging
import random
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

from alliances.simulation.clock import SimTime
from alliances.social.coalition import HistoryCategory

if TYPE_CHECKING:
    from alliances.protocols import Calendar
    from alliances.simulation.world import World
    from alliances.social.coalition import CoalitionManager

logger = logging.getLogger(__name__)


class RequestType(enum.Enum):
    """Kinds of help one ally can ask of another."""

    BATTLE_ASSISTANCE = "battle_assistance"
    SIEGE_ASSISTANCE = "siege_assistance"
    RAID_ASSISTANCE = "raid_assistance"
    TRADE_CONVOY_ESCORT = "trade_convoy_escort"
    SABOTAGE = "sabotage"
    INTELLIGENCE = "intelligence"
    TRIBUTE = "tribute"


class RequestStatus(enum.Enum):
    """Request lifecycle. Only PENDING requests change status freely."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"
    FULFILLED = "fulfilled"
    FAILED = "failed"


# (hours until expiry, risk level)
REQUEST_PROFILES: dict[RequestType, tuple[float, float]] = {
    RequestType.BATTLE_ASSISTANCE: (6.0, 0.7),
    RequestType.SIEGE_ASSISTANCE: (3 * 24.0, 0.8),
    RequestType.RAID_ASSISTANCE: (12.0, 0.6),
    RequestType.TRADE_CONVOY_ESCORT: (7 * 24.0, 0.3),
    RequestType.SABOTAGE: (5 * 24.0, 0.9),
    RequestType.INTELLIGENCE: (10 * 24.0, 0.4),
    RequestType.TRIBUTE: (14 * 24.0, 0.2),
}

# Answered or lapsed requests are dropped this long after their deadline
SETTLED_RETENTION_DAYS = 7


@dataclass
class Request:
    """A directed mutual-aid ask.

    Attributes:
        id: Unique request identifier
        request_type: What is being asked for
        requester_id: Clan asking for help
        target_id: Clan being asked
        description: Free-text description shown to the target
        reward: Gold the requester offers on fulfilment
        risk: Risk to the helper (0.0-1.0)
        created_at: When the request was made
        expires_at: After this, a pending request expires
        status: Current lifecycle state
        decline_reason: Reason given when declined
        responded_at: When the target answered
    """

    id: str
    request_type: RequestType
    requester_id: str
    target_id: str
    description: str
    reward: int
    risk: float
    created_at: SimTime
    expires_at: SimTime
    status: RequestStatus = RequestStatus.PENDING
    decline_reason: str | None = None
    responded_at: SimTime | None = None

    @property
    def estimated_reward(self) -> int:
        """Reward scaled up by the risk taken."""
        return int(self.reward * (1.0 + self.risk))

    @property
    def is_pending(self) -> bool:
        return self.status is RequestStatus.PENDING

    def is_expired(self, now: SimTime) -> bool:
        return now > self.expires_at

    def is_active(self, now: SimTime) -> bool:
        return self.is_pending and not self.is_expired(now)


class RequestBoard:
    """In-memory request inbox/outbox with status-change side effects."""

    def __init__(
        self,
        world: World,
        coalitions: CoalitionManager,
        calendar: Calendar,
        rng: random.Random | None = None,
    ):
        self.world = world
        self.coalitions = coalitions
        self.calendar = calendar
        self.rng = rng or random.Random()
        self._requests: dict[str, Request] = {}

    # -- creation ---------------------------------------------------------

    def create(
        self,
        request_type: RequestType,
        requester: str,
        target: str,
        description: str,
        reward: int,
    ) -> Request | None:
        """Create and file a request between two allied clans.

        Returns:
            The new request, or None if the clans share no coalition
        """
        if requester == target or self.coalitions.alliance(requester, target) is None:
            return None

        now = self.calendar.now()
        expiry_hours, risk = REQUEST_PROFILES[request_type]
        request = Request(
            id=uuid.UUID(int=self.rng.getrandbits(128)).hex[:12],
            request_type=request_type,
            requester_id=requester,
            target_id=target,
            description=description,
            reward=reward,
            risk=risk,
            created_at=now,
            expires_at=now + SimTime.of_hours(expiry_hours, now.days_per_year),
        )
        self.add(request)
        return request

    def add(self, request: Request) -> None:
        """File an externally built request (e.g. raised by a battle)."""
        self._requests[request.id] = request
        logger.debug(
            f"Request {request.id} ({request.request_type.value}) "
            f"{request.requester_id} -> {request.target_id}"
        )

    # -- queries ----------------------------------------------------------

    def get(self, request_id: str) -> Request | None:
        return self._requests.get(request_id)

    def pending_for(self, clan_id: str) -> list[Request]:
        now = self.calendar.now()
        return [r for r in self._requests.values() if r.target_id == clan_id and r.is_active(now)]

    def sent_by(self, clan_id: str) -> list[Request]:
        return [r for r in self._requests.values() if r.requester_id == clan_id]

    def all_requests(self) -> list[Request]:
        return list(self._requests.values())

    # -- transitions ------------------------------------------------------

    def accept(self, request: Request) -> None:
        if not request.is_pending:
            return
        request.status = RequestStatus.ACCEPTED
        request.responded_at = self.calendar.now()
        self._apply(
            request, relation=5, trust=0.02, text="{target} accepted assistance request from {requester}"
        )

    def decline(self, request: Request, reason: str) -> None:
        if not request.is_pending:
            return
        request.status = RequestStatus.DECLINED
        request.decline_reason = reason
        request.responded_at = self.calendar.now()
        self._apply(
            request, relation=-3, trust=-0.01, text="{target} declined assistance request from {requester}"
        )

    def fulfill(self, request: Request) -> None:
        """Mark an accepted request done and pay the reward."""
        if request.status is not RequestStatus.ACCEPTED:
            return
        request.status = RequestStatus.FULFILLED
        if request.reward > 0:
            self.world.change_wealth(request.requester_id, -request.reward)
            self.world.change_wealth(request.target_id, request.reward)
        self._apply(
            request, relation=10, trust=0.05, text="{target} successfully fulfilled assistance request"
        )

    def fail(self, request: Request) -> None:
        """Mark an accepted request as not delivered."""
        if request.status is not RequestStatus.ACCEPTED:
            return
        request.status = RequestStatus.FAILED
        self._apply(
            request,
            relation=-8,
            trust=-0.03,
            text="{target} failed to fulfill assistance request",
            category=HistoryCategory.FAILED,
        )

    def expire(self) -> list[Request]:
        """Expire every pending request past its deadline.

        Requests that are no longer pending are dropped from the board
        ``SETTLED_RETENTION_DAYS`` after their deadline.

        Returns:
            The requests that just expired
        """
        now = self.calendar.now()
        expired = []
        for request in self._requests.values():
            if request.is_pending and request.is_expired(now):
                request.status = RequestStatus.EXPIRED
                self.world.change_relation(request.requester_id, request.target_id, -2)
                expired.append(request)

        retention = SimTime.of_days(SETTLED_RETENTION_DAYS, now.days_per_year)
        self._requests = {
            request_id: request
            for request_id, request in self._requests.items()
            if request.is_pending or now < request.expires_at + retention
        }
        return expired

    def _apply(
        self,
        request: Request,
        relation: int,
        trust: float,
        text: str,
        category: HistoryCategory = HistoryCategory.ASSISTANCE,
    ) -> None:
        requester = self.world.snapshot(request.requester_id)
        target = self.world.snapshot(request.target_id)
        if requester is None or target is None:
            return
        if not requester.has_leader or not target.has_leader:
            return

        self.world.change_relation(requester.id, target.id, relation)
        coalition = self.coalitions.alliance(requester.id, target.id)
        if coalition is not None:
            coalition.adjust_trust(trust)
            coalition.add_history_entry(
                text.format(target=target.name, requester=requester.name),
                self.calendar.now(),
                category,
            )
