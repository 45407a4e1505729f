"""Coalition, request, and exposure stores used by the decision engine."""

from alliances.social.coalition import Coalition, CoalitionManager, HistoryCategory
from alliances.social.exposure import LeakTracker
from alliances.social.formation import CoalitionFormation
from alliances.social.requests import Request, RequestBoard, RequestStatus, RequestType

__all__ = [
    "Coalition",
    "CoalitionFormation",
    "CoalitionManager",
    "HistoryCategory",
    "LeakTracker",
    "Request",
    "RequestBoard",
    "RequestStatus",
    "RequestType",
]
