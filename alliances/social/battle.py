"""Covert battle assistance between coalition members.

Joining an ally's battle is best effort: the battle may refuse a late
combatant, in which case the help is recorded as covert support and the
coalition's bookkeeping is updated without the combatant.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from alliances.social.coalition import HistoryCategory

if TYPE_CHECKING:
    from alliances.agents.identity import ClanSnapshot
    from alliances.protocols import BattleView, Calendar
    from alliances.social.coalition import Coalition

logger = logging.getLogger(__name__)

ASSIST_TRUST_GAIN = 0.05


@dataclass
class AssistOutcome:
    """Result of one battle assistance attempt."""

    joined: bool
    secrecy_lost: float


def battle_secrecy_cost(battle: BattleView) -> float:
    """Secrecy lost by fighting openly beside an ally.

    Larger battles have more witnesses; battles near a settlement are
    seen by its garrison and townsfolk.
    """
    cost = 0.1 + (battle.size / 1000.0) * 0.2
    if battle.near_settlement:
        cost += 0.3
    return cost


class BattleAssistance:
    """Sends a coalition member into an ally's battle."""

    def __init__(self, calendar: Calendar, side: str = "attacker"):
        self.calendar = calendar
        self.side = side

    def assist(self, coalition: Coalition, helper: ClanSnapshot, battle: BattleView) -> AssistOutcome:
        joined = True
        try:
            battle.add_combatant(helper.id, self.side)
        except Exception as e:
            joined = False
            logger.warning(
                f"{helper.name} could not join battle ({e}); using covert support instead"
            )

        if joined:
            coalition.adjust_trust(ASSIST_TRUST_GAIN)
            text = f"{helper.name} assisted in battle"
        else:
            text = f"{helper.name} provided covert battle support"
        coalition.add_history_entry(text, self.calendar.now(), HistoryCategory.ASSISTANCE)

        cost = battle_secrecy_cost(battle)
        coalition.adjust_secrecy(-cost)
        logger.info(f"{text} for {coalition.name} (secrecy -{cost:.2f})")
        return AssistOutcome(joined=joined, secrecy_lost=cost)
