"""Tests for secrecy investment."""

from __future__ import annotations

import pytest

from alliances.social.coalition import HistoryCategory
from alliances.social.investment import SecrecyInvestment
from tests.helpers import ScriptedModel, make_clan


@pytest.fixture
def investment(world, coalitions, ledger, thresholds, config):
    def build(score: float | None = None) -> SecrecyInvestment:
        model = ScriptedModel(config, investment=score)
        return SecrecyInvestment(world, coalitions, ledger, model, thresholds, config)

    return build


@pytest.fixture
def exposed(world, coalitions):
    make_clan(world, "a")
    make_clan(world, "b")
    coalition = coalitions.create_coalition(["a", "b"])
    coalition.secrecy = 0.5
    return coalition


class TestSecrecyInvestment:
    """Test paying gold for secrecy."""

    def test_invests_when_worthwhile(self, world, exposed, memory, investment):
        """Gold is spent and secrecy restored."""
        fired = investment(70.0).process(world.snapshot("a"))

        assert fired == 1
        assert world.get_clan("a").wealth == 8000
        assert exposed.secrecy == pytest.approx(0.7)
        assert exposed.history[-1].category is HistoryCategory.INVESTMENT
        assert memory.decisions_for("a")[0].label == f"secrecy_investment_{exposed.id}"

    def test_low_utility_keeps_gold(self, world, exposed, investment):
        """Below threshold nothing is spent."""
        assert investment(30.0).process(world.snapshot("a")) == 0
        assert world.get_clan("a").wealth == 10000

    def test_well_hidden_coalition_needs_nothing(self, world, exposed, investment):
        """Secrecy at the ceiling is not eligible."""
        exposed.secrecy = 0.7
        assert investment(95.0).process(world.snapshot("a")) == 0

    def test_poor_clan_cannot_invest(self, world, exposed, investment):
        """Wealth must exceed the floor."""
        world.get_clan("a").wealth = 5000
        assert investment(95.0).process(world.snapshot("a")) == 0

    def test_one_investment_per_call(self, world, coalitions, exposed, investment):
        """Only the first eligible coalition is funded."""
        make_clan(world, "c")
        second = coalitions.create_coalition(["a", "c"])
        second.secrecy = 0.5

        assert investment(70.0).process(world.snapshot("a")) == 1
        assert exposed.secrecy == pytest.approx(0.7)
        assert second.secrecy == pytest.approx(0.5)
