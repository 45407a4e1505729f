"""Shared test fixtures for the alliance decision engine test suite."""

from __future__ import annotations

import random

import pytest

from alliances.config import DecisionConfig
from alliances.memory.decisions import DecisionLedger, DecisionMemory
from alliances.simulation.clock import SimulationClock
from alliances.simulation.world import World
from alliances.social.coalition import CoalitionManager
from alliances.social.exposure import LeakTracker
from alliances.social.lifecycle import AllianceLifecycle
from alliances.social.requests import RequestBoard
from alliances.utility.model import UtilityModel
from alliances.utility.thresholds import ThresholdPolicy
from tests.helpers import FixedRandom


@pytest.fixture
def config() -> DecisionConfig:
    """Default config with a fixed seed."""
    return DecisionConfig(seed=42)


@pytest.fixture
def clock(config: DecisionConfig) -> SimulationClock:
    """Clock at the start of year 0."""
    return SimulationClock(days_per_year=config.days_per_year)


@pytest.fixture
def world() -> World:
    """Empty world; tests add the clans they need."""
    return World(seed=42)


@pytest.fixture
def coalitions(world: World, clock: SimulationClock) -> CoalitionManager:
    """Coalition store whose proposals and admissions always succeed."""
    return CoalitionManager(world, clock, rng=FixedRandom(0.0))


@pytest.fixture
def requests(world: World, coalitions: CoalitionManager, clock: SimulationClock) -> RequestBoard:
    """Empty request board with seeded request ids."""
    return RequestBoard(world, coalitions, clock, rng=random.Random(42))


@pytest.fixture
def exposure(world: World, clock: SimulationClock) -> LeakTracker:
    """Leak tracker with a seeded generator."""
    return LeakTracker(world, clock, rng=FixedRandom(0.0))


@pytest.fixture
def memory(config: DecisionConfig) -> DecisionMemory:
    """Empty decision memory."""
    return DecisionMemory(
        recent_days=config.decision_memory_days,
        decision_cooldown_hours=config.decision_cooldown_hours,
    )


@pytest.fixture
def ledger(memory: DecisionMemory, clock: SimulationClock) -> DecisionLedger:
    """Ledger writing into the shared memory."""
    return DecisionLedger(memory, clock)


@pytest.fixture
def model(config: DecisionConfig) -> UtilityModel:
    """Real utility model."""
    return UtilityModel(config)


@pytest.fixture
def thresholds(config: DecisionConfig) -> ThresholdPolicy:
    """Default threshold policy."""
    return ThresholdPolicy(config)


@pytest.fixture
def lifecycle(world, coalitions, ledger, model, thresholds, config) -> AllianceLifecycle:
    """Alliance lifecycle over the shared fixtures."""
    return AllianceLifecycle(world, coalitions, ledger, model, thresholds, config)
