"""Configuration settings for the alliance decision engine.

Uses Pydantic Settings for validation and environment variable support.
All settings can be overridden via ALLIANCES_* environment variables.
"""

from pydantic import Field
from pydantic_settings import BaseSettings


class DecisionConfig(BaseSettings):
    """Tunable constants for scoring, scheduling, and opportunistic actions."""

    # Randomness
    seed: int = 42

    # Calendar
    days_per_year: int = 84
    week_length_days: int = 7

    # Scheduler
    daily_batch_size: int = 10  # max agents processed per simulated day
    max_decisions_per_day: int = 2  # hard cap, counted over same-year records
    opportunistic_probability: float = 0.10
    daily_cooldown_hours: float = 0.0  # 0 = scheduler never sets a daily cooldown

    # Decision memory
    decision_memory_days: int = 7
    decision_cooldown_hours: float = 6.0

    # Thresholds (0-100 utility scale)
    formation_threshold: float = 60.0
    join_threshold: float = 60.0
    leave_threshold: float = 60.0
    investment_threshold: float = 60.0
    accept_threshold: float = 60.0
    decline_threshold: float = 20.0
    betrayal_threshold: float = 80.0
    threshold_floor: float = 10.0
    threshold_ceiling: float = 90.0
    honor_threshold_step: float = 10.0  # per honor level, defection-style decisions only
    calculating_threshold_step: float = 5.0
    desperation_threshold_scale: float = 20.0

    # Formation utility weights
    military_weight: float = 0.3
    economic_weight: float = 0.25
    political_weight: float = 0.25
    security_weight: float = 0.2
    military_radius: float = 200.0
    trade_radius: float = 150.0

    # Coalition lifecycle
    max_coalition_size: int = 5
    max_coalitions_for_creation: int = 2
    max_coalitions_for_joining: int = 3
    creation_candidate_pool: int = 10
    creation_candidate_attempts: int = 3

    # Assistance
    wealth_need_floor: int = 5000  # below this an agent considers asking for help
    strength_need_floor: float = 300.0
    tribute_wealth_floor: int = 3000
    battle_strength_floor: float = 200.0
    battle_request_reward: int = 1000

    # Investment
    secrecy_investment_cost: int = 2000
    secrecy_investment_gain: float = 0.2
    secrecy_investment_ceiling: float = 0.7  # only invest below this secrecy
    investment_wealth_floor: int = 5000

    # Opportunistic actions
    betrayal_probability: float = 0.02
    betrayal_relation_penalty: int = -50
    betrayal_beneficiary_bonus: int = 15
    betrayal_trust_penalty: float = 0.3
    leak_probability: float = 0.05
    leak_wealth_floor: int = 2000
    leak_secrecy_floor: float = 0.3

    # Trajectory recording
    trajectory_recording: bool = False
    trajectory_output_dir: str = "data/trajectories"

    # Checkpointing
    checkpoint_interval: int = 0  # simulated days between auto checkpoints (0 = off)
    checkpoint_dir: str = "data/checkpoints"
    checkpoint_max: int = 10

    # Request types an agent may originate when its needs are unmet
    originated_request_types: list[str] = Field(default=["tribute", "battle_assistance"])

    model_config = {"env_prefix": "ALLIANCES_"}
