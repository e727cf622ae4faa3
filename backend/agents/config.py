"""
Agent settings loaded from the environment (and a local .env file).
"""
import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .profiles import Difficulty, Personality


class AgentSettings(BaseModel):
    """Configuration for one automated seat."""
    personality: Personality = Personality.BALANCED
    difficulty: Difficulty = Difficulty.MEDIUM
    thinking_time_ms: int = Field(default=1000, ge=0)  # Delay before each submission
    max_actions_per_turn: int = Field(default=20, ge=1)  # Loop guard
    enable_logging: bool = True
    seed: Optional[int] = None  # Seeds difficulty randomness for reproducible play
    environment: str = "development"


def load_settings(**overrides) -> AgentSettings:
    """
    Build settings from CATAN_AI_* environment variables.

    Keyword overrides win over the environment. Invalid values raise
    pydantic.ValidationError.
    """
    load_dotenv()

    values = {}
    env_map = {
        "personality": "CATAN_AI_PERSONALITY",
        "difficulty": "CATAN_AI_DIFFICULTY",
        "thinking_time_ms": "CATAN_AI_THINKING_TIME_MS",
        "max_actions_per_turn": "CATAN_AI_MAX_ACTIONS_PER_TURN",
        "enable_logging": "CATAN_AI_ENABLE_LOGGING",
        "seed": "CATAN_AI_SEED",
    }
    for field_name, env_name in env_map.items():
        raw = os.getenv(env_name)
        if raw is not None and raw != "":
            values[field_name] = raw

    values["environment"] = os.getenv("ENVIRONMENT", "development")

    values.update(overrides)
    return AgentSettings(**values)
