"""
Heuristic decision engine and turn driver for automated seats.
"""
from .base_agent import BaseAgent
from .heuristic_agent import HeuristicAgent
from .coordinator import DecisionCoordinator, ScoredAction, get_best_action, get_top_actions
from .profiles import Difficulty, Personality
from .config import AgentSettings, load_settings
from .turn_driver import (
    CancellationToken,
    ErrorCategory,
    SubmitResult,
    TurnDriver,
    TurnResult,
    classify_error,
    create_auto_player,
    run_auto_game,
)

__all__ = [
    'BaseAgent',
    'HeuristicAgent',
    'DecisionCoordinator',
    'ScoredAction',
    'get_best_action',
    'get_top_actions',
    'Difficulty',
    'Personality',
    'AgentSettings',
    'load_settings',
    'CancellationToken',
    'ErrorCategory',
    'SubmitResult',
    'TurnDriver',
    'TurnResult',
    'classify_error',
    'create_auto_player',
    'run_auto_game',
]
