"""
Base agent interface for automated seats.
"""
from abc import ABC, abstractmethod
from typing import Optional
from engine import GameState, GameAction


class BaseAgent(ABC):
    """
    Base class for all game agents.

    Agents receive an immutable snapshot and return one action for their own
    player, or None when they have nothing legal to do.
    """

    def __init__(self, player_id: str):
        """
        Initialize the agent.

        Args:
            player_id: The ID of the player this agent controls
        """
        self.player_id = player_id

    @abstractmethod
    def choose_action(self, state: GameState) -> Optional[GameAction]:
        """
        Choose the next action for this agent's player.

        Args:
            state: Current game snapshot

        Returns:
            The chosen action, or None when no candidate exists
        """
        pass

    def is_my_turn(self, state: GameState) -> bool:
        return state.current_player == self.player_id and not state.is_over
