"""
Heuristic agent: layered scoring over phase candidates, no search.
"""
import random
from typing import List, Optional

from engine import GameState, GameAction

from .base_agent import BaseAgent
from .coordinator import DecisionCoordinator, ScoredAction
from .profiles import Difficulty, Personality
from .tracing import DecisionTracer, NullTracer


class HeuristicAgent(BaseAgent):
    """
    Agent backed by the decision coordinator.

    Decision priority:
    1. Win if possible (settlement/city at 9 points, reveal a victory card)
    2. Strong builds (cities > settlements > roads to new sites)
    3. Everything else by combined evaluator score, drawn according to difficulty
    """

    def __init__(
        self,
        player_id: str,
        difficulty: Difficulty = Difficulty.MEDIUM,
        personality: Personality = Personality.BALANCED,
        seed: Optional[int] = None,
        tracer: Optional[DecisionTracer] = None,
    ):
        super().__init__(player_id)
        self.difficulty = difficulty
        self.personality = personality
        self.rng = random.Random(seed)
        self.tracer = tracer or NullTracer()
        self._coordinator: Optional[DecisionCoordinator] = None

    def coordinator_for(self, state: GameState) -> DecisionCoordinator:
        """Coordinator for this snapshot; rebuilt whenever the snapshot object changes."""
        if self._coordinator is None:
            self._coordinator = DecisionCoordinator(
                state,
                self.player_id,
                self.difficulty,
                self.personality,
                rng=self.rng,
                tracer=self.tracer,
            )
        elif self._coordinator.state is not state:
            self._coordinator.refresh(state)
        return self._coordinator

    def reset(self) -> None:
        """Drop the cached coordinator so the next decision rebuilds all analysis."""
        self._coordinator = None

    def choose_action(self, state: GameState) -> Optional[GameAction]:
        return self.coordinator_for(state).choose()

    def top_actions(self, state: GameState, count: int = 5) -> List[ScoredAction]:
        return self.coordinator_for(state).score_candidates()[:count]
