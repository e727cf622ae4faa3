"""
Decision coordinator: phase dispatch, scoring and final selection.
"""
import random
import time
from dataclasses import dataclass, field
from typing import List, Optional

from engine import GameAction, GameState, serialize_action
from telemetry.logging_config import get_logger
from telemetry.monitoring import decision_duration_seconds, decisions_total, track_performance

from .board_analyzer import BoardAnalyzer
from .evaluators import IMMEDIATE_VICTORY, EvaluationContext, evaluate_action
from .phase_strategies import PHASE_STRATEGIES
from .profiles import Difficulty, Personality, personality_multiplier, pick_by_difficulty
from .tracing import DecisionTracer, NullTracer

logger = get_logger(__name__)

# Builds scoring at least this much outrank every other non-winning action
STRONG_BUILD_SCORE = 70


@dataclass
class ScoredAction:
    action: GameAction
    score: int
    priority: int
    reasoning: List[str] = field(default_factory=list)

    @property
    def is_victory(self) -> bool:
        return any(IMMEDIATE_VICTORY in line for line in self.reasoning)

    @property
    def selection_tier(self) -> int:
        if self.is_victory:
            return 0
        if self.action.is_build and self.score >= STRONG_BUILD_SCORE:
            return 1
        return 2


class DecisionCoordinator:
    """
    Chooses one action for one player on one snapshot.

    Build a new coordinator (or call refresh) whenever the snapshot changes;
    analyzer caches are only valid for the state they were built from.
    """

    def __init__(
        self,
        state: GameState,
        player_id: str,
        difficulty: Difficulty = Difficulty.MEDIUM,
        personality: Personality = Personality.BALANCED,
        rng: Optional[random.Random] = None,
        tracer: Optional[DecisionTracer] = None,
    ):
        self.player_id = player_id
        self.difficulty = difficulty
        self.personality = personality
        self.rng = rng or random.Random()
        self.tracer = tracer or NullTracer()
        self.refresh(state)

    def refresh(self, state: GameState) -> None:
        self.state = state
        self.analyzer = BoardAnalyzer(state)
        self.context = EvaluationContext(state, self.player_id, self.analyzer)

    def score_candidates(self) -> List[ScoredAction]:
        """All candidates for the current phase, best first. Deterministic."""
        strategy = PHASE_STRATEGIES.get(self.state.phase)
        if strategy is None or self.state.get_player(self.player_id) is None:
            return []

        scored = []
        for candidate in strategy.candidates(self.context):
            combined = evaluate_action(candidate.action, self.context)
            if combined is None:
                score = candidate.priority
                reasoning = list(candidate.reasoning)
            else:
                score = combined.score
                reasoning = list(candidate.reasoning) + combined.reasoning
            multiplier = personality_multiplier(self.personality, candidate.action.type, reasoning)
            if multiplier != 1.0:
                score = round(score * multiplier)
            scored.append(ScoredAction(candidate.action, score, candidate.priority, reasoning))

        scored.sort(key=lambda s: (s.selection_tier, -s.score))
        return scored

    def choose(self) -> Optional[GameAction]:
        phase = self.state.phase.value
        start = time.time()
        ranked = self.score_candidates()
        decision_duration_seconds.labels(phase=phase).observe(time.time() - start)

        self.tracer.emit(
            "candidates_scored",
            player_id=self.player_id,
            phase=phase,
            count=len(ranked),
            top=[(s.action.type.value, s.score) for s in ranked[:3]],
        )
        if not ranked:
            decisions_total.labels(phase=phase, outcome="no_action").inc()
            logger.info("no_candidate_actions", player_id=self.player_id, phase=phase)
            return None

        if ranked[0].is_victory:
            chosen = ranked[0]
        else:
            chosen = pick_by_difficulty(ranked, [s.score for s in ranked], self.difficulty, self.rng)

        decisions_total.labels(phase=phase, outcome="selected").inc()
        self.tracer.emit(
            "action_selected",
            player_id=self.player_id,
            phase=phase,
            action=serialize_action(chosen.action),
            score=chosen.score,
            reasoning=chosen.reasoning,
        )
        return chosen.action


@track_performance
def get_best_action(
    state: GameState,
    player_id: str,
    difficulty: Difficulty = Difficulty.MEDIUM,
    personality: Personality = Personality.BALANCED,
    rng: Optional[random.Random] = None,
    tracer: Optional[DecisionTracer] = None,
) -> Optional[GameAction]:
    """Single best action for the player, or None when nothing is legal."""
    coordinator = DecisionCoordinator(state, player_id, difficulty, personality, rng=rng, tracer=tracer)
    return coordinator.choose()


def get_top_actions(
    state: GameState,
    player_id: str,
    difficulty: Difficulty = Difficulty.MEDIUM,
    personality: Personality = Personality.BALANCED,
    count: int = 5,
) -> List[ScoredAction]:
    """Best `count` scored candidates, in selection order."""
    coordinator = DecisionCoordinator(state, player_id, difficulty, personality)
    return coordinator.score_candidates()[:count]
