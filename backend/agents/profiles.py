"""
Personality and difficulty variants with their multiplier tables.
"""
import math
import random
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional, Sequence, Tuple, TypeVar

from engine import Action


class Personality(Enum):
    AGGRESSIVE = "aggressive"
    BALANCED = "balanced"
    DEFENSIVE = "defensive"
    ECONOMIC = "economic"


class Difficulty(Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


@dataclass(frozen=True)
class PersonalityRule:
    """Multiply a candidate's score when its reasoning or action type matches."""
    multiplier: float
    keywords: Tuple[str, ...] = ()
    action_types: FrozenSet[Action] = frozenset()

    def matches(self, action_type: Action, reasoning: Sequence[str]) -> bool:
        if action_type in self.action_types:
            return True
        text = " ".join(reasoning).lower()
        return any(keyword in text for keyword in self.keywords)


PERSONALITY_RULES: Dict[Personality, Tuple[PersonalityRule, ...]] = {
    Personality.AGGRESSIVE: (
        PersonalityRule(1.3, keywords=("block",)),
        PersonalityRule(1.2, action_types=frozenset({Action.BUY_DEV_CARD, Action.PLAY_DEV_CARD})),
    ),
    Personality.ECONOMIC: (
        PersonalityRule(1.4, keywords=("production", "trade")),
        PersonalityRule(1.3, action_types=frozenset({Action.BUILD_CITY})),
    ),
    Personality.DEFENSIVE: (
        PersonalityRule(1.2, keywords=("safe", "secure")),
        PersonalityRule(1.1, action_types=frozenset({Action.BUILD_SETTLEMENT})),
    ),
    Personality.BALANCED: (),
}


def personality_multiplier(personality: Personality, action_type: Action, reasoning: Sequence[str]) -> float:
    """Largest multiplier among the matching rules, 1.0 when none match."""
    factors = [
        rule.multiplier
        for rule in PERSONALITY_RULES[personality]
        if rule.matches(action_type, reasoning)
    ]
    return max(factors, default=1.0)


@dataclass(frozen=True)
class DifficultyProfile:
    """
    How the final pick is drawn from ranked candidates.

    pool_fraction: score-weighted draw from the top fraction (None = take the best)
    upset_chance: probability of taking the second-best instead of the best
    """
    pool_fraction: Optional[float]
    upset_chance: float = 0.0


DIFFICULTY_PROFILES: Dict[Difficulty, DifficultyProfile] = {
    Difficulty.EASY: DifficultyProfile(pool_fraction=0.5),
    Difficulty.MEDIUM: DifficultyProfile(pool_fraction=0.25),
    Difficulty.HARD: DifficultyProfile(pool_fraction=None, upset_chance=0.1),
}

T = TypeVar("T")


def weighted_choice(items: Sequence[T], weights: Sequence[float], rng: random.Random) -> T:
    """Pick one item with probability proportional to its weight; first item if all weights are zero."""
    total = sum(max(0.0, w) for w in weights)
    if total <= 0:
        return items[0]
    target = rng.random() * total
    running = 0.0
    for item, weight in zip(items, weights):
        running += max(0.0, weight)
        if target <= running:
            return item
    return items[0]


def pick_by_difficulty(ranked: Sequence[T], scores: Sequence[float], difficulty: Difficulty, rng: random.Random) -> T:
    """
    Choose from a best-first ranked list according to the difficulty profile.

    Args:
        ranked: Candidates ordered best first
        scores: Score of each candidate, same order
        difficulty: Difficulty level
        rng: Randomness source; consumed only when there is a real choice

    Returns:
        The chosen candidate
    """
    if not ranked:
        raise ValueError("No candidates to choose from")
    if len(ranked) == 1:
        return ranked[0]

    profile = DIFFICULTY_PROFILES[difficulty]
    if profile.pool_fraction is None:
        if rng.random() < profile.upset_chance:
            return ranked[1]
        return ranked[0]

    pool_size = max(1, math.ceil(len(ranked) * profile.pool_fraction))
    if pool_size == 1:
        return ranked[0]
    return weighted_choice(ranked[:pool_size], scores[:pool_size], rng)
