"""
Evaluator chain for candidate actions.

Each evaluator declares which actions it applies to and returns a value
(0-100), a confidence (0-1) and a line of reasoning. The coordinator combines
every applicable evaluation into one score.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence

from engine import (
    Action,
    ConnectivityEngine,
    DevCardType,
    GameAction,
    GamePhase,
    GameState,
    Player,
    TerrainType,
    VICTORY_POINTS_TO_WIN,
)
from engine.models import SETUP_ACTIONS

from .board_analyzer import BoardAnalyzer, DICE_COMBINATIONS

# Relative worth of each producing terrain
TERRAIN_VALUE = {
    TerrainType.FOREST: 3,
    TerrainType.HILLS: 3,
    TerrainType.MOUNTAINS: 4,
    TerrainType.FIELDS: 4,
    TerrainType.PASTURE: 3,
}

IMMEDIATE_VICTORY = "IMMEDIATE VICTORY"


@dataclass
class Evaluation:
    value: float  # 0-100
    confidence: float  # 0-1
    reasoning: str


class EvaluationContext:
    """Shared read-only view handed to every evaluator for one decision."""

    def __init__(self, state: GameState, player_id: str, analyzer: BoardAnalyzer):
        self.state = state
        self.player_id = player_id
        self.analyzer = analyzer

    @property
    def connectivity(self) -> ConnectivityEngine:
        return self.analyzer.connectivity

    @property
    def player(self) -> Player:
        return self.state.players[self.player_id]


class ActionEvaluator(ABC):
    """One scoring perspective over candidate actions."""

    name = "evaluator"

    @abstractmethod
    def applies_to(self, action: GameAction, context: EvaluationContext) -> bool:
        pass

    @abstractmethod
    def evaluate(self, action: GameAction, context: EvaluationContext) -> Evaluation:
        pass


class SetupEvaluator(ActionEvaluator):
    name = "setup"

    def applies_to(self, action, context):
        return action.type in SETUP_ACTIONS

    def evaluate(self, action, context):
        return Evaluation(100, 1.0, "Setup placement")


class VictoryEvaluator(ActionEvaluator):
    """Escalates building and card purchases as the player nears the win."""

    name = "victory"

    VP_GAIN = {
        Action.BUILD_CITY: 2,
        Action.BUILD_SETTLEMENT: 1,
        Action.BUILD_ROAD: 0,
        Action.BUY_DEV_CARD: 0.25,  # Chance of drawing a victory point card
    }

    def applies_to(self, action, context):
        return action.type in self.VP_GAIN

    def evaluate(self, action, context):
        score = context.player.score.total
        vp = self.VP_GAIN[action.type]
        if action.type in (Action.BUILD_CITY, Action.BUILD_SETTLEMENT) and score + vp >= VICTORY_POINTS_TO_WIN:
            return Evaluation(100, 1.0, IMMEDIATE_VICTORY)

        if score >= 7:
            urgency = 2.0
        elif score >= 5:
            urgency = 1.5
        else:
            urgency = 1.0
        value = min(100.0, 50 + vp * 30 * urgency + score * 2)
        return Evaluation(value, 0.9, f"Progress toward victory: {score + vp}/{VICTORY_POINTS_TO_WIN}")


class ProductionEvaluator(ActionEvaluator):
    name = "production"

    def applies_to(self, action, context):
        return action.type in (Action.BUILD_SETTLEMENT, Action.BUILD_CITY, Action.SETUP_PLACE_SETTLEMENT)

    def evaluate(self, action, context):
        board = context.state.board
        vertex = board.vertices.get(action.vertex_id)
        total = 0.0
        if vertex is not None:
            for coord in vertex.hexes:
                hex_ = board.hexes.get(coord.key)
                if hex_ is not None and hex_.is_productive:
                    total += DICE_COMBINATIONS[hex_.number_token] * TERRAIN_VALUE[hex_.terrain]
        multiplier = 2 if action.type == Action.BUILD_CITY else 1
        return Evaluation(
            min(100.0, total * 8 * multiplier),
            0.8,
            f"Production value: {total * multiplier:.1f}",
        )


class ResourcePressureEvaluator(ActionEvaluator):
    """Spend cards before a seven can take them away."""

    name = "resource_pressure"

    def applies_to(self, action, context):
        return context.state.phase == GamePhase.ACTIONS

    def evaluate(self, action, context):
        cards = context.player.resource_total
        if action.type == Action.END_TURN:
            if cards == 0:
                return Evaluation(95, 0.9, "Nothing left to spend")
            if cards <= 1:
                return Evaluation(60, 0.7, "Minimal resources, ending turn")
            if cards >= 4:
                return Evaluation(10, 0.9, f"Holding {cards} cards, spend before ending turn")
            return Evaluation(30, 0.6, f"Holding {cards} cards")
        if cards >= 6:
            return Evaluation(95, 0.9, "URGENT: Risk of robber discard")
        return Evaluation(70, 0.7, "Spending resources")


class TradeEvaluator(ActionEvaluator):
    name = "trade"

    def applies_to(self, action, context):
        return action.type == Action.TRADE_BANK

    def evaluate(self, action, context):
        payload = action.payload
        needs = context.analyzer.calculate_resource_needs(context.player_id)
        max_need = max(needs.values()) or 1
        received = next(iter(payload.receive_resources))
        priority = needs.get(received, 0) / max_need
        given, give_amount = next(iter(payload.give_resources.items()))
        held = context.player.resources.get(given, 0)

        if payload.ratio >= 4:
            value = 75 + priority * 25 - 5
            if held >= give_amount + 2:
                value += 15
            return Evaluation(
                min(100.0, value),
                0.8,
                f"Bank trade 4:1 {given.value} for {received.value}",
            )

        value = 85 + priority * 30
        value += 25 if payload.ratio == 2 else 15
        if held >= give_amount + 2:
            value += 10
        return Evaluation(
            min(100.0, value),
            0.9,
            f"Port trade {payload.ratio}:1 {given.value} for {received.value}",
        )


class DevelopmentCardEvaluator(ActionEvaluator):
    name = "development_card"

    PLAY_VALUES = {
        DevCardType.KNIGHT: (65, 0.8, "Knight: move robber to block the leader"),
        DevCardType.ROAD_BUILDING: (60, 0.8, "Road building: two free roads"),
        DevCardType.YEAR_OF_PLENTY: (70, 0.8, "Year of plenty: closes a production gap"),
        DevCardType.MONOPOLY: (70, 0.8, "Monopoly: collect a needed resource"),
    }

    def applies_to(self, action, context):
        return action.type in (Action.BUY_DEV_CARD, Action.PLAY_DEV_CARD)

    def evaluate(self, action, context):
        if action.type == Action.BUY_DEV_CARD:
            return Evaluation(55, 0.7, "Development card for army and hidden points")

        card_type = action.payload.card_type
        if card_type == DevCardType.VICTORY_POINT:
            return Evaluation(100, 1.0, f"{IMMEDIATE_VICTORY}: reveal victory point")
        value, confidence, reasoning = self.PLAY_VALUES[card_type]
        if card_type == DevCardType.KNIGHT and context.player.knights_played >= 2:
            value += 10
            reasoning += ", contest largest army"
        return Evaluation(value, confidence, reasoning)


class RobberEvaluator(ActionEvaluator):
    """Place the robber on the hex that hurts the biggest threats most."""

    name = "robber"

    OWN_HEX_PENALTY = 25

    def applies_to(self, action, context):
        return action.type == Action.MOVE_ROBBER

    def evaluate(self, action, context):
        hex_id = action.payload.hex_id
        players = context.analyzer.players_on_hex(hex_id)
        # Top two threats among the players touching this hex
        threats = [
            threat for threat in context.analyzer.identify_threats(context.player_id)
            if threat.player in players
        ][:2]

        value = 30.0
        reasons = []
        for threat in threats:
            value += threat.severity * 0.5
            reasons.append(f"blocks {threat.player} ({threat.type.value})")
        opponents_hit = sorted(p for p in players if p != context.player_id)
        if opponents_hit and not reasons:
            reasons.append(f"blocks {', '.join(opponents_hit)}")
        if context.player_id in players:
            value -= self.OWN_HEX_PENALTY
            reasons.append("hurts own production")

        pips = DICE_COMBINATIONS.get(context.state.board.hexes[hex_id].number_token, 0)
        if opponents_hit:
            value += pips
        value = max(0.0, min(100.0, value))
        return Evaluation(value, 1.0, "Robber: " + ("; ".join(reasons) or "no players affected"))


class StealEvaluator(ActionEvaluator):
    name = "steal"

    def applies_to(self, action, context):
        return action.type == Action.STEAL_RESOURCE

    def evaluate(self, action, context):
        target = context.state.players[action.payload.target_player_id]
        cards = target.resource_total
        value = min(100.0, 40 + cards * 8 + target.score.total * 2)
        return Evaluation(value, 1.0, f"Steal from {target.id} ({cards} cards)")


DEFAULT_EVALUATORS: Sequence[ActionEvaluator] = (
    SetupEvaluator(),
    VictoryEvaluator(),
    ProductionEvaluator(),
    ResourcePressureEvaluator(),
    TradeEvaluator(),
    DevelopmentCardEvaluator(),
    RobberEvaluator(),
    StealEvaluator(),
)


@dataclass
class CombinedEvaluation:
    score: int
    value: float
    confidence: float
    reasoning: List[str]

    @property
    def is_victory(self) -> bool:
        return any(IMMEDIATE_VICTORY in line for line in self.reasoning)


def combine(evaluations: Sequence[Evaluation]) -> Optional[CombinedEvaluation]:
    """
    Confidence-weighted mean value times mean confidence.

    Returns None when no evaluator applied.
    """
    if not evaluations:
        return None
    total_confidence = sum(e.confidence for e in evaluations)
    if total_confidence <= 0:
        value = 0.0
    else:
        value = sum(e.value * e.confidence for e in evaluations) / total_confidence
    confidence = total_confidence / len(evaluations)
    return CombinedEvaluation(
        score=round(value * confidence),
        value=value,
        confidence=confidence,
        reasoning=[e.reasoning for e in evaluations],
    )


def evaluate_action(
    action: GameAction,
    context: EvaluationContext,
    evaluators: Sequence[ActionEvaluator] = DEFAULT_EVALUATORS,
) -> Optional[CombinedEvaluation]:
    return combine([
        evaluator.evaluate(action, context)
        for evaluator in evaluators
        if evaluator.applies_to(action, context)
    ])

