"""
Per-phase candidate generation.

Every strategy turns the snapshot into a list of legal candidates for its
phase; the coordinator scores and picks among them.
"""
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from engine import (
    Action,
    BuildRoadPayload,
    BuildSettlementPayload,
    CITY_COST,
    DiscardResourcesPayload,
    GameAction,
    GamePhase,
    MoveRobberPayload,
    Player,
    ResourceType,
    SETTLEMENT_COST,
    StealResourcePayload,
)

from .evaluators import EvaluationContext
from .generators import Candidate, generate_candidates
from .placement import PlacementStrategist

# Hand size above which a seven forces a discard
DISCARD_THRESHOLD = 7

# Lower value = discarded earlier when needs tie
STRATEGIC_VALUE: Dict[ResourceType, int] = {
    ResourceType.WOOD: 3,
    ResourceType.BRICK: 3,
    ResourceType.ORE: 4,
    ResourceType.WHEAT: 4,
    ResourceType.SHEEP: 3,
}


class DiscardOptimizer:
    """
    Pick which cards to give up on a seven.

    Keeps enough for the next settlement and city. Surplus goes first, least
    needed resource first, then largest surplus, lower strategic value and
    larger holding. Anything still owed comes from the most abundant pile.
    """

    def __init__(self):
        self.keep = {
            r: SETTLEMENT_COST.get(r, 0) + CITY_COST.get(r, 0)
            for r in ResourceType
        }

    @staticmethod
    def discard_count(player: Player) -> int:
        total = player.resource_total
        if total <= DISCARD_THRESHOLD:
            return 0
        return total // 2

    def choose(self, resources: Dict[ResourceType, int], count: int) -> Dict[ResourceType, int]:
        hand = {r: resources.get(r, 0) for r in ResourceType}
        discard = {r: 0 for r in ResourceType}
        remaining = count

        surplus_order = sorted(
            (r for r in ResourceType if hand[r] > self.keep[r]),
            key=lambda r: (self.keep[r], -(hand[r] - self.keep[r]), STRATEGIC_VALUE[r], -hand[r]),
        )
        for resource in surplus_order:
            if remaining <= 0:
                break
            amount = min(remaining, hand[resource] - self.keep[resource])
            discard[resource] += amount
            hand[resource] -= amount
            remaining -= amount

        while remaining > 0:
            resource = max(
                (r for r in ResourceType if hand[r] > 0),
                key=lambda r: (hand[r], -STRATEGIC_VALUE[r]),
            )
            discard[resource] += 1
            hand[resource] -= 1
            remaining -= 1

        return {r: amount for r, amount in discard.items() if amount > 0}


class PhaseStrategy(ABC):
    phase: GamePhase

    @abstractmethod
    def candidates(self, context: EvaluationContext) -> List[Candidate]:
        pass


class RollStrategy(PhaseStrategy):
    phase = GamePhase.ROLL

    def candidates(self, context):
        return [Candidate(GameAction(Action.ROLL_DICE, context.player_id), priority=100, reasoning=["Roll dice"])]


class SetupStrategy(PhaseStrategy):
    """Settlement until the round's quota is placed, then its paired road."""

    def __init__(self, phase: GamePhase):
        self.phase = phase

    def candidates(self, context):
        strategist = PlacementStrategist(context.state, context.player_id, analyzer=context.analyzer)
        quota = 1 if self.phase == GamePhase.SETUP1 else 2
        placed = len(context.connectivity.player_settlements(context.player_id))

        if placed < quota:
            vertex_id = strategist.select_settlement()
            if vertex_id is None:
                return []
            return [Candidate(
                GameAction(Action.SETUP_PLACE_SETTLEMENT, context.player_id, BuildSettlementPayload(vertex_id)),
                priority=100,
                reasoning=[f"Opening settlement ({strategist.strategy.value})"],
            )]

        edge_id = strategist.select_road()
        if edge_id is None:
            return []
        return [Candidate(
            GameAction(Action.SETUP_PLACE_ROAD, context.player_id, BuildRoadPayload(edge_id)),
            priority=100,
            reasoning=[f"Opening road ({strategist.strategy.value})"],
        )]


class DiscardStrategy(PhaseStrategy):
    phase = GamePhase.DISCARD

    def __init__(self, optimizer: Optional[DiscardOptimizer] = None):
        self.optimizer = optimizer or DiscardOptimizer()

    def candidates(self, context):
        player = context.player
        count = self.optimizer.discard_count(player)
        if count == 0:
            resources = {}
            reasoning = [f"No discard needed ({player.resource_total} cards)"]
        else:
            resources = self.optimizer.choose(player.resources, count)
            reasoning = [f"Discard {count} of {player.resource_total} cards, least needed first"]
        return [Candidate(
            GameAction(Action.DISCARD_RESOURCES, player.id, DiscardResourcesPayload(resources)),
            priority=100,
            reasoning=reasoning,
        )]


def robber_hex_id(context: EvaluationContext) -> Optional[str]:
    board = context.state.board
    if board.robber_position is not None:
        return board.robber_position.key
    return next((hid for hid, h in board.hexes.items() if h.has_robber), None)


class MoveRobberStrategy(PhaseStrategy):
    """One candidate per numbered producing hex the robber is not already on."""

    phase = GamePhase.MOVE_ROBBER

    def candidates(self, context):
        current = robber_hex_id(context)
        return [
            Candidate(
                GameAction(Action.MOVE_ROBBER, context.player_id, MoveRobberPayload(hex_id)),
                priority=100,
                reasoning=[],
            )
            for hex_id, hex_ in context.state.board.hexes.items()
            if hex_id != current and hex_.is_productive
        ]


class StealStrategy(PhaseStrategy):
    phase = GamePhase.STEAL

    def candidates(self, context):
        hex_id = robber_hex_id(context)
        victims = context.analyzer.players_on_hex(hex_id) if hex_id else set()
        candidates = []
        for opponent in context.state.opponents(context.player_id):
            if opponent.id in victims and opponent.resource_total > 0:
                candidates.append(Candidate(
                    GameAction(Action.STEAL_RESOURCE, context.player_id, StealResourcePayload(opponent.id)),
                    priority=100,
                ))
        if not candidates:
            candidates.append(Candidate(
                GameAction(Action.END_TURN, context.player_id),
                priority=10,
                reasoning=["No one to steal from"],
            ))
        return candidates


class ActionsStrategy(PhaseStrategy):
    phase = GamePhase.ACTIONS

    def candidates(self, context):
        return generate_candidates(context)


PHASE_STRATEGIES: Dict[GamePhase, PhaseStrategy] = {
    GamePhase.SETUP1: SetupStrategy(GamePhase.SETUP1),
    GamePhase.SETUP2: SetupStrategy(GamePhase.SETUP2),
    GamePhase.ROLL: RollStrategy(),
    GamePhase.ACTIONS: ActionsStrategy(),
    GamePhase.DISCARD: DiscardStrategy(),
    GamePhase.MOVE_ROBBER: MoveRobberStrategy(),
    GamePhase.STEAL: StealStrategy(),
}
