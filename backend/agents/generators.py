"""
Candidate generators for the main actions phase.

Generators only propose actions that are legal and affordable on the
snapshot; scoring happens afterwards in the evaluator chain.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from engine import (
    Action,
    BuildCityPayload,
    BuildRoadPayload,
    BuildSettlementPayload,
    CITY_COST,
    DEV_CARD_COST,
    DevCardType,
    GameAction,
    PlayDevCardPayload,
    Player,
    ROAD_COST,
    ResourceType,
    SETTLEMENT_COST,
    TradeBankPayload,
    VICTORY_POINTS_TO_WIN,
    can_afford,
    resource_deficit,
)

from .evaluators import EvaluationContext

MAX_SETTLEMENT_CANDIDATES = 5
MAX_ROAD_CANDIDATES = 3
MAX_EXPANSION_ROADS = 2

# How strongly each build's shortfall counts toward a trade need
NEED_WEIGHTS = ((CITY_COST, 3), (SETTLEMENT_COST, 2), (DEV_CARD_COST, 1))


@dataclass
class Candidate:
    """A proposed action with its generator priority."""
    action: GameAction
    priority: int
    reasoning: List[str] = field(default_factory=list)


def weighted_needs(player: Player) -> Dict[ResourceType, int]:
    """Shortfall toward a city (x3), a settlement (x2) and a dev card (x1)."""
    needs = {r: 0 for r in ResourceType}
    for cost, weight in NEED_WEIGHTS:
        for resource, missing in resource_deficit(player.resources, cost).items():
            needs[resource] += missing * weight
    return needs


def needed_resources(player: Player) -> List[ResourceType]:
    """Resources with a shortfall, most needed first."""
    needs = weighted_needs(player)
    ranked = [r for r in ResourceType if needs[r] > 0]
    ranked.sort(key=lambda r: -needs[r])
    return ranked


def largest_shortfall(player: Player, resource: ResourceType) -> int:
    """Most of `resource` missing toward any single build."""
    return max(resource_deficit(player.resources, cost).get(resource, 0) for cost, _ in NEED_WEIGHTS)


class ActionGenerator(ABC):
    name = "generator"

    @abstractmethod
    def generate(self, context: EvaluationContext) -> List[Candidate]:
        pass


class BuildingGenerator(ActionGenerator):
    """Cities first, then settlements, then roads toward new settlement sites."""

    name = "building"

    def generate(self, context):
        player = context.player
        candidates = []
        candidates.extend(self._cities(context, player))
        candidates.extend(self._settlements(context, player))
        candidates.extend(self._roads(context, player))
        return candidates

    def _cities(self, context: EvaluationContext, player: Player) -> List[Candidate]:
        if player.buildings.cities <= 0 or not can_afford(player.resources, CITY_COST):
            return []
        scored = [
            (vertex_id, context.analyzer.score_city_upgrade(vertex_id, player.id).total_score)
            for vertex_id in context.connectivity.legal_city_spots(player.id)
        ]
        scored.sort(key=lambda item: -item[1])
        return [
            Candidate(
                GameAction(Action.BUILD_CITY, player.id, BuildCityPayload(vertex_id)),
                priority=90,
                reasoning=[f"City upgrade score {score:.1f}"],
            )
            for vertex_id, score in scored
        ]

    def _settlements(self, context: EvaluationContext, player: Player) -> List[Candidate]:
        if player.buildings.settlements <= 0 or not can_afford(player.resources, SETTLEMENT_COST):
            return []
        spots = context.connectivity.legal_settlement_spots(player.id)
        scored = [
            (vertex_id, context.analyzer.score_settlement_position(vertex_id, player.id).total_score)
            for vertex_id in spots
        ]
        scored.sort(key=lambda item: -item[1])
        return [
            Candidate(
                GameAction(Action.BUILD_SETTLEMENT, player.id, BuildSettlementPayload(vertex_id)),
                priority=80,
                reasoning=[f"Settlement position score {score:.1f}"],
            )
            for vertex_id, score in scored[:MAX_SETTLEMENT_CANDIDATES]
        ]

    def _roads(self, context: EvaluationContext, player: Player) -> List[Candidate]:
        if player.buildings.roads <= 0 or not can_afford(player.resources, ROAD_COST):
            return []
        connectivity = context.connectivity
        legal = connectivity.legal_road_spots(player.id)
        if not legal:
            return []

        network = connectivity.get_player_network(player.id)
        index = context.state.board.index
        enabling = []
        for edge_id in legal:
            for vertex_id in index.edge_vertices[edge_id]:
                if vertex_id in network:
                    continue
                vertex = context.state.board.vertices[vertex_id]
                if vertex.building is None and connectivity.check_distance_rule(vertex_id):
                    value = context.analyzer.score_settlement_position(vertex_id, player.id).total_score
                    enabling.append((edge_id, value))
        if enabling:
            enabling.sort(key=lambda item: -item[1])
            return [
                Candidate(
                    GameAction(Action.BUILD_ROAD, player.id, BuildRoadPayload(edge_id)),
                    priority=60,
                    reasoning=[f"Road opens settlement site ({value:.1f})"],
                )
                for edge_id, value in enabling[:MAX_ROAD_CANDIDATES]
            ]

        chosen: List[str] = []
        for expansion in context.analyzer.find_expansion_opportunities(player.id):
            if not expansion.required_roads:
                continue
            first_road = expansion.required_roads[0]
            if first_road in legal and first_road not in chosen:
                chosen.append(first_road)
            if len(chosen) >= MAX_EXPANSION_ROADS:
                break
        for edge_id in legal:
            if len(chosen) >= MAX_EXPANSION_ROADS:
                break
            if edge_id not in chosen:
                chosen.append(edge_id)
        return [
            Candidate(
                GameAction(Action.BUILD_ROAD, player.id, BuildRoadPayload(edge_id)),
                priority=40,
                reasoning=["Expansion road"],
            )
            for edge_id in chosen
        ]


class TradeGenerator(ActionGenerator):
    """Port or bank trades proposed by the board analyzer."""

    name = "trade"

    def generate(self, context):
        candidates = []
        for trade in context.analyzer.find_trading_opportunities(context.player_id):
            given = next(iter(trade.give_resources))
            received = next(iter(trade.receive_resources))
            kind = "Bank" if trade.port_vertex_id is None else "Port"
            candidates.append(Candidate(
                GameAction(Action.TRADE_BANK, context.player_id, TradeBankPayload(
                    give_resources=trade.give_resources,
                    receive_resources=trade.receive_resources,
                    port_vertex_id=trade.port_vertex_id,
                )),
                priority=45 if trade.port_vertex_id is None else 55,
                reasoning=[f"{kind} trade {given.value} for {received.value}"],
            ))
        return candidates


class DevelopmentCardGenerator(ActionGenerator):
    """Buy when affordable; play at most one card per turn."""

    name = "development_card"

    def generate(self, context):
        state = context.state
        player = context.player
        candidates = []

        if state.dev_deck_remaining > 0 and can_afford(player.resources, DEV_CARD_COST):
            candidates.append(Candidate(
                GameAction(Action.BUY_DEV_CARD, player.id),
                priority=50,
                reasoning=["Buy development card"],
            ))

        if state.dev_card_played_this_turn:
            return candidates

        seen = set()
        for card in player.development_cards:
            if card.played_turn is not None or card.type in seen:
                continue
            if card.type != DevCardType.VICTORY_POINT and card.purchased_turn >= state.turn:
                continue
            payload = self._play_payload(card.id, card.type, context)
            if payload is None:
                continue
            seen.add(card.type)
            candidates.append(Candidate(
                GameAction(Action.PLAY_DEV_CARD, player.id, payload),
                priority=65,
                reasoning=[f"Play {card.type.value}"],
            ))
        return candidates

    def _play_payload(self, card_id: str, card_type: DevCardType, context: EvaluationContext) -> Optional[PlayDevCardPayload]:
        player = context.player
        if card_type == DevCardType.KNIGHT:
            return PlayDevCardPayload(card_id, card_type)

        if card_type == DevCardType.ROAD_BUILDING:
            if player.buildings.roads >= 2 and context.connectivity.legal_road_spots(player.id):
                return PlayDevCardPayload(card_id, card_type)
            return None

        if card_type == DevCardType.YEAR_OF_PLENTY:
            needed = needed_resources(player)
            if len(needed) >= 2:
                resources = {needed[0]: 1, needed[1]: 1}
            elif needed and largest_shortfall(player, needed[0]) >= 2:
                resources = {needed[0]: 2}
            else:
                return None
            return PlayDevCardPayload(card_id, card_type, year_of_plenty_resources=resources)

        if card_type == DevCardType.MONOPOLY:
            resource = self._monopoly_target(context)
            if resource is not None:
                return PlayDevCardPayload(card_id, card_type, monopoly_resource_type=resource)
            return None

        if card_type == DevCardType.VICTORY_POINT:
            # Hidden points are already in score.total; a reveal adds one public point
            if player.score.public + 1 >= VICTORY_POINTS_TO_WIN:
                return PlayDevCardPayload(card_id, card_type)
        return None

    def _monopoly_target(self, context: EvaluationContext) -> Optional[ResourceType]:
        """Needed resource the opponents hold the most of (at least 2)."""
        opponents = context.state.opponents(context.player_id)
        best, best_total = None, 1
        for resource in needed_resources(context.player):
            total = sum(p.resources.get(resource, 0) for p in opponents)
            if total > best_total:
                best, best_total = resource, total
        return best


class EndTurnGenerator(ActionGenerator):
    name = "end_turn"

    def generate(self, context):
        return [Candidate(GameAction(Action.END_TURN, context.player_id), priority=10, reasoning=["End turn"])]


DEFAULT_GENERATORS: Sequence[ActionGenerator] = (
    BuildingGenerator(),
    TradeGenerator(),
    DevelopmentCardGenerator(),
    EndTurnGenerator(),
)


def generate_candidates(
    context: EvaluationContext,
    generators: Sequence[ActionGenerator] = DEFAULT_GENERATORS,
) -> List[Candidate]:
    candidates = []
    for generator in generators:
        candidates.extend(generator.generate(context))
    return candidates
