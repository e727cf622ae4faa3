"""
Opening placement: choose one board-wide strategy, then score setup spots under it.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Set

from engine import ConnectivityEngine, GameState, ResourceType
from telemetry.logging_config import get_logger

from .board_analyzer import BoardAnalyzer, DICE_COMBINATIONS

logger = get_logger(__name__)

GOLDEN_NUMBERS = (6, 8)


class PlacementStrategy(Enum):
    CITY_RUSH = "city_rush"
    PORT_MONOPOLY = "port_monopoly"
    BALANCED_EXPANSION = "balanced_expansion"


# Per-pip weight of each resource under a strategy
STRATEGY_WEIGHTS: Dict[PlacementStrategy, Dict[ResourceType, float]] = {
    PlacementStrategy.CITY_RUSH: {
        ResourceType.ORE: 3.0,
        ResourceType.WHEAT: 3.0,
        ResourceType.SHEEP: 1.0,
        ResourceType.WOOD: 0.8,
        ResourceType.BRICK: 0.8,
    },
    PlacementStrategy.PORT_MONOPOLY: {
        ResourceType.ORE: 1.0,
        ResourceType.WHEAT: 1.0,
        ResourceType.SHEEP: 1.0,
        ResourceType.WOOD: 1.0,
        ResourceType.BRICK: 1.0,
    },
    PlacementStrategy.BALANCED_EXPANSION: {
        ResourceType.WOOD: 1.3,
        ResourceType.BRICK: 1.3,
        ResourceType.WHEAT: 1.2,
        ResourceType.SHEEP: 1.0,
        ResourceType.ORE: 1.0,
    },
}

# Fixed bonus for each resource the first settlement does not touch
MISSING_RESOURCE_BONUS: Dict[ResourceType, float] = {
    ResourceType.WHEAT: 15.0,
    ResourceType.SHEEP: 12.0,
    ResourceType.WOOD: 10.0,
    ResourceType.ORE: 8.0,
    ResourceType.BRICK: 6.0,
}


@dataclass
class BoardProfile:
    """Board-wide facts gathered once before choosing a strategy."""
    scarcity: Dict[ResourceType, float]
    golden_tiles: Dict[ResourceType, int]
    resource_ports: Set[ResourceType] = field(default_factory=set)
    has_generic_port: bool = False

    @property
    def average_scarcity(self) -> float:
        return sum(self.scarcity.values()) / len(self.scarcity)


class PlacementStrategist:
    """
    Setup-phase placement for one player.

    The strategy is picked once from the board profile and reused for both
    settlements and their roads.
    """

    def __init__(self, state: GameState, player_id: str, analyzer: Optional[BoardAnalyzer] = None):
        self.state = state
        self.player_id = player_id
        self.connectivity = analyzer.connectivity if analyzer else ConnectivityEngine(state)
        self.analyzer = analyzer or BoardAnalyzer(state, self.connectivity)
        self.profile = self.analyze_board()
        self.port_target: Optional[ResourceType] = None
        self.strategy = self.choose_strategy()

    # ---------------------------------------------------------------------
    # Board analysis & strategy selection
    # ---------------------------------------------------------------------

    def analyze_board(self) -> BoardProfile:
        golden = {r: 0 for r in ResourceType}
        for hex_ in self.state.board.hexes.values():
            if hex_.is_productive and hex_.number_token in GOLDEN_NUMBERS:
                golden[hex_.resource] += 1

        resource_ports = set()
        has_generic = False
        for port in self.state.board.ports:
            if port.is_generic:
                has_generic = True
            else:
                resource_ports.add(port.resource_type)

        return BoardProfile(
            scarcity={r: self.analyzer.scarcity(r) for r in ResourceType},
            golden_tiles=golden,
            resource_ports=resource_ports,
            has_generic_port=has_generic,
        )

    def strategy_scores(self) -> Dict[PlacementStrategy, float]:
        """Suitability of each strategy for this board (higher is better)."""
        profile = self.profile
        scarcity = profile.scarcity
        golden = profile.golden_tiles

        city_rush = (
            golden[ResourceType.ORE] * 25
            + golden[ResourceType.WHEAT] * 25
            + (1 - scarcity[ResourceType.ORE]) * 20
            + (1 - scarcity[ResourceType.WHEAT]) * 20
        )

        port_monopoly = 0.0
        self.port_target = None
        for resource in ResourceType:
            if resource not in profile.resource_ports or golden[resource] < 1:
                continue
            suitability = scarcity[resource] * 60 + golden[resource] * 20 + 20
            if suitability > port_monopoly:
                port_monopoly = suitability
                self.port_target = resource

        balanced = (
            40
            + (1 - scarcity[ResourceType.WOOD]) * 15
            + (1 - scarcity[ResourceType.BRICK]) * 15
            + (1 - profile.average_scarcity) * 20
        )

        return {
            PlacementStrategy.BALANCED_EXPANSION: balanced,
            PlacementStrategy.CITY_RUSH: city_rush,
            PlacementStrategy.PORT_MONOPOLY: port_monopoly,
        }

    def choose_strategy(self) -> PlacementStrategy:
        scores = self.strategy_scores()
        best = PlacementStrategy.BALANCED_EXPANSION
        for strategy, score in scores.items():
            if score > scores[best]:
                best = strategy
        logger.debug(
            "placement_strategy_selected",
            player_id=self.player_id,
            strategy=best.value,
            scores={s.value: round(v, 1) for s, v in scores.items()},
        )
        return best

    # ---------------------------------------------------------------------
    # Vertex scoring
    # ---------------------------------------------------------------------

    def _vertex_resources(self, vertex_id: str) -> Set[ResourceType]:
        production = self.analyzer.expected_production(vertex_id)
        return {r for r, amount in production.items() if amount > 0}

    def score_vertex(self, vertex_id: str, strategy: Optional[PlacementStrategy] = None) -> float:
        strategy = strategy or self.strategy
        weights = STRATEGY_WEIGHTS[strategy]
        vertex = self.state.board.vertices[vertex_id]

        score = 0.0
        resources = set()
        for coord in vertex.hexes:
            hex_ = self.state.board.hexes.get(coord.key)
            if hex_ is None or not hex_.is_productive:
                continue
            resource = hex_.resource
            resources.add(resource)
            score += DICE_COMBINATIONS[hex_.number_token] * weights[resource]
            if hex_.number_token in GOLDEN_NUMBERS:
                if strategy == PlacementStrategy.CITY_RUSH and resource in (ResourceType.ORE, ResourceType.WHEAT):
                    score += 15
                elif strategy == PlacementStrategy.PORT_MONOPOLY and resource == self.port_target:
                    score += 12
                else:
                    score += 3

        if strategy == PlacementStrategy.BALANCED_EXPANSION:
            score += len(resources) * 4
        else:
            score += len(resources) * 2

        port = vertex.port
        if port is not None:
            if strategy == PlacementStrategy.PORT_MONOPOLY and port.resource_type == self.port_target:
                score += 25
            elif port.is_generic:
                score += 3
        return score

    def _best_vertex(self, scores: Dict[str, float]) -> Optional[str]:
        best_id = None
        best_score = float("-inf")
        for vertex_id, score in scores.items():
            if score > best_score:
                best_id, best_score = vertex_id, score
        return best_id

    # ---------------------------------------------------------------------
    # Settlements
    # ---------------------------------------------------------------------

    def select_first_settlement(self) -> Optional[str]:
        candidates = self.connectivity.legal_settlement_spots(self.player_id)
        return self._best_vertex({vid: self.score_vertex(vid) for vid in candidates})

    def select_second_settlement(self, first_vertex_id: str) -> Optional[str]:
        """Best spot that also fills the resource gaps of the first settlement."""
        have = self._vertex_resources(first_vertex_id)
        strategy = self.strategy
        if strategy == PlacementStrategy.CITY_RUSH and not have & {ResourceType.ORE, ResourceType.WHEAT}:
            strategy = PlacementStrategy.BALANCED_EXPANSION
            logger.debug("placement_strategy_fallback", player_id=self.player_id, strategy=strategy.value)

        scores = {}
        for vertex_id in self.connectivity.legal_settlement_spots(self.player_id):
            score = self.score_vertex(vertex_id, strategy)
            for resource in self._vertex_resources(vertex_id) - have:
                score += MISSING_RESOURCE_BONUS[resource]
            scores[vertex_id] = score
        return self._best_vertex(scores)

    def select_settlement(self) -> Optional[str]:
        settlements = self.connectivity.player_buildings(self.player_id)
        if settlements:
            return self.select_second_settlement(settlements[0])
        return self.select_first_settlement()

    # ---------------------------------------------------------------------
    # Roads
    # ---------------------------------------------------------------------

    def expansion_value(self, vertex_id: str, exclude: Optional[str] = None) -> float:
        """One-hop value: production of free settleable vertices next to vertex_id."""
        value = 0.0
        for neighbor_id in self.state.board.index.vertex_neighbors.get(vertex_id, ()):
            if neighbor_id == exclude:
                continue
            if self.state.board.vertices[neighbor_id].building is not None:
                continue
            if not self.connectivity.check_distance_rule(neighbor_id):
                continue
            production = self.analyzer.expected_production(neighbor_id)
            value += sum(production.values()) * 36
            value += (production[ResourceType.ORE] + production[ResourceType.WHEAT]) * 18
        return value

    def _first_open_edge(self, settlement_id: str) -> Optional[str]:
        for edge_id in self.state.board.index.vertex_edges.get(settlement_id, ()):
            if self.state.board.edges[edge_id].owner is None:
                return edge_id
        return None

    def select_road(self, settlement_id: Optional[str] = None) -> Optional[str]:
        """Road from the setup settlement toward the richest neighbourhood."""
        settlement_id = settlement_id or self.connectivity.setup_target_settlement(self.player_id)
        if settlement_id is None:
            return None

        try:
            index = self.state.board.index
            best_edge = None
            best_value = float("-inf")
            for edge_id in index.vertex_edges.get(settlement_id, ()):
                if self.state.board.edges[edge_id].owner is not None:
                    continue
                far_vertex = index.other_end(edge_id, settlement_id)
                value = self.expansion_value(far_vertex, exclude=settlement_id)
                if value > best_value:
                    best_edge, best_value = edge_id, value
            if best_edge is not None:
                return best_edge
        except (KeyError, ValueError) as e:
            logger.warning("setup_road_selection_failed", player_id=self.player_id, vertex_id=settlement_id, error=str(e))

        return self._first_open_edge(settlement_id)
