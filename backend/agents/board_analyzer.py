"""
Board analysis for heuristic decisions.

Scores settlement and city positions, finds expansion paths, and assesses
opponents for threats. Results are cached per snapshot; call clear_caches()
whenever the board the analyzer was built from changes.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from engine import (
    BuildingType,
    ConnectivityEngine,
    GameState,
    ResourceType,
    SETTLEMENT_COST,
    can_afford,
    empty_resources,
)

# Ways to roll each number with 2d6
DICE_COMBINATIONS: Dict[int, int] = {2: 1, 3: 2, 4: 3, 5: 4, 6: 5, 8: 5, 9: 4, 10: 3, 11: 2, 12: 1}

# Hexes per resource considered a normal supply
NORMAL_SUPPLY = 4

# Position score weights
PRODUCTION_WEIGHT = 0.4
DIVERSIFICATION_WEIGHT = 0.25
EXPANSION_WEIGHT = 0.2
PORT_WEIGHT = 0.1
BLOCKING_WEIGHT = 0.05

# A vertex on three 6/8 hexes yields ~0.42 per roll; that maps to 100
PRODUCTION_SCALE = 250


def dice_probability(number: Optional[int]) -> float:
    """Chance of rolling `number` with two dice."""
    if number is None:
        return 0.0
    return DICE_COMBINATIONS.get(number, 0) / 36


@dataclass
class ResourceValue:
    resource_type: Optional[ResourceType]
    probability: float  # Dice probability (0-1)
    scarcity: float  # 0-1, higher = fewer producing hexes
    expected_yield: float  # Probability weighted up by scarcity


@dataclass
class PositionScore:
    production_value: float  # 0-100
    diversification: float  # 0-100
    expansion_potential: float  # 0-100
    port_access: float  # 0-100
    blocking_value: float  # 0-100
    total_score: float  # Weighted combination
    breakdown: List[str] = field(default_factory=list)


@dataclass
class PortAccessibility:
    has_port: bool
    port_type: Optional[str]  # "2:1", "3:1" or None
    resource_type: Optional[ResourceType]  # None = any resource
    trade_efficiency: float


@dataclass
class ExpansionPath:
    from_vertex: Optional[str]
    to_vertex: str
    required_roads: List[str]  # Edge ids still to build
    cost: int
    value: float


@dataclass
class BlockingMove:
    vertex_id: str
    target_player: str
    strategic_value: float
    urgency: float


@dataclass
class PlayerAssessment:
    player_id: str
    total_production: float
    resource_balance: Dict[ResourceType, float]
    longest_road_length: int
    expansion_options: int
    trading_position: float
    threat_level: float


class ThreatType(Enum):
    LONGEST_ROAD = "longest_road"
    VICTORY_POINTS = "victory_points"
    RESOURCE_MONOPOLY = "resource_monopoly"


@dataclass
class ThreatAnalysis:
    type: ThreatType
    player: str
    severity: float  # 0-100
    counter_measures: List[str] = field(default_factory=list)


@dataclass
class TradeOpportunity:
    give_resources: Dict[ResourceType, int]
    receive_resources: Dict[ResourceType, int]
    ratio: int
    port_vertex_id: Optional[str]
    efficiency: float
    urgency: float


class BoardAnalyzer:
    """Position, production and threat analysis over one snapshot."""

    def __init__(self, state: GameState, connectivity: Optional[ConnectivityEngine] = None):
        self.state = state
        self.board = state.board
        self.connectivity = connectivity or ConnectivityEngine(state)
        self._hex_value_cache: Dict[str, ResourceValue] = {}
        self._production_cache: Dict[str, Dict[ResourceType, float]] = {}
        self._base_score_cache: Dict[str, PositionScore] = {}
        self._position_score_cache: Dict[Tuple[str, str], PositionScore] = {}
        self._expansion_cache: Dict[str, List[ExpansionPath]] = {}
        self._scarcity_cache: Dict[ResourceType, float] = {}

    def clear_caches(self) -> None:
        """Drop every cached result. Required after any board mutation."""
        self._hex_value_cache.clear()
        self._production_cache.clear()
        self._base_score_cache.clear()
        self._position_score_cache.clear()
        self._expansion_cache.clear()
        self._scarcity_cache.clear()

    # ---------------------------------------------------------------------
    # Resource & production analysis
    # ---------------------------------------------------------------------

    def scarcity(self, resource: ResourceType) -> float:
        if resource not in self._scarcity_cache:
            producing = sum(
                1 for h in self.board.hexes.values()
                if h.resource == resource and h.number_token is not None
            )
            self._scarcity_cache[resource] = max(0.0, 1 - producing / NORMAL_SUPPLY)
        return self._scarcity_cache[resource]

    def analyze_hex(self, hex_id: str) -> ResourceValue:
        cached = self._hex_value_cache.get(hex_id)
        if cached:
            return cached

        hex_ = self.board.hexes.get(hex_id)
        if hex_ is None or not hex_.is_productive:
            value = ResourceValue(resource_type=None, probability=0.0, scarcity=0.0, expected_yield=0.0)
        else:
            probability = dice_probability(hex_.number_token)
            scarcity = self.scarcity(hex_.resource)
            value = ResourceValue(
                resource_type=hex_.resource,
                probability=probability,
                scarcity=scarcity,
                expected_yield=probability * (1 + scarcity),
            )
        self._hex_value_cache[hex_id] = value
        return value

    def expected_production(self, vertex_id: str) -> Dict[ResourceType, float]:
        """Dice probability credited to each resource a vertex touches."""
        cached = self._production_cache.get(vertex_id)
        if cached is not None:
            return cached

        production = {r: 0.0 for r in ResourceType}
        vertex = self.board.vertices.get(vertex_id)
        if vertex is not None:
            for coord in vertex.hexes:
                value = self.analyze_hex(coord.key)
                if value.resource_type is not None:
                    production[value.resource_type] += value.probability
        self._production_cache[vertex_id] = production
        return production

    def find_best_resource_positions(self, resource: ResourceType, limit: int = 5) -> List[Tuple[str, float]]:
        positions = []
        for vertex_id, vertex in self.board.vertices.items():
            if vertex.building is not None:
                continue
            amount = self.expected_production(vertex_id)[resource]
            if amount > 0:
                positions.append((vertex_id, amount))
        positions.sort(key=lambda p: -p[1])
        return positions[:limit]

    # ---------------------------------------------------------------------
    # Position scoring
    # ---------------------------------------------------------------------

    def evaluate_port_access(self, vertex_id: str) -> PortAccessibility:
        vertex = self.board.vertices.get(vertex_id)
        if vertex is None or vertex.port is None:
            return PortAccessibility(has_port=False, port_type=None, resource_type=None, trade_efficiency=1.0)
        if vertex.port.is_generic:
            return PortAccessibility(has_port=True, port_type="3:1", resource_type=None, trade_efficiency=1.33)
        return PortAccessibility(has_port=True, port_type="2:1", resource_type=vertex.port.resource_type, trade_efficiency=2.0)

    def _base_score(self, vertex_id: str) -> PositionScore:
        """Player-independent part of the position score (no blocking)."""
        cached = self._base_score_cache.get(vertex_id)
        if cached:
            return cached

        production = self.expected_production(vertex_id)
        total = sum(production.values())
        production_value = min(100.0, total * PRODUCTION_SCALE)

        resource_types = sum(1 for amount in production.values() if amount > 0)
        diversification = resource_types / len(ResourceType) * 100

        free_adjacent = sum(
            1 for vid in self.board.index.vertex_neighbors.get(vertex_id, ())
            if self.board.vertices[vid].building is None
        )
        expansion = min(100.0, free_adjacent / 3 * 100)

        port = self.evaluate_port_access(vertex_id)
        port_score = 0.0
        if port.has_port:
            port_score = 100.0 if port.port_type == "2:1" else 60.0

        total_score = (
            production_value * PRODUCTION_WEIGHT
            + diversification * DIVERSIFICATION_WEIGHT
            + expansion * EXPANSION_WEIGHT
            + port_score * PORT_WEIGHT
        )
        score = PositionScore(
            production_value=production_value,
            diversification=diversification,
            expansion_potential=expansion,
            port_access=port_score,
            blocking_value=0.0,
            total_score=total_score,
            breakdown=[
                f"Production: {production_value:.1f} ({total:.2f} expected/turn)",
                f"Diversification: {diversification:.1f} ({resource_types}/5 resources)",
                f"Expansion: {expansion:.1f} ({free_adjacent} adjacent spots)",
                f"Port Access: {port_score:.1f} ({port.port_type or 'none'})",
            ],
        )
        self._base_score_cache[vertex_id] = score
        return score

    def score_settlement_position(self, vertex_id: str, player_id: str) -> PositionScore:
        """
        Score a settlement position (0-100).

        Production 40%, diversification 25%, expansion 20%, port 10%, blocking 5%.
        """
        key = (vertex_id, player_id)
        cached = self._position_score_cache.get(key)
        if cached:
            return cached

        base = self._base_score(vertex_id)
        blocking = self.calculate_blocking_value(vertex_id, player_id)
        breakdown = list(base.breakdown)
        breakdown.append(f"Blocking: {blocking:.1f}")
        score = PositionScore(
            production_value=base.production_value,
            diversification=base.diversification,
            expansion_potential=base.expansion_potential,
            port_access=base.port_access,
            blocking_value=blocking,
            total_score=base.total_score + blocking * BLOCKING_WEIGHT,
            breakdown=breakdown,
        )
        self._position_score_cache[key] = score
        return score

    def score_city_upgrade(self, vertex_id: str, player_id: str) -> PositionScore:
        base = self.score_settlement_position(vertex_id, player_id)
        return PositionScore(
            production_value=min(100.0, base.production_value * 1.8),
            diversification=base.diversification,
            expansion_potential=base.expansion_potential,
            port_access=base.port_access,
            blocking_value=base.blocking_value,
            total_score=base.total_score * 1.5,
            breakdown=base.breakdown + ["City Upgrade: +80% production value, +50% total score"],
        )

    def calculate_blocking_value(self, vertex_id: str, player_id: str) -> float:
        """30 per opponent whose best expansion target is this vertex, capped at 100."""
        blocking = 0.0
        for opponent in self.state.opponents(player_id):
            expansions = self.find_expansion_opportunities(opponent.id)
            if expansions and expansions[0].to_vertex == vertex_id:
                blocking += 30
        return min(100.0, blocking)

    # ---------------------------------------------------------------------
    # Network & expansion analysis
    # ---------------------------------------------------------------------

    def find_expansion_opportunities(self, player_id: str, max_roads: int = 3) -> List[ExpansionPath]:
        """Settlement sites reachable by new roads, best value per road first."""
        cached = self._expansion_cache.get(player_id)
        if cached is not None:
            return cached

        paths = self.connectivity.road_paths(player_id, max_roads=max_roads)
        index = self.board.index
        expansions = []
        for vertex_id, roads in paths.items():
            vertex = self.board.vertices[vertex_id]
            if vertex.building is not None or not self.connectivity.check_distance_rule(vertex_id):
                continue
            from_vertex = None
            if roads:
                first = index.edge_vertices[roads[0]]
                from_vertex = next((v for v in first if v in paths and not paths[v]), first[0])
            expansions.append(ExpansionPath(
                from_vertex=from_vertex,
                to_vertex=vertex_id,
                required_roads=list(roads),
                cost=len(roads),
                value=self._base_score(vertex_id).total_score,
            ))

        expansions.sort(key=lambda e: -e.value / (e.cost + 1))
        self._expansion_cache[player_id] = expansions
        return expansions

    def analyze_blocking_opportunities(self, player_id: str) -> List[BlockingMove]:
        """Opponents' top expansion targets, most damaging first."""
        moves = []
        for opponent in self.state.opponents(player_id):
            urgency = 1.0 if can_afford(opponent.resources, SETTLEMENT_COST) else 0.5
            for expansion in self.find_expansion_opportunities(opponent.id)[:3]:
                moves.append(BlockingMove(
                    vertex_id=expansion.to_vertex,
                    target_player=opponent.id,
                    strategic_value=expansion.value,
                    urgency=urgency,
                ))
        moves.sort(key=lambda m: -m.strategic_value * m.urgency)
        return moves

    # ---------------------------------------------------------------------
    # Player assessment & threats
    # ---------------------------------------------------------------------

    def players_on_hex(self, hex_id: str) -> Set[str]:
        """Owners of buildings around a hex."""
        owners = set()
        for vertex_id in self.board.index.hex_vertices.get(hex_id, ()):
            owner = self.board.vertices[vertex_id].owner
            if owner is not None:
                owners.add(owner)
        return owners

    def assess_player(self, player_id: str) -> PlayerAssessment:
        player = self.state.get_player(player_id)
        if player is None:
            raise KeyError(f"Player {player_id} not found")

        balance = {r: 0.0 for r in ResourceType}
        port_count = 0
        for vertex_id in self.connectivity.player_buildings(player_id):
            vertex = self.board.vertices[vertex_id]
            multiplier = 2 if vertex.building.type == BuildingType.CITY else 1
            for resource, amount in self.expected_production(vertex_id).items():
                balance[resource] += amount * multiplier
            if vertex.port is not None:
                port_count += 1
        total_production = sum(balance.values())

        longest = self.connectivity.longest_road(player_id)
        threat_level = min(100.0, player.score.total / 10 * 100 + longest * 5)
        return PlayerAssessment(
            player_id=player_id,
            total_production=total_production,
            resource_balance=balance,
            longest_road_length=longest,
            expansion_options=len(self.connectivity.legal_settlement_spots(player_id)),
            trading_position=port_count * 25 + (25 if total_production * 36 > 8 else 0),
            threat_level=threat_level,
        )

    def identify_threats(self, player_id: str) -> List[ThreatAnalysis]:
        """Threats posed by each opponent, most severe first."""
        threats = []
        for opponent in self.state.opponents(player_id):
            assessment = self.assess_player(opponent.id)

            if assessment.longest_road_length >= 8:
                threats.append(ThreatAnalysis(
                    type=ThreatType.LONGEST_ROAD,
                    player=opponent.id,
                    severity=min(100.0, assessment.longest_road_length * 10),
                    counter_measures=["Block road expansion", "Build competing road network"],
                ))

            if assessment.threat_level > 70:
                threats.append(ThreatAnalysis(
                    type=ThreatType.VICTORY_POINTS,
                    player=opponent.id,
                    severity=assessment.threat_level,
                    counter_measures=["Block key settlements", "Limit resource access"],
                ))

            resource, amount = max(opponent.resources.items(), key=lambda item: item[1], default=(None, 0))
            if amount >= 5:
                threats.append(ThreatAnalysis(
                    type=ThreatType.RESOURCE_MONOPOLY,
                    player=opponent.id,
                    severity=min(100.0, amount * 15),
                    counter_measures=[f"Block {resource.value} production", "Trade away excess resources"],
                ))

        threats.sort(key=lambda t: -t.severity)
        return threats

    # ---------------------------------------------------------------------
    # Resource needs & trading
    # ---------------------------------------------------------------------

    def calculate_resource_needs(self, player_id: str) -> Dict[ResourceType, int]:
        """Resources the player's likely next builds call for."""
        needs = empty_resources()
        if self.state.get_player(player_id) is None:
            return needs

        if self.connectivity.legal_settlement_spots(player_id):
            for resource in SETTLEMENT_COST:
                needs[resource] += 1
        if self.connectivity.player_settlements(player_id):
            needs[ResourceType.ORE] += 3
            needs[ResourceType.WHEAT] += 2
        return needs

    def port_rate(self, player_id: str, resource: ResourceType) -> Tuple[int, Optional[str]]:
        """Best trade ratio for giving away a resource, with the port vertex used (None for the bank)."""
        best = (4, None)
        for vertex_id in self.connectivity.player_buildings(player_id):
            port = self.board.vertices[vertex_id].port
            if port is None:
                continue
            if port.resource_type == resource and port.ratio < best[0]:
                best = (port.ratio, vertex_id)
            elif port.is_generic and port.ratio < best[0]:
                best = (port.ratio, vertex_id)
        return best

    def find_trading_opportunities(self, player_id: str) -> List[TradeOpportunity]:
        """
        Trades of the largest surplus for the largest shortfall.

        Shortfall and surplus are measured against calculate_resource_needs.
        A port trade comes first when the player has a better rate, then the
        4:1 bank trade.
        """
        player = self.state.get_player(player_id)
        if player is None:
            return []

        needs = self.calculate_resource_needs(player_id)
        held = {r: player.resources.get(r, 0) for r in ResourceType}
        most_needed = max(ResourceType, key=lambda r: needs[r] - held[r])
        shortfall = needs[most_needed] - held[most_needed]
        if shortfall <= 0:
            return []

        surplus = {r: held[r] - needs[r] for r in ResourceType if r != most_needed}
        give = max(surplus, key=surplus.get)
        if surplus[give] <= 0:
            return []

        opportunities = []
        ratio, port_vertex = self.port_rate(player_id, give)
        rates = [(ratio, port_vertex)] if ratio < 4 else []
        rates.append((4, None))
        for rate, vertex_id in rates:
            if held[give] < rate:
                continue
            opportunities.append(TradeOpportunity(
                give_resources={give: rate},
                receive_resources={most_needed: 1},
                ratio=rate,
                port_vertex_id=vertex_id,
                efficiency={2: 90.0, 3: 75.0}.get(rate, 60.0),
                urgency=min(100.0, shortfall * 20),
            ))
        return opportunities
