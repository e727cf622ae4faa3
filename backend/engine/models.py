"""
Immutable snapshot model for the settlement game.
No I/O, no globals - the decision core only ever reads these objects.
"""
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union, TYPE_CHECKING
from dataclasses import dataclass, field, replace

if TYPE_CHECKING:
    from .hex_topology import BoardIndex


VICTORY_POINTS_TO_WIN = 10


class ResourceType(Enum):
    """Resource types in the game."""
    WOOD = "wood"
    BRICK = "brick"
    WHEAT = "wheat"
    SHEEP = "sheep"
    ORE = "ore"


class TerrainType(Enum):
    """Hex terrain. Sea and desert produce nothing."""
    FOREST = "forest"
    HILLS = "hills"
    MOUNTAINS = "mountains"
    FIELDS = "fields"
    PASTURE = "pasture"
    DESERT = "desert"
    SEA = "sea"


TERRAIN_RESOURCES: Dict[TerrainType, ResourceType] = {
    TerrainType.FOREST: ResourceType.WOOD,
    TerrainType.HILLS: ResourceType.BRICK,
    TerrainType.MOUNTAINS: ResourceType.ORE,
    TerrainType.FIELDS: ResourceType.WHEAT,
    TerrainType.PASTURE: ResourceType.SHEEP,
}


class GamePhase(Enum):
    """Phase tag carried by every snapshot."""
    SETUP1 = "setup1"
    SETUP2 = "setup2"
    ROLL = "roll"
    ACTIONS = "actions"
    DISCARD = "discard"
    MOVE_ROBBER = "moveRobber"
    STEAL = "steal"
    ENDED = "ended"

    @property
    def is_setup(self) -> bool:
        return self in (GamePhase.SETUP1, GamePhase.SETUP2)


class BuildingType(Enum):
    SETTLEMENT = "settlement"
    CITY = "city"


class DevCardType(Enum):
    KNIGHT = "knight"
    ROAD_BUILDING = "road_building"
    YEAR_OF_PLENTY = "year_of_plenty"
    MONOPOLY = "monopoly"
    VICTORY_POINT = "victory_point"


def empty_resources() -> Dict[ResourceType, int]:
    return {r: 0 for r in ResourceType}


# Building costs
ROAD_COST: Dict[ResourceType, int] = {ResourceType.WOOD: 1, ResourceType.BRICK: 1}
SETTLEMENT_COST: Dict[ResourceType, int] = {
    ResourceType.WOOD: 1,
    ResourceType.BRICK: 1,
    ResourceType.WHEAT: 1,
    ResourceType.SHEEP: 1,
}
CITY_COST: Dict[ResourceType, int] = {ResourceType.WHEAT: 2, ResourceType.ORE: 3}
DEV_CARD_COST: Dict[ResourceType, int] = {
    ResourceType.ORE: 1,
    ResourceType.WHEAT: 1,
    ResourceType.SHEEP: 1,
}


def can_afford(resources: Dict[ResourceType, int], cost: Dict[ResourceType, int]) -> bool:
    """Check whether a resource hand covers a cost."""
    return all(resources.get(r, 0) >= amount for r, amount in cost.items())


def resource_deficit(resources: Dict[ResourceType, int], cost: Dict[ResourceType, int]) -> Dict[ResourceType, int]:
    """Missing amount per resource to pay a cost (empty when affordable)."""
    return {
        r: amount - resources.get(r, 0)
        for r, amount in cost.items()
        if resources.get(r, 0) < amount
    }


@dataclass(frozen=True, order=True)
class HexCoordinate:
    """Cube coordinate on the hex grid."""
    q: int
    r: int
    s: int

    def __post_init__(self):
        if self.q + self.r + self.s != 0:
            raise ValueError(f"Cube coordinate must satisfy q + r + s = 0, got ({self.q}, {self.r}, {self.s})")

    @property
    def key(self) -> str:
        return f"{self.q},{self.r},{self.s}"


@dataclass(frozen=True)
class Hex:
    """A hex tile on the board."""
    id: str
    position: HexCoordinate
    terrain: TerrainType
    number_token: Optional[int] = None  # None for desert and sea
    has_robber: bool = False

    def __post_init__(self):
        if self.number_token is not None and (self.number_token < 2 or self.number_token > 12 or self.number_token == 7):
            raise ValueError(f"Number token must be 2-6 or 8-12, got {self.number_token}")

    @property
    def resource(self) -> Optional[ResourceType]:
        return TERRAIN_RESOURCES.get(self.terrain)

    @property
    def is_productive(self) -> bool:
        return self.resource is not None and self.number_token is not None


@dataclass(frozen=True)
class Port:
    """Trade port. resource_type None is the generic 3:1 port."""
    id: str
    resource_type: Optional[ResourceType]
    ratio: int

    @property
    def is_generic(self) -> bool:
        return self.resource_type is None


@dataclass(frozen=True)
class Building:
    type: BuildingType
    owner: str


@dataclass(frozen=True)
class Vertex:
    """An intersection where settlements/cities can be built."""
    id: str
    hexes: Tuple[HexCoordinate, ...]  # Up to 3 touching hexes (may lie off the board)
    building: Optional[Building] = None
    port: Optional[Port] = None

    @property
    def owner(self) -> Optional[str]:
        return self.building.owner if self.building else None


@dataclass(frozen=True)
class Edge:
    """A road slot between two hexes."""
    id: str
    hexes: Tuple[HexCoordinate, HexCoordinate]
    owner: Optional[str] = None  # Player ID of the road owner


@dataclass(frozen=True)
class Board:
    """
    Static board graph plus occupancy.

    The index (vertex->edges, edge->vertices, vertex->neighbours, hex->vertices)
    is built once at creation and shared by every board derived from this one.
    """
    hexes: Dict[str, Hex]
    vertices: Dict[str, Vertex]
    edges: Dict[str, Edge]
    ports: List[Port] = field(default_factory=list)
    robber_position: Optional[HexCoordinate] = None
    index: Optional['BoardIndex'] = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        if self.index is None:
            from .hex_topology import BoardIndex
            object.__setattr__(self, "index", BoardIndex.build(self.hexes, self.vertices, self.edges))

    def with_building(self, vertex_id: str, building: Optional[Building]) -> 'Board':
        """Return a board with a vertex's building replaced."""
        vertex = self.vertices[vertex_id]
        vertices = dict(self.vertices)
        vertices[vertex_id] = replace(vertex, building=building)
        return replace(self, vertices=vertices)

    def with_road(self, edge_id: str, owner: Optional[str]) -> 'Board':
        """Return a board with a road placed (or removed when owner is None)."""
        edge = self.edges[edge_id]
        edges = dict(self.edges)
        edges[edge_id] = replace(edge, owner=owner)
        return replace(self, edges=edges)

    def with_robber(self, hex_id: str) -> 'Board':
        """Return a board with the robber moved onto a hex."""
        if hex_id not in self.hexes:
            raise KeyError(hex_id)
        hexes = {
            hid: replace(h, has_robber=(hid == hex_id))
            for hid, h in self.hexes.items()
        }
        return replace(self, hexes=hexes, robber_position=hexes[hex_id].position)


@dataclass
class BuildingInventory:
    """Pieces a player still has in hand."""
    settlements: int = 5
    cities: int = 4
    roads: int = 15


@dataclass
class Score:
    public: int = 0
    hidden: int = 0  # Unrevealed victory point cards
    total: int = 0


@dataclass(frozen=True)
class DevelopmentCard:
    id: str
    type: DevCardType
    purchased_turn: int
    played_turn: Optional[int] = None


@dataclass
class Player:
    """Represents a player in the game."""
    id: str
    name: str
    color: str = "blue"  # Player color for UI display
    resources: Dict[ResourceType, int] = field(default_factory=empty_resources)
    buildings: BuildingInventory = field(default_factory=BuildingInventory)
    score: Score = field(default_factory=Score)
    development_cards: List[DevelopmentCard] = field(default_factory=list)
    knights_played: int = 0
    has_longest_road: bool = False
    has_largest_army: bool = False

    @property
    def resource_total(self) -> int:
        return sum(self.resources.values())


@dataclass
class GameState:
    """Snapshot of the game. Read-only for the duration of one decision."""
    game_id: str
    phase: GamePhase
    current_player: str
    board: Board
    players: Dict[str, Player]  # Seat order is insertion order
    turn: int = 0
    winner: Optional[str] = None
    dev_card_played_this_turn: bool = False
    dev_deck_remaining: int = 25

    def get_player(self, player_id: str) -> Optional[Player]:
        return self.players.get(player_id)

    def opponents(self, player_id: str) -> List[Player]:
        return [p for pid, p in self.players.items() if pid != player_id]

    @property
    def is_over(self) -> bool:
        return self.winner is not None or self.phase == GamePhase.ENDED


class Action(Enum):
    """Actions that can be proposed to the game-flow collaborator."""
    ROLL_DICE = "roll"
    SETUP_PLACE_SETTLEMENT = "setup_place_settlement"
    SETUP_PLACE_ROAD = "setup_place_road"
    BUILD_SETTLEMENT = "build_settlement"
    BUILD_CITY = "build_city"
    BUILD_ROAD = "build_road"
    BUY_DEV_CARD = "buy_dev_card"
    PLAY_DEV_CARD = "play_dev_card"
    TRADE_BANK = "trade_bank"
    MOVE_ROBBER = "move_robber"
    STEAL_RESOURCE = "steal_resource"
    DISCARD_RESOURCES = "discard_resources"
    END_TURN = "end_turn"


BUILD_ACTIONS = frozenset({Action.BUILD_SETTLEMENT, Action.BUILD_CITY, Action.BUILD_ROAD})
SETUP_ACTIONS = frozenset({Action.SETUP_PLACE_SETTLEMENT, Action.SETUP_PLACE_ROAD})


@dataclass(frozen=True)
class BuildRoadPayload:
    """Payload for BUILD_ROAD and SETUP_PLACE_ROAD actions."""
    edge_id: str


@dataclass(frozen=True)
class BuildSettlementPayload:
    """Payload for BUILD_SETTLEMENT and SETUP_PLACE_SETTLEMENT actions."""
    vertex_id: str


@dataclass(frozen=True)
class BuildCityPayload:
    """Payload for BUILD_CITY action."""
    vertex_id: str


@dataclass(frozen=True)
class PlayDevCardPayload:
    """Payload for PLAY_DEV_CARD action."""
    card_id: str
    card_type: DevCardType
    # For year_of_plenty: resources to receive (2 resources total)
    year_of_plenty_resources: Optional[Dict[ResourceType, int]] = None
    # For monopoly: resource type to take from all players
    monopoly_resource_type: Optional[ResourceType] = None


@dataclass(frozen=True)
class TradeBankPayload:
    """Payload for TRADE_BANK action."""
    give_resources: Dict[ResourceType, int]
    receive_resources: Dict[ResourceType, int]
    port_vertex_id: Optional[str] = None  # Set when trading through a port

    @property
    def ratio(self) -> int:
        return sum(self.give_resources.values())


@dataclass(frozen=True)
class MoveRobberPayload:
    """Payload for MOVE_ROBBER action."""
    hex_id: str


@dataclass(frozen=True)
class StealResourcePayload:
    """Payload for STEAL_RESOURCE action."""
    target_player_id: str


@dataclass(frozen=True)
class DiscardResourcesPayload:
    """Payload for DISCARD_RESOURCES action."""
    resources: Dict[ResourceType, int]  # Resources to discard

    @property
    def count(self) -> int:
        return sum(self.resources.values())


ActionPayload = Union[
    BuildRoadPayload,
    BuildSettlementPayload,
    BuildCityPayload,
    PlayDevCardPayload,
    TradeBankPayload,
    MoveRobberPayload,
    StealResourcePayload,
    DiscardResourcesPayload,
]


@dataclass(frozen=True)
class GameAction:
    """An action proposed for one player."""
    type: Action
    player_id: str
    payload: Optional[ActionPayload] = None

    @property
    def is_build(self) -> bool:
        return self.type in BUILD_ACTIONS

    @property
    def vertex_id(self) -> Optional[str]:
        return getattr(self.payload, "vertex_id", None)

    @property
    def edge_id(self) -> Optional[str]:
        return getattr(self.payload, "edge_id", None)
