"""
Board model, hex topology and placement legality for the settlement game.
"""
from .models import (
    VICTORY_POINTS_TO_WIN,
    ResourceType,
    TerrainType,
    TERRAIN_RESOURCES,
    GamePhase,
    BuildingType,
    DevCardType,
    ROAD_COST,
    SETTLEMENT_COST,
    CITY_COST,
    DEV_CARD_COST,
    can_afford,
    resource_deficit,
    empty_resources,
    HexCoordinate,
    Hex,
    Port,
    Building,
    Vertex,
    Edge,
    Board,
    BuildingInventory,
    Score,
    DevelopmentCard,
    Player,
    GameState,
    Action,
    ActionPayload,
    BuildRoadPayload,
    BuildSettlementPayload,
    BuildCityPayload,
    PlayDevCardPayload,
    TradeBankPayload,
    MoveRobberPayload,
    StealResourcePayload,
    DiscardResourcesPayload,
    GameAction,
)
from .hex_topology import (
    BoardIndex,
    neighbors,
    hex_distance,
    canonical_vertex_id,
    canonical_edge_id,
)
from .board_generator import build_board, generate_board, LAND_POSITIONS, SEA_POSITIONS
from .connectivity import ConnectivityEngine
from .serialization import (
    serialize_action,
    deserialize_action,
    serialize_action_payload,
    deserialize_action_payload,
)
