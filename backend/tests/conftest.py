"""
Shared fixtures: a fixed standard board, snapshot builders and an in-memory game flow.
"""
from collections import deque
from dataclasses import replace
from typing import Callable, Dict, List, Optional

import pytest

from engine import (
    Action,
    Board,
    Building,
    BuildingType,
    GameAction,
    GamePhase,
    GameState,
    HexCoordinate,
    LAND_POSITIONS,
    Player,
    ResourceType,
    SEA_POSITIONS,
    TerrainType,
    build_board,
    canonical_edge_id,
    canonical_vertex_id,
)
from engine.board_generator import PORT_LAYOUT
from engine.hex_topology import neighbor, vertex_hexes
from agents.turn_driver import SubmitResult

CENTER = HexCoordinate(0, 0, 0)

LAYOUT_TERRAINS = [
    TerrainType.DESERT,
    TerrainType.FOREST, TerrainType.HILLS, TerrainType.MOUNTAINS,
    TerrainType.FIELDS, TerrainType.PASTURE, TerrainType.FOREST,
    TerrainType.HILLS, TerrainType.MOUNTAINS, TerrainType.FIELDS,
    TerrainType.PASTURE, TerrainType.FOREST, TerrainType.HILLS,
    TerrainType.MOUNTAINS, TerrainType.FIELDS, TerrainType.PASTURE,
    TerrainType.FOREST, TerrainType.FIELDS, TerrainType.PASTURE,
]
LAYOUT_NUMBERS = [6, 5, 8, 4, 10, 9, 3, 11, 12, 2, 5, 9, 6, 4, 10, 3, 8, 11]


def standard_board() -> Board:
    land = []
    numbers = iter(LAYOUT_NUMBERS)
    for coord, terrain in zip(LAND_POSITIONS, LAYOUT_TERRAINS):
        token = None if terrain == TerrainType.DESERT else next(numbers)
        land.append((coord, terrain, token))
    ports = [
        (SEA_POSITIONS[1 + 2 * i], resource, ratio)
        for i, (resource, ratio) in enumerate(PORT_LAYOUT)
    ]
    return build_board(land, ports=ports, sea=SEA_POSITIONS)


def corner_vertex(coord: HexCoordinate, corner: int) -> str:
    return canonical_vertex_id(vertex_hexes(coord, corner))


def ring_edge(coord: HexCoordinate, corner: int) -> str:
    """Edge between corner and corner + 1 of a hex."""
    return canonical_edge_id(coord, neighbor(coord, corner + 1))


def place(board: Board, vertex_id: str, owner: str, building_type: BuildingType = BuildingType.SETTLEMENT) -> Board:
    return board.with_building(vertex_id, Building(building_type, owner))


def pave(board: Board, owner: str, *edge_ids: str) -> Board:
    for edge_id in edge_ids:
        board = board.with_road(edge_id, owner)
    return board


@pytest.fixture
def board() -> Board:
    return standard_board()


@pytest.fixture
def make_state() -> Callable[..., GameState]:
    """Factory for two-player snapshots; extra keyword args go to GameState."""
    def _make(
        board: Board,
        phase: GamePhase = GamePhase.ACTIONS,
        current_player: str = "p1",
        players: Optional[List[Player]] = None,
        **kwargs,
    ) -> GameState:
        if players is None:
            players = [Player(id="p1", name="Alice", color="red"), Player(id="p2", name="Bob", color="blue")]
        return GameState(
            game_id="test_game",
            phase=phase,
            current_player=current_player,
            board=board,
            players={p.id: p for p in players},
            **kwargs,
        )
    return _make


def simple_transition(state: GameState, action: GameAction) -> GameState:
    """Roll opens the actions phase; end turn passes to the next seat."""
    if action.type == Action.ROLL_DICE:
        return replace(state, phase=GamePhase.ACTIONS)
    if action.type == Action.END_TURN:
        seats = list(state.players)
        next_player = seats[(seats.index(state.current_player) + 1) % len(seats)]
        return replace(state, phase=GamePhase.ROLL, current_player=next_player, turn=state.turn + 1)
    return state


class ScriptedGameFlow:
    """
    In-memory game flow for driver tests.

    Results queued with queue_result are returned in order; after that every
    submission succeeds. Successful submissions advance the state through
    `transition`.
    """

    def __init__(self, state: GameState, transition: Callable[[GameState, GameAction], GameState] = simple_transition):
        self.state = state
        self.transition = transition
        self.submitted: List[GameAction] = []
        self.tokens = []
        self._results = deque()

    def queue_result(self, result: SubmitResult) -> None:
        self._results.append(result)

    def get_state(self) -> GameState:
        return self.state

    def process_action(self, action, cancel_token=None) -> SubmitResult:
        self.submitted.append(action)
        self.tokens.append(cancel_token)
        result = self._results.popleft() if self._results else SubmitResult(True, message="ok")
        if result.success:
            self.state = self.transition(self.state, action)
        return result


@pytest.fixture
def game_flow_factory() -> Callable[..., ScriptedGameFlow]:
    return ScriptedGameFlow


def hand(**counts: int) -> Dict[ResourceType, int]:
    """Resource dict from keyword counts, e.g. hand(wood=1, ore=3)."""
    resources = {r: 0 for r in ResourceType}
    for name, amount in counts.items():
        resources[ResourceType(name)] = amount
    return resources
