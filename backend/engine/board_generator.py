"""
Standard board generation.

19 land hexes in a 3-4-5-4-3 layout ringed by 18 sea hexes. Vertices and edges
are created from land hex corners and sides only, which gives the usual 54
intersections and 72 road slots.
"""
import random
from typing import Dict, List, Optional, Sequence, Tuple

from .models import (
    Board,
    Edge,
    Hex,
    HexCoordinate,
    Port,
    ResourceType,
    TerrainType,
    Vertex,
)
from .hex_topology import (
    HEX_DIRECTIONS,
    canonical_edge_id,
    canonical_vertex_id,
    hex_distance,
    neighbor,
    neighbors,
    vertex_hexes,
)

CENTER = HexCoordinate(0, 0, 0)

# Terrain distribution: 4 forest, 4 pasture, 4 fields, 3 hills, 3 mountains, 1 desert
TERRAIN_DISTRIBUTION: Dict[TerrainType, int] = {
    TerrainType.FOREST: 4,
    TerrainType.PASTURE: 4,
    TerrainType.FIELDS: 4,
    TerrainType.HILLS: 3,
    TerrainType.MOUNTAINS: 3,
    TerrainType.DESERT: 1,
}

# 18 tokens, desert has none
NUMBER_TOKENS: List[int] = [2, 3, 3, 4, 4, 5, 5, 6, 6, 8, 8, 9, 9, 10, 10, 11, 11, 12]

# Alternating generic and 2:1 ports around the coast
PORT_LAYOUT: List[Tuple[Optional[ResourceType], int]] = [
    (None, 3),
    (ResourceType.WOOD, 2),
    (None, 3),
    (ResourceType.BRICK, 2),
    (None, 3),
    (ResourceType.SHEEP, 2),
    (None, 3),
    (ResourceType.ORE, 2),
    (ResourceType.WHEAT, 2),
]

LayoutEntry = Tuple[HexCoordinate, TerrainType, Optional[int]]


def hex_ring(radius: int, center: HexCoordinate = CENTER) -> List[HexCoordinate]:
    """Coordinates at exactly `radius` steps from center, walking clockwise."""
    if radius == 0:
        return [center]
    dq, dr, ds = HEX_DIRECTIONS[4]
    coord = HexCoordinate(center.q + dq * radius, center.r + dr * radius, center.s + ds * radius)
    ring = []
    for direction in range(6):
        for _ in range(radius):
            ring.append(coord)
            coord = neighbor(coord, direction)
    return ring


LAND_POSITIONS: List[HexCoordinate] = hex_ring(0) + hex_ring(1) + hex_ring(2)
SEA_POSITIONS: List[HexCoordinate] = hex_ring(3)


def build_board(
    land: Sequence[LayoutEntry],
    ports: Optional[Sequence[Tuple[HexCoordinate, Optional[ResourceType], int]]] = None,
    sea: Optional[Sequence[HexCoordinate]] = None,
) -> Board:
    """
    Assemble a Board from an explicit layout.

    Args:
        land: (coordinate, terrain, number token) per land hex
        ports: (sea coordinate, resource or None for generic, ratio) per port
        sea: sea hex coordinates; defaults to every non-land neighbour of the land

    Returns:
        Board with canonical vertex/edge ids, ports attached to vertices and
        the robber on the desert (if any)
    """
    hexes: Dict[str, Hex] = {}
    land_coords = []
    robber_position = None
    for coord, terrain, token in land:
        is_desert = terrain == TerrainType.DESERT
        hexes[coord.key] = Hex(
            id=coord.key,
            position=coord,
            terrain=terrain,
            number_token=None if is_desert else token,
            has_robber=is_desert and robber_position is None,
        )
        if is_desert and robber_position is None:
            robber_position = coord
        land_coords.append(coord)

    if sea is None:
        land_set = set(land_coords)
        sea = []
        for coord in land_coords:
            for n in neighbors(coord):
                if n not in land_set and n not in sea:
                    sea.append(n)
    for coord in sea:
        hexes.setdefault(coord.key, Hex(id=coord.key, position=coord, terrain=TerrainType.SEA))

    vertices: Dict[str, Vertex] = {}
    edges: Dict[str, Edge] = {}
    for coord in land_coords:
        for corner in range(6):
            touching = tuple(sorted(vertex_hexes(coord, corner)))
            vertex_id = canonical_vertex_id(touching)
            if vertex_id not in vertices:
                vertices[vertex_id] = Vertex(id=vertex_id, hexes=touching)
        for n in neighbors(coord):
            edge_id = canonical_edge_id(coord, n)
            if edge_id not in edges:
                edges[edge_id] = Edge(id=edge_id, hexes=tuple(sorted((coord, n))))

    port_list: List[Port] = []
    land_set = set(land_coords)
    for i, (sea_coord, resource, ratio) in enumerate(ports or []):
        port = Port(id=f"port-{i + 1}", resource_type=resource, ratio=ratio)
        port_list.append(port)
        shore = next((n for n in neighbors(sea_coord) if n in land_set), None)
        if shore is None:
            continue
        pair = {sea_coord, shore}
        for vertex_id, vertex in list(vertices.items()):
            if pair.issubset(vertex.hexes):
                vertices[vertex_id] = Vertex(id=vertex_id, hexes=vertex.hexes, port=port)

    return Board(
        hexes=hexes,
        vertices=vertices,
        edges=edges,
        ports=port_list,
        robber_position=robber_position,
    )


def generate_board(seed: Optional[int] = None, rng: Optional[random.Random] = None) -> Board:
    """Create a randomised standard board. Pass a seed or rng for reproducible layouts."""
    rng = rng or random.Random(seed)

    terrain_pool = []
    for terrain, count in TERRAIN_DISTRIBUTION.items():
        terrain_pool.extend([terrain] * count)
    rng.shuffle(terrain_pool)

    numbers = list(NUMBER_TOKENS)
    rng.shuffle(numbers)
    numbers = _fix_adjacent_6_8(terrain_pool, numbers, rng)

    land: List[LayoutEntry] = []
    num_idx = 0
    for coord, terrain in zip(LAND_POSITIONS, terrain_pool):
        if terrain == TerrainType.DESERT:
            land.append((coord, terrain, None))
        else:
            land.append((coord, terrain, numbers[num_idx]))
            num_idx += 1

    # Ports sit on every other sea hex
    ports = [
        (SEA_POSITIONS[1 + 2 * i], resource, ratio)
        for i, (resource, ratio) in enumerate(PORT_LAYOUT)
    ]
    return build_board(land, ports=ports, sea=SEA_POSITIONS)


def _fix_adjacent_6_8(terrains: List[TerrainType], numbers: List[int], rng: random.Random) -> List[int]:
    """Reshuffle number tokens until no 6 or 8 touch each other. Returns the token order."""
    producing = [coord for coord, t in zip(LAND_POSITIONS, terrains) if t != TerrainType.DESERT]

    max_iterations = 100
    for _ in range(max_iterations):
        red = {coord for coord, n in zip(producing, numbers) if n in (6, 8)}
        has_violation = any(
            hex_distance(a, b) == 1 for a in red for b in red if a != b
        )
        if not has_violation:
            break
        rng.shuffle(numbers)
    return numbers
