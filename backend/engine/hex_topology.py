"""
Pure geometry over cube hex coordinates.

Vertices and edges are named by the hexes that touch them, so two boards built
in any order agree on every id. Adjacency follows from shared hexes alone: two
vertices are adjacent iff they share exactly two hexes, and an edge links the
two vertices that contain both of its hexes.
"""
from dataclasses import dataclass
from itertools import combinations
from typing import Dict, Iterable, List, Mapping, Tuple, TYPE_CHECKING

from .models import HexCoordinate

if TYPE_CHECKING:
    from .models import Hex, Vertex, Edge


# Cube direction vectors, clockwise from north-east
HEX_DIRECTIONS: Tuple[Tuple[int, int, int], ...] = (
    (1, -1, 0),
    (1, 0, -1),
    (0, 1, -1),
    (-1, 1, 0),
    (-1, 0, 1),
    (0, -1, 1),
)


def neighbor(coord: HexCoordinate, direction: int) -> HexCoordinate:
    dq, dr, ds = HEX_DIRECTIONS[direction % 6]
    return HexCoordinate(coord.q + dq, coord.r + dr, coord.s + ds)


def neighbors(coord: HexCoordinate) -> List[HexCoordinate]:
    """The 6 adjacent hex coordinates."""
    return [neighbor(coord, d) for d in range(6)]


def hex_distance(a: HexCoordinate, b: HexCoordinate) -> int:
    return max(abs(a.q - b.q), abs(a.r - b.r), abs(a.s - b.s))


def vertex_hexes(coord: HexCoordinate, corner: int) -> Tuple[HexCoordinate, HexCoordinate, HexCoordinate]:
    """The three hexes meeting at one corner of a hex (corner 0..5)."""
    return (coord, neighbor(coord, corner), neighbor(coord, corner + 1))


def canonical_vertex_id(hexes: Iterable[HexCoordinate]) -> str:
    """Sort touching hexes and join them, so discovery order never matters."""
    return "|".join(h.key for h in sorted(hexes))


def canonical_edge_id(a: HexCoordinate, b: HexCoordinate) -> str:
    if a == b:
        raise ValueError(f"An edge needs two distinct hexes, got {a.key} twice")
    return canonical_vertex_id((a, b))


@dataclass(frozen=True)
class BoardIndex:
    """Cross references between vertices, edges and hexes, computed once per board."""
    vertex_edges: Mapping[str, Tuple[str, ...]]
    edge_vertices: Mapping[str, Tuple[str, ...]]
    vertex_neighbors: Mapping[str, Tuple[str, ...]]
    hex_vertices: Mapping[str, Tuple[str, ...]]

    @classmethod
    def build(
        cls,
        hexes: Mapping[str, 'Hex'],
        vertices: Mapping[str, 'Vertex'],
        edges: Mapping[str, 'Edge'],
    ) -> 'BoardIndex':
        # Every vertex pair that shares two hexes sits on the same hex pair
        by_pair: Dict[Tuple[HexCoordinate, HexCoordinate], List[str]] = {}
        hex_vertices: Dict[str, List[str]] = {hex_id: [] for hex_id in hexes}
        for vertex_id, vertex in vertices.items():
            for pair in combinations(sorted(vertex.hexes), 2):
                by_pair.setdefault(pair, []).append(vertex_id)
            for coord in vertex.hexes:
                if coord.key in hex_vertices:
                    hex_vertices[coord.key].append(vertex_id)

        vertex_edges: Dict[str, Tuple[str, ...]] = {}
        vertex_neighbors: Dict[str, Tuple[str, ...]] = {}
        for vertex_id, vertex in vertices.items():
            touching = []
            adjacent = []
            for pair in combinations(sorted(vertex.hexes), 2):
                edge_id = canonical_edge_id(*pair)
                if edge_id in edges:
                    touching.append(edge_id)
                for other in by_pair[pair]:
                    if other != vertex_id and other not in adjacent:
                        adjacent.append(other)
            vertex_edges[vertex_id] = tuple(touching)
            vertex_neighbors[vertex_id] = tuple(adjacent)

        edge_vertices: Dict[str, Tuple[str, ...]] = {}
        for edge_id, edge in edges.items():
            pair = tuple(sorted(edge.hexes))
            edge_vertices[edge_id] = tuple(by_pair.get(pair, ()))

        return cls(
            vertex_edges=vertex_edges,
            edge_vertices=edge_vertices,
            vertex_neighbors=vertex_neighbors,
            hex_vertices={k: tuple(v) for k, v in hex_vertices.items()},
        )

    def other_end(self, edge_id: str, vertex_id: str) -> str:
        """The endpoint of an edge opposite to the given vertex."""
        a, b = self.edge_vertices[edge_id]
        return b if a == vertex_id else a
