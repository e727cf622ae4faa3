"""
Tests for hex geometry, canonical ids and the standard board index.
"""
import pytest

from engine import (
    HexCoordinate,
    LAND_POSITIONS,
    SEA_POSITIONS,
    canonical_edge_id,
    canonical_vertex_id,
    generate_board,
    hex_distance,
    neighbors,
)
from engine.hex_topology import vertex_hexes

from conftest import CENTER, corner_vertex


def test_cube_coordinate_must_sum_to_zero():
    """Test that an off-plane cube coordinate is rejected."""
    with pytest.raises(ValueError):
        HexCoordinate(1, 1, 0)


def test_neighbors_are_at_distance_one():
    """Test that all six neighbours are distinct and one step away."""
    around = neighbors(CENTER)
    assert len(set(around)) == 6
    assert all(hex_distance(CENTER, n) == 1 for n in around)


def test_canonical_ids_ignore_discovery_order():
    """Test that the same hexes always produce the same vertex and edge id."""
    a, b, c = vertex_hexes(CENTER, 2)
    assert canonical_vertex_id((a, b, c)) == canonical_vertex_id((c, a, b))
    assert canonical_edge_id(a, b) == canonical_edge_id(b, a)
    assert canonical_vertex_id((a, b, c)) == "-1,1,0|0,0,0|0,1,-1"


def test_edge_needs_two_distinct_hexes():
    """Test that an edge between a hex and itself is rejected."""
    with pytest.raises(ValueError):
        canonical_edge_id(CENTER, CENTER)


def test_standard_board_counts(board):
    """Test the 19 land + 18 sea layout with 54 vertices, 72 edges and 9 ports."""
    assert len(LAND_POSITIONS) == 19
    assert len(SEA_POSITIONS) == 18
    assert len(board.hexes) == 37
    assert len(board.vertices) == 54
    assert len(board.edges) == 72
    assert len(board.ports) == 9
    assert sum(1 for v in board.vertices.values() if v.port is not None) == 18


def test_vertex_adjacency_matches_shared_hexes(board):
    """Test that neighbours are exactly the vertices sharing two hexes."""
    for vertex_id, vertex in board.vertices.items():
        expected = {
            other_id for other_id, other in board.vertices.items()
            if other_id != vertex_id and len(set(vertex.hexes) & set(other.hexes)) == 2
        }
        assert set(board.index.vertex_neighbors[vertex_id]) == expected
        assert 2 <= len(expected) <= 3


def test_every_edge_connects_two_vertices(board):
    """Test that each edge's vertex pair contains both of the edge's hexes."""
    for edge_id, edge in board.edges.items():
        ends = board.index.edge_vertices[edge_id]
        assert len(ends) == 2
        for vertex_id in ends:
            assert set(edge.hexes).issubset(board.vertices[vertex_id].hexes)


def test_hex_vertices_index(board):
    """Test that every land hex has six corners indexed."""
    assert len(board.index.hex_vertices[CENTER.key]) == 6
    assert corner_vertex(CENTER, 0) in board.index.hex_vertices[CENTER.key]


def test_robber_starts_on_desert(board):
    """Test that the robber is placed on the desert."""
    assert board.robber_position == CENTER
    assert board.hexes[CENTER.key].has_robber


def test_generate_board_is_reproducible():
    """Test that a seed fixes the random layout."""
    first = generate_board(seed=7)
    second = generate_board(seed=7)
    assert [(h.terrain, h.number_token) for h in first.hexes.values()] == \
        [(h.terrain, h.number_token) for h in second.hexes.values()]


def test_generate_board_keeps_red_numbers_apart():
    """Test that 6 and 8 tokens are never on neighbouring hexes."""
    board = generate_board(seed=3)
    red = [h.position for h in board.hexes.values() if h.number_token in (6, 8)]
    assert len(red) == 4
    for a in red:
        for b in red:
            if a != b:
                assert hex_distance(a, b) > 1
