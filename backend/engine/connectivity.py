"""
Placement legality and road-network analysis over one snapshot.

All graph lookups go through the board's precomputed index; nothing here scans
the full vertex or edge collections to find neighbours.
"""
from collections import deque
from typing import Dict, List, Optional, Set, Tuple

from .models import BuildingType, GameState


class ConnectivityEngine:
    """
    Read-only legality rules for one GameState snapshot.

    Covers the distance rule, network reachability, legal settlement/road/city
    spots, longest road and setup-target resolution.
    """

    def __init__(self, state: GameState):
        self.state = state
        self.board = state.board
        self.index = state.board.index

    # ---------------------------------------------------------------------
    # Ownership helpers
    # ---------------------------------------------------------------------

    def player_buildings(self, player_id: str) -> List[str]:
        return [vid for vid, v in self.board.vertices.items() if v.owner == player_id]

    def player_settlements(self, player_id: str) -> List[str]:
        return [
            vid for vid, v in self.board.vertices.items()
            if v.building and v.building.owner == player_id and v.building.type == BuildingType.SETTLEMENT
        ]

    def player_road_ids(self, player_id: str) -> List[str]:
        return [eid for eid, e in self.board.edges.items() if e.owner == player_id]

    def _blocked_for(self, vertex_id: str, player_id: str) -> bool:
        """True when another player's building sits on the vertex."""
        owner = self.board.vertices[vertex_id].owner
        return owner is not None and owner != player_id

    # ---------------------------------------------------------------------
    # Distance rule
    # ---------------------------------------------------------------------

    def check_distance_rule(self, vertex_id: str) -> bool:
        """False iff any graph-adjacent vertex is occupied."""
        for adjacent_id in self.index.vertex_neighbors.get(vertex_id, ()):
            if self.board.vertices[adjacent_id].building is not None:
                return False
        return True

    def distance_rule_violations(self) -> List[str]:
        """Unoccupied vertices where a settlement would break the distance rule."""
        return [
            vid for vid, v in self.board.vertices.items()
            if v.building is None and not self.check_distance_rule(vid)
        ]

    # ---------------------------------------------------------------------
    # Network reachability
    # ---------------------------------------------------------------------

    def get_player_network(self, player_id: str) -> Set[str]:
        """
        Vertices reachable from the player's buildings through the player's own roads.

        Breadth-first from every owned building; each owned edge is followed once.
        """
        reachable = set(self.player_buildings(player_id))
        queue = deque(reachable)
        visited_edges: Set[str] = set()

        while queue:
            current = queue.popleft()
            for edge_id in self.index.vertex_edges.get(current, ()):
                if edge_id in visited_edges:
                    continue
                visited_edges.add(edge_id)
                if self.board.edges[edge_id].owner != player_id:
                    continue
                for vertex_id in self.index.edge_vertices[edge_id]:
                    if vertex_id not in reachable:
                        reachable.add(vertex_id)
                        queue.append(vertex_id)

        return reachable

    # ---------------------------------------------------------------------
    # Legal placements
    # ---------------------------------------------------------------------

    def setup_target_settlement(self, player_id: str) -> Optional[str]:
        """
        The settlement still waiting for its paired setup road.

        Returns the first owned settlement with no adjacent owned road, falling
        back to the most recently indexed settlement.
        """
        settlements = self.player_settlements(player_id)
        if not settlements:
            return None
        for vertex_id in settlements:
            has_road = any(
                self.board.edges[eid].owner == player_id
                for eid in self.index.vertex_edges.get(vertex_id, ())
            )
            if not has_road:
                return vertex_id
        return settlements[-1]

    def is_legal_settlement_spot(self, player_id: str, vertex_id: str, network: Optional[Set[str]] = None) -> bool:
        vertex = self.board.vertices.get(vertex_id)
        if vertex is None or vertex.building is not None:
            return False
        if not self.check_distance_rule(vertex_id):
            return False
        if self.state.phase.is_setup:
            return True
        network = network if network is not None else self.get_player_network(player_id)
        return vertex_id in network

    def is_legal_road_spot(self, player_id: str, edge_id: str, network: Optional[Set[str]] = None) -> bool:
        edge = self.board.edges.get(edge_id)
        if edge is None or edge.owner is not None:
            return False
        if self.state.phase.is_setup:
            target = self.setup_target_settlement(player_id)
            return target is not None and target in self.index.edge_vertices[edge_id]
        network = network if network is not None else self.get_player_network(player_id)
        # A road may not extend through an opponent's building
        return any(
            v in network and not self._blocked_for(v, player_id)
            for v in self.index.edge_vertices[edge_id]
        )

    def legal_settlement_spots(self, player_id: str) -> List[str]:
        network = None if self.state.phase.is_setup else self.get_player_network(player_id)
        return [
            vid for vid in self.board.vertices
            if self.is_legal_settlement_spot(player_id, vid, network=network)
        ]

    def legal_road_spots(self, player_id: str) -> List[str]:
        if self.state.phase.is_setup:
            target = self.setup_target_settlement(player_id)
            if target is None:
                return []
            return [
                eid for eid in self.index.vertex_edges.get(target, ())
                if self.board.edges[eid].owner is None
            ]
        network = self.get_player_network(player_id)
        return [
            eid for eid in self.board.edges
            if self.is_legal_road_spot(player_id, eid, network=network)
        ]

    def legal_city_spots(self, player_id: str) -> List[str]:
        return self.player_settlements(player_id)

    # ---------------------------------------------------------------------
    # Longest road
    # ---------------------------------------------------------------------

    def longest_road(self, player_id: str) -> int:
        """
        Length of the longest simple trail in the player's road graph.

        A trail never reuses an edge, and may end at but not pass through a
        vertex occupied by another player.
        """
        road_graph: Dict[str, List[Tuple[str, str]]] = {}
        for edge_id in self.player_road_ids(player_id):
            ends = self.index.edge_vertices[edge_id]
            if len(ends) != 2:
                continue
            a, b = ends
            road_graph.setdefault(a, []).append((b, edge_id))
            road_graph.setdefault(b, []).append((a, edge_id))

        if not road_graph:
            return 0

        def dfs_path_length(node: str, visited_edges: Set[str]) -> int:
            """DFS to find longest path from current node, returning number of edges."""
            max_path = 0
            for next_node, edge_id in road_graph[node]:
                if edge_id in visited_edges:
                    continue
                visited_edges.add(edge_id)
                if self._blocked_for(next_node, player_id):
                    # Path is broken at this intersection, count the edge and stop
                    path_len = 1
                else:
                    path_len = 1 + dfs_path_length(next_node, visited_edges)
                max_path = max(max_path, path_len)
                visited_edges.remove(edge_id)
            return max_path

        max_length = 0
        for start_node in road_graph:
            max_length = max(max_length, dfs_path_length(start_node, set()))
        return max_length

    # ---------------------------------------------------------------------
    # Expansion paths
    # ---------------------------------------------------------------------

    def road_paths(self, player_id: str, max_roads: int = 3) -> Dict[str, List[str]]:
        """
        Fewest new roads from the player's network to every vertex within max_roads.

        Network vertices map to an empty path. New roads only use unowned edges
        and never continue through another player's building.
        """
        network = self.get_player_network(player_id)
        paths: Dict[str, List[str]] = {v: [] for v in network}
        queue = deque(v for v in network if not self._blocked_for(v, player_id))
        while queue:
            current = queue.popleft()
            path = paths[current]
            if len(path) >= max_roads:
                continue
            for edge_id in self.index.vertex_edges.get(current, ()):
                if self.board.edges[edge_id].owner is not None:
                    continue
                nxt = self.index.other_end(edge_id, current)
                if nxt in paths:
                    continue
                paths[nxt] = path + [edge_id]
                if not self._blocked_for(nxt, player_id):
                    queue.append(nxt)
        return paths

    def shortest_road_path(self, player_id: str, target_vertex: str, max_roads: int = 3) -> Optional[List[str]]:
        """
        Fewest new roads needed to connect the target vertex to the player's network.

        Returns the edge ids to build (empty when the vertex is already reachable)
        or None when it cannot be reached within max_roads.
        """
        return self.road_paths(player_id, max_roads=max_roads).get(target_vertex)

    def vertices_within_roads(self, vertex_id: str, distance: int) -> Dict[str, int]:
        """Vertices reachable in at most `distance` edges, with their edge distance."""
        distances = {vertex_id: 0}
        queue = deque([vertex_id])
        while queue:
            current = queue.popleft()
            if distances[current] >= distance:
                continue
            for nxt in self.index.vertex_neighbors.get(current, ()):
                if nxt not in distances:
                    distances[nxt] = distances[current] + 1
                    queue.append(nxt)
        return distances
