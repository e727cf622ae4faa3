"""
Tests for position scoring, expansion search and threat assessment.
"""
import pytest

from agents.board_analyzer import BoardAnalyzer, ThreatType, dice_probability
from engine import (
    BuildingType,
    HexCoordinate,
    Player,
    ResourceType,
    Score,
    canonical_vertex_id,
)

from conftest import CENTER, place

MOUNTAINS_8 = HexCoordinate(1, -1, 0)
FIELDS_4 = HexCoordinate(1, 0, -1)
HILLS_9 = HexCoordinate(2, -1, -1)
# Ore 8, wheat 4, brick 9
RICH_VERTEX = canonical_vertex_id((MOUNTAINS_8, FIELDS_4, HILLS_9))


def test_dice_probability():
    """Test the two-dice probabilities used for every production estimate."""
    assert dice_probability(6) == pytest.approx(5 / 36)
    assert dice_probability(2) == pytest.approx(1 / 36)
    assert dice_probability(7) == 0
    assert dice_probability(None) == 0


def test_scarcity_follows_hex_counts(board, make_state):
    """Test that three-hex resources are scarcer than four-hex ones."""
    analyzer = BoardAnalyzer(make_state(board))
    assert analyzer.scarcity(ResourceType.ORE) == pytest.approx(0.25)
    assert analyzer.scarcity(ResourceType.BRICK) == pytest.approx(0.25)
    assert analyzer.scarcity(ResourceType.WOOD) == 0


def test_analyze_hex(board, make_state):
    """Test probability, scarcity and expected yield for one hex."""
    analyzer = BoardAnalyzer(make_state(board))
    value = analyzer.analyze_hex(MOUNTAINS_8.key)
    assert value.resource_type == ResourceType.ORE
    assert value.probability == pytest.approx(5 / 36)
    assert value.expected_yield == pytest.approx(5 / 36 * 1.25)

    desert = analyzer.analyze_hex(CENTER.key)
    assert desert.resource_type is None
    assert desert.probability == 0


def test_expected_production_per_resource(board, make_state):
    """Test that a vertex sums the probabilities of its touching hexes."""
    production = BoardAnalyzer(make_state(board)).expected_production(RICH_VERTEX)
    assert production[ResourceType.ORE] == pytest.approx(5 / 36)
    assert production[ResourceType.WHEAT] == pytest.approx(3 / 36)
    assert production[ResourceType.BRICK] == pytest.approx(4 / 36)
    assert production[ResourceType.WOOD] == 0


def test_score_settlement_position(board, make_state):
    """Test the weighted position score and its breakdown."""
    analyzer = BoardAnalyzer(make_state(board))
    score = analyzer.score_settlement_position(RICH_VERTEX, "p1")

    assert score.production_value == pytest.approx(12 / 36 * 250)
    assert score.diversification == pytest.approx(60)
    assert score.expansion_potential == pytest.approx(100)
    assert score.port_access == 0
    assert score.blocking_value == 0
    assert score.total_score == pytest.approx(12 / 36 * 250 * 0.4 + 60 * 0.25 + 100 * 0.2)
    assert any(line.startswith("Production") for line in score.breakdown)
    assert analyzer.score_settlement_position(RICH_VERTEX, "p1") is score


def test_score_city_upgrade(board, make_state):
    """Test that a city scales production and total score."""
    analyzer = BoardAnalyzer(make_state(board))
    base = analyzer.score_settlement_position(RICH_VERTEX, "p1")
    city = analyzer.score_city_upgrade(RICH_VERTEX, "p1")
    assert city.production_value == 100
    assert city.total_score == pytest.approx(base.total_score * 1.5)


def test_clear_caches(board, make_state):
    """Test that cached scores are dropped on request."""
    analyzer = BoardAnalyzer(make_state(board))
    first = analyzer.score_settlement_position(RICH_VERTEX, "p1")
    analyzer.clear_caches()
    assert analyzer.score_settlement_position(RICH_VERTEX, "p1") is not first


def test_port_access(board, make_state):
    """Test that port vertices report their ratio."""
    analyzer = BoardAnalyzer(make_state(board))
    generic = next(v for v in board.vertices.values() if v.port and v.port.is_generic)
    special = next(v for v in board.vertices.values() if v.port and not v.port.is_generic)
    assert analyzer.evaluate_port_access(generic.id).port_type == "3:1"
    assert analyzer.evaluate_port_access(special.id).port_type == "2:1"
    assert not analyzer.evaluate_port_access(RICH_VERTEX).has_port


def test_best_resource_positions(board, make_state):
    """Test that the best ore spots are ordered by ore output."""
    positions = BoardAnalyzer(make_state(board)).find_best_resource_positions(ResourceType.ORE, limit=3)
    assert len(positions) == 3
    amounts = [amount for _, amount in positions]
    assert amounts == sorted(amounts, reverse=True)
    assert amounts[0] == pytest.approx(5 / 36)


def test_expansion_opportunities(board, make_state):
    """Test that expansion targets are reachable, legal and sorted by value per road."""
    state = make_state(place(board, RICH_VERTEX, "p1"))
    analyzer = BoardAnalyzer(state)
    expansions = analyzer.find_expansion_opportunities("p1")

    assert expansions
    for expansion in expansions:
        assert 1 <= expansion.cost <= 3
        assert expansion.cost == len(expansion.required_roads)
        assert analyzer.connectivity.check_distance_rule(expansion.to_vertex)
    ratios = [e.value / (e.cost + 1) for e in expansions]
    assert ratios == sorted(ratios, reverse=True)


def test_blocking_value_marks_opponent_target(board, make_state):
    """Test that an opponent's best expansion target carries blocking value."""
    state = make_state(place(board, RICH_VERTEX, "p2"))
    analyzer = BoardAnalyzer(state)
    target = analyzer.find_expansion_opportunities("p2")[0].to_vertex

    assert analyzer.calculate_blocking_value(target, "p1") == 30
    assert analyzer.score_settlement_position(target, "p1").blocking_value == 30
    moves = analyzer.analyze_blocking_opportunities("p1")
    assert moves[0].target_player == "p2"
    assert moves[0].urgency == 0.5


def test_identify_threats(board, make_state):
    """Test resource hoarding and victory point threats, most severe first."""
    players = [
        Player(id="p1", name="Alice"),
        Player(id="p2", name="Bob", resources={**{r: 0 for r in ResourceType}, ResourceType.ORE: 6},
               score=Score(public=8, total=8)),
    ]
    analyzer = BoardAnalyzer(make_state(board, players=players))
    threats = analyzer.identify_threats("p1")

    assert [t.type for t in threats] == [ThreatType.RESOURCE_MONOPOLY, ThreatType.VICTORY_POINTS]
    assert threats[0].severity == 90
    assert threats[1].severity == pytest.approx(80)


def test_assess_player_counts_cities_double(board, make_state):
    """Test that a city doubles the production credited to its owner."""
    settled = BoardAnalyzer(make_state(place(board, RICH_VERTEX, "p1"))).assess_player("p1")
    city = BoardAnalyzer(make_state(place(board, RICH_VERTEX, "p1", BuildingType.CITY))).assess_player("p1")
    assert city.total_production == pytest.approx(settled.total_production * 2)


def test_resource_needs_without_expansion_spot(board, make_state):
    """Test that a lone settlement asks only for city resources."""
    analyzer = BoardAnalyzer(make_state(place(board, RICH_VERTEX, "p1")))
    needs = analyzer.calculate_resource_needs("p1")
    assert needs[ResourceType.ORE] == 3
    assert needs[ResourceType.WHEAT] == 2
    assert needs[ResourceType.WOOD] == 0


def test_port_rate_and_trading(board, make_state):
    """Test that a generic port gives 3:1 and bank trades fall back to 4:1."""
    generic = next(v for v in board.vertices.values() if v.port and v.port.is_generic)
    analyzer = BoardAnalyzer(make_state(place(board, generic.id, "p1")))
    assert analyzer.port_rate("p1", ResourceType.WOOD) == (3, generic.id)

    players = [
        Player(id="p1", name="Alice", resources={**{r: 0 for r in ResourceType}, ResourceType.WOOD: 4}),
        Player(id="p2", name="Bob"),
    ]
    analyzer = BoardAnalyzer(make_state(place(board, RICH_VERTEX, "p1"), players=players))
    opportunities = analyzer.find_trading_opportunities("p1")
    assert opportunities[0].give_resources == {ResourceType.WOOD: 4}
    assert opportunities[0].receive_resources == {ResourceType.ORE: 1}


def test_players_on_hex(board, make_state):
    """Test that building owners around a hex are reported."""
    analyzer = BoardAnalyzer(make_state(place(board, RICH_VERTEX, "p2")))
    assert analyzer.players_on_hex(MOUNTAINS_8.key) == {"p2"}
    assert analyzer.players_on_hex(CENTER.key) == set()


def test_trading_measures_shortfall_against_hand(board, make_state):
    """Test that the most needed resource is the one the hand lacks most."""
    players = [
        Player(id="p1", name="Alice", resources={**{r: 0 for r in ResourceType}, ResourceType.ORE: 3, ResourceType.WOOD: 5}),
        Player(id="p2", name="Bob"),
    ]
    opportunities = BoardAnalyzer(make_state(place(board, RICH_VERTEX, "p1"), players=players)).find_trading_opportunities("p1")
    assert len(opportunities) == 1
    assert opportunities[0].receive_resources == {ResourceType.WHEAT: 1}
    assert opportunities[0].urgency == 40
