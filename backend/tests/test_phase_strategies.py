"""
Tests for per-phase candidate generation: setup, discard and the actions-phase generators.
"""
import pytest

from engine import (
    Action,
    DevCardType,
    DevelopmentCard,
    GamePhase,
    HexCoordinate,
    Player,
    ResourceType,
    Score,
    canonical_vertex_id,
)

from agents.board_analyzer import BoardAnalyzer
from agents.evaluators import EvaluationContext
from agents.generators import (
    BuildingGenerator,
    DevelopmentCardGenerator,
    TradeGenerator,
    generate_candidates,
    needed_resources,
)
from agents.phase_strategies import PHASE_STRATEGIES, DiscardOptimizer

from conftest import CENTER, corner_vertex, hand, pave, place, ring_edge

RICH_VERTEX = canonical_vertex_id((HexCoordinate(1, -1, 0), HexCoordinate(1, 0, -1), HexCoordinate(2, -1, -1)))


def context_for(state, player_id="p1"):
    return EvaluationContext(state, player_id, BoardAnalyzer(state))


def with_hand(**counts):
    return [Player(id="p1", name="Alice", resources=hand(**counts)), Player(id="p2", name="Bob")]


@pytest.mark.parametrize("cards,expected", [(7, 0), (8, 4), (9, 4), (12, 6)])
def test_discard_count(cards, expected):
    """Test that half the hand, rounded down, goes only above seven cards."""
    player = Player(id="p1", name="Alice", resources=hand(wood=cards))
    assert DiscardOptimizer.discard_count(player) == expected


def test_discard_keeps_build_costs():
    """Test that surplus above settlement and city costs is given up first."""
    resources = hand(wood=4, brick=1, wheat=2, ore=1, sheep=1)
    discard = DiscardOptimizer().choose(resources, 4)
    assert discard == {ResourceType.WOOD: 3, ResourceType.WHEAT: 1}


def test_discard_never_exceeds_holdings():
    """Test that every discarded amount is covered by the hand."""
    resources = hand(wood=1, brick=1, wheat=3, ore=4, sheep=1)
    discard = DiscardOptimizer().choose(resources, 5)
    assert sum(discard.values()) == 5
    for resource, amount in discard.items():
        assert 0 < amount <= resources[resource]


def test_discard_phase_candidate(board, make_state):
    """Test the single discard action proposed in the discard phase."""
    state = make_state(board, phase=GamePhase.DISCARD, players=with_hand(wood=4, brick=1, wheat=2, ore=1, sheep=1))
    candidates = PHASE_STRATEGIES[GamePhase.DISCARD].candidates(context_for(state))
    assert len(candidates) == 1
    action = candidates[0].action
    assert action.type == Action.DISCARD_RESOURCES
    assert action.payload.resources == {ResourceType.WOOD: 3, ResourceType.WHEAT: 1}


def test_discard_phase_small_hand_discards_nothing(board, make_state):
    """Test that seven or fewer cards produce an empty discard."""
    state = make_state(board, phase=GamePhase.DISCARD, players=with_hand(wood=4, ore=3))
    action = PHASE_STRATEGIES[GamePhase.DISCARD].candidates(context_for(state))[0].action
    assert action.payload.resources == {}
    assert action.payload.count == 0


def test_setup_settlement_then_road(board, make_state):
    """Test that setup proposes a settlement first and then its road."""
    state = make_state(board, phase=GamePhase.SETUP1)
    settlement = PHASE_STRATEGIES[GamePhase.SETUP1].candidates(context_for(state))
    assert [c.action.type for c in settlement] == [Action.SETUP_PLACE_SETTLEMENT]

    vertex_id = settlement[0].action.vertex_id
    state = make_state(place(board, vertex_id, "p1"), phase=GamePhase.SETUP1)
    road = PHASE_STRATEGIES[GamePhase.SETUP1].candidates(context_for(state))
    assert [c.action.type for c in road] == [Action.SETUP_PLACE_ROAD]
    assert road[0].action.edge_id in board.index.vertex_edges[vertex_id]


def test_second_round_places_second_settlement(board, make_state):
    """Test that the second round wants a settlement while only one is down."""
    first = corner_vertex(CENTER, 0)
    b = pave(place(board, first, "p1"), "p1", ring_edge(CENTER, 0))
    state = make_state(b, phase=GamePhase.SETUP2)
    candidates = PHASE_STRATEGIES[GamePhase.SETUP2].candidates(context_for(state))
    assert candidates[0].action.type == Action.SETUP_PLACE_SETTLEMENT
    assert candidates[0].action.vertex_id not in board.index.vertex_neighbors[first]


def test_empty_hand_only_ends_turn(board, make_state):
    """Test that nothing but end turn is proposed with no cards."""
    state = make_state(place(board, RICH_VERTEX, "p1"))
    candidates = generate_candidates(context_for(state))
    assert [c.action.type for c in candidates] == [Action.END_TURN]


def test_city_candidate_for_own_settlement(board, make_state):
    """Test that an affordable city is proposed on the player's settlement."""
    state = make_state(place(board, RICH_VERTEX, "p1"), players=with_hand(wheat=2, ore=3))
    cities = [c for c in BuildingGenerator().generate(context_for(state)) if c.action.type == Action.BUILD_CITY]
    assert [c.action.vertex_id for c in cities] == [RICH_VERTEX]
    assert cities[0].priority == 90


def test_road_candidates_open_settlement_sites(board, make_state):
    """Test that roads reaching a legal settlement site are preferred."""
    b = pave(place(board, corner_vertex(CENTER, 0), "p1"), "p1", ring_edge(CENTER, 0))
    state = make_state(b, players=with_hand(wood=1, brick=1))
    roads = [c for c in BuildingGenerator().generate(context_for(state)) if c.action.type == Action.BUILD_ROAD]

    assert ring_edge(CENTER, 1) in [c.action.edge_id for c in roads]
    assert all(c.priority == 60 for c in roads)
    assert len(roads) <= 3


def test_settlement_candidates_need_resources(board, make_state):
    """Test that no settlement is proposed without its full cost."""
    b = pave(place(board, corner_vertex(CENTER, 0), "p1"), "p1", ring_edge(CENTER, 0), ring_edge(CENTER, 1))
    poor = make_state(b, players=with_hand(wood=1, brick=1, wheat=1))
    rich = make_state(b, players=with_hand(wood=1, brick=1, wheat=1, sheep=1))

    def settlements(state):
        return [c for c in BuildingGenerator().generate(context_for(state)) if c.action.type == Action.BUILD_SETTLEMENT]

    assert settlements(poor) == []
    assert [c.action.vertex_id for c in settlements(rich)] == [corner_vertex(CENTER, 2)]


def test_needed_resources_order():
    """Test that city shortfalls weigh the most."""
    player = Player(id="p1", name="Alice")
    assert needed_resources(player)[:2] == [ResourceType.ORE, ResourceType.WHEAT]


def test_bank_trade_gives_surplus_for_top_need(board, make_state):
    """Test a 4:1 bank trade of spare wood for ore."""
    state = make_state(place(board, RICH_VERTEX, "p1"), players=with_hand(wood=5))
    trades = TradeGenerator().generate(context_for(state))
    assert len(trades) == 1
    payload = trades[0].action.payload
    assert payload.give_resources == {ResourceType.WOOD: 4}
    assert payload.receive_resources == {ResourceType.ORE: 1}
    assert payload.port_vertex_id is None


def test_port_trade_uses_better_ratio(board, make_state):
    """Test that a generic port adds a 3:1 trade ahead of the bank."""
    generic = next(v for v in board.vertices.values() if v.port and v.port.is_generic)
    state = make_state(place(board, generic.id, "p1"), players=with_hand(wood=5))
    trades = TradeGenerator().generate(context_for(state))
    assert [t.action.payload.ratio for t in trades] == [3, 4]
    assert trades[0].action.payload.port_vertex_id == generic.id
    assert trades[0].priority > trades[1].priority


def test_buy_dev_card_needs_deck(board, make_state):
    """Test that buying requires the cost and a non-empty deck."""
    players = with_hand(ore=1, wheat=1, sheep=1)
    stocked = make_state(board, players=players)
    empty = make_state(board, players=players, dev_deck_remaining=0)

    def buys(state):
        return [c for c in DevelopmentCardGenerator().generate(context_for(state)) if c.action.type == Action.BUY_DEV_CARD]

    assert len(buys(stocked)) == 1
    assert buys(empty) == []


def _knight_plays(board, make_state, purchased_turn, played_this_turn=False):
    players = [
        Player(id="p1", name="Alice", development_cards=[DevelopmentCard("k1", DevCardType.KNIGHT, purchased_turn)]),
        Player(id="p2", name="Bob"),
    ]
    state = make_state(board, players=players, turn=3, dev_card_played_this_turn=played_this_turn)
    return [c for c in DevelopmentCardGenerator().generate(context_for(state)) if c.action.type == Action.PLAY_DEV_CARD]


def test_knight_playable_from_earlier_turn(board, make_state):
    """Test that a knight bought on an earlier turn can be played."""
    plays = _knight_plays(board, make_state, purchased_turn=2)
    assert [c.action.payload.card_type for c in plays] == [DevCardType.KNIGHT]


def test_card_bought_this_turn_not_playable(board, make_state):
    """Test that a card bought this turn waits."""
    assert _knight_plays(board, make_state, purchased_turn=3) == []


def test_one_card_per_turn(board, make_state):
    """Test that nothing is played once a card was played this turn."""
    assert _knight_plays(board, make_state, purchased_turn=2, played_this_turn=True) == []


def test_year_of_plenty_takes_two_most_needed(board, make_state):
    """Test that year of plenty asks for the two biggest shortfalls."""
    players = [
        Player(id="p1", name="Alice", development_cards=[DevelopmentCard("y1", DevCardType.YEAR_OF_PLENTY, 0)]),
        Player(id="p2", name="Bob"),
    ]
    state = make_state(board, players=players, turn=1)
    plays = DevelopmentCardGenerator().generate(context_for(state))
    assert plays[0].action.payload.year_of_plenty_resources == {ResourceType.ORE: 1, ResourceType.WHEAT: 1}


def test_monopoly_needs_opponent_supply(board, make_state):
    """Test that monopoly names a needed resource opponents hold at least two of."""
    card = DevelopmentCard("m1", DevCardType.MONOPOLY, 0)
    dry = [Player(id="p1", name="Alice", development_cards=[card]), Player(id="p2", name="Bob", resources=hand(ore=1))]
    wet = [Player(id="p1", name="Alice", development_cards=[card]), Player(id="p2", name="Bob", resources=hand(ore=3))]

    assert DevelopmentCardGenerator().generate(context_for(make_state(board, players=dry, turn=1))) == []
    plays = DevelopmentCardGenerator().generate(context_for(make_state(board, players=wet, turn=1)))
    assert plays[0].action.payload.monopoly_resource_type == ResourceType.ORE


def test_cities_ranked_by_upgrade_score(board, make_state):
    """Test that city candidates follow the analyzer's city upgrade score."""
    other = corner_vertex(CENTER, 3)
    b = place(place(board, other, "p1"), RICH_VERTEX, "p1")
    state = make_state(b, players=with_hand(wheat=2, ore=3))
    context = context_for(state)
    cities = [c for c in BuildingGenerator().generate(context) if c.action.type == Action.BUILD_CITY]

    assert [c.action.vertex_id for c in cities] == [RICH_VERTEX, other]
    scores = [context.analyzer.score_city_upgrade(c.action.vertex_id, "p1").total_score for c in cities]
    assert scores == sorted(scores, reverse=True)
    assert cities[0].reasoning == [f"City upgrade score {scores[0]:.1f}"]


def test_trade_skips_resources_already_held(board, make_state):
    """Test that a need covered by the hand is not traded for."""
    state = make_state(place(board, RICH_VERTEX, "p1"), players=with_hand(ore=3, wood=5))
    trades = TradeGenerator().generate(context_for(state))
    assert [t.action.payload.receive_resources for t in trades] == [{ResourceType.WHEAT: 1}]
    assert trades[0].action.payload.give_resources == {ResourceType.WOOD: 4}

    covered = make_state(place(board, RICH_VERTEX, "p1"), players=with_hand(ore=3, wheat=2, wood=5))
    assert TradeGenerator().generate(context_for(covered)) == []


def _year_of_plenty(board, make_state, **counts):
    players = [
        Player(id="p1", name="Alice", resources=hand(**counts),
               development_cards=[DevelopmentCard("y1", DevCardType.YEAR_OF_PLENTY, 0)]),
        Player(id="p2", name="Bob"),
    ]
    state = make_state(board, players=players, turn=1)
    return [c for c in DevelopmentCardGenerator().generate(context_for(state)) if c.action.type == Action.PLAY_DEV_CARD]


def test_year_of_plenty_doubles_single_gap(board, make_state):
    """Test that one resource short by two is asked for twice."""
    plays = _year_of_plenty(board, make_state, wood=1, brick=1, wheat=2, sheep=1, ore=1)
    assert plays[0].action.payload.year_of_plenty_resources == {ResourceType.ORE: 2}


def test_year_of_plenty_waits_on_single_card_gap(board, make_state):
    """Test that a gap of one card is not worth the play."""
    assert _year_of_plenty(board, make_state, wood=1, brick=1, wheat=2, sheep=1, ore=2) == []


def _victory_plays(board, make_state, score):
    cards = [
        DevelopmentCard("vp1", DevCardType.VICTORY_POINT, 0),
        DevelopmentCard("vp2", DevCardType.VICTORY_POINT, 0),
    ]
    players = [Player(id="p1", name="Alice", score=score, development_cards=cards), Player(id="p2", name="Bob")]
    state = make_state(board, players=players, turn=1)
    return [c for c in DevelopmentCardGenerator().generate(context_for(state)) if c.action.type == Action.PLAY_DEV_CARD]


def test_victory_card_counts_hidden_points_once(board, make_state):
    """Test that a reveal short of ten public points is not proposed."""
    assert _victory_plays(board, make_state, Score(public=7, hidden=2, total=9)) == []


def test_victory_card_played_at_nine_public_points(board, make_state):
    """Test that a reveal reaching ten public points is proposed once."""
    plays = _victory_plays(board, make_state, Score(public=9, hidden=2, total=11))
    assert [c.action.payload.card_type for c in plays] == [DevCardType.VICTORY_POINT]
