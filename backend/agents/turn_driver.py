"""
Turn execution loop for an automated seat.

The driver repeatedly snapshots the game, asks its agent for one action,
waits the thinking delay and submits it, until the turn passes to someone
else, the game ends or a fatal error comes back.
"""
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Protocol

from engine import Action, GameAction, GamePhase, GameState
from telemetry.logging_config import configure_logging, get_logger
from telemetry.monitoring import submitted_actions_total, track_performance, turn_duration_seconds

from .base_agent import BaseAgent
from .config import AgentSettings, load_settings
from .heuristic_agent import HeuristicAgent
from .tracing import LoggingTracer, NullTracer

logger = get_logger(__name__)


class ErrorCategory(Enum):
    GAME_ENDED = "game_ended"
    NOT_YOUR_TURN = "not_your_turn"
    INVALID_PLAYER = "invalid_player"
    GAME_NOT_FOUND = "game_not_found"
    INVALID_ACTION = "invalid_action"
    INSUFFICIENT_RESOURCES = "insufficient_resources"
    UNKNOWN = "unknown"

    @property
    def is_fatal(self) -> bool:
        return self in FATAL_CATEGORIES


FATAL_CATEGORIES = frozenset({
    ErrorCategory.GAME_ENDED,
    ErrorCategory.NOT_YOUR_TURN,
    ErrorCategory.INVALID_PLAYER,
    ErrorCategory.GAME_NOT_FOUND,
})

# Checked in order against the lowercased message
ERROR_SUBSTRINGS = (
    ("game ended", ErrorCategory.GAME_ENDED),
    ("not your turn", ErrorCategory.NOT_YOUR_TURN),
    ("invalid player", ErrorCategory.INVALID_PLAYER),
    ("game not found", ErrorCategory.GAME_NOT_FOUND),
    ("insufficient resources", ErrorCategory.INSUFFICIENT_RESOURCES),
    ("invalid action", ErrorCategory.INVALID_ACTION),
)

# Forced prompts are answered without the thinking delay and use no turn slot
FORCED_RESPONSE_ACTIONS = frozenset({Action.DISCARD_RESOURCES, Action.MOVE_ROBBER, Action.STEAL_RESOURCE})

# Loop guard for forced prompts, separate from max_actions_per_turn
MAX_FORCED_RESPONSES = 10


def classify_error(message: Optional[str]) -> ErrorCategory:
    """Category for a collaborator error that arrived without one."""
    text = (message or "").lower()
    for needle, category in ERROR_SUBSTRINGS:
        if needle in text:
            return category
    return ErrorCategory.UNKNOWN


class CancellationToken:
    """Cancels the thinking delay and any submission in flight."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, seconds: float) -> bool:
        """Sleep up to `seconds`; True when cancelled before or during the wait."""
        return self._event.wait(seconds)


@dataclass
class SubmitResult:
    success: bool
    message: str = ""
    error: Optional[str] = None
    category: Optional[ErrorCategory] = None

    @property
    def error_category(self) -> Optional[ErrorCategory]:
        if self.success:
            return None
        return self.category or classify_error(self.error or self.message)


class GameFlow(Protocol):
    """The game-side collaborator a driver plays through."""

    def get_state(self) -> GameState:
        ...

    def process_action(self, action: GameAction, cancel_token: Optional[CancellationToken] = None) -> SubmitResult:
        ...


@dataclass
class TurnStats:
    decision_time_ms: float = 0.0
    actions_count: int = 0
    phase_transitions: int = 0


@dataclass
class TurnResult:
    success: bool
    actions_executed: List[GameAction]
    final_phase: Optional[GamePhase]
    error: Optional[str] = None
    stats: TurnStats = field(default_factory=TurnStats)


@dataclass
class DriverStats:
    turns_played: int = 0
    actions_executed: int = 0
    successful_actions: int = 0
    failed_actions: int = 0
    total_decision_time_ms: float = 0.0
    decisions: int = 0
    last_action_time: Optional[float] = None

    @property
    def average_decision_time(self) -> float:
        if self.decisions == 0:
            return 0.0
        return self.total_decision_time_ms / self.decisions


class TurnDriver:
    """
    Plays whole turns for one seat.

    Args:
        game_flow: Snapshot source and action sink
        player_id: Seat this driver controls
        settings: Agent settings (defaults when None)
        agent: Decision agent; a HeuristicAgent built from settings when None
        cancel_token: Shared token; force_stop() cancels it
    """

    def __init__(
        self,
        game_flow: GameFlow,
        player_id: str,
        settings: Optional[AgentSettings] = None,
        agent: Optional[BaseAgent] = None,
        cancel_token: Optional[CancellationToken] = None,
    ):
        self.game_flow = game_flow
        self.player_id = player_id
        self.settings = settings or AgentSettings()
        if agent is None:
            tracer = LoggingTracer(player_id=player_id) if self.settings.enable_logging else NullTracer()
            agent = HeuristicAgent(
                player_id,
                difficulty=self.settings.difficulty,
                personality=self.settings.personality,
                seed=self.settings.seed,
                tracer=tracer,
            )
        self.agent = agent
        self.cancel_token = cancel_token or CancellationToken()
        self.is_processing = False
        self.stats = DriverStats()
        self.logger = logger.bind(player_id=player_id)

    def _refresh_agent(self) -> None:
        reset = getattr(self.agent, "reset", None)
        if reset is not None:
            reset()

    def can_act(self) -> bool:
        if self.is_processing or self.cancel_token.cancelled:
            return False
        return self.agent.is_my_turn(self.game_flow.get_state())

    def preview_next_action(self) -> Optional[GameAction]:
        """Best-scored action for the current snapshot without submitting it."""
        state = self.game_flow.get_state()
        top_actions = getattr(self.agent, "top_actions", None)
        if top_actions is None:
            return self.agent.choose_action(state)
        top = top_actions(state, 1)
        return top[0].action if top else None

    def force_stop(self) -> None:
        self.cancel_token.cancel()
        self.is_processing = False
        self.logger.info("auto_player_stopped")

    def get_stats(self) -> Dict[str, Optional[float]]:
        return {
            "turns_played": self.stats.turns_played,
            "actions_executed": self.stats.actions_executed,
            "average_decision_time": self.stats.average_decision_time,
            "successful_actions": self.stats.successful_actions,
            "failed_actions": self.stats.failed_actions,
            "last_action_time": self.stats.last_action_time,
        }

    def execute_turn(self) -> TurnResult:
        """Play until the turn passes on. Exceptions come back as a failed TurnResult."""
        if self.is_processing:
            return TurnResult(False, [], None, error="Turn already in progress")
        if self.cancel_token.cancelled:
            return TurnResult(False, [], None, error="Auto player stopped")

        self.is_processing = True
        turn_start = time.time()
        stats = TurnStats()
        executed: List[GameAction] = []
        final_phase: Optional[GamePhase] = None
        error: Optional[str] = None

        try:
            state = self.game_flow.get_state()
            final_phase = state.phase
            if state.current_player != self.player_id:
                return TurnResult(False, [], final_phase, error="Not this player's turn", stats=stats)

            self.logger.info("turn_started", game_id=state.game_id, phase=state.phase.value, turn=state.turn)
            last_phase = state.phase
            self._refresh_agent()

            slots = 0
            forced = 0
            while slots < self.settings.max_actions_per_turn and forced < MAX_FORCED_RESPONSES:
                state = self.game_flow.get_state()
                final_phase = state.phase
                if state.current_player != self.player_id or state.is_over:
                    break
                if state.phase != last_phase:
                    stats.phase_transitions += 1
                    last_phase = state.phase
                    self._refresh_agent()

                decision_start = time.time()
                action = self.agent.choose_action(state)
                decision_ms = (time.time() - decision_start) * 1000
                stats.decision_time_ms += decision_ms
                self.stats.total_decision_time_ms += decision_ms
                self.stats.decisions += 1

                if action is None:
                    self.logger.info("no_action_available", phase=state.phase.value)
                    break
                if action.type in FORCED_RESPONSE_ACTIONS:
                    forced += 1
                else:
                    slots += 1

                if self.settings.thinking_time_ms > 0 and action.type not in FORCED_RESPONSE_ACTIONS:
                    if self.cancel_token.wait(self.settings.thinking_time_ms / 1000):
                        error = "Turn cancelled"
                        break
                elif self.cancel_token.cancelled:
                    error = "Turn cancelled"
                    break

                result = self.game_flow.process_action(action, cancel_token=self.cancel_token)
                self.stats.last_action_time = time.time()

                if result.success:
                    executed.append(action)
                    self.stats.successful_actions += 1
                    self.stats.actions_executed += 1
                    submitted_actions_total.labels(action=action.type.value, status="success").inc()
                    self.logger.debug("action_executed", action=action.type.value, phase=state.phase.value)
                    self._refresh_agent()
                    if action.type == Action.END_TURN:
                        break
                else:
                    self.stats.failed_actions += 1
                    category = result.error_category
                    submitted_actions_total.labels(action=action.type.value, status="failure").inc()
                    self.logger.warning(
                        "action_failed",
                        action=action.type.value,
                        error=result.error or result.message,
                        category=category.value,
                    )
                    if category.is_fatal:
                        error = result.error or result.message or category.value
                        break
            else:
                self.logger.warning("action_limit_reached", actions=slots, forced_responses=forced)

            final_phase = self.game_flow.get_state().phase
        except Exception as e:
            self.logger.exception("turn_failed", error=str(e))
            error = str(e)
        finally:
            self.is_processing = False
            self.stats.turns_played += 1
            turn_duration_seconds.observe(time.time() - turn_start)

        stats.actions_count = len(executed)
        self.logger.info(
            "turn_completed",
            actions_executed=len(executed),
            final_phase=final_phase.value if final_phase else None,
            error=error,
        )
        return TurnResult(error is None, executed, final_phase, error=error, stats=stats)


def create_auto_player(
    game_flow: GameFlow,
    player_id: str,
    settings: Optional[AgentSettings] = None,
    **overrides,
) -> TurnDriver:
    """Driver with a heuristic agent; settings come from the environment unless given."""
    settings = settings or load_settings(**overrides)
    if settings.enable_logging:
        configure_logging(settings.environment)
    return TurnDriver(game_flow, player_id, settings=settings)


@dataclass
class AutoGameResult:
    winner: Optional[str]
    total_turns: int
    player_stats: Dict[str, Dict[str, Optional[float]]]
    game_end_reason: str


@track_performance
def run_auto_game(game_flow: GameFlow, drivers: Dict[str, TurnDriver], max_turns: int = 500) -> AutoGameResult:
    """
    Let drivers play until the game is decided.

    Stops on a winner, the ended phase, a failed turn, a seat with no driver,
    or after max_turns driver turns.
    """
    total_turns = 0
    reason = "max_turns"
    winner = None

    while total_turns < max_turns:
        state = game_flow.get_state()
        if state.winner is not None:
            winner = state.winner
            reason = "victory"
            break
        if state.phase == GamePhase.ENDED:
            reason = "ended"
            break

        driver = drivers.get(state.current_player)
        if driver is None:
            reason = "non_ai_player"
            break

        result = driver.execute_turn()
        total_turns += 1
        if not result.success:
            reason = "turn_failed"
            logger.warning("auto_game_turn_failed", player_id=state.current_player, error=result.error)
            break

    final_state = game_flow.get_state()
    if winner is None and final_state.winner is not None:
        winner = final_state.winner
        reason = "victory"

    logger.info("auto_game_finished", game_id=final_state.game_id, winner=winner, turns=total_turns, reason=reason)
    return AutoGameResult(
        winner=winner,
        total_turns=total_turns,
        player_stats={pid: driver.get_stats() for pid, driver in drivers.items()},
        game_end_reason=reason,
    )
