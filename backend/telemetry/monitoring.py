"""
Metrics for decisions and turn execution.
"""
import time
from functools import wraps
from typing import Callable
from prometheus_client import Counter, Histogram
from .logging_config import get_logger

logger = get_logger("monitoring")

# Prometheus metrics
decisions_total = Counter(
    'ai_decisions_total',
    'Decisions made by the heuristic engine',
    ['phase', 'outcome']
)

decision_duration_seconds = Histogram(
    'ai_decision_duration_seconds',
    'Time spent generating and scoring candidate actions',
    ['phase']
)

submitted_actions_total = Counter(
    'ai_submitted_actions_total',
    'Actions submitted to the game flow',
    ['action', 'status']
)

turn_duration_seconds = Histogram(
    'ai_turn_duration_seconds',
    'Wall time of one executed turn, thinking delay included'
)


def track_performance(func: Callable) -> Callable:
    """Decorator to log how long a call took and whether it raised."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.time()
        try:
            result = func(*args, **kwargs)
            duration = time.time() - start_time
            logger.debug(
                "function_performance",
                function=func.__name__,
                duration=duration,
                status="success"
            )
            return result
        except Exception as e:
            duration = time.time() - start_time
            logger.error(
                "function_performance",
                function=func.__name__,
                duration=duration,
                status="error",
                error=str(e)
            )
            raise

    return wrapper
