"""
Logging and metrics shared by the engine and agents.
"""
from .logging_config import configure_logging, get_logger

__all__ = ['configure_logging', 'get_logger']
