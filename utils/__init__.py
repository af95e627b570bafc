# utils package initialization

from .logging_config import get_logger, setup_logging
from .post_generation import run_post_generation_command

__all__ = ['get_logger', 'setup_logging', 'run_post_generation_command']
