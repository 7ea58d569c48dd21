"""plantwatch utility modules.

- logging: Timestamped status logging with status/verbose/JSON modes
- preflight: External tool availability checks
"""

from plantwatch.utils.logging import get_logger, setup_logging
from plantwatch.utils.preflight import PreflightChecker, PreflightResult

__all__ = [
    "get_logger",
    "setup_logging",
    "PreflightChecker",
    "PreflightResult",
]
