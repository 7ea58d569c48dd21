"""Diagram renderer adapters.

All renderers stream image bytes for one diagram source into an output file.
"""

from plantwatch.renderers.base import (
    SUPPORTED_FORMATS,
    DiagramRenderer,
    ToolExecutionError,
    ToolNotAvailableError,
)
from plantwatch.renderers.plantuml import PlantUMLRenderer

__all__ = [
    "SUPPORTED_FORMATS",
    "DiagramRenderer",
    "PlantUMLRenderer",
    "ToolExecutionError",
    "ToolNotAvailableError",
]
