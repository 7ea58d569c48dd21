"""Abstract base class for diagram renderer adapters.

All renderer adapters MUST implement this interface. Each adapter:
1. Invokes the external rendering tool with the source, format and style file
2. Streams the produced image bytes into the given binary output
3. Raises ToolNotAvailableError / ToolExecutionError on failure
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO

SUPPORTED_FORMATS: tuple[str, ...] = ("png", "svg")


class DiagramRenderer(ABC):
    """Abstract interface for pluggable diagram rendering tools.

    The watcher treats rendering as an opaque capability: it hands over a
    source path and an open output stream and only observes success or
    failure.

    Attributes:
        name: Tool identifier (e.g., "plantuml")
        output_format: Image format produced ("png" or "svg")
        style_path: Optional shared style/config file passed to every render
    """

    def __init__(
        self,
        name: str,
        output_format: str = "png",
        style_path: Path | None = None,
    ) -> None:
        """Initialize the renderer.

        Args:
            name: Tool identifier
            output_format: Image format to produce
            style_path: Shared style/config file

        Raises:
            ValueError: If the output format is not supported
        """
        if output_format not in SUPPORTED_FORMATS:
            raise ValueError(
                f"Unsupported output format: {output_format}. Valid: {SUPPORTED_FORMATS}"
            )
        self.name = name
        self.output_format = output_format
        self.style_path = style_path
        self._version: str | None = None

    @property
    def version(self) -> str | None:
        """Get the tool version (cached after first check)."""
        if self._version is None:
            self._version = self.get_version()
        return self._version

    @abstractmethod
    def check_available(self) -> bool:
        """Verify the tool is installed and accessible."""

    @abstractmethod
    def get_version(self) -> str | None:
        """Return the tool version string, or None if unknown."""

    @abstractmethod
    def render(self, source_path: Path, output: BinaryIO) -> None:
        """Render a diagram source and stream the image bytes into output.

        Args:
            source_path: Diagram source to render
            output: Binary stream receiving the image

        Raises:
            ToolNotAvailableError: If the tool is not installed
            ToolExecutionError: If rendering fails
        """


class ToolNotAvailableError(Exception):
    """Raised when a required tool is not installed or accessible."""

    def __init__(self, tool_name: str, message: str | None = None) -> None:
        self.tool_name = tool_name
        self.message = message or f"Tool not available: {tool_name}"
        super().__init__(self.message)


class ToolExecutionError(Exception):
    """Raised when a tool execution fails."""

    def __init__(
        self,
        tool_name: str,
        message: str,
        exit_code: int | None = None,
        stderr: str | None = None,
    ) -> None:
        self.tool_name = tool_name
        self.exit_code = exit_code
        self.stderr = stderr
        full_message = f"Tool execution failed: {tool_name} - {message}"
        if exit_code is not None:
            full_message += f" (exit code: {exit_code})"
        super().__init__(full_message)
