"""Test fixtures for plantwatch.

This package provides sample diagram sources and test doubles for the
external PlantUML renderer, so tests never need Java or PlantUML installed.

Sample Diagrams:
- diagrams/sequence.puml: A minimal sequence diagram
- diagrams/broken.puml: Source the fake renderer reports as a syntax error
"""

import io
import logging
import threading
import time
import uuid
from collections.abc import Callable
from pathlib import Path
from typing import BinaryIO

from plantwatch.renderers.base import DiagramRenderer, ToolExecutionError
from plantwatch.utils.logging import StatusFormatter

# Path to fixtures directory
FIXTURES_DIR = Path(__file__).parent

# Path to sample diagram sources
DIAGRAMS_DIR = FIXTURES_DIR / "diagrams"

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
ERROR_IMAGE = b"Syntax Error?"


class FakeRenderer(DiagramRenderer):
    """In-process stand-in for PlantUML.

    Writes the PNG signature followed by the source bytes. Sources whose
    file name contains one of ``fail_on`` get an error image and then raise
    ToolExecutionError with an exit code, the way PlantUML reports a syntax
    error.
    """

    def __init__(
        self,
        output_format: str = "png",
        fail_on: tuple[str, ...] = ("broken",),
        delay: float = 0.0,
    ) -> None:
        super().__init__(name="fake", output_format=output_format)
        self.fail_on = fail_on
        self.delay = delay
        self.calls: list[Path] = []
        self._lock = threading.Lock()

    def check_available(self) -> bool:
        return True

    def get_version(self) -> str | None:
        return "fake 1.0"

    def render(self, source_path: Path, output: BinaryIO) -> None:
        with self._lock:
            self.calls.append(source_path)
        if self.delay:
            time.sleep(self.delay)
        if any(marker in source_path.name for marker in self.fail_on):
            output.write(PNG_SIGNATURE + ERROR_IMAGE)
            raise ToolExecutionError(
                self.name, f"Syntax error in {source_path.name}", exit_code=200
            )
        output.write(PNG_SIGNATURE)
        output.write(source_path.read_bytes())


class LogCapture:
    """A logger writing status lines into memory.

    Lives outside the ``plantwatch`` hierarchy so CLI handlers never see it.
    """

    def __init__(self) -> None:
        self.stream = io.StringIO()
        self.logger = logging.getLogger(f"capture.{uuid.uuid4().hex}")
        self.logger.setLevel(logging.DEBUG)
        self.logger.propagate = False
        handler = logging.StreamHandler(self.stream)
        handler.setFormatter(StatusFormatter(use_colors=False))
        self.logger.addHandler(handler)

    @property
    def lines(self) -> list[str]:
        return self.stream.getvalue().splitlines()

    def contains(self, text: str) -> bool:
        return any(text in line for line in self.lines)


def wait_for(predicate: Callable[[], bool], timeout: float = 10.0, interval: float = 0.05) -> bool:
    """Poll until predicate() is true or the timeout expires.

    Returns:
        The final value of predicate()
    """
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


def get_sample_diagram(name: str) -> Path:
    """Get path to a sample diagram source.

    Args:
        name: File name of the sample diagram

    Returns:
        Path to the sample diagram

    Raises:
        ValueError: If the diagram doesn't exist
    """
    path = DIAGRAMS_DIR / name
    if not path.exists():
        raise ValueError(f"Sample diagram not found: {name}")
    return path
