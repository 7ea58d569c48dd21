"""PlantUML renderer adapter.

Invokes the PlantUML command-line tool in pipe mode: the diagram source is
streamed on stdin and the rendered image is streamed from stdout straight
into the artifact file.
https://plantuml.com/command-line

The command is configurable so either a packaged launcher (``plantuml``) or
``java -jar /path/to/plantuml.jar`` can be used.
"""

import logging
import shutil
import subprocess
from collections.abc import Sequence
from pathlib import Path
from typing import BinaryIO

from plantwatch.renderers.base import (
    DiagramRenderer,
    ToolExecutionError,
    ToolNotAvailableError,
)

logger = logging.getLogger(__name__)

DEFAULT_COMMAND: tuple[str, ...] = ("plantuml",)
DEFAULT_TIMEOUT = 60.0


class PlantUMLRenderer(DiagramRenderer):
    """Renderer using the PlantUML command-line tool.

    This adapter:
    1. Runs ``<command> -pipe -t<format> [-config <style>] [-charset <cs>]``
    2. Feeds the source file on stdin, with the source directory as cwd so
       relative ``!include`` directives resolve
    3. Writes stdout directly into the caller's output stream
    4. Raises ToolExecutionError on non-zero exit, timeout or spawn failure
    """

    def __init__(
        self,
        command: Sequence[str] = DEFAULT_COMMAND,
        output_format: str = "png",
        style_path: Path | None = None,
        charset: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize PlantUML renderer.

        Args:
            command: Executable plus leading arguments (e.g. ["java", "-jar", "plantuml.jar"])
            output_format: Image format ("png" or "svg")
            style_path: Shared style file passed with -config
            charset: Source file charset passed with -charset
            timeout: Seconds to wait for a single render
        """
        super().__init__(name="plantuml", output_format=output_format, style_path=style_path)
        if not command:
            raise ValueError("PlantUML command must not be empty")
        self.command = list(command)
        self.charset = charset
        self.timeout = timeout

    def check_available(self) -> bool:
        """Check if the configured PlantUML command is on PATH and answers -version."""
        if shutil.which(self.command[0]) is None:
            return False
        return self.version is not None

    def get_version(self) -> str | None:
        """Get the PlantUML version line (e.g. "PlantUML version 1.2024.7 ...")."""
        try:
            result = subprocess.run(
                [*self.command, "-version"],
                capture_output=True,
                text=True,
                timeout=30,
            )
            if result.returncode == 0:
                output = result.stdout.strip()
                if output:
                    return output.split("\n")[0].strip()
            return None
        except (subprocess.TimeoutExpired, FileNotFoundError, OSError):
            return None

    def build_command(self) -> list[str]:
        """Build the pipe-mode command line for one render."""
        cmd = [*self.command, "-pipe", f"-t{self.output_format}"]
        if self.style_path is not None:
            cmd.extend(["-config", str(self.style_path)])
        if self.charset:
            cmd.extend(["-charset", self.charset])
        return cmd

    def render(self, source_path: Path, output: BinaryIO) -> None:
        """Render a PlantUML source into the output stream.

        Args:
            source_path: Path to the .puml file
            output: Binary stream (an open artifact file)

        Raises:
            ToolNotAvailableError: If the PlantUML command cannot be found
            ToolExecutionError: If PlantUML fails or times out
        """
        cmd = self.build_command()
        logger.debug("Running %s < %s", " ".join(cmd), source_path)

        try:
            with open(source_path, "rb") as source:
                result = subprocess.run(
                    cmd,
                    stdin=source,
                    stdout=output,
                    stderr=subprocess.PIPE,
                    timeout=self.timeout,
                    cwd=str(source_path.parent),
                )
        except FileNotFoundError as e:
            if not source_path.exists():
                raise ToolExecutionError(
                    self.name,
                    f"Source file disappeared before rendering: {source_path}",
                ) from e
            raise ToolNotAvailableError(
                self.name,
                f"PlantUML command not found: {self.command[0]}. "
                "Run `plantwatch check` to verify dependencies.",
            ) from e
        except subprocess.TimeoutExpired:
            raise ToolExecutionError(
                self.name,
                f"PlantUML timed out after {self.timeout:g} seconds rendering {source_path}",
            ) from None
        except OSError as e:
            raise ToolExecutionError(
                self.name,
                f"Failed to execute PlantUML: {e}",
            ) from e

        if result.returncode != 0:
            stderr = (result.stderr or b"").decode("utf-8", errors="replace").strip()
            raise ToolExecutionError(
                self.name,
                stderr or f"PlantUML could not render {source_path}",
                exit_code=result.returncode,
                stderr=stderr,
            )
