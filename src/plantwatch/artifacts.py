"""Artifact lifecycle: removing stale images and regenerating them.

Both operations run on worker threads and never raise. Failures are logged
and reported through the returned GenerationResult so the watch loop keeps
serving other files.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from plantwatch.paths import DEFAULT_SOURCE_EXTENSIONS, artifact_path_for
from plantwatch.renderers.base import (
    DiagramRenderer,
    ToolExecutionError,
    ToolNotAvailableError,
)
from plantwatch.utils.logging import get_logger


def _extra(source: Path, artifact: Path) -> dict[str, dict[str, str]]:
    """Structured fields for JSON log lines."""
    return {"extra_data": {"source": str(source), "artifact": str(artifact)}}


class ArtifactAction(Enum):
    """Operation performed on an artifact."""

    GENERATE = "generate"
    CLEANUP = "cleanup"


@dataclass(frozen=True)
class GenerationResult:
    """Outcome of one cleanup or generate operation.

    Attributes:
        source: Diagram source path
        artifact: Mapped artifact path
        action: Operation performed
        success: False when the operation failed
        removed: True when a previous artifact was deleted
        error: Failure detail
    """

    source: Path
    artifact: Path
    action: ArtifactAction
    success: bool = True
    removed: bool = False
    error: str | None = None


class ArtifactCleaner:
    """Deletes the artifact mapped from a diagram source, if present."""

    def __init__(
        self,
        output_format: str = "png",
        source_extensions: Sequence[str] = DEFAULT_SOURCE_EXTENSIONS,
        logger: logging.Logger | None = None,
    ) -> None:
        self.output_format = output_format
        self.source_extensions = tuple(source_extensions)
        self.logger = logger or get_logger("artifacts")

    def artifact_for(self, source_path: Path) -> Path:
        return artifact_path_for(source_path, self.output_format, self.source_extensions)

    def cleanup(self, source_path: Path) -> GenerationResult:
        """Remove the artifact for a source.

        A missing artifact is not an error. Deletion failures (permissions,
        a file locked by a concurrent writer) are logged and reported.
        """
        source_path = Path(source_path)
        artifact = self.artifact_for(source_path)
        try:
            if not artifact.exists():
                return GenerationResult(source_path, artifact, ArtifactAction.CLEANUP)
            self.logger.info("Removing %s", artifact, extra=_extra(source_path, artifact))
            artifact.unlink()
        except FileNotFoundError:
            # Removed by an overlapping operation between exists() and unlink()
            return GenerationResult(source_path, artifact, ArtifactAction.CLEANUP)
        except OSError as e:
            self.logger.error(
                "Failed to remove %s: %s", artifact, e, extra=_extra(source_path, artifact)
            )
            return GenerationResult(
                source_path,
                artifact,
                ArtifactAction.CLEANUP,
                success=False,
                error=str(e),
            )
        return GenerationResult(source_path, artifact, ArtifactAction.CLEANUP, removed=True)


class ArtifactGenerator:
    """Regenerates the artifact for a diagram source.

    Each generation first removes the previous artifact, then streams the
    renderer output into a freshly created file at the mapped path.
    """

    def __init__(
        self,
        renderer: DiagramRenderer,
        cleaner: ArtifactCleaner | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.renderer = renderer
        self.logger = logger or get_logger("artifacts")
        self.cleaner = cleaner or ArtifactCleaner(
            output_format=renderer.output_format, logger=self.logger
        )

    def cleanup(self, source_path: Path) -> GenerationResult:
        return self.cleaner.cleanup(source_path)

    def generate(self, source_path: Path) -> GenerationResult:
        """Remove any stale artifact and render a new one.

        Args:
            source_path: Diagram source path

        Returns:
            GenerationResult; ``success`` is False when rendering failed
        """
        source_path = Path(source_path)
        cleaned = self.cleaner.cleanup(source_path)
        artifact = cleaned.artifact

        self.logger.info("Generating %s", artifact, extra=_extra(source_path, artifact))
        try:
            with open(artifact, "wb") as output:
                self.renderer.render(source_path, output)
        except (ToolNotAvailableError, ToolExecutionError, OSError) as e:
            self.logger.error(
                "Failed to generate %s: %s", artifact, e, extra=_extra(source_path, artifact)
            )
            if self._kept_error_image(e, artifact):
                self.logger.info("Kept error diagram %s", artifact)
            else:
                self._discard_partial(artifact)
            return GenerationResult(
                source_path,
                artifact,
                ArtifactAction.GENERATE,
                success=False,
                removed=cleaned.removed,
                error=str(e),
            )

        self.logger.info("Generated %s", artifact, extra=_extra(source_path, artifact))
        return GenerationResult(
            source_path, artifact, ArtifactAction.GENERATE, removed=cleaned.removed
        )

    @staticmethod
    def _kept_error_image(error: Exception, artifact: Path) -> bool:
        """Return True if the output of a failed render should stay in place.

        PlantUML exits non-zero on a syntax error but still writes an image
        describing the error. Output cut short by a timeout or a spawn
        failure carries no exit code and is discarded.
        """
        if not isinstance(error, ToolExecutionError) or error.exit_code is None:
            return False
        try:
            return artifact.stat().st_size > 0
        except OSError:
            return False

    def _discard_partial(self, artifact: Path) -> None:
        """Remove output left behind by a failed render."""
        try:
            artifact.unlink(missing_ok=True)
        except OSError as e:
            self.logger.error("Failed to remove partial %s: %s", artifact, e)
