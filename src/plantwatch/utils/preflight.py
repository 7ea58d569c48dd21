"""Preflight validation.

External dependencies are validated before watching begins, not during
processing. A missing render command means every generation would fail, so
it is reported as an error; a missing Java runtime or style file is only a
warning.
"""

import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from plantwatch.config import PlantWatchConfig
from plantwatch.renderers.plantuml import PlantUMLRenderer


@dataclass
class ToolCheck:
    """Result of checking a single tool or resource.

    Attributes:
        name: Tool name
        available: Whether tool is available
        version: Tool version if available
        required: Whether tool is required for this run
        path: Path to executable if available
        message: Status message (human-readable context)
    """

    name: str
    available: bool
    version: str | None = None
    required: bool = True
    path: str | None = None
    message: str = ""


@dataclass
class PreflightResult:
    """Result of preflight validation.

    Attributes:
        success: Whether all required tools are available
        checks: Individual tool check results
        errors: Error messages for missing required tools
        warnings: Warning messages for missing optional tools
    """

    success: bool = True
    checks: list[ToolCheck] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_check(self, check: ToolCheck) -> None:
        """Add a tool check result."""
        self.checks.append(check)

        if not check.available:
            if check.required:
                self.success = False
                self.errors.append(f"Required tool not found: {check.name}")
            else:
                self.warnings.append(f"Optional tool not found: {check.name}")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "success": self.success,
            "checks": [
                {
                    "name": c.name,
                    "available": c.available,
                    "version": c.version,
                    "required": c.required,
                    "path": c.path,
                    "message": c.message,
                }
                for c in self.checks
            ],
            "errors": self.errors,
            "warnings": self.warnings,
        }


class PreflightChecker:
    """Validates external tool availability before watching.

    Usage:
        checker = PreflightChecker()
        result = checker.check_all(config)
        if not result.success:
            sys.exit(1)
    """

    def __init__(self, timeout: int = 30) -> None:
        """Initialize preflight checker.

        Args:
            timeout: Timeout in seconds for version checks (PlantUML starts a JVM)
        """
        self.timeout = timeout

    def check_command_available(self, command: str) -> tuple[bool, str | None]:
        """Check if a command is available in PATH."""
        path = shutil.which(command)
        return path is not None, path

    def get_command_version(
        self,
        command: list[str],
        version_args: list[str] | None = None,
    ) -> str | None:
        """Get version string for a command.

        Args:
            command: Command (with leading arguments) to get version for
            version_args: Arguments to get version (default: ["--version"])

        Returns:
            First line of the version output, None on failure
        """
        if version_args is None:
            version_args = ["--version"]

        try:
            result = subprocess.run(
                [*command, *version_args],
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
            if result.returncode == 0:
                # java -version prints to stderr
                output = result.stdout.strip() or result.stderr.strip()
                return output.split("\n")[0] if output else None
        except (subprocess.TimeoutExpired, FileNotFoundError, OSError):
            pass
        return None

    def check_plantuml(self, command: list[str], required: bool = True) -> ToolCheck:
        """Check the configured PlantUML command through its renderer adapter."""
        renderer = PlantUMLRenderer(command=command)
        available, path = self.check_command_available(command[0])
        if not available:
            return ToolCheck(
                name="plantuml",
                available=False,
                required=required,
                message=(
                    f"Command not found: {command[0]}. "
                    "Install from: https://plantuml.com/download"
                ),
            )

        if not renderer.check_available():
            return ToolCheck(
                name="plantuml",
                available=False,
                required=required,
                path=path,
                message=f"`{' '.join(command)} -version` failed",
            )
        return ToolCheck(
            name="plantuml",
            available=True,
            version=renderer.version,
            required=required,
            path=path,
            message="Diagram renderer",
        )

    def check_java(self, required: bool = False) -> ToolCheck:
        """Check if a Java runtime is available (PlantUML runs on the JVM)."""
        available, path = self.check_command_available("java")

        if available:
            version = self.get_command_version(["java"], ["-version"])
            return ToolCheck(
                name="java",
                available=True,
                version=version,
                required=required,
                path=path,
                message="Java runtime",
            )
        return ToolCheck(
            name="java",
            available=False,
            required=required,
            message="Required by plantuml.jar. Install a JRE from: https://adoptium.net",
        )

    def check_graphviz(self, required: bool = False) -> ToolCheck:
        """Check if Graphviz (dot) is available.

        PlantUML needs it for most diagram types except sequence diagrams.
        """
        available, path = self.check_command_available("dot")

        if available:
            version = self.get_command_version(["dot"], ["-V"])
            return ToolCheck(
                name="graphviz",
                available=True,
                version=version,
                required=required,
                path=path,
                message="Layout engine",
            )
        return ToolCheck(
            name="graphviz",
            available=False,
            required=required,
            message="Needed for non-sequence diagrams. Install from: https://graphviz.org",
        )

    def check_watch_root(self, root: Path) -> ToolCheck:
        """Check that the watch root exists and is a directory."""
        if root.is_dir():
            return ToolCheck(
                name="watch-root",
                available=True,
                path=str(root),
                message="Watch root",
            )
        return ToolCheck(
            name="watch-root",
            available=False,
            path=str(root),
            message=f"Not a directory: {root}",
        )

    def check_style(self, style: Path | None) -> ToolCheck | None:
        """Check the configured style file, None when no style is configured."""
        if style is None:
            return None
        if style.is_file():
            return ToolCheck(
                name="style",
                available=True,
                required=False,
                path=str(style),
                message="Shared style file",
            )
        return ToolCheck(
            name="style",
            available=False,
            required=False,
            path=str(style),
            message=f"Style file not found, diagrams render unstyled: {style}",
        )

    def check_all(self, config: PlantWatchConfig) -> PreflightResult:
        """Run every check relevant to the given configuration."""
        result = PreflightResult()
        result.add_check(self.check_watch_root(config.root))
        result.add_check(self.check_plantuml(config.render.command))

        # Launcher scripts bundle their own runtime discovery; a bare jar needs java
        result.add_check(self.check_java(required=config.render.command[0] == "java"))
        result.add_check(self.check_graphviz())

        style_check = self.check_style(config.style_path)
        if style_check is not None:
            result.add_check(style_check)
        return result
