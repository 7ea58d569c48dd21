"""Shared pytest fixtures for plantwatch tests.

Fixtures are organized by category:
- Path fixtures: watch roots and sample diagram sources
- Logging fixtures: captured status output
- Component fixtures: fake renderer, generator, dispatcher
"""

from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest

from plantwatch.artifacts import ArtifactCleaner, ArtifactGenerator
from plantwatch.dispatcher import ChangeDispatcher
from plantwatch.paths import WatchFilter
from tests.fixtures import DIAGRAMS_DIR, FakeRenderer, LogCapture

# =============================================================================
# Path Fixtures
# =============================================================================


@pytest.fixture
def diagrams_dir() -> Path:
    """Return the path to the sample diagram sources."""
    return DIAGRAMS_DIR


@pytest.fixture
def watch_root(tmp_path: Path) -> Path:
    """Create an empty watch root."""
    root = tmp_path / "project"
    root.mkdir()
    return root.resolve()


@pytest.fixture
def sample_source(watch_root: Path, diagrams_dir: Path) -> Path:
    """Copy the sample sequence diagram into the watch root as report.puml."""
    source = watch_root / "report.puml"
    source.write_bytes((diagrams_dir / "sequence.puml").read_bytes())
    return source


# =============================================================================
# Logging Fixtures
# =============================================================================


@pytest.fixture
def status_log() -> LogCapture:
    """Return a logger whose output is captured for assertions."""
    return LogCapture()


# =============================================================================
# Component Fixtures
# =============================================================================


@pytest.fixture
def fake_renderer() -> FakeRenderer:
    """Return a renderer that needs no external tools."""
    return FakeRenderer()


@pytest.fixture
def generator(fake_renderer: FakeRenderer, status_log: LogCapture) -> ArtifactGenerator:
    """Return a generator wired to the fake renderer and captured log."""
    cleaner = ArtifactCleaner(logger=status_log.logger)
    return ArtifactGenerator(fake_renderer, cleaner=cleaner, logger=status_log.logger)


@pytest.fixture
def dispatcher(
    generator: ArtifactGenerator,
    watch_root: Path,
    status_log: LogCapture,
) -> Iterator[ChangeDispatcher]:
    """Return an unsequenced dispatcher for the watch root."""
    instance = ChangeDispatcher(
        generator,
        WatchFilter(watch_root),
        workers=4,
        logger=status_log.logger,
    )
    yield instance
    instance.shutdown(wait=True)


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def minimal_config() -> dict[str, Any]:
    """Return a minimal valid configuration."""
    return {
        "render": {
            "format": "png",
        }
    }


@pytest.fixture
def full_config() -> dict[str, Any]:
    """Return a complete configuration with all options."""
    return {
        "watch": {
            "root": "docs",
            "extensions": [".puml", "plantuml"],
            "exclude": ["node_modules", "out*"],
            "ignore_initial": False,
            "use_polling": True,
            "workers": 2,
            "sequence_per_path": True,
        },
        "render": {
            "command": "java -jar /opt/plantuml/plantuml.jar",
            "format": "svg",
            "style": "styles/skin.iuml",
            "charset": "UTF-8",
            "timeout": 30,
        },
    }
