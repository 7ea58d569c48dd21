"""Unit tests for preflight validation."""

import subprocess
from pathlib import Path
from typing import Any

import pytest

from plantwatch.config import PlantWatchConfig, RenderConfig, WatchConfig
from plantwatch.utils import preflight as preflight_module
from plantwatch.utils.preflight import PreflightChecker, PreflightResult, ToolCheck


@pytest.fixture
def no_tools(monkeypatch: pytest.MonkeyPatch) -> None:
    """Pretend nothing is installed."""
    monkeypatch.setattr(preflight_module.shutil, "which", lambda name: None)


@pytest.fixture
def all_tools(monkeypatch: pytest.MonkeyPatch) -> None:
    """Pretend every tool is installed and reports a version."""
    monkeypatch.setattr(preflight_module.shutil, "which", lambda name: f"/usr/bin/{name}")

    def run(cmd: list[str], **kwargs: Any) -> subprocess.CompletedProcess:
        if cmd[0] == "java":
            return subprocess.CompletedProcess(cmd, 0, stdout="", stderr='openjdk version "21"\n')
        return subprocess.CompletedProcess(cmd, 0, stdout=f"{cmd[0]} version 1.0\n", stderr="")

    monkeypatch.setattr(preflight_module.subprocess, "run", run)


def _config(root: Path, **render: Any) -> PlantWatchConfig:
    return PlantWatchConfig(watch=WatchConfig(root=root), render=RenderConfig(**render))


class TestPreflightResult:
    """Tests for result aggregation."""

    def test_required_missing_is_error(self) -> None:
        result = PreflightResult()
        result.add_check(ToolCheck(name="plantuml", available=False))

        assert result.success is False
        assert result.errors == ["Required tool not found: plantuml"]

    def test_optional_missing_is_warning(self) -> None:
        result = PreflightResult()
        result.add_check(ToolCheck(name="graphviz", available=False, required=False))

        assert result.success is True
        assert result.warnings == ["Optional tool not found: graphviz"]

    def test_to_dict(self) -> None:
        result = PreflightResult()
        result.add_check(ToolCheck(name="plantuml", available=True, version="1.0"))

        data = result.to_dict()

        assert data["success"] is True
        assert data["checks"][0]["name"] == "plantuml"
        assert data["checks"][0]["version"] == "1.0"


class TestChecks:
    """Tests for individual checks."""

    def test_plantuml_missing(self, no_tools: None) -> None:
        check = PreflightChecker().check_plantuml(["plantuml"])

        assert not check.available
        assert "plantuml.com" in check.message

    def test_plantuml_present(self, all_tools: None) -> None:
        check = PreflightChecker().check_plantuml(["plantuml"])

        assert check.available
        assert check.version == "plantuml version 1.0"
        assert check.path == "/usr/bin/plantuml"

    def test_plantuml_version_failure(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test a launcher that exists but cannot run is reported missing."""
        monkeypatch.setattr(preflight_module.shutil, "which", lambda name: "/usr/bin/plantuml")
        monkeypatch.setattr(
            preflight_module.subprocess,
            "run",
            lambda cmd, **kwargs: subprocess.CompletedProcess(cmd, 1, stdout="", stderr=""),
        )

        check = PreflightChecker().check_plantuml(["plantuml"])

        assert not check.available
        assert "-version" in check.message

    def test_plantuml_checked_through_renderer(
        self, all_tools: None, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test the check reports what the renderer adapter reports."""
        monkeypatch.setattr(
            preflight_module.PlantUMLRenderer, "get_version", lambda self: "PlantUML 9.9"
        )

        check = PreflightChecker().check_plantuml(["java", "-jar", "plantuml.jar"])

        assert check.available
        assert check.version == "PlantUML 9.9"
        assert check.path == "/usr/bin/java"

    def test_java_version_from_stderr(self, all_tools: None) -> None:
        check = PreflightChecker().check_java()

        assert check.version == 'openjdk version "21"'

    def test_watch_root(self, tmp_path: Path) -> None:
        checker = PreflightChecker()

        assert checker.check_watch_root(tmp_path).available
        assert not checker.check_watch_root(tmp_path / "missing").available

    def test_style(self, tmp_path: Path) -> None:
        checker = PreflightChecker()
        style = tmp_path / ".plantstyles"

        assert checker.check_style(None) is None
        assert not checker.check_style(style).available
        style.write_text("skinparam monochrome true\n")
        assert checker.check_style(style).available


class TestCheckAll:
    """Tests for check_all."""

    def test_everything_available(self, all_tools: None, tmp_path: Path) -> None:
        (tmp_path / ".plantstyles").write_text("skinparam shadowing false\n")

        result = PreflightChecker().check_all(_config(tmp_path))

        assert result.success
        assert result.warnings == []
        assert [c.name for c in result.checks] == [
            "watch-root", "plantuml", "java", "graphviz", "style",
        ]

    def test_missing_plantuml_fails(self, no_tools: None, tmp_path: Path) -> None:
        result = PreflightChecker().check_all(_config(tmp_path))

        assert not result.success
        assert "Required tool not found: plantuml" in result.errors
        assert "Optional tool not found: style" in result.warnings

    def test_java_required_for_jar_command(self, no_tools: None, tmp_path: Path) -> None:
        result = PreflightChecker().check_all(
            _config(tmp_path, command="java -jar plantuml.jar", style=None)
        )

        assert "Required tool not found: java" in result.errors
        assert all(c.name != "style" for c in result.checks)
