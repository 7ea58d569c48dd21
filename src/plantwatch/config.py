"""plantwatch configuration system.

Configuration is YAML-based with minimal CLI overrides (--root, --sequence, --polling).
Supports environment variable substitution (${VAR}) in config files.

Configuration file discovery (in priority order):
1. CLI --config argument
2. ./.plantwatch/config.yaml
3. ./plantwatch.yaml

The watch root defaults to the directory that holds the discovered config
file (``.plantwatch/config.yaml`` counts as living in its parent), so the
watcher keeps working when started from elsewhere.
"""

import os
import re
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from plantwatch.paths import DEFAULT_EXCLUDES, DEFAULT_SOURCE_EXTENSIONS
from plantwatch.renderers.base import SUPPORTED_FORMATS

CONFIG_DIR_NAME = ".plantwatch"

# =============================================================================
# Configuration Dataclasses
# =============================================================================


@dataclass
class WatchConfig:
    """Filesystem subscription settings.

    Attributes:
        root: Watch root (None: config file directory, else cwd)
        extensions: Diagram source extensions to include
        exclude: Directory/file name globs to exclude (hidden names always excluded)
        ignore_initial: Skip pre-existing sources at startup
        use_polling: Use the polling observer (network shares, containers)
        workers: Concurrent render workers
        sequence_per_path: Serialize operations on the same source path
    """

    root: Path | None = None
    extensions: list[str] = field(default_factory=lambda: list(DEFAULT_SOURCE_EXTENSIONS))
    exclude: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDES))
    ignore_initial: bool = True
    use_polling: bool = False
    workers: int = 4
    sequence_per_path: bool = False

    def __post_init__(self) -> None:
        """Validate watch configuration."""
        if self.root is not None:
            self.root = Path(self.root)
        if not self.extensions:
            raise ValueError("At least one source extension is required")
        self.extensions = [e if e.startswith(".") else f".{e}" for e in self.extensions]
        if int(self.workers) < 1:
            raise ValueError(f"workers must be at least 1 (got {self.workers})")
        self.workers = int(self.workers)


@dataclass
class RenderConfig:
    """External renderer settings.

    Attributes:
        command: PlantUML command line prefix (string is split shell-style)
        format: Output image format (png, svg)
        style: Shared style/config file, relative paths resolve against the root
        charset: Source charset passed to PlantUML
        timeout: Seconds allowed for one render
    """

    command: list[str] = field(default_factory=lambda: ["plantuml"])
    format: str = "png"
    style: str | None = ".plantstyles"
    charset: str | None = None
    timeout: float = 60.0

    def __post_init__(self) -> None:
        """Validate render configuration."""
        if isinstance(self.command, str):
            self.command = shlex.split(self.command)
        if not self.command:
            raise ValueError("render.command must not be empty")

        self.format = str(self.format).lower()
        if self.format not in SUPPORTED_FORMATS:
            raise ValueError(
                f"Invalid output format: {self.format}. Valid: {set(SUPPORTED_FORMATS)}"
            )

        if float(self.timeout) <= 0:
            raise ValueError(f"render.timeout must be positive (got {self.timeout})")
        self.timeout = float(self.timeout)


@dataclass
class PlantWatchConfig:
    """Top-level configuration, built once at process start.

    Attributes:
        watch: Subscription settings
        render: Renderer settings
    """

    watch: WatchConfig = field(default_factory=WatchConfig)
    render: RenderConfig = field(default_factory=RenderConfig)

    # Set by load_config
    _config_path: Path | None = field(default=None, repr=False)

    @property
    def config_path(self) -> Path | None:
        """Get the path to the config file that was loaded."""
        return self._config_path

    @property
    def root(self) -> Path:
        """Resolved watch root."""
        if self.watch.root is not None:
            root = self.watch.root
            if not root.is_absolute() and self._config_path is not None:
                root = _config_base_dir(self._config_path) / root
            return root.resolve()
        if self._config_path is not None:
            return _config_base_dir(self._config_path).resolve()
        return Path.cwd().resolve()

    @property
    def style_path(self) -> Path | None:
        """Resolved style file path, or None when not configured."""
        if not self.render.style:
            return None
        style = Path(self.render.style).expanduser()
        if not style.is_absolute():
            style = self.root / style
        return style


def _config_base_dir(config_path: Path) -> Path:
    parent = config_path.resolve().parent
    if parent.name == CONFIG_DIR_NAME:
        return parent.parent
    return parent


# =============================================================================
# Environment Variable Substitution
# =============================================================================


def substitute_env_vars(value: Any) -> Any:
    """Substitute environment variables in config values.

    Supports ${VAR} syntax for environment variable substitution.
    Example: ${PLANTUML_JAR} -> value of PLANTUML_JAR

    Args:
        value: Config value (string, dict, list, or other)

    Returns:
        Value with environment variables substituted
    """
    if isinstance(value, str):
        pattern = re.compile(r"\$\{([^}]+)\}")

        def replace_var(match: re.Match[str]) -> str:
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                raise ValueError(f"Environment variable not set: {var_name}")
            return env_value

        return pattern.sub(replace_var, value)

    elif isinstance(value, dict):
        return {k: substitute_env_vars(v) for k, v in value.items()}

    elif isinstance(value, list):
        return [substitute_env_vars(v) for v in value]

    return value


# =============================================================================
# Config File Discovery
# =============================================================================


def find_config_file(start_path: Path | None = None) -> Path | None:
    """Find configuration file in standard locations.

    Search order:
    1. ./.plantwatch/config.yaml
    2. ./plantwatch.yaml

    Args:
        start_path: Starting directory for search (defaults to cwd)

    Returns:
        Path to config file if found, None otherwise
    """
    if start_path is None:
        start_path = Path.cwd()

    start_path = start_path.resolve()

    candidates = [
        start_path / CONFIG_DIR_NAME / "config.yaml",
        start_path / "plantwatch.yaml",
    ]

    for candidate in candidates:
        if candidate.exists():
            return candidate

    return None


# =============================================================================
# Config Loading
# =============================================================================


def load_config_from_dict(data: dict[str, Any]) -> PlantWatchConfig:
    """Load configuration from a dictionary.

    Args:
        data: Configuration dictionary

    Returns:
        PlantWatchConfig instance

    Raises:
        ValueError: If a value is invalid
    """
    data = substitute_env_vars(data)

    config = PlantWatchConfig()

    if "watch" in data:
        watch_data = data["watch"] or {}
        defaults = WatchConfig()
        root = watch_data.get("root")
        config.watch = WatchConfig(
            root=Path(root) if root else None,
            extensions=list(watch_data.get("extensions", defaults.extensions)),
            exclude=list(watch_data.get("exclude", defaults.exclude)),
            ignore_initial=bool(watch_data.get("ignore_initial", defaults.ignore_initial)),
            use_polling=bool(watch_data.get("use_polling", defaults.use_polling)),
            workers=watch_data.get("workers", defaults.workers),
            sequence_per_path=bool(
                watch_data.get("sequence_per_path", defaults.sequence_per_path)
            ),
        )

    if "render" in data:
        render_data = data["render"] or {}
        defaults_r = RenderConfig()
        config.render = RenderConfig(
            command=render_data.get("command", defaults_r.command),
            format=render_data.get("format", defaults_r.format),
            style=render_data.get("style", defaults_r.style),
            charset=render_data.get("charset", defaults_r.charset),
            timeout=render_data.get("timeout", defaults_r.timeout),
        )

    return config


def load_config(
    config_path: Path | None = None,
    auto_discover: bool = True,
    start_path: Path | None = None,
) -> PlantWatchConfig:
    """Load configuration from file.

    Args:
        config_path: Explicit path to config file
        auto_discover: Whether to search for config file if not specified
        start_path: Directory to search from (defaults to cwd)

    Returns:
        PlantWatchConfig instance

    Raises:
        FileNotFoundError: If config_path specified but doesn't exist
        ValueError: If the file holds invalid values
    """
    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        found_path = config_path
    elif auto_discover:
        found_path = find_config_file(start_path)
    else:
        found_path = None

    if found_path is not None:
        with open(found_path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file must contain a mapping: {found_path}")
        config = load_config_from_dict(data)
        config._config_path = found_path
    else:
        config = PlantWatchConfig()

    return config


def create_default_config() -> str:
    """Create default configuration YAML content.

    Returns:
        YAML string with default configuration and comments
    """
    return """# plantwatch configuration
# Keeps rendered diagrams next to their PlantUML sources.

watch:
  # root: "."               # Defaults to the directory holding this config
  extensions: [".puml"]
  exclude:                  # Hidden directories (.git, .vscode) are always excluded
    - "node_modules"
    - "build"
    - "dist"
    - "site"
  ignore_initial: true      # Do not re-render existing sources at startup
  use_polling: false        # Use polling on filesystems without native events
  workers: 4                # Concurrent renders
  sequence_per_path: false  # Serialize rapid edits of the same file

render:
  command: "plantuml"       # or: "java -jar ${PLANTUML_JAR}"
  format: "png"             # png, svg
  style: ".plantstyles"     # Shared skinparams, relative to the watch root
  # charset: "UTF-8"
  timeout: 60
"""
