"""Source/artifact path mapping and the watch filter policy.

An artifact always lives beside its diagram source:

    docs/flow/report.puml  ->  docs/flow/report.png
"""

from collections.abc import Iterable, Sequence
from fnmatch import fnmatch
from pathlib import Path

DEFAULT_SOURCE_EXTENSIONS: tuple[str, ...] = (".puml",)
DEFAULT_EXCLUDES: tuple[str, ...] = ("node_modules", "build", "dist", "site")


def artifact_path_for(
    source_path: Path | str,
    output_format: str = "png",
    source_extensions: Sequence[str] = DEFAULT_SOURCE_EXTENSIONS,
) -> Path:
    """Map a diagram source path to the path of its rendered artifact.

    Pure and total: the filesystem is never touched.

    Args:
        source_path: Path to the diagram source
        output_format: Artifact format, used as the new extension
        source_extensions: Extensions stripped from the source name

    Returns:
        Artifact path in the same directory as the source
    """
    source = Path(source_path)
    name = source.name
    for extension in source_extensions:
        if extension and name.lower().endswith(extension.lower()) and len(name) > len(extension):
            stem = name[: -len(extension)]
            break
    else:
        stem = source.stem
    return source.with_name(f"{stem}.{output_format.lstrip('.')}")


def is_hidden(part: str) -> bool:
    """Return True for dot-prefixed path components (.git, .vscode, .idea ...)."""
    return part.startswith(".") and part not in {".", ".."}


class WatchFilter:
    """Include/exclude policy applied to every filesystem notification.

    A path is accepted when it lies under the root, none of its components
    below the root is hidden or matches an exclude pattern, and its name
    carries one of the source extensions.
    """

    def __init__(
        self,
        root: Path,
        extensions: Iterable[str] = DEFAULT_SOURCE_EXTENSIONS,
        exclude: Iterable[str] = DEFAULT_EXCLUDES,
    ) -> None:
        self.root = Path(root).resolve()
        self.extensions = tuple(e.lower() for e in extensions)
        self.exclude = tuple(exclude)

    def relative(self, path: Path | str) -> Path | None:
        """Return the path relative to the root, or None if it is outside."""
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.root / candidate
        try:
            return candidate.resolve().relative_to(self.root)
        except (ValueError, OSError):
            return None

    def is_excluded(self, path: Path | str) -> bool:
        rel = self.relative(path)
        if rel is None:
            return True
        for part in rel.parts:
            if is_hidden(part):
                return True
            if any(fnmatch(part, pattern) for pattern in self.exclude):
                return True
        return False

    def is_source(self, path: Path | str) -> bool:
        return Path(path).name.lower().endswith(self.extensions)

    def accepts(self, path: Path | str) -> bool:
        """Return True if the path is a diagram source the watcher owns."""
        return self.is_source(path) and not self.is_excluded(path)

    def iter_sources(self) -> list[Path]:
        """List every accepted source currently under the root, sorted."""
        found: list[Path] = []
        for extension in self.extensions:
            for candidate in self.root.rglob(f"*{extension}"):
                if candidate.is_file() and self.accepts(candidate):
                    found.append(candidate)
        return sorted(set(found))
