from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

import pathspec

logger = logging.getLogger(__name__)

DEFAULT_IGNORE_FILE = ".doclintignore"
GITIGNORE_FILE = ".gitignore"

SOURCE_BUILTIN = "builtin"
SOURCE_GITIGNORE = "gitignore"
SOURCE_IGNORE_FILE = "ignorefile"
SOURCE_CONFIG = "config"
SOURCE_CLI = "cli"

# Lowest precedence first.
LAYER_ORDER = (
    SOURCE_BUILTIN,
    SOURCE_GITIGNORE,
    SOURCE_IGNORE_FILE,
    SOURCE_CONFIG,
    SOURCE_CLI,
)


@dataclass(frozen=True)
class PatternLayer:
    source: str
    patterns: tuple[str, ...]


def builtin_patterns(*, exclude_hidden: bool = True) -> tuple[str, ...]:
    patterns = ["node_modules/"]
    if exclude_hidden:
        patterns.append(".*")
    return tuple(patterns)


def read_ignore_file(path: Path) -> tuple[str, ...]:
    """Patterns from a gitignore-syntax file; missing or unreadable files yield none."""
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.debug("ignore file not found: %s", path)
        return ()
    except (OSError, UnicodeDecodeError) as exc:
        logger.error("failed to load ignore file %s: %s", path, exc)
        return ()
    return tuple(
        line
        for line in (entry.strip() for entry in raw.splitlines())
        if line and not line.startswith("#")
    )


def _clean(patterns: Iterable[str] | None) -> tuple[str, ...]:
    if not patterns:
        return ()
    return tuple(pattern.strip() for pattern in patterns if pattern and pattern.strip())


class ExclusionManager:
    """Gitignore-style path exclusion over ordered, immutable pattern layers.

    Layers are concatenated from lowest to highest precedence and matched
    last-match-wins, so a ``!pattern`` in a higher layer re-includes a path a
    lower layer excluded. The exception is a path below an excluded directory:
    once an ancestor directory matches, nothing deeper can be re-included. To
    allow re-including one file, exclude ``dir/*.md`` rather than ``dir/``.
    """

    def __init__(self, base_path: Path, layers: Sequence[PatternLayer]):
        self.base_path = Path(base_path).resolve()
        self.layers = tuple(layers)
        self._patterns = tuple(
            pattern for layer in self.layers for pattern in layer.patterns
        )
        self._spec = pathspec.GitIgnoreSpec.from_lines(self._patterns)
        self._dir_cache: dict[str, bool] = {}

    @classmethod
    def from_options(
        cls,
        base_path: Path,
        *,
        config_patterns: Sequence[str] | None = None,
        cli_patterns: Sequence[str] | None = None,
        ignore_path: Path | None = None,
        respect_gitignore: bool = False,
        gitignore_path: Path | None = None,
        exclude_hidden: bool = True,
        use_builtin_patterns: bool = True,
    ) -> "ExclusionManager":
        base = Path(base_path).resolve()
        layers: list[PatternLayer] = []
        if use_builtin_patterns:
            layers.append(
                PatternLayer(SOURCE_BUILTIN, builtin_patterns(exclude_hidden=exclude_hidden))
            )
        if respect_gitignore:
            layers.append(
                PatternLayer(
                    SOURCE_GITIGNORE,
                    read_ignore_file(gitignore_path or base / GITIGNORE_FILE),
                )
            )
        ignore_file = ignore_path if ignore_path is not None else base / DEFAULT_IGNORE_FILE
        layers.append(PatternLayer(SOURCE_IGNORE_FILE, read_ignore_file(ignore_file)))
        layers.append(PatternLayer(SOURCE_CONFIG, _clean(config_patterns)))
        layers.append(PatternLayer(SOURCE_CLI, _clean(cli_patterns)))
        manager = cls(base, [layer for layer in layers if layer.patterns])
        stats = manager.stats
        logger.debug(
            "exclusion patterns loaded: total=%d %s",
            stats["total"],
            " ".join(f"{source}={stats[source]}" for source in LAYER_ORDER),
        )
        return manager

    @property
    def patterns(self) -> tuple[str, ...]:
        return self._patterns

    @property
    def stats(self) -> dict[str, int]:
        counts = {source: 0 for source in LAYER_ORDER}
        for layer in self.layers:
            counts[layer.source] = counts.get(layer.source, 0) + len(layer.patterns)
        counts["total"] = len(self._patterns)
        return counts

    def _relative(self, path: Path | str) -> str | None:
        candidate = Path(path)
        if not candidate.is_absolute():
            return candidate.as_posix()
        rel = os.path.relpath(candidate, self.base_path)
        if rel == ".." or rel.startswith(".." + os.sep):
            return None
        return Path(rel).as_posix()

    def _directory_matches(self, rel_dir: str) -> bool:
        cached = self._dir_cache.get(rel_dir)
        if cached is None:
            cached = self._spec.match_file(rel_dir + "/")
            self._dir_cache[rel_dir] = cached
        return cached

    def _ancestor_excluded(self, rel: str) -> bool:
        parts = rel.split("/")[:-1]
        for index in range(1, len(parts) + 1):
            if self._directory_matches("/".join(parts[:index])):
                return True
        return False

    def should_exclude(self, path: Path | str) -> bool:
        rel = self._relative(path)
        if rel is None or rel in ("", "."):
            return False
        if self._ancestor_excluded(rel):
            return True
        return self._spec.match_file(rel)

    def should_exclude_directory(self, path: Path | str) -> bool:
        rel = self._relative(path)
        if rel is None or rel in ("", "."):
            return False
        rel = rel.rstrip("/")
        if self._ancestor_excluded(rel):
            return True
        return self._directory_matches(rel) or self._spec.match_file(rel)

    def filter_paths(self, paths: Iterable[Path]) -> list[Path]:
        return [path for path in paths if not self.should_exclude(path)]
