from __future__ import annotations

import logging
import os
from pathlib import Path

from doclint.analysis.content import is_markdown_path
from doclint.analysis.exclusion import ExclusionManager
from doclint.exceptions import DirectoryNotFoundError, PermissionDeniedError

logger = logging.getLogger(__name__)


def display_path(path: Path, base_path: Path) -> str:
    """POSIX path relative to ``base_path``, or absolute when outside it."""
    try:
        return Path(path).relative_to(base_path).as_posix()
    except ValueError:
        return Path(path).as_posix()


def _raise_walk_error(exc: OSError) -> None:
    target = exc.filename or "?"
    if isinstance(exc, PermissionError):
        raise PermissionDeniedError(target) from exc
    raise DirectoryNotFoundError(target) from exc


def find_markdown_files(
    root: Path, exclusions: ExclusionManager | None = None
) -> list[Path]:
    """All markdown files under ``root``, canonical and sorted.

    Excluded directories are pruned before descending; symlinked directories
    are not followed.
    """
    root = Path(root).resolve()
    if not root.is_dir():
        raise DirectoryNotFoundError(root)
    files: list[Path] = []
    for current, dirs, filenames in os.walk(root, onerror=_raise_walk_error):
        here = Path(current)
        if exclusions is not None:
            kept = []
            for name in sorted(dirs):
                if exclusions.should_exclude_directory(here / name):
                    logger.debug("pruned directory %s", here / name)
                    continue
                kept.append(name)
            dirs[:] = kept
        else:
            dirs.sort()
        for name in filenames:
            if not is_markdown_path(name):
                continue
            path = here / name
            if exclusions is not None and exclusions.should_exclude(path):
                continue
            if path.is_file():
                files.append(path.resolve())
    return sorted(set(files))
