from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Callable

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


import pytest


@pytest.fixture(autouse=True)
def _isolate_user_config(tmp_path_factory, monkeypatch):
    missing = tmp_path_factory.mktemp("user-config") / "config.toml"
    monkeypatch.setenv("DOCLINT_USER_CONFIG", str(missing))
    monkeypatch.delenv("NO_COLOR", raising=False)
    yield
    package_logger = logging.getLogger("doclint")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)


@pytest.fixture
def tmp_path(tmp_path: Path) -> Path:
    # graph nodes are canonical paths
    return tmp_path.resolve()


@pytest.fixture
def write_tree(tmp_path: Path) -> Callable[[dict[str, str]], Path]:
    """Write ``{relative path: content}`` under ``tmp_path`` and return the root."""

    def _write(files: dict[str, str], root: Path | None = None) -> Path:
        base = root if root is not None else tmp_path
        for relative, content in files.items():
            path = base / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return base.resolve()

    return _write
