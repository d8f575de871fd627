from __future__ import annotations

import os
from datetime import date, datetime, time
from pathlib import Path
from typing import Dict, List, Literal, Optional, TypeAlias, Union
import tomllib

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from doclint.exceptions import ConfigExistsError, InvalidConfigError, InvalidDepthError
from doclint.schema import RULES, ExternalLinkPolicy, RuleSeverity

DEFAULT_CONFIG_NAME = "doclint.toml"
USER_CONFIG_ENV = "DOCLINT_USER_CONFIG"
UNLIMITED = "unlimited"

TomlScalar: TypeAlias = str | int | float | bool | None | date | datetime | time
TomlValue: TypeAlias = TomlScalar | list["TomlValue"] | dict[str, "TomlValue"]
TomlTable: TypeAlias = dict[str, TomlValue]

DEFAULT_RULES: Dict[str, str] = {
    "orphan-files": "error",
    "dead-link": "error",
    "dead-anchor": "error",
    "unreadable-file": "error",
}

DEFAULT_CONFIG_TEMPLATE = """\
# doclint configuration
# Values here override user configuration; command-line options override both.

# Root document(s) for graph traversal, relative to the project directory.
entrypoint = "README.md"

# Maximum link depth to follow: a non-negative integer or "unlimited".
# Orphan detection is skipped when the depth is limited.
depth = "unlimited"

# Number of files validated concurrently (1-100).
max_concurrency = 10

# Links leaving the scope directory are recorded but not followed.
# scope_root = "docs"
scope_limit = true

# External http(s) links are never fetched: validate | warn | error | ignore
external_links = "validate"

# Gitignore-style exclusion patterns.
exclude = []
# ignore_file = ".doclintignore"
respect_gitignore = false
exclude_hidden = true
use_builtin_excludes = true

[rules]
orphan-files = "error"
dead-link = "error"
dead-anchor = "error"
unreadable-file = "error"
"""


class RuntimeConfig(BaseModel):
    """Fully merged configuration for one invocation."""

    model_config = ConfigDict(extra="forbid")

    entrypoint: Union[str, List[str]] = "README.md"
    depth: Union[int, Literal["unlimited"]] = UNLIMITED
    max_concurrency: int = Field(default=10, ge=1, le=100)
    scope_root: Optional[str] = None
    scope_limit: bool = True
    external_links: ExternalLinkPolicy = "validate"
    exclude: List[str] = []
    ignore_file: Optional[str] = None
    respect_gitignore: bool = False
    exclude_hidden: bool = True
    use_builtin_excludes: bool = True
    rules: Dict[str, RuleSeverity] = Field(default_factory=lambda: dict(DEFAULT_RULES))

    @field_validator("depth")
    @classmethod
    def _non_negative_depth(cls, value: int | str) -> int | str:
        if isinstance(value, int) and value < 0:
            raise ValueError("depth must be >= 0 or 'unlimited'")
        return value

    @field_validator("rules")
    @classmethod
    def _known_rules(cls, value: Dict[str, str]) -> Dict[str, str]:
        unknown = sorted(set(value) - set(RULES))
        if unknown:
            raise ValueError(f"unknown rule(s): {', '.join(unknown)}")
        return value

    @property
    def max_depth(self) -> int | None:
        return None if self.depth == UNLIMITED else int(self.depth)

    @property
    def entrypoints(self) -> list[str]:
        if isinstance(self.entrypoint, str):
            return [self.entrypoint]
        return list(self.entrypoint)


def _load_toml(path: Path, *, required: bool = False) -> TomlTable:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        if required:
            raise InvalidConfigError(f"config file not found: {path}", context={"path": path})
        return {}
    except OSError as exc:
        raise InvalidConfigError(f"cannot read {path}: {exc}", context={"path": path}) from exc
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError as exc:
        raise InvalidConfigError(f"{path}: {exc}", context={"path": path}) from exc
    return data if isinstance(data, dict) else {}


def user_config_path() -> Path:
    explicit = os.environ.get(USER_CONFIG_ENV)
    if explicit:
        return Path(explicit).expanduser()
    xdg = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg) if xdg else Path.home() / ".config"
    return base / "doclint" / "config.toml"


def load_config(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    """Project configuration: ``config_path`` if given (must exist), else ``<root>/doclint.toml``."""
    if config_path is not None:
        return _load_toml(Path(config_path), required=True)
    base = root if root is not None else Path.cwd()
    return _load_toml(base / DEFAULT_CONFIG_NAME)


def load_user_config() -> TomlTable:
    return _load_toml(user_config_path())


def merge_payload(payload: TomlTable, defaults: TomlTable) -> TomlTable:
    """Overlay ``payload`` on ``defaults``; ``None`` never overrides and tables merge by key."""
    merged = dict(defaults)
    for key, value in payload.items():
        if value is None:
            continue
        current = merged.get(key)
        if isinstance(value, dict) and isinstance(current, dict):
            merged[key] = {**current, **value}
            continue
        merged[key] = value
    return merged


def parse_depth(value: object) -> int | str | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidDepthError(value)
    if isinstance(value, int):
        if value < 0:
            raise InvalidDepthError(value)
        return value
    text = str(value).strip().lower()
    if text == UNLIMITED:
        return UNLIMITED
    try:
        depth = int(text)
    except ValueError:
        raise InvalidDepthError(value) from None
    if depth < 0:
        raise InvalidDepthError(value)
    return depth


def _describe(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "config"
        parts.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts)


def build_runtime_config(*layers: TomlTable) -> RuntimeConfig:
    """Merge layers lowest precedence first and validate the result."""
    merged: TomlTable = {"rules": dict(DEFAULT_RULES)}
    for layer in layers:
        merged = merge_payload(layer, merged)
    if "depth" in merged:
        depth = merged["depth"]
        if isinstance(depth, str):
            merged["depth"] = parse_depth(depth)
    try:
        return RuntimeConfig.model_validate(merged)
    except ValidationError as exc:
        raise InvalidConfigError(_describe(exc)) from exc


def load_runtime_config(
    root: Path | None = None,
    config_path: Path | None = None,
    overrides: TomlTable | None = None,
) -> RuntimeConfig:
    """defaults < user config < project config < ``overrides`` (command-line values)."""
    return build_runtime_config(
        load_user_config(),
        load_config(root=root, config_path=config_path),
        overrides or {},
    )


def write_default_config(path: Path, *, force: bool = False) -> Path:
    if path.exists() and not force:
        raise ConfigExistsError(path)
    path.write_text(DEFAULT_CONFIG_TEMPLATE, encoding="utf-8")
    return path
