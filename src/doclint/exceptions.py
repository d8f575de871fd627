"""Operational failures raised by doclint.

Validation findings (dead links, orphans, ...) are data and never raised.
Everything here aborts the run: each error carries a machine-readable ``code``
and the process exit code the CLI should use.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Mapping


class ExitCode(IntEnum):
    SUCCESS = 0
    ERROR = 1
    USAGE_ERROR = 2
    INTERRUPTED = 130


class DocLintError(Exception):
    """Base class for all operational doclint failures."""

    code = "DOCLINT_ERROR"
    exit_code = ExitCode.ERROR

    def __init__(self, message: str, *, context: Mapping[str, object] | None = None):
        super().__init__(message)
        self.message = message
        self.context: dict[str, object] = dict(context or {})

    def to_dict(self) -> dict[str, object]:
        return {
            "code": self.code,
            "message": self.message,
            "exit_code": int(self.exit_code),
            "context": {key: str(value) for key, value in self.context.items()},
        }


class InvalidConfigError(DocLintError):
    code = "INVALID_CONFIG"
    exit_code = ExitCode.USAGE_ERROR

    def __init__(self, message: str, *, context: Mapping[str, object] | None = None):
        super().__init__(f"Invalid configuration: {message}", context=context)


class InvalidDepthError(InvalidConfigError):
    code = "INVALID_DEPTH"

    def __init__(self, value: object):
        super().__init__(
            f"depth must be a non-negative integer or 'unlimited', got {value!r}",
            context={"value": value},
        )


class InvalidOptionError(InvalidConfigError):
    code = "INVALID_OPTION"

    def __init__(self, option: str, value: object, choices: tuple[str, ...]):
        super().__init__(
            f"{option} must be one of {', '.join(choices)}, got {value!r}",
            context={"option": option, "value": value},
        )


class ConfigExistsError(DocLintError):
    code = "CONFIG_EXISTS"
    exit_code = ExitCode.USAGE_ERROR

    def __init__(self, path: object):
        super().__init__(
            f"Configuration file already exists: {path} (use --force to overwrite)",
            context={"path": path},
        )


class EntrypointNotFoundError(DocLintError):
    code = "ENTRYPOINT_NOT_FOUND"
    exit_code = ExitCode.USAGE_ERROR

    def __init__(self, path: object):
        super().__init__(f"Entrypoint not found: {path}", context={"path": path})


class OutsideScopeError(DocLintError):
    code = "OUTSIDE_SCOPE"
    exit_code = ExitCode.USAGE_ERROR

    def __init__(self, path: object, scope_root: object):
        super().__init__(
            f"Entrypoint {path} is outside scope root {scope_root}. "
            "Use --scope-root to set a different scope or --no-scope-limit to disable scoping.",
            context={"path": path, "scope_root": scope_root},
        )


class DirectoryNotFoundError(DocLintError):
    code = "DIRECTORY_NOT_FOUND"
    exit_code = ExitCode.USAGE_ERROR

    def __init__(self, path: object):
        super().__init__(f"Directory not found: {path}", context={"path": path})


class PermissionDeniedError(DocLintError):
    code = "PERMISSION_DENIED"

    def __init__(self, path: object):
        super().__init__(f"Permission denied: {path}", context={"path": path})


class FileNotInGraphError(DocLintError):
    code = "FILE_NOT_IN_GRAPH"
    exit_code = ExitCode.USAGE_ERROR

    def __init__(self, path: object):
        super().__init__(
            f"File not found in dependency graph: {path} "
            "(it may be orphaned or outside the documentation tree)",
            context={"path": path},
        )


class ContentReadError(DocLintError):
    """A markdown file could not be read or decoded.

    During validation this becomes an ``unreadable-file`` finding instead of
    aborting the run.
    """

    code = "CONTENT_UNREADABLE"

    def __init__(self, path: object, reason: str):
        super().__init__(f"Cannot read {path}: {reason}", context={"path": path, "reason": reason})
        self.reason = reason


class InvalidQueryError(InvalidConfigError):
    code = "INVALID_QUERY"

    def __init__(self, query: str, reason: str):
        super().__init__(
            f"invalid frontmatter query {query!r}: {reason}",
            context={"query": query, "reason": reason},
        )


class FrontmatterError(DocLintError):
    """YAML frontmatter that does not parse into a mapping."""

    code = "INVALID_FRONTMATTER"

    def __init__(self, path: object, reason: str):
        super().__init__(
            f"Invalid frontmatter in {path}: {reason}", context={"path": path, "reason": reason}
        )
        self.reason = reason
