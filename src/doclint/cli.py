from __future__ import annotations

import json
import logging
import os
import sys
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

import typer

from doclint.analysis.dependencies import DependencyAnalyzer
from doclint.analysis.frontmatter import FrontmatterQuery
from doclint.analysis.fs_walk import display_path
from doclint.analysis.graph import DocGraph
from doclint.analysis.graph_builder import common_ancestor
from doclint.analysis.linter import DocLinter
from doclint.config import (
    DEFAULT_CONFIG_NAME,
    RuntimeConfig,
    TomlTable,
    load_runtime_config,
    parse_depth,
    write_default_config,
)
from doclint.exceptions import (
    DirectoryNotFoundError,
    DocLintError,
    EntrypointNotFoundError,
    ExitCode,
    FileNotInGraphError,
    InvalidConfigError,
    InvalidOptionError,
)
from doclint.reporting import content_output, dependency_report, lint_report

app = typer.Typer(
    add_completion=False,
    help="Validate the link structure of a tree of markdown files.",
)

logger = logging.getLogger(__name__)

FILES_SORTS = ("alpha", "depth", "incoming", "outgoing")
FILES_FORMATS = ("list", "json")

_LEVEL_COLORS = {
    logging.WARNING: typer.colors.YELLOW,
    logging.ERROR: typer.colors.RED,
    logging.CRITICAL: typer.colors.RED,
}


@dataclass(frozen=True)
class CliState:
    config_path: Path | None = None
    verbose: bool = False
    quiet: bool = False
    colors: bool = False


class _EchoHandler(logging.Handler):
    """Routes log records to stderr through typer so test runners can capture them."""

    def __init__(self, colors: bool) -> None:
        super().__init__()
        self.colors = colors

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
            color = _LEVEL_COLORS.get(record.levelno)
            if self.colors and color is not None:
                message = typer.style(message, fg=color)
            typer.echo(message, err=True)
        except Exception:
            self.handleError(record)


def _configure_logging(*, verbose: bool, quiet: bool, colors: bool) -> None:
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING
    package_logger = logging.getLogger("doclint")
    for handler in list(package_logger.handlers):
        if isinstance(handler, _EchoHandler):
            package_logger.removeHandler(handler)
    handler = _EchoHandler(colors)
    handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    package_logger.addHandler(handler)
    package_logger.setLevel(level)


def _default_colors() -> bool:
    return sys.stdout.isatty() and "NO_COLOR" not in os.environ


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(None, "--config", help="Path to a doclint.toml file."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug diagnostics."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only show errors on stderr."),
    colors: Optional[bool] = typer.Option(None, "--colors/--no-colors"),
) -> None:
    use_colors = _default_colors() if colors is None else colors
    _configure_logging(verbose=verbose, quiet=quiet, colors=use_colors)
    ctx.obj = CliState(config_path=config, verbose=verbose, quiet=quiet, colors=use_colors)


def _state(ctx: typer.Context) -> CliState:
    obj = ctx.obj
    if isinstance(obj, CliState):
        return obj
    return CliState()


def _report_error(exc: DocLintError, state: CliState) -> None:
    typer.secho(exc.message, err=True, fg=typer.colors.RED if state.colors else None)
    if state.verbose:
        details = exc.to_dict()
        typer.echo(f"code: {details['code']}", err=True)
        if details["context"]:
            typer.echo(f"context: {json.dumps(details['context'], sort_keys=True)}", err=True)


@contextmanager
def _handled(state: CliState) -> Iterator[None]:
    try:
        yield
    except DocLintError as exc:
        _report_error(exc, state)
        raise typer.Exit(code=int(exc.exit_code))
    except KeyboardInterrupt:
        typer.secho("Interrupted", err=True, fg=typer.colors.YELLOW if state.colors else None)
        raise typer.Exit(code=int(ExitCode.INTERRUPTED))


def _check_choice(option: str, value: str, choices: Sequence[str]) -> None:
    if value not in choices:
        raise InvalidOptionError(option, value, tuple(choices))


def _progress(state: CliState, message: str) -> None:
    if not state.quiet:
        typer.echo(message, err=True)


def _load(state: CliState, overrides: TomlTable) -> RuntimeConfig:
    return load_runtime_config(root=Path.cwd(), config_path=state.config_path, overrides=overrides)


def _graph_overrides(
    *,
    entrypoint: Optional[List[str]] = None,
    depth: Optional[str] = None,
    exclude_hidden: Optional[bool] = None,
    respect_gitignore: Optional[bool] = None,
) -> TomlTable:
    return {
        "entrypoint": list(entrypoint) if entrypoint else None,
        "depth": parse_depth(depth),
        "exclude_hidden": exclude_hidden,
        "respect_gitignore": respect_gitignore,
    }


def _resolve_lint_targets(paths: Sequence[Path]) -> tuple[Path, list[Path] | None]:
    """Base path and explicit entrypoints for ``lint``'s positional paths."""
    if not paths:
        return Path.cwd().resolve(), None
    if len(paths) == 1:
        target = paths[0]
        if target.is_dir():
            return target.resolve(), None
        if target.is_file():
            resolved = target.resolve()
            return resolved.parent, [resolved]
        if target.suffix:
            raise EntrypointNotFoundError(target)
        raise DirectoryNotFoundError(target)
    directories = [str(path) for path in paths if path.is_dir()]
    if directories:
        raise InvalidConfigError(
            "multiple paths must all be files; directories given: " + ", ".join(directories)
        )
    missing = [path for path in paths if not path.is_file()]
    if missing:
        raise EntrypointNotFoundError(missing[0])
    resolved = [path.resolve() for path in paths]
    return common_ancestor(resolved), resolved


@app.command("lint")
def lint(
    ctx: typer.Context,
    paths: Optional[List[Path]] = typer.Argument(None, help="A directory, a file, or several files."),
    entrypoint: Optional[List[str]] = typer.Option(None, "--entrypoint", "-e"),
    depth: Optional[str] = typer.Option(None, "--depth", help="Maximum link depth or 'unlimited'."),
    output_format: str = typer.Option("text", "--format", "-f", help="text|json|grep"),
    exclude: Optional[List[str]] = typer.Option(None, "--exclude"),
    respect_gitignore: Optional[bool] = typer.Option(
        None, "--respect-gitignore/--no-respect-gitignore"
    ),
    exclude_hidden: Optional[bool] = typer.Option(None, "--exclude-hidden/--no-exclude-hidden"),
    scope_root: Optional[str] = typer.Option(None, "--scope-root"),
    scope_limit: Optional[bool] = typer.Option(None, "--scope-limit/--no-scope-limit"),
    external_links: Optional[str] = typer.Option(
        None, "--external-links", help="validate|warn|error|ignore"
    ),
    max_concurrency: Optional[int] = typer.Option(None, "--max-concurrency"),
) -> None:
    """Check for orphaned files, dead links and dead anchors."""
    state = _state(ctx)
    with _handled(state):
        _check_choice("--format", output_format, lint_report.LINT_FORMATS)
        base_path, entrypoints = _resolve_lint_targets(paths or [])
        overrides = _graph_overrides(
            entrypoint=entrypoint,
            depth=depth,
            exclude_hidden=exclude_hidden,
            respect_gitignore=respect_gitignore,
        )
        overrides.update(
            scope_root=scope_root,
            scope_limit=scope_limit,
            external_links=external_links,
            max_concurrency=max_concurrency,
        )
        config = _load(state, overrides)
        linter = DocLinter(config, base_path, cli_excludes=exclude)
        results = linter.lint(entrypoints)

    if output_format == "json":
        typer.echo(lint_report.format_json(results.findings))
    elif output_format == "grep":
        if results.findings:
            typer.echo(lint_report.format_grep(results.findings))
    elif results.findings:
        typer.echo(lint_report.format_text(results.findings, colors=state.colors))
        typer.secho(
            lint_report.format_summary(results.error_count, results.warning_count),
            err=True,
            fg=(typer.colors.RED if results.has_errors else typer.colors.YELLOW) if state.colors else None,
        )
    else:
        _progress(state, "No issues found!")
    raise typer.Exit(code=int(ExitCode.ERROR if results.has_errors else ExitCode.SUCCESS))


def _build_project_graph(
    state: CliState,
    overrides: TomlTable,
    exclude: Optional[List[str]],
) -> tuple[DocLinter, DocGraph]:
    config = _load(state, overrides)
    linter = DocLinter(config, Path.cwd(), cli_excludes=exclude)
    return linter, linter.build_graph()


@app.command("deps")
def deps(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help="File to analyze."),
    incoming: bool = typer.Option(False, "--incoming", help="Only files that reference this file."),
    outgoing: bool = typer.Option(False, "--outgoing", help="Only files this file references."),
    depth: Optional[str] = typer.Option(None, "--depth", help="Maximum tree depth or 'unlimited'."),
    output_format: str = typer.Option("tree", "--format", "-f", help="tree|list|json"),
    entrypoint: Optional[List[str]] = typer.Option(None, "--entrypoint", "-e"),
    exclude: Optional[List[str]] = typer.Option(None, "--exclude"),
) -> None:
    """Show what references a file and what it references."""
    state = _state(ctx)
    with _handled(state):
        _check_choice("--format", output_format, dependency_report.DEPENDENCY_FORMATS)
        tree_depth = parse_depth(depth)
        linter, graph = _build_project_graph(
            state, _graph_overrides(entrypoint=entrypoint), exclude
        )
        show_incoming = incoming or not outgoing
        show_outgoing = outgoing or not incoming
        report = DependencyAnalyzer(graph, linter.base_path).analyze(
            file.resolve(),
            include_incoming=show_incoming,
            include_outgoing=show_outgoing,
            max_depth=None if tree_depth in (None, "unlimited") else int(tree_depth),
        )

    if output_format == "json":
        typer.echo(dependency_report.format_json(report))
    elif output_format == "list":
        typer.echo(
            dependency_report.format_list(
                report,
                show_incoming=show_incoming,
                show_outgoing=show_outgoing,
                colors=state.colors,
            )
        )
    else:
        typer.echo(
            dependency_report.format_tree(
                report,
                show_incoming=show_incoming,
                show_outgoing=show_outgoing,
                colors=state.colors,
            )
        )
    raise typer.Exit(code=int(ExitCode.SUCCESS))


@app.command("cat")
def cat(
    ctx: typer.Context,
    files: Optional[List[Path]] = typer.Argument(None, help="Only output these graph files."),
    order: str = typer.Option("deps", "--order", help="deps|alpha"),
    separator: str = typer.Option(content_output.DEFAULT_SEPARATOR, "--separator"),
    output_format: str = typer.Option("markdown", "--format", "-f", help="markdown|json"),
    depth: Optional[str] = typer.Option(None, "--depth"),
    entrypoint: Optional[List[str]] = typer.Option(None, "--entrypoint", "-e"),
    exclude: Optional[List[str]] = typer.Option(None, "--exclude"),
) -> None:
    """Concatenate documentation content in dependency or alphabetical order."""
    state = _state(ctx)
    with _handled(state):
        _check_choice("--order", order, content_output.CONTENT_ORDERS)
        _check_choice("--format", output_format, content_output.CONTENT_FORMATS)
        linter, graph = _build_project_graph(
            state, _graph_overrides(entrypoint=entrypoint, depth=depth), exclude
        )
        selected = [path.resolve() for path in files or []]
        for path in selected:
            if path not in graph:
                raise FileNotInGraphError(display_path(path, linter.base_path))
        ordered = content_output.ordered_files(graph, order, selected)
        if not ordered:
            _progress(state, "No files to output")
            raise typer.Exit(code=int(ExitCode.SUCCESS))
        _progress(state, f"Outputting {len(ordered)} file(s)...")
        entries = content_output.collect_entries(graph, linter.cache, ordered, linter.base_path)

    if output_format == "json":
        typer.echo(content_output.render_json(entries))
    else:
        typer.echo(
            content_output.render_markdown(entries, content_output.decode_separator(separator))
        )
    raise typer.Exit(code=int(ExitCode.SUCCESS))


def _sort_files(graph: DocGraph, files: list[Path], sort: str) -> list[Path]:
    if sort == "depth":
        return sorted(files, key=lambda path: (_depth_key(graph, path), str(path)))
    if sort == "incoming":
        return sorted(files, key=lambda path: (-len(graph.incoming(path)), str(path)))
    if sort == "outgoing":
        return sorted(files, key=lambda path: (-len(graph.outgoing(path)), str(path)))
    return sorted(files)


def _depth_key(graph: DocGraph, path: Path) -> float:
    depth = graph.depth_of(path)
    return float("inf") if depth is None else depth


@app.command("files")
def files(
    ctx: typer.Context,
    orphans: bool = typer.Option(False, "--orphans", help="List orphaned files instead."),
    depth: Optional[str] = typer.Option(None, "--depth", help="Only files at this depth or less."),
    sort: str = typer.Option("alpha", "--sort", help="alpha|depth|incoming|outgoing"),
    output_format: str = typer.Option("list", "--format", "-f", help="list|json"),
    absolute: bool = typer.Option(False, "--absolute"),
    with_depth: bool = typer.Option(False, "--with-depth"),
    print0: bool = typer.Option(False, "--print0", help="Separate entries with NUL."),
    frontmatter: Optional[str] = typer.Option(
        None, "--frontmatter", help="Keep files whose frontmatter matches this JMESPath query."
    ),
    entrypoint: Optional[List[str]] = typer.Option(None, "--entrypoint", "-e"),
    exclude: Optional[List[str]] = typer.Option(None, "--exclude"),
) -> None:
    """List files in the documentation graph."""
    state = _state(ctx)
    with _handled(state):
        _check_choice("--sort", sort, FILES_SORTS)
        _check_choice("--format", output_format, FILES_FORMATS)
        max_depth = parse_depth(depth)
        query = FrontmatterQuery(frontmatter) if frontmatter is not None else None
        linter, graph = _build_project_graph(
            state, _graph_overrides(entrypoint=entrypoint), exclude
        )
        if orphans:
            listed = list(linter.analyzer.find_orphans(graph).files)
        else:
            listed = graph.all_nodes()
            if max_depth not in (None, "unlimited"):
                listed = [path for path in listed if (graph.depth_of(path) or 0) <= int(max_depth)]
        if query is not None:
            listed = query.filter(linter.cache, listed)
        listed = _sort_files(graph, listed, sort)

    def shown(path: Path) -> str:
        return str(path) if absolute else display_path(path, linter.base_path)

    if output_format == "json":
        payload = [
            {"file": shown(path), "depth": graph.depth_of(path), "orphan": orphans}
            for path in listed
        ]
        typer.echo(json.dumps(payload, indent=2))
    else:
        entries = []
        for path in listed:
            entry = shown(path)
            if with_depth:
                node_depth = graph.depth_of(path)
                entry = f"{'orphan' if node_depth is None else node_depth} {entry}"
            entries.append(entry)
        if print0:
            typer.echo("\0".join(entries), nl=False)
        elif entries:
            typer.echo("\n".join(entries))
    raise typer.Exit(code=int(ExitCode.SUCCESS))


@app.command("init")
def init(
    ctx: typer.Context,
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file."),
) -> None:
    """Write a commented default doclint.toml."""
    state = _state(ctx)
    target = state.config_path or Path.cwd() / DEFAULT_CONFIG_NAME
    with _handled(state):
        write_default_config(target, force=force)
    _progress(state, f"Created {target}")
    raise typer.Exit(code=int(ExitCode.SUCCESS))


@app.command("config")
def show_config(ctx: typer.Context) -> None:
    """Print the merged runtime configuration as JSON."""
    state = _state(ctx)
    with _handled(state):
        config = _load(state, {})
    typer.echo(json.dumps(config.model_dump(mode="json"), indent=2, sort_keys=True))
    raise typer.Exit(code=int(ExitCode.SUCCESS))
