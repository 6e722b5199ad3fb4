"""
Orchestrator

Glue layer: files -> source -> AST -> analyzer -> sink.
No rule logic lives here.
"""
import ast
import fnmatch
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from .analyzer import MutationAnalyzer
from .data_structures import Diagnostic
from .git_history import get_changed_python_files
from .policy import DEFAULT_POLICY, NamingPolicy
from .reporting import DiagnosticSink, gate_diagnostics

logger = logging.getLogger(__name__)

_ALWAYS_SKIPPED = {"venv", "__pycache__"}


@dataclass
class FileReport:
    path: str
    diagnostics: List[Diagnostic] = field(default_factory=list)
    suppressed: int = 0
    skipped: bool = False


@dataclass
class AnalysisResult:
    reports: List[FileReport] = field(default_factory=list)

    @property
    def diagnostics(self) -> List[Diagnostic]:
        collected = []
        for report in self.reports:
            collected.extend(report.diagnostics)
        return gate_diagnostics(collected)

    @property
    def files_analyzed(self) -> int:
        return sum(1 for r in self.reports if not r.skipped)


def _display_path(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


def _is_excluded(relative: Path, patterns: Sequence[str]) -> bool:
    parts = relative.parts
    if any(p.startswith(".") or p in _ALWAYS_SKIPPED for p in parts):
        return True
    for pattern in patterns:
        if fnmatch.fnmatch(relative.as_posix(), pattern):
            return True
        if any(fnmatch.fnmatch(p, pattern) for p in parts):
            return True
    return False


def discover_files(paths: Iterable[Path], policy: NamingPolicy = DEFAULT_POLICY) -> List[Path]:
    """
    Expand paths into Python files.

    Files named explicitly are always kept; directories are walked,
    skipping hidden, venv and cache directories and `exclude` patterns.
    """
    found = set()
    for raw in paths:
        path = Path(raw).resolve()
        if path.is_file():
            found.add(path)
            continue
        if not path.is_dir():
            raise ValueError(f"Path does not exist: {raw}")
        for file_path in path.rglob("*.py"):
            if not _is_excluded(file_path.relative_to(path), policy.exclude):
                found.add(file_path)
    return sorted(found)


def analyze_file(file_path: Path, policy: NamingPolicy = DEFAULT_POLICY) -> FileReport:
    display = _display_path(Path(file_path))
    try:
        source = Path(file_path).read_text(encoding="utf-8")
        module = ast.parse(source, filename=display)
    except (SyntaxError, ValueError, RecursionError) as e:
        # UnicodeDecodeError is a ValueError; so are null bytes in source.
        # Deeply nested expressions exhaust the parser's recursion limit.
        logger.warning("Skipping %s: %s", display, e)
        return FileReport(path=display, skipped=True)

    sink = DiagnosticSink(policy, file_path=display, source=source)
    try:
        MutationAnalyzer(policy, sink, source.splitlines()).analyze(module)
    except RecursionError as e:
        logger.warning("Skipping %s: nesting too deep to analyze (%s)", display, e)
        return FileReport(path=display, skipped=True)
    return FileReport(
        path=display,
        diagnostics=list(sink.diagnostics),
        suppressed=sink.suppressed_count,
    )


def _select_changed(paths: Sequence[Path], since: str, policy: NamingPolicy) -> List[Path]:
    roots = [Path(p).resolve() for p in paths]
    changed = get_changed_python_files(str(roots[0]), since)

    selected = []
    for file_path in changed:
        for root in roots:
            if file_path == root:
                selected.append(file_path)
                break
            if root.is_dir() and root in file_path.parents:
                if not _is_excluded(file_path.relative_to(root), policy.exclude):
                    selected.append(file_path)
                break
    return selected


def analyze_paths(
    paths: Sequence[Path],
    policy: NamingPolicy = DEFAULT_POLICY,
    since: Optional[str] = None,
    jobs: int = 1,
) -> AnalysisResult:
    """
    Analyze every Python file under the given paths.

    Each file gets its own analyzer; the policy is shared read-only, so
    files can be analyzed on several threads. Reports come back in path
    order regardless of completion order.
    """
    if not paths:
        paths = [Path(".")]

    if since is not None:
        files = _select_changed(paths, since, policy)
    else:
        files = discover_files(paths, policy)

    logger.debug("Analyzing %d file(s) with %d job(s)", len(files), jobs)

    if jobs <= 1 or len(files) <= 1:
        reports = [analyze_file(f, policy) for f in files]
    else:
        reports = []
        with ThreadPoolExecutor(max_workers=jobs) as executor:
            futures = [executor.submit(analyze_file, f, policy) for f in files]
            for future in as_completed(futures):
                reports.append(future.result())

    reports.sort(key=lambda r: r.path)
    return AnalysisResult(reports=reports)
