"""
Git change detection.

Handles:
- Repository detection using subprocess (no GitPython dependency)
- Revision validation
- Listing Python files changed since a revision, plus untracked ones

Used to restrict a check to the files a change actually touches.
"""

import subprocess
from pathlib import Path
from typing import List, Tuple


class GitHistoryParser:
    """Answers "which Python files changed?" for a Git working tree."""

    def __init__(self, repo_path: str):
        self.repo_path = Path(repo_path).resolve()
        if self.repo_path.is_file():
            self.repo_path = self.repo_path.parent

        result = subprocess.run(
            ["git", "rev-parse", "--git-dir"],
            cwd=self.repo_path,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
        if result.returncode != 0:
            raise ValueError(f"Not a Git repository: {repo_path}")

    def _run_git(self, args: List[str], check: bool = True) -> Tuple[int, str, str]:
        result = subprocess.run(
            ["git"] + args,
            cwd=self.repo_path,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
        if check and result.returncode != 0:
            raise RuntimeError(
                f"Git command failed: {' '.join(args)}\n{result.stderr}"
            )
        return result.returncode, result.stdout, result.stderr

    def toplevel(self) -> Path:
        _, stdout, _ = self._run_git(["rev-parse", "--show-toplevel"])
        return Path(stdout.strip()).resolve()

    def verify_revision(self, revision: str) -> None:
        code, _, _ = self._run_git(
            ["rev-parse", "--verify", "--quiet", f"{revision}^{{commit}}"], check=False
        )
        if code != 0:
            raise ValueError(f"Unknown revision: {revision}")

    def changed_python_files(self, since: str) -> List[Path]:
        """
        Python files changed between `since` and the working tree.

        Includes untracked files, excludes deleted ones. Returns absolute
        paths, sorted.
        """
        self.verify_revision(since)
        root = self.toplevel()

        _, diff_out, _ = self._run_git(
            ["diff", "--name-only", "--diff-filter=d", since, "--"]
        )
        _, untracked_out, _ = self._run_git(
            ["ls-files", "--others", "--exclude-standard", "--full-name"]
        )

        changed = set()
        for line in diff_out.splitlines() + untracked_out.splitlines():
            if not line.endswith(".py"):
                continue
            path = root / line
            if path.is_file():
                changed.add(path)

        return sorted(changed)


def get_changed_python_files(repo_path: str, since: str) -> List[Path]:
    parser = GitHistoryParser(repo_path)
    return parser.changed_python_files(since)
