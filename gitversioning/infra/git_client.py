"""
Git client infrastructure for gitversioning.

Provides a clean abstraction over git command execution.
All repository queries go through this client, making them:
- Easy to mock for testing
- Consistent in error handling
- Isolated from versioning logic
"""

import subprocess
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Pattern, Tuple
import logging

from ..domain.refs import GitDescription, MATCH_ALL
from ..exit_codes import GitError, NotARepositoryError
from ..utils import version_sort_key

logger = logging.getLogger(__name__)

NO_COMMIT = "0" * 40
DESCRIBE_ROOT_TAG = "root"


class GitClient:
    """
    Abstraction over git commands for one work tree.

    Example:
        client = GitClient("/path/to/repo")
        if client.is_clean():
            print(client.head_commit())
    """

    def __init__(self, path, timeout: int = 30):
        """
        Initialize GitClient.

        Args:
            path: Any directory inside the work tree
            timeout: Command timeout in seconds (default: 30)
        """
        self.path = str(path)
        self.timeout = timeout

    def _run(self, cmd: List[str], check: bool = True) -> Tuple[Optional[str], int]:
        """
        Run a git command.

        Args:
            cmd: Command and arguments
            check: Raise GitError on non-zero exit

        Returns:
            Tuple of (stdout, returncode)
        """
        logger.debug(f"Running command in '{self.path}': {' '.join(cmd)}")
        try:
            result = subprocess.run(
                cmd,
                cwd=self.path,
                capture_output=True,
                text=True,
                timeout=self.timeout
            )
        except subprocess.TimeoutExpired as e:
            raise GitError(f"git command timed out: {' '.join(cmd)}") from e
        except OSError as e:
            raise GitError(f"git command failed: {' '.join(cmd)} - {e}") from e

        if check and result.returncode != 0:
            raise GitError(
                f"git command failed with exit code {result.returncode}: "
                f"{' '.join(cmd)} - {result.stderr.strip()}"
            )
        output = result.stdout
        return output.strip() if output else None, result.returncode

    def root_directory(self) -> Path:
        """Top level directory of the work tree."""
        output, code = self._run(["git", "rev-parse", "--show-toplevel"], check=False)
        if code != 0 or not output:
            raise NotARepositoryError(self.path)
        return Path(output)

    def head_commit(self) -> str:
        """HEAD commit hash, forty zeros in a repository without commits."""
        output, code = self._run(["git", "rev-parse", "--verify", "-q", "HEAD"], check=False)
        if code != 0 or not output:
            return NO_COMMIT
        return output

    def current_branch(self) -> Optional[str]:
        """Checked out branch name, None for a detached HEAD."""
        output, code = self._run(["git", "symbolic-ref", "-q", "--short", "HEAD"], check=False)
        if code != 0 or not output:
            return None
        return output

    def head_tags(self) -> List[str]:
        """Tags pointing at HEAD."""
        if self.head_commit() == NO_COMMIT:
            return []
        output, _ = self._run(["git", "tag", "--points-at", "HEAD"])
        return output.splitlines() if output else []

    def head_timestamp(self) -> datetime:
        """Committer time of HEAD, the epoch in a repository without commits."""
        if self.head_commit() == NO_COMMIT:
            return datetime.fromtimestamp(0, tz=timezone.utc)
        output, _ = self._run(["git", "log", "-1", "--format=%ct", "HEAD"])
        return datetime.fromtimestamp(int(output), tz=timezone.utc)

    def is_clean(self) -> bool:
        """True if the work tree has no uncommitted or untracked changes."""
        output, _ = self._run(["git", "status", "--porcelain"])
        return not output

    def tags_by_commit(self) -> Dict[str, List[str]]:
        """All tags keyed by the commit they (or their annotated tag object) point at."""
        output, _ = self._run([
            "git", "for-each-ref", "refs/tags",
            "--format=%(refname:short) %(objectname) %(*objectname)",
        ])
        tags: Dict[str, List[str]] = {}
        for line in (output or '').splitlines():
            parts = line.split()
            if len(parts) < 2:
                continue
            name = parts[0]
            commit = parts[2] if len(parts) > 2 else parts[1]
            tags.setdefault(commit, []).append(name)
        return tags

    def describe(self, tag_pattern: Pattern = MATCH_ALL) -> GitDescription:
        """
        Nearest reachable tag fully matching `tag_pattern` and its distance.

        Among several matching tags on the same commit the highest
        version wins. Without any matching tag the description refers to
        the pseudo tag "root" with the number of reachable commits.
        """
        head = self.head_commit()
        if head == NO_COMMIT:
            return GitDescription(head, DESCRIBE_ROOT_TAG, 0)

        tags = self.tags_by_commit()
        output, _ = self._run(["git", "rev-list", "HEAD"])
        commits = output.splitlines() if output else []
        for commit in commits:
            candidates = [tag for tag in tags.get(commit, []) if tag_pattern.fullmatch(tag)]
            if candidates:
                tag = max(candidates, key=version_sort_key)
                if commit == head:
                    distance = 0
                else:
                    count, _ = self._run(["git", "rev-list", "--count", f"{commit}..HEAD"])
                    distance = int(count)
                return GitDescription(head, tag, distance)

        return GitDescription(head, DESCRIBE_ROOT_TAG, len(commits))
