"""Git operations used by the refresher and the build pipeline.

Each function runs one git command through run_command() and raises
GitError with the captured output when git exits non-zero.
"""

from __future__ import annotations

import logging
from pathlib import Path

from brewtroller_buildbot.process import CommandResult, run_command

logger = logging.getLogger(__name__)


class GitError(Exception):
    """Raised when a git command fails."""

    def __init__(self, message: str, output: str = "", code: str = "git_error") -> None:
        super().__init__(message)
        self.output = output
        self.code = code


def _git(
    args: list[str],
    cwd: Path | None = None,
    timeout: float | None = None,
    parse_output: bool = False,
) -> CommandResult:
    # Parsed output must be stdout alone; git writes warnings to stderr.
    result = run_command(
        ["git", *args], cwd=cwd, timeout=timeout, merge_stderr=not parse_output
    )
    if not result.ok:
        raise GitError(
            f"git {args[0]} failed with exit code {result.exit_code}",
            output="\n".join(filter(None, [result.output, result.error_output])),
            code=f"git_{args[0]}_failed",
        )
    return result


def clone(source: str | Path, dest: Path, timeout: float | None = None) -> None:
    """Clone a repository (URL or local path) into dest."""
    _git(["clone", str(source), str(dest)], timeout=timeout)


def list_tags(
    repo: Path,
    pattern: str | None = None,
    timeout: float | None = None,
) -> list[str]:
    """List tags, optionally filtered by a git glob pattern.

    Blank lines are discarded.
    """
    args = ["tag", "-l"]
    if pattern:
        args.append(pattern)
    result = _git(args, cwd=repo, timeout=timeout, parse_output=True)
    return [line.strip() for line in result.output.splitlines() if line.strip()]


def delete_all_tags(repo: Path, timeout: float | None = None) -> int:
    """Delete every local tag so that tags removed upstream disappear.

    Returns:
        Number of tags deleted.
    """
    tags = list_tags(repo, timeout=timeout)
    if tags:
        _git(["tag", "-d", *tags], cwd=repo, timeout=timeout)
    logger.debug("Deleted %d local tag(s) in %s", len(tags), repo)
    return len(tags)


def pull(repo: Path, timeout: float | None = None) -> None:
    """Pull the latest history and all tags."""
    _git(["pull", "--tags"], cwd=repo, timeout=timeout)


def checkout(repo: Path, revision: str, timeout: float | None = None) -> None:
    """Check out a revision, discarding local modifications."""
    _git(["checkout", "--quiet", "--force", revision], cwd=repo, timeout=timeout)


def current_branch(repo: Path, timeout: float | None = None) -> str:
    """Return the checked-out branch name ("HEAD" when detached)."""
    result = _git(
        ["rev-parse", "--abbrev-ref", "HEAD"],
        cwd=repo,
        timeout=timeout,
        parse_output=True,
    )
    return result.output.strip()


__all__ = [
    "GitError",
    "checkout",
    "clone",
    "current_branch",
    "delete_all_tags",
    "list_tags",
    "pull",
]
