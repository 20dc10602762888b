"""Thin subprocess wrapper around the ``git`` binary.

Errors are raised as :class:`GitError` so the calling service decides
whether a failure is fatal.  ``GitNotFoundError`` distinguishes a missing
binary from a git command that ran and failed.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)


class GitError(RuntimeError):
    """A git command exited nonzero."""

    def __init__(self, message: str, *, returncode: int | None = None, stderr: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class GitNotFoundError(GitError):
    """The git binary could not be executed."""


def run_git(*args: str, cwd: Path) -> subprocess.CompletedProcess[str]:
    """Run a git command in *cwd*. Raises on failure."""
    logger.debug("git %s (cwd=%s)", " ".join(args), cwd)
    try:
        return subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=True,
        )
    except FileNotFoundError as exc:
        # A missing cwd is reported with the directory as the filename.
        if exc.filename not in (None, "git"):
            raise GitError(f"git {args[0]} could not run: {exc}") from exc
        raise GitNotFoundError("git executable not found on PATH") from exc
    except OSError as exc:
        raise GitError(f"git {args[0]} could not run: {exc}") from exc
    except subprocess.CalledProcessError as exc:
        stderr = (exc.stderr or "").strip()
        raise GitError(
            f"git {args[0]} failed with exit code {exc.returncode}",
            returncode=exc.returncode,
            stderr=stderr,
        ) from exc


def clone(
    remote: str,
    directory: str,
    *,
    cwd: Path,
    branch: str | None = None,
    depth: int | None = None,
) -> None:
    """``git clone`` *remote* into *cwd*/*directory*."""
    args = ["clone"]
    if branch:
        args += ["--branch", branch]
    if depth:
        args += ["--depth", str(depth)]
    args += [remote, directory]
    run_git(*args, cwd=cwd)
