"""BootstrapService — make sure the upstream source checkout exists.

Pipeline: RESOLVE TARGET → SKIP IF PRESENT → CLONE
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from votectl.infrastructure import git
from votectl.services.result import ServiceResult
from votectl.services.telemetry import phase, traced

if TYPE_CHECKING:
    from votectl.config.settings import VoteSettings

log = structlog.get_logger(__name__)


class BootstrapService:
    """Clone the configured remote into the project root once."""

    def __init__(self, settings: VoteSettings) -> None:
        self._settings = settings

    @traced
    def ensure_checkout(self, *, check_only: bool = False) -> ServiceResult:
        """Clone ``bootstrap.remote`` into ``bootstrap.directory`` if absent.

        An existing directory at the target is left untouched; nothing
        inspects whether it is actually a clone of the remote.
        """
        op = "bootstrap"
        cfg = self._settings.bootstrap
        root = self._settings.project_root
        target = self._settings.checkout_path
        data: dict[str, Any] = {
            "directory": str(target),
            "remote": cfg.remote,
            "branch": cfg.branch,
            "cloned": False,
        }

        if not root.is_dir():
            return ServiceResult.failure(
                op,
                "ROOT_NOT_FOUND",
                f"Project root does not exist: {root}",
                detail={"path": str(root)},
            )

        if target.is_dir():
            log.debug("checkout.present", directory=str(target))
            return ServiceResult(ok=True, op=op, data={**data, "would_clone": False})

        if target.exists():
            return ServiceResult.failure(
                op,
                "TARGET_NOT_DIRECTORY",
                f"{target} exists and is not a directory",
                detail={"path": str(target)},
            )

        if check_only:
            return ServiceResult(ok=True, op=op, data={**data, "would_clone": True})

        log.info("checkout.clone", remote=cfg.remote, directory=str(target))
        with phase("git_clone") as step:
            try:
                git.clone(
                    cfg.remote,
                    cfg.directory,
                    cwd=root,
                    branch=cfg.branch,
                    depth=cfg.depth,
                )
            except git.GitNotFoundError as exc:
                return ServiceResult.failure(op, "GIT_NOT_FOUND", str(exc))
            except git.GitError as exc:
                return ServiceResult.failure(
                    op,
                    "CLONE_FAILED",
                    f"Cloning {cfg.remote} failed: {exc.stderr or exc}",
                    detail={"returncode": exc.returncode, "stderr": exc.stderr},
                )
            if step:
                step.note(remote=cfg.remote, depth=cfg.depth)

        return ServiceResult(ok=True, op=op, data={**data, "cloned": True, "would_clone": False})
