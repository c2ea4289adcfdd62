"""Git backend for the mirror repository.

Operations shell out to the `git` executable. ssh runs in batch mode with
the rule's key passed through `GIT_SSH_COMMAND`, and author identity through the
`GIT_AUTHOR_*` / `GIT_COMMITTER_*` variables, so no global git
configuration is touched.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from pathlib import Path

from metasync.core.config import RepoCredentials
from metasync.core.errors import PublishError, RepositoryError

logger = logging.getLogger(__name__)


def _ssh_env(credentials: RepoCredentials | None) -> dict[str, str]:
    """Return the ssh command git should use; it never prompts for input."""
    command = "ssh -o BatchMode=yes"
    if credentials is not None and credentials.private_key:
        key = shlex.quote(str(Path(credentials.private_key).expanduser()))
        command += f" -i {key} -o IdentitiesOnly=yes -o StrictHostKeyChecking=no"
    return {"GIT_SSH_COMMAND": command, "GIT_TERMINAL_PROMPT": "0"}


class GitRepository:
    """A cloned mirror working tree."""

    def __init__(self, path: Path, credentials: RepoCredentials | None = None) -> None:
        self.path = Path(path)
        self.credentials = credentials

    def _run(
        self,
        *args: str,
        env: dict[str, str] | None = None,
        cwd: Path | None = None,
        error: type[RepositoryError] = PublishError,
    ) -> str:
        full_env = {**os.environ, **_ssh_env(self.credentials), **(env or {})}
        try:
            completed = subprocess.run(
                ["git", *args],
                cwd=str(cwd or self.path),
                env=full_env,
                capture_output=True,
                text=True,
                check=True,
            )
        except FileNotFoundError as exc:
            raise error("git executable not found") from exc
        except subprocess.CalledProcessError as exc:
            detail = (exc.stderr or exc.stdout or "").strip()
            raise error(f"git {args[0]} failed: {detail}") from exc
        return completed.stdout.strip()

    @classmethod
    def clone(
        cls,
        url: str,
        dest: Path,
        branch: str,
        credentials: RepoCredentials | None = None,
    ) -> "GitRepository":
        """Clone `branch` of `url` into the (empty) directory `dest`."""
        repo = cls(dest, credentials)
        logger.info("[GIT] Cloning %s", url)
        repo._run(
            "clone",
            "--branch",
            branch,
            url,
            str(dest),
            cwd=Path(dest).parent,
            error=RepositoryError,
        )
        logger.info("[GIT] Cloned %s", url)
        return repo

    def stage_all(self) -> None:
        """Stage additions, modifications and deletions of the whole tree."""
        self._run("add", "--all")

    def commit(self, author_name: str, author_email: str, message: str) -> str:
        """Commit the index (empty commits allowed) and return the commit id."""
        identity = {
            "GIT_AUTHOR_NAME": author_name,
            "GIT_AUTHOR_EMAIL": author_email,
            "GIT_COMMITTER_NAME": author_name,
            "GIT_COMMITTER_EMAIL": author_email,
        }
        self._run("commit", "--allow-empty", "-m", message, env=identity)
        return self._run("rev-parse", "HEAD")

    def push(self, branch: str) -> None:
        """Push HEAD to `branch` on origin."""
        self._run("push", "origin", f"HEAD:refs/heads/{branch}")
        logger.info("[GIT] Pushed to %s", branch)
