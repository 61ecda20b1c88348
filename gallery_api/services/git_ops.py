from __future__ import annotations
import re
from pathlib import Path
from git import Repo
from git.exc import CommandError, InvalidGitRepositoryError, NoSuchPathError

_STDERR_WRAPPER = re.compile(r"^\s*stderr: '(.*)'\s*$", re.DOTALL)


def _clean_stderr(stderr) -> str:
    # GitPython formats it as "\n  stderr: '...'"
    text = str(stderr or "")
    match = _STDERR_WRAPPER.match(text)
    return match.group(1) if match else text


class GitOperationError(RuntimeError):
    def __init__(self, command: str, status: int | str | None = None, stderr: str = ""):
        self.command = command
        self.status = status
        self.stderr = stderr.strip()
        detail = f": {self.stderr}" if self.stderr else ""
        super().__init__(f"git {command} failed (status {status}){detail}")


class GitManager:
    """Version-control side of the auto-save.

    Three operations are used by the scheduler: ``status`` (pending changes under
    the uploads path), ``commit_and_push`` and the local-only ``commit_local``.
    Every git failure surfaces as ``GitOperationError``.
    """

    def __init__(
        self,
        workdir: Path,
        pathspec: str = "uploads",
        remote: str = "origin",
        branch: str = "main",
        timeout: float | None = None,
    ):
        self.workdir = Path(workdir)
        self.pathspec = pathspec
        self.remote = remote
        self.branch = branch
        self.timeout = timeout
        self.repo: Repo | None = None

    def is_repo(self) -> bool:
        return (self.workdir / ".git").exists()

    def _open(self) -> Repo:
        if self.repo is None:
            try:
                self.repo = Repo(self.workdir)
            except (InvalidGitRepositoryError, NoSuchPathError) as exc:
                raise GitOperationError("open", stderr=str(exc)) from exc
        return self.repo

    def _git(self, command: str, *args: str) -> str:
        repo = self._open()
        try:
            return getattr(repo.git, command)(*args, kill_after_timeout=self.timeout)
        except CommandError as exc:
            # also covers GitCommandNotFound when the git binary is missing
            raise GitOperationError(command, exc.status, _clean_stderr(exc.stderr)) from exc

    def status(self) -> str:
        return self._git("status", "--porcelain", "--untracked-files=all", "--", self.pathspec)

    def has_changes(self) -> bool:
        return bool(self.status().strip())

    def _stage(self):
        self._git("add", "-A", "--", self.pathspec)

    def _has_staged(self) -> bool:
        # exit code 1 means the index differs from HEAD
        try:
            self._git("diff", "--cached", "--quiet")
        except GitOperationError as exc:
            if exc.status == 1:
                return True
            raise
        return False

    def commit_and_push(self, message: str):
        self._stage()
        self._git("commit", "-m", message)
        self._git("push", self.remote, f"HEAD:{self.branch}")

    def commit_local(self, message: str) -> bool:
        """Stage and commit without pushing. Returns False when nothing was left to commit."""
        self._stage()
        if not self._has_staged():
            return False
        self._git("commit", "-m", message)
        return True
