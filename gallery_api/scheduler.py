from __future__ import annotations
import logging
import math
import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Callable

from apscheduler.schedulers.background import BackgroundScheduler

from .services.git_ops import GitManager, GitOperationError
from .state import SaveState
from .utils.uploads import count_images

logger = logging.getLogger(__name__)

WARMUP_SECONDS = 5.0


def build_commit_message(image_count: int, timestamp: float) -> str:
    stamp = datetime.fromtimestamp(timestamp).strftime("%Y-%m-%d %H:%M:%S")
    return f"Auto-save: {image_count} photos | {stamp}"


class GitAutoSave:
    """Rate-limited, non-overlapping commits of the uploads folder.

    ``attempt_save`` is the only entry point for both the periodic job and the
    delayed post-upload jobs. A trigger that arrives while another attempt is in
    flight is dropped rather than queued; the next trigger re-reads git status.
    """

    def __init__(
        self,
        state: SaveState,
        git: GitManager,
        scheduler: BackgroundScheduler | None = None,
        warmup_seconds: float = WARMUP_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.state = state
        self.git = git
        self.scheduler = scheduler or BackgroundScheduler(timezone="UTC")
        self.warmup_seconds = warmup_seconds
        self._clock = clock
        self._guard = threading.Lock()

    def _try_enter(self, reason: str) -> bool:
        with self._guard:
            if self.state.is_processing:
                logger.info("Auto-save already in progress, skipping (%s)", reason)
                return False
            elapsed = self._clock() - self.state.last_commit_time
            if elapsed < self.state.min_commit_interval:
                wait = math.ceil(self.state.min_commit_interval - elapsed)
                logger.info("Too soon to auto-save, wait %d seconds (%s)", wait, reason)
                return False
            if not self.git.is_repo():
                logger.warning("Git not initialized in %s. Please run: git init", self.git.workdir)
                return False
            self.state.is_processing = True
            return True

    def attempt_save(self, reason: str = "periodic") -> None:
        if not self._try_enter(reason):
            return
        try:
            self._save()
        except Exception:
            logger.exception("Unexpected auto-save error")
        finally:
            with self._guard:
                self.state.is_processing = False

    def _save(self):
        try:
            pending = self.git.has_changes()
        except GitOperationError as exc:
            logger.error("Error checking git status: %s", exc)
            return
        if not pending:
            logger.info("No changes to commit")
            return

        images = count_images(self.state.uploads_dir)
        message = build_commit_message(images, self._clock())
        logger.info("Committing %d images to git", images)

        try:
            self.git.commit_and_push(message)
        except GitOperationError as exc:
            logger.error("Auto-save failed: %s", exc)
            self._commit_locally(message)
        else:
            logger.info(
                "Auto-saved to %s/%s: %d images, next save in %d seconds",
                self.git.remote,
                self.git.branch,
                images,
                self.state.min_commit_interval,
            )
        self.state.last_commit_time = self._clock()

    def _commit_locally(self, message: str):
        try:
            committed = self.git.commit_local(message)
        except GitOperationError as exc:
            logger.error("Local commit failed as well: %s", exc)
            return
        if committed:
            logger.warning("Changes committed locally (push failed)")
        else:
            logger.warning("Changes already committed locally (push failed)")
        logger.warning('Run "git push" manually when online')

    def schedule_attempt(self, delay_seconds: float, reason: str = "deferred"):
        run_at = datetime.now(timezone.utc) + timedelta(seconds=delay_seconds)
        return self.scheduler.add_job(
            self.attempt_save, "date", run_date=run_at, args=[reason], misfire_grace_time=60
        )

    def start_auto_save(self, interval_minutes: float = 2):
        logger.info("Auto-save enabled: every %s minutes", interval_minutes)
        run_at = datetime.now(timezone.utc) + timedelta(seconds=self.warmup_seconds)
        self.scheduler.add_job(
            self.attempt_save,
            "date",
            run_date=run_at,
            args=["startup"],
            id="autosave-warmup",
            replace_existing=True,
            misfire_grace_time=60,
        )
        self.scheduler.add_job(
            self.attempt_save,
            "interval",
            minutes=interval_minutes,
            args=["periodic"],
            id="autosave",
            replace_existing=True,
            coalesce=True,
        )
        if not self.scheduler.running:
            self.scheduler.start()
        return self.scheduler

    def status(self) -> dict:
        with self._guard:
            return {
                "is_processing": self.state.is_processing,
                "last_commit_time": self.state.last_commit_time,
                "min_commit_interval_seconds": self.state.min_commit_interval,
            }

    def shutdown(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
