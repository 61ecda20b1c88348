"""
Pytest configuration and fixtures for the gallery API tests.
"""

import os
import tempfile
from pathlib import Path

import pytest
from apscheduler.schedulers.background import BackgroundScheduler
from fastapi.testclient import TestClient

# Keep the module-level app away from the working tree and from git
os.environ["UPLOADS_DIR"] = tempfile.mkdtemp(prefix="gallery_test_uploads_")
os.environ["AUTOSAVE_ENABLED"] = "false"

from gallery_api.config import Settings
from gallery_api.main import create_app
from gallery_api.scheduler import GitAutoSave
from gallery_api.services.git_ops import GitOperationError
from gallery_api.state import SaveState


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeGit:
    """In-memory stand-in for GitManager that records every repository operation."""

    def __init__(self, workdir: Path):
        self.workdir = workdir
        self.remote = "origin"
        self.branch = "main"
        self.repo = True
        self.changes = True
        self.status_error: Exception | None = None
        self.push_error: Exception | None = None
        self.local_error: Exception | None = None
        self.on_push = None
        self.calls: list[tuple] = []

    def is_repo(self) -> bool:
        return self.repo

    def has_changes(self) -> bool:
        self.calls.append(("status",))
        if self.status_error:
            raise self.status_error
        return self.changes

    def commit_and_push(self, message: str):
        self.calls.append(("commit_and_push", message))
        if self.on_push:
            self.on_push()
        if self.push_error:
            raise self.push_error

    def commit_local(self, message: str) -> bool:
        self.calls.append(("commit_local", message))
        if self.local_error:
            raise self.local_error
        return True

    def ops(self) -> list[str]:
        return [c[0] for c in self.calls]


@pytest.fixture(autouse=True)
def _no_hosted_env(monkeypatch):
    monkeypatch.delenv("RENDER", raising=False)
    monkeypatch.delenv("RAILWAY_ENVIRONMENT", raising=False)


@pytest.fixture
def uploads_dir(tmp_path):
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_git(tmp_path):
    return FakeGit(tmp_path)


@pytest.fixture
def push_rejected():
    return GitOperationError("push", 128, "fatal: unable to access 'https://example.invalid/': Could not resolve host")


@pytest.fixture
def scheduler():
    sched = BackgroundScheduler(timezone="UTC")
    yield sched
    if sched.running:
        sched.shutdown(wait=False)


@pytest.fixture
def autosave(uploads_dir, fake_git, scheduler, clock):
    # the interval has already elapsed, so the first attempt may proceed
    state = SaveState(uploads_dir=uploads_dir, min_commit_interval=120, last_commit_time=clock.now - 120)
    return GitAutoSave(state, fake_git, scheduler=scheduler, clock=clock)


@pytest.fixture
def settings(tmp_path, uploads_dir):
    return Settings(
        uploads_dir=str(uploads_dir),
        static_dir=str(tmp_path / "public"),
        git_repo_dir=str(tmp_path),
        autosave_enabled=True,
        environment="development",
        max_upload_bytes=1024,
        max_files_per_upload=3,
    )


@pytest.fixture
def app(settings, fake_git, scheduler, autosave):
    application = create_app(settings, git=fake_git, scheduler=scheduler)
    # swap in the instance driven by the fake clock
    application.state.autosave = autosave
    return application


@pytest.fixture
def client(app):
    """Test client without lifespan, so no background jobs are started."""
    return TestClient(app)
