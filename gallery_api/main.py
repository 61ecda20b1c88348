from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .config import Settings, settings as default_settings
from .dependencies import get_settings, get_uploads_dir
from .routers import autosave as autosave_router
from .routers import images as images_router
from .scheduler import GitAutoSave
from .services.git_ops import GitManager
from .state import SaveState
from .utils.uploads import count_images

logger = logging.getLogger(__name__)


def build_autosave(
    settings: Settings,
    uploads_dir: Path,
    git: GitManager | None = None,
    scheduler: BackgroundScheduler | None = None,
) -> GitAutoSave:
    repo_dir = Path(settings.git_repo_dir).resolve()
    if git is None:
        git = GitManager(
            workdir=repo_dir,
            pathspec=os.path.relpath(uploads_dir.resolve(), repo_dir),
            remote=settings.git_remote,
            branch=settings.git_branch,
            timeout=settings.git_timeout_seconds,
        )
    state = SaveState(uploads_dir=uploads_dir, min_commit_interval=settings.min_commit_interval_seconds)
    return GitAutoSave(state, git, scheduler=scheduler, warmup_seconds=settings.autosave_warmup_seconds)


def create_app(
    settings: Settings | None = None,
    git: GitManager | None = None,
    scheduler: BackgroundScheduler | None = None,
) -> FastAPI:
    settings = settings or default_settings
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uploads_dir = Path(settings.uploads_dir)
    if not uploads_dir.exists():
        uploads_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Created uploads directory %s", uploads_dir)

    autosave = build_autosave(settings, uploads_dir, git, scheduler) if settings.autosave_active else None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Gallery API serving uploads from %s (%d images)", uploads_dir.resolve(), count_images(uploads_dir))
        logger.info("Environment: %s", "production" if settings.is_production else "development")
        if autosave is not None:
            autosave.start_auto_save(settings.autosave_interval_minutes)
        else:
            logger.info("Auto-save to git disabled; storage is ephemeral, download photos to keep them")
        yield
        if autosave is not None:
            autosave.shutdown()

    app = FastAPI(title="Event Gallery API", lifespan=lifespan)
    app.state.settings = settings
    app.state.uploads_dir = uploads_dir
    app.state.autosave = autosave

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.cors_origin] if settings.cors_origin != "*" else ["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(images_router.router, prefix="/api")
    app.include_router(autosave_router.router, prefix="/api/git-save")

    @app.get("/health")
    def health(cfg: Settings = Depends(get_settings), uploads: Path = Depends(get_uploads_dir)):
        return {
            "status": "OK",
            "environment": "production" if cfg.is_production else "development",
            "images": count_images(uploads),
            "autoSave": "enabled" if cfg.autosave_active else "disabled",
            "interval": f"{cfg.autosave_interval_minutes:g} minutes",
            "storage": "permanent (local)" if cfg.autosave_active else "temporary (ephemeral)",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    app.mount("/uploads", StaticFiles(directory=uploads_dir), name="uploads")
    # Mounted last so API routes above take precedence
    static_dir = Path(settings.static_dir)
    if (static_dir / "index.html").exists():
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")

    return app


def run():
    import uvicorn

    uvicorn.run(app, host=default_settings.api_host, port=default_settings.api_port)


app = create_app()
