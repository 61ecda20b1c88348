from pathlib import Path

from fastapi import Request

from .config import Settings
from .scheduler import GitAutoSave


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_uploads_dir(request: Request) -> Path:
    return request.app.state.uploads_dir


def get_autosave(request: Request) -> GitAutoSave | None:
    # None when auto-save is disabled (production or AUTOSAVE_ENABLED=false)
    return request.app.state.autosave
