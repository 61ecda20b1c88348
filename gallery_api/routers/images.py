import logging
from pathlib import Path

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from ..config import Settings
from ..dependencies import get_autosave, get_settings, get_uploads_dir
from ..scheduler import GitAutoSave
from ..security import require_admin_token
from ..utils.uploads import UploadRejected, check_image, delete_image, list_images, store_file

logger = logging.getLogger(__name__)

router = APIRouter()


def _notify_autosave(autosave: GitAutoSave | None, settings: Settings, reason: str):
    if autosave is None:
        return
    logger.info("Scheduling auto-save in %s seconds", settings.upload_save_delay_seconds)
    autosave.schedule_attempt(settings.upload_save_delay_seconds, reason=reason)


def _discard(uploads_dir: Path, stored: list[dict]):
    # all-or-nothing batch
    for entry in stored:
        (uploads_dir / entry["filename"]).unlink(missing_ok=True)


@router.post("/upload")
def upload_images(
    images: list[UploadFile] | None = File(default=None),
    settings: Settings = Depends(get_settings),
    uploads_dir: Path = Depends(get_uploads_dir),
    autosave: GitAutoSave | None = Depends(get_autosave),
):
    if not images:
        raise HTTPException(status_code=400, detail="No files uploaded")
    if len(images) > settings.max_files_per_upload:
        raise HTTPException(
            status_code=400, detail=f"At most {settings.max_files_per_upload} files per upload"
        )

    stored: list[dict] = []
    try:
        for item in images:
            check_image(item.filename, item.content_type)
        for item in images:
            name = store_file(item.file, item.filename, uploads_dir, settings.max_upload_bytes)
            logger.info("Uploaded %s as %s", item.filename, name)
            stored.append({"filename": name, "url": f"/uploads/{name}", "originalName": item.filename})
    except UploadRejected as exc:
        _discard(uploads_dir, stored)
        raise HTTPException(status_code=exc.status_code, detail=str(exc))
    except Exception:
        _discard(uploads_dir, stored)
        raise

    _notify_autosave(autosave, settings, f"upload of {len(stored)} files")
    return {
        "success": True,
        "files": stored,
        "message": f"{len(stored)} file(s) uploaded successfully",
    }


@router.get("/images")
def get_images(uploads_dir: Path = Depends(get_uploads_dir)):
    images = [{"filename": name, "url": f"/uploads/{name}"} for name in list_images(uploads_dir)]
    logger.info("Found %d images", len(images))
    return {"success": True, "images": images}


@router.delete("/images/{filename}", dependencies=[Depends(require_admin_token)])
def remove_image(
    filename: str,
    settings: Settings = Depends(get_settings),
    uploads_dir: Path = Depends(get_uploads_dir),
    autosave: GitAutoSave | None = Depends(get_autosave),
):
    try:
        delete_image(uploads_dir, filename)
    except UploadRejected as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc))
    logger.info("Deleted %s", filename)
    _notify_autosave(autosave, settings, f"delete of {filename}")
    return {"success": True, "filename": filename}
