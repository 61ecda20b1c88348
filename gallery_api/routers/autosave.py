import logging

from fastapi import APIRouter, BackgroundTasks, Depends

from ..dependencies import get_autosave
from ..scheduler import GitAutoSave
from ..security import require_admin_token

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", dependencies=[Depends(require_admin_token)])
def trigger_save(background: BackgroundTasks, autosave: GitAutoSave | None = Depends(get_autosave)):
    if autosave is None:
        return {
            "success": False,
            "message": "Auto-save not available in production. Use download feature instead.",
        }
    logger.info("Manual git-save triggered")
    # same guards as the periodic path; runs after the response is sent
    background.add_task(autosave.attempt_save, "manual")
    return {"success": True, "message": "Git auto-save triggered"}


@router.get("")
def save_status(autosave: GitAutoSave | None = Depends(get_autosave)):
    if autosave is None:
        return {"enabled": False}
    return {"enabled": True, **autosave.status()}
