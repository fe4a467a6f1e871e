from datetime import datetime, timezone

from fastapi import APIRouter
from filevault.core.config import get_settings

router = APIRouter(tags=["system"])

@router.get("/health")
def health():
    s = get_settings()
    return {
        "status": "healthy",
        "env": s.APP_ENV,
        "version": s.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(timespec="seconds"),
    }

@router.get("/version")
def version():
    s = get_settings()
    return {"name": s.APP_NAME, "version": s.APP_VERSION, "env": s.APP_ENV}
