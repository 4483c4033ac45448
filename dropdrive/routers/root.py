# Filename: dropdrive/routers/root.py
from fastapi import APIRouter
from ..config import settings

router = APIRouter()


@router.get("/", tags=["root"])
def root():
    """Health check with app name and version."""
    return {
        "app_name": settings.app_name,
        "app_version": settings.app_version,
        "environment": settings.environment,
        "status": "ok",
    }
