# Filename: dropdrive/routers/drive.py
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from .. import quota, queries
from ..auth import get_auth_context
from ..db import get_session
from ..deps import get_hierarchy
from ..hierarchy import AuthContext, HierarchyEngine
from ..models import User
from ..schemas import DriveListing, PurgeOut, UsageOut
from ..storage import LocalBlobStore, get_blob_store

router = APIRouter(prefix="/api", tags=["drive"])


@router.get("/search", response_model=DriveListing)
def search(
    keyword: Optional[str] = Query(default=None),
    parent_folder_id: Optional[int] = Query(default=None),
    deleted_only: bool = Query(default=False),
    ctx: AuthContext = Depends(get_auth_context),
    session: Session = Depends(get_session),
    blobs: LocalBlobStore = Depends(get_blob_store),
):
    return DriveListing.model_validate(queries.search(session, blobs, ctx, keyword, parent_folder_id, deleted_only))


@router.get("/list", response_model=DriveListing)
def list_children(
    parent_folder_id: Optional[int] = Query(default=None),
    deleted_only: bool = Query(default=False),
    ctx: AuthContext = Depends(get_auth_context),
    session: Session = Depends(get_session),
):
    return DriveListing.model_validate(queries.list_children(session, ctx, parent_folder_id, deleted_only))


@router.get("/list/deleted", response_model=DriveListing)
def list_deleted(ctx: AuthContext = Depends(get_auth_context), session: Session = Depends(get_session)):
    return DriveListing.model_validate(queries.list_deleted(session, ctx))


@router.get("/list/all", response_model=DriveListing)
def list_all(ctx: AuthContext = Depends(get_auth_context), session: Session = Depends(get_session)):
    return DriveListing.model_validate(queries.list_all(session, ctx))


@router.delete("/recycle-bin", response_model=PurgeOut)
def empty_recycle_bin(ctx: AuthContext = Depends(get_auth_context), engine: HierarchyEngine = Depends(get_hierarchy)):
    result = engine.empty_recycle_bin(ctx)
    return PurgeOut(freed_mb=result["freed_mb"], folders=result["folders"], files=result["files"])


@router.get("/usage", response_model=UsageOut)
def get_usage(ctx: AuthContext = Depends(get_auth_context), session: Session = Depends(get_session)):
    return UsageOut(**quota.usage(session.get(User, ctx.user_id)))
