# Filename: dropdrive/routers/folders.py
import shutil
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from fastapi.responses import FileResponse
from sqlmodel import Session
from starlette.background import BackgroundTask

from .. import queries
from ..auth import get_auth_context
from ..db import get_session
from ..deps import get_hierarchy, to_incoming
from ..hierarchy import AuthContext, HierarchyEngine
from ..schemas import FolderCreate, FolderDetailsOut, FolderOut, PurgeOut, RecoverOut, RenameRequest, UploadReportOut
from ..storage import LocalBlobStore, get_blob_store

router = APIRouter(prefix="/api/folders", tags=["folders"])


@router.post("", response_model=FolderOut, status_code=status.HTTP_201_CREATED)
def create_folder(
    data: FolderCreate, ctx: AuthContext = Depends(get_auth_context), engine: HierarchyEngine = Depends(get_hierarchy)
):
    return FolderOut.model_validate(engine.create_folder(ctx, data.name, data.parent_folder_id))


@router.post("/upload", response_model=UploadReportOut, status_code=status.HTTP_201_CREATED)
async def upload_folder(
    files: Optional[List[UploadFile]] = File(default=None),
    paths: Optional[List[str]] = Form(default=None),
    root_folder_name: Optional[str] = Form(default=None),
    parent_folder_id: Optional[int] = Query(default=None),
    ctx: AuthContext = Depends(get_auth_context),
    engine: HierarchyEngine = Depends(get_hierarchy),
):
    # paths carries the browser's relative path of each file when the filename was stripped
    report = await engine.upload_folder(ctx, to_incoming(files or [], paths), parent_folder_id, root_folder_name)
    return UploadReportOut.model_validate(report)


@router.get("/{folder_id}", response_model=FolderDetailsOut)
def folder_details(folder_id: int, ctx: AuthContext = Depends(get_auth_context), session: Session = Depends(get_session)):
    return FolderDetailsOut.model_validate(queries.folder_details(session, ctx, folder_id))


@router.get("/{folder_id}/download")
def download_folder(
    folder_id: int,
    ctx: AuthContext = Depends(get_auth_context),
    session: Session = Depends(get_session),
    blobs: LocalBlobStore = Depends(get_blob_store),
):
    archive, filename = queries.download_folder(session, blobs, ctx, folder_id)
    cleanup = BackgroundTask(shutil.rmtree, archive.parent, ignore_errors=True)
    return FileResponse(archive, media_type="application/zip", filename=filename, background=cleanup)


@router.put("/{folder_id}/rename", response_model=FolderOut)
def rename_folder(
    folder_id: int,
    data: RenameRequest,
    ctx: AuthContext = Depends(get_auth_context),
    engine: HierarchyEngine = Depends(get_hierarchy),
):
    return FolderOut.model_validate(engine.rename_folder(ctx, folder_id, data.new_name))


@router.delete("/{folder_id}", response_model=FolderOut)
def delete_folder(folder_id: int, ctx: AuthContext = Depends(get_auth_context), engine: HierarchyEngine = Depends(get_hierarchy)):
    return FolderOut.model_validate(engine.delete_folder(ctx, folder_id))


@router.put("/{folder_id}/recover", response_model=RecoverOut)
def recover_folder(
    folder_id: int, ctx: AuthContext = Depends(get_auth_context), engine: HierarchyEngine = Depends(get_hierarchy)
):
    folder = engine.recover_folder(ctx, folder_id)
    return RecoverOut(id=folder.id, name=folder.name, message=f"Folder recovered as '{folder.name}'.")


@router.delete("/{folder_id}/permanent", response_model=PurgeOut)
def permanent_delete_folder(
    folder_id: int, ctx: AuthContext = Depends(get_auth_context), engine: HierarchyEngine = Depends(get_hierarchy)
):
    return PurgeOut(freed_mb=engine.permanent_delete_folder(ctx, folder_id), folders=1)
