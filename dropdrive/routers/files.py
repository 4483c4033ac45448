# Filename: dropdrive/routers/files.py
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from fastapi.responses import FileResponse
from sqlmodel import Session

from .. import queries
from ..auth import get_auth_context
from ..db import get_session
from ..deps import get_hierarchy, to_incoming
from ..hierarchy import AuthContext, HierarchyEngine
from ..schemas import FileCreate, FileOut, PurgeOut, RecoverOut, RenameRequest, UploadReportOut
from ..storage import LocalBlobStore, get_blob_store

router = APIRouter(prefix="/api/files", tags=["files"])


@router.post("", response_model=FileOut, status_code=status.HTTP_201_CREATED)
def create_file(
    data: FileCreate, ctx: AuthContext = Depends(get_auth_context), engine: HierarchyEngine = Depends(get_hierarchy)
):
    return FileOut.model_validate(engine.create_file(ctx, data.name, data.parent_folder_id))


@router.post("/upload", response_model=UploadReportOut, status_code=status.HTTP_201_CREATED)
async def upload_files(
    files: List[UploadFile] = File(...),
    parent_folder_id: Optional[int] = Query(default=None),
    ctx: AuthContext = Depends(get_auth_context),
    engine: HierarchyEngine = Depends(get_hierarchy),
):
    report = await engine.upload_files(ctx, to_incoming(files), parent_folder_id)
    return UploadReportOut.model_validate(report)


@router.get("/{file_id}", response_model=FileOut)
def file_details(file_id: int, ctx: AuthContext = Depends(get_auth_context), session: Session = Depends(get_session)):
    return FileOut.model_validate(queries.file_details(session, ctx, file_id))


@router.get("/{file_id}/download")
def download_file(
    file_id: int,
    ctx: AuthContext = Depends(get_auth_context),
    session: Session = Depends(get_session),
    blobs: LocalBlobStore = Depends(get_blob_store),
):
    path, filename = queries.download_file(session, blobs, ctx, file_id)
    return FileResponse(path, media_type="application/octet-stream", filename=filename)


@router.put("/{file_id}/rename", response_model=FileOut)
def rename_file(
    file_id: int,
    data: RenameRequest,
    ctx: AuthContext = Depends(get_auth_context),
    engine: HierarchyEngine = Depends(get_hierarchy),
):
    return FileOut.model_validate(engine.rename_file(ctx, file_id, data.new_name))


@router.delete("/{file_id}", response_model=FileOut)
def delete_file(file_id: int, ctx: AuthContext = Depends(get_auth_context), engine: HierarchyEngine = Depends(get_hierarchy)):
    return FileOut.model_validate(engine.delete_file(ctx, file_id))


@router.put("/{file_id}/recover", response_model=RecoverOut)
def recover_file(file_id: int, ctx: AuthContext = Depends(get_auth_context), engine: HierarchyEngine = Depends(get_hierarchy)):
    item = engine.recover_file(ctx, file_id)
    return RecoverOut(id=item.id, name=item.full_name, message=f"File recovered as '{item.full_name}'.")


@router.delete("/{file_id}/permanent", response_model=PurgeOut)
def permanent_delete_file(
    file_id: int, ctx: AuthContext = Depends(get_auth_context), engine: HierarchyEngine = Depends(get_hierarchy)
):
    return PurgeOut(freed_mb=engine.permanent_delete_file(ctx, file_id), files=1)
