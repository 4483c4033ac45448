# Filename: dropdrive/deps.py
import os
from typing import List, Optional

from fastapi import Depends, UploadFile
from sqlmodel import Session

from .db import get_session
from .hierarchy import HierarchyEngine, IncomingFile
from .storage import LocalBlobStore, get_blob_store


def get_hierarchy(
    session: Session = Depends(get_session),
    blobs: LocalBlobStore = Depends(get_blob_store),
) -> HierarchyEngine:
    return HierarchyEngine(session, blobs)


def to_incoming(uploads: List[UploadFile], relative_paths: Optional[List[str]] = None) -> List[IncomingFile]:
    """
    Wrap multipart uploads for the engine. relative_paths, when given, replaces
    the client filename of the upload at the same position.
    """
    incoming = []
    for index, upload in enumerate(uploads):
        upload.file.seek(0, os.SEEK_END)
        size = upload.file.tell()
        upload.file.seek(0)
        name = upload.filename or ""
        if relative_paths and index < len(relative_paths) and relative_paths[index]:
            name = relative_paths[index]
        incoming.append(IncomingFile(filename=name, stream=upload.file, size=size, content_type=upload.content_type))
    return incoming
