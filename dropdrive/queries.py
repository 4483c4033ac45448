# Filename: dropdrive/queries.py
"""Read-only views over a user's drive: search, listings, details and downloads."""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple

from sqlmodel import Session

from . import catalog
from .exceptions import NotFoundError
from .hierarchy import AuthContext
from .models import FileItem, Folder
from .storage import LocalBlobStore

logger = logging.getLogger(__name__)


@dataclass
class Listing:
    folders: List[Folder] = field(default_factory=list)
    files: List[FileItem] = field(default_factory=list)


@dataclass
class FolderDetails:
    folder: Folder
    file_count: int
    folder_count: int
    descendant_file_count: int
    descendant_folder_count: int
    total_size_mb: Decimal


def descendant_folder_ids(folders: Iterable[Folder], parent_id: int) -> Set[int]:
    """Ids of every folder below parent_id, walking the parent -> children adjacency."""
    children: Dict[Optional[int], List[int]] = {}
    for folder in folders:
        children.setdefault(folder.parent_folder_id, []).append(folder.id)

    found: Set[int] = set()
    stack = list(children.get(parent_id, []))
    while stack:
        folder_id = stack.pop()
        if folder_id in found:
            continue
        found.add(folder_id)
        stack.extend(children.get(folder_id, []))
    return found


def search(
    session: Session,
    blobs: LocalBlobStore,
    ctx: AuthContext,
    keyword: Optional[str],
    parent_folder_id: Optional[int] = None,
    deleted_only: bool = False,
) -> Listing:
    if keyword is None or not keyword.strip():
        return Listing()
    keyword = keyword.strip()

    folders = catalog.search_folders(session, ctx.user_id, keyword, deleted_only)
    files = catalog.search_files(session, ctx.user_id, keyword, deleted_only)
    if deleted_only:
        return Listing(folders=folders, files=files)

    if parent_folder_id is not None:
        scope = descendant_folder_ids(catalog.all_folders(session, ctx.user_id, deleted=None), parent_folder_id)
        folders = [f for f in folders if f.id in scope]
        scope.add(parent_folder_id)
        files = [f for f in files if f.folder_id in scope]

    # rows whose bytes vanished from disk are hidden
    return Listing(
        folders=[f for f in folders if blobs.is_dir(f.path)],
        files=[f for f in files if blobs.is_file(f.path)],
    )


def list_children(
    session: Session, ctx: AuthContext, parent_folder_id: Optional[int] = None, deleted_only: bool = False
) -> Listing:
    if parent_folder_id is not None and catalog.get_folder(session, ctx.user_id, parent_folder_id, deleted=None) is None:
        raise NotFoundError("Folder not found.")
    return Listing(
        folders=catalog.child_folders(session, ctx.user_id, parent_folder_id, deleted=deleted_only),
        files=catalog.child_files(session, ctx.user_id, parent_folder_id, deleted=deleted_only),
    )


def list_deleted(session: Session, ctx: AuthContext) -> Listing:
    return Listing(
        folders=catalog.all_folders(session, ctx.user_id, deleted=True),
        files=catalog.all_files(session, ctx.user_id, deleted=True),
    )


def list_all(session: Session, ctx: AuthContext) -> Listing:
    return Listing(
        folders=catalog.all_folders(session, ctx.user_id, deleted=False),
        files=catalog.all_files(session, ctx.user_id, deleted=False),
    )


def file_details(session: Session, ctx: AuthContext, file_id: int) -> FileItem:
    item = catalog.get_file(session, ctx.user_id, file_id, deleted=None)
    if item is None:
        raise NotFoundError("File not found.")
    return item


def folder_details(session: Session, ctx: AuthContext, folder_id: int) -> FolderDetails:
    folder = catalog.get_folder(session, ctx.user_id, folder_id, deleted=None)
    if folder is None:
        raise NotFoundError("Folder not found.")

    state = folder.is_deleted
    sub_folders = catalog.folders_under(session, ctx.user_id, folder.path, deleted=state)
    sub_files = catalog.files_under(session, ctx.user_id, folder.path, deleted=state)
    return FolderDetails(
        folder=folder,
        file_count=sum(1 for f in sub_files if f.folder_id == folder.id),
        folder_count=sum(1 for f in sub_folders if f.parent_folder_id == folder.id),
        descendant_file_count=len(sub_files),
        descendant_folder_count=len(sub_folders),
        total_size_mb=sum((Decimal(f.size_mb) for f in sub_files), Decimal("0")),
    )


def download_file(session: Session, blobs: LocalBlobStore, ctx: AuthContext, file_id: int) -> Tuple[Path, str]:
    """Return the physical path and the download name ("name.type") of a live file."""
    item = catalog.get_file(session, ctx.user_id, file_id, deleted=False)
    if item is None:
        raise NotFoundError("File not found.")
    if not blobs.is_file(item.path):
        logger.warning("File %s of user %s is missing on disk: %s", item.id, ctx.user_id, item.path)
        raise NotFoundError("File path does not exist on disk.")
    return Path(item.path), item.full_name


def download_folder(session: Session, blobs: LocalBlobStore, ctx: AuthContext, folder_id: int) -> Tuple[Path, str]:
    """Zip a live folder. The caller removes the archive's directory once it has been sent."""
    folder = catalog.get_folder(session, ctx.user_id, folder_id, deleted=False)
    if folder is None:
        raise NotFoundError("Folder not found.")
    archive = blobs.zip_directory(Path(folder.path))
    logger.info("User %s downloading folder %s as %s", ctx.user_id, folder.id, archive.name)
    return archive, f"{folder.name}.zip"
