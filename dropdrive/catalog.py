# Filename: dropdrive/catalog.py
"""Query helpers over the Folder / FileItem / User tables."""
from typing import List, Optional

from sqlalchemy import func, or_
from sqlmodel import Session, select

from .models import FileItem, Folder, User
from .paths import is_under, like_patterns


def get_user(session: Session, user_id: int) -> Optional[User]:
    return session.get(User, user_id)


def get_folder(session: Session, user_id: int, folder_id: int, deleted: Optional[bool] = False) -> Optional[Folder]:
    """Fetch a folder owned by user_id. deleted=None ignores the delete state."""
    stmt = select(Folder).where(Folder.id == folder_id, Folder.user_id == user_id)
    if deleted is not None:
        stmt = stmt.where(Folder.is_deleted == deleted)
    return session.exec(stmt).first()


def get_file(session: Session, user_id: int, file_id: int, deleted: Optional[bool] = False) -> Optional[FileItem]:
    stmt = select(FileItem).where(FileItem.id == file_id, FileItem.user_id == user_id)
    if deleted is not None:
        stmt = stmt.where(FileItem.is_deleted == deleted)
    return session.exec(stmt).first()


def _parent_clause(column, parent_id: Optional[int]):
    return column.is_(None) if parent_id is None else column == parent_id


def child_folders(session: Session, user_id: int, parent_id: Optional[int], deleted: Optional[bool] = False) -> List[Folder]:
    stmt = select(Folder).where(Folder.user_id == user_id, _parent_clause(Folder.parent_folder_id, parent_id))
    if deleted is not None:
        stmt = stmt.where(Folder.is_deleted == deleted)
    return list(session.exec(stmt.order_by(Folder.name)).all())


def child_files(session: Session, user_id: int, folder_id: Optional[int], deleted: Optional[bool] = False) -> List[FileItem]:
    stmt = select(FileItem).where(FileItem.user_id == user_id, _parent_clause(FileItem.folder_id, folder_id))
    if deleted is not None:
        stmt = stmt.where(FileItem.is_deleted == deleted)
    return list(session.exec(stmt.order_by(FileItem.name)).all())


def sibling_folder_names(session: Session, user_id: int, parent_id: Optional[int], exclude_id: Optional[int] = None) -> List[str]:
    return [f.name for f in child_folders(session, user_id, parent_id) if f.id != exclude_id]


def sibling_file_names(session: Session, user_id: int, folder_id: Optional[int], exclude_id: Optional[int] = None) -> List[str]:
    """Live sibling file names with their extension ("name.type")."""
    return [f.full_name for f in child_files(session, user_id, folder_id) if f.id != exclude_id]


def find_child_folder(session: Session, user_id: int, parent_id: Optional[int], name: str) -> Optional[Folder]:
    """Case-insensitive name lookup of a live child folder."""
    stmt = select(Folder).where(
        Folder.user_id == user_id,
        _parent_clause(Folder.parent_folder_id, parent_id),
        func.lower(Folder.name) == name.lower(),
        Folder.is_deleted == False,  # noqa: E712
    )
    return session.exec(stmt).first()


def folders_under(session: Session, user_id: int, prefix: str, deleted: Optional[bool] = None) -> List[Folder]:
    """Folders whose stored path lies strictly below prefix."""
    stmt = select(Folder).where(
        Folder.user_id == user_id,
        or_(*[Folder.path.like(p, escape="\\") for p in like_patterns(prefix)]),
    )
    if deleted is not None:
        stmt = stmt.where(Folder.is_deleted == deleted)
    return [row for row in session.exec(stmt).all() if is_under(row.path, prefix)]


def files_under(session: Session, user_id: int, prefix: str, deleted: Optional[bool] = None) -> List[FileItem]:
    stmt = select(FileItem).where(
        FileItem.user_id == user_id,
        or_(*[FileItem.path.like(p, escape="\\") for p in like_patterns(prefix)]),
    )
    if deleted is not None:
        stmt = stmt.where(FileItem.is_deleted == deleted)
    return [row for row in session.exec(stmt).all() if is_under(row.path, prefix)]


def all_folders(session: Session, user_id: int, deleted: Optional[bool] = False) -> List[Folder]:
    stmt = select(Folder).where(Folder.user_id == user_id)
    if deleted is not None:
        stmt = stmt.where(Folder.is_deleted == deleted)
    return list(session.exec(stmt.order_by(Folder.name)).all())


def all_files(session: Session, user_id: int, deleted: Optional[bool] = False) -> List[FileItem]:
    stmt = select(FileItem).where(FileItem.user_id == user_id)
    if deleted is not None:
        stmt = stmt.where(FileItem.is_deleted == deleted)
    return list(session.exec(stmt.order_by(FileItem.name)).all())


def search_folders(session: Session, user_id: int, keyword: str, deleted: bool) -> List[Folder]:
    lowered = f"%{escape_like(keyword.lower())}%"
    stmt = select(Folder).where(
        Folder.user_id == user_id,
        Folder.is_deleted == deleted,
        func.lower(Folder.name).like(lowered, escape="\\"),
    )
    return list(session.exec(stmt.order_by(Folder.name)).all())


def search_files(session: Session, user_id: int, keyword: str, deleted: bool) -> List[FileItem]:
    lowered = f"%{escape_like(keyword.lower())}%"
    stmt = select(FileItem).where(
        FileItem.user_id == user_id,
        FileItem.is_deleted == deleted,
        or_(
            func.lower(FileItem.name).like(lowered, escape="\\"),
            func.lower(FileItem.type).like(lowered, escape="\\"),
        ),
    )
    return list(session.exec(stmt.order_by(FileItem.name)).all())


def escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
