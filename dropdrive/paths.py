# Filename: dropdrive/paths.py
import os
from pathlib import Path
from typing import List, Optional

from sqlmodel import Session, select

from .exceptions import InvalidLocationError, NotFoundError
from .models import Folder
from .storage import LocalBlobStore

SEPARATORS = (os.sep, "/") if os.sep != "/" else ("/",)


def is_under(path: str, prefix: str) -> bool:
    """True when path lies strictly below prefix (separator boundary, so "Foo2" is not under "Foo")."""
    return any(path.startswith(prefix.rstrip(sep) + sep) for sep in SEPARATORS)


def replace_prefix(path: str, old_prefix: str, new_prefix: str) -> str:
    """Swap old_prefix for new_prefix when path is old_prefix itself or lies below it."""
    if path == old_prefix:
        return new_prefix
    for sep in SEPARATORS:
        old = old_prefix.rstrip(sep) + sep
        if path.startswith(old):
            return new_prefix.rstrip(sep) + os.sep + path[len(old):]
    return path


def like_patterns(prefix: str) -> List[str]:
    """SQL LIKE patterns selecting candidate paths below prefix."""
    escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return [escaped.rstrip(sep.replace("\\", "\\\\")) + sep.replace("\\", "\\\\") + "%" for sep in SEPARATORS]


def is_within(path: Path, root: Path) -> bool:
    try:
        Path(path).resolve().relative_to(Path(root).resolve())
    except ValueError:
        return False
    return True


def resolve_parent_path(
    session: Session, blobs: LocalBlobStore, user_id: int, parent_folder_id: Optional[int]
) -> Path:
    """
    Physical directory for new children of parent_folder_id (None = user root).
    The parent must be a live folder of the user and stay inside the user root.
    """
    user_root = blobs.user_root(user_id)
    if parent_folder_id is None:
        return user_root

    stmt = select(Folder).where(
        Folder.id == parent_folder_id,
        Folder.user_id == user_id,
        Folder.is_deleted == False,  # noqa: E712
    )
    parent = session.exec(stmt).first()
    if parent is None:
        raise NotFoundError("Parent folder not found.")

    parent_path = Path(parent.path) if parent.path else user_root
    if not is_within(parent_path, user_root):
        raise InvalidLocationError("Invalid parent folder location.")
    return parent_path
