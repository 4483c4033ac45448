# Filename: dropdrive/hierarchy.py
"""
Hierarchy engine: keeps the Catalog tree, the physical directory tree and the
recycle bin in step for create, upload, rename, delete, recover and purge.

Every operation touches the disk first and commits the Catalog last, so a
failure in between leaves an orphaned file on disk rather than a row pointing
at nothing.
"""
import io
import logging
import os
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import BinaryIO, Dict, List, Optional, Sequence

from sqlmodel import Session

from . import catalog, quota, recycle
from .config import settings
from .exceptions import BadRequestError, DriveError, NotFoundError, UnauthorizedError
from .models import FileItem, Folder, User
from .naming import split_name, unique_name
from .paths import replace_prefix, resolve_parent_path
from .storage import LocalBlobStore

logger = logging.getLogger(__name__)

DEFAULT_FILE_EXTENSION = ".txt"
DEFAULT_EMPTY_FOLDER_NAME = "New Folder"
DEFAULT_UPLOAD_FOLDER_NAME = "Uploaded Folder"


@dataclass(frozen=True)
class AuthContext:
    """Identity of the caller, passed explicitly into every engine call."""

    user_id: int


@dataclass
class IncomingFile:
    """One uploaded blob. filename may carry a slash-delimited relative path."""

    filename: str
    stream: BinaryIO
    size: int
    content_type: Optional[str] = None

    @classmethod
    def from_bytes(cls, filename: str, data: bytes, content_type: Optional[str] = None) -> "IncomingFile":
        return cls(filename=filename, stream=io.BytesIO(data), size=len(data), content_type=content_type)


@dataclass
class UploadFailure:
    name: str
    reason: str


@dataclass
class UploadReport:
    files: List[FileItem] = field(default_factory=list)
    folders: List[Folder] = field(default_factory=list)
    failures: List[UploadFailure] = field(default_factory=list)


def _validate_name(name: Optional[str], what: str) -> str:
    if name is None or not name.strip():
        raise BadRequestError(f"{what} name cannot be empty.")
    name = name.strip()
    if "/" in name or "\\" in name or name in (".", ".."):
        raise BadRequestError(f"Invalid {what.lower()} name.")
    return name


def _strip_ext(filename: str, ext: str) -> str:
    return filename[: -len(ext)] if ext else filename


def _relative_parts(filename: str) -> List[str]:
    parts = [p for p in (filename or "").replace("\\", "/").split("/") if p]
    if any(p in (".", "..") for p in parts):
        raise BadRequestError(f"Invalid relative path: {filename}")
    return parts


class HierarchyEngine:
    def __init__(self, session: Session, blobs: LocalBlobStore, max_path_length: int = settings.max_path_length):
        self.session = session
        self.blobs = blobs
        self.max_path_length = max_path_length

    # --- helpers ---

    def _user(self, ctx: AuthContext) -> User:
        user = catalog.get_user(self.session, ctx.user_id)
        if user is None:
            raise UnauthorizedError("User not found")
        return user

    def _check_length(self, path: Path, what: str = "Folder") -> None:
        if len(str(path)) > self.max_path_length:
            raise BadRequestError(f"{what} path exceeds maximum length of {self.max_path_length} characters.")

    def _new_folder(self, ctx: AuthContext, name: str, parent_id: Optional[int], parent_path: Path) -> Folder:
        """Create a uniquely named folder under parent_path (directory first, then row)."""
        final = unique_name(
            name,
            "",
            catalog.sibling_folder_names(self.session, ctx.user_id, parent_id),
            lambda candidate: self.blobs.exists(parent_path / candidate),
        )
        path = parent_path / final
        self._check_length(path)
        self.blobs.make_dir(path)
        folder = Folder(user_id=ctx.user_id, name=final, parent_folder_id=parent_id, path=str(path))
        self.session.add(folder)
        self.session.flush()
        logger.info("User %s created folder %s (%s)", ctx.user_id, folder.id, path)
        return folder

    def _child_folder(self, ctx: AuthContext, parent: Folder, name: str) -> Folder:
        """Reuse the live child folder called name, or create it. Never renumbered."""
        existing = catalog.find_child_folder(self.session, ctx.user_id, parent.id, name)
        if existing is not None:
            self.blobs.make_dir(Path(existing.path))
            return existing
        path = Path(parent.path) / name
        self._check_length(path)
        self.blobs.make_dir(path)
        folder = Folder(user_id=ctx.user_id, name=name, parent_folder_id=parent.id, path=str(path))
        self.session.add(folder)
        self.session.flush()
        return folder

    async def _write_file(
        self,
        ctx: AuthContext,
        incoming: IncomingFile,
        filename: str,
        parent_path: Path,
        folder_id: Optional[int],
        default_ext: Optional[str] = None,
    ) -> FileItem:
        if incoming.size <= 0:
            raise BadRequestError("Empty file.")
        base, ext = split_name(filename, default_ext)
        if not base:
            raise BadRequestError("Invalid file name.")
        final = unique_name(
            base,
            ext,
            catalog.sibling_file_names(self.session, ctx.user_id, folder_id),
            lambda candidate: self.blobs.exists(parent_path / candidate),
        )
        dest = parent_path / final
        written = await self.blobs.save_stream(dest, incoming.stream)
        item = FileItem(
            user_id=ctx.user_id,
            name=_strip_ext(final, ext),
            type=ext.lstrip(".").lower(),
            size_mb=quota.to_mb(written),
            folder_id=folder_id,
            path=str(dest),
        )
        self.session.add(item)
        self.session.flush()
        logger.info("User %s stored file %s (%s, %s MB)", ctx.user_id, item.id, dest, item.size_mb)
        return item

    def _finish_upload(self, user: User, report: UploadReport) -> UploadReport:
        added = sum((item.size_mb for item in report.files), Decimal("0"))
        quota.commit(user, added)
        self.session.add(user)
        self.session.commit()
        for row in [*report.folders, *report.files]:
            self.session.refresh(row)
        if report.failures:
            logger.warning("User %s upload finished with %d failure(s)", user.id, len(report.failures))
        return report

    # --- create / upload ---

    def create_folder(self, ctx: AuthContext, name: Optional[str], parent_folder_id: Optional[int] = None) -> Folder:
        name = _validate_name(name, "Folder")
        self._user(ctx)
        parent_path = resolve_parent_path(self.session, self.blobs, ctx.user_id, parent_folder_id)
        folder = self._new_folder(ctx, name, parent_folder_id, parent_path)
        self.session.commit()
        self.session.refresh(folder)
        return folder

    def create_file(self, ctx: AuthContext, name: Optional[str], parent_folder_id: Optional[int] = None) -> FileItem:
        """Create an empty file. A name without extension becomes a .txt file."""
        name = _validate_name(name, "File")
        self._user(ctx)
        parent_path = resolve_parent_path(self.session, self.blobs, ctx.user_id, parent_folder_id)
        base, ext = split_name(name, DEFAULT_FILE_EXTENSION)
        if not base:
            raise BadRequestError("Invalid file name.")
        final = unique_name(
            base,
            ext,
            catalog.sibling_file_names(self.session, ctx.user_id, parent_folder_id),
            lambda candidate: self.blobs.exists(parent_path / candidate),
        )
        path = parent_path / final
        self._check_length(path, "File")
        self.blobs.touch(path)
        item = FileItem(
            user_id=ctx.user_id,
            name=_strip_ext(final, ext),
            type=ext.lstrip(".").lower(),
            size_mb=quota.to_mb(0),
            folder_id=parent_folder_id,
            path=str(path),
        )
        self.session.add(item)
        self.session.commit()
        self.session.refresh(item)
        logger.info("User %s created file %s (%s)", ctx.user_id, item.id, path)
        return item

    async def upload_files(
        self, ctx: AuthContext, files: Sequence[IncomingFile], parent_folder_id: Optional[int] = None
    ) -> UploadReport:
        if not files:
            raise BadRequestError("No file uploaded.")
        user = self._user(ctx)
        parent_path = resolve_parent_path(self.session, self.blobs, ctx.user_id, parent_folder_id)
        quota.check_and_reserve(user, sum((quota.to_mb(f.size) for f in files), Decimal("0")))

        report = UploadReport()
        for incoming in files:
            filename = os.path.basename((incoming.filename or "").replace("\\", "/"))
            try:
                item = await self._write_file(ctx, incoming, filename, parent_path, parent_folder_id, DEFAULT_FILE_EXTENSION)
            except DriveError as exc:
                report.failures.append(UploadFailure(name=incoming.filename, reason=exc.detail))
                continue
            report.files.append(item)
        return self._finish_upload(user, report)

    async def upload_folder(
        self,
        ctx: AuthContext,
        files: Sequence[IncomingFile],
        parent_folder_id: Optional[int] = None,
        root_folder_name: Optional[str] = None,
    ) -> UploadReport:
        files = list(files or [])
        if not files:
            name = root_folder_name if root_folder_name and root_folder_name.strip() else DEFAULT_EMPTY_FOLDER_NAME
            return UploadReport(folders=[self.create_folder(ctx, name, parent_folder_id)])

        parts_per_file = [_relative_parts(f.filename) for f in files]
        has_paths = any(len(parts) > 1 for parts in parts_per_file)
        if not has_paths and len(files) == 1:
            return await self.upload_files(ctx, files, parent_folder_id)

        user = self._user(ctx)
        parent_path = resolve_parent_path(self.session, self.blobs, ctx.user_id, parent_folder_id)
        quota.check_and_reserve(user, sum((quota.to_mb(f.size) for f in files), Decimal("0")))

        report = UploadReport()
        roots: Dict[str, Folder] = {}
        if not has_paths:
            loose_root = self._new_folder(ctx, DEFAULT_UPLOAD_FOLDER_NAME, parent_folder_id, parent_path)
            report.folders.append(loose_root)
        else:
            # top-level folders are always renumbered, never merged into existing ones
            for parts in parts_per_file:
                if len(parts) > 1 and parts[0].lower() not in roots:
                    roots[parts[0].lower()] = self._new_folder(ctx, parts[0], parent_folder_id, parent_path)
            report.folders.extend(roots.values())

        for incoming, parts in zip(files, parts_per_file):
            try:
                if not parts:
                    raise BadRequestError("Invalid file name.")
                if incoming.size <= 0:
                    raise BadRequestError("Empty file.")
                if not has_paths:
                    target: Optional[Folder] = loose_root
                elif len(parts) == 1:
                    target = None
                else:
                    target = roots[parts[0].lower()]
                    for segment in parts[1:-1]:
                        child = self._child_folder(ctx, target, segment)
                        if all(child is not f for f in report.folders):
                            report.folders.append(child)
                        target = child
                if target is None:
                    folder_path, folder_id = parent_path, parent_folder_id
                else:
                    folder_path, folder_id = Path(target.path), target.id
                item = await self._write_file(ctx, incoming, parts[-1], folder_path, folder_id)
            except DriveError as exc:
                report.failures.append(UploadFailure(name=incoming.filename, reason=exc.detail))
                continue
            report.files.append(item)
        return self._finish_upload(user, report)

    # --- rename ---

    def _rewrite_subtree(self, ctx: AuthContext, old_path: str, new_path: str) -> int:
        """Rewrite the stored path of every folder and file below old_path."""
        rows = [
            *catalog.folders_under(self.session, ctx.user_id, old_path),
            *catalog.files_under(self.session, ctx.user_id, old_path),
        ]
        for row in rows:
            row.path = replace_prefix(row.path, old_path, new_path)
            self.session.add(row)
        return len(rows)

    def rename_file(self, ctx: AuthContext, file_id: int, new_name: Optional[str]) -> FileItem:
        if new_name is None or not new_name.strip():
            raise BadRequestError("File name cannot be empty.")
        item = catalog.get_file(self.session, ctx.user_id, file_id, deleted=False)
        if item is None:
            raise NotFoundError("File not found.")

        file_type = (item.type or "").strip().lstrip(".")
        ext = f".{file_type}" if file_type else ""
        # the stored type is immutable, whatever extension the caller typed
        base = os.path.splitext(os.path.basename(new_name.strip().replace("\\", "/")))[0].strip()
        if not base:
            raise BadRequestError("Invalid new name.")

        old_path = Path(item.path)
        parent_path = old_path.parent
        siblings = [
            f.full_name
            for f in catalog.child_files(self.session, ctx.user_id, item.folder_id)
            if f.id != item.id and f.type.lower() == file_type.lower()
        ]
        final = unique_name(
            base,
            ext,
            siblings,
            lambda candidate: parent_path / candidate != old_path and self.blobs.exists(parent_path / candidate),
        )
        new_path = parent_path / final
        if new_path != old_path:
            if not self.blobs.is_file(old_path):
                raise NotFoundError("Physical file not found on disk.")
            self.blobs.move(old_path, new_path)

        item.name = _strip_ext(final, ext)
        item.type = file_type
        item.path = str(new_path)
        self.session.add(item)
        self.session.commit()
        self.session.refresh(item)
        logger.info("User %s renamed file %s to %s", ctx.user_id, item.id, final)
        return item

    def rename_folder(self, ctx: AuthContext, folder_id: int, new_name: Optional[str]) -> Folder:
        name = _validate_name(new_name, "Folder")
        folder = catalog.get_folder(self.session, ctx.user_id, folder_id, deleted=False)
        if folder is None:
            raise NotFoundError("Folder not found.")

        old_path = Path(folder.path)
        parent_path = old_path.parent
        final = unique_name(
            name,
            "",
            catalog.sibling_folder_names(self.session, ctx.user_id, folder.parent_folder_id, exclude_id=folder.id),
            lambda candidate: parent_path / candidate != old_path and self.blobs.exists(parent_path / candidate),
        )
        new_path = parent_path / final
        self._check_length(new_path)
        descendants = [
            *catalog.folders_under(self.session, ctx.user_id, str(old_path)),
            *catalog.files_under(self.session, ctx.user_id, str(old_path)),
        ]
        for row in descendants:
            self._check_length(Path(replace_prefix(row.path, str(old_path), str(new_path))))
        if new_path != old_path:
            if not self.blobs.is_dir(old_path):
                raise NotFoundError("Physical folder not found on disk.")
            self.blobs.move_tree(old_path, new_path)
            rewritten = self._rewrite_subtree(ctx, str(old_path), str(new_path))
            logger.info("User %s renamed folder %s, %d descendant path(s) rewritten", ctx.user_id, folder.id, rewritten)

        folder.name = final
        folder.path = str(new_path)
        self.session.add(folder)
        self.session.commit()
        self.session.refresh(folder)
        return folder

    # --- soft delete / recover ---

    def delete_file(self, ctx: AuthContext, file_id: int) -> FileItem:
        item = catalog.get_file(self.session, ctx.user_id, file_id, deleted=False)
        if item is None:
            raise NotFoundError("File not found.")
        recycle.move_file_to_bin(self.blobs, ctx.user_id, Path(item.path))
        # path stays as the restore target
        item.is_deleted = True
        self.session.add(item)
        self.session.commit()
        self.session.refresh(item)
        return item

    def delete_folder(self, ctx: AuthContext, folder_id: int) -> Folder:
        folder = catalog.get_folder(self.session, ctx.user_id, folder_id, deleted=False)
        if folder is None:
            raise NotFoundError("Folder not found.")
        recycle.move_folder_to_bin(self.blobs, ctx.user_id, Path(folder.path))

        rows = [
            folder,
            *catalog.folders_under(self.session, ctx.user_id, folder.path, deleted=False),
            *catalog.files_under(self.session, ctx.user_id, folder.path, deleted=False),
        ]
        for row in rows:
            row.is_deleted = True
            self.session.add(row)
        self.session.commit()
        self.session.refresh(folder)
        logger.info("User %s moved folder %s to recycle bin (%d rows)", ctx.user_id, folder.id, len(rows))
        return folder

    def recover_file(self, ctx: AuthContext, file_id: int) -> FileItem:
        item = catalog.get_file(self.session, ctx.user_id, file_id, deleted=True)
        if item is None:
            raise NotFoundError("Deleted file not found.")
        if item.folder_id is not None and catalog.get_folder(self.session, ctx.user_id, item.folder_id) is None:
            raise NotFoundError("Parent folder is in the recycle bin. Recover the folder first.")
        source = recycle.find_file(self.blobs, ctx.user_id, item.path)
        if source is None:
            raise NotFoundError(f"File '{os.path.basename(item.path)}' not found inside Recycle Bin.")

        original = Path(item.path)
        parent_path = original.parent
        self.blobs.make_dir(parent_path)
        base, ext = os.path.splitext(original.name)
        final = unique_name(
            base,
            ext,
            catalog.sibling_file_names(self.session, ctx.user_id, item.folder_id),
            lambda candidate: self.blobs.exists(parent_path / candidate),
        )
        target = parent_path / final
        self.blobs.move(source, target)

        item.is_deleted = False
        item.name = _strip_ext(final, ext)
        item.path = str(target)
        self.session.add(item)
        self.session.commit()
        self.session.refresh(item)
        logger.info("User %s restored file %s as %s", ctx.user_id, item.id, final)
        return item

    def recover_folder(self, ctx: AuthContext, folder_id: int) -> Folder:
        folder = catalog.get_folder(self.session, ctx.user_id, folder_id, deleted=True)
        if folder is None:
            raise NotFoundError("Deleted folder not found.")
        source = recycle.find_folder(self.blobs, ctx.user_id, folder.path)
        if source is None:
            raise NotFoundError("Folder not found inside Recycle Bin.")

        original = Path(folder.path)
        parent_path = original.parent
        self.blobs.make_dir(parent_path)
        final = unique_name(
            original.name,
            "",
            catalog.sibling_folder_names(self.session, ctx.user_id, folder.parent_folder_id),
            lambda candidate: self.blobs.exists(parent_path / candidate),
        )
        target = parent_path / final
        self.blobs.move_tree(source, target)

        old_prefix, new_prefix = str(original), str(target)
        restored = 0
        # only descendants whose bytes came back with this folder are restored;
        # ones deleted on their own earlier still sit at the top of the bin
        for sub in catalog.folders_under(self.session, ctx.user_id, old_prefix, deleted=True):
            moved = replace_prefix(sub.path, old_prefix, new_prefix)
            if self.blobs.is_dir(moved):
                sub.path, sub.is_deleted = moved, False
                self.session.add(sub)
                restored += 1
        for item in catalog.files_under(self.session, ctx.user_id, old_prefix, deleted=True):
            moved = replace_prefix(item.path, old_prefix, new_prefix)
            if self.blobs.is_file(moved):
                item.path, item.is_deleted = moved, False
                self.session.add(item)
                restored += 1

        folder.is_deleted = False
        folder.name = final
        folder.path = new_prefix
        self.session.add(folder)
        self.session.commit()
        self.session.refresh(folder)
        logger.info("User %s restored folder %s as %s (%d descendants)", ctx.user_id, folder.id, final, restored)
        return folder

    # --- permanent delete ---

    def _purge_file(self, ctx: AuthContext, item: FileItem, location: Optional[Path]) -> Decimal:
        freed = Decimal(item.size_mb)
        if location is not None:
            self.blobs.delete(location)
        self.session.delete(item)
        return freed

    def _purge_folder(self, ctx: AuthContext, folder: Folder, location: Optional[Path]) -> Decimal:
        """Depth-first removal of a deleted folder, its deleted children and their bytes."""

        def mapped(path: str) -> Optional[Path]:
            return Path(replace_prefix(path, folder.path, str(location))) if location is not None else None

        freed = Decimal("0")
        for item in catalog.child_files(self.session, ctx.user_id, folder.id, deleted=True):
            target = mapped(item.path)
            if target is None or not self.blobs.is_file(target):
                # deleted on its own before the folder went
                target = recycle.find_file(self.blobs, ctx.user_id, item.path)
            freed += self._purge_file(ctx, item, target)
        for sub in catalog.child_folders(self.session, ctx.user_id, folder.id, deleted=True):
            target = mapped(sub.path)
            if target is None or not self.blobs.is_dir(target):
                target = recycle.find_folder(self.blobs, ctx.user_id, sub.path)
            freed += self._purge_folder(ctx, sub, target)
        self.session.flush()
        if location is not None:
            self.blobs.delete_tree(location)
        self.session.delete(folder)
        self.session.flush()
        return freed

    def _file_location(self, ctx: AuthContext, item: FileItem) -> Optional[Path]:
        location = recycle.find_file(self.blobs, ctx.user_id, item.path)
        if location is None and self.blobs.is_file(item.path):
            location = Path(item.path)
        return location

    def _folder_location(self, ctx: AuthContext, folder: Folder) -> Optional[Path]:
        location = recycle.find_folder(self.blobs, ctx.user_id, folder.path)
        if location is None and self.blobs.is_dir(folder.path):
            location = Path(folder.path)
        return location

    def _release(self, ctx: AuthContext, freed: Decimal) -> None:
        user = self._user(ctx)
        quota.commit(user, -freed)
        self.session.add(user)
        self.session.commit()

    def permanent_delete_file(self, ctx: AuthContext, file_id: int) -> Decimal:
        item = catalog.get_file(self.session, ctx.user_id, file_id, deleted=True)
        if item is None:
            raise NotFoundError("File not found in recycle bin.")
        freed = self._purge_file(ctx, item, self._file_location(ctx, item))
        self._release(ctx, freed)
        logger.info("User %s permanently deleted file %s (%s MB)", ctx.user_id, file_id, freed)
        return freed

    def permanent_delete_folder(self, ctx: AuthContext, folder_id: int) -> Decimal:
        folder = catalog.get_folder(self.session, ctx.user_id, folder_id, deleted=True)
        if folder is None:
            raise NotFoundError("Folder not found in recycle bin.")
        freed = self._purge_folder(ctx, folder, self._folder_location(ctx, folder))
        self._release(ctx, freed)
        logger.info("User %s permanently deleted folder %s (%s MB)", ctx.user_id, folder_id, freed)
        return freed

    def empty_recycle_bin(self, ctx: AuthContext) -> Dict[str, object]:
        """Permanently delete every top-level entry of the recycle bin."""
        deleted_folders = catalog.all_folders(self.session, ctx.user_id, deleted=True)
        deleted_ids = {f.id for f in deleted_folders}
        top_folders = [f for f in deleted_folders if f.parent_folder_id not in deleted_ids]

        freed = Decimal("0")
        for folder in top_folders:
            freed += self._purge_folder(ctx, folder, self._folder_location(ctx, folder))
        # whatever is left was deleted on its own
        loose_files = catalog.all_files(self.session, ctx.user_id, deleted=True)
        for item in loose_files:
            freed += self._purge_file(ctx, item, self._file_location(ctx, item))
        self._release(ctx, freed)
        logger.info("User %s emptied recycle bin (%s MB freed)", ctx.user_id, freed)
        return {"folders": len(top_folders), "files": len(loose_files), "freed_mb": freed}
