# Filename: dropdrive/storage.py
from pathlib import Path
from typing import BinaryIO, List
import logging
import shutil
import tempfile

import aiofiles

from .config import settings
from .exceptions import NotFoundError, StorageIOError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


class LocalBlobStore:
    """
    Byte storage on the local filesystem. Every user owns the directory
    <root>/<user_id>, with a recycle bin directory directly inside it.
    """

    def __init__(self, root: Path, recycle_bin_name: str = "RecycleBin") -> None:
        self.root = Path(root).resolve()
        self.recycle_bin_name = recycle_bin_name
        self.root.mkdir(parents=True, exist_ok=True)

    def user_root(self, user_id: int) -> Path:
        """Return the user's root directory, creating it on first use."""
        path = self.root / str(user_id)
        self.make_dir(path)
        return path

    def recycle_bin(self, user_id: int) -> Path:
        path = self.user_root(user_id) / self.recycle_bin_name
        self.make_dir(path)
        return path

    def exists(self, path: Path) -> bool:
        return Path(path).exists()

    def is_file(self, path: Path) -> bool:
        return Path(path).is_file()

    def is_dir(self, path: Path) -> bool:
        return Path(path).is_dir()

    def make_dir(self, path: Path) -> None:
        try:
            Path(path).mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.error("Failed to create directory %s: %s", path, exc)
            raise StorageIOError(f"Failed to create directory on disk: {Path(path).name}") from exc

    def touch(self, path: Path) -> None:
        """Create an empty file. Fails if something already sits at path."""
        try:
            Path(path).touch(exist_ok=False)
        except OSError as exc:
            logger.error("Failed to create file %s: %s", path, exc)
            raise StorageIOError("Failed to create file on disk.") from exc

    async def save_stream(self, dest: Path, source: BinaryIO) -> int:
        """
        Copy a readable binary stream to dest. Returns the number of bytes written.
        A partially written file is removed when the copy fails.
        """
        dest = Path(dest)
        size = 0
        try:
            async with aiofiles.open(dest, "wb") as out_file:
                while True:
                    chunk = source.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    await out_file.write(chunk)
                    size += len(chunk)
        except OSError as exc:
            logger.error("Failed to write %s: %s", dest, exc)
            dest.unlink(missing_ok=True)
            raise StorageIOError(f"Failed to write file on disk: {dest.name}") from exc
        return size

    def move(self, src: Path, dst: Path) -> None:
        """Move a file or a whole directory. The destination must not exist."""
        src, dst = Path(src), Path(dst)
        if not src.exists():
            raise NotFoundError(f"'{src.name}' not found on disk")
        if dst.exists():
            raise StorageIOError(f"Destination already exists on disk: {dst.name}")
        try:
            dst.parent.mkdir(parents=True, exist_ok=True)
            # rename keeps directory moves atomic on the same filesystem
            src.rename(dst)
        except OSError as exc:
            logger.error("Failed to move %s -> %s: %s", src, dst, exc)
            raise StorageIOError(f"Failed to move '{src.name}' on disk") from exc

    move_tree = move

    def copy_tree(self, src: Path, dst: Path) -> None:
        src, dst = Path(src), Path(dst)
        if not src.exists():
            raise NotFoundError(f"'{src.name}' not found on disk")
        try:
            if src.is_dir():
                shutil.copytree(src, dst)
            else:
                shutil.copy2(src, dst)
        except OSError as exc:
            logger.error("Failed to copy %s -> %s: %s", src, dst, exc)
            raise StorageIOError(f"Failed to copy '{src.name}' on disk") from exc

    def delete(self, path: Path) -> bool:
        """Delete a file or a directory tree. Returns False when nothing was there."""
        path = Path(path)
        try:
            if path.is_dir():
                shutil.rmtree(path)
            elif path.exists():
                path.unlink()
            else:
                return False
        except OSError as exc:
            logger.error("Failed to delete %s: %s", path, exc)
            raise StorageIOError(f"Failed to delete '{path.name}' from disk") from exc
        return True

    delete_tree = delete

    def list_dir(self, path: Path) -> List[Path]:
        path = Path(path)
        if not path.is_dir():
            return []
        return sorted(path.iterdir())

    def modified_at(self, path: Path) -> float:
        return Path(path).stat().st_mtime

    def zip_directory(self, path: Path) -> Path:
        """Zip a directory into a temporary archive. The caller removes the archive."""
        path = Path(path)
        if not path.is_dir():
            raise NotFoundError("Folder path does not exist on disk")
        workdir = Path(tempfile.mkdtemp(prefix="dropdrive_zip_"))
        try:
            archive = shutil.make_archive(str(workdir / path.name), "zip", root_dir=path)
        except OSError as exc:
            shutil.rmtree(workdir, ignore_errors=True)
            logger.error("Failed to zip %s: %s", path, exc)
            raise StorageIOError(f"Failed to build archive for '{path.name}'") from exc
        return Path(archive)


blob_store = LocalBlobStore(settings.storage_path, settings.recycle_bin_name)


def get_blob_store() -> LocalBlobStore:
    """Return the configured blob store (dependency)."""
    return blob_store
