# Filename: dropdrive/recycle.py
"""
Per-user recycle bin.

Soft-deleted bytes are moved into <user_root>/<recycle_bin_name>. The Catalog
keeps the original path of each record, so entries inside the bin are found
again by name: files as "<name><ext>" or "<name>(N)<ext>", folders as "<name>" or
"<name> (N)".
When several candidates exist the most recently modified one wins.
"""
import logging
import os
import re
from pathlib import Path
from typing import Optional

from .naming import numbered, recycle_bin_file_name
from .storage import LocalBlobStore

logger = logging.getLogger(__name__)


def move_file_to_bin(blobs: LocalBlobStore, user_id: int, path: Path) -> Path:
    bin_dir = blobs.recycle_bin(user_id)
    path = Path(path)
    name = recycle_bin_file_name(path.name, lambda candidate: blobs.exists(bin_dir / candidate))
    destination = bin_dir / name
    blobs.move(path, destination)
    logger.info("Moved file %s to recycle bin as %s", path, destination.name)
    return destination


def move_folder_to_bin(blobs: LocalBlobStore, user_id: int, path: Path) -> Path:
    bin_dir = blobs.recycle_bin(user_id)
    path = Path(path)
    candidate = path.name
    counter = 2
    while blobs.exists(bin_dir / candidate):
        candidate = numbered(path.name, counter)
        counter += 1
    destination = bin_dir / candidate
    blobs.move_tree(path, destination)
    logger.info("Moved folder %s to recycle bin as %s", path, destination.name)
    return destination


def _newest(blobs: LocalBlobStore, candidates) -> Optional[Path]:
    candidates = list(candidates)
    if not candidates:
        return None
    return max(candidates, key=blobs.modified_at)


def find_file(blobs: LocalBlobStore, user_id: int, original_path: str) -> Optional[Path]:
    """Locate the recycle-bin copy of a file whose original location was original_path."""
    base, ext = os.path.splitext(os.path.basename(original_path))
    pattern = re.compile("^" + re.escape(base) + r"(\(\d+\))?" + re.escape(ext) + "$", re.IGNORECASE)
    bin_dir = blobs.recycle_bin(user_id)
    candidates = (entry for entry in blobs.list_dir(bin_dir) if blobs.is_file(entry) and pattern.match(entry.name))
    return _newest(blobs, candidates)


def find_folder(blobs: LocalBlobStore, user_id: int, original_path: str) -> Optional[Path]:
    """Locate the recycle-bin copy of a folder: exact name first, then "<name> (N)" variants."""
    name = os.path.basename(original_path.rstrip("/" + os.sep))
    bin_dir = blobs.recycle_bin(user_id)
    exact = bin_dir / name
    if blobs.is_dir(exact):
        return exact
    pattern = re.compile("^" + re.escape(name) + r" \(\d+\)$", re.IGNORECASE)
    candidates = (
        entry
        for entry in blobs.list_dir(bin_dir)
        if blobs.is_dir(entry) and (entry.name.lower() == name.lower() or pattern.match(entry.name))
    )
    return _newest(blobs, candidates)
