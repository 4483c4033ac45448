# Filename: dropdrive/naming.py
"""
Collision-free naming.

Siblings get Explorer-style numbering: "Report.txt", "Report (2).txt",
"Report (3).txt", ... The counter starts at 2. Files moved into the recycle
bin use a different, older convention: "Report(1).txt", "Report(2).txt", ...
"""
import os
from typing import Callable, Iterable, Optional, Tuple


def split_name(filename: str, default_ext: Optional[str] = None) -> Tuple[str, str]:
    """
    Split "report.PDF" into ("report", ".PDF"). When the name carries no
    extension, default_ext is used (e.g. ".txt").
    """
    base, ext = os.path.splitext(filename.strip())
    if not ext and default_ext:
        ext = default_ext
    return base, ext


def numbered(base: str, counter: int) -> str:
    return f"{base} ({counter})"


def unique_name(
    base: str,
    ext: str,
    sibling_names: Iterable[str],
    exists_on_disk: Callable[[str], bool] = lambda name: False,
) -> str:
    """
    Return base + ext, or the first "{base} (n)" + ext (n >= 2) that matches
    no sibling name case-insensitively and does not exist on disk.
    """
    taken = {name.lower() for name in sibling_names}
    candidate = base + ext
    counter = 2
    while candidate.lower() in taken or exists_on_disk(candidate):
        candidate = numbered(base, counter) + ext
        counter += 1
    return candidate


def recycle_bin_file_name(filename: str, exists_in_bin: Callable[[str], bool]) -> str:
    base, ext = os.path.splitext(filename)
    candidate = filename
    counter = 1
    while exists_in_bin(candidate):
        candidate = f"{base}({counter}){ext}"
        counter += 1
    return candidate
