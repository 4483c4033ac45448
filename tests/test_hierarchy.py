from decimal import Decimal
from pathlib import Path

import pytest
from sqlmodel import select

from dropdrive.exceptions import BadRequestError, NotFoundError, QuotaExceededError
from dropdrive.hierarchy import HierarchyEngine
from dropdrive.models import FileItem, Folder

MB = 1024 * 1024


def _names(rows):
    return sorted(row.name for row in rows)


# --- create_folder ---


def test_create_folder_twice_is_renumbered(drive, ctx, blobs):
    first = drive.create_folder(ctx, "Reports")
    second = drive.create_folder(ctx, "Reports")

    assert first.name == "Reports"
    assert second.name == "Reports (2)"
    assert Path(second.path) == blobs.user_root(ctx.user_id) / "Reports (2)"
    assert Path(first.path).is_dir() and Path(second.path).is_dir()


def test_create_folder_renumbering_is_case_insensitive(drive, ctx):
    drive.create_folder(ctx, "reports")
    assert drive.create_folder(ctx, "REPORTS").name == "REPORTS (2)"


def test_create_folder_trims_name(drive, ctx):
    assert drive.create_folder(ctx, "  Invoices  ").name == "Invoices"


@pytest.mark.parametrize("name", [None, "", "   "])
def test_create_folder_blank_name(drive, ctx, name):
    with pytest.raises(BadRequestError):
        drive.create_folder(ctx, name)


@pytest.mark.parametrize("name", ["a/b", "a\\b", ".."])
def test_create_folder_invalid_name(drive, ctx, name):
    with pytest.raises(BadRequestError):
        drive.create_folder(ctx, name)


def test_create_folder_nested(drive, ctx):
    parent = drive.create_folder(ctx, "Parent")
    child = drive.create_folder(ctx, "Child", parent.id)
    assert child.parent_folder_id == parent.id
    assert Path(child.path) == Path(parent.path) / "Child"


def test_create_folder_missing_parent(drive, ctx):
    with pytest.raises(NotFoundError):
        drive.create_folder(ctx, "Orphan", 12345)


def test_create_folder_path_too_long(session, blobs, ctx):
    short = HierarchyEngine(session, blobs, max_path_length=len(str(blobs.user_root(ctx.user_id))) + 5)
    with pytest.raises(BadRequestError):
        short.create_folder(ctx, "a-much-too-long-folder-name")
    assert not (blobs.user_root(ctx.user_id) / "a-much-too-long-folder-name").exists()
    assert len(session.exec(select(Folder)).all()) == 0


def test_create_folder_skips_names_taken_on_disk(drive, ctx, blobs):
    (blobs.user_root(ctx.user_id) / "Stray").mkdir()
    assert drive.create_folder(ctx, "Stray").name == "Stray (2)"


# --- create_file ---


def test_create_file_defaults_to_txt(drive, ctx, user):
    item = drive.create_file(ctx, "  notes  ")
    assert item.full_name == "notes.txt"
    assert item.type == "txt"
    assert item.size_mb == Decimal("0")
    assert Path(item.path).is_file()
    assert Path(item.path).read_bytes() == b""
    assert user.used_storage_mb == Decimal("0")


def test_create_file_twice_is_renumbered(drive, ctx):
    folder = drive.create_folder(ctx, "Drafts")
    first = drive.create_file(ctx, "plan.md", folder.id)
    second = drive.create_file(ctx, "PLAN.md", folder.id)
    assert first.full_name == "plan.md"
    assert second.full_name == "PLAN (2).md"
    assert second.folder_id == folder.id
    assert Path(second.path) == Path(folder.path) / "PLAN (2).md"


@pytest.mark.parametrize("name", [None, "", "   "])
def test_create_file_blank_name(drive, ctx, name):
    with pytest.raises(BadRequestError, match="File name cannot be empty."):
        drive.create_file(ctx, name)


def test_create_file_in_deleted_folder(drive, ctx):
    folder = drive.create_folder(ctx, "Gone")
    drive.delete_folder(ctx, folder.id)
    with pytest.raises(NotFoundError):
        drive.create_file(ctx, "a.txt", folder.id)


def test_create_file_path_too_long(session, blobs, ctx):
    short = HierarchyEngine(session, blobs, max_path_length=len(str(blobs.user_root(ctx.user_id))) + 5)
    with pytest.raises(BadRequestError, match="File path exceeds maximum length"):
        short.create_file(ctx, "a-much-too-long-file-name.txt")
    assert not (blobs.user_root(ctx.user_id) / "a-much-too-long-file-name.txt").exists()
    assert len(session.exec(select(FileItem)).all()) == 0


# --- upload_files ---


async def test_upload_same_name_twice(drive, ctx, user, make_file):
    folder = drive.create_folder(ctx, "Docs")
    first = await drive.upload_files(ctx, [make_file("report.pdf", 5 * MB)], folder.id)
    second = await drive.upload_files(ctx, [make_file("report.pdf", 5 * MB)], folder.id)

    a, b = first.files[0], second.files[0]
    assert (a.name, a.type) == ("report", "pdf")
    assert (b.name, b.type) == ("report (2)", "pdf")
    assert a.size_mb == Decimal("5") and b.size_mb == Decimal("5")
    assert Path(b.path).name == "report (2).pdf"
    assert Path(b.path).read_bytes() == b"x" * 5 * MB
    assert user.used_storage_mb == Decimal("10")


async def test_upload_defaults_extension_to_txt(drive, ctx, make_file):
    report = await drive.upload_files(ctx, [make_file("notes")])
    item = report.files[0]
    assert (item.name, item.type) == ("notes", "txt")
    assert Path(item.path).name == "notes.txt"
    assert item.folder_id is None


async def test_upload_lowercases_type(drive, ctx, make_file):
    report = await drive.upload_files(ctx, [make_file("Photo.JPG")])
    item = report.files[0]
    assert item.type == "jpg"
    assert Path(item.path).name == "Photo.JPG"


async def test_upload_batch_renumbers_within_batch(drive, ctx, make_file):
    report = await drive.upload_files(ctx, [make_file("a.txt"), make_file("a.txt")])
    assert sorted(f.full_name for f in report.files) == ["a (2).txt", "a.txt"]


async def test_upload_skips_empty_files(drive, ctx, user, make_file):
    report = await drive.upload_files(ctx, [make_file("empty.txt", 0), make_file("full.txt", MB)])

    assert [f.full_name for f in report.files] == ["full.txt"]
    assert [f.name for f in report.failures] == ["empty.txt"]
    assert report.failures[0].reason == "Empty file."
    assert user.used_storage_mb == Decimal("1")


async def test_upload_over_quota_writes_nothing(drive, ctx, user, blobs, make_file):
    with pytest.raises(QuotaExceededError):
        await drive.upload_files(ctx, [make_file("big.bin", 21 * MB)])
    assert blobs.list_dir(blobs.user_root(ctx.user_id)) == []
    assert user.used_storage_mb == Decimal("0")


async def test_upload_no_files(drive, ctx):
    with pytest.raises(BadRequestError):
        await drive.upload_files(ctx, [])


async def test_upload_into_deleted_folder(drive, ctx, make_file):
    folder = drive.create_folder(ctx, "Gone")
    drive.delete_folder(ctx, folder.id)
    with pytest.raises(NotFoundError):
        await drive.upload_files(ctx, [make_file("a.txt")], folder.id)


async def test_upload_strips_client_directories(drive, ctx, blobs, make_file):
    report = await drive.upload_files(ctx, [make_file("C:\\Users\\me\\a.txt")])
    assert Path(report.files[0].path) == blobs.user_root(ctx.user_id) / "a.txt"


# --- upload_folder ---


async def test_upload_folder_tree_merges_intermediate_folders(drive, ctx, session, make_file):
    files = [
        make_file("Photos/2024/a.jpg"),
        make_file("Photos/2024/b.jpg"),
        make_file("Photos\\c.jpg"),
    ]
    report = await drive.upload_folder(ctx, files)

    assert _names(report.folders) == ["2024", "Photos"]
    photos = next(f for f in report.folders if f.name == "Photos")
    year = next(f for f in report.folders if f.name == "2024")
    assert photos.parent_folder_id is None
    assert year.parent_folder_id == photos.id
    by_folder = {}
    for item in report.files:
        by_folder.setdefault(item.folder_id, []).append(item.full_name)
    assert sorted(by_folder[year.id]) == ["a.jpg", "b.jpg"]
    assert by_folder[photos.id] == ["c.jpg"]
    assert Path(photos.path, "2024", "a.jpg").is_file()
    assert len(session.exec(select(Folder)).all()) == 2


async def test_upload_folder_twice_renumbers_top_level(drive, ctx, make_file):
    await drive.upload_folder(ctx, [make_file("Photos/a.jpg")])
    report = await drive.upload_folder(ctx, [make_file("Photos/a.jpg")])
    assert [f.name for f in report.folders] == ["Photos (2)"]
    assert report.files[0].name == "a"


async def test_upload_folder_groups_top_level_case_insensitively(drive, ctx, make_file):
    report = await drive.upload_folder(ctx, [make_file("Music/a.mp3"), make_file("music/b.mp3")])
    assert [f.name for f in report.folders] == ["Music"]
    assert len({f.folder_id for f in report.files}) == 1


async def test_upload_folder_merges_nested_folders_case_insensitively(drive, ctx, session, make_file):
    report = await drive.upload_folder(ctx, [make_file("Top/sub/a.txt"), make_file("Top/Sub/b.txt")])
    assert _names(report.folders) == ["Top", "sub"]
    assert len({f.folder_id for f in report.files}) == 1
    assert len(session.exec(select(Folder)).all()) == 2


async def test_upload_folder_without_files_creates_empty_folder(drive, ctx):
    report = await drive.upload_folder(ctx, [])
    assert [f.name for f in report.folders] == ["New Folder"]
    again = await drive.upload_folder(ctx, [], root_folder_name="Empty")
    assert [f.name for f in again.folders] == ["Empty"]


async def test_upload_folder_loose_files_go_to_uploaded_folder(drive, ctx, make_file):
    report = await drive.upload_folder(ctx, [make_file("a.txt"), make_file("b.txt")])
    assert [f.name for f in report.folders] == ["Uploaded Folder"]
    assert {f.folder_id for f in report.files} == {report.folders[0].id}


async def test_upload_folder_single_loose_file_goes_to_parent(drive, ctx, make_file):
    report = await drive.upload_folder(ctx, [make_file("solo.txt")])
    assert report.folders == []
    assert report.files[0].folder_id is None


async def test_upload_folder_rejects_dot_segments(drive, ctx, blobs, make_file):
    with pytest.raises(BadRequestError):
        await drive.upload_folder(ctx, [make_file("Photos/../../escape.txt")])
    assert blobs.list_dir(blobs.user_root(ctx.user_id)) == []


async def test_upload_folder_counts_quota_once(drive, ctx, user, make_file):
    await drive.upload_folder(ctx, [make_file("T/a.bin", MB), make_file("T/sub/b.bin", 2 * MB)])
    assert user.used_storage_mb == Decimal("3")


# --- rename ---


async def test_rename_file_keeps_type(drive, ctx, make_file):
    item = (await drive.upload_files(ctx, [make_file("a.txt")])).files[0]
    renamed = drive.rename_file(ctx, item.id, "b.pdf")
    assert (renamed.name, renamed.type) == ("b", "txt")
    assert Path(renamed.path).name == "b.txt"
    assert Path(renamed.path).is_file()
    assert not (Path(renamed.path).parent / "a.txt").exists()


async def test_rename_file_into_taken_name(drive, ctx, make_file):
    report = await drive.upload_files(ctx, [make_file("a.txt"), make_file("c.txt")])
    a = next(f for f in report.files if f.name == "a")
    assert drive.rename_file(ctx, a.id, "C").full_name == "C (2).txt"


async def test_rename_file_to_same_name_is_noop(drive, ctx, make_file):
    item = (await drive.upload_files(ctx, [make_file("a.txt")])).files[0]
    renamed = drive.rename_file(ctx, item.id, "a")
    assert renamed.full_name == "a.txt"
    assert Path(renamed.path).is_file()


async def test_rename_file_missing_on_disk(drive, ctx, make_file):
    item = (await drive.upload_files(ctx, [make_file("a.txt")])).files[0]
    Path(item.path).unlink()
    with pytest.raises(NotFoundError):
        drive.rename_file(ctx, item.id, "b")


async def test_rename_file_blank(drive, ctx, make_file):
    item = (await drive.upload_files(ctx, [make_file("a.txt")])).files[0]
    with pytest.raises(BadRequestError):
        drive.rename_file(ctx, item.id, "  ")


async def test_rename_deleted_file_is_not_found(drive, ctx, make_file):
    item = (await drive.upload_files(ctx, [make_file("a.txt")])).files[0]
    drive.delete_file(ctx, item.id)
    with pytest.raises(NotFoundError):
        drive.rename_file(ctx, item.id, "b")


async def test_rename_folder_rewrites_descendant_paths(drive, ctx, session, make_file):
    foo = drive.create_folder(ctx, "Foo")
    sub = drive.create_folder(ctx, "Sub", foo.id)
    foo2 = drive.create_folder(ctx, "Foo2")
    inner = (await drive.upload_files(ctx, [make_file("x.txt")], sub.id)).files[0]
    top = (await drive.upload_files(ctx, [make_file("y.txt")], foo.id)).files[0]
    other = (await drive.upload_files(ctx, [make_file("z.txt")], foo2.id)).files[0]
    foo2_path, other_path = foo2.path, other.path
    root = Path(foo.path).parent

    renamed = drive.rename_folder(ctx, foo.id, "Bar")

    assert renamed.path == str(root / "Bar")
    session.refresh(sub)
    session.refresh(inner)
    session.refresh(top)
    session.refresh(foo2)
    session.refresh(other)
    assert sub.path == str(root / "Bar" / "Sub")
    assert inner.path == str(root / "Bar" / "Sub" / "x.txt")
    assert top.path == str(root / "Bar" / "y.txt")
    assert Path(inner.path).is_file()
    assert foo2.path == foo2_path
    assert other.path == other_path


def test_rename_folder_into_taken_name(drive, ctx):
    drive.create_folder(ctx, "A")
    b = drive.create_folder(ctx, "B")
    assert drive.rename_folder(ctx, b.id, "a").name == "a (2)"


def test_rename_folder_case_only(drive, ctx):
    folder = drive.create_folder(ctx, "docs")
    renamed = drive.rename_folder(ctx, folder.id, "Docs")
    assert renamed.name == "Docs"
    assert Path(renamed.path).is_dir()


def test_rename_folder_missing_on_disk(drive, ctx, blobs):
    folder = drive.create_folder(ctx, "Ghost")
    blobs.delete_tree(Path(folder.path))
    with pytest.raises(NotFoundError):
        drive.rename_folder(ctx, folder.id, "Spirit")


async def test_rename_folder_rejects_too_long_descendant_path(session, blobs, ctx, make_file):
    # root/A/sub/file.txt fits, root/ABCDEFGH/sub/file.txt does not
    short = HierarchyEngine(session, blobs, max_path_length=len(str(blobs.user_root(ctx.user_id))) + 20)
    top = short.create_folder(ctx, "A")
    sub = short.create_folder(ctx, "sub", top.id)
    item = (await short.upload_files(ctx, [make_file("file.txt")], sub.id)).files[0]

    with pytest.raises(BadRequestError):
        short.rename_folder(ctx, top.id, "ABCDEFGH")

    session.refresh(top)
    session.refresh(item)
    assert top.name == "A"
    assert Path(top.path).is_dir()
    assert Path(item.path).is_file()
    assert not (blobs.user_root(ctx.user_id) / "ABCDEFGH").exists()


# --- delete / recover ---


async def _project_tree(drive, ctx, make_file):
    project = drive.create_folder(ctx, "Projects")
    sub = drive.create_folder(ctx, "Drafts", project.id)
    item = (await drive.upload_files(ctx, [make_file("plan.txt")], sub.id)).files[0]
    return project, sub, item


async def test_delete_folder_marks_subtree(drive, ctx, session, blobs, make_file):
    project, sub, item = await _project_tree(drive, ctx, make_file)
    paths = (project.path, sub.path, item.path)

    drive.delete_folder(ctx, project.id)

    rows = [session.get(Folder, project.id), session.get(Folder, sub.id), session.get(FileItem, item.id)]
    assert all(row.is_deleted for row in rows)
    assert tuple(row.path for row in rows) == paths
    assert not Path(project.path).exists()
    assert (blobs.recycle_bin(ctx.user_id) / "Projects" / "Drafts" / "plan.txt").is_file()


async def test_recover_folder_restores_subtree(drive, ctx, session, make_file):
    project, sub, item = await _project_tree(drive, ctx, make_file)
    drive.delete_folder(ctx, project.id)

    recovered = drive.recover_folder(ctx, project.id)

    assert recovered.name == "Projects"
    for row in (session.get(Folder, sub.id), session.get(FileItem, item.id)):
        assert not row.is_deleted
    assert Path(session.get(FileItem, item.id).path).is_file()


async def test_recover_folder_into_occupied_location(drive, ctx, session, make_file):
    project, sub, item = await _project_tree(drive, ctx, make_file)
    drive.delete_folder(ctx, project.id)
    drive.create_folder(ctx, "Projects")

    recovered = drive.recover_folder(ctx, project.id)

    assert recovered.name == "Projects (2)"
    restored = session.get(FileItem, item.id)
    assert restored.path == str(Path(recovered.path) / "Drafts" / "plan.txt")
    assert Path(restored.path).is_file()
    assert session.get(Folder, sub.id).path == str(Path(recovered.path) / "Drafts")


async def test_recover_folder_leaves_individually_deleted_children(drive, ctx, session, make_file):
    docs = drive.create_folder(ctx, "Docs")
    report = await drive.upload_files(ctx, [make_file("a.txt"), make_file("b.txt")], docs.id)
    a = next(f for f in report.files if f.name == "a")
    b = next(f for f in report.files if f.name == "b")
    drive.delete_file(ctx, a.id)
    drive.delete_folder(ctx, docs.id)

    drive.recover_folder(ctx, docs.id)

    assert not session.get(FileItem, b.id).is_deleted
    assert session.get(FileItem, a.id).is_deleted
    restored = drive.recover_file(ctx, a.id)
    assert restored.full_name == "a.txt"
    assert Path(restored.path).is_file()


async def test_delete_file_uses_recycle_bin_numbering(drive, ctx, blobs, make_file):
    first = (await drive.upload_files(ctx, [make_file("a.txt")])).files[0]
    drive.delete_file(ctx, first.id)
    second = (await drive.upload_files(ctx, [make_file("a.txt")])).files[0]
    drive.delete_file(ctx, second.id)

    bin_names = sorted(p.name for p in blobs.list_dir(blobs.recycle_bin(ctx.user_id)))
    assert bin_names == ["a(1).txt", "a.txt"]


async def test_delete_file_keeps_path(drive, ctx, make_file):
    item = (await drive.upload_files(ctx, [make_file("a.txt")])).files[0]
    original = item.path
    deleted = drive.delete_file(ctx, item.id)
    assert deleted.is_deleted
    assert deleted.path == original
    assert not Path(original).exists()


async def test_delete_then_recover_file(drive, ctx, user, make_file):
    item = (await drive.upload_files(ctx, [make_file("a.txt", MB)])).files[0]
    original = item.path
    drive.delete_file(ctx, item.id)
    assert user.used_storage_mb == Decimal("1")

    restored = drive.recover_file(ctx, item.id)

    assert not restored.is_deleted
    assert restored.path == original
    assert Path(original).read_bytes() == b"x" * MB
    assert user.used_storage_mb == Decimal("1")


async def test_recover_file_into_occupied_location(drive, ctx, make_file):
    first = (await drive.upload_files(ctx, [make_file("a.txt")])).files[0]
    drive.delete_file(ctx, first.id)
    await drive.upload_files(ctx, [make_file("a.txt")])

    restored = drive.recover_file(ctx, first.id)

    assert restored.full_name == "a (2).txt"
    assert Path(restored.path).is_file()


async def test_recover_file_recreates_parent(drive, ctx, blobs, make_file):
    folder = drive.create_folder(ctx, "Keep")
    item = (await drive.upload_files(ctx, [make_file("a.txt")], folder.id)).files[0]
    drive.delete_file(ctx, item.id)
    blobs.delete_tree(Path(folder.path))

    restored = drive.recover_file(ctx, item.id)
    assert Path(restored.path).is_file()


async def test_recover_live_file_is_not_found(drive, ctx, make_file):
    item = (await drive.upload_files(ctx, [make_file("a.txt")])).files[0]
    with pytest.raises(NotFoundError):
        drive.recover_file(ctx, item.id)


async def test_recover_file_missing_from_bin(drive, ctx, blobs, make_file):
    item = (await drive.upload_files(ctx, [make_file("a.txt")])).files[0]
    drive.delete_file(ctx, item.id)
    blobs.delete(blobs.recycle_bin(ctx.user_id) / "a.txt")
    with pytest.raises(NotFoundError):
        drive.recover_file(ctx, item.id)


async def test_recover_file_does_not_pick_up_longer_names(drive, ctx, make_file):
    a = (await drive.upload_files(ctx, [make_file("a.txt", 4, b"A")])).files[0]
    abc = (await drive.upload_files(ctx, [make_file("abc.txt", 4, b"B")])).files[0]
    drive.delete_file(ctx, a.id)
    drive.delete_file(ctx, abc.id)

    restored = drive.recover_file(ctx, a.id)
    assert Path(restored.path).read_bytes() == b"AAAA"

    restored = drive.recover_file(ctx, abc.id)
    assert restored.full_name == "abc.txt"
    assert Path(restored.path).read_bytes() == b"BBBB"


async def test_recover_file_inside_deleted_folder(drive, ctx, session, blobs, make_file):
    docs = drive.create_folder(ctx, "Docs")
    item = (await drive.upload_files(ctx, [make_file("a.txt")], docs.id)).files[0]
    drive.delete_file(ctx, item.id)
    drive.delete_folder(ctx, docs.id)

    with pytest.raises(NotFoundError, match="Recover the folder first"):
        drive.recover_file(ctx, item.id)

    assert session.get(FileItem, item.id).is_deleted
    assert not Path(docs.path).exists()
    assert (blobs.recycle_bin(ctx.user_id) / "a.txt").is_file()


def test_delete_folder_twice_is_not_found(drive, ctx):
    folder = drive.create_folder(ctx, "Once")
    drive.delete_folder(ctx, folder.id)
    with pytest.raises(NotFoundError):
        drive.delete_folder(ctx, folder.id)


def test_delete_same_folder_name_twice_renumbers_in_bin(drive, ctx, blobs):
    first = drive.create_folder(ctx, "Tmp")
    drive.delete_folder(ctx, first.id)
    second = drive.create_folder(ctx, "Tmp")
    drive.delete_folder(ctx, second.id)
    bin_names = sorted(p.name for p in blobs.list_dir(blobs.recycle_bin(ctx.user_id)))
    assert bin_names == ["Tmp", "Tmp (2)"]


# --- permanent delete ---


async def test_permanent_delete_folder_frees_quota(drive, ctx, session, user, blobs, make_file):
    big = drive.create_folder(ctx, "Big")
    sub = drive.create_folder(ctx, "Sub", big.id)
    one = (await drive.upload_files(ctx, [make_file("one.bin", MB)], big.id)).files[0]
    two = (await drive.upload_files(ctx, [make_file("two.bin", 2 * MB)], sub.id)).files[0]
    keep = (await drive.upload_files(ctx, [make_file("keep.bin", MB)])).files[0]
    assert user.used_storage_mb == Decimal("4")

    drive.delete_folder(ctx, big.id)
    freed = drive.permanent_delete_folder(ctx, big.id)

    assert freed == Decimal("3")
    assert user.used_storage_mb == Decimal("1")
    assert session.get(Folder, big.id) is None
    assert session.get(Folder, sub.id) is None
    assert session.get(FileItem, one.id) is None
    assert session.get(FileItem, two.id) is None
    assert session.get(FileItem, keep.id) is not None
    assert blobs.list_dir(blobs.recycle_bin(ctx.user_id)) == []


async def test_permanent_delete_folder_removes_separately_deleted_children(drive, ctx, session, user, blobs, make_file):
    folder = drive.create_folder(ctx, "F")
    sub = drive.create_folder(ctx, "Sub", folder.id)
    x = (await drive.upload_files(ctx, [make_file("x.bin", MB)], folder.id)).files[0]
    await drive.upload_files(ctx, [make_file("y.bin", MB)], folder.id)
    drive.delete_file(ctx, x.id)
    drive.delete_folder(ctx, sub.id)
    drive.delete_folder(ctx, folder.id)

    freed = drive.permanent_delete_folder(ctx, folder.id)

    assert freed == Decimal("2")
    assert user.used_storage_mb == Decimal("0")
    assert session.get(FileItem, x.id) is None
    assert session.get(Folder, sub.id) is None
    assert blobs.list_dir(blobs.recycle_bin(ctx.user_id)) == []


async def test_permanent_delete_file(drive, ctx, session, user, blobs, make_file):
    item = (await drive.upload_files(ctx, [make_file("a.txt", 2 * MB)])).files[0]
    drive.delete_file(ctx, item.id)

    assert drive.permanent_delete_file(ctx, item.id) == Decimal("2")
    assert user.used_storage_mb == Decimal("0")
    assert session.get(FileItem, item.id) is None
    assert blobs.list_dir(blobs.recycle_bin(ctx.user_id)) == []


async def test_permanent_delete_requires_soft_delete_first(drive, ctx, make_file):
    item = (await drive.upload_files(ctx, [make_file("a.txt")])).files[0]
    folder = drive.create_folder(ctx, "Live")
    with pytest.raises(NotFoundError):
        drive.permanent_delete_file(ctx, item.id)
    with pytest.raises(NotFoundError):
        drive.permanent_delete_folder(ctx, folder.id)


async def test_quota_conservation(drive, ctx, user, make_file):
    report = await drive.upload_files(ctx, [make_file("s1.bin", MB), make_file("s2.bin", 2 * MB), make_file("s3.bin", 3 * MB)])
    s2 = next(f for f in report.files if f.name == "s2")
    s3 = next(f for f in report.files if f.name == "s3")
    for item in (s3, s2):
        drive.delete_file(ctx, item.id)
        drive.permanent_delete_file(ctx, item.id)
    assert user.used_storage_mb == Decimal("1")


async def test_empty_recycle_bin(drive, ctx, session, user, blobs, make_file):
    keep = drive.create_folder(ctx, "Keep")
    trash = drive.create_folder(ctx, "Trash")
    await drive.upload_files(ctx, [make_file("t.bin", MB)], trash.id)
    loose = (await drive.upload_files(ctx, [make_file("loose.bin", MB)], keep.id)).files[0]
    drive.delete_folder(ctx, trash.id)
    drive.delete_file(ctx, loose.id)

    result = drive.empty_recycle_bin(ctx)

    assert result == {"folders": 1, "files": 1, "freed_mb": Decimal("2")}
    assert user.used_storage_mb == Decimal("0")
    assert len(session.exec(select(FileItem)).all()) == 0
    assert [f.name for f in session.exec(select(Folder)).all()] == ["Keep"]
    assert blobs.list_dir(blobs.recycle_bin(ctx.user_id)) == []
