from __future__ import annotations

from artiflow.tools.file_store import FileStore, FolderEntry, LockStatus


def test_folder_lock_only_affects_existing_files() -> None:
    store = FileStore({"/src": FolderEntry()})

    store.lock_folder("/src")
    store.create_file("/src/a.js", "a")

    assert store.is_file_locked("/src/a.js") == LockStatus(False)

    store.lock_folder("/src")
    assert store.is_file_locked("/src/a.js") == LockStatus(True, "/src")


def test_unlock_folder_keeps_independent_locks(src_store: FileStore) -> None:
    src_store.lock_file("/src/b.js")
    src_store.lock_folder("/src")

    assert src_store.get_file("/src/b.js").locked_by_folder is None
    assert src_store.get_file("/src/a.js").locked_by_folder == "/src"

    src_store.unlock_folder("/src")

    assert src_store.is_file_locked("/src/b.js") == LockStatus(True, "/src/b.js")
    assert src_store.is_file_locked("/src/a.js") == LockStatus(False)
    assert src_store.is_folder_locked("/src") == LockStatus(False)


def test_folder_lock_covers_nested_files_but_not_siblings(src_store: FileStore) -> None:
    src_store.lock_folder("/src")

    assert src_store.is_file_locked("/src/lib/util.js") == LockStatus(True, "/src")
    assert src_store.is_file_locked("/README.md") == LockStatus(False)
    assert src_store.is_folder_locked("/src") == LockStatus(True, "/src")
    assert src_store.is_locked("/src") is True


def test_unlocking_inner_folder_falls_back_to_locked_ancestor(src_store: FileStore) -> None:
    src_store.lock_folder("/src")
    src_store.lock_folder("/src/lib")
    assert src_store.get_file("/src/lib/util.js").locked_by_folder == "/src/lib"

    src_store.unlock_folder("/src/lib")

    assert src_store.is_file_locked("/src/lib/util.js") == LockStatus(True, "/src")

    src_store.unlock_folder("/src")
    assert src_store.is_file_locked("/src/lib/util.js") == LockStatus(False)


def test_locked_by_folder_only_set_while_that_folder_is_locked(src_store: FileStore) -> None:
    src_store.lock_folder("/src")
    src_store.unlock_folder("/src")

    for path, entry in src_store.iter_entries():
        if hasattr(entry, "locked_by_folder") and entry.locked_by_folder is not None:
            folder = src_store.get_entry(entry.locked_by_folder)
            assert folder is not None and folder.is_locked, path


def test_file_lock_makes_folder_tagged_file_independent(src_store: FileStore) -> None:
    src_store.lock_folder("/src")
    src_store.lock_file("/src/a.js")
    src_store.unlock_folder("/src")

    assert src_store.is_file_locked("/src/a.js") == LockStatus(True, "/src/a.js")


def test_overwriting_a_locked_file_keeps_its_lock(src_store: FileStore) -> None:
    src_store.lock_file("/src/a.js")

    src_store.create_file("/src/a.js", "new content")

    assert src_store.get_file("/src/a.js").content == "new content"
    assert src_store.is_file_locked("/src/a.js").locked is True


def test_lock_queries_on_missing_paths() -> None:
    store = FileStore()

    assert store.lock_file("/nope.js") is False
    assert store.lock_folder("/nope") is False
    assert store.unlock_folder("/nope") is False
    assert store.is_file_locked("/nope.js") == LockStatus(False, None)
    assert store.is_locked("/nope.js") is False


def test_create_file_adds_parent_folders() -> None:
    store = FileStore()

    store.create_file("/src/components/Button.jsx", "x")

    assert isinstance(store.get_entry("/src"), FolderEntry)
    assert isinstance(store.get_entry("/src/components"), FolderEntry)
    assert store.files_count == 1


def test_modifications_track_original_content(src_store: FileStore) -> None:
    src_store.update_file("/src/a.js", "a2")
    src_store.update_file("/src/a.js", "a3")
    src_store.update_file("/src/b.js", "b")
    src_store.create_file("/src/new.js", "fresh")

    modifications = src_store.get_file_modifications()

    assert modifications["/src/a.js"] == ("a", "a3")
    assert modifications["/src/new.js"] == ("", "fresh")
    assert "/src/b.js" not in modifications

    src_store.reset_file_modifications()
    assert src_store.get_file_modifications() == {}


def test_update_missing_file_is_refused() -> None:
    store = FileStore()

    assert store.update_file("/ghost.js", "boo") is False
    assert store.delete_file("/ghost.js") is False


def test_delete_folder_removes_descendants(src_store: FileStore) -> None:
    assert src_store.delete_folder("/src") is True

    assert src_store.file_contents() == {"/README.md": "readme"}
    assert "/src/lib/util.js" in src_store.deleted_paths


def test_cleanup_deleted_files_drops_stale_entries(src_store: FileStore) -> None:
    src_store.delete_file("/src/a.js")
    src_store.set_files({**dict(src_store.iter_entries()), "/src/a.js": src_store.get_entry("/src/b.js")})

    assert src_store.cleanup_deleted_files() == 1
    assert src_store.get_file("/src/a.js") is None


def test_reset_clears_everything(src_store: FileStore) -> None:
    src_store.update_file("/src/a.js", "changed")

    src_store.reset()

    assert src_store.files_count == 0
    assert src_store.get_file_modifications() == {}
