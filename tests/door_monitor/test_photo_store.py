import pytest

from door_monitor.errors import StorageError
from door_monitor.photo_store import CollisionPolicy
from door_monitor.visitor import Collection

from fakes import INTRUDERS, make_visitor_folder, run


def test_open_root_creates_and_reopens(store, photos_dir):
    first = run(store.open_root("Whitelist"))
    (first / "marker").mkdir()
    second = run(store.open_root("Whitelist"))

    assert first == second == photos_dir / "Whitelist"
    assert (second / "marker").is_dir()


def test_listings_are_sorted(store, photos_dir):
    make_visitor_folder(photos_dir, "zoe", photos=("b.JPG", "a.png", "notes.txt"))
    make_visitor_folder(photos_dir, "adam")
    (photos_dir / "loose.jpg").write_bytes(b"")

    folders = run(store.list_subfolders(photos_dir))
    files = run(store.list_files(photos_dir / "zoe"))

    assert [f.name for f in folders] == ["adam", "zoe"]
    assert [f.name for f in files] == ["a.png", "b.JPG"]


def test_create_folder_collision_policies(store, photos_dir):
    existing = make_visitor_folder(photos_dir, "intruder0")

    opened = run(store.create_folder(photos_dir, "intruder0", CollisionPolicy.OPEN_IF_EXISTS))
    assert opened == existing
    assert (existing / "a.jpg").exists()

    with pytest.raises(StorageError):
        run(store.create_folder(photos_dir, "intruder0", CollisionPolicy.FAIL_IF_EXISTS))

    replaced = run(store.create_folder(photos_dir, "intruder0", CollisionPolicy.REPLACE_EXISTING))
    assert replaced.is_dir()
    assert list(replaced.iterdir()) == []


def test_move_file(store, tmp_path, photos_dir):
    src = tmp_path / "capture.jpg"
    src.write_bytes(b"\xff\xd8")
    dest = make_visitor_folder(photos_dir, "intruder0", photos=())

    moved = run(store.move_file(src, dest))

    assert moved == dest / "capture.jpg"
    assert moved.read_bytes() == b"\xff\xd8"
    assert not src.exists()


def test_os_errors_become_storage_errors(store, tmp_path):
    with pytest.raises(StorageError):
        run(store.list_subfolders(tmp_path / "missing"))

    with pytest.raises(StorageError):
        run(store.move_file(tmp_path / "missing.jpg", tmp_path))


def test_record_intruder_skips_past_gaps(directory, photos_dir, tmp_path):
    # intruder0 was deleted after review: count says "intruder2", which is taken
    make_visitor_folder(photos_dir / INTRUDERS, "intruder1")
    make_visitor_folder(photos_dir / INTRUDERS, "intruder2")
    capture = tmp_path / "capture.jpg"
    capture.write_bytes(b"\xff\xd8")

    visitor = run(directory.record_intruder(capture))

    assert visitor.name == "intruder3"
    assert not capture.exists()
    # Existing records are untouched
    assert [p.name for p in (photos_dir / INTRUDERS / "intruder2").iterdir()] == ["a.jpg"]


def test_record_intruder_refuses_to_overwrite_non_folder(directory, photos_dir, tmp_path):
    # A stray file named like the next record is not listed as a folder but still blocks the name
    root = photos_dir / INTRUDERS
    root.mkdir()
    (root / "intruder0").write_text("stray")
    capture = tmp_path / "capture.jpg"
    capture.write_bytes(b"\xff\xd8")

    with pytest.raises(StorageError):
        run(directory.record_intruder(capture))

    assert (root / "intruder0").read_text() == "stray"
    assert capture.exists()


def test_record_intruder_moves_capture(directory, photos_dir, tmp_path):
    capture = tmp_path / "capture.jpg"
    capture.write_bytes(b"\xff\xd8")

    visitor = run(directory.record_intruder(capture))

    assert visitor.name == "intruder0"
    assert visitor.storage_location == photos_dir / INTRUDERS / "intruder0"
    assert visitor.reference_image == visitor.storage_location / "capture.jpg"
    assert not capture.exists()
    # record_intruder writes storage only; the cache changes on the next sync
    assert directory.get(Collection.INTRUDERS) == ()
