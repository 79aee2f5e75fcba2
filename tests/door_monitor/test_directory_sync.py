import asyncio

from door_monitor.directory_sync import DirectorySync
from door_monitor.photo_store import PhotoStore
from door_monitor.visitor import Collection, VisitorDirectory

from fakes import INTRUDERS, WHITELIST, make_visitor_folder, run


class SlowStore(PhotoStore):
    """Blocks list_subfolders() until `release` is set."""

    def __init__(self, base_dir):
        super().__init__(base_dir)
        self.entered = asyncio.Event()
        self.release = asyncio.Event()
        self.list_calls = 0

    async def list_subfolders(self, root):
        self.list_calls += 1
        self.entered.set()
        await self.release.wait()
        return await super().list_subfolders(root)


def test_refresh_whitelist_builds_visitors(photos_dir, sync, directory):
    root = photos_dir / WHITELIST
    make_visitor_folder(root, "bob", photos=("2.jpg", "1.jpg"))
    make_visitor_folder(root, "alice", photos=("front.png",))

    assert run(sync.refresh_whitelist()) is True

    assert [v.name for v in directory.whitelist] == ["alice", "bob"]
    bob = directory.whitelist[1]
    # Representative photo is the first by filename
    assert bob.reference_image.name == "1.jpg"
    assert bob.storage_location == root / "bob"
    assert directory.intruders == ()


def test_refresh_creates_missing_root(photos_dir, sync, directory):
    assert run(sync.refresh_intruders()) is True

    assert (photos_dir / INTRUDERS).is_dir()
    assert directory.intruders == ()


def test_empty_folder_is_skipped(photos_dir, sync, directory):
    root = photos_dir / WHITELIST
    make_visitor_folder(root, "alice")
    make_visitor_folder(root, "ghost", photos=())
    make_visitor_folder(root, "notes", photos=())
    (root / "notes" / "readme.txt").write_text("not a photo")

    run(sync.refresh_whitelist())

    assert [v.name for v in directory.whitelist] == ["alice"]


def test_refresh_is_idempotent(photos_dir, sync, directory):
    root = photos_dir / INTRUDERS
    make_visitor_folder(root, "intruder0")
    make_visitor_folder(root, "intruder1")

    async def scenario():
        await sync.refresh_intruders()
        first = directory.snapshot()
        await sync.refresh_intruders()
        return first, directory.snapshot()

    first, second = run(scenario())

    assert first == second
    assert len(second.intruders) == 2


def test_concurrent_refresh_of_same_collection_is_noop(photos_dir):
    make_visitor_folder(photos_dir / INTRUDERS, "intruder0")

    async def scenario():
        store = SlowStore(photos_dir)
        directory = VisitorDirectory(store, WHITELIST, INTRUDERS)
        sync = DirectorySync(directory)

        first = asyncio.create_task(sync.refresh_intruders())
        await store.entered.wait()
        assert sync.is_refreshing(Collection.INTRUDERS)

        # Returns immediately while the first one is still blocked
        second = await asyncio.wait_for(sync.refresh_intruders(), timeout=1.0)

        store.release.set()
        return store, directory, await first, second

    store, directory, first, second = run(scenario())

    assert first is True
    assert second is False
    assert store.list_calls == 1
    assert len(directory.intruders) == 1


def test_different_collections_refresh_independently(photos_dir):
    make_visitor_folder(photos_dir / WHITELIST, "alice")

    async def scenario():
        store = SlowStore(photos_dir)
        directory = VisitorDirectory(store, WHITELIST, INTRUDERS)
        sync = DirectorySync(directory)

        intruders = asyncio.create_task(sync.refresh_intruders())
        await store.entered.wait()

        whitelist = asyncio.create_task(sync.refresh_whitelist())
        while store.list_calls < 2:
            await asyncio.sleep(0)

        store.release.set()
        return directory, await intruders, await whitelist

    directory, intruders_ran, whitelist_ran = run(scenario())

    assert intruders_ran and whitelist_ran
    assert [v.name for v in directory.whitelist] == ["alice"]


def test_storage_failure_keeps_previous_snapshot(photos_dir, sync, directory):
    root = photos_dir / WHITELIST
    make_visitor_folder(root, "alice")
    run(sync.refresh_whitelist())

    # Replace the whitelist root with a file so listing fails
    for child in root.iterdir():
        for f in child.iterdir():
            f.unlink()
        child.rmdir()
    root.rmdir()
    root.write_text("oops")

    assert run(sync.refresh_whitelist()) is True
    assert [v.name for v in directory.whitelist] == ["alice"]
    assert not sync.is_refreshing(Collection.WHITELIST)


def test_listeners_are_notified(photos_dir, sync):
    seen = []
    sync.add_listener(seen.append)

    def broken(collection):
        raise RuntimeError("display went away")

    sync.add_listener(broken)

    run(sync.refresh_all())

    assert sorted(c.value for c in seen) == ["intruders", "whitelist"]
