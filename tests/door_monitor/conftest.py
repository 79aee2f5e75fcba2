from pathlib import Path

import pytest

from door_monitor.coordinator import EntryCoordinator
from door_monitor.directory_sync import DirectorySync
from door_monitor.photo_store import PhotoStore
from door_monitor.recognition import RecognitionGateway
from door_monitor.visitor import VisitorDirectory

from fakes import INTRUDERS, WHITELIST, RecordingAnnouncer, StubBackend, StubCamera


@pytest.fixture
def photos_dir(tmp_path) -> Path:
    path = tmp_path / "Pictures"
    path.mkdir()
    return path


@pytest.fixture
def store(photos_dir) -> PhotoStore:
    return PhotoStore(photos_dir)


@pytest.fixture
def directory(store) -> VisitorDirectory:
    return VisitorDirectory(store, WHITELIST, INTRUDERS)


@pytest.fixture
def sync(directory) -> DirectorySync:
    return DirectorySync(directory)


@pytest.fixture
def camera(tmp_path) -> StubCamera:
    return StubCamera(tmp_path / "captures")


@pytest.fixture
def backend() -> StubBackend:
    return StubBackend()


@pytest.fixture
def announcer() -> RecordingAnnouncer:
    return RecordingAnnouncer()


@pytest.fixture
def coordinator(camera, backend, announcer, directory, sync) -> EntryCoordinator:
    return EntryCoordinator(
        camera=camera,
        gateway=RecognitionGateway(backend, timeout_sec=2.0),
        announcer=announcer,
        directory=directory,
        sync=sync,
    )
