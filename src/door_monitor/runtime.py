"""
Wires the Door Monitor together and owns its background tasks.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from .camera import Camera, create_camera
from .config import MonitorSettings
from .coordinator import EntryCoordinator
from .directory_sync import DirectorySync
from .entry_event import EntrySignal
from .messages import INITIAL_GREETING_MESSAGE
from .photo_store import PhotoStore
from .recognition import HttpRecognitionBackend, RecognitionBackend, RecognitionGateway
from .speech import Announcer, create_announcer
from .trigger_listener import TriggerTcpListener
from .visitor import VisitorDirectory

logger = logging.getLogger(__name__)


@dataclass
class MonitorRuntime:
    cfg: MonitorSettings
    camera: Camera
    backend: RecognitionBackend
    announcer: Announcer
    directory: VisitorDirectory
    sync: DirectorySync
    coordinator: EntryCoordinator

    # Coordinator mailbox: trigger listener and HTTP API both feed it
    queue: "asyncio.Queue[EntrySignal]" = field(default_factory=asyncio.Queue)
    listener: Optional[TriggerTcpListener] = None

    _tasks: list[asyncio.Task] = field(default_factory=list)

    async def start(self) -> None:
        """
        Bring the monitor up: collaborators, initial directory refresh, triggers.

        Camera or recognition failing to initialize is not fatal; the
        coordinator announces "not ready" until they are.
        """
        camera_ok = await self.camera.initialize()
        backend_ok = await self.backend.initialize()
        logger.info("Startup: camera_ready=%s recognition_ready=%s", camera_ok, backend_ok)

        try:
            await self.announcer.speak(INITIAL_GREETING_MESSAGE)
        except Exception as e:
            logger.warning("Initial greeting failed: %s", e)

        await self.sync.refresh_all()

        self._tasks.append(asyncio.create_task(self.coordinator.run(self.queue)))

        if self.cfg.trigger_tcp_enabled:
            self.listener = TriggerTcpListener(self.cfg.trigger_tcp_host, self.cfg.trigger_tcp_port, self.queue)
            await self.listener.start()

        logger.info("Door Monitor running for site %s", self.cfg.site_id)

    async def stop(self) -> None:
        """Shut down. An in-flight entry cycle is abandoned."""
        if self.listener is not None:
            await self.listener.stop()

        for t in self._tasks:
            t.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()

        await self.coordinator.cancel()
        await self.camera.close()

        close = getattr(self.backend, "aclose", None)
        if close is not None:
            await close()

        logger.info("Door Monitor stopped")


def build_runtime(
    cfg: MonitorSettings,
    *,
    camera: Optional[Camera] = None,
    backend: Optional[RecognitionBackend] = None,
    announcer: Optional[Announcer] = None,
    store: Optional[PhotoStore] = None,
) -> MonitorRuntime:
    """
    Build a MonitorRuntime from settings. Any collaborator can be passed in
    explicitly (tests use fakes).
    """
    camera = camera or create_camera(cfg.camera_backend, cfg.capture_dir, cfg.camera_index)
    backend = backend or HttpRecognitionBackend(
        cfg.recognition_base_url,
        cfg.recognition_api_key,
        similarity_threshold=cfg.recognition_similarity_threshold,
        timeout=cfg.recognition_timeout_sec,
    )
    announcer = announcer or create_announcer(cfg.speech_backend, rate=cfg.speech_rate)
    store = store or PhotoStore(cfg.photos_dir)

    directory = VisitorDirectory(store, cfg.whitelist_folder_name, cfg.intruder_folder_name)
    sync = DirectorySync(directory)
    gateway = RecognitionGateway(backend, timeout_sec=cfg.recognition_timeout_sec)
    coordinator = EntryCoordinator(
        camera=camera,
        gateway=gateway,
        announcer=announcer,
        directory=directory,
        sync=sync,
        history_size=cfg.history_size,
    )

    return MonitorRuntime(
        cfg=cfg,
        camera=camera,
        backend=backend,
        announcer=announcer,
        directory=directory,
        sync=sync,
        coordinator=coordinator,
    )
