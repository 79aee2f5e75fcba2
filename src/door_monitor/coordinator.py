"""
Entry Coordinator

The state machine behind the door. For every accepted entry attempt it:
1. Announces that someone was detected
2. Checks that the camera and the recognition backend are ready, giving
   either one another initialize() if it is not
3. Captures a still photo
4. Asks the recognition gateway who it is
5. Greets a recognized visitor, or
6. Turns an unrecognized visitor away and records them as a new intruder

Only one attempt is serviced at a time. Signals that arrive while a cycle is
running are dropped, so a burst of sensor triggers during one person's
approach collapses into a single attempt. The intruder numbering in
VisitorDirectory.record_intruder() depends on this.
"""

import asyncio
import logging
from collections import Counter, deque
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from . import messages
from .camera import Camera
from .directory_sync import DirectorySync
from .entry_event import EntryAttempt, EntryOutcome, EntrySignal, TriggerSource
from .errors import BackendFailureError, CaptureError, NoFaceDetectedError, StorageError
from .recognition import RecognitionGateway
from .speech import Announcer
from .visitor import VisitorDirectory

logger = logging.getLogger(__name__)


class CoordinatorState(str, Enum):
    IDLE = "idle"
    PROCESSING = "processing"


class CycleGuard:
    """
    IDLE -> PROCESSING only through try_begin(); finish() always returns to IDLE.
    """

    def __init__(self) -> None:
        self.state = CoordinatorState.IDLE

    def try_begin(self) -> bool:
        if self.state is CoordinatorState.PROCESSING:
            return False
        self.state = CoordinatorState.PROCESSING
        return True

    def finish(self) -> None:
        self.state = CoordinatorState.IDLE


class EntryCoordinator:
    def __init__(
        self,
        camera: Camera,
        gateway: RecognitionGateway,
        announcer: Announcer,
        directory: VisitorDirectory,
        sync: DirectorySync,
        history_size: int = 20,
    ):
        self.camera = camera
        self.gateway = gateway
        self.announcer = announcer
        self.directory = directory
        self.sync = sync

        self._guard = CycleGuard()
        self._task: Optional[asyncio.Task] = None

        self.history: deque[EntryAttempt] = deque(maxlen=history_size)
        self.stats: Counter = Counter()

    @property
    def state(self) -> CoordinatorState:
        return self._guard.state

    @property
    def last_attempt(self) -> Optional[EntryAttempt]:
        return self.history[-1] if self.history else None

    # ------------------------------------------------------------------
    # Inbound signals
    # ------------------------------------------------------------------

    def signal(self, source: TriggerSource) -> bool:
        """
        Handle one entry-attempt signal from the event loop.

        Starts a cycle in the background and returns True, or drops the
        signal and returns False if a cycle is already running.
        """
        if not self._guard.try_begin():
            self.stats["dropped"] += 1
            logger.debug("Entry signal from %s dropped: attempt already in progress", source.value)
            return False

        self._task = asyncio.get_running_loop().create_task(self._guarded_cycle(source))
        return True

    async def process_entry(self, source: TriggerSource) -> Optional[EntryAttempt]:
        """Run one cycle inline. Returns None if the signal was dropped."""
        if not self._guard.try_begin():
            self.stats["dropped"] += 1
            logger.debug("Entry signal from %s dropped: attempt already in progress", source.value)
            return None
        return await self._guarded_cycle(source)

    async def run(self, queue: "asyncio.Queue[EntrySignal]") -> None:
        """
        Mailbox loop: feed every queued signal through signal().

        Runs until cancelled.
        """
        while True:
            entry_signal = await queue.get()
            try:
                self.signal(entry_signal.source)
            finally:
                queue.task_done()

    async def wait_idle(self) -> None:
        """Wait for the background cycle started by signal(), if any."""
        task = self._task
        if task is not None and not task.done():
            await task

    async def cancel(self) -> None:
        """Abandon an in-flight cycle (shutdown only)."""
        task = self._task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    async def _guarded_cycle(self, source: TriggerSource) -> EntryAttempt:
        attempt = EntryAttempt(source=source)
        logger.info("Entry attempt %s started (source=%s)", attempt.attempt_id, source.value)

        try:
            await self._run_cycle(attempt)
        except Exception as e:
            # Unexpected failure: the coordinator must still get back to IDLE.
            logger.exception("Entry attempt %s failed unexpectedly", attempt.attempt_id)
            attempt.error = f"{type(e).__name__}: {e}"
        finally:
            attempt.finished_at = datetime.now(timezone.utc)
            self.history.append(attempt)
            self.stats[attempt.outcome.value if attempt.outcome else "error"] += 1
            self._guard.finish()

        logger.info(
            "Entry attempt %s finished: outcome=%s visitor=%s intruder=%s",
            attempt.attempt_id,
            attempt.outcome.value if attempt.outcome else None,
            attempt.visitor_name,
            attempt.intruder_name,
        )
        return attempt

    async def _run_cycle(self, attempt: EntryAttempt) -> None:
        await self._announce(messages.INTRUDER_DETECTED_MESSAGE)

        # Anything that failed to come up at startup gets another chance each cycle
        camera_ready = await self._ensure_ready("camera", self.camera.is_ready, self.camera.initialize)
        recognition_ready = await self._ensure_ready(
            "face recognition", self.gateway.is_ready, self.gateway.initialize
        )
        if not (camera_ready and recognition_ready):
            if not camera_ready:
                logger.warning("Unable to analyze visitor: camera is not initialized")
                await self._announce(messages.NO_CAMERA_MESSAGE)
            if not recognition_ready:
                logger.warning("Unable to analyze visitor: face recognition is still initializing")
                await self._announce(messages.RECOGNITION_NOT_READY_MESSAGE)
            attempt.outcome = EntryOutcome.DENIED_NOT_READY
            attempt.error = "camera not ready" if not camera_ready else "recognition not ready"
            return

        try:
            image = await self.camera.capture_photo()
        except CaptureError as e:
            logger.error("Photo capture failed: %s", e)
            await self._announce(messages.CAPTURE_FAILED_MESSAGE)
            attempt.outcome = EntryOutcome.DENIED_NOT_READY
            attempt.error = str(e)
            return

        attempt.captured_image = image

        try:
            matches = await self.gateway.identify(image)
        except NoFaceDetectedError as e:
            logger.warning("No face detected in %s: %s", image.name, e)
            attempt.outcome = EntryOutcome.DENIED_NO_FACE
            return
        except BackendFailureError as e:
            logger.warning("Recognition failed for %s: %s", image.name, e)
            attempt.outcome = EntryOutcome.FAILED
            attempt.error = str(e)
            return

        if matches:
            # First result wins; the backend's ordering is authoritative.
            attempt.outcome = EntryOutcome.GRANTED
            attempt.visitor_name = matches[0]
            await self._announce(messages.allowed_entry_message(matches[0]))
            return

        attempt.outcome = EntryOutcome.DENIED_NO_MATCH
        await self._announce(messages.NOT_ALLOWED_ENTRY_MESSAGE)

        try:
            intruder = await self.directory.record_intruder(image)
        except StorageError as e:
            logger.error("Failed to record intruder photo %s: %s", image, e)
            attempt.error = str(e)
            return

        attempt.intruder_name = intruder.name
        await self.sync.refresh_intruders()

    async def _announce(self, text: str) -> None:
        try:
            await self.announcer.speak(text)
        except Exception as e:
            logger.warning("Announcement failed (%s): %s", text, e)

    @staticmethod
    async def _ensure_ready(name: str, is_ready, initialize) -> bool:
        if is_ready():
            return True

        logger.info("%s not ready; retrying initialization", name)
        try:
            await initialize()
        except Exception as e:
            logger.warning("%s initialization failed: %s", name, e)
            return False
        return is_ready()
