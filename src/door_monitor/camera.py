"""
Camera sources for still captures.

Each capture is written as a JPEG into capture_dir. The entry coordinator
either leaves it there or the visitor directory moves it into an intruder
folder.
"""

import asyncio
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Optional

import cv2
import numpy as np

from .errors import CaptureError

logger = logging.getLogger(__name__)


class Camera(ABC):
    def __init__(self, capture_dir: Path):
        self.capture_dir = Path(capture_dir).expanduser()

    @abstractmethod
    def is_ready(self) -> bool:
        pass

    @abstractmethod
    async def initialize(self) -> bool:
        pass

    @abstractmethod
    def _grab_frame(self) -> Optional[np.ndarray]:
        """Read one frame (blocking). None means the camera returned nothing."""
        pass

    async def capture_photo(self) -> Path:
        """
        Capture one still and save it to capture_dir.

        Raises:
            CaptureError: no frame could be read or written
        """
        return await asyncio.to_thread(self._capture_blocking)

    async def close(self) -> None:
        pass

    def _capture_blocking(self) -> Path:
        try:
            frame = self._grab_frame()
        except cv2.error as e:
            raise CaptureError(f"Camera read failed: {e}") from e

        if frame is None:
            raise CaptureError("Camera returned no frame")

        try:
            self.capture_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CaptureError(f"Cannot create capture dir {self.capture_dir}: {e}") from e

        # Microsecond timestamp keeps names unique between back-to-back captures
        path = self.capture_dir / datetime.now().strftime("capture_%Y%m%d_%H%M%S_%f.jpg")
        if not cv2.imwrite(str(path), frame):
            raise CaptureError(f"Failed to write {path}")

        logger.debug("Captured %s", path)
        return path


class OpenCVCamera(Camera):
    """USB / built-in webcam through cv2.VideoCapture."""

    def __init__(self, capture_dir: Path, camera_index: int = 0):
        super().__init__(capture_dir)
        self.camera_index = camera_index
        self._capture: Optional[cv2.VideoCapture] = None
        self._lock = threading.Lock()

    def is_ready(self) -> bool:
        return self._capture is not None and self._capture.isOpened()

    async def initialize(self) -> bool:
        def _open() -> cv2.VideoCapture:
            return cv2.VideoCapture(self.camera_index)

        capture = await asyncio.to_thread(_open)
        if not capture.isOpened():
            logger.error("Camera %s failed to open", self.camera_index)
            capture.release()
            self._capture = None
            return False

        self._capture = capture
        logger.info("Camera %s opened", self.camera_index)
        return True

    def _grab_frame(self) -> Optional[np.ndarray]:
        if self._capture is None:
            return None
        with self._lock:
            ret, frame = self._capture.read()
        return frame if ret else None

    async def close(self) -> None:
        if self._capture is not None:
            self._capture.release()
            self._capture = None


class FakeCamera(Camera):
    """
    Synthetic camera for running the monitor without hardware.

    Produces a gradient frame with a timestamp overlay.
    """

    def __init__(self, capture_dir: Path, resolution: tuple[int, int] = (640, 480)):
        super().__init__(capture_dir)
        self.resolution = resolution
        self._ready = False
        self._frame_number = 0

    def is_ready(self) -> bool:
        return self._ready

    async def initialize(self) -> bool:
        self._ready = True
        return True

    def _grab_frame(self) -> Optional[np.ndarray]:
        width, height = self.resolution
        frame = np.zeros((height, width, 3), dtype=np.uint8)

        # Gradient background
        ramp = np.linspace(0, 255, height, dtype=np.uint8)
        frame[:, :, 0] = ramp[:, None]
        frame[:, :, 2] = ramp[::-1, None]

        timestamp_str = datetime.now().strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        cv2.putText(frame, timestamp_str, (10, 30), cv2.FONT_HERSHEY_SIMPLEX, 0.7, (255, 255, 255), 2)
        cv2.putText(frame, f"Frame: {self._frame_number}", (10, 60), cv2.FONT_HERSHEY_SIMPLEX, 0.7, (255, 255, 255), 2)

        self._frame_number += 1
        return frame


def create_camera(backend: str, capture_dir: Path, camera_index: int = 0) -> Camera:
    """Factory for the configured camera backend ('opencv' or 'fake')."""
    backend = backend.lower()
    if backend == "fake":
        return FakeCamera(capture_dir)
    if backend != "opencv":
        logger.warning("Unknown camera backend %r, defaulting to opencv", backend)
    return OpenCVCamera(capture_dir, camera_index=camera_index)
