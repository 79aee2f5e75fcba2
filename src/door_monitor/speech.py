"""
Announcers: turn text into speech.

Announcement failures are never fatal to the caller; the coordinator logs
them and carries on.
"""

import asyncio
import logging
import threading
from abc import ABC, abstractmethod

import pyttsx3

logger = logging.getLogger(__name__)


class Announcer(ABC):
    @abstractmethod
    async def speak(self, text: str) -> None:
        """Say `text`; returns once playback has finished."""
        pass


class Pyttsx3Announcer(Announcer):
    """Offline text-to-speech through pyttsx3 (espeak / SAPI5 / NSSpeech)."""

    def __init__(self, rate: int = 160):
        self.rate = rate
        self._engine = None
        # pyttsx3 engines are not thread-safe and runAndWait() is blocking
        self._lock = threading.Lock()

    def _speak_blocking(self, text: str) -> None:
        with self._lock:
            if self._engine is None:
                self._engine = pyttsx3.init()
                self._engine.setProperty("rate", self.rate)
            self._engine.say(text)
            self._engine.runAndWait()

    async def speak(self, text: str) -> None:
        logger.info("Speaking: %s", text)
        await asyncio.to_thread(self._speak_blocking, text)


class LogAnnouncer(Announcer):
    """Writes announcements to the log only. For headless setups without audio."""

    async def speak(self, text: str) -> None:
        logger.info("Announcement: %s", text)


def create_announcer(backend: str, rate: int = 160) -> Announcer:
    backend = backend.lower()
    if backend == "log":
        return LogAnnouncer()
    if backend != "pyttsx3":
        logger.warning("Unknown speech backend %r, defaulting to pyttsx3", backend)
    return Pyttsx3Announcer(rate=rate)
