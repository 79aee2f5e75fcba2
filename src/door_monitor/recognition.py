"""
Face recognition: backend contract, HTTP backend, and the gateway the
coordinator talks to.

The gateway's job is classification. Whatever the backend does (HTTP error,
connection refused, timeout, malformed JSON) the coordinator only ever sees
a list of matched names, NoFaceDetectedError, or BackendFailureError.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import httpx

from .errors import BackendFailureError, NoFaceDetectedError, RecognitionError

logger = logging.getLogger(__name__)


class RecognitionBackend(ABC):
    """Abstract face recognition service."""

    @abstractmethod
    def is_ready(self) -> bool:
        """True once the backend can answer identify() calls."""
        pass

    @abstractmethod
    async def initialize(self) -> bool:
        """Prepare the backend. Returns the new readiness."""
        pass

    @abstractmethod
    async def identify(self, image: Path) -> list[str]:
        """Return whitelisted names matching the face in `image`, best match first."""
        pass


class HttpRecognitionBackend(RecognitionBackend):
    """
    Client for a CompreFace-style recognition REST API.

    The whitelist is managed on the service side (one subject per visitor).
    """

    SUBJECTS_PATH = "/api/v1/recognition/subjects"
    RECOGNIZE_PATH = "/api/v1/recognition/recognize"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        similarity_threshold: float = 0.85,
        timeout: float = 15.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            base_url: Root URL of the recognition service
            api_key: Key of the recognition service (sent as x-api-key)
            similarity_threshold: Subjects below this similarity are not matches
            timeout: Per-request HTTP timeout in seconds
            client: Optional pre-built client (tests inject one with a mock transport)
        """
        self.similarity_threshold = similarity_threshold
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"x-api-key": api_key},
            timeout=timeout,
        )
        self._ready = False

    def is_ready(self) -> bool:
        return self._ready

    async def initialize(self) -> bool:
        try:
            resp = await self._client.get(self.SUBJECTS_PATH)
        except httpx.HTTPError as e:
            logger.warning("Recognition service unreachable: %s", e)
            self._ready = False
            return False

        if resp.status_code != 200:
            logger.warning("Recognition service not ready (%d): %s", resp.status_code, resp.text[:200])
            self._ready = False
            return False

        # A 200 from a proxy login page or the wrong base URL is not a recognition service
        try:
            body = resp.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            logger.warning("Recognition service sent an unexpected reply: %s", resp.text[:200])
            self._ready = False
            return False

        self._ready = True
        logger.info("Recognition service ready (%d whitelisted subject(s))", len(body.get("subjects", [])))
        return True

    async def identify(self, image: Path) -> list[str]:
        content = await asyncio.to_thread(image.read_bytes)
        files = {"file": (image.name, content, "image/jpeg")}

        resp = await self._client.post(self.RECOGNIZE_PATH, files=files, params={"limit": 0})

        if resp.status_code == 400 and "no face" in resp.text.lower():
            raise NoFaceDetectedError(resp.text[:200])
        if resp.status_code != 200:
            raise BackendFailureError(f"Recognition service returned {resp.status_code}: {resp.text[:200]}")

        results = resp.json().get("result", [])
        if not results:
            raise NoFaceDetectedError("Recognition service found no face")

        # Only the first detected face counts; keep the service's subject order.
        subjects = results[0].get("subjects", [])
        return [
            s["subject"] for s in subjects
            if s.get("similarity", 0) >= self.similarity_threshold
        ]

    async def aclose(self) -> None:
        await self._client.aclose()


class RecognitionGateway:
    """
    Adapts captured photos into recognition requests and classifies failures.
    """

    def __init__(self, backend: RecognitionBackend, timeout_sec: Optional[float] = 15.0):
        self.backend = backend
        self.timeout_sec = timeout_sec

    def is_ready(self) -> bool:
        return self.backend.is_ready()

    async def initialize(self) -> bool:
        return await self.backend.initialize()

    async def identify(self, image: Path) -> list[str]:
        """
        Returns the ordered list of matched visitor names (possibly empty).

        Raises:
            NoFaceDetectedError: the backend could not find a face
            BackendFailureError: anything else went wrong, including a timeout
        """
        try:
            matches = await asyncio.wait_for(self.backend.identify(image), timeout=self.timeout_sec)
        except RecognitionError:
            raise
        except asyncio.TimeoutError as e:
            raise BackendFailureError(f"Recognition timed out after {self.timeout_sec}s") from e
        except Exception as e:
            raise BackendFailureError(f"{type(e).__name__}: {e}") from e

        return list(matches)
