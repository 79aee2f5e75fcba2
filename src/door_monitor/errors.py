"""
Error taxonomy for the Door Monitor.

Every failure the coordinator or directory sync can see is one of these.
None of them leave the monitor: they are logged (and sometimes announced)
where they are caught.
"""

from __future__ import annotations

from enum import Enum


class MonitorError(Exception):
    """Base class for all Door Monitor errors."""


class NotReadyError(MonitorError):
    """Camera or recognition backend is not available yet."""


class CaptureError(MonitorError):
    """Camera reported ready but could not produce a photo."""


class RecognitionErrorKind(str, Enum):
    NO_FACE_DETECTED = "no_face_detected"
    BACKEND_FAILURE = "backend_failure"


class RecognitionError(MonitorError):
    """
    Failure reported by the recognition gateway.

    The gateway never lets anything else escape, so callers only need to
    look at `kind`.
    """

    kind: RecognitionErrorKind = RecognitionErrorKind.BACKEND_FAILURE


class NoFaceDetectedError(RecognitionError):
    kind = RecognitionErrorKind.NO_FACE_DETECTED


class BackendFailureError(RecognitionError):
    kind = RecognitionErrorKind.BACKEND_FAILURE


class StorageError(MonitorError):
    """A photo store folder or file operation failed."""
