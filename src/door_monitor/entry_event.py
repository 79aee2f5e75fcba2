from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TriggerSource(str, Enum):
    """Where an entry attempt came from. Both are handled the same way."""

    SENSOR = "sensor"
    MANUAL = "manual"


class EntryOutcome(str, Enum):
    GRANTED = "granted"
    DENIED_NO_MATCH = "denied_no_match"
    DENIED_NO_FACE = "denied_no_face"
    DENIED_NOT_READY = "denied_not_ready"
    # Recognition backend failed for a reason other than "no face".
    FAILED = "failed"


class EntrySignal(BaseModel):
    """
    One inbound "someone is at the door" signal, as delivered to the coordinator mailbox.
    """
    source: TriggerSource = TriggerSource.SENSOR
    received_at: datetime = Field(default_factory=_utcnow)


class EntryAttempt(BaseModel):
    """
    One serviced entry attempt.

    Lives for a single coordinator cycle. The coordinator keeps a short
    in-memory history of finished attempts for the HTTP API; attempts are
    never written to the photo store themselves.
    """
    attempt_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    source: TriggerSource
    started_at: datetime = Field(default_factory=_utcnow)
    finished_at: Optional[datetime] = None

    captured_image: Optional[Path] = None
    outcome: Optional[EntryOutcome] = None

    visitor_name: Optional[str] = None   # set on GRANTED
    intruder_name: Optional[str] = None  # set when an intruder folder was written
    error: Optional[str] = None          # short diagnostic for failed cycles
