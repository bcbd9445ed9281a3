"""
Shared data models for the NeuralSync client.

This module defines the domain models used across the client layers
(classification, connection, session control, views and CLI).
"""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class LinkState(str, Enum):
    """The client's view of its connection to the bridge."""

    DISCONNECTED = "Disconnected"
    CONNECTING = "Connecting"
    READY = "Ready"


class Emotion(str, Enum):
    """Canonical emotion labels produced by the bridge."""

    NEGATIVE = "NEGATIVE"
    NEUTRAL = "NEUTRAL"
    POSITIVE = "POSITIVE"


class Mood(str, Enum):
    """Current mood display value."""

    NEGATIVE = "NEGATIVE"
    NEUTRAL = "NEUTRAL"
    POSITIVE = "POSITIVE"
    ANALYZING = "Analyzing"
    UNKNOWN = "---"

    @classmethod
    def _missing_(cls, value: object) -> "Mood":
        return cls.UNKNOWN


class PredictionEntry(BaseModel):
    """A single prediction recorded during a session."""

    model_config = ConfigDict(frozen=True)

    time: str = Field(..., description="Opaque time label supplied by the bridge")
    emotion: Emotion = Field(..., description="Predicted emotion")


# MARK: - Inbound events


class StatusEvent(BaseModel):
    """Status text pushed by the bridge."""

    kind: Literal["status"] = "status"
    value: str


class MoodEvent(BaseModel):
    """Mood update pushed by the bridge."""

    kind: Literal["mood"] = "mood"
    value: Mood


class PredictionEvent(BaseModel):
    """A new prediction to record."""

    kind: Literal["prediction"] = "prediction"
    entry: PredictionEntry


class IgnoredEvent(BaseModel):
    """A well-formed frame with a type this client does not handle."""

    kind: Literal["ignored"] = "ignored"
    type: str


class LinkEvent(BaseModel):
    """Link state change observed by the connection manager."""

    kind: Literal["link"] = "link"
    state: LinkState


InboundEvent = StatusEvent | MoodEvent | PredictionEvent | IgnoredEvent
ClientEvent = InboundEvent | LinkEvent


# MARK: - Derived views


class ChartPoint(BaseModel):
    """One point of the mood trend chart."""

    time: str
    mood_value: int
    mood: Emotion


class ExportArtifact(BaseModel):
    """CSV export produced when a session with data stops."""

    model_config = ConfigDict(frozen=True)

    filename: str
    content: str
    rows: int = Field(..., description="Number of prediction rows, header excluded")


class ClientSnapshot(BaseModel):
    """Read-only view of the client state for rendering."""

    model_config = ConfigDict(frozen=True)

    link_state: LinkState = LinkState.DISCONNECTED
    status: str = LinkState.DISCONNECTED.value
    mood: Mood = Mood.UNKNOWN
    is_collecting: bool = False
    predictions: tuple[PredictionEntry, ...] = ()
    last_export: ExportArtifact | None = None
