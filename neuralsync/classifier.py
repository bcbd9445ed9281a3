"""
Classification of raw bridge frames into typed events.
"""

import json

from pydantic import ValidationError

from .models import (
    IgnoredEvent,
    InboundEvent,
    Mood,
    MoodEvent,
    PredictionEntry,
    PredictionEvent,
    StatusEvent,
)


class MalformedFrame(ValueError):
    """Raised when an inbound frame cannot be interpreted."""


def classify(raw: str | bytes) -> InboundEvent:
    """
    Interpret a raw text frame received from the bridge.

    Args:
        raw: The frame payload as received on the socket

    Returns:
        The typed event carried by the frame. Frames with an unknown ``type``
        are returned as ``IgnoredEvent``.

    Raises:
        MalformedFrame: If the frame is not a JSON object with a string
            ``type`` field, or its ``data`` does not fit the declared type.
    """
    try:
        message = json.loads(raw)
    except (ValueError, RecursionError) as e:
        raise MalformedFrame(f"Frame is not valid JSON: {e}") from e

    if not isinstance(message, dict):
        raise MalformedFrame("Frame is not a JSON object")

    kind = message.get("type")
    if not isinstance(kind, str):
        raise MalformedFrame("Frame has no 'type' field")

    data = message.get("data")

    if kind == "status":
        if not isinstance(data, str):
            raise MalformedFrame("Status data must be a string")
        return StatusEvent(value=data)

    if kind == "mood":
        if not isinstance(data, str):
            raise MalformedFrame("Mood data must be a string")
        # Unrecognized labels fall back to Mood.UNKNOWN
        return MoodEvent(value=Mood(data))

    if kind == "prediction_list":
        if not isinstance(data, dict):
            raise MalformedFrame("Prediction data must be an object")
        try:
            entry = PredictionEntry.model_validate(data)
        except ValidationError as e:
            raise MalformedFrame(f"Invalid prediction: {e}") from e
        return PredictionEvent(entry=entry)

    return IgnoredEvent(type=kind)
