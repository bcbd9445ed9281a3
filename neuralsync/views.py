"""
Views derived from a session log snapshot.

All functions take entries newest-first, as returned by
``SessionLog.snapshot()``, and produce output in chronological order.
"""

from collections.abc import Sequence
from datetime import datetime

from .models import ChartPoint, Emotion, ExportArtifact, PredictionEntry

MOOD_SCALE: dict[Emotion, int] = {
    Emotion.NEGATIVE: -1,
    Emotion.NEUTRAL: 0,
    Emotion.POSITIVE: 1,
}

CSV_HEADER = "Time,Emotion\n"


def chart_series(entries: Sequence[PredictionEntry]) -> list[ChartPoint]:
    """Map entries onto the -1/0/1 mood scale, oldest first."""
    return [
        ChartPoint(time=entry.time, mood_value=MOOD_SCALE[entry.emotion], mood=entry.emotion)
        for entry in reversed(entries)
    ]


def csv_content(entries: Sequence[PredictionEntry]) -> str:
    """Render entries as CSV text, oldest first, without a trailing newline."""
    rows = "\n".join(f"{entry.time},{entry.emotion.value}" for entry in reversed(entries))
    return CSV_HEADER + rows


def export_filename(now: datetime) -> str:
    timestamp = now.isoformat(timespec="seconds")[:19].replace(":", "-")
    return f"eeg_session_{timestamp}.csv"


def build_export(entries: Sequence[PredictionEntry], now: datetime) -> ExportArtifact:
    """
    Build the CSV download for a finished session.

    Args:
        entries: Session entries, newest-first
        now: Export time, embedded in the filename

    Returns:
        The export artifact
    """
    return ExportArtifact(
        filename=export_filename(now),
        content=csv_content(entries),
        rows=len(entries),
    )
