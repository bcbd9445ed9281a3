"""
In-memory session log for the NeuralSync client.

The log keeps predictions in the exact order the bridge delivered them. It is
never re-sorted or deduplicated: time labels are opaque to the client.
"""

from .models import PredictionEntry


class SessionLogFrozen(RuntimeError):
    """Raised when appending to a log whose session has stopped."""


class SessionLog:
    """
    Append-only record of the predictions of one collection session.

    Entries are exposed newest-first. ``clear()`` starts a new session and
    unfreezes the log; ``freeze()`` marks the end of the session.
    """

    def __init__(self) -> None:
        self._entries: list[PredictionEntry] = []  # arrival order
        self._frozen = False

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def append(self, entry: PredictionEntry) -> None:
        if self._frozen:
            raise SessionLogFrozen("Session log is frozen until the next session")
        self._entries.append(entry)

    def clear(self) -> None:
        self._entries = []
        self._frozen = False

    def freeze(self) -> None:
        self._frozen = True

    def snapshot(self) -> tuple[PredictionEntry, ...]:
        """Return the entries newest-first."""
        return tuple(reversed(self._entries))
