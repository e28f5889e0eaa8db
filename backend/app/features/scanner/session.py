# backend/app/features/scanner/session.py
"""Session bridge: keeps controller state across surface re-creation.

A restored snapshot never resumes execution. Whatever state was persisted,
a snapshot loaded by ``init`` comes back ``idle`` with its cursor, progress
and partial results intact for display.
"""

from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from backend.app.core import KeyValueStore, logs
from .models import ScanState, SessionSnapshot

ACTIVE_STATES = {ScanState.RUNNING, ScanState.PAUSED, ScanState.STOPPED}


class SessionBridge:
    """Saves and restores one surface's ``SessionSnapshot``."""

    def __init__(self, store: KeyValueStore, key: str) -> None:
        self.store = store
        self.key = key

    def init(self) -> Optional[SessionSnapshot]:
        """Load the last snapshot, coercing any non-terminal state to idle."""
        raw = self.store.get(self.key)
        if raw is None:
            return None
        try:
            snapshot = SessionSnapshot.model_validate(raw)
        except PydanticValidationError as e:
            logs.warning("Discarding unreadable session snapshot", "session", {"key": self.key, "error": str(e)})
            return None

        if snapshot.state in ACTIVE_STATES:
            logs.info(
                "Interrupted scan restored as idle",
                "session",
                {"key": self.key, "was": snapshot.state.value, "cursor": snapshot.cursor_index},
            )
            snapshot = snapshot.model_copy(
                update={"state": ScanState.IDLE, "current_item_id": None}
            )
            self.save(snapshot)
        return snapshot

    def save(self, snapshot: SessionSnapshot) -> None:
        self.store.set(self.key, snapshot.model_dump(mode="json"))

    def clear(self) -> None:
        self.store.delete(self.key)

    def teardown(self) -> None:
        """Nothing to flush: every change is saved as it happens."""
