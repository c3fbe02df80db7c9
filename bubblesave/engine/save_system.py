from __future__ import annotations

import logging

from bubblesave.engine.codec import encode_snapshot
from bubblesave.engine.durable_store import DurableStore
from bubblesave.engine.models import SaveResult, Snapshot
from bubblesave.engine.provider import SnapshotProvider
from bubblesave.engine.session import SessionState

logger = logging.getLogger(__name__)


class SaveSystem:
    def __init__(
        self,
        store: DurableStore,
        provider: SnapshotProvider | None = None,
        session: SessionState | None = None,
    ) -> None:
        self.store = store
        self.provider = provider
        self.session = session or SessionState()

    def save(self) -> SaveResult:
        if self.provider is None:
            logger.warning("Snapshot provider missing; save abandoned")
            return SaveResult(status="no_provider")
        try:
            snapshot = self.provider.capture()
        except Exception as exc:
            logger.warning("Snapshot capture failed: %s", exc)
            return SaveResult(status="failed", error=str(exc))
        return self.save_snapshot(snapshot)

    def save_snapshot(self, snapshot: Snapshot) -> SaveResult:
        # An empty field means the simulation is not ready; writing it would wipe a valid save.
        if snapshot.is_empty:
            logger.info("Field snapshot is empty; skipping save")
            return SaveResult(status="skipped_empty")

        data = encode_snapshot(snapshot)
        result = self.store.save(data)
        if not result.ok:
            return SaveResult(status="failed", error=result.error)
        self.session.mark_saved(data.decode("utf-8"))
        return SaveResult(status="saved")

    def load(self) -> Snapshot | None:
        return self.store.load()

    def has_local_save(self) -> bool:
        return self.store.exists()

    def delete_save(self) -> None:
        self.store.delete()
        self.session.clear_saved()
