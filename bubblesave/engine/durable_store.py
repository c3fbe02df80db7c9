from __future__ import annotations

import contextlib
import logging
import os
import shutil
from pathlib import Path
from typing import Callable

from bubblesave.engine.codec import RecordDecodeError, decode_snapshot
from bubblesave.engine.models import Snapshot, StoreResult

logger = logging.getLogger(__name__)

MAIN_NAME = "savegame"
BACKUP_NAME = "savegame.bak"
TEMP_NAME = "savegame.tmp"


class DurableStore:
    """Keeps the current save and one backup generation in ``directory``.

    Writes go to a staging file that is fsynced before the previous record is
    copied to the backup and the staging file is renamed over the current
    record. A reader therefore sees either the old or the new record in full.
    The store assumes a single caller at a time.
    """

    def __init__(
        self,
        directory: Path,
        decoder: Callable[[bytes], Snapshot] = decode_snapshot,
    ) -> None:
        self.directory = directory
        self.directory.mkdir(parents=True, exist_ok=True)
        self.main_path = directory / MAIN_NAME
        self.backup_path = directory / BACKUP_NAME
        self.temp_path = directory / TEMP_NAME
        self.decoder = decoder

    def save(self, data: bytes) -> StoreResult:
        try:
            self._write_durably(self.temp_path, data)
            if self.main_path.exists():
                shutil.copyfile(self.main_path, self.backup_path)
            os.replace(self.temp_path, self.main_path)
            self._sync_directory()
            return StoreResult(ok=True)
        except OSError as exc:
            logger.warning("Save to %s failed: %s", self.main_path, exc)
            return StoreResult(ok=False, error=str(exc))
        finally:
            with contextlib.suppress(OSError):
                self.temp_path.unlink(missing_ok=True)

    def load(self) -> Snapshot | None:
        found = self._load_generation(self.main_path)
        if found is not None:
            return found[0]
        found = self._load_generation(self.backup_path)
        if found is not None:
            logger.warning("Main save is missing or corrupted; restored from backup %s", self.backup_path)
            return found[0]
        return None

    def load_bytes(self) -> bytes | None:
        for path in (self.main_path, self.backup_path):
            found = self._load_generation(path)
            if found is not None:
                return found[1]
        return None

    def exists(self) -> bool:
        return self.main_path.exists() or self.backup_path.exists()

    def delete(self) -> None:
        for path in (self.main_path, self.backup_path):
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                logger.debug("Could not remove %s: %s", path, exc)

    def _load_generation(self, path: Path) -> tuple[Snapshot, bytes] | None:
        if not path.exists():
            return None
        try:
            data = path.read_bytes()
        except OSError as exc:
            logger.warning("Read failed from %s: %s", path, exc)
            return None
        if not data.strip():
            return None
        try:
            return self.decoder(data), data
        except RecordDecodeError as exc:
            logger.warning("Decode failed for %s: %s", path, exc)
            return None

    @staticmethod
    def _write_durably(path: Path, data: bytes) -> None:
        with path.open("wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())

    def _sync_directory(self) -> None:
        # Persists the rename itself; not supported on Windows.
        if os.name == "nt":
            return
        try:
            fd = os.open(self.directory, os.O_RDONLY)
        except OSError:
            return
        try:
            os.fsync(fd)
        except OSError as exc:
            logger.debug("Directory fsync failed for %s: %s", self.directory, exc)
        finally:
            os.close(fd)
