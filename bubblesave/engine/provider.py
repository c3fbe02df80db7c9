from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable

from bubblesave.engine.models import Snapshot


class SnapshotProvider(ABC):
    @abstractmethod
    def capture(self) -> Snapshot:
        raise NotImplementedError


class CallableSnapshotProvider(SnapshotProvider):
    def __init__(self, fn: Callable[[], Snapshot]) -> None:
        self.fn = fn

    def capture(self) -> Snapshot:
        return self.fn()
