from __future__ import annotations

from dataclasses import dataclass


@dataclass
class SessionState:
    has_saved_data: bool = False
    saved_progress_json: str = ""

    def mark_saved(self, serialized: str) -> None:
        self.has_saved_data = True
        self.saved_progress_json = serialized

    def clear_saved(self) -> None:
        self.has_saved_data = False
        self.saved_progress_json = ""
