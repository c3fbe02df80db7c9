from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


SaveOrigin = Literal["periodic", "explicit", "lifecycle", "followup"]
SaveStatus = Literal["saved", "skipped_empty", "no_provider", "failed"]
LifecycleKind = Literal["pause", "resume", "quit"]


class Vec2(BaseModel):
    # JSON has no NaN/inf; such values would be written as null and never load back.
    model_config = ConfigDict(extra="forbid", frozen=True, allow_inf_nan=False)

    x: float = 0.0
    y: float = 0.0


class EntityRecord(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    merge_level: int = 0
    position: Vec2 = Field(default_factory=Vec2)
    linear_velocity: Vec2 = Field(default_factory=Vec2)
    is_controlled_top: bool = False


class Snapshot(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    current_score: int = 0
    best_score: int = 0
    coins: int = 0
    bubbles: list[EntityRecord] = Field(default_factory=list)
    categories_progress: dict[str, int] = Field(default_factory=dict)
    collection_completions: dict[str, bool] = Field(default_factory=dict)
    booster_inventory: dict[str, int] = Field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.bubbles


@dataclass(frozen=True)
class SaveRequest:
    origin: SaveOrigin
    ignore_context_gate: bool = False
    reason: str = ""


@dataclass
class StoreResult:
    ok: bool
    error: str | None = None


@dataclass
class SaveResult:
    status: SaveStatus
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "saved"
