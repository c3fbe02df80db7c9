from __future__ import annotations

import random
import threading
from dataclasses import dataclass, field

from bubblesave.engine.models import EntityRecord, Snapshot, Vec2
from bubblesave.engine.provider import SnapshotProvider

FIELD_WIDTH = 10.0
FIELD_HEIGHT = 16.0
GRAVITY = -9.8
BUBBLE_RADIUS = 0.5
MAX_LEVEL = 10


@dataclass
class Bubble:
    level: int
    x: float
    y: float
    vx: float = 0.0
    vy: float = 0.0
    controlled: bool = False


@dataclass
class BubbleField(SnapshotProvider):
    """Small merge-game field used to drive the save coordinator.

    The bubble held at the top of the field is still under player control and
    is left out of snapshots.
    """

    current_score: int = 0
    best_score: int = 0
    coins: int = 0
    bubbles: list[Bubble] = field(default_factory=list)
    categories_progress: dict[str, int] = field(default_factory=dict)
    collection_completions: dict[str, bool] = field(default_factory=dict)
    boosters: dict[str, int] = field(default_factory=dict)
    seed: int = 42

    def __post_init__(self) -> None:
        self.rng = random.Random(self.seed)
        self._lock = threading.Lock()

    def spawn_held(self) -> Bubble:
        with self._lock:
            for bubble in self.bubbles:
                if bubble.controlled:
                    return bubble
            bubble = Bubble(
                level=self.rng.randint(0, 2),
                x=self.rng.uniform(BUBBLE_RADIUS, FIELD_WIDTH - BUBBLE_RADIUS),
                y=FIELD_HEIGHT - BUBBLE_RADIUS,
                controlled=True,
            )
            self.bubbles.append(bubble)
            return bubble

    def drop(self) -> bool:
        with self._lock:
            for bubble in self.bubbles:
                if bubble.controlled:
                    bubble.controlled = False
                    return True
        return False

    def step(self, dt: float) -> None:
        with self._lock:
            for bubble in self.bubbles:
                if bubble.controlled:
                    continue
                bubble.vy += GRAVITY * dt
                bubble.x += bubble.vx * dt
                bubble.y += bubble.vy * dt
                self._bounce(bubble)
            self._merge_touching()

    def _bounce(self, bubble: Bubble) -> None:
        if bubble.y < BUBBLE_RADIUS:
            bubble.y = BUBBLE_RADIUS
            bubble.vy = -bubble.vy * 0.3
        if bubble.x < BUBBLE_RADIUS:
            bubble.x = BUBBLE_RADIUS
            bubble.vx = -bubble.vx
        elif bubble.x > FIELD_WIDTH - BUBBLE_RADIUS:
            bubble.x = FIELD_WIDTH - BUBBLE_RADIUS
            bubble.vx = -bubble.vx

    def _merge_touching(self) -> None:
        merged: set[int] = set()
        free = [b for b in self.bubbles if not b.controlled]
        for i, first in enumerate(free):
            if id(first) in merged:
                continue
            for second in free[i + 1 :]:
                if id(second) in merged or second.level != first.level:
                    continue
                dx = first.x - second.x
                dy = first.y - second.y
                if dx * dx + dy * dy > (2 * BUBBLE_RADIUS) ** 2:
                    continue
                merged.add(id(second))
                first.level = min(first.level + 1, MAX_LEVEL)
                first.vx = (first.vx + second.vx) / 2
                first.vy = (first.vy + second.vy) / 2
                self._award(first.level)
                break
        if merged:
            self.bubbles = [b for b in self.bubbles if id(b) not in merged]

    def _award(self, level: int) -> None:
        self.current_score += 2**level
        self.best_score = max(self.best_score, self.current_score)
        self.coins += level
        key = f"level_{level}"
        self.categories_progress[key] = self.categories_progress.get(key, 0) + 1
        if level >= MAX_LEVEL:
            self.collection_completions["max_level"] = True

    def capture(self) -> Snapshot:
        with self._lock:
            records = [
                EntityRecord(
                    merge_level=b.level,
                    position=Vec2(x=b.x, y=b.y),
                    linear_velocity=Vec2(x=b.vx, y=b.vy),
                    is_controlled_top=False,
                )
                for b in self.bubbles
                if not b.controlled
            ]
            return Snapshot(
                current_score=self.current_score,
                best_score=self.best_score,
                coins=self.coins,
                bubbles=records,
                categories_progress=dict(self.categories_progress),
                collection_completions=dict(self.collection_completions),
                booster_inventory=dict(self.boosters),
            )

    def restore(self, snapshot: Snapshot) -> None:
        with self._lock:
            self.current_score = snapshot.current_score
            self.best_score = max(self.best_score, snapshot.best_score)
            self.coins = snapshot.coins
            self.bubbles = [
                Bubble(
                    level=record.merge_level,
                    x=record.position.x,
                    y=record.position.y,
                    vx=record.linear_velocity.x,
                    vy=record.linear_velocity.y,
                    controlled=record.is_controlled_top,
                )
                for record in snapshot.bubbles
            ]
            self.categories_progress = dict(snapshot.categories_progress)
            self.collection_completions = dict(snapshot.collection_completions)
            self.boosters = dict(snapshot.booster_inventory)
