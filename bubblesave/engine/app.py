from __future__ import annotations

import argparse
import logging
import threading
from collections import Counter
from pathlib import Path

from textual import events
from textual.app import App, ComposeResult
from textual.containers import Vertical
from textual.widgets import Footer, Static

from bubblesave.engine.config import SaveSettings, load_settings
from bubblesave.engine.durable_store import DurableStore
from bubblesave.engine.save_coordinator import SaveCoordinator
from bubblesave.engine.save_system import SaveSystem
from bubblesave.engine.simulation import BubbleField

logger = logging.getLogger(__name__)

MENU_SCENE = "MenuScene"
STEP_SECONDS = 1 / 30


class FieldWidget(Static):
    def render_field(self, field: BubbleField) -> None:
        snapshot = field.capture()
        levels = Counter(record.merge_level for record in snapshot.bubbles)
        lines = [
            f"Score: {snapshot.current_score}  Best: {snapshot.best_score}  Coins: {snapshot.coins}",
            f"Bubbles on field: {len(snapshot.bubbles)}",
        ]
        for level in sorted(levels):
            lines.append(f"  L{level}: {'o' * levels[level]}")
        self.update("\n".join(lines))


class SaveStatusWidget(Static):
    def render_status(self, scene: str, coordinator: SaveCoordinator, save_system: SaveSystem) -> None:
        session = save_system.session
        parts = [
            f"Scene: {scene}",
            f"Saver: {coordinator.state}",
            f"Local save: {'yes' if save_system.has_local_save() else 'no'}",
            f"Saved this session: {'yes' if session.has_saved_data else 'no'}",
        ]
        self.update(" | ".join(parts))


class BubbleSaveApp(App):
    CSS = """
    Screen { layout: vertical; }
    #status { height: 2; content-align: left middle; }
    #field { border: round $accent; padding: 1; height: 1fr; }
    #message { height: 2; }
    """

    BINDINGS = [
        ("space", "drop", "Drop"),
        ("s", "save", "Save"),
        ("f", "flush", "Flush"),
        ("l", "load", "Load"),
        ("x", "delete", "Delete save"),
        ("m", "toggle_scene", "Menu/Game"),
        ("p", "pause", "Pause"),
        ("q", "quit", "Quit"),
    ]

    def __init__(self, settings: SaveSettings | None = None) -> None:
        super().__init__()
        self.settings = settings or SaveSettings()
        self.bubble_field = BubbleField()
        self.store = DurableStore(self.settings.resolved_save_dir())
        self.save_system = SaveSystem(self.store, provider=self.bubble_field)
        self.scene_name = self.settings.game_context_name
        self._ui_thread_id = threading.get_ident()
        self.coordinator = SaveCoordinator(
            self.save_system,
            self.settings,
            context_provider=lambda: self.scene_name,
            defer=self._defer_to_ui,
        )

    def compose(self) -> ComposeResult:
        yield SaveStatusWidget(id="status")
        with Vertical():
            yield FieldWidget(id="field")
            yield Static("", id="message")
        yield Footer()

    def on_mount(self) -> None:
        self._ui_thread_id = threading.get_ident()
        self._restore_or_start()
        self.set_interval(STEP_SECONDS, self._step)
        self.set_interval(0.25, self.refresh_ui)
        self.coordinator.start()
        self.refresh_ui()

    def on_unmount(self) -> None:
        self.coordinator.stop()

    def on_app_blur(self, event: events.AppBlur) -> None:
        self.coordinator.on_lifecycle_event("pause")

    def on_app_focus(self, event: events.AppFocus) -> None:
        self.coordinator.on_lifecycle_event("resume")

    def _defer_to_ui(self, fn) -> None:
        # Follow-ups still waiting at teardown are run by coordinator.stop().
        if not self.is_running:
            return
        if threading.get_ident() == self._ui_thread_id:
            self.call_later(fn)
        else:
            self.call_from_thread(self.call_later, fn)

    def _restore_or_start(self) -> None:
        snapshot = self.save_system.load()
        if snapshot is not None:
            self.bubble_field.restore(snapshot)
            self._show_message(f"Restored {len(snapshot.bubbles)} bubbles")
        self.bubble_field.spawn_held()

    def _step(self) -> None:
        if self.scene_name == MENU_SCENE:
            return
        self.bubble_field.step(STEP_SECONDS)

    def refresh_ui(self) -> None:
        self.query_one("#field", FieldWidget).render_field(self.bubble_field)
        self.query_one("#status", SaveStatusWidget).render_status(
            self.scene_name, self.coordinator, self.save_system
        )

    def action_drop(self) -> None:
        if self.bubble_field.drop():
            self.bubble_field.spawn_held()

    def action_save(self) -> None:
        result = self.coordinator.request_save()
        self._show_message(self._describe(result, "Save"))

    def action_flush(self) -> None:
        result = self.coordinator.flush_now()
        self._show_message(self._describe(result, "Flush"))

    def action_load(self) -> None:
        snapshot = self.save_system.load()
        if snapshot is None:
            self._show_message("No save to load")
            return
        self.bubble_field.restore(snapshot)
        self.bubble_field.spawn_held()
        self._show_message(f"Loaded: score {snapshot.current_score}")

    def action_delete(self) -> None:
        self.save_system.delete_save()
        self._show_message("Save deleted")

    def action_toggle_scene(self) -> None:
        game_scene = self.settings.game_context_name
        self.scene_name = MENU_SCENE if self.scene_name == game_scene else game_scene
        self.refresh_ui()

    def action_pause(self) -> None:
        self.coordinator.on_lifecycle_event("pause")

    async def action_quit(self) -> None:
        self.coordinator.on_lifecycle_event("quit")
        self.coordinator.stop()
        self.exit()

    def _show_message(self, message: str) -> None:
        self.query_one("#message", Static).update(message)

    @staticmethod
    def _describe(result, label: str) -> str:
        if result is None:
            return f"{label}: queued behind running save"
        if result.ok:
            return f"{label}: done"
        return f"{label}: {result.status}"


def _configure_logging(log_file: Path) -> None:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=log_file,
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--config", dest="config", help="YAML settings file")
    parser.add_argument("--save-dir", dest="save_dir", help="Directory for savegame files")
    args, _ = parser.parse_known_args()

    settings = load_settings(Path(args.config) if args.config else None)
    if args.save_dir:
        settings = settings.model_copy(update={"save_dir": Path(args.save_dir)})
    _configure_logging(settings.resolved_log_file())
    BubbleSaveApp(settings).run()
