from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Literal

from bubblesave.engine.config import SaveSettings
from bubblesave.engine.models import LifecycleKind, SaveRequest, SaveResult
from bubblesave.engine.save_system import SaveSystem
from bubblesave.engine.timer import RepeatingTimer

logger = logging.getLogger(__name__)

CoordinatorState = Literal["idle", "saving", "saving_pending"]
Deferrer = Callable[[Callable[[], None]], None]


class SaveCoordinator:
    """Decides when the session is written and keeps one write in flight.

    Requests that arrive while a write is running only raise the pending flag.
    When the write finishes, one follow-up save is handed to ``defer`` so it
    runs on the next scheduling opportunity with a freshly captured snapshot.

    After ``stop()`` nothing is deferred any more: a follow-up that was still
    waiting is run by ``stop()`` itself, and one that becomes due later runs
    on the thread that finished the write.
    """

    def __init__(
        self,
        save_system: SaveSystem,
        settings: SaveSettings | None = None,
        context_provider: Callable[[], str] | None = None,
        defer: Deferrer | None = None,
        clock: Callable[[], float] = time.monotonic,
        timer_factory: Callable[[float, Callable[[], None]], RepeatingTimer] | None = None,
    ) -> None:
        self.save_system = save_system
        self.settings = settings or SaveSettings()
        self.context_provider = context_provider
        self.defer = defer or self._defer_on_thread
        self.clock = clock
        self.timer_factory = timer_factory or (
            lambda interval, fn: RepeatingTimer(interval, fn, name="Autosave")
        )
        self._lock = threading.Lock()
        self._is_saving = False
        self._pending_save = False
        self._followup_scheduled = False
        self._followup_timer: threading.Timer | None = None
        self._stopped = False
        self._last_lifecycle_save: float | None = None
        self._timer: RepeatingTimer | None = None

    @property
    def is_saving(self) -> bool:
        return self._is_saving

    @property
    def pending_save(self) -> bool:
        return self._pending_save

    @property
    def followup_scheduled(self) -> bool:
        return self._followup_scheduled

    @property
    def state(self) -> CoordinatorState:
        with self._lock:
            if not self._is_saving:
                return "idle"
            return "saving_pending" if self._pending_save else "saving"

    @property
    def autosave_running(self) -> bool:
        return self._timer is not None and self._timer.is_running

    def start(self) -> None:
        with self._lock:
            self._stopped = False
        if self._timer is not None:
            return
        self._timer = self.timer_factory(self.settings.autosave_interval_seconds, self.tick)
        self._timer.start()
        logger.info("Autosave started (every %.2fs)", self.settings.autosave_interval_seconds)

    def stop(self) -> None:
        with self._lock:
            self._stopped = True
            followup_timer, self._followup_timer = self._followup_timer, None
            run_now = self._followup_scheduled and not self._is_saving
            if self._followup_scheduled and self._is_saving:
                self._pending_save = True
            # Deferred callbacks that fire later find nothing to do.
            self._followup_scheduled = False

        timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()
            logger.info("Autosave stopped")
        if followup_timer is not None:
            followup_timer.cancel()
        if run_now:
            logger.debug("Running scheduled follow-up save before stopping")
            self._submit(SaveRequest(origin="followup", ignore_context_gate=True))

    def __enter__(self) -> "SaveCoordinator":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def tick(self) -> SaveResult | None:
        if not self._context_allows_autosave():
            return None
        return self._submit(SaveRequest(origin="periodic"))

    def request_save(self) -> SaveResult | None:
        return self._submit(SaveRequest(origin="explicit", ignore_context_gate=True))

    def flush_now(self) -> SaveResult | None:
        return self._submit(SaveRequest(origin="explicit", ignore_context_gate=True, reason="flush"))

    def force_save(self, reason: str = "") -> SaveResult | None:
        now = self.clock()
        with self._lock:
            last = self._last_lifecycle_save
            if last is not None and now - last < self.settings.lifecycle_save_cooldown_seconds:
                logger.debug("Lifecycle save '%s' ignored during cooldown", reason)
                return None
            self._last_lifecycle_save = now
        return self._submit(SaveRequest(origin="lifecycle", ignore_context_gate=True, reason=reason))

    def on_lifecycle_event(self, kind: LifecycleKind) -> SaveResult | None:
        if not self.settings.handle_lifecycle_saves:
            return None
        if kind in ("pause", "quit"):
            return self.force_save(kind)
        return None

    def _context_allows_autosave(self) -> bool:
        if not self.settings.autosave_only_in_game_context:
            return True
        if self.context_provider is None:
            return False
        return self.context_provider() == self.settings.game_context_name

    def _defer_on_thread(self, fn: Callable[[], None]) -> None:
        timer = threading.Timer(0.0, fn)
        timer.daemon = True
        with self._lock:
            self._followup_timer = timer
        timer.start()

    def _submit(self, request: SaveRequest, scheduled: bool = False) -> SaveResult | None:
        result, run_inline = self._write(request, scheduled)
        while run_inline:
            _, run_inline = self._write(SaveRequest(origin="followup", ignore_context_gate=True), False)
        return result

    def _write(self, request: SaveRequest, scheduled: bool) -> tuple[SaveResult | None, bool]:
        with self._lock:
            if scheduled:
                if not self._followup_scheduled:
                    return None, False
                self._followup_scheduled = False
                self._followup_timer = None
            if self._is_saving:
                self._pending_save = True
                logger.debug("Save in progress; %s request coalesced", request.origin)
                return None, False
            if not request.ignore_context_gate and not self._context_allows_autosave():
                return None, False
            self._is_saving = True

        result: SaveResult | None = None
        try:
            result = self.save_system.save()
        except Exception as exc:
            logger.warning("Save failed (%s): %s", request.origin, exc)
        finally:
            with self._lock:
                self._is_saving = False
                followup = self._pending_save
                self._pending_save = False
                run_inline = followup and self._stopped
                deferred = followup and not self._stopped
                if deferred:
                    self._followup_scheduled = True

        if deferred:
            self.defer(self._run_followup)
        return result, run_inline

    def _run_followup(self) -> None:
        self._submit(SaveRequest(origin="followup", ignore_context_gate=True), scheduled=True)
