"""Caller-side debounce for editor saves."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from forgeline.config import AutosaveSettings
from forgeline.files.errors import StoreError
from forgeline.session.backend import BackendError

_LOGGER = logging.getLogger(__name__)


class AutoSaver:
    """Coalesce keystroke-rate edits into one save per quiet window.

    Time is passed in explicitly so the editor's event loop (or a test) owns
    the clock.
    """

    def __init__(
        self,
        settings: AutosaveSettings | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Create saver.

        Args:
            settings: Autosave settings; defaults when omitted.
            clock: Monotonic clock used when callers omit `now`.
        """
        self._settings = settings or AutosaveSettings()
        self._clock = clock
        self._last_edit: dict[str, float] = {}

    @property
    def pending(self) -> tuple[str, ...]:
        """Paths with edits not yet flushed, in first-edit order."""
        return tuple(self._last_edit)

    def touch(self, path: str, now: float | None = None) -> None:
        """Record an edit, restarting the quiet window for that path.

        Args:
            path: Edited file path.
            now: Event time; clock value when omitted.
        """
        self._last_edit[path] = self._clock() if now is None else now

    def discard(self, path: str) -> None:
        """Forget pending edits for a path (e.g. after delete)."""
        self._last_edit.pop(path, None)

    def due(self, now: float | None = None) -> tuple[str, ...]:
        """Return paths that have been quiet for the full window.

        Args:
            now: Current time; clock value when omitted.

        Returns:
            Due paths.
        """
        if not self._settings.enabled:
            return ()
        current = self._clock() if now is None else now
        window = self._settings.quiescence_seconds
        return tuple(
            path
            for path, last in self._last_edit.items()
            if current - last >= window
        )

    def flush(
        self,
        save: Callable[[str], object],
        now: float | None = None,
        *,
        force: bool = False,
    ) -> tuple[str, ...]:
        """Save every due path; backend failures stay pending for the next flush.

        Paths the store rejects (deleted files, closed project) are dropped.

        Args:
            save: Callable persisting one path.
            now: Current time; clock value when omitted.
            force: Save every pending path regardless of the window.

        Returns:
            Paths saved successfully.
        """
        targets = self.pending if force else self.due(now)
        saved: list[str] = []
        for path in targets:
            try:
                save(path)
            except BackendError as exc:
                _LOGGER.warning("Autosave of %s failed: %s", path, exc)
                continue
            except StoreError as exc:
                _LOGGER.info("Autosave dropped %s: %s", path, exc)
                self._last_edit.pop(path, None)
                continue
            self._last_edit.pop(path, None)
            saved.append(path)
        return tuple(saved)
