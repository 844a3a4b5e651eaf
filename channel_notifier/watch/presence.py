"""Viewer presence gating.

The viewer counts as absent only after ``idle_timeout_seconds`` without
input while the player is not playing. A hidden tab alone does not make
the viewer absent (background listening is a valid watch) unless
``pause_when_hidden`` is set.
"""

from channel_notifier.watch.config import WatchConfig


class PresenceGate:
    """Tracks input recency, tab visibility and play state."""

    def __init__(self, config: WatchConfig | None = None, now: float = 0.0) -> None:
        self._config = config or WatchConfig()
        self._last_input_at = now
        self._visible = True
        self._playing = False

    @property
    def visible(self) -> bool:
        return self._visible

    @property
    def playing(self) -> bool:
        return self._playing

    def record_input(self, now: float) -> None:
        self._last_input_at = now

    def set_visible(self, visible: bool, now: float) -> None:
        self._visible = visible
        if visible:
            # Returning to the tab is an interaction
            self._last_input_at = now

    def set_playing(self, playing: bool, now: float) -> None:
        self._playing = playing
        if playing:
            self._last_input_at = now

    def is_present(self, now: float) -> bool:
        if self._config.pause_when_hidden and not self._visible:
            return False
        if self._playing:
            return True
        return now - self._last_input_at < self._config.idle_timeout_seconds
