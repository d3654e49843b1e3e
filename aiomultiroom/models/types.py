"""Models for enum types and sentinel values used by aiomultiroom."""

from __future__ import annotations

from enum import Enum

MEDIA_PLAYER_DOMAIN = "media_player"

STATE_UNAVAILABLE = "unavailable"
"""Reserved state value that excludes an entity from resolution."""

AGS_STATUS_OFF = "OFF"
"""Status sensor value meaning the automatic grouping system is disengaged."""
AGS_PLAYER_NONE = "None"
"""Primary speaker sensor value meaning no speaker is currently designated."""


class PlaybackState(Enum):
    """Enum for Playback States as reported by the state source."""

    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"
    BUFFERING = "buffering"
    ON = "on"
    OFF = "off"
    STANDBY = "standby"
    UNAVAILABLE = STATE_UNAVAILABLE
    OTHER = "other"
    """Any state value not listed above."""

    @classmethod
    def parse(cls, value: str | None) -> PlaybackState:
        """Map a raw state string onto a member, falling back to OTHER."""
        if value is None:
            return cls.OTHER
        try:
            return cls(value.lower())
        except ValueError:
            return cls.OTHER

    @property
    def is_playing(self) -> bool:
        """Return True if the state counts as actively playing."""
        return self in (PlaybackState.PLAYING, PlaybackState.BUFFERING)
