"""Resolved group models."""

from __future__ import annotations

from dataclasses import dataclass, field

from mashumaro.mixins.orjson import DataClassORJSONMixin

from .entity import EntityView
from .types import PlaybackState


@dataclass(frozen=True)
class Group(DataClassORJSONMixin):
    """
    A cluster of one or more players with a single main player.

    A group with a single member represents an ungrouped player.
    """

    main: EntityView
    """The player whose member list is authoritative for this group."""
    members: tuple[EntityView, ...]
    """All members in the order of the main player's record, main included."""

    @property
    def id(self) -> str:
        """Identifier of the group, which is the id of its main player."""
        return self.main.entity_id

    @property
    def name(self) -> str:
        """Display name of the main player."""
        return self.main.name

    @property
    def state(self) -> PlaybackState:
        """Playback state of the main player."""
        return self.main.state

    @property
    def member_ids(self) -> list[str]:
        """Identifiers of all members, main included."""
        return [member.entity_id for member in self.members]

    def get_member(self, entity_id: str | None) -> EntityView | None:
        """Return the member with the given id, or None."""
        if not entity_id:
            return None
        for member in self.members:
            if member.entity_id == entity_id:
                return member
        return None

    def has_member(self, entity_id: str) -> bool:
        """Return True if the player is part of this group."""
        return self.get_member(entity_id) is not None

    def is_playing(self) -> bool:
        """Return True if the group is currently playing."""
        return self.main.is_playing


@dataclass(frozen=True)
class PredefinedGroupPlayer(DataClassORJSONMixin):
    """A resolved predefined group entry."""

    player: EntityView
    volume: int | None = None


@dataclass(frozen=True)
class PredefinedGroup(DataClassORJSONMixin):
    """A predefined group resolved against the currently available players."""

    name: str
    players: tuple[PredefinedGroupPlayer, ...]
    volume: int | None = None
    """Group level volume, used for players without their own override."""
    media: str | None = None
    unmute_when_grouped: bool = False

    @property
    def player_ids(self) -> list[str]:
        """Identifiers of all resolved players."""
        return [entry.player.entity_id for entry in self.players]

    def has_player(self, entity_id: str) -> bool:
        """Return True if the player is part of this predefined group."""
        return entity_id in self.player_ids


@dataclass(frozen=True)
class ResolveFailure(DataClassORJSONMixin):
    """An entity that could not be placed into the topology."""

    entity_id: str
    reason: str


@dataclass(frozen=True)
class TopologyResult(DataClassORJSONMixin):
    """Output of topology resolution."""

    groups: tuple[Group, ...] = field(default_factory=tuple)
    failures: tuple[ResolveFailure, ...] = field(default_factory=tuple)
