"""
Player state records for aiomultiroom.

This module adapts the raw state records delivered by the state source into the
immutable EntityView snapshots the resolvers work on. A state record is a
mapping of the form ``{"state": str, "attributes": {"group_members": [...]}}``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from mashumaro.mixins.orjson import DataClassORJSONMixin

from .types import MEDIA_PLAYER_DOMAIN, STATE_UNAVAILABLE, PlaybackState

logger = logging.getLogger(__name__)

StateRecord = Mapping[str, Any]
StateMapping = Mapping[str, StateRecord]


class MalformedRecordError(ValueError):
    """Raised when a state record cannot be interpreted."""

    def __init__(self, entity_id: str, reason: str) -> None:
        """Initialize with the offending entity id and a short reason."""
        super().__init__(f"Malformed record for {entity_id}: {reason}")
        self.entity_id = entity_id
        self.reason = reason


@dataclass(frozen=True)
class EntityView(DataClassORJSONMixin):
    """Immutable snapshot of one media player."""

    entity_id: str
    """Globally unique identifier of the player."""
    name: str
    """Display name."""
    state: PlaybackState = PlaybackState.OTHER
    """Normalized playback state."""
    available: bool = True
    """False if the state source reports the player as unavailable."""
    group_members: tuple[str, ...] = field(default_factory=tuple)
    """Raw member identifiers, empty or a singleton when not grouped."""

    @classmethod
    def from_state(cls, entity_id: str, record: StateRecord) -> EntityView:
        """
        Build an EntityView from a raw state record.

        Raises:
            MalformedRecordError: If the record or its group_members attribute
                has an unexpected shape.
        """
        if not isinstance(record, Mapping):
            raise MalformedRecordError(entity_id, "record is not a mapping")
        attributes = record.get("attributes") or {}
        if not isinstance(attributes, Mapping):
            raise MalformedRecordError(entity_id, "attributes is not a mapping")
        raw_members = attributes.get("group_members") or []
        if isinstance(raw_members, str) or not isinstance(raw_members, Sequence):
            raise MalformedRecordError(entity_id, "group_members is not a list")
        if not all(isinstance(member, str) for member in raw_members):
            raise MalformedRecordError(entity_id, "group_members contains non-string values")
        raw_state = record.get("state")
        return cls(
            entity_id=entity_id,
            name=attributes.get("friendly_name") or entity_id,
            state=PlaybackState.parse(raw_state if isinstance(raw_state, str) else None),
            available=raw_state != STATE_UNAVAILABLE,
            group_members=tuple(raw_members),
        )

    @property
    def is_playing(self) -> bool:
        """Return True if this player is playing or buffering."""
        return self.state.is_playing


def is_media_player(entity_id: str) -> bool:
    """Return True if the identifier belongs to the media player domain."""
    return entity_id.split(".", 1)[0] == MEDIA_PLAYER_DOMAIN


def entities_from_states(
    states: StateMapping,
    entities: Sequence[str] | None = None,
    *,
    exclude_listed: bool = False,
) -> list[EntityView]:
    """
    Convert a state mapping into EntityViews for all media players.

    Args:
        states: Mapping of entity id to raw state record.
        entities: Optional list of entity ids narrowing the selection. When
            given, the result follows the order of this list.
        exclude_listed: Treat ``entities`` as an exclusion list instead.

    Returns:
        EntityViews for every parseable media player record. Records that fail
        to parse are logged and skipped.
    """
    candidates = [entity_id for entity_id in states if is_media_player(entity_id)]
    if entities:
        if exclude_listed:
            candidates = [entity_id for entity_id in candidates if entity_id not in entities]
        else:
            candidates = [
                entity_id
                for entity_id in entities
                if entity_id in states and is_media_player(entity_id)
            ]

    result: list[EntityView] = []
    for entity_id in candidates:
        try:
            result.append(EntityView.from_state(entity_id, states[entity_id]))
        except MalformedRecordError:
            logger.exception("Failed to read state of %s", entity_id)
    return result
