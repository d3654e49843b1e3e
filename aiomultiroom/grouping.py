"""
Grouping diff engine.

Projects the known players against the active group and a set of pending
toggles, and computes the join/unjoin operations needed to turn the current
membership of the active group into the selected one.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable, Sequence
from dataclasses import dataclass, field

from mashumaro.mixins.orjson import DataClassORJSONMixin

from .models import EntityView, Group

logger = logging.getLogger(__name__)


class EmptySelectionError(ValueError):
    """Raised when a grouping change would leave no player selected."""


@dataclass
class GroupingItem:
    """One player as presented while editing the active group."""

    player: EntityView
    is_main: bool
    """The player is the main player of the active group."""
    is_joined: bool
    """The player is currently a member of the active group."""
    is_modified: bool = False
    """The player was toggled in the pending edit."""
    is_disabled: bool = False
    """The player is the only selected item and can not be deselected."""

    @classmethod
    def for_player(
        cls, player: EntityView, active_group: Group, *, is_modified: bool = False
    ) -> GroupingItem:
        """Project a player against the active group."""
        is_main = player.entity_id == active_group.id
        return cls(
            player=player,
            is_main=is_main,
            is_joined=is_main or active_group.has_member(player.entity_id),
            is_modified=is_modified,
        )

    @property
    def id(self) -> str:
        """Identifier of the player."""
        return self.player.entity_id

    @property
    def name(self) -> str:
        """Display name of the player."""
        return self.player.name

    @property
    def is_selected(self) -> bool:
        """The player is part of the desired group."""
        return self.is_joined != self.is_modified


def build_grouping_items(
    players: Iterable[EntityView], active_group: Group, modified: Collection[str] = ()
) -> list[GroupingItem]:
    """
    Build the grouping items for all players.

    The sole selected item is marked disabled. Items are ordered with the
    active main player first, then selected players, then by name.
    """
    items = [
        GroupingItem.for_player(player, active_group, is_modified=player.entity_id in modified)
        for player in players
    ]
    selected = [item for item in items if item.is_selected]
    if len(selected) == 1:
        selected[0].is_disabled = True
    items.sort(key=lambda item: (not item.is_main, not item.is_selected, item.name.casefold()))
    return items


def joined_player_ids(players: Iterable[EntityView], active_group: Group) -> list[str]:
    """Return the ids of players that are part of the active group."""
    return [player.entity_id for player in players if active_group.has_member(player.entity_id)]


def not_joined_player_ids(players: Iterable[EntityView], active_group: Group) -> list[str]:
    """Return the ids of players that are not part of the active group."""
    return [
        player.entity_id for player in players if not active_group.has_member(player.entity_id)
    ]


@dataclass(frozen=True)
class GroupingChanges(DataClassORJSONMixin):
    """Operations needed to reach the selected grouping."""

    un_join: list[str] = field(default_factory=list)
    """Players to remove from the group."""
    join: list[str] = field(default_factory=list)
    """Players to add to the group of new_main_player."""
    new_main_player: str = ""
    """Main player once the operations are applied."""

    @property
    def is_empty(self) -> bool:
        """Return True if no join or unjoin operation is needed."""
        return not self.un_join and not self.join


def get_grouping_changes(
    items: Sequence[GroupingItem],
    currently_joined_ids: Sequence[str],
    active_player_id: str,
) -> GroupingChanges:
    """
    Compute the join/unjoin operations for the selected items.

    The active player is never unjoined. If it was deselected, the first
    selected item in item order becomes the new main player.

    Args:
        items: Grouping items reflecting the desired selection.
        currently_joined_ids: Players currently in the active group.
        active_player_id: Main player of the active group.

    Returns:
        GroupingChanges with disjoint join and un_join lists.

    Raises:
        EmptySelectionError: If no item is selected.
    """
    selected = [item.id for item in items if item.is_selected]
    if not selected:
        raise EmptySelectionError("At least one player must remain selected")

    desired = set(selected)
    joined = set(currently_joined_ids)

    join = _unique(player_id for player_id in selected if player_id not in joined)
    un_join = _unique(
        player_id
        for player_id in currently_joined_ids
        if player_id not in desired and player_id != active_player_id
    )

    new_main_player = active_player_id
    if active_player_id not in desired:
        new_main_player = selected[0]
        logger.debug(
            "Main player %s deselected, handing off to %s", active_player_id, new_main_player
        )

    return GroupingChanges(un_join=un_join, join=join, new_main_player=new_main_player)


def _unique(player_ids: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for player_id in player_ids:
        if player_id not in seen:
            seen.add(player_id)
            result.append(player_id)
    return result
