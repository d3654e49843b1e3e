"""Expands configured group templates into concrete player sets."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from .models import (
    EntityView,
    PredefinedGroup,
    PredefinedGroupConfig,
    PredefinedGroupPlayer,
    PredefinedGroupPlayerConfig,
)

logger = logging.getLogger(__name__)


def resolve_predefined_groups(
    configs: Iterable[PredefinedGroupConfig], players: Sequence[EntityView]
) -> list[PredefinedGroup]:
    """
    Resolve predefined group templates against the known players.

    Args:
        configs: Configured groups, in configuration order.
        players: All known players, unavailable ones included.

    Returns:
        The resolved groups in configuration order. Groups that end up without
        any available player are left out.
    """
    result: list[PredefinedGroup] = []
    for config in configs:
        group = resolve_predefined_group(config, players)
        if group is None:
            logger.debug("Predefined group %s has no available players", config.name)
            continue
        result.append(group)
    return result


def resolve_predefined_group(
    config: PredefinedGroupConfig, players: Sequence[EntityView]
) -> PredefinedGroup | None:
    """Resolve a single template, returning None if no player is available."""
    entries = config.entities
    if config.exclude_items_in_entities_list:
        entries = _invert_entries(entries, players)

    by_id = {player.entity_id: player for player in players}
    resolved: list[PredefinedGroupPlayer] = []
    for entry in entries:
        player = by_id.get(entry.player)
        if player is None:
            logger.debug(
                "Predefined group %s references unknown player %s", config.name, entry.player
            )
            continue
        if not player.available:
            logger.warning("Player %s is unavailable", entry.player)
            continue
        resolved.append(PredefinedGroupPlayer(player=player, volume=entry.volume))

    if not resolved:
        return None
    return PredefinedGroup(
        name=config.name,
        players=tuple(resolved),
        volume=config.volume,
        media=config.media,
        unmute_when_grouped=config.unmute_when_grouped,
    )


def _invert_entries(
    excluded: Sequence[PredefinedGroupPlayerConfig], players: Sequence[EntityView]
) -> list[PredefinedGroupPlayerConfig]:
    excluded_ids = {entry.player for entry in excluded}
    return [
        PredefinedGroupPlayerConfig(player=player.entity_id)
        for player in players
        if player.available and player.entity_id not in excluded_ids
    ]
