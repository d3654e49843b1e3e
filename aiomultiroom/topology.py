"""Resolves a flat list of player snapshots into groups with a single main player."""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable

from .models import EntityView, Group, MalformedRecordError, ResolveFailure, TopologyResult

logger = logging.getLogger(__name__)


def restricted_members(entity: EntityView, known_ids: Collection[str]) -> list[str]:
    """
    Return the member list of an entity restricted to known identifiers.

    References to players that are no longer present are dropped.

    Raises:
        MalformedRecordError: If the member list repeats an identifier or a
            grouped record does not list the entity itself.
    """
    members = [member for member in entity.group_members if member in known_ids]
    if len(set(members)) != len(members):
        raise MalformedRecordError(entity.entity_id, "group_members repeats an identifier")
    if len(members) > 1 and entity.entity_id not in members:
        raise MalformedRecordError(entity.entity_id, "group_members does not list the player")
    return members


def is_main_player(entity: EntityView, known_ids: Collection[str]) -> bool:
    """Return True if the entity is standalone or listed first in its own group."""
    members = restricted_members(entity, known_ids)
    return len(members) <= 1 or members[0] == entity.entity_id


def resolve_topology(entities: Iterable[EntityView]) -> TopologyResult:
    """
    Build the groups for a set of player snapshots.

    Unavailable players are excluded. A record that cannot be interpreted is
    reported as a failure without affecting the other players. Every available,
    well-formed player ends up in exactly one group.

    Args:
        entities: Snapshots of all players known to the state source.

    Returns:
        TopologyResult holding the groups in input order, followed by groups for
        players no main player claimed, and the failures.
    """
    available: dict[str, EntityView] = {}
    for entity in entities:
        if not entity.available:
            logger.warning("Player %s is unavailable", entity.entity_id)
            continue
        available[entity.entity_id] = entity

    groups: list[Group] = []
    failures: list[ResolveFailure] = []
    placed: set[str] = set()

    for entity in available.values():
        try:
            if not is_main_player(entity, available):
                continue
            members = restricted_members(entity, available)
            if len(members) <= 1:
                members = [entity.entity_id]
        except MalformedRecordError as err:
            logger.error("Failed to determine main player %s: %s", entity.entity_id, err.reason)
            failures.append(ResolveFailure(entity_id=entity.entity_id, reason=err.reason))
            continue
        group = _build_group(entity, members, available, placed)
        if group is not None:
            groups.append(group)

    failed_ids = {failure.entity_id for failure in failures}
    for entity_id, entity in available.items():
        if entity_id in placed or entity_id in failed_ids:
            continue
        logger.warning(
            "Player %s is not claimed by its main player, keeping it standalone", entity_id
        )
        placed.add(entity_id)
        groups.append(Group(main=entity, members=(entity,)))

    logger.debug(
        "Resolved %d player(s) into %d group(s) with %d failure(s)",
        len(available),
        len(groups),
        len(failures),
    )
    return TopologyResult(groups=tuple(groups), failures=tuple(failures))


def _build_group(
    main: EntityView,
    member_ids: list[str],
    available: dict[str, EntityView],
    placed: set[str],
) -> Group | None:
    if main.entity_id in placed:
        logger.warning(
            "Main player %s already belongs to another group, ignoring its member list",
            main.entity_id,
        )
        return None
    members: list[EntityView] = []
    for member_id in member_ids:
        if member_id in placed:
            logger.warning(
                "Player %s is claimed by more than one group, keeping the first", member_id
            )
            continue
        placed.add(member_id)
        members.append(available[member_id])
    return Group(main=main, members=tuple(members))


def all_players(groups: Iterable[Group]) -> list[EntityView]:
    """Return the members of all groups sorted by display name."""
    players = [member for group in groups for member in group.members]
    return sorted(players, key=lambda player: player.name.casefold())


def find_group(groups: Iterable[Group], entity_id: str | None) -> Group | None:
    """Return the group containing the given player as any member."""
    if not entity_id:
        return None
    for group in groups:
        if group.has_member(entity_id):
            return group
    return None
