"""Keeps the current grouping snapshot and the edit session of a controlling client."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field

from .active import ActivePlayerOverrides, select_active_group
from .models import (
    EntityView,
    Group,
    GroupingConfig,
    PredefinedGroup,
    StateMapping,
    TopologyResult,
    entities_from_states,
)
from .predefined import resolve_predefined_groups
from .session import CommandService, GroupingSession
from .topology import all_players, resolve_topology

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


class GroupingEvent:
    """Base event type used by GroupingController.add_event_listener()."""


@dataclass
class ActivePlayerChangedEvent(GroupingEvent):
    """A different player became the active player."""

    player_id: str
    """The ID of the new active player."""


EventCallback = Callable[[GroupingEvent], Awaitable[None] | None]


@dataclass(frozen=True)
class Snapshot:
    """Everything derived from one refresh of the state source."""

    config: GroupingConfig
    states: Mapping[str, Mapping[str, object]] = field(default_factory=dict)
    entities: tuple[EntityView, ...] = ()
    """All media players, unavailable ones included."""
    topology: TopologyResult = field(default_factory=TopologyResult)
    players: tuple[EntityView, ...] = ()
    """Members of all groups, sorted by name."""
    active_group: Group | None = None
    predefined_groups: tuple[PredefinedGroup, ...] = ()

    @classmethod
    def build(
        cls,
        config: GroupingConfig,
        states: StateMapping,
        *,
        active_player_id: str | None = None,
        url: str | None = None,
    ) -> Snapshot:
        """Resolve a fresh snapshot from a state mapping."""
        entities = entities_from_states(
            states, config.entities, exclude_listed=config.exclude_items_in_entities_list
        )
        topology = resolve_topology(entities)
        players = all_players(topology.groups)
        overrides = ActivePlayerOverrides.from_states(
            config, states, active_player_id=active_player_id, url=url
        )
        unavailable = [entity for entity in entities if not entity.available]
        return cls(
            config=config,
            states=dict(states),
            entities=tuple(entities),
            topology=topology,
            players=tuple(players),
            active_group=select_active_group(topology.groups, overrides),
            predefined_groups=tuple(
                resolve_predefined_groups(config.predefined_groups, [*players, *unavailable])
            ),
        )

    @property
    def groups(self) -> tuple[Group, ...]:
        """All resolved groups."""
        return self.topology.groups

    @property
    def ags_active(self) -> bool:
        """Return True if the automatic grouping system controls grouping."""
        config = self.config
        if config.ags_system_switch:
            return self._state_of(config.ags_system_switch) == "on"
        if config.ags_status_sensor:
            return self._state_of(config.ags_status_sensor) == "on"
        return False

    def room_switch(self, player: EntityView) -> str:
        """Return the room switch of the automatic grouping system for a player."""
        prefix = self.config.ags_room_switch_prefix or ""
        return prefix + _WHITESPACE.sub("_", player.name.lower())

    def get_predefined_group(self, name: str) -> PredefinedGroup | None:
        """Return the predefined group with the given name."""
        for predefined_group in self.predefined_groups:
            if predefined_group.name == name:
                return predefined_group
        return None

    def _state_of(self, entity_id: str) -> object:
        record = self.states.get(entity_id)
        return record.get("state") if record else None


class GroupingController:
    """
    Derives groups from the state source and manages grouping edits.

    Call update_states() whenever fresh state arrives. Every call replaces the
    snapshot wholesale; snapshots are never modified in place.
    """

    _config: GroupingConfig
    _commands: CommandService
    _snapshot: Snapshot
    _active_player_id: str | None
    _url: str | None
    _session: GroupingSession | None
    _event_cbs: list[EventCallback]

    def __init__(
        self,
        config: GroupingConfig,
        commands: CommandService,
        *,
        active_player_id: str | None = None,
        url: str | None = None,
    ) -> None:
        """
        Initialize a new GroupingController.

        Args:
            config: Grouping configuration.
            commands: Service used to execute grouping commands.
            active_player_id: Player explicitly requested as the active player.
            url: Navigation context that may name the active player.
        """
        self._config = config
        self._commands = commands
        self._active_player_id = active_player_id
        self._url = url
        self._session = None
        self._event_cbs = []
        self._snapshot = Snapshot(config=config)

    @property
    def config(self) -> GroupingConfig:
        """The grouping configuration."""
        return self._config

    @property
    def commands(self) -> CommandService:
        """The service used to execute grouping commands."""
        return self._commands

    @property
    def snapshot(self) -> Snapshot:
        """The latest snapshot."""
        return self._snapshot

    @property
    def active_group(self) -> Group | None:
        """The active group of the latest snapshot."""
        return self._snapshot.active_group

    def update_states(self, states: StateMapping) -> Snapshot:
        """Rebuild the snapshot from fresh state."""
        self._snapshot = Snapshot.build(
            self._config, states, active_player_id=self._active_player_id, url=self._url
        )
        active = self._snapshot.active_group
        logger.debug(
            "Snapshot updated: %d group(s), active group %s",
            len(self._snapshot.groups),
            active.id if active else None,
        )
        return self._snapshot

    async def set_active_player(self, player_id: str) -> None:
        """Request a player as the active player and notify listeners."""
        self._active_player_id = player_id
        self._snapshot = Snapshot.build(
            self._config, self._snapshot.states, active_player_id=player_id, url=self._url
        )
        logger.info("Active player changed to %s", player_id)
        await self._notify(ActivePlayerChangedEvent(player_id))

    def edit(self) -> GroupingSession:
        """Return the edit session, creating it on first use."""
        if self._session is None:
            self._session = GroupingSession(self)
        return self._session

    def add_event_listener(self, callback: EventCallback) -> Callable[[], None]:
        """
        Register a callback to listen for changes of the controller.

        Returns a function to remove the listener.
        """
        self._event_cbs.append(callback)
        return lambda: self._event_cbs.remove(callback)

    async def _notify(self, event: GroupingEvent) -> None:
        for callback in list(self._event_cbs):
            try:
                result = callback(event)
                if asyncio.iscoroutine(result):
                    await result
            except Exception:
                logger.exception("Error in event callback %s", callback)
