"""Pending grouping edits and the sequence that applies them."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from .grouping import (
    GroupingChanges,
    GroupingItem,
    build_grouping_items,
    get_grouping_changes,
    joined_player_ids,
    not_joined_player_ids,
)
from .models import PredefinedGroup

# The cyclic import is not an issue during runtime, so hide it
# pyright: reportImportCycles=none
if TYPE_CHECKING:
    from .controller import GroupingController, Snapshot

logger = logging.getLogger(__name__)


class CommandService(Protocol):
    """Service executing grouping commands on the players."""

    async def join(self, main_player_id: str, member_ids: Sequence[str]) -> None:
        """Join the members to the group of the main player."""

    async def unjoin(self, member_ids: Sequence[str]) -> None:
        """Remove the members from their groups."""

    async def set_volume_and_media(self, predefined_group: PredefinedGroup) -> None:
        """Apply the volume and media settings of a predefined group."""

    async def set_switch(self, entity_id: str, on: bool) -> None:
        """Turn a switch on or off."""


@dataclass
class CommandFailure:
    """A command that failed while applying a grouping."""

    operation: str
    targets: list[str]
    error: str


@dataclass
class ApplyResult:
    """Outcome of applying a grouping."""

    changes: GroupingChanges
    predefined_group: PredefinedGroup | None = None
    new_active_player_id: str | None = None
    """Player announced as the new active player, if any."""
    failures: list[CommandFailure] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Return True if every command succeeded."""
        return not self.failures


class GroupingSession:
    """
    The uncommitted edit of the active group.

    Holds the set of toggled players and the optionally picked predefined
    group. Picking a predefined group replaces the toggles; toggling a player
    clears the picked predefined group. Items are recomputed from the latest
    controller snapshot on every access.
    """

    def __init__(self, controller: GroupingController) -> None:
        """Do not call this constructor, use GroupingController.edit()."""
        self._controller = controller
        self._modified: list[str] = []
        self._predefined_group: PredefinedGroup | None = None

    @property
    def snapshot(self) -> Snapshot:
        """Latest snapshot of the controller."""
        return self._controller.snapshot

    @property
    def modified_items(self) -> list[str]:
        """Players toggled relative to the active group."""
        return list(self._modified)

    @property
    def selected_predefined_group(self) -> PredefinedGroup | None:
        """The picked predefined group, if any."""
        return self._predefined_group

    @property
    def is_editing(self) -> bool:
        """Return True if there are uncommitted changes."""
        return bool(self._modified) or self._predefined_group is not None

    @property
    def auto_apply(self) -> bool:
        """Return True if pending changes should be committed right away."""
        return self.snapshot.config.skip_apply_button_when_grouping and self.is_editing

    def items(self) -> list[GroupingItem]:
        """Grouping items for all players, empty when there is no active group."""
        snapshot = self.snapshot
        if snapshot.active_group is None:
            return []
        return build_grouping_items(snapshot.players, snapshot.active_group, self._modified)

    def joined_players(self) -> list[str]:
        """Players currently in the active group."""
        snapshot = self.snapshot
        if snapshot.active_group is None:
            return []
        return joined_player_ids(snapshot.players, snapshot.active_group)

    def not_joined_players(self) -> list[str]:
        """Players currently outside the active group."""
        snapshot = self.snapshot
        if snapshot.active_group is None:
            return []
        return not_joined_player_ids(snapshot.players, snapshot.active_group)

    def get_item(self, player_id: str) -> GroupingItem | None:
        """Return the grouping item of a player."""
        for item in self.items():
            if item.id == player_id:
                return item
        return None

    def toggle_item(self, player_id: str) -> bool:
        """
        Toggle a player unless it is disabled.

        Returns:
            True if the player was toggled.
        """
        item = self.get_item(player_id)
        if item is None:
            logger.debug("Ignoring toggle of unknown player %s", player_id)
            return False
        return self._toggle_unless_disabled(item)

    def select_predefined_group(self, predefined_group: PredefinedGroup | str) -> None:
        """Make the selection match a predefined group."""
        if isinstance(predefined_group, str):
            found = self.snapshot.get_predefined_group(predefined_group)
            if found is None:
                raise KeyError(f"Unknown predefined group: {predefined_group}")
            predefined_group = found
        self._modified = [
            item.id
            for item in self.items()
            if predefined_group.has_player(item.id) != item.is_joined
        ]
        self._predefined_group = predefined_group
        logger.debug("Selected predefined group %s", predefined_group.name)

    def select_all(self) -> None:
        """Select every player."""
        for item in self.items():
            if not item.is_selected:
                self._toggle_unless_disabled(item)

    def deselect_all(self) -> None:
        """Deselect every player except the main player of the active group."""
        for item in self.items():
            if item.is_main and not item.is_selected:
                self._toggle_unless_disabled(item)
        # Recompute, the previously sole selected player is no longer disabled
        for item in self.items():
            if not item.is_main and item.is_selected:
                self._toggle_unless_disabled(item)

    def cancel(self) -> None:
        """Discard all pending changes."""
        self._modified = []
        self._predefined_group = None

    async def apply(self) -> ApplyResult:
        """
        Commit the pending changes.

        The pending state is captured and cleared first; state refreshes that
        arrive while commands are in flight do not affect this commit. All join
        commands are issued before all unjoin commands. A failing command is
        recorded in the result and does not stop the remaining ones.

        Raises:
            RuntimeError: If there is no active group.
            EmptySelectionError: If no player would remain selected.
        """
        snapshot = self.snapshot
        active_group = snapshot.active_group
        if active_group is None:
            raise RuntimeError("No active group to apply grouping to")
        items = build_grouping_items(snapshot.players, active_group, self._modified)
        joined = joined_player_ids(snapshot.players, active_group)
        changes = get_grouping_changes(items, joined, active_group.id)

        predefined_group = self._predefined_group
        self.cancel()
        result = ApplyResult(changes=changes, predefined_group=predefined_group)
        commands = self._controller.commands
        logger.info(
            "Applying grouping for %s: join=%s, unjoin=%s, main=%s",
            active_group.id,
            changes.join,
            changes.un_join,
            changes.new_main_player,
        )

        if snapshot.ags_active:
            for item in items:
                switch_id = snapshot.room_switch(item.player)
                await self._run(
                    result, "switch", [switch_id], commands.set_switch(switch_id, item.is_selected)
                )
        else:
            if changes.join:
                await self._run(
                    result,
                    "join",
                    changes.join,
                    commands.join(changes.new_main_player, changes.join),
                )
            if changes.un_join:
                await self._run(result, "unjoin", changes.un_join, commands.unjoin(changes.un_join))

        if predefined_group is not None:
            await self._run(
                result,
                "set_volume_and_media",
                predefined_group.player_ids,
                commands.set_volume_and_media(predefined_group),
            )

        config = snapshot.config
        if (
            changes.new_main_player != active_group.id
            and not config.dont_switch_player_when_grouping
        ):
            result.new_active_player_id = changes.new_main_player
        if (
            config.entity_id
            and config.entity_id in changes.un_join
            and config.dont_switch_player_when_grouping
        ):
            result.new_active_player_id = config.entity_id
        if result.new_active_player_id is not None:
            await self._controller.set_active_player(result.new_active_player_id)

        if result.failures:
            logger.warning("Grouping applied with %d failed command(s)", len(result.failures))
        return result

    def _toggle_unless_disabled(self, item: GroupingItem) -> bool:
        if item.is_disabled:
            return False
        if item.id in self._modified:
            self._modified.remove(item.id)
        else:
            self._modified.append(item.id)
        self._predefined_group = None
        return True

    async def _run(
        self,
        result: ApplyResult,
        operation: str,
        targets: Sequence[str],
        command: Awaitable[None],
    ) -> None:
        try:
            await command
        except Exception as err:
            # Best effort: the remaining commands are still issued
            logger.exception("Failed to %s %s", operation, list(targets))
            result.failures.append(
                CommandFailure(operation=operation, targets=list(targets), error=str(err))
            )
