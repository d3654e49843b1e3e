"""Selects the group that acts as context for commands and display."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from .models import AGS_PLAYER_NONE, AGS_STATUS_OFF, Group, GroupingConfig, StateMapping
from .topology import find_group

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActivePlayerOverrides:
    """Signals that influence which group becomes active."""

    active_player_id: str | None = None
    """Player explicitly requested by the caller."""
    entity_id: str | None = None
    """Statically configured player."""
    url: str | None = None
    """Navigation context; the text after the last '#' names a player."""
    ags_status: str | None = None
    """State of the automatic grouping system status sensor."""
    ags_primary_speaker: str | None = None
    """State of the primary speaker sensor."""
    ags_preferred_primary: str | None = None
    """State of the preferred primary speaker sensor."""

    @classmethod
    def from_states(
        cls,
        config: GroupingConfig,
        states: StateMapping,
        *,
        active_player_id: str | None = None,
        url: str | None = None,
    ) -> ActivePlayerOverrides:
        """Read the configured sensors out of a state mapping."""

        def sensor_state(entity_id: str | None) -> str | None:
            if not entity_id:
                return None
            record = states.get(entity_id)
            return record.get("state") if record else None

        return cls(
            active_player_id=active_player_id,
            entity_id=config.entity_id,
            url=url,
            ags_status=sensor_state(config.ags_status_sensor),
            ags_primary_speaker=sensor_state(config.ags_primary_speaker_sensor),
            ags_preferred_primary=sensor_state(config.ags_preferred_primary_sensor),
        )

    @property
    def ags_engaged(self) -> bool:
        """Return True if the automatic grouping system reports it is engaged."""
        return bool(self.ags_status) and self.ags_status != AGS_STATUS_OFF

    def ags_player_id(self) -> str | None:
        """Return the primary speaker, falling back to the preferred one."""
        player_id = self.ags_primary_speaker
        if not player_id or player_id == AGS_PLAYER_NONE:
            player_id = self.ags_preferred_primary
        return player_id or None

    def requested_player_id(self) -> str:
        """Return the explicit, configured or URL player id, in that order."""
        return self.active_player_id or self.entity_id or player_id_from_url(self.url)


def player_id_from_url(url: str | None) -> str:
    """Return the fragment of a URL (text after the last '#'), or ''."""
    if not url or "#" not in url:
        return ""
    return url.rpartition("#")[2]


def select_active_group(
    groups: Sequence[Group], overrides: ActivePlayerOverrides | None = None
) -> Group | None:
    """
    Select the active group.

    Priority, first match wins:
    1. The group of the automatic grouping system's primary speaker, if the
       system is engaged.
    2. The group of the explicit, configured or URL player id.
    3. The first playing group.
    4. The first group.

    Returns:
        The selected group, or None if there are no groups at all.
    """
    overrides = overrides or ActivePlayerOverrides()

    if overrides.ags_engaged:
        ags_player_id = overrides.ags_player_id()
        ags_group = find_group(groups, ags_player_id)
        if ags_group is not None:
            logger.debug("Active group %s selected by automatic grouping", ags_group.id)
            return ags_group
        logger.debug("Automatic grouping speaker %s not found", ags_player_id)

    requested = find_group(groups, overrides.requested_player_id())
    if requested is not None:
        return requested
    for group in groups:
        if group.is_playing():
            return group
    return groups[0] if groups else None
