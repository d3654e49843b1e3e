"""
Configuration models for aiomultiroom.

The configuration is a JSON document using the camelCase keys of the card
configuration it originates from, for example::

    {
        "entityId": "media_player.kitchen",
        "predefinedGroups": [
            {"name": "Downstairs", "entities": ["media_player.kitchen",
                                                {"player": "media_player.hall", "volume": 20}]}
        ],
        "agsStatusSensor": "sensor.ags_status"
    }

Only the values are modelled here; how the document is stored is up to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from mashumaro import field_options
from mashumaro.config import BaseConfig
from mashumaro.mixins.orjson import DataClassORJSONMixin


@dataclass
class PredefinedGroupPlayerConfig(DataClassORJSONMixin):
    """One entry of a predefined group."""

    player: str
    """Entity id of the player."""
    volume: int | None = None
    """Volume override (0-100) applied when the group is selected."""

    def __post_init__(self) -> None:
        """Validate field values."""
        if self.volume is not None and not 0 <= self.volume <= 100:
            raise ValueError(f"Volume must be in range 0-100, got {self.volume}")

    class Config(BaseConfig):
        """Config for parsing json."""

        omit_none = True


@dataclass
class PredefinedGroupConfig(DataClassORJSONMixin):
    """A configured group template."""

    name: str
    """Name of the predefined group."""
    entities: list[PredefinedGroupPlayerConfig] = field(default_factory=list)
    """Listed players, in configuration order."""
    exclude_items_in_entities_list: bool = field(
        default=False, metadata=field_options(alias="excludeItemsInEntitiesList")
    )
    """If set, the group consists of every known player not listed in entities."""
    volume: int | None = None
    """Volume applied to players without their own override."""
    media: str | None = None
    """Source to select on the first player once the group is formed."""
    unmute_when_grouped: bool = field(
        default=False, metadata=field_options(alias="unmuteWhenGrouped")
    )
    """Unmute every player of the group once it is formed."""

    @classmethod
    def __pre_deserialize__(cls, d: dict[Any, Any]) -> dict[Any, Any]:
        entities = d.get("entities")
        if isinstance(entities, list):
            d = dict(d)
            d["entities"] = [
                {"player": entry} if isinstance(entry, str) else entry for entry in entities
            ]
        return d

    def __post_init__(self) -> None:
        """Validate field values."""
        if self.volume is not None and not 0 <= self.volume <= 100:
            raise ValueError(f"Volume must be in range 0-100, got {self.volume}")

    @property
    def entity_ids(self) -> list[str]:
        """Entity ids listed in this group."""
        return [entry.player for entry in self.entities]

    class Config(BaseConfig):
        """Config for parsing json."""

        omit_none = True
        serialize_by_alias = True


@dataclass
class GroupingConfig(DataClassORJSONMixin):
    """Values consumed by the grouping engine and its controller."""

    entity_id: str | None = field(default=None, metadata=field_options(alias="entityId"))
    """Statically configured active player."""
    entities: list[str] = field(default_factory=list)
    """Optional list narrowing (and ordering) the players."""
    exclude_items_in_entities_list: bool = field(
        default=False, metadata=field_options(alias="excludeItemsInEntitiesList")
    )
    """Treat entities as an exclusion list."""
    predefined_groups: list[PredefinedGroupConfig] = field(
        default_factory=list, metadata=field_options(alias="predefinedGroups")
    )
    """Configured group templates."""
    ags_status_sensor: str | None = field(
        default=None, metadata=field_options(alias="agsStatusSensor")
    )
    """Status sensor of the automatic grouping system."""
    ags_primary_speaker_sensor: str | None = field(
        default=None, metadata=field_options(alias="agsPrimarySpeakerSensor")
    )
    """Sensor holding the entity id of the current primary speaker."""
    ags_preferred_primary_sensor: str | None = field(
        default=None, metadata=field_options(alias="agsPreferredPrimarySensor")
    )
    """Sensor holding the entity id of the preferred primary speaker."""
    ags_system_switch: str | None = field(
        default=None, metadata=field_options(alias="agsSystemSwitch")
    )
    """Switch enabling the automatic grouping system."""
    ags_room_switch_prefix: str | None = field(
        default=None, metadata=field_options(alias="agsRoomSwitchPrefix")
    )
    """Prefix of the per-room switches of the automatic grouping system."""
    dont_switch_player_when_grouping: bool = field(
        default=False, metadata=field_options(alias="dontSwitchPlayerWhenGrouping")
    )
    """Suppress active player notifications after grouping."""
    skip_apply_button_when_grouping: bool = field(
        default=False, metadata=field_options(alias="skipApplyButtonWhenGrouping")
    )
    """Commit grouping changes as soon as they are made."""

    class Config(BaseConfig):
        """Config for parsing json."""

        omit_none = True
        serialize_by_alias = True
