"""Models for the aiomultiroom grouping engine."""

from __future__ import annotations

__all__ = [
    "AGS_PLAYER_NONE",
    "AGS_STATUS_OFF",
    "STATE_UNAVAILABLE",
    "EntityView",
    "Group",
    "GroupingConfig",
    "MalformedRecordError",
    "PlaybackState",
    "PredefinedGroup",
    "PredefinedGroupConfig",
    "PredefinedGroupPlayer",
    "PredefinedGroupPlayerConfig",
    "ResolveFailure",
    "StateMapping",
    "StateRecord",
    "TopologyResult",
    "entities_from_states",
]

from .config import GroupingConfig, PredefinedGroupConfig, PredefinedGroupPlayerConfig
from .entity import (
    EntityView,
    MalformedRecordError,
    StateMapping,
    StateRecord,
    entities_from_states,
)
from .group import (
    Group,
    PredefinedGroup,
    PredefinedGroupPlayer,
    ResolveFailure,
    TopologyResult,
)
from .types import AGS_PLAYER_NONE, AGS_STATUS_OFF, STATE_UNAVAILABLE, PlaybackState
