"""aiomultiroom: group topology resolution and grouping for multi-room audio players."""

from __future__ import annotations

from aiomultiroom.active import ActivePlayerOverrides, select_active_group
from aiomultiroom.controller import (
    ActivePlayerChangedEvent,
    GroupingController,
    GroupingEvent,
    Snapshot,
)
from aiomultiroom.grouping import (
    EmptySelectionError,
    GroupingChanges,
    GroupingItem,
    build_grouping_items,
    get_grouping_changes,
)
from aiomultiroom.models import (
    EntityView,
    Group,
    GroupingConfig,
    MalformedRecordError,
    PredefinedGroup,
    TopologyResult,
)
from aiomultiroom.predefined import resolve_predefined_groups
from aiomultiroom.session import ApplyResult, CommandFailure, CommandService, GroupingSession
from aiomultiroom.topology import resolve_topology

__all__ = [
    "ActivePlayerChangedEvent",
    "ActivePlayerOverrides",
    "ApplyResult",
    "CommandFailure",
    "CommandService",
    "EmptySelectionError",
    "EntityView",
    "Group",
    "GroupingChanges",
    "GroupingConfig",
    "GroupingController",
    "GroupingEvent",
    "GroupingItem",
    "GroupingSession",
    "MalformedRecordError",
    "PredefinedGroup",
    "Snapshot",
    "TopologyResult",
    "build_grouping_items",
    "get_grouping_changes",
    "resolve_predefined_groups",
    "resolve_topology",
    "select_active_group",
]
