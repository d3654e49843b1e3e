"""Global fixtures for aiomultiroom tests."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

import pytest

from aiomultiroom.models import EntityView

StateFactory = Callable[..., dict[str, Any]]
PlayerFactory = Callable[..., EntityView]


def _state(
    state: str = "idle",
    members: Sequence[str] | None = None,
    name: str | None = None,
) -> dict[str, Any]:
    attributes: dict[str, Any] = {}
    if members is not None:
        attributes["group_members"] = list(members)
    if name is not None:
        attributes["friendly_name"] = name
    return {"state": state, "attributes": attributes}


@pytest.fixture
def make_state() -> StateFactory:
    """Return a factory for raw state records."""
    return _state


@pytest.fixture
def make_player() -> PlayerFactory:
    """Return a factory for EntityViews named after their object id."""

    def factory(
        entity_id: str,
        members: Sequence[str] | None = None,
        state: str = "idle",
        name: str | None = None,
    ) -> EntityView:
        if "." not in entity_id:
            entity_id = f"media_player.{entity_id}"
        return EntityView.from_state(
            entity_id,
            _state(state, members, name or entity_id.split(".", 1)[1].title()),
        )

    return factory


class RecordingCommandService:
    """Command service recording every call, optionally failing some operations."""

    def __init__(self, fail: Sequence[str] = ()) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self._fail = set(fail)

    def _record(self, *call: Any) -> None:
        self.calls.append(call)
        if call[0] in self._fail:
            raise RuntimeError(f"{call[0]} failed")

    async def join(self, main_player_id: str, member_ids: Sequence[str]) -> None:
        self._record("join", main_player_id, list(member_ids))

    async def unjoin(self, member_ids: Sequence[str]) -> None:
        self._record("unjoin", list(member_ids))

    async def set_volume_and_media(self, predefined_group: Any) -> None:
        self._record("set_volume_and_media", predefined_group.name)

    async def set_switch(self, entity_id: str, on: bool) -> None:
        self._record("set_switch", entity_id, on)


@pytest.fixture
def commands() -> RecordingCommandService:
    """Return a command service recording all calls."""
    return RecordingCommandService()


@pytest.fixture
def living_room_states(make_state: StateFactory) -> dict[str, dict[str, Any]]:
    """Kitchen and Hall grouped under Kitchen, Office and Patio standalone."""
    grouped = ["media_player.kitchen", "media_player.hall"]
    return {
        "media_player.kitchen": make_state("playing", grouped, "Kitchen"),
        "media_player.hall": make_state("playing", grouped, "Hall"),
        "media_player.office": make_state("idle", ["media_player.office"], "Office"),
        "media_player.patio": make_state("paused", [], "Patio"),
        "sensor.outside_temperature": make_state("12"),
    }
