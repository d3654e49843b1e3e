"""Tests for the command-line interface."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from aiomultiroom.cli import (
    _build_service_url,
    describe,
    find_player_id,
    handle_command,
    load_config,
    parse_args,
)
from aiomultiroom.controller import GroupingController
from aiomultiroom.models import GroupingConfig

from .conftest import RecordingCommandService


@pytest.fixture
def client(living_room_states) -> MagicMock:
    """Return a fake Home Assistant client serving the living room states."""
    fake = MagicMock()
    fake.get_states = AsyncMock(return_value=living_room_states)
    return fake


def _controller(states, commands, **config) -> GroupingController:
    controller = GroupingController(GroupingConfig.from_dict(config), commands)
    controller.update_states(states)
    return controller


@pytest.fixture
def controller(living_room_states, commands) -> GroupingController:
    """Return a controller with one predefined group."""
    return _controller(
        living_room_states,
        commands,
        predefinedGroups=[{"name": "Upstairs", "entities": ["media_player.office"]}],
    )


class TestArguments:
    """Tests for argument and configuration parsing."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test the token defaults to the environment."""
        monkeypatch.setenv("HASS_TOKEN", "from-env")
        args = parse_args([])
        assert args.url is None
        assert args.token == "from-env"
        assert args.config is None
        assert args.refresh_interval == 5.0
        assert args.log_level == "INFO"

    def test_explicit(self) -> None:
        """Test explicit arguments."""
        args = parse_args(
            [
                "--url",
                "http://hass:8123",
                "--token",
                "abc",
                "--config",
                "grouping.json",
                "--player",
                "media_player.kitchen",
                "--refresh-interval",
                "2",
            ]
        )
        assert args.url == "http://hass:8123"
        assert args.token == "abc"
        assert args.config == Path("grouping.json")
        assert args.player == "media_player.kitchen"
        assert args.refresh_interval == 2.0

    def test_load_config(self, tmp_path: Path) -> None:
        """Test the configuration is read from a JSON file."""
        path = tmp_path / "grouping.json"
        path.write_text('{"entityId": "media_player.office", "predefinedGroups": []}')
        assert load_config(path).entity_id == "media_player.office"
        assert load_config(None) == GroupingConfig()

    @pytest.mark.parametrize(
        ("host", "port", "properties", "expected"),
        [
            ("192.168.1.2", 8123, {}, "http://192.168.1.2:8123"),
            ("fe80::1", 8123, {}, "http://[fe80::1]:8123"),
            (
                "192.168.1.2",
                8123,
                {b"base_url": b"http://hass.local:8123/", b"internal_url": None},
                "http://hass.local:8123",
            ),
            (
                "192.168.1.2",
                8123,
                {b"base_url": b"http://a", b"internal_url": b"http://b:8123"},
                "http://b:8123",
            ),
        ],
    )
    def test_build_service_url(self, host, port, properties, expected) -> None:
        """Test the URL is taken from the advertisement where available."""
        assert _build_service_url(host, port, properties) == expected


class TestDescribe:
    """Tests for the text rendering."""

    def test_describe(self, controller: GroupingController) -> None:
        """Test groups, items and predefined groups are listed."""
        controller.edit().toggle_item("media_player.office")
        lines = describe(controller).splitlines()
        assert lines[:3] == [
            "* Kitchen [playing]: Kitchen, Hall",
            "  Office [idle]: Office",
            "  Patio [paused]: Patio",
        ]
        assert "  [x] Kitchen <media_player.kitchen> (main)" in lines
        assert "  [x] Office <media_player.office> (modified)" in lines
        assert "  [ ] Patio <media_player.patio>" in lines
        assert lines[-1] == "  group 'Upstairs': media_player.office"

    def test_find_player_id(self, controller: GroupingController) -> None:
        """Test players are found by id or name."""
        assert find_player_id(controller, "media_player.hall") == "media_player.hall"
        assert find_player_id(controller, "patio") == "media_player.patio"
        assert find_player_id(controller, "attic") is None


class TestHandleCommand:
    """Tests for keyboard commands."""

    async def test_quit(self, controller, client) -> None:
        """Test quit stops the loop."""
        assert not await handle_command(controller, client, "quit")
        assert await handle_command(controller, client, "list")

    async def test_toggle_and_apply(self, controller, client, commands, capsys) -> None:
        """Test toggling a player and applying refreshes the state."""
        assert await handle_command(controller, client, "toggle Office")
        assert controller.edit().modified_items == ["media_player.office"]
        assert await handle_command(controller, client, "a")
        assert commands.calls == [("join", "media_player.kitchen", ["media_player.office"])]
        client.get_states.assert_awaited_once()
        assert "Grouping applied" in capsys.readouterr().out

    async def test_apply_failure_is_reported(self, living_room_states, client, capsys) -> None:
        """Test failed commands are printed."""
        controller = _controller(living_room_states, RecordingCommandService(fail=["unjoin"]))
        await handle_command(controller, client, "t hall")
        await handle_command(controller, client, "apply")
        out = capsys.readouterr().out
        assert "unjoin media_player.hall failed: unjoin failed" in out
        assert "Grouping partially applied" in out

    async def test_unknown_input(self, controller, client, capsys) -> None:
        """Test unknown players, groups and commands are reported."""
        await handle_command(controller, client, "toggle attic")
        await handle_command(controller, client, "group Attic")
        await handle_command(controller, client, "dance")
        out = capsys.readouterr().out
        assert "Unknown player: attic" in out
        assert "Unknown predefined group: Attic" in out
        assert "Unknown command" in out

    async def test_locked_player(self, controller, client, capsys) -> None:
        """Test the last selected player can not be deselected."""
        await handle_command(controller, client, "t hall")
        await handle_command(controller, client, "t kitchen")
        assert "media_player.kitchen can not be deselected" in capsys.readouterr().out

    async def test_group_all_none_cancel(self, controller, client) -> None:
        """Test selection commands update the session."""
        session = controller.edit()
        await handle_command(controller, client, "group Upstairs")
        assert session.selected_predefined_group.name == "Upstairs"
        await handle_command(controller, client, "all")
        assert all(item.is_selected for item in session.items())
        await handle_command(controller, client, "none")
        assert [item.id for item in session.items() if item.is_selected] == [
            "media_player.kitchen"
        ]
        await handle_command(controller, client, "cancel")
        assert not session.is_editing

    async def test_switch_player(self, controller, client, capsys) -> None:
        """Test switching the active player."""
        await handle_command(controller, client, "player Patio")
        assert controller.active_group.id == "media_player.patio"

    async def test_refresh(self, controller, client) -> None:
        """Test refresh fetches the states."""
        await handle_command(controller, client, "r")
        client.get_states.assert_awaited_once()

    async def test_auto_apply(self, living_room_states, commands, client) -> None:
        """Test changes are applied right away when configured."""
        controller = _controller(living_room_states, commands, skipApplyButtonWhenGrouping=True)
        await handle_command(controller, client, "t patio")
        assert commands.calls == [("join", "media_player.kitchen", ["media_player.patio"])]
        assert not controller.edit().is_editing

    async def test_apply_without_players(self, commands, client, capsys) -> None:
        """Test applying without any players is reported and the loop continues."""
        controller = _controller({}, commands)
        assert await handle_command(controller, client, "apply")
        assert commands.calls == []
        client.get_states.assert_not_awaited()
        assert "No players available to group" in capsys.readouterr().out
