"""Tests for topology resolution."""

import logging

import pytest

from aiomultiroom.models import entities_from_states
from aiomultiroom.topology import (
    all_players,
    find_group,
    is_main_player,
    resolve_topology,
    restricted_members,
)


def _summary(result):
    return [(group.id, group.member_ids) for group in result.groups]


class TestResolveTopology:
    """Tests for resolve_topology."""

    def test_grouped_and_standalone(self, make_player) -> None:
        """Test one grouped pair and one standalone player."""
        pair = ["media_player.a", "media_player.b"]
        result = resolve_topology(
            [
                make_player("a", pair),
                make_player("b", pair),
                make_player("c", ["media_player.c"]),
            ]
        )
        assert _summary(result) == [
            ("media_player.a", ["media_player.a", "media_player.b"]),
            ("media_player.c", ["media_player.c"]),
        ]
        assert result.failures == ()

    def test_state_mapping(self, living_room_states) -> None:
        """Test resolution straight from a state mapping."""
        result = resolve_topology(entities_from_states(living_room_states))
        assert _summary(result) == [
            ("media_player.kitchen", ["media_player.kitchen", "media_player.hall"]),
            ("media_player.office", ["media_player.office"]),
            ("media_player.patio", ["media_player.patio"]),
        ]

    def test_unavailable_players_are_excluded(self, make_player, caplog) -> None:
        """Test an unavailable player is logged and left out."""
        with caplog.at_level(logging.WARNING):
            result = resolve_topology(
                [make_player("a"), make_player("b", state="unavailable")]
            )
        assert _summary(result) == [("media_player.a", ["media_player.a"])]
        assert "Player media_player.b is unavailable" in caplog.text

    def test_unavailable_member_is_dropped(self, make_player) -> None:
        """Test references to an unavailable member are ignored."""
        trio = ["media_player.a", "media_player.b", "media_player.c"]
        result = resolve_topology(
            [
                make_player("a", trio),
                make_player("b", trio, state="unavailable"),
                make_player("c", trio),
            ]
        )
        assert _summary(result) == [("media_player.a", ["media_player.a", "media_player.c"])]

    def test_stale_references(self, make_player) -> None:
        """Test member ids unknown to the state source are ignored."""
        result = resolve_topology(
            [make_player("a", ["media_player.a", "media_player.gone"])]
        )
        assert _summary(result) == [("media_player.a", ["media_player.a"])]

    def test_malformed_member_list(self, make_player, caplog) -> None:
        """Test a repeated identifier fails only that player."""
        with caplog.at_level(logging.ERROR):
            result = resolve_topology(
                [
                    make_player("a", ["media_player.a", "media_player.a"]),
                    make_player("b"),
                ]
            )
        assert _summary(result) == [("media_player.b", ["media_player.b"])]
        assert [failure.entity_id for failure in result.failures] == ["media_player.a"]
        assert "media_player.a" in caplog.text

    def test_orphan_becomes_standalone(self, make_player, caplog) -> None:
        """Test a member whose main player does not list it stays in the result."""
        with caplog.at_level(logging.WARNING):
            result = resolve_topology(
                [
                    make_player("a", ["media_player.a"]),
                    make_player("b", ["media_player.a", "media_player.b"]),
                ]
            )
        assert _summary(result) == [
            ("media_player.a", ["media_player.a"]),
            ("media_player.b", ["media_player.b"]),
        ]
        assert "media_player.b" in caplog.text

    def test_double_claim_keeps_first_group(self, make_player) -> None:
        """Test a player claimed by two main players stays in the first group."""
        result = resolve_topology(
            [
                make_player("a", ["media_player.a", "media_player.c"]),
                make_player("b", ["media_player.b", "media_player.c"]),
                make_player("c", ["media_player.a", "media_player.c"]),
            ]
        )
        assert _summary(result) == [
            ("media_player.a", ["media_player.a", "media_player.c"]),
            ("media_player.b", ["media_player.b"]),
        ]

    def test_every_player_in_exactly_one_group(self, make_player) -> None:
        """Test no player is lost or duplicated in a mixed topology."""
        pair = ["media_player.a", "media_player.b"]
        players = [
            make_player("a", pair, state="playing"),
            make_player("b", pair),
            make_player("c", ["media_player.a", "media_player.c"]),
            make_player("d", []),
            make_player("e", ["media_player.e", "media_player.d"]),
        ]
        result = resolve_topology(players)
        member_ids = [member for group in result.groups for member in group.member_ids]
        assert sorted(member_ids) == [player.entity_id for player in players]
        assert len({group.id for group in result.groups}) == len(result.groups)
        for group in result.groups:
            assert group.member_ids[0] == group.id

    def test_empty(self) -> None:
        """Test an empty input produces no groups."""
        result = resolve_topology([])
        assert result.groups == ()
        assert result.failures == ()


class TestHelpers:
    """Tests for the topology helpers."""

    def test_restricted_members(self, make_player) -> None:
        """Test member lists are restricted to known ids."""
        player = make_player("a", ["media_player.a", "media_player.x", "media_player.b"])
        assert restricted_members(player, {"media_player.a", "media_player.b"}) == [
            "media_player.a",
            "media_player.b",
        ]

    def test_member_list_without_self(self, make_player) -> None:
        """Test a grouped list that omits the player is rejected."""
        player = make_player("a", ["media_player.b", "media_player.c"])
        with pytest.raises(ValueError, match="does not list the player"):
            restricted_members(player, {"media_player.a", "media_player.b", "media_player.c"})

    def test_is_main_player(self, make_player) -> None:
        """Test main player detection."""
        known = {"media_player.a", "media_player.b"}
        pair = ["media_player.a", "media_player.b"]
        assert is_main_player(make_player("a", pair), known)
        assert not is_main_player(make_player("b", pair), known)
        assert is_main_player(make_player("b", []), known)

    def test_all_players_sorted_by_name(self, make_player) -> None:
        """Test players of all groups are sorted case-insensitively by name."""
        result = resolve_topology(
            [
                make_player("a", name="zulu"),
                make_player("b", name="Alpha"),
                make_player("c", name="mike"),
            ]
        )
        assert [player.name for player in all_players(result.groups)] == [
            "Alpha",
            "mike",
            "zulu",
        ]

    def test_find_group(self, living_room_states) -> None:
        """Test groups are found by any member."""
        groups = resolve_topology(entities_from_states(living_room_states)).groups
        group = find_group(groups, "media_player.hall")
        assert group is not None
        assert group.id == "media_player.kitchen"
        assert find_group(groups, "media_player.unknown") is None
        assert find_group(groups, None) is None
