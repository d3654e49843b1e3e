"""Command-line interface for grouping Home Assistant media players."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
import sys
from collections.abc import Sequence
from contextlib import suppress
from pathlib import Path
from typing import TYPE_CHECKING, cast

if TYPE_CHECKING:
    from zeroconf import ServiceListener

import aioconsole
from zeroconf.asyncio import AsyncServiceBrowser, AsyncZeroconf

from aiomultiroom.controller import ActivePlayerChangedEvent, GroupingController, GroupingEvent
from aiomultiroom.grouping import EmptySelectionError
from aiomultiroom.hass import CommandError, HassCommandService, HomeAssistantClient
from aiomultiroom.models import GroupingConfig
from aiomultiroom.session import GroupingSession

logger = logging.getLogger(__name__)


SERVICE_TYPE = "_home-assistant._tcp.local."
TOKEN_ENV = "HASS_TOKEN"


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments for the grouping client."""
    parser = argparse.ArgumentParser(description="Group Home Assistant media players")
    parser.add_argument(
        "--url",
        default=None,
        help="Base URL of Home Assistant. If omitted, discover via mDNS.",
    )
    parser.add_argument(
        "--token",
        default=os.environ.get(TOKEN_ENV),
        help=f"Long-lived access token (default: ${TOKEN_ENV})",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="JSON file with the grouping configuration",
    )
    parser.add_argument(
        "--player",
        default=None,
        help="Entity id of the player to use as active player",
    )
    parser.add_argument(
        "--refresh-interval",
        type=float,
        default=5.0,
        help="Seconds between state refreshes",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level to use",
    )
    return parser.parse_args(argv)


def load_config(path: Path | None) -> GroupingConfig:
    """Load the grouping configuration, or return the defaults."""
    if path is None:
        return GroupingConfig()
    return GroupingConfig.from_json(path.read_bytes())


def _build_service_url(host: str, port: int, properties: dict[bytes, bytes | None]) -> str:
    """Construct the base URL from mDNS service info."""
    for key in (b"internal_url", b"base_url"):
        raw = properties.get(key)
        if isinstance(raw, bytes) and raw:
            return raw.decode("utf-8", "ignore").rstrip("/")
    host_fmt = f"[{host}]" if ":" in host else host
    return f"http://{host_fmt}:{port}"


class _ServiceDiscoveryListener:
    """Listens for Home Assistant advertisements via mDNS."""

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop
        self._first_result: asyncio.Future[str] = loop.create_future()
        self.tasks: set[asyncio.Task[None]] = set()

    async def wait_for_first(self) -> str:
        """Wait for the first instance to be discovered."""
        return await self._first_result

    async def _process_service_info(
        self, zeroconf: AsyncZeroconf, service_type: str, name: str
    ) -> None:
        info = await zeroconf.async_get_service_info(service_type, name)
        if info is None or info.port is None:
            return
        addresses = info.parsed_addresses()
        if not addresses:
            return
        url = _build_service_url(addresses[0], info.port, info.properties)
        if not self._first_result.done():
            self._first_result.set_result(url)

    def _schedule(self, zeroconf: AsyncZeroconf, service_type: str, name: str) -> None:
        task = self._loop.create_task(self._process_service_info(zeroconf, service_type, name))
        self.tasks.add(task)
        task.add_done_callback(self.tasks.discard)

    def add_service(self, zeroconf: AsyncZeroconf, service_type: str, name: str) -> None:
        self._schedule(zeroconf, service_type, name)

    def update_service(self, zeroconf: AsyncZeroconf, service_type: str, name: str) -> None:
        self._schedule(zeroconf, service_type, name)

    def remove_service(self, _zeroconf: AsyncZeroconf, _service_type: str, _name: str) -> None:
        return


async def discover_home_assistant() -> str:
    """Wait for a Home Assistant instance to be announced and return its URL."""
    listener = _ServiceDiscoveryListener(asyncio.get_running_loop())
    async with AsyncZeroconf() as aiozc:
        browser = AsyncServiceBrowser(
            aiozc.zeroconf, SERVICE_TYPE, cast("ServiceListener", listener)
        )
        try:
            return await listener.wait_for_first()
        finally:
            await browser.async_cancel()


def describe(controller: GroupingController) -> str:
    """Return a human-friendly description of groups and the pending edit."""
    snapshot = controller.snapshot
    session = controller.edit()
    active_id = snapshot.active_group.id if snapshot.active_group is not None else None
    lines: list[str] = []
    for group in snapshot.groups:
        marker = "*" if group.id == active_id else " "
        members = ", ".join(member.name for member in group.members)
        lines.append(f"{marker} {group.name} [{group.state.value}]: {members}")
    if snapshot.active_group is not None:
        lines.append("")
        for item in session.items():
            check = "x" if item.is_selected else " "
            flags = "".join(
                flag
                for flag, enabled in (
                    (" (main)", item.is_main),
                    (" (modified)", item.is_modified),
                    (" (locked)", item.is_disabled),
                )
                if enabled
            )
            lines.append(f"  [{check}] {item.name} <{item.id}>{flags}")
    if snapshot.predefined_groups:
        lines.append("")
        selected = session.selected_predefined_group
        for predefined_group in snapshot.predefined_groups:
            marker = "*" if selected is not None and selected.name == predefined_group.name else " "
            players = ", ".join(predefined_group.player_ids)
            lines.append(f"{marker} group '{predefined_group.name}': {players}")
    return "\n".join(lines)


def find_player_id(controller: GroupingController, reference: str) -> str | None:
    """Resolve an entity id or a display name to an entity id."""
    lowered = reference.lower()
    for player in controller.snapshot.players:
        if player.entity_id == reference or player.name.lower() == lowered:
            return player.entity_id
    return None


async def _refresh(controller: GroupingController, client: HomeAssistantClient) -> None:
    controller.update_states(await client.get_states())


async def _refresh_loop(
    controller: GroupingController, client: HomeAssistantClient, interval: float
) -> None:
    try:
        while True:
            await asyncio.sleep(interval)
            try:
                await _refresh(controller, client)
            except CommandError:
                logger.warning("State refresh failed", exc_info=True)
    except asyncio.CancelledError:
        logger.debug("Refresh loop cancelled")
        raise


async def _apply(controller: GroupingController, client: HomeAssistantClient) -> None:
    session = controller.edit()
    if controller.active_group is None:
        session.cancel()
        _print_event("No players available to group")
        return
    try:
        result = await session.apply()
    except EmptySelectionError as err:
        _print_event(str(err))
        return
    for failure in result.failures:
        _print_event(f"{failure.operation} {', '.join(failure.targets)} failed: {failure.error}")
    _print_event("Grouping applied" if result.success else "Grouping partially applied")
    await _refresh(controller, client)


async def handle_command(
    controller: GroupingController, client: HomeAssistantClient, raw_line: str
) -> bool:
    """
    Execute one keyboard command.

    Returns:
        False if the user asked to quit.
    """
    parts = raw_line.split(maxsplit=1)
    keyword = parts[0].lower()
    argument = parts[1].strip() if len(parts) > 1 else ""
    session: GroupingSession = controller.edit()

    if keyword in {"quit", "exit", "q"}:
        return False
    if keyword in {"list", "l"}:
        _print_event(describe(controller))
    elif keyword in {"toggle", "t"}:
        player_id = find_player_id(controller, argument)
        if player_id is None:
            _print_event(f"Unknown player: {argument}")
        elif not session.toggle_item(player_id):
            _print_event(f"{player_id} can not be deselected")
    elif keyword in {"group", "g"}:
        try:
            session.select_predefined_group(argument)
        except KeyError:
            _print_event(f"Unknown predefined group: {argument}")
    elif keyword == "all":
        session.select_all()
    elif keyword == "none":
        session.deselect_all()
    elif keyword in {"cancel", "c"}:
        session.cancel()
    elif keyword in {"apply", "a"}:
        await _apply(controller, client)
    elif keyword in {"player", "p"}:
        player_id = find_player_id(controller, argument)
        if player_id is None:
            _print_event(f"Unknown player: {argument}")
        else:
            session.cancel()
            await controller.set_active_player(player_id)
    elif keyword in {"refresh", "r"}:
        await _refresh(controller, client)
    else:
        _print_event("Unknown command")
        return True

    if session.auto_apply:
        await _apply(controller, client)
    return True


async def _keyboard_loop(controller: GroupingController, client: HomeAssistantClient) -> None:
    try:
        while True:
            try:
                line = await aioconsole.ainput()
            except EOFError:
                break
            raw_line = line.strip()
            if not raw_line:
                continue
            try:
                if not await handle_command(controller, client, raw_line):
                    break
            except CommandError as err:
                _print_event(f"Request failed: {err}")
    except asyncio.CancelledError:
        logger.debug("Keyboard loop cancelled, exiting gracefully")
        raise


async def main_async(argv: Sequence[str] | None = None) -> int:
    """Entry point for the CLI."""
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level))

    if not args.token:
        _print_event(f"An access token is required (--token or ${TOKEN_ENV})")
        return 1
    config = load_config(args.config)

    url = args.url
    if url is None:
        logger.info("Waiting for mDNS discovery of Home Assistant...")
        url = await discover_home_assistant()
        logger.info("Discovered Home Assistant at %s", url)

    async with HomeAssistantClient(url, args.token) as client:
        controller = GroupingController(
            config, HassCommandService(client), active_player_id=args.player
        )

        async def on_event(event: GroupingEvent) -> None:
            if isinstance(event, ActivePlayerChangedEvent):
                _print_event(f"Active player: {event.player_id}")

        controller.add_event_listener(on_event)
        try:
            await _refresh(controller, client)
        except CommandError:
            logger.exception("Failed to fetch states from %s", url)
            return 1

        _print_event(describe(controller))
        _print_instructions()

        loop = asyncio.get_running_loop()
        refresh_task = loop.create_task(_refresh_loop(controller, client, args.refresh_interval))
        keyboard_task = loop.create_task(_keyboard_loop(controller, client))

        def signal_handler() -> None:
            logger.debug("Received interrupt signal, shutting down...")
            keyboard_task.cancel()

        with suppress(NotImplementedError):
            loop.add_signal_handler(signal.SIGINT, signal_handler)

        try:
            await keyboard_task
        except asyncio.CancelledError:
            logger.debug("Keyboard loop cancelled")
        finally:
            refresh_task.cancel()
            await asyncio.gather(refresh_task, return_exceptions=True)
    return 0


def _print_event(message: str) -> None:
    print(message, flush=True)  # noqa: T201


def _print_instructions() -> None:
    print(  # noqa: T201
        (
            "Commands: list(l), toggle(t) <player>, group(g) <name>, all, none, apply(a), "
            "cancel(c), player(p) <player>, refresh(r), quit(q)"
        ),
        flush=True,
    )


def main() -> int:
    """Run the CLI client."""
    return asyncio.run(main_async(sys.argv[1:]))


if __name__ == "__main__":  # pragma: no cover - CLI entry
    raise SystemExit(main())
