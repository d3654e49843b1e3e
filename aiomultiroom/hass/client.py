"""Home Assistant REST API client used as state source and command service."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from types import TracebackType
from typing import Any, Self

from aiohttp import ClientError, ClientSession, ClientTimeout

from aiomultiroom.models import PredefinedGroup
from aiomultiroom.models.types import MEDIA_PLAYER_DOMAIN

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = ClientTimeout(total=10)


class CommandError(RuntimeError):
    """Raised when Home Assistant rejects a request or can not be reached."""


class HomeAssistantClient:
    """
    Minimal async client for the Home Assistant REST API.

    Fetches the state of all entities and calls services. The aiohttp session
    can be passed in; otherwise one is created and closed by this client.
    """

    def __init__(
        self,
        url: str,
        token: str,
        *,
        session: ClientSession | None = None,
        timeout: ClientTimeout = DEFAULT_TIMEOUT,
    ) -> None:
        """
        Create a new client.

        Args:
            url: Base URL of the Home Assistant instance, e.g. http://homeassistant.local:8123.
            token: Long-lived access token.
            session: Optional aiohttp session to use.
            timeout: Timeout applied to each request.
        """
        self._url = url.rstrip("/")
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        self._session = session
        self._owns_session = session is None
        self._timeout = timeout

    async def get_states(self) -> dict[str, dict[str, Any]]:
        """Return the state records of all entities keyed by entity id."""
        data = await self._request("GET", "/api/states")
        if not isinstance(data, list):
            raise CommandError(f"Unexpected states response: {type(data).__name__}")
        return {
            record["entity_id"]: record
            for record in data
            if isinstance(record, dict) and "entity_id" in record
        }

    async def call_service(self, domain: str, service: str, data: Mapping[str, Any]) -> None:
        """Call a Home Assistant service."""
        logger.debug("Calling service %s.%s with %s", domain, service, data)
        await self._request("POST", f"/api/services/{domain}/{service}", json=dict(data))

    async def close(self) -> None:
        """Close the aiohttp session if this client created it."""
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def _request(self, method: str, path: str, json: Any = None) -> Any:
        if self._session is None:
            self._session = ClientSession()
        url = f"{self._url}{path}"
        try:
            async with self._session.request(
                method, url, headers=self._headers, json=json, timeout=self._timeout
            ) as response:
                if response.status not in (200, 201):
                    text = await response.text()
                    raise CommandError(
                        f"{method} {path} failed with status {response.status}: {text[:200]}"
                    )
                return await response.json()
        except (ClientError, TimeoutError) as err:
            raise CommandError(f"{method} {path} failed: {err}") from err

    async def __aenter__(self) -> Self:
        """Enter the async context manager returning this instance."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Close the session when leaving the async context manager."""
        await self.close()


class HassCommandService:
    """Executes grouping commands through Home Assistant media player services."""

    def __init__(self, client: HomeAssistantClient) -> None:
        """Wrap a Home Assistant client."""
        self._client = client

    async def join(self, main_player_id: str, member_ids: Sequence[str]) -> None:
        """Join the members to the group of the main player."""
        await self._client.call_service(
            MEDIA_PLAYER_DOMAIN,
            "join",
            {"entity_id": main_player_id, "group_members": list(member_ids)},
        )

    async def unjoin(self, member_ids: Sequence[str]) -> None:
        """Remove the members from their groups."""
        await self._client.call_service(
            MEDIA_PLAYER_DOMAIN, "unjoin", {"entity_id": list(member_ids)}
        )

    async def set_volume_and_media(self, predefined_group: PredefinedGroup) -> None:
        """
        Apply the volume and media settings of a predefined group.

        Each player gets its own volume, or the group volume if it has none.
        The media is selected as source on the first player of the group.
        """
        for entry in predefined_group.players:
            volume = entry.volume if entry.volume is not None else predefined_group.volume
            entity_id = entry.player.entity_id
            if volume is not None:
                await self._client.call_service(
                    MEDIA_PLAYER_DOMAIN,
                    "volume_set",
                    {"entity_id": entity_id, "volume_level": volume / 100},
                )
            if predefined_group.unmute_when_grouped:
                await self._client.call_service(
                    MEDIA_PLAYER_DOMAIN,
                    "volume_mute",
                    {"entity_id": entity_id, "is_volume_muted": False},
                )
        if predefined_group.media and predefined_group.players:
            await self._client.call_service(
                MEDIA_PLAYER_DOMAIN,
                "select_source",
                {
                    "entity_id": predefined_group.players[0].player.entity_id,
                    "source": predefined_group.media,
                },
            )

    async def set_switch(self, entity_id: str, on: bool) -> None:
        """Turn a switch on or off."""
        await self._client.call_service(
            "switch", "turn_on" if on else "turn_off", {"entity_id": entity_id}
        )
