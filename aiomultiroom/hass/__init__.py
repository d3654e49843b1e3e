"""Home Assistant transport for aiomultiroom."""

from .client import CommandError, HassCommandService, HomeAssistantClient

__all__ = [
    "CommandError",
    "HassCommandService",
    "HomeAssistantClient",
]
