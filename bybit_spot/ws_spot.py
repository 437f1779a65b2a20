"""Entry point to the spot v1 websocket streams."""

from __future__ import annotations

from .ws_connection import WebsocketConnection
from .ws_private import (
    SPOT_WEBSOCKET_V1_PRIVATE_PATH,
    AuthParam,
    SpotWebsocketV1PrivateService,
)
from .ws_public_v1 import SPOT_WEBSOCKET_V1_PUBLIC_V1_PATH, SpotWebsocketV1PublicV1Service
from .ws_public_v2 import SPOT_WEBSOCKET_V1_PUBLIC_V2_PATH, SpotWebsocketV1PublicV2Service


class SpotWebsocketV1Service:
    """Opens connections to the public and private spot v1 streams."""

    def __init__(self, base_url: str, auth_param: AuthParam | None = None) -> None:
        self.base_url = base_url
        self._auth_param = auth_param

    def public_v1(self) -> SpotWebsocketV1PublicV1Service:
        """Connect to the first public stream."""
        connection = WebsocketConnection(self.base_url + SPOT_WEBSOCKET_V1_PUBLIC_V1_PATH)
        return SpotWebsocketV1PublicV1Service(connection)

    def public_v2(self) -> SpotWebsocketV1PublicV2Service:
        """Connect to the second public stream."""
        connection = WebsocketConnection(self.base_url + SPOT_WEBSOCKET_V1_PUBLIC_V2_PATH)
        return SpotWebsocketV1PublicV2Service(connection)

    def private(self) -> SpotWebsocketV1PrivateService:
        """Connect to the private stream; needs an authentication message."""
        if self._auth_param is None:
            raise ValueError("private stream: set an authentication message first")
        connection = WebsocketConnection(self.base_url + SPOT_WEBSOCKET_V1_PRIVATE_PATH)
        return SpotWebsocketV1PrivateService(connection, self._auth_param)