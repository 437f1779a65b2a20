import json

import pytest
from websockets.exceptions import InvalidHandshake

from bybit_spot.mock_server import MockWebsocketServer, websocket_handler_option
from bybit_spot.ws_private import (
    SPOT_WEBSOCKET_V1_PRIVATE_PATH,
    OutboundAccountInfo,
    WalletBalanceChange,
)
from bybit_spot.ws_public_v1 import SPOT_WEBSOCKET_V1_PUBLIC_V1_PATH, PublicV1TradeResponse
from bybit_spot.ws_public_v2 import (
    SPOT_WEBSOCKET_V1_PUBLIC_V2_PATH,
    PublicV2TradeContent,
    PublicV2TradeResponse,
)
from bybit_spot.ws_spot import SpotWebsocketV1Service


def test_public_v1_connects_and_dispatches():
    response = PublicV1TradeResponse(symbol="BTCUSDT", topic="trade", send_time=1664284020685)
    body = json.dumps(response.to_dict()).encode("utf-8")
    server = MockWebsocketServer(
        websocket_handler_option(SPOT_WEBSOCKET_V1_PUBLIC_V1_PATH, body)
    )
    try:
        svc = SpotWebsocketV1Service(server.url).public_v1()
        received = []
        svc.subscribe_trade("BTCUSDT", received.append)
        svc.run()
        svc.close()
        assert received == [response]
    finally:
        server.close()


def test_public_v2_connects_and_dispatches():
    response = PublicV2TradeResponse(
        topic="trade",
        symbol="BTCUSDT",
        binary="false",
        data=PublicV2TradeContent(trade_id="2100000000002571479", price="20191.69"),
    )
    body = json.dumps(response.to_dict()).encode("utf-8")
    server = MockWebsocketServer(
        websocket_handler_option(SPOT_WEBSOCKET_V1_PUBLIC_V2_PATH, body)
    )
    try:
        svc = SpotWebsocketV1Service(server.url).public_v2()
        received = []
        svc.subscribe_trade("BTCUSDT", received.append)
        svc.run()
        svc.close()
        assert received == [response]
    finally:
        server.close()


def test_private_connects_and_dispatches():
    info = OutboundAccountInfo(
        event_type="outboundAccountInfo",
        timestamp="1664285837492",
        allow_trade=True,
        allow_withdraw=True,
        allow_deposit=True,
        wallet_balance_changes=[
            WalletBalanceChange(
                symbol_name="USDT", available_balance="250.117543", reserved_balance="10"
            )
        ],
    )
    body = json.dumps([info.to_dict()]).encode("utf-8")
    server = MockWebsocketServer(
        websocket_handler_option(SPOT_WEBSOCKET_V1_PRIVATE_PATH, body)
    )
    try:
        svc = SpotWebsocketV1Service(server.url, auth_param='{"op":"auth"}').private()
        received = []
        svc.subscribe()
        svc.register_func_outbound_account_info(received.append)
        svc.run()
        svc.close()
        assert received == [info]
    finally:
        server.close()


def test_private_without_auth_param_raises():
    with pytest.raises(ValueError, match="authentication"):
        SpotWebsocketV1Service("ws://127.0.0.1:1").private()


def test_unknown_path_fails_handshake():
    server = MockWebsocketServer()
    try:
        with pytest.raises(InvalidHandshake):
            SpotWebsocketV1Service(server.url).public_v1()
    finally:
        server.close()