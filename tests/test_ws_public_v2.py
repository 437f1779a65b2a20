import json

import pytest

from bybit_spot.mock_server import MockWebsocketServer, websocket_handler_option
from bybit_spot.ws_connection import WebsocketClosedError, WebsocketConnection
from bybit_spot.ws_public_v2 import (
    SPOT_WEBSOCKET_V1_PUBLIC_V2_PATH,
    PublicV2TradeContent,
    PublicV2TradeParam,
    PublicV2TradeResponse,
    SpotWebsocketV1PublicV2Service,
)


class FakeConnection:
    def __init__(self, messages=()):
        self.incoming = list(messages)
        self.sent = []
        self.pings = 0
        self.closed = False

    def send_text(self, data):
        self.sent.append(data)

    def receive(self):
        if not self.incoming:
            raise WebsocketClosedError("closed")
        return self.incoming.pop(0)

    def ping(self):
        self.pings += 1

    def close(self):
        self.closed = True


def _response():
    return PublicV2TradeResponse(
        topic="trade",
        symbol="BTCUSDT",
        binary="false",
        data=PublicV2TradeContent(
            trade_id="2100000000002571479",
            timestamp=1664283342503,
            price="20191.69",
            quantity="0.000495",
            is_buy_side_taker=True,
        ),
    )


def test_trade_against_server():
    response = _response()
    body = json.dumps(response.to_dict()).encode("utf-8")
    server = MockWebsocketServer(
        websocket_handler_option(SPOT_WEBSOCKET_V1_PUBLIC_V2_PATH, body)
    )
    try:
        connection = WebsocketConnection(server.url + SPOT_WEBSOCKET_V1_PUBLIC_V2_PATH)
        svc = SpotWebsocketV1PublicV2Service(connection)
        received = []
        unsubscribe = svc.subscribe_trade("BTCUSDT", received.append)
        svc.run()
        assert received == [response]
        unsubscribe()
        svc.ping()
        svc.close()
    finally:
        server.close()


def test_param_wire_format():
    param = PublicV2TradeParam(symbol="BTCUSDT")
    assert param.to_dict() == {
        "topic": "trade",
        "event": "sub",
        "params": {"symbol": "BTCUSDT", "binary": False},
    }
    assert param.key() == ("BTCUSDT", "trade")


def test_response_round_trip():
    response = _response()
    assert PublicV2TradeResponse.from_dict(response.to_dict()) == response
    assert response.key() == ("BTCUSDT", "trade")


def test_unsubscribe_sends_cancel():
    connection = FakeConnection()
    svc = SpotWebsocketV1PublicV2Service(connection)
    unsubscribe = svc.subscribe_trade("BTCUSDT", lambda r: None)
    unsubscribe()
    sent = [json.loads(m) for m in connection.sent]
    assert [m["event"] for m in sent] == ["sub", "cancel"]
    assert all(m["params"]["symbol"] == "BTCUSDT" for m in sent)


def test_duplicate_subscription_rejected():
    svc = SpotWebsocketV1PublicV2Service(FakeConnection())
    svc.subscribe_trade("BTCUSDT", lambda r: None)
    with pytest.raises(ValueError, match="already registered"):
        svc.subscribe_trade("BTCUSDT", lambda r: None)


def test_subscription_ack_is_ignored():
    ack = dict(_response().to_dict(), event="sub")
    received = []
    svc = SpotWebsocketV1PublicV2Service(FakeConnection([json.dumps(ack)]))
    svc.subscribe_trade("BTCUSDT", received.append)
    svc.run()
    assert received == []


def test_run_without_callback_raises():
    message = json.dumps(_response().to_dict())
    svc = SpotWebsocketV1PublicV2Service(FakeConnection([message]))
    with pytest.raises(LookupError, match="func not found"):
        svc.run()


def test_run_rejects_non_object():
    svc = SpotWebsocketV1PublicV2Service(FakeConnection([b"[1, 2]"]))
    with pytest.raises(ValueError):
        svc.run()


def test_start_dispatches_until_closed():
    response = _response()
    connection = FakeConnection([json.dumps(response.to_dict())])
    svc = SpotWebsocketV1PublicV2Service(connection)
    received = []
    svc.subscribe_trade("BTCUSDT", received.append)
    svc.start()
    assert received == [response]