import logging
import threading

import pytest
from websockets.exceptions import ConnectionClosed, InvalidHandshake
from websockets.frames import Close

from bybit_spot.mock_server import MockWebsocketServer, websocket_handler_option
from bybit_spot.ws_connection import (
    WebsocketClosedError,
    WebsocketConnection,
    is_err_websocket_closed,
    run_loop,
)

BODY = b'{"message":"ok"}'


@pytest.fixture
def server():
    srv = MockWebsocketServer(websocket_handler_option("/test", BODY))
    yield srv
    srv.close()


def test_send_and_receive(server):
    conn = WebsocketConnection(server.url + "/test")
    conn.send_text(b"")
    assert conn.receive() == BODY
    conn.close()


def test_send_str_is_echoed(server):
    conn = WebsocketConnection(server.url + "/test")
    conn.send_text("hello")
    assert conn.receive() == BODY
    conn.close()


def test_unknown_path_fails_handshake(server):
    with pytest.raises(InvalidHandshake):
        WebsocketConnection(server.url + "/missing")


def test_receive_after_close_raises_closed(server):
    conn = WebsocketConnection(server.url + "/test")
    conn.close()
    with pytest.raises(WebsocketClosedError) as info:
        conn.receive()
    assert is_err_websocket_closed(info.value)


def test_is_err_websocket_closed():
    assert is_err_websocket_closed(WebsocketClosedError("closed"))
    assert not is_err_websocket_closed(ValueError("boom"))
    normal = ConnectionClosed(Close(1000, ""), Close(1000, ""))
    abnormal = ConnectionClosed(Close(1011, "error"), None)
    assert is_err_websocket_closed(normal)
    assert not is_err_websocket_closed(abnormal)
    assert not is_err_websocket_closed(ConnectionClosed(None, None))


class _BlockingService:
    def __init__(self, fail_ping=False):
        self.release = threading.Event()
        self.pings = 0
        self.closes = 0
        self.fail_ping = fail_ping

    def run(self):
        self.release.wait(5)
        raise WebsocketClosedError("closed")

    def ping(self):
        self.pings += 1
        if self.fail_ping:
            raise OSError("write failed")
        self.release.set()

    def close(self):
        self.closes += 1
        self.release.set()


def test_run_loop_stops_on_event():
    service = _BlockingService()
    stop = threading.Event()
    stop.set()
    run_loop(service, stop, ping_interval=60)
    assert service.closes == 1
    assert service.pings == 0


def test_run_loop_pings():
    service = _BlockingService()
    run_loop(service, threading.Event(), ping_interval=0.01)
    assert service.pings >= 1
    assert service.closes == 0


def test_run_loop_returns_when_ping_fails():
    service = _BlockingService(fail_ping=True)
    run_loop(service, threading.Event(), ping_interval=0.01)
    assert service.pings == 1
    assert service.closes == 0
    service.release.set()


def test_run_loop_logs_run_errors(caplog):
    class Failing:
        calls = 0

        def run(self):
            Failing.calls += 1
            raise ValueError("bad message")

        def ping(self):
            pass

        def close(self):
            pass

    with caplog.at_level(logging.ERROR, logger="bybit_spot.ws_connection"):
        run_loop(Failing(), threading.Event(), ping_interval=60)
    assert Failing.calls == 1
    assert any("bad message" in r.getMessage() for r in caplog.records)


def test_run_loop_closed_error_not_logged(caplog):
    class Closed:
        def run(self):
            raise WebsocketClosedError("closed")

        def ping(self):
            pass

        def close(self):
            pass

    with caplog.at_level(logging.ERROR, logger="bybit_spot.ws_connection"):
        run_loop(Closed(), threading.Event(), ping_interval=60)
    assert caplog.records == []