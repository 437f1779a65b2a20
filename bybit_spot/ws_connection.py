"""A blocking websocket connection and the read/ping loop the stream services share."""

from __future__ import annotations

import logging
import threading
import time
from typing import Protocol

from websockets.exceptions import ConnectionClosed
from websockets.sync.client import connect

logger = logging.getLogger(__name__)

NORMAL_CLOSURE = 1000
PING_INTERVAL = 20.0
CLOSE_WAIT = 1.0
_POLL = 0.05


class WebsocketClosedError(Exception):
    """The connection was closed with a normal closure."""


def _close_code(err: BaseException) -> int | None:
    received = getattr(err, "rcvd", None)
    return None if received is None else received.code


def is_err_websocket_closed(err: BaseException) -> bool:
    """Tell whether ``err`` reports a normally closed websocket."""
    if isinstance(err, WebsocketClosedError):
        return True
    return isinstance(err, ConnectionClosed) and _close_code(err) == NORMAL_CLOSURE


class WebsocketConnection:
    """A client websocket connection that reads and writes whole messages."""

    def __init__(self, url: str) -> None:
        self.url = url
        self._ws = connect(url)

    def send_text(self, data: str | bytes) -> None:
        """Send ``data`` as one text message."""
        if isinstance(data, (bytes, bytearray)):
            data = bytes(data).decode("utf-8")
        self._ws.send(data)

    def receive(self) -> bytes:
        """Wait for the next message and return its payload.

        Raises WebsocketClosedError once the connection has closed normally.
        """
        try:
            message = self._ws.recv()
        except ConnectionClosed as exc:
            if _close_code(exc) == NORMAL_CLOSURE:
                raise WebsocketClosedError(str(exc)) from exc
            raise
        if isinstance(message, str):
            return message.encode("utf-8")
        return message

    def ping(self) -> None:
        """Send a ping frame without waiting for the pong."""
        self._ws.ping()

    def close(self) -> None:
        """Close the connection with a normal-closure frame."""
        self._ws.close(code=NORMAL_CLOSURE, reason="")

    def __enter__(self) -> WebsocketConnection:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class _Service(Protocol):
    def run(self) -> None: ...

    def ping(self) -> None: ...

    def close(self) -> None: ...


def _shutdown(service: _Service, done: threading.Event) -> None:
    logger.info("interrupt")
    try:
        service.close()
    except Exception:
        return
    done.wait(CLOSE_WAIT)


def run_loop(
    service: _Service,
    stop_event: threading.Event | None = None,
    ping_interval: float = PING_INTERVAL,
) -> None:
    """Dispatch messages until the stream ends, pinging every ``ping_interval`` seconds.

    Setting ``stop_event`` (or pressing Ctrl-C) closes the connection and waits
    briefly for the reader to finish.
    """
    stop_event = stop_event or threading.Event()
    done = threading.Event()

    def read() -> None:
        try:
            while True:
                try:
                    service.run()
                except Exception as exc:
                    if not is_err_websocket_closed(exc):
                        logger.error("%s", exc)
                    return
        finally:
            done.set()

    reader = threading.Thread(target=read, daemon=True)
    reader.start()

    next_ping = time.monotonic() + ping_interval
    try:
        while not done.is_set():
            if stop_event.is_set():
                _shutdown(service, done)
                return
            now = time.monotonic()
            if now >= next_ping:
                try:
                    service.ping()
                except Exception:
                    return
                next_ping = now + ping_interval
            done.wait(min(_POLL, max(0.0, next_ping - time.monotonic())))
    except KeyboardInterrupt:
        _shutdown(service, done)