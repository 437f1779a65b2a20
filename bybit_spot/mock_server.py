"""Local HTTP and websocket servers that answer with canned JSON bodies."""

from __future__ import annotations

import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Callable
from urllib.parse import urlsplit

from websockets.datastructures import Headers
from websockets.exceptions import ConnectionClosed
from websockets.http11 import Response
from websockets.sync.server import serve

logger = logging.getLogger(__name__)

HttpRoute = Callable[[BaseHTTPRequestHandler], None]
HttpOption = Callable[[dict[str, HttpRoute]], None]
WsRoute = Callable[[object], None]
WsOption = Callable[[dict[str, WsRoute]], None]

_NOT_FOUND_BODY = b"404 page not found\n"


def make_ws_protocol(url: str) -> str:
    """Turn an http(s) URL into the matching ws(s) URL."""
    if url.startswith("https"):
        return "wss" + url[len("https"):]
    if url.startswith("http"):
        return "ws" + url[len("http"):]
    return url


def handler_option(path: str, method: str, status: int, resp_body: bytes) -> HttpOption:
    """Route ``path``: answer ``method`` with ``status`` and ``resp_body``."""

    def respond(request: BaseHTTPRequestHandler) -> None:
        matched = request.command == method
        body = resp_body if matched else b""
        request.send_response(status if matched else 200)
        request.send_header("Content-Type", "application/json")
        request.send_header("Content-Length", str(len(body)))
        request.end_headers()
        request.wfile.write(body)

    def register(routes: dict[str, HttpRoute]) -> None:
        routes[path] = respond

    return register


class _RoutingHTTPServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, routes: dict[str, HttpRoute]) -> None:
        self.routes = routes
        super().__init__(("127.0.0.1", 0), _RequestHandler)


class _RequestHandler(BaseHTTPRequestHandler):
    server: _RoutingHTTPServer

    def _dispatch(self) -> None:
        length = int(self.headers.get("Content-Length") or 0)
        if length:
            self.rfile.read(length)
        route = self.server.routes.get(urlsplit(self.path).path)
        if route is None:
            self.send_response(404)
            self.send_header("Content-Type", "text/plain; charset=utf-8")
            self.send_header("X-Content-Type-Options", "nosniff")
            self.send_header("Content-Length", str(len(_NOT_FOUND_BODY)))
            self.end_headers()
            self.wfile.write(_NOT_FOUND_BODY)
            return
        route(self)

    do_GET = do_POST = do_PUT = do_DELETE = do_PATCH = do_HEAD = _dispatch

    def log_message(self, format: str, *args: object) -> None:  # noqa: A002
        logger.debug(format, *args)


class MockServer:
    """HTTP server on a free local port, serving the routes given as options."""

    def __init__(self, *args: HttpOption) -> None:
        routes: dict[str, HttpRoute] = {}
        for option in args:
            option(routes)
        self._server = _RoutingHTTPServer(routes)
        host, port = self._server.server_address[:2]
        self.url = f"http://{host}:{port}"
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()

    def close(self) -> None:
        """Stop serving and release the port."""
        self._server.shutdown()
        self._server.server_close()
        self._thread.join()

    def __enter__(self) -> MockServer:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


def websocket_handler_option(path: str, resp_body: bytes) -> WsOption:
    """Route ``path``: answer every received message with ``resp_body``."""

    def echo(connection) -> None:
        while True:
            try:
                message = connection.recv()
            except ConnectionClosed as exc:
                logger.debug("read: %s", exc)
                return
            reply = resp_body.decode("utf-8") if isinstance(message, str) else resp_body
            try:
                connection.send(reply)
            except ConnectionClosed as exc:
                logger.debug("write: %s", exc)
                return

    def register(routes: dict[str, WsRoute]) -> None:
        routes[path] = echo

    return register


def _route_path(request_path: str) -> str:
    return request_path.split("?", 1)[0]


class MockWebsocketServer:
    """Websocket server on a free local port, serving the routes given as options."""

    def __init__(self, *args: WsOption) -> None:
        routes: dict[str, WsRoute] = {}
        for option in args:
            option(routes)
        self._routes = routes
        self._server = serve(
            self._handle,
            "127.0.0.1",
            0,
            process_request=self._process_request,
        )
        port = self._server.socket.getsockname()[1]
        self.url = make_ws_protocol(f"http://127.0.0.1:{port}")
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()

    def _process_request(self, connection, request):
        if _route_path(request.path) in self._routes:
            return None
        headers = Headers(
            [
                ("Content-Type", "text/plain; charset=utf-8"),
                ("Content-Length", str(len(_NOT_FOUND_BODY))),
            ]
        )
        return Response(404, "Not Found", headers, _NOT_FOUND_BODY)

    def _handle(self, connection) -> None:
        route = self._routes.get(_route_path(connection.request.path))
        if route is not None:
            route(connection)

    def close(self) -> None:
        """Stop accepting connections and release the port."""
        self._server.shutdown()
        self._thread.join()

    def __enter__(self) -> MockWebsocketServer:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()