"""The public spot v1 websocket stream (second protocol version): trades."""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field, replace
from typing import Any, Callable

from .ws_connection import PING_INTERVAL, WebsocketConnection, run_loop

SPOT_WEBSOCKET_V1_PUBLIC_V2_PATH = "/spot/quote/ws/v2"
EVENT_SUBSCRIBE = "sub"
EVENT_UNSUBSCRIBE = "cancel"
TOPIC_TRADE = "trade"

TradeKey = tuple[str, str]


def _typed(data: dict[str, Any], key: str, default: Any) -> Any:
    value = data.get(key)
    if value is None:
        return default
    kind = type(default)
    if kind is bool:
        valid = isinstance(value, bool)
    elif kind is int:
        valid = isinstance(value, int) and not isinstance(value, bool)
    else:
        valid = isinstance(value, kind)
    if not valid:
        raise ValueError(f"field {key!r}: expected {kind.__name__}, got {value!r}")
    return value


def _object(value: Any) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"expected a JSON object, got {value!r}")
    return value


def _dumps(data: Any) -> str:
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


def _judge_topic(body: str | bytes) -> str:
    """Return the topic of a message; subscription acknowledgements have none."""
    data = _object(json.loads(body))
    topic = _typed(data, "topic", "")
    event = _typed(data, "event", "")
    if event == EVENT_SUBSCRIBE:
        return ""
    return topic


@dataclass
class PublicV2TradeContent:
    """One trade as the stream reports it."""

    trade_id: str = ""
    timestamp: int = 0
    price: str = ""
    quantity: str = ""
    is_buy_side_taker: bool = False

    @classmethod
    def _from_dict(cls, data: Any) -> PublicV2TradeContent:
        data = _object(data)
        return cls(
            trade_id=_typed(data, "v", ""),
            timestamp=_typed(data, "t", 0),
            price=_typed(data, "p", ""),
            quantity=_typed(data, "q", ""),
            is_buy_side_taker=_typed(data, "m", False),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "v": self.trade_id,
            "t": self.timestamp,
            "p": self.price,
            "q": self.quantity,
            "m": self.is_buy_side_taker,
        }


@dataclass
class PublicV2TradeResponse:
    """A trade message: one trade for the symbol named in its params."""

    topic: str = ""
    symbol: str = ""
    symbol_name: str = ""
    binary: str = ""
    data: PublicV2TradeContent = field(default_factory=PublicV2TradeContent)

    @classmethod
    def from_dict(cls, data: Any) -> PublicV2TradeResponse:
        data = _object(data)
        params = _object(data.get("params"))
        return cls(
            topic=_typed(data, "topic", ""),
            symbol=_typed(params, "symbol", ""),
            symbol_name=_typed(params, "symbolName", ""),
            binary=_typed(params, "binary", ""),
            data=PublicV2TradeContent._from_dict(data.get("data")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "topic": self.topic,
            "params": {
                "symbol": self.symbol,
                "symbolName": self.symbol_name,
                "binary": self.binary,
            },
            "data": self.data.to_dict(),
        }

    def key(self) -> TradeKey:
        return (self.symbol, self.topic)


@dataclass
class PublicV2TradeParam:
    """A subscribe or unsubscribe request for one symbol's trades."""

    symbol: str
    topic: str = TOPIC_TRADE
    event: str = EVENT_SUBSCRIBE
    binary: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "topic": self.topic,
            "event": self.event,
            "params": {"symbol": self.symbol, "binary": self.binary},
        }

    def key(self) -> TradeKey:
        return (self.symbol, self.topic)


TradeFunc = Callable[[PublicV2TradeResponse], Any]


class SpotWebsocketV1PublicV2Service:
    """Public trade stream that dispatches messages to per-symbol callbacks."""

    def __init__(self, connection: WebsocketConnection) -> None:
        self._connection = connection
        self._trade_funcs: dict[TradeKey, TradeFunc] = {}

    def subscribe_trade(self, symbol: str, func: TradeFunc) -> Callable[[], None]:
        """Subscribe to ``symbol``'s trades; return a function that unsubscribes."""
        param = PublicV2TradeParam(symbol=symbol)
        key = param.key()
        if key in self._trade_funcs:
            raise ValueError("already registered for this param")
        self._trade_funcs[key] = func
        self._connection.send_text(_dumps(param.to_dict()))

        def unsubscribe() -> None:
            cancel = replace(param, event=EVENT_UNSUBSCRIBE)
            self._connection.send_text(_dumps(cancel.to_dict()))
            self._trade_funcs.pop(key, None)

        return unsubscribe

    def run(self) -> None:
        """Read one message and hand it to the matching callback."""
        message = self._connection.receive()
        if _judge_topic(message) != TOPIC_TRADE:
            return
        response = PublicV2TradeResponse.from_dict(json.loads(message))
        func = self._trade_funcs.get(response.key())
        if func is None:
            raise LookupError("func not found")
        func(response)

    def start(self, stop_event: threading.Event | None = None) -> None:
        """Dispatch messages until the stream ends or ``stop_event`` is set."""
        run_loop(self, stop_event, PING_INTERVAL)

    def ping(self) -> None:
        self._connection.ping()

    def close(self) -> None:
        self._connection.close()

    def __enter__(self) -> SpotWebsocketV1PublicV2Service:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()