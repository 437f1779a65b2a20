"""The private spot v1 websocket stream: account balance updates."""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Union

from .ws_connection import PING_INTERVAL, WebsocketConnection, run_loop

SPOT_WEBSOCKET_V1_PRIVATE_PATH = "/spot/ws"
EVENT_TYPE_OUTBOUND_ACCOUNT_INFO = "outboundAccountInfo"

AuthParam = Union[str, bytes, Callable[[], Union[str, bytes]]]


def _typed(data: dict[str, Any], key: str, default: Any) -> Any:
    value = data.get(key)
    if value is None:
        return default
    kind = type(default)
    valid = isinstance(value, bool) if kind is bool else isinstance(value, kind)
    if not valid:
        raise ValueError(f"field {key!r}: expected {kind.__name__}, got {value!r}")
    return value


def _single_object(data: Any) -> dict[str, Any]:
    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise ValueError("expected a JSON array of objects")
    if len(data) != 1:
        raise ValueError("unexpected response")
    return data[0]


@dataclass
class WalletBalanceChange:
    symbol_name: str = ""
    available_balance: str = ""
    reserved_balance: str = ""

    @classmethod
    def _from_dict(cls, data: Any) -> WalletBalanceChange:
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {data!r}")
        return cls(
            symbol_name=_typed(data, "a", ""),
            available_balance=_typed(data, "f", ""),
            reserved_balance=_typed(data, "l", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "a": self.symbol_name,
            "f": self.available_balance,
            "l": self.reserved_balance,
        }


@dataclass
class OutboundAccountInfo:
    """One account-info event: permissions and changed wallet balances."""

    event_type: str = ""
    timestamp: str = ""
    allow_trade: bool = False
    allow_withdraw: bool = False
    allow_deposit: bool = False
    wallet_balance_changes: list[WalletBalanceChange] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: str | bytes) -> OutboundAccountInfo:
        """Decode the one-element JSON array the stream sends."""
        content = _single_object(json.loads(data))
        changes = content.get("B")
        if changes is None:
            changes = []
        if not isinstance(changes, list):
            raise ValueError(f"field 'B': expected list, got {changes!r}")
        return cls(
            event_type=_typed(content, "e", ""),
            timestamp=_typed(content, "E", ""),
            allow_trade=_typed(content, "T", False),
            allow_withdraw=_typed(content, "W", False),
            allow_deposit=_typed(content, "D", False),
            wallet_balance_changes=[WalletBalanceChange._from_dict(c) for c in changes],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "e": self.event_type,
            "E": self.timestamp,
            "T": self.allow_trade,
            "W": self.allow_withdraw,
            "D": self.allow_deposit,
            "B": [change.to_dict() for change in self.wallet_balance_changes],
        }

    def key(self) -> str:
        return self.event_type


def judge_event_type(body: str | bytes) -> str:
    """Return the event type of a message, or "" when it carries none.

    Raises PermissionError when the message reports a failed authentication.
    """
    data = json.loads(body)
    if isinstance(data, dict):
        auth = data.get("auth")
        if isinstance(auth, str) and auth != "success":
            raise PermissionError("auth failed")
        event = data.get("e")
        return event if isinstance(event, str) else ""
    event = _single_object(data).get("e")
    if not isinstance(event, str):
        raise ValueError(f"event type must be a string, got {event!r}")
    return event


class SpotWebsocketV1PrivateService:
    """Authenticated stream that dispatches account events to registered callbacks."""

    def __init__(self, connection: WebsocketConnection, auth_param: AuthParam) -> None:
        self._connection = connection
        self._auth_param = auth_param
        self._outbound_account_info_funcs: dict[str, Callable[[OutboundAccountInfo], Any]] = {}

    def subscribe(self) -> None:
        """Send the authentication message."""
        param = self._auth_param() if callable(self._auth_param) else self._auth_param
        self._connection.send_text(param)

    def register_func_outbound_account_info(
        self, func: Callable[[OutboundAccountInfo], Any]
    ) -> None:
        key = EVENT_TYPE_OUTBOUND_ACCOUNT_INFO
        if key in self._outbound_account_info_funcs:
            raise ValueError("already registered for this param")
        self._outbound_account_info_funcs[key] = func

    def run(self) -> None:
        """Read one message and hand it to the matching callback."""
        message = self._connection.receive()
        if judge_event_type(message) == EVENT_TYPE_OUTBOUND_ACCOUNT_INFO:
            response = OutboundAccountInfo.from_json(message)
            func = self._outbound_account_info_funcs.get(response.key())
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