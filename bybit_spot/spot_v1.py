"""Spot v1 REST endpoints: market data, orders and wallet balance."""

from __future__ import annotations

import hashlib
import hmac
import json
import time
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Generic, Optional, Sequence, TypeVar
from urllib.error import HTTPError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from .response import (
    AccessDeniedError,
    CommonResponse,
    PathNotFoundError,
    check_response_body,
)

MAX_BATCH_CANCEL_IDS = 100

Query = dict[str, str]
T = TypeVar("T")


def _format_float(value: float) -> str:
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value)


def _text(value: Any) -> str:
    """Render a parameter value the way it is sent in a query string."""
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return _format_float(value)
    return str(value)


def _query(required: dict[str, Any], optional: dict[str, Any] | None = None) -> Query:
    """Build a query: required values always, optional ones only when set."""
    query = {key: _text(value) for key, value in required.items()}
    for key, value in (optional or {}).items():
        if value is not None:
            query[key] = _text(value)
    return query


def _decode_value(data: dict[str, Any], key: str, default: Any) -> Any:
    """Read ``key`` from a JSON object, checking it has the type of ``default``."""
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


def _json_field(key: str, default: Any = "") -> Any:
    return field(default=default, metadata={"json": key})


class _Record:
    """Mixin for dataclasses whose fields map one-to-one onto JSON keys."""

    @classmethod
    def _from_dict(cls, data: Any):
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object for {cls.__name__}, got {data!r}")
        return cls(
            **{
                f.name: _decode_value(data, f.metadata["json"], f.default)
                for f in fields(cls)
            }
        )


def _records(cls, value: Any) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"expected a JSON array for {cls.__name__}, got {value!r}")
    return [cls._from_dict(item) for item in value]


def _object(value: Any) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"expected a JSON object, got {value!r}")
    return value


# ---------------------------------------------------------------- transport


@dataclass
class SpotTransport:
    """HTTP client that signs private requests with an API key and secret."""

    base_url: str
    key: Optional[str] = None
    secret: Optional[str] = None
    timeout: float = 30.0

    def get_publicly(self, path: str, query: Query | None = None) -> dict[str, Any]:
        """GET a public endpoint."""
        return self._request("GET", path, dict(query or {}))

    def get_privately(self, path: str, query: Query | None = None) -> dict[str, Any]:
        """GET a private endpoint with a signed query."""
        return self._request("GET", path, self._signed(query))

    def post_form(self, path: str, query: Query | None = None) -> dict[str, Any]:
        """POST a signed form to a private endpoint."""
        return self._request("POST", path, self._signed(query), as_form=True)

    def delete_privately(self, path: str, query: Query | None = None) -> dict[str, Any]:
        """DELETE on a private endpoint with a signed query."""
        return self._request("DELETE", path, self._signed(query))

    def _signed(self, query: Query | None) -> Query:
        if not self.key or not self.secret:
            raise ValueError("private endpoint: set an API key and secret first")
        params = dict(query or {})
        params["api_key"] = self.key
        params["timestamp"] = str(time.time_ns() // 1_000_000)
        payload = urlencode(sorted(params.items()))
        params["sign"] = hmac.new(
            self.secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256
        ).hexdigest()
        return params

    def _request(
        self, method: str, path: str, params: Query, as_form: bool = False
    ) -> dict[str, Any]:
        encoded = urlencode(sorted(params.items()))
        url = self.base_url + path
        data = None
        headers: dict[str, str] = {}
        if as_form:
            data = encoded.encode("ascii")
            headers["Content-Type"] = "application/x-www-form-urlencoded"
        elif encoded:
            url = f"{url}?{encoded}"
        request = Request(url, data=data, method=method, headers=headers)
        try:
            with urlopen(request, timeout=self.timeout) as response:
                body = response.read()
        except HTTPError as exc:
            exc.close()
            if exc.code == 404:
                raise PathNotFoundError() from exc
            if exc.code == 403:
                raise AccessDeniedError() from exc
            raise
        check_response_body(body)
        return json.loads(body)


@dataclass
class SpotResponse(Generic[T]):
    """A decoded reply: the common envelope plus the endpoint's result."""

    common: CommonResponse
    result: T


# ---------------------------------------------------------------- market data


@dataclass
class SpotSymbolsResult(_Record):
    name: str = _json_field("name")
    alias: str = _json_field("alias")
    base_currency: str = _json_field("baseCurrency")
    quote_currency: str = _json_field("quoteCurrency")
    base_precision: str = _json_field("basePrecision")
    quote_precision: str = _json_field("quotePrecision")
    min_trade_quantity: str = _json_field("minTradeQuantity")
    min_trade_amount: str = _json_field("minTradeAmount")
    min_price_precision: str = _json_field("minPricePrecision")
    max_trade_quantity: str = _json_field("maxTradeQuantity")
    max_trade_amount: str = _json_field("maxTradeAmount")
    category: int = _json_field("category", 0)


@dataclass
class SpotQuoteDepthParam:
    symbol: str
    limit: Optional[int] = None

    def to_query(self) -> Query:
        return _query({"symbol": self.symbol}, {"limit": self.limit})


@dataclass
class SpotQuoteDepthMergedParam:
    symbol: str
    scale: Optional[int] = None
    limit: Optional[int] = None

    def to_query(self) -> Query:
        return _query({"symbol": self.symbol}, {"scale": self.scale, "limit": self.limit})


@dataclass
class SpotQuoteDepthBidAsk:
    price: str
    quantity: str


@dataclass
class SpotQuoteDepthResult:
    time: int = 0
    bids: list[SpotQuoteDepthBidAsk] = field(default_factory=list)
    asks: list[SpotQuoteDepthBidAsk] = field(default_factory=list)


def parse_depth_entries(data: Any) -> list[SpotQuoteDepthBidAsk]:
    """Decode ``[[price, quantity], ...]`` into bid/ask entries."""
    if data is None:
        return []
    if not isinstance(data, list):
        raise ValueError(f"expected a JSON array of entries, got {data!r}")
    entries = []
    for item in data:
        if not isinstance(item, list) or not all(isinstance(x, str) for x in item):
            raise ValueError(f"expected an array of strings, got {item!r}")
        if len(item) != 2:
            raise ValueError("so far len(item) must be 2, please check it on documents")
        price, quantity = item
        entries.append(SpotQuoteDepthBidAsk(price=price, quantity=quantity))
    return entries


def _depth_result(value: Any) -> SpotQuoteDepthResult:
    data = _object(value)
    return SpotQuoteDepthResult(
        time=_decode_value(data, "time", 0),
        bids=parse_depth_entries(data.get("bids")),
        asks=parse_depth_entries(data.get("asks")),
    )


@dataclass
class SpotQuoteTradesParam:
    symbol: str
    limit: Optional[int] = None

    def to_query(self) -> Query:
        return _query({"symbol": self.symbol}, {"limit": self.limit})


@dataclass
class SpotQuoteTradesResult(_Record):
    price: str = _json_field("price")
    time: int = _json_field("time", 0)
    qty: str = _json_field("qty")
    is_buyer_maker: bool = _json_field("isBuyerMaker", False)


@dataclass
class SpotQuoteKlineParam:
    symbol: str
    interval: str
    limit: Optional[int] = None
    start_time: Optional[int] = None
    end_time: Optional[int] = None

    def to_query(self) -> Query:
        return _query(
            {"symbol": self.symbol, "interval": self.interval},
            {"limit": self.limit, "startTime": self.start_time, "endTime": self.end_time},
        )


def _kline_number(value: Any, position: int) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"kline item {position}: expected a number, got {value!r}")
    return value


def _kline_string(value: Any, position: int) -> str:
    if not isinstance(value, str):
        raise ValueError(f"kline item {position}: expected a string, got {value!r}")
    return value


@dataclass
class SpotQuoteKline:
    start_time: int
    open: str
    high: str
    low: str
    close: str
    volume: str
    end_time: int
    quote_asset_volume: str
    trades: int
    taker_base_volume: float
    taker_quote_volume: float

    @classmethod
    def from_list(cls, data: Any) -> SpotQuoteKline:
        """Decode the eleven-element array the API uses for one candle."""
        if not isinstance(data, list):
            raise ValueError(f"expected a JSON array for a kline, got {data!r}")
        if len(data) != 11:
            raise ValueError("so far len(items) must be 11, please check it on documents")
        return cls(
            start_time=int(_kline_number(data[0], 0)),
            open=_kline_string(data[1], 1),
            high=_kline_string(data[2], 2),
            low=_kline_string(data[3], 3),
            close=_kline_string(data[4], 4),
            volume=_kline_string(data[5], 5),
            end_time=int(_kline_number(data[6], 6)),
            quote_asset_volume=_kline_string(data[7], 7),
            trades=int(_kline_number(data[8], 8)),
            taker_base_volume=float(_kline_number(data[9], 9)),
            taker_quote_volume=float(_kline_number(data[10], 10)),
        )


@dataclass
class SpotQuoteTickerParam:
    symbol: Optional[str] = None

    def to_query(self) -> Query:
        return _query({}, {"symbol": self.symbol})


@dataclass
class SpotQuoteTicker24hrResult(_Record):
    time: int = _json_field("time", 0)
    symbol: str = _json_field("symbol")
    best_bid_price: str = _json_field("bestBidPrice")
    best_ask_price: str = _json_field("bestAskPrice")
    last_price: str = _json_field("lastPrice")
    open_price: str = _json_field("openPrice")
    high_price: str = _json_field("highPrice")
    low_price: str = _json_field("lowPrice")
    volume: str = _json_field("volume")
    quote_volume: str = _json_field("quoteVolume")


@dataclass
class SpotQuoteTickerPriceResult(_Record):
    symbol: str = _json_field("symbol")
    price: str = _json_field("price")


@dataclass
class SpotQuoteTickerBookTickerResult(_Record):
    symbol: str = _json_field("symbol")
    bid_price: str = _json_field("bidPrice")
    bid_qty: str = _json_field("bidQty")
    ask_price: str = _json_field("askPrice")
    ask_qty: str = _json_field("askQty")
    time: int = _json_field("time", 0)


# ---------------------------------------------------------------- orders


@dataclass
class SpotPostOrderParam:
    symbol: str
    qty: float
    side: str
    order_type: str
    time_in_force: Optional[str] = None
    price: Optional[float] = None
    order_link_id: Optional[str] = None

    def to_query(self) -> Query:
        return _query(
            {
                "symbol": self.symbol,
                "qty": float(self.qty),
                "side": self.side,
                "type": self.order_type,
            },
            {
                "timeInForce": self.time_in_force,
                "price": None if self.price is None else float(self.price),
                "orderLinkId": self.order_link_id,
            },
        )


@dataclass
class SpotPostOrderResult(_Record):
    order_id: str = _json_field("orderId")
    order_link_id: str = _json_field("orderLinkId")
    symbol: str = _json_field("symbol")
    transact_time: str = _json_field("transactTime")
    price: str = _json_field("price")
    orig_qty: str = _json_field("origQty")
    order_type: str = _json_field("type")
    side: str = _json_field("side")
    status: str = _json_field("status")
    time_in_force: str = _json_field("timeInForce")
    account_id: str = _json_field("accountId")
    symbol_name: str = _json_field("symbolName")
    executed_qty: str = _json_field("executedQty")


@dataclass
class SpotOrderIdParam:
    """Identifies one order by its id or by its client-side link id."""

    order_id: Optional[str] = None
    order_link_id: Optional[str] = None

    def to_query(self) -> Query:
        return _query({}, {"orderId": self.order_id, "orderLinkId": self.order_link_id})


@dataclass
class SpotOrderResult(_Record):
    account_id: str = _json_field("accountId")
    exchange_id: str = _json_field("exchangeId")
    symbol: str = _json_field("symbol")
    symbol_name: str = _json_field("symbolName")
    order_link_id: str = _json_field("orderLinkId")
    order_id: str = _json_field("orderId")
    price: str = _json_field("price")
    orig_qty: str = _json_field("origQty")
    executed_qty: str = _json_field("executedQty")
    cummulative_quote_qty: str = _json_field("cummulativeQuoteQty")
    avg_price: str = _json_field("avgPrice")
    status: str = _json_field("status")
    time_in_force: str = _json_field("timeInForce")
    order_type: str = _json_field("type")
    side: str = _json_field("side")
    stop_price: str = _json_field("stopPrice")
    iceberg_qty: str = _json_field("icebergQty")
    time: str = _json_field("time")
    update_time: str = _json_field("updateTime")
    is_working: bool = _json_field("isWorking", False)


@dataclass
class SpotDeleteOrderResult(_Record):
    order_id: str = _json_field("orderId")
    order_link_id: str = _json_field("orderLinkId")
    symbol: str = _json_field("symbol")
    status: str = _json_field("status")
    account_id: str = _json_field("accountId")
    transact_time: str = _json_field("transactTime")
    price: str = _json_field("price")
    orig_qty: str = _json_field("origQty")
    executed_qty: str = _json_field("executedQty")
    time_in_force: str = _json_field("timeInForce")
    order_type: str = _json_field("type")
    side: str = _json_field("side")


@dataclass
class SpotDeleteOrderFastParam:
    symbol: str
    order_id: Optional[str] = None
    order_link_id: Optional[str] = None

    def to_query(self) -> Query:
        return _query(
            {"symbolId": self.symbol},
            {"orderId": self.order_id, "orderLinkId": self.order_link_id},
        )


@dataclass
class SpotOrderBatchCancelParam:
    symbol: str
    side: Optional[str] = None
    types: Sequence[str] = ()

    def to_query(self) -> Query:
        types = ",".join(_text(t) for t in self.types) if self.types else None
        return _query({"symbolId": self.symbol}, {"side": self.side, "orderTypes": types})


@dataclass
class SpotOrderBatchCancelByIDsResult(_Record):
    order_id: str = _json_field("orderId")
    code: str = _json_field("code")


@dataclass
class SpotOpenOrdersParam:
    symbol: Optional[str] = None
    order_id: Optional[str] = None
    limit: Optional[int] = None

    def to_query(self) -> Query:
        return _query(
            {}, {"symbol": self.symbol, "orderId": self.order_id, "limit": self.limit}
        )


@dataclass
class SpotWalletBalance(_Record):
    coin: str = _json_field("coin")
    coin_id: str = _json_field("coinId")
    coin_name: str = _json_field("coinName")
    total: str = _json_field("total")
    free: str = _json_field("free")
    locked: str = _json_field("locked")


# ---------------------------------------------------------------- service


def _respond(data: dict[str, Any], result: T) -> SpotResponse[T]:
    return SpotResponse(common=CommonResponse.from_dict(data), result=result)


class SpotV1Service:
    """The spot v1 endpoints, sent through a transport."""

    def __init__(self, client: SpotTransport) -> None:
        self._client = client

    def spot_symbols(self) -> SpotResponse[list[SpotSymbolsResult]]:
        data = self._client.get_publicly("/spot/v1/symbols", None)
        return _respond(data, _records(SpotSymbolsResult, data.get("result")))

    def spot_quote_depth(self, param: SpotQuoteDepthParam) -> SpotResponse[SpotQuoteDepthResult]:
        data = self._client.get_publicly("/spot/quote/v1/depth", param.to_query())
        return _respond(data, _depth_result(data.get("result")))

    def spot_quote_depth_merged(
        self, param: SpotQuoteDepthMergedParam
    ) -> SpotResponse[SpotQuoteDepthResult]:
        data = self._client.get_publicly("/spot/quote/v1/depth/merged", param.to_query())
        return _respond(data, _depth_result(data.get("result")))

    def spot_quote_trades(
        self, param: SpotQuoteTradesParam
    ) -> SpotResponse[list[SpotQuoteTradesResult]]:
        data = self._client.get_publicly("/spot/quote/v1/trades", param.to_query())
        return _respond(data, _records(SpotQuoteTradesResult, data.get("result")))

    def spot_quote_kline(self, param: SpotQuoteKlineParam) -> SpotResponse[list[SpotQuoteKline]]:
        data = self._client.get_publicly("/spot/quote/v1/kline", param.to_query())
        raw = data.get("result") or []
        if not isinstance(raw, list):
            raise ValueError(f"expected a JSON array of klines, got {raw!r}")
        return _respond(data, [SpotQuoteKline.from_list(item) for item in raw])

    def spot_quote_ticker_24hr(
        self, param: SpotQuoteTickerParam
    ) -> SpotResponse[SpotQuoteTicker24hrResult]:
        data = self._client.get_publicly("/spot/quote/v1/ticker/24hr", param.to_query())
        return _respond(data, SpotQuoteTicker24hrResult._from_dict(data.get("result")))

    def spot_quote_ticker_price(
        self, param: SpotQuoteTickerParam
    ) -> SpotResponse[SpotQuoteTickerPriceResult]:
        data = self._client.get_publicly("/spot/quote/v1/ticker/price", param.to_query())
        return _respond(data, SpotQuoteTickerPriceResult._from_dict(data.get("result")))

    def spot_quote_ticker_book_ticker(
        self, param: SpotQuoteTickerParam
    ) -> SpotResponse[SpotQuoteTickerBookTickerResult]:
        data = self._client.get_publicly("/spot/quote/v1/ticker/book_ticker", param.to_query())
        return _respond(data, SpotQuoteTickerBookTickerResult._from_dict(data.get("result")))

    def spot_post_order(self, param: SpotPostOrderParam) -> SpotResponse[SpotPostOrderResult]:
        data = self._client.post_form("/spot/v1/order", param.to_query())
        return _respond(data, SpotPostOrderResult._from_dict(data.get("result")))

    def spot_get_order(self, param: SpotOrderIdParam) -> SpotResponse[SpotOrderResult]:
        data = self._client.get_privately("/spot/v1/order", param.to_query())
        return _respond(data, SpotOrderResult._from_dict(data.get("result")))

    def spot_delete_order(self, param: SpotOrderIdParam) -> SpotResponse[SpotDeleteOrderResult]:
        data = self._client.delete_privately("/spot/v1/order", param.to_query())
        return _respond(data, SpotDeleteOrderResult._from_dict(data.get("result")))

    def spot_delete_order_fast(self, param: SpotDeleteOrderFastParam) -> SpotResponse[bool]:
        """Cancel one order quickly; the result tells whether it was cancelled."""
        data = self._client.delete_privately("/spot/v1/order/fast", param.to_query())
        result = _object(data.get("result"))
        return _respond(data, _decode_value(result, "isCancelled", False))

    def spot_order_batch_cancel(self, param: SpotOrderBatchCancelParam) -> SpotResponse[bool]:
        """Cancel orders in bulk; the result is the reported success flag."""
        data = self._client.delete_privately("/spot/order/batch-cancel", param.to_query())
        result = _object(data.get("result"))
        return _respond(data, _decode_value(result, "success", False))

    def spot_order_batch_fast_cancel(
        self, param: SpotOrderBatchCancelParam
    ) -> SpotResponse[bool]:
        """Cancel orders in bulk quickly; the result is the reported success flag."""
        data = self._client.delete_privately("/spot/order/batch-fast-cancel", param.to_query())
        result = _object(data.get("result"))
        return _respond(data, _decode_value(result, "success", False))

    def spot_order_batch_cancel_by_ids(
        self, order_ids: Sequence[str]
    ) -> SpotResponse[list[SpotOrderBatchCancelByIDsResult]]:
        if len(order_ids) > MAX_BATCH_CANCEL_IDS:
            raise ValueError("orderIDs length must be no more than 100")
        query = {"orderIds": ",".join(order_ids)}
        data = self._client.delete_privately("/spot/order/batch-cancel-by-ids", query)
        return _respond(data, _records(SpotOrderBatchCancelByIDsResult, data.get("result")))

    def spot_open_orders(self, param: SpotOpenOrdersParam) -> SpotResponse[list[SpotOrderResult]]:
        data = self._client.get_privately("/spot/v1/open-orders", param.to_query())
        return _respond(data, _records(SpotOrderResult, data.get("result")))

    def spot_get_wallet_balance(self) -> SpotResponse[list[SpotWalletBalance]]:
        data = self._client.get_privately("/spot/v1/account", {})
        result = _object(data.get("result"))
        return _respond(data, _records(SpotWalletBalance, result.get("balances")))