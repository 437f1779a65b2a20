import json

import pytest

from bybit_spot.mock_server import MockServer, handler_option
from bybit_spot.response import ErrorResponse, PathNotFoundError
from bybit_spot.spot_v1 import (
    SpotDeleteOrderFastParam,
    SpotOpenOrdersParam,
    SpotOrderBatchCancelParam,
    SpotOrderResult,
    SpotPostOrderParam,
    SpotPostOrderResult,
    SpotQuoteDepthBidAsk,
    SpotQuoteDepthParam,
    SpotQuoteKline,
    SpotQuoteKlineParam,
    SpotQuoteTickerParam,
    SpotSymbolsResult,
    SpotTransport,
    SpotV1Service,
    SpotWalletBalance,
    parse_depth_entries,
)


def _serve(path, method, result, ret_code=0, ret_msg="OK"):
    body = json.dumps({"ret_code": ret_code, "ret_msg": ret_msg, "result": result})
    return MockServer(handler_option(path, method, 200, body.encode("utf-8")))


def _service(url, authenticated=True):
    if authenticated:
        return SpotV1Service(SpotTransport(url, key="placeholder", secret="secret"))
    return SpotV1Service(SpotTransport(url))


POST_ORDER_RESULT = {
    "orderId": "1037799004578056704",
    "orderLinkId": "1638451282020267",
    "symbol": "BTCUSDT",
    "transactTime": "1638451282090",
    "price": "28383.5",
    "origQty": "1.100000",
    "type": "MARKET",
    "side": "Buy",
    "status": "NEW",
    "timeInForce": "GTC",
    "accountId": "213998",
    "symbolName": "BTCUSDT",
    "executedQty": "0",
}

OPEN_ORDER = {
    "accountId": "213998",
    "exchangeId": "301",
    "symbol": "BTCUSDT",
    "symbolName": "BTCUSDT",
    "orderLinkId": "1664962738850574",
    "orderId": "1260193223383517952",
    "price": "1",
    "origQty": "0.01",
    "executedQty": "0",
    "cummulativeQuoteQty": "0",
    "avgPrice": "0",
    "status": "NEW",
    "timeInForce": "GTC",
    "type": "LIMIT",
    "side": "BUY",
    "stopPrice": "0.0",
    "icebergQty": "0.0",
    "time": "1664962738856",
    "updateTime": "1664962738874",
    "isWorking": True,
}

POST_PARAM = SpotPostOrderParam(symbol="BTCUSDT", qty=1.1, side="Buy", order_type="MARKET")


def test_spot_post_order_success():
    with _serve("/spot/v1/order", "POST", POST_ORDER_RESULT) as server:
        resp = _service(server.url).spot_post_order(POST_PARAM)
    assert resp.common.ret_code == 0
    assert resp.result == SpotPostOrderResult(
        order_id="1037799004578056704",
        order_link_id="1638451282020267",
        symbol="BTCUSDT",
        transact_time="1638451282090",
        price="28383.5",
        orig_qty="1.100000",
        order_type="MARKET",
        side="Buy",
        status="NEW",
        time_in_force="GTC",
        account_id="213998",
        symbol_name="BTCUSDT",
        executed_qty="0",
    )


def test_spot_post_order_authentication_required():
    with _serve("/spot/v1/order", "POST", POST_ORDER_RESULT) as server:
        with pytest.raises(ValueError, match="API key"):
            _service(server.url, authenticated=False).spot_post_order(POST_PARAM)


def test_spot_order_batch_cancel_param():
    param = SpotOrderBatchCancelParam(symbol="BTCUSDT", types=["LIMIT", "MARKET"])
    assert param.to_query() == {"symbolId": "BTCUSDT", "orderTypes": "LIMIT,MARKET"}


def test_spot_order_batch_cancel_param_omits_unset():
    assert SpotOrderBatchCancelParam(symbol="BTCUSDT").to_query() == {"symbolId": "BTCUSDT"}


def test_spot_open_orders_success():
    with _serve("/spot/v1/open-orders", "GET", [OPEN_ORDER]) as server:
        resp = _service(server.url).spot_open_orders(SpotOpenOrdersParam(symbol="BTCUSDT"))
    assert resp.result == [
        SpotOrderResult(
            account_id="213998",
            exchange_id="301",
            symbol="BTCUSDT",
            symbol_name="BTCUSDT",
            order_link_id="1664962738850574",
            order_id="1260193223383517952",
            price="1",
            orig_qty="0.01",
            executed_qty="0",
            cummulative_quote_qty="0",
            avg_price="0",
            status="NEW",
            time_in_force="GTC",
            order_type="LIMIT",
            side="BUY",
            stop_price="0.0",
            iceberg_qty="0.0",
            time="1664962738856",
            update_time="1664962738874",
            is_working=True,
        )
    ]


def test_spot_open_orders_authentication_required():
    with _serve("/spot/v1/open-orders", "GET", [OPEN_ORDER]) as server:
        with pytest.raises(ValueError):
            _service(server.url, authenticated=False).spot_open_orders(
                SpotOpenOrdersParam(symbol="BTCUSDT")
            )


WALLET = {
    "balances": [
        {
            "coin": "BTC",
            "coinId": "BTC",
            "coinName": "BTC",
            "total": "1.258926",
            "free": "1.258926",
            "locked": "0",
        }
    ]
}


def test_spot_get_wallet_balance_success():
    with _serve("/spot/v1/account", "GET", WALLET) as server:
        resp = _service(server.url).spot_get_wallet_balance()
    assert resp.result == [
        SpotWalletBalance(
            coin="BTC",
            coin_id="BTC",
            coin_name="BTC",
            total="1.258926",
            free="1.258926",
            locked="0",
        )
    ]


def test_spot_get_wallet_balance_authentication_required():
    with _serve("/spot/v1/account", "GET", WALLET) as server:
        with pytest.raises(ValueError):
            _service(server.url, authenticated=False).spot_get_wallet_balance()


def test_post_order_query_formatting():
    assert POST_PARAM.to_query() == {
        "symbol": "BTCUSDT",
        "qty": "1.1",
        "side": "Buy",
        "type": "MARKET",
    }
    param = SpotPostOrderParam(
        symbol="BTCUSDT", qty=1.0, side="Buy", order_type="LIMIT", price=28383.5
    )
    assert param.to_query() == {
        "symbol": "BTCUSDT",
        "qty": "1",
        "side": "Buy",
        "type": "LIMIT",
        "price": "28383.5",
    }


def test_kline_and_ticker_queries():
    param = SpotQuoteKlineParam(symbol="BTCUSDT", interval="1d", limit=5)
    assert param.to_query() == {"symbol": "BTCUSDT", "interval": "1d", "limit": "5"}
    assert SpotQuoteTickerParam().to_query() == {}
    fast = SpotDeleteOrderFastParam(symbol="BTCUSDT", order_id="1")
    assert fast.to_query() == {"symbolId": "BTCUSDT", "orderId": "1"}


def test_parse_depth_entries():
    assert parse_depth_entries([["20191.69", "0.5"], ["20190", "1"]]) == [
        SpotQuoteDepthBidAsk(price="20191.69", quantity="0.5"),
        SpotQuoteDepthBidAsk(price="20190", quantity="1"),
    ]
    assert parse_depth_entries(None) == []


def test_parse_depth_entries_wrong_length():
    with pytest.raises(ValueError, match="must be 2"):
        parse_depth_entries([["1", "2", "3"]])


def test_kline_from_list():
    kline = SpotQuoteKline.from_list(
        [1664236800000, "1", "2", "0.5", "1.5", "10", 1664323199999, "15", 42, 3.5, 4]
    )
    assert kline.start_time == 1664236800000
    assert kline.close == "1.5"
    assert kline.trades == 42
    assert kline.taker_quote_volume == 4.0


def test_kline_from_list_wrong_length():
    with pytest.raises(ValueError, match="11"):
        SpotQuoteKline.from_list([1, "2"])


def test_spot_quote_depth():
    result = {"time": 1664283342503, "bids": [["1", "2"]], "asks": [["3", "4"]]}
    with _serve("/spot/quote/v1/depth", "GET", result) as server:
        resp = _service(server.url, authenticated=False).spot_quote_depth(
            SpotQuoteDepthParam(symbol="BTCUSDT")
        )
    assert resp.result.time == 1664283342503
    assert resp.result.bids == [SpotQuoteDepthBidAsk("1", "2")]
    assert resp.result.asks == [SpotQuoteDepthBidAsk("3", "4")]


def test_spot_symbols():
    result = [{"name": "BTCUSDT", "baseCurrency": "BTC", "category": 1}]
    with _serve("/spot/v1/symbols", "GET", result) as server:
        resp = _service(server.url, authenticated=False).spot_symbols()
    assert resp.result == [SpotSymbolsResult(name="BTCUSDT", base_currency="BTC", category=1)]


def test_spot_delete_order_fast():
    with _serve("/spot/v1/order/fast", "DELETE", {"isCancelled": True}) as server:
        resp = _service(server.url).spot_delete_order_fast(
            SpotDeleteOrderFastParam(symbol="BTCUSDT", order_id="1")
        )
    assert resp.result is True


def test_error_response_is_raised():
    with _serve("/spot/v1/symbols", "GET", None, ret_code=10001, ret_msg="params error") as server:
        with pytest.raises(ErrorResponse) as info:
            _service(server.url, authenticated=False).spot_symbols()
    assert str(info.value) == "10001, params error"


def test_unknown_path_raises_path_not_found():
    with MockServer() as server:
        with pytest.raises(PathNotFoundError):
            _service(server.url, authenticated=False).spot_symbols()


def test_batch_cancel_by_ids_limit():
    service = _service("http://127.0.0.1:9")
    with pytest.raises(ValueError, match="no more than 100"):
        service.spot_order_batch_cancel_by_ids([str(i) for i in range(101)])